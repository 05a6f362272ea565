"""
Configure logging, mainly the format, for scripts that use ``teestream``.

A call to ``config_logger`` in a launching script is all that is needed::

  config_logger(level='debug')

If ``level`` is not specified, the environment variable ``LOGLEVEL`` is used;
if that is not set, the level is 'info'.

Do not call this in library modules.
Library modules have ::

   logger = logging.getLogger(__name__)

and then just use ``logger`` without concern about formatting or destination.
"""
import logging
import os
import time
import warnings
from datetime import datetime
from logging import Formatter
from typing import Union

import pytz

DEFAULT_LEVEL = 'info'


def _resolve_level(level: Union[str, int, None]) -> int:
    if level is None:
        level = os.environ.get('LOGLEVEL', DEFAULT_LEVEL)
    if isinstance(level, int):
        return level
    value = getattr(logging, level.upper(), None)
    if not isinstance(value, int):
        raise ValueError(f"unknown logging level '{level}'")
    return value


def _make_converter(timezone: str):
    if timezone.lower() == 'utc':
        return time.gmtime
    if timezone.lower() == 'local':
        return time.localtime
    tz = pytz.timezone(timezone)

    def custom_time(*args):
        return datetime.now(pytz.utc).astimezone(tz).timetuple()

    return custom_time


def make_config(
    *,
    level: Union[str, int, None] = None,
    with_thread_name: bool = False,
    timezone: str = 'UTC',
) -> dict:
    """
    Return the keyword arguments to ``logging.basicConfig``.

    ``timezone`` is 'utc', 'local', or a name known to ``pytz`` such as 'US/Pacific'.
    ``with_thread_name`` is useful with the ``'thread'`` strategy of
    :func:`~teestream.run_consumers`.
    """
    Formatter.converter = _make_converter(timezone)

    datefmt = '%Y-%m-%d %H:%M:%S'
    msg = '[%(asctime)s.%(msecs)03d ' + timezone + '; %(levelname)s; %(name)s, %(funcName)s, %(lineno)d]  '
    if with_thread_name:
        fmt = f'{msg}[%(threadName)s]  %(message)s'
    else:
        fmt = f'{msg}%(message)s'

    return dict(format=fmt, datefmt=datefmt, level=_resolve_level(level))


def config_logger(
    *,
    level: Union[str, int, None] = None,
    with_thread_name: bool = False,
    timezone: str = 'UTC',
) -> None:
    kw = make_config(level=level, with_thread_name=with_thread_name, timezone=timezone)

    rootlogger = logging.getLogger()
    if rootlogger.hasHandlers():
        rootlogger.handlers = []

    logging.basicConfig(**kw)

    # Route `warnings` messages to the log.
    logging.captureWarnings(True)
    warnings.filterwarnings('default', category=DeprecationWarning)
