import logging
import time

import pytest

from teestream import config_logger, tee
from teestream._logging import make_config


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    converter = logging.Formatter.converter
    yield
    root.handlers = handlers
    root.setLevel(level)
    logging.Formatter.converter = converter
    logging.captureWarnings(False)


def test_make_config(restore_logging, monkeypatch):
    monkeypatch.delenv('LOGLEVEL', raising=False)
    kw = make_config()
    assert kw['level'] == logging.INFO
    assert '%(message)s' in kw['format']
    assert '%(threadName)s' not in kw['format']
    assert logging.Formatter.converter is time.gmtime

    monkeypatch.setenv('LOGLEVEL', 'warning')
    assert make_config()['level'] == logging.WARNING
    assert make_config(level='debug')['level'] == logging.DEBUG
    assert make_config(level=logging.ERROR)['level'] == logging.ERROR

    kw = make_config(with_thread_name=True, timezone='US/Pacific')
    assert '%(threadName)s' in kw['format']
    assert 'US/Pacific' in kw['format']

    with pytest.raises(ValueError):
        make_config(level='loud')


def test_config_logger(restore_logging, caplog):
    config_logger(level='debug', timezone='local')
    assert logging.getLogger().level == logging.DEBUG
    logging.getLogger('teestream').info('hello')

    with caplog.at_level(logging.DEBUG, logger='teestream'):
        a, b = tee([1], 2)
        assert list(a) == [1]
    assert 'input stream exhausted' in caplog.text
