"""
The package ``teestream`` splits one data stream into multiple independent iterators,
and runs multiple consumers over one data stream.

1. :func:`tee` takes an `Iterable`_ and a count ``n``, and returns ``n`` iterators
   (:class:`Fork` objects) that each yield the full stream, in order, at their own pace.
   The input stream is walked only once; elements are buffered until every fork has
   obtained them.
2. :func:`run_consumers` applies a number of consumers (:class:`Map`, :class:`Filter`,
   :class:`Reduce`, :class:`ForEach`) to one data stream, each via its own fork,
   and returns one result per consumer.
3. :class:`Stream` carries the above as methods, along with a few chainable operators.

To install, do

::

   python3 -m pip install teestream

.. _Iterable: https://docs.python.org/3/library/collections.abc.html#collections.abc.Iterable
"""

__version__ = '0.2.3'


from ._common import NOTSET, InvalidArgumentError
from ._consumers import Consumer, Filter, ForEach, Map, Reduce, run_consumers
from ._logging import config_logger
from ._streamer import Stream
from ._tee import Fork, tee

split = tee

__all__ = [
    'Consumer',
    'Filter',
    'ForEach',
    'Fork',
    'InvalidArgumentError',
    'Map',
    'NOTSET',
    'Reduce',
    'Stream',
    'config_logger',
    'run_consumers',
    'split',
    'tee',
]
