from __future__ import annotations

import decimal
import logging
import math
import numbers
import threading
from collections import deque
from collections.abc import Iterable, Iterator
from typing import TypeVar

from typing_extensions import Self

from ._common import InvalidArgumentError

logger = logging.getLogger(__name__)

FINISHED = '8d906c4b-1161-40cc-b585-7cfb012bca26'

Elem = TypeVar('Elem')


class _Tee:
    # State shared by all the forks of one `tee` call.
    #
    # `buffer` holds elements that have been pulled from `instream` but
    # not yet obtained by every fork. `positions[i]` is the number of
    # elements at the front of `buffer` that fork `i` has already obtained.
    # After every advance, `min(positions)` elements are dropped off the front
    # of `buffer` and all positions are shifted down by the same amount,
    # so that `min(positions)` is always 0 between calls.
    __slots__ = ('instream', 'buffer', 'positions', 'exhausted', 'error', 'error_tb', 'lock')

    def __init__(self, instream: Iterator, n_forks: int):
        self.instream = instream
        self.buffer: deque = deque()
        self.positions = [0] * n_forks
        self.exhausted = False
        self.error: Exception | None = None
        self.error_tb = None
        self.lock = threading.Lock()

    def pull(self):
        # Get the next element out of `instream`, or `FINISHED`.
        # `instream` is never touched again once it has finished or failed;
        # the outcome is replayed instead.
        if self.exhausted:
            return FINISHED
        if self.error is not None:
            raise self.error.with_traceback(self.error_tb)
        try:
            x = next(self.instream)
        except StopIteration:
            self.exhausted = True
            logger.debug('input stream exhausted')
            return FINISHED
        except Exception as e:
            self.error = e
            self.error_tb = e.__traceback__
            logger.debug('input stream raised %r; it will be replayed to the other forks', e)
            raise
        self.buffer.append(x)
        return x

    def evict(self):
        # Terminal forks participate, too: a fork that has been closed early
        # keeps the elements after its last position in the buffer.
        k = min(self.positions)
        if k:
            for _ in range(k):
                self.buffer.popleft()
            for i in range(len(self.positions)):
                self.positions[i] -= k


class Fork(Iterator[Elem]):
    """
    One of the iterators returned by :func:`tee`.

    A ``Fork`` holds no data itself. It only knows its own index into the
    read positions of the shared state, and whether it has finished.
    Once it has finished (exhausted, failed, or closed), it stays finished,
    regardless of the other forks.
    """

    def __init__(self, tee: _Tee, fork_idx: int):
        self._tee = tee
        self._fork_idx = fork_idx
        self._done = False

    @property
    def index(self) -> int:
        return self._fork_idx

    @property
    def done(self) -> bool:
        return self._done

    def __iter__(self) -> Self:
        return self

    def __next__(self) -> Elem:
        tee = self._tee
        idx = self._fork_idx
        with tee.lock:
            if self._done:
                raise StopIteration
            pos = tee.positions[idx]
            if pos < len(tee.buffer):
                x = tee.buffer[pos]
            else:
                # This fork is the fastest one; get a new element from `instream`.
                try:
                    x = tee.pull()
                except Exception:
                    # The same exception object is raised in every fork that
                    # gets to this point; each fork sees it once.
                    self._done = True
                    raise
                if x is FINISHED:
                    self._done = True
                    raise StopIteration
            tee.positions[idx] = pos + 1
            tee.evict()
            return x

    def close(self, value=None):
        """
        Stop this fork early. ``value`` is returned as is.

        The other forks are not affected. Note that the read position of this fork
        is frozen, hence elements after that position stay in the shared buffer
        until this ``tee`` is garbage collected.
        """
        with self._tee.lock:
            self._done = True
        return value

    def throw(self, exc: BaseException | type[BaseException]):
        """
        Stop this fork early and raise ``exc``, which is either an exception object
        or an exception class.

        The input stream and the other forks are not affected.
        """
        with self._tee.lock:
            self._done = True
        if isinstance(exc, type):
            exc = exc()
        raise exc


def _is_iterable(obj) -> bool:
    # Same rule as `iter`: `__iter__` on the type, unless it is set to None;
    # otherwise the sequence protocol via `__getitem__`.
    cls = type(obj)
    if hasattr(cls, '__iter__'):
        return cls.__iter__ is not None
    return hasattr(cls, '__getitem__')


def tee(instream: Iterable[Elem], n: int, /) -> tuple[Fork[Elem], ...]:
    """
    ``tee`` produces ``n`` independent iterators ("forks") over the input data stream.

    Each fork yields the same elements as ``instream``, in the same order.
    The forks can be consumed at different paces, one after another or in an
    interleaved fashion, and ``instream`` is walked only once:
    every element is obtained from ``instream`` exactly once no matter how many forks
    will see it. This makes ``tee`` suitable for data streams that are expensive,
    or impossible, to walk a second time.

    Think of the internal buffer as a "moving window" on ``instream``. The window
    starts at the element that the slowest fork will obtain next, and ends at
    the latest element that the fastest fork has obtained. Once an element has been
    obtained by all the forks, it is dropped. The buffer is not bounded by a fixed
    size; if one fork is consumed to the end before the others are touched,
    the entire stream is held in memory.

    The forks may be consumed in different threads.

    Compared to the standard `itertools.tee <https://docs.python.org/3/library/itertools.html#itertools.tee>`_,
    the forks additionally support :meth:`Fork.close` and :meth:`Fork.throw`,
    and an exception raised by ``instream`` is raised once in every fork
    without calling into ``instream`` again.

    Parameters
    ----------
    instream
        The input data stream; anything that ``iter`` accepts.
    n
        Number of forks. A fractional number is truncated toward zero.
        If 0, an empty tuple is returned and ``instream`` is not touched at all.

    Examples
    --------
    >>> f1, f2 = tee([1, 2, 3], 2)
    >>> next(f1), next(f1)
    (1, 2)
    >>> list(f2)
    [1, 2, 3]
    >>> list(f1)
    [3]
    """
    if not _is_iterable(instream):
        raise InvalidArgumentError(
            f"expecting an iterable as the first argument; got object of type '{type(instream).__name__}'"
        )
    if isinstance(n, bool) or not isinstance(n, (numbers.Real, decimal.Decimal)):
        raise InvalidArgumentError(
            f"expecting a number as the second argument; got object of type '{type(n).__name__}'"
        )
    if not (n.is_finite() if isinstance(n, decimal.Decimal) else math.isfinite(n)):
        raise InvalidArgumentError(f'expecting a finite number of forks; got {n}')
    n = math.trunc(n)
    if n < 0:
        raise InvalidArgumentError(f'expecting a non-negative number of forks; got {n}')
    if n == 0:
        return ()

    if not hasattr(instream, '__next__'):
        instream = iter(instream)

    shared = _Tee(instream, n)
    return tuple(Fork(shared, i) for i in range(n))
