from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, Mapping
from typing import Any, Literal, Optional, TypeVar

from typing_extensions import Self

from ._consumers import Consumer, run_consumers
from ._tee import Fork, tee

T = TypeVar('T')
Elem = TypeVar('Elem')


class Stream(Iterable[Elem]):
    """
    A light wrapper around an `Iterable`_ that carries the splitting utilities as methods.

    The operators :meth:`map`, :meth:`filter`, and :meth:`head` modify the object in-place
    and return it, so they can be chained::

        s = Stream(data).map(parse).filter(is_valid)
        counts, total = s.run_consumers(Reduce(count, 0), Reduce(add))

    Nothing runs until the stream is iterated.

    .. _Iterable: https://docs.python.org/3/library/collections.abc.html#collections.abc.Iterable
    """

    split = staticmethod(tee)
    # ``Stream.split(data, n)`` is the same as ``tee(data, n)``.

    def __init__(self, instream: Iterable, /):
        self.streamlets: list[Iterable] = [instream]

    def __iter__(self) -> Iterator[Elem]:
        return self.streamlets[-1].__iter__()

    def drain(self) -> int:
        """
        Drain off the stream and return the number of elements processed.
        """
        n = 0
        for _ in self:
            n += 1
        return n

    def collect(self) -> list[Elem]:
        """
        Return all the elements in a list.

        .. warning:: Do not call this method on "big data".
        """
        return list(self)

    def map(self, func: Callable[[T], Any], /, **kwargs) -> Self:
        """
        Transform each element by ``func(x, **kwargs)``.
        """
        self.streamlets.append(Mapper(self.streamlets[-1], func, **kwargs))
        return self

    def filter(self, func: Callable[[T], bool], /, **kwargs) -> Self:
        """
        Keep the elements for which ``func(x, **kwargs)`` is true.
        """
        self.streamlets.append(Selector(self.streamlets[-1], func, **kwargs))
        return self

    def head(self, n: int) -> Self:
        """
        Take the first ``n`` elements and ignore the rest.
        """
        self.streamlets.append(Header(self.streamlets[-1], n))
        return self

    def tee(self, n: int = 2) -> tuple[Stream[Elem], ...]:
        """
        Split this stream into ``n`` independent streams.

        Each of the returned streams wraps one :class:`~teestream.Fork`; further operators
        can be added to them independently. After this call, this stream should not be
        iterated directly, since that would take elements away from the forks.

        >>> s1, s2 = Stream(range(4)).tee(2)
        >>> s1.map(lambda x: x * 10).collect()
        [0, 10, 20, 30]
        >>> s2.filter(lambda x: x > 1).collect()
        [2, 3]
        """
        return tuple(Stream(f) for f in tee(self, n))

    def run_consumers(
        self,
        *consumers: Consumer | Mapping,
        strategy: Literal['sequential', 'interleaved', 'thread'] = 'sequential',
        max_workers: Optional[int] = None,
    ) -> list:
        """
        Run ``consumers`` over this stream in one pass; see :func:`~teestream.run_consumers`.
        """
        return run_consumers(
            self, *consumers, strategy=strategy, max_workers=max_workers
        )


class Mapper(Iterable):
    # Yields `func(x, **kwargs)` for each element.
    def __init__(self, instream: Iterable, func: Callable[[T], Any], /, **kwargs):
        self._instream = instream
        self._func = func
        self._kwargs = kwargs

    def __iter__(self):
        func, kwargs = self._func, self._kwargs
        return (func(x, **kwargs) for x in self._instream)


class Selector(Iterable):
    # Yields the elements for which `func(x, **kwargs)` is true.
    def __init__(self, instream: Iterable, func: Callable[[T], bool], /, **kwargs):
        self._instream = instream
        self._func = func
        self._kwargs = kwargs

    def __iter__(self):
        func, kwargs = self._func, self._kwargs
        return (x for x in self._instream if func(x, **kwargs))


class Header(Iterable):
    def __init__(self, instream: Iterable, /, n: int):
        """
        Keeps the first ``n`` elements and ignores all the rest.

        When the input is a :class:`~teestream.Fork`, it is closed once
        ``n`` elements have been taken.
        """
        assert n > 0
        self._instream = instream
        self.n = n

    def __iter__(self):
        n = 0
        nn = self.n
        for v in self._instream:
            yield v
            n += 1
            if n >= nn:
                break
        if isinstance(self._instream, Fork):
            self._instream.close()
