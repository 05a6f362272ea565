"""
Run several "consumers" over a single pass of a data stream.

A consumer is one of the four classes :class:`Map`, :class:`Filter`, :class:`Reduce`, :class:`ForEach`.
Each consumer gets its own fork (see :func:`~teestream.tee`) of the input stream,
and produces one result. The results are returned in the order of the consumers.

>>> from teestream import run_consumers, Map, Filter, Reduce, ForEach
>>> run_consumers(
...     [1, 2, 3, 4],
...     Map(lambda x, i: x * 2),
...     Filter(lambda x, i: x % 2 == 0),
...     Reduce(lambda acc, x, i: acc + x, 0),
...     ForEach(lambda x, i: None),
... )
[[2, 4, 6, 8], [2, 4], 10, None]
"""

from __future__ import annotations

import concurrent.futures
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping
from typing import Any, Literal, Optional, TypeVar

from ._common import NOTSET, InvalidArgumentError
from ._tee import Fork, tee

logger = logging.getLogger(__name__)

T = TypeVar('T')

STRATEGIES = ('sequential', 'interleaved', 'thread')


class Consumer(ABC):
    """
    Base class of the consumers.

    A consumer is run incrementally: :meth:`start` creates the initial state,
    :meth:`step` takes one element (along with its zero-based index) and returns
    the new state, and :meth:`finish` turns the final state into the result.
    This allows a consumer to be fed one element at a time, interleaved with other consumers.
    """

    def __init__(self, fn: Callable, /):
        if not callable(fn):
            raise InvalidArgumentError(
                f"{self.__class__.__name__} expects a callable; got object of type '{type(fn).__name__}'"
            )
        self.fn = fn

    def __repr__(self):
        return f'{self.__class__.__name__}({self.fn!r})'

    @abstractmethod
    def start(self):
        ...

    @abstractmethod
    def step(self, state, x, i: int):
        ...

    def finish(self, state):
        return state

    def consume(self, instream: Iterable):
        """
        Run this consumer over all of ``instream`` and return the result.
        """
        state = self.start()
        for i, x in enumerate(instream):
            state = self.step(state, x, i)
        return self.finish(state)

    @classmethod
    def from_mapping(cls, spec: Mapping, /) -> Consumer:
        """
        Create a consumer out of a mapping like ``{'kind': 'map', 'fn': func}``.

        ``kind`` is one of ``'map'``, ``'filter'``, ``'reduce'``, ``'forEach'`` (or ``'for_each'``).
        For ``'reduce'``, the optional key ``'initVal'`` provides the initial value.
        """
        kind = spec.get('kind')
        if not isinstance(kind, str):
            raise InvalidArgumentError(
                f"expecting a string 'kind' in consumer spec; got object of type '{type(kind).__name__}'"
            )
        try:
            klass = _KINDS[kind]
        except KeyError:
            raise InvalidArgumentError(
                f"unknown consumer kind '{kind}'; expecting one of {sorted(_KINDS)}"
            ) from None
        fn = spec.get('fn')
        if klass is Reduce:
            return Reduce(fn, spec.get('initVal', NOTSET))
        return klass(fn)


class Map(Consumer):
    """
    Collect ``fn(x, i)`` for every element ``x`` at index ``i`` into a list.
    """

    def start(self):
        return []

    def step(self, state, x, i):
        state.append(self.fn(x, i))
        return state


class Filter(Consumer):
    """
    Collect the elements ``x`` for which ``fn(x, i)`` is true into a list.
    """

    def start(self):
        return []

    def step(self, state, x, i):
        if self.fn(x, i):
            state.append(x)
        return state


class Reduce(Consumer):
    """
    Fold the stream into a single value.

    If ``initial`` is provided (any value, including ``None``), the result is

    ::

        fn(...fn(fn(initial, x0, 0), x1, 1)..., xn, n)

    otherwise the first element is taken as is, and ``fn`` is called
    starting with the second element::

        fn(...fn(x0, x1, 1)..., xn, n)

    If the stream is empty and ``initial`` is not provided, the result is
    :data:`~teestream.NOTSET`.
    """

    def __init__(self, fn: Callable, initial: Any = NOTSET, /):
        super().__init__(fn)
        self.initial = initial

    def __repr__(self):
        if self.initial is NOTSET:
            return super().__repr__()
        return f'{self.__class__.__name__}({self.fn!r}, {self.initial!r})'

    def start(self):
        return self.initial

    def step(self, state, x, i):
        if state is NOTSET:
            return x
        return self.fn(state, x, i)


class ForEach(Consumer):
    """
    Call ``fn(x, i)`` for the side effect. The result is ``None``.
    """

    def start(self):
        return None

    def step(self, state, x, i):
        self.fn(x, i)
        return None


_KINDS = {
    'map': Map,
    'filter': Filter,
    'reduce': Reduce,
    'forEach': ForEach,
    'for_each': ForEach,
}


def _resolve(consumers: tuple) -> list[Consumer]:
    if not consumers:
        raise InvalidArgumentError('expecting at least one consumer')
    resolved = []
    for c in consumers:
        if isinstance(c, Consumer):
            resolved.append(c)
        elif isinstance(c, Mapping):
            resolved.append(Consumer.from_mapping(c))
        else:
            raise InvalidArgumentError(
                f"expecting a Consumer or a mapping; got object of type '{type(c).__name__}'"
            )
    return resolved


def _run_interleaved(consumers: list[Consumer], forks: tuple[Fork, ...]) -> list:
    # Round-robin: take one element from each fork that is not finished yet.
    states = [c.start() for c in consumers]
    counts = [0] * len(forks)
    live = list(range(len(forks)))
    while live:
        remaining = []
        for k in live:
            try:
                x = next(forks[k])
            except StopIteration:
                continue
            states[k] = consumers[k].step(states[k], x, counts[k])
            counts[k] += 1
            remaining.append(k)
        live = remaining
    return [c.finish(s) for c, s in zip(consumers, states)]


def _run_threaded(
    consumers: list[Consumer], forks: tuple[Fork, ...], max_workers: Optional[int]
) -> list:
    with concurrent.futures.ThreadPoolExecutor(max_workers or len(forks)) as pool:
        futures = [pool.submit(c.consume, f) for c, f in zip(consumers, forks)]
        try:
            _, not_done = concurrent.futures.wait(
                futures, return_when=concurrent.futures.FIRST_EXCEPTION
            )
            if not_done:
                # Some consumer has failed. The other workers stop at their next element.
                for f in forks:
                    f.close()
                concurrent.futures.wait(futures)
            # Raises the first failure in consumer order, if any.
            return [fut.result() for fut in futures]
        except BaseException:
            for f in forks:
                f.close()
            raise


def run_consumers(
    instream: Iterable[T],
    /,
    *consumers: Consumer | Mapping,
    strategy: Literal['sequential', 'interleaved', 'thread'] = 'sequential',
    max_workers: Optional[int] = None,
) -> list:
    """
    Apply each of ``consumers`` to the full ``instream``, walking ``instream`` only once.

    Parameters
    ----------
    instream
        The input data stream.
    *consumers
        One or more :class:`Consumer` objects, or mappings such as
        ``{'kind': 'map', 'fn': func}`` that :meth:`Consumer.from_mapping` accepts.
        The same kind may appear more than once; each consumer is independent.
    strategy
        How the forks are consumed. All strategies give the same results.

        ``'sequential'``
            The fork of the first consumer is consumed to the end, then that of the second,
            and so on. The entire stream is held in memory while the first consumer runs
            (if there is more than one consumer).
        ``'interleaved'``
            One element is fed to each consumer in turn. Memory use is minimal.
        ``'thread'``
            Each consumer runs in its own thread. Useful when the consumers' functions
            are I/O bound.
    max_workers
        Number of threads for the ``'thread'`` strategy; defaults to the number of consumers.

    Returns
    -------
    list
        One result per consumer, in the order of ``consumers``.

    Exceptions raised by the consumers' functions or by ``instream`` propagate
    as they are. With the ``'sequential'`` strategy, consumers that
    have not started at the time of the exception will not run.
    """
    if strategy not in STRATEGIES:
        raise InvalidArgumentError(
            f"unknown strategy '{strategy}'; expecting one of {STRATEGIES}"
        )
    resolved = _resolve(consumers)
    forks = tee(instream, len(resolved))
    logger.debug('running %d consumers with strategy %r', len(resolved), strategy)

    if strategy == 'interleaved':
        return _run_interleaved(resolved, forks)
    if strategy == 'thread':
        return _run_threaded(resolved, forks, max_workers)
    return [c.consume(f) for c, f in zip(resolved, forks)]
