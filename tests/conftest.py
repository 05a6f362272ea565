import pytest


class CountingSource:
    # An iterable that counts how many times `__next__` has been called
    # on the iterator it hands out.
    def __init__(self, data, fail_at=None):
        self._data = list(data)
        self._fail_at = fail_at
        self.pulls = 0
        self.iter_calls = 0

    def __iter__(self):
        self.iter_calls += 1
        return self._gen()

    def _gen(self):
        for i, x in enumerate(self._data):
            self.pulls += 1
            if i == self._fail_at:
                raise ValueError(f'bad element at {i}')
            yield x
        self.pulls += 1


@pytest.fixture
def counting_source():
    return CountingSource
