import io
from math import isqrt

import pytest

from sieve32 import ListEmitter, SegmentedSieve


def trial_division_primes(limit):
    """Primes below `limit` by trial division against the primes found so far."""
    primes = []
    for n in range(2, limit):
        root = isqrt(n)
        for p in primes:
            if p > root:
                primes.append(n)
                break
            if n % p == 0:
                break
        else:
            primes.append(n)
    return primes


class FailingStream(io.StringIO):
    """Accepts `budget` writes, then raises `exc`; flush raises too when `fail_flush`."""

    def __init__(self, budget, exc=BrokenPipeError, fail_flush=False):
        super().__init__()
        self.budget = budget
        self.exc = exc
        self.fail_flush = fail_flush

    def write(self, text):
        if self.budget <= 0:
            raise self.exc("pipe closed")
        self.budget -= 1
        return super().write(text)

    def flush(self):
        if self.fail_flush:
            raise OSError(28, "No space left on device")
        super().flush()

    def close(self):
        self.fail_flush = False
        super().close()

    def fileno(self):
        return 99


@pytest.fixture
def failing_stream():
    return FailingStream


@pytest.fixture
def trial_division():
    return trial_division_primes


@pytest.fixture
def collect():
    def run(limit):
        emitter = ListEmitter()
        SegmentedSieve(emitter, limit).run()
        return emitter.primes
    return run
