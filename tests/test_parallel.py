import pytest

from sieve32 import ListEmitter, SegmentedSieve
from sieve32.parallel import parallel_sieve
from sieve32.sieve import BLOCK_SIZE


def serial(limit):
    emitter = ListEmitter()
    SegmentedSieve(emitter, limit).run()
    return emitter.primes


@pytest.mark.parametrize("limit", [100, 20 * BLOCK_SIZE + 12345])
def test_parallel_matches_serial(limit):
    emitter = ListEmitter()
    seen = []
    total = parallel_sieve(emitter, limit, workers=2, chunksize=3,
                           on_block=lambda base, n: seen.append(base))
    assert emitter.primes == serial(limit)
    assert total == len(emitter.primes)
    assert seen == sorted(seen)


def test_single_worker_runs_serially():
    emitter = ListEmitter()
    assert parallel_sieve(emitter, 1000, workers=1) == 168
    assert emitter.primes == serial(1000)


@pytest.mark.parametrize("kwargs", [{"workers": 0}, {"workers": 2, "chunksize": 0}])
def test_bad_pool_arguments(kwargs):
    with pytest.raises(ValueError):
        parallel_sieve(ListEmitter(), 1000, **kwargs)
