"""
Sieve blocks on a process pool once the divisor mask is finished.

Every block depends only on the read-only divisor mask, so workers can take
blocks in any order. Pool.imap hands the results back in submission order,
which keeps the emitted stream strictly increasing.
"""

from __future__ import annotations

import multiprocessing as mp
from typing import Callable, Optional

import numpy as np

from .bits import BitArray
from .emit import Emitter
from .sieve import (BLOCK_SIZE, DOMAIN_LIMIT, MASK_BITS, BlockSieve, SegmentedSieve,
                    block_bases, block_primes, new_mask)

# per-worker state, installed by init_worker
_divisor = None
_blocks = None
_mask = None
_limit = DOMAIN_LIMIT


def init_worker(divisor_words: np.ndarray, limit: int):
    global _divisor, _blocks, _mask, _limit
    _divisor = BitArray.from_words(MASK_BITS, divisor_words)
    _blocks = BlockSieve(_divisor)
    _mask = new_mask()
    _limit = limit


def sieve_block_worker(base: int):
    _blocks.sieve(_mask, base)
    return base, block_primes(_mask, base, _limit)


def parallel_sieve(emitter: Emitter, limit: int = DOMAIN_LIMIT, workers: Optional[int] = None,
                   chunksize: int = 16, on_block: Optional[Callable[[int, int], None]] = None) -> int:
    """
    Same output as SegmentedSieve(emitter, limit, on_block).run(), with the
    blocks spread over `workers` processes (default: one per CPU).
    """
    if workers is None:
        workers = mp.cpu_count()
    if workers < 1:
        raise ValueError("workers must be at least 1")
    if chunksize < 1:
        raise ValueError("chunksize must be at least 1")

    controller = SegmentedSieve(emitter, limit, on_block)
    if workers == 1:
        return controller.run()

    limit = controller.limit
    controller.run_base()
    bases = block_bases(BLOCK_SIZE, limit)
    with mp.Pool(processes=workers, initializer=init_worker,
                 initargs=(np.array(controller.divisor.words), limit)) as pool:
        for base, found in pool.imap(sieve_block_worker, bases, chunksize=chunksize):
            emitter.emit_many(found)
            controller.total += len(found)
            if on_block is not None:
                on_block(base, len(found))
    return controller.total
