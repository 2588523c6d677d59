"""
Segmented Sieve of Eratosthenes over the unsigned 32-bit range.

Two packed masks of 32768 bits (4096 bytes each) do all the work. Bit i of a
mask stands for the odd integer 2i+1 relative to the mask's base:

  divisor mask  odd integers below 65536, built once by base_sieve() and
                read-only afterwards
  prime mask    odd integers in one block [base, base + 65536), cleared and
                refilled by BlockSieve.sieve() for every block

A set bit means composite. Striking uses two phases. While the cofactor j is
below p*p, j*p is skipped when j is already known composite, because a smaller
prime factor of j has struck it before. Past that point every odd multiple is
marked unconditionally.
"""

from __future__ import annotations

from typing import Callable, Iterator, Optional

import numpy as np

from .bits import BitArray
from .emit import Emitter, NullEmitter

DOMAIN_LIMIT = 1 << 32
BLOCK_SIZE = 1 << 16
MASK_BITS = BLOCK_SIZE // 2
BASE_ROOT = 256  # 256 * 256 == BLOCK_SIZE


def new_mask() -> BitArray:
    return BitArray(MASK_BITS)


def _strike(mask: BitArray, divisor: BitArray, p: int, j: int, max_j: int, index: int):
    """
    Mark odd multiples j*p of p in mask, starting at mask index `index`.

    j runs over odd cofactors. For j < max_j the multiple is skipped when the
    divisor mask already holds j as composite; from there on every index
    (step p) below MASK_BITS is marked.
    """
    if j < max_j and index < MASK_BITS:
        n = min((max_j - j + 1) // 2, (MASK_BITS - index + p - 1) // p)
        cofactors = j + 2 * np.arange(n, dtype=np.int64)
        targets = index + p * np.arange(n, dtype=np.int64)
        keep = ~divisor.get_many(cofactors >> 1)
        mask.set_many(targets[keep])
        index += p * n
    mask.set_range(index, MASK_BITS, p)


# -----------------------
# Base sieve
# -----------------------
def base_sieve(divisor: BitArray, emit: Callable[[int], None]) -> int:
    """
    Fill `divisor` for all odd integers below 65536 and emit every prime
    below 65536 in increasing order. Returns the number of primes emitted.
    """
    emit(2)
    found = 1
    p = 3
    while p < BASE_ROOT:
        if not divisor.get(p >> 1):
            emit(p)
            found += 1
            sq = p * p
            _strike(divisor, divisor, p, p, min(sq, BLOCK_SIZE // p), sq >> 1)
        p += 2

    # Every odd composite below 65536 has a prime factor below 256, so what
    # is still clear from here on is prime.
    rest = divisor.clear_indices()
    for i in rest[rest >= (p >> 1)]:
        emit(2 * int(i) + 1)
        found += 1
    return found


def divisor_primes(divisor: BitArray) -> np.ndarray:
    """Odd primes below 65536 from a finished divisor mask, increasing."""
    clear = divisor.clear_indices()
    return 2 * clear[1:] + 1  # index 0 is the integer 1


# -----------------------
# Segmented sieve
# -----------------------
class BlockSieve:
    """
    Sieves whole blocks against a finished divisor mask.

    Every divisor prime is struck in the same few vectorized passes: one to
    find each prime's first multiple in the block, one for the conditional
    phase and one for the unconditional phase. The multiples of all primes are
    laid out back to back in scratch buffers sized once, from the worst case
    of ceil(MASK_BITS / p) marks per prime.
    """

    def __init__(self, divisor: BitArray, primes: Optional[np.ndarray] = None):
        if primes is None:
            primes = divisor_primes(divisor)
        self.divisor = divisor
        self.primes = np.asarray(primes, dtype=np.int64)
        self.squares = self.primes * self.primes
        self.max_j = np.minimum(self.squares, BLOCK_SIZE)
        size = max(1, int(((MASK_BITS + self.primes - 1) // self.primes).sum()))
        self._values = np.empty(size, dtype=np.int64)
        self._steps = np.empty(size, dtype=np.int64)

    def _runs(self, starts: np.ndarray, steps: np.ndarray, counts: np.ndarray) -> np.ndarray:
        """
        Write the progressions starts[r] + k * steps[r], k < counts[r], one
        after another into the scratch buffer. Every count must be positive.
        """
        total = int(counts.sum())
        out = self._values[:total]
        step = self._steps[:total]
        heads = np.cumsum(counts) - counts
        step.fill(0)
        step[heads] = np.diff(steps, prepend=0)
        np.cumsum(step, out=step)
        out[:] = step
        ends = starts + steps * (counts - 1)
        out[heads[0]] = starts[0]
        out[heads[1:]] = starts[1:] - ends[:-1]
        np.cumsum(out, out=out)
        return out

    def sieve(self, mask: BitArray, base: int):
        mask.clear()
        # The candidates stay in increasing order, so p * p > top cuts off
        # exactly the primes the early-out would skip.
        n = int(np.searchsorted(self.squares, base + BLOCK_SIZE - 1, side="right"))
        if n == 0:
            return
        p = self.primes[:n]
        sq = self.squares[:n]

        # Lowest odd j with j*p >= base; p itself when the block starts below p*p.
        j = np.where(base > sq, base // p + 1, p) | 1
        index = (p * j - base) >> 1

        n_cond = np.minimum((self.max_j[:n] - j + 1) // 2, (MASK_BITS - index + p - 1) // p)
        np.maximum(n_cond, 0, out=n_cond)
        rest = index + p * n_cond
        n_rest = np.maximum((MASK_BITS - rest + p - 1) // p, 0)

        # j < p*p: skip j*p when j is already known composite
        live = n_cond > 0
        if live.any():
            counts = n_cond[live]
            cofactors = self._runs(j[live], np.full(counts.size, 2, dtype=np.int64), counts)
            keep = ~self.divisor.get_many(cofactors >> 1)
            targets = self._runs(index[live], p[live], counts)
            mask.set_many(targets[keep])

        live = n_rest > 0
        if live.any():
            mask.set_many(self._runs(rest[live], p[live], n_rest[live]))


def sieve_block(mask: BitArray, divisor: BitArray, base: int,
                primes: Optional[np.ndarray] = None):
    """
    Sieve the block [base, base + 65536) into `mask`.

    Builds a throwaway BlockSieve; loops over many blocks should keep one.
    """
    BlockSieve(divisor, primes).sieve(mask, base)


def block_primes(mask: BitArray, base: int, limit: int = DOMAIN_LIMIT) -> np.ndarray:
    """Integers of the block still clear in `mask`, increasing, below `limit`."""
    found = base + 2 * mask.clear_indices().astype(np.int64) + 1
    if limit < base + BLOCK_SIZE:
        found = found[found < limit]
    return found


def block_bases(start: int = BLOCK_SIZE, limit: int = DOMAIN_LIMIT) -> Iterator[int]:
    """Yield block bases from `start` until 2**32 wraps around or `limit` is reached."""
    base = start
    while base < limit:
        yield base
        new_base = (base + BLOCK_SIZE) % DOMAIN_LIMIT
        if new_base < base:
            break
        base = new_base


def check_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, (int, np.integer)):
        raise TypeError("limit must be an integer")
    limit = int(limit)
    if not 0 <= limit <= DOMAIN_LIMIT:
        raise ValueError(f"limit must be within [0, {DOMAIN_LIMIT}], got {limit}")
    return limit


# -----------------------
# Controller
# -----------------------
class SegmentedSieve:
    """
    Owns both masks and drives the base sieve followed by every block.

    on_block(base, count) is called after each block with the number of
    primes emitted for it; base 0 stands for the base sieve's range.
    """

    def __init__(self, emitter: Emitter, limit: int = DOMAIN_LIMIT,
                 on_block: Optional[Callable[[int, int], None]] = None):
        self.emitter = emitter
        self.limit = check_limit(limit)
        self.on_block = on_block
        self.divisor = new_mask()
        self.mask = new_mask()
        self.total = 0

    def _emit_small(self, prime: int):
        if prime < self.limit:
            self.emitter.emit(prime)
            self.total += 1

    def run_base(self) -> int:
        before = self.total
        base_sieve(self.divisor, self._emit_small)
        found = self.total - before
        if self.on_block is not None:
            self.on_block(0, found)
        return found

    def run_blocks(self):
        blocks = BlockSieve(self.divisor)
        for base in block_bases(BLOCK_SIZE, self.limit):
            blocks.sieve(self.mask, base)
            found = block_primes(self.mask, base, self.limit)
            self.emitter.emit_many(found)
            self.total += len(found)
            if self.on_block is not None:
                self.on_block(base, len(found))

    def run(self) -> int:
        self.run_base()
        self.run_blocks()
        return self.total


def sieve_primes(limit: int = DOMAIN_LIMIT, emitter: Optional[Emitter] = None,
                 on_block=None) -> int:
    """Emit every prime below `limit` into `emitter`; returns the count."""
    if emitter is None:
        emitter = NullEmitter()
    return SegmentedSieve(emitter, limit, on_block).run()
