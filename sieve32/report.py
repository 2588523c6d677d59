"""Progress lines and per-block prime statistics."""

from __future__ import annotations

import os
import sys
import time
from typing import Callable, Optional, TextIO

import numpy as np
import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt

from .sieve import BLOCK_SIZE, DOMAIN_LIMIT

# Optional extras
try:
    import psutil
    PSUTIL_AVAILABLE = True
except ImportError:
    PSUTIL_AVAILABLE = False


def block_count(limit: int = DOMAIN_LIMIT) -> int:
    """Number of blocks (the base sieve range included) needed below `limit`."""
    return max(1, (limit + BLOCK_SIZE - 1) // BLOCK_SIZE)


def rss_mb() -> Optional[float]:
    if not PSUTIL_AVAILABLE:
        return None
    return psutil.Process().memory_info().rss / (1024 ** 2)


class ProgressReporter:
    """Prints a status line to `stream` every `interval` blocks."""

    def __init__(self, interval: int, limit: int = DOMAIN_LIMIT, stream: TextIO = None):
        if interval < 1:
            raise ValueError("interval must be at least 1")
        self.interval = interval
        self.total_blocks = block_count(limit)
        self.stream = stream if stream is not None else sys.stderr
        self.blocks = 0
        self.primes = 0
        self.start = time.perf_counter()

    def __call__(self, base: int, count: int):
        self.blocks += 1
        self.primes += count
        if self.blocks % self.interval == 0 or self.blocks == self.total_blocks:
            self.report(base)

    def report(self, base: int):
        elapsed = time.perf_counter() - self.start
        per_sec = self.blocks / elapsed if elapsed > 0 else float('inf')
        mem = rss_mb()
        mem_info = f", RSS={mem:.1f} MB" if mem is not None else ""
        print(f"[block {self.blocks:,}/{self.total_blocks:,}] base={base:,} "
              f"{self.primes:,} primes, {per_sec:.1f} blocks/s{mem_info}",
              file=self.stream, flush=True)

    def summary(self):
        elapsed = time.perf_counter() - self.start
        print(f"Done. {self.primes:,} primes in {self.blocks:,} blocks, {elapsed:.3f}s.",
              file=self.stream, flush=True)


class BlockStats:
    """Prime count of every block, indexed by base // BLOCK_SIZE."""

    def __init__(self, limit: int = DOMAIN_LIMIT):
        self.limit = limit
        self.counts = np.zeros(block_count(limit), dtype=np.int64)

    def __call__(self, base: int, count: int):
        self.counts[base // BLOCK_SIZE] = count

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    def expected(self) -> np.ndarray:
        """Prime number theorem estimate BLOCK_SIZE / ln(x) at each block's midpoint."""
        mids = np.arange(self.counts.size, dtype=float) * BLOCK_SIZE + BLOCK_SIZE / 2
        return BLOCK_SIZE / np.log(mids)


def chain(*callbacks: Optional[Callable[[int, int], None]]):
    """Combine block callbacks, skipping None; returns None when nothing is left."""
    active = [cb for cb in callbacks if cb is not None]
    if not active:
        return None
    if len(active) == 1:
        return active[0]

    def on_block(base: int, count: int):
        for cb in active:
            cb(base, count)
    return on_block


def plot_block_density(stats: BlockStats, path: str):
    """Save a PNG of primes per block against BLOCK_SIZE / ln(x)."""
    outdir = os.path.dirname(path)
    if outdir and not os.path.exists(outdir):
        os.makedirs(outdir, exist_ok=True)

    x = np.arange(stats.counts.size, dtype=float) * BLOCK_SIZE + BLOCK_SIZE / 2
    fig = plt.figure(figsize=(10, 4))
    ax = fig.add_subplot(1, 1, 1)
    ax.plot(x, stats.counts, marker='.', markersize=2, linestyle='none', alpha=0.6,
            label='Observed primes per block')
    ax.plot(x, stats.expected(), color='red', linewidth=1.5, label=r'$65536 / \ln x$')
    if x.size > 1:
        ax.set_xscale('log', base=2)
    ax.set_xlabel("block midpoint")
    ax.set_ylabel("primes")
    ax.set_title(f"Primes per {BLOCK_SIZE:,}-wide block (total {stats.total:,}, "
                 f"limit {stats.limit:,})")
    ax.grid(True, which="both", ls="-", alpha=0.3)
    ax.legend()
    fig.savefig(path, bbox_inches="tight", dpi=150)
    plt.close(fig)
    return path

