import io

import numpy as np
import pytest

from sieve32 import NullEmitter, SegmentedSieve
from sieve32.report import BlockStats, ProgressReporter, block_count, chain, plot_block_density
from sieve32.sieve import BLOCK_SIZE, DOMAIN_LIMIT


def test_block_count():
    assert block_count(DOMAIN_LIMIT) == 65536
    assert block_count(100) == 1
    assert block_count(0) == 1
    assert block_count(BLOCK_SIZE + 1) == 2


def test_block_stats_collects_counts():
    limit = 3 * BLOCK_SIZE
    stats = BlockStats(limit)
    total = SegmentedSieve(NullEmitter(), limit, stats).run()
    assert stats.counts.tolist()[0] == 6542
    assert stats.total == total
    assert np.all(stats.expected() > 0)


def test_progress_reporter_prints_every_interval():
    out = io.StringIO()
    limit = 4 * BLOCK_SIZE
    progress = ProgressReporter(2, limit, out)
    SegmentedSieve(NullEmitter(), limit, progress).run()
    lines = out.getvalue().splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("[block 2/4]")
    assert lines[1].startswith("[block 4/4]")
    progress.summary()
    assert out.getvalue().splitlines()[-1].startswith(f"Done. {progress.primes:,} primes in 4 blocks")


def test_progress_interval_must_be_positive():
    with pytest.raises(ValueError):
        ProgressReporter(0)


def test_chain_calls_every_callback():
    a, b = [], []
    on_block = chain(None, lambda base, n: a.append(base), lambda base, n: b.append(n))
    on_block(0, 5)
    assert a == [0] and b == [5]
    assert chain(None, None) is None


def test_plot_block_density_writes_png(tmp_path):
    stats = BlockStats(4 * BLOCK_SIZE)
    SegmentedSieve(NullEmitter(), 4 * BLOCK_SIZE, stats).run()
    path = tmp_path / "plots" / "density.png"
    assert plot_block_density(stats, str(path)) == str(path)
    assert path.read_bytes()[:8] == b"\x89PNG\r\n\x1a\n"
