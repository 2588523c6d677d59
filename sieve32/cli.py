"""
sieve32: print every prime below 2**32, one per line, in increasing order.

Usage:
  sieve32                      # all 203,280,221 primes to stdout
  sieve32 --limit 1000000      # primes below one million
  sieve32 --no-print           # sieve only, report the count on stderr
  sieve32 --workers 8          # sieve blocks on 8 processes
"""

from __future__ import annotations

import argparse
import contextlib
import os
import sys

from .emit import NullEmitter, OutputError, StreamEmitter
from .parallel import parallel_sieve
from .report import BlockStats, ProgressReporter, chain, plot_block_density
from .sieve import DOMAIN_LIMIT, SegmentedSieve


def limit_type(raw: str) -> int:
    try:
        value = int(raw.replace("_", ""))
    except ValueError:
        raise argparse.ArgumentTypeError(f"{raw!r} is not an integer")
    if not 0 <= value <= DOMAIN_LIMIT:
        raise argparse.ArgumentTypeError(f"limit must be within [0, {DOMAIN_LIMIT}]")
    return value


def positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{raw!r} is not an integer")
    if value < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return value


def non_negative_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{raw!r} is not an integer")
    if value < 0:
        raise argparse.ArgumentTypeError("must not be negative")
    return value


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="sieve32",
        description="Print all primes below 2**32 (or --limit) with a segmented sieve")
    p.add_argument("--limit", "-l", type=limit_type, default=DOMAIN_LIMIT,
                   help=f"Exclusive upper bound for primes (default {DOMAIN_LIMIT})")
    p.add_argument("--output", "-o", type=str, default=None,
                   help="Write primes to this file instead of stdout")
    p.add_argument("--no-print", action="store_true",
                   help="Discard primes and only report how many were found")
    p.add_argument("--workers", "-w", type=positive_int, default=1,
                   help="Processes used to sieve blocks (default 1)")
    p.add_argument("--chunksize", type=positive_int, default=16,
                   help="Blocks handed to a worker at a time (default 16)")
    p.add_argument("--progress-interval", type=non_negative_int, default=0,
                   help="Report progress on stderr every N blocks (default 0, off)")
    p.add_argument("--plot", type=str, default=None,
                   help="Save a PNG of primes per block against 65536/ln(x)")
    return p.parse_args(argv)


def run(args) -> int:
    progress = None
    if args.progress_interval > 0:
        progress = ProgressReporter(args.progress_interval, args.limit)
    stats = BlockStats(args.limit) if args.plot else None
    on_block = chain(progress, stats)

    out = None
    if args.no_print:
        emitter = NullEmitter()
    elif args.output:
        try:
            out = open(args.output, "w", encoding="ascii")
        except OSError as e:
            raise OutputError(f"cannot open {args.output}: {e}") from e
        emitter = StreamEmitter(out, args.output)
    else:
        emitter = StreamEmitter(sys.stdout, "<stdout>")

    try:
        with emitter:
            if args.workers > 1:
                total = parallel_sieve(emitter, args.limit, args.workers, args.chunksize, on_block)
            else:
                total = SegmentedSieve(emitter, args.limit, on_block).run()
    except BaseException:
        if out is not None:
            # the error already propagating is the one to report
            with contextlib.suppress(OSError):
                out.close()
        raise
    if out is not None:
        try:
            out.close()
        except OSError as e:
            raise OutputError(f"close of {args.output} failed: {e}", out) from e

    if progress is not None:
        progress.summary()
    if args.no_print:
        print(f"{total:,} primes below {args.limit:,}", file=sys.stderr)
    if stats is not None:
        plot_block_density(stats, args.plot)
        print(f"Plot written: {args.plot}", file=sys.stderr)
    return total


def main(argv=None):
    args = parse_args(argv)
    try:
        run(args)
    except OutputError as e:
        print(f"sieve32: {e}", file=sys.stderr)
        if isinstance(e.__cause__, BrokenPipeError) and e.stream is sys.stdout:
            # stdout is gone; stop the interpreter from flushing into it at exit
            devnull = os.open(os.devnull, os.O_WRONLY)
            os.dup2(devnull, sys.stdout.fileno())
        sys.exit(1)
    except KeyboardInterrupt:
        print("\nAborted.", file=sys.stderr)
        sys.exit(1)
    return 0


if __name__ == "__main__":
    main()
