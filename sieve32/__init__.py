"""Enumerate the primes below 2**32 with a fixed-memory segmented sieve."""

from .bits import BitArray
from .emit import Emitter, ListEmitter, NullEmitter, OutputError, Sieve32Error, StreamEmitter
from .sieve import (BLOCK_SIZE, DOMAIN_LIMIT, MASK_BITS, BlockSieve, SegmentedSieve, base_sieve,
                    block_bases, block_primes, sieve_block, sieve_primes)

__version__ = "1.0.0"
