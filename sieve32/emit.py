"""
Emission policies for the prime stream.

An emitter receives primes in strictly increasing order, one at a time through
emit() or a block at a time through emit_many(), and must keep that order.
"""

from __future__ import annotations

from typing import Iterable, List, TextIO


class Sieve32Error(Exception):
    """Base class for sieve32 errors."""


class OutputError(Sieve32Error):
    """Writing to the output sink failed; the run cannot continue."""

    def __init__(self, message: str, stream=None):
        super().__init__(message)
        self.stream = stream


class Emitter:
    """Ordered prime sink. Subclasses implement emit()."""

    def __init__(self):
        self.count = 0

    def emit(self, prime: int):
        raise NotImplementedError

    def emit_many(self, primes: Iterable[int]):
        for p in primes:
            self.emit(int(p))

    def close(self):
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        # after a failure the stream is left to its owner
        if exc_type is None:
            self.close()
        return False


class NullEmitter(Emitter):
    """Counts primes and discards them (throughput runs)."""

    def emit(self, prime: int):
        self.count += 1

    def emit_many(self, primes: Iterable[int]):
        try:
            self.count += len(primes)
        except TypeError:
            self.count += sum(1 for _ in primes)


class ListEmitter(Emitter):
    def __init__(self):
        super().__init__()
        self.primes: List[int] = []

    def emit(self, prime: int):
        self.primes.append(prime)
        self.count += 1

    def emit_many(self, primes: Iterable[int]):
        before = len(self.primes)
        self.primes.extend(int(p) for p in primes)
        self.count += len(self.primes) - before


class StreamEmitter(Emitter):
    """
    Writes one decimal integer per line to a text stream.

    Any OSError raised by the stream (a closed pipe, a full disk) is re-raised
    as OutputError. Partial output cannot be repaired, so callers should treat
    it as fatal.
    """

    def __init__(self, stream: TextIO, name: str = None):
        super().__init__()
        self.stream = stream
        self.name = name or getattr(stream, "name", "<stream>")

    def _write(self, text: str):
        try:
            self.stream.write(text)
        except OSError as e:
            raise OutputError(f"write to {self.name} failed: {e}", self.stream) from e

    def emit(self, prime: int):
        self._write(f"{prime}\n")
        self.count += 1

    def emit_many(self, primes: Iterable[int]):
        values = [int(p) for p in primes]
        if not values:
            return
        self._write("\n".join(map(str, values)) + "\n")
        self.count += len(values)

    def close(self):
        try:
            self.stream.flush()
        except OSError as e:
            raise OutputError(f"flush of {self.name} failed: {e}", self.stream) from e
