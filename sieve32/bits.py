"""Fixed-capacity packed boolean array backed by numpy uint32 words."""

from __future__ import annotations

import numpy as np

WORD_BITS = 32


class BitArray:
    """
    Packed bit array with get/set access.

    Bit i lives in word i >> 5 at position i & 31. Capacity is fixed at
    construction; clear() resets the bits in place.
    """

    def __init__(self, size: int):
        if not isinstance(size, int):
            raise TypeError("size must be an integer")
        if size <= 0:
            raise ValueError("size must be positive")
        self.size = size
        self._words = np.zeros((size + WORD_BITS - 1) // WORD_BITS, dtype=np.uint32)
        # one flag per bit, reused by set_many
        self._flags = np.zeros(self._words.size * WORD_BITS, dtype=bool)

    @classmethod
    def from_words(cls, size: int, words) -> "BitArray":
        """Rebuild an array from the words of another one of the same size."""
        bits = cls(size)
        words = np.asarray(words, dtype=np.uint32)
        if words.shape != bits._words.shape:
            raise ValueError(f"expected {bits._words.size} words, got {words.size}")
        bits._words[:] = words
        return bits

    def __len__(self) -> int:
        return self.size

    def __repr__(self) -> str:
        return f"BitArray(size={self.size}, set={self.count()})"

    @property
    def nbytes(self) -> int:
        return self._words.nbytes

    @property
    def words(self) -> np.ndarray:
        view = self._words.view()
        view.flags.writeable = False
        return view

    def _check(self, index: int):
        if not 0 <= index < self.size:
            raise IndexError(f"bit index {index} out of range [0, {self.size})")

    # -----------------------
    # Single-bit access
    # -----------------------
    def get(self, index: int) -> bool:
        self._check(index)
        return (int(self._words[index >> 5]) >> (index & 31)) & 1 == 1

    def set(self, index: int):
        self._check(index)
        self._words[index >> 5] |= np.uint32(1 << (index & 31))

    # -----------------------
    # Vectorized access
    # -----------------------
    def get_many(self, indices: np.ndarray) -> np.ndarray:
        idx = np.asarray(indices, dtype=np.int64)
        shifts = (idx & 31).astype(np.uint32)
        return ((self._words[idx >> 5] >> shifts) & np.uint32(1)).astype(bool)

    def set_many(self, indices: np.ndarray):
        idx = np.asarray(indices, dtype=np.int64)
        if idx.size == 0:
            return
        self._flags.fill(False)
        self._flags[idx] = True
        self._merge_flags()

    def set_range(self, start: int, stop: int, step: int = 1):
        """Set every index in range(start, stop, step) below the capacity."""
        stop = min(stop, self.size)
        if start >= stop:
            return
        self._flags.fill(False)
        self._flags[start:stop:step] = True
        self._merge_flags()

    def _merge_flags(self):
        packed = np.packbits(self._flags, bitorder="little").view("<u4")
        self._words |= packed.astype(np.uint32, copy=False)

    # -----------------------
    # Whole-array operations
    # -----------------------
    def clear(self):
        self._words.fill(0)

    def unpack(self) -> np.ndarray:
        """One uint8 per bit, in index order."""
        raw = self._words.astype("<u4", copy=False).view(np.uint8)
        return np.unpackbits(raw, bitorder="little")[:self.size]

    def clear_indices(self) -> np.ndarray:
        return np.flatnonzero(self.unpack() == 0)

    def count(self) -> int:
        return int(np.count_nonzero(self.unpack()))
