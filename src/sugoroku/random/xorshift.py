from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

_MASK32 = 0xFFFFFFFF
_TWO_POW_32 = 4294967296.0
_WARMUP_DRAWS = 20


def mix32(value: int) -> int:
    """
    32-bit avalanche finalizer (murmur3 fmix32).
    Spreads a scalar seed across all bits of a state word.
    """
    h = value & _MASK32
    h ^= h >> 16
    h = (h * 0x85EBCA6B) & _MASK32
    h ^= h >> 13
    h = (h * 0xC2B2AE35) & _MASK32
    h ^= h >> 16
    return h


def _nonzero(word: int) -> int:
    word &= _MASK32
    return 1 if word == 0 else word


def seed_to_words(seed: int) -> tuple[int, int, int, int]:
    """
    Expand one scalar seed into four independent non-zero 32-bit words.
    """
    base = seed & 0xFFFFFFFFFFFFFFFF
    words = []
    for slot in range(1, 5):
        lane = (base * (slot * 1664525 + 1013904223) + slot * 0x9E3779B9) & 0xFFFFFFFFFFFFFFFF
        words.append(_nonzero(mix32(lane ^ (lane >> 32))))
    return words[0], words[1], words[2], words[3]


@dataclass(slots=True)
class XorShiftRandom:
    """
    xorshift128 generator over four 32-bit words.

    - no all-zero state: every word is remapped 0 -> 1 on seed and restore
    - save_state()/restore_state() round-trip exactly, so a persisted
      generator continues the same sequence after reload
    """

    x: int = 1
    y: int = 2
    z: int = 3
    w: int = 4
    draws: int = field(default=0, compare=False)

    @classmethod
    def from_seed(cls, seed: int) -> "XorShiftRandom":
        rng = cls()
        rng.seed(seed)
        return rng

    @classmethod
    def from_state(cls, words: Sequence[int]) -> "XorShiftRandom":
        rng = cls()
        rng.restore_state(words)
        return rng

    def seed(self, value: int) -> None:
        self.x, self.y, self.z, self.w = seed_to_words(int(value))
        self.draws = 0
        for _ in range(_WARMUP_DRAWS):
            self.next_uint32()

    def next_uint32(self) -> int:
        t = (self.x ^ (self.x << 11)) & _MASK32
        self.x = self.y
        self.y = self.z
        self.z = self.w
        self.w = (self.w ^ (self.w >> 19) ^ (t ^ (t >> 8))) & _MASK32
        self.draws += 1
        return self.w

    def next_float(self) -> float:
        # [0, 1)
        return self.next_uint32() / _TWO_POW_32

    def next_int(self, upper: int) -> int:
        """
        Integer in [0, upper).
        """
        if upper <= 0:
            raise ValueError("upper must be > 0")
        return int(self.next_float() * upper)

    def next_int_in_range(self, lower: int, upper: int) -> int:
        """
        Integer in [lower, upper).
        """
        if upper <= lower:
            raise ValueError("upper must be > lower")
        return lower + self.next_int(upper - lower)

    def next_float_in_range(self, lower: float, upper: float) -> float:
        return lower + self.next_float() * (upper - lower)

    def roll(self, faces: int) -> int:
        """
        One die face in [1, faces].
        """
        return self.next_int_in_range(1, faces + 1)

    def save_state(self) -> list[int]:
        return [self.x, self.y, self.z, self.w]

    def restore_state(self, words: Sequence[int]) -> None:
        if len(words) != 4:
            raise ValueError(f"xorshift128 state needs 4 words, got {len(words)}")
        self.x, self.y, self.z, self.w = (_nonzero(int(v)) for v in words)
