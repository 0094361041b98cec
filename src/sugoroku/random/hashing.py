"""
Content-addressed randomness for world generation.

Board cells are never stored. They are regenerated from
(rebirth_count, level, position) with these pure functions, which keeps
board layout independent of how many dice have been rolled.

Stateful randomness (dice) lives in `xorshift.XorShiftRandom`.
"""

from __future__ import annotations

import zlib

from sugoroku.random.xorshift import mix32

_MASK32 = 0xFFFFFFFF
_TWO_POW_32 = 4294967296.0


def board_seed(rebirth_count: int, level: int) -> int:
    """
    Stable 32-bit unsigned seed for one board layout.
    """
    # stable across processes (never the built-in hash())
    tag = f"board:{int(rebirth_count)}:{int(level)}"
    return zlib.crc32(tag.encode("utf-8")) & _MASK32


def cell_sample(seed: int) -> float:
    """
    Pure pseudo-random sample in [0, 1) for an integer seed.
    """
    lo = seed & _MASK32
    hi = (seed >> 32) & _MASK32
    return mix32(lo ^ mix32(hi + 0x9E3779B9)) / _TWO_POW_32
