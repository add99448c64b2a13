"""
Leveling Calculator.

Single source of truth for mapping total XP to a level:

    level = floor(sqrt(xp / 100)) + 1

Computed with integer arithmetic (``isqrt(xp // 100)``), which is exact for
integer XP and identical to the floating-point formula.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

XP_PER_LEVEL_UNIT = 100


def level_for_xp(xp: int) -> int:
    """
    Convert total XP to a level.

    Args:
        xp: Total accumulated XP (non-negative)

    Returns:
        Level, starting at 1 for 0 XP

    Raises:
        ValueError: If xp is negative
    """
    if xp < 0:
        raise ValueError(f"XP cannot be negative: {xp}")
    return math.isqrt(xp // XP_PER_LEVEL_UNIT) + 1


def xp_for_level(level: int) -> int:
    """Minimum total XP required to reach ``level``."""
    if level < 1:
        raise ValueError(f"Level must be >= 1: {level}")
    return XP_PER_LEVEL_UNIT * (level - 1) ** 2


@dataclass(frozen=True)
class LevelProgress:
    """Where a user sits between their current and next level."""

    level: int
    current_level_xp: int  # XP threshold of the current level
    next_level_xp: int  # XP threshold of the next level
    xp_into_level: int
    xp_to_next_level: int

    @property
    def percent(self) -> float:
        span = self.next_level_xp - self.current_level_xp
        return round(self.xp_into_level / span * 100, 1)


def level_progress(xp: int) -> LevelProgress:
    """Break total XP down into progress toward the next level."""
    level = level_for_xp(xp)
    floor_xp = xp_for_level(level)
    ceiling_xp = xp_for_level(level + 1)
    return LevelProgress(
        level=level,
        current_level_xp=floor_xp,
        next_level_xp=ceiling_xp,
        xp_into_level=xp - floor_xp,
        xp_to_next_level=ceiling_xp - xp,
    )
