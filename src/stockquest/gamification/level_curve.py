"""
Level Curve

Maps cumulative XP to a level, a title and progress within the level.

Leveling Curve (defaults):
- Level 1 needs 100 XP to clear
- Every next level needs floor(previous requirement * 1.5)
- 100, 150, 225, 337, 505, 757, ...

Titles run from "Market Novice" to "Financial Master"; levels past the
end of the list keep the last title.
"""

import math
from typing import List, Optional

from stockquest import config
from stockquest.exceptions import ConfigurationError, InvalidArgumentError
from stockquest.models.level import LevelInfo, UserRank

LEVEL_TITLES: List[str] = [
    "Market Novice",
    "Stock Explorer",
    "Trading Apprentice",
    "Market Analyst",
    "Portfolio Builder",
    "Risk Manager",
    "Trading Strategist",
    "Market Expert",
    "Investment Guru",
    "Financial Master",
]

# Highest rank first
RANKS: List[UserRank] = [
    UserRank(name="Master", icon="👑", min_level=20, min_xp=10000, achievements_required=25),
    UserRank(name="Expert", icon="🎯", min_level=15, min_xp=5000, achievements_required=15),
    UserRank(name="Trader", icon="📈", min_level=10, min_xp=2000, achievements_required=8),
    UserRank(name="Apprentice", icon="📚", min_level=5, min_xp=500, achievements_required=3),
    UserRank(name="Novice", icon="🌱", min_level=1, min_xp=0, achievements_required=0),
]


def title_for_level(level: int) -> str:
    """Title for a level, clamped to the last title"""
    return LEVEL_TITLES[min(level - 1, len(LEVEL_TITLES) - 1)]


def level_for(
    xp: int,
    base_xp: Optional[int] = None,
    growth_factor: Optional[float] = None,
) -> LevelInfo:
    """
    Calculate level information from cumulative XP

    Args:
        xp: Cumulative XP (non-negative)
        base_xp: XP needed to clear level 1 (defaults to config)
        growth_factor: Multiplier between consecutive levels (defaults to config)

    Returns:
        LevelInfo with level, title, xp_into_level, xp_required, xp_to_next_level
    """
    base_xp = config.LEVEL_BASE_XP if base_xp is None else base_xp
    growth_factor = config.LEVEL_GROWTH_FACTOR if growth_factor is None else growth_factor

    if xp < 0:
        raise InvalidArgumentError("XP cannot be negative", field="xp", value=xp)
    if base_xp < 1 or growth_factor < 1:
        raise ConfigurationError(
            f"Invalid level curve (base={base_xp}, growth={growth_factor})",
            config_key="LEVEL_GROWTH_FACTOR" if growth_factor < 1 else "LEVEL_BASE_XP",
        )

    level = 1
    xp_required = base_xp
    xp_before_level = 0

    while xp >= xp_before_level + xp_required:
        next_required = max(1, math.floor(xp_required * growth_factor))
        if next_required == xp_required:
            # Flat from here on: every remaining level costs the same
            levels_cleared = (xp - xp_before_level) // xp_required
            level += levels_cleared
            xp_before_level += levels_cleared * xp_required
            break

        xp_before_level += xp_required
        level += 1
        xp_required = next_required

    xp_into_level = xp - xp_before_level

    return LevelInfo(
        level=level,
        title=title_for_level(level),
        total_xp=xp,
        xp_into_level=xp_into_level,
        xp_required=xp_required,
        xp_to_next_level=xp_required - xp_into_level,
    )


def rank_for(level: int, xp: int, achievements_count: int) -> UserRank:
    """
    Highest rank whose level, XP and achievement requirements are all met
    """
    for rank in RANKS:
        if (
            level >= rank.min_level
            and xp >= rank.min_xp
            and achievements_count >= rank.achievements_required
        ):
            return rank
    return RANKS[-1]
