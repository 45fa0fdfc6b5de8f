"""Leaderboard models"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel


class LeaderboardScope(str, Enum):
    """Which points feed a leaderboard"""
    OVERALL = "overall"
    LEARNING = "learning"
    TRADING = "trading"
    SOCIAL = "social"


class LeaderboardPeriod(str, Enum):
    """Time window a leaderboard covers"""
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    ALL_TIME = "all_time"


class LeaderboardEntry(BaseModel):
    """One ranked row"""
    rank: int
    user_id: str
    username: str
    level: int
    xp: int
    total_points: int
    achievements_count: int


class LeaderboardPage(BaseModel):
    """A page of a ranked leaderboard"""
    scope: LeaderboardScope
    period: LeaderboardPeriod
    entries: List[LeaderboardEntry]
    page: int
    page_size: int
    total_users: int
    current_user_rank: Optional[int] = None
    generated_at: datetime
