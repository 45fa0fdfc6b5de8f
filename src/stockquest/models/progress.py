"""Per-user progress models"""
from datetime import date, datetime
from enum import Enum
from typing import Dict, Optional

from pydantic import BaseModel, Field

from stockquest.models.achievement import UnlockedAchievement
from stockquest.models.challenge import DailyChallengeSet, WeeklyGoalSet


class StreakType(str, Enum):
    """Kinds of consecutive-day activity we track"""
    ACTIVITY = "activity"
    LEARNING = "learning"
    TRADING = "trading"


class StreakState(BaseModel):
    """Streak bookkeeping for one streak type"""
    current: int = 0
    longest: int = 0
    last_activity_date: Optional[date] = None


class PeriodScore(BaseModel):
    """Points and XP earned inside one leaderboard period"""
    period_key: str
    points: Dict[str, int] = Field(default_factory=dict)  # scope -> points
    xp: int = 0
    score_reached_at: Optional[datetime] = None


class ActivityStats(BaseModel):
    """Running totals that do not fit an integer counter"""
    quiz_score_total: int = 0
    trading_volume: float = 0.0
    trading_profit_pct: float = 0.0
    winning_trades: int = 0


class UserProgress(BaseModel):
    """
    Mutable gamification record for one user

    Owned by the ProgressStore; everything outside the store sees deep copies.
    Level is always derived from xp, never stored.
    """
    user_id: str
    username: str
    xp: int = 0
    total_points: int = 0
    unlocked_achievements: Dict[str, UnlockedAchievement] = Field(default_factory=dict)
    counters: Dict[str, int] = Field(default_factory=dict)
    streaks: Dict[StreakType, StreakState] = Field(default_factory=dict)
    daily_challenges: DailyChallengeSet = Field(default_factory=DailyChallengeSet)
    weekly_goals: WeeklyGoalSet = Field(default_factory=WeeklyGoalSet)
    activity: ActivityStats = Field(default_factory=ActivityStats)
    period_scores: Dict[str, PeriodScore] = Field(default_factory=dict)  # period -> score
    created_at: datetime
    updated_at: datetime

    def counter(self, metric: str) -> int:
        return self.counters.get(metric, 0)

    def has_unlocked(self, achievement_id: str) -> bool:
        return achievement_id in self.unlocked_achievements

    @property
    def level(self) -> int:
        # Imported here: the level curve package imports this module
        from stockquest.gamification.level_curve import level_for
        return level_for(self.xp).level
