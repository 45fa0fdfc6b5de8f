"""Response models handed to presentation code"""
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from stockquest.models.achievement import AchievementUnlock
from stockquest.models.challenge import ChallengeInstance, WeeklyGoal
from stockquest.models.level import LevelInfo, UserRank
from stockquest.models.progress import StreakType, UserProgress


class StreakView(BaseModel):
    """Streak as the user sees it"""
    streak_type: StreakType
    current: int
    longest: int
    last_activity_date: Optional[date] = None


class ProgressStats(BaseModel):
    """Activity totals shown on the profile page"""
    lessons_completed: int = 0
    modules_completed: int = 0
    quizzes_taken: int = 0
    quiz_scores_90plus: int = 0
    perfect_quizzes: int = 0
    trades_made: int = 0
    profitable_sessions: int = 0
    strategies_created: int = 0
    community_helps: int = 0
    logins: int = 0
    average_quiz_score: float = 0.0
    total_trading_volume: float = 0.0
    total_trading_profit_pct: float = 0.0
    win_rate: float = 0.0  # percent of trades closed in profit

    @classmethod
    def from_progress(cls, progress: UserProgress) -> "ProgressStats":
        """Build stats from a record's counters and activity totals"""
        counters = {
            name: progress.counter(name)
            for name, info in cls.model_fields.items()
            if info.annotation is int
        }
        quizzes = counters["quizzes_taken"]
        trades = counters["trades_made"]
        activity = progress.activity

        return cls(
            **counters,
            average_quiz_score=round(activity.quiz_score_total / quizzes, 1) if quizzes else 0.0,
            total_trading_volume=activity.trading_volume,
            total_trading_profit_pct=round(activity.trading_profit_pct, 2),
            win_rate=round(activity.winning_trades / trades * 100, 1) if trades else 0.0,
        )


class ProfileResponse(BaseModel):
    """Complete gamification profile for one user"""
    user_id: str
    username: str
    xp: int
    total_points: int
    level: LevelInfo
    rank: UserRank
    achievements: List[AchievementUnlock]
    achievements_count: int
    streaks: List[StreakView]
    daily_challenges: List[ChallengeInstance]
    weekly_goals: List[WeeklyGoal]
    weekly_xp: int
    stats: ProgressStats


class ActionResult(BaseModel):
    """Notifications produced by recording one action"""
    user_id: str
    action_type: str
    recognized: bool
    achievements_unlocked: List[AchievementUnlock] = Field(default_factory=list)
    challenges_completed: List[ChallengeInstance] = Field(default_factory=list)
    weekly_goals_completed: List[WeeklyGoal] = Field(default_factory=list)
    xp_awarded: int = 0
    points_awarded: int = 0
    leveled_up: bool = False
    old_level: int = 1
    new_level: int = 1


class EventType(str, Enum):
    """Events listeners can subscribe to"""
    ACHIEVEMENT_UNLOCKED = "achievement_unlocked"
    LEVEL_UP = "level_up"
    CHALLENGE_COMPLETED = "challenge_completed"
    CHALLENGE_CLAIMED = "challenge_claimed"
    WEEKLY_GOAL_COMPLETED = "weekly_goal_completed"
    WEEKLY_GOAL_CLAIMED = "weekly_goal_claimed"


class GamificationEvent(BaseModel):
    """Something noteworthy that happened to a user"""
    type: EventType
    user_id: str
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
    xp: int = 0
    points: int = 0
