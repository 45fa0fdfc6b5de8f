"""Daily challenge and weekly goal models"""
import math
from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, computed_field

from stockquest.models.achievement import AchievementUnlock


class ChallengeTemplate(BaseModel):
    """Blueprint a daily challenge is stamped from"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    metric: str
    target: int = Field(gt=0)
    xp_reward: int = Field(ge=0)
    points_reward: int = Field(ge=0)
    category: str = "overall"


class ChallengeInstance(BaseModel):
    """
    One day's copy of a challenge for one user

    State machine: active -> completed -> claimed (terminal)
    """
    id: str
    template_id: str
    title: str
    description: str
    metric: str
    target: int
    progress: int = 0
    xp_reward: int
    points_reward: int
    category: str = "overall"
    claimed: bool = False
    completed_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None

    @computed_field
    @property
    def completed(self) -> bool:
        return self.progress >= self.target

    @property
    def status(self) -> str:
        if self.claimed:
            return "claimed"
        if self.completed:
            return "completed"
        return "active"


class DailyChallengeSet(BaseModel):
    """Challenges generated for one calendar day"""
    generated_for: Optional[date] = None
    challenges: List[ChallengeInstance] = Field(default_factory=list)

    def find(self, challenge_id: str) -> Optional[ChallengeInstance]:
        for challenge in self.challenges:
            if challenge.id == challenge_id:
                return challenge
        return None


class WeeklyGoalTemplate(BaseModel):
    """Blueprint for a goal that runs for a whole ISO week"""
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    description: str
    metric: str
    target: int = Field(gt=0)
    xp_reward: int = Field(ge=0)
    points_reward: int = Field(ge=0)
    bonus_multiplier: float = Field(default=1.0, ge=1.0)
    category: str = "overall"


class WeeklyGoal(BaseModel):
    """
    One week's copy of a goal for one user

    Same lifecycle as a daily challenge; the claim pays the base reward
    scaled by bonus_multiplier (rounded down).
    """
    id: str
    template_id: str
    title: str
    description: str
    metric: str
    target: int
    progress: int = 0
    xp_reward: int
    points_reward: int
    bonus_multiplier: float = 1.0
    category: str = "overall"
    week_start: date
    week_end: date
    claimed: bool = False
    completed_at: Optional[datetime] = None
    claimed_at: Optional[datetime] = None

    @computed_field
    @property
    def completed(self) -> bool:
        return self.progress >= self.target

    @property
    def status(self) -> str:
        if self.claimed:
            return "claimed"
        if self.completed:
            return "completed"
        return "active"

    @property
    def payout_xp(self) -> int:
        return math.floor(self.xp_reward * self.bonus_multiplier)

    @property
    def payout_points(self) -> int:
        return math.floor(self.points_reward * self.bonus_multiplier)


class WeeklyGoalSet(BaseModel):
    """Goals generated for one ISO week"""
    week_key: Optional[str] = None
    goals: List[WeeklyGoal] = Field(default_factory=list)

    def find(self, goal_id: str) -> Optional[WeeklyGoal]:
        for goal in self.goals:
            if goal.id == goal_id:
                return goal
        return None


class ClaimFailureReason(str, Enum):
    """Why a claim did not pay out"""
    NOT_FOUND = "not_found"
    NOT_COMPLETED = "not_completed"
    ALREADY_CLAIMED = "already_claimed"


class ClaimResult(BaseModel):
    """Outcome of a challenge reward claim"""
    success: bool
    challenge_id: str
    reason: Optional[ClaimFailureReason] = None
    xp_awarded: int = 0
    points_awarded: int = 0
    achievements_unlocked: List[AchievementUnlock] = Field(default_factory=list)
