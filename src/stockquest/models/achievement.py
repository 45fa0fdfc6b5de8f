"""Achievement models for gamification"""
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime


class AchievementCategory(str, Enum):
    """Achievement categories"""
    LEARNING = "learning"
    TRADING = "trading"
    SOCIAL = "social"
    STREAK = "streak"
    SPECIAL = "special"


class AchievementTier(str, Enum):
    """Achievement tiers/difficulty levels"""
    BRONZE = "bronze"
    SILVER = "silver"
    GOLD = "gold"
    PLATINUM = "platinum"

    @property
    def rarity(self) -> str:
        """Rarity label shown in the achievement gallery"""
        return _TIER_RARITY[self]


_TIER_RARITY = {
    AchievementTier.BRONZE: "common",
    AchievementTier.SILVER: "rare",
    AchievementTier.GOLD: "epic",
    AchievementTier.PLATINUM: "legendary",
}


class Comparison(str, Enum):
    """How a metric value is compared with a requirement target"""
    AT_LEAST = ">="


class AchievementRequirement(BaseModel):
    """Unlock rule: metric compared against a target"""
    model_config = ConfigDict(frozen=True)

    metric: str
    target: int
    comparison: Comparison = Comparison.AT_LEAST

    def is_satisfied(self, value: int) -> bool:
        if self.comparison == Comparison.AT_LEAST:
            return value >= self.target
        return False


class AchievementDefinition(BaseModel):
    """Achievement definition"""
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    tier: AchievementTier
    points: int = Field(ge=0)
    xp_reward: int = Field(ge=0)
    requirement: AchievementRequirement

    @property
    def rarity(self) -> str:
        return self.tier.rarity


class UnlockedAchievement(BaseModel):
    """User's unlocked achievement"""
    achievement_id: str
    earned_at: datetime


class AchievementUnlock(BaseModel):
    """Notification payload for a freshly unlocked achievement"""
    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    tier: AchievementTier
    points: int
    xp_reward: int
    earned_at: datetime

    @classmethod
    def from_definition(cls, definition: AchievementDefinition, earned_at: datetime) -> "AchievementUnlock":
        return cls(
            id=definition.id,
            name=definition.name,
            description=definition.description,
            icon=definition.icon,
            category=definition.category,
            tier=definition.tier,
            points=definition.points,
            xp_reward=definition.xp_reward,
            earned_at=earned_at,
        )


class AchievementProgress(BaseModel):
    """Progress toward an achievement"""
    current: int
    required: int
    percentage: int


class AchievementStatus(BaseModel):
    """Achievement as shown in a user's gallery"""
    id: str
    name: str
    description: str
    icon: str
    category: AchievementCategory
    tier: AchievementTier
    rarity: str
    points: int
    xp_reward: int
    unlocked: bool
    earned_at: Optional[datetime] = None
    progress: AchievementProgress
