"""
Achievement Catalog

Static registry of every achievement a user can earn.

Categories:
- Learning (lessons, modules, quizzes)
- Trading (simulated trades, profitable sessions)
- Social (helping other learners)
- Streak (consecutive active days)
- Special (strategies, XP milestones)

Each achievement unlocks once, when its metric reaches the target.
"""

from typing import Dict, Iterable, Tuple
import logging

from stockquest.exceptions import InvalidArgumentError, NotFoundError
from stockquest.models.achievement import (
    AchievementCategory,
    AchievementDefinition,
    AchievementRequirement,
    AchievementTier,
)

logger = logging.getLogger(__name__)


def _achievement(
    id: str,
    name: str,
    description: str,
    icon: str,
    category: AchievementCategory,
    tier: AchievementTier,
    points: int,
    xp_reward: int,
    metric: str,
    target: int,
) -> AchievementDefinition:
    return AchievementDefinition(
        id=id,
        name=name,
        description=description,
        icon=icon,
        category=category,
        tier=tier,
        points=points,
        xp_reward=xp_reward,
        requirement=AchievementRequirement(metric=metric, target=target),
    )


# ============================================
# Default Achievement Library
# ============================================

DEFAULT_ACHIEVEMENTS: Tuple[AchievementDefinition, ...] = (
    # ========== LEARNING ==========
    _achievement(
        "first_lesson", "First Steps", "Complete your first tutorial lesson", "🎯",
        AchievementCategory.LEARNING, AchievementTier.BRONZE,
        points=10, xp_reward=50, metric="lessons_completed", target=1,
    ),
    _achievement(
        "knowledge_seeker", "Knowledge Seeker", "Complete 10 tutorial lessons", "📚",
        AchievementCategory.LEARNING, AchievementTier.SILVER,
        points=25, xp_reward=200, metric="lessons_completed", target=10,
    ),
    _achievement(
        "first_module", "Module Graduate", "Complete your first learning module", "🎓",
        AchievementCategory.LEARNING, AchievementTier.BRONZE,
        points=10, xp_reward=50, metric="modules_completed", target=1,
    ),
    _achievement(
        "master_student", "Master Student", "Complete all 4 tutorial modules", "🏛️",
        AchievementCategory.LEARNING, AchievementTier.GOLD,
        points=50, xp_reward=500, metric="modules_completed", target=4,
    ),
    _achievement(
        "quiz_master", "Quiz Master", "Score 90% or higher on 5 quizzes", "🧠",
        AchievementCategory.LEARNING, AchievementTier.SILVER,
        points=30, xp_reward=150, metric="quiz_scores_90plus", target=5,
    ),
    _achievement(
        "perfect_score", "Perfectionist", "Get 100% on any quiz", "💯",
        AchievementCategory.LEARNING, AchievementTier.GOLD,
        points=40, xp_reward=300, metric="perfect_quizzes", target=1,
    ),

    # ========== TRADING ==========
    _achievement(
        "first_trade", "Paper Trader", "Make your first virtual trade", "📈",
        AchievementCategory.TRADING, AchievementTier.BRONZE,
        points=15, xp_reward=75, metric="trades_made", target=1,
    ),
    _achievement(
        "active_trader", "Active Trader", "Execute 50 simulated trades", "⚡",
        AchievementCategory.TRADING, AchievementTier.SILVER,
        points=40, xp_reward=250, metric="trades_made", target=50,
    ),
    _achievement(
        "profit_hunter", "Profit Hunter", "Close a trading session with 10% profit", "💰",
        AchievementCategory.TRADING, AchievementTier.GOLD,
        points=75, xp_reward=500, metric="profitable_sessions", target=1,
    ),

    # ========== SOCIAL ==========
    _achievement(
        "community_helper", "Community Helper", "Help 10 fellow learners in the community", "🤝",
        AchievementCategory.SOCIAL, AchievementTier.SILVER,
        points=30, xp_reward=200, metric="community_helps", target=10,
    ),

    # ========== STREAK ==========
    _achievement(
        "dedication", "Dedication", "Stay active 7 days in a row", "🔥",
        AchievementCategory.STREAK, AchievementTier.SILVER,
        points=25, xp_reward=150, metric="streak_days", target=7,
    ),
    _achievement(
        "dedication_master", "Dedication Master", "Stay active 30 days in a row", "👑",
        AchievementCategory.STREAK, AchievementTier.PLATINUM,
        points=100, xp_reward=1000, metric="streak_days", target=30,
    ),

    # ========== SPECIAL ==========
    _achievement(
        "strategy_architect", "Strategy Architect", "Create 5 custom trading strategies", "🧩",
        AchievementCategory.SPECIAL, AchievementTier.PLATINUM,
        points=100, xp_reward=750, metric="strategies_created", target=5,
    ),
    _achievement(
        "rising_star", "Rising Star", "Earn 1000 XP", "⭐",
        AchievementCategory.SPECIAL, AchievementTier.GOLD,
        points=50, xp_reward=100, metric="xp_earned", target=1000,
    ),
)


class AchievementCatalog:
    """Read-only, ordered registry of achievement definitions"""

    def __init__(self, achievements: Iterable[AchievementDefinition] = DEFAULT_ACHIEVEMENTS):
        self._achievements: Dict[str, AchievementDefinition] = {}

        for achievement in achievements:
            if achievement.id in self._achievements:
                raise InvalidArgumentError(
                    message=f"Duplicate achievement id '{achievement.id}'",
                    field="id",
                    value=achievement.id,
                )
            if achievement.requirement.target <= 0:
                raise InvalidArgumentError(
                    message=f"Requirement target for '{achievement.id}' must be positive",
                    field="requirement.target",
                    value=achievement.requirement.target,
                )
            self._achievements[achievement.id] = achievement

        logger.debug(f"Achievement catalog loaded with {len(self._achievements)} achievements")

    def list_all(self) -> Tuple[AchievementDefinition, ...]:
        """All achievements in catalog order"""
        return tuple(self._achievements.values())

    def find_by_id(self, achievement_id: str) -> AchievementDefinition:
        """
        Get a specific achievement by ID

        Raises:
            NotFoundError: achievement_id is not in the catalog
        """
        achievement = self._achievements.get(achievement_id)
        if achievement is None:
            raise NotFoundError(
                message=f"Achievement '{achievement_id}' not found",
                record_type="Achievement",
                record_id=achievement_id,
            )
        return achievement

    def by_category(self, category: AchievementCategory) -> Tuple[AchievementDefinition, ...]:
        return tuple(a for a in self._achievements.values() if a.category == category)

    def __len__(self) -> int:
        return len(self._achievements)

    def __contains__(self, achievement_id: object) -> bool:
        return achievement_id in self._achievements
