"""
Weekly Goals

Longer-running goals that every user gets for each ISO week (Monday to
Sunday, UTC). The set is generated lazily on the first touch of a new week
and replaced wholesale when the week changes; unclaimed goals from last week
are simply dropped.

Lifecycle per goal: active -> completed -> claimed
- Progress comes from the same counter deltas that drive daily challenges
- Claiming pays the base reward times the goal's bonus multiplier, once
"""

import logging
from datetime import date, datetime, timedelta
from typing import List, Optional, Sequence, Tuple

from stockquest.exceptions import (
    AlreadyClaimedError,
    InvalidArgumentError,
    NotCompletedError,
    NotFoundError,
)
from stockquest.gamification.achievement_catalog import AchievementCatalog
from stockquest.gamification.achievement_evaluator import unlock_achievements
from stockquest.gamification.progress_store import ProgressStore, apply_reward
from stockquest.models.achievement import AchievementUnlock
from stockquest.models.challenge import ClaimResult, WeeklyGoal, WeeklyGoalSet, WeeklyGoalTemplate
from stockquest.models.progress import UserProgress
from stockquest.utils.datetime_helpers import WEEKLY, Clock, period_key, start_of_week, to_utc

logger = logging.getLogger(__name__)


WEEKLY_GOAL_TEMPLATES: Tuple[WeeklyGoalTemplate, ...] = (
    WeeklyGoalTemplate(
        id="weekly_scholar",
        title="Weekly Scholar",
        description="Complete 10 lessons this week",
        metric="lessons_completed",
        target=10,
        xp_reward=500,
        points_reward=100,
        bonus_multiplier=1.5,
        category="learning",
    ),
    WeeklyGoalTemplate(
        id="weekly_quiz_streak",
        title="Quiz Marathon",
        description="Take 5 quizzes this week",
        metric="quizzes_taken",
        target=5,
        xp_reward=250,
        points_reward=50,
        bonus_multiplier=1.25,
        category="learning",
    ),
    WeeklyGoalTemplate(
        id="weekly_trader",
        title="Active Trader",
        description="Execute 20 simulated trades this week",
        metric="trades_made",
        target=20,
        xp_reward=400,
        points_reward=80,
        bonus_multiplier=1.5,
        category="trading",
    ),
)


def instantiate_goal(template: WeeklyGoalTemplate, week_key: str, week_start: date) -> WeeklyGoal:
    return WeeklyGoal(
        id=f"{template.id}-{week_key}",
        template_id=template.id,
        title=template.title,
        description=template.description,
        metric=template.metric,
        target=template.target,
        xp_reward=template.xp_reward,
        points_reward=template.points_reward,
        bonus_multiplier=template.bonus_multiplier,
        category=template.category,
        week_start=week_start,
        week_end=week_start + timedelta(days=6),
    )


def ensure_this_week(
    progress: UserProgress,
    now: datetime,
    templates: Sequence[WeeklyGoalTemplate] = WEEKLY_GOAL_TEMPLATES,
) -> WeeklyGoalSet:
    """Replace the stored goal set if it belongs to another ISO week"""
    week_key = period_key(WEEKLY, now)
    if progress.weekly_goals.week_key != week_key:
        week_start = start_of_week(to_utc(now).date())
        progress.weekly_goals = WeeklyGoalSet(
            week_key=week_key,
            goals=[instantiate_goal(t, week_key, week_start) for t in templates],
        )
        logger.debug(f"Generated weekly goals for user {progress.user_id} in {week_key}")
    return progress.weekly_goals


def record_goal_progress(
    progress: UserProgress,
    metric: str,
    amount: int,
    now: datetime,
) -> List[WeeklyGoal]:
    """
    Add progress to this week's unclaimed goals tracking metric

    Returns:
        Goals that became completed in this call
    """
    if amount < 0:
        raise InvalidArgumentError(
            message="Goal progress cannot be negative",
            field="amount",
            value=amount,
            user_id=progress.user_id,
        )

    newly_completed = []
    for goal in progress.weekly_goals.goals:
        if goal.metric != metric or goal.claimed:
            continue

        was_completed = goal.completed
        goal.progress += amount

        if goal.completed and not was_completed:
            goal.completed_at = now
            newly_completed.append(goal.model_copy())
            logger.info(f"User {progress.user_id} completed weekly goal {goal.id}")

    return newly_completed


def claim_goal_in(progress: UserProgress, goal_id: str, now: datetime) -> WeeklyGoal:
    """
    Pay out a completed weekly goal with its bonus and mark it claimed

    Raises:
        NotFoundError: goal_id is not in this week's set
        NotCompletedError: target not reached yet
        AlreadyClaimedError: reward already paid
    """
    goal = progress.weekly_goals.find(goal_id)
    if goal is None:
        raise NotFoundError(
            message=f"Weekly goal '{goal_id}' not found",
            record_type="WeeklyGoal",
            record_id=goal_id,
            user_id=progress.user_id,
            operation="claim_weekly_goal",
        )
    if goal.claimed:
        raise AlreadyClaimedError(
            message=f"Weekly goal '{goal_id}' already claimed",
            challenge_id=goal_id,
            user_id=progress.user_id,
            operation="claim_weekly_goal",
        )
    if not goal.completed:
        raise NotCompletedError(
            message=f"Weekly goal '{goal_id}' at {goal.progress}/{goal.target}",
            challenge_id=goal_id,
            user_id=progress.user_id,
            operation="claim_weekly_goal",
        )

    apply_reward(
        progress,
        xp=goal.payout_xp,
        points=goal.payout_points,
        category=goal.category,
        now=now,
    )
    goal.claimed = True
    goal.claimed_at = now

    logger.info(
        f"User {progress.user_id} claimed weekly goal {goal_id}: "
        f"+{goal.payout_xp} XP, +{goal.payout_points} points (x{goal.bonus_multiplier})"
    )
    return goal.model_copy()


class WeeklyGoalService:
    """Generates, advances and pays out weekly goals"""

    def __init__(
        self,
        store: ProgressStore,
        clock: Optional[Clock] = None,
        templates: Sequence[WeeklyGoalTemplate] = WEEKLY_GOAL_TEMPLATES,
        catalog: Optional[AchievementCatalog] = None,
    ):
        self.store = store
        self.clock = clock or store.clock
        self.templates = tuple(templates)
        self.catalog = catalog

    def _now(self) -> datetime:
        return to_utc(self.clock.now())

    def ensure_this_week(self, progress: UserProgress) -> WeeklyGoalSet:
        return ensure_this_week(progress, self._now(), self.templates)

    async def generate_for_week(self, user_id: str) -> WeeklyGoalSet:
        """This week's goals, generating them on the first call of the week"""
        _, goal_set = await self.store.mutate(
            user_id, lambda progress: self.ensure_this_week(progress).model_copy(deep=True)
        )
        return goal_set

    def claim_on(self, progress: UserProgress, goal_id: str) -> ClaimResult:
        """Claim against a live record, then unlock achievements the reward earns"""
        now = self._now()
        self.ensure_this_week(progress)
        goal = claim_goal_in(progress, goal_id, now)

        unlocked: List[AchievementUnlock] = []
        if self.catalog is not None:
            unlocked = [
                AchievementUnlock.from_definition(definition, now)
                for definition in unlock_achievements(progress, self.catalog, now)
            ]

        return ClaimResult(
            success=True,
            challenge_id=goal.id,
            xp_awarded=goal.payout_xp + sum(a.xp_reward for a in unlocked),
            points_awarded=goal.payout_points + sum(a.points for a in unlocked),
            achievements_unlocked=unlocked,
        )

    async def claim(self, user_id: str, goal_id: str) -> ClaimResult:
        """
        Claim a completed weekly goal's bonus reward

        Raises:
            NotFoundError, NotCompletedError, AlreadyClaimedError
        """
        _, result = await self.store.mutate(user_id, lambda progress: self.claim_on(progress, goal_id))
        return result
