"""
Achievement Evaluator

Turns a user action into counter increments, then unlocks every achievement
whose requirement is now met.

Flow for one action:
1. Parse the action type and validate its payload
2. Apply the counter increments from ACTION_RULES and touch streaks
3. Scan locked achievements in catalog order and unlock the satisfied ones,
   awarding their XP and points
4. Rescan, since achievement XP can satisfy XP-based requirements

Unknown action types are ignored so clients can send newer actions safely.
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple, Union
import logging

from pydantic import ValidationError

from stockquest.exceptions import InvalidArgumentError, wrap_validation_error
from stockquest.gamification.achievement_catalog import AchievementCatalog
from stockquest.gamification.level_curve import level_for
from stockquest.gamification.progress_store import ProgressStore, apply_reward, increment_counter
from stockquest.gamification.streaks import record_streak_activity
from stockquest.models.achievement import (
    AchievementDefinition,
    AchievementProgress,
    UnlockedAchievement,
)
from stockquest.models.actions import (
    PAYLOAD_MODELS,
    Action,
    ActionKind,
    ActionPayload,
    QuizPassedPayload,
    TradeExecutedPayload,
)
from stockquest.models.progress import StreakType, UserProgress
from stockquest.utils.datetime_helpers import Clock, to_utc

logger = logging.getLogger(__name__)

PERFECT_QUIZ_SCORE = 100
HIGH_QUIZ_SCORE = 90
PROFITABLE_SESSION_PCT = 10.0


@dataclass(frozen=True)
class ActionRule:
    """Counters and streaks an action kind affects"""
    counters: Callable[[Any], Dict[str, int]]
    streaks: Tuple[StreakType, ...] = field(default=(StreakType.ACTIVITY,))


def _single(metric: str) -> Callable[[Any], Dict[str, int]]:
    return lambda payload: {metric: 1}


def _quiz_counters(payload: QuizPassedPayload) -> Dict[str, int]:
    counters = {"quizzes_taken": 1}
    if payload.score >= HIGH_QUIZ_SCORE:
        counters["quiz_scores_90plus"] = 1
    if payload.score == PERFECT_QUIZ_SCORE:
        counters["perfect_quizzes"] = 1
    return counters


def _trade_counters(payload: TradeExecutedPayload) -> Dict[str, int]:
    counters = {"trades_made": 1}
    if payload.profit_pct >= PROFITABLE_SESSION_PCT:
        counters["profitable_sessions"] = 1
    return counters


_LEARNING = (StreakType.ACTIVITY, StreakType.LEARNING)
_TRADING = (StreakType.ACTIVITY, StreakType.TRADING)

ACTION_RULES: Dict[ActionKind, ActionRule] = {
    ActionKind.LESSON_COMPLETED: ActionRule(_single("lessons_completed"), _LEARNING),
    ActionKind.MODULE_COMPLETED: ActionRule(_single("modules_completed"), _LEARNING),
    ActionKind.QUIZ_PASSED: ActionRule(_quiz_counters, _LEARNING),
    ActionKind.TRADE_EXECUTED: ActionRule(_trade_counters, _TRADING),
    ActionKind.STRATEGY_CREATED: ActionRule(_single("strategies_created"), _TRADING),
    ActionKind.COMMUNITY_HELP: ActionRule(_single("community_helps")),
    ActionKind.DAILY_LOGIN: ActionRule(_single("logins")),
}


def parse_action(
    action_type: Union[str, ActionKind],
    payload: Union[Mapping[str, Any], ActionPayload, None] = None,
    user_id: Optional[str] = None,
) -> Optional[Action]:
    """
    Parse and validate an action

    Returns:
        Action, or None when action_type is unknown

    Raises:
        InvalidArgumentError: payload is malformed
    """
    try:
        kind = ActionKind(action_type)
    except ValueError:
        logger.debug(f"Ignoring unknown action type '{action_type}' for user {user_id}")
        return None

    model = PAYLOAD_MODELS[kind]

    if isinstance(payload, model):
        return Action(kind=kind, payload=payload)
    if payload is None:
        payload = {}
    if not isinstance(payload, Mapping):
        raise InvalidArgumentError(
            message=f"Payload for '{kind.value}' must be a mapping",
            field="payload",
            value=type(payload).__name__,
            user_id=user_id,
            operation="parse_action",
        )

    try:
        parsed = model.model_validate(dict(payload))
    except ValidationError as e:
        raise wrap_validation_error(e, operation="parse_action", user_id=user_id)

    return Action(kind=kind, payload=parsed)


def record_activity_stats(progress: UserProgress, action: Action) -> None:
    """Accumulate quiz scores and trade volume/profit for profile stats"""
    activity = progress.activity
    payload = action.payload

    if action.kind == ActionKind.QUIZ_PASSED:
        activity.quiz_score_total += payload.score
    elif action.kind == ActionKind.TRADE_EXECUTED:
        activity.trading_volume += payload.quantity
        activity.trading_profit_pct += payload.profit_pct
        if payload.profit_pct > 0:
            activity.winning_trades += 1


def apply_action(progress: UserProgress, action: Action, activity_date: date) -> Dict[str, int]:
    """
    Apply an action's counter increments and streak updates to a record

    Returns:
        Counter deltas that were applied (metric -> amount)
    """
    rule = ACTION_RULES[action.kind]
    deltas = rule.counters(action.payload)

    for metric, amount in deltas.items():
        increment_counter(progress, metric, amount)

    record_activity_stats(progress, action)

    for streak_type in rule.streaks:
        record_streak_activity(progress, streak_type, activity_date)

    return deltas


def metric_value(progress: UserProgress, metric: str) -> int:
    """Current value of a requirement metric (counters plus derived metrics)"""
    if metric == "xp_earned":
        return progress.xp
    if metric == "level":
        return level_for(progress.xp).level
    return progress.counter(metric)


def achievement_progress(progress: UserProgress, achievement: AchievementDefinition) -> AchievementProgress:
    """Progress toward an achievement, capped at 100%"""
    required = achievement.requirement.target
    if progress.has_unlocked(achievement.id):
        current = required
    else:
        current = min(metric_value(progress, achievement.requirement.metric), required)

    return AchievementProgress(
        current=current,
        required=required,
        percentage=min(100, int(current / required * 100)),
    )


def unlock_achievements(
    progress: UserProgress,
    catalog: AchievementCatalog,
    now: datetime,
) -> List[AchievementDefinition]:
    """
    Unlock every satisfied, still-locked achievement on a record

    Returns:
        Newly unlocked achievements in catalog order
    """
    unlocked_ids = set()

    while True:
        newly_satisfied = [
            achievement for achievement in catalog.list_all()
            if not progress.has_unlocked(achievement.id)
            and achievement.requirement.is_satisfied(
                metric_value(progress, achievement.requirement.metric)
            )
        ]
        if not newly_satisfied:
            break

        for achievement in newly_satisfied:
            progress.unlocked_achievements[achievement.id] = UnlockedAchievement(
                achievement_id=achievement.id,
                earned_at=now,
            )
            apply_reward(
                progress,
                xp=achievement.xp_reward,
                points=achievement.points,
                category=achievement.category.value,
                now=now,
            )
            unlocked_ids.add(achievement.id)

            logger.info(
                f"User {progress.user_id} unlocked achievement: {achievement.id} "
                f"({achievement.name}) +{achievement.xp_reward} XP, +{achievement.points} points"
            )

    return [a for a in catalog.list_all() if a.id in unlocked_ids]


class AchievementEvaluator:
    """Evaluates user actions against the achievement catalog"""

    def __init__(
        self,
        store: ProgressStore,
        catalog: Optional[AchievementCatalog] = None,
        clock: Optional[Clock] = None,
    ):
        self.store = store
        self.catalog = catalog or AchievementCatalog()
        self.clock = clock or store.clock

    def process(self, progress: UserProgress, action: Action) -> List[AchievementDefinition]:
        """Apply an action to a live record and unlock what it earns"""
        now = to_utc(self.clock.now())
        apply_action(progress, action, now.date())
        return unlock_achievements(progress, self.catalog, now)

    async def evaluate(
        self,
        user_id: str,
        action_type: Union[str, ActionKind],
        payload: Union[Mapping[str, Any], ActionPayload, None] = None,
    ) -> List[AchievementDefinition]:
        """
        Record an action for a user and return the achievements it unlocked

        Args:
            user_id: User identifier
            action_type: Action name, e.g. "lesson_completed"
            payload: Action details, e.g. {"score": 95} for quiz_passed

        Returns:
            Newly unlocked achievements in catalog order (possibly empty)
        """
        action = parse_action(action_type, payload, user_id)
        if action is None:
            return []

        _, unlocked = await self.store.mutate(user_id, lambda progress: self.process(progress, action))
        return unlocked
