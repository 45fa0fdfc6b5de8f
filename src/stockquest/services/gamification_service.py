"""
GamificationService - Gamification Facade

The only surface presentation code talks to. Wires together the progress
store, achievement evaluation, daily challenges, weekly goals, streaks and
leaderboards, and turns their results into response models.

Internal counters never leave this module: profiles expose typed stats.
"""

import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union

from stockquest.exceptions import ChallengeClaimError, NotFoundError
from stockquest.gamification.achievement_catalog import AchievementCatalog
from stockquest.gamification.achievement_evaluator import (
    achievement_progress,
    apply_action,
    parse_action,
    unlock_achievements,
)
from stockquest.gamification.challenges import DailyChallengeService, record_challenge_progress
from stockquest.gamification.leaderboard import LeaderboardBuilder, parse_period, parse_scope
from stockquest.gamification.level_curve import level_for, rank_for
from stockquest.gamification.progress_store import ProgressStore, current_period_score
from stockquest.gamification.streaks import streak_views
from stockquest.gamification.weekly_goals import WeeklyGoalService, record_goal_progress
from stockquest.models.achievement import AchievementStatus, AchievementUnlock
from stockquest.models.actions import ActionKind, ActionPayload
from stockquest.models.challenge import ChallengeInstance, ClaimFailureReason, ClaimResult, WeeklyGoal
from stockquest.models.leaderboard import LeaderboardPage, LeaderboardPeriod, LeaderboardScope
from stockquest.models.profile import (
    ActionResult,
    EventType,
    GamificationEvent,
    ProfileResponse,
    ProgressStats,
)
from stockquest.models.progress import UserProgress
from stockquest.monitoring.prometheus_metrics import (
    GamificationMetrics,
    metrics as default_metrics,
    track_achievement_unlock,
    track_action,
    track_challenge_claim,
    track_leaderboard_build,
    track_reward,
)
from stockquest.utils.datetime_helpers import WEEKLY, Clock, SystemClock, to_utc

logger = logging.getLogger(__name__)

Listener = Callable[[GamificationEvent], Union[None, Awaitable[None]]]


class GamificationService:
    """
    Service for gamification features.

    Responsibilities:
    - Recording user actions (counters, streaks, challenges, achievements)
    - Daily challenge and weekly goal claims
    - Profiles, achievement gallery and leaderboards
    - Notifying listeners about unlocks, level-ups and challenge events
    """

    def __init__(
        self,
        store: Optional[ProgressStore] = None,
        catalog: Optional[AchievementCatalog] = None,
        clock: Optional[Clock] = None,
        challenge_count: Optional[int] = None,
        metrics: Optional[GamificationMetrics] = None,
    ):
        """
        Initialize GamificationService.

        Args:
            store: Progress store (a fresh in-memory store by default)
            catalog: Achievement catalog (default achievements by default)
            clock: Time source (the store's clock, or the system clock)
            challenge_count: Daily challenges per user (defaults to config)
            metrics: Prometheus metrics container (global one by default)
        """
        self.clock = clock or (store.clock if store is not None else SystemClock())
        self.store = store if store is not None else ProgressStore(self.clock)
        self.catalog = catalog or AchievementCatalog()
        self.challenges = DailyChallengeService(
            self.store, self.clock, challenge_count, catalog=self.catalog
        )
        self.weekly_goals = WeeklyGoalService(self.store, self.clock, catalog=self.catalog)
        self.leaderboard = LeaderboardBuilder(self.store, self.clock)
        self.metrics = metrics or default_metrics
        self._listeners: Dict[EventType, List[Listener]] = defaultdict(list)
        logger.debug("GamificationService initialized")

    # ============================================
    # Events
    # ============================================

    def on(self, event_type: Union[str, EventType], callback: Listener) -> Listener:
        """
        Subscribe to an event type

        Listeners may be sync or async. They run after the user's record is
        updated and unlocked; a listener that raises is logged and skipped.
        """
        self._listeners[EventType(event_type)].append(callback)
        return callback

    async def _emit(self, events: List[GamificationEvent]) -> None:
        for event in events:
            for callback in list(self._listeners.get(event.type, ())):
                try:
                    result = callback(event)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(
                        f"Listener {getattr(callback, '__name__', callback)!r} failed "
                        f"for {event.type.value} (user={event.user_id}): {e}",
                        exc_info=True
                    )

    def _unlock_events(self, user_id: str, unlocks: List[AchievementUnlock]) -> List[GamificationEvent]:
        return [
            GamificationEvent(
                type=EventType.ACHIEVEMENT_UNLOCKED,
                user_id=user_id,
                data=unlock.model_dump(mode="json"),
                timestamp=unlock.earned_at,
                xp=unlock.xp_reward,
                points=unlock.points,
            )
            for unlock in unlocks
        ]

    def _level_up_event(self, user_id: str, old_level: int, new_level: int, xp: int) -> GamificationEvent:
        return GamificationEvent(
            type=EventType.LEVEL_UP,
            user_id=user_id,
            data={
                "old_level": old_level,
                "new_level": new_level,
                "title": level_for(xp).title,
            },
            timestamp=to_utc(self.clock.now()),
            xp=xp,
        )

    # ============================================
    # Actions
    # ============================================

    async def record_action(
        self,
        user_id: str,
        action_type: Union[str, ActionKind],
        payload: Union[Mapping[str, Any], ActionPayload, None] = None,
    ) -> ActionResult:
        """
        Record a user action and report what it earned.

        Args:
            user_id: User identifier
            action_type: e.g. "lesson_completed", "quiz_passed", "trade_executed"
            payload: Action details, e.g. {"score": 95} or {"symbol": "AAPL", "quantity": 10}

        Returns:
            ActionResult with newly unlocked achievements, completed
            challenges, XP/points awarded and level-up info

        Raises:
            InvalidArgumentError: payload is malformed
        """
        action_name = getattr(action_type, "value", action_type)
        action = parse_action(action_type, payload, user_id)

        if action is None:
            track_action(str(action_name), recognized=False, metrics=self.metrics)
            level = level_for(self.store.get(user_id).xp).level if user_id in self.store else 1
            return ActionResult(
                user_id=user_id,
                action_type=str(action_name),
                recognized=False,
                old_level=level,
                new_level=level,
            )

        def _record(progress: UserProgress) -> ActionResult:
            now = to_utc(self.clock.now())
            old_level = level_for(progress.xp).level
            xp_before = progress.xp
            points_before = progress.total_points

            self.challenges.ensure_today(progress)
            self.weekly_goals.ensure_this_week(progress)
            deltas = apply_action(progress, action, now.date())

            completed: List[ChallengeInstance] = []
            goals_completed: List[WeeklyGoal] = []
            for metric, amount in deltas.items():
                completed.extend(record_challenge_progress(progress, metric, amount, now))
                goals_completed.extend(record_goal_progress(progress, metric, amount, now))

            unlocked = [
                AchievementUnlock.from_definition(definition, now)
                for definition in unlock_achievements(progress, self.catalog, now)
            ]
            new_level = level_for(progress.xp).level

            return ActionResult(
                user_id=user_id,
                action_type=action.kind.value,
                recognized=True,
                achievements_unlocked=unlocked,
                challenges_completed=completed,
                weekly_goals_completed=goals_completed,
                xp_awarded=progress.xp - xp_before,
                points_awarded=progress.total_points - points_before,
                leveled_up=new_level > old_level,
                old_level=old_level,
                new_level=new_level,
            )

        snapshot, result = await self.store.mutate(user_id, _record)

        track_action(action.kind.value, recognized=True, metrics=self.metrics)
        for unlock in result.achievements_unlocked:
            track_achievement_unlock(unlock.id, metrics=self.metrics)
        track_reward("achievement", result.xp_awarded, result.points_awarded, metrics=self.metrics)

        events = self._unlock_events(user_id, result.achievements_unlocked)
        events.extend(
            GamificationEvent(
                type=EventType.CHALLENGE_COMPLETED,
                user_id=user_id,
                data=challenge.model_dump(mode="json"),
                timestamp=challenge.completed_at or to_utc(self.clock.now()),
            )
            for challenge in result.challenges_completed
        )
        events.extend(
            GamificationEvent(
                type=EventType.WEEKLY_GOAL_COMPLETED,
                user_id=user_id,
                data=goal.model_dump(mode="json"),
                timestamp=goal.completed_at or to_utc(self.clock.now()),
            )
            for goal in result.weekly_goals_completed
        )
        if result.leveled_up:
            events.append(self._level_up_event(user_id, result.old_level, result.new_level, snapshot.xp))

        if result.achievements_unlocked or result.challenges_completed or result.weekly_goals_completed:
            logger.info(
                f"Gamification processed for {action.kind.value}: user={user_id}, "
                f"xp=+{result.xp_awarded}, achievements={len(result.achievements_unlocked)}, "
                f"challenges_completed={len(result.challenges_completed)}, "
                f"weekly_goals_completed={len(result.weekly_goals_completed)}"
            )

        await self._emit(events)
        return result

    # ============================================
    # Challenges
    # ============================================

    async def get_daily_challenges(self, user_id: str) -> List[ChallengeInstance]:
        """Today's challenges, generated on the first request of the day"""
        challenge_set = await self.challenges.generate_for_today(user_id)
        return challenge_set.challenges

    async def claim_challenge(self, user_id: str, challenge_id: str) -> ClaimResult:
        """
        Claim a completed daily challenge's reward.

        Returns:
            ClaimResult; on failure success is False and reason says why
            (not_found, not_completed, already_claimed). Nothing is paid twice.
        """
        return await self._claim(
            user_id,
            challenge_id,
            kind="daily",
            claim_on=self.challenges.claim_on,
            find=lambda snapshot: snapshot.daily_challenges.find(challenge_id),
            event_type=EventType.CHALLENGE_CLAIMED,
        )

    async def get_weekly_goals(self, user_id: str) -> List[WeeklyGoal]:
        """This week's goals, generated on the first request of the week"""
        goal_set = await self.weekly_goals.generate_for_week(user_id)
        return goal_set.goals

    async def claim_weekly_goal(self, user_id: str, goal_id: str) -> ClaimResult:
        """
        Claim a completed weekly goal; pays the reward times its bonus multiplier.

        Returns:
            ClaimResult with the same failure reasons as claim_challenge
        """
        return await self._claim(
            user_id,
            goal_id,
            kind="weekly",
            claim_on=self.weekly_goals.claim_on,
            find=lambda snapshot: snapshot.weekly_goals.find(goal_id),
            event_type=EventType.WEEKLY_GOAL_CLAIMED,
        )

    async def _claim(
        self,
        user_id: str,
        claim_id: str,
        kind: str,
        claim_on: Callable[[UserProgress, str], ClaimResult],
        find: Callable[[UserProgress], Any],
        event_type: EventType,
    ) -> ClaimResult:
        def _update(progress: UserProgress):
            old_level = level_for(progress.xp).level
            claim_result = claim_on(progress, claim_id)
            return old_level, claim_result, level_for(progress.xp).level

        try:
            snapshot, (old_level, result, new_level) = await self.store.mutate(user_id, _update)
        except NotFoundError:
            track_challenge_claim(ClaimFailureReason.NOT_FOUND.value, kind=kind, metrics=self.metrics)
            return ClaimResult(success=False, challenge_id=claim_id, reason=ClaimFailureReason.NOT_FOUND)
        except ChallengeClaimError as e:
            track_challenge_claim(e.reason, kind=kind, metrics=self.metrics)
            return ClaimResult(success=False, challenge_id=claim_id, reason=ClaimFailureReason(e.reason))

        track_challenge_claim("success", kind=kind, metrics=self.metrics)
        track_reward(f"{kind}_claim", result.xp_awarded, result.points_awarded, metrics=self.metrics)
        for unlock in result.achievements_unlocked:
            track_achievement_unlock(unlock.id, metrics=self.metrics)

        claimed = find(snapshot)
        events = [
            GamificationEvent(
                type=event_type,
                user_id=user_id,
                data=claimed.model_dump(mode="json") if claimed else {"id": claim_id},
                timestamp=(claimed.claimed_at if claimed else None) or to_utc(self.clock.now()),
                xp=result.xp_awarded,
                points=result.points_awarded,
            )
        ]
        events.extend(self._unlock_events(user_id, result.achievements_unlocked))
        if new_level > old_level:
            events.append(self._level_up_event(user_id, old_level, new_level, snapshot.xp))

        await self._emit(events)
        return result

    # ============================================
    # Profiles
    # ============================================

    async def register_user(self, user_id: str, username: str) -> ProfileResponse:
        """Create (or rename) a user and return their profile"""
        await self.store.set_username(user_id, username)
        logger.info(f"Registered user {user_id} as {username.strip()!r}")
        return await self.get_profile(user_id)

    def _unlocked(self, progress: UserProgress) -> List[AchievementUnlock]:
        """Unlocked achievements in catalog order"""
        return [
            AchievementUnlock.from_definition(
                definition, progress.unlocked_achievements[definition.id].earned_at
            )
            for definition in self.catalog.list_all()
            if progress.has_unlocked(definition.id)
        ]

    async def get_profile(self, user_id: str) -> ProfileResponse:
        """
        Complete gamification profile: level, rank, achievements, streaks,
        today's challenges, this week's goals and activity stats.
        """
        def _refresh(progress: UserProgress) -> None:
            self.challenges.ensure_today(progress)
            self.weekly_goals.ensure_this_week(progress)

        snapshot, _ = await self.store.mutate(user_id, _refresh)

        now = to_utc(self.clock.now())
        level = level_for(snapshot.xp)
        achievements = self._unlocked(snapshot)
        weekly = current_period_score(snapshot, WEEKLY, now)

        return ProfileResponse(
            user_id=snapshot.user_id,
            username=snapshot.username,
            xp=snapshot.xp,
            total_points=snapshot.total_points,
            level=level,
            rank=rank_for(level.level, snapshot.xp, len(achievements)),
            achievements=achievements,
            achievements_count=len(achievements),
            streaks=streak_views(snapshot, now.date()),
            daily_challenges=snapshot.daily_challenges.challenges,
            weekly_goals=snapshot.weekly_goals.goals,
            weekly_xp=weekly.xp if weekly else 0,
            stats=ProgressStats.from_progress(snapshot),
        )

    def get_achievements(self, user_id: str) -> List[AchievementStatus]:
        """Achievement gallery: every achievement with unlock state and progress"""
        progress = self.store.get(user_id)
        gallery = []

        for definition in self.catalog.list_all():
            unlocked = progress.unlocked_achievements.get(definition.id)
            gallery.append(AchievementStatus(
                id=definition.id,
                name=definition.name,
                description=definition.description,
                icon=definition.icon,
                category=definition.category,
                tier=definition.tier,
                rarity=definition.rarity,
                points=definition.points,
                xp_reward=definition.xp_reward,
                unlocked=unlocked is not None,
                earned_at=unlocked.earned_at if unlocked else None,
                progress=achievement_progress(progress, definition),
            ))

        return gallery

    # ============================================
    # Leaderboards
    # ============================================

    def get_leaderboard(
        self,
        scope: Union[str, LeaderboardScope] = LeaderboardScope.OVERALL,
        period: Union[str, LeaderboardPeriod] = LeaderboardPeriod.ALL_TIME,
        page: int = 1,
        page_size: Optional[int] = None,
        current_user_id: Optional[str] = None,
    ) -> LeaderboardPage:
        """
        Ranked leaderboard page for a scope (overall, learning, trading,
        social) and period (weekly, monthly, all_time).
        """
        scope = parse_scope(scope)
        period = parse_period(period)

        with track_leaderboard_build(scope.value, period.value, metrics=self.metrics):
            return self.leaderboard.build(
                scope=scope,
                period=period,
                page=page,
                page_size=page_size,
                current_user_id=current_user_id,
            )


# Default instance wired from config
gamification_service = GamificationService()
