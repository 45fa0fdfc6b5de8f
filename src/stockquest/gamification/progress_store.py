"""
Progress Store

In-memory owner of every user's gamification record.

Rules:
- get() is get-or-create: an unknown user gets a zeroed record
- Callers only ever see deep copies of a record
- All writes go through mutate(), which holds a per-user asyncio.Lock so two
  writers for the same user never interleave
- XP and points only grow; counters only grow, except streak counters

Lifetime is the process lifetime: nothing is persisted.
"""

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Tuple, Union

from stockquest.exceptions import InvalidArgumentError
from stockquest.models.leaderboard import LeaderboardScope
from stockquest.models.progress import PeriodScore, UserProgress
from stockquest.utils.datetime_helpers import PERIODS, Clock, SystemClock, period_key

logger = logging.getLogger(__name__)

# Counters allowed to go down (they reset when a streak breaks)
STREAK_COUNTERS = frozenset({"streak_days", "learning_streak_days", "trading_streak_days"})

Updater = Callable[[UserProgress], Union[Any, Awaitable[Any]]]


def default_username(user_id: str) -> str:
    return f"User {user_id[:8]}"


# ============================================
# Record-level mutation helpers
# (only call these on a record handed to an updater)
# ============================================

def increment_counter(progress: UserProgress, metric: str, amount: int = 1) -> int:
    """
    Add a non-negative amount to a counter

    Returns:
        New counter value
    """
    if amount < 0:
        raise InvalidArgumentError(
            message=f"Counter '{metric}' cannot be decremented",
            field=metric,
            value=amount,
            user_id=progress.user_id,
        )
    if metric in STREAK_COUNTERS:
        raise InvalidArgumentError(
            message=f"Streak counter '{metric}' is maintained by streak tracking",
            field=metric,
            value=amount,
            user_id=progress.user_id,
        )

    progress.counters[metric] = progress.counter(metric) + amount
    return progress.counters[metric]


def set_streak_counter(progress: UserProgress, metric: str, value: int) -> None:
    """Overwrite a streak counter (the only counters that may reset)"""
    if metric not in STREAK_COUNTERS:
        raise InvalidArgumentError(
            message=f"'{metric}' is not a streak counter",
            field=metric,
            value=value,
            user_id=progress.user_id,
        )
    if value < 0:
        raise InvalidArgumentError(
            message="Streak length cannot be negative",
            field=metric,
            value=value,
            user_id=progress.user_id,
        )
    progress.counters[metric] = value


def scope_for_category(category: str) -> Optional[LeaderboardScope]:
    """Leaderboard scope a reward category counts toward, besides overall"""
    try:
        scope = LeaderboardScope(category)
    except ValueError:
        return None
    return None if scope == LeaderboardScope.OVERALL else scope


def current_period_score(progress: UserProgress, period: str, now) -> Optional[PeriodScore]:
    """The period accumulator if it belongs to the period containing now, else None"""
    score = progress.period_scores.get(period)
    if score is None or score.period_key != period_key(period, now):
        return None
    return score


def apply_reward(
    progress: UserProgress,
    xp: int,
    points: int,
    category: str,
    now,
) -> None:
    """
    Add XP and points to a record and to its period accumulators

    Period accumulators whose key is stale are replaced before adding.
    """
    if xp < 0 or points < 0:
        raise InvalidArgumentError(
            message="XP and points deltas must be non-negative",
            field="xp" if xp < 0 else "points",
            value=xp if xp < 0 else points,
            user_id=progress.user_id,
        )

    progress.xp += xp
    progress.total_points += points

    scope = scope_for_category(category)

    for period in PERIODS:
        key = period_key(period, now)
        score = progress.period_scores.get(period)
        if score is None or score.period_key != key:
            score = PeriodScore(period_key=key)
            progress.period_scores[period] = score

        score.xp += xp
        if points:
            overall = LeaderboardScope.OVERALL.value
            score.points[overall] = score.points.get(overall, 0) + points
            if scope is not None:
                score.points[scope.value] = score.points.get(scope.value, 0) + points
            score.score_reached_at = now


class ProgressStore:
    """In-memory store of UserProgress records with per-user locking"""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or SystemClock()
        self._records: Dict[str, UserProgress] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _get_or_create_record(self, user_id: str) -> UserProgress:
        """Get existing or create new zeroed record"""
        if not user_id:
            raise InvalidArgumentError("User ID is required", field="user_id", value=user_id)

        record = self._records.get(user_id)
        if record is None:
            now = self.clock.now()
            record = UserProgress(
                user_id=user_id,
                username=default_username(user_id),
                created_at=now,
                updated_at=now,
            )
            self._records[user_id] = record
            logger.debug(f"Created progress record for user {user_id}")
        return record

    def _lock_for(self, user_id: str) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    def get(self, user_id: str) -> UserProgress:
        """Snapshot of a user's record, creating it if needed"""
        return self._get_or_create_record(user_id).model_copy(deep=True)

    async def mutate(self, user_id: str, updater: Updater) -> Tuple[UserProgress, Any]:
        """
        Apply updater to a user's record while holding that user's lock

        The updater receives the live record and may be sync or async. If it
        raises, the record is restored to its state before the call.

        Returns:
            (snapshot after the update, updater's return value)
        """
        async with self._lock_for(user_id):
            record = self._get_or_create_record(user_id)
            backup = record.model_copy(deep=True)

            try:
                result = updater(record)
                if inspect.isawaitable(result):
                    result = await result
            except Exception:
                self._records[user_id] = backup
                raise

            record.updated_at = self.clock.now()
            return record.model_copy(deep=True), result

    def snapshot_all(self) -> List[UserProgress]:
        """Snapshots of every known user (no cross-user consistency)"""
        return [record.model_copy(deep=True) for record in list(self._records.values())]

    async def set_username(self, user_id: str, username: str) -> UserProgress:
        username = username.strip()
        if not username:
            raise InvalidArgumentError("Username cannot be blank", field="username", value=username)

        def _rename(progress: UserProgress) -> None:
            progress.username = username

        snapshot, _ = await self.mutate(user_id, _rename)
        return snapshot

    def reset(self) -> None:
        """
        Drop every record (test and demo helper)

        Locks held by an in-flight mutate() are kept, so a later writer for
        that user still waits for it instead of getting a fresh lock.
        """
        self._records.clear()
        self._locks = {user_id: lock for user_id, lock in self._locks.items() if lock.locked()}

    def __contains__(self, user_id: object) -> bool:
        return user_id in self._records

    def __len__(self) -> int:
        return len(self._records)
