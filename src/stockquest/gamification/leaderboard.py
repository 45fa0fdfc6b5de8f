"""
Leaderboard Builder

Ranks every known user for a scope and period, derived fresh from progress
snapshots on each call.

Ordering:
- Points earned in the scope and period, descending
- XP earned in the period, descending
- Whoever reached their score first
- user_id, so the order is total

Ranks are dense: tied users share a rank and the next rank follows without
gaps. Users only tie when points, XP and the time they reached the score are
all equal.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import List, Optional, Tuple, Union
import logging

from stockquest import config
from stockquest.exceptions import InvalidArgumentError
from stockquest.gamification.progress_store import ProgressStore, current_period_score
from stockquest.models.leaderboard import (
    LeaderboardEntry,
    LeaderboardPage,
    LeaderboardPeriod,
    LeaderboardScope,
)
from stockquest.models.progress import UserProgress
from stockquest.utils.datetime_helpers import Clock, to_utc

logger = logging.getLogger(__name__)

_NEVER = datetime.max.replace(tzinfo=timezone.utc)


@dataclass
class _Standing:
    progress: UserProgress
    points: int
    xp: int
    reached_at: Optional[datetime]

    @property
    def tie_key(self) -> Tuple[int, int, Optional[datetime]]:
        return (self.points, self.xp, self.reached_at)

    @property
    def sort_key(self) -> Tuple[int, int, datetime, str]:
        return (-self.points, -self.xp, self.reached_at or _NEVER, self.progress.user_id)


def parse_scope(scope: Union[str, LeaderboardScope]) -> LeaderboardScope:
    try:
        return LeaderboardScope(scope)
    except ValueError:
        raise InvalidArgumentError(
            message=f"Unknown leaderboard scope '{scope}'",
            field="scope",
            value=scope,
        )


def parse_period(period: Union[str, LeaderboardPeriod]) -> LeaderboardPeriod:
    try:
        return LeaderboardPeriod(period)
    except ValueError:
        raise InvalidArgumentError(
            message=f"Unknown leaderboard period '{period}'",
            field="period",
            value=period,
        )


def standing_for(
    progress: UserProgress,
    scope: LeaderboardScope,
    period: LeaderboardPeriod,
    now: datetime,
) -> _Standing:
    """A user's score for one board; stale period accumulators read as zero"""
    score = current_period_score(progress, period.value, now)
    if score is None:
        return _Standing(progress=progress, points=0, xp=0, reached_at=None)

    return _Standing(
        progress=progress,
        points=score.points.get(scope.value, 0),
        xp=score.xp,
        reached_at=score.score_reached_at,
    )


def rank_standings(standings: List[_Standing]) -> List[Tuple[int, _Standing]]:
    """Sort standings and assign dense 1-based ranks"""
    ranked = []
    rank = 0
    previous = None

    for standing in sorted(standings, key=lambda s: s.sort_key):
        if standing.tie_key != previous:
            rank += 1
            previous = standing.tie_key
        ranked.append((rank, standing))

    return ranked


class LeaderboardBuilder:
    """Builds paginated leaderboards from ProgressStore snapshots"""

    def __init__(self, store: ProgressStore, clock: Optional[Clock] = None):
        self.store = store
        self.clock = clock or store.clock

    def build(
        self,
        scope: Union[str, LeaderboardScope] = LeaderboardScope.OVERALL,
        period: Union[str, LeaderboardPeriod] = LeaderboardPeriod.ALL_TIME,
        page: int = 1,
        page_size: Optional[int] = None,
        current_user_id: Optional[str] = None,
    ) -> LeaderboardPage:
        """
        Build one page of a leaderboard

        Args:
            scope: overall, learning, trading or social
            period: weekly, monthly or all_time
            page: 1-based page number
            page_size: Entries per page (defaults to config)
            current_user_id: User whose rank to report, if any

        Returns:
            LeaderboardPage with entries highest rank first

        Raises:
            InvalidArgumentError: unknown scope/period, or bad pagination
        """
        scope = parse_scope(scope)
        period = parse_period(period)
        page_size = config.LEADERBOARD_PAGE_SIZE if page_size is None else page_size

        if page < 1:
            raise InvalidArgumentError("Page must be at least 1", field="page", value=page)
        if not 1 <= page_size <= config.LEADERBOARD_MAX_PAGE_SIZE:
            raise InvalidArgumentError(
                f"Page size must be between 1 and {config.LEADERBOARD_MAX_PAGE_SIZE}",
                field="page_size",
                value=page_size,
            )

        now = to_utc(self.clock.now())
        standings = [standing_for(p, scope, period, now) for p in self.store.snapshot_all()]
        ranked = rank_standings(standings)

        current_user_rank = None
        if current_user_id is not None:
            for rank, standing in ranked:
                if standing.progress.user_id == current_user_id:
                    current_user_rank = rank
                    break

        start = (page - 1) * page_size
        entries = [
            LeaderboardEntry(
                rank=rank,
                user_id=standing.progress.user_id,
                username=standing.progress.username,
                level=standing.progress.level,
                xp=standing.xp,
                total_points=standing.points,
                achievements_count=len(standing.progress.unlocked_achievements),
            )
            for rank, standing in ranked[start:start + page_size]
        ]

        logger.debug(
            f"Built {scope.value}/{period.value} leaderboard page {page}: "
            f"{len(entries)} of {len(ranked)} users"
        )

        return LeaderboardPage(
            scope=scope,
            period=period,
            entries=entries,
            page=page,
            page_size=page_size,
            total_users=len(ranked),
            current_user_rank=current_user_rank,
            generated_at=now,
        )
