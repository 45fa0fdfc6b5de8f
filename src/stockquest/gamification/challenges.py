"""
Daily Challenges

Every user gets a small set of challenges per UTC day, picked from
CHALLENGE_TEMPLATES with a RNG seeded by (user_id, date). The same user sees
the same set all day; the set changes the next day.

Lifecycle per challenge: active -> completed -> claimed
- Progress is added by recorded actions whose metric matches
- Progress may overshoot the target
- The reward is paid exactly once, on claim
"""

import hashlib
import logging
import random
from datetime import date, datetime
from typing import List, Optional, Sequence, Tuple

from stockquest import config
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
from stockquest.models.challenge import (
    ChallengeInstance,
    ChallengeTemplate,
    ClaimResult,
    DailyChallengeSet,
)
from stockquest.models.progress import UserProgress
from stockquest.utils.datetime_helpers import Clock, to_utc, today

logger = logging.getLogger(__name__)


# ============================================
# Challenge Template Library
# ============================================

CHALLENGE_TEMPLATES: Tuple[ChallengeTemplate, ...] = (
    # ========== LEARNING ==========
    ChallengeTemplate(
        id="lesson_sprint",
        title="Lesson Sprint",
        description="Complete 3 tutorial lessons today",
        metric="lessons_completed",
        target=3,
        xp_reward=60,
        points_reward=15,
        category="learning",
    ),
    ChallengeTemplate(
        id="quiz_warmup",
        title="Quiz Warm-up",
        description="Take 2 quizzes today",
        metric="quizzes_taken",
        target=2,
        xp_reward=40,
        points_reward=10,
        category="learning",
    ),
    ChallengeTemplate(
        id="sharp_mind",
        title="Sharp Mind",
        description="Score 90% or higher on a quiz",
        metric="quiz_scores_90plus",
        target=1,
        xp_reward=75,
        points_reward=20,
        category="learning",
    ),
    ChallengeTemplate(
        id="module_push",
        title="Module Push",
        description="Finish a learning module",
        metric="modules_completed",
        target=1,
        xp_reward=100,
        points_reward=25,
        category="learning",
    ),

    # ========== TRADING ==========
    ChallengeTemplate(
        id="market_mover",
        title="Market Mover",
        description="Execute 5 simulated trades",
        metric="trades_made",
        target=5,
        xp_reward=80,
        points_reward=20,
        category="trading",
    ),
    ChallengeTemplate(
        id="strategy_session",
        title="Strategy Session",
        description="Create a trading strategy",
        metric="strategies_created",
        target=1,
        xp_reward=90,
        points_reward=25,
        category="trading",
    ),

    # ========== SOCIAL ==========
    ChallengeTemplate(
        id="helping_hand",
        title="Helping Hand",
        description="Help 2 fellow learners in the community",
        metric="community_helps",
        target=2,
        xp_reward=50,
        points_reward=15,
        category="social",
    ),

    # ========== GENERAL ==========
    ChallengeTemplate(
        id="check_in",
        title="Daily Check-in",
        description="Log in to StockQuest",
        metric="logins",
        target=1,
        xp_reward=20,
        points_reward=5,
        category="overall",
    ),
)


def challenge_seed(user_id: str, day: date) -> int:
    """Stable seed for a user's challenge pick on a given day"""
    digest = hashlib.sha256(f"{user_id}:{day.isoformat()}".encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big")


def pick_templates(
    user_id: str,
    day: date,
    count: int,
    templates: Sequence[ChallengeTemplate] = CHALLENGE_TEMPLATES,
) -> List[ChallengeTemplate]:
    """Deterministically pick up to count templates, kept in library order"""
    count = min(count, len(templates))
    rng = random.Random(challenge_seed(user_id, day))
    picked = set(rng.sample(range(len(templates)), count))
    return [template for index, template in enumerate(templates) if index in picked]


def instantiate(template: ChallengeTemplate, day: date) -> ChallengeInstance:
    """Fresh active challenge for one day"""
    return ChallengeInstance(
        id=f"{template.id}-{day.isoformat()}",
        template_id=template.id,
        title=template.title,
        description=template.description,
        metric=template.metric,
        target=template.target,
        xp_reward=template.xp_reward,
        points_reward=template.points_reward,
        category=template.category,
    )


# ============================================
# Record-level operations
# (only call these on a record handed to a store updater)
# ============================================

def ensure_today(
    progress: UserProgress,
    day: date,
    count: int,
    templates: Sequence[ChallengeTemplate] = CHALLENGE_TEMPLATES,
) -> DailyChallengeSet:
    """
    Replace the stored challenge set if it was generated for another day

    Returns:
        The record's (possibly regenerated) challenge set
    """
    if progress.daily_challenges.generated_for != day:
        challenges = [instantiate(t, day) for t in pick_templates(progress.user_id, day, count, templates)]
        progress.daily_challenges = DailyChallengeSet(generated_for=day, challenges=challenges)
        logger.debug(
            f"Generated {len(challenges)} daily challenges for user {progress.user_id} on {day}: "
            f"{[c.template_id for c in challenges]}"
        )
    return progress.daily_challenges


def record_challenge_progress(
    progress: UserProgress,
    metric: str,
    amount: int,
    now: datetime,
) -> List[ChallengeInstance]:
    """
    Add progress to today's unclaimed challenges tracking metric

    Returns:
        Challenges that became completed in this call
    """
    if amount < 0:
        raise InvalidArgumentError(
            message="Challenge progress cannot be negative",
            field="amount",
            value=amount,
            user_id=progress.user_id,
        )

    newly_completed = []
    for challenge in progress.daily_challenges.challenges:
        if challenge.metric != metric or challenge.claimed:
            continue

        was_completed = challenge.completed
        challenge.progress += amount

        if challenge.completed and not was_completed:
            challenge.completed_at = now
            newly_completed.append(challenge.model_copy())
            logger.info(f"User {progress.user_id} completed challenge {challenge.id}")

    return newly_completed


def claim_in(progress: UserProgress, challenge_id: str, now: datetime) -> ChallengeInstance:
    """
    Pay out a completed challenge and mark it claimed

    Raises:
        NotFoundError: challenge_id is not in today's set
        NotCompletedError: target not reached yet
        AlreadyClaimedError: reward already paid
    """
    challenge = progress.daily_challenges.find(challenge_id)
    if challenge is None:
        raise NotFoundError(
            message=f"Challenge '{challenge_id}' not found",
            record_type="Challenge",
            record_id=challenge_id,
            user_id=progress.user_id,
            operation="claim_challenge",
        )
    if challenge.claimed:
        raise AlreadyClaimedError(
            challenge_id=challenge_id,
            user_id=progress.user_id,
            operation="claim_challenge",
        )
    if not challenge.completed:
        raise NotCompletedError(
            message=f"Challenge '{challenge_id}' at {challenge.progress}/{challenge.target}",
            challenge_id=challenge_id,
            user_id=progress.user_id,
            operation="claim_challenge",
        )

    apply_reward(
        progress,
        xp=challenge.xp_reward,
        points=challenge.points_reward,
        category=challenge.category,
        now=now,
    )
    challenge.claimed = True
    challenge.claimed_at = now

    logger.info(
        f"User {progress.user_id} claimed challenge {challenge_id}: "
        f"+{challenge.xp_reward} XP, +{challenge.points_reward} points"
    )
    return challenge.model_copy()


class DailyChallengeService:
    """Generates, advances and pays out daily challenges"""

    def __init__(
        self,
        store: ProgressStore,
        clock: Optional[Clock] = None,
        count: Optional[int] = None,
        templates: Sequence[ChallengeTemplate] = CHALLENGE_TEMPLATES,
        catalog: Optional[AchievementCatalog] = None,
    ):
        self.store = store
        self.clock = clock or store.clock
        self.count = config.DAILY_CHALLENGE_COUNT if count is None else count
        self.templates = tuple(templates)
        self.catalog = catalog

        if self.count < 1:
            raise InvalidArgumentError("Daily challenge count must be at least 1", field="count", value=self.count)
        if not self.templates:
            raise InvalidArgumentError("At least one challenge template is required", field="templates")

    def _now(self) -> datetime:
        return to_utc(self.clock.now())

    def ensure_today(self, progress: UserProgress) -> DailyChallengeSet:
        return ensure_today(progress, today(self.clock), self.count, self.templates)

    async def generate_for_today(self, user_id: str) -> DailyChallengeSet:
        """Today's challenge set, generating it on the first call of the day"""
        _, challenge_set = await self.store.mutate(
            user_id, lambda progress: self.ensure_today(progress).model_copy(deep=True)
        )
        return challenge_set

    async def record_progress(self, user_id: str, metric: str, amount: int = 1) -> List[ChallengeInstance]:
        """
        Add progress toward today's challenges tracking metric

        Returns:
            Challenges completed by this call
        """
        def _update(progress: UserProgress) -> List[ChallengeInstance]:
            self.ensure_today(progress)
            return record_challenge_progress(progress, metric, amount, self._now())

        _, completed = await self.store.mutate(user_id, _update)
        return completed

    def claim_on(self, progress: UserProgress, challenge_id: str) -> ClaimResult:
        """Claim against a live record, then unlock achievements the reward earns"""
        now = self._now()
        self.ensure_today(progress)
        challenge = claim_in(progress, challenge_id, now)

        unlocked: List[AchievementUnlock] = []
        if self.catalog is not None:
            unlocked = [
                AchievementUnlock.from_definition(definition, now)
                for definition in unlock_achievements(progress, self.catalog, now)
            ]

        return ClaimResult(
            success=True,
            challenge_id=challenge.id,
            xp_awarded=challenge.xp_reward + sum(a.xp_reward for a in unlocked),
            points_awarded=challenge.points_reward + sum(a.points for a in unlocked),
            achievements_unlocked=unlocked,
        )

    async def claim(self, user_id: str, challenge_id: str) -> ClaimResult:
        """
        Claim a completed challenge's reward

        Raises:
            NotFoundError, NotCompletedError, AlreadyClaimedError
        """
        _, result = await self.store.mutate(user_id, lambda progress: self.claim_on(progress, challenge_id))
        return result
