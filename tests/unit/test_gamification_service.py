"""Unit tests for GamificationService"""

import asyncio

import pytest

from stockquest.exceptions import InvalidArgumentError
from stockquest.gamification.challenges import DailyChallengeService
from stockquest.models.challenge import ChallengeTemplate, ClaimFailureReason
from stockquest.models.profile import EventType
from stockquest.services.gamification_service import GamificationService


LESSON_TEMPLATE = ChallengeTemplate(
    id="two_lessons",
    title="Two Lessons",
    description="Complete 2 lessons",
    metric="lessons_completed",
    target=2,
    xp_reward=60,
    points_reward=15,
    category="learning",
)


@pytest.fixture
def lesson_service(store, catalog, clock, metrics):
    """Service whose only daily challenge is two lessons"""
    service = GamificationService(store=store, catalog=catalog, clock=clock, challenge_count=1, metrics=metrics)
    service.challenges = DailyChallengeService(
        store, clock, count=1, templates=[LESSON_TEMPLATE], catalog=catalog
    )
    return service


# ============================================================================
# Profile Tests
# ============================================================================

@pytest.mark.asyncio
async def test_new_user_profile(service, test_user_id):
    """Test a new user starts at level 1 with nothing unlocked"""
    profile = await service.get_profile(test_user_id)

    assert profile.xp == 0
    assert profile.level.level == 1
    assert profile.achievements == []
    assert profile.achievements_count == 0
    assert profile.rank.name == "Novice"
    assert len(profile.daily_challenges) == 3
    assert len(profile.weekly_goals) == 3
    assert profile.stats.lessons_completed == 0
    assert all(streak.current == 0 for streak in profile.streaks)


@pytest.mark.asyncio
async def test_profile_hides_raw_counters(service, test_user_id):
    """Test the profile exposes typed stats only"""
    profile = await service.get_profile(test_user_id)
    dumped = profile.model_dump()

    assert "counters" not in dumped
    assert "period_scores" not in dumped


@pytest.mark.asyncio
async def test_register_user_sets_username(service, test_user_id):
    """Test registration names the user"""
    profile = await service.register_user(test_user_id, "Alice")
    assert profile.username == "Alice"


# ============================================================================
# Action Tests
# ============================================================================

@pytest.mark.asyncio
async def test_first_lesson_scenario(service, catalog, test_user_id):
    """Test one lesson unlocks first_lesson and XP grows by exactly its reward"""
    before = await service.get_profile(test_user_id)

    result = await service.record_action(test_user_id, "lesson_completed", {"lesson_id": "intro"})

    first_lesson = catalog.find_by_id("first_lesson")
    assert result.recognized is True
    assert [a.id for a in result.achievements_unlocked] == ["first_lesson"]
    assert result.xp_awarded == first_lesson.xp_reward
    assert result.points_awarded == first_lesson.points

    after = await service.get_profile(test_user_id)
    assert after.xp - before.xp == first_lesson.xp_reward
    assert after.stats.lessons_completed == 1
    assert [a.id for a in after.achievements] == ["first_lesson"]


@pytest.mark.asyncio
async def test_repeat_action_awards_nothing_new(service, test_user_id):
    """Test the second identical action unlocks nothing and adds no XP"""
    await service.record_action(test_user_id, "lesson_completed")
    result = await service.record_action(test_user_id, "lesson_completed")

    assert result.achievements_unlocked == []
    assert result.xp_awarded == 0


@pytest.mark.asyncio
async def test_unknown_action_not_recognized(service, store, test_user_id):
    """Test unknown actions are ignored without creating state"""
    result = await service.record_action(test_user_id, "margin_call", {})

    assert result.recognized is False
    assert result.achievements_unlocked == []
    assert test_user_id not in store


@pytest.mark.asyncio
async def test_malformed_payload_raises(service, test_user_id):
    """Test malformed payloads surface InvalidArgumentError"""
    with pytest.raises(InvalidArgumentError):
        await service.record_action(test_user_id, "trade_executed", {"symbol": "AAPL"})


@pytest.mark.asyncio
async def test_level_up_reported(service, test_user_id):
    """Test crossing a level boundary is reported"""
    result = await service.record_action(
        test_user_id, "trade_executed", {"symbol": "NVDA", "quantity": 3, "profit_pct": 15}
    )

    # first_trade 75 + profit_hunter 500 = 575 XP -> level 4
    assert result.xp_awarded == 575
    assert result.leveled_up is True
    assert result.old_level == 1
    assert result.new_level == 4


# ============================================================================
# Challenge Tests
# ============================================================================

@pytest.mark.asyncio
async def test_action_completes_and_claims_challenge(lesson_service, test_user_id):
    """Test actions advance challenges and the reward can be claimed once"""
    challenges = await lesson_service.get_daily_challenges(test_user_id)
    challenge_id = challenges[0].id
    assert challenge_id == "two_lessons-2024-03-04"

    first = await lesson_service.record_action(test_user_id, "lesson_completed")
    assert first.challenges_completed == []

    second = await lesson_service.record_action(test_user_id, "lesson_completed")
    assert [c.id for c in second.challenges_completed] == [challenge_id]

    claim = await lesson_service.claim_challenge(test_user_id, challenge_id)
    assert claim.success is True
    assert claim.xp_awarded == 60

    retry = await lesson_service.claim_challenge(test_user_id, challenge_id)
    assert retry.success is False
    assert retry.reason == ClaimFailureReason.ALREADY_CLAIMED


@pytest.mark.asyncio
async def test_claim_failures_are_results(lesson_service, store, test_user_id):
    """Test ineligible claims return a failure reason and change nothing"""
    challenges = await lesson_service.get_daily_challenges(test_user_id)

    not_done = await lesson_service.claim_challenge(test_user_id, challenges[0].id)
    missing = await lesson_service.claim_challenge(test_user_id, "nope-2024-03-04")

    assert not_done.success is False
    assert not_done.reason == ClaimFailureReason.NOT_COMPLETED
    assert missing.success is False
    assert missing.reason == ClaimFailureReason.NOT_FOUND
    assert store.get(test_user_id).xp == 0


# ============================================================================
# Achievement Gallery Tests
# ============================================================================

@pytest.mark.asyncio
async def test_achievement_gallery(service, catalog, test_user_id):
    """Test the gallery lists every achievement with progress"""
    await service.record_action(test_user_id, "lesson_completed")

    gallery = service.get_achievements(test_user_id)
    by_id = {status.id: status for status in gallery}

    assert len(gallery) == len(catalog)
    assert by_id["first_lesson"].unlocked is True
    assert by_id["first_lesson"].earned_at is not None
    assert by_id["knowledge_seeker"].unlocked is False
    assert by_id["knowledge_seeker"].progress.current == 1
    assert by_id["knowledge_seeker"].progress.percentage == 10


# ============================================================================
# Leaderboard Tests
# ============================================================================

@pytest.mark.asyncio
async def test_leaderboard_through_facade(service):
    """Test the facade builds ranked leaderboards"""
    await service.record_action("alice", "trade_executed", {"symbol": "AAPL", "quantity": 1})
    await service.record_action("bob", "lesson_completed")

    overall = service.get_leaderboard("overall", "weekly", current_user_id="bob")
    trading = service.get_leaderboard("trading", "all_time")

    # first_trade 15 points beats first_lesson 10 points
    assert [e.user_id for e in overall.entries] == ["alice", "bob"]
    assert overall.current_user_rank == 2
    assert trading.entries[0].user_id == "alice"
    assert trading.entries[1].total_points == 0


# ============================================================================
# Event Tests
# ============================================================================

@pytest.mark.asyncio
async def test_listeners_receive_events(service, test_user_id):
    """Test sync and async listeners get unlock and level-up events"""
    received = []

    def on_unlock(event):
        received.append((event.type, event.data["id"]))

    async def on_level_up(event):
        received.append((event.type, event.data["new_level"]))

    service.on("achievement_unlocked", on_unlock)
    service.on(EventType.LEVEL_UP, on_level_up)

    await service.record_action(test_user_id, "trade_executed", {"symbol": "AMD", "quantity": 1, "profit_pct": 20})

    assert received == [
        (EventType.ACHIEVEMENT_UNLOCKED, "first_trade"),
        (EventType.ACHIEVEMENT_UNLOCKED, "profit_hunter"),
        (EventType.LEVEL_UP, 4),
    ]


@pytest.mark.asyncio
async def test_failing_listener_does_not_break_action(service, store, test_user_id):
    """Test a listener error is logged and the action still counts"""
    def broken(event):
        raise RuntimeError("listener down")

    service.on("achievement_unlocked", broken)

    result = await service.record_action(test_user_id, "lesson_completed")

    assert [a.id for a in result.achievements_unlocked] == ["first_lesson"]
    assert store.get(test_user_id).has_unlocked("first_lesson")


@pytest.mark.asyncio
async def test_claim_emits_event(lesson_service, test_user_id):
    """Test a successful claim notifies challenge_claimed listeners"""
    claimed = []
    lesson_service.on("challenge_claimed", lambda event: claimed.append(event.data["id"]))

    await lesson_service.record_action(test_user_id, "lesson_completed")
    await lesson_service.record_action(test_user_id, "lesson_completed")
    await lesson_service.claim_challenge(test_user_id, "two_lessons-2024-03-04")

    assert claimed == ["two_lessons-2024-03-04"]


def test_unknown_event_type_rejected(service):
    """Test subscribing to an unknown event type fails"""
    with pytest.raises(ValueError):
        service.on("portfolio_closed", lambda event: None)


# ============================================================================
# Metrics Tests
# ============================================================================

@pytest.mark.asyncio
async def test_actions_counted_in_metrics(service, metrics, test_user_id):
    """Test recorded actions and unlocks reach the private registry"""
    await service.record_action(test_user_id, "lesson_completed")
    await service.record_action(test_user_id, "future_action")

    registry = metrics.registry
    assert registry.get_sample_value(
        "stockquest_actions_recorded_total", {"action": "lesson_completed", "recognized": "true"}
    ) == 1.0
    assert registry.get_sample_value(
        "stockquest_actions_recorded_total", {"action": "future_action", "recognized": "false"}
    ) == 1.0
    assert registry.get_sample_value(
        "stockquest_achievements_unlocked_total", {"achievement": "first_lesson"}
    ) == 1.0


# ============================================================================
# Concurrency Tests
# ============================================================================

@pytest.mark.asyncio
async def test_concurrent_actions_never_double_unlock(service, store, catalog, test_user_id):
    """Test gathered actions for one user unlock each achievement once"""
    results = await asyncio.gather(
        *[service.record_action(test_user_id, "lesson_completed") for _ in range(20)]
    )

    unlocked_ids = [a.id for result in results for a in result.achievements_unlocked]
    assert sorted(unlocked_ids) == ["first_lesson", "knowledge_seeker"]

    progress = store.get(test_user_id)
    expected_xp = sum(catalog.find_by_id(a).xp_reward for a in unlocked_ids)
    assert progress.counter("lessons_completed") == 20
    assert progress.xp == expected_xp
    assert sum(result.xp_awarded for result in results) == expected_xp


@pytest.mark.asyncio
async def test_concurrent_claims_pay_once(lesson_service, store, test_user_id):
    """Test gathered claims on one completed challenge pay exactly once"""
    await lesson_service.record_action(test_user_id, "lesson_completed")
    await lesson_service.record_action(test_user_id, "lesson_completed")
    xp_before = store.get(test_user_id).xp

    results = await asyncio.gather(
        *[lesson_service.claim_challenge(test_user_id, "two_lessons-2024-03-04") for _ in range(10)]
    )

    successes = [r for r in results if r.success]
    failures = [r for r in results if not r.success]
    assert len(successes) == 1
    assert len(failures) == 9
    assert all(r.reason == ClaimFailureReason.ALREADY_CLAIMED for r in failures)
    assert store.get(test_user_id).xp == xp_before + 60


# ============================================================================
# Weekly Goal Tests
# ============================================================================

@pytest.mark.asyncio
async def test_weekly_goal_completed_and_claimed_with_bonus(service, test_user_id):
    """Test actions complete weekly goals and the claim pays the bonus"""
    goals = await service.get_weekly_goals(test_user_id)
    assert "weekly_scholar-2024-W10" in [g.id for g in goals]

    claimed = []
    service.on("weekly_goal_claimed", lambda event: claimed.append(event.data["id"]))

    completed_ids = []
    for _ in range(10):
        result = await service.record_action(test_user_id, "lesson_completed")
        completed_ids.extend(g.id for g in result.weekly_goals_completed)
    assert completed_ids == ["weekly_scholar-2024-W10"]

    claim = await service.claim_weekly_goal(test_user_id, "weekly_scholar-2024-W10")

    # 750 bonus XP on top of 250 from lesson achievements unlocks rising_star
    assert claim.success is True
    assert [a.id for a in claim.achievements_unlocked] == ["rising_star"]
    assert claim.xp_awarded == 750 + 100
    assert claimed == ["weekly_scholar-2024-W10"]

    retry = await service.claim_weekly_goal(test_user_id, "weekly_scholar-2024-W10")
    assert retry.success is False
    assert retry.reason == ClaimFailureReason.ALREADY_CLAIMED


@pytest.mark.asyncio
async def test_weekly_goal_claim_failures(service, test_user_id):
    """Test weekly goal claims share the daily failure reasons"""
    not_done = await service.claim_weekly_goal(test_user_id, "weekly_trader-2024-W10")
    missing = await service.claim_weekly_goal(test_user_id, "weekly_trader-2024-W09")

    assert not_done.reason == ClaimFailureReason.NOT_COMPLETED
    assert missing.reason == ClaimFailureReason.NOT_FOUND


@pytest.mark.asyncio
async def test_profile_weekly_xp_resets_each_week(service, clock, test_user_id):
    """Test weekly XP counts this ISO week only"""
    await service.record_action(test_user_id, "trade_executed", {"symbol": "NVDA", "quantity": 3, "profit_pct": 15})

    profile = await service.get_profile(test_user_id)
    assert profile.weekly_xp == 575
    assert [g.id for g in profile.weekly_goals][0] == "weekly_scholar-2024-W10"

    clock.advance(days=7)
    next_week = await service.get_profile(test_user_id)
    assert next_week.weekly_xp == 0
    assert next_week.xp == 575
    assert next_week.weekly_goals[0].id == "weekly_scholar-2024-W11"


# ============================================================================
# Activity Stats Tests
# ============================================================================

@pytest.mark.asyncio
async def test_profile_activity_stats(service, test_user_id):
    """Test quiz average, trade volume, profit and win rate on the profile"""
    await service.record_action(test_user_id, "quiz_passed", {"score": 80})
    await service.record_action(test_user_id, "quiz_passed", {"score": 100})
    await service.record_action(test_user_id, "trade_executed", {"symbol": "AAPL", "quantity": 10, "profit_pct": 5})
    await service.record_action(test_user_id, "trade_executed", {"symbol": "TSLA", "quantity": 2.5, "profit_pct": -2})

    stats = (await service.get_profile(test_user_id)).stats

    assert stats.quizzes_taken == 2
    assert stats.average_quiz_score == 90.0
    assert stats.trades_made == 2
    assert stats.total_trading_volume == 12.5
    assert stats.total_trading_profit_pct == 3.0
    assert stats.win_rate == 50.0


@pytest.mark.asyncio
async def test_new_user_activity_stats_are_zero(service, test_user_id):
    """Test ratios are zero rather than undefined before any activity"""
    profile = await service.get_profile(test_user_id)

    assert profile.weekly_xp == 0
    assert profile.stats.average_quiz_score == 0.0
    assert profile.stats.win_rate == 0.0
