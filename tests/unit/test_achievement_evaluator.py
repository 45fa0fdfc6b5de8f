"""Unit tests for achievement evaluation (stockquest/gamification/achievement_evaluator.py)"""
import pytest

from stockquest.exceptions import InvalidArgumentError
from stockquest.gamification.achievement_evaluator import (
    ACTION_RULES,
    AchievementEvaluator,
    achievement_progress,
    metric_value,
    parse_action,
)
from stockquest.gamification.progress_store import apply_reward
from stockquest.models.actions import ActionKind, QuizPassedPayload, TradeExecutedPayload


@pytest.fixture
def evaluator(store, catalog, clock):
    return AchievementEvaluator(store, catalog, clock)


# ============================================================================
# Action Parsing Tests
# ============================================================================

class TestParseAction:
    """Test action type and payload parsing"""

    def test_every_action_kind_has_a_rule(self):
        """Test ACTION_RULES covers the whole enum"""
        assert set(ACTION_RULES) == set(ActionKind)

    def test_unknown_action_is_none(self):
        """Test unknown action types parse to None"""
        assert parse_action("portfolio_rebalanced", {}) is None

    def test_quiz_payload_validated(self):
        """Test a valid quiz payload parses to its model"""
        action = parse_action("quiz_passed", {"score": 95, "extra": "ignored"})

        assert action.kind == ActionKind.QUIZ_PASSED
        assert isinstance(action.payload, QuizPassedPayload)
        assert action.payload.score == 95

    def test_trade_symbol_normalized(self):
        """Test trade symbols are upper-cased"""
        action = parse_action(ActionKind.TRADE_EXECUTED, {"symbol": " tsla ", "quantity": 1})

        assert isinstance(action.payload, TradeExecutedPayload)
        assert action.payload.symbol == "TSLA"

    def test_payload_model_instance_accepted(self):
        """Test an already-built payload is used as is"""
        payload = QuizPassedPayload(score=80)
        assert parse_action("quiz_passed", payload).payload is payload

    @pytest.mark.parametrize("action_type,payload", [
        ("quiz_passed", {"score": 150}),
        ("quiz_passed", {}),
        ("trade_executed", {"symbol": "AAPL", "quantity": 0}),
        ("trade_executed", {"symbol": "   ", "quantity": 1}),
    ])
    def test_malformed_payload_raises(self, action_type, payload):
        """Test invalid payloads raise InvalidArgumentError"""
        with pytest.raises(InvalidArgumentError):
            parse_action(action_type, payload)

    def test_non_mapping_payload_raises(self):
        """Test a payload that is not a mapping is rejected"""
        with pytest.raises(InvalidArgumentError) as exc_info:
            parse_action("lesson_completed", ["lesson-1"])

        assert exc_info.value.field == "payload"


# ============================================================================
# Evaluation Tests
# ============================================================================

@pytest.mark.asyncio
async def test_first_lesson_unlocks(evaluator, store, test_user_id):
    """Test one lesson unlocks First Steps and pays its reward"""
    unlocked = await evaluator.evaluate(test_user_id, "lesson_completed", {"lesson_id": "l1"})

    assert [a.id for a in unlocked] == ["first_lesson"]
    progress = store.get(test_user_id)
    assert progress.counter("lessons_completed") == 1
    assert progress.xp == 50
    assert progress.total_points == 10
    assert progress.has_unlocked("first_lesson")


@pytest.mark.asyncio
async def test_evaluate_is_idempotent(evaluator, store, test_user_id):
    """Test an unlocked achievement is never awarded twice"""
    await evaluator.evaluate(test_user_id, "lesson_completed")
    xp_after_first = store.get(test_user_id).xp

    unlocked = await evaluator.evaluate(test_user_id, "lesson_completed")

    assert unlocked == []
    progress = store.get(test_user_id)
    assert progress.xp == xp_after_first
    assert progress.counter("lessons_completed") == 2
    assert len(progress.unlocked_achievements) == 1


@pytest.mark.asyncio
async def test_unknown_action_is_noop(evaluator, store, test_user_id):
    """Test unknown action types change nothing"""
    unlocked = await evaluator.evaluate(test_user_id, "options_expired", {"anything": 1})

    assert unlocked == []
    assert test_user_id not in store


@pytest.mark.asyncio
async def test_malformed_payload_changes_nothing(evaluator, store, test_user_id):
    """Test a rejected payload leaves the record untouched"""
    with pytest.raises(InvalidArgumentError):
        await evaluator.evaluate(test_user_id, "quiz_passed", {"score": -3})

    assert store.get(test_user_id).counters == {}


@pytest.mark.asyncio
async def test_quiz_counters(evaluator, store, test_user_id):
    """Test quiz scores feed the 90+ and perfect counters"""
    await evaluator.evaluate(test_user_id, "quiz_passed", {"score": 70})
    await evaluator.evaluate(test_user_id, "quiz_passed", {"score": 92})
    unlocked = await evaluator.evaluate(test_user_id, "quiz_passed", {"score": 100})

    progress = store.get(test_user_id)
    assert progress.counter("quizzes_taken") == 3
    assert progress.counter("quiz_scores_90plus") == 2
    assert progress.counter("perfect_quizzes") == 1
    assert [a.id for a in unlocked] == ["perfect_score"]
    assert progress.activity.quiz_score_total == 262


@pytest.mark.asyncio
async def test_trade_activity_stats(evaluator, store, test_user_id):
    """Test trades accumulate volume, profit and winning trades"""
    await evaluator.evaluate(test_user_id, "trade_executed", {"symbol": "AAPL", "quantity": 4, "profit_pct": 12.5})
    await evaluator.evaluate(test_user_id, "trade_executed", {"symbol": "MSFT", "quantity": 1, "profit_pct": 0})
    await evaluator.evaluate(test_user_id, "trade_executed", {"symbol": "AMD", "quantity": 3, "profit_pct": -4.5})

    activity = store.get(test_user_id).activity
    assert activity.trading_volume == 8.0
    assert activity.trading_profit_pct == 8.0
    assert activity.winning_trades == 1


@pytest.mark.asyncio
async def test_simultaneous_unlocks_in_catalog_order(evaluator, test_user_id):
    """Test several unlocks from one action come back in catalog order"""
    unlocked = await evaluator.evaluate(
        test_user_id, "trade_executed", {"symbol": "AAPL", "quantity": 5, "profit_pct": 12.0}
    )

    assert [a.id for a in unlocked] == ["first_trade", "profit_hunter"]


@pytest.mark.asyncio
async def test_xp_cascade_unlocks_in_same_call(evaluator, store, test_user_id, clock):
    """Test achievement XP can unlock an XP milestone in the same call"""
    await store.mutate(
        test_user_id,
        lambda p: apply_reward(p, xp=950, points=0, category="special", now=clock.now()),
    )

    unlocked = await evaluator.evaluate(test_user_id, "lesson_completed")

    assert [a.id for a in unlocked] == ["first_lesson", "rising_star"]
    assert store.get(test_user_id).xp == 950 + 50 + 100


@pytest.mark.asyncio
async def test_streak_achievement_after_seven_days(evaluator, store, test_user_id, clock):
    """Test a 7-day activity streak unlocks Dedication"""
    unlocked_ids = []
    for day in range(7):
        unlocked = await evaluator.evaluate(test_user_id, "daily_login")
        unlocked_ids.extend(a.id for a in unlocked)
        clock.advance(days=1)

    assert unlocked_ids == ["dedication"]
    assert store.get(test_user_id).counter("streak_days") == 7


@pytest.mark.asyncio
async def test_counters_never_decrease(evaluator, store, test_user_id, clock):
    """Test non-streak counters are monotonic across actions and days"""
    actions = [
        ("trade_executed", {"symbol": "MSFT", "quantity": 1}),
        ("lesson_completed", {}),
        ("trade_executed", {"symbol": "MSFT", "quantity": 2}),
        ("unknown_thing", {}),
        ("community_help", {}),
    ]
    previous = {}
    for action_type, payload in actions:
        await evaluator.evaluate(test_user_id, action_type, payload)
        clock.advance(days=3)
        counters = store.get(test_user_id).counters
        for metric, value in previous.items():
            if "streak" not in metric:
                assert counters.get(metric, 0) >= value
        previous = dict(counters)


# ============================================================================
# Metric & Progress Tests
# ============================================================================

@pytest.mark.asyncio
async def test_metric_value_derived_metrics(evaluator, store, test_user_id):
    """Test xp_earned and level are derived from XP"""
    await evaluator.evaluate(test_user_id, "module_completed")
    progress = store.get(test_user_id)

    assert metric_value(progress, "xp_earned") == 50
    assert metric_value(progress, "level") == 1
    assert metric_value(progress, "modules_completed") == 1
    assert metric_value(progress, "never_seen") == 0


@pytest.mark.asyncio
async def test_achievement_progress(evaluator, store, catalog, test_user_id):
    """Test progress toward an achievement is capped at its target"""
    for _ in range(3):
        await evaluator.evaluate(test_user_id, "lesson_completed")
    progress = store.get(test_user_id)

    seeker = achievement_progress(progress, catalog.find_by_id("knowledge_seeker"))
    assert (seeker.current, seeker.required, seeker.percentage) == (3, 10, 30)

    first = achievement_progress(progress, catalog.find_by_id("first_lesson"))
    assert (first.current, first.required, first.percentage) == (1, 1, 100)
