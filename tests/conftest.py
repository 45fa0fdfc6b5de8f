"""Global test fixtures and utilities for stockquest tests"""
import pytest
from datetime import datetime, timezone

from stockquest.gamification.achievement_catalog import AchievementCatalog
from stockquest.gamification.progress_store import ProgressStore
from stockquest.monitoring.prometheus_metrics import GamificationMetrics
from stockquest.services.gamification_service import GamificationService
from stockquest.utils.datetime_helpers import FrozenClock


# ============================================================================
# Clock Fixtures
# ============================================================================

@pytest.fixture
def start_time():
    """Monday 2024-03-04 09:00 UTC (ISO week 2024-W10)"""
    return datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def clock(start_time):
    """Frozen clock that only moves when a test advances it"""
    return FrozenClock(start_time)


# ============================================================================
# Engine Fixtures
# ============================================================================

@pytest.fixture
def store(clock):
    """Fresh, empty progress store"""
    return ProgressStore(clock=clock)


@pytest.fixture
def catalog():
    """Default achievement catalog"""
    return AchievementCatalog()


@pytest.fixture
def metrics():
    """Metrics on a private registry so tests never share counters"""
    return GamificationMetrics(enabled=True)


@pytest.fixture
def service(store, catalog, clock, metrics):
    """Gamification facade over a fresh store"""
    return GamificationService(store=store, catalog=catalog, clock=clock, challenge_count=3, metrics=metrics)


# ============================================================================
# User Fixtures
# ============================================================================

@pytest.fixture
def test_user_id():
    """Standard test user ID"""
    return "u1"


@pytest.fixture
def other_user_id():
    """Second test user ID"""
    return "u2"
