"""Prometheus metrics definitions and helpers"""
import logging
import time
from contextlib import contextmanager
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram

from stockquest.config import ENABLE_PROMETHEUS

logger = logging.getLogger(__name__)


class GamificationMetrics:
    """Container for all gamification Prometheus metrics"""

    def __init__(self, enabled: bool = ENABLE_PROMETHEUS, registry: Optional[CollectorRegistry] = None):
        self.registry = registry or CollectorRegistry()

        if not enabled:
            logger.info("Prometheus metrics disabled")
            self._enabled = False
            return

        # Action Metrics
        self.actions_recorded_total = Counter(
            'stockquest_actions_recorded_total',
            'Total user actions recorded',
            ['action', 'recognized'],
            registry=self.registry
        )

        # Reward Metrics
        self.achievements_unlocked_total = Counter(
            'stockquest_achievements_unlocked_total',
            'Total achievements unlocked',
            ['achievement'],
            registry=self.registry
        )

        self.xp_awarded_total = Counter(
            'stockquest_xp_awarded_total',
            'Total XP awarded',
            ['source'],
            registry=self.registry
        )

        self.points_awarded_total = Counter(
            'stockquest_points_awarded_total',
            'Total points awarded',
            ['source'],
            registry=self.registry
        )

        # Challenge Metrics
        self.challenge_claims_total = Counter(
            'stockquest_challenge_claims_total',
            'Total daily challenge and weekly goal claims',
            ['kind', 'result'],
            registry=self.registry
        )

        # Leaderboard Metrics
        self.leaderboard_builds_total = Counter(
            'stockquest_leaderboard_builds_total',
            'Total leaderboard builds',
            ['scope', 'period'],
            registry=self.registry
        )

        self.leaderboard_build_duration_seconds = Histogram(
            'stockquest_leaderboard_build_duration_seconds',
            'Leaderboard build latency',
            ['scope', 'period'],
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0],
            registry=self.registry
        )

        self._enabled = True
        logger.info("Prometheus metrics initialized")

    @property
    def enabled(self) -> bool:
        """Check if metrics are enabled"""
        return self._enabled


# Global metrics instance
metrics = GamificationMetrics()


def track_action(action: str, recognized: bool, metrics: GamificationMetrics = metrics):
    """Count a recorded action"""
    if not metrics.enabled:
        return

    metrics.actions_recorded_total.labels(
        action=action,
        recognized="true" if recognized else "false"
    ).inc()


def track_reward(source: str, xp: int, points: int, metrics: GamificationMetrics = metrics):
    """Count XP and points paid out by an achievement or challenge"""
    if not metrics.enabled:
        return

    if xp:
        metrics.xp_awarded_total.labels(source=source).inc(xp)
    if points:
        metrics.points_awarded_total.labels(source=source).inc(points)


def track_achievement_unlock(achievement_id: str, metrics: GamificationMetrics = metrics):
    """Count an achievement unlock"""
    if not metrics.enabled:
        return

    metrics.achievements_unlocked_total.labels(achievement=achievement_id).inc()


def track_challenge_claim(result: str, kind: str = "daily", metrics: GamificationMetrics = metrics):
    """Count a claim attempt by kind (daily, weekly) and result (success or failure reason)"""
    if not metrics.enabled:
        return

    metrics.challenge_claims_total.labels(kind=kind, result=result).inc()


@contextmanager
def track_leaderboard_build(scope: str, period: str, metrics: GamificationMetrics = metrics):
    """Track leaderboard build metrics"""
    if not metrics.enabled:
        yield
        return

    start_time = time.time()

    try:
        yield
    finally:
        duration = time.time() - start_time
        metrics.leaderboard_build_duration_seconds.labels(
            scope=scope,
            period=period
        ).observe(duration)

        metrics.leaderboard_builds_total.labels(
            scope=scope,
            period=period
        ).inc()
