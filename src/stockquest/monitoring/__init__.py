"""Monitoring infrastructure for stockquest"""
from stockquest.monitoring.prometheus_metrics import (
    GamificationMetrics,
    metrics,
    track_action,
    track_reward,
    track_achievement_unlock,
    track_challenge_claim,
    track_leaderboard_build
)

__all__ = [
    "GamificationMetrics",
    "metrics",
    "track_action",
    "track_reward",
    "track_achievement_unlock",
    "track_challenge_claim",
    "track_leaderboard_build"
]
