"""
Service Layer Package

Business logic services that sit between the presentation layer and the
gamification engine.

- GamificationService: actions, challenges, profiles, leaderboards
"""

from stockquest.services.gamification_service import GamificationService, gamification_service

__all__ = [
    "GamificationService",
    "gamification_service",
]
