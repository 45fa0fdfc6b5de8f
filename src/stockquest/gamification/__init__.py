"""
Gamification engine for StockQuest

This package implements the motivation layer of the learning platform:
- Achievement catalog and evaluation
- XP level curve and ranks
- Activity, learning and trading streaks
- Daily challenges and weekly goals
- Leaderboards
"""

from stockquest.gamification.achievement_catalog import AchievementCatalog, DEFAULT_ACHIEVEMENTS
from stockquest.gamification.achievement_evaluator import AchievementEvaluator, parse_action
from stockquest.gamification.challenges import CHALLENGE_TEMPLATES, DailyChallengeService
from stockquest.gamification.leaderboard import LeaderboardBuilder
from stockquest.gamification.level_curve import level_for, rank_for
from stockquest.gamification.progress_store import ProgressStore
from stockquest.gamification.streaks import update_streak
from stockquest.gamification.weekly_goals import WEEKLY_GOAL_TEMPLATES, WeeklyGoalService

__all__ = [
    "AchievementCatalog",
    "DEFAULT_ACHIEVEMENTS",
    "AchievementEvaluator",
    "parse_action",
    "CHALLENGE_TEMPLATES",
    "DailyChallengeService",
    "LeaderboardBuilder",
    "level_for",
    "rank_for",
    "ProgressStore",
    "update_streak",
    "WEEKLY_GOAL_TEMPLATES",
    "WeeklyGoalService",
]
