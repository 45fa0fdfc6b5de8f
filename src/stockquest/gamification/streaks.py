"""
Streak Tracking

Tracks consecutive active days per streak type:
- activity (any recorded action)
- learning (lessons, modules, quizzes)
- trading (simulated trades, strategies)

Logic:
- Activity on the same day as the last one: no change
- Activity on the next day: streak + 1
- Gap of more than one day: streak restarts at 1
- Longest streak is kept forever
"""

from datetime import date, timedelta
from typing import Dict, List
import logging

from stockquest.gamification.progress_store import set_streak_counter
from stockquest.models.profile import StreakView
from stockquest.models.progress import StreakState, StreakType, UserProgress

logger = logging.getLogger(__name__)

STREAK_COUNTER_FOR_TYPE: Dict[StreakType, str] = {
    StreakType.ACTIVITY: "streak_days",
    StreakType.LEARNING: "learning_streak_days",
    StreakType.TRADING: "trading_streak_days",
}


def update_streak(state: StreakState, activity_date: date) -> bool:
    """
    Advance a streak for activity on activity_date

    Returns:
        True if the streak state changed
    """
    last_date = state.last_activity_date

    if last_date is None:
        state.current = 1
    elif activity_date <= last_date:
        # Same day, or a late event for a day already counted
        return False
    elif activity_date == last_date + timedelta(days=1):
        state.current += 1
    else:
        gap_days = (activity_date - last_date).days
        logger.debug(f"Streak broken after {state.current} days, gap was {gap_days} days")
        state.current = 1

    state.last_activity_date = activity_date
    state.longest = max(state.longest, state.current)
    return True


def record_streak_activity(progress: UserProgress, streak_type: StreakType, activity_date: date) -> int:
    """
    Update a user's streak and mirror it into its streak counter

    Returns:
        Current streak length
    """
    state = progress.streaks.setdefault(streak_type, StreakState())
    if update_streak(state, activity_date):
        set_streak_counter(progress, STREAK_COUNTER_FOR_TYPE[streak_type], state.current)
    return state.current


def effective_streak(state: StreakState, on_date: date) -> int:
    """
    Streak length as of on_date

    A streak whose last activity is before yesterday is broken and reads as 0.
    """
    if state.last_activity_date is None:
        return 0
    if (on_date - state.last_activity_date).days > 1:
        return 0
    return state.current


def streak_views(progress: UserProgress, on_date: date) -> List[StreakView]:
    """Streaks for display, one per streak type"""
    views = []
    for streak_type in StreakType:
        state = progress.streaks.get(streak_type, StreakState())
        views.append(StreakView(
            streak_type=streak_type,
            current=effective_streak(state, on_date),
            longest=state.longest,
            last_activity_date=state.last_activity_date,
        ))
    return views
