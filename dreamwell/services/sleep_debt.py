"""Rolling sleep debt against the user's nightly goal"""
import logging
from typing import Sequence

from dreamwell.models.sleep import SleepSession

logger = logging.getLogger(__name__)

DEBT_WINDOW = 7
MAX_DEBT_MINUTES = 600  # 10 hours either way


def calculate_sleep_debt(sessions: Sequence[SleepSession], goal_minutes: int) -> int:
    """
    Sum of (goal - duration) over the last 7 completed sessions.

    The window is positional: the last 7 completed entries in storage order,
    not the last 7 calendar days.

    Args:
        sessions: Session history in storage order
        goal_minutes: Nightly sleep goal

    Returns:
        Minutes of debt (positive) or surplus (negative), clamped to ±600
    """
    recent = [s for s in sessions if s.end_time is not None][-DEBT_WINDOW:]

    total_debt = sum(goal_minutes - s.duration for s in recent)

    return int(max(-MAX_DEBT_MINUTES, min(MAX_DEBT_MINUTES, total_debt)))
