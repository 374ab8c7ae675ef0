"""
Points, streaks and the power-up catalog.

Pure rules only; db_stores applies them inside transactions.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

POINTS_PER_CORRECT = 10

POWERUPS: dict[str, dict] = {
    "streak_freeze": {
        "id": "streak_freeze",
        "name": "Streak Freeze",
        "description": "Keep your streak alive if you miss a day",
        "price": 50,
        "icon": "snowflake",
    },
    "double_points": {
        "id": "double_points",
        "name": "Double Points",
        "description": "Earn twice the points on your next daily question",
        "price": 100,
        "icon": "zap",
    },
    "hint": {
        "id": "hint",
        "name": "Hint",
        "description": "Reveal a clue for a tricky question",
        "price": 30,
        "icon": "lightbulb",
    },
    "second_chance": {
        "id": "second_chance",
        "name": "Second Chance",
        "description": "Retry one wrong answer",
        "price": 75,
        "icon": "shield",
    },
    "extra_time": {
        "id": "extra_time",
        "name": "Extra Time",
        "description": "Add two minutes to a timed exam",
        "price": 40,
        "icon": "plus-circle",
    },
}


def next_streak(current: int, last_activity: Optional[date], today: date, correct: bool) -> int:
    """Streak after answering on `today`.

    Same-day activity leaves the streak alone. A correct answer on the day
    right after the last activity extends it; any other answer starts over
    at 1 (correct) or 0 (incorrect).
    """
    if last_activity is not None:
        gap = (today - last_activity).days
        if gap == 0:
            return current
        if gap == 1 and correct:
            return current + 1
    return 1 if correct else 0


def parse_activity_date(value: str) -> Optional[date]:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None
