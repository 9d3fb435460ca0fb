"""Weekly chore rotation rules.

Weekday indexes follow the household settings convention: 0=Sunday .. 6=Saturday.
A rotation week starts at local midnight on the household reset day, and that
same day is the only one on which a re-roll is accepted.
"""

from __future__ import annotations

import logging
import random
from datetime import date, datetime, timedelta
from typing import Iterable, Sequence

from familyhub.errors import PreconditionFailed
from familyhub.schemas import FamilyMember, RotationAssignment, RotationTask, RotationWeek

logger = logging.getLogger(__name__)

MAX_ROTATION_ATTEMPTS = 3
DEFAULT_RESET_DAY = 1
DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]


def day_name(index: int) -> str:
    if 0 <= index <= 6:
        return DAY_NAMES[index]
    return "-"


def weekday_index(day: date) -> int:
    return day.isoweekday() % 7


def reset_day(value, default: int = DEFAULT_RESET_DAY) -> int:
    try:
        day = int(value)
    except (TypeError, ValueError):
        return default
    return day if 0 <= day <= 6 else default


def is_reset_day(reset_day_value: int, today: date) -> bool:
    return weekday_index(today) == reset_day_value


def week_start(reference: date, reset_day_value: int = DEFAULT_RESET_DAY) -> datetime:
    """Local midnight of the most recent reset day on or before ``reference``.

    With the default reset day this is the Monday of the ISO week: a Sunday
    goes back six days, any other day goes back ``dow - 1`` days.
    """
    day = reference.date() if isinstance(reference, datetime) else reference
    diff = (weekday_index(day) - reset_day_value) % 7
    start = day - timedelta(days=diff)
    return datetime(start.year, start.month, start.day)


def week_window(reference: date, reset_day_value: int = DEFAULT_RESET_DAY) -> tuple[datetime, datetime]:
    start = week_start(reference, reset_day_value)
    return start, start + timedelta(days=7)


def attempts_remaining(week: RotationWeek | None) -> int:
    used = week.attempts_used if week else 0
    return max(0, MAX_ROTATION_ATTEMPTS - used)


def require_rotation_inputs(tasks: Sequence[RotationTask], members: Sequence[FamilyMember]) -> None:
    if not [task for task in tasks if task.is_active] or not members:
        raise PreconditionFailed("Add tasks and members first")


def generate_assignments(
    tasks: Sequence[RotationTask],
    members: Sequence[FamilyMember],
    rng: random.Random | None = None,
) -> list[RotationAssignment]:
    """Shuffle the active tasks, then deal them round-robin to ``members``.

    Every task gets exactly one assignee. An empty task or member list yields
    an empty set; callers use ``require_rotation_inputs`` to report it.
    """
    active = [task for task in tasks if task.is_active]
    if not active or not members:
        return []
    shuffled = list(active)
    if rng is None:
        random.shuffle(shuffled)
    else:
        rng.shuffle(shuffled)
    return [
        RotationAssignment(task_id=task.id, member_id=members[index % len(members)].id, sort_order=index)
        for index, task in enumerate(shuffled)
    ]


def can_rotate(week: RotationWeek | None, reset_day_value: int, today: date) -> bool:
    return is_reset_day(reset_day_value, today) and attempts_remaining(week) > 0


def check_rotate(week: RotationWeek | None, reset_day_value: int, today: date) -> None:
    if not is_reset_day(reset_day_value, today):
        raise PreconditionFailed(f"Re-roll available on {day_name(reset_day_value)}")
    if attempts_remaining(week) <= 0:
        raise PreconditionFailed(f"{MAX_ROTATION_ATTEMPTS} re-rolls already used this week")


def find_duplicate_tasks(task_ids: Iterable[str]) -> list[str]:
    seen = set()
    duplicates = []
    for task_id in task_ids:
        if task_id in seen and task_id not in duplicates:
            duplicates.append(task_id)
        seen.add(task_id)
    return duplicates


def dedupe_assignments(rows: Iterable[RotationAssignment]) -> list[RotationAssignment]:
    """Keep the first assignment seen for each task."""
    kept: list[RotationAssignment] = []
    seen = set()
    for row in rows:
        if row.task_id in seen:
            logger.warning("Dropping duplicate assignment for task %s (member %s)", row.task_id, row.member_id)
            continue
        seen.add(row.task_id)
        kept.append(row)
    return kept
