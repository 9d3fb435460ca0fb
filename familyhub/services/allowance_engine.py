"""Screen-time budget rules.

A child's weekly allowance (minutes) is split into ``hearts_total`` hearts.
Consumption is never stored: it is the sum of usage events inside the
current allowance week, divided by the minutes one heart is worth. A
positive per-child ``hearts_minutes`` overrides the computed split.
``week_reset_day`` uses ISO numbering (1=Monday .. 7=Sunday).
"""

from __future__ import annotations

import math
from datetime import datetime

from familyhub.errors import ValidationFailed
from familyhub.schemas import HeartsStatus, ScreenTimeConfig
from familyhub.services.rotation_engine import week_window

DEFAULT_DAILY_ALLOWANCE = 60
DEFAULT_HEARTS_TOTAL = 5
DEFAULT_WEEK_RESET_DAY = 1


def resolve_weekly_allowance(config: ScreenTimeConfig | None, fallback_daily_minutes: int | None = None) -> int:
    if config is not None:
        if config.weekly_allowance and config.weekly_allowance > 0:
            return config.weekly_allowance
        if config.daily_allowance and config.daily_allowance > 0:
            return config.daily_allowance * 7
    return (fallback_daily_minutes or DEFAULT_DAILY_ALLOWANCE) * 7


def resolve_hearts_total(hearts_total: int | None) -> int:
    return max(1, DEFAULT_HEARTS_TOTAL if hearts_total is None else hearts_total)


def resolve_week_reset_day(value: int | None) -> int:
    if value is None or not 1 <= value <= 7:
        return DEFAULT_WEEK_RESET_DAY
    return value


def minutes_per_heart(weekly_allowance_minutes: int, hearts_total: int) -> int:
    return math.ceil(weekly_allowance_minutes / max(1, hearts_total))


def effective_minutes_per_heart(weekly_allowance_minutes: int, hearts_total: int, hearts_minutes: int | None) -> int:
    """A positive per-child ``hearts_minutes`` replaces the computed split."""
    if hearts_minutes and hearts_minutes > 0:
        return hearts_minutes
    return max(1, minutes_per_heart(weekly_allowance_minutes, hearts_total))


def legacy_daily_allowance(weekly_allowance_minutes: int) -> int:
    return math.ceil(weekly_allowance_minutes / 7)


def allowance_window(now: datetime, week_reset_day: int | None) -> tuple[datetime, datetime]:
    """[start, end) of the allowance week containing ``now``."""
    iso_day = resolve_week_reset_day(week_reset_day)
    return week_window(now, iso_day % 7)


def hearts_consumed(used_minutes: int, minutes_for_one_heart: int) -> int:
    if used_minutes <= 0:
        return 0
    return used_minutes // max(1, minutes_for_one_heart)


def hearts_status(
    config: ScreenTimeConfig,
    used_minutes: int,
    now: datetime,
    fallback_daily_minutes: int | None = None,
) -> HeartsStatus:
    weekly = resolve_weekly_allowance(config, fallback_daily_minutes)
    total = resolve_hearts_total(config.hearts_total)
    per_heart = effective_minutes_per_heart(weekly, total, config.hearts_minutes)
    consumed = min(total, hearts_consumed(used_minutes, per_heart))
    reset = resolve_week_reset_day(config.week_reset_day)
    start, end = allowance_window(now, reset)
    return HeartsStatus(
        child_id=config.child_id,
        weekly_allowance=weekly,
        hearts_total=total,
        minutes_per_heart=per_heart,
        hearts_minutes_override=bool(config.hearts_minutes and config.hearts_minutes > 0),
        used_minutes=used_minutes,
        hearts_consumed=consumed,
        hearts_remaining=total - consumed,
        minutes_remaining=max(0, weekly - used_minutes),
        lives_enabled=config.lives_enabled,
        penalty_on_exceed=config.penalty_on_exceed,
        over_budget=used_minutes > weekly,
        week_reset_day=reset,
        window_start=start,
        window_end=end,
    )


def _is_positive_int(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def validate_config(
    weekly_allowance: int | None = None,
    hearts_total: int | None = None,
    week_reset_day: int | None = None,
    hearts_minutes: int | None = None,
) -> None:
    """Check only the fields being saved."""
    if weekly_allowance is not None and not _is_positive_int(weekly_allowance):
        raise ValidationFailed("Weekly allowance must be greater than 0.", field="weekly_allowance")
    if hearts_total is not None and not _is_positive_int(hearts_total):
        raise ValidationFailed("Number of hearts must be greater than 0.", field="hearts_total")
    if hearts_minutes is not None and not _is_positive_int(hearts_minutes):
        raise ValidationFailed("Minutes per heart must be greater than 0.", field="hearts_minutes")
    if week_reset_day is not None and not (isinstance(week_reset_day, int) and 1 <= week_reset_day <= 7):
        raise ValidationFailed("Reset day must be between 1 (Monday) and 7 (Sunday).", field="week_reset_day")


def validate_usage_minutes(minutes) -> int:
    if not _is_positive_int(minutes):
        raise ValidationFailed("Minutes must be a positive whole number.", field="minutes")
    return minutes
