from __future__ import annotations

import logging

from familyhub import repositories
from familyhub.context import HouseholdContext
from familyhub.errors import NotFound
from familyhub.schemas import FamilyMember, HeartsStatus, ScreenTimeConfig, UsageEvent
from familyhub.services import allowance_engine
from familyhub.settings import get_settings

logger = logging.getLogger(__name__)


async def require_child(ctx: HouseholdContext, child_id: str) -> FamilyMember:
    row = await repositories.get_member(ctx.household_id, child_id)
    if not row or row.get("role") != "child":
        raise NotFound("Child not found.")
    return FamilyMember.model_validate(row)


async def get_or_create_config(ctx: HouseholdContext, child_id: str) -> ScreenTimeConfig:
    await require_child(ctx, child_id)
    row = await repositories.get_screen_time_config(ctx.household_id, child_id)
    if row:
        return ScreenTimeConfig.model_validate(row)
    default_daily = await repositories.get_default_daily_allowance(ctx.household_id)
    weekly = default_daily * 7
    row = await repositories.upsert_screen_time_config(
        ctx.household_id,
        child_id,
        {
            "weekly_allowance": weekly,
            "daily_allowance": allowance_engine.legacy_daily_allowance(weekly),
            "week_reset_day": allowance_engine.DEFAULT_WEEK_RESET_DAY,
            "hearts_total": get_settings().screen_time_default_hearts,
            "hearts_minutes": None,
            "lives_enabled": True,
            "penalty_on_exceed": False,
        },
    )
    logger.info("Created screen time config for child %s (%d min/week)", child_id, weekly)
    return ScreenTimeConfig.model_validate(row)


async def save_config(ctx: HouseholdContext, child_id: str, patch: dict) -> ScreenTimeConfig:
    # An explicit null hearts_minutes clears the override; other nulls are ignored.
    fields = {key: value for key, value in patch.items() if value is not None or key == "hearts_minutes"}
    allowance_engine.validate_config(
        weekly_allowance=fields.get("weekly_allowance"),
        hearts_total=fields.get("hearts_total"),
        week_reset_day=fields.get("week_reset_day"),
        hearts_minutes=fields.get("hearts_minutes"),
    )
    await get_or_create_config(ctx, child_id)
    if "weekly_allowance" in fields:
        fields["daily_allowance"] = allowance_engine.legacy_daily_allowance(fields["weekly_allowance"])
    row = await repositories.upsert_screen_time_config(ctx.household_id, child_id, fields)
    return ScreenTimeConfig.model_validate(row)


async def get_status(ctx: HouseholdContext, child_id: str) -> HeartsStatus:
    config = await get_or_create_config(ctx, child_id)
    fallback_daily = await repositories.get_default_daily_allowance(ctx.household_id)
    start, end = allowance_engine.allowance_window(ctx.now, config.week_reset_day)
    used = await repositories.sum_usage_minutes(ctx.household_id, child_id, start, end)
    return allowance_engine.hearts_status(config, used, ctx.now, fallback_daily)


async def add_manual_usage(ctx: HouseholdContext, child_id: str, minutes) -> UsageEvent:
    minutes = allowance_engine.validate_usage_minutes(minutes)
    await require_child(ctx, child_id)
    row = await repositories.insert_usage_event(ctx.household_id, child_id, minutes, ctx.now)
    logger.info("Logged %d screen time minutes for child %s", minutes, child_id)
    return UsageEvent.model_validate(row)


async def list_usage(ctx: HouseholdContext, child_id: str) -> list[UsageEvent]:
    config = await get_or_create_config(ctx, child_id)
    start, end = allowance_engine.allowance_window(ctx.now, config.week_reset_day)
    rows = await repositories.list_usage_events(ctx.household_id, child_id, start, end)
    return [UsageEvent.model_validate(row) for row in rows]


async def list_children_overview(ctx: HouseholdContext) -> list[dict]:
    items = []
    for row in await repositories.list_members(ctx.household_id, role="child"):
        child = FamilyMember.model_validate(row)
        status = await get_status(ctx, child.id)
        items.append({"child": child.model_dump(), "status": status.model_dump()})
    return items
