from __future__ import annotations

from fastapi import APIRouter, Depends

from familyhub.auth import require_household
from familyhub.context import HouseholdContext
from familyhub.errors import ValidationFailed
from familyhub.schemas import ResetDayPayload, DefaultAllowancePayload
from familyhub.services import rotation_engine
from familyhub import repositories

router = APIRouter()


@router.get("/v1/settings/rotation-reset-day")
async def get_rotation_reset_day(ctx: HouseholdContext = Depends(require_household)):
    day_value = await repositories.get_rotation_reset_day(ctx.household_id)
    return {"day": day_value, "name": rotation_engine.day_name(day_value)}


@router.put("/v1/settings/rotation-reset-day")
async def set_rotation_reset_day(payload: ResetDayPayload, ctx: HouseholdContext = Depends(require_household)):
    if not (0 <= payload.day <= 6):
        raise ValidationFailed("Invalid reset day index", field="day")
    await repositories.set_rotation_reset_day(ctx.household_id, payload.day)
    return {"ok": True, "day": payload.day, "name": rotation_engine.day_name(payload.day)}


@router.get("/v1/settings/screen-time-default")
async def get_screen_time_default(ctx: HouseholdContext = Depends(require_household)):
    return {"daily_minutes": await repositories.get_default_daily_allowance(ctx.household_id)}


@router.put("/v1/settings/screen-time-default")
async def set_screen_time_default(payload: DefaultAllowancePayload, ctx: HouseholdContext = Depends(require_household)):
    if payload.daily_minutes <= 0:
        raise ValidationFailed("Default allowance must be greater than 0.", field="daily_minutes")
    await repositories.set_default_daily_allowance(ctx.household_id, payload.daily_minutes)
    return {"ok": True}
