from __future__ import annotations

from fastapi import APIRouter, Depends

from familyhub.auth import require_household
from familyhub.context import HouseholdContext
from familyhub.services import rotation_engine, rotation_service
from familyhub import repositories

router = APIRouter()


@router.get("/v1/bootstrap")
async def bootstrap(ctx: HouseholdContext = Depends(require_household)):
    members = await repositories.list_members(ctx.household_id)
    state = await rotation_service.load_rotation(ctx)
    return {
        "user_email": ctx.user_email,
        "user_name": ctx.user_email.split("@")[0].title(),
        "today": ctx.today.isoformat(),
        "members": members,
        "rotation": {
            "week_start": state.week_key,
            "reset_day": state.reset_day,
            "reset_day_name": rotation_engine.day_name(state.reset_day),
            "is_reset_day": rotation_engine.is_reset_day(state.reset_day, ctx.today),
            "attempts_remaining": rotation_engine.attempts_remaining(state.week),
            "has_assignments": bool(state.assignments),
        },
    }
