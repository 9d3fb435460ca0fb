from __future__ import annotations

from fastapi import APIRouter, Depends

from familyhub.auth import require_household
from familyhub.context import HouseholdContext
from familyhub.schemas import ScreenTimeConfigPatch, UsagePayload
from familyhub.services import screen_time_service

router = APIRouter()


@router.get("/v1/screen-time/children")
async def list_children(ctx: HouseholdContext = Depends(require_household)):
    return {"items": await screen_time_service.list_children_overview(ctx)}


@router.get("/v1/screen-time/{child_id}/config")
async def get_config(child_id: str, ctx: HouseholdContext = Depends(require_household)):
    return await screen_time_service.get_or_create_config(ctx, child_id)


@router.put("/v1/screen-time/{child_id}/config")
async def save_config(child_id: str, payload: ScreenTimeConfigPatch, ctx: HouseholdContext = Depends(require_household)):
    return await screen_time_service.save_config(ctx, child_id, payload.model_dump(exclude_unset=True))


@router.get("/v1/screen-time/{child_id}/status")
async def get_status(child_id: str, ctx: HouseholdContext = Depends(require_household)):
    return await screen_time_service.get_status(ctx, child_id)


@router.post("/v1/screen-time/{child_id}/usage")
async def add_usage(child_id: str, payload: UsagePayload, ctx: HouseholdContext = Depends(require_household)):
    event = await screen_time_service.add_manual_usage(ctx, child_id, payload.minutes)
    status = await screen_time_service.get_status(ctx, child_id)
    return {"event": event, "status": status}


@router.get("/v1/screen-time/{child_id}/usage")
async def list_usage(child_id: str, ctx: HouseholdContext = Depends(require_household)):
    return {"items": await screen_time_service.list_usage(ctx, child_id)}
