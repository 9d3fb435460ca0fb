from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from familyhub.auth import require_household
from familyhub.context import HouseholdContext
from familyhub.errors import NotFound, PreconditionFailed, ValidationFailed
from familyhub.schemas import MemberCreate, MemberPatch
from familyhub import repositories

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_FAMILY_MEMBERS = 4


def _clean_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationFailed("Please enter a name.", field="display_name")
    return name


@router.get("/v1/members")
async def list_members(ctx: HouseholdContext = Depends(require_household)):
    return {"items": await repositories.list_members(ctx.household_id)}


@router.post("/v1/members")
async def create_member(payload: MemberCreate, ctx: HouseholdContext = Depends(require_household)):
    name = _clean_name(payload.display_name)
    if await repositories.count_members(ctx.household_id) >= MAX_FAMILY_MEMBERS:
        raise PreconditionFailed(f"Member limit reached ({MAX_FAMILY_MEMBERS}).")
    record = await repositories.create_member(ctx.household_id, name, payload.role, payload.icon)
    logger.info("Added %s member %s to %s", payload.role, record["id"], ctx.household_id)
    return record


@router.patch("/v1/members/{member_id}")
async def patch_member(member_id: str, payload: MemberPatch, ctx: HouseholdContext = Depends(require_household)):
    patch = payload.model_dump(exclude_unset=True)
    if "display_name" in patch:
        patch["display_name"] = _clean_name(patch["display_name"])
    if not await repositories.get_member(ctx.household_id, member_id):
        raise NotFound("Member not found.")
    return await repositories.update_member(ctx.household_id, member_id, patch)


@router.delete("/v1/members/{member_id}")
async def delete_member(member_id: str, ctx: HouseholdContext = Depends(require_household)):
    if not await repositories.get_member(ctx.household_id, member_id):
        raise NotFound("Member not found.")
    await repositories.delete_member(ctx.household_id, member_id)
    return {"ok": True}
