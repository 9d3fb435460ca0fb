from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from familyhub.auth import require_household
from familyhub.context import HouseholdContext
from familyhub.errors import HubError, NotFound, ValidationFailed
from familyhub.schemas import ManualAssignmentsPayload, RotationTaskCreate, RotationTaskPatch
from familyhub.services import rotation_service
from familyhub import repositories

logger = logging.getLogger(__name__)

router = APIRouter()


def _clean_task_name(value: str | None) -> str:
    name = (value or "").strip()
    if not name:
        raise ValidationFailed("Please enter a task name.", field="name")
    return name


@router.get("/v1/rotation/tasks")
async def list_rotation_tasks(ctx: HouseholdContext = Depends(require_household)):
    return {"items": await repositories.list_rotation_tasks(ctx.household_id)}


@router.post("/v1/rotation/tasks")
async def create_rotation_task(payload: RotationTaskCreate, ctx: HouseholdContext = Depends(require_household)):
    name = _clean_task_name(payload.name)
    return await repositories.create_rotation_task(ctx.household_id, name, payload.icon)


@router.patch("/v1/rotation/tasks/{task_id}")
async def patch_rotation_task(
    task_id: str,
    payload: RotationTaskPatch,
    ctx: HouseholdContext = Depends(require_household),
):
    patch = payload.model_dump(exclude_unset=True)
    if "name" in patch:
        patch["name"] = _clean_task_name(patch["name"])
    if not await repositories.get_rotation_task(ctx.household_id, task_id):
        raise NotFound("Task not found.")
    return await repositories.update_rotation_task(ctx.household_id, task_id, patch)


@router.delete("/v1/rotation/tasks/{task_id}")
async def delete_rotation_task(task_id: str, ctx: HouseholdContext = Depends(require_household)):
    if not await repositories.get_rotation_task(ctx.household_id, task_id):
        raise NotFound("Task not found.")
    await repositories.delete_rotation_task(ctx.household_id, task_id)
    return {"ok": True}


@router.get("/v1/rotation/current")
async def current_rotation(ctx: HouseholdContext = Depends(require_household)):
    return await rotation_service.ensure_current_rotation(ctx)


@router.post("/v1/rotation/reroll")
async def reroll_rotation(ctx: HouseholdContext = Depends(require_household)):
    try:
        return await rotation_service.reroll_rotation(ctx)
    except HubError:
        raise
    except Exception as exc:
        logger.exception("Failed to re-roll rotation: %s", exc)
        raise HTTPException(status_code=500, detail="Internal error")


@router.put("/v1/rotation/assignments")
async def save_assignments(payload: ManualAssignmentsPayload, ctx: HouseholdContext = Depends(require_household)):
    try:
        return await rotation_service.save_manual_assignments(ctx, payload.assignments, payload.note, payload.rule)
    except HubError:
        raise
    except Exception as exc:
        logger.exception("Failed to save rotation assignments: %s", exc)
        raise HTTPException(status_code=500, detail="Internal error")
