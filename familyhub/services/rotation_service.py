from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field
from datetime import datetime

from familyhub import repositories
from familyhub.context import HouseholdContext
from familyhub.errors import ValidationFailed
from familyhub.schemas import (
    AssignmentPair,
    FamilyMember,
    RotationAssignment,
    RotationTask,
    RotationWeek,
)
from familyhub.services import rotation_engine

logger = logging.getLogger(__name__)


@dataclass
class RotationState:
    reset_day: int
    week_start: datetime
    week_end: datetime
    tasks: list[RotationTask]
    members: list[FamilyMember]
    week: RotationWeek | None
    assignments: list[RotationAssignment] = field(default_factory=list)

    @property
    def week_key(self) -> str:
        return self.week_start.date().isoformat()

    @property
    def active_tasks(self) -> list[RotationTask]:
        return [task for task in self.tasks if task.is_active]

    @property
    def children(self) -> list[FamilyMember]:
        return [member for member in self.members if member.role == "child"]


async def load_rotation(ctx: HouseholdContext) -> RotationState:
    reset_day = await repositories.get_rotation_reset_day(ctx.household_id)
    start, end = rotation_engine.week_window(ctx.today, reset_day)
    week_key = start.date().isoformat()
    tasks = [RotationTask.model_validate(row) for row in await repositories.list_rotation_tasks(ctx.household_id)]
    members = [FamilyMember.model_validate(row) for row in await repositories.list_members(ctx.household_id)]
    week_row = await repositories.get_rotation_week(ctx.household_id, week_key)
    rows = await repositories.list_assignments(ctx.household_id, week_key)
    return RotationState(
        reset_day=reset_day,
        week_start=start,
        week_end=end,
        tasks=tasks,
        members=members,
        week=RotationWeek.model_validate(week_row) if week_row else None,
        assignments=rotation_engine.dedupe_assignments(RotationAssignment.model_validate(row) for row in rows),
    )


async def persist(
    household_id: str,
    week_start: datetime,
    assignments: list[RotationAssignment],
    week: RotationWeek,
) -> None:
    await repositories.replace_assignments(
        household_id,
        week_start.date().isoformat(),
        [assignment.model_dump() for assignment in assignments],
        week.model_dump(include={"attempts_used", "adjusted", "note", "rule"}),
    )


def render_rotation(state: RotationState, ctx: HouseholdContext) -> dict:
    tasks_by_id = {task.id: task for task in state.tasks}
    members_by_id = {member.id: member for member in state.members}
    items = []
    for assignment in state.assignments:
        task = tasks_by_id.get(assignment.task_id)
        member = members_by_id.get(assignment.member_id)
        items.append(
            {
                "task_id": assignment.task_id,
                "task_name": task.name if task else None,
                "task_icon": task.icon if task else None,
                "member_id": assignment.member_id,
                "member_name": member.display_name if member else None,
                "member_icon": member.icon if member else None,
                "sort_order": assignment.sort_order,
            }
        )
    week = state.week
    return {
        "week_start": state.week_key,
        "week_end": state.week_end.date().isoformat(),
        "reset_day": state.reset_day,
        "reset_day_name": rotation_engine.day_name(state.reset_day),
        "is_reset_day": rotation_engine.is_reset_day(state.reset_day, ctx.today),
        "attempts_used": week.attempts_used if week else 0,
        "attempts_remaining": rotation_engine.attempts_remaining(week),
        "can_reroll": rotation_engine.can_rotate(week, state.reset_day, ctx.today),
        "adjusted": week.adjusted if week else False,
        "note": week.note if week else None,
        "rule": week.rule if week else None,
        "assignments": items,
    }


async def ensure_current_rotation(ctx: HouseholdContext, rng: random.Random | None = None) -> dict:
    """Return this week's rotation, generating one first when the week is still empty.

    The automatic generation does not use up a re-roll attempt.
    """
    state = await load_rotation(ctx)
    if not state.assignments and state.active_tasks and state.children:
        assignments = rotation_engine.generate_assignments(state.active_tasks, state.children, rng=rng)
        week = state.week or RotationWeek(week_start=state.week_start.date())
        week = week.model_copy(update={"adjusted": False})
        await persist(ctx.household_id, state.week_start, assignments, week)
        logger.info(
            "Generated rotation for %s week %s (%d tasks, %d members)",
            ctx.household_id,
            state.week_key,
            len(assignments),
            len(state.children),
        )
        state = await load_rotation(ctx)
    return render_rotation(state, ctx)


async def reroll_rotation(ctx: HouseholdContext, rng: random.Random | None = None) -> dict:
    state = await load_rotation(ctx)
    rotation_engine.check_rotate(state.week, state.reset_day, ctx.today)
    rotation_engine.require_rotation_inputs(state.active_tasks, state.children)
    assignments = rotation_engine.generate_assignments(state.active_tasks, state.children, rng=rng)
    current = state.week or RotationWeek(week_start=state.week_start.date())
    week = current.model_copy(update={"attempts_used": current.attempts_used + 1, "adjusted": False})
    await persist(ctx.household_id, state.week_start, assignments, week)
    logger.info(
        "Re-rolled rotation for %s week %s (attempt %d/%d)",
        ctx.household_id,
        state.week_key,
        week.attempts_used,
        rotation_engine.MAX_ROTATION_ATTEMPTS,
    )
    return render_rotation(await load_rotation(ctx), ctx)


async def save_manual_assignments(
    ctx: HouseholdContext,
    pairs: list[AssignmentPair],
    note: str | None = None,
    rule: str | None = None,
) -> dict:
    duplicates = rotation_engine.find_duplicate_tasks(pair.task_id for pair in pairs)
    if duplicates:
        raise ValidationFailed("Some tasks are assigned more than once.", field="assignments")
    state = await load_rotation(ctx)
    task_ids = {task.id for task in state.tasks}
    member_ids = {member.id for member in state.members}
    for pair in pairs:
        if pair.task_id not in task_ids:
            raise ValidationFailed(f"Unknown task {pair.task_id}.", field="assignments")
        if pair.member_id not in member_ids:
            raise ValidationFailed(f"Unknown member {pair.member_id}.", field="assignments")
    assignments = [
        RotationAssignment(task_id=pair.task_id, member_id=pair.member_id, sort_order=index)
        for index, pair in enumerate(pairs)
    ]
    current = state.week or RotationWeek(week_start=state.week_start.date())
    update = {"adjusted": True}
    if note is not None:
        update["note"] = note.strip() or None
    if rule is not None:
        update["rule"] = rule.strip() or None
    await persist(ctx.household_id, state.week_start, assignments, current.model_copy(update=update))
    logger.info("Saved %d manual assignments for %s week %s", len(assignments), ctx.household_id, state.week_key)
    return render_rotation(await load_rotation(ctx), ctx)
