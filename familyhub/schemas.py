from __future__ import annotations

from datetime import date, datetime
from typing import Optional, List, Literal

from pydantic import BaseModel, Field


MemberRole = Literal["child", "adult"]


# Records read from the database, validated before they reach the engines.


class FamilyMember(BaseModel):
    id: str
    display_name: str
    role: MemberRole = "child"
    icon: Optional[str] = None


class RotationTask(BaseModel):
    id: str
    name: str
    icon: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0


class RotationWeek(BaseModel):
    week_start: date
    attempts_used: int = Field(0, ge=0)
    adjusted: bool = False
    note: Optional[str] = None
    rule: Optional[str] = None


class RotationAssignment(BaseModel):
    task_id: str
    member_id: str
    sort_order: int = 0


class ScreenTimeConfig(BaseModel):
    child_id: str
    weekly_allowance: Optional[int] = None
    daily_allowance: Optional[int] = None
    week_reset_day: Optional[int] = None
    hearts_total: Optional[int] = None
    lives_enabled: bool = True
    hearts_minutes: Optional[int] = None
    penalty_on_exceed: bool = False


class UsageEvent(BaseModel):
    id: str
    child_id: str
    minutes: int
    occurred_at: datetime
    source: str = "manual"


class HeartsStatus(BaseModel):
    child_id: str
    weekly_allowance: int
    hearts_total: int
    minutes_per_heart: int
    hearts_minutes_override: bool
    used_minutes: int
    hearts_consumed: int
    hearts_remaining: int
    minutes_remaining: int
    lives_enabled: bool
    penalty_on_exceed: bool
    over_budget: bool
    week_reset_day: int
    window_start: datetime
    window_end: datetime


# Request payloads.


class MemberCreate(BaseModel):
    display_name: str
    role: MemberRole = "child"
    icon: Optional[str] = None


class MemberPatch(BaseModel):
    display_name: Optional[str] = None
    role: Optional[MemberRole] = None
    icon: Optional[str] = None


class RotationTaskCreate(BaseModel):
    name: str
    icon: str = "🍽️"


class RotationTaskPatch(BaseModel):
    name: Optional[str] = None
    icon: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None


class AssignmentPair(BaseModel):
    task_id: str
    member_id: str


class ManualAssignmentsPayload(BaseModel):
    assignments: List[AssignmentPair] = Field(default_factory=list)
    note: Optional[str] = None
    rule: Optional[str] = None


class ResetDayPayload(BaseModel):
    day: int


class DefaultAllowancePayload(BaseModel):
    daily_minutes: int


class ScreenTimeConfigPatch(BaseModel):
    weekly_allowance: Optional[int] = None
    week_reset_day: Optional[int] = None
    hearts_total: Optional[int] = None
    lives_enabled: Optional[bool] = None
    hearts_minutes: Optional[int] = None
    penalty_on_exceed: Optional[bool] = None


class UsagePayload(BaseModel):
    minutes: int
