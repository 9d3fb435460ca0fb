from __future__ import annotations

from datetime import datetime
from uuid import uuid4

from sqlalchemy import text as sql_text

from familyhub.db import get_sessionmaker
from familyhub.db_init import (
    SETTINGS_TABLE,
    MEMBERS_TABLE,
    ROTATION_TASKS_TABLE,
    ROTATION_WEEKS_TABLE,
    ROTATION_ASSIGNMENTS_TABLE,
    SCREEN_TIME_CONFIG_TABLE,
    SCREEN_TIME_USAGE_TABLE,
)
from familyhub.settings import get_settings

ROTATION_RESET_DAY_KEY = "rotation_reset_day"
DEFAULT_DAILY_ALLOWANCE_KEY = "screen_time_default_allowance"

MEMBER_COLUMNS = ["id", "household_id", "display_name", "role", "icon", "created_at"]
TASK_COLUMNS = ["id", "household_id", "name", "icon", "is_active", "sort_order", "created_at", "updated_at"]
CONFIG_COLUMNS = [
    "child_id",
    "household_id",
    "weekly_allowance",
    "daily_allowance",
    "week_reset_day",
    "hearts_total",
    "hearts_minutes",
    "lives_enabled",
    "penalty_on_exceed",
    "updated_at",
]


def _new_id() -> str:
    return uuid4().hex


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


def _as_iso(value) -> str:
    if hasattr(value, "isoformat"):
        if isinstance(value, datetime):
            return value.isoformat(timespec="seconds")
        return value.isoformat()
    return str(value)


def _parse_int(value, default=None):
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


# Household settings


async def get_setting(household_id: str, key: str) -> str | None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(f"SELECT value FROM {SETTINGS_TABLE} WHERE household_id = :household_id AND key = :key"),
            {"household_id": household_id, "key": key},
        )).fetchone()
    return row[0] if row else None


async def set_setting(household_id: str, key: str, value: str) -> None:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"INSERT INTO {SETTINGS_TABLE} (household_id, key, value) VALUES (:household_id, :key, :value) "
                "ON CONFLICT(household_id, key) DO UPDATE SET value = EXCLUDED.value"
            ),
            {"household_id": household_id, "key": key, "value": value},
        )
        await session.commit()


async def get_rotation_reset_day(household_id: str) -> int:
    default = get_settings().rotation_default_reset_day
    value = _parse_int(await get_setting(household_id, ROTATION_RESET_DAY_KEY), default)
    return value if 0 <= value <= 6 else default


async def set_rotation_reset_day(household_id: str, day_index: int) -> None:
    await set_setting(household_id, ROTATION_RESET_DAY_KEY, str(int(day_index)))


async def get_default_daily_allowance(household_id: str) -> int:
    default = get_settings().screen_time_default_daily_minutes
    value = _parse_int(await get_setting(household_id, DEFAULT_DAILY_ALLOWANCE_KEY), default)
    return value if value > 0 else default


async def set_default_daily_allowance(household_id: str, minutes: int) -> None:
    await set_setting(household_id, DEFAULT_DAILY_ALLOWANCE_KEY, str(int(minutes)))


# Family members


async def list_members(household_id: str, role: str | None = None) -> list[dict]:
    params = {"household_id": household_id}
    role_filter = ""
    if role:
        role_filter = "AND role = :role"
        params["role"] = role
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT {', '.join(MEMBER_COLUMNS)}
                FROM {MEMBERS_TABLE}
                WHERE household_id = :household_id {role_filter}
                ORDER BY created_at ASC, id ASC
                """
            ),
            params,
        )).mappings().all()
    return [dict(row) for row in rows]


async def get_member(household_id: str, member_id: str) -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(
                f"SELECT {', '.join(MEMBER_COLUMNS)} FROM {MEMBERS_TABLE} "
                "WHERE household_id = :household_id AND id = :id"
            ),
            {"household_id": household_id, "id": member_id},
        )).mappings().fetchone()
    return dict(row) if row else {}


async def count_members(household_id: str) -> int:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        value = (await session.execute(
            sql_text(f"SELECT COUNT(*) FROM {MEMBERS_TABLE} WHERE household_id = :household_id"),
            {"household_id": household_id},
        )).scalar()
    return int(value or 0)


async def create_member(household_id: str, display_name: str, role: str, icon: str | None = None) -> dict:
    record = {
        "id": _new_id(),
        "household_id": household_id,
        "display_name": display_name,
        "role": role,
        "icon": icon,
        "created_at": _now_iso(),
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {MEMBERS_TABLE} (id, household_id, display_name, role, icon, created_at)
                VALUES (:id, :household_id, :display_name, :role, :icon, :created_at)
                """
            ),
            record,
        )
        await session.commit()
    return record


async def update_member(household_id: str, member_id: str, patch: dict) -> dict:
    allowed = {"display_name", "role", "icon"}
    updates = []
    params = {"household_id": household_id, "id": member_id}
    for key, value in patch.items():
        if key not in allowed:
            continue
        updates.append(f"{key} = :{key}")
        params[key] = value
    if updates:
        session_factory = get_sessionmaker()
        async with session_factory() as session:
            await session.execute(
                sql_text(
                    f"UPDATE {MEMBERS_TABLE} SET {', '.join(updates)} "
                    "WHERE household_id = :household_id AND id = :id"
                ),
                params,
            )
            await session.commit()
    return await get_member(household_id, member_id)


async def delete_member(household_id: str, member_id: str) -> None:
    params = {"household_id": household_id, "member_id": member_id}
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"DELETE FROM {ROTATION_ASSIGNMENTS_TABLE} "
                "WHERE household_id = :household_id AND member_id = :member_id"
            ),
            params,
        )
        await session.execute(
            sql_text(
                f"DELETE FROM {SCREEN_TIME_USAGE_TABLE} WHERE household_id = :household_id AND child_id = :member_id"
            ),
            params,
        )
        await session.execute(
            sql_text(
                f"DELETE FROM {SCREEN_TIME_CONFIG_TABLE} WHERE household_id = :household_id AND child_id = :member_id"
            ),
            params,
        )
        await session.execute(
            sql_text(f"DELETE FROM {MEMBERS_TABLE} WHERE household_id = :household_id AND id = :member_id"),
            params,
        )
        await session.commit()


# Rotation tasks


async def list_rotation_tasks(household_id: str, active_only: bool = False) -> list[dict]:
    active_filter = "AND is_active = 1" if active_only else ""
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT {', '.join(TASK_COLUMNS)}
                FROM {ROTATION_TASKS_TABLE}
                WHERE household_id = :household_id {active_filter}
                ORDER BY sort_order ASC, created_at ASC
                """
            ),
            {"household_id": household_id},
        )).mappings().all()
    return [dict(row) for row in rows]


async def get_rotation_task(household_id: str, task_id: str) -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(
                f"SELECT {', '.join(TASK_COLUMNS)} FROM {ROTATION_TASKS_TABLE} "
                "WHERE household_id = :household_id AND id = :id"
            ),
            {"household_id": household_id, "id": task_id},
        )).mappings().fetchone()
    return dict(row) if row else {}


async def create_rotation_task(household_id: str, name: str, icon: str | None) -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        count = (await session.execute(
            sql_text(f"SELECT COUNT(*) FROM {ROTATION_TASKS_TABLE} WHERE household_id = :household_id"),
            {"household_id": household_id},
        )).scalar()
        now = _now_iso()
        record = {
            "id": _new_id(),
            "household_id": household_id,
            "name": name,
            "icon": icon,
            "is_active": 1,
            "sort_order": int(count or 0),
            "created_at": now,
            "updated_at": now,
        }
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {ROTATION_TASKS_TABLE}
                (id, household_id, name, icon, is_active, sort_order, created_at, updated_at)
                VALUES (:id, :household_id, :name, :icon, :is_active, :sort_order, :created_at, :updated_at)
                """
            ),
            record,
        )
        await session.commit()
    return record


async def update_rotation_task(household_id: str, task_id: str, patch: dict) -> dict:
    allowed = {"name", "icon", "is_active", "sort_order"}
    updates = []
    params = {"household_id": household_id, "id": task_id}
    for key, value in patch.items():
        if key not in allowed:
            continue
        updates.append(f"{key} = :{key}")
        if key == "is_active":
            params[key] = int(bool(value))
        elif key == "sort_order":
            params[key] = _parse_int(value, 0)
        else:
            params[key] = value
    if not updates:
        return await get_rotation_task(household_id, task_id)
    updates.append("updated_at = :updated_at")
    params["updated_at"] = _now_iso()
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"UPDATE {ROTATION_TASKS_TABLE} SET {', '.join(updates)} "
                "WHERE household_id = :household_id AND id = :id"
            ),
            params,
        )
        await session.commit()
    return await get_rotation_task(household_id, task_id)


async def delete_rotation_task(household_id: str, task_id: str) -> None:
    params = {"household_id": household_id, "task_id": task_id}
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"DELETE FROM {ROTATION_ASSIGNMENTS_TABLE} WHERE household_id = :household_id AND task_id = :task_id"
            ),
            params,
        )
        await session.execute(
            sql_text(f"DELETE FROM {ROTATION_TASKS_TABLE} WHERE household_id = :household_id AND id = :task_id"),
            params,
        )
        await session.commit()


# Rotation weeks and assignments


async def get_rotation_week(household_id: str, week_start_iso: str) -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(
                f"""
                SELECT week_start, attempts_used, adjusted, note, rule, updated_at
                FROM {ROTATION_WEEKS_TABLE}
                WHERE household_id = :household_id AND week_start = :week_start
                """
            ),
            {"household_id": household_id, "week_start": week_start_iso},
        )).mappings().fetchone()
    return dict(row) if row else {}


async def list_assignments(household_id: str, week_start_iso: str) -> list[dict]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT task_id, member_id, sort_order, created_at
                FROM {ROTATION_ASSIGNMENTS_TABLE}
                WHERE household_id = :household_id AND week_start = :week_start
                ORDER BY sort_order ASC, created_at ASC
                """
            ),
            {"household_id": household_id, "week_start": week_start_iso},
        )).mappings().all()
    return [dict(row) for row in rows]


async def replace_assignments(household_id: str, week_start_iso: str, rows: list[dict], week_meta: dict) -> None:
    """Delete every assignment for the week, insert ``rows`` and store the week row, in one transaction."""
    now = _now_iso()
    insert_rows = [
        {
            "id": _new_id(),
            "household_id": household_id,
            "week_start": week_start_iso,
            "task_id": row["task_id"],
            "member_id": row["member_id"],
            "sort_order": _parse_int(row.get("sort_order"), index),
            "created_at": now,
        }
        for index, row in enumerate(rows)
    ]
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"DELETE FROM {ROTATION_ASSIGNMENTS_TABLE} "
                "WHERE household_id = :household_id AND week_start = :week_start"
            ),
            {"household_id": household_id, "week_start": week_start_iso},
        )
        if insert_rows:
            await session.execute(
                sql_text(
                    f"""
                    INSERT INTO {ROTATION_ASSIGNMENTS_TABLE}
                    (id, household_id, week_start, task_id, member_id, sort_order, created_at)
                    VALUES (:id, :household_id, :week_start, :task_id, :member_id, :sort_order, :created_at)
                    """
                ),
                insert_rows,
            )
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {ROTATION_WEEKS_TABLE}
                (household_id, week_start, attempts_used, adjusted, note, rule, updated_at)
                VALUES (:household_id, :week_start, :attempts_used, :adjusted, :note, :rule, :updated_at)
                ON CONFLICT(household_id, week_start) DO UPDATE SET
                    attempts_used = EXCLUDED.attempts_used,
                    adjusted = EXCLUDED.adjusted,
                    note = EXCLUDED.note,
                    rule = EXCLUDED.rule,
                    updated_at = EXCLUDED.updated_at
                """
            ),
            {
                "household_id": household_id,
                "week_start": week_start_iso,
                "attempts_used": _parse_int(week_meta.get("attempts_used"), 0),
                "adjusted": int(bool(week_meta.get("adjusted"))),
                "note": week_meta.get("note"),
                "rule": week_meta.get("rule"),
                "updated_at": now,
            },
        )
        await session.commit()


# Screen time


async def get_screen_time_config(household_id: str, child_id: str) -> dict:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        row = (await session.execute(
            sql_text(
                f"SELECT {', '.join(CONFIG_COLUMNS)} FROM {SCREEN_TIME_CONFIG_TABLE} "
                "WHERE household_id = :household_id AND child_id = :child_id"
            ),
            {"household_id": household_id, "child_id": child_id},
        )).mappings().fetchone()
    return dict(row) if row else {}


async def upsert_screen_time_config(household_id: str, child_id: str, fields: dict) -> dict:
    allowed = {
        "weekly_allowance",
        "daily_allowance",
        "week_reset_day",
        "hearts_total",
        "hearts_minutes",
        "lives_enabled",
        "penalty_on_exceed",
    }
    clean = {}
    for key, value in fields.items():
        if key not in allowed:
            continue
        clean[key] = int(bool(value)) if key in {"lives_enabled", "penalty_on_exceed"} else value
    clean["updated_at"] = _now_iso()
    columns = ["child_id", "household_id"] + list(clean.keys())
    placeholders = ", ".join([f":{col}" for col in columns])
    updates = ", ".join([f"{col} = EXCLUDED.{col}" for col in clean.keys()])
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {SCREEN_TIME_CONFIG_TABLE} ({', '.join(columns)})
                VALUES ({placeholders})
                ON CONFLICT(child_id) DO UPDATE SET {updates}
                """
            ),
            {"child_id": child_id, "household_id": household_id, **clean},
        )
        await session.commit()
    return await get_screen_time_config(household_id, child_id)


async def insert_usage_event(
    household_id: str,
    child_id: str,
    minutes: int,
    occurred_at: datetime,
    source: str = "manual",
) -> dict:
    record = {
        "id": _new_id(),
        "household_id": household_id,
        "child_id": child_id,
        "minutes": int(minutes),
        "occurred_at": _as_iso(occurred_at),
        "source": source,
    }
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        await session.execute(
            sql_text(
                f"""
                INSERT INTO {SCREEN_TIME_USAGE_TABLE} (id, household_id, child_id, minutes, occurred_at, source)
                VALUES (:id, :household_id, :child_id, :minutes, :occurred_at, :source)
                """
            ),
            record,
        )
        await session.commit()
    return record


async def list_usage_events(household_id: str, child_id: str, start: datetime, end: datetime) -> list[dict]:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        rows = (await session.execute(
            sql_text(
                f"""
                SELECT id, child_id, minutes, occurred_at, source
                FROM {SCREEN_TIME_USAGE_TABLE}
                WHERE household_id = :household_id
                  AND child_id = :child_id
                  AND occurred_at >= :start
                  AND occurred_at < :end
                ORDER BY occurred_at ASC
                """
            ),
            {"household_id": household_id, "child_id": child_id, "start": _as_iso(start), "end": _as_iso(end)},
        )).mappings().all()
    return [dict(row) for row in rows]


async def sum_usage_minutes(household_id: str, child_id: str, start: datetime, end: datetime) -> int:
    session_factory = get_sessionmaker()
    async with session_factory() as session:
        value = (await session.execute(
            sql_text(
                f"""
                SELECT COALESCE(SUM(minutes), 0)
                FROM {SCREEN_TIME_USAGE_TABLE}
                WHERE household_id = :household_id
                  AND child_id = :child_id
                  AND occurred_at >= :start
                  AND occurred_at < :end
                """
            ),
            {"household_id": household_id, "child_id": child_id, "start": _as_iso(start), "end": _as_iso(end)},
        )).scalar()
    return int(value or 0)
