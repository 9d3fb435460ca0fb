from __future__ import annotations

import logging

from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from familyhub.db import get_engine

logger = logging.getLogger(__name__)

SETTINGS_TABLE = "household_settings"
MEMBERS_TABLE = "family_members"
ROTATION_TASKS_TABLE = "rotation_tasks"
ROTATION_WEEKS_TABLE = "rotation_weeks"
ROTATION_ASSIGNMENTS_TABLE = "rotation_assignments"
SCREEN_TIME_CONFIG_TABLE = "screen_time_config"
SCREEN_TIME_USAGE_TABLE = "screen_time_usage"


async def init_db():
    engine = get_engine()
    async with engine.begin() as conn:
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {SETTINGS_TABLE} (
                    household_id TEXT NOT NULL,
                    key TEXT NOT NULL,
                    value TEXT,
                    PRIMARY KEY (household_id, key)
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {MEMBERS_TABLE} (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    display_name TEXT NOT NULL,
                    role TEXT NOT NULL DEFAULT 'child',
                    icon TEXT,
                    created_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {ROTATION_TASKS_TABLE} (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    icon TEXT,
                    is_active INTEGER DEFAULT 1,
                    sort_order INTEGER DEFAULT 0,
                    created_at TEXT NOT NULL,
                    updated_at TEXT
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {ROTATION_WEEKS_TABLE} (
                    household_id TEXT NOT NULL,
                    week_start TEXT NOT NULL,
                    attempts_used INTEGER DEFAULT 0,
                    adjusted INTEGER DEFAULT 0,
                    note TEXT,
                    rule TEXT,
                    updated_at TEXT,
                    PRIMARY KEY (household_id, week_start)
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {ROTATION_ASSIGNMENTS_TABLE} (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    week_start TEXT NOT NULL,
                    task_id TEXT NOT NULL,
                    member_id TEXT NOT NULL,
                    sort_order INTEGER DEFAULT 0,
                    created_at TEXT NOT NULL
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {SCREEN_TIME_CONFIG_TABLE} (
                    child_id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    weekly_allowance INTEGER,
                    daily_allowance INTEGER,
                    week_reset_day INTEGER DEFAULT 1,
                    hearts_total INTEGER DEFAULT 5,
                    hearts_minutes INTEGER,
                    lives_enabled INTEGER DEFAULT 1,
                    penalty_on_exceed INTEGER DEFAULT 0,
                    updated_at TEXT
                )
                """
            )
        )
        await conn.execute(
            sql_text(
                f"""
                CREATE TABLE IF NOT EXISTS {SCREEN_TIME_USAGE_TABLE} (
                    id TEXT PRIMARY KEY,
                    household_id TEXT NOT NULL,
                    child_id TEXT NOT NULL,
                    minutes INTEGER NOT NULL,
                    occurred_at TEXT NOT NULL,
                    source TEXT NOT NULL DEFAULT 'manual'
                )
                """
            )
        )

    async def ensure_column(table_name: str, column_name: str, column_ddl: str) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(
                    sql_text(f"ALTER TABLE {table_name} ADD COLUMN {column_name} {column_ddl}")
                )
        except SQLAlchemyError:
            logger.debug("Column %s.%s already present", table_name, column_name)

    async def ensure_index(index_sql: str) -> None:
        try:
            async with engine.begin() as conn:
                await conn.execute(sql_text(index_sql))
        except SQLAlchemyError as exc:
            logger.warning("Index creation skipped: %s", exc)

    await ensure_column(SCREEN_TIME_CONFIG_TABLE, "hearts_minutes", "INTEGER")
    await ensure_column(SCREEN_TIME_CONFIG_TABLE, "penalty_on_exceed", "INTEGER DEFAULT 0")

    await ensure_index(
        f"CREATE UNIQUE INDEX IF NOT EXISTS idx_{ROTATION_ASSIGNMENTS_TABLE}_week_task "
        f"ON {ROTATION_ASSIGNMENTS_TABLE} (household_id, week_start, task_id)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{MEMBERS_TABLE}_household "
        f"ON {MEMBERS_TABLE} (household_id, role, created_at)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{ROTATION_TASKS_TABLE}_household "
        f"ON {ROTATION_TASKS_TABLE} (household_id, is_active, sort_order)"
    )
    await ensure_index(
        f"CREATE INDEX IF NOT EXISTS idx_{SCREEN_TIME_USAGE_TABLE}_child_time "
        f"ON {SCREEN_TIME_USAGE_TABLE} (child_id, occurred_at)"
    )
