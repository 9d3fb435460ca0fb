"""Constants and seeding helpers shared by the test modules."""

from datetime import datetime

from familyhub import repositories

SECRET = "test-secret"
HOUSEHOLD = "parent@example.com"

# 2026-10-12 is a Monday.
MONDAY = datetime(2026, 10, 12, 9, 30)
WEDNESDAY = datetime(2026, 10, 14, 18, 0)
NEXT_MONDAY = datetime(2026, 10, 19, 8, 0)

TASK_NAMES = ["Cuisine", "Salle de bain", "Animaux"]


async def seed_household(household_id: str = HOUSEHOLD, children=("A", "B"), tasks=TASK_NAMES) -> dict:
    """Create child members and rotation tasks, return their rows."""
    members = [await repositories.create_member(household_id, name, "child") for name in children]
    task_rows = [await repositories.create_rotation_task(household_id, name, "🍽️") for name in tasks]
    return {"members": members, "tasks": task_rows}
