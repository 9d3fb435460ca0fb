"""Screen-time config and usage against a real (SQLite) database."""

from datetime import datetime

import pytest

from familyhub import repositories
from familyhub.errors import NotFound, ValidationFailed
from familyhub.services import screen_time_service
from tests.helpers import HOUSEHOLD, MONDAY, NEXT_MONDAY, WEDNESDAY

pytestmark = pytest.mark.usefixtures("database")


@pytest.fixture
async def child(database):
    return await repositories.create_member(HOUSEHOLD, "Léa", "child")


class TestConfig:
    async def test_created_with_household_defaults(self, make_ctx, child):
        config = await screen_time_service.get_or_create_config(make_ctx(), child["id"])

        assert config.weekly_allowance == 420
        assert config.daily_allowance == 60
        assert config.hearts_total == 5
        assert config.week_reset_day == 1
        assert config.lives_enabled is True

    async def test_uses_saved_household_default(self, make_ctx, child):
        await repositories.set_default_daily_allowance(HOUSEHOLD, 45)

        config = await screen_time_service.get_or_create_config(make_ctx(), child["id"])

        assert config.weekly_allowance == 315

    async def test_created_once(self, make_ctx, child):
        first = await screen_time_service.get_or_create_config(make_ctx(), child["id"])
        await repositories.set_default_daily_allowance(HOUSEHOLD, 10)

        second = await screen_time_service.get_or_create_config(make_ctx(), child["id"])

        assert second == first

    async def test_save_rewrites_legacy_daily(self, make_ctx, child):
        config = await screen_time_service.save_config(
            make_ctx(), child["id"], {"weekly_allowance": 300, "hearts_total": 5, "week_reset_day": 7}
        )

        assert config.weekly_allowance == 300
        assert config.daily_allowance == 43
        assert config.week_reset_day == 7

    async def test_invalid_save_is_not_persisted(self, make_ctx, child):
        await screen_time_service.save_config(make_ctx(), child["id"], {"weekly_allowance": 300})

        with pytest.raises(ValidationFailed) as excinfo:
            await screen_time_service.save_config(make_ctx(), child["id"], {"weekly_allowance": 0})

        assert excinfo.value.field == "weekly_allowance"
        config = await screen_time_service.get_or_create_config(make_ctx(), child["id"])
        assert config.weekly_allowance == 300

    async def test_hearts_minutes_saved_and_cleared(self, make_ctx, child):
        saved = await screen_time_service.save_config(
            make_ctx(), child["id"], {"hearts_minutes": 30, "penalty_on_exceed": True}
        )
        assert saved.hearts_minutes == 30
        assert saved.penalty_on_exceed is True

        cleared = await screen_time_service.save_config(make_ctx(), child["id"], {"hearts_minutes": None})

        assert cleared.hearts_minutes is None
        assert cleared.penalty_on_exceed is True
        status = await screen_time_service.get_status(make_ctx(), child["id"])
        assert status.hearts_minutes_override is False
        assert status.minutes_per_heart == 84

    async def test_adults_have_no_config(self, make_ctx):
        adult = await repositories.create_member(HOUSEHOLD, "Parent", "adult")

        with pytest.raises(NotFound):
            await screen_time_service.get_or_create_config(make_ctx(), adult["id"])


class TestUsage:
    async def test_hearts_follow_logged_usage(self, make_ctx, child):
        await screen_time_service.save_config(make_ctx(), child["id"], {"weekly_allowance": 300, "hearts_total": 5})
        ctx = make_ctx(WEDNESDAY)

        await screen_time_service.add_manual_usage(ctx, child["id"], 60)
        await screen_time_service.add_manual_usage(ctx, child["id"], 70)
        status = await screen_time_service.get_status(ctx, child["id"])

        assert status.used_minutes == 130
        assert status.hearts_consumed == 2
        assert status.hearts_remaining == 3

    async def test_previous_week_does_not_count(self, make_ctx, child):
        await screen_time_service.add_manual_usage(make_ctx(WEDNESDAY), child["id"], 200)

        status = await screen_time_service.get_status(make_ctx(NEXT_MONDAY), child["id"])

        assert status.used_minutes == 0
        assert status.hearts_remaining == status.hearts_total

    async def test_window_boundary(self, make_ctx, child):
        await repositories.insert_usage_event(HOUSEHOLD, child["id"], 30, datetime(2026, 10, 11, 23, 59, 59))
        await repositories.insert_usage_event(HOUSEHOLD, child["id"], 45, datetime(2026, 10, 12, 0, 0, 0))

        events = await screen_time_service.list_usage(make_ctx(MONDAY), child["id"])

        assert [event.minutes for event in events] == [45]

    @pytest.mark.parametrize("minutes", [0, -15])
    async def test_non_positive_minutes_rejected(self, make_ctx, child, minutes):
        with pytest.raises(ValidationFailed):
            await screen_time_service.add_manual_usage(make_ctx(), child["id"], minutes)

    async def test_unknown_child(self, make_ctx):
        with pytest.raises(NotFound):
            await screen_time_service.add_manual_usage(make_ctx(), "ghost", 10)

    async def test_overview_lists_children_only(self, make_ctx, child):
        await repositories.create_member(HOUSEHOLD, "Parent", "adult")

        items = await screen_time_service.list_children_overview(make_ctx())

        assert [item["child"]["display_name"] for item in items] == ["Léa"]
        assert items[0]["status"]["hearts_total"] == 5
