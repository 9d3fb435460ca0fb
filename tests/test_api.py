"""End-to-end tests through the HTTP API."""

from tests.helpers import HOUSEHOLD, NEXT_MONDAY, SECRET, TASK_NAMES, WEDNESDAY


def _seed(client, children=("A", "B"), tasks=TASK_NAMES):
    members = [client.post("/v1/members", json={"display_name": name}).json() for name in children]
    task_rows = [client.post("/v1/rotation/tasks", json={"name": name}).json() for name in tasks]
    return members, task_rows


class TestAuth:
    def test_health_is_open(self, client):
        assert client.get("/health").json() == {"ok": True}

    def test_missing_token(self, client):
        response = client.get("/v1/members", headers={"X-Backend-Token": ""})
        assert response.status_code == 401

    def test_wrong_token(self, client):
        response = client.get("/v1/members", headers={"X-Backend-Token": "nope", "X-User-Email": HOUSEHOLD})
        assert response.status_code == 401

    def test_households_are_isolated(self, client):
        _seed(client)
        response = client.get("/v1/members", headers={"X-Backend-Token": SECRET, "X-User-Email": "other@example.com"})
        assert response.json() == {"items": []}


class TestMembers:
    def test_member_limit(self, client):
        for name in ("A", "B", "C", "D"):
            assert client.post("/v1/members", json={"display_name": name}).status_code == 200

        response = client.post("/v1/members", json={"display_name": "E", "role": "adult"})

        assert response.status_code == 409
        assert "limit" in response.json()["detail"]
        assert len(client.get("/v1/members").json()["items"]) == 4

    def test_blank_name(self, client):
        response = client.post("/v1/members", json={"display_name": "   "})

        assert response.status_code == 400
        assert response.json()["field"] == "display_name"

    def test_delete_unknown_member(self, client):
        response = client.delete("/v1/members/ghost")

        assert response.status_code == 404
        assert response.json()["detail"] == "Member not found."

    def test_bad_role(self, client):
        assert client.post("/v1/members", json={"display_name": "A", "role": "pet"}).status_code == 422

    def test_rename_and_delete(self, client):
        member = client.post("/v1/members", json={"display_name": "A"}).json()

        renamed = client.patch(f"/v1/members/{member['id']}", json={"display_name": "Alex"}).json()
        assert renamed["display_name"] == "Alex"

        assert client.delete(f"/v1/members/{member['id']}").json() == {"ok": True}
        assert client.get("/v1/members").json() == {"items": []}
        assert client.patch(f"/v1/members/{member['id']}", json={"display_name": "X"}).status_code == 404


class TestRotationTasks:
    def test_tasks_are_appended_in_order(self, client):
        _seed(client, children=())

        items = client.get("/v1/rotation/tasks").json()["items"]

        assert [item["name"] for item in items] == TASK_NAMES
        assert [item["sort_order"] for item in items] == [0, 1, 2]

    def test_blank_task_name(self, client):
        response = client.post("/v1/rotation/tasks", json={"name": ""})

        assert response.status_code == 400
        assert response.json()["field"] == "name"

    def test_delete_unknown_task(self, client):
        response = client.delete("/v1/rotation/tasks/ghost")

        assert response.status_code == 404
        assert response.json()["detail"] == "Task not found."

    def test_deactivated_task_leaves_next_rotation(self, client, clock):
        _, tasks = _seed(client)
        client.patch(f"/v1/rotation/tasks/{tasks[0]['id']}", json={"is_active": False})

        clock["now"] = NEXT_MONDAY
        view = client.get("/v1/rotation/current").json()

        assert tasks[0]["id"] not in {row["task_id"] for row in view["assignments"]}
        assert len(view["assignments"]) == 2


class TestRotation:
    def test_current_generates_rotation(self, client):
        _seed(client)

        view = client.get("/v1/rotation/current").json()

        assert view["week_start"] == "2026-10-12"
        assert view["is_reset_day"] is True
        assert view["can_reroll"] is True
        assert sorted(row["task_name"] for row in view["assignments"]) == sorted(TASK_NAMES)

    def test_reroll_limit(self, client):
        _seed(client)
        for _ in range(3):
            assert client.post("/v1/rotation/reroll").status_code == 200

        response = client.post("/v1/rotation/reroll")

        assert response.status_code == 409
        assert response.json()["detail"] == "3 re-rolls already used this week"
        view = client.get("/v1/rotation/current").json()
        assert view["attempts_used"] == 3
        assert view["can_reroll"] is False

    def test_reroll_on_wrong_day(self, client, clock):
        _seed(client)
        clock["now"] = WEDNESDAY

        response = client.post("/v1/rotation/reroll")

        assert response.status_code == 409
        assert response.json()["detail"] == "Re-roll available on Monday"
        assert client.get("/v1/rotation/current").json()["attempts_used"] == 0

    def test_reroll_without_members(self, client):
        _seed(client, children=())

        response = client.post("/v1/rotation/reroll")

        assert response.status_code == 409
        assert response.json()["detail"] == "Add tasks and members first"

    def test_manual_assignments(self, client):
        members, tasks = _seed(client)
        payload = {"assignments": [{"task_id": task["id"], "member_id": members[0]["id"]} for task in tasks]}

        view = client.put("/v1/rotation/assignments", json=payload).json()

        assert view["adjusted"] is True
        assert {row["member_name"] for row in view["assignments"]} == {"A"}

    def test_manual_assignments_with_rule(self, client):
        members, tasks = _seed(client)
        payload = {
            "assignments": [{"task_id": task["id"], "member_id": members[1]["id"]} for task in tasks],
            "note": "B is home",
            "rule": "Whoever is home does everything",
        }

        client.put("/v1/rotation/assignments", json=payload)
        view = client.get("/v1/rotation/current").json()

        assert view["rule"] == "Whoever is home does everything"
        assert view["note"] == "B is home"

    def test_manual_duplicate_rejected(self, client):
        members, tasks = _seed(client)
        payload = {
            "assignments": [
                {"task_id": tasks[0]["id"], "member_id": members[0]["id"]},
                {"task_id": tasks[0]["id"], "member_id": members[1]["id"]},
            ]
        }

        response = client.put("/v1/rotation/assignments", json=payload)

        assert response.status_code == 400
        assert response.json()["field"] == "assignments"

    def test_reset_day_setting(self, client, clock):
        _seed(client)
        assert client.put("/v1/settings/rotation-reset-day", json={"day": 9}).status_code == 400

        client.put("/v1/settings/rotation-reset-day", json={"day": 3})
        clock["now"] = WEDNESDAY

        assert client.get("/v1/settings/rotation-reset-day").json() == {"day": 3, "name": "Wednesday"}
        view = client.get("/v1/rotation/current").json()
        assert view["week_start"] == "2026-10-14"
        assert client.post("/v1/rotation/reroll").json()["attempts_used"] == 1

    def test_bootstrap_summary(self, client):
        _seed(client)

        payload = client.get("/v1/bootstrap").json()

        assert payload["user_name"] == "Parent"
        assert len(payload["members"]) == 2
        assert payload["rotation"]["week_start"] == "2026-10-12"
        assert payload["rotation"]["attempts_remaining"] == 3


class TestScreenTime:
    def test_usage_consumes_hearts(self, client, clock):
        (child,), _ = _seed(client, children=("Léa",), tasks=())
        saved = client.put(
            f"/v1/screen-time/{child['id']}/config",
            json={"weekly_allowance": 300, "hearts_total": 5},
        )
        assert saved.json()["daily_allowance"] == 43
        clock["now"] = WEDNESDAY

        client.post(f"/v1/screen-time/{child['id']}/usage", json={"minutes": 100})
        response = client.post(f"/v1/screen-time/{child['id']}/usage", json={"minutes": 30})

        status = response.json()["status"]
        assert status["used_minutes"] == 130
        assert status["hearts_consumed"] == 2
        assert status["hearts_remaining"] == 3
        assert len(client.get(f"/v1/screen-time/{child['id']}/usage").json()["items"]) == 2

    def test_invalid_config(self, client):
        (child,), _ = _seed(client, children=("Léa",), tasks=())

        response = client.put(f"/v1/screen-time/{child['id']}/config", json={"hearts_total": 0})

        assert response.status_code == 400
        assert response.json()["field"] == "hearts_total"
        assert client.get(f"/v1/screen-time/{child['id']}/config").json()["hearts_total"] == 5

    def test_hearts_minutes_override(self, client, clock):
        (child,), _ = _seed(client, children=("Léa",), tasks=())
        client.put(
            f"/v1/screen-time/{child['id']}/config",
            json={"weekly_allowance": 300, "hearts_total": 5, "hearts_minutes": 30, "penalty_on_exceed": True},
        )
        clock["now"] = WEDNESDAY

        status = client.post(f"/v1/screen-time/{child['id']}/usage", json={"minutes": 130}).json()["status"]

        assert status["minutes_per_heart"] == 30
        assert status["hearts_consumed"] == 4
        assert status["penalty_on_exceed"] is True
        bad = client.put(f"/v1/screen-time/{child['id']}/config", json={"hearts_minutes": 0})
        assert bad.status_code == 400
        assert bad.json()["field"] == "hearts_minutes"

    def test_invalid_usage(self, client):
        (child,), _ = _seed(client, children=("Léa",), tasks=())

        assert client.post(f"/v1/screen-time/{child['id']}/usage", json={"minutes": 0}).status_code == 400
        assert client.post(f"/v1/screen-time/{child['id']}/usage", json={"minutes": "lots"}).status_code == 422

    def test_unknown_child(self, client):
        assert client.get("/v1/screen-time/ghost/status").status_code == 404

    def test_household_default(self, client):
        assert client.put("/v1/settings/screen-time-default", json={"daily_minutes": 0}).status_code == 400
        client.put("/v1/settings/screen-time-default", json={"daily_minutes": 30})
        (child,), _ = _seed(client, children=("Léa",), tasks=())

        items = client.get("/v1/screen-time/children").json()["items"]

        assert client.get("/v1/settings/screen-time-default").json() == {"daily_minutes": 30}
        assert items[0]["status"]["weekly_allowance"] == 210
