from datetime import datetime, timedelta

import pytest

from bunkerdesk.routes import goals as goal_routes


def create_goal(api, **fields):
    payload = {
        "goal_type": "calls",
        "target_amount": 10,
        "target_time": "23:59",
        "target_date": datetime.utcnow().date().isoformat(),
        **fields,
    }
    status, body = api("POST", "/api/goals", json=payload)
    assert status == 201
    return body


def test_manual_count_never_goes_below_zero(api):
    goal = create_goal(api)

    status, progress = api("POST", f"/api/goals/{goal['id']}/manual-count", json={"delta": 3})
    assert status == 200
    assert progress["current_amount"] == 3
    assert progress["deadline"].endswith("Z")

    _, progress = api("POST", f"/api/goals/{goal['id']}/manual-count", json={"delta": -10})
    assert progress["current_amount"] == 0


def test_deleted_goals_leave_the_active_list(api):
    keep = create_goal(api)
    drop = create_goal(api, goal_type="emails")

    status, _ = api("DELETE", f"/api/goals/{drop['id']}")
    assert status == 200

    _, goals = api("GET", "/api/goals")
    assert [g["id"] for g in goals] == [keep["id"]]


def test_notification_settings_defaults(api):
    status, body = api("GET", "/api/goals/notification-settings")
    assert status == 200
    assert body["notification_frequency"] == 30
    assert body["enable_notifications"] is True


def generate(api, goal_id, total_calls=3):
    deadline = (datetime.utcnow() + timedelta(hours=4)).isoformat()
    return api("POST", f"/api/goals/{goal_id}/schedule/generate",
               json={"total_calls": total_calls, "deadline": deadline, "call_duration_mins": 10})


def test_generate_schedule_uses_contacts_then_placeholders(api):
    api("POST", "/api/contacts", json={"name": "Lion City Bunkers", "timezone": "Asia/Singapore", "is_client": True})
    api("POST", "/api/contacts", json={"name": "Dead Lead", "is_dead": True})
    goal = create_goal(api)

    status, slots = generate(api, goal["id"])

    assert status == 201
    assert [s["contact_name"] for s in slots] == ["Lion City Bunkers", "Prospect #2", "Prospect #3"]
    assert [s["display_order"] for s in slots] == [0, 1, 2]
    assert slots[0]["priority_label"] == "High Value"
    assert slots[1]["is_suggested"] is True

    # Regenerating replaces the old slots
    _, again = generate(api, goal["id"], total_calls=2)
    _, listed = api("GET", f"/api/goals/{goal['id']}/schedule")
    assert len(listed) == 2
    assert {s["id"] for s in listed} == {s["id"] for s in again}


def test_generate_rejects_past_deadline(api):
    goal = create_goal(api)
    status, body = api("POST", f"/api/goals/{goal['id']}/schedule/generate",
                       json={"total_calls": 3, "deadline": "2020-01-01T00:00:00"})
    assert status == 400
    assert body == {"error": "Deadline must be in the future"}


def test_reorder_insert_and_delete_slots(api):
    goal = create_goal(api)
    _, slots = generate(api, goal["id"])
    ids = [s["id"] for s in slots]
    start = slots[0]["scheduled_time"]

    status, body = api("PUT", f"/api/goals/{goal['id']}/schedule/reorder", json={"slot_ids": [ids[0], ids[1]]})
    assert status == 400

    status, reordered = api("PUT", f"/api/goals/{goal['id']}/schedule/reorder", json={"slot_ids": ids[::-1]})
    assert status == 200
    assert [s["id"] for s in reordered] == ids[::-1]
    assert reordered[0]["scheduled_time"] == start

    status, inserted = api("POST", f"/api/goals/{goal['id']}/schedule",
                           json={"contact_name": "Walk-in call", "position": 1, "call_duration_mins": 20})
    assert status == 201
    assert [s["contact_name"] for s in inserted][1] == "Walk-in call"
    assert [s["display_order"] for s in inserted] == [0, 1, 2, 3]

    status, remaining = api("DELETE", f"/api/schedule/{inserted[1]['id']}")
    assert status == 200
    assert [s["id"] for s in remaining] == ids[::-1]
    assert [s["display_order"] for s in remaining] == [0, 1, 2]


def test_add_slot_needs_a_name_or_contact(api):
    goal = create_goal(api)
    status, _ = api("POST", f"/api/goals/{goal['id']}/schedule", json={"position": 0})
    assert status == 400


def test_complete_slot(api):
    goal = create_goal(api)
    _, slots = generate(api, goal["id"], total_calls=1)

    status, body = api("PUT", f"/api/schedule/{slots[0]['id']}/complete", json={"completed": True})
    assert status == 200
    assert body["completed"] is True
    assert body["completed_at"] is not None


class FrozenDatetime(datetime):
    @classmethod
    def utcnow(cls):
        return datetime(2024, 5, 1, 12, 0)


@pytest.fixture
def noon_may_first(monkeypatch):
    monkeypatch.setattr(goal_routes, "datetime", FrozenDatetime)


def dated_goal(api, target_date, target_amount, target_time="17:00", **fields):
    return create_goal(api, target_date=target_date, target_amount=target_amount, target_time=target_time, **fields)


def test_notification_check_reports_completed_missed_and_behind(api, noon_may_first):
    done = dated_goal(api, "2024-04-30", 2)
    missed = dated_goal(api, "2024-04-30", 5, goal_type="emails")
    behind = dated_goal(api, "2024-05-01", 10, start_time="08:00", target_time="18:00")
    not_started = dated_goal(api, "2024-05-02", 10)
    api("POST", f"/api/goals/{done['id']}/manual-count", json={"delta": 2})

    status, body = api("GET", "/api/goals/notifications/check")

    assert status == 200
    assert body["enabled"] is True
    kinds = {n["goal_id"]: n["type"] for n in body["notifications"]}
    assert kinds == {done["id"]: "goal_completed", missed["id"]: "goal_missed", behind["id"]: "goal_behind"}
    assert not_started["id"] not in kinds
    behind_notice = next(n for n in body["notifications"] if n["goal_id"] == behind["id"])
    assert behind_notice["progress"]["time_remaining"] == "6h 0m"


def test_notification_check_respects_disabled_setting(api, noon_may_first):
    dated_goal(api, "2024-04-30", 5)
    api("PUT", "/api/goals/notification-settings", json={"enable_notifications": False})

    _, body = api("GET", "/api/goals/notifications/check")

    assert body == {"enabled": False, "notifications": []}


def test_archive_expired_moves_goals_to_history(api, noon_may_first):
    done = dated_goal(api, "2024-04-30", 1)
    missed = dated_goal(api, "2024-05-01", 3, target_time="09:00")
    running = dated_goal(api, "2024-05-01", 3, target_time="18:00")
    api("POST", f"/api/goals/{done['id']}/manual-count", json={"delta": 1})

    status, body = api("POST", "/api/goals/archive-expired")

    assert status == 200
    assert body["archived"] == 2
    assert sorted(body["goal_ids"]) == sorted([done["id"], missed["id"]])

    _, active = api("GET", "/api/goals")
    assert [g["id"] for g in active] == [running["id"]]

    _, history = api("GET", "/api/goals/history")
    assert history["total"] == 2
    by_id = {entry["goal"]["id"]: entry for entry in history["goals"]}
    assert by_id[done["id"]]["goal"]["completed_at"] == "2024-05-01T12:00:00Z"
    assert by_id[done["id"]]["progress"]["status"] == "complete"
    assert by_id[missed["id"]]["progress"]["status"] == "expired"

    # Running it again finds nothing new
    _, again = api("POST", "/api/goals/archive-expired")
    assert again["archived"] == 0


def test_appending_generated_slots_continues_after_the_last_one(api):
    goal = create_goal(api)
    _, first_batch = generate(api, goal["id"], total_calls=3)

    deadline = (datetime.utcnow() + timedelta(hours=4)).isoformat()
    status, slots = api("POST", f"/api/goals/{goal['id']}/schedule/generate", json={
        "total_calls": 2, "deadline": deadline, "call_duration_mins": 10, "replace_existing": False,
    })

    assert status == 201
    assert [s["display_order"] for s in slots] == [0, 1, 2, 3, 4]
    assert [s["id"] for s in slots[:3]] == [s["id"] for s in first_batch]
    times = [datetime.fromisoformat(s["scheduled_time"].rstrip("Z")) for s in slots]
    # 10 minute calls plus the 5 minute buffer, back to back
    assert [b - a for a, b in zip(times, times[1:])] == [timedelta(minutes=15)] * 4


def test_complete_slot_accepts_false_strings_and_rejects_junk(api):
    goal = create_goal(api)
    _, slots = generate(api, goal["id"], total_calls=1)
    slot_id = slots[0]["id"]

    api("PUT", f"/api/schedule/{slot_id}/complete", json={"completed": True})
    status, body = api("PUT", f"/api/schedule/{slot_id}/complete", json={"completed": "false"})
    assert status == 200
    assert body["completed"] is False
    assert body["completed_at"] is None

    status, body = api("PUT", f"/api/schedule/{slot_id}/complete", json={"completed": "maybe"})
    assert status == 400
    assert body["error"] == "Validation failed"
