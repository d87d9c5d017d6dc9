import asyncio

from bunkerdesk.routes import reminders as reminder_routes


def test_health_reports_database(api):
    status, body = api("GET", "/api/health", headers={})
    assert status == 200
    assert body["status"] == "ok"
    assert body["database"] == "ok"


def test_login_returns_token_usable_for_me(api):
    status, body = api("POST", "/api/login", json={"email": "Trader@Example.com ", "password": "secret-pass"},
                       headers={})
    assert status == 200
    assert body["user"]["roles"] == ["admin"]

    status, me = api("GET", "/api/me", headers={"Authorization": f"Bearer {body['token']}"})
    assert status == 200
    assert me["email"] == "trader@example.com"


def test_login_is_rate_limited(api):
    statuses = [
        api("POST", "/api/login", json={"email": "trader@example.com", "password": "wrong"}, headers={})[0]
        for _ in range(6)
    ]
    assert statuses == [401] * 5 + [429]


def test_token_in_query_string_is_accepted(client, user):
    async def run():
        response = await client.get("/api/me", query_string={"token": user[1]})
        return response.status_code

    assert asyncio.run(run()) == 200


def test_default_workspace_cannot_be_deleted(api):
    status, workspaces = api("GET", "/api/workspaces")
    assert status == 200
    assert [(w["name"], w["is_default"]) for w in workspaces] == [("Work", True)]

    status, body = api("DELETE", f"/api/workspaces/{workspaces[0]['id']}")
    assert status == 400
    assert body == {"error": "The default workspace cannot be deleted"}


def test_new_workspaces_are_appended(api):
    status, created = api("POST", "/api/workspaces", json={"name": "Singapore desk", "color": "#10b981"})
    assert status == 201
    assert created["color"] == "#10B981"

    _, workspaces = api("GET", "/api/workspaces")
    assert [w["name"] for w in workspaces] == ["Work", "Singapore desk"]

    status, _ = api("DELETE", f"/api/workspaces/{created['id']}")
    assert status == 200


def test_preferences_are_stored_per_key(api):
    status, body = api("PUT", "/api/preferences/ui/panel_order", json={"value": ["tasks", "goals"]})
    assert status == 200
    assert body["value"] == ["tasks", "goals"]

    _, everything = api("GET", "/api/preferences")
    assert everything == {"ui": {"panel_order": ["tasks", "goals"]}}

    status, _ = api("GET", "/api/preferences/ui/theme")
    assert status == 400


def test_fuel_deal_with_follow_up_task(api):
    _, contact = api("POST", "/api/contacts", json={"name": "Nordic Tankers"})
    _, vessel = api("POST", f"/api/contacts/{contact['id']}/vessels", json={"vessel_name": "Nordic Star"})

    status, deal = api("POST", "/api/fuel-deals", json={
        "contact_id": contact["id"],
        "vessel_id": vessel["id"],
        "fuel_quantity": 750.5,
        "fuel_type": "VLSFO",
        "deal_date": "2024-05-01T08:00:00",
        "port": "Singapore",
        "follow_up_task": {"title": "Confirm delivery", "task_type": "call_back"},
    })

    assert status == 201
    assert deal["vessel_name"] == "Nordic Star"

    _, task = api("GET", f"/api/tasks/{deal['follow_up_task_id']}")
    assert task["contact_id"] == contact["id"]
    assert task["title"] == "Confirm delivery"

    _, contact_detail = api("GET", f"/api/contacts/{contact['id']}")
    assert contact_detail["total_deals"] == 1


def test_dashboard_endpoints(api):
    api("POST", "/api/contacts", json={"name": "Top Prospect", "priority_rank": 1, "has_traction": True})

    status, chart = api("GET", "/api/dashboard/activity-chart", query_string={"year": 2024, "month": 2})
    assert status == 200
    assert len(chart["days"]) == 29

    _, stats = api("GET", "/api/dashboard/contact-stats")
    assert stats["status_counts"]["traction"] == 1

    _, board = api("GET", "/api/dashboard/priority-board")
    assert [c["name"] for c in board["1"]["contacts"]] == ["Top Prospect"]

    status, _ = api("GET", "/api/dashboard/activity-chart", query_string={"month": 13})
    assert status == 400


def test_out_of_range_dates_are_rejected(api):
    status, body = api("GET", "/api/fuel-deals", query_string={"start_date": "not-a-date"})
    assert status == 400
    assert body["error"] == "Invalid date filter"

    status, _ = api("GET", "/api/dashboard/activity-chart", query_string={"year": 9999, "month": 12})
    assert status == 400

    status, _ = api("GET", "/api/tasks/calendar", query_string={"year": 9999, "month": 12})
    assert status == 400

    status, chart = api("GET", "/api/dashboard/activity-chart", query_string={"year": 9998, "month": 12})
    assert status == 200
    assert len(chart["days"]) == 31


def test_reminder_digest_sent_inline_without_redis(api, monkeypatch):
    sent = []

    async def fake_send(subject, recipient, body, html=False):
        sent.append(recipient)
        return True

    monkeypatch.setattr(reminder_routes, "send_email", fake_send)
    monkeypatch.setattr(reminder_routes, "reminders_queue", None)

    status, body = api("POST", "/api/reminders/send")
    assert status == 200
    assert body == {"queued": False, "sent": False, "reminder_count": 0}
    assert sent == []

    status, settings = api("GET", "/api/reminders/settings")
    assert settings["user_email"] == "trader@example.com"
    assert settings["last_check"] is not None
