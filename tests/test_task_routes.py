def create_task(api, title, **fields):
    status, body = api("POST", "/api/tasks", json={"title": title, **fields})
    assert status == 201
    return body


def test_toggle_sets_and_clears_completed_at(api):
    task = create_task(api, "Send Rotterdam quote", task_type="email_back")

    status, body = api("PUT", f"/api/tasks/{task['id']}/toggle")
    assert status == 200
    assert body["completed"] is True
    assert body["completed_at"].endswith("Z")

    _, body = api("PUT", f"/api/tasks/{task['id']}/toggle")
    assert body["completed"] is False
    assert body["completed_at"] is None


def test_list_orders_pending_by_due_date_with_undated_last(api):
    undated = create_task(api, "Someday")
    later = create_task(api, "Later", due_date="2024-05-03T09:00:00")
    sooner = create_task(api, "Sooner", due_date="2024-05-01T09:00:00")
    done = create_task(api, "Done", due_date="2024-04-01T09:00:00")
    api("PUT", f"/api/tasks/{done['id']}", json={"completed": True})

    _, tasks = api("GET", "/api/tasks")
    assert [t["id"] for t in tasks] == [sooner["id"], later["id"], undated["id"], done["id"]]

    _, pending = api("GET", "/api/tasks", query_string={"filter": "pending"})
    assert done["id"] not in [t["id"] for t in pending]

    _, completed = api("GET", "/api/tasks", query_string={"filter": "completed"})
    assert [t["id"] for t in completed] == [done["id"]]


def test_search_matches_linked_contact_name(api):
    _, contact = api("POST", "/api/contacts", json={"name": "Lion City Bunkers"})
    create_task(api, "Call back", contact_id=contact["id"], task_type="call_back")
    create_task(api, "Unrelated")

    _, tasks = api("GET", "/api/tasks", query_string={"search": "lion city"})
    assert [t["contact_name"] for t in tasks] == ["Lion City Bunkers"]


def test_linking_someone_elses_contact_is_refused(api, other_headers):
    _, contact = api("POST", "/api/contacts", json={"name": "Private"}, headers=other_headers)

    status, body = api("POST", "/api/tasks", json={"title": "Snoop", "contact_id": contact["id"]})
    assert status == 404
    assert body == {"error": "Contact not found"}


def test_day_and_calendar_views(api):
    create_task(api, "Morning", due_date="2024-05-01T08:00:00")
    evening = create_task(api, "Evening", due_date="2024-05-01T20:00:00")
    create_task(api, "Next day", due_date="2024-05-02T08:00:00")
    api("PUT", f"/api/tasks/{evening['id']}/toggle")

    status, day = api("GET", "/api/tasks/day", query_string={"date": "2024-05-01"})
    assert status == 200
    assert [t["title"] for t in day["tasks"]] == ["Morning", "Evening"]

    _, cal = api("GET", "/api/tasks/calendar", query_string={"year": 2024, "month": 5})
    assert cal["days"]["2024-05-01"] == {"total": 2, "pending": 1, "completed": 1}
    assert cal["days"]["2024-05-02"]["total"] == 1

    status, _ = api("GET", "/api/tasks/day", query_string={"date": "not a date"})
    assert status == 400
