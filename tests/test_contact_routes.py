import asyncio


def create_contact(api, **fields):
    status, body = api("POST", "/api/contacts", json={"name": "Harbour Marine", **fields})
    assert status == 201
    return body["id"]


def test_requests_without_token_are_rejected(client):
    async def run():
        response = await client.get("/api/contacts")
        return response.status_code

    assert asyncio.run(run()) == 401


def test_create_validates_input(api):
    status, body = api("POST", "/api/contacts", json={"name": "", "priority_rank": 9})

    assert status == 400
    assert body["error"] == "Validation failed"
    assert {d["loc"][0] for d in body["details"]} == {"name", "priority_rank"}


def test_create_and_fetch_contact_with_persons(api):
    contact_id = create_contact(api, phone="+65 6123 4567", reminder_days=7, persons=[
        {"name": "Ana Lim", "email": "ana@harbour.example", "is_primary": True},
    ])

    status, body = api("GET", f"/api/contacts/{contact_id}")

    assert status == 200
    assert body["phone"] == "+6561234567"
    assert body["persons"][0]["name"] == "Ana Lim"
    assert body["total_calls"] == 0
    assert body["next_call_due"].endswith("Z")


def test_logging_and_deleting_calls_keeps_last_called_in_sync(api):
    contact_id = create_contact(api)

    status, first = api("POST", "/api/calls", json={"contact_id": contact_id, "call_date": "2024-05-01T09:00:00"})
    assert status == 201
    status, second = api("POST", "/api/calls", json={"contact_id": contact_id, "call_date": "2024-05-03T15:30:00"})
    assert status == 201

    _, contact = api("GET", f"/api/contacts/{contact_id}")
    assert contact["last_called"] == "2024-05-03T15:30:00Z"
    assert contact["total_calls"] == 2

    status, _ = api("DELETE", f"/api/calls/{second['id']}")
    assert status == 200
    _, contact = api("GET", f"/api/contacts/{contact_id}")
    assert contact["last_called"] == "2024-05-01T09:00:00Z"

    api("DELETE", f"/api/calls/{first['id']}")
    _, contact = api("GET", f"/api/contacts/{contact_id}")
    assert contact["last_called"] is None


def test_list_sorts_and_searches(api):
    create_contact(api, name="bravo shipping", company="Zeta")
    create_contact(api, name="Alpha Bunkers", company="Nordic Oil")

    status, body = api("GET", "/api/contacts", query_string={"sort": "name"})
    assert status == 200
    assert [c["name"] for c in body["contacts"]] == ["Alpha Bunkers", "bravo shipping"]
    assert body["total"] == 2

    _, body = api("GET", "/api/contacts", query_string={"search": "nordic"})
    assert [c["name"] for c in body["contacts"]] == ["Alpha Bunkers"]


def test_status_toggle_clears_jammed_reason(api):
    contact_id = create_contact(api)

    status, body = api("PUT", f"/api/contacts/{contact_id}/status",
                       json={"field": "is_jammed", "value": True, "jammed_reason": "Credit hold"})
    assert status == 200
    assert body["jammed_reason"] == "Credit hold"

    _, body = api("PUT", f"/api/contacts/{contact_id}/status", json={"field": "is_jammed", "value": False})
    assert body["is_jammed"] is False
    assert body["jammed_reason"] is None


def test_contacts_are_private_to_their_owner(api, other_headers):
    contact_id = create_contact(api)

    status, body = api("GET", f"/api/contacts/{contact_id}", headers=other_headers)
    assert status == 404
    assert body == {"error": "Contact not found"}

    status, _ = api("POST", "/api/calls", json={"contact_id": contact_id, "call_date": "2024-05-01T09:00:00"},
                    headers=other_headers)
    assert status == 404


def test_import_skips_unnamed_rows_and_reports_invalid_ones(api):
    status, body = api("POST", "/api/contacts/import", json={"rows": [
        {"name": "Nordic Tankers", "country": "Norway"},
        {"name": "   ", "company": "Blank Name Ltd"},
        {"company": "No Name Ltd"},
        {"name": "Bad Rank", "priority_rank": 9},
    ]})

    assert status == 200
    assert (body["imported"], body["skipped"]) == (1, 2)
    assert [e["row"] for e in body["errors"]] == [3]

    _, listed = api("GET", "/api/contacts")
    assert [c["name"] for c in listed["contacts"]] == ["Nordic Tankers"]


def test_import_from_csv_text(api):
    csv_text = "Name,Company,Is_Client\nOcean Fuel,OF Ltd,yes\n,Nameless Co,\n"

    status, body = api("POST", "/api/contacts/import", json={"csv": csv_text})

    assert status == 200
    assert (body["imported"], body["skipped"]) == (1, 1)
    _, listed = api("GET", "/api/contacts")
    assert listed["contacts"][0]["is_client"] is True


def test_export_writes_csv_sorted_by_name(api, raw):
    create_contact(api, name="Zeta Shipping", company="Zeta")
    create_contact(api, name="Alpha Bunkers", company="Nordic Oil")

    status, text, headers = raw("GET", "/api/contacts/export")

    assert status == 200
    assert headers["Content-Type"].startswith("text/csv")
    assert "attachment" in headers["Content-Disposition"]
    lines = text.strip().splitlines()
    assert lines[0].startswith("name,company,")
    assert lines[1].startswith("Alpha Bunkers,Nordic Oil")
    assert lines[2].startswith("Zeta Shipping,Zeta")


def test_delete_all_needs_admin_and_exact_phrase(api, other_headers):
    create_contact(api)
    create_contact(api, name="Second")

    status, _ = api("POST", "/api/contacts/delete-all", json={"confirmation": "DELETE ALL"},
                    headers=other_headers)
    assert status == 403

    status, body = api("POST", "/api/contacts/delete-all", json={"confirmation": "delete all"})
    assert status == 400
    assert body["error"] == "Validation failed"

    status, body = api("POST", "/api/contacts/delete-all", json={"confirmation": "DELETE ALL"})
    assert status == 200
    assert body["deleted"] == 2

    _, listed = api("GET", "/api/contacts")
    assert listed["total"] == 0


def test_delete_duplicates_keeps_oldest_or_newest(api):
    oldest = create_contact(api, name="Harbour Marine")
    middle = create_contact(api, name="harbour marine ")
    newest = create_contact(api, name="HARBOUR MARINE")
    unique = create_contact(api, name="Lion City Bunkers")

    _, groups = api("GET", "/api/contacts/duplicates")
    assert [(g["name"], g["count"]) for g in groups] == [("harbour marine", 3)]
    assert [c["id"] for c in groups[0]["contacts"]] == [newest, middle, oldest]

    status, body = api("DELETE", "/api/contacts/duplicates", json={"keep": "oldest"})
    assert status == 200
    assert body == {"deleted": 2, "ids": sorted([middle, newest])}

    _, listed = api("GET", "/api/contacts")
    assert sorted(c["id"] for c in listed["contacts"]) == sorted([oldest, unique])

    status, _ = api("DELETE", "/api/contacts/duplicates", json={"keep": "random"})
    assert status == 400


def test_delete_duplicates_keeps_newest_by_default(api):
    create_contact(api, name="Harbour Marine")
    newest = create_contact(api, name="harbour marine")

    status, body = api("DELETE", "/api/contacts/duplicates", json={})

    assert status == 200
    assert body["deleted"] == 1
    _, listed = api("GET", "/api/contacts")
    assert [c["id"] for c in listed["contacts"]] == [newest]


def test_editing_and_deleting_emails_keeps_last_emailed_in_sync(api):
    contact_id = create_contact(api)

    _, first = api("POST", "/api/emails", json={"contact_id": contact_id, "email_date": "2024-05-01T09:00:00",
                                                "subject": "Rotterdam prices"})
    _, second = api("POST", "/api/emails", json={"contact_id": contact_id, "email_date": "2024-05-03T10:00:00"})
    _, contact = api("GET", f"/api/contacts/{contact_id}")
    assert contact["last_emailed"] == "2024-05-03T10:00:00Z"

    status, _ = api("PUT", f"/api/emails/{second['id']}", json={"email_date": "2024-04-01T08:00:00"})
    assert status == 200
    _, contact = api("GET", f"/api/contacts/{contact_id}")
    assert contact["last_emailed"] == "2024-05-01T09:00:00Z"

    api("DELETE", f"/api/emails/{first['id']}")
    _, contact = api("GET", f"/api/contacts/{contact_id}")
    assert contact["last_emailed"] == "2024-04-01T08:00:00Z"

    api("DELETE", f"/api/emails/{second['id']}")
    _, contact = api("GET", f"/api/contacts/{contact_id}")
    assert contact["last_emailed"] is None
