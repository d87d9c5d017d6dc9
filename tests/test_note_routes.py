def create_note(api, title="Singapore stems", content="- 500mt VLSFO\nCall Ana"):
    status, body = api("POST", "/api/notes", json={"title": title, "content": content})
    assert status == 201
    return body


def test_note_html_rendering(api):
    note = create_note(api)

    status, body = api("GET", f"/api/notes/{note['id']}/html")

    assert status == 200
    assert '<li class="ml-2">500mt VLSFO</li>' in body["html"]
    assert '<p class="my-1">Call Ana</p>' in body["html"]


def test_shared_note_is_read_only_without_edit_rights(api, other_headers):
    note = create_note(api)

    status, share = api("POST", f"/api/notes/{note['id']}/share", json={"email": "colleague@example.com"})
    assert status == 201
    assert share["shared_with_email"] == "colleague@example.com"
    assert share["can_edit"] is False

    status, notes = api("GET", "/api/notes", headers=other_headers)
    assert status == 200
    assert [(n["id"], n["is_owner"], n["can_edit"]) for n in notes] == [(note["id"], False, False)]
    assert notes[0]["owner_email"] == "trader@example.com"

    status, _ = api("PUT", f"/api/notes/{note['id']}", json={"content": "changed"}, headers=other_headers)
    assert status == 403
    status, _ = api("DELETE", f"/api/notes/{note['id']}", headers=other_headers)
    assert status == 403


def test_edit_share_allows_updates_but_not_resharing(api, other_headers, user_id):
    note = create_note(api)
    api("POST", f"/api/notes/{note['id']}/share", json={"email": "colleague@example.com", "can_edit": True})

    status, body = api("PUT", f"/api/notes/{note['id']}", json={"content": "- 600mt VLSFO"}, headers=other_headers)
    assert status == 200
    assert body["content"] == "- 600mt VLSFO"
    assert body["can_edit"] is True

    status, _ = api("POST", f"/api/notes/{note['id']}/share", json={"shared_with": user_id}, headers=other_headers)
    assert status == 403


def test_duplicate_and_self_shares_are_refused(api, other_user, user_id):
    note = create_note(api)

    status, _ = api("POST", f"/api/notes/{note['id']}/share", json={"shared_with": other_user[0]})
    assert status == 201

    status, body = api("POST", f"/api/notes/{note['id']}/share", json={"shared_with": other_user[0]})
    assert status == 409
    assert body == {"error": "Note already shared with this user"}

    status, body = api("POST", f"/api/notes/{note['id']}/share", json={"shared_with": user_id})
    assert status == 400
    assert body == {"error": "You cannot share a note with yourself"}

    status, _ = api("POST", f"/api/notes/{note['id']}/share", json={"email": "nobody@example.com"})
    assert status == 404


def test_revoking_a_share_hides_the_note(api, other_headers, other_user):
    note = create_note(api)
    _, share = api("POST", f"/api/notes/{note['id']}/share", json={"shared_with": other_user[0]})

    status, shares = api("GET", f"/api/notes/{note['id']}/shares")
    assert [s["id"] for s in shares] == [share["id"]]

    status, _ = api("DELETE", f"/api/notes/{note['id']}/shares/{share['id']}")
    assert status == 200

    status, _ = api("GET", f"/api/notes/{note['id']}", headers=other_headers)
    assert status == 404


def test_notepad_round_trip(api):
    status, body = api("GET", "/api/notepad")
    assert status == 200
    assert body == {"content": ""}

    api("PUT", "/api/notepad", json={"content": "Check Fujairah prices"})
    _, body = api("GET", "/api/notepad")
    assert body == {"content": "Check Fujairah prices"}
