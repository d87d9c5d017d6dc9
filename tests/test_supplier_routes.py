def create_supplier(api, **fields):
    status, body = api("POST", "/api/suppliers", json={"company_name": "Straits Fuel Pte", **fields})
    assert status == 201
    return body


def test_filters_match_entries_of_semicolon_lists(api):
    create_supplier(api, company_name="Straits Fuel Pte", ports="Singapore; Port Klang", fuel_types="VLSFO; LSMGO")
    create_supplier(api, company_name="Amsterdam Bunkers", ports="Rotterdam; Amsterdam", fuel_types="HSFO")

    _, suppliers = api("GET", "/api/suppliers", query_string={"port": "klang"})
    assert [s["company_name"] for s in suppliers] == ["Straits Fuel Pte"]

    _, suppliers = api("GET", "/api/suppliers", query_string={"fuel_type": "hsfo"})
    assert [s["company_name"] for s in suppliers] == ["Amsterdam Bunkers"]

    _, suppliers = api("GET", "/api/suppliers")
    assert [s["company_name"] for s in suppliers] == ["Amsterdam Bunkers", "Straits Fuel Pte"]


def test_adding_several_ports_inherits_default_delivery_methods(api):
    supplier = create_supplier(api, default_has_barge=True)

    status, ports = api("POST", f"/api/suppliers/{supplier['id']}/ports",
                        json={"port_name": "Singapore; Port Klang ;", "has_truck": True, "has_vlsfo": True})

    assert status == 201
    assert [p["port_name"] for p in ports] == ["Singapore", "Port Klang"]
    for port in ports:
        assert (port["has_barge"], port["has_truck"], port["has_expipe"]) == (True, True, False)
        assert port["has_vlsfo"] is True
        assert port["effective_delivery_methods"]["barge"] is True

    status, _ = api("POST", f"/api/suppliers/{supplier['id']}/ports", json={"port_name": " ; "})
    assert status == 400


def test_duplicate_ports_keep_the_chosen_one(api):
    supplier = create_supplier(api)
    _, first = api("POST", f"/api/suppliers/{supplier['id']}/ports", json={"port_name": "Fujairah"})
    _, second = api("POST", f"/api/suppliers/{supplier['id']}/ports", json={"port_name": "fujairah "})

    _, groups = api("GET", f"/api/suppliers/{supplier['id']}/ports/duplicates")
    assert [(g["name"], g["count"]) for g in groups] == [("fujairah", 2)]

    status, body = api("DELETE", f"/api/suppliers/{supplier['id']}/ports/duplicates",
                       json={"keep": {"fujairah": first[0]["id"]}})
    assert status == 200
    assert body == {"deleted": 1, "ids": [second[0]["id"]]}

    _, ports = api("GET", f"/api/suppliers/{supplier['id']}/ports")
    assert [p["id"] for p in ports] == [first[0]["id"]]


def test_convert_supplier_contact_to_crm_contact(api):
    supplier = create_supplier(api, country="Singapore")
    status, person = api("POST", f"/api/suppliers/{supplier['id']}/contacts",
                         json={"name": "Wei Tan", "title": "Trader", "email": "wei@straits.example"})
    assert status == 201

    status, contact = api("POST", f"/api/suppliers/contacts/{person['id']}/convert")

    assert status == 201
    assert contact["name"] == "Straits Fuel Pte"
    assert contact["country"] == "Singapore"
    assert contact["persons"][0]["name"] == "Wei Tan"
    assert contact["persons"][0]["is_primary"] is True

    _, listed = api("GET", "/api/contacts")
    assert [c["name"] for c in listed["contacts"]] == ["Straits Fuel Pte"]


def test_suppliers_are_private(api, other_headers):
    supplier = create_supplier(api)
    status, _ = api("GET", f"/api/suppliers/{supplier['id']}", headers=other_headers)
    assert status == 404


def test_duplicate_ports_keep_choice_uses_the_name_as_displayed(api):
    supplier = create_supplier(api)
    _, first = api("POST", f"/api/suppliers/{supplier['id']}/ports", json={"port_name": "Singapore"})
    _, second = api("POST", f"/api/suppliers/{supplier['id']}/ports", json={"port_name": "Singapore"})

    status, body = api("DELETE", f"/api/suppliers/{supplier['id']}/ports/duplicates",
                       json={"keep": {"Singapore": first[0]["id"]}})

    assert status == 200
    assert body == {"deleted": 1, "ids": [second[0]["id"]]}
    _, ports = api("GET", f"/api/suppliers/{supplier['id']}/ports")
    assert [p["id"] for p in ports] == [first[0]["id"]]


def test_import_suppliers_from_csv_and_export_them(api, raw):
    csv_text = (
        "Company_Name,Country,Ports,Fuel_Types,Default_Has_Barge,Rating\n"
        "Straits Fuel Pte,Singapore,Singapore; Port Klang,VLSFO,yes,4\n"
        ",Nowhere,,,,\n"
        "Gulf Marine,UAE,Fujairah,LSMGO,no,9\n"
    )

    status, body = api("POST", "/api/suppliers/import", json={"csv": csv_text})

    assert status == 200
    assert (body["imported"], body["skipped"]) == (1, 1)
    assert [e["row"] for e in body["errors"]] == [2]

    _, suppliers = api("GET", "/api/suppliers")
    assert [(s["company_name"], s["default_has_barge"], s["rating"]) for s in suppliers] == [
        ("Straits Fuel Pte", True, 4),
    ]

    status, text, headers = raw("GET", "/api/suppliers/export")
    assert status == 200
    assert headers["Content-Type"].startswith("text/csv")
    lines = text.strip().splitlines()
    assert lines[0].startswith("company_name,contact_person,")
    assert lines[1].startswith("Straits Fuel Pte,")
    assert "Singapore; Port Klang" in lines[1]
