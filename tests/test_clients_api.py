"""API tests for clients: duplicate detection and soft delete."""
from datetime import date


def _create(client, headers, **fields):
    body = {"client_type": "company", "company_name": "Acme Trading LLC", "phone": "0501234567", **fields}
    return client.post("/api/clients/", json=body, headers=headers)


def test_create_client_assigns_code(client, user_headers) -> None:
    response = _create(client, user_headers, emirate="sharjah", is_new_client=True)

    assert response.status_code == 201
    body = response.get_json()
    assert body["client_code"] == f"CLI-{date.today():%Y}-0001"
    assert body["display_name"] == "Acme Trading LLC"
    assert body["is_new_client"] is True
    assert body["deleted_at"] is None


def test_duplicate_phone_conflicts(client, user_headers) -> None:
    _create(client, user_headers)
    response = _create(client, user_headers, company_name="Other Co")

    assert response.status_code == 409
    body = response.get_json()
    assert body["error"] == "Client already exists."
    assert body["duplicates"][0]["company_name"] == "Acme Trading LLC"


def test_same_name_different_type_is_not_a_duplicate(client, user_headers) -> None:
    _create(client, user_headers, phone=None)
    response = client.post(
        "/api/clients/",
        json={"client_type": "individual", "contact_person": "Acme Trading LLC"},
        headers=user_headers,
    )
    assert response.status_code == 201


def test_client_needs_an_identifier(client, user_headers) -> None:
    response = client.post("/api/clients/", json={"client_type": "company", "address": "Deira"}, headers=user_headers)
    assert response.status_code == 400


def test_invalid_emirate_rejected(client, user_headers) -> None:
    assert _create(client, user_headers, emirate="atlantis").status_code == 400


def test_update_checks_duplicates_excluding_itself(client, user_headers) -> None:
    first = _create(client, user_headers).get_json()
    second = _create(client, user_headers, company_name="Beta LLC", phone="0509876543").get_json()

    same = client.put(f"/api/clients/{first['id']}", json={"notes": "VIP", "phone": "0501234567"}, headers=user_headers)
    assert same.status_code == 200
    assert same.get_json()["notes"] == "VIP"

    clash = client.put(f"/api/clients/{second['id']}", json={"phone": "0501234567"}, headers=user_headers)
    assert clash.status_code == 409


def test_soft_delete_hides_client_from_listing(client, admin_headers, user_headers) -> None:
    created = _create(client, user_headers).get_json()

    assert client.delete(f"/api/clients/{created['id']}", headers=user_headers).status_code == 403
    assert client.delete(f"/api/clients/{created['id']}", headers=admin_headers).status_code == 200

    listing = client.get("/api/clients/", headers=user_headers).get_json()
    assert listing == []

    # Still reachable by id for documents that reference it.
    single = client.get(f"/api/clients/{created['id']}", headers=user_headers)
    assert single.status_code == 200
    assert single.get_json()["deleted_at"] is not None

    update = client.put(f"/api/clients/{created['id']}", json={"notes": "x"}, headers=user_headers)
    assert update.status_code == 404


def test_deleted_client_does_not_block_recreation(client, admin_headers) -> None:
    created = _create(client, admin_headers).get_json()
    client.delete(f"/api/clients/{created['id']}", headers=admin_headers)

    assert _create(client, admin_headers).status_code == 201


def test_search(client, user_headers) -> None:
    _create(client, user_headers)
    _create(client, user_headers, company_name="Beta LLC", phone="0509876543")

    found = client.get("/api/clients/?search=beta", headers=user_headers).get_json()
    assert [c["company_name"] for c in found] == ["Beta LLC"]


def test_unknown_client_is_404(client, user_headers) -> None:
    assert client.get("/api/clients/999", headers=user_headers).status_code == 404
