"""API tests for application processing."""
from datetime import date


def _create(client, headers, **fields):
    body = {"application_type": "visa_cancellation", **fields}
    response = client.post("/api/applications/", json=body, headers=headers)
    assert response.status_code == 201, response.get_json()
    return response.get_json()


def _step(client, headers, application_id, step, notes="done", updated_by="Sara"):
    return client.post(
        f"/api/applications/{application_id}/steps",
        json={"step": step, "notes": notes, "updated_by": updated_by},
        headers=headers,
    )


def test_create_applies_defaults(client, user_headers) -> None:
    application = _create(client, user_headers)

    assert application["application_number"] == f"APP-{date.today():%y%m%d}-001"
    assert application["client_name"] == "Walk-in Customer"
    assert application["person_name"] == "Not Specified"
    assert application["status"] == "in_progress"
    assert application["current_step"] == "labour_cancellation_typing"
    assert application["steps_completed"] == []
    assert application["start_date"] == date.today().isoformat()
    assert [s["step"] for s in application["steps"]] == [
        "labour_cancellation_typing",
        "labour_cancellation_submission",
        "immigration_cancellation",
        "completed",
    ]
    assert application["steps"][0]["current"] is True


def test_create_requires_known_type(client, user_headers) -> None:
    response = client.post("/api/applications/", json={"application_type": "passport"}, headers=user_headers)
    assert response.status_code == 400
    assert "application_type" in response.get_json()["errors"]


def test_visa_cancellation_walkthrough(client, user_headers) -> None:
    application = _create(client, user_headers, person_name="Ali Hassan")
    app_id = application["id"]

    response = _step(client, user_headers, app_id, "labour_cancellation_typing", notes="typed", updated_by="Sara")
    assert response.status_code == 200
    body = response.get_json()
    assert body["current_step"] == "labour_cancellation_submission"
    assert body["steps_completed"][0]["notes"] == "typed"
    assert body["steps_completed"][0]["updated_by"] == "Sara"
    assert body["steps_completed"][0]["completed_date"] == date.today().isoformat()

    _step(client, user_headers, app_id, "labour_cancellation_submission")
    body = _step(client, user_headers, app_id, "immigration_cancellation").get_json()

    assert body["current_step"] == "completed"
    assert body["status"] == "completed"
    assert body["completion_date"] == date.today().isoformat()
    assert all(row["done"] for row in body["steps"])


def test_steps_cannot_be_skipped(client, user_headers) -> None:
    application = _create(client, user_headers)

    response = _step(client, user_headers, application["id"], "immigration_cancellation")
    assert response.status_code == 400
    assert response.get_json()["current_step"] == "labour_cancellation_typing"


def test_step_requires_note_and_author(client, user_headers) -> None:
    application = _create(client, user_headers)

    response = client.post(
        f"/api/applications/{application['id']}/steps",
        json={"step": "labour_cancellation_typing", "notes": "", "updated_by": ""},
        headers=user_headers,
    )
    assert response.status_code == 400
    errors = response.get_json()["errors"]
    assert "notes" in errors
    assert "updated_by" in errors


def test_completed_step_cannot_be_repeated(client, user_headers) -> None:
    application = _create(client, user_headers)
    _step(client, user_headers, application["id"], "labour_cancellation_typing")

    assert _step(client, user_headers, application["id"], "labour_cancellation_typing").status_code == 409


def test_completed_application_rejects_steps(client, user_headers) -> None:
    application = _create(client, user_headers, application_type="contract_modification")
    _step(client, user_headers, application["id"], "modify_work_permit")
    _step(client, user_headers, application["id"], "submission")

    assert _step(client, user_headers, application["id"], "completed").status_code == 409


def test_other_application_is_closed_explicitly(client, user_headers) -> None:
    application = _create(
        client, user_headers, application_type="other", application_type_description="Golden visa file"
    )
    assert application["current_step"] is None
    assert application["steps"] == []
    assert application["application_type_description"] == "Golden visa file"

    assert _step(client, user_headers, application["id"], "first_visit").status_code == 400

    response = client.post(f"/api/applications/{application['id']}/complete", headers=user_headers)
    assert response.status_code == 200
    assert response.get_json()["status"] == "completed"

    again = client.post(f"/api/applications/{application['id']}/complete", headers=user_headers)
    assert again.status_code == 409

    # Editing other fields keeps it closed.
    updated = client.put(f"/api/applications/{application['id']}", json={"notes": "filed"}, headers=user_headers)
    assert updated.get_json()["status"] == "completed"


def test_direct_completion_only_for_other(client, user_headers) -> None:
    application = _create(client, user_headers)
    response = client.post(f"/api/applications/{application['id']}/complete", headers=user_headers)
    assert response.status_code == 400


def test_type_change_before_and_after_progress(client, user_headers) -> None:
    application = _create(client, user_headers)

    changed = client.put(
        f"/api/applications/{application['id']}",
        json={"application_type": "visa_renewal"},
        headers=user_headers,
    )
    assert changed.status_code == 200
    assert changed.get_json()["current_step"] == "labour_card_renewal"

    _step(client, user_headers, application["id"], "labour_card_renewal")
    locked = client.put(
        f"/api/applications/{application['id']}",
        json={"application_type": "new_license"},
        headers=user_headers,
    )
    assert locked.status_code == 409


def test_update_ignores_progress_fields(client, user_headers) -> None:
    application = _create(client, user_headers)

    response = client.put(
        f"/api/applications/{application['id']}",
        json={"status": "completed", "current_step": "completed", "emirate": "sharjah"},
        headers=user_headers,
    )
    body = response.get_json()
    assert body["status"] == "in_progress"
    assert body["current_step"] == "labour_cancellation_typing"
    assert body["emirate"] == "sharjah"


def test_client_link_uses_display_name(client, user_headers, sample_client) -> None:
    application = _create(client, user_headers, client_id=sample_client.id)
    assert application["client_name"] == "Acme Trading LLC"


def test_deleted_client_is_rejected_for_new_applications(
    client, admin_headers, user_headers, sample_client
) -> None:
    application = _create(client, user_headers, client_id=sample_client.id)
    client.delete(f"/api/clients/{sample_client.id}", headers=admin_headers)

    response = client.post(
        "/api/applications/",
        json={"application_type": "visa_cancellation", "client_id": sample_client.id},
        headers=user_headers,
    )
    assert response.status_code == 400
    assert "client_id" in response.get_json()["errors"]

    response = client.put(
        f"/api/applications/{application['id']}",
        json={"client_id": sample_client.id, "emirate": "sharjah"},
        headers=user_headers,
    )
    assert response.status_code == 200
    assert response.get_json()["client_id"] == sample_client.id


def test_list_filters_by_status(client, user_headers) -> None:
    other = _create(client, user_headers, application_type="other")
    _create(client, user_headers)
    client.post(f"/api/applications/{other['id']}/complete", headers=user_headers)

    completed = client.get("/api/applications/?status=completed", headers=user_headers).get_json()
    assert [a["id"] for a in completed] == [other["id"]]


def test_delete_is_admin_only(client, user_headers, admin_headers) -> None:
    application = _create(client, user_headers)

    assert client.delete(f"/api/applications/{application['id']}", headers=user_headers).status_code == 403
    assert client.delete(f"/api/applications/{application['id']}", headers=admin_headers).status_code == 200
    assert client.get(f"/api/applications/{application['id']}", headers=admin_headers).status_code == 404


def test_catalog_endpoint(client, user_headers) -> None:
    payload = client.get("/api/applications/catalog", headers=user_headers).get_json()

    types = {t["value"]: t for t in payload["application_types"]}
    assert types["other"]["steps"] == []
    assert types["contract_modification"]["label"] == "Contract Modification"
    assert [s["value"] for s in types["contract_modification"]["steps"]] == [
        "modify_work_permit",
        "submission",
        "completed",
    ]
    assert {"value": "dubai", "label": "Dubai"} in payload["emirates"]


def test_requires_authentication(client) -> None:
    response = client.get("/api/applications/")
    assert response.status_code == 401
    assert response.get_json() == {"error": "Authentication required."}
