from __future__ import annotations

import json

from fastapi.testclient import TestClient

from conftest import csrf_token


def _headers(client: TestClient) -> dict:
    return {"x-csrf-token": csrf_token(client)}


def _add_subject(client: TestClient, name: str) -> str:
    response = client.post("/subjects/add", data={"name": name, "_csrf": csrf_token(client)})
    assert response.headers["location"] == "/subjects?success=created"
    return client.get("/api/subjects").json()[-1]["id"]


def test_subject_lifecycle(user_client: TestClient) -> None:
    subject_id = _add_subject(user_client, "Mathe")

    page = user_client.get("/subjects?success=created").json()
    assert page["current_user"]["username"] == "anna"
    assert page["success"] == "created"
    assert [s["name"] for s in page["subjects"]] == ["Mathe"]

    detail = user_client.get(f"/subjects/{subject_id}").json()
    assert detail["subject"]["examDate"] == ""
    assert detail["average"] is None

    response = user_client.post("/subjects/delete", data={"id": subject_id, "_csrf": csrf_token(user_client)})
    assert response.headers["location"] == "/subjects?success=deleted"
    assert user_client.get("/api/subjects").json() == []


def test_subject_error_flags(user_client: TestClient) -> None:
    token = csrf_token(user_client)

    assert user_client.post("/subjects/add", data={"name": " ", "_csrf": token}).headers["location"] == (
        "/subjects?error=noname"
    )
    assert user_client.post("/subjects/delete", data={"_csrf": token}).headers["location"] == "/subjects?error=noID"
    assert user_client.post("/subjects/delete", data={"id": "subject42", "_csrf": token}).headers["location"] == (
        "/subjects/subject42?error=notfound"
    )
    assert user_client.get("/subjects/subject42").headers["location"] == "/subjects?error=notfound"


def test_subject_save(user_client: TestClient) -> None:
    subject_id = _add_subject(user_client, "Mathe")
    body = {
        "examDate": "2026-12-01",
        "notes": "Integrale",
        "todos": [{"id": "t1", "text": "Blatt 4", "done": "true", "prio": "hoch", "dueDate": "2026-11-01"}],
    }

    response = user_client.post(f"/subjects/{subject_id}/save", json=body, headers=_headers(user_client))

    assert response.status_code == 200
    saved = user_client.get("/api/subjects").json()[0]
    assert saved["examDate"] == "2026-12-01"
    assert saved["note"] == "Integrale"
    assert saved["todos"][0]["done"] is True

    todo_page = user_client.get("/todo").json()
    assert todo_page["todos"][0]["id"] == subject_id
    assert todo_page["open_todos"] == []


def test_subject_save_failures(user_client: TestClient) -> None:
    subject_id = _add_subject(user_client, "Mathe")

    missing = user_client.post("/subjects/nope/save", json={}, headers=_headers(user_client))
    assert missing.status_code == 404
    assert missing.json() == {"error": "subject_not_found"}

    bad = user_client.post(
        f"/subjects/{subject_id}/save",
        json={"todos": [{"text": "x", "prio": "urgent"}]},
        headers=_headers(user_client),
    )
    assert bad.status_code == 400
    assert bad.json() == {"error": "invalid_todo"}


def test_grade_crud_and_lock(user_client: TestClient, app_config) -> None:
    headers = _headers(user_client)
    created = user_client.post(
        "/api/grades",
        json={"subject": "Mathe", "date": "2026-10-01", "grade": 2, "title": "Klausur", "locked": True},
        headers=headers,
    )
    assert created.status_code == 201
    locked = created.json()
    assert locked["locked"] is True and locked["grade"] == 2.0
    loose = user_client.post(
        "/api/grades",
        json={"subject": "Mathe", "date": "2026-10-02", "grade": "3", "title": "Test"},
        headers=headers,
    ).json()
    assert loose["locked"] is False

    refused = user_client.delete(f"/api/grades/{locked['id']}", headers=headers)
    assert refused.status_code == 403
    assert refused.json() == {"error": "grade_locked"}

    assert user_client.delete(f"/api/grades/{loose['id']}", headers=headers).status_code == 204
    assert user_client.delete(f"/api/grades/{loose['id']}", headers=headers).status_code == 404

    remaining = json.loads((app_config.userdata_dir / "anna.json").read_text(encoding="utf-8"))["grades"]
    assert [g["id"] for g in remaining] == [locked["id"]]
    assert user_client.get("/api/grades").json() == remaining


def test_grade_validation(user_client: TestClient) -> None:
    headers = _headers(user_client)

    missing = user_client.post("/api/grades", json={"subject": "Mathe"}, headers=headers)
    assert missing.status_code == 400
    assert missing.json() == {"error": "missing_fields"}

    invalid = user_client.post(
        "/api/grades",
        json={"subject": "Mathe", "date": "2026-10-01", "grade": "sehr gut", "title": "x"},
        headers=headers,
    )
    assert invalid.status_code == 400
    assert invalid.json() == {"error": "invalid_grade"}
    assert user_client.get("/api/grades").json() == []


def test_subject_average_on_detail_page(user_client: TestClient) -> None:
    subject_id = _add_subject(user_client, "Mathe")
    headers = _headers(user_client)
    for value in (1, 2):
        user_client.post(
            "/api/grades",
            json={"subject": "Mathe", "date": "2026-10-01", "grade": value, "title": "t"},
            headers=headers,
        )

    detail = user_client.get(f"/subjects/{subject_id}").json()

    assert detail["average"] == 1.5
    assert user_client.get("/grades").json()["subjects"][0]["name"] == "Mathe"


def test_users_cannot_see_each_other(user_client: TestClient) -> None:
    from conftest import login, register

    _add_subject(user_client, "Mathe")
    user_client.post("/auth/logout", data={"_csrf": csrf_token(user_client)})
    register(user_client, username="ben")
    login(user_client, username="ben")

    assert user_client.get("/api/subjects").json() == []


def test_storage_failure_is_generic_500(user_client: TestClient, app_config) -> None:
    doc = app_config.userdata_dir / "anna.json"
    doc.unlink()
    doc.mkdir()

    response = user_client.get("/api/subjects")

    assert response.status_code == 500
    assert response.json() == {"error": "server_error"}
