from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from conftest import csrf_token


def _subjects_on_disk(app_config) -> list:
    return json.loads((app_config.userdata_dir / "anna.json").read_text(encoding="utf-8"))["subjects"]


@pytest.mark.parametrize("token", [None, "", "0" * 64])
def test_post_without_valid_token_is_rejected_without_side_effects(user_client, app_config, token) -> None:
    form = {"name": "Mathe"}
    if token is not None:
        form["_csrf"] = token

    response = user_client.post("/subjects/add", data=form)

    assert response.status_code == 403
    assert response.json() == {"error": "invalid_csrf_token"}
    assert _subjects_on_disk(app_config) == []


def test_delete_requires_token(user_client: TestClient) -> None:
    assert user_client.delete("/api/grades/whatever").status_code == 403
    assert user_client.delete("/api/grades/whatever", headers={"x-csrf-token": "nope"}).status_code == 403


def test_header_token_is_accepted(user_client: TestClient, app_config) -> None:
    response = user_client.post(
        "/subjects/add",
        data={"name": "Mathe"},
        headers={"x-csrf-token": csrf_token(user_client)},
    )

    assert response.status_code == 303
    assert [s["name"] for s in _subjects_on_disk(app_config)] == ["Mathe"]


def test_csrf_rejects_register_before_touching_store(client: TestClient, app_config) -> None:
    response = client.post(
        "/auth/register",
        data={"prename": "A", "lastname": "B", "username": "ab", "passwordone": "x", "passwordtwo": "x"},
    )

    assert response.status_code == 403
    assert not app_config.users_file.exists()


def test_token_from_other_session_is_rejected(client: TestClient, app_config) -> None:
    from study_helper.api.app import create_app

    other = TestClient(create_app(app_config), follow_redirects=False)
    foreign = csrf_token(other)

    response = client.post("/auth/logout", data={"_csrf": foreign})

    assert response.status_code == 403


@pytest.mark.parametrize("path", ["/api/subjects", "/api/grades"])
def test_api_routes_answer_401_for_anonymous(client: TestClient, app_config, path) -> None:
    response = client.get(path)

    assert response.status_code == 401
    assert response.json() == {"error": "unauthorized"}
    assert not app_config.userdata_dir.exists()


@pytest.mark.parametrize("path", ["/subjects", "/subjects/subject1", "/grades", "/todo"])
def test_pages_redirect_anonymous_to_login(client: TestClient, path) -> None:
    response = client.get(path)

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/login?error=access"


def test_anonymous_mutation_with_token_is_redirected(client: TestClient) -> None:
    response = client.post("/subjects/add", data={"name": "Mathe", "_csrf": csrf_token(client)})

    assert response.status_code == 303
    assert response.headers["location"] == "/auth/login?error=access"


def test_index_redirects_by_login_state(client: TestClient) -> None:
    assert client.get("/").headers["location"] == "/auth/login"


def test_public_pages_render_context(client: TestClient) -> None:
    for name in ("timer", "about", "impressum", "datenschutz"):
        response = client.get(f"/{name}?error=access&success=bogus")
        assert response.status_code == 200
        assert response.json() == {"page": name, "error": "access", "success": None}
    assert client.get("/auth/login").json()["page"] == "login"
    assert client.get("/auth/register").json()["page"] == "register"


def test_malformed_json_without_token_is_rejected_as_csrf(user_client: TestClient) -> None:
    response = user_client.post(
        "/api/grades",
        content=b"{not json",
        headers={"content-type": "application/json"},
    )

    assert response.status_code == 403
    assert response.json() == {"error": "invalid_csrf_token"}


@pytest.mark.parametrize("method", ["post", "delete"])
def test_unknown_path_without_token_is_rejected_as_csrf(user_client: TestClient, method) -> None:
    response = getattr(user_client, method)("/does/not/exist")

    assert response.status_code == 403
    assert response.json() == {"error": "invalid_csrf_token"}


def test_unknown_path_with_token_still_404s(user_client: TestClient) -> None:
    response = user_client.post("/does/not/exist", headers={"x-csrf-token": csrf_token(user_client)})

    assert response.status_code == 404


def test_form_token_leaves_body_readable_for_handler(user_client: TestClient) -> None:
    token = csrf_token(user_client)

    user_client.post("/subjects/add", data={"name": "Physik", "_csrf": token})

    assert [s["name"] for s in user_client.get("/api/subjects").json()] == ["Physik"]
