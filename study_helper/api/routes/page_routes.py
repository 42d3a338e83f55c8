from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from .. import subject_service
from ..api_models import PublicProfile
from ..container import AppContainer
from ..flags import parse_error_flag, parse_success_flag
from ..session_guard import current_user, require_page_user

STATIC_PAGES = ("timer", "about", "impressum", "datenschutz")


def _flags(request: Request) -> dict:
    return {
        "error": parse_error_flag(request.query_params.get("error")),
        "success": parse_success_flag(request.query_params.get("success")),
    }


def _static_page(name: str):
    def page(request: Request):
        return {"page": name, **_flags(request)}

    page.__name__ = f"{name}_page"
    return page


def register_page_routes(router: APIRouter, container: AppContainer) -> None:
    documents = container.documents

    @router.get("/")
    def index(request: Request):
        target = "/subjects" if current_user(request) else "/auth/login"
        return RedirectResponse(target, status_code=303)

    @router.get("/auth/login")
    def login_page(request: Request):
        return {"page": "login", **_flags(request)}

    @router.get("/auth/register")
    def register_page(request: Request):
        return {"page": "register", **_flags(request)}

    for name in STATIC_PAGES:
        router.add_api_route(f"/{name}", _static_page(name), methods=["GET"])

    @router.get("/grades")
    def grades_page(user: PublicProfile = Depends(require_page_user)):
        document = documents.load(user.username)
        return {
            "current_user": user.model_dump(),
            "subjects": document.to_json()["subjects"],
        }

    @router.get("/todo")
    def todo_page(request: Request, user: PublicProfile = Depends(require_page_user)):
        document = documents.load(user.username)
        return {
            **_flags(request),
            "todos": document.to_json()["subjects"],
            "open_todos": subject_service.open_todos(document),
        }
