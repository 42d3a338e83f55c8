from __future__ import annotations

from fastapi import APIRouter

from .container import AppContainer
from .routes.auth_routes import register_auth_routes
from .routes.grade_routes import register_grade_routes
from .routes.misc_health_routes import register_misc_health_routes
from .routes.page_routes import register_page_routes
from .routes.subject_routes import register_subject_routes


def build_router(container: AppContainer) -> APIRouter:
    router = APIRouter()
    register_misc_health_routes(router, container)
    register_page_routes(router, container)
    register_auth_routes(router, container)
    register_subject_routes(router, container)
    register_grade_routes(router, container)
    return router
