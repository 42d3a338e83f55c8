from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, RedirectResponse

from .app_routes import build_router
from .config import AppConfig
from .container import build_app_container
from .errors import LoginRequired, StorageError, StudyHelperError
from .logging_config import configure_logging
from .request_context import request_id_middleware
from .session_guard import csrf_guard
from .session_store import ServerSessionMiddleware

_log = logging.getLogger(__name__)


@asynccontextmanager
async def app_lifespan(_app):
    configure_logging()
    container = getattr(_app.state, "container", None)
    if container is not None:
        _log.info("serving data from %s", container.config.data_dir)
    yield
    _log.info("shutdown")


async def _study_helper_error(_request: Request, exc: StudyHelperError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.detail})


async def _storage_error(request: Request, exc: StorageError) -> JSONResponse:
    _log.error("storage failure on %s %s: %s", request.method, request.url.path, exc.detail, exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "server_error"})


async def _login_required(_request: Request, exc: LoginRequired) -> RedirectResponse:
    return RedirectResponse(exc.location, status_code=303)


async def _request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
    _log.info("rejected malformed request on %s: %s", request.url.path, exc.errors()[:3])
    return JSONResponse(status_code=400, content={"error": "invalid_request"})


def install_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StudyHelperError, _study_helper_error)
    app.add_exception_handler(StorageError, _storage_error)
    app.add_exception_handler(LoginRequired, _login_required)
    app.add_exception_handler(RequestValidationError, _request_validation_error)


def create_app(config: Optional[AppConfig] = None) -> FastAPI:
    """Build the application; raises RuntimeError when SESSION_SECRET is unusable."""
    config = config or AppConfig.from_env()
    container = build_app_container(config=config)

    app = FastAPI(
        title="Study Helper",
        version="0.1.0",
        lifespan=app_lifespan,
    )
    app.state.container = container
    install_exception_handlers(app)

    # last added runs first: session -> request id -> csrf guard
    app.middleware("http")(csrf_guard)
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        ServerSessionMiddleware,
        store=container.sessions,
        secret_key=config.session_secret,
        session_cookie=config.session_cookie_name,
        max_age=config.session_max_age_sec,
        https_only=config.session_cookie_secure,
    )

    app.include_router(build_router(container))
    return app
