from __future__ import annotations

import hmac
import logging
import secrets
from typing import Any, Awaitable, Callable, MutableMapping, Optional

from fastapi import Request
from starlette.exceptions import HTTPException
from starlette.formparsers import MultiPartException
from starlette.responses import JSONResponse, Response

from .api_models import PublicProfile
from .errors import LoginRequired, UnauthorizedError
from .session_store import rotate_session

_log = logging.getLogger(__name__)

CSRF_SESSION_KEY = "csrf_token"
CSRF_FORM_FIELD = "_csrf"
CSRF_HEADER = "x-csrf-token"
USER_SESSION_KEY = "user"
SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
LOGIN_ACCESS_REDIRECT = "/auth/login?error=access"

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def ensure_csrf_token(session: MutableMapping[str, Any]) -> str:
    token = session.get(CSRF_SESSION_KEY)
    if not isinstance(token, str) or not token:
        token = secrets.token_hex(32)
        session[CSRF_SESSION_KEY] = token
    return token


async def _submitted_token(request: Request) -> Optional[str]:
    header = request.headers.get(CSRF_HEADER)
    if header:
        return header
    content_type = request.headers.get("content-type", "")
    if not content_type.startswith(_FORM_CONTENT_TYPES):
        return None
    # buffer the body first so the endpoint can parse the same form again
    await request.body()
    try:
        form = await request.form()
    except (HTTPException, MultiPartException):
        _log.info("unparseable form body on %s", request.url.path)
        return None
    value = form.get(CSRF_FORM_FIELD)
    return value if isinstance(value, str) else None


def _token_matches(expected: Any, submitted: Optional[str]) -> bool:
    if not isinstance(expected, str) or not expected or not submitted:
        return False
    return hmac.compare_digest(submitted.encode("utf-8"), expected.encode("utf-8"))


async def csrf_guard(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
    """Issue the session token, then reject unsafe methods that do not echo it.

    Runs before routing and body validation, so unknown paths and malformed
    bodies without a token also get 403.
    """
    expected = request.session.get(CSRF_SESSION_KEY)
    request.state.csrf_token = ensure_csrf_token(request.session)
    if request.method.upper() not in SAFE_METHODS:
        submitted = await _submitted_token(request)
        if not _token_matches(expected, submitted):
            _log.warning("csrf check failed: %s %s", request.method, request.url.path)
            return JSONResponse(status_code=403, content={"error": "invalid_csrf_token"})
    return await call_next(request)


def current_user(request: Request) -> Optional[PublicProfile]:
    raw = request.session.get(USER_SESSION_KEY)
    if not isinstance(raw, dict):
        return None
    try:
        return PublicProfile.model_validate(raw)
    except ValueError:
        _log.warning("dropping malformed session user")
        request.session.pop(USER_SESSION_KEY, None)
        return None


def require_api_user(request: Request) -> PublicProfile:
    user = current_user(request)
    if user is None:
        raise UnauthorizedError("unauthorized")
    return user


def require_page_user(request: Request) -> PublicProfile:
    user = current_user(request)
    if user is None:
        raise LoginRequired(LOGIN_ACCESS_REDIRECT)
    return user


def login_session(request: Request, profile: PublicProfile) -> None:
    """Anonymous -> Authenticated: new session id, same CSRF token."""
    token = ensure_csrf_token(request.session)
    request.session.clear()
    request.session[CSRF_SESSION_KEY] = token
    request.session[USER_SESSION_KEY] = profile.model_dump()
    rotate_session(request.scope)


def logout_session(request: Request) -> None:
    request.session.clear()
    request.state.csrf_token = ensure_csrf_token(request.session)
    rotate_session(request.scope)
