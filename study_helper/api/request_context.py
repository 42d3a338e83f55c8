"""Request ID propagation via ContextVar + logging filter.

Usage:
    - ``request_id_middleware`` sets the request_id for each request.
    - The logging filter attaches request_id to every log record.
    - Response header ``x-request-id`` is added automatically.
"""
from __future__ import annotations

import logging
import uuid
from contextvars import ContextVar

from starlette.requests import Request

REQUEST_ID: ContextVar[str] = ContextVar("request_id", default="")
REQUEST_ID_HEADER = "x-request-id"
_MAX_INBOUND_LEN = 64


def new_request_id() -> str:
    return uuid.uuid4().hex[:16]


def _inbound_request_id(request: Request) -> str:
    raw = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    if raw and len(raw) <= _MAX_INBOUND_LEN and raw.isprintable():
        return raw
    return ""


async def request_id_middleware(request: Request, call_next):
    rid = _inbound_request_id(request) or new_request_id()
    token = REQUEST_ID.set(rid)
    try:
        response = await call_next(request)
    finally:
        REQUEST_ID.reset(token)
    response.headers[REQUEST_ID_HEADER] = rid
    return response


class RequestIdFilter(logging.Filter):
    """Inject ``request_id`` into every log record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = REQUEST_ID.get("")  # type: ignore[attr-defined]
        return True
