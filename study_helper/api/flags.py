"""Closed sets of the status codes that travel in redirect query strings."""
from __future__ import annotations

from enum import Enum
from typing import Optional
from urllib.parse import urlencode


class RegisterError(str, Enum):
    REQUIRED = "required"
    MISMATCH = "mismatch"
    WEAK_PASSWORD = "password"
    INVALID_USERNAME = "username"
    EXISTS = "exists"
    FILE = "file"


class LoginError(str, Enum):
    RATE_LIMITED = "ratelimit"
    REQUIRED = "required"
    INVALID = "invalid"
    ACCESS = "access"


class SubjectError(str, Enum):
    NO_NAME = "noname"
    NO_ID = "noID"
    NOT_FOUND = "notfound"


class SuccessFlag(str, Enum):
    CREATED = "created"
    LOGIN = "login"
    LOGOUT = "logout"
    DELETED = "deleted"


_KNOWN_ERRORS = {e.value for cls in (RegisterError, LoginError, SubjectError) for e in cls}
_KNOWN_SUCCESS = {e.value for e in SuccessFlag}


def with_flag(path: str, *, error: Optional[Enum] = None, success: Optional[Enum] = None) -> str:
    params = {}
    if error is not None:
        params["error"] = error.value
    if success is not None:
        params["success"] = success.value
    return f"{path}?{urlencode(params)}" if params else path


def parse_error_flag(raw: Optional[str]) -> Optional[str]:
    """Unknown codes in a query string are dropped instead of echoed back."""
    return raw if raw in _KNOWN_ERRORS else None


def parse_success_flag(raw: Optional[str]) -> Optional[str]:
    return raw if raw in _KNOWN_SUCCESS else None
