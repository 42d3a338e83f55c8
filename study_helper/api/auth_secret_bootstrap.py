from __future__ import annotations

import logging
import os
from typing import Callable, Optional

_log = logging.getLogger(__name__)

SESSION_SECRET_MIN_LENGTH = 32


def validate_session_secret(raw: Optional[str]) -> str:
    """Return the stripped session secret or refuse to go any further.

    The secret signs the session cookie, so a missing or short value is a
    startup error rather than something to paper over at request time.
    """
    secret = str(raw or "").strip()
    if not secret:
        raise RuntimeError(
            "SESSION_SECRET is not set; configure a random secret of at least "
            f"{SESSION_SECRET_MIN_LENGTH} characters"
        )
    if len(secret) < SESSION_SECRET_MIN_LENGTH:
        raise RuntimeError(
            f"SESSION_SECRET is too short ({len(secret)} characters); "
            f"at least {SESSION_SECRET_MIN_LENGTH} are required"
        )
    return secret


def ensure_session_secret(*, getenv: Callable[[str, Optional[str]], Optional[str]] = os.getenv) -> str:
    secret = validate_session_secret(getenv("SESSION_SECRET", None))
    _log.debug("session secret accepted (%d characters)", len(secret))
    return secret
