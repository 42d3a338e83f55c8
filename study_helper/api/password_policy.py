from __future__ import annotations

import logging
import re
from typing import Any

import bcrypt

_log = logging.getLogger(__name__)

PASSWORD_MIN_LENGTH = 8
# bcrypt only looks at the first 72 bytes and newer releases refuse longer input
PASSWORD_MAX_BYTES = 72
DEFAULT_BCRYPT_ROUNDS = 10

_LOWER_RE = re.compile(r"[a-z]")
_UPPER_RE = re.compile(r"[A-Z]")
_DIGIT_RE = re.compile(r"\d")
_SYMBOL_RE = re.compile(r"[\W_]")


def is_strong(password: Any) -> bool:
    """At least eight characters with a lowercase letter, an uppercase
    letter, a digit and a symbol (underscore counts as a symbol)."""
    if not isinstance(password, str):
        return False
    return (
        len(password) >= PASSWORD_MIN_LENGTH
        and bool(_LOWER_RE.search(password))
        and bool(_UPPER_RE.search(password))
        and bool(_DIGIT_RE.search(password))
        and bool(_SYMBOL_RE.search(password))
    )


def fits_hash_limit(password: str) -> bool:
    return len(password.encode("utf-8")) <= PASSWORD_MAX_BYTES


def hash_password(password: str, *, rounds: int = DEFAULT_BCRYPT_ROUNDS) -> str:
    if not isinstance(password, str):
        raise TypeError("password must be a string")
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("ascii")


def verify_password(password: Any, stored: Any) -> bool:
    if not isinstance(password, str) or not isinstance(stored, str) or not stored:
        return False
    if not fits_hash_limit(password):
        # no stored hash can match input bcrypt refuses to hash
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), stored.encode("ascii"))
    except ValueError:
        # Malformed or foreign hash format
        _log.warning("stored password hash could not be parsed")
        return False
