from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Optional, Union

from .api_models import PublicProfile, UserRecord
from .credential_store import CredentialStore
from .document_store import UserDocumentRepository
from .errors import StorageError
from .flags import LoginError, RegisterError
from .password_policy import fits_hash_limit, hash_password, is_strong, verify_password
from .rate_limit import LoginRateLimiter

_log = logging.getLogger(__name__)

# usernames double as per-user file names
_USERNAME_RE = re.compile(r"^[A-Za-z0-9_.\-@]+$")
_USERNAME_MAX_LEN = 64


@dataclass(frozen=True)
class AccountDeps:
    credentials: CredentialStore
    documents: UserDocumentRepository
    rate_limiter: LoginRateLimiter
    bcrypt_rounds: int = 10


def _clean(value: Any) -> str:
    return str(value or "").strip()


def _valid_username(username: str) -> bool:
    return (
        len(username) <= _USERNAME_MAX_LEN
        and bool(_USERNAME_RE.match(username))
        and not username.startswith(".")
    )


def register(
    *,
    prename: Any,
    lastname: Any,
    username: Any,
    password_one: Any,
    password_two: Any,
    deps: AccountDeps,
) -> Optional[RegisterError]:
    """Create a user record and an empty user document.

    Returns ``None`` on success, otherwise the reason for refusing.
    """
    if not prename or not lastname or not username or not password_one or not password_two:
        return RegisterError.REQUIRED
    if password_one != password_two:
        return RegisterError.MISMATCH
    if not is_strong(password_one) or not fits_hash_limit(password_one):
        return RegisterError.WEAK_PASSWORD

    clean_username = _clean(username)
    clean_prename = _clean(prename)
    clean_lastname = _clean(lastname)
    if not clean_username or not clean_prename or not clean_lastname:
        return RegisterError.REQUIRED
    if not _valid_username(clean_username):
        return RegisterError.INVALID_USERNAME

    password_hash = hash_password(password_one, rounds=deps.bcrypt_rounds)
    with deps.credentials.locked():
        if deps.credentials.find_by_username(clean_username) is not None:
            _log.info("registration refused, username taken: %s", clean_username)
            return RegisterError.EXISTS
        deps.credentials.create(
            UserRecord(
                prename=clean_prename,
                lastname=clean_lastname,
                username=clean_username,
                password_hash=password_hash,
            )
        )

    try:
        deps.documents.init(clean_username)
    except StorageError:
        _log.error("could not create user document for %s", clean_username, exc_info=True)
        return RegisterError.FILE
    _log.info("registered user %s", clean_username)
    return None


def login(
    *,
    username: Any,
    password: Any,
    client: str,
    deps: AccountDeps,
) -> Union[PublicProfile, LoginError]:
    if deps.rate_limiter.is_limited(client):
        return LoginError.RATE_LIMITED
    if not username or not password:
        return LoginError.REQUIRED

    candidate = deps.credentials.find_by_username(_clean(username))
    if candidate is None:
        _log.info("login failed for unknown user %s from %s", _clean(username), client)
        return LoginError.INVALID
    if not verify_password(str(password), candidate.password_hash):
        _log.info("login failed for %s from %s", candidate.username, client)
        return LoginError.INVALID
    return candidate.public()
