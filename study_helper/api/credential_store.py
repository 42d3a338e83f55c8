from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

from .api_models import CredentialDocument, UserRecord
from .errors import StorageError
from .fs_atomic import atomic_write_json, path_lock, quarantine_file, read_json

_log = logging.getLogger(__name__)


class CredentialStore:
    """Global user registry kept in a single ``users.json`` document.

    Reads heal: a missing file is created, an unparsable one (or one without
    a ``users`` list) is quarantined and replaced by an empty registry, and
    malformed user entries are dropped while the valid ones are kept.
    Uniqueness is not enforced here; callers check ``find_by_username``
    while holding ``locked()``.
    """

    def __init__(self, path: Path):
        self.path = Path(path)

    @contextmanager
    def locked(self) -> Iterator[None]:
        lock: threading.RLock = path_lock(self.path)
        with lock:
            yield

    def _ensure_exists(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                atomic_write_json(self.path, CredentialDocument().model_dump())
        except OSError as exc:
            _log.error("cannot initialise credential store %s", self.path, exc_info=True)
            raise StorageError("credential_store_unavailable") from exc

    def load(self) -> CredentialDocument:
        with self.locked():
            self._ensure_exists()
            try:
                raw = read_json(self.path)
                if not isinstance(raw, dict):
                    raise ValueError("credential document is not an object")
                if not isinstance(raw.get("users"), list):
                    raise ValueError("credential document has no user list")
            except ValueError as exc:
                backup = quarantine_file(self.path)
                _log.warning(
                    "credential store %s unreadable (%s); reset to empty, backup=%s",
                    self.path,
                    exc.__class__.__name__,
                    backup,
                )
                fresh = CredentialDocument()
                self.save(fresh)
                return fresh
            except OSError as exc:
                _log.error("cannot read credential store %s", self.path, exc_info=True)
                raise StorageError("credential_store_unavailable") from exc

            data, dropped = CredentialDocument.salvage(raw)
            if dropped:
                backup = quarantine_file(self.path)
                _log.warning(
                    "credential store %s: dropped %d malformed user entries, backup=%s",
                    self.path,
                    dropped,
                    backup,
                )
                self.save(data)
            return data

    def save(self, data: CredentialDocument) -> None:
        with self.locked():
            try:
                atomic_write_json(self.path, data.model_dump(mode="json"))
            except OSError as exc:
                _log.error("cannot write credential store %s", self.path, exc_info=True)
                raise StorageError("credential_store_unavailable") from exc

    def list_all(self) -> List[UserRecord]:
        return list(self.load().users)

    def find_by_username(self, username: str) -> Optional[UserRecord]:
        wanted = str(username)
        for user in self.load().users:
            if user.username == wanted:
                return user
        return None

    def create(self, user: UserRecord) -> None:
        with self.locked():
            data = self.load()
            data.users.append(user)
            self.save(data)
