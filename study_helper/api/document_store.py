"""Per-user JSON documents.

``JsonDocumentStore`` is a plain key-value layer over one file per key and
is strict: a missing or unparsable file is reported, never papered over.
``UserDocumentRepository`` adds the typed document model and the same
heal-on-read policy the credential store uses: unreadable files start over,
malformed subjects, todos or grades are dropped one by one.
"""
from __future__ import annotations

import logging
import re
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Protocol

from .api_models import UserDocument
from .errors import DocumentCorruptError, DocumentNotFoundError, StorageError
from .fs_atomic import atomic_write_json, path_lock, quarantine_file, read_json

_log = logging.getLogger(__name__)

_SAFE_KEY_RE = re.compile(r"^[^/\\\x00]+$")


class DocumentStore(Protocol):
    def path_for(self, key: str) -> Path: ...

    def get(self, key: str) -> Dict[str, Any]: ...

    def put(self, key: str, document: Dict[str, Any]) -> None: ...

    def exists(self, key: str) -> bool: ...

    def lock(self, key: str) -> threading.RLock: ...


class JsonDocumentStore:
    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def path_for(self, key: str) -> Path:
        text = str(key or "")
        if not _SAFE_KEY_RE.match(text) or text.startswith(".") or text != text.strip():
            raise StorageError(f"invalid document key: {text!r}")
        return self.base_dir / f"{text}.json"

    def lock(self, key: str) -> threading.RLock:
        return path_lock(self.path_for(key))

    def exists(self, key: str) -> bool:
        return self.path_for(key).is_file()

    def get(self, key: str) -> Dict[str, Any]:
        path = self.path_for(key)
        try:
            data = read_json(path)
        except FileNotFoundError as exc:
            raise DocumentNotFoundError(f"no document for {key!r}") from exc
        except ValueError as exc:
            raise DocumentCorruptError(f"document for {key!r} is not valid JSON") from exc
        except OSError as exc:
            raise StorageError(f"cannot read document for {key!r}") from exc
        if not isinstance(data, dict):
            raise DocumentCorruptError(f"document for {key!r} is not an object")
        return data

    def put(self, key: str, document: Dict[str, Any]) -> None:
        path = self.path_for(key)
        with self.lock(key):
            try:
                atomic_write_json(path, document)
            except OSError as exc:
                raise StorageError(f"cannot write document for {key!r}") from exc


class UserDocumentRepository:
    def __init__(self, store: DocumentStore):
        self.store = store

    def init(self, username: str) -> UserDocument:
        document = UserDocument()
        self.save(username, document)
        return document

    def load(self, username: str) -> UserDocument:
        with self.store.lock(username):
            try:
                raw = self.store.get(username)
            except DocumentNotFoundError:
                _log.warning("user document for %s missing; starting empty", username)
                return self.init(username)
            except DocumentCorruptError as exc:
                backup = quarantine_file(self.store.path_for(username))
                _log.warning(
                    "user document for %s unreadable (%s); reset to empty, backup=%s",
                    username,
                    exc.__class__.__name__,
                    backup,
                )
                return self.init(username)

            document, dropped = UserDocument.salvage(raw)
            if dropped:
                backup = quarantine_file(self.store.path_for(username))
                _log.warning(
                    "user document for %s: dropped %d malformed entries, backup=%s",
                    username,
                    dropped,
                    backup,
                )
                self.save(username, document)
            return document

    def save(self, username: str, document: UserDocument) -> None:
        self.store.put(username, document.to_json())

    @contextmanager
    def edit(self, username: str) -> Iterator[UserDocument]:
        """Read-modify-write under the per-user lock; saves on clean exit."""
        with self.store.lock(username):
            document = self.load(username)
            yield document
            self.save(username, document)
