from __future__ import annotations

import json
import logging
import os
import shutil
import threading
import uuid
import weakref
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

_log = logging.getLogger(__name__)

_PATH_LOCKS: weakref.WeakValueDictionary = weakref.WeakValueDictionary()
_PATH_LOCKS_GUARD = threading.Lock()


def path_lock(path: Path) -> threading.RLock:
    """Reentrant lock shared by every caller touching the same file."""
    key = str(Path(path).resolve())
    with _PATH_LOCKS_GUARD:
        lock = _PATH_LOCKS.get(key)
        if lock is None:
            lock = threading.RLock()
            _PATH_LOCKS[key] = lock
        return lock


def _atomic_tmp_path(path: Path) -> Path:
    return path.with_suffix(path.suffix + f".{uuid.uuid4().hex}.tmp")


def atomic_write_json(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = _atomic_tmp_path(path)
    try:
        fd = os.open(str(tmp), os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, json.dumps(payload, ensure_ascii=False, indent=2).encode("utf-8"))
            os.fsync(fd)
        finally:
            os.close(fd)
        tmp.replace(path)
    finally:
        try:
            tmp.unlink(missing_ok=True)
        except Exception:
            _log.debug("failed to clean up temp file %s", tmp)


def read_json(path: Path) -> Any:
    """Parse a JSON file; FileNotFoundError and ValueError propagate."""
    return json.loads(path.read_text(encoding="utf-8"))


def quarantine_file(path: Path) -> Path | None:
    """Copy an unreadable file aside before it gets overwritten."""
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    target = path.with_name(f"{path.name}.corrupt-{stamp}")
    try:
        shutil.copy2(path, target)
    except FileNotFoundError:
        return None
    except OSError:
        _log.warning("failed to quarantine %s", path, exc_info=True)
        return None
    return target
