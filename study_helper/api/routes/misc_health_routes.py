from __future__ import annotations

import logging
import shutil
from pathlib import Path

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from ..container import AppContainer

_log = logging.getLogger(__name__)
_DISK_MIN_BYTES = 100 * 1024 * 1024  # 100 MB


def _check_disk(data_dir: Path) -> dict:
    try:
        # Walk up to an existing ancestor so statvfs doesn't fail on missing dirs
        check_path = data_dir
        while not check_path.exists() and check_path.parent != check_path:
            check_path = check_path.parent
        usage = shutil.disk_usage(str(check_path))
        free_mb = int(usage.free / (1024 * 1024))
        return {
            "status": "ok" if usage.free >= _DISK_MIN_BYTES else "degraded",
            "free_mb": free_mb,
        }
    except OSError as exc:
        _log.warning("health: disk check failed", exc_info=True)
        return {"status": "error", "detail": str(exc)}


def _check_credentials(container: AppContainer) -> dict:
    path = container.config.users_file
    if not path.exists():
        return {"status": "skipped", "reason": "not_created"}
    return {"status": "ok"}


def register_misc_health_routes(router: APIRouter, container: AppContainer) -> None:
    @router.get("/health")
    def health():
        checks = {
            "disk": _check_disk(container.config.data_dir),
            "credentials": _check_credentials(container),
        }
        degraded = any(c.get("status") not in ("ok", "skipped") for c in checks.values())
        payload = {"status": "degraded" if degraded else "ok", "checks": checks}
        return JSONResponse(content=payload, status_code=503 if degraded else 200)
