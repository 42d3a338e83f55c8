from __future__ import annotations


class StudyHelperError(Exception):
    status_code = 500

    def __init__(self, detail: str, *, status_code: int | None = None):
        super().__init__(detail)
        if status_code is not None:
            self.status_code = int(status_code)
        self.detail = str(detail or "error")


class ValidationError(StudyHelperError):
    status_code = 400


class UnauthorizedError(StudyHelperError):
    status_code = 401


class NotFoundError(StudyHelperError):
    status_code = 404


class ConflictError(StudyHelperError):
    status_code = 403


class StorageError(StudyHelperError):
    """Disk or serialization failure; never rendered verbatim to clients."""

    status_code = 500


class DocumentNotFoundError(StorageError):
    status_code = 404


class DocumentCorruptError(StorageError):
    pass


class LoginRequired(Exception):
    """Raised by page routes for anonymous visitors; rendered as a redirect."""

    def __init__(self, location: str = "/auth/login?error=access"):
        super().__init__(location)
        self.location = location
