from __future__ import annotations

import logging
import math
import uuid
from typing import Any, List

from .api_models import Grade, GradeCreateRequest, parse_boolish
from .document_store import UserDocumentRepository
from .errors import ConflictError, NotFoundError, ValidationError

_log = logging.getLogger(__name__)


def list_grades(username: str, *, documents: UserDocumentRepository) -> List[Grade]:
    return list(documents.load(username).grades)


def _missing(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def build_grade(req: GradeCreateRequest) -> Grade:
    if _missing(req.subject) or _missing(req.date) or req.grade is None or _missing(req.title):
        raise ValidationError("missing_fields")
    if isinstance(req.grade, bool):
        raise ValidationError("invalid_grade")
    try:
        value = float(req.grade)
    except (TypeError, ValueError):
        raise ValidationError("invalid_grade") from None
    if not math.isfinite(value):
        raise ValidationError("invalid_grade")
    try:
        locked = parse_boolish(req.locked)
    except ValueError:
        raise ValidationError("invalid_locked") from None
    return Grade(
        id=str(uuid.uuid4()),
        subject=str(req.subject),
        date=str(req.date),
        grade=value,
        title=str(req.title),
        locked=locked,
    )


def add_grade(username: str, req: GradeCreateRequest, *, documents: UserDocumentRepository) -> Grade:
    grade = build_grade(req)
    with documents.edit(username) as document:
        document.grades.append(grade)
    _log.info("grade %s added for %s", grade.id, username)
    return grade


def delete_grade(username: str, grade_id: str, *, documents: UserDocumentRepository) -> None:
    """Remove one grade; locked grades are refused and stay untouched."""
    with documents.edit(username) as document:
        for idx, grade in enumerate(document.grades):
            if grade.id == grade_id:
                break
        else:
            raise NotFoundError("not_found")
        if grade.locked:
            raise ConflictError("grade_locked")
        del document.grades[idx]
    _log.info("grade %s deleted for %s", grade_id, username)
