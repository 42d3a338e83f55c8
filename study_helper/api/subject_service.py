from __future__ import annotations

import logging
import math
import uuid
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as _PydanticValidationError

from .api_models import Subject, SubjectSaveRequest, Todo, UserDocument
from .document_store import UserDocumentRepository
from .errors import NotFoundError, ValidationError

_log = logging.getLogger(__name__)


def new_subject_id() -> str:
    return f"subject{uuid.uuid4().hex}"


def list_subjects(username: str, *, documents: UserDocumentRepository) -> List[Subject]:
    return list(documents.load(username).subjects)


def add_subject(username: str, name: Any, *, documents: UserDocumentRepository) -> Subject:
    clean = str(name or "").strip()
    if not clean:
        raise ValidationError("noname")
    with documents.edit(username) as document:
        taken = {s.id for s in document.subjects}
        subject_id = new_subject_id()
        while subject_id in taken:
            subject_id = new_subject_id()
        subject = Subject(id=subject_id, name=clean)
        document.subjects.append(subject)
    _log.info("subject %s added for %s", subject.id, username)
    return subject


def delete_subject(username: str, subject_id: Any, *, documents: UserDocumentRepository) -> None:
    sid = str(subject_id or "").strip()
    if not sid:
        raise ValidationError("noID")
    with documents.edit(username) as document:
        remaining = [s for s in document.subjects if s.id != sid]
        if len(remaining) == len(document.subjects):
            raise NotFoundError("notfound")
        document.subjects = remaining


def parse_todos(raw: Optional[List[Dict[str, Any]]]) -> List[Todo]:
    todos: List[Todo] = []
    for item in raw or []:
        try:
            todos.append(Todo.model_validate(item))
        except _PydanticValidationError as exc:
            raise ValidationError("invalid_todo") from exc
    return todos


def save_subject(
    username: str,
    subject_id: str,
    payload: SubjectSaveRequest,
    *,
    documents: UserDocumentRepository,
) -> Subject:
    """Overwrite exam date, todos and note of one subject."""
    todos = parse_todos(payload.todos)
    with documents.edit(username) as document:
        subject = document.find_subject(subject_id)
        if subject is None:
            raise NotFoundError("subject_not_found")
        subject.exam_date = payload.exam_date or ""
        subject.todos = todos
        subject.note = payload.notes or ""
    return subject


def subject_average(document: UserDocument, subject: Subject) -> Optional[float]:
    # grades reference subjects by name
    values = [
        g.grade
        for g in document.grades
        if g.subject == subject.name and g.grade is not None and math.isfinite(g.grade)
    ]
    if not values:
        return None
    return sum(values) / len(values)


def open_todos(document: UserDocument) -> List[Dict[str, Any]]:
    """Unfinished todos of all subjects, soonest due first, undated last."""
    items = []
    for subject in document.subjects:
        for todo in subject.todos:
            if todo.done:
                continue
            entry = todo.model_dump(mode="json", by_alias=True)
            entry["subjectId"] = subject.id
            entry["subjectName"] = subject.name
            items.append(entry)
    items.sort(key=lambda t: (not t["dueDate"], t["dueDate"]))
    return items
