from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TodoPriority(str, Enum):
    HIGH = "hoch"
    MEDIUM = "mittel"
    LOW = "niedrig"
    UNSET = "unset"

    @classmethod
    def parse(cls, value: Any) -> "TodoPriority":
        text = str(value or "").strip().lower()
        if not text or text in {"unset", "undefined", "null", "none"}:
            return cls.UNSET
        try:
            return cls(text)
        except ValueError:
            raise ValueError(f"unknown priority: {value!r}") from None


_M = TypeVar("_M", bound=BaseModel)

_TRUE_WORDS = {"true", "1", "yes", "on"}
_FALSE_WORDS = {"false", "0", "no", "off", ""}


def parse_boolish(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return bool(value)
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def validate_entries(model: Type[_M], items: Any) -> Tuple[List[_M], int]:
    """Validate list elements one by one; return the valid ones and the drop count.

    ``None`` is an empty list. Any other non-list value counts as one dropped entry.
    """
    if items is None:
        return [], 0
    if not isinstance(items, list):
        return [], 1
    valid: List[_M] = []
    dropped = 0
    for item in items:
        try:
            valid.append(model.model_validate(item))
        except ValueError:
            dropped += 1
    return valid, dropped


class PublicProfile(BaseModel):
    prename: str
    lastname: str
    username: str


class UserRecord(PublicProfile):
    password_hash: str

    def public(self) -> PublicProfile:
        return PublicProfile(prename=self.prename, lastname=self.lastname, username=self.username)


class CredentialDocument(BaseModel):
    users: List[UserRecord] = Field(default_factory=list)

    @classmethod
    def salvage(cls, raw: Dict[str, Any]) -> Tuple["CredentialDocument", int]:
        users, dropped = validate_entries(UserRecord, raw.get("users"))
        return cls(users=users), dropped


class Todo(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = ""
    text: str = ""
    done: bool = False
    prio: TodoPriority = TodoPriority.UNSET
    due_date: str = Field(default="", alias="dueDate")

    @field_validator("id", "text", "due_date", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("done", mode="before")
    @classmethod
    def _boolish(cls, value: Any) -> bool:
        return parse_boolish(value)

    @field_validator("prio", mode="before")
    @classmethod
    def _priority(cls, value: Any) -> TodoPriority:
        if isinstance(value, TodoPriority):
            return value
        return TodoPriority.parse(value)


class Subject(BaseModel):
    # legacy documents carry extra keys such as ``grade``; keep them
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    name: str
    exam_date: str = Field(default="", alias="examDate")
    note: str = ""
    todos: List[Todo] = Field(default_factory=list)

    @field_validator("exam_date", "note", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("todos", mode="before")
    @classmethod
    def _todo_list(cls, value: Any) -> Any:
        return [] if value is None else value


class Grade(BaseModel):
    id: str
    subject: str = ""
    date: str = ""
    # null when an old client stored something non-numeric
    grade: Optional[float] = None
    title: str = ""
    locked: bool = False

    @field_validator("subject", "date", "title", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("locked", mode="before")
    @classmethod
    def _boolish(cls, value: Any) -> bool:
        return parse_boolish(value)


class UserDocument(BaseModel):
    model_config = ConfigDict(extra="allow")

    subjects: List[Subject] = Field(default_factory=list)
    grades: List[Grade] = Field(default_factory=list)

    @field_validator("subjects", "grades", mode="before")
    @classmethod
    def _list_or_empty(cls, value: Any) -> Any:
        return [] if value is None else value

    def find_subject(self, subject_id: str) -> Optional[Subject]:
        for subject in self.subjects:
            if subject.id == subject_id:
                return subject
        return None

    @classmethod
    def salvage(cls, raw: Dict[str, Any]) -> Tuple["UserDocument", int]:
        """Keep every well-formed subject, todo and grade; count what was dropped."""
        dropped = 0
        subjects: List[Subject] = []
        raw_subjects = raw.get("subjects")
        if raw_subjects is not None and not isinstance(raw_subjects, list):
            raw_subjects, dropped = [], 1
        for item in raw_subjects or []:
            if not isinstance(item, dict):
                dropped += 1
                continue
            todos, bad_todos = validate_entries(Todo, item.get("todos"))
            dropped += bad_todos
            try:
                subjects.append(Subject.model_validate({**item, "todos": todos}))
            except ValueError:
                dropped += 1
        grades, bad_grades = validate_entries(Grade, raw.get("grades"))
        document = cls.model_validate({**raw, "subjects": subjects, "grades": grades})
        return document, dropped + bad_grades

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class GradeCreateRequest(BaseModel):
    subject: Optional[Any] = None
    date: Optional[Any] = None
    grade: Optional[Any] = None
    title: Optional[Any] = None
    locked: Optional[Any] = None


class SubjectSaveRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    exam_date: Optional[str] = Field(default=None, alias="examDate")
    todos: Optional[List[Dict[str, Any]]] = None
    notes: Optional[str] = None
