from __future__ import annotations

import json
from pathlib import Path

import pytest

from study_helper.api.api_models import Grade, Subject, Todo, TodoPriority, UserDocument
from study_helper.api.document_store import JsonDocumentStore, UserDocumentRepository
from study_helper.api.errors import DocumentCorruptError, DocumentNotFoundError, StorageError


def _repo(tmp_path: Path) -> UserDocumentRepository:
    return UserDocumentRepository(JsonDocumentStore(tmp_path / "userdata"))


def test_kv_store_is_strict(tmp_path: Path) -> None:
    store = JsonDocumentStore(tmp_path)

    with pytest.raises(DocumentNotFoundError):
        store.get("anna")

    (tmp_path / "anna.json").write_text("{oops", encoding="utf-8")
    with pytest.raises(DocumentCorruptError):
        store.get("anna")

    store.put("anna", {"subjects": [], "grades": []})
    assert store.get("anna") == {"subjects": [], "grades": []}
    assert store.exists("anna")


@pytest.mark.parametrize("key", ["../etc", "a/b", "a\\b", ".hidden", " anna", ""])
def test_kv_store_rejects_unsafe_keys(tmp_path: Path, key: str) -> None:
    with pytest.raises(StorageError):
        JsonDocumentStore(tmp_path).path_for(key)


def test_save_then_load_returns_equal_document(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    document = UserDocument(
        subjects=[
            Subject(
                id="subject1",
                name="Mathe",
                exam_date="2026-11-02",
                note="Kapitel 3",
                todos=[Todo(id="t1", text="Aufgaben", done=True, prio=TodoPriority.HIGH, due_date="2026-10-30")],
            )
        ],
        grades=[Grade(id="g1", subject="Mathe", date="2026-10-01", grade=2.0, title="Test", locked=True)],
    )

    repo.save("anna", document)

    assert repo.load("anna") == document
    raw = json.loads((tmp_path / "userdata" / "anna.json").read_text(encoding="utf-8"))
    assert raw["subjects"][0]["examDate"] == "2026-11-02"
    assert raw["subjects"][0]["todos"][0]["dueDate"] == "2026-10-30"
    assert raw["subjects"][0]["todos"][0]["prio"] == "hoch"


def test_unknown_subject_keys_survive_round_trip(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    path = tmp_path / "userdata" / "anna.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps({"subjects": [{"id": "subject1", "name": "Bio", "grade": "", "todos": []}], "grades": []}),
        encoding="utf-8",
    )

    with repo.edit("anna") as document:
        document.subjects[0].note = "neu"

    raw = json.loads(path.read_text(encoding="utf-8"))
    assert raw["subjects"][0]["grade"] == ""
    assert raw["subjects"][0]["note"] == "neu"


def test_missing_document_is_initialised(tmp_path: Path) -> None:
    repo = _repo(tmp_path)

    document = repo.load("ben")

    assert document.subjects == [] and document.grades == []
    assert (tmp_path / "userdata" / "ben.json").is_file()


def test_unparsable_document_is_quarantined(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    path = tmp_path / "userdata" / "anna.json"
    path.parent.mkdir(parents=True)
    path.write_text('{"subjects": [', encoding="utf-8")

    document = repo.load("anna")

    assert document == UserDocument()
    assert json.loads(path.read_text(encoding="utf-8")) == {"subjects": [], "grades": []}
    assert len(list(path.parent.glob("anna.json.corrupt-*"))) == 1


def test_edit_does_not_save_when_body_raises(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.init("anna")

    with pytest.raises(RuntimeError):
        with repo.edit("anna") as document:
            document.subjects.append(Subject(id="subject1", name="Mathe"))
            raise RuntimeError("boom")

    assert repo.load("anna").subjects == []


def test_null_lists_load_as_empty(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.store.put("anna", {"subjects": None, "grades": None})

    document = repo.load("anna")

    assert document.subjects == [] and document.grades == []


def test_malformed_entries_are_dropped_one_by_one(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    path = tmp_path / "userdata" / "anna.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps(
            {
                "subjects": [
                    {"id": "subject1", "name": "Mathe", "todos": [{"id": "t1", "prio": "hoch"}, {"prio": "urgent"}]},
                    {"name": "no id"},
                ],
                "grades": [{"id": "g1", "grade": 2}, {"id": "g2", "grade": "sehr gut"}],
            }
        ),
        encoding="utf-8",
    )

    document = repo.load("anna")

    assert [s.id for s in document.subjects] == ["subject1"]
    assert [t.id for t in document.subjects[0].todos] == ["t1"]
    assert [g.id for g in document.grades] == ["g1"]
    raw = json.loads(path.read_text(encoding="utf-8"))
    assert [g["id"] for g in raw["grades"]] == ["g1"]
    assert len(list(path.parent.glob("anna.json.corrupt-*"))) == 1


def test_clean_document_is_not_rewritten(tmp_path: Path) -> None:
    repo = _repo(tmp_path)
    repo.init("anna")

    repo.load("anna")

    assert list((tmp_path / "userdata").glob("anna.json.corrupt-*")) == []
