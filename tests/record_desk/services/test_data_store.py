from __future__ import annotations

import json

from record_desk.apps.gradebook import GradebookApp
from record_desk.apps.roster import RosterApp
from record_desk.core.records import DeleteResult, NotFound
from record_desk.services.data_store import DataStore
from record_desk.services.storage import InMemoryStorage, LocalFileSystemStorage


def _roster_store(storage=None) -> DataStore:
    store = DataStore(RosterApp(), storage or InMemoryStorage())
    store.load()
    return store


def test_absent_keys_fall_back_to_seed_and_persist():
    storage = InMemoryStorage()
    store = _roster_store(storage)

    assert [s["studentIdentifier"] for s in store.records("students")] == ["S001", "S002", "S003"]
    assert json.loads(storage.get_item("studentProgressTracker_students"))[0]["name"] == "Alice Johnson"
    assert store.load_warnings == []


def test_corrupt_payload_falls_back_to_seed_with_warning():
    storage = InMemoryStorage({"studentProgressTracker_students": "{not json"})
    store = DataStore(RosterApp(), storage)

    warnings = store.load()

    assert len(warnings) == 1
    assert len(store.records("students")) == 3
    assert storage.get_item("studentProgressTracker_students.corrupt") == "{not json"


def test_non_list_payload_is_treated_as_corrupt():
    storage = InMemoryStorage({"studentProgressTracker_students": json.dumps({"a": 1})})
    store = DataStore(RosterApp(), storage)
    assert store.load()
    assert len(store.records("students")) == 3


def test_create_assigns_unique_id_defaults_and_persists(tmp_path):
    store = _roster_store(LocalFileSystemStorage(tmp_path))

    created = store.create("students", {"studentIdentifier": "S010", "name": "Dana"})
    other = store.create("students", {"studentIdentifier": "S011", "name": "Eve"})

    assert created["id"] != other["id"]
    assert created["id"].startswith("st-")

    reloaded = _roster_store(LocalFileSystemStorage(tmp_path))
    assert [s["name"] for s in reloaded.records("students")][-2:] == ["Dana", "Eve"]


def test_create_many_keeps_free_ids_and_replaces_taken_ones():
    store = _roster_store()
    created = store.create_many(
        "students",
        [{"id": "st1", "name": "Dup", "studentIdentifier": "X"}, {"id": "fresh", "name": "New", "studentIdentifier": "Y"}],
    )
    assert created[0]["id"] != "st1"
    assert created[1]["id"] == "fresh"
    ids = [s["id"] for s in store.records("students")]
    assert len(ids) == len(set(ids))


def test_mutations_do_not_alter_previous_lists():
    store = _roster_store()
    before = store.records("students")
    store.create("students", {"name": "X", "studentIdentifier": "S9"})
    assert len(before) == 3
    assert len(store.records("students")) == 4


def test_update_merges_and_keeps_id():
    store = _roster_store()
    updated = store.update("students", "st1", {"name": "Alice J.", "id": "hijack"})

    assert updated["id"] == "st1"
    assert updated["name"] == "Alice J."
    assert updated["studentIdentifier"] == "S001"
    assert store.get("students", "st1")["name"] == "Alice J."


def test_update_and_delete_missing_record_return_not_found():
    store = _roster_store()
    assert isinstance(store.update("students", "nope", {"name": "x"}), NotFound)
    assert isinstance(store.delete("students", "nope"), NotFound)
    assert len(store.records("students")) == 3


def test_delete_student_cascades_to_progress():
    store = _roster_store()

    result = store.delete("students", "st1")

    assert isinstance(result, DeleteResult)
    assert result.cascaded == {"progress": 2}
    assert all(p["studentId"] != "st1" for p in store.records("progress"))
    remaining_ids = {s["id"] for s in store.records("students")}
    assert all(p["studentId"] in remaining_ids for p in store.records("progress"))


def test_delete_class_unlinks_students_and_assignments():
    store = DataStore(GradebookApp(), InMemoryStorage())
    store.load()

    result = store.delete("classes", "c1")

    assert result.unlinked == {"students": 2, "assignments": 2}
    assert store.get("students", "s1")["classId"] == ""
    assert store.get("students", "s3")["classId"] == "c2"
    assert store.get("assignments", "a1")["classId"] == ""


def test_clear_all_removes_keys():
    storage = InMemoryStorage()
    store = _roster_store(storage)

    store.clear_all()

    assert store.records("students") == []
    assert storage.get_item("studentProgressTracker_students") is None
