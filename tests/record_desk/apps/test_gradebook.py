from __future__ import annotations

from record_desk.apps.gradebook import (
    GradebookApp,
    SEED_ASSIGNMENTS,
    SEED_GRADES,
    SEED_STUDENTS,
    assignment_average,
    class_average,
    completion_rate,
    grade_distribution,
    student_average,
    student_progress,
    upcoming_assignments,
)
from record_desk.core.filter_state import SortDirection, SortState
from record_desk.services.data_store import DataStore
from record_desk.services.storage import InMemoryStorage
from record_desk.views.sorting import sort_records


def _store() -> DataStore:
    store = DataStore(GradebookApp(), InMemoryStorage())
    store.load()
    return store


def test_student_averages_from_seed():
    assert student_average("s1", SEED_GRADES, SEED_ASSIGNMENTS) == 87.8
    assert student_average("s2", SEED_GRADES, SEED_ASSIGNMENTS) == 92
    assert student_average("s3", SEED_GRADES, SEED_ASSIGNMENTS) == "N/A"


def test_class_average_skips_students_without_grades():
    assert class_average(SEED_STUDENTS, SEED_GRADES, SEED_ASSIGNMENTS, "c1") == 89.9
    assert class_average(SEED_STUDENTS, SEED_GRADES, SEED_ASSIGNMENTS, "c2") == "N/A"


def test_assignment_average():
    assert assignment_average("a1", SEED_GRADES) == 88.5
    assert assignment_average("a2", SEED_GRADES) == "N/A"


def test_grade_distribution_includes_every_letter():
    dist = grade_distribution(SEED_STUDENTS, SEED_GRADES, SEED_ASSIGNMENTS)
    assert dist == {"A": 1, "B": 1, "C": 0, "D": 0, "F": 0, "N/A": 1}


def test_completion_rate():
    a1, a2, a3 = SEED_ASSIGNMENTS
    assert completion_rate(a1, SEED_STUDENTS, SEED_GRADES) == 100
    assert completion_rate(a2, SEED_STUDENTS, SEED_GRADES) == 0
    assert completion_rate(a3, SEED_STUDENTS, SEED_GRADES) == 50


def test_averages_stay_within_percentage_bounds():
    for student in SEED_STUDENTS:
        value = student_average(student["id"], SEED_GRADES, SEED_ASSIGNMENTS)
        assert value == "N/A" or 0 <= value <= 100


def test_upcoming_assignments_limit_and_order():
    upcoming = upcoming_assignments(SEED_ASSIGNMENTS, today="2025-06-16")
    assert [a["id"] for a in upcoming] == ["a2", "a3"]


def test_student_progress_series_in_due_date_order():
    points = student_progress("s1", SEED_GRADES, SEED_ASSIGNMENTS)
    assert [p["assignment"] for p in points] == ["Algebra Homework 1", "Science Lab Report"]
    assert points[1]["percentage"] == 90.7


def test_deleting_student_removes_grades():
    store = _store()
    result = store.delete("students", "s1")
    assert result.cascaded == {"grades": 2}
    assert [g["id"] for g in store.records("grades")] == ["g2"]


def test_deleting_assignment_removes_grades():
    store = _store()
    store.delete("assignments", "a1")
    assert [g["id"] for g in store.records("grades")] == ["g3"]


def test_sort_by_average_puts_ungraded_last():
    store = _store()
    app = store.app
    keys = app.sort_keys(store, "students")

    asc = sort_records(store.records("students"), SortState("average"), key_funcs=keys)
    desc = sort_records(
        store.records("students"), SortState("average", SortDirection.DESCENDING), key_funcs=keys
    )

    assert [s["id"] for s in asc] == ["s1", "s2", "s3"]
    assert [s["id"] for s in desc] == ["s2", "s1", "s3"]


def test_class_name_sort_key_and_unassigned_label():
    store = _store()
    store.delete("classes", "c2")
    keys = store.app.sort_keys(store, "students")
    assert keys["className"](store.get("students", "s1")) == "Math Grade 10"
    assert keys["className"](store.get("students", "s3")) == "N/A"


def test_summary():
    summary = GradebookApp().summary(_store())
    assert summary["classAverage"] == 89.9
    assert summary["completionRates"]["Algebra Homework 1"] == 100
