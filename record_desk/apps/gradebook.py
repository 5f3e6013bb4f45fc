from __future__ import annotations

from datetime import date
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from record_desk.core.records import Record, today_iso
from record_desk.core.schema import (
    CascadeAction,
    CascadeRule,
    CollectionSpec,
    FieldKind,
    FieldSpec,
)
from record_desk.services.preferences import DarkModeSetting
from record_desk.validation.errors import ValidationIssue
from record_desk.views.aggregates import EmptySentinel, average, percentages, rate
from record_desk.views.bucketing import Band, distribution
from .base import AppDefinition

SENTINEL = EmptySentinel.MISSING
DIGITS = 1
DEFAULT_MAX_POINTS = 100

GRADE_BANDS = (
    Band("A", 90),
    Band("B", 80),
    Band("C", 70),
    Band("D", 60),
    Band("F", float("-inf")),
)

SEED_STUDENTS = [
    {"id": "s1", "firstName": "Alice", "lastName": "Smith", "email": "alice@example.com", "classId": "c1"},
    {"id": "s2", "firstName": "Bob", "lastName": "Johnson", "email": "bob@example.com", "classId": "c1"},
    {"id": "s3", "firstName": "Charlie", "lastName": "Brown", "email": "charlie@example.com", "classId": "c2"},
]

SEED_ASSIGNMENTS = [
    {"id": "a1", "title": "Algebra Homework 1", "description": "Chapter 1 problems",
     "dueDate": "2025-06-15", "maxPoints": 100, "classId": "c1"},
    {"id": "a2", "title": "History Essay", "description": "Essay on the Renaissance",
     "dueDate": "2025-06-20", "maxPoints": 50, "classId": "c2"},
    {"id": "a3", "title": "Science Lab Report", "description": "Photosynthesis experiment",
     "dueDate": "2025-07-01", "maxPoints": 75, "classId": "c1"},
]

SEED_GRADES = [
    {"id": "g1", "studentId": "s1", "assignmentId": "a1", "score": 85,
     "comments": "Good effort", "gradedDate": "2025-06-17"},
    {"id": "g2", "studentId": "s2", "assignmentId": "a1", "score": 92,
     "comments": "Excellent work!", "gradedDate": "2025-06-17"},
    {"id": "g3", "studentId": "s1", "assignmentId": "a3", "score": 68,
     "comments": "Needs more detail in methodology.", "gradedDate": "2025-07-03"},
]

SEED_CLASSES = [
    {"id": "c1", "name": "Math Grade 10"},
    {"id": "c2", "name": "History Grade 10"},
]

SEED_GRADE_CATEGORIES = [
    {"id": "gc1", "name": "Homework", "weight": 30},
    {"id": "gc2", "name": "Quizzes", "weight": 20},
    {"id": "gc3", "name": "Exams", "weight": 50},
]


# ----------------------------------------------------------------------
# Derived values (pure functions of the collections)
# ----------------------------------------------------------------------

def _scored_grades(student_id: str, grades: Sequence[Record], assignments: Sequence[Record]) -> List[Record]:
    max_points = {a["id"]: a.get("maxPoints") for a in assignments}
    return [
        {"score": g.get("score"), "maxPoints": max_points[g.get("assignmentId")], "id": g.get("id")}
        for g in grades
        if g.get("studentId") == student_id
        and g.get("score") is not None
        and g.get("assignmentId") in max_points
    ]


def student_average(
        student_id: str, grades: Sequence[Record], assignments: Sequence[Record]
) -> Union[float, str]:
    """Mean percentage over the student's graded assignments, or "N/A"."""
    scored = _scored_grades(student_id, grades, assignments)
    return average(percentages(scored, "score", "maxPoints"), sentinel=SENTINEL, digits=DIGITS)


def assignment_average(assignment_id: str, grades: Sequence[Record]) -> Union[float, str]:
    """Mean raw score of an assignment, or "N/A"."""
    scores = [g.get("score") for g in grades if g.get("assignmentId") == assignment_id]
    return average(scores, sentinel=SENTINEL, digits=DIGITS)


def class_average(
        students: Sequence[Record],
        grades: Sequence[Record],
        assignments: Sequence[Record],
        class_id: Optional[str] = None,
) -> Union[float, str]:
    """Mean of the numeric student averages (optionally of one class)."""
    selected = [s for s in students if class_id is None or s.get("classId") == class_id]
    averages = [student_average(s["id"], grades, assignments) for s in selected]
    return average([a for a in averages if not isinstance(a, str)], sentinel=SENTINEL, digits=DIGITS)


def grade_distribution(
        students: Sequence[Record], grades: Sequence[Record], assignments: Sequence[Record]
) -> Dict[str, int]:
    """Students per letter grade; students without grades count as "N/A"."""
    averages = [student_average(s["id"], grades, assignments) for s in students]
    return distribution(averages, GRADE_BANDS, fallback=SENTINEL.value)


def completion_rate(assignment: Record, students: Sequence[Record], grades: Sequence[Record]) -> float:
    """Graded submissions as a percentage of the students in the assignment's class."""
    in_class = [s for s in students if s.get("classId") == assignment.get("classId")]
    graded = [
        g for g in grades
        if g.get("assignmentId") == assignment.get("id") and g.get("score") is not None
    ]
    return rate(len(graded), len(in_class), digits=DIGITS)


def upcoming_assignments(
        assignments: Sequence[Record], today: Optional[str] = None, limit: int = 3
) -> List[Record]:
    today = today or date.today().isoformat()
    due = [a for a in assignments if a.get("dueDate") and a["dueDate"] >= today]
    return sorted(due, key=lambda a: a["dueDate"])[:limit]


def student_progress(
        student_id: str, grades: Sequence[Record], assignments: Sequence[Record]
) -> List[Dict[str, Any]]:
    """Percentage per graded assignment, in due date order (chart series)."""
    by_id = {a["id"]: a for a in assignments}
    points = []
    for g in grades:
        a = by_id.get(g.get("assignmentId"))
        if g.get("studentId") != student_id or a is None or g.get("score") is None:
            continue
        pct = percentages([{"score": g["score"], "maxPoints": a.get("maxPoints")}], "score", "maxPoints")
        if pct:
            points.append({
                "assignment": a.get("title"),
                "dueDate": a.get("dueDate", ""),
                "percentage": round(pct[0], 1),
            })
    return sorted(points, key=lambda p: p["dueDate"])


# ----------------------------------------------------------------------
# App definition
# ----------------------------------------------------------------------

class GradebookApp(AppDefinition):
    id = "gradebook"
    label = "Student Progress Tracker"
    empty_sentinel = SENTINEL
    average_digits = DIGITS
    unassigned_label = "N/A"
    dark_mode = DarkModeSetting("spt-darkMode")

    def collection_specs(self) -> List[CollectionSpec]:
        return [
            CollectionSpec(
                name="students",
                storage_key="spt-students",
                id_prefix="s",
                fields=(
                    FieldSpec("firstName", required=True, import_default="N/A"),
                    FieldSpec("lastName", required=True, import_default="N/A"),
                    FieldSpec("email"),
                    FieldSpec("classId", FieldKind.REFERENCE, required=True,
                              references="classes", label="Class"),
                ),
                search_fields=("firstName", "lastName", "email"),
            ),
            CollectionSpec(
                name="assignments",
                storage_key="spt-assignments",
                id_prefix="a",
                fields=(
                    FieldSpec("title", required=True, import_default="N/A"),
                    FieldSpec("description"),
                    FieldSpec("dueDate", FieldKind.DATE, required=True,
                              label="Due Date", import_default=today_iso),
                    FieldSpec("maxPoints", FieldKind.INTEGER, default=DEFAULT_MAX_POINTS, required=True,
                              minimum=0, exclusive_minimum=True, label="Max Points"),
                    FieldSpec("classId", FieldKind.REFERENCE, required=True,
                              references="classes", label="Class"),
                ),
                search_fields=("title", "description"),
            ),
            CollectionSpec(
                name="grades",
                storage_key="spt-grades",
                id_prefix="g",
                fields=(
                    FieldSpec("studentId", FieldKind.REFERENCE, required=True,
                              references="students", label="Student"),
                    FieldSpec("assignmentId", FieldKind.REFERENCE, required=True,
                              references="assignments", label="Assignment"),
                    FieldSpec("score", FieldKind.NUMBER, default=None, nullable=True,
                              required=True, minimum=0),
                    FieldSpec("comments"),
                    FieldSpec("gradedDate", FieldKind.DATE, label="Graded Date"),
                ),
            ),
            CollectionSpec(
                name="classes",
                storage_key="spt-classes",
                id_prefix="c",
                fields=(FieldSpec("name", required=True, label="Class Name"),),
                search_fields=("name",),
            ),
            CollectionSpec(
                name="gradeCategories",
                storage_key="spt-gradeCategories",
                label="Grade Categories",
                id_prefix="gc",
                fields=(
                    FieldSpec("name", required=True, label="Category Name"),
                    FieldSpec("weight", FieldKind.NUMBER, default=0, minimum=0, maximum=100),
                ),
            ),
        ]

    def seed_data(self) -> Dict[str, List[Record]]:
        return {
            "students": SEED_STUDENTS,
            "assignments": SEED_ASSIGNMENTS,
            "grades": SEED_GRADES,
            "classes": SEED_CLASSES,
            "gradeCategories": SEED_GRADE_CATEGORIES,
        }

    def cascade_rules(self) -> List[CascadeRule]:
        return [
            CascadeRule("students", "grades", "studentId"),
            CascadeRule("assignments", "grades", "assignmentId"),
            CascadeRule("classes", "students", "classId", CascadeAction.UNLINK),
            CascadeRule("classes", "assignments", "classId", CascadeAction.UNLINK),
        ]

    # -- write pipeline --------------------------------------------------

    def find_existing(self, store, name, values):
        if name != "grades":
            return None
        return next(
            (
                g for g in store.records("grades")
                if g.get("studentId") == values.get("studentId")
                and g.get("assignmentId") == values.get("assignmentId")
            ),
            None,
        )

    def validate(self, store, name, values, existing):
        if name != "grades":
            return []
        assignment = store.get("assignments", values.get("assignmentId"))
        if assignment is None:
            return [ValidationIssue("unknown_reference", "Selected assignment not found.")]
        if store.get("students", values.get("studentId")) is None:
            return [ValidationIssue("unknown_reference", "Selected student not found.")]
        max_points = assignment.get("maxPoints") or 0
        score = values.get("score")
        if score is not None and not 0 <= score <= max_points:
            return [ValidationIssue("out_of_range", f"Score must be between 0 and {max_points}.")]
        return []

    def prepare_import(self, name, record):
        # Imported assignments never carry a zero denominator
        if name == "assignments" and not record.get("maxPoints"):
            return {**record, "maxPoints": DEFAULT_MAX_POINTS}
        return record

    def prepare_save(self, store, name, values, existing):
        if name == "grades":
            return {**values, "gradedDate": today_iso()}
        return values

    # -- read side -------------------------------------------------------

    def sort_keys(self, store, name) -> Dict[str, Callable[[Record], Any]]:
        if name != "students":
            return {}
        grades, assignments = store.records("grades"), store.records("assignments")

        def _average(r: Record) -> Any:
            value = student_average(r["id"], grades, assignments)
            return None if isinstance(value, str) else value

        return {
            "average": _average,
            "name": lambda r: f"{r.get('lastName', '')} {r.get('firstName', '')}".strip(),
            "className": lambda r: self.label_for(store, "classes", r.get("classId")),
        }

    def summary(self, store) -> Dict[str, Any]:
        students = store.records("students")
        grades = store.records("grades")
        assignments = store.records("assignments")
        return {
            "students": len(students),
            "assignments": len(assignments),
            "classes": len(store.records("classes")),
            "classAverage": class_average(students, grades, assignments),
            "gradeDistribution": grade_distribution(students, grades, assignments),
            "upcomingAssignments": [a["title"] for a in upcoming_assignments(assignments)],
            "completionRates": {
                a["title"]: completion_rate(a, students, grades) for a in assignments
            },
        }
