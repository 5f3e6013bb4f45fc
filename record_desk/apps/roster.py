from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional, Sequence

from record_desk.core.records import Record
from record_desk.core.schema import (
    CascadeRule,
    CollectionSpec,
    FieldKind,
    FieldSpec,
    ImportPolicy,
    coerce_value,
)
from record_desk.services.preferences import DarkModeSetting
from record_desk.validation.errors import ValidationIssue
from record_desk.views.aggregates import EmptySentinel, average, percentages
from record_desk.views.bucketing import Band, distribution
from .base import AppDefinition

SENTINEL = EmptySentinel.ZERO
DIGITS = 0

# Averages are whole numbers here, so ">= 1" is the same as "> 0"
PERFORMANCE_BANDS = (
    Band("Excellent (90+)", 90),
    Band("Good (75-89)", 75),
    Band("Average (60-74)", 60),
    Band("Needs Improvement (<60)", 1),
)

SCORE_BUCKETS = ("1-20", "21-40", "41-60", "61-80", "81-100")

SEED_STUDENTS = [
    {"id": "st1", "studentIdentifier": "S001", "name": "Alice Johnson"},
    {"id": "st2", "studentIdentifier": "S002", "name": "Bob Smith"},
    {"id": "st3", "studentIdentifier": "S003", "name": "Carol White"},
]

SEED_PROGRESS = [
    {"id": "pr1", "studentId": "st1", "assignmentName": "Math Quiz 1", "score": 85,
     "totalPossibleScore": 100, "date": "2024-01-15T00:00:00.000Z",
     "notes": "Good understanding of fractions."},
    {"id": "pr2", "studentId": "st1", "assignmentName": "History Presentation", "score": 92,
     "totalPossibleScore": 100, "date": "2024-01-22T00:00:00.000Z", "notes": ""},
    {"id": "pr3", "studentId": "st2", "assignmentName": "Math Quiz 1", "score": 70,
     "totalPossibleScore": 100, "date": "2024-01-15T00:00:00.000Z", "notes": ""},
    {"id": "pr4", "studentId": "st2", "assignmentName": "Science Experiment", "score": 78,
     "totalPossibleScore": 100, "date": "2024-01-29T00:00:00.000Z",
     "notes": "Needs to elaborate more on conclusions."},
    {"id": "pr5", "studentId": "st3", "assignmentName": "English Essay", "score": 95,
     "totalPossibleScore": 100, "date": "2024-02-05T00:00:00.000Z",
     "notes": "Excellent vocabulary and structure."},
]


def records_for(student_id: str, progress: Sequence[Record]) -> List[Record]:
    return [p for p in progress if p.get("studentId") == student_id]


def average_score(records: Sequence[Record]) -> int:
    """Whole-number mean percentage; 0 for a student without records."""
    return average(
        percentages(records, "score", "totalPossibleScore"), sentinel=SENTINEL, digits=DIGITS
    )


def class_average(students: Sequence[Record], progress: Sequence[Record]) -> int:
    """Mean of every student's average, students without records counting as 0."""
    if not students:
        return SENTINEL.value
    return average(
        [average_score(records_for(s["id"], progress)) for s in students],
        sentinel=SENTINEL,
        digits=DIGITS,
    )


def performance_categories(students: Sequence[Record], progress: Sequence[Record]) -> Dict[str, int]:
    """Students per performance band; empty bands and students at 0 are left out."""
    counts = distribution(
        [average_score(records_for(s["id"], progress)) for s in students],
        PERFORMANCE_BANDS,
    )
    return {label: n for label, n in counts.items() if n > 0}


def score_bucket(percent: float) -> Optional[str]:
    # Anything under 1% lands in "21-40"; kept as the dashboards always showed it
    if 1 <= percent <= 20:
        return SCORE_BUCKETS[0]
    if percent <= 40:
        return SCORE_BUCKETS[1]
    if percent <= 60:
        return SCORE_BUCKETS[2]
    if percent <= 80:
        return SCORE_BUCKETS[3]
    if percent <= 100:
        return SCORE_BUCKETS[4]
    return None


def score_distribution(progress: Sequence[Record]) -> Dict[str, int]:
    counts = {label: 0 for label in SCORE_BUCKETS}
    for pct in percentages(progress, "score", "totalPossibleScore"):
        label = score_bucket(pct)
        if label is not None:
            counts[label] += 1
    return counts


class RosterApp(AppDefinition):
    id = "roster"
    label = "Student Progress Tracker (Roster)"
    empty_sentinel = SENTINEL
    average_digits = DIGITS
    dark_mode = DarkModeSetting("studentProgressTracker_darkMode")

    def collection_specs(self) -> List[CollectionSpec]:
        return [
            CollectionSpec(
                name="students",
                storage_key="studentProgressTracker_students",
                id_prefix="st",
                fields=(
                    FieldSpec("studentIdentifier", required=True,
                              label="Student ID", csv_header="Student ID"),
                    FieldSpec("name", required=True, label="Full Name", csv_header="Full Name"),
                ),
                search_fields=("name", "studentIdentifier"),
                import_policy=ImportPolicy.STRICT,
                template_example={"Student ID": "S004", "Full Name": "Example User"},
                default_sort="name",
            ),
            CollectionSpec(
                name="progress",
                storage_key="studentProgressTracker_progress",
                label="Progress Records",
                id_prefix="pr",
                fields=(
                    FieldSpec("studentId", FieldKind.REFERENCE, required=True,
                              references="students", label="Student"),
                    FieldSpec("assignmentName", required=True, label="Assignment Name"),
                    FieldSpec("score", FieldKind.NUMBER, default=0, required=True, minimum=0),
                    FieldSpec("totalPossibleScore", FieldKind.NUMBER, default=100, required=True,
                              minimum=0, exclusive_minimum=True, label="Total Possible Score"),
                    FieldSpec("date", FieldKind.DATE),
                    FieldSpec("notes"),
                ),
                search_fields=("assignmentName", "notes"),
            ),
        ]

    def seed_data(self) -> Dict[str, List[Record]]:
        return {"students": SEED_STUDENTS, "progress": SEED_PROGRESS}

    def cascade_rules(self) -> List[CascadeRule]:
        return [CascadeRule("students", "progress", "studentId")]

    def validate(self, store, name, values, existing):
        if name == "progress" and store.get("students", values.get("studentId")) is None:
            return [ValidationIssue("unknown_reference", "Student not found.")]
        return []

    def row_issues(self, name, record, line):
        if name == "students" and (not record.get("studentIdentifier") or not record.get("name")):
            return [ValidationIssue("invalid_row", "Invalid CSV row format.")]
        return []

    def sort_keys(self, store, name) -> Dict[str, Callable[[Record], Any]]:
        if name != "students":
            return {}
        progress = store.records("progress")
        return {
            "averageScore": lambda r: average_score(records_for(r["id"], progress)),
            "progressCount": lambda r: len(records_for(r["id"], progress)),
        }

    def json_export_rows(self, store, name, records):
        if name != "students":
            return records
        progress = store.records("progress")
        return [
            {
                **s,
                "progressRecords": [
                    {k: v for k, v in p.items() if k != "studentId"}
                    for p in records_for(s["id"], progress)
                ],
            }
            for s in records
        ]

    def after_json_import(self, store, name, records, entries):
        if name != "students":
            return
        spec = self.spec("progress")
        rows = []
        for student, entry in zip(records, entries):
            nested = entry.get("progressRecords")
            if not isinstance(nested, list):
                continue
            for item in nested:
                if not isinstance(item, dict):
                    continue
                row = spec.known_fields(item)
                for f in spec.fields:
                    if f.name in row:
                        row[f.name] = coerce_value(f, row[f.name])
                rows.append({**row, "studentId": student["id"]})
        if rows:
            store.create_many("progress", rows, notify=False)

    def summary(self, store) -> Dict[str, Any]:
        students = store.records("students")
        progress = store.records("progress")
        return {
            "totalStudents": len(students),
            "totalRecords": len(progress),
            "classAverage": class_average(students, progress),
            "scoreDistribution": score_distribution(progress),
            "performanceCategories": performance_categories(students, progress),
        }
