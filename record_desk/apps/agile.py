from __future__ import annotations

from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Sequence

from record_desk.core.records import Record, now_iso
from record_desk.core.schema import (
    CascadeAction,
    CascadeRule,
    CollectionSpec,
    FieldKind,
    FieldSpec,
    JsonImportMode,
)
from record_desk.validation.errors import ValidationIssue
from record_desk.views.aggregates import rate, round_half_up
from .base import AppDefinition

STORY_STATUSES = ("todo", "in-progress", "done")
SPRINT_STATUSES = ("planned", "active", "completed")


def _seed(today: date) -> Dict[str, List[Record]]:
    start = today - timedelta(days=5)
    end = start + timedelta(days=13)
    created = start.isoformat() + "T00:00:00+00:00"
    return {
        "sprints": [
            {"id": "sprint-1", "name": "Sprint 1", "startDate": start.isoformat(),
             "endDate": end.isoformat(), "totalPoints": 53, "status": "active"},
        ],
        "members": [
            {"id": "member-1", "name": "John Doe", "role": "Scrum Master"},
            {"id": "member-2", "name": "Jane Smith", "role": "Product Owner"},
            {"id": "member-3", "name": "Mike Johnson", "role": "Developer"},
        ],
        "stories": [
            {"id": "story-1", "title": "Set up development environment",
             "description": "Install and configure all necessary tools for development",
             "points": 5, "status": "done", "sprint": "sprint-1", "assignee": "member-3",
             "createdAt": created, "completedAt": (start + timedelta(days=2)).isoformat()},
            {"id": "story-2", "title": "Create user authentication flow",
             "description": "Implement login, registration, and password reset functionality",
             "points": 13, "status": "in-progress", "sprint": "sprint-1", "assignee": "member-3",
             "createdAt": created, "completedAt": ""},
            {"id": "story-3", "title": "Design dashboard UI",
             "description": "Create wireframes and high-fidelity designs for the main dashboard",
             "points": 8, "status": "done", "sprint": "sprint-1", "assignee": "member-2",
             "createdAt": created, "completedAt": (start + timedelta(days=3)).isoformat()},
            {"id": "story-4", "title": "Implement REST API endpoints",
             "description": "Create backend API endpoints for the main application features",
             "points": 21, "status": "todo", "sprint": "sprint-1", "assignee": "member-1",
             "createdAt": created, "completedAt": ""},
        ],
    }


# ----------------------------------------------------------------------
# Derived values
# ----------------------------------------------------------------------

def sprint_stories(sprint_id: str, stories: Sequence[Record]) -> List[Record]:
    return [s for s in stories if s.get("sprint") == sprint_id]


def sprint_stats(sprint_id: str, stories: Sequence[Record]) -> Dict[str, int]:
    """Story counts and points per status for one sprint."""
    selected = sprint_stories(sprint_id, stories)
    stats = {"total": len(selected)}
    for status, key in (("todo", "todo"), ("in-progress", "inProgress"), ("done", "done")):
        matching = [s for s in selected if s.get("status") == status]
        stats[key] = len(matching)
        stats[f"{key}Points"] = sum(s.get("points") or 0 for s in matching)
    return stats


def planned_points(sprint: Record, stories: Sequence[Record]) -> int:
    """The sprint's base points plus the points of every story assigned to it."""
    base = sprint.get("totalPoints") or 0
    return base + sum(s.get("points") or 0 for s in sprint_stories(sprint["id"], stories))


def completed_points(sprint: Record, stories: Sequence[Record]) -> int:
    return sprint_stats(sprint["id"], stories)["donePoints"]


def velocity(sprints: Sequence[Record], stories: Sequence[Record]) -> List[Dict[str, Any]]:
    return [
        {
            "sprint": sp.get("name"),
            "planned": planned_points(sp, stories),
            "completed": completed_points(sp, stories),
        }
        for sp in sprints
    ]


def completion_rate(sprint: Record, stories: Sequence[Record]) -> float:
    return rate(completed_points(sprint, stories), planned_points(sprint, stories), digits=0)


def burndown(sprint: Record, stories: Sequence[Record]) -> List[Dict[str, Any]]:
    """
    One entry per sprint day: the ideal straight line from planned points to
    zero, and the points still open at the end of that day.
    """
    try:
        start = date.fromisoformat(str(sprint.get("startDate"))[:10])
        end = date.fromisoformat(str(sprint.get("endDate"))[:10])
    except ValueError:
        return []
    total_days = (end - start).days + 1
    if total_days <= 0:
        return []

    planned = planned_points(sprint, stories)
    done = [
        (str(s.get("completedAt"))[:10], s.get("points") or 0)
        for s in sprint_stories(sprint["id"], stories)
        if s.get("status") == "done" and s.get("completedAt")
    ]
    step = planned / (total_days - 1) if total_days > 1 else planned

    series = []
    for i in range(total_days):
        day = (start + timedelta(days=i)).isoformat()
        ideal = max(0.0, planned - step * i)
        burned = sum(points for completed_on, points in done if completed_on <= day)
        series.append({
            "date": day,
            "idealBurndown": round_half_up(ideal),
            "remainingPoints": max(0, planned - burned),
        })
    return series


# ----------------------------------------------------------------------
# App definition
# ----------------------------------------------------------------------

class AgileApp(AppDefinition):
    id = "agile"
    label = "Agile Dashboard"

    def collection_specs(self) -> List[CollectionSpec]:
        return [
            CollectionSpec(
                name="sprints",
                storage_key="agile-sprints",
                id_prefix="sprint",
                fields=(
                    FieldSpec("name", required=True),
                    FieldSpec("startDate", FieldKind.DATE, required=True, label="Start Date"),
                    FieldSpec("endDate", FieldKind.DATE, required=True, label="End Date"),
                    FieldSpec("totalPoints", FieldKind.INTEGER, default=0, minimum=0, label="Total Points"),
                    FieldSpec("status", FieldKind.CHOICE, default="planned", choices=SPRINT_STATUSES),
                ),
                search_fields=("name",),
                json_import_mode=JsonImportMode.REPLACE,
            ),
            CollectionSpec(
                name="stories",
                storage_key="agile-stories",
                id_prefix="story",
                fields=(
                    FieldSpec("title", required=True),
                    FieldSpec("description"),
                    FieldSpec("points", FieldKind.INTEGER, default=0, minimum=0),
                    FieldSpec("status", FieldKind.CHOICE, default="todo", choices=STORY_STATUSES),
                    FieldSpec("sprint", FieldKind.REFERENCE, references="sprints"),
                    FieldSpec("assignee", FieldKind.REFERENCE, references="members"),
                    FieldSpec("createdAt", FieldKind.DATE, default=now_iso, label="Created At"),
                    FieldSpec("completedAt", FieldKind.DATE, label="Completed At"),
                ),
                search_fields=("title", "description"),
                json_import_mode=JsonImportMode.REPLACE,
            ),
            CollectionSpec(
                name="members",
                storage_key="agile-members",
                id_prefix="member",
                fields=(
                    FieldSpec("name", required=True),
                    FieldSpec("role"),
                ),
                search_fields=("name", "role"),
                json_import_mode=JsonImportMode.REPLACE,
            ),
        ]

    def seed_data(self) -> Dict[str, List[Record]]:
        return _seed(date.today())

    def cascade_rules(self) -> List[CascadeRule]:
        return [
            CascadeRule("sprints", "stories", "sprint", CascadeAction.UNLINK),
            CascadeRule("members", "stories", "assignee", CascadeAction.UNLINK),
        ]

    def normalise(self, name, record):
        if name != "stories":
            return record
        if record.get("status") == "done":
            if not record.get("completedAt"):
                return {**record, "completedAt": now_iso()}
            return record
        return {**record, "completedAt": ""}

    def validate(self, store, name, values, existing):
        if name == "sprints" and values.get("startDate") and values.get("endDate"):
            if str(values["endDate"]) < str(values["startDate"]):
                return [ValidationIssue("invalid_dates", "End date must be on or after the start date.")]
        return []

    def sort_keys(self, store, name):
        if name != "stories":
            return {}
        return {"assigneeName": lambda r: self.label_for(store, "members", r.get("assignee"))}

    def active_sprint(self, store) -> Optional[Record]:
        return next((s for s in store.records("sprints") if s.get("status") == "active"), None)

    def summary(self, store) -> Dict[str, Any]:
        sprints, stories = store.records("sprints"), store.records("stories")
        active = self.active_sprint(store)
        result: Dict[str, Any] = {
            "sprints": len(sprints),
            "stories": len(stories),
            "members": len(store.records("members")),
            "velocity": velocity(sprints, stories),
        }
        if active is not None:
            result["activeSprint"] = {
                "name": active.get("name"),
                "stats": sprint_stats(active["id"], stories),
                "completionRate": completion_rate(active, stories),
            }
        return result
