from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from record_desk.core.records import Record
from record_desk.validation.errors import ImportFormatError, ValidationIssue
from record_desk.validation.import_validation import validate_json_entries


def export_json(records: Iterable[Record]) -> str:
    return json.dumps(list(records), indent=2)


def export_backup(collections: Dict[str, List[Record]], settings: Optional[Dict[str, Any]] = None) -> str:
    """All collections of an app (and its settings, if any) as one JSON object."""
    data: Dict[str, Any] = {name: list(records) for name, records in collections.items()}
    if settings is not None:
        data["settings"] = settings
    return json.dumps(data, indent=2)


def normalise_json_payload(data: Any) -> Any:
    """
    Accept the shapes people actually hand in:

    - a list of records
    - a single record object (wrapped into a list)
    - {"records": [...]}
    """
    if isinstance(data, dict):
        if isinstance(data.get("records"), list):
            return data["records"]
        return [data]
    return data


def parse_json_records(text: str, *, required: Iterable[str] = ()) -> List[Record]:
    """
    Raises:
        ImportFormatError: on invalid JSON or entries that are not objects
            carrying the required keys
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ImportFormatError([
            ValidationIssue("invalid_json", f"Invalid JSON file: {exc.msg}")
        ]) from exc

    records = normalise_json_payload(data)
    issues = validate_json_entries(records, required=tuple(required))
    if issues:
        raise ImportFormatError(issues)
    return records
