from __future__ import annotations

from typing import Any, Dict, List, Sequence

from record_desk.core.schema import CollectionSpec, FieldSpec
from .errors import ImportFormatError, ValidationIssue


def resolve_columns(spec: CollectionSpec, headers: Sequence[str]) -> Dict[str, FieldSpec]:
    """
    Map CSV headers to fields. A header matches a field by its CSV label or
    by the field name itself; the id column maps to "id".
    """
    by_header: Dict[str, Any] = {}
    for f in spec.fields:
        by_header.setdefault(f.header.lower(), f)
        by_header.setdefault(f.name.lower(), f)

    resolved: Dict[str, Any] = {}
    for header in headers:
        key = header.strip().lower()
        if key in (spec.id_header.lower(), "id"):
            resolved[header] = "id"
        elif key in by_header:
            resolved[header] = by_header[key]
    return resolved


def missing_headers(spec: CollectionSpec, headers: Sequence[str]) -> List[str]:
    resolved = resolve_columns(spec, headers)
    present = {f.name for f in resolved.values() if isinstance(f, FieldSpec)}
    return [f.header for f in spec.import_columns() if f.name not in present]


def require_headers(spec: CollectionSpec, headers: Sequence[str]) -> None:
    missing = missing_headers(spec, headers)
    if missing:
        raise ImportFormatError([
            ValidationIssue("missing_headers", f"Missing required headers: {', '.join(missing)}")
        ])


def validate_json_entries(data: Any, *, required: Sequence[str] = ()) -> List[ValidationIssue]:
    """
    Entries must be objects carrying every required key.
    """
    if not isinstance(data, list):
        return [ValidationIssue("invalid_format", "Invalid data format: expected a list of records.")]

    issues: List[ValidationIssue] = []
    for idx, entry in enumerate(data, start=1):
        if not isinstance(entry, dict):
            issues.append(ValidationIssue("invalid_entry", f"Entry {idx} is not an object."))
            continue
        absent = [k for k in required if k not in entry]
        if absent:
            issues.append(ValidationIssue(
                "missing_keys", f"Entry {idx} is missing: {', '.join(absent)}."
            ))
    return issues
