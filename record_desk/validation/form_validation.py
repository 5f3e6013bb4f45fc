from __future__ import annotations

from typing import Any, Dict, List, Tuple

from record_desk.core.records import Record
from record_desk.core.schema import CollectionSpec, FieldSpec, coerce_value, is_blank
from .errors import ValidationIssue


def _range_issue(spec: FieldSpec, value: Any) -> List[ValidationIssue]:
    if value is None or not spec.is_numeric:
        return []
    label = spec.display_label
    if spec.minimum is not None:
        if spec.exclusive_minimum and value <= spec.minimum:
            if spec.minimum == 0:
                return [ValidationIssue("out_of_range", f"{label} must be a positive number.")]
            return [ValidationIssue("out_of_range", f"{label} must be greater than {spec.minimum:g}.")]
        if not spec.exclusive_minimum and value < spec.minimum:
            if spec.maximum is not None:
                return [ValidationIssue(
                    "out_of_range", f"{label} must be between {spec.minimum:g} and {spec.maximum:g}."
                )]
            return [ValidationIssue("out_of_range", f"{label} must be at least {spec.minimum:g}.")]
    if spec.maximum is not None and value > spec.maximum:
        if spec.minimum is not None:
            return [ValidationIssue(
                "out_of_range", f"{label} must be between {spec.minimum:g} and {spec.maximum:g}."
            )]
        return [ValidationIssue("out_of_range", f"{label} must be at most {spec.maximum:g}.")]
    return []


def validate_form(spec: CollectionSpec, values: Dict[str, Any]) -> Tuple[Record, List[ValidationIssue]]:
    """
    Check required fields and numeric ranges of submitted form values.

    Returns the values coerced to field types together with the issues
    found; the coerced record is only meaningful when there are no issues.
    """
    issues: List[ValidationIssue] = []
    coerced: Record = {}

    missing = [f for f in spec.fields if f.required and is_blank(values.get(f.name))]
    if missing:
        names = ", ".join(f.display_label for f in missing)
        verb = "is" if len(missing) == 1 else "are"
        issues.append(ValidationIssue("required", f"{names} {verb} required."))

    for f in spec.fields:
        if f.name not in values:
            continue
        raw = values[f.name]
        try:
            value = coerce_value(f, raw, strict=True)
        except ValueError as exc:
            issues.append(ValidationIssue("not_a_number", f"{exc}."))
            continue
        if not (f.required and is_blank(raw)):
            issues.extend(_range_issue(f, value))
        coerced[f.name] = value

    return coerced, issues
