from __future__ import annotations

from typing import Any, List, Sequence

from record_desk.core.filter_state import FilterState
from record_desk.core.records import Record


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value)
    return str(value)


def matches_search(record: Record, term: str, search_fields: Sequence[str]) -> bool:
    term = (term or "").strip().lower()
    if not term:
        return True
    return any(term in _text(record.get(f)).lower() for f in search_fields)


def matches_filters(record: Record, state: FilterState) -> bool:
    return all(_text(record.get(k)) == v for k, v in state.active_filters().items())


def filter_records(
        records: Sequence[Record],
        state: FilterState,
        *,
        search_fields: Sequence[str] = (),
) -> List[Record]:
    """
    Records matching the search term (substring, any search field) and
    every active exact filter. Input order is kept.
    """
    return [
        r for r in records
        if matches_search(r, state.search_term, search_fields) and matches_filters(r, state)
    ]
