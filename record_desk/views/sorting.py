from __future__ import annotations

import unicodedata
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from record_desk.core.filter_state import SortState
from record_desk.core.records import Record

KeyFunc = Callable[[Record], Any]


def locale_sort_key(text: str) -> Tuple[str, str]:
    """
    Approximates a locale collation: accents and case are ignored first,
    then lowercase sorts before uppercase ("apple" < "Apple" < "banana").
    """
    decomposed = unicodedata.normalize("NFKD", text)
    base = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return base, text.swapcase()


def _value_key(value: Any) -> Tuple[int, Any]:
    # Numbers before strings so mixed columns still have a total order
    if isinstance(value, bool):
        return 0, float(value)
    if isinstance(value, (int, float)):
        return 0, float(value)
    return 1, locale_sort_key(str(value))


def _is_missing(value: Any) -> bool:
    return value is None or value == ""


def sort_records(
        records: Sequence[Record],
        state: SortState,
        *,
        key_funcs: Optional[Dict[str, KeyFunc]] = None,
) -> List[Record]:
    """
    Stable sort by state.key in state.direction.

    key_funcs supplies computed keys (e.g. an average score) that are not
    stored on the record. Records without a value for the key keep their
    relative order after the others, in either direction.
    """
    if not state.key:
        return list(records)

    key_funcs = key_funcs or {}
    getter = key_funcs.get(state.key) or (lambda r: r.get(state.key))

    present: List[Tuple[Any, Record]] = []
    missing: List[Record] = []
    for r in records:
        value = getter(r)
        if _is_missing(value):
            missing.append(r)
        else:
            present.append((_value_key(value), r))

    # reverse=True keeps equal items in input order
    ordered = sorted(present, key=lambda pair: pair[0], reverse=state.descending)
    return [r for _, r in ordered] + missing
