from __future__ import annotations

import logging
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from record_desk.core.records import Record

logger = logging.getLogger(__name__)

Number = Union[int, float]


class EmptySentinel(Enum):
    """What an aggregate over an empty set returns. Chosen per app."""
    MISSING = "N/A"
    ZERO = 0


def round_half_up(value: float, digits: int = 0) -> Number:
    """
    Round halves away from zero for positive values (2.5 -> 3, 84.25 -> 84.3).

    The exact binary value is rounded, so 84.35 (stored as 84.3499...) gives
    84.3. digits=0 returns an int.
    """
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(float(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    if digits == 0:
        return int(rounded)
    return float(rounded)


def average(
        values: Iterable[Optional[Number]],
        *,
        sentinel: EmptySentinel = EmptySentinel.MISSING,
        digits: int = 1,
) -> Union[Number, str]:
    """
    Mean of the numeric values, rounded half-up to `digits`.

    None entries are ignored; an empty set returns sentinel.value.
    """
    numbers = [float(v) for v in values if v is not None and not isinstance(v, bool)]
    numbers = [v for v in numbers if np.isfinite(v)]
    if not numbers:
        return sentinel.value
    return round_half_up(float(np.mean(numbers)), digits)


def percentages(
        records: Iterable[Record],
        score_key: str,
        total_key: str,
) -> List[float]:
    """
    score / total * 100 per record. Records with a missing score or a
    non-positive total are skipped.
    """
    result = []
    for r in records:
        score = r.get(score_key)
        total = r.get(total_key)
        if score is None or total is None:
            continue
        try:
            score_f, total_f = float(score), float(total)
        except (TypeError, ValueError):
            continue
        if total_f <= 0:
            logger.warning(
                "Skipping record with non-positive denominator",
                extra={"record_id": r.get("id"), "field": total_key},
            )
            continue
        result.append(score_f / total_f * 100)
    return result


def percentage_average(
        records: Iterable[Record],
        score_key: str,
        total_key: str,
        *,
        sentinel: EmptySentinel = EmptySentinel.MISSING,
        digits: int = 1,
) -> Union[Number, str]:
    return average(percentages(records, score_key, total_key), sentinel=sentinel, digits=digits)


def rate(part: int, whole: int, *, digits: int = 1) -> Number:
    """part / whole * 100; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return round_half_up(part / whole * 100, digits)


def _frame(records: Sequence[Record], columns: Sequence[str]) -> pd.DataFrame:
    return pd.DataFrame([{c: r.get(c) for c in columns} for r in records], columns=list(columns))


def sum_by(records: Sequence[Record], key: str, value_key: str) -> Dict[Any, Number]:
    """
    Total of value_key per distinct key, in order of first appearance.
    """
    if not records:
        return {}
    frame = _frame(records, [key, value_key])
    frame[key] = frame[key].fillna("")
    frame[value_key] = pd.to_numeric(frame[value_key], errors="coerce").fillna(0)
    totals = frame.groupby(key, sort=False)[value_key].sum()
    return {k: _plain_number(v) for k, v in totals.items()}


def count_by(
        records: Sequence[Record],
        key: Union[str, Callable[[Record], Any]],
) -> Dict[Any, int]:
    """Number of records per distinct key, in order of first appearance."""
    if not records:
        return {}
    labels = [key(r) if callable(key) else r.get(key, "") for r in records]
    counts = pd.Series(labels, dtype=object).fillna("").to_frame("label").groupby("label", sort=False).size()
    return {k: int(v) for k, v in counts.items()}


def total(records: Iterable[Record], key: str) -> Number:
    values = [r.get(key) for r in records]
    numbers = pd.to_numeric(pd.Series(values, dtype=object), errors="coerce").fillna(0)
    return _plain_number(numbers.sum()) if len(numbers) else 0


def _plain_number(value: Any) -> Number:
    value = value.item() if hasattr(value, "item") else value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
