from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Sequence


@dataclass(frozen=True)
class Band:
    """A labelled range with an inclusive lower bound."""
    label: str
    minimum: float


def band_for(value: Any, bands: Sequence[Band], *, fallback: Optional[str] = None) -> Optional[str]:
    """
    Label of the first band whose minimum the value reaches. Bands are
    checked in the given order, so list them from highest to lowest.
    Non-numeric values (including the "N/A" sentinel) get the fallback.
    """
    if value is None or isinstance(value, (bool, str)):
        return fallback
    for band in bands:
        if value >= band.minimum:
            return band.label
    return fallback


def distribution(
        values: Iterable[Any],
        bands: Sequence[Band],
        *,
        fallback: Optional[str] = None,
) -> Dict[str, int]:
    """
    Count values per band. Every band (and the fallback, if named) appears
    in the result, in band order, even with a zero count.
    """
    counts: Dict[str, int] = {b.label: 0 for b in bands}
    if fallback is not None:
        counts.setdefault(fallback, 0)
    for value in values:
        label = band_for(value, bands, fallback=fallback)
        if label is not None:
            counts[label] += 1
    return counts


class StockStatus(str, Enum):
    IN_STOCK = "In Stock"
    LOW_STOCK = "Low Stock"
    OUT_OF_STOCK = "Out of Stock"


def stock_status(quantity: Any, min_stock_level: Any) -> StockStatus:
    qty = float(quantity or 0)
    minimum = float(min_stock_level or 0)
    if qty <= 0:
        return StockStatus.OUT_OF_STOCK
    if qty <= minimum:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK
