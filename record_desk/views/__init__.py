"""
Derived views: pure functions that recompute aggregates, filtered and
sorted projections and status buckets from collections on read.
"""

from .aggregates import EmptySentinel, average, percentage_average, round_half_up
from .bucketing import Band, StockStatus, band_for, distribution, stock_status
from .filtering import filter_records
from .sorting import sort_records

__all__ = [
    "Band",
    "EmptySentinel",
    "StockStatus",
    "average",
    "band_for",
    "distribution",
    "filter_records",
    "percentage_average",
    "round_half_up",
    "sort_records",
    "stock_status",
]
