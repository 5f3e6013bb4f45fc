"""
Core domain layer: record helpers, collection schemas, filter/sort state
and the exception hierarchy
"""

from .filter_state import FilterState, SortDirection, SortState
from .records import DeleteResult, NotFound, Record, generate_record_id
from .schema import CascadeRule, CollectionSpec, FieldKind, FieldSpec

__all__ = [
    "CascadeRule",
    "CollectionSpec",
    "DeleteResult",
    "FieldKind",
    "FieldSpec",
    "FilterState",
    "NotFound",
    "Record",
    "SortDirection",
    "SortState",
    "generate_record_id",
]
