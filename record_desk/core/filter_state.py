from __future__ import annotations

from dataclasses import asdict, dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional

# Filter values that mean "no restriction"
INACTIVE_FILTER_VALUES = ("", "all")


@dataclass(frozen=True)
class FilterState:
    """
    Current search/filter selection for one collection.

    Fields:

    - search_term: free text, matched case-insensitively as a substring
      against the collection's search fields
    - filters: exact-match filters keyed by field name; "" and "all" disable
      a filter
    """

    search_term: str = ""
    filters: Dict[str, str] = field(default_factory=dict)

    def with_search(self, term: str) -> FilterState:
        return replace(self, search_term=term or "")

    def with_filter(self, field_name: str, value: Optional[str]) -> FilterState:
        filters = dict(self.filters)
        if value is None or str(value) in INACTIVE_FILTER_VALUES:
            filters.pop(field_name, None)
        else:
            filters[field_name] = str(value)
        return replace(self, filters=filters)

    def active_filters(self) -> Dict[str, str]:
        return {k: v for k, v in self.filters.items() if v not in INACTIVE_FILTER_VALUES}

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> FilterState:
        return cls(
            search_term=str(data.get("search_term", "") or ""),
            filters={str(k): str(v) for k, v in (data.get("filters") or {}).items()},
        )


class SortDirection(str, Enum):
    ASCENDING = "ascending"
    DESCENDING = "descending"


@dataclass(frozen=True)
class SortState:
    """
    Active sort key and direction for one collection. key=None keeps insertion order.
    """

    key: Optional[str] = None
    direction: SortDirection = SortDirection.ASCENDING

    def request(self, key: str) -> SortState:
        """
        Selecting the current key again flips the direction; any other key
        starts ascending.
        """
        if key == self.key:
            flipped = (
                SortDirection.DESCENDING
                if self.direction == SortDirection.ASCENDING
                else SortDirection.ASCENDING
            )
            return SortState(key=key, direction=flipped)
        return SortState(key=key, direction=SortDirection.ASCENDING)

    @property
    def descending(self) -> bool:
        return self.direction == SortDirection.DESCENDING

    def to_dict(self) -> Dict[str, Any]:
        return {"key": self.key, "direction": self.direction.value}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SortState:
        return cls(
            key=data.get("key"),
            direction=SortDirection(data.get("direction", SortDirection.ASCENDING.value)),
        )
