from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from record_desk.core.filter_state import FilterState, SortState
from .modal_state import ActiveModal


class NoticeLevel(str, Enum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True)
class Notice:
    level: NoticeLevel
    message: str


@dataclass
class AppState:
    """
    Everything the interaction layer tracks besides the stored collections.
    """
    app_id: str
    active_modal: Optional[ActiveModal] = None
    filters: Dict[str, FilterState] = field(default_factory=dict)
    sorts: Dict[str, SortState] = field(default_factory=dict)
    dark_mode: bool = False
    notices: List[Notice] = field(default_factory=list)
    load_warnings: List[str] = field(default_factory=list)

    def filter_for(self, collection: str) -> FilterState:
        return self.filters.get(collection, FilterState())

    def sort_for(self, collection: str) -> SortState:
        return self.sorts.get(collection, SortState())
