from __future__ import annotations

import copy
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

from record_desk.core.exceptions import UnknownCollectionError
from record_desk.core.records import Record
from record_desk.core.schema import CascadeRule, CollectionSpec
from record_desk.services.preferences import DarkModeSetting
from record_desk.validation.errors import ValidationIssue
from record_desk.views.aggregates import EmptySentinel

if TYPE_CHECKING:
    from record_desk.services.data_store import DataStore


class AppDefinition(ABC):
    """
    Abstract base class for an application built on the record core.

    Each subclass describes:
    - its collections (schemas, storage keys, import policies)
    - the seed data used when storage is empty or unreadable
    - cascade rules applied when a record is deleted
    - app rules beyond the schema (validation, derived fields, hooks)
    - read-only projections (sort keys, dashboard summary)

    Hooks receive the DataStore; writes made from a hook must pass
    notify=False so hooks never trigger each other.
    """

    id: str = None
    label: str = None
    empty_sentinel: EmptySentinel = EmptySentinel.MISSING
    average_digits: int = 1
    unassigned_label: str = "Unassigned"
    dark_mode: DarkModeSetting = DarkModeSetting("darkMode")
    settings_key: Optional[str] = None

    def __init__(self):
        self._specs: Dict[str, CollectionSpec] = {s.name: s for s in self.collection_specs()}

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    @abstractmethod
    def collection_specs(self) -> List[CollectionSpec]:
        raise NotImplementedError

    @abstractmethod
    def seed_data(self) -> Dict[str, List[Record]]:
        raise NotImplementedError

    def cascade_rules(self) -> List[CascadeRule]:
        return []

    @property
    def collections(self) -> List[CollectionSpec]:
        return list(self._specs.values())

    def spec(self, name: str) -> CollectionSpec:
        try:
            return self._specs[name]
        except KeyError:
            raise UnknownCollectionError(f"App '{self.id}' has no collection '{name}'") from None

    def seed_for(self, name: str) -> List[Record]:
        return copy.deepcopy(self.seed_data().get(name, []))

    def default_settings(self) -> Dict[str, Any]:
        """Settings used when settings_key holds nothing (apps without settings return {})."""
        return {}

    # ------------------------------------------------------------------
    # Write pipeline
    # ------------------------------------------------------------------

    def normalise(self, name: str, record: Record) -> Record:
        """Recompute stored derived fields. Runs on every store write."""
        return record

    def prepare_save(self, store: DataStore, name: str, values: Record, existing: Optional[Record]) -> Record:
        """Adjust validated form values right before they are saved."""
        return values

    def prepare_import(self, name: str, record: Record) -> Record:
        return record

    def find_existing(self, store: DataStore, name: str, values: Record) -> Optional[Record]:
        """An existing record an "add" should update instead of duplicating."""
        return None

    def validate(
            self, store: DataStore, name: str, values: Record, existing: Optional[Record]
    ) -> List[ValidationIssue]:
        """App rules checked after the schema-level form validation passed."""
        return []

    def row_issues(self, name: str, record: Record, line: int) -> List[ValidationIssue]:
        """Extra per-row checks for strict CSV imports."""
        return []

    def after_create(self, store: DataStore, name: str, record: Record) -> None:
        pass

    def after_update(self, store: DataStore, name: str, before: Record, after: Record) -> None:
        pass

    def after_delete(self, store: DataStore, name: str, record: Record) -> None:
        pass

    def after_import(self, store: DataStore, name: str, records: List[Record]) -> None:
        pass

    def after_json_import(
            self, store: DataStore, name: str, records: List[Record], entries: List[Record]
    ) -> None:
        """Restore nested data of imported JSON entries (entries[i] produced records[i])."""
        pass

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def sort_keys(self, store: DataStore, name: str) -> Dict[str, Callable[[Record], Any]]:
        """Computed sort keys per collection (values that are not stored)."""
        return {}

    def json_export_rows(self, store: DataStore, name: str, records: List[Record]) -> List[Record]:
        return records

    def summary(self, store: DataStore) -> Dict[str, Any]:
        """Dashboard figures derived from the current collections."""
        return {spec.name: len(store.records(spec.name)) for spec in self.collections}

    def label_for(self, store: DataStore, collection: str, record_id: Any, field: str = "name") -> str:
        """Display label of a referenced record, or the app's fallback label."""
        if not record_id:
            return self.unassigned_label
        record = store.get(collection, record_id)
        if record is None:
            return self.unassigned_label
        return str(record.get(field) or self.unassigned_label)
