from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Dict, Iterable, List, Optional, Union

from record_desk.core.exceptions import StorageReadError, UnknownCollectionError
from record_desk.core.records import DeleteResult, NotFound, Record, generate_record_id
from record_desk.core.schema import CascadeAction, CollectionSpec
from .storage import KeyValueStorage

if TYPE_CHECKING:
    from record_desk.apps.base import AppDefinition

logger = logging.getLogger(__name__)

CORRUPT_SUFFIX = ".corrupt"


def decode_collection(raw: str) -> List[Record]:
    """Parse a persisted collection payload. Raises StorageReadError."""
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise StorageReadError(f"Invalid JSON: {exc}") from exc
    if not isinstance(data, list) or not all(isinstance(r, dict) for r in data):
        raise StorageReadError("Expected a JSON array of objects")
    return data


class DataStore:
    """
    In-memory collections of one app, mirrored to key-value storage.

    Every mutation replaces the affected collection list (callers holding
    the previous list never see it change) and writes the whole collection
    under its storage key.
    """

    def __init__(self, app: AppDefinition, storage: KeyValueStorage):
        self.app = app
        self.storage = storage
        self._collections: Dict[str, List[Record]] = {
            spec.name: [] for spec in app.collections
        }
        self.load_warnings: List[str] = []

    # ------------------------------------------------------------------
    # Loading / persistence
    # ------------------------------------------------------------------

    def load(self) -> List[str]:
        """
        Read every collection from storage.

        Absent keys fall back to the app's seed data. Corrupt payloads are
        logged, kept under "<key>.corrupt" and replaced by the seed data;
        each such fallback is reported in the returned warnings.
        """
        self.load_warnings = []
        for spec in self.app.collections:
            self._collections[spec.name] = self._load_collection(spec)
        return list(self.load_warnings)

    def _load_collection(self, spec: CollectionSpec) -> List[Record]:
        raw = self.storage.get_item(spec.storage_key)
        if raw is None:
            logger.info(
                "No stored data, using seed records",
                extra={"collection": spec.name, "key": spec.storage_key},
            )
            records = self.app.seed_for(spec.name)
            self._write(spec, records)
            return records

        try:
            return decode_collection(raw)
        except StorageReadError:
            logger.exception("Failed to load collection %s from %s", spec.name, spec.storage_key)

        try:
            self.storage.set_item(spec.storage_key + CORRUPT_SUFFIX, raw)
        except Exception:
            logger.exception("Failed to back up corrupt payload of %s", spec.storage_key)

        self.load_warnings.append(
            f"Stored {spec.display_label.lower()} could not be read; sample data was loaded instead."
        )
        records = self.app.seed_for(spec.name)
        self._write(spec, records)
        return records

    def _write(self, spec: CollectionSpec, records: List[Record]) -> None:
        try:
            self.storage.set_item(spec.storage_key, json.dumps(records))
        except Exception:
            logger.exception("Failed to persist collection %s", spec.name)

    def _persist(self, name: str) -> None:
        self._write(self.app.spec(name), self._collections[name])

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def _require(self, name: str) -> List[Record]:
        try:
            return self._collections[name]
        except KeyError:
            raise UnknownCollectionError(f"Collection '{name}' not found") from None

    def records(self, name: str) -> List[Record]:
        return self._require(name)

    def get(self, name: str, record_id: str) -> Optional[Record]:
        return next((r for r in self._require(name) if r.get("id") == record_id), None)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _build(self, spec: CollectionSpec, partial: Record, taken: set) -> Record:
        record = spec.apply_defaults({k: v for k, v in partial.items() if k != "id"})
        record_id = partial.get("id")
        if not record_id or record_id in taken:
            record_id = generate_record_id(spec.id_prefix)
            while record_id in taken:
                record_id = generate_record_id(spec.id_prefix)
        record = {"id": str(record_id), **record}
        return self.app.normalise(spec.name, record)

    def create(self, name: str, partial: Record, *, notify: bool = True) -> Record:
        """Append a new record with a fresh id and field defaults."""
        return self.create_many(name, [partial], notify=notify)[0]

    def create_many(self, name: str, partials: Iterable[Record], *, notify: bool = True) -> List[Record]:
        """
        Append several records and persist once.

        A caller-supplied id is kept when it is not already taken.
        """
        current = self._require(name)
        spec = self.app.spec(name)
        taken = {r.get("id") for r in current}
        created = []
        for partial in partials:
            record = self._build(spec, partial, taken)
            taken.add(record["id"])
            created.append(record)

        self._collections[name] = [*current, *created]
        self._persist(name)
        logger.info("Created records", extra={"collection": name, "count": len(created)})

        if notify:
            for record in created:
                self.app.after_create(self, name, record)
        return created

    def update(
            self, name: str, record_id: str, patch: Record, *, notify: bool = True
    ) -> Union[Record, NotFound]:
        """Shallow-merge patch into the record. The id never changes."""
        current = self._require(name)
        idx = next((i for i, r in enumerate(current) if r.get("id") == record_id), None)
        if idx is None:
            logger.warning("Update of missing record", extra={"collection": name, "record_id": record_id})
            return NotFound(name, record_id)

        before = current[idx]
        merged = {**before, **patch, "id": before["id"]}
        updated = self.app.normalise(name, merged)

        self._collections[name] = [*current[:idx], updated, *current[idx + 1:]]
        self._persist(name)

        if notify:
            self.app.after_update(self, name, before, updated)
        return updated

    def delete(self, name: str, record_id: str, *, notify: bool = True) -> Union[DeleteResult, NotFound]:
        """
        Remove a record and apply the app's cascade rules to its dependents.
        """
        current = self._require(name)
        removed = next((r for r in current if r.get("id") == record_id), None)
        if removed is None:
            logger.warning("Delete of missing record", extra={"collection": name, "record_id": record_id})
            return NotFound(name, record_id)

        self._collections[name] = [r for r in current if r.get("id") != record_id]
        self._persist(name)

        result = DeleteResult(record=removed)
        self._cascade(name, [record_id], result)
        logger.info(
            "Deleted record",
            extra={"collection": name, "record_id": record_id, "cascaded": result.cascaded},
        )

        if notify:
            self.app.after_delete(self, name, removed)
        return result

    def _cascade(self, parent: str, parent_ids: List[str], result: DeleteResult) -> None:
        ids = set(parent_ids)
        for rule in self.app.cascade_rules():
            if rule.parent != parent:
                continue
            children = self._require(rule.child)
            hits = [r for r in children if r.get(rule.foreign_key) in ids]
            if not hits:
                continue

            if rule.action == CascadeAction.DELETE:
                self._collections[rule.child] = [r for r in children if r.get(rule.foreign_key) not in ids]
                result.cascaded[rule.child] = result.cascaded.get(rule.child, 0) + len(hits)
                self._persist(rule.child)
                self._cascade(rule.child, [r["id"] for r in hits], result)
            else:
                self._collections[rule.child] = [
                    {**r, rule.foreign_key: rule.unlink_value} if r.get(rule.foreign_key) in ids else r
                    for r in children
                ]
                result.unlinked[rule.child] = result.unlinked.get(rule.child, 0) + len(hits)
                self._persist(rule.child)

    def replace_all(self, name: str, records: List[Record]) -> List[Record]:
        """Swap the whole collection (JSON replace import)."""
        self._require(name)
        spec = self.app.spec(name)
        taken: set = set()
        rebuilt = []
        for partial in records:
            record = self._build(spec, partial, taken)
            taken.add(record["id"])
            rebuilt.append(record)
        self._collections[name] = rebuilt
        self._persist(name)
        logger.info("Replaced collection", extra={"collection": name, "count": len(rebuilt)})
        return rebuilt

    def clear_all(self) -> None:
        """Empty every collection and remove its storage key."""
        for spec in self.app.collections:
            self._collections[spec.name] = []
            try:
                self.storage.remove_item(spec.storage_key)
            except Exception:
                logger.exception("Failed to remove key %s", spec.storage_key)
        logger.info("Cleared all collections", extra={"app": self.app.id})
