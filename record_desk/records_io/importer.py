from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from record_desk.core.records import Record
from record_desk.core.schema import (
    CollectionSpec,
    FieldSpec,
    ImportPolicy,
    JsonImportMode,
    coerce_value,
)
from record_desk.services.data_store import DataStore
from record_desk.validation.errors import ImportFormatError, ValidationIssue
from record_desk.validation.import_validation import require_headers, resolve_columns
from .csv_codec import CsvParser, CsvTable, export_csv, read_csv_table, template_csv
from .json_codec import export_backup, export_json, parse_json_records

if TYPE_CHECKING:
    from record_desk.apps.base import AppDefinition

logger = logging.getLogger(__name__)


@dataclass
class ImportReport:
    collection: str
    imported: List[Record] = field(default_factory=list)
    replaced: bool = False
    warnings: List[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.imported)

    @property
    def message(self) -> str:
        noun = "record" if self.count == 1 else "records"
        return f"Successfully imported {self.count} {noun}."


class ImportService:
    """
    CSV/JSON import and export for the collections of one app.

    Imports are all-or-nothing: rows are converted and checked first and
    only committed to the store when the whole payload is accepted.
    """

    def __init__(self, app: AppDefinition, store: DataStore, parser: CsvParser = CsvParser.STANDARD):
        self.app = app
        self.store = store
        self.parser = parser

    # ------------------------------------------------------------------
    # CSV
    # ------------------------------------------------------------------

    def rows_to_records(self, spec: CollectionSpec, table: CsvTable) -> List[Record]:
        """
        Convert parsed rows to partial records under the collection's import
        policy. Raises ImportFormatError (strict) before anything is written.
        """
        strict = spec.import_policy == ImportPolicy.STRICT
        issues: List[ValidationIssue] = []

        if strict:
            require_headers(spec, table.headers)
            issues.extend(ValidationIssue("cell_count", p.message) for p in table.problems)
        else:
            for p in table.problems:
                logger.warning("CSV row cell count mismatch", extra={"collection": spec.name, "detail": p.message})

        columns = resolve_columns(spec, table.headers)
        records: List[Record] = []
        for row, line_no in zip(table.rows, table.line_numbers):
            record: Record = {}
            for header, target in columns.items():
                cell = row.get(header, "")
                if target == "id":
                    if cell:
                        record["id"] = cell
                    continue
                # Blank numbers fall back to their default even in strict mode
                if strict and target.required and not target.is_numeric and not cell.strip():
                    issues.append(ValidationIssue(
                        "required", f"Line {line_no}: {target.display_label} is required."
                    ))
                try:
                    record[target.name] = self._cell_value(target, cell, strict)
                except ValueError as exc:
                    issues.append(ValidationIssue("not_a_number", f"Line {line_no}: {exc}."))
            issues.extend(self.app.row_issues(spec.name, record, line_no))
            records.append(record)

        if issues:
            raise ImportFormatError(issues)
        return records

    @staticmethod
    def _cell_value(spec: FieldSpec, cell: str, strict: bool) -> Any:
        if not strict and not cell.strip():
            return spec.blank_import_value()
        return coerce_value(spec, cell, strict=strict)

    def import_csv(self, collection: str, text: str) -> ImportReport:
        spec = self.app.spec(collection)
        table = read_csv_table(text, self.parser)
        partials = [self.app.prepare_import(collection, r) for r in self.rows_to_records(spec, table)]

        created = self.store.create_many(collection, partials, notify=False)
        self.app.after_import(self.store, collection, created)
        logger.info("Imported CSV", extra={"collection": collection, "count": len(created)})
        return ImportReport(collection=collection, imported=created)

    def export_csv(self, collection: str, records: Optional[List[Record]] = None) -> str:
        spec = self.app.spec(collection)
        rows = self.store.records(collection) if records is None else records
        return export_csv(rows, spec.export_columns())

    def template_csv(self, collection: str) -> str:
        spec = self.app.spec(collection)
        headers = [f.header for f in spec.import_columns()]
        return template_csv(headers, spec.template_example)

    # ------------------------------------------------------------------
    # JSON
    # ------------------------------------------------------------------

    def import_json(self, collection: str, text: str) -> ImportReport:
        spec = self.app.spec(collection)
        required = [f.name for f in spec.fields if f.required]
        if spec.json_import_mode == JsonImportMode.REPLACE:
            required = ["id", *required]
        entries = parse_json_records(text, required=required)

        partials: List[Record] = []
        for entry in entries:
            # Nested or stale keys never reach the stored record
            record = spec.known_fields(entry)
            for f in spec.fields:
                if f.name in record:
                    record[f.name] = coerce_value(f, record[f.name])
            partials.append(self.app.prepare_import(collection, record))

        if spec.json_import_mode == JsonImportMode.REPLACE:
            created = self.store.replace_all(collection, partials)
            report = ImportReport(collection=collection, imported=created, replaced=True)
        else:
            created = self.store.create_many(collection, partials, notify=False)
            self.app.after_import(self.store, collection, created)
            report = ImportReport(collection=collection, imported=created)
        self.app.after_json_import(self.store, collection, created, entries)

        logger.info(
            "Imported JSON",
            extra={"collection": collection, "count": report.count, "replaced": report.replaced},
        )
        return report

    def export_json(self, collection: str, records: Optional[List[Record]] = None) -> str:
        rows = self.store.records(collection) if records is None else records
        return export_json(self.app.json_export_rows(self.store, collection, rows))

    def export_backup(self, settings: Optional[Dict[str, Any]] = None) -> str:
        collections = {spec.name: self.store.records(spec.name) for spec in self.app.collections}
        return export_backup(collections, settings)

    # ------------------------------------------------------------------

    def import_text(self, collection: str, filename: str, text: str) -> ImportReport:
        """Dispatch on the file extension (.json, otherwise CSV)."""
        if filename.lower().endswith(".json"):
            return self.import_json(collection, text)
        if not filename.lower().endswith(".csv"):
            raise ImportFormatError([
                ValidationIssue("unsupported_file", "Please choose a .csv or .json file.")
            ])
        return self.import_csv(collection, text)
