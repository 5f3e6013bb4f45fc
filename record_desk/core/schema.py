from __future__ import annotations

import math
import re
from dataclasses import dataclass, field as dc_field, make_dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from .records import Record


class FieldKind(str, Enum):
    TEXT = "text"
    INTEGER = "integer"
    NUMBER = "number"
    DATE = "date"
    CHOICE = "choice"
    REFERENCE = "reference"
    LIST = "list"
    BOOLEAN = "boolean"


NUMERIC_KINDS = (FieldKind.INTEGER, FieldKind.NUMBER)

_TRUE_STRINGS = ("true", "1", "yes", "on")

# Marker for "no import-specific default configured"
_UNSET: Any = object()


class ImportPolicy(str, Enum):
    """
    STRICT aborts the whole import on the first malformed row,
    LENIENT substitutes defaults and keeps going.
    """
    STRICT = "strict"
    LENIENT = "lenient"


class JsonImportMode(str, Enum):
    APPEND = "append"
    REPLACE = "replace"


class CascadeAction(str, Enum):
    DELETE = "delete"
    UNLINK = "unlink"


@dataclass(frozen=True)
class FieldSpec:
    """
    One field of a flat record.

    - default: value (or zero-arg callable) used when the field is missing
    - import_default: replaces blank cells in lenient CSV imports, when set
    - minimum/maximum: inclusive numeric bounds checked by form validation
      (exclusive_minimum turns the lower bound into "greater than")
    - references: name of the collection this field points into
    - csv_header: column label used by CSV templates, import and export
    """

    name: str
    kind: FieldKind = FieldKind.TEXT
    default: Any = ""
    required: bool = False
    nullable: bool = False
    minimum: Optional[float] = None
    maximum: Optional[float] = None
    exclusive_minimum: bool = False
    choices: Tuple[str, ...] = ()
    references: Optional[str] = None
    label: Optional[str] = None
    csv_header: Optional[str] = None
    import_default: Any = _UNSET

    @property
    def display_label(self) -> str:
        if self.label:
            return self.label
        # camelCase -> "Camel Case"
        words = re.sub(r"(?<!^)(?=[A-Z])", " ", self.name)
        return words[:1].upper() + words[1:]

    @property
    def header(self) -> str:
        return self.csv_header or self.name

    @property
    def is_numeric(self) -> bool:
        return self.kind in NUMERIC_KINDS

    def default_value(self) -> Any:
        if self.nullable and self.default is None:
            return None
        value = self.default() if callable(self.default) else self.default
        if isinstance(value, (list, tuple)):
            return list(value)
        return value

    def blank_import_value(self) -> Any:
        if self.import_default is _UNSET:
            return self.default_value()
        value = self.import_default
        return value() if callable(value) else value


def _parse_number(kind: FieldKind, text: str) -> Any:
    try:
        number: Any = int(text)
    except ValueError:
        number = float(text)
    if isinstance(number, float):
        if math.isnan(number) or math.isinf(number):
            raise ValueError(f"'{text}' is not a finite number")
        if kind == FieldKind.INTEGER:
            number = int(number)
    return number


def coerce_value(spec: FieldSpec, raw: Any, *, strict: bool = False) -> Any:
    """
    Convert raw input (form text, CSV cell, JSON value) into the field's type.

    Blank input becomes the field default (None for nullable fields). An
    unparseable number raises ValueError when strict, otherwise falls back to
    the default.
    """
    if raw is None:
        return None if spec.nullable else spec.default_value()

    if spec.kind == FieldKind.LIST:
        if isinstance(raw, (list, tuple)):
            return [str(v).strip() for v in raw if str(v).strip()]
        return [part.strip() for part in str(raw).split(";") if part.strip()]

    if spec.kind == FieldKind.BOOLEAN:
        if isinstance(raw, bool):
            return raw
        return str(raw).strip().lower() in _TRUE_STRINGS

    if spec.is_numeric:
        if isinstance(raw, bool):
            raw = int(raw)
        if isinstance(raw, (int, float)):
            if isinstance(raw, float) and (math.isnan(raw) or math.isinf(raw)):
                if strict:
                    raise ValueError(f"{spec.display_label} must be a finite number")
                return None if spec.nullable else spec.default_value()
            return int(raw) if spec.kind == FieldKind.INTEGER else raw
        text = str(raw).strip()
        if not text:
            return None if spec.nullable else spec.default_value()
        try:
            return _parse_number(spec.kind, text)
        except ValueError:
            if strict:
                raise ValueError(f"{spec.display_label} must be a number, got '{text}'")
            return None if spec.nullable else spec.default_value()

    if isinstance(raw, str):
        return raw.strip()
    return str(raw)


def is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, tuple)):
        return len(value) == 0
    return False


@dataclass(frozen=True)
class CascadeRule:
    """
    What happens to `child` records whose `foreign_key` points at a deleted
    `parent` record.
    """
    parent: str
    child: str
    foreign_key: str
    action: CascadeAction = CascadeAction.DELETE
    unlink_value: Any = ""


@dataclass(frozen=True, eq=False)
class CollectionSpec:
    """
    Schema and policies of one collection.

    - storage_key: fixed key the whole collection is written under
    - search_fields: fields matched by the free-text search
    - import_fields: fields read from CSV (in template column order);
      defaults to every field
    - export_fields: fields written by CSV export; defaults to id + every field
    - id_header: CSV header of the id column
    - template_example: optional example row appended to the CSV template
    """

    name: str
    storage_key: str
    fields: Tuple[FieldSpec, ...]
    label: Optional[str] = None
    id_prefix: str = "id"
    search_fields: Tuple[str, ...] = ()
    import_policy: ImportPolicy = ImportPolicy.LENIENT
    import_fields: Optional[Tuple[str, ...]] = None
    export_fields: Optional[Tuple[str, ...]] = None
    id_header: str = "id"
    template_example: Optional[Dict[str, str]] = None
    json_import_mode: JsonImportMode = JsonImportMode.APPEND
    default_sort: Optional[str] = None

    @property
    def display_label(self) -> str:
        return self.label or self.name.replace("_", " ").title()

    @property
    def field_names(self) -> List[str]:
        return [f.name for f in self.fields]

    def field(self, name: str) -> FieldSpec:
        for f in self.fields:
            if f.name == name:
                return f
        raise KeyError(f"Collection '{self.name}' has no field '{name}'")

    def has_field(self, name: str) -> bool:
        return any(f.name == name for f in self.fields)

    @property
    def parent_field(self) -> Optional[str]:
        """First reference field; an "add" opened from a parent record fills it."""
        return next((f.name for f in self.fields if f.kind == FieldKind.REFERENCE), None)

    def known_fields(self, record: Record) -> Record:
        """Copy of record holding only the id and declared fields."""
        return {k: v for k, v in record.items() if k == "id" or self.has_field(k)}

    def defaults(self) -> Record:
        return {f.name: f.default_value() for f in self.fields}

    def apply_defaults(self, partial: Record) -> Record:
        """Missing fields get their defaults; unknown keys are kept as-is."""
        record = self.defaults()
        record.update(partial)
        return record

    def import_columns(self) -> List[FieldSpec]:
        names = self.import_fields or tuple(self.field_names)
        return [self.field(n) for n in names]

    def export_columns(self) -> List[Tuple[str, str]]:
        """(header, field name) pairs in export order."""
        names = self.export_fields or ("id",) + tuple(self.field_names)
        columns = []
        for n in names:
            if n == "id":
                columns.append((self.id_header, "id"))
            else:
                columns.append((self.field(n).header, n))
        return columns

    def form_type(self) -> Type[Any]:
        return _form_type_for(self)


_FORM_TYPES: Dict[Tuple[Any, ...], Type[Any]] = {}


def _camel(name: str) -> str:
    parts = re.split(r"[_\-\s]+", name)
    return "".join(p[:1].upper() + p[1:] for p in parts if p)


def _default_factory(spec: FieldSpec) -> Callable[[], Any]:
    return spec.default_value


def _form_type_for(spec: CollectionSpec) -> Type[Any]:
    """
    Build (once per collection) a frozen dataclass holding the editable
    fields of a record. Each collection gets its own form type, so a modal
    always carries the field set of the collection it edits.
    """
    cache_key = (spec.name, spec.storage_key, tuple(spec.field_names))
    form_cls = _FORM_TYPES.get(cache_key)
    if form_cls is None:
        form_cls = make_dataclass(
            f"{_camel(spec.name)}Form",
            [(f.name, Any, dc_field(default_factory=_default_factory(f))) for f in spec.fields],
            frozen=True,
        )
        _FORM_TYPES[cache_key] = form_cls
    return form_cls
