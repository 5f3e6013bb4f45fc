from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Optional

from record_desk.core.records import Record
from record_desk.core.schema import CollectionSpec


class ModalKind(str, Enum):
    ADD = "add"
    EDIT = "edit"
    VIEW = "view"
    CONFIRM_DELETE = "confirm_delete"
    IMPORT = "import"


@dataclass(frozen=True)
class ActiveModal:
    """
    The one modal currently open.

    - collection: the collection the modal works on
    - record_id: target record for edit/view/confirm-delete
    - parent_id: context record for "add" (e.g. the student a progress
      record is added to)
    - form: instance of the collection's form type, or None for modals
      without editable fields
    """
    kind: ModalKind
    collection: str
    record_id: Optional[str] = None
    parent_id: Optional[str] = None
    form: Any = None

    @property
    def is_form(self) -> bool:
        return self.kind in (ModalKind.ADD, ModalKind.EDIT)


def blank_form(spec: CollectionSpec, **prefill: Any) -> Any:
    form_cls = spec.form_type()
    known = {k: v for k, v in prefill.items() if spec.has_field(k)}
    return form_cls(**known)


def form_from_record(spec: CollectionSpec, record: Record) -> Any:
    form_cls = spec.form_type()
    return form_cls(**{f.name: record.get(f.name, f.default_value()) for f in spec.fields})


def form_values(form: Any) -> Dict[str, Any]:
    return dataclasses.asdict(form)


def update_form(form: Any, **changes: Any) -> Any:
    """
    Raises:
        TypeError: if a change names a field the form does not have
    """
    return dataclasses.replace(form, **changes)
