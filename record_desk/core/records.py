from __future__ import annotations

import time
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Dict

Record = Dict[str, Any]


def generate_record_id(prefix: str = "id") -> str:
    """Epoch millis plus a random suffix, so ids stay unique within one millisecond."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def today_iso() -> str:
    return date.today().isoformat()


@dataclass(frozen=True)
class NotFound:
    """
    Returned by update/delete when no record carries the requested id.

    Falsy, so callers can write ``if not result: ...``.
    """
    collection: str
    record_id: str

    def __bool__(self) -> bool:
        return False

    @property
    def message(self) -> str:
        return f"No record '{self.record_id}' in '{self.collection}'"


@dataclass
class DeleteResult:
    """
    Outcome of a successful delete.

    - record: the removed record
    - cascaded: dependent records removed, per collection
    - unlinked: dependent records whose reference was blanked, per collection
    """
    record: Record
    cascaded: Dict[str, int] = field(default_factory=dict)
    unlinked: Dict[str, int] = field(default_factory=dict)
