from __future__ import annotations

import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.\-]+$")


class KeyValueStorage(ABC):
    """
    Abstract interface for string key-value persistence (local files, memory, ...).
    """

    @abstractmethod
    def get_item(self, key: str) -> Optional[str]:
        """Return the stored text, or None if the key is absent."""
        pass

    @abstractmethod
    def set_item(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    def remove_item(self, key: str) -> None:
        """Remove the key; removing an absent key is a no-op."""
        pass

    @abstractmethod
    def keys(self) -> List[str]:
        pass

    def has_item(self, key: str) -> bool:
        return self.get_item(key) is not None


def check_key(key: str) -> str:
    if not key or not _KEY_PATTERN.match(key) or key in (".", ".."):
        raise ValueError(f"Invalid storage key: {key!r}")
    return key


class LocalFileSystemStorage(KeyValueStorage):
    """
    One UTF-8 file per key, stored as <root>/<key>.json.
    """

    suffix = ".json"

    def __init__(self, root: Path):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        check_key(key)
        # Prevent path traversal attacks
        full_path = (self.root / f"{key}{self.suffix}").resolve()
        if full_path.parent != self.root:
            raise ValueError(f"Access denied: {key}")
        return full_path

    def get_item(self, key: str) -> Optional[str]:
        p = self._resolve(key)
        if not p.is_file():
            return None
        return p.read_text(encoding="utf-8")

    def set_item(self, key: str, value: str) -> None:
        p = self._resolve(key)
        tmp = p.with_name(p.name + ".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(p)

    def remove_item(self, key: str) -> None:
        p = self._resolve(key)
        if p.exists():
            p.unlink()

    def keys(self) -> List[str]:
        return sorted(
            f.name[: -len(self.suffix)]
            for f in self.root.glob(f"*{self.suffix}")
            if f.is_file()
        )


class InMemoryStorage(KeyValueStorage):
    """Dict-backed storage for tests and throwaway sessions."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(check_key(key))

    def set_item(self, key: str, value: str) -> None:
        self._items[check_key(key)] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(check_key(key), None)

    def keys(self) -> List[str]:
        return sorted(self._items)
