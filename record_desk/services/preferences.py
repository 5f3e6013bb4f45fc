from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from typing import Any, Dict

from .storage import KeyValueStorage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DarkModeSetting:
    """
    Where and how an app stores its dark-mode flag.

    Apps differ in encoding: most write "true"/"false", one writes "dark"/"light".
    """
    key: str
    on_value: str = "true"
    off_value: str = "false"


class PreferenceStore:
    """Reads and writes the dark-mode preference of one app."""

    def __init__(self, storage: KeyValueStorage, setting: DarkModeSetting):
        self.storage = storage
        self.setting = setting

    def get_dark_mode(self, default: bool = False) -> bool:
        raw = self.storage.get_item(self.setting.key)
        if raw is None:
            return default
        value = raw.strip().strip('"')
        if value == self.setting.on_value:
            return True
        if value == self.setting.off_value:
            return False
        logger.warning(
            "Unrecognised dark mode value, using default",
            extra={"key": self.setting.key, "value": raw},
        )
        return default

    def set_dark_mode(self, enabled: bool) -> None:
        value = self.setting.on_value if enabled else self.setting.off_value
        try:
            self.storage.set_item(self.setting.key, value)
        except Exception:
            logger.exception("Failed to persist dark mode preference %s", self.setting.key)


def merge_settings(base: Dict[str, Any], patch: Dict[str, Any]) -> Dict[str, Any]:
    """Merge patch into a copy of base; nested dicts are merged key by key."""
    merged = copy.deepcopy(base)
    for key, value in patch.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_settings(merged[key], value)
        else:
            merged[key] = copy.deepcopy(value)
    return merged


class SettingsStore:
    """
    App settings kept as one JSON object under a single key.

    Stored values are merged over the defaults, so settings written by an
    older version still get every current key. An unreadable payload falls
    back to the defaults.
    """

    def __init__(self, storage: KeyValueStorage, key: str, defaults: Dict[str, Any]):
        self.storage = storage
        self.key = key
        self.defaults = defaults

    def get(self) -> Dict[str, Any]:
        raw = self.storage.get_item(self.key)
        if raw is None:
            return copy.deepcopy(self.defaults)
        try:
            stored = json.loads(raw)
        except json.JSONDecodeError:
            logger.exception("Failed to read settings from %s", self.key)
            return copy.deepcopy(self.defaults)
        if not isinstance(stored, dict):
            logger.warning("Stored settings are not an object, using defaults", extra={"key": self.key})
            return copy.deepcopy(self.defaults)
        return merge_settings(self.defaults, stored)

    def update(self, patch: Dict[str, Any]) -> Dict[str, Any]:
        settings = merge_settings(self.get(), patch)
        try:
            self.storage.set_item(self.key, json.dumps(settings))
        except Exception:
            logger.exception("Failed to persist settings %s", self.key)
        return settings

    def reset(self) -> None:
        try:
            self.storage.remove_item(self.key)
        except Exception:
            logger.exception("Failed to remove settings %s", self.key)
