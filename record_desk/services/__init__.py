"""
Service layer: key-value storage backends, the per-app DataStore and
the preference store.
"""

from .data_store import DataStore
from .preferences import DarkModeSetting, PreferenceStore
from .storage import InMemoryStorage, KeyValueStorage, LocalFileSystemStorage

__all__ = [
    "DarkModeSetting",
    "DataStore",
    "InMemoryStorage",
    "KeyValueStorage",
    "LocalFileSystemStorage",
    "PreferenceStore",
]
