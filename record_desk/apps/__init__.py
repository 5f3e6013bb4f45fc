"""
App definitions built on the record core, and the registry that
instantiates them by id.
"""

from .agile import AgileApp
from .base import AppDefinition
from .gradebook import GradebookApp
from .inventory import InventoryApp
from .registry import AppRegistry
from .roster import RosterApp
from .telehealth import TelehealthApp
from .transport import TransportApp

DEFAULT_APPS = (GradebookApp, RosterApp, InventoryApp, TransportApp, TelehealthApp, AgileApp)


def create_default_registry() -> AppRegistry:
    registry = AppRegistry()
    for app_cls in DEFAULT_APPS:
        registry.register(app_cls)
    return registry


__all__ = [
    "AgileApp",
    "AppDefinition",
    "AppRegistry",
    "GradebookApp",
    "InventoryApp",
    "RosterApp",
    "TelehealthApp",
    "TransportApp",
    "create_default_registry",
]
