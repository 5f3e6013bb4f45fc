from __future__ import annotations

from typing import Dict, List, Type

from record_desk.core.exceptions import UnknownAppError
from .base import AppDefinition


class AppRegistry:
    """
    Registry of app definition classes, keyed by their 'id'.

    - Stores classes, not instances, so each context gets a fresh definition
    - Only AppDefinition subclasses with a unique 'id' can be registered
    """

    def __init__(self):
        self._apps: Dict[str, Type[AppDefinition]] = {}

    def register(self, app_cls: Type[AppDefinition]) -> None:
        """
        Raises:
            TypeError: if app_cls is not a subclass of AppDefinition
            ValueError: if an app with the same 'id' already exists
        """
        if not isinstance(app_cls, type) or not issubclass(app_cls, AppDefinition):
            raise TypeError(f"App '{getattr(app_cls, 'id', app_cls)}' must be a subclass of AppDefinition")

        if app_cls.id in self._apps:
            raise ValueError(f"App '{app_cls.id}' already registered")

        self._apps[app_cls.id] = app_cls

    def create(self, app_id: str) -> AppDefinition:
        """
        Raises:
            UnknownAppError: if no app with the given id exists in the registry
        """
        try:
            cls = self._apps[app_id]
        except KeyError:
            raise UnknownAppError(f"App '{app_id}' not found") from None
        return cls()

    def ids(self) -> List[str]:
        return list(self._apps)

    def all_classes(self) -> List[Type[AppDefinition]]:
        return list(self._apps.values())
