from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from record_desk.apps import AppRegistry, create_default_registry
from record_desk.apps.base import AppDefinition
from record_desk.config.model import GlobalConfig
from record_desk.controller.interaction import InteractionController
from record_desk.records_io.importer import ImportService
from record_desk.services.data_store import DataStore
from record_desk.services.preferences import PreferenceStore
from record_desk.services.storage import KeyValueStorage, LocalFileSystemStorage


@dataclass
class AppContext:
    global_config: GlobalConfig
    app: Optional[AppDefinition] = None
    storage: Optional[KeyValueStorage] = None
    store: Optional[DataStore] = None
    importer: Optional[ImportService] = None
    controller: Optional[InteractionController] = None

    def validate(self) -> None:
        """Ensure all required services are attached before the app starts."""
        for name in ("app", "storage", "store", "importer", "controller"):
            if getattr(self, name) is None:
                raise RuntimeError(f"AppContext.{name} must be initialized.")


def build_context(
        config: GlobalConfig,
        app_id: Optional[str] = None,
        *,
        registry: Optional[AppRegistry] = None,
        storage: Optional[KeyValueStorage] = None,
) -> AppContext:
    """
    Wire app definition, storage, store, importer and controller, then load
    the collections.
    """
    registry = registry or create_default_registry()
    app = registry.create(app_id or config.default_app)
    storage = storage or LocalFileSystemStorage(config.storage_root)

    store = DataStore(app, storage)
    importer = ImportService(app, store, config.csv_parser)
    controller = InteractionController(
        app,
        store,
        PreferenceStore(storage, app.dark_mode),
        importer,
        surface_load_warnings=config.surface_load_warnings,
    )

    ctx = AppContext(
        global_config=config,
        app=app,
        storage=storage,
        store=store,
        importer=importer,
        controller=controller,
    )
    ctx.validate()
    controller.load()
    return ctx
