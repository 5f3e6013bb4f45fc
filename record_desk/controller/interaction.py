from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from record_desk.apps.base import AppDefinition
from record_desk.core.filter_state import SortState
from record_desk.core.records import DeleteResult, NotFound, Record
from record_desk.records_io.importer import ImportReport, ImportService
from record_desk.services.data_store import DataStore
from record_desk.services.preferences import PreferenceStore, SettingsStore
from record_desk.validation.errors import ValidationError
from record_desk.validation.form_validation import validate_form
from record_desk.views.filtering import filter_records
from record_desk.views.sorting import sort_records
from .app_state import AppState, Notice, NoticeLevel
from .modal_state import (
    ActiveModal,
    ModalKind,
    blank_form,
    form_from_record,
    form_values,
    update_form,
)

logger = logging.getLogger(__name__)

ESCAPE = "Escape"


class InteractionController:
    """
    Turns user actions into store mutations and state transitions.

    Owns the AppState (active modal, filters, sorts, dark mode, notices).
    Validation and import failures become error notices; nothing is written
    in that case.
    """

    def __init__(
            self,
            app: AppDefinition,
            store: DataStore,
            preferences: PreferenceStore,
            importer: ImportService,
            *,
            surface_load_warnings: bool = True,
    ):
        self.app = app
        self.store = store
        self.preferences = preferences
        self.importer = importer
        self.surface_load_warnings = surface_load_warnings

        self.state = AppState(app_id=app.id, dark_mode=preferences.get_dark_mode())
        for spec in app.collections:
            if spec.default_sort:
                self.state.sorts[spec.name] = SortState(key=spec.default_sort)

        self.settings: Optional[SettingsStore] = None
        if app.settings_key:
            self.settings = SettingsStore(store.storage, app.settings_key, app.default_settings())

        self._key_handlers: Dict[str, Callable[[], None]] = {}

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def load(self) -> None:
        warnings = self.store.load()
        self.state.load_warnings = list(warnings)
        if self.surface_load_warnings:
            for message in warnings:
                self.notify(NoticeLevel.WARNING, message)

    def mount(self) -> None:
        """Register key handlers. Calling mount twice keeps a single handler."""
        self._key_handlers[ESCAPE] = self.close_modal

    def unmount(self) -> None:
        self._key_handlers.clear()

    @property
    def mounted(self) -> bool:
        return bool(self._key_handlers)

    def dispatch_key(self, key: str) -> bool:
        handler = self._key_handlers.get(key)
        if handler is None:
            return False
        handler()
        return True

    # ------------------------------------------------------------------
    # Notices
    # ------------------------------------------------------------------

    def notify(self, level: NoticeLevel, message: str) -> None:
        self.state.notices.append(Notice(level, message))

    def drain_notices(self) -> List[Notice]:
        notices = list(self.state.notices)
        self.state.notices.clear()
        return notices

    # ------------------------------------------------------------------
    # Modals
    # ------------------------------------------------------------------

    @property
    def active_modal(self) -> Optional[ActiveModal]:
        return self.state.active_modal

    def open_add(self, collection: str, *, parent_id: Optional[str] = None, **prefill: Any) -> ActiveModal:
        spec = self.app.spec(collection)
        if parent_id is not None and spec.parent_field:
            prefill.setdefault(spec.parent_field, parent_id)
        modal = ActiveModal(ModalKind.ADD, collection, parent_id=parent_id, form=blank_form(spec, **prefill))
        self.state.active_modal = modal
        return modal

    def _open_for_record(self, kind: ModalKind, collection: str, record_id: str) -> Optional[ActiveModal]:
        spec = self.app.spec(collection)
        record = self.store.get(collection, record_id)
        if record is None:
            self.notify(NoticeLevel.ERROR, NotFound(collection, record_id).message)
            return None
        form = form_from_record(spec, record) if kind == ModalKind.EDIT else None
        modal = ActiveModal(kind, collection, record_id=record_id, form=form)
        self.state.active_modal = modal
        return modal

    def open_edit(self, collection: str, record_id: str) -> Optional[ActiveModal]:
        return self._open_for_record(ModalKind.EDIT, collection, record_id)

    def open_view(self, collection: str, record_id: str) -> Optional[ActiveModal]:
        return self._open_for_record(ModalKind.VIEW, collection, record_id)

    def open_confirm_delete(self, collection: str, record_id: str) -> Optional[ActiveModal]:
        return self._open_for_record(ModalKind.CONFIRM_DELETE, collection, record_id)

    def open_import(self, collection: str) -> ActiveModal:
        self.app.spec(collection)
        modal = ActiveModal(ModalKind.IMPORT, collection)
        self.state.active_modal = modal
        return modal

    def edit_form(self, **changes: Any) -> ActiveModal:
        modal = self.state.active_modal
        if modal is None or not modal.is_form:
            raise RuntimeError("No form is open")
        modal = ActiveModal(
            modal.kind, modal.collection, modal.record_id, modal.parent_id, update_form(modal.form, **changes)
        )
        self.state.active_modal = modal
        return modal

    def close_modal(self) -> None:
        """Close the active modal and discard its form."""
        self.state.active_modal = None

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def submit(self) -> Optional[Record]:
        """
        Validate and save the open add/edit form. On failure the modal stays
        open and an error notice explains why.
        """
        modal = self.state.active_modal
        if modal is None or not modal.is_form:
            raise RuntimeError("No form is open")

        collection = modal.collection
        spec = self.app.spec(collection)
        form = form_values(modal.form)
        if modal.kind == ModalKind.ADD and modal.parent_id and spec.parent_field:
            if not form.get(spec.parent_field):
                form[spec.parent_field] = modal.parent_id
        values, issues = validate_form(spec, form)

        existing: Optional[Record] = None
        if modal.kind == ModalKind.EDIT:
            existing = self.store.get(collection, modal.record_id)
            if existing is None:
                self.notify(NoticeLevel.ERROR, NotFound(collection, modal.record_id).message)
                self.close_modal()
                return None
        elif not issues:
            existing = self.app.find_existing(self.store, collection, values)

        if not issues:
            issues = self.app.validate(self.store, collection, values, existing)

        if issues:
            logger.info(
                "Form rejected",
                extra={"collection": collection, "issues": [i.code for i in issues]},
            )
            self.notify(NoticeLevel.ERROR, "\n".join(i.message for i in issues))
            return None

        values = self.app.prepare_save(self.store, collection, values, existing)
        if existing is not None:
            result = self.store.update(collection, existing["id"], values)
            if not result:
                self.notify(NoticeLevel.ERROR, result.message)
                self.close_modal()
                return None
            message = f"{spec.display_label} updated."
        else:
            result = self.store.create(collection, values)
            message = f"{spec.display_label} added."

        self.close_modal()
        self.notify(NoticeLevel.SUCCESS, message)
        return result

    def delete(self, collection: str, record_id: str) -> Union[DeleteResult, NotFound]:
        result = self.store.delete(collection, record_id)
        if not result:
            self.notify(NoticeLevel.ERROR, result.message)
        else:
            self.notify(NoticeLevel.SUCCESS, f"{self.app.spec(collection).display_label} deleted.")
        return result

    def confirm_delete(self) -> Union[DeleteResult, NotFound]:
        modal = self.state.active_modal
        if modal is None or modal.kind != ModalKind.CONFIRM_DELETE:
            raise RuntimeError("No delete confirmation is open")
        self.close_modal()
        return self.delete(modal.collection, modal.record_id)

    def clear_all_data(self) -> None:
        self.store.clear_all()
        if self.settings is not None:
            self.settings.reset()
        self.notify(NoticeLevel.SUCCESS, "All data cleared.")

    # ------------------------------------------------------------------
    # Filters / sorting
    # ------------------------------------------------------------------

    def set_search(self, collection: str, term: str) -> None:
        self.app.spec(collection)
        self.state.filters[collection] = self.state.filter_for(collection).with_search(term)

    def set_filter(self, collection: str, field_name: str, value: Optional[str]) -> None:
        self.app.spec(collection)
        self.state.filters[collection] = self.state.filter_for(collection).with_filter(field_name, value)

    def clear_filters(self, collection: str) -> None:
        self.state.filters.pop(collection, None)

    def request_sort(self, collection: str, key: str) -> SortState:
        self.app.spec(collection)
        sort = self.state.sort_for(collection).request(key)
        self.state.sorts[collection] = sort
        return sort

    def visible_records(self, collection: str) -> List[Record]:
        """The collection filtered, then sorted, per the current state."""
        spec = self.app.spec(collection)
        filtered = filter_records(
            self.store.records(collection),
            self.state.filter_for(collection),
            search_fields=spec.search_fields,
        )
        return sort_records(
            filtered,
            self.state.sort_for(collection),
            key_funcs=self.app.sort_keys(self.store, collection),
        )

    # ------------------------------------------------------------------
    # Import / export / preferences
    # ------------------------------------------------------------------

    def import_text(self, collection: str, filename: str, text: str) -> Optional[ImportReport]:
        try:
            report = self.importer.import_text(collection, filename, text)
        except ValidationError as exc:
            logger.warning(
                "Import rejected",
                extra={"collection": collection, "file": filename, "issues": [i.code for i in exc.issues]},
            )
            self.notify(NoticeLevel.ERROR, "Error importing file: " + "; ".join(exc.messages))
            return None

        if self.state.active_modal is not None and self.state.active_modal.kind == ModalKind.IMPORT:
            self.close_modal()
        self.notify(NoticeLevel.SUCCESS, report.message)
        return report

    def export(self, collection: str, fmt: str = "csv", *, visible_only: bool = False) -> str:
        records = self.visible_records(collection) if visible_only else None
        if fmt == "json":
            return self.importer.export_json(collection, records)
        if fmt == "csv":
            return self.importer.export_csv(collection, records)
        raise ValueError(f"Unsupported export format '{fmt}'")

    def template(self, collection: str) -> str:
        return self.importer.template_csv(collection)

    def export_backup(self) -> str:
        """Every collection of the app, plus its settings when it has any."""
        settings = self.settings.get() if self.settings is not None else None
        return self.importer.export_backup(settings)

    def update_settings(self, **changes: Any) -> Dict[str, Any]:
        if self.settings is None:
            raise RuntimeError(f"App '{self.app.id}' has no settings")
        settings = self.settings.update(changes)
        self.notify(NoticeLevel.SUCCESS, "Settings saved.")
        return settings

    def toggle_dark_mode(self) -> bool:
        return self.set_dark_mode(not self.state.dark_mode)

    def set_dark_mode(self, enabled: bool) -> bool:
        self.state.dark_mode = enabled
        self.preferences.set_dark_mode(enabled)
        return enabled
