from __future__ import annotations

import json

import pytest

from record_desk.apps.gradebook import GradebookApp
from record_desk.apps.inventory import InventoryApp
from record_desk.apps.roster import RosterApp
from record_desk.apps.telehealth import TelehealthApp
from record_desk.controller.app_state import NoticeLevel
from record_desk.controller.interaction import InteractionController
from record_desk.controller.modal_state import ModalKind
from record_desk.core.filter_state import SortDirection
from record_desk.records_io.importer import ImportService
from record_desk.services.data_store import DataStore
from record_desk.services.preferences import PreferenceStore
from record_desk.services.storage import InMemoryStorage


def _controller(app, storage=None) -> InteractionController:
    storage = storage or InMemoryStorage()
    store = DataStore(app, storage)
    controller = InteractionController(
        app, store, PreferenceStore(storage, app.dark_mode), ImportService(app, store)
    )
    controller.load()
    return controller


def _levels(controller):
    return [n.level for n in controller.drain_notices()]


def test_add_flow_creates_record_and_closes_modal():
    ctl = _controller(RosterApp())

    ctl.open_add("students")
    ctl.edit_form(studentIdentifier="S010", name="Dana Lee")
    created = ctl.submit()

    assert created["name"] == "Dana Lee"
    assert ctl.active_modal is None
    notices = ctl.drain_notices()
    assert notices[-1].level == NoticeLevel.SUCCESS
    assert notices[-1].message == "Students added."


def test_invalid_form_keeps_modal_open_and_writes_nothing():
    ctl = _controller(RosterApp())

    ctl.open_add("students")
    ctl.edit_form(studentIdentifier="S010")

    assert ctl.submit() is None
    assert ctl.active_modal.kind == ModalKind.ADD
    assert len(ctl.store.records("students")) == 3
    notice = ctl.drain_notices()[-1]
    assert notice.level == NoticeLevel.ERROR
    assert notice.message == "Full Name is required."


def test_edit_flow_updates_record():
    ctl = _controller(RosterApp())

    modal = ctl.open_edit("students", "st2")
    assert modal.form.name == "Bob Smith"
    ctl.edit_form(name="Robert Smith")
    updated = ctl.submit()

    assert updated["id"] == "st2"
    assert ctl.store.get("students", "st2")["name"] == "Robert Smith"


def test_edit_form_rejects_unknown_field():
    ctl = _controller(RosterApp())
    ctl.open_add("students")
    with pytest.raises(TypeError):
        ctl.edit_form(colour="blue")


def test_open_edit_of_missing_record_reports_error():
    ctl = _controller(RosterApp())
    assert ctl.open_edit("students", "ghost") is None
    assert ctl.active_modal is None
    assert _levels(ctl) == [NoticeLevel.ERROR]


def test_escape_closes_modal_only_while_mounted():
    ctl = _controller(RosterApp())
    ctl.open_view("students", "st1")

    assert ctl.dispatch_key("Escape") is False
    assert ctl.active_modal is not None

    ctl.mount()
    ctl.mount()
    assert ctl.dispatch_key("Escape") is True
    assert ctl.active_modal is None

    ctl.unmount()
    assert not ctl.mounted


def test_opening_another_modal_replaces_the_first():
    ctl = _controller(RosterApp())
    ctl.open_add("students")
    ctl.open_view("students", "st1")
    assert ctl.active_modal.kind == ModalKind.VIEW


def test_confirm_delete_cascades():
    ctl = _controller(RosterApp())

    ctl.open_confirm_delete("students", "st2")
    result = ctl.confirm_delete()

    assert result.cascaded == {"progress": 2}
    assert ctl.active_modal is None
    assert ctl.store.get("students", "st2") is None


def test_delete_missing_record_returns_not_found():
    ctl = _controller(RosterApp())
    result = ctl.delete("students", "ghost")
    assert not result
    assert _levels(ctl)[-1] == NoticeLevel.ERROR


def test_visible_records_filter_then_sort():
    ctl = _controller(RosterApp())

    ctl.set_search("students", "o")
    assert ctl.state.sort_for("students").key == "name"
    names = [s["name"] for s in ctl.visible_records("students")]
    assert names == ["Alice Johnson", "Bob Smith", "Carol White"]

    ctl.request_sort("students", "name")
    assert ctl.state.sort_for("students").direction == SortDirection.DESCENDING
    assert [s["name"] for s in ctl.visible_records("students")] == [
        "Carol White", "Bob Smith", "Alice Johnson",
    ]

    ctl.request_sort("students", "averageScore")
    assert [s["id"] for s in ctl.visible_records("students")] == ["st2", "st1", "st3"]


def test_visible_records_exact_filter():
    ctl = _controller(InventoryApp())
    ctl.set_filter("inventory", "category", "Packaging")
    assert [r["id"] for r in ctl.visible_records("inventory")] == ["1", "2"]
    ctl.clear_filters("inventory")
    assert len(ctl.visible_records("inventory")) == 3


def test_gradebook_add_grade_for_graded_pair_updates_it():
    ctl = _controller(GradebookApp())

    ctl.open_add("grades", studentId="s1", assignmentId="a1", score="90")
    saved = ctl.submit()

    assert saved["id"] == "g1"
    assert saved["score"] == 90
    assert len(ctl.store.records("grades")) == 3


def test_gradebook_rejects_score_above_max_points():
    ctl = _controller(GradebookApp())

    ctl.open_add("grades", studentId="s3", assignmentId="a2", score="51")

    assert ctl.submit() is None
    assert ctl.drain_notices()[-1].message == "Score must be between 0 and 50."


def test_inventory_out_transaction_beyond_stock_is_rejected():
    ctl = _controller(InventoryApp())

    ctl.open_add("transactions", itemId="2", type="out", quantity="100")

    assert ctl.submit() is None
    assert ctl.drain_notices()[-1].message == "Not enough inventory! Current: 35, Requested: 100"
    assert ctl.store.get("inventory", "2")["quantity"] == 35


def test_import_error_and_success_notices():
    ctl = _controller(RosterApp())
    ctl.open_import("students")

    assert ctl.import_text("students", "bad.csv", "Student ID\nS1") is None
    assert ctl.active_modal.kind == ModalKind.IMPORT
    error = ctl.drain_notices()[-1]
    assert error.message.startswith("Error importing file: ")

    report = ctl.import_text("students", "good.csv", "Student ID,Full Name\nS004,New Student")
    assert report.count == 1
    assert ctl.active_modal is None
    assert ctl.drain_notices()[-1].message == "Successfully imported 1 record."


def test_export_visible_only():
    ctl = _controller(RosterApp())
    ctl.set_search("students", "carol")

    text = ctl.export("students", "csv", visible_only=True)

    assert text.splitlines() == ['"id","Student ID","Full Name"', '"st3","S003","Carol White"']
    with pytest.raises(ValueError):
        ctl.export("students", "xml")


def test_dark_mode_toggle_persists():
    storage = InMemoryStorage()
    ctl = _controller(RosterApp(), storage)

    assert ctl.toggle_dark_mode() is True
    assert storage.get_item("studentProgressTracker_darkMode") == "true"

    assert _controller(RosterApp(), storage).state.dark_mode is True


def test_load_warnings_become_notices():
    storage = InMemoryStorage({"studentProgressTracker_students": "[oops"})
    ctl = _controller(RosterApp(), storage)
    assert _levels(ctl) == [NoticeLevel.WARNING]
    assert len(ctl.state.load_warnings) == 1


def test_clear_all_data_empties_collections():
    ctl = _controller(RosterApp())
    ctl.clear_all_data()
    assert ctl.visible_records("students") == []


def test_add_from_parent_prefills_reference_field():
    ctl = _controller(RosterApp())

    modal = ctl.open_add("progress", parent_id="st2")
    assert modal.form.studentId == "st2"

    ctl.edit_form(assignmentName="Quiz 2", score="8", totalPossibleScore="10")
    created = ctl.submit()

    assert created["studentId"] == "st2"
    assert ctl.drain_notices()[-1].message == "Progress Records added."


def test_add_from_parent_fills_cleared_reference_field():
    ctl = _controller(RosterApp())

    ctl.open_add("progress", parent_id="st3")
    ctl.edit_form(studentId="", assignmentName="Essay 2", score="40", totalPossibleScore="50")
    created = ctl.submit()

    assert created["studentId"] == "st3"
    assert len([p for p in ctl.store.records("progress") if p["studentId"] == "st3"]) == 2


def test_settings_merge_persist_and_appear_in_backup():
    storage = InMemoryStorage()
    ctl = _controller(TelehealthApp(), storage)

    settings = ctl.update_settings(language="fr", notifications={"sms": False})

    assert settings["notifications"]["sms"] is False
    assert settings["notifications"]["email"] is True
    assert json.loads(storage.get_item("mediconnect_settings"))["language"] == "fr"

    backup = json.loads(ctl.export_backup())
    assert set(backup) == {"patients", "consultations", "prescriptions", "vitals", "settings"}
    assert backup["settings"]["language"] == "fr"
    assert len(backup["patients"]) == 3


def test_clear_all_data_resets_settings():
    storage = InMemoryStorage()
    ctl = _controller(TelehealthApp(), storage)
    ctl.update_settings(timezone="CET")

    ctl.clear_all_data()

    assert storage.get_item("mediconnect_settings") is None
    assert ctl.settings.get()["timezone"] == "UTC"


def test_app_without_settings():
    ctl = _controller(RosterApp())

    with pytest.raises(RuntimeError):
        ctl.update_settings(language="fr")
    assert set(json.loads(ctl.export_backup())) == {"students", "progress"}
