from __future__ import annotations

import json

import pytest

from record_desk.apps.gradebook import GradebookApp
from record_desk.apps.inventory import InventoryApp
from record_desk.apps.roster import RosterApp
from record_desk.records_io.csv_codec import CsvParser
from record_desk.records_io.importer import ImportService
from record_desk.services.data_store import DataStore
from record_desk.services.storage import InMemoryStorage
from record_desk.validation.errors import ImportFormatError


def _service(app, parser=CsvParser.STANDARD) -> ImportService:
    store = DataStore(app, InMemoryStorage())
    store.load()
    return ImportService(app, store, parser)


def test_roster_csv_import_appends_student():
    service = _service(RosterApp())

    report = service.import_csv("students", "Student ID,Full Name\nS004,New Student")

    students = service.store.records("students")
    assert report.count == 1
    assert report.message == "Successfully imported 1 record."
    assert len(students) == 4
    assert students[-1]["studentIdentifier"] == "S004"
    assert students[-1]["name"] == "New Student"


def test_strict_import_rejects_missing_headers():
    service = _service(RosterApp())

    with pytest.raises(ImportFormatError) as err:
        service.import_csv("students", "Student ID,Nickname\nS004,Newbie")

    assert err.value.messages == ["Missing required headers: Full Name"]
    assert len(service.store.records("students")) == 3


def test_strict_import_rejects_short_row_without_writing():
    service = _service(RosterApp())

    with pytest.raises(ImportFormatError) as err:
        service.import_csv("students", "Student ID,Full Name\nS004,Dana\nS005")

    assert "Invalid CSV row format." in err.value.messages
    assert len(service.store.records("students")) == 3


def test_strict_import_rejects_non_numeric_quantity():
    service = _service(InventoryApp())
    text = (
        "Name,Category,Quantity,Unit,Price,Location,Supplier,Min Stock Level\n"
        "Tape,Packaging,lots,rolls,1.5,Warehouse A,BoxCo Supplies,10\n"
    )

    with pytest.raises(ImportFormatError) as err:
        service.import_csv("inventory", text)

    assert err.value.issues[0].code == "not_a_number"
    assert len(service.store.records("inventory")) == 3


def test_inventory_import_sets_status_and_logs_transactions():
    service = _service(InventoryApp())
    text = (
        "Name,Category,Quantity,Unit,Price,Location,Supplier,Min Stock Level\n"
        "Tape,Packaging,5,rolls,1.5,Warehouse A,BoxCo Supplies,10\n"
    )

    report = service.import_csv("inventory", text)

    item = report.imported[0]
    assert item["quantity"] == 5
    assert item["status"] == "Low Stock"
    logged = [t for t in service.store.records("transactions") if t["itemId"] == item["id"]]
    assert len(logged) == 1
    assert logged[0]["notes"] == "Imported from CSV"


def test_lenient_import_substitutes_defaults():
    service = _service(GradebookApp())

    service.import_csv("students", "firstName,lastName,email,classId\n,Doe,j@x.com,c1\n")
    service.import_csv("assignments", "title,maxPoints,classId\nEssay,abc,c1\n")

    assert service.store.records("students")[-1]["firstName"] == "N/A"
    assert service.store.records("assignments")[-1]["maxPoints"] == 100


def test_lenient_assignment_import_replaces_zero_max_points():
    service = _service(GradebookApp())

    service.import_csv("assignments", "title,maxPoints,classId\nEssay,0,c1\nQuiz,,c1\nLab,40,c1\n")

    assert [a["maxPoints"] for a in service.store.records("assignments")[-3:]] == [100, 100, 40]


def test_csv_export_then_import_reproduces_records():
    source = _service(RosterApp())
    exported = source.export_csv("students")

    target = _service(RosterApp())
    target.store.clear_all()
    target.import_csv("students", exported)

    assert target.store.records("students") == source.store.records("students")


def test_legacy_parser_round_trip_for_plain_values():
    source = _service(RosterApp(), CsvParser.LEGACY)
    exported = source.export_csv("students")

    target = _service(RosterApp(), CsvParser.LEGACY)
    target.store.clear_all()
    target.import_csv("students", exported)

    assert [s["name"] for s in target.store.records("students")] == [
        "Alice Johnson", "Bob Smith", "Carol White",
    ]


def test_template_for_roster_students():
    service = _service(RosterApp())
    assert service.template_csv("students") == (
        '"Student ID","Full Name"\n"S004","Example User"\n'
    )


def test_roster_json_export_nests_progress():
    service = _service(RosterApp())
    data = json.loads(service.export_json("students"))
    assert [p["id"] for p in data[0]["progressRecords"]] == ["pr1", "pr2"]
    assert "studentId" not in data[0]["progressRecords"][0]


def test_roster_json_export_then_import_restores_progress():
    source = _service(RosterApp())
    exported = source.export_json("students")

    target = _service(RosterApp())
    target.store.clear_all()
    report = target.import_json("students", exported)

    assert report.count == 3
    assert target.store.records("students") == source.store.records("students")
    assert target.store.records("progress") == source.store.records("progress")
    assert all("progressRecords" not in s for s in target.store.records("students"))


def test_json_import_into_populated_roster_links_progress_to_new_students():
    service = _service(RosterApp())
    payload = json.dumps([{
        "id": "st1",
        "studentIdentifier": "S010",
        "name": "Dana Lee",
        "nickname": "D",
        "progressRecords": [{"id": "pr1", "assignmentName": "Quiz", "score": "8", "totalPossibleScore": 10}],
    }])

    student = service.import_json("students", payload).imported[0]

    assert student["id"] != "st1"
    assert "nickname" not in student
    added = [p for p in service.store.records("progress") if p["studentId"] == student["id"]]
    assert len(added) == 1
    assert added[0]["id"] != "pr1"
    assert added[0]["score"] == 8
    assert len(service.store.records("progress")) == 6


def test_json_append_import():
    service = _service(InventoryApp())
    payload = json.dumps({"name": "Gloves", "quantity": "12", "minStockLevel": 5})

    report = service.import_json("inventory", payload)

    assert report.count == 1
    assert report.imported[0]["quantity"] == 12
    assert report.imported[0]["status"] == "In Stock"


def test_import_text_dispatches_on_extension():
    service = _service(RosterApp())

    service.import_text("students", "more.CSV", "Student ID,Full Name\nS009,Zed")
    assert service.store.records("students")[-1]["name"] == "Zed"

    with pytest.raises(ImportFormatError):
        service.import_text("students", "notes.txt", "whatever")


def test_strict_import_rejects_blank_required_text():
    service = _service(InventoryApp())
    text = (
        "Name,Category,Quantity,Unit,Price,Location,Supplier,Min Stock Level\n"
        ",Packaging,,rolls,1.5,Warehouse A,BoxCo Supplies,10\n"
    )

    with pytest.raises(ImportFormatError) as err:
        service.import_csv("inventory", text)

    assert err.value.messages == ["Line 2: Name is required."]
