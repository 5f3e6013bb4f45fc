from __future__ import annotations

from record_desk.apps.inventory import (
    InventoryApp,
    inventory_value,
    low_stock_items,
    newest_first,
    quantity_by_category,
    quantity_by_location,
    status_counts,
    suppliers_by_name,
)
from record_desk.services.data_store import DataStore
from record_desk.services.storage import InMemoryStorage


def _store() -> DataStore:
    store = DataStore(InventoryApp(), InMemoryStorage())
    store.load()
    return store


def test_seed_status_buckets():
    items = _store().records("inventory")
    assert status_counts(items) == {"In Stock": 1, "Low Stock": 1, "Out of Stock": 1}
    assert [i["name"] for i in low_stock_items(items)] == ["Plastic Containers", "Steel Bolts"]


def test_stored_status_follows_quantity_on_update():
    store = _store()

    store.update("inventory", "1", {"quantity": 40}, notify=False)
    assert store.get("inventory", "1")["status"] == "Low Stock"

    store.update("inventory", "1", {"quantity": 0}, notify=False)
    assert store.get("inventory", "1")["status"] == "Out of Stock"


def test_aggregations():
    items = _store().records("inventory")
    assert quantity_by_category(items) == {"Packaging": 185, "Spare Parts": 0}
    assert quantity_by_location(items) == {"Warehouse A": 150, "Warehouse B": 35, "Warehouse C": 0}
    assert inventory_value(items) == 926.25


def test_creating_item_logs_initial_transaction():
    store = _store()

    item = store.create("inventory", {"name": "Tape", "quantity": 12, "minStockLevel": 5})

    logged = store.records("transactions")[-1]
    assert logged["itemId"] == item["id"]
    assert logged["type"] == "in"
    assert logged["quantity"] == 12
    assert logged["notes"] == "Initial inventory setup"


def test_quantity_edit_logs_adjustment():
    store = _store()

    store.update("inventory", "1", {"quantity": 140})

    logged = store.records("transactions")[-1]
    assert (logged["type"], logged["quantity"], logged["notes"]) == ("out", 10, "Inventory adjustment")


def test_transactions_adjust_stock():
    store = _store()

    tx = store.create("transactions", {"itemId": "1", "type": "out", "quantity": 30})
    assert store.get("inventory", "1")["quantity"] == 120

    store.update("transactions", tx["id"], {"quantity": 20})
    assert store.get("inventory", "1")["quantity"] == 130

    store.delete("transactions", tx["id"])
    assert store.get("inventory", "1")["quantity"] == 150


def test_editing_transaction_accounts_for_its_previous_effect():
    store = _store()
    app = store.app
    existing = store.get("transactions", "2")

    issues = app.validate(store, "transactions", {**existing, "quantity": 50}, existing)
    assert issues == []

    issues = app.validate(store, "transactions", {**existing, "quantity": 51}, existing)
    assert [i.message for i in issues] == ["Not enough inventory! Current: 50, Requested: 51"]


def test_unknown_item_is_rejected():
    store = _store()
    issues = store.app.validate(store, "transactions", {"itemId": "nope", "type": "in", "quantity": 1}, None)
    assert [i.message for i in issues] == ["Selected item not found!"]


def test_deleting_item_removes_its_transactions():
    store = _store()
    store.delete("inventory", "1")
    assert all(t["itemId"] != "1" for t in store.records("transactions"))


def test_orderings():
    store = _store()
    assert [s["name"] for s in suppliers_by_name(store.records("suppliers"))] == [
        "BoxCo Supplies", "MetalWorks Ltd", "PlastiPack Inc",
    ]
    assert [t["id"] for t in newest_first(store.records("transactions"))] == ["2", "1"]
