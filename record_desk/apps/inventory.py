from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Sequence

from record_desk.core.records import Record, now_iso
from record_desk.core.schema import (
    CascadeRule,
    CollectionSpec,
    FieldKind,
    FieldSpec,
    ImportPolicy,
)
from record_desk.validation.errors import ValidationIssue
from record_desk.views.aggregates import count_by, sum_by, total
from record_desk.views.bucketing import StockStatus, stock_status
from record_desk.views.sorting import locale_sort_key
from .base import AppDefinition

TRANSACTION_TYPES = ("in", "out")


def _seed_items(stamp: str) -> List[Record]:
    return [
        {"id": "1", "name": "Cardboard Boxes", "category": "Packaging", "quantity": 150, "unit": "pcs",
         "price": 2.5, "location": "Warehouse A", "supplier": "BoxCo Supplies", "lastUpdated": stamp,
         "minStockLevel": 50, "status": StockStatus.IN_STOCK.value},
        {"id": "2", "name": "Plastic Containers", "category": "Packaging", "quantity": 35, "unit": "boxes",
         "price": 15.75, "location": "Warehouse B", "supplier": "PlastiPack Inc", "lastUpdated": stamp,
         "minStockLevel": 40, "status": StockStatus.LOW_STOCK.value},
        {"id": "3", "name": "Steel Bolts", "category": "Spare Parts", "quantity": 0, "unit": "kg",
         "price": 8.25, "location": "Warehouse C", "supplier": "MetalWorks Ltd", "lastUpdated": stamp,
         "minStockLevel": 20, "status": StockStatus.OUT_OF_STOCK.value},
    ]


SEED_SUPPLIERS = [
    {"id": "1", "name": "BoxCo Supplies", "contact": "+1 (555) 123-4567",
     "email": "sales@boxco.com", "address": "123 Packaging Rd, Boxville, CA 91234"},
    {"id": "2", "name": "PlastiPack Inc", "contact": "+1 (555) 987-6543",
     "email": "orders@plastipack.com", "address": "456 Container Ave, Plasticity, NY 10001"},
    {"id": "3", "name": "MetalWorks Ltd", "contact": "+1 (555) 456-7890",
     "email": "info@metalworks.com", "address": "789 Steel Blvd, Irontown, TX 75001"},
]


def signed_quantity(transaction: Record) -> int:
    """Stock change caused by a transaction: positive for "in", negative for "out"."""
    qty = transaction.get("quantity") or 0
    return qty if transaction.get("type") == "in" else -qty


# ----------------------------------------------------------------------
# Derived values
# ----------------------------------------------------------------------

def quantity_by_category(items: Sequence[Record]) -> Dict[str, Any]:
    return sum_by(items, "category", "quantity")


def quantity_by_location(items: Sequence[Record]) -> Dict[str, Any]:
    return sum_by(items, "location", "quantity")


def status_counts(items: Sequence[Record]) -> Dict[str, int]:
    counts = {s.value: 0 for s in StockStatus}
    counts.update(count_by(items, lambda r: stock_status(r.get("quantity"), r.get("minStockLevel")).value))
    return counts


def low_stock_items(items: Sequence[Record]) -> List[Record]:
    return [
        r for r in items
        if stock_status(r.get("quantity"), r.get("minStockLevel")) != StockStatus.IN_STOCK
    ]


def inventory_value(items: Sequence[Record]) -> float:
    return total(
        [{"value": (r.get("quantity") or 0) * (r.get("price") or 0)} for r in items], "value"
    )


def suppliers_by_name(suppliers: Sequence[Record]) -> List[Record]:
    return sorted(suppliers, key=lambda s: locale_sort_key(str(s.get("name", ""))))


def newest_first(transactions: Sequence[Record]) -> List[Record]:
    return sorted(transactions, key=lambda t: t.get("date") or "", reverse=True)


# ----------------------------------------------------------------------
# App definition
# ----------------------------------------------------------------------

class InventoryApp(AppDefinition):
    id = "inventory"
    label = "Inventory Management"

    def collection_specs(self) -> List[CollectionSpec]:
        return [
            CollectionSpec(
                name="inventory",
                storage_key="inventory",
                label="Inventory Items",
                id_prefix="item",
                fields=(
                    FieldSpec("name", required=True, csv_header="Name"),
                    FieldSpec("category", csv_header="Category"),
                    FieldSpec("quantity", FieldKind.INTEGER, default=0, required=True,
                              minimum=0, csv_header="Quantity"),
                    FieldSpec("unit", csv_header="Unit"),
                    FieldSpec("price", FieldKind.NUMBER, default=0, minimum=0, csv_header="Price"),
                    FieldSpec("location", csv_header="Location"),
                    FieldSpec("supplier", csv_header="Supplier"),
                    FieldSpec("lastUpdated", FieldKind.DATE, csv_header="Last Updated"),
                    FieldSpec("minStockLevel", FieldKind.INTEGER, default=0, minimum=0,
                              label="Min Stock Level", csv_header="Min Stock Level"),
                    FieldSpec("status", FieldKind.CHOICE, default=StockStatus.IN_STOCK.value,
                              choices=tuple(s.value for s in StockStatus), csv_header="Status"),
                ),
                search_fields=("name", "supplier"),
                import_policy=ImportPolicy.STRICT,
                import_fields=("name", "category", "quantity", "unit", "price",
                               "location", "supplier", "minStockLevel"),
                id_header="ID",
            ),
            CollectionSpec(
                name="suppliers",
                storage_key="suppliers",
                id_prefix="sup",
                fields=(
                    FieldSpec("name", required=True),
                    FieldSpec("contact"),
                    FieldSpec("email"),
                    FieldSpec("address"),
                ),
                search_fields=("name", "email", "contact"),
                default_sort="name",
            ),
            CollectionSpec(
                name="transactions",
                storage_key="transactions",
                id_prefix="tx",
                fields=(
                    FieldSpec("itemId", FieldKind.REFERENCE, required=True,
                              references="inventory", label="Item"),
                    FieldSpec("itemName", label="Item Name"),
                    FieldSpec("type", FieldKind.CHOICE, default="in", required=True,
                              choices=TRANSACTION_TYPES),
                    FieldSpec("quantity", FieldKind.INTEGER, default=0, required=True,
                              minimum=0, exclusive_minimum=True),
                    FieldSpec("date", FieldKind.DATE),
                    FieldSpec("notes"),
                ),
                search_fields=("itemName", "notes"),
            ),
        ]

    def seed_data(self) -> Dict[str, List[Record]]:
        now = datetime.now(timezone.utc)
        return {
            "inventory": _seed_items(now.isoformat()),
            "suppliers": SEED_SUPPLIERS,
            "transactions": [
                {"id": "1", "itemId": "1", "itemName": "Cardboard Boxes", "type": "in", "quantity": 50,
                 "date": (now - timedelta(days=1)).isoformat(), "notes": "Regular delivery"},
                {"id": "2", "itemId": "2", "itemName": "Plastic Containers", "type": "out", "quantity": 15,
                 "date": now.isoformat(), "notes": "Shipping to client XYZ"},
            ],
        }

    def cascade_rules(self) -> List[CascadeRule]:
        return [CascadeRule("inventory", "transactions", "itemId")]

    # -- write pipeline --------------------------------------------------

    def normalise(self, name, record):
        if name != "inventory":
            return record
        status = stock_status(record.get("quantity"), record.get("minStockLevel"))
        return {**record, "status": status.value, "lastUpdated": now_iso()}

    def validate(self, store, name, values, existing):
        if name != "transactions":
            return []
        item = store.get("inventory", values.get("itemId"))
        if item is None:
            return [ValidationIssue("unknown_reference", "Selected item not found!")]

        current = item.get("quantity") or 0
        if existing is not None and existing.get("itemId") == item["id"]:
            current -= signed_quantity(existing)
        requested = values.get("quantity") or 0
        if values.get("type") == "out" and current < requested:
            return [ValidationIssue(
                "insufficient_stock",
                f"Not enough inventory! Current: {current}, Requested: {requested}",
            )]
        return []

    def prepare_save(self, store, name, values, existing):
        if name != "transactions":
            return values
        item = store.get("inventory", values.get("itemId")) or {}
        return {**values, "itemName": item.get("name", ""), "date": now_iso()}

    def _log_transaction(self, store, item: Record, quantity: int, notes: str, kind: str = "in") -> None:
        store.create(
            "transactions",
            {
                "itemId": item["id"],
                "itemName": item.get("name", ""),
                "type": kind,
                "quantity": quantity,
                "date": now_iso(),
                "notes": notes,
            },
            notify=False,
        )

    def _adjust_stock(self, store, item_id: str, delta: int) -> None:
        item = store.get("inventory", item_id)
        if item is None or not delta:
            return
        store.update("inventory", item_id, {"quantity": (item.get("quantity") or 0) + delta}, notify=False)

    def after_create(self, store, name, record):
        if name == "inventory":
            self._log_transaction(store, record, record.get("quantity") or 0, "Initial inventory setup")
        elif name == "transactions":
            self._adjust_stock(store, record["itemId"], signed_quantity(record))

    def after_update(self, store, name, before, after):
        if name == "inventory":
            diff = (after.get("quantity") or 0) - (before.get("quantity") or 0)
            if diff:
                self._log_transaction(store, after, abs(diff), "Inventory adjustment", "in" if diff > 0 else "out")
        elif name == "transactions":
            self._adjust_stock(store, before["itemId"], -signed_quantity(before))
            self._adjust_stock(store, after["itemId"], signed_quantity(after))

    def after_delete(self, store, name, record):
        if name == "transactions":
            self._adjust_stock(store, record.get("itemId"), -signed_quantity(record))

    def after_import(self, store, name, records):
        if name != "inventory":
            return
        for item in records:
            self._log_transaction(store, item, item.get("quantity") or 0, "Imported from CSV")

    # -- read side -------------------------------------------------------

    def summary(self, store) -> Dict[str, Any]:
        items = store.records("inventory")
        low = low_stock_items(items)
        return {
            "totalItems": len(items),
            "totalValue": inventory_value(items),
            "statusCounts": status_counts(items),
            "quantityByCategory": quantity_by_category(items),
            "quantityByLocation": quantity_by_location(items),
            "lowStockAlert": bool(low),
            "lowStockItems": [r.get("name") for r in low],
            "suppliers": len(store.records("suppliers")),
            "transactions": len(store.records("transactions")),
        }
