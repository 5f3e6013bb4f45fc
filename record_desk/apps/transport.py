from __future__ import annotations

from datetime import date
from typing import Any, Dict, List, Optional, Sequence

from record_desk.core.records import Record, today_iso
from record_desk.core.schema import (
    CascadeAction,
    CascadeRule,
    CollectionSpec,
    FieldKind,
    FieldSpec,
)
from record_desk.views.aggregates import total
from .base import AppDefinition

VEHICLE_STATUSES = ("active", "maintenance", "inactive")
DRIVER_STATUSES = ("available", "on-trip", "off-duty")
SHIPMENT_STATUSES = ("pending", "in-transit", "delivered", "cancelled")
PRIORITIES = ("low", "medium", "high", "urgent")
ROUTE_STATUSES = ("active", "completed", "cancelled")
MAINTENANCE_TYPES = ("routine", "repair", "inspection", "emergency")
MAINTENANCE_STATUSES = ("scheduled", "in-progress", "completed")

DEFAULT_SETTINGS = {
    "currency": "USD",
    "distanceUnit": "km",
    "fuelUnit": "liters",
    "timezone": "UTC",
    "theme": "light",
    "notifications": True,
    "autoAssign": False,
}

SEED_VEHICLES = [
    {"id": "1", "plateNumber": "TRK-001", "type": "truck", "model": "Volvo FH16", "year": 2022,
     "capacity": 25000, "fuelType": "diesel", "status": "active", "mileage": 45000,
     "lastMaintenance": "2025-05-15", "nextMaintenance": "2025-07-15", "driver": "John Smith",
     "location": "New York", "fuelLevel": 75, "cost": 120000},
    {"id": "2", "plateNumber": "VAN-002", "type": "van", "model": "Mercedes Sprinter", "year": 2023,
     "capacity": 3500, "fuelType": "diesel", "status": "active", "mileage": 12000,
     "lastMaintenance": "2025-04-20", "nextMaintenance": "2025-08-20", "driver": "Sarah Johnson",
     "location": "Los Angeles", "fuelLevel": 60, "cost": 65000},
]

SEED_DRIVERS = [
    {"id": "1", "name": "John Smith", "licenseNumber": "CDL123456", "phone": "+1-555-0101",
     "email": "john.smith@email.com", "experience": 8, "rating": 4.8, "status": "on-trip",
     "vehicleAssigned": "1", "totalTrips": 156, "joinDate": "2020-03-15",
     "emergencyContact": "+1-555-0102"},
    {"id": "2", "name": "Sarah Johnson", "licenseNumber": "CDL789012", "phone": "+1-555-0201",
     "email": "sarah.johnson@email.com", "experience": 5, "rating": 4.6, "status": "available",
     "vehicleAssigned": "2", "totalTrips": 89, "joinDate": "2022-01-10",
     "emergencyContact": "+1-555-0202"},
]

SEED_SHIPMENTS = [
    {"id": "1", "trackingNumber": "SHP001234", "sender": "ABC Corp", "recipient": "XYZ Industries",
     "pickupAddress": "123 Main St, New York, NY", "deliveryAddress": "456 Oak Ave, Los Angeles, CA",
     "weight": 1500, "dimensions": "2m x 1.5m x 1m", "status": "in-transit", "priority": "high",
     "vehicleId": "1", "driverId": "1", "routeId": "1", "pickupDate": "2025-06-07",
     "expectedDelivery": "2025-06-09", "cost": 2500, "notes": "Fragile electronics - handle with care"},
]

SEED_ROUTES = [
    {"id": "1", "name": "NY to LA Express", "origin": "New York, NY", "destination": "Los Angeles, CA",
     "distance": 2789, "estimatedTime": 40, "tollCost": 150, "fuelCost": 450, "status": "active",
     "vehicleId": "1", "driverId": "1", "waypoints": ["Chicago, IL", "Denver, CO"],
     "createdDate": "2025-06-01"},
]

SEED_MAINTENANCE = [
    {"id": "1", "vehicleId": "1", "type": "routine", "description": "Oil change and filter replacement",
     "cost": 150, "date": "2025-05-15", "nextDue": "2025-07-15", "mechanic": "Mike Wilson",
     "status": "completed", "parts": ["Engine Oil", "Oil Filter"], "mileage": 45000},
]


def dashboard_metrics(
        vehicles: Sequence[Record],
        drivers: Sequence[Record],
        shipments: Sequence[Record],
        today: Optional[str] = None,
) -> Dict[str, Any]:
    today = today or date.today().isoformat()
    return {
        "totalVehicles": len(vehicles),
        "activeVehicles": sum(1 for v in vehicles if v.get("status") == "active"),
        "totalDrivers": len(drivers),
        "availableDrivers": sum(1 for d in drivers if d.get("status") == "available"),
        "activeShipments": sum(1 for s in shipments if s.get("status") == "in-transit"),
        "completedShipments": sum(1 for s in shipments if s.get("status") == "delivered"),
        "totalRevenue": total(shipments, "cost"),
        "maintenanceDue": len(maintenance_due(vehicles, today)),
    }


def maintenance_due(vehicles: Sequence[Record], today: Optional[str] = None) -> List[Record]:
    today = today or date.today().isoformat()
    return [
        v for v in vehicles
        if v.get("nextMaintenance") and str(v["nextMaintenance"])[:10] <= today
    ]


def route_cost(route: Record) -> float:
    return (route.get("tollCost") or 0) + (route.get("fuelCost") or 0)


class TransportApp(AppDefinition):
    id = "transport"
    label = "FleetFlow Transport Management"
    settings_key = "transportSettings"

    def collection_specs(self) -> List[CollectionSpec]:
        return [
            CollectionSpec(
                name="vehicles",
                storage_key="transportVehicles",
                id_prefix="veh",
                fields=(
                    FieldSpec("plateNumber", required=True, label="Plate Number"),
                    FieldSpec("type", FieldKind.CHOICE, default="truck",
                              choices=("truck", "van", "trailer", "car")),
                    FieldSpec("model"),
                    FieldSpec("year", FieldKind.INTEGER, default=0),
                    FieldSpec("capacity", FieldKind.NUMBER, default=0, minimum=0),
                    FieldSpec("fuelType", FieldKind.CHOICE, default="diesel",
                              choices=("diesel", "gasoline", "electric", "hybrid"), label="Fuel Type"),
                    FieldSpec("status", FieldKind.CHOICE, default="active", choices=VEHICLE_STATUSES),
                    FieldSpec("mileage", FieldKind.NUMBER, default=0, minimum=0),
                    FieldSpec("lastMaintenance", FieldKind.DATE, label="Last Maintenance"),
                    FieldSpec("nextMaintenance", FieldKind.DATE, label="Next Maintenance"),
                    FieldSpec("driver"),
                    FieldSpec("location"),
                    FieldSpec("fuelLevel", FieldKind.NUMBER, default=100, minimum=0, maximum=100,
                              label="Fuel Level"),
                    FieldSpec("cost", FieldKind.NUMBER, default=0, minimum=0),
                ),
                search_fields=("plateNumber", "model"),
                import_fields=("plateNumber", "type", "model", "year", "capacity", "fuelType", "status",
                               "mileage", "location", "fuelLevel", "cost"),
                template_example={
                    "plateNumber": "TRK-001", "type": "truck", "model": "Volvo FH16", "year": "2022",
                    "capacity": "25000", "fuelType": "diesel", "status": "active", "mileage": "45000",
                    "location": "New York", "fuelLevel": "75", "cost": "120000",
                },
            ),
            CollectionSpec(
                name="drivers",
                storage_key="transportDrivers",
                id_prefix="drv",
                fields=(
                    FieldSpec("name", required=True),
                    FieldSpec("licenseNumber", required=True, label="License Number"),
                    FieldSpec("phone"),
                    FieldSpec("email"),
                    FieldSpec("experience", FieldKind.INTEGER, default=0, minimum=0),
                    FieldSpec("rating", FieldKind.NUMBER, default=0, minimum=0, maximum=5),
                    FieldSpec("status", FieldKind.CHOICE, default="available", choices=DRIVER_STATUSES),
                    FieldSpec("vehicleAssigned", FieldKind.REFERENCE, references="vehicles",
                              label="Vehicle Assigned"),
                    FieldSpec("totalTrips", FieldKind.INTEGER, default=0, minimum=0, label="Total Trips"),
                    FieldSpec("joinDate", FieldKind.DATE, label="Join Date"),
                    FieldSpec("emergencyContact", label="Emergency Contact"),
                ),
                search_fields=("name", "licenseNumber"),
                import_fields=("name", "licenseNumber", "phone", "email", "experience", "rating",
                               "status", "totalTrips", "joinDate", "emergencyContact"),
                template_example={
                    "name": "John Smith", "licenseNumber": "CDL123456", "phone": "+1-555-0101",
                    "email": "john@email.com", "experience": "8", "rating": "4.8", "status": "available",
                    "totalTrips": "156", "joinDate": "2020-03-15", "emergencyContact": "+1-555-0102",
                },
            ),
            CollectionSpec(
                name="shipments",
                storage_key="transportShipments",
                id_prefix="shp",
                fields=(
                    FieldSpec("trackingNumber", required=True, label="Tracking Number"),
                    FieldSpec("sender", required=True),
                    FieldSpec("recipient", required=True),
                    FieldSpec("pickupAddress", label="Pickup Address"),
                    FieldSpec("deliveryAddress", label="Delivery Address"),
                    FieldSpec("weight", FieldKind.NUMBER, default=0, minimum=0),
                    FieldSpec("dimensions"),
                    FieldSpec("status", FieldKind.CHOICE, default="pending", choices=SHIPMENT_STATUSES),
                    FieldSpec("priority", FieldKind.CHOICE, default="medium", choices=PRIORITIES),
                    FieldSpec("vehicleId", FieldKind.REFERENCE, references="vehicles", label="Vehicle"),
                    FieldSpec("driverId", FieldKind.REFERENCE, references="drivers", label="Driver"),
                    FieldSpec("routeId", FieldKind.REFERENCE, references="routes", label="Route"),
                    FieldSpec("pickupDate", FieldKind.DATE, label="Pickup Date"),
                    FieldSpec("expectedDelivery", FieldKind.DATE, label="Expected Delivery"),
                    FieldSpec("cost", FieldKind.NUMBER, default=0, minimum=0),
                    FieldSpec("notes"),
                ),
                search_fields=("trackingNumber", "sender", "recipient"),
                import_fields=("trackingNumber", "sender", "recipient", "pickupAddress", "deliveryAddress",
                               "weight", "dimensions", "status", "priority", "pickupDate",
                               "expectedDelivery", "cost", "notes"),
                template_example={
                    "trackingNumber": "SHP001", "sender": "ABC Corp", "recipient": "XYZ Industries",
                    "pickupAddress": "123 Main St", "deliveryAddress": "456 Oak Ave", "weight": "1500",
                    "dimensions": "2x1.5x1", "status": "pending", "priority": "high",
                    "pickupDate": "2025-06-08", "expectedDelivery": "2025-06-10", "cost": "2500",
                    "notes": "Handle with care",
                },
            ),
            CollectionSpec(
                name="routes",
                storage_key="transportRoutes",
                id_prefix="rte",
                fields=(
                    FieldSpec("name", required=True),
                    FieldSpec("origin", required=True),
                    FieldSpec("destination", required=True),
                    FieldSpec("distance", FieldKind.NUMBER, default=0, minimum=0),
                    FieldSpec("estimatedTime", FieldKind.NUMBER, default=0, minimum=0, label="Estimated Time"),
                    FieldSpec("tollCost", FieldKind.NUMBER, default=0, minimum=0, label="Toll Cost"),
                    FieldSpec("fuelCost", FieldKind.NUMBER, default=0, minimum=0, label="Fuel Cost"),
                    FieldSpec("status", FieldKind.CHOICE, default="active", choices=ROUTE_STATUSES),
                    FieldSpec("vehicleId", FieldKind.REFERENCE, references="vehicles", label="Vehicle"),
                    FieldSpec("driverId", FieldKind.REFERENCE, references="drivers", label="Driver"),
                    FieldSpec("waypoints", FieldKind.LIST, default=()),
                    FieldSpec("createdDate", FieldKind.DATE, default=today_iso, label="Created Date"),
                ),
                search_fields=("name", "origin", "destination"),
            ),
            CollectionSpec(
                name="maintenance",
                storage_key="transportMaintenance",
                label="Maintenance Records",
                id_prefix="mnt",
                fields=(
                    FieldSpec("vehicleId", FieldKind.REFERENCE, required=True,
                              references="vehicles", label="Vehicle"),
                    FieldSpec("type", FieldKind.CHOICE, default="routine", choices=MAINTENANCE_TYPES),
                    FieldSpec("description", required=True),
                    FieldSpec("cost", FieldKind.NUMBER, default=0, minimum=0),
                    FieldSpec("date", FieldKind.DATE),
                    FieldSpec("nextDue", FieldKind.DATE, label="Next Due"),
                    FieldSpec("mechanic"),
                    FieldSpec("status", FieldKind.CHOICE, default="scheduled", choices=MAINTENANCE_STATUSES),
                    FieldSpec("parts", FieldKind.LIST, default=()),
                    FieldSpec("mileage", FieldKind.NUMBER, default=0, minimum=0),
                ),
                search_fields=("description", "mechanic"),
            ),
        ]

    def default_settings(self) -> Dict[str, Any]:
        return dict(DEFAULT_SETTINGS)

    def seed_data(self) -> Dict[str, List[Record]]:
        return {
            "vehicles": SEED_VEHICLES,
            "drivers": SEED_DRIVERS,
            "shipments": SEED_SHIPMENTS,
            "routes": SEED_ROUTES,
            "maintenance": SEED_MAINTENANCE,
        }

    def cascade_rules(self) -> List[CascadeRule]:
        return [
            CascadeRule("vehicles", "drivers", "vehicleAssigned", CascadeAction.UNLINK),
            CascadeRule("vehicles", "shipments", "vehicleId", CascadeAction.UNLINK),
            CascadeRule("drivers", "shipments", "driverId", CascadeAction.UNLINK),
            CascadeRule("vehicles", "routes", "vehicleId", CascadeAction.UNLINK),
            CascadeRule("drivers", "routes", "driverId", CascadeAction.UNLINK),
            CascadeRule("routes", "shipments", "routeId", CascadeAction.UNLINK),
            CascadeRule("vehicles", "maintenance", "vehicleId", CascadeAction.UNLINK),
        ]

    def assignment_labels(self, store, shipment: Record) -> Dict[str, str]:
        return {
            "vehicle": self.label_for(store, "vehicles", shipment.get("vehicleId"), "plateNumber"),
            "driver": self.label_for(store, "drivers", shipment.get("driverId")),
        }

    def summary(self, store) -> Dict[str, Any]:
        metrics = dashboard_metrics(
            store.records("vehicles"), store.records("drivers"), store.records("shipments")
        )
        routes = store.records("routes")
        maintenance = store.records("maintenance")
        return {
            **metrics,
            "totalRoutes": len(routes),
            "activeRoutes": sum(1 for r in routes if r.get("status") == "active"),
            "routeCosts": {r.get("name"): route_cost(r) for r in routes},
            "maintenanceCost": total(maintenance, "cost"),
            "scheduledMaintenance": sum(1 for m in maintenance if m.get("status") == "scheduled"),
        }
