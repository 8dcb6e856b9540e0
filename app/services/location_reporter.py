"""Live bus positions.

Drivers attach ``[lng, lat]`` samples to their ongoing trip; students and
admins poll the fleet views, which always speak ``{lat, lng}``.
"""
from datetime import datetime
from typing import List, Optional
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.database import Database
from app.exceptions import NotFoundError
from app.models.trip import DEFAULT_DRIVER_STATUS
from app.services.trip_lifecycle import ONGOING, find_active_trip, require_vehicle
from app.utils.dates import isoformat, utc_now
from app.utils.geo import fallback_location, point_to_lat_lng, validate_point
import logging

logger = logging.getLogger(__name__)

OFFLINE = "OFFLINE"
UNKNOWN_ROUTE = "Unknown Route"
NO_ACTIVE_ROUTE = "No Active Route"


def report_location(db: Database, vehicle_id, point, driver_status: Optional[str] = None, now: Optional[datetime] = None) -> dict:
    coordinates = validate_point(point)
    now = now or utc_now()
    vehicle = require_vehicle(db, vehicle_id)

    trip = find_active_trip(db, vehicle["_id"], [ONGOING])
    if not trip:
        raise NotFoundError("No ongoing trip found for this vehicle")

    changes = {
        "live_location": {"type": "Point", "coordinates": coordinates},
        "updated_at": now,
    }
    if driver_status is not None:
        changes["driver_status"] = driver_status

    updated = db["trips"].find_one_and_update(
        {"_id": trip["_id"], "status": ONGOING},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise NotFoundError("No ongoing trip found for this vehicle")

    logger.debug(f"📍 Trip {trip['_id']} at lng={coordinates[0]}, lat={coordinates[1]}")
    return {
        "tripId": str(updated["_id"]),
        "location": {"lat": coordinates[1], "lng": coordinates[0]},
        "status": updated.get("driver_status") or DEFAULT_DRIVER_STATUS,
        "timestamp": isoformat(now),
    }


def _by_id(collection: Collection, ids) -> dict:
    ids = [i for i in set(ids) if i is not None]
    if not ids:
        return {}
    return {doc["_id"]: doc for doc in collection.find({"_id": {"$in": ids}})}


def _fleet_entry(vehicle: dict, trip: Optional[dict], route: Optional[dict], default_route: str) -> dict:
    location = point_to_lat_lng(trip.get("live_location")) if trip else None
    last_updated = trip.get("updated_at") if trip else None
    return {
        "vehicleId": str(vehicle["_id"]),
        "registrationNumber": vehicle.get("registration_number"),
        "busName": vehicle.get("bus_name"),
        "type": vehicle.get("type"),
        "location": location or fallback_location(),
        "status": trip["status"] if trip else OFFLINE,
        "routeName": route.get("name") if route else default_route,
        "lastUpdated": isoformat(last_updated or vehicle.get("updated_at")),
    }


def _ongoing_trips_with_schedules(db: Database):
    trips = list(db["trips"].find({"status": ONGOING}))
    schedules = _by_id(db["schedules"], [t["schedule_id"] for t in trips])
    return trips, schedules


def fleet_snapshot(db: Database) -> List[dict]:
    """One entry per ONGOING trip, in storage order."""
    trips, schedules = _ongoing_trips_with_schedules(db)
    vehicles = _by_id(db["vehicles"], [s["vehicle_id"] for s in schedules.values()])
    routes = _by_id(db["routes"], [s["route_id"] for s in schedules.values()])

    entries = []
    for trip in trips:
        schedule = schedules.get(trip["schedule_id"])
        vehicle = vehicles.get(schedule["vehicle_id"]) if schedule else None
        if not vehicle:
            # schedule or vehicle deleted under a running trip
            continue
        route = routes.get(schedule["route_id"])
        entries.append(_fleet_entry(vehicle, trip, route, UNKNOWN_ROUTE))
    return entries


def active_fleet(db: Database) -> List[dict]:
    """Every active vehicle, with its ongoing trip when it has one."""
    trips, schedules = _ongoing_trips_with_schedules(db)
    routes = _by_id(db["routes"], [s["route_id"] for s in schedules.values()])

    current = {}
    for trip in trips:
        schedule = schedules.get(trip["schedule_id"])
        if not schedule:
            continue
        if schedule["vehicle_id"] in current:
            logger.warning(f"⚠️ Vehicle {schedule['vehicle_id']} has more than one ongoing trip")
            continue
        current[schedule["vehicle_id"]] = (trip, routes.get(schedule["route_id"]))

    entries = []
    for vehicle in db["vehicles"].find({"is_active": True}):
        trip, route = current.get(vehicle["_id"], (None, None))
        entries.append(_fleet_entry(vehicle, trip, route, NO_ACTIVE_ROUTE))
    return entries
