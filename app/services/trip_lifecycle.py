"""Trip state machine.

    PENDING -> ONGOING -> COMPLETED
       |          |
       +----------+-----> CANCELLED

COMPLETED and CANCELLED are terminal. Every status write is conditional on
the status that was read, so a concurrent change surfaces as a
TripStateError instead of being overwritten.
"""
from datetime import datetime
from typing import Iterable, Optional
from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.database import Database
from app.exceptions import NotFoundError, TripStateError
from app.models.trip import DEFAULT_DRIVER_STATUS
from app.schemas.trip import TripStatus
from app.services.schedule_resolver import resolve_trips_for_date
from app.utils.dates import isoformat, local_date, to_naive_utc, utc_now
from app.utils.object_ids import parse_object_id
import logging

logger = logging.getLogger(__name__)

PENDING = TripStatus.PENDING.value
ONGOING = TripStatus.ONGOING.value
COMPLETED = TripStatus.COMPLETED.value
CANCELLED = TripStatus.CANCELLED.value

ALLOWED_TRANSITIONS = {
    PENDING: {ONGOING, CANCELLED},
    ONGOING: {COMPLETED, CANCELLED},
    COMPLETED: set(),
    CANCELLED: set(),
}

# API field -> stored field for the auxiliary (non-status) trip fields
DETAIL_FIELDS = {
    "driverStatus": "driver_status",
    "startTime": "start_time",
    "endTime": "end_time",
}


def can_transition(current: str, target: str) -> bool:
    return target in ALLOWED_TRANSITIONS.get(current, set())


def require_vehicle(db: Database, vehicle_id) -> dict:
    vehicle = db["vehicles"].find_one({"_id": parse_object_id(vehicle_id, "vehicle ID")})
    if not vehicle:
        raise NotFoundError("Vehicle not found")
    return vehicle


def require_trip(db: Database, trip_id) -> dict:
    trip = db["trips"].find_one({"_id": parse_object_id(trip_id, "trip ID")})
    if not trip:
        raise NotFoundError("Trip not found")
    return trip


def find_active_trip(db: Database, vehicle_id: ObjectId, statuses: Iterable[str]) -> Optional[dict]:
    """The vehicle's trip in one of ``statuses``, joined through its schedules.

    The data model expects at most one such trip. When there are more, the
    first one in storage order is used and the ambiguity is logged.
    """
    schedule_ids = [s["_id"] for s in db["schedules"].find({"vehicle_id": vehicle_id}, {"_id": 1})]
    if not schedule_ids:
        return None

    matches = list(
        db["trips"].find({"schedule_id": {"$in": schedule_ids}, "status": {"$in": list(statuses)}}).limit(2)
    )
    if len(matches) > 1:
        logger.warning(
            f"⚠️ Vehicle {vehicle_id} has more than one trip in {list(statuses)}; using {matches[0]['_id']}"
        )
    return matches[0] if matches else None


def _apply_transition(db: Database, trip: dict, target: str, now: datetime, extra: Optional[dict] = None) -> dict:
    current = trip["status"]
    if not can_transition(current, target):
        logger.warning(f"Rejected trip {trip['_id']} transition {current} -> {target}")
        raise TripStateError(f"Cannot change trip status from {current} to {target}")

    changes = {"status": target, "updated_at": now}
    if target == ONGOING:
        changes["start_time"] = now
    else:
        changes["end_time"] = now
    if extra:
        changes.update(extra)

    updated = db["trips"].find_one_and_update(
        {"_id": trip["_id"], "status": current},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise TripStateError("Trip status was changed by another request")

    logger.info(f"🚌 Trip {trip['_id']}: {current} -> {target}")
    return updated


def start_trip(db: Database, vehicle_id, now: Optional[datetime] = None) -> dict:
    """Move the vehicle's trip for today to ONGOING, creating it if needed.

    An already ONGOING trip is restarted in place (start time refreshed), which
    makes repeated calls return the same trip. When the vehicle runs several
    schedules today, the ongoing one wins, then the earliest pending one.
    """
    now = now or utc_now()
    vehicle = require_vehicle(db, vehicle_id)

    resolved = resolve_trips_for_date(db, local_date(now), [vehicle["_id"]], now)
    if not resolved:
        raise NotFoundError("No schedule found for this vehicle today")

    trips = [trip for _, trip in resolved]
    trip = next((t for t in trips if t["status"] == ONGOING), None)
    if trip is not None:
        updated = db["trips"].find_one_and_update(
            {"_id": trip["_id"], "status": ONGOING},
            {"$set": {"start_time": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        if updated is None:
            raise TripStateError("Trip status was changed by another request")
        logger.info(f"Trip {trip['_id']} already ONGOING, start time refreshed")
    else:
        trip = next((t for t in trips if t["status"] == PENDING), None)
        if trip is None:
            raise TripStateError("Today's trips for this vehicle are already finished")
        updated = _apply_transition(db, trip, ONGOING, now)

    return {
        "tripId": str(updated["_id"]),
        "vehicleId": str(vehicle["_id"]),
        "status": updated["status"],
        "startTime": isoformat(updated["start_time"]),
    }


def _finish_trip(db: Database, vehicle_id, statuses, target: str, missing_message: str, now: Optional[datetime]) -> dict:
    now = now or utc_now()
    vehicle = require_vehicle(db, vehicle_id)

    trip = find_active_trip(db, vehicle["_id"], statuses)
    if not trip:
        raise NotFoundError(missing_message)

    updated = _apply_transition(db, trip, target, now)
    return {
        "tripId": str(updated["_id"]),
        "vehicleId": str(vehicle["_id"]),
        "status": updated["status"],
        "endTime": isoformat(updated["end_time"]),
    }


def end_trip(db: Database, vehicle_id, now: Optional[datetime] = None) -> dict:
    return _finish_trip(db, vehicle_id, [ONGOING], COMPLETED, "No ongoing trip found for this vehicle", now)


def cancel_trip(db: Database, vehicle_id, now: Optional[datetime] = None) -> dict:
    return _finish_trip(
        db, vehicle_id, [PENDING, ONGOING], CANCELLED, "No active trip found for this vehicle", now
    )


def _detail_changes(fields: dict) -> dict:
    changes = {}
    for api_name, stored_name in DETAIL_FIELDS.items():
        value = fields.get(api_name)
        if value is None:
            continue
        if isinstance(value, datetime):
            value = to_naive_utc(value)
        changes[stored_name] = value
    return changes


def update_response(trip: dict) -> dict:
    return {
        "tripId": str(trip["_id"]),
        "status": trip["status"],
        "driverStatus": trip.get("driver_status") or DEFAULT_DRIVER_STATUS,
        "startTime": isoformat(trip.get("start_time")),
        "endTime": isoformat(trip.get("end_time")),
    }


def update_trip_details(db: Database, trip_id, fields: dict, now: Optional[datetime] = None) -> dict:
    """Write driverStatus/startTime/endTime verbatim; status is untouched."""
    now = now or utc_now()
    trip = require_trip(db, trip_id)

    changes = _detail_changes(fields)
    if not changes:
        return trip

    changes["updated_at"] = now
    return db["trips"].find_one_and_update(
        {"_id": trip["_id"]},
        {"$set": changes},
        return_document=ReturnDocument.AFTER,
    )


def transition_trip(db: Database, trip_id, status, now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    trip = require_trip(db, trip_id)
    return _apply_transition(db, trip, TripStatus(status).value, now)


def update_trip(db: Database, trip_id, fields: dict, now: Optional[datetime] = None) -> dict:
    """Partial update of a trip.

    Auxiliary fields are written as given. A status different from the
    current one goes through the state machine; caller supplied timestamps
    win over the ones the transition would set. Either everything is written
    in one update or nothing is.
    """
    now = now or utc_now()
    trip = require_trip(db, trip_id)

    status = fields.get("status")
    status = TripStatus(status).value if status is not None else None

    if status is not None and status != trip["status"]:
        extra = _detail_changes(fields)
        updated = _apply_transition(db, trip, status, now, extra)
    else:
        updated = update_trip_details(db, trip["_id"], fields, now)
    return update_response(updated)
