"""Map a vehicle and a calendar day to the trip that represents its service.

Schedules recur on weekdays (0=Sunday .. 6=Saturday). A trip is the
materialization of one schedule on one campus calendar day and is created
lazily the first time that day is resolved.
"""
from datetime import date, datetime
from typing import Iterable, List, Optional, Tuple
from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError
from app.schemas.trip import TripStatus
from app.utils.dates import day_bounds, utc_now, weekday_index
import logging

logger = logging.getLogger(__name__)


def find_applicable_schedules(db: Database, day: date, vehicle_ids: Optional[Iterable[ObjectId]] = None) -> List[dict]:
    """Active schedules running on ``day``, earliest departure first."""
    query = {"days_of_week": weekday_index(day), "is_active": True}
    if vehicle_ids is not None:
        query["vehicle_id"] = {"$in": list(vehicle_ids)}
    return list(db["schedules"].find(query).sort("departure_time", 1))


def find_or_create_trip(db: Database, schedule: dict, day: date, now: Optional[datetime] = None) -> dict:
    start, end = day_bounds(day)
    trips = db["trips"]
    day_query = {"schedule_id": schedule["_id"], "date": {"$gte": start, "$lt": end}}

    trip = trips.find_one(day_query)
    if trip:
        return trip

    now = now or utc_now()
    trip = {
        "schedule_id": schedule["_id"],
        "date": start,
        "status": TripStatus.PENDING.value,
        "created_at": now,
        "updated_at": now,
    }
    try:
        trips.insert_one(trip)
    except DuplicateKeyError:
        # Another request created it between our read and insert
        logger.info(f"Trip for schedule {schedule['_id']} on {day} created concurrently, reusing it")
        return trips.find_one(day_query)

    logger.info(f"🗓️ Created PENDING trip {trip['_id']} for schedule {schedule['_id']} on {day}")
    return trip


def resolve_trips_for_date(
    db: Database,
    day: date,
    vehicle_ids: Optional[Iterable[ObjectId]] = None,
    now: Optional[datetime] = None,
) -> List[Tuple[dict, dict]]:
    """Find or create the trips of every schedule applicable on ``day``.

    Returns ``(schedule, trip)`` pairs ordered by departure time.
    """
    return [
        (schedule, find_or_create_trip(db, schedule, day, now))
        for schedule in find_applicable_schedules(db, day, vehicle_ids)
    ]


def resolve_trip(db: Database, vehicle_id: ObjectId, day: date, now: Optional[datetime] = None) -> Optional[dict]:
    """Trip of the vehicle's first applicable schedule on ``day``.

    ``None`` means the vehicle has no service that day, which is not an error.
    """
    schedules = find_applicable_schedules(db, day, [vehicle_id])
    if not schedules:
        return None
    return find_or_create_trip(db, schedules[0], day, now)
