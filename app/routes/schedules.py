from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database
from typing import Optional
from app.database import get_db
from app.dependencies.roles import admin_required, any_role_required
from app.models.schedule import schedule_helper
from app.schemas.schedule import ScheduleCreate, ScheduleUpdate
from app.utils.dates import utc_now
from app.utils.object_ids import parse_object_id
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/schedules", tags=["Schedules"])


def normalize_time(value: str) -> str:
    """'7:05' -> '07:05' so departure times sort as strings."""
    hours, minutes = value.split(":")
    return f"{int(hours):02d}:{minutes}"


def _require(db: Database, collection: str, value: str, label: str):
    oid = parse_object_id(value, f"{label} ID")
    if not db[collection].find_one({"_id": oid}, {"_id": 1}):
        raise HTTPException(status_code=400, detail=f"{label.capitalize()} not found")
    return oid


def _serialize(db: Database, schedule: dict) -> dict:
    route = db["routes"].find_one({"_id": schedule["route_id"]})
    vehicle = db["vehicles"].find_one({"_id": schedule["vehicle_id"]})
    return schedule_helper(schedule, route, vehicle)


@router.get("/")
def get_schedules(
    vehicle_id: Optional[str] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(any_role_required),
):
    query = {}
    if vehicle_id:
        query["vehicle_id"] = parse_object_id(vehicle_id, "vehicle ID")

    schedules = list(db["schedules"].find(query).sort("departure_time", 1))
    routes = {r["_id"]: r for r in db["routes"].find({"_id": {"$in": [s["route_id"] for s in schedules]}})}
    vehicles = {v["_id"]: v for v in db["vehicles"].find({"_id": {"$in": [s["vehicle_id"] for s in schedules]}})}
    return [
        schedule_helper(s, routes.get(s["route_id"]), vehicles.get(s["vehicle_id"]))
        for s in schedules
    ]


@router.post("/", status_code=201)
def create_schedule(payload: ScheduleCreate, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    now = utc_now()
    schedule = {
        "route_id": _require(db, "routes", payload.route, "route"),
        "vehicle_id": _require(db, "vehicles", payload.vehicle, "vehicle"),
        "departure_time": normalize_time(payload.departureTime),
        "days_of_week": payload.daysOfWeek,
        "is_active": payload.isActive,
        "created_at": now,
        "updated_at": now,
    }
    db["schedules"].insert_one(schedule)
    logger.info(f"🗓️ Schedule {schedule['_id']} created at {schedule['departure_time']} on days {schedule['days_of_week']}")
    return _serialize(db, schedule)


@router.put("/{schedule_id}")
def update_schedule(
    schedule_id: str,
    payload: ScheduleUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(admin_required),
):
    oid = parse_object_id(schedule_id, "schedule ID")
    if not db["schedules"].find_one({"_id": oid}):
        raise HTTPException(status_code=404, detail="Schedule not found")

    update_data = {}
    if payload.route is not None:
        update_data["route_id"] = _require(db, "routes", payload.route, "route")
    if payload.vehicle is not None:
        update_data["vehicle_id"] = _require(db, "vehicles", payload.vehicle, "vehicle")
    if payload.departureTime is not None:
        update_data["departure_time"] = normalize_time(payload.departureTime)
    if payload.daysOfWeek is not None:
        update_data["days_of_week"] = payload.daysOfWeek
    if payload.isActive is not None:
        update_data["is_active"] = payload.isActive

    update_data["updated_at"] = utc_now()
    db["schedules"].update_one({"_id": oid}, {"$set": update_data})
    return _serialize(db, db["schedules"].find_one({"_id": oid}))


@router.delete("/{schedule_id}")
def delete_schedule(schedule_id: str, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    oid = parse_object_id(schedule_id, "schedule ID")
    result = db["schedules"].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Schedule not found")
    return {"message": "Schedule deleted successfully"}
