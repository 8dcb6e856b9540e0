from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from pymongo.database import Database
from datetime import date
from typing import Optional
from app.database import get_db
from app.dependencies.roles import driver_or_admin_required
from app.models.route import route_helper
from app.models.schedule import schedule_helper
from app.models.trip import trip_helper
from app.models.vehicle import vehicle_helper
from app.schemas.trip import (
    DriverStatusUpdate,
    LocationReport,
    LocationReportResponse,
    TripEndResponse,
    TripStartResponse,
    TripUpdate,
    TripUpdateResponse,
)
from app.services import location_reporter, trip_lifecycle
from app.services.schedule_resolver import resolve_trips_for_date
from app.utils.dates import local_date, utc_now
from app.utils.object_ids import parse_object_id
from app.utils.ws_manager import fleet_manager
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/trips", tags=["Trips"])


def ensure_vehicle_access(db: Database, current_user: dict, vehicle_id) -> dict:
    """Drivers may only operate the vehicle assigned to them."""
    vehicle = trip_lifecycle.require_vehicle(db, vehicle_id)
    if current_user.get("role") == "DRIVER" and str(vehicle.get("driver_id")) != current_user["user_id"]:
        raise HTTPException(status_code=403, detail="This vehicle is not assigned to you")
    return vehicle


def ensure_trip_access(db: Database, current_user: dict, trip_id) -> dict:
    trip = trip_lifecycle.require_trip(db, trip_id)
    if current_user.get("role") == "DRIVER":
        schedule = db["schedules"].find_one({"_id": trip["schedule_id"]})
        if not schedule:
            raise HTTPException(status_code=403, detail="This trip is not assigned to you")
        ensure_vehicle_access(db, current_user, schedule["vehicle_id"])
    return trip


async def broadcast_fleet_snapshot(db: Database):
    """Push the current fleet snapshot to /ws/fleet subscribers."""
    if not fleet_manager.active_connections:
        return
    vehicles = await run_in_threadpool(location_reporter.fleet_snapshot, db)
    await fleet_manager.broadcast({"type": "fleet_snapshot", "vehicles": vehicles})


def _trip_view(db: Database, schedule: dict, trip: dict) -> dict:
    route = db["routes"].find_one({"_id": schedule["route_id"]})
    vehicle = db["vehicles"].find_one({"_id": schedule["vehicle_id"]})
    stops_by_id = {}
    if route:
        stop_ids = [entry["stop_id"] for entry in route.get("stops", [])]
        stops_by_id = {s["_id"]: s for s in db["stops"].find({"_id": {"$in": stop_ids}})}

    return {
        **trip_helper(trip),
        "schedule": schedule_helper(schedule, route, vehicle),
        "route": route_helper(route, stops_by_id) if route else None,
        "vehicle": vehicle_helper(vehicle) if vehicle else None,
    }


@router.get("/driver")
def get_driver_trips(
    day: Optional[date] = Query(None, alias="date", description="YYYY-MM-DD, defaults to today"),
    vehicle_id: Optional[str] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(driver_or_admin_required),
):
    """Trips of the given day, created on first access.

    Drivers see the trips of the vehicles assigned to them; admins see all
    vehicles or just ``vehicle_id``.
    """
    day = day or local_date(utc_now())

    vehicle_ids = None
    if current_user.get("role") == "DRIVER":
        driver_id = parse_object_id(current_user["user_id"], "user ID")
        vehicle_ids = [v["_id"] for v in db["vehicles"].find({"driver_id": driver_id}, {"_id": 1})]
        if not vehicle_ids:
            return []
    elif vehicle_id:
        vehicle_ids = [parse_object_id(vehicle_id, "vehicle ID")]

    return [
        _trip_view(db, schedule, trip)
        for schedule, trip in resolve_trips_for_date(db, day, vehicle_ids)
    ]


@router.post("/vehicle/{vehicle_id}/start", response_model=TripStartResponse)
async def start_trip(
    vehicle_id: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(driver_or_admin_required),
):
    await run_in_threadpool(ensure_vehicle_access, db, current_user, vehicle_id)
    result = await run_in_threadpool(trip_lifecycle.start_trip, db, vehicle_id)
    await broadcast_fleet_snapshot(db)
    return result


@router.post("/vehicle/{vehicle_id}/end", response_model=TripEndResponse)
async def end_trip(
    vehicle_id: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(driver_or_admin_required),
):
    await run_in_threadpool(ensure_vehicle_access, db, current_user, vehicle_id)
    result = await run_in_threadpool(trip_lifecycle.end_trip, db, vehicle_id)
    await broadcast_fleet_snapshot(db)
    return result


@router.post("/vehicle/{vehicle_id}/cancel", response_model=TripEndResponse)
async def cancel_trip(
    vehicle_id: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(driver_or_admin_required),
):
    await run_in_threadpool(ensure_vehicle_access, db, current_user, vehicle_id)
    result = await run_in_threadpool(trip_lifecycle.cancel_trip, db, vehicle_id)
    await broadcast_fleet_snapshot(db)
    return result


@router.post("/vehicle/{vehicle_id}/location", response_model=LocationReportResponse)
async def report_location(
    vehicle_id: str,
    payload: LocationReport,
    db: Database = Depends(get_db),
    current_user: dict = Depends(driver_or_admin_required),
):
    await run_in_threadpool(ensure_vehicle_access, db, current_user, vehicle_id)
    result = await run_in_threadpool(location_reporter.report_location, db, vehicle_id, payload.point, payload.status)
    await broadcast_fleet_snapshot(db)
    return result


@router.get("/{trip_id}")
def get_trip(
    trip_id: str,
    db: Database = Depends(get_db),
    current_user: dict = Depends(driver_or_admin_required),
):
    trip = ensure_trip_access(db, current_user, trip_id)
    schedule = db["schedules"].find_one({"_id": trip["schedule_id"]})
    if not schedule:
        return trip_helper(trip)
    return _trip_view(db, schedule, trip)


@router.put("/{trip_id}", response_model=TripUpdateResponse)
async def update_trip(
    trip_id: str,
    payload: TripUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(driver_or_admin_required),
):
    await run_in_threadpool(ensure_trip_access, db, current_user, trip_id)
    fields = payload.dict(exclude_none=True)
    result = await run_in_threadpool(trip_lifecycle.update_trip, db, trip_id, fields)
    if "status" in fields:
        await broadcast_fleet_snapshot(db)
    return result


@router.patch("/{trip_id}/driver-status", response_model=TripUpdateResponse)
def update_driver_status(
    trip_id: str,
    payload: DriverStatusUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(driver_or_admin_required),
):
    """Set the driver's delay reason without touching the trip status."""
    ensure_trip_access(db, current_user, trip_id)
    trip = trip_lifecycle.update_trip_details(db, trip_id, {"driverStatus": payload.driverStatus})
    return trip_lifecycle.update_response(trip)
