from fastapi import APIRouter, Depends
from pymongo.collection import Collection
from pymongo.database import Database
from collections import Counter
from datetime import date, datetime, timedelta
from typing import Optional
from app.models.trip import DEFAULT_DRIVER_STATUS, trip_helper
from app.schemas.analytics import ReportPeriod
from app.database import get_db
from app.dependencies.roles import admin_required
from app.schemas.requisition import RequisitionStatus
from app.schemas.trip import DriverStatus
from app.services.trip_lifecycle import CANCELLED, COMPLETED, ONGOING
from app.utils.dates import day_bounds, isoformat, local_date, local_hour, utc_now, weekday_index

router = APIRouter(prefix="/analytics", tags=["Analytics"])

DAY_NAMES = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]
PEAK_HOURS = range(6, 20)
RECENT_DAYS = 30
TOP_N = 10

DELAY_REASONS = {
    DriverStatus.DELAYED_TRAFFIC.value: "Traffic",
    DriverStatus.DELAYED_BREAKDOWN.value: "Breakdown",
    DriverStatus.DELAYED_OTHER.value: "Other",
}
ROLE_LABELS = {"STUDENT": "Students", "DRIVER": "Drivers", "ADMIN": "Admins"}


def hour_label(hour: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12} {suffix}"


def week_start(day: date) -> date:
    """Sunday of the week containing ``day``."""
    return day - timedelta(days=weekday_index(day))


def dashboard_metrics(db: Database, now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    first_day = week_start(local_date(now))
    week_begin, _ = day_bounds(first_day)
    _, week_end = day_bounds(first_day + timedelta(days=6))

    weekly_trips = list(db["trips"].find(
        {"date": {"$gte": week_begin, "$lt": week_end}},
        {"date": 1, "status": 1, "start_time": 1},
    ))

    per_day = [0] * 7
    for trip in weekly_trips:
        offset = (local_date(trip["date"]) - first_day).days
        if 0 <= offset < 7:
            per_day[offset] += 1

    per_hour = {hour: 0 for hour in PEAK_HOURS}
    for trip in weekly_trips:
        if trip["status"] not in (ONGOING, COMPLETED) or not trip.get("start_time"):
            continue
        hour = local_hour(trip["start_time"])
        if hour in per_hour:
            per_hour[hour] += 1

    return {
        "totalVehicles": db["vehicles"].count_documents({"is_active": True}),
        "activeTrips": db["trips"].count_documents({"status": ONGOING}),
        "pendingRequisitions": db["requisitions"].count_documents({"status": RequisitionStatus.PENDING.value}),
        "weeklyTripsData": [
            {"day": DAY_NAMES[weekday_index(first_day + timedelta(days=i))], "trips": per_day[i]}
            for i in range(7)
        ],
        "peakHoursData": [{"hour": hour_label(hour), "trips": count} for hour, count in per_hour.items()],
    }


def _lookup(collection: Collection, ids) -> dict:
    ids = [i for i in set(ids) if i is not None]
    if not ids:
        return {}
    return {doc["_id"]: doc for doc in collection.find({"_id": {"$in": ids}})}


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 1) if whole else 0.0


def _is_on_time(trip: dict) -> bool:
    return (trip.get("driver_status") or DEFAULT_DRIVER_STATUS) == DriverStatus.ON_SCHEDULE.value


def _recent_run_trips(db: Database, now: datetime) -> list:
    """Trips of the last 30 days that actually ran (ongoing or completed)."""
    return list(db["trips"].find({
        "date": {"$gte": now - timedelta(days=RECENT_DAYS)},
        "status": {"$in": [ONGOING, COMPLETED]},
    }))


def performance_band(on_time_percentage: float) -> str:
    if on_time_percentage >= 90:
        return "excellent"
    if on_time_percentage >= 80:
        return "good"
    if on_time_percentage >= 70:
        return "average"
    return "needs_improvement"


def route_performance(db: Database, now: Optional[datetime] = None) -> list:
    """Busiest routes of the last 30 days with completion rate and average trip length.

    ``avgDuration`` is in minutes and only counts trips with both a start and
    an end time.
    """
    now = now or utc_now()
    trips = _recent_run_trips(db, now)
    schedules = _lookup(db["schedules"], [t["schedule_id"] for t in trips])
    routes = _lookup(db["routes"], [s["route_id"] for s in schedules.values()])

    stats = {}
    for trip in trips:
        schedule = schedules.get(trip["schedule_id"])
        route = routes.get(schedule["route_id"]) if schedule else None
        if not route:
            continue
        entry = stats.setdefault(route["_id"], {"route": route["name"], "trips": 0, "completed": 0, "durations": []})
        entry["trips"] += 1
        if trip["status"] == COMPLETED:
            entry["completed"] += 1
        if trip.get("start_time") and trip.get("end_time"):
            entry["durations"].append((trip["end_time"] - trip["start_time"]).total_seconds() / 60)

    results = [
        {
            "routeId": str(route_id),
            "route": entry["route"],
            "trips": entry["trips"],
            "efficiency": _percent(entry["completed"], entry["trips"]),
            "avgDuration": round(sum(entry["durations"]) / len(entry["durations"]), 1) if entry["durations"] else 0.0,
        }
        for route_id, entry in stats.items()
    ]
    results.sort(key=lambda r: r["trips"], reverse=True)
    return results[:TOP_N]


def driver_performance(db: Database, now: Optional[datetime] = None) -> dict:
    """Per-driver punctuality over the last 30 days plus a breakdown of delay reasons.

    Trips are credited to the driver currently assigned to the trip's vehicle.
    """
    now = now or utc_now()
    trips = _recent_run_trips(db, now)
    schedules = _lookup(db["schedules"], [t["schedule_id"] for t in trips])
    vehicles = _lookup(db["vehicles"], [s["vehicle_id"] for s in schedules.values()])
    drivers = _lookup(db["users"], [v.get("driver_id") for v in vehicles.values()])

    stats = {}
    for trip in trips:
        schedule = schedules.get(trip["schedule_id"])
        vehicle = vehicles.get(schedule["vehicle_id"]) if schedule else None
        driver = drivers.get(vehicle.get("driver_id")) if vehicle else None
        if not driver:
            continue
        entry = stats.setdefault(driver["_id"], {"driver": driver["name"], "total": 0, "on_time": 0, "completed": 0})
        entry["total"] += 1
        entry["on_time"] += _is_on_time(trip)
        entry["completed"] += trip["status"] == COMPLETED

    performance = []
    for driver_id, entry in stats.items():
        on_time = _percent(entry["on_time"], entry["total"])
        performance.append({
            "driverId": str(driver_id),
            "driver": entry["driver"],
            "totalTrips": entry["total"],
            "onTimePercentage": on_time,
            "completionRate": _percent(entry["completed"], entry["total"]),
            "performance": performance_band(on_time),
        })
    performance.sort(key=lambda d: d["onTimePercentage"], reverse=True)

    delays = Counter(
        DELAY_REASONS[trip["driver_status"]]
        for trip in db["trips"].find({
            "date": {"$gte": now - timedelta(days=RECENT_DAYS)},
            "driver_status": {"$in": list(DELAY_REASONS)},
        }, {"driver_status": 1})
    )

    return {
        "driverPerformance": performance[:TOP_N],
        "delayAnalysis": [{"reason": reason, "count": count} for reason, count in delays.most_common()],
        "lastUpdated": isoformat(now),
    }


def period_start(day: date, period: ReportPeriod) -> date:
    if period == ReportPeriod.MONTH:
        return day.replace(day=1)
    if period == ReportPeriod.QUARTER:
        return day.replace(month=(day.month - 1) // 3 * 3 + 1, day=1)
    if period == ReportPeriod.YEAR:
        return day.replace(month=1, day=1)
    return week_start(day)


def period_report(db: Database, period: ReportPeriod = ReportPeriod.WEEK, now: Optional[datetime] = None) -> dict:
    now = now or utc_now()
    since, _ = day_bounds(period_start(local_date(now), period))

    trips = list(db["trips"].find({"date": {"$gte": since}}))
    schedules = _lookup(db["schedules"], [t["schedule_id"] for t in trips])
    vehicle_of = {
        trip["_id"]: schedules[trip["schedule_id"]]["vehicle_id"]
        for trip in trips if trip["schedule_id"] in schedules
    }
    routes = _lookup(db["routes"], [s["route_id"] for s in schedules.values()])

    history = {}
    punctuality = {}
    for trip in trips:
        day = local_date(trip["date"]).isoformat()
        entry = history.setdefault(day, {"date": day, "trips": 0, "completed": 0, "cancelled": 0})
        entry["trips"] += 1
        entry["completed"] += trip["status"] == COMPLETED
        entry["cancelled"] += trip["status"] == CANCELLED

        vehicle_id = vehicle_of.get(trip["_id"])
        if vehicle_id is not None and trip["status"] in (ONGOING, COMPLETED):
            counts = punctuality.setdefault(vehicle_id, {"onTime": 0, "delayed": 0})
            counts["onTime" if _is_on_time(trip) else "delayed"] += 1

    punctuality_data = []
    for vehicle in db["vehicles"].find().sort("registration_number", 1):
        counts = punctuality.get(vehicle["_id"], {"onTime": 0, "delayed": 0})
        punctuality_data.append({"registrationNumber": vehicle["registration_number"], **counts})

    roles = Counter(user.get("role") for user in db["users"].find({}, {"role": 1}))

    recent = sorted(trips, key=lambda t: t.get("created_at") or t["date"], reverse=True)[:TOP_N]
    recent_trips = []
    for trip in recent:
        schedule = schedules.get(trip["schedule_id"])
        route = routes.get(schedule["route_id"]) if schedule else None
        recent_trips.append({
            **trip_helper(trip),
            "departureTime": schedule["departure_time"] if schedule else None,
            "routeName": route["name"] if route else None,
        })
    registrations = _lookup(db["vehicles"], [vehicle_of.get(t["_id"]) for t in recent])
    for entry, trip in zip(recent_trips, recent):
        vehicle = registrations.get(vehicle_of.get(trip["_id"]))
        entry["registrationNumber"] = vehicle["registration_number"] if vehicle else None

    return {
        "period": period.value,
        "since": isoformat(since),
        "punctualityData": punctuality_data,
        "tripHistoryData": [history[day] for day in sorted(history)],
        "userActivityData": [
            {"name": ROLE_LABELS.get(role, "Others"), "value": count}
            for role, count in sorted(roles.items(), key=lambda item: item[1], reverse=True)
        ],
        "recentTrips": recent_trips,
    }


@router.get("/dashboard")
def get_dashboard(db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    return dashboard_metrics(db)


@router.get("/route-performance")
def get_route_performance(db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    return route_performance(db)


@router.get("/drivers")
def get_driver_performance(db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    return driver_performance(db)


@router.get("/reports")
def get_reports(
    period: ReportPeriod = ReportPeriod.WEEK,
    db: Database = Depends(get_db),
    current_user: dict = Depends(admin_required),
):
    return period_report(db, period)
