from app.schemas.trip import DriverStatus
from app.utils.dates import isoformat
from app.utils.geo import point_to_lat_lng

DEFAULT_DRIVER_STATUS = DriverStatus.ON_SCHEDULE.value


def trip_helper(trip) -> dict:
    return {
        "id": str(trip["_id"]),
        "scheduleId": str(trip["schedule_id"]),
        "date": isoformat(trip["date"]),
        "status": trip["status"],
        "driverStatus": trip.get("driver_status") or DEFAULT_DRIVER_STATUS,
        "startTime": isoformat(trip.get("start_time")),
        "endTime": isoformat(trip.get("end_time")),
        "liveLocation": point_to_lat_lng(trip.get("live_location")),
        "lastUpdated": isoformat(trip.get("updated_at")),
    }
