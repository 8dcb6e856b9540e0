from app.utils.geo import point_to_lat_lng


def stop_helper(stop) -> dict:
    return {
        "id": str(stop["_id"]),
        "name": stop["name"],
        "location": point_to_lat_lng(stop.get("location")),
        "description": stop.get("description"),
        "isActive": stop.get("is_active", True),
    }
