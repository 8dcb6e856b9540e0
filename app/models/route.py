from app.models.stop import stop_helper


def route_helper(route, stops_by_id: dict | None = None) -> dict:
    """Serialize a route; ``stops_by_id`` populates each stop reference."""
    stops_by_id = stops_by_id or {}
    stops = []
    for entry in sorted(route.get("stops", []), key=lambda s: s["order"]):
        stop = stops_by_id.get(entry["stop_id"])
        stops.append({
            "order": entry["order"],
            "stopId": str(entry["stop_id"]),
            "stop": stop_helper(stop) if stop else None,
        })
    return {
        "id": str(route["_id"]),
        "name": route["name"],
        "stops": stops,
        "isActive": route.get("is_active", True),
    }
