def schedule_helper(schedule, route=None, vehicle=None) -> dict:
    return {
        "id": str(schedule["_id"]),
        "routeId": str(schedule["route_id"]),
        "routeName": route.get("name") if route else None,
        "vehicleId": str(schedule["vehicle_id"]),
        "registrationNumber": vehicle.get("registration_number") if vehicle else None,
        "vehicleType": vehicle.get("type") if vehicle else None,
        "departureTime": schedule["departure_time"],
        "daysOfWeek": schedule.get("days_of_week", []),
        "isActive": schedule.get("is_active", True),
    }
