from app.utils.dates import isoformat


def vehicle_helper(vehicle, driver=None) -> dict:
    return {
        "id": str(vehicle["_id"]),
        "registrationNumber": vehicle["registration_number"],
        "busName": vehicle.get("bus_name"),
        "type": vehicle["type"],
        "capacity": vehicle["capacity"],
        "driverId": str(vehicle["driver_id"]) if vehicle.get("driver_id") else None,
        # populated only when the caller looked the driver up
        "driverName": driver.get("name") if driver else None,
        "isActive": vehicle.get("is_active", True),
        "createdAt": isoformat(vehicle.get("created_at")),
        "updatedAt": isoformat(vehicle.get("updated_at")),
    }
