from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database
from typing import List
from app.database import get_db
from app.dependencies.roles import admin_required, any_role_required
from app.models.vehicle import vehicle_helper
from app.schemas.vehicle import FleetEntry, VehicleCreate, VehicleInDB, VehicleUpdate
from app.services.location_reporter import active_fleet, fleet_snapshot
from app.utils.dates import utc_now
from app.utils.object_ids import parse_object_id
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["Vehicles"])


def _validate_driver(db: Database, driver_id: str, vehicle_id=None):
    """Resolve a driver reference; a driver drives at most one active vehicle."""
    oid = parse_object_id(driver_id, "driver ID")
    driver = db["users"].find_one({"_id": oid, "role": "DRIVER"})
    if not driver:
        raise HTTPException(status_code=400, detail="Invalid driver selected")

    query = {"driver_id": oid, "is_active": True}
    if vehicle_id is not None:
        query["_id"] = {"$ne": vehicle_id}
    if db["vehicles"].find_one(query):
        raise HTTPException(status_code=400, detail="Driver is already assigned to another active vehicle")
    return driver


def _serialize(db: Database, vehicle: dict) -> dict:
    driver = None
    if vehicle.get("driver_id"):
        driver = db["users"].find_one({"_id": vehicle["driver_id"]}, {"name": 1})
    return vehicle_helper(vehicle, driver)


@router.get("/locations", response_model=List[FleetEntry])
def get_vehicle_locations(db: Database = Depends(get_db), current_user: dict = Depends(any_role_required)):
    """Live positions of every vehicle currently on an ongoing trip."""
    return fleet_snapshot(db)


@router.get("/active", response_model=List[FleetEntry])
def get_active_vehicles(db: Database = Depends(get_db), current_user: dict = Depends(any_role_required)):
    """All active vehicles; idle ones are reported OFFLINE at the fallback point."""
    return active_fleet(db)


@router.get("/", response_model=List[VehicleInDB])
def get_all_vehicles(db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    return [_serialize(db, vehicle) for vehicle in db["vehicles"].find().sort("registration_number", 1)]


@router.get("/{vehicle_id}", response_model=VehicleInDB)
def get_vehicle(vehicle_id: str, db: Database = Depends(get_db), current_user: dict = Depends(any_role_required)):
    vehicle = db["vehicles"].find_one({"_id": parse_object_id(vehicle_id, "vehicle ID")})
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return _serialize(db, vehicle)


@router.post("/", response_model=VehicleInDB, status_code=201)
def create_vehicle(vehicle: VehicleCreate, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    if db["vehicles"].find_one({"registration_number": vehicle.registrationNumber}):
        raise HTTPException(
            status_code=400,
            detail="Vehicle with this registration number already exists"
        )

    driver_id = None
    if vehicle.driverId:
        driver_id = _validate_driver(db, vehicle.driverId)["_id"]

    now = utc_now()
    vehicle_doc = {
        "registration_number": vehicle.registrationNumber,
        "bus_name": vehicle.busName,
        "type": vehicle.type.value,
        "capacity": vehicle.capacity,
        "driver_id": driver_id,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    result = db["vehicles"].insert_one(vehicle_doc)
    logger.info(f"Vehicle {vehicle.registrationNumber} created ({result.inserted_id})")

    return _serialize(db, db["vehicles"].find_one({"_id": result.inserted_id}))


@router.put("/{vehicle_id}", response_model=VehicleInDB)
def update_vehicle(
    vehicle_id: str,
    payload: VehicleUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(admin_required),
):
    oid = parse_object_id(vehicle_id, "vehicle ID")
    existing = db["vehicles"].find_one({"_id": oid})
    if not existing:
        raise HTTPException(status_code=404, detail="Vehicle not found")

    update_data = {}
    if payload.registrationNumber is not None and payload.registrationNumber != existing["registration_number"]:
        if db["vehicles"].find_one({"registration_number": payload.registrationNumber}):
            raise HTTPException(
                status_code=400,
                detail="Vehicle with this registration number already exists"
            )
        update_data["registration_number"] = payload.registrationNumber
    if payload.type is not None:
        update_data["type"] = payload.type.value
    if payload.capacity is not None:
        update_data["capacity"] = payload.capacity
    if payload.busName is not None:
        update_data["bus_name"] = payload.busName
    if payload.isActive is not None:
        update_data["is_active"] = payload.isActive
    if "driverId" in payload.model_fields_set:
        # explicit null unassigns the driver
        update_data["driver_id"] = _validate_driver(db, payload.driverId, oid)["_id"] if payload.driverId else None
    elif payload.isActive and existing.get("driver_id"):
        # reactivating a parked vehicle must not give its driver a second active vehicle
        _validate_driver(db, str(existing["driver_id"]), oid)

    update_data["updated_at"] = utc_now()
    db["vehicles"].update_one({"_id": oid}, {"$set": update_data})
    return _serialize(db, db["vehicles"].find_one({"_id": oid}))


@router.delete("/{vehicle_id}")
def delete_vehicle(vehicle_id: str, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    result = db["vehicles"].delete_one({"_id": parse_object_id(vehicle_id, "vehicle ID")})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return {"message": "Vehicle deleted successfully"}
