from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database
from app.database import get_db
from app.dependencies.roles import admin_required, any_role_required
from app.models.stop import stop_helper
from app.schemas.stop import StopCreate, StopUpdate
from app.utils.dates import utc_now
from app.utils.geo import to_geojson_point
from app.utils.object_ids import parse_object_id

router = APIRouter(prefix="/stops", tags=["Stops"])


def _point_from_lat_lng(coordinates) -> dict:
    lat, lng = coordinates
    # stored as [lng, lat]
    return to_geojson_point([lng, lat])


@router.get("/")
def get_stops(db: Database = Depends(get_db), current_user: dict = Depends(any_role_required)):
    return [stop_helper(stop) for stop in db["stops"].find().sort("name", 1)]


@router.post("/", status_code=201)
def create_stop(payload: StopCreate, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    name = payload.name.strip()
    if db["stops"].find_one({"name": name}):
        raise HTTPException(status_code=400, detail="Stop with this name already exists")

    now = utc_now()
    stop = {
        "name": name,
        "location": _point_from_lat_lng(payload.coordinates),
        "description": payload.description,
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    db["stops"].insert_one(stop)
    return stop_helper(stop)


@router.put("/{stop_id}")
def update_stop(
    stop_id: str,
    payload: StopUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(admin_required),
):
    oid = parse_object_id(stop_id, "stop ID")
    existing = db["stops"].find_one({"_id": oid})
    if not existing:
        raise HTTPException(status_code=404, detail="Stop not found")

    update_data = {}
    if payload.name is not None and payload.name.strip() != existing["name"]:
        if db["stops"].find_one({"name": payload.name.strip()}):
            raise HTTPException(status_code=400, detail="Stop with this name already exists")
        update_data["name"] = payload.name.strip()
    if payload.coordinates is not None:
        update_data["location"] = _point_from_lat_lng(payload.coordinates)
    if payload.description is not None:
        update_data["description"] = payload.description
    if payload.isActive is not None:
        update_data["is_active"] = payload.isActive

    update_data["updated_at"] = utc_now()
    db["stops"].update_one({"_id": oid}, {"$set": update_data})
    return stop_helper(db["stops"].find_one({"_id": oid}))


@router.delete("/{stop_id}")
def delete_stop(stop_id: str, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    oid = parse_object_id(stop_id, "stop ID")
    if db["routes"].find_one({"stops.stop_id": oid}):
        raise HTTPException(status_code=400, detail="Stop is used by a route")

    result = db["stops"].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Stop not found")
    return {"message": "Stop deleted successfully"}
