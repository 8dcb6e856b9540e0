from fastapi import APIRouter, Depends, HTTPException
from pymongo.database import Database
from typing import List
from app.database import get_db
from app.dependencies.roles import admin_required, any_role_required
from app.models.route import route_helper
from app.schemas.route import RouteCreate, RouteUpdate
from app.utils.dates import utc_now
from app.utils.object_ids import parse_object_id

router = APIRouter(prefix="/routes", tags=["Routes"])


def _ordered_stops(db: Database, stop_ids: List[str]) -> list:
    """Validate stop references and number them 1..N in the given order."""
    oids = [parse_object_id(stop_id, "stop ID") for stop_id in stop_ids]
    if len(set(oids)) != len(oids):
        raise HTTPException(status_code=400, detail="A stop can appear only once in a route")
    if db["stops"].count_documents({"_id": {"$in": oids}}) != len(oids):
        raise HTTPException(status_code=400, detail="One or more stops are invalid")
    return [{"stop_id": oid, "order": index + 1} for index, oid in enumerate(oids)]


def _populated(db: Database, route: dict) -> dict:
    stop_ids = [entry["stop_id"] for entry in route.get("stops", [])]
    stops_by_id = {s["_id"]: s for s in db["stops"].find({"_id": {"$in": stop_ids}})}
    return route_helper(route, stops_by_id)


@router.get("/")
def get_routes(db: Database = Depends(get_db), current_user: dict = Depends(any_role_required)):
    return [_populated(db, route) for route in db["routes"].find().sort("name", 1)]


@router.post("/", status_code=201)
def create_route(payload: RouteCreate, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    name = payload.name.strip()
    if db["routes"].find_one({"name": name}):
        raise HTTPException(status_code=400, detail="Route with this name already exists")

    now = utc_now()
    route = {
        "name": name,
        "stops": _ordered_stops(db, payload.stops),
        "is_active": True,
        "created_at": now,
        "updated_at": now,
    }
    db["routes"].insert_one(route)
    return _populated(db, route)


@router.put("/{route_id}")
def update_route(
    route_id: str,
    payload: RouteUpdate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(admin_required),
):
    oid = parse_object_id(route_id, "route ID")
    existing = db["routes"].find_one({"_id": oid})
    if not existing:
        raise HTTPException(status_code=404, detail="Route not found")

    update_data = {}
    if payload.name is not None and payload.name.strip() != existing["name"]:
        if db["routes"].find_one({"name": payload.name.strip()}):
            raise HTTPException(status_code=400, detail="Route with this name already exists")
        update_data["name"] = payload.name.strip()
    if payload.stops is not None:
        update_data["stops"] = _ordered_stops(db, payload.stops)
    if payload.isActive is not None:
        update_data["is_active"] = payload.isActive

    update_data["updated_at"] = utc_now()
    db["routes"].update_one({"_id": oid}, {"$set": update_data})
    return _populated(db, db["routes"].find_one({"_id": oid}))


@router.delete("/{route_id}")
def delete_route(route_id: str, db: Database = Depends(get_db), current_user: dict = Depends(admin_required)):
    oid = parse_object_id(route_id, "route ID")
    if db["schedules"].find_one({"route_id": oid}):
        raise HTTPException(status_code=400, detail="Route is used by a schedule")

    result = db["routes"].delete_one({"_id": oid})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Route not found")
    return {"message": "Route deleted successfully"}
