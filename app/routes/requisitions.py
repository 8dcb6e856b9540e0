from fastapi import APIRouter, Depends, HTTPException
from pymongo import ReturnDocument
from pymongo.database import Database
from typing import Optional
from app.database import get_db
from app.dependencies.roles import admin_required, student_or_admin_required
from app.models.requisition import requisition_helper
from app.schemas.requisition import RequisitionCreate, RequisitionReview, RequisitionStatus
from app.utils.dates import utc_now
from app.utils.object_ids import parse_object_id
from datetime import datetime, time
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/requisitions", tags=["Requisitions"])


def _with_users(db: Database, requisitions: list) -> list:
    users = {
        u["_id"]: u
        for u in db["users"].find({"_id": {"$in": [r["user_id"] for r in requisitions]}}, {"email": 1})
    }
    return [requisition_helper(r, users.get(r["user_id"])) for r in requisitions]


@router.post("/", status_code=201)
def create_requisition(
    payload: RequisitionCreate,
    db: Database = Depends(get_db),
    current_user: dict = Depends(student_or_admin_required),
):
    now = utc_now()
    requisition = {
        "user_id": parse_object_id(current_user["user_id"], "user ID"),
        "name": payload.name.strip(),
        "department": payload.department.strip(),
        "purpose": payload.purpose.strip(),
        # BSON has no date type
        "requested_date": datetime.combine(payload.requestedDate, time.min),
        "requested_time": payload.requestedTime,
        "number_of_passengers": payload.numberOfPassengers,
        "status": RequisitionStatus.PENDING.value,
        "created_at": now,
        "updated_at": now,
    }
    db["requisitions"].insert_one(requisition)
    logger.info(f"📝 Requisition {requisition['_id']} submitted by {current_user['email']}")
    return {
        "message": "Requisition submitted successfully",
        "requisition": requisition_helper(requisition, {"email": current_user["email"]}),
    }


@router.get("/mine")
def get_my_requisitions(db: Database = Depends(get_db), current_user: dict = Depends(student_or_admin_required)):
    user_id = parse_object_id(current_user["user_id"], "user ID")
    requisitions = list(db["requisitions"].find({"user_id": user_id}).sort("created_at", -1))
    return [requisition_helper(r, {"email": current_user["email"]}) for r in requisitions]


@router.get("/")
def get_requisitions(
    status: Optional[RequisitionStatus] = None,
    db: Database = Depends(get_db),
    current_user: dict = Depends(admin_required),
):
    query = {"status": status.value} if status else {}
    return _with_users(db, list(db["requisitions"].find(query).sort("created_at", -1)))


@router.put("/{requisition_id}")
def review_requisition(
    requisition_id: str,
    payload: RequisitionReview,
    db: Database = Depends(get_db),
    current_user: dict = Depends(admin_required),
):
    if payload.status == RequisitionStatus.PENDING:
        raise HTTPException(status_code=400, detail="Valid status is required")

    now = utc_now()
    updated = db["requisitions"].find_one_and_update(
        {"_id": parse_object_id(requisition_id, "requisition ID")},
        {"$set": {
            "status": payload.status.value,
            "admin_notes": payload.adminNotes,
            "reviewed_at": now,
            "reviewed_by": parse_object_id(current_user["user_id"], "user ID"),
            "updated_at": now,
        }},
        return_document=ReturnDocument.AFTER,
    )
    if not updated:
        raise HTTPException(status_code=404, detail="Requisition not found")

    logger.info(f"Requisition {requisition_id} {payload.status.value} by {current_user['email']}")
    return _with_users(db, [updated])[0]
