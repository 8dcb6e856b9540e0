from pydantic import BaseModel, Field
from datetime import date
from enum import Enum
from typing import Optional
from app.schemas.schedule import TIME_PATTERN


class RequisitionStatus(str, Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    DENIED = "DENIED"


class RequisitionCreate(BaseModel):
    name: str = Field(..., min_length=1)
    department: str = Field(..., min_length=1)
    purpose: str = Field(..., min_length=1)
    requestedDate: date
    requestedTime: str = Field(..., pattern=TIME_PATTERN)
    numberOfPassengers: int = Field(..., ge=1)


class RequisitionReview(BaseModel):
    status: RequisitionStatus
    adminNotes: Optional[str] = None
