from pydantic import BaseModel
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from app.schemas.vehicle import Location


class TripStatus(str, Enum):
    PENDING = "PENDING"
    ONGOING = "ONGOING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# Values the driver app offers; driverStatus itself is free text
class DriverStatus(str, Enum):
    ON_SCHEDULE = "ON_SCHEDULE"
    DELAYED_TRAFFIC = "DELAYED_TRAFFIC"
    DELAYED_BREAKDOWN = "DELAYED_BREAKDOWN"
    DELAYED_OTHER = "DELAYED_OTHER"


class LocationReport(BaseModel):
    # [longitude, latitude]; validated by the location reporter
    point: Any = None
    status: Optional[str] = None


class TripUpdate(BaseModel):
    status: Optional[TripStatus] = None
    driverStatus: Optional[str] = None
    startTime: Optional[datetime] = None
    endTime: Optional[datetime] = None


class DriverStatusUpdate(BaseModel):
    driverStatus: str


class TripStartResponse(BaseModel):
    tripId: str
    vehicleId: str
    status: TripStatus
    startTime: str


class TripEndResponse(BaseModel):
    tripId: str
    vehicleId: str
    status: TripStatus
    endTime: str


class TripUpdateResponse(BaseModel):
    tripId: str
    status: TripStatus
    driverStatus: Optional[str] = None
    startTime: Optional[str] = None
    endTime: Optional[str] = None


class LocationReportResponse(BaseModel):
    tripId: str
    location: Location
    status: Optional[str] = None
    timestamp: str
