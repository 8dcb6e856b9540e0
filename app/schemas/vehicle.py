from pydantic import BaseModel, Field, validator
from enum import Enum
from typing import Optional


class VehicleType(str, Enum):
    BUS = "BUS"
    MINIBUS = "MINIBUS"


class VehicleBase(BaseModel):
    registrationNumber: str = Field(..., min_length=1)
    type: VehicleType
    capacity: int = Field(..., ge=1)
    busName: Optional[str] = None
    driverId: Optional[str] = None

    @validator("registrationNumber")
    def normalize_registration(cls, v):
        return v.strip().upper()


class VehicleCreate(VehicleBase):
    pass


class VehicleUpdate(BaseModel):
    registrationNumber: Optional[str] = None
    type: Optional[VehicleType] = None
    capacity: Optional[int] = Field(None, ge=1)
    busName: Optional[str] = None
    driverId: Optional[str] = None
    isActive: Optional[bool] = None

    @validator("registrationNumber")
    def normalize_registration(cls, v):
        return v.strip().upper() if v else v


class VehicleInDB(BaseModel):
    id: str
    registrationNumber: str
    busName: Optional[str] = None
    type: VehicleType
    capacity: int
    driverId: Optional[str] = None
    driverName: Optional[str] = None
    isActive: bool = True
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None


# Pydantic model for map positions, always {lat, lng}
class Location(BaseModel):
    lat: float
    lng: float


class FleetEntry(BaseModel):
    vehicleId: str
    registrationNumber: str
    busName: Optional[str] = None
    type: str
    location: Location
    status: str
    routeName: str
    lastUpdated: Optional[str] = None
