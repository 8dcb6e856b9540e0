from pydantic import BaseModel, Field
from typing import Optional, List


class StopCreate(BaseModel):
    name: str = Field(..., min_length=1)
    # [latitude, longitude], the order the admin map picker produces
    coordinates: List[float] = Field(..., min_length=2, max_length=2)
    description: Optional[str] = None


class StopUpdate(BaseModel):
    name: Optional[str] = None
    coordinates: Optional[List[float]] = Field(None, min_length=2, max_length=2)
    description: Optional[str] = None
    isActive: Optional[bool] = None
