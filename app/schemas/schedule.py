from pydantic import BaseModel, Field, validator
from typing import Optional, List

TIME_PATTERN = r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"


def check_days_of_week(days):
    if days is None:
        return days
    if not days:
        raise ValueError("At least one day of week is required")
    if any(day < 0 or day > 6 for day in days):
        raise ValueError("Days of week must be between 0 (Sunday) and 6 (Saturday)")
    return sorted(set(days))


class ScheduleCreate(BaseModel):
    route: str
    vehicle: str
    departureTime: str = Field(..., pattern=TIME_PATTERN)
    daysOfWeek: List[int]
    isActive: bool = True

    @validator("daysOfWeek")
    def validate_days(cls, v):
        return check_days_of_week(v)


class ScheduleUpdate(BaseModel):
    route: Optional[str] = None
    vehicle: Optional[str] = None
    departureTime: Optional[str] = Field(None, pattern=TIME_PATTERN)
    daysOfWeek: Optional[List[int]] = None
    isActive: Optional[bool] = None

    @validator("daysOfWeek")
    def validate_days(cls, v):
        return check_days_of_week(v)
