from pydantic import BaseModel, Field
from typing import Optional, List


class RouteCreate(BaseModel):
    name: str = Field(..., min_length=1)
    # Stop ids in travel order; order numbers are assigned 1..N
    stops: List[str] = Field(..., min_length=1)


class RouteUpdate(BaseModel):
    name: Optional[str] = None
    stops: Optional[List[str]] = Field(None, min_length=1)
    isActive: Optional[bool] = None
