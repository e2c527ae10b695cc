"""
Vehicle catalog schemas
"""
from pydantic import BaseModel, Field, validator
from typing import Optional, List
from datetime import datetime


class VehicleListing(BaseModel):
    """Catalog snapshot of one car listing"""
    id: str
    name: str = Field(..., min_length=1)
    price_per_day_raw: str = Field(..., description="Price as entered by the admin, e.g. '₱2,500/day'")
    is_promotional: bool = False
    category: str = "Sedan"
    passenger_capacity: Optional[int] = Field(None, ge=1, le=30)
    bag_capacity: Optional[int] = Field(None, ge=0, le=30)
    transmission: Optional[str] = None
    features: List[str] = Field(default_factory=list)
    image_url: Optional[str] = None
    priority_level: int = 0
    updated_at: Optional[datetime] = None

    @validator('features', pre=True, always=True)
    def default_features(cls, v):
        return v or []

    @validator('priority_level', pre=True, always=True)
    def coerce_priority(cls, v):
        try:
            return int(v)
        except (TypeError, ValueError):
            return 0


class VehicleListResponse(BaseModel):
    """List of vehicles response"""
    vehicles: List[VehicleListing]
    total: int
