from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class EventStatus(str, Enum):
    ACTIVE = "Active"
    INACTIVE = "InActive"


class EventCreate(BaseModel):
    """Validated event form"""
    org_id: int
    category_id: int
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    location_name: Optional[str] = Field(None, max_length=255)
    location_address: Optional[str] = Field(None, max_length=500)
    event_date: datetime
    capacity: int = Field(0, ge=0)
    age_restriction: int = Field(0, ge=0)


class EventUpdate(BaseModel):
    category_id: Optional[int] = None
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    location_name: Optional[str] = Field(None, max_length=255)
    location_address: Optional[str] = Field(None, max_length=500)
    event_date: Optional[datetime] = None
    capacity: Optional[int] = None
    age_restriction: Optional[int] = None
    status: Optional[EventStatus] = None


class EventSummary(BaseModel):
    """Event as shown in listings"""
    id: int
    title: str
    event_date: datetime
    location_name: Optional[str] = None
    image_url: Optional[str] = None
    status: str
    org_id: int
    organization_name: Optional[str] = None
    category_id: int
    category_name: Optional[str] = None
    min_price: Optional[Decimal] = None

    class Config:
        from_attributes = True


class Event(EventSummary):
    description: Optional[str] = None
    location_address: Optional[str] = None
    capacity: int = 0
    age_restriction: int = 0
    tickets_sold: int = 0
    average_rating: Optional[float] = None
    review_count: int = 0
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None


class EventCreatedResponse(BaseModel):
    id: int
    message: str
