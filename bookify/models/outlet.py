from pydantic import BaseModel, Field
from typing import Optional, List
from datetime import datetime
from bookify.models.product import ProductSummary


class OutletStatus:
    ACTIVE = "Active"
    INACTIVE = "InActive"


class ShopCreate(BaseModel):
    event_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class StoreCreate(BaseModel):
    org_id: int
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None


class OutletUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    status: Optional[str] = Field(None, pattern=r"^(Active|InActive)$")


class Shop(BaseModel):
    """Merchandise outlet attached to one event"""
    id: int
    event_id: int
    event_title: Optional[str] = None
    name: str
    description: Optional[str] = None
    status: str
    logo_url: Optional[str] = None
    products: List[ProductSummary] = []
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class Store(BaseModel):
    """Merchandise outlet attached to one organization"""
    id: int
    org_id: int
    org_name: Optional[str] = None
    name: str
    description: Optional[str] = None
    status: str
    logo_url: Optional[str] = None
    products: List[ProductSummary] = []
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True
