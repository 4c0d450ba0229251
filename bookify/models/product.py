from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal


class ProductCreate(BaseModel):
    """Validated product form; belongs to exactly one shop or store"""
    shop_id: Optional[int] = None
    store_id: Optional[int] = None
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    price: Decimal = Field(..., ge=0)
    stock_quantity: int = Field(..., ge=0)
    limit_per_user: int = Field(1, ge=1)
    discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    points_earned_per_unit: int = Field(0, ge=0)

    @model_validator(mode='after')
    def check_single_outlet(self):
        if (self.shop_id is None) == (self.store_id is None):
            raise ValueError("Provide exactly one of shop_id or store_id")
        return self


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    stock_quantity: Optional[int] = Field(None, ge=0)
    limit_per_user: Optional[int] = Field(None, ge=1)
    discount: Optional[Decimal] = Field(None, ge=0, le=100)
    points_earned_per_unit: Optional[int] = Field(None, ge=0)


class ProductSummary(BaseModel):
    id: int
    name: str
    price: Decimal
    discount: Decimal = Decimal("0")
    final_price: Decimal
    remaining: int
    image_url: Optional[str] = None

    class Config:
        from_attributes = True


class Product(ProductSummary):
    shop_id: Optional[int] = None
    store_id: Optional[int] = None
    org_name: Optional[str] = None
    description: Optional[str] = None
    stock_quantity: int
    quantity_sold: int
    limit_per_user: int
    points_earned_per_unit: int = 0
    average_rating: Optional[float] = None
    created_on: Optional[datetime] = None
