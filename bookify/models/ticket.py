from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal


class TicketCreate(BaseModel):
    event_id: int
    ticket_type: str = Field(..., min_length=1, max_length=50)
    quantity_available: int = Field(..., ge=0)
    price: Decimal = Field(Decimal("0"), ge=0)
    limit_per_user: int = Field(1, ge=1)
    discount: Decimal = Field(Decimal("0"), ge=0, le=100, description="Discount percentage")
    is_refundable: bool = False
    points_earned_per_unit: int = Field(0, ge=0)
    seats_description: Optional[str] = Field(None, max_length=500)


class TicketUpdate(BaseModel):
    """Numeric fields only apply when positive"""
    ticket_type: Optional[str] = Field(None, max_length=50)
    quantity_available: Optional[int] = None
    price: Optional[Decimal] = None
    limit_per_user: Optional[int] = None
    discount: Optional[Decimal] = Field(None, ge=0, le=100)
    is_refundable: Optional[bool] = None
    points_earned_per_unit: Optional[int] = None
    seats_description: Optional[str] = Field(None, max_length=500)


class Ticket(BaseModel):
    id: int
    event_id: int
    ticket_type: str
    price: Decimal
    quantity_available: int
    quantity_sold: int
    remaining: int
    limit_per_user: int
    discount: Decimal = Decimal("0")
    final_price: Decimal
    is_refundable: bool = False
    points_earned_per_unit: int = 0
    seats_description: Optional[str] = None
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True
