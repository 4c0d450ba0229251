from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID


class PaymentStatus(str, Enum):
    PENDING = "Pending"
    VALID = "Valid"
    DECLINED = "Declined"


class PaymentCreate(BaseModel):
    order_id: int
    payment_method: str = Field(..., min_length=1, max_length=50, description="card, wallet, instapay...")
    payment_reference: str = Field(..., min_length=1, max_length=100, description="Masked card, phone or handle")


class PaymentUpdate(BaseModel):
    payment_method: Optional[str] = Field(None, min_length=1, max_length=50)
    payment_reference: Optional[str] = Field(None, min_length=1, max_length=100)


class PaymentReview(BaseModel):
    """Admin decision on a submitted payment"""
    status: str


class Payment(BaseModel):
    id: int
    order_id: int
    payment_method: str
    payment_reference: str
    status: PaymentStatus
    created_on: Optional[datetime] = None
    updated_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class PaymentAdminView(Payment):
    user_id: str
    username: Optional[str] = None
    order_status: str
    total_amount: Decimal
    amount_due: Decimal

    @field_validator('user_id', mode='before')
    @classmethod
    def convert_uuid(cls, v):
        if isinstance(v, UUID):
            return str(v)
        return v


class PaymentReviewResult(BaseModel):
    payment_id: int
    order_id: int
    payment_status: PaymentStatus
    order_status: str
    points_awarded: int = 0
