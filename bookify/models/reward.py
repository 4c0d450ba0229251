from pydantic import BaseModel, Field, model_validator
from typing import Optional
from datetime import datetime
from decimal import Decimal
from enum import Enum


class RedemptionStatus(str, Enum):
    UNUSED = "Unused"
    APPLIED = "Applied"
    USED = "Used"


class RewardCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    points_required: int = Field(..., ge=0)
    reward_type: str = Field(..., min_length=1, max_length=20)
    discount: Decimal = Field(Decimal("0"), ge=0, le=100)
    expire_date: Optional[datetime] = None
    status: bool = True
    item_product_id: Optional[int] = None
    item_ticket_id: Optional[int] = None

    @model_validator(mode='after')
    def check_single_item(self):
        if (self.item_product_id is None) == (self.item_ticket_id is None):
            raise ValueError("Reward must reference exactly one of item_product_id or item_ticket_id")
        return self


class RewardUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    points_required: Optional[int] = Field(None, ge=0)
    reward_type: Optional[str] = Field(None, min_length=1, max_length=20)
    discount: Optional[Decimal] = Field(None, ge=0, le=100)
    expire_date: Optional[datetime] = None
    status: Optional[bool] = None
    item_product_id: Optional[int] = None
    item_ticket_id: Optional[int] = None

    @model_validator(mode='after')
    def check_single_item(self):
        if self.item_product_id is not None and self.item_ticket_id is not None:
            raise ValueError("Reward cannot reference both a product and a ticket")
        return self


class Reward(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    points_required: int
    reward_type: str
    discount: Decimal = Decimal("0")
    expire_date: Optional[datetime] = None
    status: bool
    item_product_id: Optional[int] = None
    item_ticket_id: Optional[int] = None
    created_on: Optional[datetime] = None

    class Config:
        from_attributes = True


class RedemptionCreate(BaseModel):
    reward_id: int


class Redemption(BaseModel):
    id: int
    reward_id: int
    reward_name: Optional[str] = None
    reward_type: Optional[str] = None
    points_spent: int
    status: RedemptionStatus
    order_id: Optional[int] = None
    redeemed_at: datetime
    username: Optional[str] = None


class RedemptionResult(BaseModel):
    redemption: Redemption
    remaining_points: int
