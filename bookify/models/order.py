from pydantic import BaseModel
from typing import Optional, List
from datetime import datetime
from decimal import Decimal
from enum import Enum
from bookify.models.cart import ItemType


class OrderStatus(str, Enum):
    UNPAID = "Unpaid"
    UNDER_REVIEW = "UnderReview"
    DELIVERED = "Delivered"


class OrderItem(BaseModel):
    id: int
    item_id: int
    item_type: ItemType
    name: Optional[str] = None
    quantity: int
    unit_price: Decimal
    total: Decimal


class OrderPaymentInfo(BaseModel):
    id: int
    payment_method: str
    payment_reference: str
    status: str


class OrderSummary(BaseModel):
    id: int
    order_date: datetime
    status: OrderStatus
    total_amount: Decimal
    discount_amount: Decimal = Decimal("0")
    amount_due: Decimal
    items_count: int = 0
    payment_status: Optional[str] = None


class Order(OrderSummary):
    user_id: str
    redemption_id: Optional[int] = None
    items: List[OrderItem] = []
    payment: Optional[OrderPaymentInfo] = None
