from pydantic import BaseModel, Field
from typing import List
from decimal import Decimal
from enum import Enum


class ItemType(str, Enum):
    TICKET = "ticket"
    PRODUCT = "product"


class CartItemCreate(BaseModel):
    item_id: int
    item_type: ItemType
    quantity: int = Field(1, ge=1, le=100)


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1, le=100)


class CartItem(BaseModel):
    cart_item_id: int
    item_id: int
    item_type: ItemType
    name: str
    quantity: int
    unit_price: Decimal
    total: Decimal


class Cart(BaseModel):
    cart_id: int
    items: List[CartItem] = []
    subtotal: Decimal = Decimal("0")
    items_count: int = 0
