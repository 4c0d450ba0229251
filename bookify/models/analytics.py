from pydantic import BaseModel, field_validator
from typing import Optional
from decimal import Decimal
from uuid import UUID


class _UserRow(BaseModel):
    user_id: str
    user_name: Optional[str] = None

    @field_validator('user_id', mode='before')
    @classmethod
    def convert_uuid(cls, v):
        if isinstance(v, UUID):
            return str(v)
        return v


class OrgEarnings(BaseModel):
    org_id: int
    org_name: str
    total_earnings: Decimal


class EventAttendance(BaseModel):
    event_id: int
    event_title: str
    tickets_sold: int


class UserActivity(BaseModel):
    total_users: int
    active_users: int


class UserPayments(_UserRow):
    total_paid: Decimal


class TopEvent(BaseModel):
    event_id: int
    event_title: str
    revenue: Decimal


class UserLoyalty(_UserRow):
    total_orders: int
    total_spent: Decimal
    loyalty_points: int


class RefundableTickets(BaseModel):
    event_id: int
    event_title: str
    refundable_tickets: int


class OrgRevenueBreakdown(BaseModel):
    org_id: int
    org_name: str
    ticket_revenue: Decimal
    shop_revenue: Decimal
    store_revenue: Decimal
    total_revenue: Decimal


class UserEngagement(_UserRow):
    events_attended: int
    products_purchased: int
    reviews_written: int
    loyalty_points: int
    engagement_score: float


class DashboardStats(BaseModel):
    total_organizations: int
    total_admins: int
    total_organizers: int
    total_users: int
    total_events: int
    total_tickets_sold: int
    total_products_sold: int
    top_product_id: Optional[int] = None
    top_product_name: Optional[str] = None
    top_product_sold: int = 0
    top_event_id: Optional[int] = None
    top_event_title: Optional[str] = None
    top_event_tickets_sold: int = 0
