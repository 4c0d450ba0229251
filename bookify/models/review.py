from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional
from datetime import datetime
from uuid import UUID


class ReviewType:
    EVENT = "Event"
    PRODUCT = "Product"


class ReviewCreate(BaseModel):
    event_id: Optional[int] = None
    product_id: Optional[int] = None
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)

    @model_validator(mode='after')
    def check_single_target(self):
        if (self.event_id is None) == (self.product_id is None):
            raise ValueError("Review must target exactly one of event_id or product_id")
        return self


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(None, ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


class Review(BaseModel):
    id: int
    user_id: str
    username: Optional[str] = None
    event_id: Optional[int] = None
    product_id: Optional[int] = None
    review_type: str
    rating: int
    comment: Optional[str] = None
    created_on: datetime
    updated_on: Optional[datetime] = None

    @field_validator('user_id', mode='before')
    @classmethod
    def convert_uuid(cls, v):
        if isinstance(v, UUID):
            return str(v)
        return v

    class Config:
        from_attributes = True


class RatingSummary(BaseModel):
    average_rating: Optional[float] = None
    count: int = 0
