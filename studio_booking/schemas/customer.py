from datetime import date
from typing import Optional

from pydantic import BaseModel, Field


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    name_kana: Optional[str] = Field(None, max_length=255)
    line_id: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    membership_type: str = "regular"


class CustomerCreate(CustomerBase):
    last_booking_date: Optional[date] = None


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    name_kana: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    membership_type: Optional[str] = None
    is_active: Optional[bool] = None


class Customer(CustomerBase):
    id: int
    cancellation_count: int = 0
    last_booking_date: Optional[date] = None
    is_active: bool = True

    model_config = {"from_attributes": True}
