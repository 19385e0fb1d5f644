# backend/event_horizon/models.py
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Role(str, Enum):
    admin = "admin"
    member = "member"


class PaymentStatus(str, Enum):
    completed = "completed"
    failed = "failed"
    pending = "pending"


class Record(BaseModel):
    model_config = ConfigDict(frozen=True)


class Principal(Record):
    id: str
    display_name: str = ""
    email: str = ""
    role: Role = Role.member

    @field_validator("display_name", "email", mode="before")
    @classmethod
    def _coerce_none_strings(cls, value):
        return "" if value is None else value

    @field_validator("role", mode="before")
    @classmethod
    def _unknown_role_is_member(cls, value):
        # profiles only ever grant admin explicitly
        return value if value in (Role.admin, Role.admin.value) else Role.member

    @property
    def is_admin(self) -> bool:
        return self.role is Role.admin


class EventDraft(Record):
    name: str = Field(..., min_length=1)
    description: str = ""
    category: str = ""
    occurs_at: datetime
    venue: str = ""
    price: Decimal = Field(Decimal("0"), ge=0)
    image_ref: Optional[str] = None


class EventRecord(EventDraft):
    id: str
    owner_id: str


class BookingRecord(Record):
    id: str
    event_id: str
    user_id: str
    booked_at: datetime


class PaymentRecord(Record):
    id: str
    event_id: Optional[str] = None
    amount: Decimal
    status: PaymentStatus
    occurred_at: datetime


class EventRevenue(Record):
    event: EventRecord
    booking_count: int
    revenue: Decimal


class AuthUser(Record):
    id: str
    email: Optional[str] = None


class AuthSession(Record):
    access_token: str
    refresh_token: Optional[str] = None
    user: AuthUser
