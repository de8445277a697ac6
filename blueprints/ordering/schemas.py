from __future__ import annotations
import re
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .stores import OrderStatus

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# ---------- Customer ----------
class PreOrderIn(BaseModel):
    # форма шлёт camelCase, API-клиенты могут слать snake_case
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    item: str = Field(min_length=1)
    quantity: int = Field(ge=1)
    customer_name: str = Field(alias="customerName", min_length=1, max_length=255)
    customer_email: str = Field(alias="customerEmail", max_length=255)

    @field_validator("customer_email")
    @classmethod
    def _email(cls, v: str):
        if not EMAIL_RE.match(v):
            raise ValueError("invalid_email")
        return v.lower()

class ConfirmOrderIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    # принадлежность к списку слотов проверяет commit (invalid_time_slot)
    time_slot: str = Field(alias="timeSlot", min_length=1)

# ---------- Admin ----------
class StatusIn(BaseModel):
    status: OrderStatus

    @field_validator("status", mode="before")
    @classmethod
    def _lower(cls, v):
        return v.strip().lower() if isinstance(v, str) else v
