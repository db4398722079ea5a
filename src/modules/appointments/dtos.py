"""Appointment DTOs (Pydantic v2, immutable)."""

from __future__ import annotations

import re
import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator

from modules.appointments.constants import AppointmentStatus, ContactPreference

EMAIL_PATTERN = re.compile(r"^\S+@\S+\.\S+$")


def _validate_email(v: str) -> str:
    v = v.strip().lower()
    if not EMAIL_PATTERN.match(v):
        raise ValueError("Please enter a valid email.")
    return v


class BookAppointmentDTO(BaseModel):
    model_config = ConfigDict(frozen=True)

    first_name: str
    last_name: str
    email: str
    phone: str
    service: str
    date: datetime.date
    slot: str
    contact_pref: ContactPreference = ContactPreference.WHATSAPP
    notes: str = ""

    @field_validator("first_name", "last_name", "phone", "service", "slot")
    @classmethod
    def must_not_be_blank(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Field must not be empty.")
        return v.strip()

    @field_validator("email")
    @classmethod
    def email_must_be_valid(cls, v: str) -> str:
        return _validate_email(v)

    @field_validator("notes")
    @classmethod
    def strip_notes(cls, v: str) -> str:
        return v.strip()


class UpdateAppointmentDTO(BaseModel):
    """Admin edit; ``None`` means leave unchanged."""

    model_config = ConfigDict(frozen=True)

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    service: Optional[str] = None
    date: Optional[datetime.date] = None
    slot: Optional[str] = None
    contact_pref: Optional[ContactPreference] = None
    notes: Optional[str] = None
    status: Optional[AppointmentStatus] = None

    @field_validator("first_name", "last_name", "phone", "service", "slot")
    @classmethod
    def must_not_be_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("Field must not be empty.")
        return v.strip() if v is not None else v

    @field_validator("email")
    @classmethod
    def email_must_be_valid(cls, v: Optional[str]) -> Optional[str]:
        return _validate_email(v) if v is not None else v
