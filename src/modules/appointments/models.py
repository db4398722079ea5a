"""Eye-clinic appointment booking.

Business rules implemented:
- ``ref`` (``CEC-YYYYMMDD-XXXX``) is unique and never changes.
- Email is stored lower-cased; names, phone, service and slot trimmed.
- Soft delete via ``deleted_at`` (inherited from SoftDeleteModel).
"""

from __future__ import annotations

from django.db import models

from modules.appointments.constants import AppointmentStatus, ContactPreference
from modules.core.models import SoftDeleteModel


class Appointment(SoftDeleteModel):
    ref = models.CharField(max_length=32, unique=True, editable=False)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField()
    phone = models.CharField(max_length=32)
    service = models.CharField(max_length=120)
    date = models.DateField()
    slot = models.CharField(max_length=32)
    contact_pref = models.CharField(
        max_length=10,
        choices=ContactPreference.choices,
        default=ContactPreference.WHATSAPP,
    )
    notes = models.TextField(blank=True, default="")
    status = models.CharField(
        max_length=20,
        choices=AppointmentStatus.choices,
        default=AppointmentStatus.PENDING,
    )

    class Meta:
        db_table = "appointments"
        ordering = ["date", "slot"]
        indexes = [
            models.Index(fields=["date"], name="appointments_date_idx"),
            models.Index(fields=["status"], name="appointments_status_idx"),
            models.Index(fields=["email"], name="appointments_email_idx"),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __str__(self) -> str:
        return f"{self.ref} {self.full_name} ({self.date} {self.slot})"
