"""Appointment domain constants."""

from django.db import models


class AppointmentStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CONFIRMED = "confirmed", "Confirmed"
    COMPLETED = "completed", "Completed"
    CANCELLED = "cancelled", "Cancelled"


class ContactPreference(models.TextChoices):
    WHATSAPP = "WhatsApp", "WhatsApp"
    EMAIL = "Email", "Email"
    PHONE = "Phone", "Phone"
