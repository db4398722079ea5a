"""Appointment domain exceptions."""

from __future__ import annotations

from modules.core.exceptions import NotFound


class AppointmentNotFound(NotFound):
    """The requested appointment does not exist or has been soft-deleted."""

    code = "appointment_not_found"
