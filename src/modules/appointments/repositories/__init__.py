"""Appointment repositories package."""

from modules.appointments.repositories.django_repository import (
    AppointmentDjangoRepository,
)
from modules.appointments.repositories.interfaces import IAppointmentRepository

__all__ = ["AppointmentDjangoRepository", "IAppointmentRepository"]
