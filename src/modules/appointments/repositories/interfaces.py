"""Appointment repository interface."""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Optional

from modules.core.repositories.interfaces import IRepository

if TYPE_CHECKING:
    from modules.appointments.models import Appointment


class IAppointmentRepository(IRepository["Appointment"]):
    @abstractmethod
    def get_by_ref(self, ref: str) -> Optional[Appointment]:
        """Retrieve an appointment by its human-readable reference."""

    @abstractmethod
    def ref_exists(self, ref: str) -> bool:
        """Whether any appointment (deleted ones included) uses ``ref``."""
