"""Appointment service layer.

Booking is public; every other mutation requires an admin principal.
References share the order reference generator with its own prefix.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog
from django.conf import settings
from django.db import transaction

from modules.appointments.exceptions import AppointmentNotFound
from modules.appointments.models import Appointment
from modules.core.permissions import AdminPrincipal, require_admin
from modules.core.references import ReferenceGenerator, looks_like_ref, normalize_ref

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from modules.appointments.dtos import BookAppointmentDTO, UpdateAppointmentDTO
    from modules.appointments.repositories.interfaces import IAppointmentRepository

logger = structlog.get_logger(__name__)

UPDATABLE_FIELDS = (
    "first_name",
    "last_name",
    "email",
    "phone",
    "service",
    "date",
    "slot",
    "contact_pref",
    "notes",
    "status",
)


class AppointmentService:
    def __init__(
        self,
        repository: IAppointmentRepository,
        references: Optional[ReferenceGenerator] = None,
    ) -> None:
        self._repo = repository
        self._references = references or ReferenceGenerator()

    @transaction.atomic
    def book(self, dto: BookAppointmentDTO) -> Appointment:
        """Create a ``pending`` appointment with a fresh reference.

        Raises:
            ReferenceCollision: no unused reference could be minted.
        """
        ref = self._references.mint_unique(
            settings.APPOINTMENT_REF_PREFIX, self._repo.ref_exists
        )
        appointment = self._repo.save(Appointment(ref=ref, **dto.model_dump()))
        logger.info(
            "appointment.booked",
            appointment_id=str(appointment.id),
            ref=ref,
            date=str(appointment.date),
            slot=appointment.slot,
        )
        return appointment

    @transaction.atomic
    def update(
        self, id: str, dto: UpdateAppointmentDTO, principal: Optional[AdminPrincipal]
    ) -> Appointment:
        require_admin(principal)
        appointment = self.get(id)
        previous_status = appointment.status
        for field in UPDATABLE_FIELDS:
            value = getattr(dto, field)
            if value is not None:
                setattr(appointment, field, value)
        appointment = self._repo.save(appointment)
        logger.info(
            "appointment.updated",
            appointment_id=str(appointment.id),
            old_status=previous_status,
            new_status=appointment.status,
            admin=str(principal),
        )
        return appointment

    @transaction.atomic
    def delete(self, id: str, principal: Optional[AdminPrincipal]) -> None:
        require_admin(principal)
        if not self._repo.delete(id):
            raise AppointmentNotFound(f"Appointment {id} not found.")

    def get(self, id: str) -> Appointment:
        """Look up by id, or by reference when given one."""
        if looks_like_ref(id):
            appointment = self._repo.get_by_ref(normalize_ref(id))
        else:
            appointment = self._repo.get_by_id(id)
        if not appointment:
            raise AppointmentNotFound(f"Appointment {id} not found.")
        return appointment

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        return self._repo.list(filters)
