"""Django ORM implementation of the Appointment repository."""

from __future__ import annotations

from typing import Any, Dict, Optional

import structlog
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import QuerySet

from modules.appointments.models import Appointment
from modules.appointments.repositories.interfaces import IAppointmentRepository

logger = structlog.get_logger(__name__)


class AppointmentDjangoRepository(IAppointmentRepository):
    def get_by_id(self, id: str) -> Optional[Appointment]:
        try:
            return Appointment.objects.alive().filter(id=id).first()
        except (ValueError, ValidationError):
            return None

    def get_by_ref(self, ref: str) -> Optional[Appointment]:
        return Appointment.objects.alive().filter(ref=ref).first()

    def ref_exists(self, ref: str) -> bool:
        return Appointment.objects.filter(ref=ref).exists()

    def list(self, filters: Optional[Dict[str, Any]] = None) -> QuerySet:
        queryset = Appointment.objects.alive()
        if filters:
            queryset = queryset.filter(**filters)
        return queryset

    @transaction.atomic
    def save(self, entity: Appointment) -> Appointment:
        entity.save()
        logger.info("appointment.saved", appointment_id=str(entity.id), ref=entity.ref)
        return entity

    @transaction.atomic
    def delete(self, id: str) -> bool:
        appointment = self.get_by_id(id)
        if not appointment:
            return False
        appointment.delete()
        logger.info("appointment.soft_deleted", appointment_id=str(id))
        return True
