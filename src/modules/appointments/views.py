"""Appointment API views.

Booking and lookup are public; listing, editing and deleting require a
staff principal.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.filters import OrderingFilter
from rest_framework.mixins import ListModelMixin
from rest_framework.permissions import AllowAny
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.appointments.dtos import BookAppointmentDTO, UpdateAppointmentDTO
from modules.appointments.filters import AppointmentFilter
from modules.appointments.models import Appointment
from modules.appointments.repositories.django_repository import (
    AppointmentDjangoRepository,
)
from modules.appointments.serializers import AppointmentSerializer
from modules.appointments.services import AppointmentService
from modules.core.permissions import IsAdminPrincipal, principal_from_request


class AppointmentViewSet(ListModelMixin, GenericViewSet):
    queryset = Appointment.objects.none()
    serializer_class = AppointmentSerializer
    filterset_class = AppointmentFilter
    filter_backends = [DjangoFilterBackend, OrderingFilter]
    ordering_fields = ["date", "created_at"]
    ordering = ["date", "slot"]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = AppointmentService(repository=AppointmentDjangoRepository())

    def get_permissions(self):
        if self.action in ("create", "retrieve"):
            return [AllowAny()]
        return [IsAdminPrincipal()]

    def get_queryset(self):
        return self._service.list()

    def create(self, request: Request) -> Response:
        """POST /api/v1/appointments/"""
        dto = BookAppointmentDTO.model_validate(request.data)
        appointment = self._service.book(dto)
        return Response(
            AppointmentSerializer(appointment).data, status=status.HTTP_201_CREATED
        )

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/appointments/{pk}/ (``pk`` may also be a reference)."""
        return Response(AppointmentSerializer(self._service.get(pk)).data)

    def partial_update(self, request: Request, pk: str | None = None) -> Response:
        """PATCH /api/v1/appointments/{pk}/"""
        dto = UpdateAppointmentDTO.model_validate(request.data)
        appointment = self._service.update(pk, dto, principal_from_request(request))
        return Response(AppointmentSerializer(appointment).data)

    def update(self, request: Request, pk: str | None = None) -> Response:
        return self.partial_update(request, pk)

    def destroy(self, request: Request, pk: str | None = None) -> Response:
        """DELETE /api/v1/appointments/{pk}/"""
        self._service.delete(pk, principal_from_request(request))
        return Response(status=status.HTTP_204_NO_CONTENT)
