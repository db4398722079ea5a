"""Appointment URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.appointments.views import AppointmentViewSet

router = DefaultRouter(trailing_slash=True)
router.register("appointments", AppointmentViewSet, basename="appointment")

urlpatterns = router.urls
