from __future__ import annotations

from rest_framework import serializers

from modules.appointments.models import Appointment


class AppointmentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Appointment
        fields = [
            "id",
            "ref",
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
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields
