import django_filters
from django.utils import timezone

from modules.appointments.constants import AppointmentStatus
from modules.appointments.models import Appointment


class AppointmentFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=AppointmentStatus.choices)
    date = django_filters.DateFilter(field_name="date")
    upcoming = django_filters.BooleanFilter(method="filter_upcoming")

    class Meta:
        model = Appointment
        fields = ["status", "date", "upcoming"]

    def filter_upcoming(self, queryset, name, value):
        if value:
            return queryset.filter(date__gte=timezone.localdate())
        return queryset
