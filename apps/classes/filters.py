"""FilterSet definitions for the class listing."""

from __future__ import annotations

import django_filters  # type: ignore

from .models import ClassSession


class ClassSessionFilterSet(django_filters.FilterSet):
    """Filters used by the booking screens: site, day or date range, free seats."""

    sedeId = django_filters.NumberFilter(field_name="site_id", lookup_expr="exact")
    site_id = django_filters.NumberFilter(field_name="site_id", lookup_expr="exact")
    date = django_filters.DateFilter(field_name="date", lookup_expr="exact")
    date_from = django_filters.DateFilter(field_name="date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="date", lookup_expr="lte")
    has_seats = django_filters.BooleanFilter(method="filter_has_seats")

    class Meta:
        model = ClassSession
        fields = ["site_id", "date"]

    def filter_has_seats(self, queryset, name, value):  # type: ignore
        from django.db.models import F  # type: ignore

        if value:
            return queryset.filter(enrolled_count__lt=F("capacity"))
        return queryset.filter(enrolled_count__gte=F("capacity"))
