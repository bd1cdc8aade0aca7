import django_filters
from django.db.models import Q
from .models import Customer


class CustomerFilter(django_filters.FilterSet):
    """Search customers by name, phone or address"""
    search = django_filters.CharFilter(method='filter_search')

    class Meta:
        model = Customer
        fields = ['search']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(name__icontains=value) |
            Q(phone__icontains=value) |
            Q(address__icontains=value)
        )
