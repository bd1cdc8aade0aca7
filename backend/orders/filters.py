import django_filters
from django.db.models import Q
from .models import Order


class OrderFilter(django_filters.FilterSet):
    """Search by customer name, phone or address and narrow by status"""
    search = django_filters.CharFilter(method='filter_search')
    status = django_filters.ChoiceFilter(choices=Order.STATUS_CHOICES)
    customer = django_filters.NumberFilter(field_name='customer_id')

    class Meta:
        model = Order
        fields = ['search', 'status', 'customer']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(
            Q(customer_name__icontains=value) |
            Q(phone__icontains=value) |
            Q(address__icontains=value)
        )
