import django_filters
from django.db.models import Q
from .models import User, AuditLog


class UserFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search')
    role = django_filters.ChoiceFilter(choices=User.ROLE_CHOICES)
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = User
        fields = ['search', 'role', 'is_active']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(email__icontains=value))


class AuditLogFilter(django_filters.FilterSet):
    action = django_filters.CharFilter(field_name='action')
    model = django_filters.CharFilter(field_name='model_name', lookup_expr='iexact')
    user = django_filters.NumberFilter(field_name='user_id')

    class Meta:
        model = AuditLog
        fields = ['action', 'model', 'user']
