import django_filters
from django.db.models import Q
from .models import Category, Product


class CategoryFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = Category
        fields = ['search', 'is_active']


class ProductFilter(django_filters.FilterSet):
    """Search by name or description, narrow by category and active flag"""
    search = django_filters.CharFilter(method='filter_search')
    category = django_filters.NumberFilter(field_name='category_id')
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = Product
        fields = ['search', 'category', 'is_active']

    def filter_search(self, queryset, name, value):
        value = value.strip()
        if not value:
            return queryset
        return queryset.filter(Q(name__icontains=value) | Q(description__icontains=value))
