import django_filters
from .models import Ingredient, InventoryImport


class IngredientFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(field_name='name', lookup_expr='icontains')
    is_active = django_filters.BooleanFilter()

    class Meta:
        model = Ingredient
        fields = ['search', 'is_active']


class InventoryImportFilter(django_filters.FilterSet):
    ingredient = django_filters.NumberFilter(field_name='ingredient_id')

    class Meta:
        model = InventoryImport
        fields = ['ingredient']
