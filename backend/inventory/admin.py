from django.contrib import admin
from .models import Ingredient, InventoryImport


@admin.register(Ingredient)
class IngredientAdmin(admin.ModelAdmin):
    list_display = ['name', 'unit', 'stock_quantity', 'is_active', 'updated_at']
    list_filter = ['is_active', 'unit']
    search_fields = ['name']
    ordering = ['name']
    readonly_fields = ['stock_quantity', 'created_at', 'updated_at']


@admin.register(InventoryImport)
class InventoryImportAdmin(admin.ModelAdmin):
    list_display = ['ingredient', 'quantity', 'import_price', 'total_price', 'import_date', 'created_by']
    list_filter = ['import_date', 'ingredient']
    search_fields = ['ingredient__name', 'note']
    ordering = ['-import_date']
    # Stock is only adjusted through the API, so imports are read-only here
    readonly_fields = ['ingredient', 'quantity', 'import_price', 'total_price', 'import_date', 'created_by', 'created_at', 'updated_at']
