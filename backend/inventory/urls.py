from django.urls import path
from . import views

urlpatterns = [
    # Ingredient endpoints
    path('ingredients/', views.ingredient_list_create, name='ingredient-list-create'),
    path('ingredients/active/', views.ingredient_active_list, name='ingredient-active-list'),
    path('ingredients/<int:pk>/', views.ingredient_detail, name='ingredient-detail'),

    # Inventory import endpoints
    path('inventory-imports/', views.inventory_import_list_create, name='inventory-import-list-create'),
    path('inventory-imports/stats/', views.inventory_import_stats, name='inventory-import-stats'),
    path('inventory-imports/<int:pk>/', views.inventory_import_detail, name='inventory-import-detail'),
]
