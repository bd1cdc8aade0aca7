from django.urls import path

from . import views

urlpatterns = [
    path('export/orders/', views.export_orders, name='export-orders'),
    path('export/revenue/', views.export_revenue, name='export-revenue'),
    path('export/customers/', views.export_customers, name='export-customers'),
    path('export/products/', views.export_products, name='export-products'),
    path('export/inventory-imports/', views.export_inventory_imports, name='export-inventory-imports'),
]
