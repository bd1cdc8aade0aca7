from django.urls import path
from . import views

urlpatterns = [
    # Category endpoints
    path('categories/', views.category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', views.category_detail, name='category-detail'),

    # Product endpoints
    path('products/', views.product_list_create, name='product-list-create'),
    path('products/<int:pk>/', views.product_detail, name='product-detail'),

    # Variant endpoints
    path('products/<int:pk>/variants/', views.product_variant_list_create, name='product-variant-list-create'),
    path('products/<int:pk>/variants/<int:variant_pk>/', views.product_variant_detail, name='product-variant-detail'),
]
