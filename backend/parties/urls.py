from django.urls import path
from . import views

urlpatterns = [
    # Customer endpoints
    path('customers/', views.customer_list_create, name='customer-list-create'),
    path('customers/<int:pk>/', views.customer_detail, name='customer-detail'),
    path('customers/<int:pk>/orders/', views.customer_orders, name='customer-orders'),
]
