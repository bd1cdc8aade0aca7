from django.urls import path
from . import views

urlpatterns = [
    # Order endpoints
    path('orders/', views.order_list_create, name='order-list-create'),
    path('orders/upcoming/', views.order_upcoming, name='order-upcoming'),
    path('orders/<int:pk>/', views.order_detail, name='order-detail'),
]
