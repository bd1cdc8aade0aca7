from django.urls import path
from . import views

urlpatterns = [
    path('reports/revenue/', views.revenue_report, name='revenue-report'),
    path('reports/costs/', views.cost_report, name='cost-report'),
    path('reports/profit/', views.profit_report, name='profit-report'),
    path('reports/orders-stats/', views.orders_stats_report, name='orders-stats-report'),
    path('reports/top-products/', views.top_products_report, name='top-products-report'),
    path('reports/daily-revenue/', views.daily_revenue_report, name='daily-revenue-report'),
]
