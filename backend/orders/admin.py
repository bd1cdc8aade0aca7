from django.contrib import admin
from .models import Order, OrderItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    fields = ['product_variant', 'quantity', 'unit_price', 'cost_price', 'subtotal']
    readonly_fields = fields
    can_delete = False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ['id', 'customer_name', 'phone', 'delivery_time', 'status', 'total_amount', 'created_by', 'created_at']
    list_filter = ['status', 'delivery_time', 'created_at']
    search_fields = ['customer_name', 'phone', 'address']
    ordering = ['-created_at']
    # Totals and stock are maintained by the API
    readonly_fields = ['total_amount', 'total_cost', 'total_profit', 'discount', 'status', 'created_by', 'created_at', 'updated_at']
    inlines = [OrderItemInline]
