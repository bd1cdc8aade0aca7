from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from backend.core.exceptions import ValidationException
from backend.parties.models import Customer
from .models import Order, OrderItem
from .utils import apply_totals, build_order_items, restore_stock, take_stock


class OrderItemSerializer(serializers.ModelSerializer):
    product_id = serializers.IntegerField(source='product_variant.product_id', read_only=True)
    product_name = serializers.CharField(source='product_variant.product.name', read_only=True)
    variant_name = serializers.CharField(source='product_variant.name', read_only=True)
    unit = serializers.CharField(source='product_variant.unit', read_only=True)

    class Meta:
        model = OrderItem
        fields = ['id', 'product_variant', 'product_id', 'product_name', 'variant_name', 'unit',
                  'quantity', 'unit_price', 'cost_price', 'subtotal']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    items = OrderItemSerializer(many=True, read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)
    created_by_name = serializers.CharField(source='created_by.name', read_only=True, default=None)

    class Meta:
        model = Order
        fields = ['id', 'customer_name', 'phone', 'address', 'delivery_time', 'status', 'status_display',
                  'total_amount', 'total_cost', 'total_profit', 'discount', 'note', 'customer',
                  'created_by', 'created_by_name', 'items', 'created_at', 'updated_at']
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    items_count = serializers.IntegerField(source='items.count', read_only=True)
    status_display = serializers.CharField(source='get_status_display', read_only=True)

    class Meta:
        model = Order
        fields = ['id', 'customer_name', 'phone', 'address', 'delivery_time', 'status', 'status_display',
                  'total_amount', 'discount', 'total_profit', 'items_count', 'customer', 'created_at']
        read_only_fields = fields


class OrderItemInputSerializer(serializers.Serializer):
    product_variant_id = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=Decimal('0.001'))


class OrderWriteSerializer(serializers.Serializer):
    """Order payload shared by create and update"""
    customer_name = serializers.CharField(min_length=1, max_length=100)
    phone = serializers.CharField(min_length=1, max_length=20)
    address = serializers.CharField(min_length=1, max_length=500)
    delivery_time = serializers.DateTimeField()
    note = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    discount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0'), required=False)
    customer_id = serializers.IntegerField(required=False, allow_null=True)
    items = OrderItemInputSerializer(many=True, required=False)

    def validate_customer_id(self, value):
        if value is not None and not Customer.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Customer not found')
        return value

    def validate_items(self, value):
        if not value:
            raise serializers.ValidationError('At least one item is required')
        return value


class OrderCreateSerializer(OrderWriteSerializer):

    def validate(self, attrs):
        if 'items' not in attrs:
            raise serializers.ValidationError({'items': 'At least one item is required'})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        items_input = validated_data.pop('items')
        validated_data.setdefault('discount', Decimal('0.00'))

        items = build_order_items(items_input)
        order = Order(status=Order.STATUS_PENDING, **validated_data)
        apply_totals(order, items)
        order.save()

        for item in items:
            item.order = order
        OrderItem.objects.bulk_create(items)
        take_stock(items)
        return order


class OrderUpdateSerializer(OrderWriteSerializer):
    status = serializers.ChoiceField(choices=Order.STATUS_CHOICES, required=False)

    @transaction.atomic
    def update(self, instance, validated_data):
        order = Order.objects.select_for_update().get(pk=instance.pk)
        old_status = order.status
        new_status = validated_data.get('status', old_status)

        if order.is_closed and validated_data.get('status') not in Order.CLOSED_STATUSES:
            raise ValidationException('Cannot update completed or cancelled orders')

        items_input = validated_data.pop('items', None)
        if items_input is not None and old_status != Order.STATUS_PENDING:
            raise ValidationException('Items can only be changed on pending orders')

        held_before = old_status != Order.STATUS_CANCELLED
        held_after = new_status != Order.STATUS_CANCELLED
        old_items = list(order.items.all())

        # Stock follows the items while the order is not cancelled
        if held_before and (items_input is not None or not held_after):
            restore_stock(old_items)

        for attr, value in validated_data.items():
            setattr(order, attr, value)

        if items_input is not None:
            items = build_order_items(items_input)
            apply_totals(order, items)
            order.items.all().delete()
            for item in items:
                item.order = order
            OrderItem.objects.bulk_create(items)
        else:
            items = old_items
            if 'discount' in validated_data:
                apply_totals(order, items)

        order.save()

        if held_after and (items_input is not None or not held_before):
            take_stock(items)
        return order
