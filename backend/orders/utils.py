"""Pricing and stock movements for orders"""
import logging
from decimal import Decimal

from django.db.models import F
from django.utils import timezone

from backend.catalog.models import ProductVariant
from backend.core.exceptions import ValidationException
from .models import OrderItem

logger = logging.getLogger(__name__)

CENT = Decimal('0.01')


def build_order_items(items_input):
    """
    Turn ``[{'product_variant_id', 'quantity'}]`` into unsaved OrderItems
    priced from the variants' current selling and cost prices.

    Every variant must exist and be sellable.
    """
    variant_ids = [entry['product_variant_id'] for entry in items_input]
    variants = ProductVariant.objects.select_related('product').in_bulk(variant_ids)

    items = []
    for entry in items_input:
        variant = variants.get(entry['product_variant_id'])
        if variant is None:
            raise ValidationException(f"Product variant {entry['product_variant_id']} not found")
        if not variant.is_active or not variant.product.is_active:
            raise ValidationException(f"Product variant {variant.product.name} - {variant.name} is not active")

        quantity = entry['quantity']
        items.append(OrderItem(
            product_variant=variant,
            quantity=quantity,
            unit_price=variant.selling_price,
            cost_price=variant.cost_price,
            subtotal=(variant.selling_price * quantity).quantize(CENT),
        ))
    return items


def apply_totals(order, items):
    """Recompute the order's money fields from its items and discount"""
    subtotal = sum((item.subtotal for item in items), Decimal('0.00'))
    if order.discount > subtotal:
        raise ValidationException('Discount cannot exceed the order subtotal')

    order.total_cost = sum(((item.cost_price * item.quantity).quantize(CENT) for item in items), Decimal('0.00'))
    order.total_amount = subtotal - order.discount
    order.total_profit = order.total_amount - order.total_cost
    return order


def _move_stock(items, sign):
    now = timezone.now()
    for item in items:
        ProductVariant.objects.filter(pk=item.product_variant_id).update(
            stock_quantity=F('stock_quantity') + sign * item.quantity,
            updated_at=now,
        )


def take_stock(items):
    """Decrement variant stock for the ordered quantities; call inside a transaction"""
    _move_stock(items, -1)
    logger.info(f"Stock taken for {len(items)} order item(s)")


def restore_stock(items):
    """Give the ordered quantities back to the variants; call inside a transaction"""
    _move_stock(items, 1)
    logger.info(f"Stock restored for {len(items)} order item(s)")
