"""
Report aggregations shared by the report endpoints and the Excel exports.

Each function takes a ``DateRange`` and returns plain dicts of floats so the
results can go straight into a Response or a worksheet.
"""
from decimal import Decimal

from django.db.models import Count, Sum
from django.db.models.functions import TruncDate

from backend.inventory.models import InventoryImport
from backend.orders.models import Order, OrderItem

ZERO = Decimal('0.00')


def _float(value):
    return float(value or ZERO)


def revenue_orders(date_range):
    """Orders that count as revenue: confirmed or done, created within the range"""
    return Order.objects.filter(
        status__in=Order.REVENUE_STATUSES,
        **date_range.filter_kwargs('created_at'),
    )


def period(date_range):
    return {
        'period_start': date_range.start_date.isoformat(),
        'period_end': date_range.end_date.isoformat(),
    }


def revenue_summary(date_range):
    totals = revenue_orders(date_range).aggregate(
        total_revenue=Sum('total_amount'),
        total_orders=Count('id'),
    )
    total_revenue = totals['total_revenue'] or ZERO
    total_orders = totals['total_orders']
    return {
        'total_revenue': float(total_revenue),
        'total_orders': total_orders,
        'average_order_value': float(total_revenue / total_orders) if total_orders else 0.0,
        **period(date_range),
    }


def cost_summary(date_range):
    totals = InventoryImport.objects.filter(**date_range.filter_kwargs('import_date')).aggregate(
        total_import_cost=Sum('total_price'),
        total_imports=Count('id'),
    )
    return {
        'total_import_cost': _float(totals['total_import_cost']),
        'total_imports': totals['total_imports'],
        **period(date_range),
    }


def profit_summary(date_range):
    totals = revenue_orders(date_range).aggregate(
        total_revenue=Sum('total_amount'),
        total_cost=Sum('total_cost'),
        gross_profit=Sum('total_profit'),
    )
    return {
        'total_revenue': _float(totals['total_revenue']),
        'total_cost': _float(totals['total_cost']),
        'gross_profit': _float(totals['gross_profit']),
        **period(date_range),
    }


def order_stats(date_range):
    """Order counts per status, over every order created in the range"""
    counts = dict(
        Order.objects.filter(**date_range.filter_kwargs('created_at'))
        .values_list('status')
        .annotate(count=Count('id'))
        .order_by()
    )
    return {
        'total_orders': sum(counts.values()),
        'pending_orders': counts.get(Order.STATUS_PENDING, 0),
        'confirmed_orders': counts.get(Order.STATUS_CONFIRMED, 0),
        'done_orders': counts.get(Order.STATUS_DONE, 0),
        'cancelled_orders': counts.get(Order.STATUS_CANCELLED, 0),
        **period(date_range),
    }


def top_products(date_range, limit=10):
    """Best selling variants by quantity"""
    rows = (
        OrderItem.objects.filter(order__in=revenue_orders(date_range))
        .values(
            'product_variant_id',
            'product_variant__name',
            'product_variant__unit',
            'product_variant__product_id',
            'product_variant__product__name',
        )
        .annotate(total_quantity=Sum('quantity'), total_revenue=Sum('subtotal'))
        .order_by('-total_quantity', 'product_variant_id')[:limit]
    )
    return [
        {
            'product_id': row['product_variant__product_id'],
            'product_name': row['product_variant__product__name'],
            'variant_id': row['product_variant_id'],
            'variant_name': row['product_variant__name'],
            'variant_unit': row['product_variant__unit'],
            'total_quantity': _float(row['total_quantity']),
            'total_revenue': _float(row['total_revenue']),
        }
        for row in rows
    ]


def daily_revenue(date_range):
    """One row per calendar day of the range; days without orders are zero"""
    rows = (
        revenue_orders(date_range)
        .annotate(day=TruncDate('created_at'))
        .values('day')
        .annotate(
            revenue=Sum('total_amount'),
            cost=Sum('total_cost'),
            profit=Sum('total_profit'),
            orders=Count('id'),
        )
        .order_by('day')
    )
    by_day = {row['day']: row for row in rows}

    data = []
    for day in date_range.days():
        row = by_day.get(day, {})
        data.append({
            'date': day.isoformat(),
            'revenue': _float(row.get('revenue')),
            'cost': _float(row.get('cost')),
            'profit': _float(row.get('profit')),
            'orders': row.get('orders', 0),
        })
    return data
