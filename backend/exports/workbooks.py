"""
Excel workbooks for the back office exports.

Each builder returns the ``.xlsx`` file content as bytes.
"""
import logging
from decimal import Decimal
from io import BytesIO

from django.db.models import Count, DecimalField, Prefetch, Q, Sum, Value
from django.db.models.functions import Coalesce
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from backend.catalog.models import Product, ProductVariant
from backend.inventory.models import InventoryImport
from backend.orders.models import Order, OrderItem
from backend.parties.models import Customer
from backend.reports import queries

logger = logging.getLogger(__name__)

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

HEADER_FILL = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
HEADER_FONT = Font(bold=True, color="FFFFFF")
TOTAL_FONT = Font(bold=True)
MAX_COLUMN_WIDTH = 50


def _local(value):
    """Excel has no time zones: write aware datetimes as naive local time"""
    if value is None:
        return None
    return timezone.localtime(value).replace(tzinfo=None)


def _money(value):
    return float(value) if value is not None else 0.0


def _write_table(ws, headers, rows):
    """Styled header row followed by ``rows``, with columns sized to their content"""
    ws.append(headers)
    for cell in ws[1]:
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.alignment = Alignment(horizontal="center")

    widths = [len(str(header)) for header in headers]
    for row in rows:
        ws.append(row)
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(str(value)) if value is not None else 0)

    for index, width in enumerate(widths, start=1):
        ws.column_dimensions[get_column_letter(index)].width = min(width + 2, MAX_COLUMN_WIDTH)
    ws.freeze_panes = "A2"


def _new_workbook(first_title):
    wb = Workbook()
    wb.active.title = first_title
    return wb


def _to_bytes(wb):
    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def orders_workbook(date_range):
    orders = list(
        Order.objects.filter(**date_range.filter_kwargs('created_at'))
        .select_related('created_by')
        .prefetch_related(Prefetch('items', queryset=OrderItem.objects.select_related('product_variant__product')))
        .order_by('-created_at')
    )

    wb = _new_workbook("Orders")
    _write_table(
        wb.active,
        ["Order", "Customer", "Phone", "Address", "Total", "Discount", "Profit", "Status",
         "Delivery time", "Note", "Created at", "Created by"],
        [
            [
                f"#{order.id}",
                order.customer_name,
                order.phone,
                order.address,
                _money(order.total_amount),
                _money(order.discount),
                _money(order.total_profit),
                order.get_status_display(),
                _local(order.delivery_time),
                order.note,
                _local(order.created_at),
                order.created_by.name if order.created_by else '',
            ]
            for order in orders
        ],
    )

    item_rows = [
        [
            f"#{order.id}",
            order.customer_name,
            item.product_variant.product.name,
            item.product_variant.name,
            item.product_variant.unit,
            float(item.quantity),
            _money(item.unit_price),
            _money(item.subtotal),
        ]
        for order in orders
        for item in order.items.all()
    ]
    if item_rows:
        _write_table(
            wb.create_sheet("Order Items"),
            ["Order", "Customer", "Product", "Variant", "Unit", "Quantity", "Unit price", "Subtotal"],
            item_rows,
        )

    logger.info(f"Exported {len(orders)} order(s) for {date_range.label()}")
    return _to_bytes(wb)


def revenue_workbook(date_range):
    summary = queries.profit_summary(date_range)
    revenue = queries.revenue_summary(date_range)
    daily = queries.daily_revenue(date_range)

    wb = _new_workbook("Summary")
    ws = wb.active
    ws["A1"] = "Revenue report"
    ws["A1"].font = Font(bold=True, size=14)
    rows = [
        ("From", date_range.start_date.isoformat()),
        ("To", date_range.end_date.isoformat()),
        ("Total revenue", summary['total_revenue']),
        ("Total cost", summary['total_cost']),
        ("Gross profit", summary['gross_profit']),
        ("Orders", revenue['total_orders']),
        ("Average order value", revenue['average_order_value']),
    ]
    for index, (label, value) in enumerate(rows, start=3):
        ws.cell(row=index, column=1, value=label).font = TOTAL_FONT
        ws.cell(row=index, column=2, value=value)
    ws.column_dimensions["A"].width = 22
    ws.column_dimensions["B"].width = 18

    if daily:
        _write_table(
            wb.create_sheet("Daily"),
            ["Date", "Revenue", "Cost", "Profit", "Orders"],
            [[day['date'], day['revenue'], day['cost'], day['profit'], day['orders']] for day in daily],
        )

    return _to_bytes(wb)


def customers_workbook(date_range):
    """Customers created within the range (every customer without one), newest first"""
    customers = Customer.objects.filter(**date_range.filter_kwargs('created_at')).annotate(
        order_count=Count('orders', distinct=True),
        total_spent=Coalesce(
            Sum('orders__total_amount', filter=~Q(orders__status=Order.STATUS_CANCELLED)),
            Value(Decimal('0.00')),
            output_field=DecimalField(max_digits=14, decimal_places=2),
        ),
    ).order_by('-created_at', '-id')

    wb = _new_workbook("Customers")
    _write_table(
        wb.active,
        ["Name", "Phone", "Address", "Note", "Orders", "Total spent", "Created at"],
        [
            [
                customer.name,
                customer.phone,
                customer.address,
                customer.note,
                customer.order_count,
                _money(customer.total_spent),
                _local(customer.created_at),
            ]
            for customer in customers
        ],
    )
    return _to_bytes(wb)


def products_workbook():
    products = list(
        Product.objects.select_related('category')
        .prefetch_related(Prefetch('variants', queryset=ProductVariant.objects.order_by('created_at', 'id')))
        .order_by('category__name', 'name')
    )

    wb = _new_workbook("Products")
    _write_table(
        wb.active,
        ["ID", "Name", "Category", "Description", "Variants", "Active", "Created at"],
        [
            [
                product.id,
                product.name,
                product.category.name,
                product.description,
                len(product.variants.all()),
                "Yes" if product.is_active else "No",
                _local(product.created_at),
            ]
            for product in products
        ],
    )

    variant_rows = [
        [
            product.name,
            variant.name,
            variant.unit,
            _money(variant.cost_price),
            _money(variant.selling_price),
            float(variant.stock_quantity),
            "Yes" if variant.is_active else "No",
        ]
        for product in products
        for variant in product.variants.all()
    ]
    if variant_rows:
        _write_table(
            wb.create_sheet("Variants"),
            ["Product", "Variant", "Unit", "Cost price", "Selling price", "Stock", "Active"],
            variant_rows,
        )
    return _to_bytes(wb)


def inventory_imports_workbook(date_range):
    imports = list(
        InventoryImport.objects.filter(**date_range.filter_kwargs('import_date'))
        .select_related('ingredient', 'created_by')
        .order_by('-import_date', '-id')
    )

    wb = _new_workbook("Imports")
    _write_table(
        wb.active,
        ["Date", "Ingredient", "Unit", "Quantity", "Import price", "Total", "Note", "Created by"],
        [
            [
                _local(entry.import_date),
                entry.ingredient.name,
                entry.ingredient.unit,
                float(entry.quantity),
                _money(entry.import_price),
                _money(entry.total_price),
                entry.note,
                entry.created_by.name if entry.created_by else '',
            ]
            for entry in imports
        ],
    )

    per_ingredient = (
        InventoryImport.objects.filter(**date_range.filter_kwargs('import_date'))
        .values('ingredient__name', 'ingredient__unit')
        .annotate(total_quantity=Sum('quantity'), total_cost=Sum('total_price'), imports=Count('id'))
        .order_by('ingredient__name')
    )
    summary_rows = [
        [
            row['ingredient__name'],
            row['ingredient__unit'],
            float(row['total_quantity']),
            _money(row['total_cost']),
            row['imports'],
        ]
        for row in per_ingredient
    ]
    ws = wb.create_sheet("Summary")
    _write_table(ws, ["Ingredient", "Unit", "Total quantity", "Total cost", "Imports"], summary_rows)
    ws.append(["Total", None, None, sum(row[3] for row in summary_rows), len(imports)])
    for cell in ws[ws.max_row]:
        cell.font = TOTAL_FONT

    return _to_bytes(wb)
