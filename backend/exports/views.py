import logging

from django.http import HttpResponse
from django.utils import timezone
from rest_framework.decorators import api_view, permission_classes

from backend.core.permissions import IsAdminRole
from backend.core.utils import parse_date_range
from . import workbooks

logger = logging.getLogger(__name__)


def xlsx_response(content, kind, date_range=None):
    """Attachment named ``<kind>_<from>_<to>.xlsx``, or ``<kind>_<today>.xlsx`` without a range"""
    if date_range is not None and date_range.is_bounded:
        filename = f'{kind}_{date_range.label()}.xlsx'
    else:
        filename = f'{kind}_{timezone.localdate().isoformat()}.xlsx'

    response = HttpResponse(content, content_type=workbooks.XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{filename}"'
    logger.info(f"Export {filename} ({len(content)} bytes)")
    return response


@api_view(['GET'])
@permission_classes([IsAdminRole])
def export_orders(request):
    date_range = parse_date_range(request.query_params, required=True)
    return xlsx_response(workbooks.orders_workbook(date_range), 'orders', date_range)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def export_revenue(request):
    date_range = parse_date_range(request.query_params, required=True)
    return xlsx_response(workbooks.revenue_workbook(date_range), 'revenue', date_range)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def export_customers(request):
    """Customer list; ``from``/``to`` are optional and filter by sign-up date"""
    date_range = parse_date_range(request.query_params)
    return xlsx_response(workbooks.customers_workbook(date_range), 'customers', date_range)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def export_products(request):
    return xlsx_response(workbooks.products_workbook(), 'products')


@api_view(['GET'])
@permission_classes([IsAdminRole])
def export_inventory_imports(request):
    date_range = parse_date_range(request.query_params, required=True)
    return xlsx_response(workbooks.inventory_imports_workbook(date_range), 'inventory', date_range)
