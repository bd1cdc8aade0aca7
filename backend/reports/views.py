import logging

from rest_framework import serializers
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.permissions import IsAdminRole
from backend.core.utils import parse_date_range
from . import queries

logger = logging.getLogger('backend.reports')


class TopProductsQuerySerializer(serializers.Serializer):
    limit = serializers.IntegerField(min_value=1, max_value=100, default=10)


@api_view(['GET'])
@permission_classes([IsAdminRole])
def revenue_report(request):
    """Revenue from confirmed and done orders"""
    date_range = parse_date_range(request.query_params, required=True)
    return Response(queries.revenue_summary(date_range))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def cost_report(request):
    """Ingredient purchase costs from inventory imports"""
    date_range = parse_date_range(request.query_params, required=True)
    return Response(queries.cost_summary(date_range))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def profit_report(request):
    """Revenue, cost and gross profit of confirmed and done orders"""
    date_range = parse_date_range(request.query_params, required=True)
    return Response(queries.profit_summary(date_range))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def orders_stats_report(request):
    """Order counts per status"""
    date_range = parse_date_range(request.query_params, required=True)
    return Response(queries.order_stats(date_range))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def top_products_report(request):
    """Top selling product variants"""
    date_range = parse_date_range(request.query_params, required=True)
    query = TopProductsQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    products = queries.top_products(date_range, limit=query.validated_data['limit'])
    return Response({'products': products, **queries.period(date_range)})


@api_view(['GET'])
@permission_classes([IsAdminRole])
def daily_revenue_report(request):
    """Revenue per day, including days without orders"""
    date_range = parse_date_range(request.query_params, required=True)
    data = queries.daily_revenue(date_range)
    logger.debug(f"Daily revenue report for {date_range.label()}: {len(data)} day(s)")
    return Response({'data': data, **queries.period(date_range)})
