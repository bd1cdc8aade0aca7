import logging
from datetime import timedelta

from django.db import transaction
from django.db.models import Prefetch
from django.utils import timezone
from rest_framework import serializers, status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import ForbiddenException, ValidationException
from backend.core.pagination import paginate
from backend.core.utils import create_audit_log, get_object_or_not_found, parse_date_range, validated_filterset
from .filters import OrderFilter
from .models import Order, OrderItem
from .serializers import OrderSerializer, OrderCreateSerializer, OrderUpdateSerializer
from .utils import restore_stock

logger = logging.getLogger(__name__)

SORT_FIELDS = ['created_at', 'delivery_time', 'total_amount', 'customer_name']


class OrderSortSerializer(serializers.Serializer):
    sort_by = serializers.ChoiceField(choices=SORT_FIELDS, default='created_at')
    sort_order = serializers.ChoiceField(choices=['asc', 'desc'], default='desc')


class UpcomingQuerySerializer(serializers.Serializer):
    hours = serializers.IntegerField(min_value=1, max_value=72, default=2)


def order_queryset():
    return Order.objects.select_related('created_by', 'customer').prefetch_related(
        Prefetch('items', queryset=OrderItem.objects.select_related('product_variant__product'))
    )


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def order_list_create(request):
    """List orders or place a new order"""
    if request.method == 'GET':
        queryset = validated_filterset(OrderFilter(request.query_params, queryset=order_queryset()))
        queryset = queryset.filter(**parse_date_range(request.query_params).filter_kwargs('created_at'))

        sort = OrderSortSerializer(data=request.query_params)
        sort.is_valid(raise_exception=True)
        prefix = '-' if sort.validated_data['sort_order'] == 'desc' else ''
        queryset = queryset.order_by(f"{prefix}{sort.validated_data['sort_by']}", f'{prefix}id')

        return Response(paginate(request, queryset, OrderSerializer))

    serializer = OrderCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    order = serializer.save(created_by=request.user)
    logger.info(f"Order {order.id} created by {request.user.email}: total {order.total_amount}")
    create_audit_log(
        request=request,
        action='create',
        model_name='Order',
        object_id=order.id,
        object_name=order.customer_name,
        changes={
            'total_amount': str(order.total_amount),
            'discount': str(order.discount),
            'items': [
                {'variant_id': item.product_variant_id, 'quantity': str(item.quantity)}
                for item in order.items.all()
            ],
        },
    )
    return Response(OrderSerializer(order_queryset().get(pk=order.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def order_upcoming(request):
    """Open orders due for delivery within the next few hours, soonest first"""
    query = UpcomingQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)

    now = timezone.now()
    orders = order_queryset().filter(
        delivery_time__gte=now,
        delivery_time__lte=now + timedelta(hours=query.validated_data['hours']),
        status__in=[Order.STATUS_PENDING, Order.STATUS_CONFIRMED],
    ).order_by('delivery_time', 'id')

    data = OrderSerializer(orders, many=True).data
    return Response({'orders': data, 'count': len(data)})


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def order_detail(request, pk):
    """Retrieve, update or delete an order"""
    order = get_object_or_not_found(order_queryset(), 'Order', pk=pk)

    if request.method == 'GET':
        return Response(OrderSerializer(order).data)
    elif request.method == 'PATCH':
        old_status = order.status
        serializer = OrderUpdateSerializer(order, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        updated = serializer.save()

        if updated.status != old_status:
            logger.info(f"Order {updated.id} status {old_status} -> {updated.status}")
            create_audit_log(request=request, action='status_change', model_name='Order', object_id=updated.id,
                             object_name=updated.customer_name,
                             changes={'status': {'old': old_status, 'new': updated.status}})
            if Order.STATUS_CANCELLED in (old_status, updated.status):
                restored = updated.status == Order.STATUS_CANCELLED
                create_audit_log(request=request, action='stock_restore' if restored else 'stock_sale',
                                 model_name='Order', object_id=updated.id, object_name=updated.customer_name,
                                 changes={'items': [
                                     {'variant_id': item.product_variant_id, 'quantity': str(item.quantity)}
                                     for item in updated.items.all()
                                 ]})
        else:
            create_audit_log(request=request, action='update', model_name='Order', object_id=updated.id,
                             object_name=updated.customer_name,
                             changes={k: str(v) for k, v in serializer.validated_data.items() if k != 'items'})
        return Response(OrderSerializer(order_queryset().get(pk=updated.pk)).data)
    else:  # DELETE
        if not request.user.is_admin:
            raise ForbiddenException('Only admins can delete orders')
        if order.status != Order.STATUS_PENDING:
            raise ValidationException('Can only delete pending orders')

        order_id, customer_name = order.id, order.customer_name
        with transaction.atomic():
            locked = Order.objects.select_for_update().get(pk=order_id)
            if locked.status != Order.STATUS_PENDING:
                raise ValidationException('Can only delete pending orders')
            restore_stock(list(locked.items.all()))
            locked.delete()

        logger.warning(f"Order {order_id} deleted by {request.user.email}")
        create_audit_log(request=request, action='delete', model_name='Order', object_id=order_id,
                         object_name=customer_name)
        return Response(status=status.HTTP_204_NO_CONTENT)
