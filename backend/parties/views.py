import logging
from decimal import Decimal

from django.db.models import Count, DecimalField, Q, Sum, Value
from django.db.models.functions import Coalesce
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import ForbiddenException, ValidationException
from backend.core.pagination import paginate
from backend.core.utils import get_object_or_not_found, validated_filterset
from .filters import CustomerFilter
from .models import Customer
from .serializers import CustomerSerializer

logger = logging.getLogger(__name__)


def customer_queryset():
    """Customers annotated with their order count and non-cancelled spend"""
    from backend.orders.models import Order

    return Customer.objects.annotate(
        order_count=Count('orders', distinct=True),
        total_spent=Coalesce(
            Sum('orders__total_amount', filter=~Q(orders__status=Order.STATUS_CANCELLED)),
            Value(Decimal('0.00')),
            output_field=DecimalField(max_digits=14, decimal_places=2),
        ),
    )


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List customers or create a new customer"""
    if request.method == 'GET':
        queryset = validated_filterset(CustomerFilter(request.query_params, queryset=customer_queryset()))
        return Response(paginate(request, queryset.order_by('-created_at'), CustomerSerializer))

    serializer = CustomerSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    customer = serializer.save()
    return Response(CustomerSerializer(customer_queryset().get(pk=customer.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_not_found(customer_queryset(), 'Customer', pk=pk)

    if request.method == 'GET':
        return Response(CustomerSerializer(customer).data)
    elif request.method == 'PATCH':
        serializer = CustomerSerializer(customer, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(CustomerSerializer(customer_queryset().get(pk=customer.pk)).data)
    else:  # DELETE
        if not request.user.is_admin:
            raise ForbiddenException('Only admins can delete customers')
        if customer.order_count:
            logger.warning(f"Blocked delete of customer {customer.id} ({customer.name}): has orders")
            raise ValidationException('Cannot delete customer with existing orders')
        customer.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def customer_orders(request, pk):
    """A customer's order history, newest first"""
    from backend.orders.serializers import OrderListSerializer
    from backend.orders.views import order_queryset

    customer = get_object_or_not_found(Customer, 'Customer', pk=pk)
    queryset = order_queryset().filter(customer=customer).order_by('-created_at')
    return Response(paginate(request, queryset, OrderListSerializer))
