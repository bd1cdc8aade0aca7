import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Sum
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from backend.core.exceptions import ValidationException
from backend.core.pagination import paginate
from backend.core.permissions import IsAdminRoleOrReadOnly
from backend.core.utils import create_audit_log, get_object_or_not_found, parse_date_range, validated_filterset
from .filters import IngredientFilter, InventoryImportFilter
from .models import Ingredient, InventoryImport
from .serializers import (
    IngredientSerializer, InventoryImportSerializer,
    InventoryImportCreateSerializer, InventoryImportUpdateSerializer,
)
from .utils import adjust_ingredient_stock

logger = logging.getLogger(__name__)


def ingredient_queryset():
    return Ingredient.objects.annotate(import_count=Count('imports'))


def import_queryset():
    return InventoryImport.objects.select_related('ingredient', 'created_by')


# Ingredient views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def ingredient_list_create(request):
    """List ingredients or create a new ingredient"""
    if request.method == 'GET':
        queryset = validated_filterset(IngredientFilter(request.query_params, queryset=ingredient_queryset()))
        return Response(paginate(request, queryset.order_by('-created_at'), IngredientSerializer))

    serializer = IngredientSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    ingredient = serializer.save()
    return Response(IngredientSerializer(ingredient_queryset().get(pk=ingredient.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def ingredient_active_list(request):
    """All active ingredients by name, for pickers"""
    ingredients = ingredient_queryset().filter(is_active=True).order_by('name')
    return Response(IngredientSerializer(ingredients, many=True).data)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def ingredient_detail(request, pk):
    """Retrieve, update or delete an ingredient"""
    ingredient = get_object_or_not_found(ingredient_queryset(), 'Ingredient', pk=pk)

    if request.method == 'GET':
        return Response(IngredientSerializer(ingredient).data)
    elif request.method == 'PATCH':
        serializer = IngredientSerializer(ingredient, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(IngredientSerializer(ingredient_queryset().get(pk=ingredient.pk)).data)
    else:  # DELETE
        if ingredient.imports.exists():
            logger.warning(f"Blocked delete of ingredient {ingredient.id} ({ingredient.name}): has imports")
            raise ValidationException('Cannot delete ingredient with existing imports. Deactivate it instead.')
        ingredient.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Inventory import views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def inventory_import_list_create(request):
    """List inventory imports or record a new one"""
    if request.method == 'GET':
        queryset = validated_filterset(InventoryImportFilter(request.query_params, queryset=import_queryset()))
        queryset = queryset.filter(**parse_date_range(request.query_params).filter_kwargs('import_date'))
        return Response(paginate(request, queryset.order_by('-import_date', '-id'), InventoryImportSerializer))

    serializer = InventoryImportCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    inventory_import = serializer.save(created_by=request.user)
    create_audit_log(
        request=request,
        action='stock_import',
        model_name='InventoryImport',
        object_id=inventory_import.id,
        object_name=inventory_import.ingredient.name,
        changes={
            'quantity': str(inventory_import.quantity),
            'import_price': str(inventory_import.import_price),
            'total_price': str(inventory_import.total_price),
        },
    )
    return Response(InventoryImportSerializer(import_queryset().get(pk=inventory_import.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_import_stats(request):
    """Count and total cost of imports, optionally within a date range"""
    queryset = validated_filterset(InventoryImportFilter(request.query_params, queryset=InventoryImport.objects.all()))
    queryset = queryset.filter(**parse_date_range(request.query_params).filter_kwargs('import_date'))
    stats = queryset.aggregate(total_imports=Count('id'), total_cost=Sum('total_price'))
    return Response({
        'total_imports': stats['total_imports'],
        'total_cost': float(stats['total_cost'] or Decimal('0')),
    })


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def inventory_import_detail(request, pk):
    """Retrieve, update or delete an inventory import"""
    inventory_import = get_object_or_not_found(import_queryset(), 'Inventory import', pk=pk)

    if request.method == 'GET':
        return Response(InventoryImportSerializer(inventory_import).data)
    elif request.method == 'PATCH':
        old_quantity = inventory_import.quantity
        serializer = InventoryImportUpdateSerializer(inventory_import, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        updated = serializer.save()
        create_audit_log(
            request=request,
            action='stock_import_update',
            model_name='InventoryImport',
            object_id=updated.id,
            object_name=inventory_import.ingredient.name,
            changes={
                'quantity': {'old': str(old_quantity), 'new': str(updated.quantity)},
                'total_price': str(updated.total_price),
            },
        )
        return Response(InventoryImportSerializer(import_queryset().get(pk=updated.pk)).data)
    else:  # DELETE
        import_id = inventory_import.id
        ingredient_name = inventory_import.ingredient.name
        with transaction.atomic():
            locked = InventoryImport.objects.select_for_update().get(pk=import_id)
            adjust_ingredient_stock(locked.ingredient_id, -locked.quantity)
            locked.delete()
        create_audit_log(
            request=request,
            action='stock_import_delete',
            model_name='InventoryImport',
            object_id=import_id,
            object_name=ingredient_name,
            changes={'quantity': str(inventory_import.quantity)},
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
