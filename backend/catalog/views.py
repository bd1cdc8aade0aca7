import logging

from django.db.models import Count, Prefetch
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response

from backend.core.exceptions import ValidationException
from backend.core.pagination import paginate
from backend.core.permissions import IsAdminRoleOrReadOnly
from backend.core.utils import create_audit_log, get_object_or_not_found, validated_filterset
from .filters import CategoryFilter, ProductFilter
from .models import Category, Product, ProductVariant
from .serializers import (
    CategorySerializer, ProductSerializer, ProductWriteSerializer, ProductVariantSerializer,
)

logger = logging.getLogger(__name__)


def category_queryset():
    return Category.objects.annotate(product_count=Count('products'))


def product_queryset():
    return Product.objects.select_related('category').prefetch_related(
        Prefetch('variants', queryset=ProductVariant.objects.order_by('created_at', 'id'))
    )


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def category_list_create(request):
    """List categories or create a new category"""
    if request.method == 'GET':
        queryset = validated_filterset(CategoryFilter(request.query_params, queryset=category_queryset()))
        return Response(paginate(request, queryset.order_by('-created_at'), CategorySerializer))

    serializer = CategorySerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    category = serializer.save()
    return Response(CategorySerializer(category_queryset().get(pk=category.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_not_found(category_queryset(), 'Category', pk=pk)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)
    elif request.method == 'PATCH':
        serializer = CategorySerializer(category, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(CategorySerializer(category_queryset().get(pk=category.pk)).data)
    else:  # DELETE
        if category.products.exists():
            logger.warning(f"Blocked delete of category {category.id} ({category.name}): has products")
            raise ValidationException('Cannot delete category with existing products. Deactivate it instead.')
        category.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def product_list_create(request):
    """List products with their variants or create a product together with its variants"""
    if request.method == 'GET':
        queryset = validated_filterset(ProductFilter(request.query_params, queryset=product_queryset()))
        return Response(paginate(request, queryset.order_by('-created_at'), ProductSerializer))

    serializer = ProductWriteSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    product = serializer.save()
    create_audit_log(request=request, action='create', model_name='Product', object_id=product.id,
                     object_name=product.name, changes={'variants': product.variants.count()})
    return Response(ProductSerializer(product_queryset().get(pk=product.pk)).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def product_detail(request, pk):
    """Retrieve, update or deactivate a product"""
    product = get_object_or_not_found(product_queryset(), 'Product', pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method == 'PATCH':
        serializer = ProductWriteSerializer(product, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        create_audit_log(request=request, action='update', model_name='Product', object_id=product.id,
                         object_name=product.name,
                         changes={k: str(v) for k, v in serializer.validated_data.items() if k != 'variants'})
        return Response(ProductSerializer(product_queryset().get(pk=product.pk)).data)
    else:  # DELETE
        # Products are only deactivated; their variants stay referenced by past orders
        product.is_active = False
        product.save(update_fields=['is_active', 'updated_at'])
        create_audit_log(request=request, action='delete', model_name='Product', object_id=product.id,
                         object_name=product.name, changes={'is_active': False})
        return Response(status=status.HTTP_204_NO_CONTENT)


# Variant views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRoleOrReadOnly])
def product_variant_list_create(request, pk):
    """List a product's variants or add a new one"""
    product = get_object_or_not_found(Product, 'Product', pk=pk)

    if request.method == 'GET':
        variants = product.variants.order_by('created_at', 'id')
        return Response(ProductVariantSerializer(variants, many=True).data)

    serializer = ProductVariantSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    serializer.save(product=product)
    return Response(serializer.data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRoleOrReadOnly])
def product_variant_detail(request, pk, variant_pk):
    """Retrieve, update or delete a product variant"""
    variant = get_object_or_not_found(ProductVariant, 'Product variant', pk=variant_pk, product_id=pk)

    if request.method == 'GET':
        return Response(ProductVariantSerializer(variant).data)
    elif request.method == 'PATCH':
        serializer = ProductVariantSerializer(variant, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        return Response(serializer.data)
    else:  # DELETE
        if variant.order_items.exists():
            logger.warning(f"Blocked delete of variant {variant.id} ({variant.name}): has order items")
            raise ValidationException('Cannot delete variant with existing orders. Deactivate it instead.')
        variant.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)
