from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from backend.core.exceptions import ValidationException
from .models import Category, Product, ProductVariant


class CategorySerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=100)
    product_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Category
        fields = ['id', 'name', 'is_active', 'product_count', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        queryset = Category.objects.filter(name__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Category name already exists')
        return value


class CategoryBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Category
        fields = ['id', 'name']


class ProductVariantSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=100)
    unit = serializers.CharField(min_length=1, max_length=50, required=False)
    cost_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    selling_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    stock_quantity = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=Decimal('0'), required=False)

    class Meta:
        model = ProductVariant
        fields = ['id', 'product', 'name', 'unit', 'cost_price', 'selling_price', 'stock_quantity',
                  'is_active', 'created_at', 'updated_at']
        read_only_fields = ['product', 'created_at', 'updated_at']


class VariantInputSerializer(serializers.Serializer):
    """Variant entry nested in a product payload; ``id`` marks an existing variant"""
    id = serializers.IntegerField(required=False)
    name = serializers.CharField(min_length=1, max_length=100)
    unit = serializers.CharField(min_length=1, max_length=50, required=False)
    cost_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    selling_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    stock_quantity = serializers.DecimalField(max_digits=10, decimal_places=3, min_value=Decimal('0'), required=False)
    is_active = serializers.BooleanField(required=False)


class ProductSerializer(serializers.ModelSerializer):
    category = CategoryBriefSerializer(read_only=True)
    variants = ProductVariantSerializer(many=True, read_only=True)

    class Meta:
        model = Product
        fields = ['id', 'name', 'description', 'category', 'is_active', 'variants',
                  'created_at', 'updated_at']
        read_only_fields = fields


class ProductWriteSerializer(serializers.ModelSerializer):
    """Create/update payload; ``variants`` is the full desired variant list"""
    name = serializers.CharField(min_length=1, max_length=200)
    description = serializers.CharField(max_length=1000, required=False, allow_blank=True)
    category_id = serializers.IntegerField()
    variants = VariantInputSerializer(many=True, required=False)

    class Meta:
        model = Product
        fields = ['name', 'description', 'category_id', 'is_active', 'variants']

    def validate_category_id(self, value):
        if not Category.objects.filter(pk=value).exists():
            raise serializers.ValidationError('Category not found')
        return value

    def validate_variants(self, value):
        if not value:
            raise serializers.ValidationError('At least one variant is required')
        return value

    def validate(self, attrs):
        if self.instance is None and 'variants' not in attrs:
            raise serializers.ValidationError({'variants': 'At least one variant is required'})
        return attrs

    @transaction.atomic
    def create(self, validated_data):
        variants_input = validated_data.pop('variants')
        product = Product.objects.create(**validated_data)
        for variant_data in variants_input:
            variant_data.pop('id', None)
            ProductVariant.objects.create(product=product, **variant_data)
        return product

    @transaction.atomic
    def update(self, instance, validated_data):
        variants_input = validated_data.pop('variants', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.save()

        if variants_input is not None:
            sync_variants(instance, variants_input)
        return instance


def sync_variants(product, variants_input):
    """
    Make ``product``'s variants match ``variants_input``.

    Entries with an id update that variant, entries without one are created
    and variants missing from the list are deleted. A variant that already
    appears on orders cannot be deleted.
    """
    existing = {variant.id: variant for variant in product.variants.all()}
    keep_ids = {entry['id'] for entry in variants_input if entry.get('id')}

    unknown_ids = keep_ids - existing.keys()
    if unknown_ids:
        raise ValidationException(f'Variant {min(unknown_ids)} does not belong to this product')

    to_delete = [variant for variant_id, variant in existing.items() if variant_id not in keep_ids]
    for variant in to_delete:
        if variant.order_items.exists():
            raise ValidationException(f'Cannot delete variant with existing orders: {variant.name}')
        variant.delete()

    for entry in variants_input:
        entry = dict(entry)
        variant_id = entry.pop('id', None)
        if variant_id:
            variant = existing[variant_id]
            for attr, value in entry.items():
                setattr(variant, attr, value)
            variant.save()
        else:
            ProductVariant.objects.create(product=product, **entry)
