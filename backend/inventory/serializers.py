from decimal import Decimal

from django.db import transaction
from rest_framework import serializers

from backend.core.exceptions import ValidationException
from .models import Ingredient, InventoryImport
from .utils import adjust_ingredient_stock


class IngredientSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=100)
    unit = serializers.CharField(min_length=1, max_length=50, required=False)
    import_count = serializers.IntegerField(read_only=True)

    class Meta:
        model = Ingredient
        fields = ['id', 'name', 'unit', 'stock_quantity', 'is_active', 'import_count', 'created_at', 'updated_at']
        read_only_fields = ['stock_quantity', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        queryset = Ingredient.objects.filter(name__iexact=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Ingredient name already exists')
        return value


class IngredientBriefSerializer(serializers.ModelSerializer):
    class Meta:
        model = Ingredient
        fields = ['id', 'name', 'unit']


class InventoryImportSerializer(serializers.ModelSerializer):
    ingredient = IngredientBriefSerializer(read_only=True)
    created_by_name = serializers.CharField(source='created_by.name', read_only=True, default=None)

    class Meta:
        model = InventoryImport
        fields = ['id', 'ingredient', 'quantity', 'import_price', 'total_price', 'import_date',
                  'note', 'created_by', 'created_by_name', 'created_at', 'updated_at']
        read_only_fields = fields


class InventoryImportCreateSerializer(serializers.ModelSerializer):
    """Records an import and adds its quantity to the ingredient stock"""
    ingredient_id = serializers.IntegerField()
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.01'))
    import_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))
    import_date = serializers.DateTimeField(required=False)
    note = serializers.CharField(required=False, allow_blank=True, max_length=500)

    class Meta:
        model = InventoryImport
        fields = ['ingredient_id', 'quantity', 'import_price', 'import_date', 'note']

    def validate_ingredient_id(self, value):
        ingredient = Ingredient.objects.filter(pk=value).first()
        if ingredient is None:
            raise serializers.ValidationError('Ingredient not found')
        if not ingredient.is_active:
            raise serializers.ValidationError('Ingredient is inactive')
        return value

    @transaction.atomic
    def create(self, validated_data):
        ingredient = Ingredient.objects.select_for_update().get(pk=validated_data['ingredient_id'])
        if not ingredient.is_active:
            raise ValidationException('Ingredient is inactive')

        inventory_import = InventoryImport(**validated_data)
        inventory_import.compute_total()
        inventory_import.save()
        adjust_ingredient_stock(ingredient.id, inventory_import.quantity)
        return inventory_import


class InventoryImportUpdateSerializer(serializers.ModelSerializer):
    """Edits an import; the ingredient stock moves by the quantity difference"""
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, min_value=Decimal('0.01'), required=False)
    import_price = serializers.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'), required=False)
    import_date = serializers.DateTimeField(required=False)
    note = serializers.CharField(required=False, allow_blank=True, max_length=500)

    class Meta:
        model = InventoryImport
        fields = ['quantity', 'import_price', 'import_date', 'note']

    @transaction.atomic
    def update(self, instance, validated_data):
        # Re-read under lock; the stock delta depends on the stored quantity
        instance = InventoryImport.objects.select_for_update().get(pk=instance.pk)
        old_quantity = instance.quantity

        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        instance.compute_total()
        instance.save()

        adjust_ingredient_stock(instance.ingredient_id, instance.quantity - old_quantity)
        return instance
