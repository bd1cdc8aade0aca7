from django.conf import settings
from django.db import models
from django.utils import timezone
from decimal import Decimal


class Ingredient(models.Model):
    """Raw material kept in stock; on-hand quantity is maintained by imports"""
    name = models.CharField(max_length=100, unique=True)
    unit = models.CharField(max_length=50, default='kg')
    stock_quantity = models.DecimalField(max_digits=12, decimal_places=3, default=Decimal('0.000'))
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.unit})"

    class Meta:
        db_table = 'ingredients'
        ordering = ['-created_at']


class InventoryImport(models.Model):
    """A recorded purchase of an ingredient that adds to its stock"""
    ingredient = models.ForeignKey(Ingredient, on_delete=models.PROTECT, related_name='imports')
    quantity = models.DecimalField(max_digits=12, decimal_places=3)
    import_price = models.DecimalField(max_digits=12, decimal_places=2)
    total_price = models.DecimalField(max_digits=14, decimal_places=2)
    import_date = models.DateTimeField(default=timezone.now, db_index=True)
    note = models.TextField(blank=True, default='')
    created_by = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='inventory_imports')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.ingredient.name} +{self.quantity} ({self.import_date:%Y-%m-%d})"

    def compute_total(self):
        self.total_price = (self.quantity * self.import_price).quantize(Decimal('0.01'))
        return self.total_price

    class Meta:
        db_table = 'inventory_imports'
        ordering = ['-import_date', '-id']
