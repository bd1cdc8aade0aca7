from django.db import models


class Customer(models.Model):
    """Customers; orders may link to one but keep their own contact snapshot"""
    name = models.CharField(max_length=100, db_index=True)
    phone = models.CharField(max_length=20, unique=True)
    address = models.TextField(blank=True, default='')
    note = models.TextField(blank=True, default='')
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.phone})"

    class Meta:
        db_table = 'customers'
        ordering = ['-created_at']
