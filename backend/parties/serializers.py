from rest_framework import serializers
from .models import Customer


class CustomerSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=100)
    phone = serializers.CharField(min_length=1, max_length=20)
    address = serializers.CharField(max_length=500, required=False, allow_blank=True)
    note = serializers.CharField(max_length=500, required=False, allow_blank=True)
    order_count = serializers.IntegerField(read_only=True)
    total_spent = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = Customer
        fields = ['id', 'name', 'phone', 'address', 'note', 'order_count', 'total_spent', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_phone(self, value):
        value = value.strip()
        queryset = Customer.objects.filter(phone=value)
        if self.instance is not None:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Phone number already exists')
        return value
