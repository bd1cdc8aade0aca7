from rest_framework import serializers
from .models import User, AuditLog


def validate_unique_email(value, instance=None):
    value = value.strip().lower()
    queryset = User.objects.filter(email__iexact=value)
    if instance is not None:
        queryset = queryset.exclude(pk=instance.pk)
    if queryset.exists():
        raise serializers.ValidationError('Email already exists')
    return value


class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'role', 'is_active', 'last_login', 'created_at', 'updated_at']
        read_only_fields = fields


class UserCreateSerializer(serializers.ModelSerializer):
    """Admin-side user creation"""
    name = serializers.CharField(min_length=1, max_length=100)
    password = serializers.CharField(write_only=True, min_length=6, max_length=100)

    class Meta:
        model = User
        fields = ['name', 'email', 'password', 'role', 'is_active']
        extra_kwargs = {'email': {'validators': []}}

    def validate_email(self, value):
        return validate_unique_email(value)

    def create(self, validated_data):
        return User.objects.create_user(**validated_data)


class UserUpdateSerializer(serializers.ModelSerializer):
    name = serializers.CharField(min_length=1, max_length=100, required=False)
    password = serializers.CharField(write_only=True, min_length=6, max_length=100, required=False)

    class Meta:
        model = User
        fields = ['name', 'email', 'password', 'role', 'is_active']
        extra_kwargs = {'email': {'validators': []}}

    def validate_email(self, value):
        return validate_unique_email(value, instance=self.instance)

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class RegisterSerializer(serializers.Serializer):
    """Self sign-up; always creates an active STAFF account"""
    name = serializers.CharField(min_length=1, max_length=100)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=6, max_length=100)
    confirm_password = serializers.CharField(write_only=True)

    def validate_email(self, value):
        return validate_unique_email(value)

    def validate(self, attrs):
        if attrs['password'] != attrs['confirm_password']:
            raise serializers.ValidationError({'confirm_password': "Passwords don't match"})
        return attrs

    def create(self, validated_data):
        validated_data.pop('confirm_password')
        return User.objects.create_user(role=User.ROLE_STAFF, is_active=True, **validated_data)


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, min_length=1)


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True, min_length=1)
    new_password = serializers.CharField(write_only=True, min_length=6, max_length=100)


class AuditLogSerializer(serializers.ModelSerializer):
    user = UserSerializer(read_only=True)

    class Meta:
        model = AuditLog
        fields = ['id', 'user', 'action', 'model_name', 'object_id', 'object_name',
                  'changes', 'ip_address', 'created_at']
