import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.models import update_last_login
from django.core.exceptions import ObjectDoesNotExist
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.settings import api_settings as jwt_settings
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenRefreshView

from .exceptions import ForbiddenException, InvalidCredentialsException
from .filters import UserFilter, AuditLogFilter
from .models import AuditLog
from .pagination import paginate
from .permissions import IsAdminRole
from .serializers import (
    UserSerializer, UserCreateSerializer, UserUpdateSerializer,
    RegisterSerializer, LoginSerializer, ChangePasswordSerializer,
    AuditLogSerializer,
)
from .utils import create_audit_log, get_object_or_not_found, parse_date_range, validated_filterset

User = get_user_model()
logger = logging.getLogger(__name__)


def get_token(user):
    """Refresh token for ``user`` carrying the profile claims"""
    token = RefreshToken.for_user(user)
    token['email'] = user.email
    token['name'] = user.name
    token['role'] = user.role
    return token


def auth_response(user, response_status=status.HTTP_200_OK):
    """User payload plus a token pair, with the access token also set as cookie"""
    token = get_token(user)
    access = str(token.access_token)
    response = Response({
        'user': UserSerializer(user).data,
        'access': access,
        'refresh': str(token),
    }, status=response_status)
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        access,
        max_age=int(jwt_settings.ACCESS_TOKEN_LIFETIME.total_seconds()),
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite=settings.AUTH_COOKIE_SAMESITE,
    )
    return response


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Custom token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    """Custom token refresh view that handles deleted users gracefully"""
    serializer_class = CustomTokenRefreshSerializer
    authentication_classes = []


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def login(request):
    """Log in with email and password"""
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data['email'].strip().lower()

    user = User.objects.filter(email__iexact=email).first()
    if user is None or not user.check_password(serializer.validated_data['password']):
        logger.warning(f"Failed login attempt for {email}")
        raise InvalidCredentialsException()
    if not user.is_active:
        logger.warning(f"Login attempt for inactive account {email}")
        raise ForbiddenException('User account is inactive')

    update_last_login(None, user)
    create_audit_log(request=request, user=user, action='login', model_name='User',
                     object_id=user.id, object_name=user.email)
    return auth_response(user)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint"""
    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    logger.info(f"Registered new staff account {user.email}")
    return auth_response(user, response_status=status.HTTP_201_CREATED)


@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
def logout(request):
    """Clear the auth cookie"""
    response = Response({'message': 'Logged out successfully'})
    response.delete_cookie(settings.AUTH_COOKIE_NAME, samesite=settings.AUTH_COOKIE_SAMESITE)
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get the current user"""
    return Response(UserSerializer(request.user).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def change_password(request):
    """Change the current user's password"""
    serializer = ChangePasswordSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)

    user = request.user
    if not user.check_password(serializer.validated_data['current_password']):
        raise InvalidCredentialsException('Current password is incorrect')

    user.set_password(serializer.validated_data['new_password'])
    user.save()
    create_audit_log(request=request, action='password_change', model_name='User',
                     object_id=user.id, object_name=user.email)
    return Response({'message': 'Password changed successfully'})


# User views
@api_view(['GET', 'POST'])
@permission_classes([IsAdminRole])
def user_list_create(request):
    """List all users or create a new user"""
    if request.method == 'GET':
        queryset = validated_filterset(UserFilter(request.query_params, queryset=User.objects.all()))
        return Response(paginate(request, queryset.order_by('-created_at'), UserSerializer))

    serializer = UserCreateSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = serializer.save()
    create_audit_log(request=request, action='create', model_name='User', object_id=user.id,
                     object_name=user.email, changes={'role': user.role})
    return Response(UserSerializer(user).data, status=status.HTTP_201_CREATED)


@api_view(['GET', 'PATCH', 'DELETE'])
@permission_classes([IsAdminRole])
def user_detail(request, pk):
    """Retrieve, update or delete a user"""
    user = get_object_or_not_found(User, 'User', pk=pk)

    if request.method == 'GET':
        return Response(UserSerializer(user).data)
    elif request.method == 'PATCH':
        serializer = UserUpdateSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        changes = {k: v for k, v in serializer.validated_data.items() if k != 'password'}
        if 'password' in serializer.validated_data:
            changes['password'] = 'changed'
        create_audit_log(request=request, action='update', model_name='User', object_id=user.id,
                         object_name=user.email, changes=changes)
        return Response(UserSerializer(user).data)
    else:  # DELETE
        user_id, email = user.id, user.email
        user.delete()
        create_audit_log(request=request, action='delete', model_name='User', object_id=user_id,
                         object_name=email)
        return Response(status=status.HTTP_204_NO_CONTENT)


# AuditLog views (read-only)
@api_view(['GET'])
@permission_classes([IsAdminRole])
def audit_log_list(request):
    """List audit logs with filtering"""
    queryset = AuditLog.objects.select_related('user')
    queryset = validated_filterset(AuditLogFilter(request.query_params, queryset=queryset))
    queryset = queryset.filter(**parse_date_range(request.query_params).filter_kwargs('created_at'))
    return Response(paginate(request, queryset.order_by('-created_at'), AuditLogSerializer))


@api_view(['GET'])
@permission_classes([IsAdminRole])
def audit_log_detail(request, pk):
    """Retrieve an audit log"""
    audit_log = get_object_or_not_found(AuditLog.objects.select_related('user'), 'Audit log', pk=pk)
    return Response(AuditLogSerializer(audit_log).data)
