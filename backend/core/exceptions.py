"""
Typed API errors and the central exception handler.

Every error leaves the API as ``{"error": {"code": ..., "message": ...}}``,
with serializer field errors under ``"details"``.
"""
import logging

from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)


class ApiException(exceptions.APIException):
    """Base class for errors that carry a machine readable code"""
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error_code = 'INTERNAL_ERROR'
    default_detail = 'Internal server error'

    def __init__(self, message=None):
        super().__init__(detail=message or self.default_detail, code=self.error_code)


class ValidationException(ApiException):
    status_code = status.HTTP_400_BAD_REQUEST
    error_code = 'VALIDATION_ERROR'
    default_detail = 'Validation failed'


class UnauthorizedException(ApiException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = 'UNAUTHORIZED'
    default_detail = 'Unauthorized'


class InvalidCredentialsException(ApiException):
    status_code = status.HTTP_401_UNAUTHORIZED
    error_code = 'INVALID_CREDENTIALS'
    default_detail = 'Invalid email or password'


class ForbiddenException(ApiException):
    status_code = status.HTTP_403_FORBIDDEN
    error_code = 'FORBIDDEN'
    default_detail = 'Forbidden'


class NotFoundException(ApiException):
    status_code = status.HTTP_404_NOT_FOUND
    error_code = 'NOT_FOUND'
    default_detail = 'Resource not found'

    def __init__(self, resource=None):
        super().__init__(f'{resource} not found' if resource else None)


# Framework exceptions and the code they are reported under
FRAMEWORK_ERROR_CODES = (
    (exceptions.ValidationError, 'VALIDATION_ERROR'),
    (exceptions.ParseError, 'VALIDATION_ERROR'),
    (exceptions.NotAuthenticated, 'UNAUTHORIZED'),
    (exceptions.AuthenticationFailed, 'UNAUTHORIZED'),
    (exceptions.PermissionDenied, 'FORBIDDEN'),
    (exceptions.NotFound, 'NOT_FOUND'),
    (exceptions.MethodNotAllowed, 'METHOD_NOT_ALLOWED'),
)


def _first_message(detail):
    """Pull the first human readable message out of a DRF error structure"""
    if isinstance(detail, dict):
        for value in detail.values():
            message = _first_message(value)
            if message:
                return message
        return None
    if isinstance(detail, (list, tuple)):
        for value in detail:
            message = _first_message(value)
            if message:
                return message
        return None
    return str(detail) if detail is not None else None


def api_exception_handler(exc, context):
    """Render every handled exception in the shared error envelope"""
    if isinstance(exc, Http404):
        exc = NotFoundException()
    elif isinstance(exc, DjangoPermissionDenied):
        exc = ForbiddenException()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, ApiException):
        code = exc.error_code
    else:
        code = next(
            (error_code for exc_class, error_code in FRAMEWORK_ERROR_CODES if isinstance(exc, exc_class)),
            'ERROR',
        )

    detail = response.data
    error = {'code': code}
    if isinstance(exc, exceptions.ValidationError):
        error['message'] = _first_message(detail) or 'Validation failed'
        error['details'] = detail
    elif isinstance(detail, dict) and 'detail' in detail:
        error['message'] = str(detail['detail'])
    else:
        error['message'] = _first_message(detail) or str(exc)

    if response.status_code >= 500:
        logger.error(f"API error {code}: {error['message']}")
    else:
        logger.debug(f"API error {code} ({response.status_code}): {error['message']}")

    response.data = {'error': error}
    return response
