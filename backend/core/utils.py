"""Request helpers, audit logging and date range parsing"""
import logging
from datetime import datetime, time, timedelta

from django.http import Http404
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .exceptions import NotFoundException, ValidationException
from .models import AuditLog

logger = logging.getLogger(__name__)


def get_client_ip(request):
    """Extract client IP address from request"""
    if not request or not hasattr(request, 'META'):
        return None
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR')
    return ip or None


def create_audit_log(request=None, action=None, model_name=None, object_id=None,
                     changes=None, user=None, object_name=None):
    """
    Create an audit log entry

    Args:
        request: Django request object (for user and IP) - optional if user is provided
        action: Action type (create, update, delete, stock_import, etc.)
        model_name: Name of the model being acted upon
        object_id: ID of the object
        changes: Dictionary of changes made
        user: Optional user override (defaults to request.user if request provided)
        object_name: Human-readable name of the object (e.g., product name, customer name)
    """
    try:
        audit_user = user
        if audit_user is None and request is not None and hasattr(request, 'user'):
            audit_user = request.user

        if not action or not model_name or object_id is None:
            logger.warning(f"Audit log creation skipped: missing required fields (action={action}, model_name={model_name}, object_id={object_id})")
            return None

        return AuditLog.objects.create(
            user=audit_user if audit_user and audit_user.is_authenticated else None,
            action=action,
            model_name=model_name,
            object_id=str(object_id),
            object_name=object_name,
            changes=changes or {},
            ip_address=get_client_ip(request) if request else None,
        )
    except Exception as e:
        # Don't fail the main operation if audit logging fails
        logger.error(f"Failed to create audit log: {str(e)}")
        return None


def get_object_or_not_found(klass, resource, **lookup):
    """``get_object_or_404`` that raises a NOT_FOUND naming the resource"""
    try:
        return get_object_or_404(klass, **lookup)
    except Http404:
        raise NotFoundException(resource)


def validated_filterset(filterset):
    """Return the filtered queryset, or raise VALIDATION_ERROR for bad filter values"""
    if not filterset.is_valid():
        errors = {field: [str(e) for e in errs] for field, errs in filterset.errors.items()}
        field, messages = next(iter(errors.items()))
        raise ValidationException(f'{field}: {messages[0]}')
    return filterset.qs


def _parse_bound(value, name, end=False):
    """
    Parse a date or datetime query value into an aware datetime.

    Plain dates cover the whole day, so an end bound moves to the
    following midnight.
    """
    try:
        day = parse_date(value)
        if day is not None:
            parsed = datetime.combine(day + timedelta(days=1) if end else day, time.min)
        else:
            parsed = parse_datetime(value)
            if parsed is None:
                raise ValueError
            if end:
                parsed = parsed + timedelta(microseconds=1)
    except ValueError:
        raise ValidationException(f"Invalid date for '{name}': {value}")

    if timezone.is_naive(parsed):
        parsed = timezone.make_aware(parsed)
    return parsed


class DateRange:
    """Half-open range ``[start, end)`` of aware datetimes; either bound may be open"""

    def __init__(self, start=None, end=None):
        self.start = start
        self.end = end

    @property
    def is_bounded(self):
        return bool(self.start and self.end)

    @property
    def start_date(self):
        return timezone.localtime(self.start).date() if self.start else None

    @property
    def end_date(self):
        """Last calendar day covered by the range"""
        if not self.end:
            return None
        return timezone.localtime(self.end - timedelta(microseconds=1)).date()

    def days(self):
        """Every calendar day in the range, in order"""
        day = self.start_date
        while day <= self.end_date:
            yield day
            day += timedelta(days=1)

    def filter_kwargs(self, field):
        kwargs = {}
        if self.start:
            kwargs[f'{field}__gte'] = self.start
        if self.end:
            kwargs[f'{field}__lt'] = self.end
        return kwargs

    def label(self):
        return f'{self.start_date.isoformat()}_{self.end_date.isoformat()}'


def parse_date_range(params, required=False):
    """Read the ``from``/``to`` query parameters into a DateRange"""
    date_from = params.get('from')
    date_to = params.get('to')

    if required and (not date_from or not date_to):
        raise ValidationException("Both 'from' and 'to' dates are required")

    date_range = DateRange(
        start=_parse_bound(date_from, 'from') if date_from else None,
        end=_parse_bound(date_to, 'to', end=True) if date_to else None,
    )
    if date_range.start and date_range.end and date_range.start >= date_range.end:
        raise ValidationException("'from' must not be after 'to'")
    return date_range
