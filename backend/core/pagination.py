"""Page/limit pagination shared by every list endpoint"""
import math

from rest_framework import serializers

DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100


class PageQuerySerializer(serializers.Serializer):
    page = serializers.IntegerField(min_value=1, default=1)
    limit = serializers.IntegerField(min_value=1, max_value=MAX_PAGE_SIZE, default=DEFAULT_PAGE_SIZE)


def paginate(request, queryset, serializer_class, context=None):
    """
    Slice ``queryset`` according to the ``page``/``limit`` query parameters
    and return the serialized page with its counters.

    A page past the end yields an empty ``results`` list.
    """
    query = PageQuerySerializer(data=request.query_params)
    query.is_valid(raise_exception=True)
    page = query.validated_data['page']
    limit = query.validated_data['limit']

    total = queryset.count()
    offset = (page - 1) * limit
    serializer = serializer_class(
        queryset[offset:offset + limit],
        many=True,
        context=context or {'request': request},
    )
    return {
        'results': serializer.data,
        'count': total,
        'page': page,
        'limit': limit,
        'total_pages': math.ceil(total / limit),
    }
