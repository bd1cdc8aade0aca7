import logging

from django.db.models import F
from django.utils import timezone

from .models import Ingredient

logger = logging.getLogger(__name__)


def adjust_ingredient_stock(ingredient_id, delta):
    """
    Add ``delta`` (may be negative) to an ingredient's on-hand quantity.

    Uses an F() expression so concurrent imports never overwrite each other.
    Call inside the transaction that records the import change.
    """
    if not delta:
        return
    Ingredient.objects.filter(pk=ingredient_id).update(
        stock_quantity=F('stock_quantity') + delta,
        updated_at=timezone.now(),
    )
    logger.info(f"Ingredient {ingredient_id} stock adjusted by {delta:+}")
