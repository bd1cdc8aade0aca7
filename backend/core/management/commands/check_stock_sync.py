"""
Django management command to check ingredient stock against the recorded
inventory imports, and optionally repair the difference
"""
from decimal import Decimal

from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import DecimalField, Sum, Value
from django.db.models.functions import Coalesce

from backend.core.utils import create_audit_log
from backend.inventory.models import Ingredient

TOLERANCE = Decimal('0.001')


class Command(BaseCommand):
    help = 'Compare each ingredient stock with the sum of its inventory imports'

    def add_arguments(self, parser):
        parser.add_argument(
            '--ingredient-id',
            type=int,
            help='Check specific ingredient ID only',
        )
        parser.add_argument(
            '--show-all',
            action='store_true',
            help='Show all ingredients, not just discrepancies',
        )
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Set each out-of-sync stock to its imported total',
        )

    def handle(self, *args, **options):
        ingredient_id = options.get('ingredient_id')
        show_all = options.get('show_all', False)
        fix = options.get('fix', False)

        ingredients = Ingredient.objects.annotate(
            imported=Coalesce(
                Sum('imports__quantity'),
                Value(Decimal('0.000')),
                output_field=DecimalField(max_digits=14, decimal_places=3),
            ),
        ).order_by('id')
        if ingredient_id:
            ingredients = ingredients.filter(id=ingredient_id)

        self.stdout.write("=" * 80)
        self.stdout.write(self.style.SUCCESS("INGREDIENT STOCK vs IMPORTS"))
        self.stdout.write("=" * 80)

        discrepancies = []
        for ingredient in ingredients:
            difference = ingredient.stock_quantity - ingredient.imported
            out_of_sync = abs(difference) > TOLERANCE
            if out_of_sync:
                discrepancies.append(ingredient)
            if out_of_sync or show_all:
                style = self.style.ERROR if out_of_sync else self.style.SUCCESS
                self.stdout.write(style(
                    f"  [{ingredient.id}] {ingredient.name}: stock {ingredient.stock_quantity} {ingredient.unit}, "
                    f"imported {ingredient.imported} (diff {difference:+})"
                ))

        if not discrepancies:
            self.stdout.write(self.style.SUCCESS("\n✓ All ingredient stock matches the imports"))
            return

        self.stdout.write(self.style.WARNING(f"\n⚠ {len(discrepancies)} ingredient(s) out of sync"))
        if not fix:
            self.stdout.write("Run again with --fix to repair them")
            return

        with transaction.atomic():
            for ingredient in discrepancies:
                old_quantity = Ingredient.objects.select_for_update().get(pk=ingredient.pk).stock_quantity
                Ingredient.objects.filter(pk=ingredient.pk).update(stock_quantity=ingredient.imported)
                create_audit_log(
                    action='update',
                    model_name='Ingredient',
                    object_id=ingredient.id,
                    object_name=ingredient.name,
                    changes={
                        'stock_quantity': {'old': str(old_quantity), 'new': str(ingredient.imported)},
                        'reason': 'check_stock_sync --fix',
                    },
                )
        self.stdout.write(self.style.SUCCESS(f"✓ Fixed {len(discrepancies)} ingredient(s)"))
