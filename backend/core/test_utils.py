"""
Test utilities and factories for creating test data
"""
from django.contrib.auth import get_user_model
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from backend.catalog.models import Category, Product, ProductVariant
from backend.inventory.models import Ingredient, InventoryImport
from backend.orders.models import Order, OrderItem
from backend.orders.utils import apply_totals, build_order_items, take_stock
from backend.parties.models import Customer
from decimal import Decimal
from django.utils import timezone
from datetime import timedelta
import random
import string

User = get_user_model()


class TestDataFactory:
    """Factory class for creating test data"""

    @staticmethod
    def random_string(length=10):
        """Generate a random string"""
        return ''.join(random.choices(string.ascii_letters + string.digits, k=length))

    @staticmethod
    def create_user(email=None, name=None, password='testpass123', role=User.ROLE_STAFF, is_active=True):
        """Create a test user (STAFF unless told otherwise)"""
        if not email:
            email = f'user_{TestDataFactory.random_string(6).lower()}@test.com'
        return User.objects.create_user(
            email=email,
            name=name or 'Test User',
            password=password,
            role=role,
            is_active=is_active,
        )

    @staticmethod
    def create_admin(email=None, name=None, password='testpass123'):
        """Create a test ADMIN user"""
        return TestDataFactory.create_user(email=email, name=name or 'Test Admin', password=password,
                                           role=User.ROLE_ADMIN)

    @staticmethod
    def create_category(name=None, is_active=True):
        """Create a test category"""
        if not name:
            name = f'Category_{TestDataFactory.random_string(6)}'
        return Category.objects.create(name=name, is_active=is_active)

    @staticmethod
    def create_product(name=None, category=None, with_variant=True, is_active=True):
        """Create a test product, with one variant by default"""
        if not name:
            name = f'Product_{TestDataFactory.random_string(6)}'
        if not category:
            category = TestDataFactory.create_category()
        product = Product.objects.create(name=name, category=category, is_active=is_active)
        if with_variant:
            TestDataFactory.create_variant(product)
        return product

    @staticmethod
    def create_variant(product, name=None, selling_price=Decimal('50000.00'), cost_price=Decimal('30000.00'),
                       stock_quantity=Decimal('0.000'), is_active=True):
        """Create a test variant"""
        return ProductVariant.objects.create(
            product=product,
            name=name or f'Size {TestDataFactory.random_string(3)}',
            selling_price=selling_price,
            cost_price=cost_price,
            stock_quantity=stock_quantity,
            is_active=is_active,
        )

    @staticmethod
    def create_ingredient(name=None, unit='kg', stock_quantity=Decimal('0.000'), is_active=True):
        """Create a test ingredient"""
        if not name:
            name = f'Ingredient_{TestDataFactory.random_string(6)}'
        return Ingredient.objects.create(name=name, unit=unit, stock_quantity=stock_quantity, is_active=is_active)

    @staticmethod
    def create_import(ingredient, quantity=Decimal('10.000'), import_price=Decimal('20000.00'), user=None,
                      import_date=None, adjust_stock=True):
        """Create a test inventory import, adding its quantity to the ingredient's stock"""
        entry = InventoryImport(
            ingredient=ingredient,
            quantity=quantity,
            import_price=import_price,
            import_date=import_date or timezone.now(),
            created_by=user,
        )
        entry.compute_total()
        entry.save()
        if adjust_stock:
            ingredient.stock_quantity += quantity
            ingredient.save(update_fields=['stock_quantity'])
        return entry

    @staticmethod
    def create_customer(name=None, phone=None, address=''):
        """Create a test customer"""
        if not name:
            name = f'Customer_{TestDataFactory.random_string(6)}'
        if not phone:
            phone = f'09{random.randint(10000000, 99999999)}'
        return Customer.objects.create(name=name, phone=phone, address=address)

    @staticmethod
    def create_order(user=None, items=None, status=Order.STATUS_PENDING, discount=Decimal('0.00'),
                     customer=None, delivery_time=None, created_at=None):
        """
        Create a test order the way the API does: priced from the variants,
        with their stock taken unless the order is cancelled.

        ``items`` is a list of ``(variant, quantity)``; one unit of a new
        product is ordered by default.
        """
        if items is None:
            variant = TestDataFactory.create_product().variants.first()
            items = [(variant, Decimal('1'))]

        order_items = build_order_items([
            {'product_variant_id': variant.id, 'quantity': Decimal(str(quantity))}
            for variant, quantity in items
        ])
        order = Order(
            customer_name=customer.name if customer else 'Walk-in Customer',
            phone=customer.phone if customer else '0900000000',
            address='1 Test Street',
            delivery_time=delivery_time or timezone.now() + timedelta(hours=1),
            status=status,
            discount=discount,
            customer=customer,
            created_by=user,
        )
        apply_totals(order, order_items)
        order.save()
        for item in order_items:
            item.order = order
        OrderItem.objects.bulk_create(order_items)
        if status != Order.STATUS_CANCELLED:
            take_stock(order_items)

        if created_at is not None:
            Order.objects.filter(pk=order.pk).update(created_at=created_at)
            order.refresh_from_db()
        return order


class AuthenticatedAPIClient(APIClient):
    """APIClient with authentication helper"""

    def authenticate_user(self, user):
        """Authenticate the client with a user"""
        refresh = RefreshToken.for_user(user)
        self.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
        return self

    def logout(self):
        """Remove authentication"""
        self.credentials()
