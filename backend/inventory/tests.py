"""
Test suite for the inventory module
Tests: Ingredients, Inventory imports and the stock they move, Import stats,
the check_stock_sync command
"""
from datetime import datetime
from decimal import Decimal
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.inventory.models import Ingredient, InventoryImport


class IngredientAPITests(TestCase):
    """Test ingredient endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_create_ingredient(self):
        """Test creating an ingredient starts with zero stock"""
        response = self.client.post('/api/v1/ingredients/', {'name': 'Gạo nếp', 'unit': 'kg'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['stock_quantity']), Decimal('0'))
        self.assertEqual(response.data['import_count'], 0)

    def test_stock_quantity_is_read_only(self):
        """Test stock cannot be set through the ingredient endpoint"""
        response = self.client.post('/api/v1/ingredients/', {'name': 'Đường', 'stock_quantity': '50'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Ingredient.objects.get(name='Đường').stock_quantity, Decimal('0'))

    def test_duplicate_ingredient(self):
        """Test ingredient names are unique regardless of case"""
        TestDataFactory.create_ingredient(name='Salt')
        response = self.client.post('/api/v1/ingredients/', {'name': 'SALT'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_active_list(self):
        """Test the active list skips inactive ingredients and sorts by name"""
        TestDataFactory.create_ingredient(name='Pepper')
        TestDataFactory.create_ingredient(name='Basil')
        TestDataFactory.create_ingredient(name='Old', is_active=False)
        response = self.client.get('/api/v1/ingredients/active/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([i['name'] for i in response.data], ['Basil', 'Pepper'])

    def test_delete_ingredient_with_imports(self):
        """Test an ingredient with imports cannot be deleted"""
        ingredient = TestDataFactory.create_ingredient()
        TestDataFactory.create_import(ingredient)
        response = self.client.delete(f'/api/v1/ingredients/{ingredient.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Ingredient.objects.filter(id=ingredient.id).exists())

    def test_delete_unused_ingredient(self):
        """Test deleting an ingredient without imports"""
        ingredient = TestDataFactory.create_ingredient()
        response = self.client.delete(f'/api/v1/ingredients/{ingredient.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_staff_cannot_create_ingredient(self):
        """Test STAFF users get 403 on ingredient writes"""
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.post('/api/v1/ingredients/', {'name': 'Nope'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class InventoryImportAPITests(TestCase):
    """Test inventory imports and the ingredient stock they move"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.ingredient = TestDataFactory.create_ingredient(name='Thịt gà', stock_quantity=Decimal('5.000'))

    def test_create_import_adds_stock(self):
        """Test recording an import adds to stock and computes the total"""
        data = {'ingredient_id': self.ingredient.id, 'quantity': '2.5', 'import_price': '120000'}
        response = self.client.post('/api/v1/inventory-imports/', data)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(Decimal(response.data['total_price']), Decimal('300000.00'))
        self.assertEqual(response.data['ingredient']['name'], 'Thịt gà')
        self.assertEqual(response.data['created_by'], self.admin.id)

        self.ingredient.refresh_from_db()
        self.assertEqual(self.ingredient.stock_quantity, Decimal('7.500'))
        self.assertTrue(AuditLog.objects.filter(action='stock_import').exists())

    def test_create_import_inactive_ingredient(self):
        """Test importing into an inactive ingredient"""
        ingredient = TestDataFactory.create_ingredient(is_active=False)
        data = {'ingredient_id': ingredient.id, 'quantity': '1', 'import_price': '1000'}
        response = self.client.post('/api/v1/inventory-imports/', data)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Ingredient is inactive')

    def test_create_import_unknown_ingredient(self):
        """Test importing into a missing ingredient"""
        data = {'ingredient_id': 99999, 'quantity': '1', 'import_price': '1000'}
        response = self.client.post('/api/v1/inventory-imports/', data)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Ingredient not found')
        self.assertIn('ingredient_id', response.data['error']['details'])

    def test_create_import_zero_quantity(self):
        """Test a zero quantity is rejected and stock is untouched"""
        data = {'ingredient_id': self.ingredient.id, 'quantity': '0', 'import_price': '1000'}
        response = self.client.post('/api/v1/inventory-imports/', data)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.ingredient.refresh_from_db()
        self.assertEqual(self.ingredient.stock_quantity, Decimal('5.000'))

    def test_update_import_moves_stock_by_difference(self):
        """Test editing the quantity moves stock by the difference"""
        entry = TestDataFactory.create_import(self.ingredient, quantity=Decimal('10'))
        response = self.client.patch(f'/api/v1/inventory-imports/{entry.id}/', {'quantity': '4'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_price']), Decimal('80000.00'))
        self.ingredient.refresh_from_db()
        self.assertEqual(self.ingredient.stock_quantity, Decimal('9.000'))

    def test_update_import_price_only(self):
        """Test changing only the price keeps stock as it was"""
        entry = TestDataFactory.create_import(self.ingredient, quantity=Decimal('2'))
        response = self.client.patch(f'/api/v1/inventory-imports/{entry.id}/', {'import_price': '1000'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_price']), Decimal('2000.00'))
        self.ingredient.refresh_from_db()
        self.assertEqual(self.ingredient.stock_quantity, Decimal('7.000'))

    def test_delete_import_removes_stock(self):
        """Test deleting an import takes its quantity back out of stock"""
        entry = TestDataFactory.create_import(self.ingredient, quantity=Decimal('3'))
        response = self.client.delete(f'/api/v1/inventory-imports/{entry.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(InventoryImport.objects.filter(id=entry.id).exists())
        self.ingredient.refresh_from_db()
        self.assertEqual(self.ingredient.stock_quantity, Decimal('5.000'))
        self.assertTrue(AuditLog.objects.filter(action='stock_import_delete').exists())

    def test_list_imports_by_date_and_ingredient(self):
        """Test filtering imports by date range and ingredient"""
        tz = timezone.get_current_timezone()
        TestDataFactory.create_import(self.ingredient, import_date=datetime(2024, 5, 1, 9, tzinfo=tz))
        TestDataFactory.create_import(self.ingredient, import_date=datetime(2024, 5, 3, 23, 30, tzinfo=tz))
        other = TestDataFactory.create_ingredient()
        TestDataFactory.create_import(other, import_date=datetime(2024, 5, 2, 9, tzinfo=tz))

        response = self.client.get('/api/v1/inventory-imports/', {'from': '2024-05-02', 'to': '2024-05-03'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)

        response = self.client.get('/api/v1/inventory-imports/', {'ingredient': self.ingredient.id})
        self.assertEqual(response.data['count'], 2)

    def test_staff_can_list_but_not_import(self):
        """Test STAFF users may read imports but not record them"""
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.assertEqual(client.get('/api/v1/inventory-imports/').status_code, status.HTTP_200_OK)
        data = {'ingredient_id': self.ingredient.id, 'quantity': '1', 'import_price': '1000'}
        response = client.post('/api/v1/inventory-imports/', data)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_import_stats(self):
        """Test the import count and total cost"""
        TestDataFactory.create_import(self.ingredient, quantity=Decimal('2'), import_price=Decimal('1000'))
        TestDataFactory.create_import(self.ingredient, quantity=Decimal('1'), import_price=Decimal('500'))
        response = self.client.get('/api/v1/inventory-imports/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {'total_imports': 2, 'total_cost': 2500.0})


class CheckStockSyncCommandTests(TestCase):
    """Test the check_stock_sync management command"""

    def test_reports_and_fixes_drift(self):
        """Test a drifted stock is reported and repaired with --fix"""
        ingredient = TestDataFactory.create_ingredient()
        TestDataFactory.create_import(ingredient, quantity=Decimal('4'))
        Ingredient.objects.filter(pk=ingredient.pk).update(stock_quantity=Decimal('1'))

        out = StringIO()
        call_command('check_stock_sync', stdout=out)
        self.assertIn('1 ingredient(s) out of sync', out.getvalue())
        ingredient.refresh_from_db()
        self.assertEqual(ingredient.stock_quantity, Decimal('1.000'))

        call_command('check_stock_sync', '--fix', stdout=StringIO())
        ingredient.refresh_from_db()
        self.assertEqual(ingredient.stock_quantity, Decimal('4.000'))

    def test_in_sync(self):
        """Test nothing is reported when stock matches the imports"""
        ingredient = TestDataFactory.create_ingredient()
        TestDataFactory.create_import(ingredient, quantity=Decimal('2'))
        out = StringIO()
        call_command('check_stock_sync', stdout=out)
        self.assertIn('All ingredient stock matches the imports', out.getvalue())
