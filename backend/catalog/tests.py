"""
Test suite for the catalog module
Tests: Categories, Products with nested variants, Variant endpoints, Role gating
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.catalog.models import Category, Product, ProductVariant
from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class CategoryAPITests(TestCase):
    """Test category endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_create_category(self):
        """Test creating a category"""
        response = self.client.post('/api/v1/categories/', {'name': '  Bánh mì  '})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['name'], 'Bánh mì')
        self.assertTrue(response.data['is_active'])
        self.assertEqual(response.data['product_count'], 0)

    def test_create_duplicate_category(self):
        """Test category names are unique regardless of case"""
        TestDataFactory.create_category(name='Drinks')
        response = self.client.post('/api/v1/categories/', {'name': 'drinks'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Category name already exists')

    def test_create_category_blank_name(self):
        """Test a blank category name is rejected"""
        response = self.client.post('/api/v1/categories/', {'name': ''})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_list_categories_with_filters(self):
        """Test listing categories with search and is_active filters"""
        category = TestDataFactory.create_category(name='Soup')
        TestDataFactory.create_category(name='Old', is_active=False)
        TestDataFactory.create_product(category=category)

        response = self.client.get('/api/v1/categories/', {'is_active': 'true'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 1)
        self.assertEqual(response.data['results'][0]['product_count'], 1)

        response = self.client.get('/api/v1/categories/', {'search': 'ol'})
        self.assertEqual([c['name'] for c in response.data['results']], ['Old'])

    def test_update_category(self):
        """Test renaming and deactivating a category"""
        category = TestDataFactory.create_category(name='Cakes')
        response = self.client.patch(f'/api/v1/categories/{category.id}/', {'name': 'Pastry', 'is_active': False})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        category.refresh_from_db()
        self.assertEqual(category.name, 'Pastry')
        self.assertFalse(category.is_active)

    def test_update_category_keeps_own_name(self):
        """Test saving a category under its current name is not a duplicate"""
        category = TestDataFactory.create_category(name='Cakes')
        response = self.client.patch(f'/api/v1/categories/{category.id}/', {'name': 'cakes'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_delete_empty_category(self):
        """Test deleting a category without products"""
        category = TestDataFactory.create_category()
        response = self.client.delete(f'/api/v1/categories/{category.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Category.objects.filter(id=category.id).exists())

    def test_delete_category_with_products(self):
        """Test a category with products cannot be deleted"""
        product = TestDataFactory.create_product()
        response = self.client.delete(f'/api/v1/categories/{product.category_id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Category.objects.filter(id=product.category_id).exists())

    def test_missing_category(self):
        """Test a missing category answers NOT_FOUND"""
        response = self.client.get('/api/v1/categories/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['message'], 'Category not found')

    def test_staff_can_read_but_not_write(self):
        """Test STAFF users may list categories but not create them"""
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        self.assertEqual(client.get('/api/v1/categories/').status_code, status.HTTP_200_OK)
        response = client.post('/api/v1/categories/', {'name': 'Nope'})
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)


class ProductAPITests(TestCase):
    """Test product endpoints with nested variants"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.category = TestDataFactory.create_category(name='Xôi')

    def product_payload(self, **overrides):
        data = {
            'name': 'Xôi gà',
            'description': 'Sticky rice with chicken',
            'category_id': self.category.id,
            'variants': [
                {'name': 'Small', 'selling_price': '25000', 'cost_price': '15000'},
                {'name': 'Large', 'unit': 'hộp', 'selling_price': '40000', 'cost_price': '24000'},
            ],
        }
        data.update(overrides)
        return data

    def test_create_product_with_variants(self):
        """Test creating a product together with its variants"""
        response = self.client.post('/api/v1/products/', self.product_payload())
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['category'], {'id': self.category.id, 'name': 'Xôi'})
        self.assertEqual([v['name'] for v in response.data['variants']], ['Small', 'Large'])
        self.assertEqual(response.data['variants'][0]['unit'], 'phần')
        self.assertEqual(response.data['variants'][1]['unit'], 'hộp')
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Product').exists())

    def test_create_product_without_variants(self):
        """Test a product needs at least one variant"""
        response = self.client.post('/api/v1/products/', self.product_payload(variants=[]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        data = self.product_payload()
        del data['variants']
        response = self.client.post('/api/v1/products/', data)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Product.objects.exists())

    def test_create_product_unknown_category(self):
        """Test creating a product in a missing category"""
        response = self.client.post('/api/v1/products/', self.product_payload(category_id=99999))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Category not found')

    def test_create_product_negative_price(self):
        """Test variant prices cannot be negative"""
        payload = self.product_payload(variants=[{'name': 'Bad', 'selling_price': '-1'}])
        response = self.client.post('/api/v1/products/', payload)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_list_products_filters(self):
        """Test filtering products by category, activity and search"""
        other = TestDataFactory.create_category()
        TestDataFactory.create_product(name='Xôi xéo', category=self.category)
        TestDataFactory.create_product(name='Chè', category=other)
        TestDataFactory.create_product(name='Xôi cũ', category=self.category, is_active=False)

        response = self.client.get('/api/v1/products/', {'category': self.category.id})
        self.assertEqual(response.data['count'], 2)
        response = self.client.get('/api/v1/products/', {'category': self.category.id, 'is_active': 'true'})
        self.assertEqual([p['name'] for p in response.data['results']], ['Xôi xéo'])
        response = self.client.get('/api/v1/products/', {'search': 'chè'})
        self.assertEqual(response.data['count'], 1)

    def test_update_product_syncs_variants(self):
        """Test the variant list on update replaces the product's variants"""
        product = TestDataFactory.create_product(category=self.category, with_variant=False)
        keep = TestDataFactory.create_variant(product, name='Keep')
        drop = TestDataFactory.create_variant(product, name='Drop')

        response = self.client.patch(f'/api/v1/products/{product.id}/', {
            'name': 'Renamed',
            'variants': [
                {'id': keep.id, 'name': 'Kept', 'selling_price': '99000'},
                {'name': 'New'},
            ],
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['name'], 'Renamed')
        self.assertEqual([v['name'] for v in response.data['variants']], ['Kept', 'New'])
        self.assertFalse(ProductVariant.objects.filter(id=drop.id).exists())
        keep.refresh_from_db()
        self.assertEqual(keep.selling_price, Decimal('99000.00'))

    def test_update_product_cannot_drop_ordered_variant(self):
        """Test a variant used by an order survives a variant sync"""
        product = TestDataFactory.create_product(category=self.category)
        variant = product.variants.first()
        TestDataFactory.create_order(items=[(variant, 1)])

        response = self.client.patch(f'/api/v1/products/{product.id}/', {'variants': [{'name': 'Other'}]})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('Cannot delete variant with existing orders', response.data['error']['message'])
        self.assertTrue(ProductVariant.objects.filter(id=variant.id).exists())
        self.assertEqual(product.variants.count(), 1)

    def test_update_product_foreign_variant_id(self):
        """Test a variant id from another product is rejected"""
        product = TestDataFactory.create_product(category=self.category)
        foreign = TestDataFactory.create_product().variants.first()
        response = self.client.patch(f'/api/v1/products/{product.id}/',
                                     {'variants': [{'id': foreign.id, 'name': 'Stolen'}]})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_delete_product_deactivates(self):
        """Test deleting a product only deactivates it"""
        product = TestDataFactory.create_product(category=self.category)
        response = self.client.delete(f'/api/v1/products/{product.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        product.refresh_from_db()
        self.assertFalse(product.is_active)

    def test_staff_cannot_create_product(self):
        """Test STAFF users get 403 on product writes"""
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.post('/api/v1/products/', self.product_payload())
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unauthenticated_list(self):
        """Test listing products requires a login"""
        self.client.logout()
        response = self.client.get('/api/v1/products/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)


class ProductVariantAPITests(TestCase):
    """Test the per-product variant endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)
        self.product = TestDataFactory.create_product(with_variant=False)

    def test_add_and_list_variants(self):
        """Test adding a variant to a product"""
        response = self.client.post(f'/api/v1/products/{self.product.id}/variants/',
                                    {'name': 'Family', 'selling_price': '120000'})
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['product'], self.product.id)

        response = self.client.get(f'/api/v1/products/{self.product.id}/variants/')
        self.assertEqual(len(response.data), 1)

    def test_variant_of_other_product(self):
        """Test a variant is only reachable under its own product"""
        variant = TestDataFactory.create_product().variants.first()
        response = self.client.get(f'/api/v1/products/{self.product.id}/variants/{variant.id}/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_update_variant(self):
        """Test updating a variant's price"""
        variant = TestDataFactory.create_variant(self.product)
        response = self.client.patch(f'/api/v1/products/{self.product.id}/variants/{variant.id}/',
                                     {'selling_price': '61000'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['selling_price']), Decimal('61000'))

    def test_delete_variant(self):
        """Test deleting an unused variant"""
        variant = TestDataFactory.create_variant(self.product)
        response = self.client.delete(f'/api/v1/products/{self.product.id}/variants/{variant.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)

    def test_delete_ordered_variant(self):
        """Test a variant with orders cannot be deleted"""
        variant = TestDataFactory.create_variant(self.product)
        TestDataFactory.create_order(items=[(variant, 2)])
        response = self.client.delete(f'/api/v1/products/{self.product.id}/variants/{variant.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(ProductVariant.objects.filter(id=variant.id).exists())
