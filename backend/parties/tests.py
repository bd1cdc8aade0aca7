"""
Test suite for the parties module
Tests: Customers CRUD, search, order totals, order history
"""
from decimal import Decimal

from django.test import TestCase
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import Order
from backend.parties.models import Customer


class CustomerAPITests(TestCase):
    """Test customer endpoints"""

    def setUp(self):
        self.staff = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient().authenticate_user(self.staff)

    def test_create_customer(self):
        """Test any logged in user can create a customer"""
        data = {'name': 'Chị Lan', 'phone': ' 0901234567 ', 'address': '12 Lê Lợi'}
        response = self.client.post('/api/v1/customers/', data)
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['phone'], '0901234567')
        self.assertEqual(response.data['order_count'], 0)
        self.assertEqual(Decimal(response.data['total_spent']), Decimal('0'))

    def test_duplicate_phone(self):
        """Test phone numbers are unique"""
        TestDataFactory.create_customer(phone='0900000001')
        response = self.client.post('/api/v1/customers/', {'name': 'Other', 'phone': '0900000001'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Phone number already exists')

    def test_update_customer(self):
        """Test updating a customer, keeping its own phone"""
        customer = TestDataFactory.create_customer(phone='0900000002')
        response = self.client.patch(f'/api/v1/customers/{customer.id}/', {'phone': '0900000002', 'note': 'VIP'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['note'], 'VIP')

    def test_search_customers(self):
        """Test searching by name, phone and address"""
        TestDataFactory.create_customer(name='Anh Minh', phone='0911111111', address='Quận 1')
        TestDataFactory.create_customer(name='Chị Hoa', phone='0922222222', address='Quận 3')

        self.assertEqual(self.client.get('/api/v1/customers/', {'search': 'minh'}).data['count'], 1)
        self.assertEqual(self.client.get('/api/v1/customers/', {'search': '09222'}).data['count'], 1)
        self.assertEqual(self.client.get('/api/v1/customers/', {'search': 'Quận'}).data['count'], 2)

    def test_totals_skip_cancelled_orders(self):
        """Test order count includes every order while total spent skips cancelled ones"""
        customer = TestDataFactory.create_customer()
        variant = TestDataFactory.create_variant(TestDataFactory.create_product(with_variant=False),
                                                 selling_price=Decimal('10000'))
        TestDataFactory.create_order(customer=customer, items=[(variant, 2)], status=Order.STATUS_DONE)
        TestDataFactory.create_order(customer=customer, items=[(variant, 5)], status=Order.STATUS_CANCELLED)

        response = self.client.get(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['order_count'], 2)
        self.assertEqual(Decimal(response.data['total_spent']), Decimal('20000'))

    def test_customer_orders(self):
        """Test a customer's order history, newest first"""
        customer = TestDataFactory.create_customer()
        first = TestDataFactory.create_order(customer=customer)
        second = TestDataFactory.create_order(customer=customer)
        TestDataFactory.create_order()

        response = self.client.get(f'/api/v1/customers/{customer.id}/orders/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual({o['id'] for o in response.data['results']}, {first.id, second.id})
        self.assertEqual(response.data['results'][0]['items_count'], 1)

    def test_staff_cannot_delete_customer(self):
        """Test only admins delete customers"""
        customer = TestDataFactory.create_customer()
        response = self.client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_deletes_customer(self):
        """Test an admin deletes a customer without orders"""
        customer = TestDataFactory.create_customer()
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Customer.objects.filter(id=customer.id).exists())

    def test_delete_customer_with_orders(self):
        """Test a customer with orders cannot be deleted"""
        customer = TestDataFactory.create_customer()
        TestDataFactory.create_order(customer=customer)
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_admin())
        response = client.delete(f'/api/v1/customers/{customer.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Customer.objects.filter(id=customer.id).exists())
