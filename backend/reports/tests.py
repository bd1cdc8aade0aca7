"""
Test suite for the reports module
Tests: Revenue, Costs, Profit, Order stats, Top products, Daily revenue, Access
"""
from datetime import datetime
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import Order

RANGE = {'from': '2024-06-01', 'to': '2024-06-03'}


def local_datetime(*args):
    return datetime(*args, tzinfo=timezone.get_current_timezone())


class ReportsTests(TestCase):
    """Test report endpoints over a fixed three day range"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

        product = TestDataFactory.create_product(name='Chè', with_variant=False)
        self.cup = TestDataFactory.create_variant(product, name='Ly', selling_price=Decimal('20000'),
                                                  cost_price=Decimal('5000'))
        self.pot = TestDataFactory.create_variant(product, name='Nồi', selling_price=Decimal('100000'),
                                                  cost_price=Decimal('40000'))

        # Revenue: one confirmed on day 1 and one done on day 3
        TestDataFactory.create_order(items=[(self.cup, 3)], status=Order.STATUS_CONFIRMED,
                                     created_at=local_datetime(2024, 6, 1, 10))
        TestDataFactory.create_order(items=[(self.pot, 1), (self.cup, 1)], status=Order.STATUS_DONE,
                                     discount=Decimal('20000'), created_at=local_datetime(2024, 6, 3, 23, 15))
        # Not revenue
        TestDataFactory.create_order(items=[(self.pot, 2)], status=Order.STATUS_PENDING,
                                     created_at=local_datetime(2024, 6, 2, 9))
        TestDataFactory.create_order(items=[(self.pot, 5)], status=Order.STATUS_CANCELLED,
                                     created_at=local_datetime(2024, 6, 2, 9))
        # Outside the range
        TestDataFactory.create_order(items=[(self.pot, 9)], status=Order.STATUS_DONE,
                                     created_at=local_datetime(2024, 6, 4, 0, 5))

        ingredient = TestDataFactory.create_ingredient()
        TestDataFactory.create_import(ingredient, quantity=Decimal('2'), import_price=Decimal('30000'),
                                      import_date=local_datetime(2024, 6, 2, 8))
        TestDataFactory.create_import(ingredient, quantity=Decimal('1'), import_price=Decimal('50000'),
                                      import_date=local_datetime(2024, 5, 31, 8))

    def test_revenue(self):
        """Test revenue counts confirmed and done orders only"""
        response = self.client.get('/api/v1/reports/revenue/', RANGE)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data, {
            'total_revenue': 160000.0,
            'total_orders': 2,
            'average_order_value': 80000.0,
            'period_start': '2024-06-01',
            'period_end': '2024-06-03',
        })

    def test_costs(self):
        """Test costs sum the imports within the range"""
        response = self.client.get('/api/v1/reports/costs/', RANGE)
        self.assertEqual(response.data['total_import_cost'], 60000.0)
        self.assertEqual(response.data['total_imports'], 1)

    def test_profit(self):
        """Test profit uses the cost snapshot of revenue orders"""
        response = self.client.get('/api/v1/reports/profit/', RANGE)
        self.assertEqual(response.data['total_revenue'], 160000.0)
        self.assertEqual(response.data['total_cost'], 60000.0)
        self.assertEqual(response.data['gross_profit'], 100000.0)

    def test_orders_stats(self):
        """Test order counts per status"""
        response = self.client.get('/api/v1/reports/orders-stats/', RANGE)
        self.assertEqual(response.data['total_orders'], 4)
        self.assertEqual(response.data['pending_orders'], 1)
        self.assertEqual(response.data['confirmed_orders'], 1)
        self.assertEqual(response.data['done_orders'], 1)
        self.assertEqual(response.data['cancelled_orders'], 1)

    def test_top_products(self):
        """Test variants are ranked by quantity sold"""
        response = self.client.get('/api/v1/reports/top-products/', RANGE)
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        products = response.data['products']
        self.assertEqual([p['variant_id'] for p in products], [self.cup.id, self.pot.id])
        self.assertEqual(products[0]['total_quantity'], 4.0)
        self.assertEqual(products[0]['total_revenue'], 80000.0)
        self.assertEqual(products[0]['product_name'], 'Chè')

        response = self.client.get('/api/v1/reports/top-products/', {**RANGE, 'limit': 1})
        self.assertEqual(len(response.data['products']), 1)

    def test_top_products_invalid_limit(self):
        """Test the limit must be positive"""
        response = self.client.get('/api/v1/reports/top-products/', {**RANGE, 'limit': 0})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_daily_revenue_fills_missing_days(self):
        """Test every day of the range is present, with zeros for quiet days"""
        response = self.client.get('/api/v1/reports/daily-revenue/', RANGE)
        data = response.data['data']
        self.assertEqual([d['date'] for d in data], ['2024-06-01', '2024-06-02', '2024-06-03'])
        self.assertEqual(data[0]['revenue'], 60000.0)
        self.assertEqual(data[0]['orders'], 1)
        self.assertEqual(data[1], {'date': '2024-06-02', 'revenue': 0.0, 'cost': 0.0, 'profit': 0.0, 'orders': 0})
        self.assertEqual(data[2]['revenue'], 100000.0)

    def test_range_required(self):
        """Test reports need both from and to"""
        response = self.client.get('/api/v1/reports/revenue/', {'from': '2024-06-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_reversed_range(self):
        """Test from after to is rejected"""
        response = self.client.get('/api/v1/reports/revenue/', {'from': '2024-06-05', 'to': '2024-06-01'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_staff_forbidden(self):
        """Test STAFF users cannot read reports"""
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/reports/revenue/', RANGE)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
