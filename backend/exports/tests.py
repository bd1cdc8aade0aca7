"""
Test suite for the exports module
Tests: Orders, Revenue, Customers, Products and Inventory import workbooks
"""
from datetime import datetime, timedelta
from decimal import Decimal
from io import BytesIO

from django.test import TestCase
from django.utils import timezone
from openpyxl import load_workbook
from rest_framework import status

from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.exports.workbooks import XLSX_CONTENT_TYPE
from backend.orders.models import Order
from backend.parties.models import Customer

RANGE = {'from': '2024-07-01', 'to': '2024-07-02'}


def local_datetime(*args):
    return datetime(*args, tzinfo=timezone.get_current_timezone())


class ExportTests(TestCase):
    """Test the Excel export endpoints"""

    def setUp(self):
        self.admin = TestDataFactory.create_admin(name='Owner')
        self.client = AuthenticatedAPIClient().authenticate_user(self.admin)

        product = TestDataFactory.create_product(name='Bánh cuốn', with_variant=False)
        self.variant = TestDataFactory.create_variant(product, name='Đĩa', selling_price=Decimal('35000'),
                                                      cost_price=Decimal('20000'))
        self.customer = TestDataFactory.create_customer(name='Anh Nam', phone='0977777777')
        TestDataFactory.create_order(user=self.admin, customer=self.customer, items=[(self.variant, 2)],
                                     status=Order.STATUS_DONE, created_at=local_datetime(2024, 7, 1, 12))
        TestDataFactory.create_order(items=[(self.variant, 1)], status=Order.STATUS_CANCELLED,
                                     created_at=local_datetime(2024, 7, 2, 12))
        TestDataFactory.create_order(items=[(self.variant, 1)], created_at=local_datetime(2024, 8, 1, 12))

    def open_workbook(self, response):
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response['Content-Type'], XLSX_CONTENT_TYPE)
        return load_workbook(BytesIO(response.content))

    def test_export_orders(self):
        """Test the orders workbook lists orders in range and their items"""
        response = self.client.get('/api/v1/export/orders/', RANGE)
        wb = self.open_workbook(response)
        self.assertEqual(response['Content-Disposition'], 'attachment; filename="orders_2024-07-01_2024-07-02.xlsx"')
        self.assertEqual(wb.sheetnames, ['Orders', 'Order Items'])

        rows = list(wb['Orders'].iter_rows(values_only=True))
        self.assertEqual(rows[0][0], 'Order')
        self.assertEqual(len(rows), 3)
        statuses = {row[7] for row in rows[1:]}
        self.assertEqual(statuses, {'Done', 'Cancelled'})
        done = next(row for row in rows[1:] if row[7] == 'Done')
        self.assertEqual(done[1], 'Anh Nam')
        self.assertEqual(done[4], 70000)
        self.assertEqual(done[11], 'Owner')

        items = list(wb['Order Items'].iter_rows(values_only=True))
        self.assertEqual(len(items), 3)
        self.assertEqual(items[1][2], 'Bánh cuốn')

    def test_export_orders_empty_range(self):
        """Test a range without orders has no items sheet"""
        response = self.client.get('/api/v1/export/orders/', {'from': '2023-01-01', 'to': '2023-01-02'})
        wb = self.open_workbook(response)
        self.assertEqual(wb.sheetnames, ['Orders'])
        self.assertEqual(wb['Orders'].max_row, 1)

    def test_export_orders_requires_range(self):
        """Test the orders export needs from and to"""
        response = self.client.get('/api/v1/export/orders/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')

    def test_export_revenue(self):
        """Test the revenue workbook summary and daily sheets"""
        response = self.client.get('/api/v1/export/revenue/', RANGE)
        wb = self.open_workbook(response)
        self.assertEqual(wb.sheetnames, ['Summary', 'Daily'])

        summary = {row[0]: row[1] for row in wb['Summary'].iter_rows(min_row=3, values_only=True)}
        self.assertEqual(summary['Total revenue'], 70000)
        self.assertEqual(summary['Gross profit'], 30000)
        self.assertEqual(summary['Orders'], 1)

        daily = list(wb['Daily'].iter_rows(min_row=2, values_only=True))
        self.assertEqual([row[0] for row in daily], ['2024-07-01', '2024-07-02'])

    def test_export_customers_without_range(self):
        """Test the customers export without a range is named after today"""
        response = self.client.get('/api/v1/export/customers/')
        wb = self.open_workbook(response)
        today = timezone.localdate().isoformat()
        self.assertEqual(response['Content-Disposition'], f'attachment; filename="customers_{today}.xlsx"')

        rows = list(wb['Customers'].iter_rows(min_row=2, values_only=True))
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0][0], 'Anh Nam')
        self.assertEqual(rows[0][4], 1)
        self.assertEqual(rows[0][5], 70000)

    def test_export_customers_with_range(self):
        """Test a range limits customers to those created within it"""
        response = self.client.get('/api/v1/export/customers/', {'from': '2020-01-01', 'to': '2020-01-02'})
        wb = self.open_workbook(response)
        self.assertEqual(wb['Customers'].max_row, 1)

    def test_export_customers_from_only(self):
        """Test a lone from date still limits customers and names the file after today"""
        Customer.objects.filter(pk=self.customer.pk).update(created_at=timezone.now() - timedelta(days=30))
        TestDataFactory.create_customer(name='Chị Lan', phone='0966666666')
        since = (timezone.localdate() - timedelta(days=1)).isoformat()

        response = self.client.get('/api/v1/export/customers/', {'from': since})
        wb = self.open_workbook(response)
        today = timezone.localdate().isoformat()
        self.assertEqual(response['Content-Disposition'], f'attachment; filename="customers_{today}.xlsx"')

        rows = list(wb['Customers'].iter_rows(min_row=2, values_only=True))
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0][0], 'Chị Lan')

    def test_export_products(self):
        """Test the products workbook lists products and their variants"""
        response = self.client.get('/api/v1/export/products/')
        wb = self.open_workbook(response)
        self.assertEqual(wb.sheetnames, ['Products', 'Variants'])
        products = list(wb['Products'].iter_rows(min_row=2, values_only=True))
        self.assertEqual(products[0][1], 'Bánh cuốn')
        self.assertEqual(products[0][4], 1)
        variants = list(wb['Variants'].iter_rows(min_row=2, values_only=True))
        self.assertEqual(variants[0][:3], ('Bánh cuốn', 'Đĩa', 'phần'))

    def test_export_inventory_imports(self):
        """Test the imports workbook and its per-ingredient summary"""
        ingredient = TestDataFactory.create_ingredient(name='Bột gạo')
        TestDataFactory.create_import(ingredient, quantity=Decimal('5'), import_price=Decimal('18000'),
                                      import_date=local_datetime(2024, 7, 1, 7), user=self.admin)
        TestDataFactory.create_import(ingredient, quantity=Decimal('3'), import_price=Decimal('20000'),
                                      import_date=local_datetime(2024, 7, 2, 7))

        response = self.client.get('/api/v1/export/inventory-imports/', RANGE)
        wb = self.open_workbook(response)
        self.assertEqual(response['Content-Disposition'],
                         'attachment; filename="inventory_2024-07-01_2024-07-02.xlsx"')
        self.assertEqual(wb.sheetnames, ['Imports', 'Summary'])
        self.assertEqual(wb['Imports'].max_row, 3)

        summary = list(wb['Summary'].iter_rows(min_row=2, values_only=True))
        self.assertEqual(summary[0], ('Bột gạo', 'kg', 8, 150000, 2))
        self.assertEqual(summary[-1][0], 'Total')
        self.assertEqual(summary[-1][3], 150000)

    def test_staff_forbidden(self):
        """Test STAFF users cannot export"""
        client = AuthenticatedAPIClient().authenticate_user(TestDataFactory.create_user())
        response = client.get('/api/v1/export/products/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
