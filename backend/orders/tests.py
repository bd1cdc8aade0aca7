"""
Test suite for the orders module
Tests: Order creation and pricing, Status transitions and stock, Item edits,
Listing, sorting and filters, Upcoming deliveries, Deletion
"""
from datetime import timedelta
from decimal import Decimal

from django.test import TestCase
from django.utils import timezone
from rest_framework import status

from backend.core.models import AuditLog
from backend.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from backend.orders.models import Order, OrderItem


class OrderTestMixin:
    """Shared catalog setup: two sellable variants with known prices"""

    def setUp(self):
        self.staff = TestDataFactory.create_user()
        self.admin = TestDataFactory.create_admin()
        self.client = AuthenticatedAPIClient().authenticate_user(self.staff)

        product = TestDataFactory.create_product(name='Bánh bao', with_variant=False)
        self.small = TestDataFactory.create_variant(product, name='Nhỏ', selling_price=Decimal('15000'),
                                                    cost_price=Decimal('8000'), stock_quantity=Decimal('20'))
        self.large = TestDataFactory.create_variant(product, name='Lớn', selling_price=Decimal('25000'),
                                                    cost_price=Decimal('12000'), stock_quantity=Decimal('20'))

    def order_payload(self, **overrides):
        data = {
            'customer_name': 'Cô Ba',
            'phone': '0903333333',
            'address': '45 Hai Bà Trưng',
            'delivery_time': (timezone.now() + timedelta(hours=3)).isoformat(),
            'items': [
                {'product_variant_id': self.small.id, 'quantity': '2'},
                {'product_variant_id': self.large.id, 'quantity': '1'},
            ],
        }
        data.update(overrides)
        return data

    def assertStock(self, variant, expected):
        variant.refresh_from_db()
        self.assertEqual(variant.stock_quantity, Decimal(expected))


class OrderCreateTests(OrderTestMixin, TestCase):
    """Test placing orders"""

    def test_create_order_prices_and_totals(self):
        """Test an order snapshots prices and computes its totals"""
        response = self.client.post('/api/v1/orders/', self.order_payload(discount='5000'))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['status'], Order.STATUS_PENDING)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('50000'))
        self.assertEqual(Decimal(response.data['total_cost']), Decimal('28000'))
        self.assertEqual(Decimal(response.data['total_profit']), Decimal('22000'))
        self.assertEqual(response.data['created_by'], self.staff.id)
        self.assertEqual(len(response.data['items']), 2)
        self.assertEqual(Decimal(response.data['items'][0]['subtotal']), Decimal('30000'))
        self.assertTrue(AuditLog.objects.filter(action='create', model_name='Order').exists())

    def test_create_order_takes_stock(self):
        """Test placing an order takes the ordered quantities out of stock"""
        self.client.post('/api/v1/orders/', self.order_payload())
        self.assertStock(self.small, '18')
        self.assertStock(self.large, '19')

    def test_later_price_change_keeps_snapshot(self):
        """Test changing a variant price does not reprice existing orders"""
        response = self.client.post('/api/v1/orders/', self.order_payload())
        self.small.selling_price = Decimal('99000')
        self.small.save()
        item = OrderItem.objects.get(order_id=response.data['id'], product_variant=self.small)
        self.assertEqual(item.unit_price, Decimal('15000.00'))

    def test_create_order_without_items(self):
        """Test an order needs at least one item"""
        response = self.client.post('/api/v1/orders/', self.order_payload(items=[]))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        payload = self.order_payload()
        del payload['items']
        response = self.client.post('/api/v1/orders/', payload)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_create_order_unknown_variant(self):
        """Test ordering a missing variant"""
        payload = self.order_payload(items=[{'product_variant_id': 99999, 'quantity': '1'}])
        response = self.client.post('/api/v1/orders/', payload)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Product variant 99999 not found')

    def test_create_order_inactive_variant(self):
        """Test ordering an inactive variant leaves stock alone"""
        self.large.is_active = False
        self.large.save()
        response = self.client.post('/api/v1/orders/', self.order_payload())
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())
        self.assertStock(self.small, '20')

    def test_discount_above_subtotal(self):
        """Test a discount larger than the subtotal is rejected"""
        response = self.client.post('/api/v1/orders/', self.order_payload(discount='60000'))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertFalse(Order.objects.exists())

    def test_missing_required_fields(self):
        """Test customer name and delivery time are required"""
        payload = self.order_payload()
        del payload['customer_name']
        del payload['delivery_time']
        response = self.client.post('/api/v1/orders/', payload)
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn('customer_name', response.data['error']['details'])
        self.assertIn('delivery_time', response.data['error']['details'])

    def test_unknown_customer(self):
        """Test linking an order to a missing customer"""
        response = self.client.post('/api/v1/orders/', self.order_payload(customer_id=99999))
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_link_customer(self):
        """Test an order can point at a saved customer"""
        customer = TestDataFactory.create_customer()
        response = self.client.post('/api/v1/orders/', self.order_payload(customer_id=customer.id))
        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['customer'], customer.id)


class OrderStatusTests(OrderTestMixin, TestCase):
    """Test status transitions and the stock they move"""

    def setUp(self):
        super().setUp()
        self.order = TestDataFactory.create_order(user=self.staff, items=[(self.small, 3)])

    def test_confirm_order(self):
        """Test confirming an order logs a status change"""
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': Order.STATUS_CONFIRMED})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['status'], Order.STATUS_CONFIRMED)
        log = AuditLog.objects.get(action='status_change')
        self.assertEqual(log.changes['status'], {'old': Order.STATUS_PENDING, 'new': Order.STATUS_CONFIRMED})
        self.assertStock(self.small, '17')

    def test_cancel_restores_stock(self):
        """Test cancelling gives the stock back"""
        self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': Order.STATUS_CANCELLED})
        self.assertStock(self.small, '20')
        log = AuditLog.objects.get(action='stock_restore')
        self.assertEqual(log.changes['items'], [{'variant_id': self.small.id, 'quantity': '3.000'}])

    def test_reopen_cancelled_order_takes_stock_again(self):
        """Test moving a cancelled order to done takes the stock again"""
        self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': Order.STATUS_CANCELLED})
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': Order.STATUS_DONE})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertStock(self.small, '17')

    def test_closed_order_rejects_edits(self):
        """Test a done order cannot be edited or reopened"""
        self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': Order.STATUS_DONE})

        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'note': 'late'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['message'], 'Cannot update completed or cancelled orders')

        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': Order.STATUS_PENDING})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_invalid_status(self):
        """Test an unknown status is rejected"""
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': 'SHIPPED'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['error']['code'], 'VALIDATION_ERROR')


class OrderEditTests(OrderTestMixin, TestCase):
    """Test editing order details and items"""

    def setUp(self):
        super().setUp()
        self.order = TestDataFactory.create_order(user=self.staff, items=[(self.small, 2)])

    def test_edit_contact_details(self):
        """Test editing contact details keeps items and totals"""
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'address': 'New address', 'note': 'Ring'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['address'], 'New address')
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('30000'))
        self.assertTrue(AuditLog.objects.filter(action='update', model_name='Order').exists())

    def test_replace_items(self):
        """Test replacing items reprices the order and moves stock"""
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {
            'items': [{'product_variant_id': self.large.id, 'quantity': '4'}],
        })
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['items']), 1)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('100000'))
        self.assertStock(self.small, '20')
        self.assertStock(self.large, '16')

    def test_change_discount(self):
        """Test a new discount recomputes the totals"""
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {'discount': '10000'})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(Decimal(response.data['total_amount']), Decimal('20000'))
        self.assertEqual(Decimal(response.data['total_profit']), Decimal('4000'))

    def test_items_locked_after_confirmation(self):
        """Test items cannot change once the order is confirmed"""
        self.client.patch(f'/api/v1/orders/{self.order.id}/', {'status': Order.STATUS_CONFIRMED})
        response = self.client.patch(f'/api/v1/orders/{self.order.id}/', {
            'items': [{'product_variant_id': self.large.id, 'quantity': '1'}],
        })
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertStock(self.small, '18')


class OrderListTests(OrderTestMixin, TestCase):
    """Test listing, filtering and sorting orders"""

    def test_filter_by_status_and_search(self):
        """Test status and search filters"""
        TestDataFactory.create_order(items=[(self.small, 1)], status=Order.STATUS_DONE)
        customer = TestDataFactory.create_customer(name='Bà Tư', phone='0988888888')
        TestDataFactory.create_order(items=[(self.small, 1)], customer=customer)

        response = self.client.get('/api/v1/orders/', {'status': Order.STATUS_DONE})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/orders/', {'search': '098888'})
        self.assertEqual(response.data['count'], 1)
        response = self.client.get('/api/v1/orders/', {'customer': customer.id})
        self.assertEqual(response.data['count'], 1)

    def test_filter_by_created_range(self):
        """Test the from/to range applies to the creation time"""
        TestDataFactory.create_order(items=[(self.small, 1)], created_at=timezone.now() - timedelta(days=10))
        TestDataFactory.create_order(items=[(self.small, 1)])
        today = timezone.localdate().isoformat()
        response = self.client.get('/api/v1/orders/', {'from': today, 'to': today})
        self.assertEqual(response.data['count'], 1)

    def test_sort_by_total(self):
        """Test sorting by total amount ascending"""
        big = TestDataFactory.create_order(items=[(self.large, 3)])
        small = TestDataFactory.create_order(items=[(self.small, 1)])
        response = self.client.get('/api/v1/orders/', {'sort_by': 'total_amount', 'sort_order': 'asc'})
        self.assertEqual([o['id'] for o in response.data['results']], [small.id, big.id])

    def test_invalid_sort_field(self):
        """Test an unknown sort field is rejected"""
        response = self.client.get('/api/v1/orders/', {'sort_by': 'phone'})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_get_missing_order(self):
        """Test a missing order answers NOT_FOUND"""
        response = self.client.get('/api/v1/orders/99999/')
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(response.data['error']['message'], 'Order not found')


class UpcomingOrderTests(OrderTestMixin, TestCase):
    """Test the upcoming deliveries endpoint"""

    def test_upcoming_window(self):
        """Test only open orders due within the window are returned, soonest first"""
        now = timezone.now()
        later = TestDataFactory.create_order(items=[(self.small, 1)], delivery_time=now + timedelta(minutes=90))
        sooner = TestDataFactory.create_order(items=[(self.small, 1)], delivery_time=now + timedelta(minutes=30))
        TestDataFactory.create_order(items=[(self.small, 1)], delivery_time=now + timedelta(hours=5))
        TestDataFactory.create_order(items=[(self.small, 1)], delivery_time=now + timedelta(minutes=20),
                                     status=Order.STATUS_DONE)
        TestDataFactory.create_order(items=[(self.small, 1)], delivery_time=now - timedelta(minutes=20))

        response = self.client.get('/api/v1/orders/upcoming/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['count'], 2)
        self.assertEqual([o['id'] for o in response.data['orders']], [sooner.id, later.id])

        response = self.client.get('/api/v1/orders/upcoming/', {'hours': 6})
        self.assertEqual(response.data['count'], 3)

    def test_upcoming_hours_bounds(self):
        """Test the window must be between 1 and 72 hours"""
        self.assertEqual(self.client.get('/api/v1/orders/upcoming/', {'hours': 0}).status_code,
                         status.HTTP_400_BAD_REQUEST)
        self.assertEqual(self.client.get('/api/v1/orders/upcoming/', {'hours': 73}).status_code,
                         status.HTTP_400_BAD_REQUEST)


class OrderDeleteTests(OrderTestMixin, TestCase):
    """Test deleting orders"""

    def setUp(self):
        super().setUp()
        self.order = TestDataFactory.create_order(items=[(self.small, 4)])
        self.admin_client = AuthenticatedAPIClient().authenticate_user(self.admin)

    def test_staff_cannot_delete(self):
        """Test only admins delete orders"""
        response = self.client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_deletes_pending_order(self):
        """Test deleting a pending order restores its stock"""
        response = self.admin_client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Order.objects.filter(id=self.order.id).exists())
        self.assertFalse(OrderItem.objects.filter(order_id=self.order.id).exists())
        self.assertStock(self.small, '20')

    def test_cannot_delete_confirmed_order(self):
        """Test only pending orders can be deleted"""
        Order.objects.filter(pk=self.order.pk).update(status=Order.STATUS_CONFIRMED)
        response = self.admin_client.delete(f'/api/v1/orders/{self.order.id}/')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertTrue(Order.objects.filter(id=self.order.id).exists())
