"""
Test suite for Reports module
Tests: Dashboard, Sales Summary, Top Products, Customers
"""
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from backoffice.core.test_utils import TestDataFactory, AuthenticatedAPIClient


class ReportsTests(TestCase):
    """Test report endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product(name='Café', cost_price='6.00', sale_price='10.00')

    def test_dashboard(self):
        TestDataFactory.create_order(items=[(self.product, 2)], status='delivered')
        TestDataFactory.create_order(items=[(self.product, 1)], status='pending')
        TestDataFactory.create_order(items=[(self.product, 1)], status='preparing')
        TestDataFactory.create_order(items=[(self.product, 1)], status='sent')
        TestDataFactory.create_product(name='Acabando', stock_quantity=1, min_stock_alert=3)

        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['today_revenue'], 20.0)
        self.assertEqual(response.data['today_orders'], 1)
        self.assertEqual(response.data['pending_orders'], 2)
        self.assertEqual(len(response.data['latest_pending_orders']), 2)
        self.assertEqual([p['name'] for p in response.data['low_stock_products']], ['Acabando'])
        self.assertEqual(response.data['total_customers'], 4)

    def test_dashboard_is_cached_until_orders_change(self):
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['pending_orders'], 0)

        TestDataFactory.create_order(status='pending')
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['pending_orders'], 0)

        with self.captureOnCommitCallbacks(execute=True):
            TestDataFactory.create_order(status='pending')
        response = self.client.get('/api/v1/reports/dashboard/')
        self.assertEqual(response.data['pending_orders'], 2)

    def test_sales_summary(self):
        TestDataFactory.create_order(items=[(self.product, 2)], status='delivered')
        TestDataFactory.create_order(items=[(self.product, 4)], status='delivered')
        TestDataFactory.create_order(items=[(self.product, 9)], status='cancelled')

        response = self.client.get('/api/v1/reports/sales-summary/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        summary = response.data['summary']
        self.assertEqual(summary['total_revenue'], 60.0)
        self.assertEqual(summary['total_cost'], 36.0)
        self.assertEqual(summary['total_profit'], 24.0)
        self.assertEqual(summary['total_orders'], 2)
        self.assertEqual(summary['total_items_sold'], 6)
        self.assertEqual(summary['avg_order_value'], 30.0)
        self.assertEqual(len(response.data['daily_breakdown']), 1)
        self.assertEqual(response.data['daily_breakdown'][0]['profit'], 24.0)

    def test_sales_summary_with_date_range(self):
        response = self.client.get('/api/v1/reports/sales-summary/?date_from=2024-01-01&date_to=2024-12-31')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['period'], {'from': '2024-01-01', 'to': '2024-12-31'})
        self.assertEqual(response.data['summary']['total_orders'], 0)

    def test_sales_summary_bad_date(self):
        response = self.client.get('/api/v1/reports/sales-summary/?date_from=01/01/2024')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_top_products(self):
        other = TestDataFactory.create_product(name='Chá', cost_price='1.00', sale_price='3.00')
        TestDataFactory.create_order(items=[(self.product, 1), (other, 2)], status='sent')
        TestDataFactory.create_order(items=[(other, 10)], status='cancelled')

        response = self.client.get('/api/v1/reports/top-products/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        products = response.data['products']
        self.assertEqual([p['name'] for p in products], ['Café', 'Chá'])
        self.assertEqual(products[1]['quantity'], 2)
        self.assertEqual(products[1]['revenue'], 6.0)
        self.assertEqual(products[1]['profit'], 4.0)

    def test_customer_summary(self):
        TestDataFactory.create_customer(is_club_member=True)
        TestDataFactory.create_customer()
        response = self.client.get('/api/v1/reports/customers/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['summary']['total_customers'], 2)
        self.assertEqual(response.data['summary']['club_members'], 1)
        self.assertEqual(response.data['summary']['new_this_month'], 2)
