"""
Comprehensive test suite for Reports module
Tests: Dashboard statistics, caching and invalidation, realtime counters, master data stats
"""
from decimal import Decimal
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from textile_erp.core.test_utils import TestDataFactory, AuthenticatedAPIClient
from textile_erp.core.cache_signals import DASHBOARD_STATS_CACHE_KEY, MASTER_DATA_STATS_CACHE_KEY
from textile_erp.catalog.models import Unit
from textile_erp.sales.models import SalesChallan


class DashboardTests(TestCase):
    """Test dashboard endpoints"""

    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)
        self.product = TestDataFactory.create_product()

    def tearDown(self):
        cache.clear()

    def test_requires_authentication(self):
        self.client.logout()
        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_dashboard_stats_shape(self):
        TestDataFactory.create_purchase_order(user=self.user, lines=[(self.product, 5, 500, '10')], status='Sent')
        TestDataFactory.create_lot(self.product, 5)

        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        for key in ('summary', 'stats', 'workflow_metrics', 'recent_activity', 'generated_at'):
            self.assertIn(key, response.data)
        self.assertEqual(response.data['stats']['purchase_orders']['active'], 1)
        self.assertEqual(response.data['stats']['purchase_orders']['pending'], 1)
        self.assertEqual(response.data['stats']['inventory']['total_lots'], 1)
        self.assertEqual(response.data['summary']['low_stock_items'], 1)
        self.assertEqual(response.data['recent_activity'][0]['type'], 'purchase_order')
        self.assertIn('max-age', response['Cache-Control'])

    def test_revenue_counts_delivered_orders(self):
        TestDataFactory.create_sales_order(
            user=self.user, lines=[(self.product, 2, 200, '150')], status='Delivered'
        )
        TestDataFactory.create_sales_order(
            user=self.user, lines=[(self.product, 9, 900, '150')], status='Confirmed'
        )
        response = self.client.get('/api/v1/dashboard/stats/')
        revenue = response.data['stats']['revenue']
        self.assertEqual(revenue['this_month'], Decimal('300.00'))
        self.assertEqual(revenue['growth'], 0)
        self.assertEqual(response.data['stats']['sales_orders']['active'], 1)
        self.assertEqual(response.data['stats']['sales_orders']['completed'], 1)

    def test_stats_cached_until_document_changes(self):
        self.client.get('/api/v1/dashboard/stats/')
        self.assertIsNotNone(cache.get(DASHBOARD_STATS_CACHE_KEY))

        TestDataFactory.create_sales_order(user=self.user)
        self.assertIsNone(cache.get(DASHBOARD_STATS_CACHE_KEY))

        response = self.client.get('/api/v1/dashboard/stats/')
        self.assertEqual(response.data['stats']['sales_orders']['total'], 1)

    def test_realtime(self):
        sales_order = TestDataFactory.create_sales_order(user=self.user, status='Confirmed')
        SalesChallan.objects.create(
            sales_order=sales_order,
            customer=sales_order.customer,
            warehouse=TestDataFactory.create_warehouse(),
            status='In_Transit',
        )
        response = self.client.get('/api/v1/dashboard/realtime/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['today']['sales_orders'], 1)
        self.assertEqual(response.data['today']['sales_challans'], 1)
        self.assertEqual(response.data['in_transit_challans'], 1)
        self.assertIn('last_updated', response.data)


class MasterDataStatsTests(TestCase):
    def setUp(self):
        cache.clear()
        self.user = TestDataFactory.create_user()
        self.client = AuthenticatedAPIClient()
        self.client.authenticate_user(self.user)

    def tearDown(self):
        cache.clear()

    def test_counts(self):
        TestDataFactory.create_customer()
        TestDataFactory.create_customer(status='Inactive')
        TestDataFactory.create_supplier(status='Blocked')
        Unit.objects.create(name='Cones')

        response = self.client.get('/api/v1/master-data/stats/')
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['customers'], {'total': 2, 'active': 1})
        self.assertEqual(response.data['suppliers']['blocked'], 1)
        self.assertEqual(response.data['units']['total'], 1)

    def test_master_data_change_invalidates(self):
        self.client.get('/api/v1/master-data/stats/')
        self.assertIsNotNone(cache.get(MASTER_DATA_STATS_CACHE_KEY))

        TestDataFactory.create_category()
        self.assertIsNone(cache.get(MASTER_DATA_STATS_CACHE_KEY))

        response = self.client.get('/api/v1/master-data/stats/')
        self.assertEqual(response.data['categories']['total'], 1)
