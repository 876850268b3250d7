"""
Tests for dashboard aggregations.
"""
from datetime import date
from decimal import Decimal

from django.test import SimpleTestCase, TestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from accounts.models import User
from adjustments.services import submit_adjustment
from core.authentication import sign_token
from inventory.models import Product
from .services import _month_keys, compute_metrics, monthly_movements, top_products


def make_user(username):
    return User.objects.create_user(
        username=username, email=f'{username}@example.com', password='secret123'
    )


class MonthKeysTestCase(SimpleTestCase):

    def test_spans_year_boundary(self):
        keys = _month_keys(date(2024, 3, 15), 12)

        self.assertEqual(len(keys), 12)
        self.assertEqual(keys[0], (2023, 4))
        self.assertEqual(keys[-1], (2024, 3))

    def test_december(self):
        keys = _month_keys(date(2024, 12, 1), 12)

        self.assertEqual(keys[0], (2024, 1))
        self.assertEqual(keys[-1], (2024, 12))


class DashboardServicesTestCase(TestCase):
    """Test cases for the dashboard aggregations."""

    def setUp(self):
        self.user = make_user('owner')
        other = make_user('other')

        self.widget = Product.objects.create(
            owner=self.user, name='Widget', sku='W-1', price=Decimal('2.50'),
            stock=10, min_stock=5
        )
        self.gadget = Product.objects.create(
            owner=self.user, name='Gadget', sku='G-1', price=Decimal('10.00'),
            stock=3, min_stock=5
        )
        Product.objects.create(
            owner=self.user, name='Cable', sku='C-1', price=Decimal('4.00'),
            stock=0, min_stock=2
        )
        Product.objects.create(
            owner=other, name='Foreign', sku='F-1', price=Decimal('100.00'),
            stock=100, min_stock=1
        )

    def test_metrics(self):
        """
        Test: Metrics cover only the owner's products.

        Given: Widget 10 x 2.50, Gadget 3 x 10.00 (low), Cable 0 x 4.00 (out)
        Then: 3 products, value 55.00, 1 low, 1 out
        """
        metrics = compute_metrics(self.user)

        self.assertEqual(metrics['totalProducts'], 3)
        self.assertEqual(metrics['totalStockValue'], Decimal('55.00'))
        self.assertEqual(metrics['lowStockCount'], 1)
        self.assertEqual(metrics['outOfStock'], 1)

    def test_metrics_for_empty_catalog(self):
        metrics = compute_metrics(make_user('empty'))

        self.assertEqual(metrics, {
            'totalProducts': 0,
            'totalStockValue': Decimal('0.00'),
            'lowStockCount': 0,
            'outOfStock': 0,
        })

    def test_top_products_by_outgoing_units(self):
        submit_adjustment(self.user, self.widget.id, 'outgoing', 2)
        submit_adjustment(self.user, self.widget.id, 'outgoing', 3)
        submit_adjustment(self.user, self.gadget.id, 'outgoing', 1)
        submit_adjustment(self.user, self.gadget.id, 'incoming', 50)

        top = top_products(self.user)

        self.assertEqual([row['name'] for row in top], ['Widget', 'Gadget'])
        self.assertEqual(top[0]['units'], 5)
        self.assertEqual(top[0]['stock'], 5)
        self.assertEqual(top[1]['units'], 1)

    def test_monthly_movements(self):
        submit_adjustment(self.user, self.widget.id, 'incoming', 7)
        submit_adjustment(self.user, self.widget.id, 'outgoing', 4)

        chart = monthly_movements(self.user)

        self.assertEqual(len(chart), 12)
        current = chart[-1]
        today = timezone.localdate()
        self.assertEqual(current['month'], f'{today.year:04d}-{today.month:02d}')
        self.assertEqual(current['incoming'], 7)
        self.assertEqual(current['outgoing'], 4)
        self.assertTrue(all(entry['incoming'] == 0 for entry in chart[:-1]))


class DashboardAPITestCase(APITestCase):

    def setUp(self):
        self.user = make_user('owner')
        self.product = Product.objects.create(
            owner=self.user, name='Widget', sku='W-1', price=Decimal('2.50'),
            stock=10, min_stock=5
        )
        submit_adjustment(self.user, self.product.id, 'outgoing', 6)
        self.client.cookies['auth-token'] = sign_token(self.user)

    def test_dashboard(self):
        response = self.client.get('/api/dashboard')

        self.assertEqual(response.status_code, 200)
        data = response.json()['d']
        self.assertEqual(data['metrics']['totalProducts'], 1)
        self.assertEqual(data['metrics']['totalStockValue'], 10.0)
        self.assertEqual(data['metrics']['lowStockCount'], 1)
        self.assertEqual([item['sku'] for item in data['lowStockItems']], ['W-1'])
        self.assertEqual(len(data['recentActivity']), 1)
        self.assertEqual(data['recentActivity'][0]['products']['name'], 'Widget')
        self.assertEqual(data['topProducts'][0]['units'], 6)

    def test_chart(self):
        response = self.client.get('/api/dashboard/chart')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['d']), 12)
        self.assertEqual(response.json()['d'][-1]['outgoing'], 6)

    def test_requires_authentication(self):
        self.client.cookies.clear()

        self.assertEqual(self.client.get('/api/dashboard').status_code, 401)
