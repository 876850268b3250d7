"""
Tests for the product catalog.

Test Cases:
1. Status derivation from stock and min_stock
2. Product CRUD scoped to the owner
3. SKU uniqueness per owner
4. List filters and CSV export
"""
import uuid
from decimal import Decimal

from django.test import TestCase
from rest_framework.test import APITestCase

from accounts.models import User
from core.authentication import sign_token
from .models import Product, StockStatus, derive_status


class DeriveStatusTestCase(TestCase):
    """Test cases for derive_status()."""

    def test_zero_is_out_of_stock(self):
        self.assertEqual(derive_status(0, 5), StockStatus.OUT_OF_STOCK)
        self.assertEqual(derive_status(0, 0), StockStatus.OUT_OF_STOCK)

    def test_at_or_below_minimum_is_low(self):
        self.assertEqual(derive_status(5, 5), StockStatus.LOW_STOCK)
        self.assertEqual(derive_status(1, 5), StockStatus.LOW_STOCK)

    def test_above_minimum_is_in_stock(self):
        self.assertEqual(derive_status(6, 5), StockStatus.IN_STOCK)
        self.assertEqual(derive_status(1, 0), StockStatus.IN_STOCK)


class ProductModelTestCase(TestCase):

    def setUp(self):
        self.user = User.objects.create_user(
            username='owner', email='owner@example.com', password='secret123'
        )

    def test_save_derives_status(self):
        """
        Test: Status follows stock on every save, including partial saves.
        """
        product = Product.objects.create(
            owner=self.user, name='Widget', sku='WID-1', price=Decimal('1.00'),
            stock=10, min_stock=5
        )
        self.assertEqual(product.status, StockStatus.IN_STOCK)

        product.stock = 2
        product.save(update_fields=['stock'])
        product.refresh_from_db()
        self.assertEqual(product.status, StockStatus.LOW_STOCK)

        product.stock = 0
        product.save()
        product.refresh_from_db()
        self.assertEqual(product.status, StockStatus.OUT_OF_STOCK)

    def test_stock_value(self):
        product = Product(
            owner=self.user, name='Widget', sku='WID-1', price=Decimal('2.50'), stock=4
        )
        self.assertEqual(product.stock_value, Decimal('10.00'))


class ProductAPITestCase(APITestCase):
    """Test cases for the /api/products endpoints."""

    url = '/api/products'

    def setUp(self):
        self.user = User.objects.create_user(
            username='owner', email='owner@example.com', password='secret123'
        )
        self.other_user = User.objects.create_user(
            username='other', email='other@example.com', password='secret123'
        )
        self.client.cookies['auth-token'] = sign_token(self.user)

        self.widget = Product.objects.create(
            owner=self.user, name='Blue Widget', sku='WID-1', category='Tools',
            price=Decimal('10.00'), stock=10, min_stock=5
        )
        self.gadget = Product.objects.create(
            owner=self.user, name='Gadget', sku='GAD-1', category='Electronics',
            price=Decimal('25.00'), stock=3, min_stock=5
        )
        self.foreign = Product.objects.create(
            owner=self.other_user, name='Foreign Widget', sku='WID-1', category='Tools',
            price=Decimal('5.00'), stock=1
        )

    def detail_url(self, product):
        return f'{self.url}/{product.id}'

    def test_requires_authentication(self):
        self.client.cookies.clear()

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json(), {'c': 401, 'm': 'Unauthorized', 'd': None})

    def test_bearer_header_authenticates(self):
        self.client.cookies.clear()
        self.client.credentials(HTTP_AUTHORIZATION=f'Bearer {sign_token(self.user)}')

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)

    def test_list_only_own_products(self):
        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 200)
        ids = {item['id'] for item in response.json()['d']}
        self.assertEqual(ids, {str(self.widget.id), str(self.gadget.id)})

    def test_list_filters(self):
        response = self.client.get(self.url, {'category': 'Electronics'})
        self.assertEqual([p['sku'] for p in response.json()['d']], ['GAD-1'])

        response = self.client.get(self.url, {'status': 'Low Stock'})
        self.assertEqual([p['sku'] for p in response.json()['d']], ['GAD-1'])

        response = self.client.get(self.url, {'search': 'widget'})
        self.assertEqual([p['sku'] for p in response.json()['d']], ['WID-1'])

        response = self.client.get(self.url, {'search': 'gad-'})
        self.assertEqual([p['sku'] for p in response.json()['d']], ['GAD-1'])

    def test_create_product(self):
        """
        Test: Created product is owned by the caller with a derived status.

        Given: A client-supplied status that disagrees with the stock
        When: Creating a product with stock 0
        Then: Status is Out of Stock regardless
        """
        response = self.client.post(self.url, {'d': {
            'name': 'Cable',
            'sku': 'CAB-1',
            'price': '3.99',
            'stock': 0,
            'min_stock': 2,
            'status': 'In Stock',
        }}, format='json')

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['c'], 201)
        self.assertEqual(body['d']['status'], 'Out of Stock')
        self.assertEqual(body['d']['user_id'], self.user.pk)
        self.assertEqual(body['d']['price'], 3.99)

        product = Product.objects.get(id=body['d']['id'])
        self.assertEqual(product.owner, self.user)

    def test_create_requires_name_sku_price(self):
        response = self.client.post(self.url, {'name': 'Cable', 'sku': 'CAB-1'}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'Name, SKU, and price are required')

    def test_create_rejects_negative_price(self):
        response = self.client.post(
            self.url, {'name': 'Cable', 'sku': 'CAB-1', 'price': '-1'}, format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()['m'].startswith('price:'))

    def test_duplicate_sku_conflicts(self):
        response = self.client.post(
            self.url, {'name': 'Other', 'sku': 'GAD-1', 'price': '1.00'}, format='json'
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['m'], 'A product with this SKU already exists')

    def test_same_sku_allowed_for_different_owners(self):
        self.client.cookies['auth-token'] = sign_token(self.other_user)

        response = self.client.post(
            self.url, {'name': 'Gadget', 'sku': 'GAD-1', 'price': '1.00'}, format='json'
        )

        self.assertEqual(response.status_code, 201)

    def test_retrieve(self):
        response = self.client.get(self.detail_url(self.widget))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['d']['name'], 'Blue Widget')

    def test_other_owner_product_not_found(self):
        response = self.client.get(self.detail_url(self.foreign))

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['m'], 'Product not found')

    def test_unknown_and_malformed_ids_not_found(self):
        self.assertEqual(self.client.get(f'{self.url}/{uuid.uuid4()}').status_code, 404)
        self.assertEqual(self.client.get(f'{self.url}/bad').status_code, 404)

    def test_update_rederives_status(self):
        response = self.client.put(
            self.detail_url(self.widget), {'d': {'stock': 4}}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['d']['status'], 'Low Stock')
        self.widget.refresh_from_db()
        self.assertEqual(self.widget.stock, 4)
        self.assertEqual(self.widget.status, StockStatus.LOW_STOCK)
        self.assertEqual(self.widget.name, 'Blue Widget')

    def test_update_min_stock_rederives_status(self):
        response = self.client.patch(
            self.detail_url(self.widget), {'min_stock': 20}, format='json'
        )

        self.assertEqual(response.json()['d']['status'], 'Low Stock')

    def test_update_requires_fields(self):
        response = self.client.put(self.detail_url(self.widget), {}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'No fields to update')

    def test_update_sku_conflict(self):
        response = self.client.put(
            self.detail_url(self.widget), {'sku': 'GAD-1'}, format='json'
        )

        self.assertEqual(response.status_code, 409)
        self.widget.refresh_from_db()
        self.assertEqual(self.widget.sku, 'WID-1')

    def test_update_other_owner_product_not_found(self):
        response = self.client.put(
            self.detail_url(self.foreign), {'stock': 100}, format='json'
        )

        self.assertEqual(response.status_code, 404)
        self.foreign.refresh_from_db()
        self.assertEqual(self.foreign.stock, 1)

    def test_delete(self):
        response = self.client.delete(self.detail_url(self.gadget))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['m'], 'Product deleted')
        self.assertFalse(Product.objects.filter(id=self.gadget.id).exists())

    def test_delete_other_owner_product_not_found(self):
        response = self.client.delete(self.detail_url(self.foreign))

        self.assertEqual(response.status_code, 404)
        self.assertTrue(Product.objects.filter(id=self.foreign.id).exists())

    def test_export_csv(self):
        response = self.client.get(f'{self.url}/export', {'category': 'Tools'})

        self.assertEqual(response.status_code, 200)
        self.assertIn('products.csv', response['Content-Disposition'])
        lines = response.content.decode().strip().split('\r\n')
        self.assertTrue(lines[0].startswith('ID,Name,Description,SKU,Category,Stock,Price,Status'))
        self.assertEqual(len(lines), 2)
        self.assertIn('Blue Widget', lines[1])
        self.assertNotIn('Foreign Widget', response.content.decode())
