"""
Tests for the stock adjustment workflow and API.

Test Cases:
1. Incoming/outgoing accounting and status derivation
2. No mutation on insufficient stock, unknown product or invalid units
3. Product update and ledger insert commit or roll back together
4. Low stock email only on threshold crossing, failures swallowed
5. Ledger listing, pagination and CSV export
"""
import threading
import uuid
from decimal import Decimal
from unittest import skipUnless
from unittest.mock import patch

from django.core import mail
from django.db import DatabaseError, connection, connections
from django.test import TestCase, TransactionTestCase
from django.utils import timezone
from rest_framework.test import APITestCase

from accounts.models import User
from core.authentication import sign_token
from inventory.models import Product, StockStatus
from .models import StockAdjustment
from .services import (
    MAX_UNITS,
    submit_adjustment,
    should_notify_low_stock,
    AdjustmentValidationError,
    ProductNotFoundError,
    InsufficientStockError,
    PersistenceError,
)
from .tasks import send_low_stock_email


def make_product(owner, stock=10, min_stock=5, name='Widget', sku='WID-001'):
    return Product.objects.create(
        owner=owner,
        name=name,
        sku=sku,
        category='Electronics',
        price=Decimal('10.00'),
        stock=stock,
        min_stock=min_stock,
    )


class ThresholdCrossingTestCase(TestCase):
    """Tests for the low stock notification rule."""

    def test_crossing_into_alert_zone(self):
        self.assertTrue(should_notify_low_stock(10, 4, 5))
        self.assertTrue(should_notify_low_stock(6, 5, 5))

    def test_already_below_limit(self):
        self.assertFalse(should_notify_low_stock(3, 2, 5))
        self.assertFalse(should_notify_low_stock(5, 4, 5))

    def test_dropping_to_zero_does_not_notify(self):
        self.assertFalse(should_notify_low_stock(10, 0, 5))

    def test_staying_above_limit(self):
        self.assertFalse(should_notify_low_stock(20, 6, 5))


class AdjustmentWorkflowTestCase(TestCase):
    """Test cases for submit_adjustment()."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='owner', email='owner@example.com', password='secret123'
        )
        self.other_user = User.objects.create_user(
            username='other', email='other@example.com', password='secret123'
        )
        self.product = make_product(self.user, stock=10, min_stock=5)

    def test_incoming_adds_stock(self):
        """
        Test: Incoming adjustment adds units and records one ledger entry.

        Given: Product with 10 units
        When: Receiving 5 units
        Then: Stock is 15, In Stock, last_restocked is today
        """
        adjustment = submit_adjustment(self.user, self.product.id, 'incoming', 5, 'Delivery')

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 15)
        self.assertEqual(self.product.status, StockStatus.IN_STOCK)
        self.assertEqual(self.product.last_restocked, timezone.localdate())

        self.assertEqual(StockAdjustment.objects.count(), 1)
        self.assertEqual(adjustment.type, 'incoming')
        self.assertEqual(adjustment.units, 5)
        self.assertEqual(adjustment.reason, 'Delivery')
        self.assertEqual(adjustment.user, self.user)
        self.assertEqual(adjustment.product, self.product)

    def test_outgoing_to_low_stock(self):
        """
        Test: Stock 8, min_stock 5, outgoing 5 -> 3 units, Low Stock.
        """
        self.product.stock = 8
        self.product.save()

        submit_adjustment(self.user, self.product.id, 'outgoing', 5)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 3)
        self.assertEqual(self.product.status, StockStatus.LOW_STOCK)

    def test_outgoing_to_zero(self):
        """
        Test: Stock 5, min_stock 5, outgoing 5 -> 0 units, Out of Stock.
        """
        self.product.stock = 5
        self.product.save()

        submit_adjustment(self.user, self.product.id, 'outgoing', 5)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 0)
        self.assertEqual(self.product.status, StockStatus.OUT_OF_STOCK)

    def test_outgoing_does_not_stamp_last_restocked(self):
        submit_adjustment(self.user, self.product.id, 'outgoing', 1)

        self.product.refresh_from_db()
        self.assertIsNone(self.product.last_restocked)

    def test_blank_reason_stored_as_null(self):
        adjustment = submit_adjustment(self.user, self.product.id, 'incoming', 1, '')
        self.assertIsNone(adjustment.reason)

    def test_insufficient_stock_leaves_product_unchanged(self):
        """
        Test: Outgoing more than available is rejected with no mutation.

        Given: Product with 3 units
        When: Removing 10 units
        Then: InsufficientStockError, stock/status unchanged, no ledger entry
        """
        self.product.stock = 3
        self.product.save()

        with self.assertRaises(InsufficientStockError) as context:
            submit_adjustment(self.user, self.product.id, 'outgoing', 10)

        self.assertIn('Insufficient', str(context.exception))
        self.assertEqual(context.exception.available, 3)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 3)
        self.assertEqual(self.product.status, StockStatus.LOW_STOCK)
        self.assertFalse(StockAdjustment.objects.exists())

    def test_other_users_product_not_found(self):
        """
        Test: Products of another user are invisible to the workflow.
        """
        with self.assertRaises(ProductNotFoundError):
            submit_adjustment(self.other_user, self.product.id, 'incoming', 5)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(StockAdjustment.objects.exists())

    def test_unknown_product_not_found(self):
        with self.assertRaises(ProductNotFoundError):
            submit_adjustment(self.user, uuid.uuid4(), 'incoming', 5)

    def test_malformed_product_id_not_found(self):
        with self.assertRaises(ProductNotFoundError):
            submit_adjustment(self.user, 'bad', 'incoming', 5)

    def test_non_positive_units_rejected(self):
        """
        Test: Zero, negative and non-integer units are rejected before any write.
        """
        for units in (0, -3, 2.5, True, '5'):
            with self.subTest(units=units):
                with self.assertRaises(AdjustmentValidationError):
                    submit_adjustment(self.user, self.product.id, 'incoming', units)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(StockAdjustment.objects.exists())

    def test_invalid_type_rejected(self):
        with self.assertRaises(AdjustmentValidationError):
            submit_adjustment(self.user, self.product.id, 'transfer', 5)

    def test_units_above_column_maximum_rejected(self):
        with self.assertRaises(AdjustmentValidationError):
            submit_adjustment(self.user, self.product.id, 'incoming', 10 ** 20)

        self.assertFalse(StockAdjustment.objects.exists())

    def test_incoming_past_stock_maximum_rejected(self):
        """
        Test: An incoming adjustment may not push stock past the column maximum.

        Given: Product 5 units below the maximum stock
        When: Receiving 10 units
        Then: AdjustmentValidationError, stock unchanged, no ledger entry
        """
        self.product.stock = MAX_UNITS - 5
        self.product.save()

        with self.assertRaises(AdjustmentValidationError):
            submit_adjustment(self.user, self.product.id, 'incoming', 10)

        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, MAX_UNITS - 5)
        self.assertFalse(StockAdjustment.objects.exists())

    def test_product_row_locked_inside_transaction(self):
        """
        Test: The product is read with SELECT ... FOR UPDATE inside the
        workflow's own transaction, so concurrent adjustments serialize.
        """
        real_select_for_update = Product.objects.select_for_update
        depth_at_lock = []

        def lock(*args, **kwargs):
            depth_at_lock.append(len(connection.savepoint_ids))
            return real_select_for_update(*args, **kwargs)

        depth_before = len(connection.savepoint_ids)
        with patch.object(Product.objects, 'select_for_update', side_effect=lock) as mock_lock:
            submit_adjustment(self.user, self.product.id, 'outgoing', 2)

        mock_lock.assert_called_once_with()
        self.assertEqual(depth_at_lock, [depth_before + 1])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 8)

    def test_read_back_matches_adjustment(self):
        """
        Test: Fetching right after an adjustment returns exactly what it wrote.
        """
        submit_adjustment(self.user, self.product.id, 'outgoing', 6)

        product = Product.objects.get(id=self.product.id)
        self.assertEqual(product.stock, 4)
        self.assertEqual(product.status, StockStatus.LOW_STOCK)

    def test_ledger_failure_rolls_back_product_update(self):
        """
        Test: If the ledger insert fails, the stock change is not kept.
        """
        with patch.object(StockAdjustment.objects, 'create', side_effect=DatabaseError('boom')):
            with self.assertRaises(PersistenceError) as context:
                submit_adjustment(self.user, self.product.id, 'outgoing', 4)

        self.assertEqual(context.exception.step, 'create stock adjustment')
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_product_update_failure_skips_ledger(self):
        with patch.object(Product, 'save', side_effect=DatabaseError('boom')):
            with self.assertRaises(PersistenceError) as context:
                submit_adjustment(self.user, self.product.id, 'incoming', 4)

        self.assertEqual(context.exception.step, 'update product stock')
        self.assertFalse(StockAdjustment.objects.exists())


@patch('adjustments.tasks.send_low_stock_email')
class LowStockNotificationTestCase(TestCase):
    """Test cases for the threshold-crossing email."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='owner', email='owner@example.com', password='secret123',
            low_stock_limit=5
        )

    def test_email_queued_on_crossing(self, mock_task):
        """
        Test: Stock 10 -> 4 with limit 5 queues exactly one email.
        """
        product = make_product(self.user, stock=10, min_stock=5)

        with self.captureOnCommitCallbacks(execute=True):
            submit_adjustment(self.user, product.id, 'outgoing', 6)

        mock_task.delay.assert_called_once_with('owner@example.com', 'Widget', 4, 5)

    def test_no_email_when_already_low(self, mock_task):
        """
        Test: Stock already at or below the limit does not alert again.
        """
        product = make_product(self.user, stock=3, min_stock=5)

        with self.captureOnCommitCallbacks(execute=True):
            submit_adjustment(self.user, product.id, 'outgoing', 1)

        mock_task.delay.assert_not_called()

    def test_no_email_when_out_of_stock(self, mock_task):
        product = make_product(self.user, stock=10, min_stock=5)

        with self.captureOnCommitCallbacks(execute=True):
            submit_adjustment(self.user, product.id, 'outgoing', 10)

        mock_task.delay.assert_not_called()

    def test_no_email_for_incoming(self, mock_task):
        product = make_product(self.user, stock=1, min_stock=5)

        with self.captureOnCommitCallbacks(execute=True):
            submit_adjustment(self.user, product.id, 'incoming', 2)

        mock_task.delay.assert_not_called()

    def test_email_uses_user_limit_not_min_stock(self, mock_task):
        """
        Test: The alert threshold is the user's low_stock_limit.

        Given: low_stock_limit 20, product min_stock 5, stock 25
        When: Removing 10 units
        Then: Product is still In Stock, but the email fires (15 <= 20 < 25)
        """
        self.user.low_stock_limit = 20
        self.user.save()
        product = make_product(self.user, stock=25, min_stock=5)

        with self.captureOnCommitCallbacks(execute=True):
            submit_adjustment(self.user, product.id, 'outgoing', 10)

        product.refresh_from_db()
        self.assertEqual(product.status, StockStatus.IN_STOCK)
        mock_task.delay.assert_called_once_with('owner@example.com', 'Widget', 15, 20)

    def test_email_failure_does_not_fail_adjustment(self, mock_task):
        mock_task.delay.side_effect = Exception('broker down')
        product = make_product(self.user, stock=10, min_stock=5)

        with self.captureOnCommitCallbacks(execute=True):
            adjustment = submit_adjustment(self.user, product.id, 'outgoing', 6)

        self.assertIsNotNone(adjustment.pk)
        product.refresh_from_db()
        self.assertEqual(product.stock, 4)

    def test_no_email_when_adjustment_rejected(self, mock_task):
        product = make_product(self.user, stock=10, min_stock=5)

        with self.captureOnCommitCallbacks(execute=True) as callbacks:
            with self.assertRaises(InsufficientStockError):
                submit_adjustment(self.user, product.id, 'outgoing', 11)

        self.assertEqual(len(callbacks), 0)
        mock_task.delay.assert_not_called()


class LowStockEmailTaskTestCase(TestCase):
    """Test the email task itself."""

    def test_sends_alert_email(self):
        result = send_low_stock_email('owner@example.com', 'Widget', 4, 5)

        self.assertEqual(result['status'], 'sent')
        self.assertEqual(len(mail.outbox), 1)
        message = mail.outbox[0]
        self.assertEqual(message.subject, 'Low Stock Alert: Widget')
        self.assertEqual(message.to, ['owner@example.com'])
        self.assertIn('4 units', message.body)
        html, mimetype = message.alternatives[0]
        self.assertEqual(mimetype, 'text/html')
        self.assertIn('<strong>5 units</strong>', html)
        self.assertIn('/dashboard/products', html)


class StockAdjustmentAPITestCase(APITestCase):
    """Test cases for the /api/stock-adjustments endpoints."""

    url = '/api/stock-adjustments'

    def setUp(self):
        self.user = User.objects.create_user(
            username='owner', email='owner@example.com', password='secret123'
        )
        self.product = make_product(self.user, stock=10, min_stock=5)
        self.client.cookies['auth-token'] = sign_token(self.user)

    def test_requires_authentication(self):
        self.client.cookies.clear()

        response = self.client.post(
            self.url, {'d': {'product_id': str(self.product.id), 'type': 'incoming', 'units': 5}},
            format='json'
        )

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['c'], 401)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)

    def test_invalid_token_is_unauthenticated(self):
        self.client.cookies['auth-token'] = 'not-a-token'

        response = self.client.get(self.url)

        self.assertEqual(response.status_code, 401)

    @patch('adjustments.tasks.send_low_stock_email')
    def test_create_adjustment(self, mock_task):
        response = self.client.post(
            self.url,
            {'d': {'product_id': str(self.product.id), 'type': 'incoming', 'units': 5}},
            format='json'
        )

        self.assertEqual(response.status_code, 201)
        body = response.json()
        self.assertEqual(body['c'], 201)
        self.assertEqual(body['d']['type'], 'incoming')
        self.assertEqual(body['d']['units'], 5)
        self.assertEqual(body['d']['product_id'], str(self.product.id))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 15)

    @patch('adjustments.tasks.send_low_stock_email')
    def test_create_adjustment_queues_email_on_crossing(self, mock_task):
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(
                self.url,
                {'product_id': str(self.product.id), 'type': 'outgoing', 'units': 6},
                format='json'
            )

        self.assertEqual(response.status_code, 201)
        mock_task.delay.assert_called_once_with('owner@example.com', 'Widget', 4, 5)

    def test_unknown_product(self):
        response = self.client.post(
            self.url, {'d': {'product_id': 'bad', 'type': 'incoming', 'units': 5}},
            format='json'
        )

        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()['c'], 404)

    def test_insufficient_stock(self):
        response = self.client.post(
            self.url,
            {'d': {'product_id': str(self.product.id), 'type': 'outgoing', 'units': 11}},
            format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('Insufficient', response.json()['m'])
        self.assertFalse(StockAdjustment.objects.exists())

    def test_zero_units_rejected(self):
        response = self.client.post(
            self.url,
            {'d': {'product_id': str(self.product.id), 'type': 'incoming', 'units': 0}},
            format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertIsNone(response.json()['d'])

    def test_oversized_units_rejected(self):
        response = self.client.post(
            self.url,
            {'d': {'product_id': str(self.product.id), 'type': 'incoming', 'units': 10 ** 20}},
            format='json'
        )

        self.assertEqual(response.status_code, 400)
        self.assertTrue(response.json()['m'].startswith('units:'))
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 10)
        self.assertFalse(StockAdjustment.objects.exists())

    def test_missing_fields_rejected(self):
        response = self.client.post(self.url, {'d': {'type': 'incoming'}}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['c'], 400)

    @patch('adjustments.views.submit_adjustment', side_effect=PersistenceError('create stock adjustment'))
    def test_persistence_error_is_generic(self, mock_submit):
        response = self.client.post(
            self.url,
            {'d': {'product_id': str(self.product.id), 'type': 'incoming', 'units': 1}},
            format='json'
        )

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()['m'], 'Failed To Record Stock Adjustment')
        self.assertNotIn('create stock adjustment', response.json()['m'])

    def test_list_is_paginated_and_scoped(self):
        other = User.objects.create_user(username='other', email='o@example.com', password='x12345')
        other_product = make_product(other, sku='OTH-1')
        submit_adjustment(other, other_product.id, 'incoming', 1)
        for units in (1, 2, 3):
            submit_adjustment(self.user, self.product.id, 'incoming', units)

        response = self.client.get(self.url, {'limit': 2})
        data = response.json()['d']

        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['total'], 3)
        self.assertEqual(data['page'], 1)
        self.assertEqual(data['pageSize'], 2)
        self.assertEqual(len(data['items']), 2)
        self.assertEqual(data['items'][0]['products'], {'name': 'Widget', 'sku': 'WID-001'})
        self.assertEqual(data['items'][0]['users'], {'username': 'owner'})

        response = self.client.get(self.url, {'limit': 2, 'page': 2})
        self.assertEqual(len(response.json()['d']['items']), 1)

    def test_list_filters_by_type_and_product(self):
        submit_adjustment(self.user, self.product.id, 'incoming', 5)
        submit_adjustment(self.user, self.product.id, 'outgoing', 2)
        second = make_product(self.user, name='Gadget', sku='GAD-1')
        submit_adjustment(self.user, second.id, 'outgoing', 1)

        response = self.client.get(self.url, {'type': 'outgoing'})
        self.assertEqual(response.json()['d']['total'], 2)

        response = self.client.get(self.url, {'product_id': str(second.id)})
        self.assertEqual(response.json()['d']['total'], 1)

        response = self.client.get(self.url, {'product_id': 'bad'})
        self.assertEqual(response.status_code, 400)

    def test_export_csv(self):
        submit_adjustment(self.user, self.product.id, 'incoming', 5, 'Restock, weekly')

        response = self.client.get(f'{self.url}/export')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'text/csv; charset=utf-8')
        self.assertIn('stock_adjustments.csv', response['Content-Disposition'])
        lines = response.content.decode().split('\r\n')
        self.assertEqual(lines[0], 'ID,Product ID,Type,Units,Reason,Created At')
        self.assertIn('"Restock, weekly"', lines[1])
        self.assertIn(str(self.product.id), lines[1])


@skipUnless(connection.features.has_select_for_update, 'requires row locking')
class ConcurrentAdjustmentTestCase(TransactionTestCase):
    """
    Concurrent outgoing adjustments must not oversell.
    Uses TransactionTestCase so each thread commits on its own connection.
    """

    def setUp(self):
        self.user = User.objects.create_user(
            username='owner', email='owner@example.com', password='secret123'
        )
        self.product = make_product(self.user, stock=10, min_stock=2)

    def test_concurrent_outgoing_no_overselling(self):
        """
        Given: 10 units in stock
        When: Two concurrent outgoing adjustments of 8 units each
        Then: Exactly one succeeds; stock is 2 with one ledger entry
        """
        results = {}

        def remove_units(key):
            try:
                submit_adjustment(self.user, self.product.id, 'outgoing', 8)
                results[key] = 'ok'
            except InsufficientStockError:
                results[key] = 'rejected'
            finally:
                connections.close_all()

        threads = [threading.Thread(target=remove_units, args=(key,)) for key in ('a', 'b')]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        self.assertEqual(sorted(results.values()), ['ok', 'rejected'])
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock, 2)
        self.assertEqual(StockAdjustment.objects.count(), 1)
