"""
Tests for the shared API plumbing: tokens, envelope, rate limiting, CSV.
"""
import warnings
from datetime import date
from unittest.mock import Mock, patch

import jwt
import redis
from django.conf import settings
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework import exceptions

from accounts.models import User
from .api import api_exception_handler, request_payload
from .authentication import sign_token, verify_token
from .csv_export import csv_response


class TokenTestCase(TestCase):
    """Test cases for sign_token() / verify_token()."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='alice', email='alice@example.com', password='secret123'
        )

    def test_verify_returns_identity(self):
        claims = verify_token(sign_token(self.user))

        self.assertEqual(claims, {
            'userId': str(self.user.pk),
            'email': 'alice@example.com',
            'username': 'alice',
        })

    @override_settings(JWT_EXPIRATION_SECONDS=-60)
    def test_expired_token_rejected(self):
        self.assertIsNone(verify_token(sign_token(self.user)))

    def test_foreign_signature_rejected(self):
        token = jwt.encode({'userId': str(self.user.pk)}, 'another-signing-key-of-at-least-32-bytes', algorithm='HS256')
        self.assertIsNone(verify_token(token))

    def test_garbage_rejected(self):
        self.assertIsNone(verify_token('not.a.token'))

    def test_token_without_user_rejected(self):
        token = jwt.encode({'email': 'x@example.com'}, settings.JWT_SECRET, algorithm='HS256')
        self.assertIsNone(verify_token(token))

    def test_default_signing_key_long_enough_for_hs256(self):
        self.assertGreaterEqual(len(settings.JWT_SECRET.encode()), 32)

        with warnings.catch_warnings(record=True) as caught:
            warnings.simplefilter('always')
            self.assertIsNotNone(verify_token(sign_token(self.user)))

        key_warnings = [w for w in caught if 'key' in str(w.message).lower()]
        self.assertEqual(key_warnings, [])

    def test_deleted_user_is_unauthenticated(self):
        token = sign_token(self.user)
        self.user.delete()
        self.client.cookies['auth-token'] = token

        response = self.client.get('/api/me')

        self.assertEqual(response.status_code, 401)


class EnvelopeTestCase(SimpleTestCase):
    """Test cases for the response envelope helpers."""

    def test_unwraps_d_wrapper(self):
        self.assertEqual(request_payload(Mock(data={'d': {'a': 1}})), {'a': 1})

    def test_accepts_flat_body(self):
        self.assertEqual(request_payload(Mock(data={'a': 1})), {'a': 1})

    def test_validation_error_names_field(self):
        response = api_exception_handler(
            exceptions.ValidationError({'price': ['Must not be negative.']}), {}
        )

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {'c': 400, 'm': 'price: Must not be negative.', 'd': None})

    def test_non_field_error_is_bare(self):
        response = api_exception_handler(
            exceptions.ValidationError({'non_field_errors': ['Passwords Do Not Match']}), {}
        )

        self.assertEqual(response.data['m'], 'Passwords Do Not Match')

    def test_throttled_sets_retry_after(self):
        response = api_exception_handler(exceptions.Throttled(wait=30), {})

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response['Retry-After'], '30')

    def test_unexpected_error_is_generic(self):
        with self.assertLogs('core.api', level='ERROR'):
            response = api_exception_handler(RuntimeError('db password leaked'), {'view': None})

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.data, {'c': 500, 'm': 'Internal Server Error', 'd': None})

    def test_health_check(self):
        response = self.client.get('/health/')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'healthy')


@override_settings(RATE_LIMIT_ENABLED=True)
class RateLimitTestCase(TestCase):
    """Test cases for the Redis-backed rate limiter on login and signup."""

    def setUp(self):
        self.redis = Mock()
        self.redis.ttl.return_value = 42
        patcher = patch('core.rate_limiting.get_redis_client', return_value=self.redis)
        patcher.start()
        self.addCleanup(patcher.stop)

    def login(self):
        return self.client.post(
            '/api/login', {'username': 'nobody', 'password': 'x'},
            content_type='application/json'
        )

    def test_first_request_starts_window(self):
        self.redis.incr.return_value = 1

        response = self.login()

        self.assertEqual(response.status_code, 401)
        self.redis.expire.assert_called_once()
        self.assertEqual(self.redis.expire.call_args.args[1], 60)
        self.assertEqual(response['X-RateLimit-Limit'], '10')
        self.assertEqual(response['X-RateLimit-Remaining'], '9')

    def test_login_over_limit(self):
        self.redis.incr.return_value = 11

        response = self.login()

        self.assertEqual(response.status_code, 429)
        self.assertEqual(response.json()['c'], 429)
        self.assertIsNone(response.json()['d'])
        self.assertEqual(response['Retry-After'], '42')
        self.assertEqual(response['X-RateLimit-Remaining'], '0')

    def test_signup_over_limit(self):
        self.redis.incr.return_value = 6

        response = self.client.post('/api/signup', {}, content_type='application/json')

        self.assertEqual(response.status_code, 429)
        self.assertIn('Maximum 5 requests per 60 seconds', response.json()['m'])

    def test_limits_per_client_ip(self):
        self.redis.incr.return_value = 1

        self.client.post(
            '/api/login', {}, content_type='application/json',
            HTTP_X_FORWARDED_FOR='203.0.113.7, 10.0.0.1'
        )

        key = self.redis.incr.call_args.args[0]
        self.assertTrue(key.startswith('rate_limit:'))
        self.assertTrue(key.endswith(':203.0.113.7'))

    def test_fails_open_on_redis_error(self):
        self.redis.incr.side_effect = redis.ConnectionError('down')

        response = self.login()

        self.assertEqual(response.status_code, 401)


class CsvResponseTestCase(SimpleTestCase):

    def test_writes_header_and_rows(self):
        response = csv_response(
            [
                {'name': 'Widget, large', 'restocked': date(2024, 3, 1), 'note': None},
                {'name': 'Gadget', 'restocked': None, 'note': 'ok'},
            ],
            [('Name', 'name'), ('Restocked', 'restocked'), ('Note', 'note')],
            'things.csv',
        )

        self.assertEqual(response['Content-Disposition'], 'attachment; filename="things.csv"')
        self.assertEqual(
            response.content.decode(),
            'Name,Restocked,Note\r\n"Widget, large",2024-03-01,\r\nGadget,,ok\r\n'
        )
