"""
Tests for account endpoints.

Test Cases:
1. Signup, login and logout manage the session cookie
2. Profile and settings updates
3. Password change
4. Avatar upload validation and storage
"""
import shutil
import tempfile
from unittest.mock import Mock, patch

import requests
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings
from rest_framework.test import APITestCase

from core.authentication import sign_token, verify_token
from .captcha import verify_recaptcha
from .models import User


class RecaptchaTestCase(TestCase):
    """Test cases for verify_recaptcha()."""

    @override_settings(RECAPTCHA_SECRET_KEY='')
    def test_passes_when_not_configured(self):
        self.assertTrue(verify_recaptcha(None))

    @override_settings(RECAPTCHA_SECRET_KEY='secret')
    def test_missing_token_fails(self):
        self.assertFalse(verify_recaptcha(''))

    @override_settings(RECAPTCHA_SECRET_KEY='secret')
    @patch('accounts.captcha.requests.post')
    def test_checks_token_with_google(self, mock_post):
        mock_post.return_value = Mock(**{'json.return_value': {'success': True}})

        self.assertTrue(verify_recaptcha('token'))
        self.assertEqual(
            mock_post.call_args.kwargs['data'],
            {'secret': 'secret', 'response': 'token'}
        )

    @override_settings(RECAPTCHA_SECRET_KEY='secret')
    @patch('accounts.captcha.requests.post', side_effect=requests.ConnectionError('down'))
    def test_network_error_fails(self, mock_post):
        self.assertFalse(verify_recaptcha('token'))


@override_settings(RECAPTCHA_SECRET_KEY='')
class SessionAPITestCase(APITestCase):
    """Test cases for signup, login and logout."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='alice', email='alice@example.com', password='secret123'
        )

    def signup(self, **overrides):
        payload = {
            'email': 'bob@example.com',
            'username': 'bob',
            'password': 'secret1',
            'confirmPassword': 'secret1',
        }
        payload.update(overrides)
        return self.client.post('/api/signup', {'d': payload}, format='json')

    def test_signup_creates_user_and_session(self):
        response = self.signup()

        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertEqual(body['m'], 'Signup Success')
        token = body['d']['token']
        self.assertEqual(response.cookies['auth-token'].value, token)
        self.assertTrue(response.cookies['auth-token']['httponly'])

        user = User.objects.get(username='bob')
        self.assertNotEqual(user.password, 'secret1')
        self.assertTrue(user.check_password('secret1'))
        self.assertEqual(user.low_stock_limit, 5)
        self.assertEqual(verify_token(token)['userId'], str(user.pk))

    def test_signup_password_mismatch(self):
        response = self.signup(confirmPassword='other1')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'Passwords Do Not Match')
        self.assertFalse(User.objects.filter(username='bob').exists())

    def test_signup_duplicate_email(self):
        response = self.signup(email='ALICE@example.com')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'Email Already In Use')

    def test_signup_duplicate_username(self):
        response = self.signup(username='alice')

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['m'], 'Username already taken')

    @override_settings(RECAPTCHA_SECRET_KEY='secret')
    @patch('accounts.captcha.requests.post')
    def test_signup_failed_recaptcha(self, mock_post):
        mock_post.return_value = Mock(**{'json.return_value': {'success': False}})

        response = self.signup(token='bad-token')

        self.assertEqual(response.status_code, 400)
        self.assertFalse(User.objects.filter(username='bob').exists())

    def test_login_success(self):
        response = self.client.post(
            '/api/login', {'d': {'username': 'alice', 'password': 'secret123'}}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['m'], 'Login Success')
        claims = verify_token(response.cookies['auth-token'].value)
        self.assertEqual(claims['username'], 'alice')
        self.assertEqual(claims['email'], 'alice@example.com')

    def test_login_wrong_password(self):
        response = self.client.post(
            '/api/login', {'username': 'alice', 'password': 'wrong'}, format='json'
        )

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['m'], 'Invalid username or password')
        self.assertNotIn('auth-token', response.cookies)

    def test_login_unknown_user(self):
        response = self.client.post(
            '/api/login', {'username': 'nobody', 'password': 'secret123'}, format='json'
        )

        self.assertEqual(response.status_code, 401)

    def test_login_missing_fields(self):
        response = self.client.post('/api/login', {'username': 'alice'}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'Username and password are required')

    def test_login_with_stale_cookie(self):
        self.client.cookies['auth-token'] = 'expired-or-garbage'

        response = self.client.post(
            '/api/login', {'username': 'alice', 'password': 'secret123'}, format='json'
        )

        self.assertEqual(response.status_code, 200)

    def test_logout_clears_cookie(self):
        self.client.cookies['auth-token'] = sign_token(self.user)

        response = self.client.post('/api/logout')

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.cookies['auth-token'].value, '')
        self.assertEqual(response.cookies['auth-token']['max-age'], 0)


class ProfileAPITestCase(APITestCase):
    """Test cases for /api/me and its sub-resources."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='alice', email='alice@example.com', password='secret123'
        )
        User.objects.create_user(username='carol', email='carol@example.com', password='secret123')
        self.client.cookies['auth-token'] = sign_token(self.user)

    def test_me_requires_authentication(self):
        self.client.cookies.clear()

        response = self.client.get('/api/me')

        self.assertEqual(response.status_code, 401)

    def test_get_me(self):
        response = self.client.get('/api/me')

        user = response.json()['d']['user']
        self.assertEqual(user['username'], 'alice')
        self.assertEqual(user['email'], 'alice@example.com')
        self.assertEqual(user['low_stock_limit'], 5)
        self.assertNotIn('password', user)

    def test_update_profile_reissues_token(self):
        response = self.client.put(
            '/api/me', {'d': {'username': 'alice2', 'email': 'new@example.com'}}, format='json'
        )

        self.assertEqual(response.status_code, 200)
        data = response.json()['d']
        self.assertEqual(data['user']['username'], 'alice2')
        self.assertEqual(verify_token(data['token'])['username'], 'alice2')
        self.assertEqual(response.cookies['auth-token'].value, data['token'])

        self.user.refresh_from_db()
        self.assertEqual(self.user.email, 'new@example.com')

    def test_update_profile_conflicts(self):
        response = self.client.put('/api/me', {'username': 'carol'}, format='json')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['m'], 'Username already taken')

        response = self.client.put('/api/me', {'email': 'carol@example.com'}, format='json')
        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.json()['m'], 'Email already taken')

    def test_update_profile_nothing_to_update(self):
        response = self.client.put('/api/me', {}, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'Nothing to update')

    def test_settings(self):
        response = self.client.get('/api/me/settings')
        self.assertEqual(response.json()['d'], {'low_stock_limit': 5})

        response = self.client.put('/api/me/settings', {'d': {'low_stock_limit': 12}}, format='json')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['d'], {'low_stock_limit': 12})
        self.user.refresh_from_db()
        self.assertEqual(self.user.low_stock_limit, 12)

    def test_settings_rejects_negative_limit(self):
        response = self.client.put('/api/me/settings', {'low_stock_limit': -1}, format='json')

        self.assertEqual(response.status_code, 400)
        self.user.refresh_from_db()
        self.assertEqual(self.user.low_stock_limit, 5)

    def test_change_password(self):
        response = self.client.put('/api/me/password', {'d': {
            'currentPassword': 'secret123', 'newPassword': 'newsecret'
        }}, format='json')

        self.assertEqual(response.status_code, 200)
        self.user.refresh_from_db()
        self.assertTrue(self.user.check_password('newsecret'))

    def test_change_password_wrong_current(self):
        response = self.client.put('/api/me/password', {
            'currentPassword': 'wrong', 'newPassword': 'newsecret'
        }, format='json')

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()['m'], 'Current password is incorrect')

    def test_change_password_too_short(self):
        response = self.client.put('/api/me/password', {
            'currentPassword': 'secret123', 'newPassword': 'abc'
        }, format='json')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'Password must be at least 6 characters')


class AvatarAPITestCase(APITestCase):
    """Test cases for PUT /api/me/avatar."""

    def setUp(self):
        self.media_root = tempfile.mkdtemp()
        self.settings_override = override_settings(MEDIA_ROOT=self.media_root)
        self.settings_override.enable()

        self.user = User.objects.create_user(
            username='alice', email='alice@example.com', password='secret123'
        )
        self.client.cookies['auth-token'] = sign_token(self.user)

    def tearDown(self):
        self.settings_override.disable()
        shutil.rmtree(self.media_root, ignore_errors=True)

    def upload(self, content=b'\x89PNG fake image', content_type='image/png', name='me.png'):
        image = SimpleUploadedFile(name, content, content_type=content_type)
        return self.client.put('/api/me/avatar', {'avatar': image}, format='multipart')

    def test_upload_avatar(self):
        response = self.upload()

        self.assertEqual(response.status_code, 200)
        avatar_url = response.json()['d']['avatarUrl']
        self.assertTrue(avatar_url.endswith(f'avatars/{self.user.pk}/avatar.png'))
        self.user.refresh_from_db()
        self.assertEqual(self.user.avatar_url, avatar_url)

    def test_reupload_replaces_avatar(self):
        self.upload()
        response = self.upload(content=b'second')

        self.assertTrue(response.json()['d']['avatarUrl'].endswith('avatar.png'))

    def test_rejects_invalid_type(self):
        response = self.upload(content=b'%PDF', content_type='application/pdf', name='me.pdf')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'avatar: Invalid File Type')

    @override_settings(AVATAR_MAX_BYTES=1024 * 1024)
    def test_rejects_large_file(self):
        response = self.upload(content=b'x' * (1024 * 1024 + 1))

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'avatar: File size exceeds 1MB')

    def test_requires_file(self):
        response = self.client.put('/api/me/avatar', {}, format='multipart')

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['m'], 'avatar: No file uploaded')
