"""
Account API Views.

Implements:
- POST /signup, /login, /logout - session cookie lifecycle
- GET/PUT /me - profile
- GET/PUT /me/settings - low stock alert limit
- PUT /me/password - password change
- PUT /me/avatar - avatar upload
"""
import logging

from django.core.files.storage import default_storage
from django.db import IntegrityError
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.views import APIView

from core.api import api_error, api_response, request_payload
from core.authentication import clear_auth_cookie, set_auth_cookie, sign_token
from core.rate_limiting import RateLimitMixin, rate_limit
from .captcha import verify_recaptcha
from .models import User
from .serializers import (
    UserSerializer,
    SignupSerializer,
    LoginSerializer,
    ProfileUpdateSerializer,
    SettingsSerializer,
    PasswordChangeSerializer,
    AvatarSerializer,
)

logger = logging.getLogger(__name__)


def _session_response(user, message):
    """Issue a fresh token and return it in the body and the auth cookie."""
    token = sign_token(user)
    response = api_response({'token': token}, message)
    return set_auth_cookie(response, token)


class SignupView(RateLimitMixin, APIView):
    """
    POST: Create an account and start a session.

    Request Body:
    {
        "email": "a@b.com",
        "username": "alice",
        "password": "secret1",
        "confirmPassword": "secret1",
        "token": "<reCAPTCHA response>"
    }
    """
    authentication_classes = []
    permission_classes = [AllowAny]
    rate_limit_max_requests = 5
    rate_limit_window_seconds = 60

    def post(self, request):
        payload = request_payload(request)

        if not verify_recaptcha(payload.get('token')):
            return api_error('reCAPTCHA Verification Failed', status.HTTP_400_BAD_REQUEST)

        serializer = SignupSerializer(data=payload)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        if User.objects.filter(email__iexact=data['email']).exists():
            return api_error('Email Already In Use', status.HTTP_400_BAD_REQUEST)
        if User.objects.filter(username=data['username']).exists():
            return api_error('Username already taken', status.HTTP_409_CONFLICT)

        try:
            user = User.objects.create_user(
                username=data['username'],
                email=data['email'],
                password=data['password'],
            )
        except IntegrityError as e:
            logger.error(f"Signup failed for {data['username']}: {e}")
            return api_error('Error Creating User')

        logger.info(f"User {user.pk} ({user.username}) signed up")
        return _session_response(user, 'Signup Success')


class LoginView(APIView):
    """
    POST: Exchange username and password for a session.
    Rate limited to 10 requests per minute per client.
    """
    authentication_classes = []
    permission_classes = [AllowAny]

    @rate_limit(max_requests=10, window_seconds=60)
    def post(self, request):
        serializer = LoginSerializer(data=request_payload(request))
        serializer.is_valid(raise_exception=True)
        username = serializer.validated_data['username']

        user = User.objects.filter(username=username, is_active=True).first()
        if user is None or not user.check_password(serializer.validated_data['password']):
            logger.info(f"Failed login for {username}")
            return api_error('Invalid username or password', status.HTTP_401_UNAUTHORIZED)

        return _session_response(user, 'Login Success')


class LogoutView(APIView):
    """POST: Clear the session cookie."""
    authentication_classes = []
    permission_classes = [AllowAny]

    def post(self, request):
        return clear_auth_cookie(api_response(None, 'Logout Success'))


class MeView(APIView):
    """
    GET: Current user's profile
    PUT: Update username and/or email; reissues the session token
    """

    def get(self, request):
        return api_response(
            {'user': UserSerializer(request.user).data},
            'User Profile Fetched Successfully'
        )

    def put(self, request):
        serializer = ProfileUpdateSerializer(data=request_payload(request))
        serializer.is_valid(raise_exception=True)
        username = serializer.validated_data.get('username')
        email = serializer.validated_data.get('email')
        user = request.user
        others = User.objects.exclude(pk=user.pk)

        if username and username != user.username and others.filter(username=username).exists():
            return api_error('Username already taken', status.HTTP_409_CONFLICT)
        if email and email != user.email and others.filter(email__iexact=email).exists():
            return api_error('Email already taken', status.HTTP_409_CONFLICT)

        if username:
            user.username = username
        if email:
            user.email = email
        try:
            user.save(update_fields=['username', 'email'])
        except IntegrityError as e:
            logger.error(f"Profile update failed for user {user.pk}: {e}")
            return api_error('Failed to update profile')

        token = sign_token(user)
        response = api_response(
            {'user': UserSerializer(user).data, 'token': token},
            'Profile Updated Successfully'
        )
        return set_auth_cookie(response, token)


class MeSettingsView(APIView):
    """
    GET: Current low stock alert limit
    PUT: Set the low stock alert limit (non-negative integer)
    """

    def get(self, request):
        return api_response(
            {'low_stock_limit': request.user.low_stock_limit},
            'Settings Fetched Successfully'
        )

    def put(self, request):
        serializer = SettingsSerializer(data=request_payload(request))
        serializer.is_valid(raise_exception=True)
        limit = serializer.validated_data['low_stock_limit']

        user = request.user
        user.low_stock_limit = limit
        user.save(update_fields=['low_stock_limit'])

        return api_response({'low_stock_limit': limit}, 'Settings updated successfully')


class MePasswordView(APIView):
    """PUT: Change password after confirming the current one."""

    def put(self, request):
        serializer = PasswordChangeSerializer(data=request_payload(request))
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        user = request.user

        if not user.check_password(data['currentPassword']):
            return api_error('Current password is incorrect', status.HTTP_401_UNAUTHORIZED)

        user.set_password(data['newPassword'])
        user.save(update_fields=['password'])
        logger.info(f"User {user.pk} changed password")

        return api_response(None, 'Password Updated Successfully')


class MeAvatarView(APIView):
    """
    PUT: Upload an avatar image (multipart field ``avatar``).

    JPEG, PNG or GIF up to AVATAR_MAX_BYTES. Stored at
    ``avatars/<user id>/avatar.<ext>``, replacing any previous upload.
    """

    def put(self, request):
        serializer = AvatarSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        upload = serializer.validated_data['avatar']
        user = request.user

        extension = AvatarSerializer.ALLOWED_CONTENT_TYPES[upload.content_type]
        path = f'avatars/{user.pk}/avatar.{extension}'
        if default_storage.exists(path):
            default_storage.delete(path)
        saved_path = default_storage.save(path, upload)

        avatar_url = request.build_absolute_uri(default_storage.url(saved_path))
        user.avatar_url = avatar_url
        user.save(update_fields=['avatar_url'])

        return api_response({'avatarUrl': avatar_url}, 'Avatar Updated Successfully')
