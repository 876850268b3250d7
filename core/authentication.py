"""
Stateless session tokens.

Tokens are HS256 JWTs carrying ``userId``, ``email`` and ``username``. They are
issued on signup, login and profile update, and travel in the ``auth-token``
cookie (or an ``Authorization: Bearer`` header for API clients).
"""
import logging
from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings
from django.contrib.auth import get_user_model
from rest_framework import authentication

logger = logging.getLogger(__name__)


def sign_token(user) -> str:
    """Issue a signed token for ``user``."""
    now = datetime.now(timezone.utc)
    payload = {
        'userId': str(user.pk),
        'email': user.email,
        'username': user.username,
        'iat': now,
        'exp': now + timedelta(seconds=settings.JWT_EXPIRATION_SECONDS),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_token(token):
    """
    Verify ``token`` and return its identity claims.

    Returns:
        Dict with ``userId``, ``email`` and ``username``, or None when the
        token is malformed, expired or signed with another key.
    """
    try:
        payload = jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALGORITHM],
        )
    except jwt.PyJWTError as e:
        logger.info(f"Token verification failed: {e}")
        return None

    if not payload.get('userId'):
        return None

    return {
        'userId': payload['userId'],
        'email': payload.get('email'),
        'username': payload.get('username'),
    }


def set_auth_cookie(response, token):
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        token,
        max_age=settings.JWT_EXPIRATION_SECONDS,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite='Lax',
        path='/',
    )
    return response


def clear_auth_cookie(response):
    response.set_cookie(
        settings.AUTH_COOKIE_NAME,
        '',
        max_age=0,
        httponly=True,
        secure=settings.AUTH_COOKIE_SECURE,
        samesite='Lax',
        path='/',
    )
    return response


class TokenCookieAuthentication(authentication.BaseAuthentication):
    """
    DRF authentication backed by ``verify_token``.

    A missing or invalid token leaves the request anonymous, so protected
    views answer 401 and public views (login, signup) still work with a stale
    cookie.
    """
    keyword = 'Bearer'

    def authenticate(self, request):
        token = self.get_token(request)
        if not token:
            return None

        identity = verify_token(token)
        if identity is None:
            return None

        User = get_user_model()
        try:
            user = User.objects.get(pk=identity['userId'], is_active=True)
        except (User.DoesNotExist, ValueError, TypeError):
            logger.info(f"Token for unknown user {identity['userId']}")
            return None

        return user, identity

    def get_token(self, request):
        header = authentication.get_authorization_header(request).split()
        if len(header) == 2 and header[0].lower() == self.keyword.lower().encode():
            try:
                return header[1].decode()
            except UnicodeError:
                return None
        return request.COOKIES.get(settings.AUTH_COOKIE_NAME)

    def authenticate_header(self, request):
        return f'{self.keyword} realm="api"'
