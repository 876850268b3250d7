"""
Redis-based rate limiting for the authentication endpoints.
Fixed-window counter per client IP and endpoint; fails open when Redis is down.
"""
import logging
from functools import wraps

import redis
from django.conf import settings
from django.http import JsonResponse
from rest_framework import status

logger = logging.getLogger(__name__)

_redis_client = None
_redis_checked = False


def get_redis_client():
    """Return a connected Redis client, or None if Redis is unreachable."""
    global _redis_client, _redis_checked
    if _redis_checked:
        return _redis_client

    _redis_checked = True
    try:
        client = redis.Redis.from_url(
            settings.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5
        )
        client.ping()
    except (redis.ConnectionError, redis.TimeoutError) as e:
        logger.warning(f"Redis connection failed: {e}. Rate limiting will be disabled.")
        client = None

    _redis_client = client
    return _redis_client


def get_client_ip(request):
    """Extract client IP address from request."""
    x_forwarded_for = request.META.get('HTTP_X_FORWARDED_FOR')
    if x_forwarded_for:
        ip = x_forwarded_for.split(',')[0].strip()
    else:
        ip = request.META.get('REMOTE_ADDR', 'unknown')
    return ip


def _limit_exceeded(max_requests, window_seconds, ttl):
    # Plain JsonResponse: also returned from dispatch() before DRF sets up rendering
    message = f'Too many requests. Maximum {max_requests} requests per {window_seconds} seconds allowed.'
    return JsonResponse(
        {'c': status.HTTP_429_TOO_MANY_REQUESTS, 'm': message, 'd': None},
        status=status.HTTP_429_TOO_MANY_REQUESTS,
        headers={
            'X-RateLimit-Limit': str(max_requests),
            'X-RateLimit-Remaining': '0',
            'X-RateLimit-Reset': str(ttl),
            'Retry-After': str(ttl)
        }
    )


def _check(scope, request, max_requests, window_seconds):
    """
    Count this request against the window.

    Returns:
        Tuple of (current count, ttl) or None when limiting is inactive.
    """
    if not getattr(settings, 'RATE_LIMIT_ENABLED', True):
        return None
    client = get_redis_client()
    if client is None:
        return None

    key = f"rate_limit:{scope}:{get_client_ip(request)}"
    current_count = client.incr(key)
    if current_count == 1:
        client.expire(key, window_seconds)
    return current_count, client.ttl(key)


def _stamp(response, max_requests, current_count, ttl):
    response['X-RateLimit-Limit'] = str(max_requests)
    response['X-RateLimit-Remaining'] = str(max(0, max_requests - current_count))
    response['X-RateLimit-Reset'] = str(ttl)
    return response


def rate_limit(max_requests: int = 10, window_seconds: int = 60):
    """
    Rate limiting decorator for DRF view methods.

    Usage:
        @rate_limit(10, 60)  # 10 requests per minute
        def post(self, request):
            ...
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(self, request, *args, **kwargs):
            try:
                counted = _check(view_func.__qualname__, request, max_requests, window_seconds)
            except redis.RedisError as e:
                logger.error(f"Redis error in rate limiting: {e}")
                counted = None

            if counted is None:
                return view_func(self, request, *args, **kwargs)

            current_count, ttl = counted
            if current_count > max_requests:
                logger.warning(
                    f"Rate limit exceeded for {view_func.__qualname__} "
                    f"from {get_client_ip(request)}"
                )
                return _limit_exceeded(max_requests, window_seconds, ttl)

            response = view_func(self, request, *args, **kwargs)
            return _stamp(response, max_requests, current_count, ttl)

        return wrapper
    return decorator


class RateLimitMixin:
    """
    Mixin class for class-based views to add rate limiting to every method.

    Usage:
        class SignupView(RateLimitMixin, APIView):
            rate_limit_max_requests = 5
            rate_limit_window_seconds = 60
    """
    rate_limit_max_requests = 10
    rate_limit_window_seconds = 60

    def dispatch(self, request, *args, **kwargs):
        try:
            counted = _check(
                self.__class__.__name__, request,
                self.rate_limit_max_requests, self.rate_limit_window_seconds
            )
        except redis.RedisError as e:
            logger.error(f"Redis error in rate limiting: {e}")
            counted = None

        if counted is None:
            return super().dispatch(request, *args, **kwargs)

        current_count, ttl = counted
        if current_count > self.rate_limit_max_requests:
            logger.warning(
                f"Rate limit exceeded for {self.__class__.__name__} "
                f"from {get_client_ip(request)}"
            )
            return _limit_exceeded(
                self.rate_limit_max_requests, self.rate_limit_window_seconds, ttl
            )

        response = super().dispatch(request, *args, **kwargs)
        return _stamp(response, self.rate_limit_max_requests, current_count, ttl)
