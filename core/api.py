"""
Response envelope shared by every API endpoint.

Every body has the shape ``{"c": <status>, "m": <message>, "d": <data>}`` and
the HTTP status of the response always equals ``c``. Errors carry ``d: null``.
"""
import logging

from django.core.exceptions import PermissionDenied
from django.http import Http404
from rest_framework import exceptions, status
from rest_framework.response import Response

logger = logging.getLogger(__name__)


def api_response(data=None, message='Success', status_code=status.HTTP_200_OK, headers=None):
    """Wrap ``data`` in the standard envelope."""
    return Response(
        {'c': status_code, 'm': message, 'd': data},
        status=status_code,
        headers=headers,
    )


def api_created(data=None, message='Created'):
    return api_response(data, message, status.HTTP_201_CREATED)


def api_error(message='Internal Server Error',
              status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, headers=None):
    return api_response(None, message, status_code, headers=headers)


def request_payload(request):
    """
    Return the request body as a mapping.

    The web client wraps bodies as ``{"d": {...}}``; flat bodies are accepted
    too so that curl and the test client work without the wrapper.
    """
    data = request.data
    if hasattr(data, 'get') and isinstance(data.get('d'), dict):
        return data['d']
    return data


def _first_message(detail):
    if isinstance(detail, dict):
        for field, value in detail.items():
            message = _first_message(value)
            if field in ('non_field_errors', 'detail'):
                return message
            return f'{field}: {message}'
        return ''
    if isinstance(detail, (list, tuple)):
        return _first_message(detail[0]) if detail else ''
    return str(detail)


def api_exception_handler(exc, context):
    """
    DRF exception handler rendering every error in the envelope.

    Unexpected exceptions are logged with their traceback and reported as a
    generic server error; their text never reaches the client.
    """
    if isinstance(exc, Http404):
        exc = exceptions.NotFound('Not Found')
    elif isinstance(exc, PermissionDenied):
        exc = exceptions.PermissionDenied()

    if isinstance(exc, exceptions.APIException):
        headers = {}
        auth_header = getattr(exc, 'auth_header', None)
        if auth_header:
            headers['WWW-Authenticate'] = auth_header
        wait = getattr(exc, 'wait', None)
        if wait:
            headers['Retry-After'] = '%d' % wait

        if isinstance(exc, (exceptions.NotAuthenticated, exceptions.AuthenticationFailed)):
            message = 'Unauthorized'
        else:
            message = _first_message(exc.detail)
        return api_error(message, exc.status_code, headers=headers or None)

    view = context.get('view')
    logger.exception(
        "Unhandled error in %s: %s",
        view.__class__.__name__ if view is not None else 'unknown view',
        exc,
    )
    return api_error('Internal Server Error')
