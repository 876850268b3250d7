"""
reCAPTCHA verification for signup.
"""
import logging

import requests
from django.conf import settings

logger = logging.getLogger(__name__)


def verify_recaptcha(token) -> bool:
    """
    Check a reCAPTCHA response token with Google.

    Always passes when ``RECAPTCHA_SECRET_KEY`` is not configured.
    """
    secret = settings.RECAPTCHA_SECRET_KEY
    if not secret:
        return True
    if not token:
        return False

    try:
        response = requests.post(
            settings.RECAPTCHA_VERIFY_URL,
            data={'secret': secret, 'response': token},
            timeout=5,
        )
        response.raise_for_status()
        return bool(response.json().get('success'))
    except (requests.RequestException, ValueError) as e:
        logger.error(f"reCAPTCHA verification request failed: {e}")
        return False
