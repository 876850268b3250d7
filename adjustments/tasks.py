"""
Celery tasks for stock adjustments.

Tasks:
    - send_low_stock_email: Alert a user that a product dropped to their low stock limit
"""
import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


@shared_task(
    bind=True,
    max_retries=3,
    default_retry_delay=60,
    autoretry_for=(Exception,),
    retry_backoff=True
)
def send_low_stock_email(self, email: str, product_name: str, current_stock: int, threshold: int):
    """
    Send the low stock alert email.

    Queued by the adjustment workflow after the adjustment has committed;
    delivery failures are retried with backoff and never reach the caller
    that made the adjustment.

    Args:
        email: Recipient address
        product_name: Name of the product that crossed the threshold
        current_stock: Stock level after the adjustment
        threshold: The user's low stock limit

    Returns:
        Dict with delivery details
    """
    context = {
        'product_name': product_name,
        'current_stock': current_stock,
        'threshold': threshold,
        'products_url': f"{settings.APP_URL.rstrip('/')}/dashboard/products",
    }

    subject = f"Low Stock Alert: {product_name}"
    text_body = (
        f"{product_name} has dropped to {current_stock} units.\n"
        f"Your alert threshold is set to {threshold} units.\n\n"
        f"View products: {context['products_url']}\n"
    )
    html_body = render_to_string('adjustments/low_stock_email.html', context)

    send_mail(
        subject,
        text_body,
        settings.LOW_STOCK_EMAIL_FROM,
        [email],
        html_message=html_body,
    )

    logger.info(f"Sent low stock email for {product_name} ({current_stock} units) to {email}")

    return {
        'status': 'sent',
        'email': email,
        'product': product_name,
        'current_stock': current_stock,
    }
