"""
Stock Adjustment Service Layer - the stock adjustment workflow.

submit_adjustment():
1. Validate the request (type, positive integer units)
2. Lock the owner's product row with select_for_update()
3. Compute the new stock; reject if it would go negative
4. Write stock, derived status and (for incoming) last_restocked
5. Append the ledger entry
6. After commit: queue a low stock email if the user's alert threshold was crossed

Steps 2-5 run in one transaction, so the product change and its ledger entry
commit together and concurrent adjustments to one product are serialized.
"""
import logging
from typing import Optional

from django.contrib.auth import get_user_model
from django.core.exceptions import ValidationError
from django.db import DatabaseError, transaction
from django.utils import timezone

from inventory.models import Product, derive_status
from .models import StockAdjustment

logger = logging.getLogger(__name__)

# Largest value of the stock and units integer columns
MAX_UNITS = 2147483647


class AdjustmentError(Exception):
    """Base class for stock adjustment failures."""


class AdjustmentValidationError(AdjustmentError):
    """Raised when the adjustment request itself is invalid."""
    pass


class ProductNotFoundError(AdjustmentError):
    """Raised when the product does not exist or belongs to another user."""
    def __init__(self, product_id):
        self.product_id = product_id
        super().__init__(f"Product {product_id} not found")


class InsufficientStockError(AdjustmentError):
    """Raised when an outgoing adjustment would drive stock below zero."""
    def __init__(self, product_id, requested: int, available: int):
        self.product_id = product_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"requested {requested}, available {available}"
        )


class PersistenceError(AdjustmentError):
    """Raised when a database write of the workflow fails."""
    def __init__(self, step: str):
        self.step = step
        super().__init__(f"Failed to {step}")


def validate_adjustment(adjustment_type: str, units) -> None:
    """
    Validate the adjustment type and units.

    Raises:
        AdjustmentValidationError: If validation fails
    """
    if adjustment_type not in StockAdjustment.Type.values:
        raise AdjustmentValidationError("type must be 'incoming' or 'outgoing'")
    if isinstance(units, bool) or not isinstance(units, int) or units < 1:
        raise AdjustmentValidationError("units must be a positive integer")
    if units > MAX_UNITS:
        raise AdjustmentValidationError(f"units must not exceed {MAX_UNITS}")


def compute_new_stock(stock: int, adjustment_type: str, units: int) -> int:
    if adjustment_type == StockAdjustment.Type.INCOMING:
        return stock + units
    return stock - units


def should_notify_low_stock(previous_stock: int, new_stock: int, limit: int) -> bool:
    """
    True when an adjustment moves stock into the alert zone ``(0, limit]``.

    Only the transition counts: if stock was already at or below the limit
    before the adjustment, no new alert is sent.
    """
    return 0 < new_stock <= limit < previous_stock


def submit_adjustment(owner, product_id, adjustment_type: str, units: int,
                      reason: Optional[str] = None) -> StockAdjustment:
    """
    Record a stock movement for one of ``owner``'s products.

    Args:
        owner: Authenticated user making the adjustment
        product_id: ID of a product owned by ``owner``
        adjustment_type: 'incoming' or 'outgoing'
        units: Positive number of units moved
        reason: Optional free-text reason

    Returns:
        The created StockAdjustment

    Raises:
        AdjustmentValidationError: If type or units are invalid, or stock would overflow
        ProductNotFoundError: If the product is missing or not owned by ``owner``
        InsufficientStockError: If an outgoing adjustment exceeds available stock
        PersistenceError: If the product update or ledger insert fails
    """
    validate_adjustment(adjustment_type, units)

    with transaction.atomic():
        try:
            product = Product.objects.select_for_update().get(id=product_id, owner=owner)
        except (Product.DoesNotExist, ValidationError, ValueError):
            raise ProductNotFoundError(product_id)

        previous_stock = product.stock
        new_stock = compute_new_stock(previous_stock, adjustment_type, units)

        if new_stock < 0:
            logger.warning(
                f"Adjustment rejected for product {product.id}: "
                f"{units} {adjustment_type} units, only {previous_stock} in stock"
            )
            raise InsufficientStockError(product.id, units, previous_stock)
        if new_stock > MAX_UNITS:
            raise AdjustmentValidationError(f"Stock cannot exceed {MAX_UNITS} units")

        product.stock = new_stock
        product.status = derive_status(new_stock, product.min_stock)
        update_fields = ['stock', 'status', 'updated_at']
        if adjustment_type == StockAdjustment.Type.INCOMING:
            product.last_restocked = timezone.localdate()
            update_fields.append('last_restocked')

        try:
            product.save(update_fields=update_fields)
        except DatabaseError as e:
            logger.exception(f"Failed to update stock for product {product.id}: {e}")
            raise PersistenceError('update product stock') from e

        try:
            adjustment = StockAdjustment.objects.create(
                product=product,
                user=owner,
                type=adjustment_type,
                units=units,
                reason=reason or None,
            )
        except DatabaseError as e:
            logger.exception(f"Failed to insert stock adjustment for product {product.id}: {e}")
            raise PersistenceError('create stock adjustment') from e

        logger.info(
            f"Adjustment {adjustment.id}: {adjustment_type} {units} of {product.name}, "
            f"stock {previous_stock} -> {new_stock} ({product.status})"
        )

        product_name = product.name
        transaction.on_commit(
            lambda: notify_low_stock_crossing(owner.pk, product_name, previous_stock, new_stock)
        )

    return adjustment


def notify_low_stock_crossing(user_id, product_name: str, previous_stock: int,
                              new_stock: int) -> bool:
    """
    Queue a low stock email if the user's alert threshold was just crossed.

    Never raises: a notification failure must not affect the adjustment.

    Returns:
        True if an email was queued
    """
    from .tasks import send_low_stock_email

    try:
        user = get_user_model().objects.only('email', 'low_stock_limit').get(pk=user_id)
        if not should_notify_low_stock(previous_stock, new_stock, user.low_stock_limit):
            return False

        send_low_stock_email.delay(user.email, product_name, new_stock, user.low_stock_limit)
        logger.info(
            f"Queued low stock email for {product_name} "
            f"({new_stock} <= {user.low_stock_limit}) to user {user_id}"
        )
        return True
    except Exception as e:
        # Don't fail the adjustment if the alert can't be queued
        logger.error(f"Failed to queue low stock email for {product_name}: {e}")
        return False
