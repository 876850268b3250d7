"""
Stock Adjustment Models - the append-only ledger of stock movements.

Adjustment Types:
    INCOMING: units added to a product's stock
    OUTGOING: units removed from a product's stock
"""
import uuid

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models

from inventory.models import Product


class StockAdjustment(models.Model):
    """
    One recorded stock movement.

    Rows are created only by ``adjustments.services.submit_adjustment``,
    together with the product change they record, and are never updated.
    """

    class Type(models.TextChoices):
        INCOMING = 'incoming', 'Incoming'
        OUTGOING = 'outgoing', 'Outgoing'

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name='adjustments',
        help_text="Adjusted product"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='stock_adjustments',
        help_text="User who made the adjustment"
    )
    type = models.CharField(
        max_length=10,
        choices=Type.choices,
        db_index=True,
        help_text="Direction of the movement"
    )
    units = models.PositiveIntegerField(
        validators=[MinValueValidator(1)],
        help_text="Number of units moved"
    )
    reason = models.TextField(
        null=True,
        blank=True,
        help_text="Optional free-text reason"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        verbose_name = 'Stock Adjustment'
        verbose_name_plural = 'Stock Adjustments'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'created_at'], name='adjustment_user_created_idx'),
            models.Index(fields=['user', 'type'], name='adjustment_user_type_idx'),
        ]

    def __str__(self):
        sign = '+' if self.type == self.Type.INCOMING else '-'
        return f"{sign}{self.units} {self.product.name}"
