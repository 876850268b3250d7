"""
Inventory Models - the per-user product catalog.

Models:
    - Product: Items tracked by a user, with stock and derived stock status

Status is never stored independently of stock: ``Product.save()`` always
re-derives it from ``(stock, min_stock)``.
"""
import uuid
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models


class StockStatus(models.TextChoices):
    IN_STOCK = 'In Stock', 'In Stock'
    LOW_STOCK = 'Low Stock', 'Low Stock'
    OUT_OF_STOCK = 'Out of Stock', 'Out of Stock'


def derive_status(stock: int, min_stock: int) -> str:
    """
    Classify a stock level.

    0 units is Out of Stock; anything up to and including ``min_stock`` is
    Low Stock; above that is In Stock.
    """
    if stock == 0:
        return StockStatus.OUT_OF_STOCK
    if stock <= min_stock:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


class Product(models.Model):
    """
    Product entity owned by a single user.

    Constraint: SKU is unique per owner.
    """
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='products',
        help_text="User who owns this product"
    )
    name = models.CharField(
        max_length=200,
        db_index=True,
        help_text="Product name for display and search"
    )
    sku = models.CharField(
        max_length=64,
        help_text="Stock keeping unit, unique per owner"
    )
    category = models.CharField(
        max_length=100,
        blank=True,
        default='',
        db_index=True,
        help_text="Free-form category label"
    )
    price = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0'))],
        help_text="Unit price (must not be negative)"
    )
    stock = models.PositiveIntegerField(
        default=0,
        help_text="Units currently on hand"
    )
    min_stock = models.PositiveIntegerField(
        default=0,
        help_text="At or below this many units the product is Low Stock"
    )
    status = models.CharField(
        max_length=20,
        choices=StockStatus.choices,
        default=StockStatus.OUT_OF_STOCK,
        db_index=True,
        editable=False,
        help_text="Derived from stock and min_stock"
    )
    description = models.TextField(blank=True, default='')
    supplier = models.CharField(max_length=200, blank=True, default='')
    location = models.CharField(max_length=200, blank=True, default='')
    last_restocked = models.DateField(
        null=True,
        blank=True,
        help_text="Date of the most recent incoming adjustment"
    )
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = 'Product'
        verbose_name_plural = 'Products'
        ordering = ['-created_at']
        constraints = [
            models.UniqueConstraint(
                fields=['owner', 'sku'],
                name='unique_owner_sku'
            )
        ]
        indexes = [
            models.Index(fields=['owner', 'status'], name='product_owner_status_idx'),
            models.Index(fields=['owner', 'category'], name='product_owner_category_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def save(self, *args, **kwargs):
        self.status = derive_status(self.stock, self.min_stock)
        update_fields = kwargs.get('update_fields')
        if update_fields is not None and 'status' not in update_fields:
            kwargs['update_fields'] = list(update_fields) + ['status']
        super().save(*args, **kwargs)

    @property
    def stock_value(self) -> Decimal:
        return self.stock * self.price
