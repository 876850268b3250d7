"""
Account model - the tenant that owns products and stock adjustments.
"""
from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """
    Application user.

    ``low_stock_limit`` is the per-user threshold for low stock email alerts.
    It is independent of each product's ``min_stock``, which drives the
    product's displayed status.
    """
    email = models.EmailField(
        unique=True,
        help_text="Login email, unique across users"
    )
    low_stock_limit = models.PositiveIntegerField(
        default=5,
        help_text="Send a low stock email when a product drops to this many units"
    )
    avatar_url = models.CharField(
        max_length=500,
        blank=True,
        default='',
        help_text="Public URL of the uploaded avatar image"
    )

    class Meta:
        verbose_name = 'User'
        verbose_name_plural = 'Users'
        ordering = ['username']

    def __str__(self):
        return self.username

    @property
    def created_at(self):
        return self.date_joined
