"""
Django Admin configuration for users.
"""
from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin
from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['id', 'username', 'email', 'low_stock_limit', 'product_count', 'date_joined']
    search_fields = ['username', 'email']
    ordering = ['username']
    fieldsets = BaseUserAdmin.fieldsets + (
        ('Inventory', {'fields': ('low_stock_limit', 'avatar_url')}),
    )

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = 'Products'
