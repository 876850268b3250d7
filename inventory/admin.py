"""
Django Admin configuration for inventory models.
"""
from django.contrib import admin
from .models import Product


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['name', 'sku', 'owner', 'category', 'stock', 'min_stock', 'status', 'price', 'updated_at']
    list_filter = ['status', 'category', 'created_at']
    search_fields = ['name', 'sku', 'owner__username']
    ordering = ['owner', 'name']
    raw_id_fields = ['owner']
    readonly_fields = ['status', 'last_restocked', 'created_at', 'updated_at']
