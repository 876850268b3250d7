"""
Django Admin configuration for the stock adjustment ledger (read-only).
"""
from django.contrib import admin
from .models import StockAdjustment


@admin.register(StockAdjustment)
class StockAdjustmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'product', 'user', 'type', 'units', 'reason', 'created_at']
    list_filter = ['type', 'created_at']
    search_fields = ['product__name', 'product__sku', 'user__username', 'reason']
    ordering = ['-created_at']
    raw_id_fields = ['product', 'user']
    readonly_fields = ['product', 'user', 'type', 'units', 'reason', 'created_at']

    # Ledger entries are created by the adjustment workflow only
    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
