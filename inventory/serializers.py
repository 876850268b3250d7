"""
Serializers for inventory models.
Provides data validation and JSON conversion for API endpoints.
"""
from rest_framework import serializers
from .models import Product


class ProductSerializer(serializers.ModelSerializer):
    """
    Serializer for Product model.

    ``status`` is read-only: the model derives it from stock and min_stock.
    """
    user_id = serializers.IntegerField(source='owner_id', read_only=True)

    class Meta:
        model = Product
        fields = [
            'id', 'user_id', 'name', 'sku', 'category', 'price',
            'stock', 'min_stock', 'status', 'description',
            'supplier', 'location', 'last_restocked',
            'created_at', 'updated_at'
        ]
        read_only_fields = ['id', 'status', 'created_at', 'updated_at']

    def validate_sku(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError("SKU may not be blank.")
        return value


class LowStockProductSerializer(serializers.ModelSerializer):
    """Compact product representation for dashboard lists."""
    class Meta:
        model = Product
        fields = ['id', 'name', 'sku', 'category', 'stock', 'price', 'status', 'min_stock']
