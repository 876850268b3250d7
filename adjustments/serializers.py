"""
Serializers for stock adjustments.
"""
from rest_framework import serializers

from .models import StockAdjustment
from .services import MAX_UNITS


class StockAdjustmentSerializer(serializers.ModelSerializer):
    """Serializer for a single ledger entry."""
    product_id = serializers.UUIDField(read_only=True)
    user_id = serializers.IntegerField(read_only=True)

    class Meta:
        model = StockAdjustment
        fields = ['id', 'product_id', 'user_id', 'type', 'units', 'reason', 'created_at']
        read_only_fields = fields


class AdjustmentProductSerializer(serializers.Serializer):
    name = serializers.CharField(read_only=True)
    sku = serializers.CharField(read_only=True)


class AdjustmentUserSerializer(serializers.Serializer):
    username = serializers.CharField(read_only=True)


class StockAdjustmentDetailSerializer(StockAdjustmentSerializer):
    """
    Ledger entry with product and user details for listings.
    Uses select_related('product', 'user') in view.
    """
    products = AdjustmentProductSerializer(source='product', read_only=True)
    users = AdjustmentUserSerializer(source='user', read_only=True)

    class Meta(StockAdjustmentSerializer.Meta):
        fields = StockAdjustmentSerializer.Meta.fields + ['products', 'users']
        read_only_fields = fields


class StockAdjustmentCreateSerializer(serializers.Serializer):
    """
    Serializer for POST /stock-adjustments

    Request format:
    {
        "product_id": "9b2f...",
        "type": "outgoing",
        "units": 5,
        "reason": "Damaged in transit"
    }
    """
    product_id = serializers.CharField()
    type = serializers.ChoiceField(choices=StockAdjustment.Type.choices)
    units = serializers.IntegerField(min_value=1, max_value=MAX_UNITS)
    reason = serializers.CharField(required=False, allow_blank=True, allow_null=True)
