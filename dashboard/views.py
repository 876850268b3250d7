"""
Dashboard API Views.

Implements:
- GET /dashboard - Metrics, low stock items, recent activity, top products
- GET /dashboard/chart - Monthly incoming/outgoing units for the last year
"""
from rest_framework.views import APIView

from adjustments.serializers import StockAdjustmentDetailSerializer
from core.api import api_response
from inventory.serializers import LowStockProductSerializer
from . import services


class DashboardView(APIView):
    """
    GET: Dashboard summary for the current user.
    """

    def get(self, request):
        user = request.user
        return api_response({
            'metrics': services.compute_metrics(user),
            'lowStockItems': LowStockProductSerializer(
                services.low_stock_items(user), many=True
            ).data,
            'recentActivity': StockAdjustmentDetailSerializer(
                services.recent_activity(user), many=True
            ).data,
            'topProducts': services.top_products(user),
        })


class DashboardChartView(APIView):
    """
    GET: Twelve ``{month, incoming, outgoing}`` entries, oldest first.
    """

    def get(self, request):
        return api_response(services.monthly_movements(request.user))
