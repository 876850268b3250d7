"""
Stock Adjustment API Views.

Implements:
- GET /stock-adjustments - Paginated ledger for the current user
- POST /stock-adjustments - Submit an adjustment through the workflow
- GET /stock-adjustments/export - CSV export of the ledger
"""
import logging
import uuid

from rest_framework import status
from rest_framework.views import APIView

from core.api import api_created, api_error, api_response, request_payload
from core.csv_export import csv_response
from .models import StockAdjustment
from .serializers import (
    StockAdjustmentSerializer,
    StockAdjustmentDetailSerializer,
    StockAdjustmentCreateSerializer,
)
from .services import (
    submit_adjustment,
    AdjustmentValidationError,
    ProductNotFoundError,
    InsufficientStockError,
    PersistenceError,
)

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 20

EXPORT_COLUMNS = [
    ('ID', 'id'),
    ('Product ID', 'product_id'),
    ('Type', 'type'),
    ('Units', 'units'),
    ('Reason', 'reason'),
    ('Created At', 'created_at'),
]


def _positive_int(value, default):
    try:
        return max(int(value), 1)
    except (TypeError, ValueError):
        return default


def _filtered_ledger(request):
    queryset = StockAdjustment.objects.filter(user=request.user)

    adjustment_type = request.query_params.get('type')
    if adjustment_type:
        queryset = queryset.filter(type=adjustment_type)

    return queryset.order_by('-created_at')


class StockAdjustmentListCreateView(APIView):
    """
    GET: List the user's stock adjustments, newest first

    Query Parameters (GET):
        - type: incoming / outgoing
        - product_id: Filter by product
        - page: 1-based page number (default 1)
        - limit: Page size (default 20)

    Request Body (POST):
    {
        "product_id": "9b2f...",
        "type": "incoming",
        "units": 10,
        "reason": "Supplier delivery"
    }
    """

    def get(self, request):
        queryset = _filtered_ledger(request).select_related('product', 'user')

        product_id = request.query_params.get('product_id')
        if product_id:
            try:
                queryset = queryset.filter(product_id=uuid.UUID(product_id))
            except ValueError:
                return api_error('Invalid product_id', status.HTTP_400_BAD_REQUEST)

        page = _positive_int(request.query_params.get('page'), 1)
        limit = _positive_int(request.query_params.get('limit'), DEFAULT_PAGE_SIZE)
        offset = (page - 1) * limit

        total = queryset.count()
        items = StockAdjustmentDetailSerializer(queryset[offset:offset + limit], many=True).data

        return api_response(
            {
                'items': items,
                'total': total,
                'page': page,
                'pageSize': limit,
            },
            'Stock Adjustments Fetched Successfully'
        )

    def post(self, request):
        """
        Submit a stock adjustment.

        Returns:
            - 201: Adjustment recorded
            - 400: Validation error or insufficient stock
            - 404: Product not found
            - 500: Database write failed
        """
        serializer = StockAdjustmentCreateSerializer(data=request_payload(request))
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            adjustment = submit_adjustment(
                request.user,
                data['product_id'],
                data['type'],
                data['units'],
                data.get('reason'),
            )
        except AdjustmentValidationError as e:
            logger.warning(f"Stock adjustment validation failed: {e}")
            return api_error(str(e), status.HTTP_400_BAD_REQUEST)
        except ProductNotFoundError:
            return api_error('Product Not Found', status.HTTP_404_NOT_FOUND)
        except InsufficientStockError as e:
            return api_error(
                f'Insufficient Stock: requested {e.requested}, available {e.available}',
                status.HTTP_400_BAD_REQUEST
            )
        except PersistenceError:
            return api_error('Failed To Record Stock Adjustment')

        return api_created(
            StockAdjustmentSerializer(adjustment).data,
            'Stock adjustment created'
        )


class StockAdjustmentExportView(APIView):
    """
    GET: Download the user's stock adjustments as CSV.

    Query Parameters:
        - type: incoming / outgoing
    """

    def get(self, request):
        rows = _filtered_ledger(request).values(*[key for _, key in EXPORT_COLUMNS])
        return csv_response(rows, EXPORT_COLUMNS, 'stock_adjustments.csv')
