"""
Inventory API Views.

Implements:
- CRUD operations for the current user's products
- Product filtering by category, status and keyword
- CSV export of the product list
"""
import logging

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.db.models import Q
from rest_framework import generics, status
from rest_framework.exceptions import NotFound
from rest_framework.views import APIView

from core.api import api_created, api_error, api_response, request_payload
from core.csv_export import csv_response
from .models import Product
from .serializers import ProductSerializer

logger = logging.getLogger(__name__)

REQUIRED_FIELDS_MESSAGE = 'Name, SKU, and price are required'
DUPLICATE_SKU_MESSAGE = 'A product with this SKU already exists'

EXPORT_COLUMNS = [
    ('ID', 'id'),
    ('Name', 'name'),
    ('Description', 'description'),
    ('SKU', 'sku'),
    ('Category', 'category'),
    ('Stock', 'stock'),
    ('Price', 'price'),
    ('Status', 'status'),
    ('Supplier', 'supplier'),
    ('Location', 'location'),
    ('Minimum Stock', 'min_stock'),
    ('Last Restock Date', 'last_restocked'),
    ('Created At', 'created_at'),
    ('Updated At', 'updated_at'),
]


def filter_products(queryset, params):
    """
    Apply the list filters shared by the product list and the CSV export.

    Query Parameters:
        - category: Exact category
        - status: Exact status (In Stock, Low Stock, Out of Stock)
        - search: Keyword matched against name and SKU
    """
    category = params.get('category')
    if category:
        queryset = queryset.filter(category=category)

    status_filter = params.get('status')
    if status_filter:
        queryset = queryset.filter(status=status_filter)

    search = params.get('search', '').strip()
    if search:
        queryset = queryset.filter(
            Q(name__icontains=search) |
            Q(sku__icontains=search)
        )

    return queryset.order_by('-created_at')


class OwnedProductMixin:
    """Scopes every product query to the authenticated user."""
    serializer_class = ProductSerializer

    def get_queryset(self):
        return Product.objects.filter(owner=self.request.user)

    def sku_taken(self, sku, exclude_pk=None):
        queryset = self.get_queryset().filter(sku=sku)
        if exclude_pk is not None:
            queryset = queryset.exclude(pk=exclude_pk)
        return queryset.exists()


class ProductListCreateView(OwnedProductMixin, generics.ListCreateAPIView):
    """
    GET: List the user's products, newest first
    POST: Create a new product

    Query Parameters (GET):
        - category, status, search (see filter_products)
    """

    def get_queryset(self):
        return filter_products(super().get_queryset(), self.request.query_params)

    def list(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return api_response(serializer.data)

    def create(self, request, *args, **kwargs):
        payload = request_payload(request)
        if (not payload.get('name') or not payload.get('sku')
                or payload.get('price') in (None, '')):
            return api_error(REQUIRED_FIELDS_MESSAGE, status.HTTP_400_BAD_REQUEST)

        serializer = self.get_serializer(data=payload)
        serializer.is_valid(raise_exception=True)

        if self.sku_taken(serializer.validated_data['sku']):
            return api_error(DUPLICATE_SKU_MESSAGE, status.HTTP_409_CONFLICT)

        try:
            product = serializer.save(owner=request.user)
        except IntegrityError:
            return api_error(DUPLICATE_SKU_MESSAGE, status.HTTP_409_CONFLICT)

        logger.info(f"Product {product.id} ({product.sku}) created by user {request.user.pk}")
        return api_created(self.get_serializer(product).data, 'Product created')


class ProductDetailView(OwnedProductMixin, generics.RetrieveUpdateDestroyAPIView):
    """
    GET: Retrieve a product
    PUT/PATCH: Update some or all fields of a product
    DELETE: Delete a product
    """

    def get_object(self):
        try:
            return self.get_queryset().get(pk=self.kwargs['pk'])
        except (Product.DoesNotExist, ValidationError):
            raise NotFound('Product not found')

    def retrieve(self, request, *args, **kwargs):
        return api_response(self.get_serializer(self.get_object()).data)

    def update(self, request, *args, **kwargs):
        payload = request_payload(request)
        if not payload:
            return api_error('No fields to update', status.HTTP_400_BAD_REQUEST)

        product = self.get_object()
        serializer = self.get_serializer(product, data=payload, partial=True)
        serializer.is_valid(raise_exception=True)

        sku = serializer.validated_data.get('sku')
        if sku and self.sku_taken(sku, exclude_pk=product.pk):
            return api_error(DUPLICATE_SKU_MESSAGE, status.HTTP_409_CONFLICT)

        try:
            product = serializer.save()
        except IntegrityError:
            return api_error(DUPLICATE_SKU_MESSAGE, status.HTTP_409_CONFLICT)

        return api_response(self.get_serializer(product).data, 'Product updated')

    def destroy(self, request, *args, **kwargs):
        product = self.get_object()
        product_id = product.id
        product.delete()
        logger.info(f"Product {product_id} deleted by user {request.user.pk}")
        return api_response(None, 'Product deleted')


class ProductExportView(APIView):
    """
    GET: Download the user's products as CSV.

    Accepts the same filters as the product list.
    """

    def get(self, request):
        queryset = filter_products(
            Product.objects.filter(owner=request.user),
            request.query_params
        )
        rows = queryset.values(*[key for _, key in EXPORT_COLUMNS])
        return csv_response(rows, EXPORT_COLUMNS, 'products.csv')
