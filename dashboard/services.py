"""
Dashboard aggregations - read-only summaries of a user's catalog and ledger.
"""
from datetime import date
from decimal import Decimal

from django.db.models import Count, DecimalField, ExpressionWrapper, F, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone

from adjustments.models import StockAdjustment
from inventory.models import Product

RECENT_ACTIVITY_LIMIT = 10
TOP_PRODUCTS_LIMIT = 5
CHART_MONTHS = 12

LOW_STOCK_FILTER = Q(stock__gt=0, stock__lte=F('min_stock'))


def compute_metrics(owner) -> dict:
    """
    Summary metrics over all of ``owner``'s products.

    - totalStockValue: sum of stock x price
    - lowStockCount: products with 0 < stock <= min_stock
    - outOfStock: products with stock == 0
    """
    stock_value = ExpressionWrapper(
        F('stock') * F('price'),
        output_field=DecimalField(max_digits=18, decimal_places=2)
    )
    stats = Product.objects.filter(owner=owner).aggregate(
        total_products=Count('id'),
        total_stock_value=Sum(stock_value),
        low_stock_count=Count('id', filter=LOW_STOCK_FILTER),
        out_of_stock=Count('id', filter=Q(stock=0)),
    )
    return {
        'totalProducts': stats['total_products'],
        'totalStockValue': stats['total_stock_value'] or Decimal('0.00'),
        'lowStockCount': stats['low_stock_count'],
        'outOfStock': stats['out_of_stock'],
    }


def low_stock_items(owner):
    return Product.objects.filter(LOW_STOCK_FILTER, owner=owner).order_by('stock', 'name')


def recent_activity(owner, limit: int = RECENT_ACTIVITY_LIMIT):
    return (
        StockAdjustment.objects.filter(user=owner)
        .select_related('product', 'user')
        .order_by('-created_at')[:limit]
    )


def top_products(owner, limit: int = TOP_PRODUCTS_LIMIT) -> list:
    """Products with the most outgoing units, highest first."""
    rows = (
        StockAdjustment.objects.filter(user=owner, type=StockAdjustment.Type.OUTGOING)
        .values('product_id', 'product__name', 'product__stock')
        .annotate(total_units=Sum('units'))
        .order_by('-total_units', 'product__name')[:limit]
    )
    return [
        {
            'product_id': row['product_id'],
            'units': row['total_units'],
            'name': row['product__name'],
            'stock': row['product__stock'],
        }
        for row in rows
    ]


def _month_keys(today: date, count: int) -> list:
    year, month = today.year, today.month - (count - 1)
    while month <= 0:
        month += 12
        year -= 1

    keys = []
    for _ in range(count):
        keys.append((year, month))
        month += 1
        if month > 12:
            month = 1
            year += 1
    return keys


def monthly_movements(owner, today: date = None) -> list:
    """
    Incoming and outgoing units per month for the last twelve months.

    Months without activity are included with zero totals, oldest first.
    """
    today = today or timezone.localdate()
    keys = _month_keys(today, CHART_MONTHS)
    start_year, start_month = keys[0]
    totals = {key: {'incoming': 0, 'outgoing': 0} for key in keys}

    rows = (
        StockAdjustment.objects.filter(
            user=owner,
            created_at__date__gte=date(start_year, start_month, 1),
        )
        .annotate(month=TruncMonth('created_at'))
        .values('month', 'type')
        .annotate(total=Sum('units'))
        .order_by()
    )
    for row in rows:
        key = (row['month'].year, row['month'].month)
        if key in totals:
            totals[key][row['type']] += row['total']

    return [
        {'month': f'{year:04d}-{month:02d}', **totals[(year, month)]}
        for year, month in keys
    ]
