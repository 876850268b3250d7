"""
URL routing for stock adjustment API endpoints.
"""
from django.urls import path
from . import views

app_name = 'adjustments'

urlpatterns = [
    path('stock-adjustments', views.StockAdjustmentListCreateView.as_view(), name='adjustment-list'),
    path('stock-adjustments/export', views.StockAdjustmentExportView.as_view(), name='adjustment-export'),
]
