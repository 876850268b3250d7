"""
URL routing for product API endpoints.
"""
from django.urls import path
from . import views

app_name = 'inventory'

urlpatterns = [
    path('products', views.ProductListCreateView.as_view(), name='product-list'),
    path('products/export', views.ProductExportView.as_view(), name='product-export'),
    path('products/<str:pk>', views.ProductDetailView.as_view(), name='product-detail'),
]
