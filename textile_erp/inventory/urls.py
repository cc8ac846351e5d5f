from django.urls import path
from .views import (
    inventory_products, inventory_stats, lot_list, lot_detail, lot_movements,
    lot_stock_movement, lot_transfer, low_stock_alerts, expiry_alerts,
)

urlpatterns = [
    path('inventory/', inventory_products, name='inventory-products'),
    path('inventory/stats/', inventory_stats, name='inventory-stats'),
    path('inventory/lots/', lot_list, name='lot-list'),
    path('inventory/lots/<int:pk>/', lot_detail, name='lot-detail'),
    path('inventory/lots/<int:pk>/movements/', lot_movements, name='lot-movements'),
    path('inventory/lots/<int:pk>/movement/', lot_stock_movement, name='lot-stock-movement'),
    path('inventory/lots/<int:pk>/transfer/', lot_transfer, name='lot-transfer'),
    path('inventory/alerts/low-stock/', low_stock_alerts, name='low-stock-alerts'),
    path('inventory/alerts/expiry/', expiry_alerts, name='expiry-alerts'),
]
