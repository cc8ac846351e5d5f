from django.urls import path
from .views import (
    purchase_order_list_create, purchase_order_detail, purchase_order_status,
    purchase_order_cancel, purchase_order_stats,
    grn_list_create, grn_detail, grn_status, grn_approve, grn_mark_item_complete,
    grn_stats, grns_by_purchase_order,
)

urlpatterns = [
    # Purchase orders
    path('purchase-orders/', purchase_order_list_create, name='purchase-order-list-create'),
    path('purchase-orders/stats/', purchase_order_stats, name='purchase-order-stats'),
    path('purchase-orders/<int:pk>/', purchase_order_detail, name='purchase-order-detail'),
    path('purchase-orders/<int:pk>/status/', purchase_order_status, name='purchase-order-status'),
    path('purchase-orders/<int:pk>/cancel/', purchase_order_cancel, name='purchase-order-cancel'),

    # Goods receipt notes
    path('grns/', grn_list_create, name='grn-list-create'),
    path('grns/stats/', grn_stats, name='grn-stats'),
    path('grns/by-po/<int:po_id>/', grns_by_purchase_order, name='grns-by-purchase-order'),
    path('grns/<int:pk>/', grn_detail, name='grn-detail'),
    path('grns/<int:pk>/status/', grn_status, name='grn-status'),
    path('grns/<int:pk>/approve/', grn_approve, name='grn-approve'),
    path('grns/<int:pk>/mark-item-complete/', grn_mark_item_complete, name='grn-mark-item-complete'),
]
