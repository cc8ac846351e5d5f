from django.urls import path
from .views import (
    sales_order_list_create, sales_order_detail, sales_order_status, sales_order_reserve,
    sales_order_ship, sales_order_deliver, sales_order_cancel, sales_order_stats,
    sales_orders_by_customer, sales_order_recalculate_statuses, sales_order_challans_pdf,
    challan_list_create, challan_detail, challan_status, challan_stats, challans_by_sales_order,
    challan_track, challan_dispatched_quantities, challan_pdf,
)

urlpatterns = [
    # Sales orders
    path('sales-orders/', sales_order_list_create, name='sales-order-list-create'),
    path('sales-orders/stats/', sales_order_stats, name='sales-order-stats'),
    path('sales-orders/recalculate-statuses/', sales_order_recalculate_statuses, name='sales-order-recalculate-statuses'),
    path('sales-orders/customer/<int:customer_id>/', sales_orders_by_customer, name='sales-orders-by-customer'),
    path('sales-orders/<int:pk>/', sales_order_detail, name='sales-order-detail'),
    path('sales-orders/<int:pk>/status/', sales_order_status, name='sales-order-status'),
    path('sales-orders/<int:pk>/reserve/', sales_order_reserve, name='sales-order-reserve'),
    path('sales-orders/<int:pk>/ship/', sales_order_ship, name='sales-order-ship'),
    path('sales-orders/<int:pk>/deliver/', sales_order_deliver, name='sales-order-deliver'),
    path('sales-orders/<int:pk>/cancel/', sales_order_cancel, name='sales-order-cancel'),
    path('sales-orders/<int:pk>/challans-pdf/', sales_order_challans_pdf, name='sales-order-challans-pdf'),

    # Delivery challans
    path('sales-challans/', challan_list_create, name='challan-list-create'),
    path('sales-challans/stats/', challan_stats, name='challan-stats'),
    path('sales-challans/by-so/<int:so_id>/', challans_by_sales_order, name='challans-by-sales-order'),
    path('sales-challans/track/<str:challan_number>/', challan_track, name='challan-track'),
    path('sales-challans/dispatched/<int:so_id>/', challan_dispatched_quantities, name='challan-dispatched-quantities'),
    path('sales-challans/<int:pk>/', challan_detail, name='challan-detail'),
    path('sales-challans/<int:pk>/status/', challan_status, name='challan-status'),
    path('sales-challans/<int:pk>/pdf/', challan_pdf, name='challan-pdf'),
]
