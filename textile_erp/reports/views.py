import logging
from datetime import timedelta
from decimal import Decimal

from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.core.cache import cache
from django.db.models import Sum
from django.utils import timezone

from textile_erp.catalog.models import Category, Product, Unit
from textile_erp.core.cache_signals import (
    DASHBOARD_CACHE_TTL, DASHBOARD_STATS_CACHE_KEY, MASTER_DATA_STATS_CACHE_KEY,
)
from textile_erp.inventory.models import InventoryLot
from textile_erp.inventory.services import low_stock_products
from textile_erp.parties.models import Customer, Supplier
from textile_erp.purchasing.models import PurchaseOrder, GoodsReceiptNote
from textile_erp.sales.models import SalesOrder, SalesChallan

logger = logging.getLogger(__name__)

ACTIVE_PO_STATUSES = ('Sent', 'Acknowledged', 'Approved', 'Partially_Received')
PENDING_PO_STATUSES = ('Draft', 'Sent')
ACTIVE_SO_STATUSES = ('Confirmed', 'Processing', 'Shipped')
RECENT_ACTIVITY_LIMIT = 5


def _month_bounds(today=None):
    """(start of this month, start of last month) as dates"""
    today = today or timezone.localdate()
    this_month = today.replace(day=1)
    last_month = (this_month - timedelta(days=1)).replace(day=1)
    return this_month, last_month


def _revenue(start, end=None):
    queryset = SalesOrder.objects.filter(status='Delivered', order_date__gte=start)
    if end is not None:
        queryset = queryset.filter(order_date__lt=end)
    return queryset.aggregate(total=Sum('total_amount'))['total'] or Decimal('0')


def _recent_activity():
    activity = []
    for po in PurchaseOrder.objects.order_by('-created_at')[:RECENT_ACTIVITY_LIMIT]:
        if po.status == 'Approved':
            title, level = 'Purchase Order Approved', 'success'
        elif po.status in PENDING_PO_STATUSES:
            title, level = 'Purchase Order Created', 'warning'
        else:
            title, level = f'Purchase Order {po.get_status_display()}', 'info'
        activity.append({
            'type': 'purchase_order', 'id': po.id, 'title': title,
            'description': po.po_number, 'timestamp': po.created_at, 'status': level,
        })

    for grn in GoodsReceiptNote.objects.order_by('-created_at')[:RECENT_ACTIVITY_LIMIT]:
        approved = grn.approval_status == 'Approved'
        activity.append({
            'type': 'grn', 'id': grn.id,
            'title': 'Goods Receipt Note Approved' if approved else 'Goods Receipt Note Created',
            'description': grn.grn_number, 'timestamp': grn.created_at,
            'status': 'success' if approved else ('warning' if grn.receipt_status == 'Pending' else 'info'),
        })

    for so in SalesOrder.objects.order_by('-created_at')[:RECENT_ACTIVITY_LIMIT]:
        delivered = so.status == 'Delivered'
        activity.append({
            'type': 'sales_order', 'id': so.id,
            'title': 'Sales Order Delivered' if delivered else 'Sales Order Created',
            'description': so.so_number, 'timestamp': so.created_at,
            'status': 'success' if delivered else ('warning' if so.status == 'Pending' else 'info'),
        })

    activity.sort(key=lambda entry: entry['timestamp'], reverse=True)
    return activity[:RECENT_ACTIVITY_LIMIT]


def build_dashboard_stats():
    """Figures shown on the dashboard; computed fresh, cached by the view"""
    this_month, last_month = _month_bounds()

    purchase_orders = PurchaseOrder.objects.all()
    grns = GoodsReceiptNote.objects.all()
    lots = InventoryLot.objects.all()
    sales_orders = SalesOrder.objects.all()
    challans = SalesChallan.objects.all()
    low_stock_count = len(low_stock_products())

    current_revenue = _revenue(this_month)
    previous_revenue = _revenue(last_month, this_month)
    if previous_revenue > 0:
        growth = round(float((current_revenue - previous_revenue) / previous_revenue * 100), 1)
    else:
        growth = 0

    stats = {
        'purchase_orders': {
            'total': purchase_orders.count(),
            'active': purchase_orders.filter(status__in=ACTIVE_PO_STATUSES).count(),
            'pending': purchase_orders.filter(status__in=PENDING_PO_STATUSES).count(),
            'this_month': purchase_orders.filter(created_at__date__gte=this_month).count(),
        },
        'grns': {
            'total': grns.count(),
            'processed': grns.filter(status='Completed').count(),
            'pending': grns.filter(receipt_status__in=('Pending', 'Partial')).count(),
            'this_month': grns.filter(created_at__date__gte=this_month).count(),
        },
        'inventory': {
            'total_lots': lots.count(),
            'active_lots': lots.filter(status='Active').count(),
            'available_quantity': lots.exclude(status='Consumed').aggregate(
                total=Sum('available_quantity')
            )['total'] or Decimal('0'),
            'low_stock': low_stock_count,
        },
        'sales_orders': {
            'total': sales_orders.count(),
            'active': sales_orders.filter(status__in=ACTIVE_SO_STATUSES).count(),
            'completed': sales_orders.filter(status='Delivered').count(),
            'this_month': sales_orders.filter(created_at__date__gte=this_month).count(),
        },
        'sales_challans': {
            'total': challans.count(),
            'dispatched': challans.filter(status='Dispatched').count(),
            'in_transit': challans.filter(status='In_Transit').count(),
            'delivered': challans.filter(status='Delivered').count(),
        },
        'revenue': {
            'this_month': current_revenue,
            'last_month': previous_revenue,
            'growth': growth,
        },
    }

    summary = {
        'total_customers': Customer.objects.count(),
        'total_suppliers': Supplier.objects.count(),
        'total_categories': Category.objects.count(),
        'total_products': Product.objects.count(),
        'active_pos': stats['purchase_orders']['active'],
        'pending_grns': stats['grns']['pending'],
        'low_stock_items': low_stock_count,
    }

    return {
        'summary': summary,
        'stats': stats,
        'workflow_metrics': {
            'suppliers': summary['total_suppliers'],
            'purchase_orders': stats['purchase_orders']['active'],
            'goods_receipt': stats['grns']['processed'],
            'inventory_lots': stats['inventory']['total_lots'],
            'sales_orders': stats['sales_orders']['total'],
            'sales_challans': stats['sales_challans']['dispatched'],
        },
        'recent_activity': _recent_activity(),
        'generated_at': timezone.now(),
    }


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_stats(request):
    """Dashboard statistics, served from cache while no business document changes"""
    data = cache.get(DASHBOARD_STATS_CACHE_KEY)
    if data is None:
        data = build_dashboard_stats()
        cache.set(DASHBOARD_STATS_CACHE_KEY, data, DASHBOARD_CACHE_TTL)
        logger.info("Dashboard statistics computed")
    response = Response(data)
    response['Cache-Control'] = f'private, max-age={DASHBOARD_CACHE_TTL}'
    return response


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def dashboard_realtime(request):
    """Today's activity counters for auto-refresh"""
    today = timezone.localdate()
    return Response({
        'today': {
            'purchase_orders': PurchaseOrder.objects.filter(created_at__date=today).count(),
            'grns': GoodsReceiptNote.objects.filter(created_at__date=today).count(),
            'sales_orders': SalesOrder.objects.filter(created_at__date=today).count(),
            'sales_challans': SalesChallan.objects.filter(created_at__date=today).count(),
        },
        'in_transit_challans': SalesChallan.objects.filter(status__in=SalesChallan.IN_TRANSIT_STATUSES).count(),
        'pending_grn_approvals': GoodsReceiptNote.objects.filter(approval_status='Pending').count(),
        'low_stock_items': len(low_stock_products()),
        'last_updated': timezone.now(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def master_data_stats(request):
    """Counts of each master data entity with active counts"""
    data = cache.get(MASTER_DATA_STATS_CACHE_KEY)
    if data is None:
        data = {
            'customers': {
                'total': Customer.objects.count(),
                'active': Customer.objects.filter(status='Active').count(),
            },
            'suppliers': {
                'total': Supplier.objects.count(),
                'active': Supplier.objects.filter(status='Active').count(),
                'blocked': Supplier.objects.filter(status='Blocked').count(),
            },
            'categories': {
                'total': Category.objects.count(),
                'active': Category.objects.filter(status='Active').count(),
            },
            'products': {
                'total': Product.objects.count(),
                'active': Product.objects.filter(status='Active').count(),
            },
            'units': {'total': Unit.objects.count()},
        }
        cache.set(MASTER_DATA_STATS_CACHE_KEY, data, DASHBOARD_CACHE_TTL)
    return Response(data)
