import logging
from datetime import timedelta

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, DecimalField, ExpressionWrapper, F, Max, Q, Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import InventoryLot, LotMovement
from .filters import InventoryLotFilter
from .serializers import (
    InventoryLotSerializer, InventoryLotDetailSerializer, LotMovementSerializer,
    StockMovementSerializer, StockTransferSerializer,
)
from .services import (
    apply_stock_movement, transfer_between_lots, relocate_lot,
    low_stock_products, low_stock_threshold,
)
from textile_erp.core.exceptions import WorkflowError
from textile_erp.core.utils import create_audit_log, paginated_response, status_breakdown

logger = logging.getLogger(__name__)

EXPIRY_ALERT_DAYS = 30


def _username(request):
    return request.user.username if request.user and request.user.is_authenticated else 'System'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_products(request):
    """
    Stock position per product, aggregated over its lots and grouped by category.

    Query params: ``search`` (product name/code), ``category``, ``supplier``.
    """
    lots = InventoryLot.objects.all()
    search = request.query_params.get('search')
    category = request.query_params.get('category')
    supplier = request.query_params.get('supplier')
    if search:
        lots = lots.filter(Q(product__product_name__icontains=search) | Q(product__product_code__icontains=search))
    if category:
        lots = lots.filter(product__category_id=category)
    if supplier:
        lots = lots.filter(supplier_id=supplier)

    rows = (
        lots.values(
            'product_id', 'product__product_code', 'product__product_name', 'product__unit',
            'product__category_id', 'product__category__category_name',
        )
        .annotate(
            total_current=Sum('current_quantity'),
            total_received=Sum('received_quantity'),
            total_reserved=Sum('reserved_quantity'),
            total_available=Sum('available_quantity'),
            total_weight=Sum('total_weight'),
            lot_count=Count('id'),
            active_lots=Count('id', filter=Q(status='Active')),
            last_received=Max('received_date'),
        )
        .order_by('product__category__category_name', 'product__product_name')
    )

    product_ids = [row['product_id'] for row in rows]
    issued = {
        row['lot__product_id']: row
        for row in LotMovement.objects.filter(movement_type='Issued', lot__product_id__in=product_ids)
        .values('lot__product_id')
        .annotate(quantity=Sum('quantity'), weight=Sum('weight'))
    }
    suppliers = {}
    for product_id, supplier_name in lots.filter(product_id__in=product_ids).values_list('product_id', 'supplier_name').distinct():
        if supplier_name:
            suppliers.setdefault(product_id, set()).add(supplier_name)

    categories = {}
    for row in rows:
        category_name = row['product__category__category_name'] or 'Uncategorized'
        group = categories.setdefault(category_name, {
            'category_id': row['product__category_id'],
            'category_name': category_name,
            'products': [],
            'total_current_quantity': 0,
            'total_available_quantity': 0,
        })
        issued_row = issued.get(row['product_id'], {})
        group['products'].append({
            'product_id': row['product_id'],
            'product_code': row['product__product_code'],
            'product_name': row['product__product_name'],
            'unit': row['product__unit'],
            'total_current_quantity': row['total_current'] or 0,
            'total_received_quantity': row['total_received'] or 0,
            'total_reserved_quantity': row['total_reserved'] or 0,
            'total_available_quantity': row['total_available'] or 0,
            'total_issued_quantity': issued_row.get('quantity') or 0,
            'total_issued_weight': issued_row.get('weight') or 0,
            'total_weight': row['total_weight'] or 0,
            'suppliers': sorted(suppliers.get(row['product_id'], [])),
            'lot_count': row['lot_count'],
            'active_lots': row['active_lots'],
            'last_received_date': row['last_received'],
        })
        group['total_current_quantity'] += row['total_current'] or 0
        group['total_available_quantity'] += row['total_available'] or 0

    return Response({
        'results': list(categories.values()),
        'summary': {
            'total_products': len(rows),
            'total_categories': len(categories),
            'total_lots': sum(row['lot_count'] for row in rows),
        }
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def lot_list(request):
    """List inventory lots (filtered, paginated)"""
    queryset = InventoryLot.objects.select_related('product', 'category', 'warehouse', 'grn', 'purchase_order')
    filterset = InventoryLotFilter(request.query_params, queryset=queryset)
    if not filterset.is_valid():
        return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
    queryset = filterset.qs.order_by('-received_date', '-id')
    return paginated_response(request, queryset, InventoryLotSerializer, default_limit=20)


@api_view(['GET', 'PUT', 'PATCH'])
@permission_classes([IsAuthenticated])
def lot_detail(request, pk):
    """Retrieve or update an inventory lot (descriptive fields only)"""
    lot = get_object_or_404(
        InventoryLot.objects.select_related('product', 'category', 'warehouse', 'grn', 'purchase_order'),
        pk=pk
    )

    if request.method == 'GET':
        return Response(InventoryLotDetailSerializer(lot).data)

    serializer = InventoryLotSerializer(lot, data=request.data, partial=True)
    if serializer.is_valid():
        lot = serializer.save(last_modified_by=_username(request))
        create_audit_log(
            request=request,
            action='update',
            model_name='InventoryLot',
            object_id=str(lot.id),
            object_name=lot.lot_number,
            object_reference=lot.product_name,
            changes={k: str(v) for k, v in serializer.validated_data.items()}
        )
        return Response(InventoryLotSerializer(lot).data)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def lot_movements(request, pk):
    """Movement history of a lot, newest first"""
    lot = get_object_or_404(InventoryLot, pk=pk)
    queryset = lot.movements.select_related('lot').order_by('-date', '-id')
    return paginated_response(request, queryset, LotMovementSerializer, default_limit=20)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def lot_stock_movement(request, pk):
    """Record a manual stock movement (issue, return, adjustment, damage, reservation) on a lot"""
    lot = get_object_or_404(InventoryLot, pk=pk)
    serializer = StockMovementSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    try:
        lot, movement = apply_stock_movement(
            lot.pk,
            data['movement_type'],
            data['quantity'],
            weight=data.get('weight') or 0,
            reference=data.get('reference', ''),
            notes=data.get('notes', ''),
            performed_by=_username(request),
        )
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='stock_movement',
        model_name='InventoryLot',
        object_id=str(lot.id),
        object_name=lot.lot_number,
        object_reference=movement.reference or None,
        changes={
            'movement_type': movement.movement_type,
            'quantity': str(movement.quantity),
            'current_quantity': str(lot.current_quantity),
            'available_quantity': str(lot.available_quantity),
        }
    )
    return Response({
        'message': f'{movement.movement_type} movement recorded successfully',
        'data': InventoryLotSerializer(lot).data,
        'movement': LotMovementSerializer(movement).data,
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def lot_transfer(request, pk):
    """Transfer stock into another lot, or move the whole lot to another warehouse"""
    lot = get_object_or_404(InventoryLot, pk=pk)
    serializer = StockTransferSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    data = serializer.validated_data
    performed_by = _username(request)
    try:
        if data['transfer_type'] == 'lot-to-lot':
            from_lot, to_lot = transfer_between_lots(
                lot.pk, data['to_lot'].pk, data['quantity'], notes=data.get('notes', ''), performed_by=performed_by
            )
            changes = {'to_lot': to_lot.lot_number, 'quantity': str(data['quantity'])}
            payload = {
                'message': 'Stock transferred successfully between lots',
                'data': {
                    'from_lot': InventoryLotSerializer(from_lot).data,
                    'to_lot': InventoryLotSerializer(to_lot).data,
                }
            }
        else:
            from_lot = relocate_lot(lot.pk, data['warehouse'], notes=data.get('notes', ''), performed_by=performed_by)
            changes = {'warehouse': data['warehouse'].name}
            payload = {'message': 'Location updated successfully', 'data': InventoryLotSerializer(from_lot).data}
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='stock_transfer',
        model_name='InventoryLot',
        object_id=str(lot.id),
        object_name=lot.lot_number,
        changes=changes
    )
    return Response(payload)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def inventory_stats(request):
    """Lot counts, quantities, stock value and a per-category breakdown"""
    queryset = InventoryLot.objects.all()
    active = queryset.filter(status='Active')
    today = timezone.localdate()
    value_expression = ExpressionWrapper(
        F('current_quantity') * F('unit_cost'), output_field=DecimalField(max_digits=18, decimal_places=5)
    )
    totals = queryset.aggregate(
        current=Sum('current_quantity'),
        reserved=Sum('reserved_quantity'),
        available=Sum('available_quantity'),
        weight=Sum('total_weight'),
    )

    category_breakdown = [
        {
            'category': row['category__category_name'] or 'Uncategorized',
            'quantity': row['quantity'] or 0,
            'value': row['value'] or 0,
            'lots': row['lots'],
        }
        for row in active.values('category__category_name')
        .annotate(quantity=Sum('current_quantity'), value=Sum(value_expression), lots=Count('id'))
        .order_by('-quantity')
    ]
    recent_movements = LotMovementSerializer(
        LotMovement.objects.select_related('lot').order_by('-date', '-id')[:10], many=True
    ).data

    return Response({
        'overview': {
            'total_lots': queryset.count(),
            'active_lots': active.count(),
            'low_stock_lots': active.filter(current_quantity__lt=low_stock_threshold()).count(),
            'expiring_soon_lots': active.filter(
                expiry_date__gte=today, expiry_date__lte=today + timedelta(days=EXPIRY_ALERT_DAYS)
            ).count(),
            'total_value': active.aggregate(total=Sum(value_expression))['total'] or 0,
        },
        'status_breakdown': status_breakdown(queryset),
        'quantities': {
            'current': totals['current'] or 0,
            'reserved': totals['reserved'] or 0,
            'available': totals['available'] or 0,
            'weight': totals['weight'] or 0,
        },
        'category_breakdown': category_breakdown,
        'recent_movements': recent_movements,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def low_stock_alerts(request):
    """Products whose available quantity is below the threshold (``?threshold=`` overrides the setting)"""
    threshold = request.query_params.get('threshold')
    try:
        products = low_stock_products(threshold)
    except (ArithmeticError, ValueError):
        return Response({'error': 'Invalid threshold'}, status=status.HTTP_400_BAD_REQUEST)
    return Response({'results': products, 'count': len(products)})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def expiry_alerts(request):
    """Active lots expiring within ``days`` (default 30)"""
    try:
        days = int(request.query_params.get('days', EXPIRY_ALERT_DAYS))
    except (TypeError, ValueError):
        return Response({'error': 'Invalid days'}, status=status.HTTP_400_BAD_REQUEST)
    today = timezone.localdate()
    lots = InventoryLot.objects.select_related('product', 'warehouse').filter(
        status='Active', expiry_date__gte=today, expiry_date__lte=today + timedelta(days=days)
    ).order_by('expiry_date')
    return Response({'results': InventoryLotSerializer(lots, many=True).data, 'count': lots.count()})
