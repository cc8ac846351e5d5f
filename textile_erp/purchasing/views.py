import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db import transaction
from django.db.models import Sum
from django.shortcuts import get_object_or_404
from django.utils import timezone
from .models import PurchaseOrder, GoodsReceiptNote, GRNItem
from .filters import PurchaseOrderFilter, GoodsReceiptNoteFilter
from .serializers import (
    PurchaseOrderSerializer, PurchaseOrderListSerializer,
    GoodsReceiptNoteSerializer, GoodsReceiptNoteListSerializer,
)
from .services import approve_grn, mark_item_complete
from textile_erp.core.exceptions import WorkflowError
from textile_erp.core.utils import create_audit_log, paginated_response, status_breakdown

logger = logging.getLogger(__name__)


def _split_items(request):
    data = request.data.copy()
    items_data = data.pop('items', None)
    return data, items_data


def _username(request):
    return request.user.username if request.user and request.user.is_authenticated else 'System'


def _month_start():
    today = timezone.localdate()
    return today.replace(day=1)


# Purchase order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_list_create(request):
    """List purchase orders (filtered, paginated) or create a new purchase order"""
    if request.method == 'GET':
        queryset = PurchaseOrder.objects.select_related('supplier').prefetch_related('items')
        filterset = PurchaseOrderFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, PurchaseOrderListSerializer, default_limit=10)

    data, items_data = _split_items(request)
    serializer = PurchaseOrderSerializer(data=data, context={'items_data': items_data, 'request': request})
    if serializer.is_valid():
        purchase_order = serializer.save(created_by=request.user)
        logger.info(f"Purchase order created: {purchase_order.po_number} for {purchase_order.supplier.company_name}")
        create_audit_log(
            request=request,
            action='create',
            model_name='PurchaseOrder',
            object_id=str(purchase_order.id),
            object_name=purchase_order.po_number,
            object_reference=purchase_order.po_number,
            changes={
                'supplier': purchase_order.supplier.company_name,
                'items': purchase_order.items.count(),
                'total_amount': str(purchase_order.total_amount),
            }
        )
        return Response(PurchaseOrderSerializer(purchase_order).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def purchase_order_detail(request, pk):
    """Retrieve, update or delete a purchase order"""
    purchase_order = get_object_or_404(
        PurchaseOrder.objects.select_related('supplier', 'category', 'created_by').prefetch_related('items'),
        pk=pk
    )

    if request.method == 'GET':
        return Response(PurchaseOrderSerializer(purchase_order).data)
    elif request.method in ('PUT', 'PATCH'):
        data, items_data = _split_items(request)
        old_status = purchase_order.status
        serializer = PurchaseOrderSerializer(
            purchase_order,
            data=data,
            partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            try:
                purchase_order = serializer.save()
            except WorkflowError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(
                request=request,
                action='update',
                model_name='PurchaseOrder',
                object_id=str(purchase_order.id),
                object_name=purchase_order.po_number,
                object_reference=purchase_order.po_number,
                changes={'status': {'old': old_status, 'new': purchase_order.status}, 'items_replaced': items_data is not None}
            )
            return Response(PurchaseOrderSerializer(purchase_order).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if purchase_order.status != 'Draft':
            return Response(
                {'error': 'Only draft purchase orders can be deleted'},
                status=status.HTTP_400_BAD_REQUEST
            )
        po_id = str(purchase_order.id)
        po_number = purchase_order.po_number
        purchase_order.delete()
        logger.info(f"Purchase order deleted: {po_number}")
        create_audit_log(
            request=request,
            action='delete',
            model_name='PurchaseOrder',
            object_id=po_id,
            object_name=po_number,
            object_reference=po_number,
            changes={'po_number': po_number}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def purchase_order_status(request, pk):
    """Move a purchase order to another status"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)
    new_status = request.data.get('status')
    notes = request.data.get('notes')

    if new_status not in dict(PurchaseOrder.STATUS_CHOICES):
        return Response({'error': 'Invalid status'}, status=status.HTTP_400_BAD_REQUEST)
    if new_status == 'Cancelled':
        return Response(
            {'error': 'Use the cancel action to cancel a purchase order'},
            status=status.HTTP_400_BAD_REQUEST
        )

    old_status = purchase_order.status
    purchase_order.status = new_status
    now = timezone.now()
    if new_status == 'Sent':
        purchase_order.sent_date = now
    elif new_status == 'Acknowledged':
        purchase_order.acknowledged_date = now
    elif new_status == 'Approved':
        purchase_order.approval_status = 'Approved'
        purchase_order.approved_by = _username(request)
        purchase_order.approved_date = now
    if notes:
        purchase_order.notes = notes
    purchase_order.last_modified_by = _username(request)
    purchase_order.save()

    logger.info(f"Purchase order {purchase_order.po_number} status: {old_status} -> {new_status}")
    create_audit_log(
        request=request,
        action='status_change',
        model_name='PurchaseOrder',
        object_id=str(purchase_order.id),
        object_name=purchase_order.po_number,
        object_reference=purchase_order.po_number,
        changes={'status': {'old': old_status, 'new': new_status}}
    )
    return Response({
        'message': f'Purchase order status updated to {new_status}',
        'data': PurchaseOrderSerializer(purchase_order).data,
    })


@api_view(['PATCH', 'POST'])
@permission_classes([IsAuthenticated])
def purchase_order_cancel(request, pk):
    """Cancel a purchase order that has not been fully received or closed"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=pk)

    if purchase_order.status in PurchaseOrder.CLOSED_STATUSES:
        return Response(
            {'error': f'Cannot cancel a purchase order in {purchase_order.status} status'},
            status=status.HTTP_400_BAD_REQUEST
        )

    old_status = purchase_order.status
    purchase_order.status = 'Cancelled'
    purchase_order.cancellation_reason = request.data.get('reason') or request.data.get('cancellation_reason') or ''
    purchase_order.cancelled_by = _username(request)
    purchase_order.cancelled_date = timezone.now()
    purchase_order.last_modified_by = purchase_order.cancelled_by
    purchase_order.save()

    logger.info(f"Purchase order cancelled: {purchase_order.po_number} by {purchase_order.cancelled_by}")
    create_audit_log(
        request=request,
        action='po_cancel',
        model_name='PurchaseOrder',
        object_id=str(purchase_order.id),
        object_name=purchase_order.po_number,
        object_reference=purchase_order.po_number,
        changes={'status': {'old': old_status, 'new': 'Cancelled'}, 'reason': purchase_order.cancellation_reason}
    )
    return Response({
        'message': 'Purchase order cancelled successfully',
        'data': PurchaseOrderSerializer(purchase_order).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def purchase_order_stats(request):
    """Purchase order counts, overdue orders and this month's value"""
    queryset = PurchaseOrder.objects.all()
    overdue = queryset.filter(
        expected_delivery_date__lt=timezone.localdate()
    ).exclude(status__in=PurchaseOrder.CLOSED_STATUSES).count()
    monthly_value = queryset.filter(order_date__gte=_month_start()).aggregate(total=Sum('total_amount'))['total']

    return Response({
        'total_pos': queryset.count(),
        'status_breakdown': status_breakdown(queryset),
        'overdue_pos': overdue,
        'monthly_value': monthly_value or 0,
        'pending_approvals': queryset.filter(approval_status='Pending').exclude(status='Draft').count(),
    })


# Goods receipt note views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def grn_list_create(request):
    """List GRNs (filtered, paginated) or record a new goods receipt"""
    if request.method == 'GET':
        queryset = GoodsReceiptNote.objects.select_related('purchase_order', 'supplier', 'warehouse')
        filterset = GoodsReceiptNoteFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, GoodsReceiptNoteListSerializer, default_limit=10)

    data, items_data = _split_items(request)
    serializer = GoodsReceiptNoteSerializer(data=data, context={'items_data': items_data, 'request': request})
    if serializer.is_valid():
        try:
            grn = serializer.save()
        except WorkflowError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        lots = getattr(serializer, 'created_lots', [])
        create_audit_log(
            request=request,
            action='grn_create',
            model_name='GoodsReceiptNote',
            object_id=str(grn.id),
            object_name=grn.grn_number,
            object_reference=grn.purchase_order.po_number,
            changes={
                'receipt_status': grn.receipt_status,
                'total_received_quantity': str(grn.total_received_quantity),
                'lots_created': [lot.lot_number for lot in lots],
            }
        )
        response_data = GoodsReceiptNoteSerializer(grn).data
        response_data['lots_created'] = [lot.lot_number for lot in lots]
        return Response(response_data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def grn_detail(request, pk):
    """Retrieve, update or delete a GRN"""
    grn = get_object_or_404(
        GoodsReceiptNote.objects.select_related('purchase_order', 'supplier', 'warehouse').prefetch_related('items'),
        pk=pk
    )

    if request.method == 'GET':
        return Response(GoodsReceiptNoteSerializer(grn).data)
    elif request.method in ('PUT', 'PATCH'):
        data, _items = _split_items(request)
        serializer = GoodsReceiptNoteSerializer(grn, data=data, partial=True, context={'request': request})
        if serializer.is_valid():
            try:
                grn = serializer.save()
            except WorkflowError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(
                request=request,
                action='update',
                model_name='GoodsReceiptNote',
                object_id=str(grn.id),
                object_name=grn.grn_number,
                object_reference=grn.purchase_order.po_number,
                changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(GoodsReceiptNoteSerializer(grn).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if grn.status != 'Draft':
            return Response({'error': 'Only draft GRNs can be deleted'}, status=status.HTTP_400_BAD_REQUEST)
        grn_id = str(grn.id)
        grn_number = grn.grn_number
        with transaction.atomic():
            purchase_order = PurchaseOrder.objects.select_for_update().get(pk=grn.purchase_order_id)
            for item in grn.items.select_related('purchase_order_item'):
                po_item = item.purchase_order_item
                po_item.received_quantity = max(0, po_item.received_quantity - item.received_quantity)
                po_item.received_weight = max(0, po_item.received_weight - item.received_weight)
                po_item.save()
            grn.delete()
            purchase_order.total_grns = max(0, purchase_order.total_grns - 1)
            purchase_order.update_receipt_status()
        logger.info(f"GRN deleted: {grn_number}")
        create_audit_log(
            request=request,
            action='delete',
            model_name='GoodsReceiptNote',
            object_id=grn_id,
            object_name=grn_number,
            object_reference=purchase_order.po_number,
            changes={'grn_number': grn_number}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def grn_status(request, pk):
    """Update the status of a GRN"""
    grn = get_object_or_404(GoodsReceiptNote, pk=pk)
    new_status = request.data.get('status')
    notes = request.data.get('notes')

    if new_status not in dict(GoodsReceiptNote.STATUS_CHOICES):
        return Response({'error': 'Invalid status'}, status=status.HTTP_400_BAD_REQUEST)

    old_status = grn.status
    grn.status = new_status
    if new_status == 'Rejected':
        grn.approval_status = 'Rejected'
    if notes:
        grn.notes = notes
    grn.save()

    create_audit_log(
        request=request,
        action='status_change',
        model_name='GoodsReceiptNote',
        object_id=str(grn.id),
        object_name=grn.grn_number,
        changes={'status': {'old': old_status, 'new': new_status}}
    )
    return Response({
        'message': f'GRN status updated to {new_status}',
        'data': GoodsReceiptNoteSerializer(grn).data,
    })


@api_view(['PATCH', 'POST'])
@permission_classes([IsAuthenticated])
def grn_approve(request, pk):
    """Approve a GRN and create inventory lots for approved lines"""
    grn = get_object_or_404(GoodsReceiptNote, pk=pk)
    try:
        grn, lots = approve_grn(grn.pk, user=request.user, notes=request.data.get('notes') or '')
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='grn_approve',
        model_name='GoodsReceiptNote',
        object_id=str(grn.id),
        object_name=grn.grn_number,
        object_reference=grn.purchase_order.po_number,
        changes={'lots_created': [lot.lot_number for lot in lots]}
    )
    return Response({
        'message': 'GRN approved and inventory lots created successfully',
        'data': {
            'grn': GoodsReceiptNoteSerializer(grn).data,
            'inventory_lots': len(lots),
        }
    })


@api_view(['PATCH', 'POST'])
@permission_classes([IsAuthenticated])
def grn_mark_item_complete(request, pk):
    """Mark a GRN line complete even though less than ordered was received"""
    grn = get_object_or_404(GoodsReceiptNote, pk=pk)
    item_id = request.data.get('item_id')
    if not item_id:
        return Response({'error': 'Item ID is required'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        grn, item = mark_item_complete(grn.pk, item_id, reason=request.data.get('reason') or '', user=request.user)
    except GRNItem.DoesNotExist:
        return Response({'error': 'Item not found in GRN'}, status=status.HTTP_404_NOT_FOUND)

    create_audit_log(
        request=request,
        action='grn_item_complete',
        model_name='GoodsReceiptNote',
        object_id=str(grn.id),
        object_name=grn.grn_number,
        changes={'item': item.product_name, 'reason': item.completion_reason}
    )
    return Response({'message': 'Item marked as complete', 'data': GoodsReceiptNoteSerializer(grn).data})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def grn_stats(request):
    """GRN counts by status, receipt and quality state"""
    queryset = GoodsReceiptNote.objects.all()
    month_start = _month_start()
    monthly_value = queryset.filter(receipt_date__gte=month_start).aggregate(total=Sum('total_value'))['total']

    return Response({
        'total_grns': queryset.count(),
        'status_breakdown': status_breakdown(queryset),
        'receipt_status_breakdown': status_breakdown(queryset, 'receipt_status'),
        'quality_breakdown': status_breakdown(queryset, 'quality_check_status'),
        'pending': queryset.filter(receipt_status='Pending').count(),
        'completed': queryset.filter(receipt_status='Complete').count(),
        'pending_approvals': queryset.filter(approval_status='Pending').count(),
        'this_month': queryset.filter(receipt_date__gte=month_start).count(),
        'monthly_value': monthly_value or 0,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def grns_by_purchase_order(request, po_id):
    """All GRNs recorded against a purchase order, newest first"""
    purchase_order = get_object_or_404(PurchaseOrder, pk=po_id)
    grns = purchase_order.grns.select_related('supplier', 'warehouse').prefetch_related('items').order_by('-created_at')
    return Response(GoodsReceiptNoteSerializer(grns, many=True).data)
