import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, Sum
from django.http import HttpResponse
from django.shortcuts import get_object_or_404
from django.utils import timezone
from django.utils.dateparse import parse_date
from .models import SalesOrder, SalesChallan
from .filters import SalesOrderFilter, SalesChallanFilter
from .pdf import render_challan_pdf, render_consolidated_pdf
from .serializers import (
    SalesOrderSerializer, SalesOrderListSerializer,
    SalesChallanSerializer, SalesChallanListSerializer,
)
from .services import (
    cancel_order, change_order_status, delete_challan, dispatched_quantities, mark_delivered,
    recalculate_statuses, reserve_inventory, ship_order, update_challan_status,
)
from textile_erp.core.exceptions import WorkflowError
from textile_erp.core.utils import create_audit_log, paginated_response, status_breakdown

logger = logging.getLogger(__name__)

PENDING_DELIVERY_STATUSES = ('Confirmed', 'Processing', 'Shipped')


def _split_items(request):
    data = request.data.copy()
    items_data = data.pop('items', None)
    return data, items_data


def _month_start():
    today = timezone.localdate()
    return today.replace(day=1)


def _pdf_response(content, filename):
    response = HttpResponse(content, content_type='application/pdf')
    response['Content-Disposition'] = f'inline; filename="{filename}"'
    return response


def _so_queryset():
    return SalesOrder.objects.select_related('customer', 'category', 'created_by').prefetch_related(
        'items__allocations__lot', 'workflow_history'
    )


def _challan_queryset():
    return SalesChallan.objects.select_related('sales_order', 'warehouse', 'created_by').prefetch_related(
        'items', 'status_history'
    )


# Sales order views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def sales_order_list_create(request):
    """List sales orders (filtered, paginated) or create a new sales order"""
    if request.method == 'GET':
        queryset = SalesOrder.objects.select_related('customer').prefetch_related('items')
        filterset = SalesOrderFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, SalesOrderListSerializer, default_limit=10)

    data, items_data = _split_items(request)
    serializer = SalesOrderSerializer(data=data, context={'items_data': items_data, 'request': request})
    if serializer.is_valid():
        sales_order = serializer.save(created_by=request.user)
        logger.info(f"Sales order created: {sales_order.so_number} for {sales_order.customer.company_name}")
        create_audit_log(
            request=request,
            action='create',
            model_name='SalesOrder',
            object_id=str(sales_order.id),
            object_name=sales_order.so_number,
            object_reference=sales_order.so_number,
            changes={
                'customer': sales_order.customer.company_name,
                'items': sales_order.items.count(),
                'total_amount': str(sales_order.total_amount),
            }
        )
        return Response(SalesOrderSerializer(sales_order).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def sales_order_detail(request, pk):
    """Retrieve, update or delete a sales order"""
    sales_order = get_object_or_404(_so_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(SalesOrderSerializer(sales_order).data)
    elif request.method in ('PUT', 'PATCH'):
        data, items_data = _split_items(request)
        old_status = sales_order.status
        serializer = SalesOrderSerializer(
            sales_order,
            data=data,
            partial=request.method == 'PATCH',
            context={'items_data': items_data, 'request': request}
        )
        if serializer.is_valid():
            try:
                sales_order = serializer.save()
            except WorkflowError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(
                request=request,
                action='update',
                model_name='SalesOrder',
                object_id=str(sales_order.id),
                object_name=sales_order.so_number,
                object_reference=sales_order.so_number,
                changes={'status': {'old': old_status, 'new': sales_order.status}, 'items_replaced': items_data is not None}
            )
            return Response(SalesOrderSerializer(sales_order).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        if sales_order.status != 'Draft':
            return Response({'error': 'Can only delete draft sales orders'}, status=status.HTTP_400_BAD_REQUEST)
        if sales_order.challans.exists():
            return Response(
                {'error': 'Cannot delete a sales order that has challans'},
                status=status.HTTP_400_BAD_REQUEST
            )
        so_id = str(sales_order.id)
        so_number = sales_order.so_number
        sales_order.delete()
        logger.info(f"Sales order deleted: {so_number}")
        create_audit_log(
            request=request,
            action='delete',
            model_name='SalesOrder',
            object_id=so_id,
            object_name=so_number,
            object_reference=so_number,
            changes={'so_number': so_number}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def sales_order_status(request, pk):
    """Move a sales order to another status"""
    sales_order = get_object_or_404(SalesOrder, pk=pk)
    old_status = sales_order.status
    new_status = request.data.get('status')
    try:
        sales_order = change_order_status(sales_order.pk, new_status, notes=request.data.get('notes') or '', user=request.user)
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='status_change',
        model_name='SalesOrder',
        object_id=str(sales_order.id),
        object_name=sales_order.so_number,
        object_reference=sales_order.so_number,
        changes={'status': {'old': old_status, 'new': new_status}}
    )
    return Response({
        'message': 'Sales order status updated successfully',
        'data': SalesOrderSerializer(sales_order).data,
    })


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def sales_order_reserve(request, pk):
    """Reserve inventory FIFO for a confirmed sales order"""
    sales_order = get_object_or_404(SalesOrder, pk=pk)
    try:
        sales_order, results = reserve_inventory(sales_order.pk, user=request.user)
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='so_reserve',
        model_name='SalesOrder',
        object_id=str(sales_order.id),
        object_name=sales_order.so_number,
        object_reference=sales_order.so_number,
        changes={'reservations': [
            {'product': r['product_name'], 'reserved': str(r['reserved']), 'shortfall': str(r['shortfall'])}
            for r in results
        ]}
    )
    sales_order = _so_queryset().get(pk=sales_order.pk)
    return Response({
        'message': 'Inventory reservation completed',
        'data': {
            'sales_order': SalesOrderSerializer(sales_order).data,
            'reservation_results': results,
        }
    })


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def sales_order_ship(request, pk):
    """Ship a processing order, issuing its reserved stock"""
    sales_order = get_object_or_404(SalesOrder, pk=pk)
    try:
        sales_order = ship_order(
            sales_order.pk,
            tracking_number=request.data.get('tracking_number') or '',
            courier_company=request.data.get('courier_company') or '',
            notes=request.data.get('notes') or '',
            user=request.user,
        )
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='so_ship',
        model_name='SalesOrder',
        object_id=str(sales_order.id),
        object_name=sales_order.so_number,
        object_reference=sales_order.so_number,
        changes={'tracking_number': sales_order.tracking_number, 'courier_company': sales_order.courier_company}
    )
    return Response({
        'message': 'Sales order shipped successfully',
        'data': SalesOrderSerializer(_so_queryset().get(pk=sales_order.pk)).data,
    })


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def sales_order_deliver(request, pk):
    """Mark a shipped order as delivered"""
    sales_order = get_object_or_404(SalesOrder, pk=pk)
    delivery_date = request.data.get('actual_delivery_date')
    parsed_date = parse_date(delivery_date) if delivery_date else None
    if delivery_date and parsed_date is None:
        return Response({'error': 'Invalid actual_delivery_date, expected YYYY-MM-DD'}, status=status.HTTP_400_BAD_REQUEST)
    try:
        sales_order = mark_delivered(
            sales_order.pk, actual_delivery_date=parsed_date, notes=request.data.get('notes') or '', user=request.user
        )
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='so_deliver',
        model_name='SalesOrder',
        object_id=str(sales_order.id),
        object_name=sales_order.so_number,
        object_reference=sales_order.so_number,
        changes={'actual_delivery_date': str(sales_order.actual_delivery_date)}
    )
    return Response({
        'message': 'Sales order marked as delivered',
        'data': SalesOrderSerializer(_so_queryset().get(pk=sales_order.pk)).data,
    })


@api_view(['POST', 'PATCH'])
@permission_classes([IsAuthenticated])
def sales_order_cancel(request, pk):
    """Cancel a sales order and release its reservations"""
    sales_order = get_object_or_404(SalesOrder, pk=pk)
    old_status = sales_order.status
    reason = request.data.get('reason') or request.data.get('cancellation_reason') or ''
    try:
        sales_order = cancel_order(sales_order.pk, reason=reason, notes=request.data.get('notes') or '', user=request.user)
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='so_cancel',
        model_name='SalesOrder',
        object_id=str(sales_order.id),
        object_name=sales_order.so_number,
        object_reference=sales_order.so_number,
        changes={'status': {'old': old_status, 'new': 'Cancelled'}, 'reason': reason}
    )
    return Response({
        'message': 'Sales order cancelled successfully',
        'data': SalesOrderSerializer(_so_queryset().get(pk=sales_order.pk)).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_order_stats(request):
    """Sales order counts, revenue and pending deliveries"""
    queryset = SalesOrder.objects.all()
    month_start = _month_start()
    revenue = queryset.exclude(status='Cancelled').aggregate(total=Sum('total_amount'))['total']
    monthly_revenue = queryset.filter(order_date__gte=month_start).exclude(
        status='Cancelled'
    ).aggregate(total=Sum('total_amount'))['total']

    return Response({
        'total_orders': queryset.count(),
        'status_breakdown': status_breakdown(queryset),
        'payment_status_breakdown': status_breakdown(queryset, 'payment_status'),
        'total_revenue': revenue or 0,
        'monthly_revenue': monthly_revenue or 0,
        'pending_deliveries': queryset.filter(status__in=PENDING_DELIVERY_STATUSES).count(),
        'overdue_deliveries': queryset.filter(
            status__in=PENDING_DELIVERY_STATUSES, expected_delivery_date__lt=timezone.localdate()
        ).count(),
        'this_month': queryset.filter(order_date__gte=month_start).count(),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_orders_by_customer(request, customer_id):
    """Sales orders of one customer, newest first"""
    queryset = SalesOrder.objects.select_related('customer').prefetch_related('items').filter(
        customer_id=customer_id
    ).order_by('-created_at', '-id')
    return paginated_response(request, queryset, SalesOrderListSerializer, default_limit=10)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def sales_order_recalculate_statuses(request):
    """Recompute dispatch-driven status of every order with challans"""
    updated = recalculate_statuses()
    create_audit_log(
        request=request,
        action='so_recalculate',
        model_name='SalesOrder',
        object_id='all',
        changes={'updated': updated}
    )
    return Response({'message': f'Recalculated statuses for {updated} sales orders', 'updated': updated})


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def sales_order_challans_pdf(request, pk):
    """Consolidated challan PDF over all challans of a sales order"""
    sales_order = get_object_or_404(SalesOrder.objects.select_related('customer'), pk=pk)
    challans = sales_order.challans.prefetch_related('items').order_by('created_at', 'id')
    if not challans.exists():
        return Response({'error': 'No challans found for this sales order'}, status=status.HTTP_404_NOT_FOUND)
    content = render_consolidated_pdf(sales_order, challans)
    return _pdf_response(content, f"challans-{sales_order.so_number.replace('/', '-')}.pdf")


# Sales challan views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def challan_list_create(request):
    """List challans (filtered, paginated) or create a challan against a sales order"""
    if request.method == 'GET':
        queryset = SalesChallan.objects.select_related('warehouse').prefetch_related('items')
        filterset = SalesChallanFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('-created_at', '-id')
        return paginated_response(request, queryset, SalesChallanListSerializer, default_limit=10)

    data, items_data = _split_items(request)
    serializer = SalesChallanSerializer(data=data, context={'items_data': items_data, 'request': request})
    if serializer.is_valid():
        try:
            challan = serializer.save()
        except WorkflowError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        stock_updates = getattr(serializer, 'stock_updates', [])
        create_audit_log(
            request=request,
            action='challan_create',
            model_name='SalesChallan',
            object_id=str(challan.id),
            object_name=challan.challan_number,
            object_reference=challan.so_number,
            changes={
                'items': [
                    {'product': item.product_name, 'dispatch_quantity': str(item.dispatch_quantity)}
                    for item in challan.items.all()
                ],
                'stock_deducted': [
                    {'product': u['product_name'], 'deducted': str(u['deducted']), 'shortfall': str(u['shortfall'])}
                    for u in stock_updates
                ],
            }
        )
        response_data = SalesChallanSerializer(_challan_queryset().get(pk=challan.pk)).data
        response_data['stock_updates'] = stock_updates
        return Response(response_data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def challan_detail(request, pk):
    """Retrieve, update or delete a challan"""
    challan = get_object_or_404(_challan_queryset(), pk=pk)

    if request.method == 'GET':
        return Response(SalesChallanSerializer(challan).data)
    elif request.method in ('PUT', 'PATCH'):
        data, _items = _split_items(request)
        serializer = SalesChallanSerializer(challan, data=data, partial=True, context={'request': request})
        if serializer.is_valid():
            try:
                challan = serializer.save()
            except WorkflowError as e:
                return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
            create_audit_log(
                request=request,
                action='update',
                model_name='SalesChallan',
                object_id=str(challan.id),
                object_name=challan.challan_number,
                object_reference=challan.so_number,
                changes={k: str(v) for k, v in serializer.validated_data.items()}
            )
            return Response(SalesChallanSerializer(challan).data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        challan_id = str(challan.id)
        try:
            sales_order, challan_number = delete_challan(challan.pk, user=request.user)
        except WorkflowError as e:
            return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)
        create_audit_log(
            request=request,
            action='delete',
            model_name='SalesChallan',
            object_id=challan_id,
            object_name=challan_number,
            object_reference=sales_order.so_number,
            changes={'challan_number': challan_number, 'sales_order_status': sales_order.status}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


@api_view(['PATCH'])
@permission_classes([IsAuthenticated])
def challan_status(request, pk):
    """Update the status of a challan"""
    challan = get_object_or_404(SalesChallan, pk=pk)
    old_status = challan.status
    new_status = request.data.get('status')
    try:
        challan = update_challan_status(challan.pk, new_status, notes=request.data.get('notes') or '', user=request.user)
    except WorkflowError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    create_audit_log(
        request=request,
        action='status_change',
        model_name='SalesChallan',
        object_id=str(challan.id),
        object_name=challan.challan_number,
        object_reference=challan.so_number,
        changes={'status': {'old': old_status, 'new': new_status}}
    )
    return Response({
        'message': 'Challan status updated successfully',
        'data': SalesChallanSerializer(_challan_queryset().get(pk=challan.pk)).data,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def challan_stats(request):
    """Challan counts plus how far sales orders with challans have been dispatched"""
    queryset = SalesChallan.objects.all()
    month_start = _month_start()

    pending_orders = 0
    partial_orders = 0
    completed_orders = 0
    orders = SalesOrder.objects.filter(challans__isnull=False).distinct().prefetch_related('items')
    for sales_order in orders:
        items = list(sales_order.items.all())
        completed = sum(1 for item in items if item.is_dispatch_complete)
        if items and completed == len(items):
            completed_orders += 1
        elif any(item.delivered_quantity > 0 or item.is_dispatch_complete for item in items):
            partial_orders += 1
        else:
            pending_orders += 1

    return Response({
        'total_challans': queryset.count(),
        'status_breakdown': status_breakdown(queryset),
        'this_month': queryset.filter(challan_date__gte=month_start).count(),
        'in_transit': queryset.filter(status__in=SalesChallan.IN_TRANSIT_STATUSES).count(),
        'delivered_this_month': queryset.filter(status='Delivered', updated_at__date__gte=month_start).count(),
        'pending_orders': pending_orders,
        'partial_orders': partial_orders,
        'completed_orders': completed_orders,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def challans_by_sales_order(request, so_id):
    """All challans of a sales order, oldest first"""
    sales_order = get_object_or_404(SalesOrder, pk=so_id)
    challans = _challan_queryset().filter(sales_order=sales_order).order_by('created_at', 'id')
    return Response(SalesChallanSerializer(challans, many=True).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def challan_track(request, challan_number):
    """Status, history and transport details of a challan looked up by its number"""
    challan = SalesChallan.objects.prefetch_related('status_history').filter(
        Q(challan_number__iexact=challan_number)
    ).first()
    if challan is None:
        return Response({'error': 'Challan not found'}, status=status.HTTP_404_NOT_FOUND)

    history = [
        {'status': h.status, 'timestamp': h.timestamp, 'notes': h.notes, 'updated_by': h.updated_by}
        for h in challan.status_history.all()
    ]
    return Response({
        'challan_number': challan.challan_number,
        'so_number': challan.so_number,
        'customer_name': challan.customer_name,
        'status': challan.status,
        'status_history': history,
        'delivery_info': {
            'address': challan.delivery_address,
            'city': challan.delivery_city,
            'expected_delivery_date': challan.expected_delivery_date,
        },
        'transport_info': {
            'transport_name': challan.transport_name,
            'vehicle_number': challan.vehicle_number,
            'driver_name': challan.driver_name,
            'driver_phone': challan.driver_phone,
            'lr_number': challan.lr_number,
        },
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def challan_dispatched_quantities(request, so_id):
    """Total dispatched so far for each line of a sales order"""
    sales_order = get_object_or_404(
        SalesOrder.objects.prefetch_related('items__challan_items'), pk=so_id
    )
    return Response({
        'sales_order': sales_order.id,
        'so_number': sales_order.so_number,
        'items': dispatched_quantities(sales_order),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def challan_pdf(request, pk):
    """Printable delivery challan"""
    challan = get_object_or_404(
        SalesChallan.objects.select_related('sales_order__customer', 'warehouse').prefetch_related('items'), pk=pk
    )
    content = render_challan_pdf(challan)
    return _pdf_response(content, f"{challan.challan_number}.pdf")
