"""
Sales order fulfilment: FIFO reservation, shipping, cancellation and the
delivery challan workflow.

Challans dispatch sales order lines in parts. Stock leaves the lots once a
line is complete: the dispatched quantity of the line not yet taken from stock
is deducted FIFO under a reference made of the line's challan numbers, and the
line's ``deducted_quantity`` records what has left. A completed line accepts no
further dispatch.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from textile_erp.core.cache_signals import invalidate_dashboard_cache, suspend_cache_signals
from textile_erp.core.exceptions import WorkflowError
from textile_erp.core.utils import to_decimal
from textile_erp.inventory.services import (
    deduct_fifo, fifo_lots, issue_reserved, release_reservation, reserve_on_lot,
)
from .models import InventoryAllocation, SalesChallan, SalesChallanItem, SalesOrder

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
WEIGHT_PLACES = Decimal('0.001')
DEFAULT_COMPLETION_REASON = 'Marked as complete by user (losses/damages accepted)'


def _performed_by(user):
    if user is not None and getattr(user, 'is_authenticated', False):
        return user.username
    return 'System'


def _lock_order(so_id):
    return SalesOrder.objects.select_for_update().get(pk=so_id)


# Sales order workflow
def change_order_status(so_id, new_status, notes='', user=None):
    """Move an order to another status and record the transition"""
    if new_status not in dict(SalesOrder.STATUS_CHOICES):
        raise WorkflowError('Invalid status value')
    if new_status == 'Cancelled':
        raise WorkflowError('Use the cancel action to cancel a sales order')

    changed_by = _performed_by(user)
    with transaction.atomic():
        sales_order = _lock_order(so_id)
        old_status = sales_order.status
        sales_order.status = new_status
        if new_status == 'Delivered' and not sales_order.actual_delivery_date:
            sales_order.actual_delivery_date = timezone.localdate()
        sales_order.last_modified_by = changed_by
        sales_order.save()
        sales_order.record_status_change(old_status, new_status, changed_by, notes=notes or '')

    logger.info(f"Sales order {sales_order.so_number} status: {old_status} -> {new_status}")
    return sales_order


def reserve_inventory(so_id, user=None):
    """
    Reserve stock for every open line of a confirmed order, oldest lots first.

    Returns ``(sales_order, results)`` where each result reports the
    requested, reserved and short quantity of a line.
    """
    performed_by = _performed_by(user)
    results = []

    with transaction.atomic():
        sales_order = _lock_order(so_id)
        if sales_order.status != 'Confirmed':
            raise WorkflowError('Can only reserve inventory for confirmed orders')

        items = list(sales_order.items.select_related('product'))
        for item in items:
            required = item.quantity - item.reserved_quantity
            if required <= 0:
                results.append({
                    'product_name': item.product_name,
                    'requested': ZERO,
                    'reserved': item.reserved_quantity,
                    'shortfall': ZERO,
                    'status': 'Already Reserved',
                })
                continue

            remaining = required
            for lot in fifo_lots(item.product_id).select_for_update():
                if remaining <= 0:
                    break
                available = lot.current_quantity - lot.reserved_quantity
                if available <= 0:
                    continue
                take = min(remaining, available)
                reserve_on_lot(lot, take, sales_order.so_number, performed_by)
                InventoryAllocation.objects.create(order_item=item, lot=lot, allocated_quantity=take)
                remaining -= take

            reserved_now = required - remaining
            item.reserved_quantity += reserved_now
            if remaining <= 0:
                item.item_status = 'Reserved'
            item.save()

            results.append({
                'product_name': item.product_name,
                'requested': required,
                'reserved': reserved_now,
                'shortfall': remaining,
                'status': 'Fully Reserved' if remaining <= 0 else 'Partially Reserved',
            })
            if remaining > 0:
                logger.warning(
                    f"Partial reservation for {sales_order.so_number}: {item.product_name} short by {remaining}"
                )

        if items and all(item.item_status == 'Reserved' for item in items):
            sales_order.status = 'Processing'
            sales_order.record_status_change('Confirmed', 'Processing', performed_by, notes='Inventory reserved')
        sales_order.last_modified_by = performed_by
        sales_order.save()

    logger.info(f"Inventory reserved for {sales_order.so_number} by {performed_by}")
    return sales_order, results


def ship_order(so_id, tracking_number='', courier_company='', notes='', user=None):
    """Issue every reserved allocation from its lot and mark the order Shipped"""
    performed_by = _performed_by(user)

    with transaction.atomic():
        sales_order = _lock_order(so_id)
        if sales_order.status != 'Processing':
            raise WorkflowError('Can only ship orders in Processing status')

        for item in sales_order.items.all():
            shipped = ZERO
            for allocation in item.allocations.filter(status='Reserved'):
                issue_reserved(allocation.lot_id, allocation.allocated_quantity, sales_order.so_number, performed_by)
                allocation.status = 'Shipped'
                allocation.save()
                shipped += allocation.allocated_quantity
            item.shipped_quantity = max(item.shipped_quantity, shipped)
            item.item_status = 'Shipped'
            item.save()

        sales_order.status = 'Shipped'
        sales_order.tracking_number = tracking_number or ''
        sales_order.courier_company = courier_company or ''
        sales_order.shipped_date = timezone.now()
        sales_order.last_modified_by = performed_by
        sales_order.save()
        sales_order.record_status_change(
            'Processing', 'Shipped', performed_by,
            notes=notes or f"Shipped via {courier_company or '-'}, Tracking: {tracking_number or '-'}"
        )

    logger.info(f"Sales order shipped: {sales_order.so_number}")
    return sales_order


def mark_delivered(so_id, actual_delivery_date=None, notes='', user=None):
    performed_by = _performed_by(user)

    with transaction.atomic():
        sales_order = _lock_order(so_id)
        if sales_order.status != 'Shipped':
            raise WorkflowError('Can only mark shipped orders as delivered')

        for item in sales_order.items.all():
            item.delivered_quantity = item.shipped_quantity
            item.item_status = 'Delivered'
            item.save()
            item.allocations.exclude(status='Released').update(status='Delivered')

        sales_order.status = 'Delivered'
        sales_order.actual_delivery_date = actual_delivery_date or timezone.localdate()
        sales_order.last_modified_by = performed_by
        sales_order.save()
        sales_order.record_status_change('Shipped', 'Delivered', performed_by, notes=notes or 'Order delivered successfully')

    logger.info(f"Sales order delivered: {sales_order.so_number}")
    return sales_order


def cancel_order(so_id, reason='', notes='', user=None):
    """Cancel an order and give its reserved stock back to the lots"""
    performed_by = _performed_by(user)

    with transaction.atomic():
        sales_order = _lock_order(so_id)
        if sales_order.status in ('Delivered', 'Cancelled'):
            raise WorkflowError(f'Cannot cancel order in {sales_order.status} status')

        released = ZERO
        for item in sales_order.items.all():
            for allocation in item.allocations.filter(status='Reserved'):
                release_reservation(allocation.lot_id, allocation.allocated_quantity, sales_order.so_number)
                allocation.status = 'Released'
                allocation.save()
                released += allocation.allocated_quantity
            item.reserved_quantity = ZERO
            item.item_status = 'Cancelled'
            item.save()

        old_status = sales_order.status
        sales_order.status = 'Cancelled'
        sales_order.cancellation_reason = reason or ''
        sales_order.cancelled_by = performed_by
        sales_order.cancelled_date = timezone.now()
        sales_order.last_modified_by = performed_by
        sales_order.save()
        sales_order.record_status_change(old_status, 'Cancelled', performed_by, notes=notes or reason or '')

    logger.info(f"Sales order cancelled: {sales_order.so_number} ({released} released)")
    return sales_order


def recalculate_statuses():
    """Recompute dispatch state of every order that has challans; returns the number of changed orders"""
    updated = 0
    with suspend_cache_signals():
        orders = SalesOrder.objects.filter(challans__isnull=False).distinct()
        for sales_order in orders:
            with transaction.atomic():
                if sales_order.update_dispatch_status():
                    updated += 1
    invalidate_dashboard_cache()
    logger.info(f"Recalculated sales order statuses: {updated} updated")
    return updated


# Delivery challans
def _validate_challan_items(sales_order, items_data):
    """Check each requested line against the order and what earlier challans already dispatched"""
    if not items_data:
        raise WorkflowError('At least one item is required')

    order_items = {item.id: item for item in sales_order.items.select_related('product')}
    already = {}
    for challan_item in SalesChallanItem.objects.filter(sales_order_item__sales_order=sales_order):
        key = challan_item.sales_order_item_id
        already[key] = already.get(key, ZERO) + challan_item.dispatch_quantity

    prepared = []
    for index, raw in enumerate(items_data, start=1):
        try:
            order_item = order_items.get(int(raw.get('sales_order_item')))
        except (TypeError, ValueError):
            order_item = None
        if order_item is None:
            raise WorkflowError(f"Row {index}: Item does not belong to sales order {sales_order.so_number}")
        if order_item.is_dispatch_complete:
            raise WorkflowError(f"Row {index}: {order_item.product_name} is already complete")

        dispatch = to_decimal(raw.get('dispatch_quantity'))
        mark_complete = bool(raw.get('mark_as_complete') or raw.get('manually_completed'))
        if dispatch < 0:
            raise WorkflowError(f"Row {index}: Dispatch quantity cannot be negative")
        if dispatch == 0 and not mark_complete:
            raise WorkflowError(f"Row {index}: Dispatch quantity must be greater than 0 for {order_item.product_name}")

        previous = already.get(order_item.id, ZERO)
        if previous + dispatch > order_item.quantity:
            raise WorkflowError(
                f"Cannot dispatch {dispatch} of {order_item.product_name}. "
                f"Already dispatched: {previous}, ordered: {order_item.quantity}"
            )
        already[order_item.id] = previous + dispatch

        weight = to_decimal(raw.get('weight'))
        if weight == 0 and dispatch > 0 and order_item.quantity > 0 and order_item.weight > 0:
            weight = (order_item.weight / order_item.quantity * dispatch).quantize(WEIGHT_PLACES)

        prepared.append({
            'sales_order_item': order_item,
            'product': order_item.product,
            'product_name': order_item.product_name,
            'product_code': order_item.product_code,
            'ordered_quantity': order_item.quantity,
            'dispatch_quantity': dispatch,
            'unit': raw.get('unit') or order_item.unit,
            'weight': weight,
            'manually_completed': mark_complete,
            'completion_reason': (raw.get('completion_reason') or DEFAULT_COMPLETION_REASON) if mark_complete else '',
            'completed_at': timezone.now() if mark_complete else None,
            'notes': raw.get('notes') or '',
        })
    return prepared


def dispatch_reference(order_item):
    """Sorted, comma-joined numbers of every challan that dispatched this line"""
    numbers = (
        SalesChallanItem.objects
        .filter(sales_order_item=order_item)
        .values_list('challan__challan_number', flat=True)
    )
    return ', '.join(sorted(set(numbers)))


def deduct_completed_item(order_item, sales_order, performed_by):
    """
    Deduct the dispatched quantity of a completed line that has not left stock yet.

    Returns a summary dict, or None when the line was already deducted or
    nothing was dispatched.
    """
    challan_items = list(SalesChallanItem.objects.filter(sales_order_item=order_item))
    total_quantity = sum((ci.dispatch_quantity for ci in challan_items), ZERO)
    total_weight = sum((ci.weight for ci in challan_items), ZERO)
    reference = dispatch_reference(order_item)

    if total_quantity <= 0:
        return None
    quantity = total_quantity - order_item.deducted_quantity
    if quantity <= 0:
        logger.info(f"Stock for {order_item.product_name} already deducted under {reference}")
        return None
    weight = (total_weight / total_quantity * quantity).quantize(WEIGHT_PLACES)

    deducted, shortfall, lots_updated = deduct_fifo(
        order_item.product_id,
        quantity,
        weight,
        reference,
        notes=f"Dispatched against {sales_order.so_number}",
        performed_by=performed_by,
    )
    order_item.deducted_quantity += quantity
    order_item.save(update_fields=['deducted_quantity'])
    return {
        'product_name': order_item.product_name,
        'reference': reference,
        'deducted': deducted,
        'shortfall': shortfall,
        'lots': lots_updated,
    }


def create_challan(header, items_data, user=None):
    """
    Create a delivery challan for a sales order.

    ``header`` holds validated challan fields including ``sales_order`` and
    ``warehouse``. Returns ``(challan, stock_updates)``.
    """
    performed_by = _performed_by(user)
    sales_order = header.get('sales_order')
    if sales_order is None:
        raise WorkflowError('Sales order is required')
    if header.get('warehouse') is None:
        raise WorkflowError('Warehouse is required')

    with transaction.atomic():
        sales_order = _lock_order(sales_order.pk)
        if sales_order.status in ('Delivered', 'Cancelled'):
            raise WorkflowError(f'Cannot create challan for a {sales_order.status.lower()} sales order')

        prepared = _validate_challan_items(sales_order, items_data)

        header = dict(header)
        header['sales_order'] = sales_order
        header.setdefault('customer', sales_order.customer)
        if not header.get('delivery_address'):
            header['delivery_address'] = sales_order.shipping_address or sales_order.customer.address
        if not header.get('delivery_city'):
            header['delivery_city'] = sales_order.shipping_city or sales_order.customer.city
        challan = SalesChallan.objects.create(
            created_by=user if user is not None and getattr(user, 'is_authenticated', False) else None,
            **header
        )
        for item_data in prepared:
            SalesChallanItem.objects.create(challan=challan, **item_data)
        challan.add_status_history(challan.status, notes='Challan created', updated_by=performed_by)

        sales_order.update_dispatch_status(changed_by=performed_by)

        stock_updates = []
        seen = set()
        for item_data in prepared:
            order_item = item_data['sales_order_item']
            if order_item.id in seen:
                continue
            seen.add(order_item.id)
            order_item.refresh_from_db()
            if not order_item.is_dispatch_complete:
                continue
            summary = deduct_completed_item(order_item, sales_order, performed_by)
            if summary:
                stock_updates.append(summary)

    logger.info(f"Challan {challan.challan_number} created for {sales_order.so_number} by {performed_by}")
    return challan, stock_updates


def update_challan_status(challan_id, new_status, notes='', user=None):
    """Record a challan status change; Delivered closes the sales order"""
    if new_status not in dict(SalesChallan.STATUS_CHOICES):
        raise WorkflowError('Invalid status')

    performed_by = _performed_by(user)
    with transaction.atomic():
        challan = SalesChallan.objects.select_for_update().get(pk=challan_id)
        old_status = challan.status
        challan.status = new_status
        challan.last_modified_by = performed_by
        challan.save()
        challan.add_status_history(new_status, notes=notes, updated_by=performed_by)
        if new_status in dict(SalesChallanItem.ITEM_STATUS_CHOICES):
            challan.items.update(item_status=new_status)

        if new_status == 'Delivered':
            sales_order = _lock_order(challan.sales_order_id)
            previous = sales_order.status
            sales_order.status = 'Delivered'
            sales_order.actual_delivery_date = timezone.localdate()
            sales_order.last_modified_by = performed_by
            sales_order.save()
            if previous != 'Delivered':
                sales_order.record_status_change(
                    previous, 'Delivered', performed_by, notes=f"Challan {challan.challan_number} delivered"
                )

    logger.info(f"Challan {challan.challan_number} status: {old_status} -> {new_status}")
    return challan


def delete_challan(challan_id, user=None):
    """Delete a challan that has not left the warehouse and recompute the order"""
    performed_by = _performed_by(user)
    with transaction.atomic():
        challan = SalesChallan.objects.select_for_update().get(pk=challan_id)
        if challan.status not in SalesChallan.DELETABLE_STATUSES:
            raise WorkflowError(f'Cannot delete challan in {challan.status} status')

        sales_order = _lock_order(challan.sales_order_id)
        challan_number = challan.challan_number
        challan.delete()

        sales_order.status = 'Processing'
        sales_order.save()
        sales_order.update_dispatch_status(changed_by=performed_by)

    logger.info(f"Challan deleted: {challan_number} ({sales_order.so_number} now {sales_order.status})")
    return sales_order, challan_number


def dispatched_quantities(sales_order):
    """Total dispatched per sales order line across all challans"""
    rows = []
    for item in sales_order.items.all():
        total = sum((ci.dispatch_quantity for ci in item.challan_items.all()), ZERO)
        rows.append({
            'sales_order_item': item.id,
            'product': item.product_id,
            'product_name': item.product_name,
            'ordered_quantity': item.quantity,
            'total_dispatched': total,
            'unit': item.unit,
        })
    return rows
