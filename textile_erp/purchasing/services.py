"""
Goods receipt workflow: recording deliveries against purchase orders and
turning completed receipts into inventory lots.

Lots are only created once a PO line is complete (fully received or manually
marked complete). At that point every earlier partial GRN of the same line
that has no lot yet gets its own lot too, so stock always matches receipts.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.utils import timezone

from textile_erp.core.exceptions import WorkflowError
from textile_erp.core.utils import to_decimal
from textile_erp.inventory.services import create_lot_from_grn_item
from .models import PurchaseOrder, GoodsReceiptNote, GRNItem

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
WEIGHT_PLACES = Decimal('0.001')
DEFAULT_COMPLETION_REASON = 'Marked as complete by user (losses/damages accepted)'


def _performed_by(user):
    if user is not None and getattr(user, 'is_authenticated', False):
        return user.username
    return 'System'


def _prepare_item(po_item, raw):
    """Validate one incoming GRN line and compute its derived quantities"""
    received = to_decimal(raw.get('received_quantity'))
    if received < 0:
        raise WorkflowError(f'Received quantity cannot be negative for {po_item.product_name}')

    received_weight = to_decimal(raw.get('received_weight'))
    if received_weight == 0 and received > 0 and po_item.quantity > 0 and po_item.weight > 0:
        received_weight = (po_item.weight / po_item.quantity * received).quantize(WEIGHT_PLACES)

    rejected = to_decimal(raw.get('rejected_quantity'))
    damage = to_decimal(raw.get('damage_quantity'))
    accepted = to_decimal(raw.get('accepted_quantity'))
    if accepted <= 0:
        accepted = max(ZERO, received - rejected - damage)

    previous = po_item.received_quantity
    mark_complete = bool(raw.get('mark_as_complete') or raw.get('manually_completed'))

    return {
        'purchase_order_item': po_item,
        'product': po_item.product,
        'product_name': po_item.product_name,
        'product_code': po_item.product_code,
        'ordered_quantity': po_item.quantity,
        'previously_received_quantity': previous,
        'received_quantity': received,
        'received_weight': received_weight,
        'pending_quantity': max(ZERO, po_item.quantity - (previous + received)),
        'accepted_quantity': accepted,
        'rejected_quantity': rejected,
        'damage_quantity': damage,
        'quality_status': raw.get('quality_status') or 'Pending',
        'quality_notes': raw.get('quality_notes') or '',
        'batch_number': raw.get('batch_number') or '',
        'unit': raw.get('unit') or po_item.unit,
        'unit_price': to_decimal(raw.get('unit_price'), po_item.unit_price),
        'manually_completed': mark_complete,
        'completion_reason': (raw.get('completion_reason') or DEFAULT_COMPLETION_REASON) if mark_complete else '',
        'completed_at': timezone.now() if mark_complete else None,
    }


def _create_lots_for_earlier_grns(grn, item, performed_by):
    """Create lots for earlier partial GRNs of the same PO line that never got one"""
    lots = []
    earlier_items = (
        GRNItem.objects
        .filter(
            grn__purchase_order_id=grn.purchase_order_id,
            purchase_order_item_id=item.purchase_order_item_id,
            received_quantity__gt=0,
            lots__isnull=True,
        )
        .exclude(grn_id=grn.id)
        .select_related('grn', 'grn__supplier', 'grn__purchase_order', 'product', 'product__category')
        .order_by('grn__created_at', 'grn_id', 'id')
    )
    for earlier in earlier_items:
        lot = create_lot_from_grn_item(earlier, earlier.received_quantity, performed_by)
        if lot is None:
            continue
        lots.append(lot)
        GoodsReceiptNote.objects.filter(pk=earlier.grn_id).update(
            status='Completed',
            approval_status='Approved',
            approved_by=performed_by,
            approved_date=timezone.now(),
        )
        logger.info(f"Lot {lot.lot_number} created for earlier {earlier.grn.grn_number} once {item.product_name} was complete")
    return lots


def create_grn(header, items_data, user=None):
    """
    Record a goods receipt against a purchase order.

    ``header`` holds validated GRN fields (``purchase_order`` is required).
    Returns ``(grn, lots)`` where ``lots`` are the inventory lots created for
    lines that became complete with this receipt.
    """
    if not items_data:
        raise WorkflowError('At least one item is required')

    performed_by = _performed_by(user)
    header = dict(header)

    with transaction.atomic():
        purchase_order = PurchaseOrder.objects.select_for_update().select_related('supplier').get(
            pk=header.pop('purchase_order').pk
        )
        if purchase_order.status in ('Cancelled', 'Closed'):
            raise WorkflowError(f'Cannot receive goods against a {purchase_order.status.lower()} purchase order')

        po_items = {item.id: item for item in purchase_order.items.select_related('product')}
        prepared = []
        for raw in items_data:
            reference = raw.get('purchase_order_item')
            try:
                po_item = po_items[int(reference)]
            except (KeyError, TypeError, ValueError):
                raise WorkflowError(f'Invalid PO item reference: {reference}')
            prepared.append(_prepare_item(po_item, raw))

        all_complete = all(p['pending_quantity'] <= 0 or p['manually_completed'] for p in prepared)
        any_received = any(p['received_quantity'] > 0 or p['manually_completed'] for p in prepared)
        if all_complete and any_received:
            receipt_status, grn_status = 'Complete', 'Completed'
        elif any_received:
            receipt_status, grn_status = 'Partial', 'Received'
        else:
            receipt_status, grn_status = 'Pending', 'Draft'

        header.pop('status', None)
        header.pop('receipt_status', None)
        header.pop('approval_status', None)
        grn = GoodsReceiptNote(
            purchase_order=purchase_order,
            supplier=purchase_order.supplier,
            status=grn_status,
            receipt_status=receipt_status,
            approval_status='Approved' if receipt_status == 'Complete' else 'Pending',
            received_by=header.pop('received_by', '') or performed_by,
            created_by=user if user is not None and getattr(user, 'is_authenticated', False) else None,
            **header
        )
        if receipt_status == 'Complete':
            grn.approved_by = performed_by
            grn.approved_date = timezone.now()
        grn.save()

        for data in prepared:
            GRNItem.objects.create(grn=grn, **data)

            po_item = data['purchase_order_item']
            po_item.received_quantity += data['received_quantity']
            po_item.received_weight += data['received_weight']
            if data['manually_completed']:
                po_item.manually_completed = True
                po_item.completion_reason = data['completion_reason']
                po_item.completed_at = data['completed_at']
            po_item.save()

        purchase_order.total_grns += 1
        purchase_order.last_modified_by = performed_by
        purchase_order.update_receipt_status()

        grn.refresh_totals()
        grn.save()

        lots = []
        for item in grn.items.select_related('product', 'product__category'):
            if not item.is_complete or item.received_quantity <= 0:
                continue
            lots.extend(_create_lots_for_earlier_grns(grn, item, performed_by))
            if not item.lots.exists():
                lot = create_lot_from_grn_item(item, item.received_quantity, performed_by)
                if lot is not None:
                    lots.append(lot)

    logger.info(
        f"GRN created: {grn.grn_number} for {purchase_order.po_number} "
        f"({grn.receipt_status}, {len(lots)} lot(s) created)"
    )
    return grn, lots


def approve_grn(grn_id, user=None, notes=''):
    """
    Approve a GRN and create lots for quality-approved or manually completed
    lines. Lines that already have a lot are skipped.
    """
    performed_by = _performed_by(user)

    with transaction.atomic():
        grn = GoodsReceiptNote.objects.select_for_update().select_related('supplier', 'purchase_order').get(pk=grn_id)
        if grn.status == 'Rejected':
            raise WorkflowError('Rejected GRN cannot be approved')

        lots = []
        for item in grn.items.select_related('product', 'product__category'):
            if item.lots.exists():
                continue
            if item.manually_completed and item.received_quantity > 0:
                quantity = item.received_quantity
            elif item.quality_status == 'Approved' and item.accepted_quantity > 0:
                quantity = item.accepted_quantity
            else:
                continue
            lot = create_lot_from_grn_item(item, quantity, performed_by)
            if lot is not None:
                lots.append(lot)

        grn.status = 'Completed'
        grn.approval_status = 'Approved'
        grn.approved_by = performed_by
        grn.approved_date = timezone.now()
        if notes:
            grn.notes = notes
        grn.save()

    logger.info(f"GRN approved: {grn.grn_number} by {performed_by} ({len(lots)} lot(s) created)")
    return grn, lots


def mark_item_complete(grn_id, item_id, reason='', user=None):
    """Close a GRN line even though the received quantity is short of the order"""
    with transaction.atomic():
        grn = GoodsReceiptNote.objects.select_for_update().get(pk=grn_id)
        item = grn.items.select_related('purchase_order_item').get(pk=item_id)

        item.manually_completed = True
        item.completion_reason = reason or 'Manually marked as complete'
        item.completed_at = timezone.now()
        item.pending_quantity = ZERO
        item.save()

        grn.refresh_receipt_status()
        grn.save()

        po_item = item.purchase_order_item
        po_item.manually_completed = True
        po_item.completion_reason = item.completion_reason
        po_item.completed_at = item.completed_at
        po_item.save()
        po_item.purchase_order.update_receipt_status()

    logger.info(f"GRN {grn.grn_number} item {item.product_name} marked complete by {_performed_by(user)}")
    return grn, item
