"""
Stock operations on inventory lots.

All functions that change quantities lock the affected lots with
``select_for_update`` and must run inside ``transaction.atomic()``; the public
entry points open the transaction themselves.
"""
import logging
from decimal import Decimal

from django.conf import settings
from django.db import transaction
from django.db.models import Count, Sum
from django.utils import timezone

from textile_erp.core.exceptions import InsufficientStockError, WorkflowError
from .models import InventoryLot, LotMovement

logger = logging.getLogger(__name__)

ZERO = Decimal('0')
WEIGHT_PLACES = Decimal('0.001')

# Movement types accepted by the manual stock movement endpoint
SUBTRACTING_MOVEMENTS = ('Issued', 'Damaged', 'Transferred')
ADDING_MOVEMENTS = ('Returned', 'Adjusted')
MANUAL_MOVEMENTS = SUBTRACTING_MOVEMENTS + ADDING_MOVEMENTS + ('Reserved',)


def fifo_lots(product_id):
    """Active lots of a product holding stock, oldest receipt first"""
    return InventoryLot.objects.filter(
        product_id=product_id, status='Active', current_quantity__gt=0
    ).order_by('received_date', 'id')


def create_lot_from_grn_item(grn_item, quantity, performed_by=''):
    """Create the inventory lot for a GRN line and record its Received movement"""
    grn = grn_item.grn
    product = grn_item.product
    if quantity <= 0:
        return None

    lot = InventoryLot.objects.create(
        grn=grn,
        grn_item=grn_item,
        purchase_order=grn.purchase_order,
        product=product,
        product_name=grn_item.product_name,
        category=product.category,
        supplier=grn.supplier,
        supplier_batch_number=grn_item.batch_number,
        received_quantity=quantity,
        current_quantity=quantity,
        unit=grn_item.unit,
        total_weight=grn_item.received_weight,
        unit_cost=grn_item.unit_price,
        warehouse=grn.warehouse,
        received_date=timezone.now(),
        notes=f"Created from GRN {grn.grn_number}",
        created_by=performed_by,
    )
    LotMovement.objects.create(
        lot=lot,
        movement_type='Received',
        quantity=quantity,
        weight=grn_item.received_weight,
        reference=grn.grn_number,
        notes=f"Initial receipt from GRN {grn.grn_number}",
        performed_by=performed_by,
    )
    logger.info(f"Lot {lot.lot_number} created from {grn.grn_number}: {quantity} {lot.unit} of {lot.product_name}")
    return lot


def apply_stock_movement(lot_id, movement_type, quantity, weight=ZERO, reference='', notes='', performed_by=''):
    """
    Apply a manual stock movement to a lot.

    Issued, Damaged and Transferred take stock out and may not exceed the
    available quantity. Returned and Adjusted add stock. Reserved holds stock
    without removing it.
    """
    if movement_type not in MANUAL_MOVEMENTS:
        raise WorkflowError(f"Invalid movement type. Must be one of: {', '.join(MANUAL_MOVEMENTS)}")
    if quantity <= 0:
        raise WorkflowError('Quantity must be greater than 0')

    with transaction.atomic():
        lot = InventoryLot.objects.select_for_update().get(pk=lot_id)

        if movement_type in SUBTRACTING_MOVEMENTS:
            if quantity > lot.available_quantity:
                raise InsufficientStockError(
                    f"Insufficient available quantity in lot {lot.lot_number} "
                    f"(available {lot.available_quantity}, requested {quantity})"
                )
            lot.current_quantity -= quantity
            lot.total_weight = max(ZERO, lot.total_weight - weight)
        elif movement_type in ADDING_MOVEMENTS:
            lot.current_quantity += quantity
            lot.total_weight += weight
        else:  # Reserved
            if quantity > lot.available_quantity:
                raise InsufficientStockError(
                    f"Cannot reserve {quantity}: only {lot.available_quantity} available in lot {lot.lot_number}"
                )
            lot.reserved_quantity += quantity

        lot.last_modified_by = performed_by
        lot.save()
        movement = LotMovement.objects.create(
            lot=lot,
            movement_type=movement_type,
            quantity=quantity,
            weight=weight,
            reference=reference,
            notes=notes,
            performed_by=performed_by,
        )

    logger.info(f"{movement_type} movement of {quantity} on lot {lot.lot_number} by {performed_by or 'system'}")
    return lot, movement


def transfer_between_lots(from_lot_id, to_lot_id, quantity, notes='', performed_by=''):
    """Move quantity from one lot into another"""
    if quantity <= 0:
        raise WorkflowError('Quantity must be greater than 0')
    if str(from_lot_id) == str(to_lot_id):
        raise WorkflowError('Source and destination lots must be different')

    with transaction.atomic():
        lots = {
            lot.pk: lot
            for lot in InventoryLot.objects.select_for_update().filter(pk__in=[from_lot_id, to_lot_id])
        }
        from_lot = lots.get(int(from_lot_id))
        to_lot = lots.get(int(to_lot_id))
        if from_lot is None or to_lot is None:
            raise InventoryLot.DoesNotExist('Source or destination lot not found')
        if quantity > from_lot.available_quantity:
            raise InsufficientStockError('Insufficient available quantity in source lot')

        reference = f"TRANSFER-{int(timezone.now().timestamp() * 1000)}"
        from_lot.current_quantity -= quantity
        to_lot.current_quantity += quantity
        from_lot.last_modified_by = performed_by
        to_lot.last_modified_by = performed_by
        from_lot.save()
        to_lot.save()

        LotMovement.objects.create(
            lot=from_lot, movement_type='Transferred', quantity=quantity, reference=reference,
            notes=f"Transferred to {to_lot.lot_number}. {notes}".strip(), performed_by=performed_by,
        )
        LotMovement.objects.create(
            lot=to_lot, movement_type='Received', quantity=quantity, reference=reference,
            notes=f"Received from {from_lot.lot_number}. {notes}".strip(), performed_by=performed_by,
        )

    logger.info(f"Transferred {quantity} from lot {from_lot.lot_number} to {to_lot.lot_number}")
    return from_lot, to_lot


def relocate_lot(lot_id, warehouse, notes='', performed_by=''):
    """Move a whole lot to another warehouse; quantities are unchanged"""
    with transaction.atomic():
        lot = InventoryLot.objects.select_for_update().get(pk=lot_id)
        old_warehouse = lot.warehouse.name if lot.warehouse else 'Unassigned'
        lot.warehouse = warehouse
        lot.last_modified_by = performed_by
        lot.save()
        LotMovement.objects.create(
            lot=lot,
            movement_type='Transferred',
            quantity=ZERO,
            reference=f"LOCATION-CHANGE-{int(timezone.now().timestamp() * 1000)}",
            notes=f"Location changed from {old_warehouse} to {warehouse.name}. {notes}".strip(),
            performed_by=performed_by,
        )

    logger.info(f"Lot {lot.lot_number} relocated from {old_warehouse} to {warehouse.name}")
    return lot


def reserve_on_lot(lot, quantity, reference, performed_by=''):
    """Reserve ``quantity`` on an already locked lot"""
    lot.reserved_quantity += quantity
    lot.save()
    LotMovement.objects.create(
        lot=lot,
        movement_type='Reserved',
        quantity=quantity,
        reference=reference,
        notes=f"Reserved for {reference}",
        performed_by=performed_by,
    )


def release_reservation(lot_id, quantity, reference=''):
    """Give reserved quantity back to the lot's available stock"""
    lot = InventoryLot.objects.select_for_update().get(pk=lot_id)
    lot.reserved_quantity = max(ZERO, lot.reserved_quantity - quantity)
    lot.save()
    logger.info(f"Released {quantity} reserved on lot {lot.lot_number} ({reference})")
    return lot


def issue_reserved(lot_id, quantity, reference, performed_by=''):
    """Ship reserved stock: remove it from both current and reserved quantity"""
    lot = InventoryLot.objects.select_for_update().get(pk=lot_id)
    lot.current_quantity = max(ZERO, lot.current_quantity - quantity)
    lot.reserved_quantity = max(ZERO, lot.reserved_quantity - quantity)
    lot.save()
    LotMovement.objects.create(
        lot=lot,
        movement_type='Issued',
        quantity=quantity,
        reference=reference,
        notes=f"Shipped against {reference}",
        performed_by=performed_by,
    )
    return lot


def deduct_fifo(product_id, quantity, weight, reference, notes='', performed_by=''):
    """
    Take ``quantity`` of a product out of its lots, oldest first.

    Only unreserved stock is consumed. Weight is split across lots in
    proportion to the quantity taken from each. Returns
    ``(deducted, shortfall, lots_updated)``; a shortfall is logged, not raised.
    """
    remaining_qty = Decimal(quantity)
    remaining_weight = Decimal(weight or 0)
    lots_updated = []

    with transaction.atomic():
        for lot in fifo_lots(product_id).select_for_update():
            if remaining_qty <= 0:
                break
            available = lot.current_quantity - lot.reserved_quantity
            if available <= 0:
                continue

            take = min(remaining_qty, available)
            take_weight = (remaining_weight / remaining_qty * take).quantize(WEIGHT_PLACES)

            lot.current_quantity -= take
            lot.total_weight = max(ZERO, lot.total_weight - take_weight)
            lot.last_modified_by = performed_by
            lot.save()
            LotMovement.objects.create(
                lot=lot,
                movement_type='Issued',
                quantity=take,
                weight=take_weight,
                reference=reference,
                notes=notes,
                performed_by=performed_by,
            )
            lots_updated.append({'lot_number': lot.lot_number, 'quantity': take, 'weight': take_weight})
            logger.info(f"Deducted {take} ({take_weight} kg) from lot {lot.lot_number} for {reference}")

            remaining_qty -= take
            remaining_weight -= take_weight

    shortfall = max(ZERO, remaining_qty)
    if shortfall > 0:
        logger.warning(f"Insufficient stock for product {product_id}: short by {shortfall} for {reference}")
    return Decimal(quantity) - shortfall, shortfall, lots_updated


def low_stock_threshold():
    return Decimal(str(getattr(settings, 'LOW_STOCK_THRESHOLD', 50)))


def low_stock_products(threshold=None):
    """
    Products whose summed available quantity across live lots is below
    ``threshold`` (defaults to ``LOW_STOCK_THRESHOLD``).
    """
    threshold = low_stock_threshold() if threshold is None else Decimal(str(threshold))
    rows = (
        InventoryLot.objects
        .exclude(status='Consumed')
        .values('product_id', 'product__product_code', 'product__product_name', 'product__unit')
        .annotate(
            available=Sum('available_quantity'),
            current=Sum('current_quantity'),
            lot_count=Count('id'),
        )
        .filter(available__lt=threshold)
        .order_by('available', 'product__product_name')
    )
    return [
        {
            'product_id': row['product_id'],
            'product_code': row['product__product_code'],
            'product_name': row['product__product_name'],
            'unit': row['product__unit'],
            'available_quantity': row['available'] or ZERO,
            'current_quantity': row['current'] or ZERO,
            'lot_count': row['lot_count'],
            'threshold': threshold,
        }
        for row in rows
    ]
