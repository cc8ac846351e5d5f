from rest_framework import serializers
from django.db import transaction
from .models import PurchaseOrder, PurchaseOrderItem, GoodsReceiptNote, GRNItem
from .services import create_grn
from textile_erp.catalog.models import Product
from textile_erp.core.exceptions import WorkflowError
from textile_erp.core.utils import to_decimal

# Fields that may still change once a PO has been sent to the supplier
SENT_PO_EDITABLE_FIELDS = {
    'status', 'notes', 'internal_notes', 'approval_status', 'approved_by', 'approved_date', 'rejection_reason'
}


class PurchaseOrderItemSerializer(serializers.ModelSerializer):
    total_price = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = PurchaseOrderItem
        fields = [
            'id', 'product', 'product_name', 'product_code', 'quantity', 'weight', 'unit',
            'unit_price', 'total_price', 'received_quantity', 'received_weight', 'pending_quantity',
            'pending_weight', 'receipt_status', 'notes', 'manually_completed', 'completion_reason',
            'completed_at'
        ]
        read_only_fields = [
            'product_name', 'product_code', 'received_quantity', 'received_weight', 'pending_quantity',
            'pending_weight', 'receipt_status', 'manually_completed', 'completion_reason', 'completed_at'
        ]


def build_po_items(purchase_order, items_data):
    """Validate raw item dicts and create the PO lines"""
    if not items_data:
        raise serializers.ValidationError({'items': 'At least one item is required.'})

    product_ids = [item.get('product') for item in items_data]
    products = Product.objects.in_bulk([pid for pid in product_ids if pid])

    for index, item in enumerate(items_data, start=1):
        try:
            product = products.get(int(item.get('product')))
        except (TypeError, ValueError):
            product = None
        if product is None:
            raise serializers.ValidationError({'items': f"Row {index}: Product not found: {item.get('product')}"})

        quantity = to_decimal(item.get('quantity'))
        if quantity <= 0:
            raise serializers.ValidationError({'items': f"Row {index}: Quantity must be greater than 0"})

        PurchaseOrderItem.objects.create(
            purchase_order=purchase_order,
            product=product,
            product_name=product.product_name,
            product_code=product.product_code,
            quantity=quantity,
            weight=to_decimal(item.get('weight')),
            unit=item.get('unit') or product.unit,
            unit_price=to_decimal(item.get('unit_price')),
            pending_quantity=quantity,
            pending_weight=to_decimal(item.get('weight')),
            notes=item.get('notes') or '',
        )


class PurchaseOrderSerializer(serializers.ModelSerializer):
    items = PurchaseOrderItemSerializer(many=True, read_only=True)
    supplier_name = serializers.CharField(source='supplier.company_name', read_only=True)
    category_name = serializers.CharField(source='category.category_name', read_only=True, default=None)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'supplier', 'supplier_name', 'category', 'category_name', 'order_date',
            'expected_delivery_date', 'status', 'approval_status', 'approved_by', 'approved_date',
            'rejection_reason', 'payment_status', 'total_amount', 'notes', 'internal_notes',
            'sent_date', 'acknowledged_date', 'total_grns', 'completion_percentage',
            'cancellation_reason', 'cancelled_by', 'cancelled_date', 'revision_number',
            'is_overdue', 'items', 'created_by', 'created_by_username', 'last_modified_by',
            'created_at', 'updated_at'
        ]
        read_only_fields = [
            'po_number', 'total_amount', 'sent_date', 'acknowledged_date', 'total_grns',
            'completion_percentage', 'cancellation_reason', 'cancelled_by', 'cancelled_date',
            'revision_number', 'created_by', 'last_modified_by', 'created_at', 'updated_at'
        ]

    def validate_supplier(self, value):
        if value.status == 'Blocked':
            raise serializers.ValidationError('Cannot raise a purchase order on a blocked supplier.')
        return value

    def validate_status(self, value):
        if value == 'Cancelled':
            raise serializers.ValidationError('Use the cancel action to cancel a purchase order.')
        return value

    @transaction.atomic
    def create(self, validated_data):
        items_data = self.context.get('items_data') or []
        purchase_order = PurchaseOrder.objects.create(**validated_data)
        build_po_items(purchase_order, items_data)
        purchase_order.refresh_total_amount()
        purchase_order.save()
        return purchase_order

    @transaction.atomic
    def update(self, instance, validated_data):
        items_data = self.context.get('items_data')

        if instance.status in PurchaseOrder.LOCKED_STATUSES:
            raise WorkflowError(f'Cannot modify a purchase order in {instance.status} status.')

        if instance.status in PurchaseOrder.RESTRICTED_EDIT_STATUSES:
            changed = {k for k, v in validated_data.items() if getattr(instance, k) != v}
            if items_data is not None or changed - SENT_PO_EDITABLE_FIELDS:
                raise WorkflowError(
                    'Cannot modify purchase order details after it has been sent. '
                    'Only status and notes can be updated.'
                )

        for attr, value in validated_data.items():
            setattr(instance, attr, value)

        request = self.context.get('request')
        if request is not None and getattr(request.user, 'is_authenticated', False):
            instance.last_modified_by = request.user.username

        if items_data is not None:
            if instance.items.filter(received_quantity__gt=0).exists():
                raise WorkflowError('Items cannot be replaced after goods have been received.')
            # Drop prefetched lines so totals are computed from the new ones
            instance._prefetched_objects_cache = {}
            instance.items.all().delete()
            build_po_items(instance, items_data)
            instance.refresh_total_amount()
            instance.revision_number += 1

        instance.save()
        return instance


class PurchaseOrderListSerializer(serializers.ModelSerializer):
    supplier_name = serializers.CharField(source='supplier.company_name', read_only=True)
    item_count = serializers.SerializerMethodField()
    is_overdue = serializers.BooleanField(read_only=True)

    class Meta:
        model = PurchaseOrder
        fields = [
            'id', 'po_number', 'supplier', 'supplier_name', 'order_date', 'expected_delivery_date',
            'status', 'approval_status', 'payment_status', 'total_amount', 'completion_percentage',
            'total_grns', 'item_count', 'is_overdue', 'created_at'
        ]

    def get_item_count(self, obj):
        return len(obj.items.all())


class GRNItemSerializer(serializers.ModelSerializer):
    has_lot = serializers.SerializerMethodField()

    class Meta:
        model = GRNItem
        fields = [
            'id', 'purchase_order_item', 'product', 'product_name', 'product_code', 'ordered_quantity',
            'previously_received_quantity', 'received_quantity', 'received_weight', 'pending_quantity',
            'accepted_quantity', 'rejected_quantity', 'damage_quantity', 'quality_status',
            'quality_notes', 'batch_number', 'unit', 'unit_price', 'total_value',
            'manually_completed', 'completion_reason', 'completed_at', 'has_lot'
        ]
        read_only_fields = fields

    def get_has_lot(self, obj):
        return obj.lots.exists()


class GoodsReceiptNoteSerializer(serializers.ModelSerializer):
    items = GRNItemSerializer(many=True, read_only=True)
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    supplier_name = serializers.CharField(source='supplier.company_name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True, default=None)

    class Meta:
        model = GoodsReceiptNote
        fields = [
            'id', 'grn_number', 'purchase_order', 'po_number', 'supplier', 'supplier_name',
            'receipt_date', 'delivery_note_number', 'vehicle_number', 'received_by', 'warehouse',
            'warehouse_name', 'status', 'receipt_status', 'quality_check_status', 'approval_status',
            'approved_by', 'approved_date', 'total_received_quantity', 'total_accepted_quantity',
            'total_rejected_quantity', 'total_damage_quantity', 'total_value', 'notes', 'items',
            'created_by', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'grn_number', 'supplier', 'status', 'receipt_status', 'quality_check_status',
            'approval_status', 'approved_by', 'approved_date', 'total_received_quantity',
            'total_accepted_quantity', 'total_rejected_quantity', 'total_damage_quantity',
            'total_value', 'created_by', 'created_at', 'updated_at'
        ]

    def create(self, validated_data):
        request = self.context.get('request')
        user = request.user if request is not None else None
        grn, lots = create_grn(validated_data, self.context.get('items_data') or [], user=user)
        self.created_lots = lots
        return grn

    def update(self, instance, validated_data):
        if instance.status == 'Completed':
            changed = {k for k, v in validated_data.items() if getattr(instance, k) != v}
            if changed - {'notes'}:
                raise WorkflowError('Cannot modify completed GRN. Only notes can be updated.')
        if 'purchase_order' in validated_data and validated_data['purchase_order'] != instance.purchase_order:
            raise WorkflowError('The purchase order of a GRN cannot be changed.')
        return super().update(instance, validated_data)


class GoodsReceiptNoteListSerializer(serializers.ModelSerializer):
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True)
    supplier_name = serializers.CharField(source='supplier.company_name', read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True, default=None)

    class Meta:
        model = GoodsReceiptNote
        fields = [
            'id', 'grn_number', 'purchase_order', 'po_number', 'supplier', 'supplier_name',
            'receipt_date', 'warehouse', 'warehouse_name', 'status', 'receipt_status',
            'quality_check_status', 'approval_status', 'total_received_quantity',
            'total_value', 'created_at'
        ]