from rest_framework import serializers
from .models import InventoryLot, LotMovement
from textile_erp.locations.models import Warehouse


class LotMovementSerializer(serializers.ModelSerializer):
    lot_number = serializers.CharField(source='lot.lot_number', read_only=True)

    class Meta:
        model = LotMovement
        fields = ['id', 'lot', 'lot_number', 'movement_type', 'quantity', 'weight', 'date', 'reference', 'notes', 'performed_by']
        read_only_fields = fields


class InventoryLotSerializer(serializers.ModelSerializer):
    product_code = serializers.CharField(source='product.product_code', read_only=True)
    category_name = serializers.CharField(source='category.category_name', read_only=True, default=None)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True, default=None)
    grn_number = serializers.CharField(source='grn.grn_number', read_only=True, default=None)
    po_number = serializers.CharField(source='purchase_order.po_number', read_only=True, default=None)
    total_cost = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)

    class Meta:
        model = InventoryLot
        fields = [
            'id', 'lot_number', 'grn', 'grn_number', 'purchase_order', 'po_number', 'product',
            'product_name', 'product_code', 'category', 'category_name', 'supplier', 'supplier_name',
            'supplier_batch_number', 'received_quantity', 'current_quantity', 'reserved_quantity',
            'available_quantity', 'unit', 'total_weight', 'unit_cost', 'total_cost', 'warehouse',
            'warehouse_name', 'received_date', 'expiry_date', 'quality_grade', 'status', 'notes',
            'created_by', 'last_modified_by', 'created_at', 'updated_at'
        ]
        # Quantities only change through stock movements
        read_only_fields = [
            'lot_number', 'grn', 'purchase_order', 'product', 'product_name', 'category', 'supplier',
            'supplier_name', 'received_quantity', 'current_quantity', 'reserved_quantity',
            'available_quantity', 'unit', 'total_weight', 'status', 'received_date', 'created_by',
            'last_modified_by', 'created_at', 'updated_at'
        ]


class InventoryLotDetailSerializer(InventoryLotSerializer):
    recent_movements = serializers.SerializerMethodField()

    class Meta(InventoryLotSerializer.Meta):
        fields = InventoryLotSerializer.Meta.fields + ['recent_movements']

    def get_recent_movements(self, obj):
        return LotMovementSerializer(obj.movements.all()[:10], many=True).data


class StockMovementSerializer(serializers.Serializer):
    movement_type = serializers.ChoiceField(choices=['Issued', 'Returned', 'Adjusted', 'Transferred', 'Damaged', 'Reserved'])
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3)
    weight = serializers.DecimalField(max_digits=12, decimal_places=3, required=False, default=0)
    reference = serializers.CharField(required=False, allow_blank=True, default='')
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_quantity(self, value):
        if value <= 0:
            raise serializers.ValidationError('Quantity must be greater than 0.')
        return value


class StockTransferSerializer(serializers.Serializer):
    TRANSFER_TYPES = ['lot-to-lot', 'location-change']

    transfer_type = serializers.ChoiceField(choices=TRANSFER_TYPES)
    to_lot = serializers.PrimaryKeyRelatedField(queryset=InventoryLot.objects.all(), required=False)
    warehouse = serializers.PrimaryKeyRelatedField(queryset=Warehouse.objects.filter(is_active=True), required=False)
    quantity = serializers.DecimalField(max_digits=12, decimal_places=3, required=False)
    notes = serializers.CharField(required=False, allow_blank=True, default='')

    def validate(self, attrs):
        if attrs['transfer_type'] == 'lot-to-lot':
            if not attrs.get('to_lot'):
                raise serializers.ValidationError({'to_lot': 'Destination lot is required.'})
            if not attrs.get('quantity') or attrs['quantity'] <= 0:
                raise serializers.ValidationError({'quantity': 'Quantity must be greater than 0.'})
        elif not attrs.get('warehouse'):
            raise serializers.ValidationError({'warehouse': 'Destination warehouse is required.'})
        return attrs
