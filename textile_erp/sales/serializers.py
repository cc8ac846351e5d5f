from rest_framework import serializers
from django.db import transaction
from .models import (
    SalesOrder, SalesOrderItem, InventoryAllocation, WorkflowHistory,
    SalesChallan, SalesChallanItem, ChallanStatusHistory,
)
from .services import create_challan
from textile_erp.catalog.models import Product
from textile_erp.core.exceptions import WorkflowError
from textile_erp.core.utils import to_decimal


class InventoryAllocationSerializer(serializers.ModelSerializer):
    lot_number = serializers.CharField(source='lot.lot_number', read_only=True)

    class Meta:
        model = InventoryAllocation
        fields = ['id', 'lot', 'lot_number', 'allocated_quantity', 'reserved_date', 'status']
        read_only_fields = fields


class SalesOrderItemSerializer(serializers.ModelSerializer):
    total_price = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    allocations = InventoryAllocationSerializer(many=True, read_only=True)

    class Meta:
        model = SalesOrderItem
        fields = [
            'id', 'product', 'product_name', 'product_code', 'quantity', 'unit', 'weight', 'unit_price',
            'total_price', 'reserved_quantity', 'shipped_quantity', 'delivered_quantity',
            'dispatched_weight', 'deducted_quantity', 'manually_completed', 'item_status', 'notes', 'allocations'
        ]
        read_only_fields = [
            'product_name', 'product_code', 'reserved_quantity', 'shipped_quantity', 'delivered_quantity',
            'dispatched_weight', 'deducted_quantity', 'manually_completed', 'item_status'
        ]


class WorkflowHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = WorkflowHistory
        fields = ['id', 'from_status', 'to_status', 'changed_by', 'changed_date', 'notes', 'system_generated']


def build_so_items(sales_order, items_data):
    """Validate raw item dicts and create the order lines"""
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

        SalesOrderItem.objects.create(
            sales_order=sales_order,
            product=product,
            product_name=product.product_name,
            product_code=product.product_code,
            quantity=quantity,
            unit=item.get('unit') or product.unit,
            weight=to_decimal(item.get('weight')),
            unit_price=to_decimal(item.get('unit_price')),
            notes=item.get('notes') or '',
        )


class SalesOrderSerializer(serializers.ModelSerializer):
    items = SalesOrderItemSerializer(many=True, read_only=True)
    workflow_history = WorkflowHistorySerializer(many=True, read_only=True)
    customer_name = serializers.CharField(source='customer.company_name', read_only=True)
    category_name = serializers.CharField(source='category.category_name', read_only=True, default=None)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)
    completion_percentage = serializers.IntegerField(read_only=True)

    class Meta:
        model = SalesOrder
        fields = [
            'id', 'so_number', 'customer', 'customer_name', 'category', 'category_name', 'order_date',
            'expected_delivery_date', 'actual_delivery_date', 'status', 'payment_status', 'total_amount',
            'shipping_contact', 'shipping_phone', 'shipping_address', 'shipping_city', 'shipping_pincode',
            'tracking_number', 'courier_company', 'shipped_date', 'notes', 'cancellation_reason',
            'cancelled_by', 'cancelled_date', 'completion_percentage', 'items', 'workflow_history',
            'created_by', 'created_by_username', 'last_modified_by', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'so_number', 'actual_delivery_date', 'total_amount', 'tracking_number', 'courier_company',
            'shipped_date', 'cancellation_reason', 'cancelled_by', 'cancelled_date', 'created_by',
            'last_modified_by', 'created_at', 'updated_at'
        ]

    def validate_customer(self, value):
        if self.instance is None and value.status != 'Active':
            raise serializers.ValidationError('Cannot create a sales order for an inactive customer.')
        return value

    def validate_status(self, value):
        if value in ('Shipped', 'Delivered', 'Cancelled', 'Returned') and self.instance is None:
            raise serializers.ValidationError(f'A new sales order cannot start in {value} status.')
        if value == 'Cancelled':
            raise serializers.ValidationError('Use the cancel action to cancel a sales order.')
        return value

    @transaction.atomic
    def create(self, validated_data):
        items_data = self.context.get('items_data') or []
        customer = validated_data['customer']
        if not validated_data.get('shipping_address'):
            validated_data['shipping_address'] = customer.address
        if not validated_data.get('shipping_city'):
            validated_data['shipping_city'] = customer.city
        sales_order = SalesOrder.objects.create(**validated_data)
        build_so_items(sales_order, items_data)
        sales_order.refresh_total_amount()
        sales_order.save()
        sales_order.record_status_change(
            '', sales_order.status,
            changed_by=sales_order.created_by.username if sales_order.created_by else '',
            notes='Sales order created'
        )
        return sales_order

    @transaction.atomic
    def update(self, instance, validated_data):
        items_data = self.context.get('items_data')

        if instance.status in SalesOrder.LOCKED_STATUSES:
            raise WorkflowError(f'Cannot modify a sales order in {instance.status} status.')
        if 'customer' in validated_data and validated_data['customer'] != instance.customer and instance.challans.exists():
            raise WorkflowError('The customer cannot be changed once challans have been created.')

        old_status = instance.status
        for attr, value in validated_data.items():
            setattr(instance, attr, value)

        request = self.context.get('request')
        username = ''
        if request is not None and getattr(request.user, 'is_authenticated', False):
            username = request.user.username
            instance.last_modified_by = username

        if items_data is not None:
            if instance.challans.exists() or instance.items.filter(reserved_quantity__gt=0).exists():
                raise WorkflowError('Items cannot be replaced after stock has been reserved or dispatched.')
            # Drop prefetched lines so totals are computed from the new ones
            instance._prefetched_objects_cache = {}
            instance.items.all().delete()
            build_so_items(instance, items_data)
            instance.refresh_total_amount()

        instance.save()
        if instance.status != old_status:
            instance.record_status_change(old_status, instance.status, username, notes='Updated with order details')
        instance._prefetched_objects_cache = {}
        return instance


class SalesOrderListSerializer(serializers.ModelSerializer):
    customer_name = serializers.CharField(source='customer.company_name', read_only=True)
    item_count = serializers.SerializerMethodField()
    completion_percentage = serializers.IntegerField(read_only=True)

    class Meta:
        model = SalesOrder
        fields = [
            'id', 'so_number', 'customer', 'customer_name', 'order_date', 'expected_delivery_date',
            'status', 'payment_status', 'total_amount', 'completion_percentage', 'item_count', 'created_at'
        ]

    def get_item_count(self, obj):
        return len(obj.items.all())


class SalesChallanItemSerializer(serializers.ModelSerializer):
    class Meta:
        model = SalesChallanItem
        fields = [
            'id', 'sales_order_item', 'product', 'product_name', 'product_code', 'ordered_quantity',
            'dispatch_quantity', 'unit', 'weight', 'manually_completed', 'completion_reason',
            'completed_at', 'item_status', 'notes'
        ]
        read_only_fields = fields


class ChallanStatusHistorySerializer(serializers.ModelSerializer):
    class Meta:
        model = ChallanStatusHistory
        fields = ['id', 'status', 'timestamp', 'notes', 'updated_by']


class SalesChallanSerializer(serializers.ModelSerializer):
    items = SalesChallanItemSerializer(many=True, read_only=True)
    status_history = ChallanStatusHistorySerializer(many=True, read_only=True)
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    created_by_username = serializers.CharField(source='created_by.username', read_only=True, default=None)

    class Meta:
        model = SalesChallan
        fields = [
            'id', 'challan_number', 'challan_date', 'sales_order', 'so_number', 'customer', 'customer_name',
            'warehouse', 'warehouse_name', 'expected_delivery_date', 'delivery_address', 'delivery_city',
            'contact_person', 'contact_phone', 'transport_name', 'vehicle_number', 'driver_name',
            'driver_phone', 'lr_number', 'status', 'notes', 'items', 'status_history', 'created_by',
            'created_by_username', 'last_modified_by', 'created_at', 'updated_at'
        ]
        read_only_fields = [
            'challan_number', 'so_number', 'customer', 'customer_name', 'status', 'created_by',
            'last_modified_by', 'created_at', 'updated_at'
        ]

    def create(self, validated_data):
        request = self.context.get('request')
        user = request.user if request is not None else None
        challan, stock_updates = create_challan(validated_data, self.context.get('items_data') or [], user=user)
        self.stock_updates = stock_updates
        return challan

    def update(self, instance, validated_data):
        if instance.status == 'Delivered':
            raise WorkflowError('Cannot update delivered challan')
        if 'sales_order' in validated_data and validated_data['sales_order'] != instance.sales_order:
            raise WorkflowError('The sales order of a challan cannot be changed.')
        request = self.context.get('request')
        if request is not None and getattr(request.user, 'is_authenticated', False):
            instance.last_modified_by = request.user.username
        return super().update(instance, validated_data)


class SalesChallanListSerializer(serializers.ModelSerializer):
    warehouse_name = serializers.CharField(source='warehouse.name', read_only=True)
    item_count = serializers.SerializerMethodField()
    total_quantity = serializers.SerializerMethodField()

    class Meta:
        model = SalesChallan
        fields = [
            'id', 'challan_number', 'challan_date', 'sales_order', 'so_number', 'customer_name',
            'warehouse', 'warehouse_name', 'status', 'transport_name', 'vehicle_number',
            'item_count', 'total_quantity', 'created_at'
        ]

    def get_item_count(self, obj):
        return len(obj.items.all())

    def get_total_quantity(self, obj):
        return obj.get_total_quantity()
