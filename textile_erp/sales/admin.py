from django.contrib import admin
from .models import (
    SalesOrder, SalesOrderItem, InventoryAllocation, WorkflowHistory,
    SalesChallan, SalesChallanItem, ChallanStatusHistory,
)


class SalesOrderItemInline(admin.TabularInline):
    model = SalesOrderItem
    extra = 1
    fields = ['product', 'quantity', 'unit', 'weight', 'unit_price', 'reserved_quantity', 'delivered_quantity', 'item_status']
    readonly_fields = ['reserved_quantity', 'delivered_quantity', 'item_status']


class WorkflowHistoryInline(admin.TabularInline):
    model = WorkflowHistory
    extra = 0
    readonly_fields = ['from_status', 'to_status', 'changed_by', 'changed_date', 'notes', 'system_generated']


@admin.register(SalesOrder)
class SalesOrderAdmin(admin.ModelAdmin):
    list_display = ['so_number', 'customer', 'order_date', 'status', 'payment_status', 'get_total', 'created_at']
    list_filter = ['status', 'payment_status', 'order_date']
    search_fields = ['so_number', 'customer__company_name', 'tracking_number']
    ordering = ['-order_date', '-created_at']
    inlines = [SalesOrderItemInline, WorkflowHistoryInline]
    readonly_fields = ['so_number', 'created_at', 'updated_at']

    def get_total(self, obj):
        return f"₹{obj.total_amount:.2f}"
    get_total.short_description = 'Total'


@admin.register(InventoryAllocation)
class InventoryAllocationAdmin(admin.ModelAdmin):
    list_display = ['order_item', 'lot', 'allocated_quantity', 'status', 'reserved_date']
    list_filter = ['status']
    search_fields = ['order_item__sales_order__so_number', 'lot__lot_number']


class SalesChallanItemInline(admin.TabularInline):
    model = SalesChallanItem
    extra = 0
    fields = ['sales_order_item', 'product', 'dispatch_quantity', 'weight', 'manually_completed', 'item_status']


class ChallanStatusHistoryInline(admin.TabularInline):
    model = ChallanStatusHistory
    extra = 0
    readonly_fields = ['status', 'timestamp', 'notes', 'updated_by']


@admin.register(SalesChallan)
class SalesChallanAdmin(admin.ModelAdmin):
    list_display = ['challan_number', 'so_number', 'customer_name', 'warehouse', 'challan_date', 'status']
    list_filter = ['status', 'warehouse', 'challan_date']
    search_fields = ['challan_number', 'so_number', 'customer_name', 'vehicle_number']
    ordering = ['-challan_date', '-created_at']
    inlines = [SalesChallanItemInline, ChallanStatusHistoryInline]
    readonly_fields = ['challan_number', 'so_number', 'created_at', 'updated_at']
