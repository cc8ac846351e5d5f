from django.contrib import admin
from .models import PurchaseOrder, PurchaseOrderItem, GoodsReceiptNote, GRNItem


class PurchaseOrderItemInline(admin.TabularInline):
    model = PurchaseOrderItem
    extra = 1
    fields = ['product', 'quantity', 'weight', 'unit', 'unit_price', 'received_quantity', 'receipt_status']
    readonly_fields = ['received_quantity', 'receipt_status']


@admin.register(PurchaseOrder)
class PurchaseOrderAdmin(admin.ModelAdmin):
    list_display = ['po_number', 'supplier', 'order_date', 'status', 'approval_status', 'get_total', 'completion_percentage', 'created_at']
    list_filter = ['status', 'approval_status', 'order_date']
    search_fields = ['po_number', 'supplier__company_name', 'notes']
    ordering = ['-order_date', '-created_at']
    inlines = [PurchaseOrderItemInline]
    readonly_fields = ['po_number', 'total_grns', 'completion_percentage', 'created_at', 'updated_at']

    def get_total(self, obj):
        return f"₹{obj.total_amount:.2f}"
    get_total.short_description = 'Total'


class GRNItemInline(admin.TabularInline):
    model = GRNItem
    extra = 0
    fields = ['product', 'received_quantity', 'accepted_quantity', 'rejected_quantity', 'quality_status', 'manually_completed']


@admin.register(GoodsReceiptNote)
class GoodsReceiptNoteAdmin(admin.ModelAdmin):
    list_display = ['grn_number', 'purchase_order', 'supplier', 'receipt_date', 'status', 'receipt_status', 'approval_status']
    list_filter = ['status', 'receipt_status', 'quality_check_status', 'receipt_date']
    search_fields = ['grn_number', 'purchase_order__po_number', 'supplier__company_name']
    ordering = ['-receipt_date', '-created_at']
    inlines = [GRNItemInline]
    readonly_fields = ['grn_number', 'created_at', 'updated_at']
