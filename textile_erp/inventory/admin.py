from django.contrib import admin
from .models import InventoryLot, LotMovement


class LotMovementInline(admin.TabularInline):
    model = LotMovement
    extra = 0
    fields = ['movement_type', 'quantity', 'weight', 'date', 'reference', 'performed_by']
    readonly_fields = fields


@admin.register(InventoryLot)
class InventoryLotAdmin(admin.ModelAdmin):
    list_display = ['lot_number', 'product_name', 'supplier_name', 'current_quantity', 'reserved_quantity', 'available_quantity', 'warehouse', 'status', 'received_date']
    list_filter = ['status', 'warehouse', 'quality_grade', 'received_date']
    search_fields = ['lot_number', 'product_name', 'supplier_name', 'supplier_batch_number']
    ordering = ['-received_date']
    inlines = [LotMovementInline]
    readonly_fields = ['lot_number', 'available_quantity', 'status', 'created_at', 'updated_at']


@admin.register(LotMovement)
class LotMovementAdmin(admin.ModelAdmin):
    list_display = ['lot', 'movement_type', 'quantity', 'weight', 'date', 'reference', 'performed_by']
    list_filter = ['movement_type', 'date']
    search_fields = ['lot__lot_number', 'reference']
