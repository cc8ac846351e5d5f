from django.contrib import admin
from .models import Customer, Supplier


@admin.register(Customer)
class CustomerAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'gst_number', 'pan_number', 'city', 'status', 'created_at']
    list_filter = ['status', 'city']
    search_fields = ['company_name', 'gst_number', 'pan_number']


@admin.register(Supplier)
class SupplierAdmin(admin.ModelAdmin):
    list_display = ['company_name', 'gst_number', 'pan_number', 'city', 'status', 'created_at']
    list_filter = ['status', 'city']
    search_fields = ['company_name', 'gst_number', 'pan_number']
