from django.contrib import admin
from .models import Unit, Category, Product


@admin.register(Unit)
class UnitAdmin(admin.ModelAdmin):
    list_display = ['name', 'created_at']
    search_fields = ['name']


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ['category_code', 'category_name', 'category_type', 'parent_category', 'status', 'sort_order']
    list_filter = ['status', 'category_type']
    search_fields = ['category_code', 'category_name']
    readonly_fields = ['category_code', 'created_at', 'updated_at']


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ['product_code', 'product_name', 'category', 'quality', 'unit', 'status']
    list_filter = ['status', 'quality', 'unit', 'category']
    search_fields = ['product_code', 'product_name', 'description']
    readonly_fields = ['product_code', 'created_at', 'updated_at']
    raw_id_fields = ['category', 'supplier']
