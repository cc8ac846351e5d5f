import django_filters
from django.db.models import Q
from .models import InventoryLot


class InventoryLotFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    product = django_filters.NumberFilter(field_name='product_id', lookup_expr='exact')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    supplier = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')
    warehouse = django_filters.NumberFilter(field_name='warehouse_id', lookup_expr='exact')
    grn = django_filters.NumberFilter(field_name='grn_id', lookup_expr='exact')
    status = django_filters.ChoiceFilter(choices=InventoryLot.STATUS_CHOICES)
    quality_grade = django_filters.ChoiceFilter(choices=InventoryLot.QUALITY_GRADE_CHOICES)
    in_stock = django_filters.BooleanFilter(method='filter_in_stock')

    class Meta:
        model = InventoryLot
        fields = ['search', 'product', 'category', 'supplier', 'warehouse', 'grn', 'status', 'quality_grade', 'in_stock']

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(lot_number__icontains=search) |
            Q(product_name__icontains=search) |
            Q(product__product_code__icontains=search) |
            Q(supplier_name__icontains=search) |
            Q(supplier_batch_number__icontains=search)
        )

    def filter_in_stock(self, queryset, name, value):
        if value is None:
            return queryset
        if value:
            return queryset.filter(current_quantity__gt=0)
        return queryset.filter(current_quantity__lte=0)
