import django_filters
from django.db.models import Q
from django.utils import timezone
from .models import PurchaseOrder, GoodsReceiptNote


class PurchaseOrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    supplier = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    status = django_filters.ChoiceFilter(choices=PurchaseOrder.STATUS_CHOICES)
    approval_status = django_filters.ChoiceFilter(choices=PurchaseOrder.APPROVAL_STATUS_CHOICES)
    date_from = django_filters.DateFilter(field_name='order_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='order_date', lookup_expr='lte')
    overdue = django_filters.BooleanFilter(method='filter_overdue')

    class Meta:
        model = PurchaseOrder
        fields = ['search', 'supplier', 'category', 'status', 'approval_status', 'date_from', 'date_to', 'overdue']

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(po_number__icontains=search) |
            Q(supplier__company_name__icontains=search) |
            Q(notes__icontains=search)
        )

    def filter_overdue(self, queryset, name, value):
        if not value:
            return queryset
        return queryset.filter(
            expected_delivery_date__lt=timezone.localdate()
        ).exclude(status__in=PurchaseOrder.CLOSED_STATUSES)


class GoodsReceiptNoteFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    purchase_order = django_filters.NumberFilter(field_name='purchase_order_id', lookup_expr='exact')
    supplier = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')
    status = django_filters.ChoiceFilter(choices=GoodsReceiptNote.STATUS_CHOICES)
    receipt_status = django_filters.ChoiceFilter(choices=GoodsReceiptNote.RECEIPT_STATUS_CHOICES)
    quality_check_status = django_filters.ChoiceFilter(choices=GoodsReceiptNote.QUALITY_CHECK_STATUS_CHOICES)
    date_from = django_filters.DateFilter(field_name='receipt_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='receipt_date', lookup_expr='lte')

    class Meta:
        model = GoodsReceiptNote
        fields = [
            'search', 'purchase_order', 'supplier', 'status', 'receipt_status',
            'quality_check_status', 'date_from', 'date_to'
        ]

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(grn_number__icontains=search) |
            Q(purchase_order__po_number__icontains=search) |
            Q(supplier__company_name__icontains=search) |
            Q(delivery_note_number__icontains=search)
        )
