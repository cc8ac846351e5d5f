import django_filters
from django.db.models import Q
from .models import SalesOrder, SalesChallan


class SalesOrderFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    customer = django_filters.NumberFilter(field_name='customer_id', lookup_expr='exact')
    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    status = django_filters.ChoiceFilter(choices=SalesOrder.STATUS_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=SalesOrder.PAYMENT_STATUS_CHOICES)
    date_from = django_filters.DateFilter(field_name='order_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='order_date', lookup_expr='lte')

    class Meta:
        model = SalesOrder
        fields = ['search', 'customer', 'category', 'status', 'payment_status', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(so_number__icontains=search) |
            Q(customer__company_name__icontains=search) |
            Q(tracking_number__icontains=search) |
            Q(notes__icontains=search)
        )


class SalesChallanFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    sales_order = django_filters.NumberFilter(field_name='sales_order_id', lookup_expr='exact')
    customer = django_filters.NumberFilter(field_name='customer_id', lookup_expr='exact')
    warehouse = django_filters.NumberFilter(field_name='warehouse_id', lookup_expr='exact')
    status = django_filters.ChoiceFilter(choices=SalesChallan.STATUS_CHOICES)
    date_from = django_filters.DateFilter(field_name='challan_date', lookup_expr='gte')
    date_to = django_filters.DateFilter(field_name='challan_date', lookup_expr='lte')

    class Meta:
        model = SalesChallan
        fields = ['search', 'sales_order', 'customer', 'warehouse', 'status', 'date_from', 'date_to']

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(challan_number__icontains=search) |
            Q(so_number__icontains=search) |
            Q(customer_name__icontains=search) |
            Q(vehicle_number__icontains=search) |
            Q(transport_name__icontains=search)
        )
