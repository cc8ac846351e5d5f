import django_filters
from django.db.models import Q
from .models import Category, Product


class ProductFilter(django_filters.FilterSet):
    """Filter for Product listing using django-filter"""

    # Searches name, code, description and category name
    search = django_filters.CharFilter(method='filter_search', label='Search')

    category = django_filters.NumberFilter(field_name='category_id', lookup_expr='exact')
    supplier = django_filters.NumberFilter(field_name='supplier_id', lookup_expr='exact')
    status = django_filters.ChoiceFilter(choices=Product.STATUS_CHOICES)
    quality = django_filters.ChoiceFilter(choices=Product.QUALITY_CHOICES)
    unit = django_filters.CharFilter(field_name='unit', lookup_expr='iexact')
    category_type = django_filters.CharFilter(field_name='category__category_type', lookup_expr='iexact')

    class Meta:
        model = Product
        fields = ['search', 'category', 'supplier', 'status', 'quality', 'unit', 'category_type']

    def filter_search(self, queryset, name, value):
        """
        Multi-word searches match products whose name contains every word
        (in any order); a single term also matches code, description and category.
        """
        search = (value or '').strip()
        if not search:
            return queryset

        words = [w for w in search.split() if w]
        if len(words) > 1:
            combined_query = Q()
            for word in words:
                combined_query &= Q(product_name__icontains=word)
            return queryset.filter(combined_query | Q(product_name__icontains=search)).distinct()

        return queryset.filter(
            Q(product_name__icontains=search) |
            Q(product_code__icontains=search) |
            Q(description__icontains=search) |
            Q(category__category_name__icontains=search)
        ).distinct()


class CategoryFilter(django_filters.FilterSet):
    search = django_filters.CharFilter(method='filter_search', label='Search')
    status = django_filters.ChoiceFilter(choices=Category.STATUS_CHOICES)
    category_type = django_filters.ChoiceFilter(choices=Category.CATEGORY_TYPE_CHOICES)
    parent = django_filters.NumberFilter(field_name='parent_category_id', lookup_expr='exact')

    class Meta:
        model = Category
        fields = ['search', 'status', 'category_type', 'parent']

    def filter_search(self, queryset, name, value):
        search = (value or '').strip()
        if not search:
            return queryset
        return queryset.filter(
            Q(category_name__icontains=search) |
            Q(category_code__icontains=search) |
            Q(description__icontains=search)
        )
