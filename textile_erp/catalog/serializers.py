from rest_framework import serializers
from .models import Unit, Category, Product


class UnitSerializer(serializers.ModelSerializer):
    class Meta:
        model = Unit
        fields = ['id', 'name', 'created_at', 'updated_at']

    def validate_name(self, value):
        value = value.strip()
        queryset = Unit.objects.filter(name__iexact=value)
        if self.instance:
            queryset = queryset.exclude(pk=self.instance.pk)
        if queryset.exists():
            raise serializers.ValidationError('Unit with this name already exists.')
        return value


class CategorySerializer(serializers.ModelSerializer):
    parent_category_name = serializers.CharField(source='parent_category.category_name', read_only=True, default=None)
    product_count = serializers.SerializerMethodField()

    class Meta:
        model = Category
        fields = [
            'id', 'category_code', 'category_name', 'description', 'status',
            'parent_category', 'parent_category_name', 'category_type', 'unit',
            'standard_weight', 'sort_order', 'product_count', 'created_at', 'updated_at'
        ]
        read_only_fields = ['category_code', 'created_at', 'updated_at']

    def get_product_count(self, obj):
        annotated = getattr(obj, 'product_count', None)
        if annotated is not None:
            return annotated
        return obj.products.count()

    def validate_category_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Category name is required.')
        return value

    def validate(self, attrs):
        parent = attrs.get('parent_category')
        if parent and self.instance and parent.pk == self.instance.pk:
            raise serializers.ValidationError({'parent_category': 'A category cannot be its own parent.'})
        return attrs


class ProductSerializer(serializers.ModelSerializer):
    category_name = serializers.CharField(source='category.category_name', read_only=True)
    category_code = serializers.CharField(source='category.category_code', read_only=True)
    supplier_name = serializers.CharField(source='supplier.company_name', read_only=True, default=None)

    class Meta:
        model = Product
        fields = [
            'id', 'product_code', 'product_name', 'description', 'category', 'category_name',
            'category_code', 'status', 'supplier', 'supplier_name', 'yarn_count', 'color',
            'quality', 'weight', 'composition', 'unit', 'minimum_stock', 'reorder_level',
            'notes', 'created_at', 'updated_at'
        ]
        read_only_fields = ['product_code', 'created_at', 'updated_at']

    def validate_product_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Product name is required.')
        return value
