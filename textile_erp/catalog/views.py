import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Count, ProtectedError
from django.shortcuts import get_object_or_404
from .models import Unit, Category, Product
from .filters import CategoryFilter, ProductFilter
from .serializers import UnitSerializer, CategorySerializer, ProductSerializer
from textile_erp.core.utils import create_audit_log, paginated_response

logger = logging.getLogger(__name__)


def _tracked_changes(old_data, new_data):
    return {k: {'old': old_data.get(k), 'new': new_data.get(k)} for k in old_data if old_data.get(k) != new_data.get(k)}


# Unit views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def unit_list_create(request):
    """List all units or create a new unit"""
    if request.method == 'GET':
        serializer = UnitSerializer(Unit.objects.all(), many=True)
        return Response(serializer.data)
    else:
        serializer = UnitSerializer(data=request.data)
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def unit_detail(request, pk):
    """Retrieve, update or delete a unit"""
    unit = get_object_or_404(Unit, pk=pk)

    if request.method == 'GET':
        return Response(UnitSerializer(unit).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = UnitSerializer(unit, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        unit.delete()
        return Response(status=status.HTTP_204_NO_CONTENT)


# Category views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def category_list_create(request):
    """List all categories or create a new category"""
    if request.method == 'GET':
        queryset = Category.objects.select_related('parent_category').annotate(product_count=Count('products'))
        filterset = CategoryFilter(request.query_params, queryset=queryset)
        queryset = filterset.qs.order_by('sort_order', 'category_name')

        if request.query_params.get('page'):
            return paginated_response(request, queryset, CategorySerializer, default_limit=50)
        return Response(CategorySerializer(queryset, many=True).data)
    else:
        serializer = CategorySerializer(data=request.data)
        if serializer.is_valid():
            category = serializer.save()
            logger.info(f"Category created: {category.category_code} - {category.category_name}")
            create_audit_log(
                request=request,
                action='create',
                model_name='Category',
                object_id=str(category.id),
                object_name=category.category_name,
                object_reference=category.category_code,
                changes={'category_name': category.category_name, 'category_type': category.category_type}
            )
            return Response(CategorySerializer(category).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def category_detail(request, pk):
    """Retrieve, update or delete a category"""
    category = get_object_or_404(Category.objects.select_related('parent_category'), pk=pk)

    if request.method == 'GET':
        return Response(CategorySerializer(category).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = CategorySerializer(category, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            old_data = {'category_name': category.category_name, 'status': category.status}
            serializer.save()
            changes = _tracked_changes(old_data, {'category_name': category.category_name, 'status': category.status})
            if changes:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='Category',
                    object_id=str(category.id),
                    object_name=category.category_name,
                    object_reference=category.category_code,
                    changes=changes
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        category_id = str(category.id)
        category_name = category.category_name
        category_code = category.category_code
        try:
            category.delete()
        except ProtectedError:
            return Response(
                {'error': 'Category is used by products or documents and cannot be deleted.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Category',
            object_id=category_id,
            object_name=category_name,
            object_reference=category_code,
            changes={'category_name': category_name}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Product views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def product_list_create(request):
    """List products (filtered, paginated) or create a new product"""
    if request.method == 'GET':
        queryset = Product.objects.select_related('category', 'supplier')
        filterset = ProductFilter(request.query_params, queryset=queryset)
        if not filterset.is_valid():
            return Response(filterset.errors, status=status.HTTP_400_BAD_REQUEST)
        queryset = filterset.qs.order_by('product_name', 'id')
        return paginated_response(request, queryset, ProductSerializer, default_limit=50)
    else:
        serializer = ProductSerializer(data=request.data)
        if serializer.is_valid():
            product = serializer.save()
            logger.info(f"Product created: {product.product_code} - {product.product_name}")
            create_audit_log(
                request=request,
                action='create',
                model_name='Product',
                object_id=str(product.id),
                object_name=product.product_name,
                object_reference=product.product_code,
                changes={'product_name': product.product_name, 'category': product.category_id}
            )
            return Response(ProductSerializer(product).data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def product_detail(request, pk):
    """Retrieve, update or delete a product"""
    product = get_object_or_404(Product.objects.select_related('category', 'supplier'), pk=pk)

    if request.method == 'GET':
        return Response(ProductSerializer(product).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = ProductSerializer(product, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            old_data = {
                'product_name': product.product_name,
                'category': product.category_id,
                'status': product.status,
            }
            serializer.save()
            new_data = {
                'product_name': product.product_name,
                'category': product.category_id,
                'status': product.status,
            }
            changes = _tracked_changes(old_data, new_data)
            if changes:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name='Product',
                    object_id=str(product.id),
                    object_name=product.product_name,
                    object_reference=product.product_code,
                    changes=changes
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        product_id = str(product.id)
        product_name = product.product_name
        product_code = product.product_code
        try:
            product.delete()
        except ProtectedError:
            return Response(
                {'error': 'Product is referenced by purchase orders, lots or sales documents and cannot be deleted.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name='Product',
            object_id=product_id,
            object_name=product_name,
            object_reference=product_code,
            changes={'product_name': product_name, 'product_code': product_code}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)
