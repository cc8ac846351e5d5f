import logging
from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.shortcuts import get_object_or_404
from django.db.models import ProtectedError
from .models import Warehouse
from .serializers import WarehouseSerializer

logger = logging.getLogger(__name__)


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def warehouse_list_create(request):
    """List all warehouses or create a new warehouse"""
    if request.method == 'GET':
        queryset = Warehouse.objects.all()
        if request.query_params.get('active') == 'true':
            queryset = queryset.filter(is_active=True)
        warehouse_type = request.query_params.get('type')
        if warehouse_type:
            queryset = queryset.filter(warehouse_type=warehouse_type)
        serializer = WarehouseSerializer(queryset, many=True)
        return Response(serializer.data)
    else:
        serializer = WarehouseSerializer(data=request.data)
        if serializer.is_valid():
            warehouse = serializer.save()
            logger.info(f"User {request.user.username} created warehouse {warehouse.code}")
            return Response(serializer.data, status=status.HTTP_201_CREATED)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def warehouse_detail(request, pk):
    """Retrieve, update or delete a warehouse"""
    warehouse = get_object_or_404(Warehouse, pk=pk)

    if request.method == 'GET':
        return Response(WarehouseSerializer(warehouse).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = WarehouseSerializer(warehouse, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            serializer.save()
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        try:
            warehouse.delete()
        except ProtectedError:
            return Response(
                {'error': 'Warehouse holds challans and cannot be deleted. Mark it inactive instead.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        return Response(status=status.HTTP_204_NO_CONTENT)
