import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes, parser_classes
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from django.db.models import Q, ProtectedError
from django.shortcuts import get_object_or_404
from .models import Customer, Supplier
from .serializers import CustomerSerializer, SupplierSerializer
from .importers import IMPORT_TYPES, ImportFileError, import_master_data, read_rows
from textile_erp.core.utils import create_audit_log, paginated_response

logger = logging.getLogger(__name__)


def _filter_parties(request, queryset):
    search = request.query_params.get('search')
    status_filter = request.query_params.get('status')
    city = request.query_params.get('city')

    if search:
        queryset = queryset.filter(
            Q(company_name__icontains=search) |
            Q(gst_number__icontains=search) |
            Q(pan_number__icontains=search) |
            Q(city__icontains=search)
        )
    if status_filter:
        queryset = queryset.filter(status=status_filter)
    if city:
        queryset = queryset.filter(city__iexact=city)
    return queryset.order_by('company_name', 'id')


def _party_list_create(request, model, serializer_class):
    model_name = model.__name__
    if request.method == 'GET':
        queryset = _filter_parties(request, model.objects.all())
        return paginated_response(request, queryset, serializer_class, default_limit=50)

    serializer = serializer_class(data=request.data)
    if serializer.is_valid():
        party = serializer.save()
        logger.info(f"{model_name} created: {party.company_name}")
        create_audit_log(
            request=request,
            action='create',
            model_name=model_name,
            object_id=str(party.id),
            object_name=party.company_name,
            object_reference=party.gst_number or None,
            changes={'company_name': party.company_name, 'gst_number': party.gst_number}
        )
        return Response(serializer_class(party).data, status=status.HTTP_201_CREATED)
    return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)


def _party_detail(request, party, serializer_class):
    model_name = party.__class__.__name__
    if request.method == 'GET':
        return Response(serializer_class(party).data)
    elif request.method in ('PUT', 'PATCH'):
        serializer = serializer_class(party, data=request.data, partial=request.method == 'PATCH')
        if serializer.is_valid():
            old_data = {'company_name': party.company_name, 'gst_number': party.gst_number, 'status': party.status}
            serializer.save()
            new_data = {'company_name': party.company_name, 'gst_number': party.gst_number, 'status': party.status}
            changes = {k: {'old': old_data[k], 'new': new_data[k]} for k in old_data if old_data[k] != new_data[k]}
            if changes:
                create_audit_log(
                    request=request,
                    action='update',
                    model_name=model_name,
                    object_id=str(party.id),
                    object_name=party.company_name,
                    changes=changes
                )
            return Response(serializer.data)
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)
    else:  # DELETE
        party_id = str(party.id)
        company_name = party.company_name
        try:
            party.delete()
        except ProtectedError:
            return Response(
                {'error': f'{model_name} has purchase or sales documents and cannot be deleted.'},
                status=status.HTTP_400_BAD_REQUEST
            )
        create_audit_log(
            request=request,
            action='delete',
            model_name=model_name,
            object_id=party_id,
            object_name=company_name,
            changes={'company_name': company_name}
        )
        return Response(status=status.HTTP_204_NO_CONTENT)


# Customer views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def customer_list_create(request):
    """List all customers or create a new customer"""
    return _party_list_create(request, Customer, CustomerSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def customer_detail(request, pk):
    """Retrieve, update or delete a customer"""
    customer = get_object_or_404(Customer, pk=pk)
    return _party_detail(request, customer, CustomerSerializer)


# Supplier views
@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def supplier_list_create(request):
    """List all suppliers or create a new supplier"""
    return _party_list_create(request, Supplier, SupplierSerializer)


@api_view(['GET', 'PUT', 'PATCH', 'DELETE'])
@permission_classes([IsAuthenticated])
def supplier_detail(request, pk):
    """Retrieve, update or delete a supplier"""
    supplier = get_object_or_404(Supplier, pk=pk)
    return _party_detail(request, supplier, SupplierSerializer)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
@parser_classes([MultiPartParser, FormParser])
def master_data_import(request, import_type):
    """Import customers, suppliers, categories or products from an uploaded .xlsx/.csv file"""
    if import_type not in IMPORT_TYPES:
        return Response(
            {'error': f"Invalid type. Must be one of: {', '.join(IMPORT_TYPES)}"},
            status=status.HTTP_400_BAD_REQUEST
        )

    uploaded_file = request.FILES.get('file')
    if not uploaded_file:
        return Response({'error': 'No file uploaded'}, status=status.HTTP_400_BAD_REQUEST)

    try:
        rows = read_rows(uploaded_file)
    except ImportFileError as e:
        return Response({'error': str(e)}, status=status.HTTP_400_BAD_REQUEST)

    if not rows:
        return Response({'error': 'File is empty'}, status=status.HTTP_400_BAD_REQUEST)

    results = import_master_data(import_type, rows)
    create_audit_log(
        request=request,
        action='import',
        model_name=import_type,
        object_id=uploaded_file.name,
        object_name=uploaded_file.name,
        changes={k: v for k, v in results.items() if k != 'errors'}
    )
    return Response({'message': 'Import completed successfully', 'data': results})
