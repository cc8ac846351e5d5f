from django.urls import path
from .views import (
    customer_list_create, customer_detail,
    supplier_list_create, supplier_detail,
    master_data_import,
)

urlpatterns = [
    # Customer endpoints
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),

    # Supplier endpoints
    path('suppliers/', supplier_list_create, name='supplier-list-create'),
    path('suppliers/<int:pk>/', supplier_detail, name='supplier-detail'),

    # Excel/CSV import
    path('master-data/import/<str:import_type>/', master_data_import, name='master-data-import'),
]
