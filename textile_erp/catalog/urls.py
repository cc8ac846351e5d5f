from django.urls import path
from .views import (
    unit_list_create, unit_detail,
    category_list_create, category_detail,
    product_list_create, product_detail,
)

urlpatterns = [
    path('units/', unit_list_create, name='unit-list-create'),
    path('units/<int:pk>/', unit_detail, name='unit-detail'),
    path('categories/', category_list_create, name='category-list-create'),
    path('categories/<int:pk>/', category_detail, name='category-detail'),
    path('products/', product_list_create, name='product-list-create'),
    path('products/<int:pk>/', product_detail, name='product-detail'),
]
