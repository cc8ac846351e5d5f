"""
URL configuration for the textile ERP project.

The `urlpatterns` list routes URLs to views. For more information please see:
    https://docs.djangoproject.com/en/5.2/topics/http/urls/
Every business app is mounted under the versioned API prefix.
"""
from django.contrib import admin
from django.urls import path, include, re_path
from django.conf import settings
from django.views.static import serve

admin.site.site_header = "Textile ERP Admin Panel"
admin.site.site_title = "Textile ERP Admin Portal"
admin.site.index_title = "Procurement, Inventory and Sales Administration"

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/v1/', include('textile_erp.core.urls')),
    path('api/v1/', include('textile_erp.locations.urls')),
    path('api/v1/', include('textile_erp.catalog.urls')),
    path('api/v1/', include('textile_erp.parties.urls')),
    path('api/v1/', include('textile_erp.purchasing.urls')),
    path('api/v1/', include('textile_erp.inventory.urls')),
    path('api/v1/', include('textile_erp.sales.urls')),
    path('api/v1/', include('textile_erp.reports.urls')),
    re_path(r'^media/(?P<path>.*)$', serve, {'document_root': settings.MEDIA_ROOT}),
]
