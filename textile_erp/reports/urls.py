from django.urls import path
from . import views

urlpatterns = [
    path('dashboard/stats/', views.dashboard_stats, name='dashboard-stats'),
    path('dashboard/realtime/', views.dashboard_realtime, name='dashboard-realtime'),
    path('master-data/stats/', views.master_data_stats, name='master-data-stats'),
]
