# core/urls.py
from django.urls import path

from . import views
from .health_check import health_check

app_name = 'core'

urlpatterns = [
    path('health/', health_check, name='health_check'),

    path('notifications/', views.notification_list, name='notification_list'),
    path('notifications/<int:pk>/read/', views.mark_notification_read, name='mark_notification_read'),
    path('notifications/read-all/', views.mark_all_notifications_read, name='mark_all_notifications_read'),

    path('maintenance/audit-logs/', views.audit_log_list, name='audit_logs'),
    path('maintenance/settings/', views.system_settings, name='settings'),
]
