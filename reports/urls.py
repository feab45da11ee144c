# reports/urls.py
from django.urls import path

from . import views

app_name = 'reports'

urlpatterns = [
    path('dashboard/', views.dashboard, name='dashboard'),
    path('monthly/', views.monthly, name='monthly'),
    path('professionals/', views.professionals, name='professionals'),
    path('financial-health/', views.financial_health, name='financial_health'),
    path('payment-status/', views.payment_status, name='payment_status'),
]
