# liquidations/urls.py
from django.urls import path

from . import views

app_name = 'liquidations'

urlpatterns = [
    path('', views.liquidation_list, name='liquidation_list'),
    path('calculate/', views.calculate, name='calculate'),
    path('mine/', views.my_liquidations, name='my_liquidations'),
    path('stats/', views.liquidation_stats, name='liquidation_stats'),
    path('<int:pk>/', views.liquidation_detail, name='liquidation_detail'),
    path('<int:pk>/approve/', views.approve, name='approve'),
    path('<int:pk>/pay/', views.mark_paid, name='mark_paid'),
    path('<int:pk>/cancel/', views.cancel, name='cancel'),
    path('<int:pk>/statement.pdf', views.statement_pdf, name='statement_pdf'),

    # Payments to clinic
    path('payments/', views.payment_list, name='payment_list'),
    path('payments/create/', views.payment_create, name='payment_create'),
    path('payments/mine/', views.my_payments, name='my_payments'),
    path('payments/balances/', views.balances, name='balances'),
    path('payments/<int:pk>/review/', views.payment_review, name='payment_review'),
]
