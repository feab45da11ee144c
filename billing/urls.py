# billing/urls.py
from django.urls import path

from . import views

app_name = 'billing'

urlpatterns = [
    # Rates
    path('rates/', views.rate_list, name='rate_list'),
    path('rates/save/', views.rate_save, name='rate_save'),
    path('rates/<int:pk>/delete/', views.rate_delete, name='rate_delete'),

    # Monthly sessions
    path('sessions/', views.session_list, name='session_list'),
    path('sessions/save/', views.session_save, name='session_save'),
    path('sessions/confirm/', views.session_confirm, name='session_confirm'),
    path('sessions/<int:pk>/delete/', views.session_delete, name='session_delete'),

    # Commissions
    path('commissions/', views.commission_list, name='commission_list'),
    path('commissions/save/', views.commission_save, name='commission_save'),
    path('commissions/effective/', views.commission_effective, name='commission_effective'),
    path('commissions/<int:pk>/toggle/', views.commission_toggle, name='commission_toggle'),
    path('commissions/<int:pk>/delete/', views.commission_delete, name='commission_delete'),

    # Expenses
    path('expenses/', views.expense_list, name='expense_list'),
    path('expenses/create/', views.expense_create, name='expense_create'),
    path('expenses/stats/', views.expense_stats, name='expense_stats'),
    path('expenses/<int:pk>/update/', views.expense_update, name='expense_update'),
    path('expenses/<int:pk>/delete/', views.expense_delete, name='expense_delete'),
]
