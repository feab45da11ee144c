# children/urls.py
from django.urls import path

from . import views

app_name = 'children'

urlpatterns = [
    path('', views.child_list, name='child_list'),
    path('create/', views.child_create, name='child_create'),
    path('<int:pk>/', views.child_detail, name='child_detail'),
    path('<int:pk>/update/', views.child_update, name='child_update'),
    path('<int:pk>/deactivate/', views.child_deactivate, name='child_deactivate'),
    path('<int:pk>/reactivate/', views.child_reactivate, name='child_reactivate'),
    path('<int:pk>/modules/', views.child_modules, name='child_modules'),

    path('health-insurances/', views.health_insurance_list, name='health_insurance_list'),
    path('health-insurances/create/', views.health_insurance_save, name='health_insurance_create'),
    path('health-insurances/<int:pk>/update/', views.health_insurance_save, name='health_insurance_update'),
    path('health-insurances/<int:pk>/toggle/', views.health_insurance_toggle, name='health_insurance_toggle'),
    path('health-insurances/<int:pk>/delete/', views.health_insurance_delete, name='health_insurance_delete'),
]
