# users/urls.py
from django.urls import path

from . import views

app_name = 'users'

urlpatterns = [
    path('me/', views.current_user, name='current_user'),

    path('professionals/', views.professional_list, name='professional_list'),
    path('professionals/create/', views.professional_create, name='professional_create'),
    path('professionals/<int:pk>/', views.professional_detail, name='professional_detail'),
    path('professionals/<int:pk>/update/', views.professional_update, name='professional_update'),
    path('professionals/<int:pk>/deactivate/', views.professional_deactivate, name='professional_deactivate'),
    path('professionals/<int:pk>/reactivate/', views.professional_reactivate, name='professional_reactivate'),
    path('professionals/<int:pk>/stats/', views.professional_stats, name='professional_stats'),
]
