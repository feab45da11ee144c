from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import User


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ['username', 'full_name', 'email', 'role', 'specialization', 'is_active']
    list_filter = ['role', 'is_active', 'is_superuser']
    search_fields = ['username', 'first_name', 'last_name', 'email', 'license_number']

    fieldsets = BaseUserAdmin.fieldsets + (
        ('Clinic profile', {
            'fields': ('role', 'phone', 'specialization', 'license_number')
        }),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ('Clinic profile', {
            'fields': ('email', 'first_name', 'last_name', 'role')
        }),
    )
