from django.contrib import admin

from .models import CommissionConfig, Expense, RateEntry, SessionRecord


@admin.register(RateEntry)
class RateEntryAdmin(admin.ModelAdmin):
    list_display = ['value_type', 'year', 'month', 'value', 'updated_at']
    list_filter = ['value_type', 'year']
    ordering = ['-year', '-month', 'value_type']


@admin.register(SessionRecord)
class SessionRecordAdmin(admin.ModelAdmin):
    list_display = ['professional', 'child', 'module_name', 'year', 'month', 'session_count', 'is_confirmed']
    list_filter = ['module_name', 'is_confirmed', 'year', 'month']
    search_fields = ['child__full_name', 'professional__username', 'professional__last_name']
    raw_id_fields = ['child']
    readonly_fields = ['confirmed_at', 'confirmed_by', 'created_at', 'updated_at']


@admin.register(CommissionConfig)
class CommissionConfigAdmin(admin.ModelAdmin):
    list_display = ['professional', 'value_type', 'commission_percentage', 'is_active']
    list_filter = ['value_type', 'is_active']
    search_fields = ['professional__username', 'professional__last_name']


@admin.register(Expense)
class ExpenseAdmin(admin.ModelAdmin):
    list_display = ['category', 'year', 'month', 'amount', 'created_by']
    list_filter = ['category', 'year', 'month']
    search_fields = ['category', 'description']
