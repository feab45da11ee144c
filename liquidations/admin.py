from django.contrib import admin

from .models import Liquidation, PaymentToClinic


@admin.register(Liquidation)
class LiquidationAdmin(admin.ModelAdmin):
    list_display = [
        'professional', 'year', 'month', 'total_sessions',
        'total_amount', 'professional_amount', 'clinic_amount', 'status',
    ]
    list_filter = ['status', 'year', 'month']
    search_fields = ['professional__username', 'professional__first_name', 'professional__last_name']
    readonly_fields = [
        'module_breakdown', 'calculated_at', 'approved_at', 'approved_by',
        'paid_at', 'paid_by', 'created_at', 'updated_at',
    ]


@admin.register(PaymentToClinic)
class PaymentToClinicAdmin(admin.ModelAdmin):
    list_display = ['professional', 'year', 'month', 'payment_date', 'payment_type', 'amount', 'verification_status']
    list_filter = ['verification_status', 'payment_type', 'year', 'month']
    search_fields = ['professional__username', 'professional__last_name', 'notes']
    readonly_fields = ['verified_by', 'verified_at', 'created_at']
