from django.contrib import admin

from .models import Child, ChildProfessional, HealthInsurance


class ChildProfessionalInline(admin.TabularInline):
    model = ChildProfessional
    extra = 0


@admin.register(Child)
class ChildAdmin(admin.ModelAdmin):
    list_display = ['full_name', 'birth_date', 'assigned_professional', 'health_insurance', 'fee_value', 'is_active']
    list_filter = ['is_active', 'health_insurance', 'assigned_professional']
    search_fields = ['full_name', 'mother_name', 'father_name', 'school']
    inlines = [ChildProfessionalInline]
    fieldsets = (
        ('Child', {
            'fields': ('full_name', 'birth_date', 'assigned_professional', 'fee_value', 'health_insurance')
        }),
        ('Family', {
            'fields': (
                'mother_name', 'mother_phone', 'mother_email',
                'father_name', 'father_phone', 'father_email',
                'emergency_contact_name', 'emergency_contact_phone',
                'address', 'phone', 'email',
            )
        }),
        ('School and referral', {
            'fields': ('school', 'grade', 'diagnosis', 'referral_source', 'referral_doctor'),
            'classes': ('collapse',)
        }),
        ('Status', {
            'fields': ('is_active', 'discharge_date', 'discharge_reason')
        }),
    )


@admin.register(HealthInsurance)
class HealthInsuranceAdmin(admin.ModelAdmin):
    list_display = ['name', 'is_active', 'created_at']
    list_filter = ['is_active']
    search_fields = ['name']
