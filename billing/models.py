# billing/models.py
from decimal import Decimal

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

VALUE_TYPE_CHOICES = [
    ('nomenclature', 'Nomenclature'),
    ('module', 'Module'),
    ('insurance', 'Insurance'),
    ('single_session', 'Single Session'),
]
VALUE_TYPES = [value for value, _ in VALUE_TYPE_CHOICES]

MONTH_VALIDATORS = [MinValueValidator(1), MaxValueValidator(12)]


class RateEntry(models.Model):
    """
    Per-session price of a value type for one month. Saving a rate for a
    period that already has one overwrites it.
    """
    value_type = models.CharField(max_length=30, choices=VALUE_TYPE_CHOICES)
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField(validators=MONTH_VALIDATORS)
    value = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0'))])
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year', '-month', 'value_type']
        verbose_name = 'Rate'
        verbose_name_plural = 'Rates'
        constraints = [
            models.UniqueConstraint(fields=['value_type', 'year', 'month'], name='unique_rate_per_period'),
        ]

    def __str__(self):
        return f"{self.get_value_type_display()} {self.month:02d}/{self.year}: {self.value}"

    @classmethod
    def rates_for(cls, year, month):
        """Map of value_type -> value for a period"""
        return dict(cls.objects.filter(year=year, month=month).values_list('value_type', 'value'))

    def as_dict(self):
        return {
            'id': self.pk,
            'value_type': self.value_type,
            'year': self.year,
            'month': self.month,
            'value': self.value,
            'updated_at': self.updated_at,
        }


class SessionRecord(models.Model):
    """Monthly count of sessions a professional held with a child under one module"""
    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='session_records'
    )
    child = models.ForeignKey('children.Child', on_delete=models.CASCADE, related_name='session_records')
    module_name = models.CharField(max_length=30, choices=VALUE_TYPE_CHOICES)
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField(validators=MONTH_VALIDATORS)
    session_count = models.PositiveIntegerField(default=0)
    individual_sessions = models.PositiveIntegerField(default=0)
    group_sessions = models.PositiveIntegerField(default=0)
    observations = models.TextField(blank=True)

    is_confirmed = models.BooleanField(default=False)
    confirmed_at = models.DateTimeField(null=True, blank=True)
    confirmed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year', '-month', 'child__full_name', 'module_name']
        constraints = [
            models.UniqueConstraint(
                fields=['professional', 'child', 'year', 'month', 'module_name'],
                name='unique_session_record',
            ),
        ]
        indexes = [
            models.Index(fields=['professional', 'year', 'month'], name='billing_ses_profess_1c9a4d_idx'),
        ]

    def __str__(self):
        return f"{self.child} {self.module_name} {self.month:02d}/{self.year}: {self.session_count}"

    def as_dict(self):
        return {
            'id': self.pk,
            'professional_id': self.professional_id,
            'child_id': self.child_id,
            'child_name': self.child.full_name,
            'module_name': self.module_name,
            'year': self.year,
            'month': self.month,
            'session_count': self.session_count,
            'individual_sessions': self.individual_sessions,
            'group_sessions': self.group_sessions,
            'observations': self.observations,
            'is_confirmed': self.is_confirmed,
            'confirmed_at': self.confirmed_at,
        }


class CommissionConfig(models.Model):
    """Percentage of a module's billing that goes to the professional"""
    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='commission_configs'
    )
    value_type = models.CharField(max_length=30, choices=VALUE_TYPE_CHOICES)
    commission_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['professional', 'value_type']
        verbose_name = 'Commission'
        verbose_name_plural = 'Commissions'
        constraints = [
            models.UniqueConstraint(fields=['professional', 'value_type'], name='unique_commission_per_module'),
        ]

    def __str__(self):
        return f"{self.professional} {self.value_type}: {self.commission_percentage}%"

    def as_dict(self):
        return {
            'id': self.pk,
            'professional_id': self.professional_id,
            'value_type': self.value_type,
            'commission_percentage': self.commission_percentage,
            'is_active': self.is_active,
        }


class Expense(models.Model):
    """Clinic operating expense ("consumo") for a month"""
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField(validators=MONTH_VALIDATORS)
    category = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year', '-month', 'category']

    def __str__(self):
        return f"{self.category} {self.month:02d}/{self.year}: {self.amount}"

    def as_dict(self):
        return {
            'id': self.pk,
            'year': self.year,
            'month': self.month,
            'category': self.category,
            'description': self.description,
            'amount': self.amount,
        }
