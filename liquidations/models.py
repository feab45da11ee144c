# liquidations/models.py
from decimal import Decimal

from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Sum
from django.utils import timezone

from billing.models import MONTH_VALIDATORS

from .exceptions import InvalidStateTransition


class Liquidation(models.Model):
    """
    Monthly settlement of a professional's billing: what they earned and
    what the clinic keeps. One per professional and period.
    """
    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_PAID = 'paid'
    STATUS_CANCELLED = 'cancelled'

    STATUS_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_PAID, 'Paid'),
        (STATUS_CANCELLED, 'Cancelled'),
    ]

    # target status -> statuses it may be reached from
    ALLOWED_TRANSITIONS = {
        STATUS_APPROVED: (STATUS_PENDING,),
        STATUS_PAID: (STATUS_APPROVED,),
        STATUS_CANCELLED: (STATUS_PENDING, STATUS_APPROVED),
    }
    LOCKED_STATUSES = (STATUS_APPROVED, STATUS_PAID)

    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='liquidations'
    )
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField(validators=MONTH_VALIDATORS)

    total_sessions = models.PositiveIntegerField(default=0)
    total_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    professional_percentage = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal('25'),
        validators=[MinValueValidator(Decimal('0')), MaxValueValidator(Decimal('100'))],
    )
    professional_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    clinic_amount = models.DecimalField(max_digits=12, decimal_places=2, default=Decimal('0'))
    module_breakdown = models.JSONField(default=list, blank=True, encoder=DjangoJSONEncoder)

    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    calculated_at = models.DateTimeField(default=timezone.now)
    approved_at = models.DateTimeField(null=True, blank=True)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    paid_at = models.DateTimeField(null=True, blank=True)
    paid_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    payment_reference = models.CharField(max_length=100, blank=True)
    observations = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-year', '-month', 'professional__last_name', 'professional__first_name']
        constraints = [
            models.UniqueConstraint(fields=['professional', 'year', 'month'], name='unique_liquidation_per_period'),
        ]
        indexes = [
            models.Index(fields=['year', 'month', 'status'], name='liquidation_year_27b0f1_idx'),
        ]

    def __str__(self):
        return f"Liquidation {self.professional} {self.month:02d}/{self.year} ({self.status})"

    @property
    def is_locked(self):
        return self.status in self.LOCKED_STATUSES

    def _check_transition(self, target):
        if self.status not in self.ALLOWED_TRANSITIONS[target]:
            raise InvalidStateTransition(self.status, target)

    def approve(self, user):
        """pending -> approved"""
        self._check_transition(self.STATUS_APPROVED)
        self.status = self.STATUS_APPROVED
        self.approved_at = timezone.now()
        self.approved_by = user
        self.save(update_fields=['status', 'approved_at', 'approved_by', 'updated_at'])

    def mark_as_paid(self, user, reference=None):
        """approved -> paid"""
        self._check_transition(self.STATUS_PAID)
        self.status = self.STATUS_PAID
        self.paid_at = timezone.now()
        self.paid_by = user
        self.payment_reference = reference or ''
        self.save(update_fields=['status', 'paid_at', 'paid_by', 'payment_reference', 'updated_at'])

    def cancel(self, reason=''):
        """pending or approved -> cancelled"""
        self._check_transition(self.STATUS_CANCELLED)
        self.status = self.STATUS_CANCELLED
        update_fields = ['status', 'updated_at']
        if reason:
            self.observations = reason
            update_fields.append('observations')
        self.save(update_fields=update_fields)

    def approved_payments(self):
        return PaymentToClinic.objects.filter(
            professional_id=self.professional_id,
            year=self.year,
            month=self.month,
            verification_status=PaymentToClinic.STATUS_APPROVED,
        )

    @property
    def paid_to_clinic(self):
        return self.approved_payments().aggregate(total=Sum('amount'))['total'] or Decimal('0.00')

    @property
    def owed_to_clinic(self):
        """Clinic share still owed by the professional; never negative"""
        return max(self.clinic_amount - self.paid_to_clinic, Decimal('0.00'))

    def as_dict(self, include_balance=True):
        data = {
            'id': self.pk,
            'professional_id': self.professional_id,
            'professional_name': self.professional.full_name,
            'year': self.year,
            'month': self.month,
            'total_sessions': self.total_sessions,
            'total_amount': self.total_amount,
            'professional_percentage': self.professional_percentage,
            'professional_amount': self.professional_amount,
            'clinic_amount': self.clinic_amount,
            'module_breakdown': self.module_breakdown,
            'status': self.status,
            'calculated_at': self.calculated_at,
            'approved_at': self.approved_at,
            'approved_by_id': self.approved_by_id,
            'paid_at': self.paid_at,
            'paid_by_id': self.paid_by_id,
            'payment_reference': self.payment_reference,
            'observations': self.observations,
        }
        if include_balance:
            paid = self.paid_to_clinic
            data['paid_to_clinic'] = paid
            data['owed_to_clinic'] = max(self.clinic_amount - paid, Decimal('0.00'))
        return data


class PaymentToClinic(models.Model):
    """Money a professional reports having handed over to the clinic"""
    TYPE_CASH = 'cash'
    TYPE_TRANSFER = 'transfer'
    PAYMENT_TYPE_CHOICES = [
        (TYPE_CASH, 'Cash'),
        (TYPE_TRANSFER, 'Transfer'),
    ]

    STATUS_PENDING = 'pending'
    STATUS_APPROVED = 'approved'
    STATUS_REJECTED = 'rejected'
    VERIFICATION_CHOICES = [
        (STATUS_PENDING, 'Pending'),
        (STATUS_APPROVED, 'Approved'),
        (STATUS_REJECTED, 'Rejected'),
    ]

    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.PROTECT, related_name='payments_to_clinic'
    )
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField(validators=MONTH_VALIDATORS)
    payment_date = models.DateField()
    payment_type = models.CharField(max_length=20, choices=PAYMENT_TYPE_CHOICES)
    amount = models.DecimalField(max_digits=12, decimal_places=2, validators=[MinValueValidator(Decimal('0.01'))])
    notes = models.TextField(blank=True)

    verification_status = models.CharField(max_length=20, choices=VERIFICATION_CHOICES, default=STATUS_PENDING)
    verified_by = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True, related_name='+'
    )
    verified_at = models.DateTimeField(null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-payment_date', '-created_at']
        verbose_name = 'Payment to Clinic'
        verbose_name_plural = 'Payments to Clinic'
        indexes = [
            models.Index(fields=['professional', 'year', 'month'], name='payment_pro_period_8e2c3a_idx'),
        ]

    def __str__(self):
        return f"{self.professional} {self.amount} ({self.verification_status})"

    def review(self, status, user):
        """Approve or reject a pending payment"""
        if status not in (self.STATUS_APPROVED, self.STATUS_REJECTED):
            raise ValueError(f"Invalid verification status: {status}")
        if self.verification_status != self.STATUS_PENDING:
            raise InvalidStateTransition(self.verification_status, status)
        self.verification_status = status
        self.verified_by = user
        self.verified_at = timezone.now()
        self.save(update_fields=['verification_status', 'verified_by', 'verified_at'])

    def as_dict(self):
        return {
            'id': self.pk,
            'professional_id': self.professional_id,
            'professional_name': self.professional.full_name,
            'professional_email': self.professional.email,
            'year': self.year,
            'month': self.month,
            'payment_date': self.payment_date,
            'payment_type': self.payment_type,
            'amount': self.amount,
            'notes': self.notes,
            'verification_status': self.verification_status,
            'verified_by_id': self.verified_by_id,
            'verified_at': self.verified_at,
            'created_at': self.created_at,
        }
