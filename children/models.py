# children/models.py
from datetime import date
from decimal import Decimal

from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models, transaction

from billing.models import VALUE_TYPE_CHOICES
from core.utils import get_local_today


class ActiveChildManager(models.Manager):
    def get_queryset(self):
        return super().get_queryset().filter(is_active=True)


class HealthInsurance(models.Model):
    """Health insurance provider ("obra social") covering a child's treatment"""
    name = models.CharField(max_length=150, unique=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['name']
        verbose_name = 'Health Insurance'
        verbose_name_plural = 'Health Insurances'

    def __str__(self):
        return self.name

    def as_dict(self):
        return {'id': self.pk, 'name': self.name, 'is_active': self.is_active}


class Child(models.Model):
    full_name = models.CharField(max_length=150)
    birth_date = models.DateField(null=True, blank=True)

    # Family contacts
    mother_name = models.CharField(max_length=150, blank=True)
    mother_phone = models.CharField(max_length=30, blank=True)
    mother_email = models.EmailField(blank=True)
    father_name = models.CharField(max_length=150, blank=True)
    father_phone = models.CharField(max_length=30, blank=True)
    father_email = models.EmailField(blank=True)
    emergency_contact_name = models.CharField(max_length=150, blank=True)
    emergency_contact_phone = models.CharField(max_length=30, blank=True)
    address = models.TextField(blank=True)
    phone = models.CharField(max_length=30, blank=True)
    email = models.EmailField(blank=True)

    # School and clinical background
    school = models.CharField(max_length=150, blank=True)
    grade = models.CharField(max_length=50, blank=True)
    diagnosis = models.TextField(blank=True)
    referral_source = models.CharField(max_length=150, blank=True)
    referral_doctor = models.CharField(max_length=150, blank=True)
    health_insurance = models.ForeignKey(
        HealthInsurance, on_delete=models.SET_NULL, null=True, blank=True, related_name='children'
    )

    assigned_professional = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='assigned_children',
    )
    fee_value = models.DecimalField(
        max_digits=12, decimal_places=2, default=Decimal('0'), validators=[MinValueValidator(0)]
    )

    is_active = models.BooleanField(default=True)
    discharge_date = models.DateField(null=True, blank=True)
    discharge_reason = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = models.Manager()
    active = ActiveChildManager()

    class Meta:
        ordering = ['full_name']
        verbose_name_plural = 'Children'

    def __str__(self):
        return self.full_name

    @property
    def age(self):
        if not self.birth_date:
            return None
        today = date.today()
        return today.year - self.birth_date.year - (
            (today.month, today.day) < (self.birth_date.month, self.birth_date.day)
        )

    def discharge(self, reason=''):
        """Mark the child as no longer in treatment"""
        self.is_active = False
        self.discharge_date = get_local_today()
        self.discharge_reason = reason
        self.save(update_fields=['is_active', 'discharge_date', 'discharge_reason', 'updated_at'])

    def reactivate(self):
        self.is_active = True
        self.discharge_date = None
        self.discharge_reason = ''
        self.save(update_fields=['is_active', 'discharge_date', 'discharge_reason', 'updated_at'])

    def modules_for(self, professional):
        return list(
            self.module_links.filter(professional=professional)
            .order_by('module_name')
            .values_list('module_name', flat=True)
        )

    @transaction.atomic
    def set_modules(self, professional, module_names):
        """
        Replace the modules ``professional`` works on with this child.

        The delete and the inserts commit together, so a failure leaves the
        previous assignment in place.
        """
        self.module_links.filter(professional=professional).delete()
        ChildProfessional.objects.bulk_create([
            ChildProfessional(child=self, professional=professional, module_name=name)
            for name in sorted(set(module_names))
        ])
        return self.modules_for(professional)

    def as_dict(self):
        return {
            'id': self.pk,
            'full_name': self.full_name,
            'birth_date': self.birth_date,
            'age': self.age,
            'mother_name': self.mother_name,
            'mother_phone': self.mother_phone,
            'mother_email': self.mother_email,
            'father_name': self.father_name,
            'father_phone': self.father_phone,
            'father_email': self.father_email,
            'emergency_contact_name': self.emergency_contact_name,
            'emergency_contact_phone': self.emergency_contact_phone,
            'address': self.address,
            'phone': self.phone,
            'email': self.email,
            'school': self.school,
            'grade': self.grade,
            'diagnosis': self.diagnosis,
            'referral_source': self.referral_source,
            'referral_doctor': self.referral_doctor,
            'health_insurance_id': self.health_insurance_id,
            'health_insurance': self.health_insurance.name if self.health_insurance else None,
            'assigned_professional_id': self.assigned_professional_id,
            'professional_name': self.assigned_professional.full_name if self.assigned_professional else None,
            'fee_value': self.fee_value,
            'is_active': self.is_active,
            'discharge_date': self.discharge_date,
            'discharge_reason': self.discharge_reason,
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


class ChildProfessional(models.Model):
    """A professional treating a child under a given billing module"""
    child = models.ForeignKey(Child, on_delete=models.CASCADE, related_name='module_links')
    professional = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='child_links'
    )
    module_name = models.CharField(max_length=30, choices=VALUE_TYPE_CHOICES)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['child__full_name', 'module_name']
        constraints = [
            models.UniqueConstraint(
                fields=['child', 'professional', 'module_name'],
                name='unique_child_professional_module',
            ),
        ]

    def __str__(self):
        return f"{self.child} - {self.professional} ({self.module_name})"
