# users/models.py
from django.contrib.auth.models import AbstractUser, UserManager
from django.db import models
from django.db.models import Q


class ClinicUserManager(UserManager):

    def admins(self):
        return self.filter(is_active=True).filter(Q(role=User.ADMIN) | Q(is_superuser=True))

    def professionals(self, include_inactive=False):
        queryset = self.filter(role=User.PROFESSIONAL)
        if not include_inactive:
            queryset = queryset.filter(is_active=True)
        return queryset


class User(AbstractUser):
    ADMIN = 'admin'
    PROFESSIONAL = 'professional'

    ROLE_CHOICES = [
        (ADMIN, 'Admin'),
        (PROFESSIONAL, 'Professional'),
    ]

    # Modules each role can reach; superusers can reach everything
    ROLE_PERMISSIONS = {
        ADMIN: {
            'dashboard', 'professionals', 'children', 'sessions', 'billing',
            'liquidations', 'payments', 'reports', 'maintenance',
        },
        PROFESSIONAL: {
            'dashboard', 'sessions', 'my_billing',
        },
    }

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default=PROFESSIONAL)
    phone = models.CharField(max_length=20, blank=True)
    specialization = models.CharField(max_length=100, blank=True)
    license_number = models.CharField(max_length=50, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = ClinicUserManager()

    class Meta:
        ordering = ['first_name', 'last_name']

    def __str__(self):
        return f"{self.full_name} ({self.username})"

    def has_permission(self, module_name):
        """Check if user has permission for a specific module"""
        if self.is_superuser:
            return True
        if not self.is_active:
            return False
        return module_name in self.ROLE_PERMISSIONS.get(self.role, set())

    @property
    def is_admin(self):
        return self.is_superuser or self.role == self.ADMIN

    @property
    def is_professional(self):
        return self.role == self.PROFESSIONAL

    @property
    def full_name(self):
        return self.get_full_name() or self.username

    def as_dict(self):
        return {
            'id': self.pk,
            'username': self.username,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'full_name': self.full_name,
            'role': self.role,
            'phone': self.phone,
            'specialization': self.specialization,
            'license_number': self.license_number,
            'is_active': self.is_active,
            'created_at': self.created_at,
        }
