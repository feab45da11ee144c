# core/models.py
from django.conf import settings
from django.db import models


class SystemSetting(models.Model):
    """Runtime clinic settings stored as key-value pairs"""
    key = models.CharField(max_length=100, unique=True)
    value = models.TextField()
    description = models.TextField(blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    DEFAULTS = {
        'clinic_name': (settings.CLINIC_NAME, 'Clinic name shown on statements'),
        'clinic_address': ('', 'Clinic address shown on statements'),
        'clinic_phone': ('', 'Clinic contact phone'),
        'clinic_email': ('', 'Clinic contact email'),
        'currency_symbol': ('$', 'Symbol used when formatting amounts'),
    }

    class Meta:
        verbose_name = 'System Setting'
        verbose_name_plural = 'System Settings'
        ordering = ['key']

    def __str__(self):
        return f"{self.key}: {self.value}"

    @classmethod
    def get_setting(cls, key, default=None):
        """Get a setting value by key"""
        try:
            return cls.objects.get(key=key, is_active=True).value
        except cls.DoesNotExist:
            return default

    @classmethod
    def set_setting(cls, key, value, description=''):
        """Set or update a setting"""
        setting, _ = cls.objects.update_or_create(
            key=key,
            defaults={
                'value': str(value),
                'description': description,
                'is_active': True,
            }
        )
        return setting

    @classmethod
    def initialize_defaults(cls):
        """Create missing default settings. Returns the list of created keys."""
        created_keys = []
        for key, (value, description) in cls.DEFAULTS.items():
            _, created = cls.objects.get_or_create(
                key=key,
                defaults={'value': str(value), 'description': description, 'is_active': True}
            )
            if created:
                created_keys.append(key)
        return created_keys


class AuditLog(models.Model):
    """Audit trail of changes made through the clinic backend"""
    ACTION_CHOICES = [
        ('create', 'Create'),
        ('update', 'Update'),
        ('delete', 'Delete'),
        ('login', 'Login'),
        ('logout', 'Logout'),
        ('login_failed', 'Login Failed'),
        ('approve', 'Approve'),
        ('reject', 'Reject'),
        ('cancel', 'Cancel'),
        ('pay', 'Mark Paid'),
        ('calculate', 'Calculate'),
        ('deactivate', 'Deactivate'),
        ('reactivate', 'Reactivate'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)

    model_name = models.CharField(max_length=50)
    object_id = models.PositiveIntegerField(null=True, blank=True)
    object_repr = models.CharField(max_length=200, blank=True)

    changes = models.JSONField(default=dict, blank=True)
    description = models.TextField(blank=True, help_text="Human-readable description of the change")

    ip_address = models.GenericIPAddressField(null=True, blank=True)
    user_agent = models.CharField(max_length=255, blank=True)

    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']
        indexes = [
            models.Index(fields=['user', 'timestamp'], name='core_auditl_user_id_7a1c1e_idx'),
            models.Index(fields=['model_name', 'timestamp'], name='core_auditl_model_n_3f0b52_idx'),
            models.Index(fields=['action', 'timestamp'], name='core_auditl_action_9d4e26_idx'),
        ]
        verbose_name = 'Audit Log'
        verbose_name_plural = 'Audit Logs'

    def __str__(self):
        actor = self.user.username if self.user else 'system'
        return f"{actor} {self.action} {self.model_name} at {self.timestamp}"

    @classmethod
    def log_action(cls, user, action, model_instance, changes=None, request=None, description=''):
        """
        Record an action performed on a model instance.

        Args:
            user: User who performed the action (None for system jobs)
            action: One of ACTION_CHOICES
            model_instance: The instance that was affected
            changes: Dict of field changes {field_name: {'old': ..., 'new': ...}}
            request: HttpRequest, used for IP address and user agent
            description: Human-readable description
        """
        entry = cls(
            user=user,
            action=action,
            model_name=model_instance._meta.model_name,
            object_id=model_instance.pk,
            object_repr=str(model_instance)[:200],
            changes=changes or {},
            description=description,
        )
        if request is not None:
            entry.ip_address = cls.get_client_ip(request)
            entry.user_agent = request.META.get('HTTP_USER_AGENT', '')[:255]
        entry.save()
        return entry

    @classmethod
    def log_auth_event(cls, action, request, user=None, username=''):
        """Record a login, logout or failed login"""
        return cls.objects.create(
            user=user if action != 'login_failed' else None,
            action=action,
            model_name='user',
            object_id=user.pk if user else None,
            object_repr=(user.username if user else username) or 'unknown',
            description=dict(cls.ACTION_CHOICES)[action],
            ip_address=cls.get_client_ip(request) if request else None,
            user_agent=request.META.get('HTTP_USER_AGENT', '')[:255] if request else '',
        )

    @staticmethod
    def get_client_ip(request):
        forwarded = request.META.get('HTTP_X_FORWARDED_FOR')
        if forwarded:
            return forwarded.split(',')[0].strip()
        return request.META.get('REMOTE_ADDR')

    @staticmethod
    def format_field_value(value):
        if value is None:
            return 'None'
        if isinstance(value, bool):
            return 'Yes' if value else 'No'
        if hasattr(value, 'strftime'):
            return value.strftime('%Y-%m-%d %H:%M:%S')
        return str(value)

    @classmethod
    def get_field_changes(cls, old_instance, new_instance, fields_to_ignore=('created_at', 'updated_at')):
        """
        Compare two states of the same instance.

        Returns:
            Dict of {field_name: {'old': ..., 'new': ..., 'label': ...}}
        """
        changes = {}
        for field in new_instance._meta.concrete_fields:
            if field.name in fields_to_ignore:
                continue
            old_value = getattr(old_instance, field.attname, None)
            new_value = getattr(new_instance, field.attname, None)
            if old_value != new_value:
                changes[field.name] = {
                    'old': cls.format_field_value(old_value),
                    'new': cls.format_field_value(new_value),
                    'label': str(field.verbose_name).title(),
                }
        return changes


class Notification(models.Model):
    """In-app notification shown to a single user"""
    TYPE_CHOICES = [
        ('info', 'Info'),
        ('warning', 'Warning'),
        ('success', 'Success'),
        ('error', 'Error'),
    ]

    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name='notifications')
    title = models.CharField(max_length=200)
    message = models.TextField()
    type = models.CharField(max_length=10, choices=TYPE_CHOICES, default='info')
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['user', 'is_read'], name='core_notifi_user_id_5b8e0f_idx'),
        ]

    def __str__(self):
        return f"{self.title} -> {self.user}"

    @classmethod
    def notify(cls, user, title, message, type='info'):
        return cls.objects.create(user=user, title=title, message=message, type=type)

    @classmethod
    def notify_admins(cls, title, message, type='info'):
        """Send the same notification to every active admin"""
        from users.models import User

        admins = User.objects.admins()
        return cls.objects.bulk_create([
            cls(user=admin, title=title, message=message, type=type) for admin in admins
        ])

    def as_dict(self):
        return {
            'id': self.pk,
            'title': self.title,
            'message': self.message,
            'type': self.type,
            'is_read': self.is_read,
            'created_at': self.created_at,
        }
