# core/signals.py
import logging
import sys

from django.contrib.auth.signals import user_logged_in, user_logged_out, user_login_failed
from django.db.models.signals import post_delete, post_save, pre_save
from django.dispatch import receiver

from .middleware import get_current_user
from .models import AuditLog

logger = logging.getLogger(__name__)

# Only models from these apps are audited; framework tables such as the
# migration recorder never are
AUDITED_APPS = {'core', 'users', 'children', 'billing', 'liquidations'}

# Audited through explicit AuditLog.log_action calls, or noise. Child and User
# lifecycle actions log explicitly and set _skip_audit_log; their plain edits
# are logged here.
SKIP_MODELS = {
    'AuditLog', 'Notification', 'SessionRecord', 'SystemSetting',
    'RateEntry', 'CommissionConfig', 'Liquidation', 'PaymentToClinic',
}

# Keeps the pre-save state of instances being updated, keyed by "<Model>_<pk>"
_original_instances = {}


def is_audited_model(sender):
    return sender._meta.app_label in AUDITED_APPS and sender.__name__ not in SKIP_MODELS


def _auditing_disabled(sender, instance):
    if 'migrate' in sys.argv or 'test' in sys.argv:
        return True
    if not is_audited_model(sender):
        return True
    return getattr(instance, '_skip_audit_log', False)


@receiver(pre_save, dispatch_uid='store_original_instance')
def store_original_instance(sender, instance, **kwargs):
    if _auditing_disabled(sender, instance) or not instance.pk:
        return
    original = sender._default_manager.filter(pk=instance.pk).first()
    if original is not None:
        _original_instances[f"{sender.__name__}_{instance.pk}"] = original


@receiver(post_save, dispatch_uid='log_model_save')
def log_model_save(sender, instance, created, **kwargs):
    """Log creates and field-level updates"""
    if _auditing_disabled(sender, instance):
        return

    user = get_current_user()
    verbose_name = sender._meta.verbose_name

    if created:
        action, changes = 'create', {}
        description = f"Created {verbose_name}: {instance}"
    else:
        action = 'update'
        original = _original_instances.pop(f"{sender.__name__}_{instance.pk}", None)
        changes = AuditLog.get_field_changes(original, instance) if original else {}
        if original and not changes:
            return
        labels = ', '.join(change['label'] for change in changes.values())
        description = f"Updated {verbose_name}: {labels or instance}"

    if sender.__name__ == 'User' and 'password' in changes:
        changes['password'] = {'old': '********', 'new': '********', 'label': 'Password'}

    AuditLog.objects.create(
        user=user,
        action=action,
        model_name=sender._meta.model_name,
        object_id=instance.pk,
        object_repr=str(instance)[:200],
        changes=changes,
        description=description,
    )


@receiver(post_delete, dispatch_uid='log_model_delete')
def log_model_delete(sender, instance, **kwargs):
    if _auditing_disabled(sender, instance):
        return
    AuditLog.objects.create(
        user=get_current_user(),
        action='delete',
        model_name=sender._meta.model_name,
        object_id=instance.pk,
        object_repr=str(instance)[:200],
        description=f"Deleted {sender._meta.verbose_name}: {instance}",
    )


@receiver(user_logged_in, dispatch_uid='log_user_login')
def log_user_login(sender, request, user, **kwargs):
    AuditLog.log_auth_event('login', request, user=user)


@receiver(user_logged_out, dispatch_uid='log_user_logout')
def log_user_logout(sender, request, user, **kwargs):
    if user:
        AuditLog.log_auth_event('logout', request, user=user)


@receiver(user_login_failed, dispatch_uid='log_failed_login')
def log_failed_login(sender, credentials, request=None, **kwargs):
    username = credentials.get('username', '')
    logger.warning(f"Failed login attempt for username '{username}'")
    AuditLog.log_auth_event('login_failed', request, username=username)
