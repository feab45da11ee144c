# core/views.py
import logging
from datetime import datetime

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from .decorators import permission_required_json
from .models import AuditLog, Notification, SystemSetting
from .utils import parse_int, parse_json_body

logger = logging.getLogger(__name__)


@login_required
@require_GET
def notification_list(request):
    """Notifications for the signed-in user, newest first"""
    notifications = Notification.objects.filter(user=request.user)
    if request.GET.get('unread') in ('1', 'true'):
        notifications = notifications.filter(is_read=False)

    limit = parse_int(request.GET.get('limit'), 50)
    return JsonResponse({
        'success': True,
        'unread_count': Notification.objects.filter(user=request.user, is_read=False).count(),
        'notifications': [n.as_dict() for n in notifications[:limit]],
    })


@login_required
@require_POST
def mark_notification_read(request, pk):
    updated = Notification.objects.filter(pk=pk, user=request.user).update(is_read=True)
    if not updated:
        return JsonResponse({'success': False, 'error': 'Notification not found'}, status=404)
    return JsonResponse({'success': True})


@login_required
@require_POST
def mark_all_notifications_read(request):
    updated = Notification.objects.filter(user=request.user, is_read=False).update(is_read=True)
    return JsonResponse({'success': True, 'updated': updated})


@login_required
@permission_required_json('maintenance')
@require_GET
def audit_log_list(request):
    """Audit entries with optional user/action/model/date filters"""
    queryset = AuditLog.objects.select_related('user').order_by('-timestamp')

    user_id = parse_int(request.GET.get('user'))
    if user_id:
        queryset = queryset.filter(user_id=user_id)
    if request.GET.get('action'):
        queryset = queryset.filter(action=request.GET['action'])
    if request.GET.get('model_name'):
        queryset = queryset.filter(model_name=request.GET['model_name'])

    for param, lookup in (('date_from', 'timestamp__date__gte'), ('date_to', 'timestamp__date__lte')):
        value = request.GET.get(param)
        if not value:
            continue
        try:
            queryset = queryset.filter(**{lookup: datetime.strptime(value, '%Y-%m-%d').date()})
        except ValueError:
            return JsonResponse({'success': False, 'error': f'Invalid {param}, expected YYYY-MM-DD'}, status=400)

    limit = parse_int(request.GET.get('limit'), 100)
    return JsonResponse({
        'success': True,
        'total': queryset.count(),
        'logs': [
            {
                'id': log.pk,
                'user': log.user.full_name if log.user else None,
                'action': log.action,
                'model_name': log.model_name,
                'object_id': log.object_id,
                'object_repr': log.object_repr,
                'changes': log.changes,
                'description': log.description,
                'timestamp': log.timestamp,
            }
            for log in queryset[:limit]
        ],
    })


@login_required
@permission_required_json('maintenance')
@require_http_methods(["GET", "POST"])
def system_settings(request):
    """Read all settings, or update the keys given in a JSON body"""
    if request.method == 'GET':
        return JsonResponse({
            'success': True,
            'settings': {s.key: s.value for s in SystemSetting.objects.filter(is_active=True)},
        })

    try:
        data = parse_json_body(request)
    except ValueError:
        return JsonResponse({'success': False, 'error': 'Invalid data format'}, status=400)

    unknown = sorted(set(data) - set(SystemSetting.DEFAULTS))
    if unknown:
        return JsonResponse({'success': False, 'error': f"Unknown settings: {', '.join(unknown)}"}, status=400)

    changes = {}
    for key, value in data.items():
        old_value = SystemSetting.get_setting(key)
        if old_value != str(value):
            setting = SystemSetting.set_setting(key, value, SystemSetting.DEFAULTS[key][1])
            changes[key] = {'old': old_value, 'new': str(value), 'label': key.replace('_', ' ').title()}

    if changes:
        AuditLog.log_action(
            user=request.user,
            action='update',
            model_instance=setting,
            changes=changes,
            request=request,
            description=f"Updated {len(changes)} system setting(s)",
        )
        logger.info(f"{request.user.username} updated settings: {', '.join(changes)}")

    return JsonResponse({'success': True, 'updated': sorted(changes)})
