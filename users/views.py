# users/views.py
import logging

from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.db.models import Sum
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from billing.models import SessionRecord
from billing.services import billed_amount
from children.models import Child
from core.decorators import permission_required_json
from core.models import AuditLog
from core.utils import current_period, form_error_message, parse_json_body

from .forms import ProfessionalForm
from .models import User

logger = logging.getLogger(__name__)


@login_required
@require_GET
def current_user(request):
    """Profile and module access of the signed-in user"""
    user = request.user
    modules = sorted(User.ROLE_PERMISSIONS[User.ADMIN]) if user.is_superuser else \
        sorted(User.ROLE_PERMISSIONS.get(user.role, set()))
    return JsonResponse({'success': True, 'user': user.as_dict(), 'is_admin': user.is_admin, 'modules': modules})


@login_required
@permission_required_json('professionals')
@require_GET
def professional_list(request):
    include_inactive = request.GET.get('include_inactive') in ('1', 'true')
    professionals = User.objects.professionals(include_inactive=include_inactive)
    return JsonResponse({'success': True, 'professionals': [p.as_dict() for p in professionals]})


@login_required
@permission_required_json('professionals')
@require_GET
def professional_detail(request, pk):
    professional = get_object_or_404(User, pk=pk)
    return JsonResponse({'success': True, 'professional': professional.as_dict()})


@login_required
@permission_required_json('professionals')
@require_POST
def professional_create(request):
    try:
        data = parse_json_body(request)
    except ValueError:
        return JsonResponse({'success': False, 'error': 'Invalid data format'}, status=400)

    form = ProfessionalForm(data)
    if not form.is_valid():
        return JsonResponse({'success': False, 'error': form_error_message(form)}, status=400)

    try:
        professional = form.save(commit=False)
        professional._skip_audit_log = True
        professional.save()
        AuditLog.log_action(
            user=request.user,
            action='create',
            model_instance=professional,
            request=request,
            description=f'Created {professional.role} account {professional.username}',
        )
        logger.info(f"{request.user.username} created user {professional.username}")
        return JsonResponse({'success': True, 'professional': professional.as_dict()}, status=201)
    except Exception as e:
        logger.exception("Error creating professional")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)


@login_required
@permission_required_json('professionals')
@require_POST
def professional_update(request, pk):
    professional = get_object_or_404(User, pk=pk)
    try:
        data = parse_json_body(request)
    except ValueError:
        return JsonResponse({'success': False, 'error': 'Invalid data format'}, status=400)

    previous_role = professional.role
    current = model_to_dict(professional, fields=ProfessionalForm.Meta.fields)
    form = ProfessionalForm({**current, **data}, instance=professional, is_update=True)
    if not form.is_valid():
        return JsonResponse({'success': False, 'error': form_error_message(form)}, status=400)

    if professional == request.user and previous_role == User.ADMIN and form.cleaned_data['role'] != User.ADMIN:
        return JsonResponse({'success': False, 'error': 'You cannot remove your own admin role.'}, status=400)

    professional = form.save()
    return JsonResponse({'success': True, 'professional': professional.as_dict()})


@login_required
@permission_required_json('professionals')
@require_POST
def professional_deactivate(request, pk):
    """Soft-delete a professional and release the children assigned to them"""
    professional = get_object_or_404(User, pk=pk)

    if professional == request.user:
        return JsonResponse({'success': False, 'error': 'You cannot deactivate your own account.'}, status=400)
    if not professional.is_active:
        return JsonResponse({'success': False, 'error': 'Professional is already inactive.'}, status=400)

    with transaction.atomic():
        released = Child.objects.filter(assigned_professional=professional).update(assigned_professional=None)
        professional._skip_audit_log = True
        professional.is_active = False
        professional.save(update_fields=['is_active', 'updated_at'])
        AuditLog.log_action(
            user=request.user,
            action='deactivate',
            model_instance=professional,
            request=request,
            description=f'Deactivated {professional.username}; {released} children unassigned',
        )

    logger.info(f"Professional {professional.username} deactivated, {released} children unassigned")
    return JsonResponse({'success': True, 'unassigned_children': released})


@login_required
@permission_required_json('professionals')
@require_POST
def professional_reactivate(request, pk):
    professional = get_object_or_404(User, pk=pk)
    if professional.is_active:
        return JsonResponse({'success': False, 'error': 'Professional is already active.'}, status=400)

    professional._skip_audit_log = True
    professional.is_active = True
    professional.save(update_fields=['is_active', 'updated_at'])
    AuditLog.log_action(
        user=request.user,
        action='reactivate',
        model_instance=professional,
        request=request,
        description=f'Reactivated {professional.username}',
    )
    return JsonResponse({'success': True, 'professional': professional.as_dict()})


@login_required
@permission_required_json('professionals')
@require_GET
def professional_stats(request, pk):
    """Assigned children plus the current month's sessions and billed amount"""
    professional = get_object_or_404(User, pk=pk)
    year, month = current_period()

    sessions = SessionRecord.objects.filter(professional=professional, year=year, month=month)
    return JsonResponse({
        'success': True,
        'stats': {
            'assigned_children': Child.objects.filter(assigned_professional=professional, is_active=True).count(),
            'year': year,
            'month': month,
            'total_sessions': sessions.aggregate(total=Sum('session_count'))['total'] or 0,
            'billed_amount': billed_amount(sessions),
        },
    })
