# children/views.py
import logging

from django.contrib.auth.decorators import login_required
from django.db.models import Q
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from core.decorators import permission_required_json
from core.models import AuditLog
from core.utils import form_error_message, parse_int, parse_json_body

from .forms import ChildForm, HealthInsuranceForm, ModuleAssignmentForm
from .models import Child, HealthInsurance

logger = logging.getLogger(__name__)


def _invalid_body():
    return JsonResponse({'success': False, 'error': 'Invalid data format'}, status=400)


@login_required
@require_GET
def child_list(request):
    """
    Admins see every child (active only unless ``include_inactive``);
    professionals see the active children assigned or linked to them.
    """
    user = request.user
    children = Child.objects.select_related('assigned_professional', 'health_insurance')

    if user.has_permission('children'):
        if request.GET.get('include_inactive') not in ('1', 'true'):
            children = children.filter(is_active=True)
        professional = request.GET.get('professional')
        if professional:
            professional_id = parse_int(professional)
            if professional_id is None:
                return JsonResponse({'success': False, 'error': 'Invalid professional'}, status=400)
            children = children.filter(assigned_professional_id=professional_id)
    elif user.has_permission('sessions'):
        children = children.filter(
            Q(assigned_professional=user) | Q(module_links__professional=user),
            is_active=True,
        ).distinct()
    else:
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    search = request.GET.get('q', '').strip()
    if search:
        children = children.filter(full_name__icontains=search)

    return JsonResponse({'success': True, 'children': [child.as_dict() for child in children]})


@login_required
@permission_required_json('children')
@require_GET
def child_detail(request, pk):
    child = get_object_or_404(Child.objects.select_related('assigned_professional', 'health_insurance'), pk=pk)
    data = child.as_dict()
    data['modules'] = [
        {'professional_id': link.professional_id, 'module_name': link.module_name}
        for link in child.module_links.all()
    ]
    return JsonResponse({'success': True, 'child': data})


@login_required
@permission_required_json('children')
@require_POST
def child_create(request):
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = ChildForm(data)
    if not form.is_valid():
        return JsonResponse({'success': False, 'error': form_error_message(form)}, status=400)

    child = form.save(commit=False)
    child._skip_audit_log = True
    child.save()
    AuditLog.log_action(
        user=request.user,
        action='create',
        model_instance=child,
        request=request,
        description=f'Registered child {child.full_name}',
    )
    logger.info(f"Child {child.pk} registered by {request.user.username}")
    return JsonResponse({'success': True, 'child': child.as_dict()}, status=201)


@login_required
@permission_required_json('children')
@require_POST
def child_update(request, pk):
    child = get_object_or_404(Child, pk=pk)
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    current = model_to_dict(child, fields=ChildForm.Meta.fields)
    form = ChildForm({**current, **data}, instance=child)
    if not form.is_valid():
        return JsonResponse({'success': False, 'error': form_error_message(form)}, status=400)

    child = form.save()
    return JsonResponse({'success': True, 'child': child.as_dict()})


@login_required
@permission_required_json('children')
@require_POST
def child_deactivate(request, pk):
    """Discharge a child; their history and sessions are kept"""
    child = get_object_or_404(Child, pk=pk)
    if not child.is_active:
        return JsonResponse({'success': False, 'error': 'Child is already inactive.'}, status=400)

    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    child._skip_audit_log = True
    child.discharge(reason=str(data.get('reason', '')).strip())
    AuditLog.log_action(
        user=request.user,
        action='deactivate',
        model_instance=child,
        request=request,
        description=f'Discharged child {child.full_name}',
    )
    return JsonResponse({'success': True, 'child': child.as_dict()})


@login_required
@permission_required_json('children')
@require_POST
def child_reactivate(request, pk):
    child = get_object_or_404(Child, pk=pk)
    if child.is_active:
        return JsonResponse({'success': False, 'error': 'Child is already active.'}, status=400)

    child._skip_audit_log = True
    child.reactivate()
    AuditLog.log_action(
        user=request.user,
        action='reactivate',
        model_instance=child,
        request=request,
        description=f'Reactivated child {child.full_name}',
    )
    return JsonResponse({'success': True, 'child': child.as_dict()})


@login_required
@permission_required_json('children')
@require_http_methods(["GET", "POST"])
def child_modules(request, pk):
    """
    GET: modules per professional for the child.
    POST {"professional": id, "modules": [...]}: replace that professional's modules.
    """
    child = get_object_or_404(Child, pk=pk)

    if request.method == 'GET':
        assignments = {}
        for link in child.module_links.select_related('professional'):
            assignments.setdefault(link.professional_id, []).append(link.module_name)
        return JsonResponse({
            'success': True,
            'assignments': [
                {'professional_id': professional_id, 'modules': modules}
                for professional_id, modules in assignments.items()
            ],
        })

    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = ModuleAssignmentForm(data)
    if not form.is_valid():
        return JsonResponse({'success': False, 'error': form_error_message(form)}, status=400)

    try:
        modules = child.set_modules(form.cleaned_data['professional'], form.cleaned_data['modules'])
    except Exception as e:
        logger.exception(f"Error updating modules for child {child.pk}")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)

    return JsonResponse({'success': True, 'modules': modules})


# Health insurances

@login_required
@permission_required_json('children')
@require_GET
def health_insurance_list(request):
    insurances = HealthInsurance.objects.all()
    if request.GET.get('active_only') in ('1', 'true'):
        insurances = insurances.filter(is_active=True)
    return JsonResponse({'success': True, 'health_insurances': [i.as_dict() for i in insurances]})


@login_required
@permission_required_json('children')
@require_POST
def health_insurance_save(request, pk=None):
    """Create a health insurance, or rename it when ``pk`` is given"""
    instance = get_object_or_404(HealthInsurance, pk=pk) if pk else None
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = HealthInsuranceForm(data, instance=instance)
    if not form.is_valid():
        return JsonResponse({'success': False, 'error': form_error_message(form)}, status=400)

    insurance = form.save()
    return JsonResponse({'success': True, 'health_insurance': insurance.as_dict()}, status=200 if pk else 201)


@login_required
@permission_required_json('children')
@require_POST
def health_insurance_toggle(request, pk):
    insurance = get_object_or_404(HealthInsurance, pk=pk)
    insurance.is_active = not insurance.is_active
    insurance.save(update_fields=['is_active', 'updated_at'])
    return JsonResponse({'success': True, 'health_insurance': insurance.as_dict()})


@login_required
@permission_required_json('children')
@require_POST
def health_insurance_delete(request, pk):
    insurance = get_object_or_404(HealthInsurance, pk=pk)
    # Children keep their record; the link is cleared
    insurance.delete()
    return JsonResponse({'success': True})
