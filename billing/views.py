# billing/views.py
import logging

from django.contrib.auth.decorators import login_required
from django.db import transaction
from django.forms.models import model_to_dict
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.views.decorators.http import require_GET, require_POST

from core.decorators import permission_required_json
from core.models import AuditLog
from core.utils import form_error_message, parse_int, parse_json_body
from users.models import User

from . import services
from .forms import CommissionConfigForm, ExpenseForm, ProfessionalPeriodForm, RateEntryForm, SessionRowForm
from .models import VALUE_TYPES, CommissionConfig, Expense, RateEntry, SessionRecord

logger = logging.getLogger(__name__)


def _invalid_body():
    return JsonResponse({'success': False, 'error': 'Invalid data format'}, status=400)


def _form_error(form):
    return JsonResponse({'success': False, 'error': form_error_message(form)}, status=400)


def _target_professional(request, professional_id):
    """
    Professionals always act on themselves; admins may name another
    professional. Returns None when the id does not match anyone.
    """
    if professional_id and request.user.is_admin:
        return User.objects.filter(pk=professional_id).first()
    return request.user


# Rates

@login_required
@require_GET
def rate_list(request):
    """Rate history, newest period first, optionally for one value type or year"""
    rates = RateEntry.objects.all()
    value_type = request.GET.get('value_type')
    if value_type:
        if value_type not in VALUE_TYPES:
            return JsonResponse({'success': False, 'error': f'Unknown value type: {value_type}'}, status=400)
        rates = rates.filter(value_type=value_type)
    year = parse_int(request.GET.get('year'))
    if year:
        rates = rates.filter(year=year)
    return JsonResponse({'success': True, 'rates': [rate.as_dict() for rate in rates]})


@login_required
@permission_required_json('billing')
@require_POST
def rate_save(request):
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = RateEntryForm(data)
    if not form.is_valid():
        return _form_error(form)

    rate, created = services.upsert_rate(
        form.cleaned_data['value_type'],
        form.cleaned_data['year'],
        form.cleaned_data['month'],
        form.cleaned_data['value'],
        user=request.user,
    )
    AuditLog.log_action(
        user=request.user,
        action='create' if created else 'update',
        model_instance=rate,
        request=request,
        description=f'Set rate {rate}',
    )
    return JsonResponse({'success': True, 'rate': rate.as_dict(), 'created': created}, status=201 if created else 200)


@login_required
@permission_required_json('billing')
@require_POST
def rate_delete(request, pk):
    rate = get_object_or_404(RateEntry, pk=pk)
    AuditLog.log_action(
        user=request.user,
        action='delete',
        model_instance=rate,
        request=request,
        description=f'Deleted rate {rate}',
    )
    rate.delete()
    return JsonResponse({'success': True})


# Sessions

@login_required
@permission_required_json('sessions')
@require_GET
def session_list(request):
    period = ProfessionalPeriodForm(request.GET)
    if not period.is_valid():
        return _form_error(period)

    professional = _target_professional(request, period.cleaned_data.get('professional'))
    if professional is None:
        return JsonResponse({'success': False, 'error': 'Professional not found'}, status=404)

    records = SessionRecord.objects.filter(
        professional=professional,
        year=period.cleaned_data['year'],
        month=period.cleaned_data['month'],
    ).select_related('child')
    return JsonResponse({
        'success': True,
        'sessions': [record.as_dict() for record in records],
        'total_sessions': sum(record.session_count for record in records),
        'is_confirmed': bool(records) and all(record.is_confirmed for record in records),
    })


@login_required
@permission_required_json('sessions')
@require_POST
def session_save(request):
    """
    Save a professional's session sheet for a period.

    Body: {"year", "month", "professional"?, "sessions": [{child, module_name,
    session_count, individual_sessions, group_sessions, observations}, ...]}
    """
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    period = ProfessionalPeriodForm(data)
    if not period.is_valid():
        return _form_error(period)

    professional = _target_professional(request, period.cleaned_data.get('professional'))
    if professional is None:
        return JsonResponse({'success': False, 'error': 'Professional not found'}, status=404)

    rows = data.get('sessions')
    if not isinstance(rows, list) or not rows:
        return JsonResponse({'success': False, 'error': 'No sessions to save'}, status=400)

    cleaned_rows = []
    for index, row in enumerate(rows, start=1):
        form = SessionRowForm(row if isinstance(row, dict) else {})
        if not form.is_valid():
            return JsonResponse(
                {'success': False, 'error': f'Row {index}: {form_error_message(form)}'}, status=400
            )
        cleaned_rows.append(form.cleaned_data)

    try:
        records = services.save_session_rows(
            professional, period.cleaned_data['year'], period.cleaned_data['month'], cleaned_rows
        )
    except Exception as e:
        logger.exception(f"Error saving sessions for {professional.username}")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)

    logger.info(
        f"{len(records)} session rows saved for {professional.username} "
        f"{period.cleaned_data['month']:02d}/{period.cleaned_data['year']}"
    )
    return JsonResponse({'success': True, 'sessions': [record.as_dict() for record in records]})


@login_required
@permission_required_json('sessions')
@require_POST
def session_delete(request, pk):
    record = get_object_or_404(SessionRecord, pk=pk)
    if record.professional_id != request.user.pk and not request.user.is_admin:
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)
    record.delete()
    return JsonResponse({'success': True})


@login_required
@permission_required_json('sessions')
@require_POST
def session_confirm(request):
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    period = ProfessionalPeriodForm(data)
    if not period.is_valid():
        return _form_error(period)

    professional = _target_professional(request, period.cleaned_data.get('professional'))
    if professional is None:
        return JsonResponse({'success': False, 'error': 'Professional not found'}, status=404)

    confirmed = services.confirm_sessions(
        professional, period.cleaned_data['year'], period.cleaned_data['month'], request.user
    )
    return JsonResponse({'success': True, 'confirmed': confirmed})


# Commissions

@login_required
@permission_required_json('billing')
@require_GET
def commission_list(request):
    configs = CommissionConfig.objects.select_related('professional')
    professional_id = parse_int(request.GET.get('professional'))
    if professional_id:
        configs = configs.filter(professional_id=professional_id)
    return JsonResponse({'success': True, 'commissions': [config.as_dict() for config in configs]})


@login_required
@permission_required_json('billing')
@require_POST
def commission_save(request):
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = CommissionConfigForm(data)
    if not form.is_valid():
        return _form_error(form)

    config, created = services.upsert_commission(
        form.cleaned_data['professional'],
        form.cleaned_data['value_type'],
        form.cleaned_data['commission_percentage'],
        is_active=form.cleaned_data['is_active'],
    )
    AuditLog.log_action(
        user=request.user,
        action='create' if created else 'update',
        model_instance=config,
        request=request,
        description=f'Set commission {config}',
    )
    return JsonResponse({'success': True, 'commission': config.as_dict()}, status=201 if created else 200)


@login_required
@permission_required_json('billing')
@require_POST
def commission_toggle(request, pk):
    with transaction.atomic():
        config = get_object_or_404(CommissionConfig.objects.select_for_update(), pk=pk)
        config.is_active = not config.is_active
        config.save(update_fields=['is_active', 'updated_at'])
        AuditLog.log_action(
            user=request.user,
            action='update',
            model_instance=config,
            changes={'is_active': {'old': not config.is_active, 'new': config.is_active, 'label': 'Active'}},
            request=request,
            description=f'{"Enabled" if config.is_active else "Disabled"} commission {config}',
        )
    return JsonResponse({'success': True, 'commission': config.as_dict()})


@login_required
@permission_required_json('billing')
@require_POST
def commission_delete(request, pk):
    config = get_object_or_404(CommissionConfig, pk=pk)
    AuditLog.log_action(
        user=request.user,
        action='delete',
        model_instance=config,
        request=request,
        description=f'Deleted commission {config}',
    )
    config.delete()
    return JsonResponse({'success': True})


@login_required
@permission_required_json('billing')
@require_GET
def commission_effective(request):
    """Percentage that applies to a professional for one value type"""
    professional = get_object_or_404(User, pk=parse_int(request.GET.get('professional'), 0))
    value_type = request.GET.get('value_type', 'module')
    if value_type not in VALUE_TYPES:
        return JsonResponse({'success': False, 'error': f'Unknown value type: {value_type}'}, status=400)
    return JsonResponse({
        'success': True,
        'professional_id': professional.pk,
        'value_type': value_type,
        'commission_percentage': services.get_effective_commission(professional, value_type),
    })


# Expenses

@login_required
@permission_required_json('billing')
@require_GET
def expense_list(request):
    expenses = Expense.objects.all()
    year = parse_int(request.GET.get('year'))
    month = parse_int(request.GET.get('month'))
    if year:
        expenses = expenses.filter(year=year)
    if month:
        expenses = expenses.filter(month=month)
    return JsonResponse({'success': True, 'expenses': [expense.as_dict() for expense in expenses]})


@login_required
@permission_required_json('billing')
@require_POST
def expense_create(request):
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = ExpenseForm(data)
    if not form.is_valid():
        return _form_error(form)

    expense = form.save(commit=False)
    expense.created_by = request.user
    expense.save()
    return JsonResponse({'success': True, 'expense': expense.as_dict()}, status=201)


@login_required
@permission_required_json('billing')
@require_POST
def expense_update(request, pk):
    expense = get_object_or_404(Expense, pk=pk)
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    current = model_to_dict(expense, fields=ExpenseForm.Meta.fields)
    form = ExpenseForm({**current, **data}, instance=expense)
    if not form.is_valid():
        return _form_error(form)

    expense = form.save()
    return JsonResponse({'success': True, 'expense': expense.as_dict()})


@login_required
@permission_required_json('billing')
@require_POST
def expense_delete(request, pk):
    expense = get_object_or_404(Expense, pk=pk)
    expense.delete()
    return JsonResponse({'success': True})


@login_required
@permission_required_json('billing')
@require_GET
def expense_stats(request):
    year = parse_int(request.GET.get('year'))
    if not year:
        return JsonResponse({'success': False, 'error': 'year is required'}, status=400)
    month = parse_int(request.GET.get('month'))
    return JsonResponse({'success': True, 'stats': services.expense_stats(year, month)})
