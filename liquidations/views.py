# liquidations/views.py
import logging

from django.contrib.auth.decorators import login_required
from django.http import HttpResponse, JsonResponse
from django.shortcuts import get_object_or_404
from django.template.loader import render_to_string
from django.views.decorators.http import require_GET, require_POST
from xhtml2pdf import pisa

from billing.forms import ProfessionalPeriodForm
from core.decorators import permission_required_json
from core.models import SystemSetting
from core.utils import form_error_message, get_month_name, parse_json_body
from users.models import User

from . import services
from .exceptions import InvalidStateTransition, LiquidationLocked
from .forms import (
    LiquidationFilterForm, PaymentFilterForm, PaymentReviewForm, PaymentToClinicForm, TransitionForm,
)
from .models import Liquidation, PaymentToClinic

logger = logging.getLogger(__name__)


def _invalid_body():
    return JsonResponse({'success': False, 'error': 'Invalid data format'}, status=400)


def _form_error(form):
    return JsonResponse({'success': False, 'error': form_error_message(form)}, status=400)


def _not_found(message='Liquidation not found'):
    return JsonResponse({'success': False, 'error': message}, status=404)


def _can_view(user, liquidation):
    return user.has_permission('liquidations') or liquidation.professional_id == user.pk


@login_required
@permission_required_json('liquidations')
@require_POST
def calculate(request):
    """
    Calculate liquidations for a period.

    Body: {"year", "month", "professional"?}. With a professional the stored
    liquidation is returned; without one every active professional is
    processed and the per-professional report is returned.
    """
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = ProfessionalPeriodForm(data)
    if not form.is_valid():
        return _form_error(form)

    year = form.cleaned_data['year']
    month = form.cleaned_data['month']
    professional_id = form.cleaned_data.get('professional')

    if professional_id is None:
        report = services.calculate_all_liquidations(year, month, user=request.user)
        return JsonResponse({'success': True, 'report': report})

    professional = User.objects.filter(pk=professional_id).first()
    if professional is None:
        return _not_found('Professional not found')

    try:
        liquidation, created = services.create_or_update_liquidation(
            professional, year, month, user=request.user
        )
    except LiquidationLocked as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=400)
    except Exception as e:
        logger.exception(f"Error calculating liquidation for professional {professional_id} {month:02d}/{year}")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)

    return JsonResponse(
        {'success': True, 'created': created, 'liquidation': liquidation.as_dict()},
        status=201 if created else 200,
    )


@login_required
@permission_required_json('liquidations')
@require_GET
def liquidation_list(request):
    form = LiquidationFilterForm(request.GET)
    if not form.is_valid():
        return _form_error(form)

    liquidations = services.get_liquidations(
        year=form.cleaned_data.get('year'),
        month=form.cleaned_data.get('month'),
        professional=form.cleaned_data.get('professional'),
        status=form.cleaned_data.get('status'),
    )
    return JsonResponse({
        'success': True,
        'liquidations': [liquidation.as_dict(include_balance=False) for liquidation in liquidations],
    })


@login_required
@require_GET
def liquidation_detail(request, pk):
    liquidation = Liquidation.objects.select_related('professional').filter(pk=pk).first()
    if liquidation is None:
        return _not_found()
    if not _can_view(request.user, liquidation):
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)
    return JsonResponse({'success': True, 'liquidation': liquidation.as_dict()})


@login_required
@permission_required_json('my_billing')
@require_GET
def my_liquidations(request):
    """The logged-in professional's liquidations, with what they still owe"""
    form = LiquidationFilterForm(request.GET)
    if not form.is_valid():
        return _form_error(form)

    liquidations = services.get_liquidations(
        year=form.cleaned_data.get('year'),
        month=form.cleaned_data.get('month'),
        professional=request.user,
    )
    return JsonResponse({'success': True, 'liquidations': [liquidation.as_dict() for liquidation in liquidations]})


def _transition(request, pk, action):
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = TransitionForm(data)
    if not form.is_valid():
        return _form_error(form)

    try:
        liquidation = services.transition_liquidation(
            pk,
            action,
            request.user,
            reference=form.cleaned_data['payment_reference'],
            reason=form.cleaned_data['reason'],
        )
    except Liquidation.DoesNotExist:
        return _not_found()
    except InvalidStateTransition as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=400)
    except Exception as e:
        logger.exception(f"Error on liquidation {pk} action {action}")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)

    logger.info(f"Liquidation {pk} {action} by {request.user.username}")
    return JsonResponse({'success': True, 'liquidation': liquidation.as_dict()})


@login_required
@permission_required_json('liquidations')
@require_POST
def approve(request, pk):
    return _transition(request, pk, 'approve')


@login_required
@permission_required_json('liquidations')
@require_POST
def mark_paid(request, pk):
    return _transition(request, pk, 'pay')


@login_required
@permission_required_json('liquidations')
@require_POST
def cancel(request, pk):
    return _transition(request, pk, 'cancel')


@login_required
@permission_required_json('liquidations')
@require_GET
def liquidation_stats(request):
    form = LiquidationFilterForm(request.GET)
    if not form.is_valid():
        return _form_error(form)
    year = form.cleaned_data.get('year')
    if not year:
        return JsonResponse({'success': False, 'error': 'year is required'}, status=400)
    return JsonResponse({'success': True, 'stats': services.get_liquidation_stats(year, form.cleaned_data.get('month'))})


@login_required
@require_GET
def statement_pdf(request, pk):
    """Liquidation statement as a PDF, for admins and the professional it belongs to"""
    liquidation = get_object_or_404(Liquidation.objects.select_related('professional', 'approved_by'), pk=pk)
    if not _can_view(request.user, liquidation):
        return JsonResponse({'success': False, 'error': 'Permission denied'}, status=403)

    context = {
        'liquidation': liquidation,
        'professional': liquidation.professional,
        'period_label': f"{get_month_name(liquidation.month)} {liquidation.year}",
        'paid_to_clinic': liquidation.paid_to_clinic,
        'owed_to_clinic': liquidation.owed_to_clinic,
        'clinic_name': SystemSetting.get_setting('clinic_name', SystemSetting.DEFAULTS['clinic_name'][0]),
        'clinic_address': SystemSetting.get_setting('clinic_address', ''),
        'clinic_phone': SystemSetting.get_setting('clinic_phone', ''),
        'clinic_email': SystemSetting.get_setting('clinic_email', ''),
    }

    html_string = render_to_string('liquidations/statement_pdf.html', context)
    response = HttpResponse(content_type='application/pdf')
    filename = f'Liquidacion_{liquidation.professional.username}_{liquidation.year}_{liquidation.month:02d}.pdf'
    response['Content-Disposition'] = f'inline; filename="{filename}"'

    pisa_status = pisa.CreatePDF(html_string, dest=response)
    if pisa_status.err:
        logger.error(f"PDF generation failed for liquidation {liquidation.pk}")
        return JsonResponse({'success': False, 'error': 'Error generating PDF statement'}, status=500)
    return response


# Payments to clinic

@login_required
@permission_required_json('my_billing')
@require_POST
def payment_create(request):
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = PaymentToClinicForm(data)
    if not form.is_valid():
        return _form_error(form)

    try:
        payment = services.register_payment(request.user, form.cleaned_data)
    except Exception as e:
        logger.exception(f"Error registering payment for {request.user.username}")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)
    return JsonResponse({'success': True, 'payment': payment.as_dict()}, status=201)


@login_required
@permission_required_json('my_billing')
@require_GET
def my_payments(request):
    payments = PaymentToClinic.objects.filter(professional=request.user).select_related('professional')
    return JsonResponse({'success': True, 'payments': [payment.as_dict() for payment in payments]})


@login_required
@permission_required_json('payments')
@require_GET
def payment_list(request):
    form = PaymentFilterForm(request.GET)
    if not form.is_valid():
        return _form_error(form)

    payments = PaymentToClinic.objects.select_related('professional')
    if form.cleaned_data.get('status'):
        payments = payments.filter(verification_status=form.cleaned_data['status'])
    if form.cleaned_data.get('year'):
        payments = payments.filter(year=form.cleaned_data['year'])
    if form.cleaned_data.get('month'):
        payments = payments.filter(month=form.cleaned_data['month'])
    if form.cleaned_data.get('professional'):
        payments = payments.filter(professional_id=form.cleaned_data['professional'])
    return JsonResponse({'success': True, 'payments': [payment.as_dict() for payment in payments]})


@login_required
@permission_required_json('payments')
@require_POST
def payment_review(request, pk):
    try:
        data = parse_json_body(request)
    except ValueError:
        return _invalid_body()

    form = PaymentReviewForm(data)
    if not form.is_valid():
        return _form_error(form)

    try:
        payment = services.review_payment(pk, form.cleaned_data['status'], request.user)
    except PaymentToClinic.DoesNotExist:
        return _not_found('Payment not found')
    except InvalidStateTransition as e:
        return JsonResponse({'success': False, 'error': str(e)}, status=400)
    except Exception as e:
        logger.exception(f"Error reviewing payment {pk}")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)
    return JsonResponse({'success': True, 'payment': payment.as_dict()})


@login_required
@permission_required_json('payments')
@require_GET
def balances(request):
    """Clinic share, approved payments and owed amount per professional for a period"""
    form = ProfessionalPeriodForm(request.GET)
    if not form.is_valid():
        return _form_error(form)
    return JsonResponse({
        'success': True,
        'balances': services.professional_balances(form.cleaned_data['year'], form.cleaned_data['month']),
    })
