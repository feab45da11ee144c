# reports/views.py
import logging

from django.contrib.auth.decorators import login_required
from django.http import JsonResponse
from django.views.decorators.http import require_GET

from billing.services import expense_stats
from core.decorators import permission_required_json
from core.utils import current_period, parse_int
from liquidations.calculator import calculate_liquidation

from . import statistics

logger = logging.getLogger(__name__)


def _year_param(request):
    year = parse_int(request.GET.get('year'))
    if year is None:
        year, _ = current_period()
    return year


def _month_param(request):
    """Optional month filter; None when absent, False when out of range"""
    if not request.GET.get('month'):
        return None
    month = parse_int(request.GET.get('month'))
    if month is None or not 1 <= month <= 12:
        return False
    return month


@login_required
@permission_required_json('dashboard')
@require_GET
def dashboard(request):
    """
    Admins get clinic-wide counters; professionals get an estimate of the
    current month's liquidation from the sessions loaded so far.
    """
    try:
        if request.user.has_permission('reports'):
            stats = statistics.dashboard_stats()
        else:
            year, month = current_period()
            stats = calculate_liquidation(request.user, year, month)
    except Exception as e:
        logger.exception("Error building dashboard stats")
        return JsonResponse({'success': False, 'error': str(e)}, status=500)
    return JsonResponse({'success': True, 'stats': stats})


@login_required
@permission_required_json('reports')
@require_GET
def monthly(request):
    year = _year_param(request)
    return JsonResponse({'success': True, 'year': year, 'months': statistics.monthly_stats(year)})


@login_required
@permission_required_json('reports')
@require_GET
def professionals(request):
    year = _year_param(request)
    month = _month_param(request)
    if month is False:
        return JsonResponse({'success': False, 'error': 'month must be between 1 and 12'}, status=400)
    return JsonResponse({
        'success': True,
        'year': year,
        'month': month,
        'professionals': statistics.professional_stats(year, month),
    })


@login_required
@permission_required_json('reports')
@require_GET
def financial_health(request):
    year = _year_param(request)
    return JsonResponse({
        'success': True,
        'year': year,
        'months': statistics.financial_health(year),
        'expenses': expense_stats(year),
    })


@login_required
@permission_required_json('reports')
@require_GET
def payment_status(request):
    return JsonResponse({'success': True, 'distribution': statistics.payment_status_distribution()})
