# liquidations/calculator.py
"""
Monthly liquidation arithmetic.

For one professional and period, sessions are grouped by module, priced
with that period's rate for the module and split between professional and
clinic using the professional's commission for the module. Reads only;
persisting the result is done in services.create_or_update_liquidation.
"""
import logging
from decimal import Decimal

from django.db.models import Sum

from billing.models import CommissionConfig, RateEntry, SessionRecord
from billing.services import DEFAULT_COMMISSION
from core.utils import to_money

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


def get_commission_map(professional):
    """Active commission percentages of a professional keyed by value type, in value type order"""
    configs = CommissionConfig.objects.filter(professional=professional, is_active=True).order_by('value_type')
    return dict(configs.values_list('value_type', 'commission_percentage'))


def headline_percentage(commissions):
    """
    Single percentage shown on the statement: the 'module' commission if
    configured, else the first configured one, else the default.
    """
    if 'module' in commissions:
        return commissions['module']
    if commissions:
        return next(iter(commissions.values()))
    return DEFAULT_COMMISSION


def calculate_liquidation(professional, year, month):
    """
    Compute a professional's liquidation for a month.

    Args:
        professional: User instance or primary key
        year: Calendar year
        month: 1-12

    Returns:
        Dict with total_sessions, total_amount, professional_percentage,
        professional_amount, clinic_amount and module_breakdown (one entry
        per module, sorted by module name). All money values are Decimal
        quantized to cents and clinic_amount + professional_amount always
        equals total_amount.
    """
    professional_id = getattr(professional, 'pk', professional)

    session_totals = (
        SessionRecord.objects
        .filter(professional_id=professional_id, year=year, month=month, session_count__gt=0)
        .order_by()
        .values('module_name')
        .annotate(count=Sum('session_count'))
    )
    rates = RateEntry.rates_for(year, month)
    commissions = get_commission_map(professional_id)

    breakdown = []
    for row in session_totals:
        module_name = row['module_name']
        rate = rates.get(module_name, ZERO)
        amount = to_money(rate * row['count'])
        commission = commissions.get(module_name, DEFAULT_COMMISSION)
        breakdown.append({
            'module_name': module_name,
            'session_count': row['count'],
            'rate': to_money(rate),
            'amount': amount,
            'commission_percentage': commission,
            'professional_amount': to_money(amount * commission / 100),
        })
    breakdown.sort(key=lambda item: item['module_name'])

    missing_rates = [item['module_name'] for item in breakdown if item['module_name'] not in rates]
    if missing_rates:
        logger.warning(
            f"No rate for {', '.join(missing_rates)} in {month:02d}/{year}; "
            f"billing those sessions at 0 for professional {professional_id}"
        )

    total_amount = sum((item['amount'] for item in breakdown), ZERO)
    professional_amount = sum((item['professional_amount'] for item in breakdown), ZERO)

    return {
        'professional_id': professional_id,
        'year': year,
        'month': month,
        'total_sessions': sum(item['session_count'] for item in breakdown),
        'total_amount': total_amount,
        'professional_percentage': headline_percentage(commissions) if breakdown else DEFAULT_COMMISSION,
        'professional_amount': professional_amount,
        'clinic_amount': total_amount - professional_amount,
        'module_breakdown': breakdown,
    }
