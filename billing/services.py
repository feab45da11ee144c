# billing/services.py
"""
Write paths for rates, sessions and commissions, plus the shared
"sessions x rate" billing sum used by statistics.
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Q, Sum
from django.utils import timezone

from .models import CommissionConfig, Expense, RateEntry, SessionRecord

logger = logging.getLogger(__name__)

DEFAULT_COMMISSION = Decimal('25')


def upsert_rate(value_type, year, month, value, user=None):
    """
    Create or overwrite the rate of ``value_type`` for a period.

    Returns:
        Tuple of (RateEntry, created)
    """
    rate, created = RateEntry.objects.update_or_create(
        value_type=value_type,
        year=year,
        month=month,
        defaults={'value': value, 'created_by': user},
    )
    logger.info(f"Rate {value_type} {month:02d}/{year} {'created' if created else 'updated'}: {value}")
    return rate, created


@transaction.atomic
def save_session_rows(professional, year, month, rows):
    """
    Upsert a batch of session rows for one professional and period.

    Args:
        professional: User the sessions belong to
        year, month: Period of the sheet
        rows: Iterable of cleaned SessionRowForm data

    Every saved row goes back to unconfirmed, since its count may have changed.
    """
    saved = []
    for row in rows:
        record, _ = SessionRecord.objects.update_or_create(
            professional=professional,
            child=row['child'],
            year=year,
            month=month,
            module_name=row['module_name'],
            defaults={
                'session_count': row['session_count'],
                'individual_sessions': row['individual_sessions'],
                'group_sessions': row['group_sessions'],
                'observations': row.get('observations', ''),
                'is_confirmed': False,
                'confirmed_at': None,
                'confirmed_by': None,
            },
        )
        saved.append(record)
    return saved


def confirm_sessions(professional, year, month, confirmed_by):
    """Mark every session row of a period as confirmed. Returns the number of rows."""
    return SessionRecord.objects.filter(
        professional=professional, year=year, month=month, is_confirmed=False
    ).update(is_confirmed=True, confirmed_at=timezone.now(), confirmed_by=confirmed_by)


def upsert_commission(professional, value_type, commission_percentage, is_active=True):
    config, created = CommissionConfig.objects.update_or_create(
        professional=professional,
        value_type=value_type,
        defaults={'commission_percentage': commission_percentage, 'is_active': is_active},
    )
    return config, created


def get_effective_commission(professional, value_type):
    """Active configured percentage, or the 25% default"""
    config = CommissionConfig.objects.filter(
        professional=professional, value_type=value_type, is_active=True
    ).first()
    return config.commission_percentage if config else DEFAULT_COMMISSION


def billed_amount(sessions):
    """
    Sum of session_count x rate over a SessionRecord queryset, using the
    rate of each row's own module and period. Modules without a rate bill 0.
    """
    totals = list(
        sessions.filter(session_count__gt=0)
        .order_by()
        .values('module_name', 'year', 'month')
        .annotate(count=Sum('session_count'))
    )
    periods = {(row['year'], row['month']) for row in totals}
    if not periods:
        return Decimal('0.00')

    period_filter = Q()
    for year, month in periods:
        period_filter |= Q(year=year, month=month)
    rates = {
        (rate.value_type, rate.year, rate.month): rate.value
        for rate in RateEntry.objects.filter(period_filter)
    }

    total = Decimal('0.00')
    for row in totals:
        total += row['count'] * rates.get((row['module_name'], row['year'], row['month']), Decimal('0'))
    return total


def expense_stats(year, month=None):
    """Total and per-category expense amounts for a year or a single month"""
    expenses = Expense.objects.filter(year=year)
    if month is not None:
        expenses = expenses.filter(month=month)

    by_category = {
        row['category']: row['total']
        for row in expenses.values('category').annotate(total=Sum('amount')).order_by('category')
    }
    return {
        'total': sum(by_category.values(), Decimal('0.00')),
        'by_category': by_category,
    }
