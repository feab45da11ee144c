# reports/statistics.py
"""
Aggregate figures for the admin dashboard and statistics screens.

Billing figures count confirmed sessions only and price them with the
rate of each session's own module and period.
"""
from decimal import Decimal

from django.db.models import Count, Sum

from billing.models import Expense, SessionRecord
from billing.services import billed_amount
from children.models import Child
from core.utils import current_period
from liquidations.models import Liquidation, PaymentToClinic
from users.models import User

MONTHS = range(1, 13)


def confirmed_sessions(year, month=None):
    sessions = SessionRecord.objects.filter(year=year, is_confirmed=True)
    if month is not None:
        sessions = sessions.filter(month=month)
    return sessions


def monthly_stats(year):
    """
    One row per month of ``year`` with total_sessions, total_amount,
    professional_count and children_count.
    """
    sessions = confirmed_sessions(year)
    counts = {
        row['month']: row
        for row in sessions.order_by().values('month').annotate(
            total_sessions=Sum('session_count'),
            professional_count=Count('professional', distinct=True),
            children_count=Count('child', distinct=True),
        )
    }

    rows = []
    for month in MONTHS:
        row = counts.get(month, {})
        rows.append({
            'year': year,
            'month': month,
            'total_sessions': row.get('total_sessions') or 0,
            'total_amount': billed_amount(sessions.filter(month=month)) if row else Decimal('0.00'),
            'professional_count': row.get('professional_count', 0),
            'children_count': row.get('children_count', 0),
        })
    return rows


def professional_stats(year, month=None):
    """Sessions, billed amount and distinct children per professional, highest amount first"""
    sessions = confirmed_sessions(year, month)
    per_professional = (
        sessions.order_by()
        .values('professional_id')
        .annotate(total_sessions=Sum('session_count'), children_count=Count('child', distinct=True))
    )
    names = {
        user.pk: user.full_name
        for user in User.objects.filter(pk__in=[row['professional_id'] for row in per_professional])
    }

    rows = [
        {
            'professional_id': row['professional_id'],
            'professional_name': names.get(row['professional_id'], 'Desconocido'),
            'total_sessions': row['total_sessions'] or 0,
            'total_amount': billed_amount(sessions.filter(professional_id=row['professional_id'])),
            'children_count': row['children_count'],
        }
        for row in per_professional
    ]
    rows.sort(key=lambda row: row['total_amount'], reverse=True)
    return rows


def dashboard_stats():
    year, month = current_period()
    professionals = User.objects.professionals(include_inactive=True)
    current_sessions = confirmed_sessions(year, month)
    liquidation_counts = dict(
        Liquidation.objects.filter(year=year, month=month)
        .order_by()
        .values('status')
        .annotate(total=Count('id'))
        .values_list('status', 'total')
    )

    return {
        'year': year,
        'month': month,
        'total_professionals': professionals.count(),
        'active_professionals': professionals.filter(is_active=True).count(),
        'total_children': Child.objects.count(),
        'active_children': Child.active.count(),
        'current_month_sessions': current_sessions.aggregate(total=Sum('session_count'))['total'] or 0,
        'current_month_amount': billed_amount(current_sessions),
        'liquidations_pending': liquidation_counts.get(Liquidation.STATUS_PENDING, 0),
        'liquidations_paid': liquidation_counts.get(Liquidation.STATUS_PAID, 0),
    }


def financial_health(year):
    """Approved payments to the clinic (income) against expenses, per month"""
    income = dict(
        PaymentToClinic.objects.filter(year=year, verification_status=PaymentToClinic.STATUS_APPROVED)
        .order_by()
        .values('month')
        .annotate(total=Sum('amount'))
        .values_list('month', 'total')
    )
    expenses = dict(
        Expense.objects.filter(year=year)
        .order_by()
        .values('month')
        .annotate(total=Sum('amount'))
        .values_list('month', 'total')
    )
    return [
        {
            'month': month,
            'income': income.get(month, Decimal('0.00')),
            'expenses': expenses.get(month, Decimal('0.00')),
        }
        for month in MONTHS
    ]


def payment_status_distribution():
    counts = dict(
        PaymentToClinic.objects.order_by()
        .values('verification_status')
        .annotate(total=Count('id'))
        .values_list('verification_status', 'total')
    )
    return [
        {'status': status, 'label': label, 'count': counts.get(status, 0)}
        for status, label in PaymentToClinic.VERIFICATION_CHOICES
    ]
