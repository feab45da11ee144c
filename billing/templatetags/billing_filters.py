# billing/templatetags/billing_filters.py
from decimal import Decimal, InvalidOperation

from django import template

from core.utils import format_currency as _format_currency
from core.utils import get_month_name

register = template.Library()


@register.filter
def format_currency(value, symbol='$'):
    """
    Format an amount as whole pesos.
    Usage: {{ liquidation.total_amount|format_currency }}
    """
    return _format_currency(value, symbol)


@register.filter
def month_name(value):
    """Usage: {{ liquidation.month|month_name }} -> "Marzo" """
    try:
        return get_month_name(int(value))
    except (TypeError, ValueError):
        return ''


@register.filter
def percentage(value):
    """Render a percentage without trailing zeros, e.g. 25.00 -> 25%"""
    try:
        number = Decimal(str(value)).normalize()
    except (InvalidOperation, ValueError, TypeError):
        return '0%'
    return f"{number:f}%"
