"""
Shared helpers for dates, money formatting and JSON request handling.
"""
import json
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.utils import timezone

CENTS = Decimal('0.01')

MONTH_NAMES = [
    'Enero', 'Febrero', 'Marzo', 'Abril', 'Mayo', 'Junio',
    'Julio', 'Agosto', 'Septiembre', 'Octubre', 'Noviembre', 'Diciembre',
]


def get_local_now():
    """
    Get the current datetime in the clinic's timezone.

    Returns:
        datetime: timezone-aware datetime in settings.TIME_ZONE
    """
    return timezone.localtime(timezone.now())


def get_local_today():
    return get_local_now().date()


def current_period():
    """Return (year, month) for the clinic's current date"""
    today = get_local_today()
    return today.year, today.month


def get_month_name(month):
    """Spanish month name for 1-12, empty string otherwise"""
    if isinstance(month, int) and 1 <= month <= 12:
        return MONTH_NAMES[month - 1]
    return ''


def to_money(value):
    """Quantize a value to cents, rounding half up"""
    return Decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def format_currency(value, symbol='$'):
    """
    Format an amount as whole pesos with dot thousands separators,
    e.g. 1234567 -> "$1.234.567".
    """
    try:
        amount = Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP)
    except (InvalidOperation, ValueError, TypeError):
        amount = Decimal('0')
    sign = '-' if amount < 0 else ''
    return f"{sign}{symbol}{abs(amount):,.0f}".replace(',', '.')


def parse_json_body(request):
    """
    Decode a JSON object request body.

    Raises:
        ValueError: if the body is not a JSON object
    """
    if not request.body:
        return {}
    data = json.loads(request.body)
    if not isinstance(data, dict):
        raise ValueError('Expected a JSON object')
    return data


def form_error_message(form):
    """Flatten form errors into a single message for JSON responses"""
    messages = []
    for field, errors in form.errors.items():
        label = '' if field == '__all__' else f"{field}: "
        messages.extend(f"{label}{error}" for error in errors)
    return '; '.join(messages)


def parse_int(value, default=None):
    try:
        return int(value)
    except (TypeError, ValueError):
        return default
