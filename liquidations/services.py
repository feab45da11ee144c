# liquidations/services.py
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Count, Q, Sum
from django.utils import timezone

from core.models import AuditLog, Notification
from users.models import User

from .calculator import calculate_liquidation
from .exceptions import LiquidationLocked
from .models import Liquidation, PaymentToClinic

logger = logging.getLogger(__name__)

SUMMARY_FIELDS = (
    'total_sessions', 'total_amount', 'professional_percentage',
    'professional_amount', 'clinic_amount', 'module_breakdown',
)


@transaction.atomic
def create_or_update_liquidation(professional, year, month, user=None):
    """
    Recalculate and store a professional's liquidation for a month.

    A new record, or an existing pending one, gets the fresh totals with
    status pending; a cancelled one is reopened as pending.

    Raises:
        LiquidationLocked: the existing record is approved or paid

    Returns:
        Tuple of (Liquidation, created)
    """
    existing = (
        Liquidation.objects.select_for_update()
        .filter(professional=professional, year=year, month=month)
        .first()
    )
    if existing is not None and existing.is_locked:
        raise LiquidationLocked(existing)

    summary = calculate_liquidation(professional, year, month)
    defaults = {field: summary[field] for field in SUMMARY_FIELDS}
    defaults.update({
        'status': Liquidation.STATUS_PENDING,
        'calculated_at': timezone.now(),
        'approved_at': None,
        'approved_by': None,
        'paid_at': None,
        'paid_by': None,
        'payment_reference': '',
    })

    liquidation, created = Liquidation.objects.update_or_create(
        professional=professional, year=year, month=month, defaults=defaults,
    )
    if user is not None:
        AuditLog.log_action(
            user=user,
            action='calculate',
            model_instance=liquidation,
            description=f"Calculated liquidation: total {liquidation.total_amount}, "
                        f"professional {liquidation.professional_amount}",
        )
    logger.info(
        f"Liquidation {'created' if created else 'recalculated'} for professional {liquidation.professional_id} "
        f"{month:02d}/{year}: total={liquidation.total_amount} clinic={liquidation.clinic_amount}"
    )
    return liquidation, created


def calculate_all_liquidations(year, month, user=None, professionals=None):
    """
    Run create_or_update_liquidation for every active professional.

    Each professional is handled in its own transaction, so one failure
    neither stops the batch nor leaves a partial record.

    Returns:
        Dict with 'updated', 'skipped' and 'failed' lists; each item has
        professional_id and professional_name, plus liquidation_id or error.
    """
    if professionals is None:
        professionals = User.objects.professionals().order_by('last_name', 'first_name')

    report = {'updated': [], 'skipped': [], 'failed': []}
    for professional in professionals:
        item = {'professional_id': professional.pk, 'professional_name': professional.full_name}
        try:
            liquidation, _ = create_or_update_liquidation(professional, year, month, user=user)
        except LiquidationLocked as e:
            report['skipped'].append({**item, 'error': str(e)})
        except Exception as e:
            logger.exception(f"Liquidation failed for professional {professional.pk} {month:02d}/{year}")
            report['failed'].append({**item, 'error': str(e)})
        else:
            report['updated'].append({**item, 'liquidation_id': liquidation.pk})

    logger.info(
        f"Batch liquidation {month:02d}/{year}: {len(report['updated'])} updated, "
        f"{len(report['skipped'])} skipped, {len(report['failed'])} failed"
    )
    return report


def transition_liquidation(pk, action, user, reference=None, reason=''):
    """
    Apply approve / pay / cancel to a liquidation under a row lock.

    Raises:
        Liquidation.DoesNotExist: unknown id
        InvalidStateTransition: current status does not allow the action
    """
    with transaction.atomic():
        liquidation = Liquidation.objects.select_for_update().get(pk=pk)
        previous = liquidation.status
        if action == 'approve':
            liquidation.approve(user)
        elif action == 'pay':
            liquidation.mark_as_paid(user, reference=reference)
        elif action == 'cancel':
            liquidation.cancel(reason=reason)
        else:
            raise ValueError(f"Unknown liquidation action: {action}")

        AuditLog.log_action(
            user=user,
            action=action,
            model_instance=liquidation,
            changes={'status': {'old': previous, 'new': liquidation.status, 'label': 'Status'}},
            description=f"Liquidation {previous} -> {liquidation.status}",
        )

    if liquidation.status in (Liquidation.STATUS_APPROVED, Liquidation.STATUS_PAID):
        Notification.notify(
            liquidation.professional,
            'Liquidación actualizada',
            f"Tu liquidación de {liquidation.month:02d}/{liquidation.year} fue marcada como "
            f"{liquidation.get_status_display().lower()}.",
            type='success',
        )
    return liquidation


def get_liquidations(year=None, month=None, professional=None, status=None):
    liquidations = Liquidation.objects.select_related('professional')
    if year:
        liquidations = liquidations.filter(year=year)
    if month:
        liquidations = liquidations.filter(month=month)
    if professional:
        liquidations = liquidations.filter(professional=professional)
    if status:
        liquidations = liquidations.filter(status=status)
    return liquidations


def get_liquidation_stats(year, month=None):
    """Counts per status and amount totals for a year or a single month"""
    liquidations = Liquidation.objects.filter(year=year)
    if month:
        liquidations = liquidations.filter(month=month)

    stats = liquidations.aggregate(
        total=Count('id'),
        pending=Count('id', filter=Q(status=Liquidation.STATUS_PENDING)),
        approved=Count('id', filter=Q(status=Liquidation.STATUS_APPROVED)),
        paid=Count('id', filter=Q(status=Liquidation.STATUS_PAID)),
        cancelled=Count('id', filter=Q(status=Liquidation.STATUS_CANCELLED)),
        amount_total=Sum('total_amount'),
        amount_paid=Sum('total_amount', filter=Q(status=Liquidation.STATUS_PAID)),
        amount_pending=Sum(
            'total_amount',
            filter=Q(status__in=[Liquidation.STATUS_PENDING, Liquidation.STATUS_APPROVED]),
        ),
    )
    # Aggregate aliases must not reuse a model field name
    for key in ('total', 'paid', 'pending'):
        stats[f"{key}_amount"] = stats.pop(f"amount_{key}") or Decimal('0.00')
    return stats


@transaction.atomic
def register_payment(professional, cleaned_data):
    """Record a pending payment to the clinic and let every admin know"""
    payment = PaymentToClinic.objects.create(professional=professional, **cleaned_data)
    AuditLog.log_action(
        user=professional,
        action='create',
        model_instance=payment,
        description=f"Reported payment of {payment.amount} for {payment.month:02d}/{payment.year}",
    )
    Notification.notify_admins(
        'Nuevo pago recibido',
        f"{professional.full_name} registró un pago de {payment.amount} "
        f"({payment.get_payment_type_display().lower()}) para {payment.month:02d}/{payment.year}.",
        type='info',
    )
    logger.info(f"Payment {payment.pk} of {payment.amount} reported by {professional.username}")
    return payment


def review_payment(pk, status, user):
    """
    Approve or reject a pending payment and notify the professional.

    Raises:
        PaymentToClinic.DoesNotExist, InvalidStateTransition, ValueError
    """
    with transaction.atomic():
        payment = PaymentToClinic.objects.select_for_update().select_related('professional').get(pk=pk)
        payment.review(status, user)
        approved = status == PaymentToClinic.STATUS_APPROVED
        Notification.notify(
            payment.professional,
            'Pago aprobado' if approved else 'Pago rechazado',
            f"Tu pago de {payment.amount} para {payment.month:02d}/{payment.year} fue "
            f"{'aprobado' if approved else 'rechazado'}.",
            type='success' if approved else 'error',
        )
        AuditLog.log_action(
            user=user,
            action='approve' if approved else 'reject',
            model_instance=payment,
            description=f"Payment {payment.pk} {status}",
        )
    return payment


def professional_balances(year, month):
    """
    Per-professional balance for a period: clinic share of the liquidation,
    approved payments so far and what is still owed.
    """
    liquidations = get_liquidations(year=year, month=month).exclude(status=Liquidation.STATUS_CANCELLED)
    approved = dict(
        PaymentToClinic.objects.filter(
            year=year, month=month, verification_status=PaymentToClinic.STATUS_APPROVED
        )
        .order_by()
        .values('professional_id')
        .annotate(total=Sum('amount'))
        .values_list('professional_id', 'total')
    )

    balances = []
    for liquidation in liquidations:
        paid = approved.get(liquidation.professional_id, Decimal('0.00'))
        balances.append({
            'professional_id': liquidation.professional_id,
            'professional_name': liquidation.professional.full_name,
            'liquidation_id': liquidation.pk,
            'status': liquidation.status,
            'clinic_amount': liquidation.clinic_amount,
            'paid_to_clinic': paid,
            'owed_to_clinic': max(liquidation.clinic_amount - paid, Decimal('0.00')),
        })
    return balances
