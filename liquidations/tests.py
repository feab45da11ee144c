# liquidations/tests.py
"""
Tests for liquidation calculation, status transitions and payments to the clinic
"""
import json
from datetime import date
from decimal import Decimal

from django.db.models.signals import post_delete, post_save
from django.test import Client, TestCase
from django.urls import reverse

from billing.models import CommissionConfig, RateEntry, SessionRecord
from children.models import Child
from core.models import AuditLog, Notification
from users.models import User

from .calculator import calculate_liquidation
from .exceptions import InvalidStateTransition, LiquidationLocked
from .models import Liquidation, PaymentToClinic
from .services import (
    calculate_all_liquidations, create_or_update_liquidation, professional_balances, register_payment,
)

YEAR = 2024
MONTH = 3


class LiquidationTestMixin:
    """Shared fixtures: one professional with sessions in two modules"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        # Disconnect audit logging signals for tests
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.admin = User.objects.create_user(
            username='admin', password='adminpass123', role=User.ADMIN, first_name='Ana', last_name='Admin'
        )
        self.professional = User.objects.create_user(
            username='laura', password='laurapass123', role=User.PROFESSIONAL,
            first_name='Laura', last_name='Gomez', email='laura@example.com',
        )
        self.child = Child.objects.create(full_name='Tomas Perez', assigned_professional=self.professional)

    def add_sessions(self, module_name, count, professional=None, child=None, month=MONTH):
        return SessionRecord.objects.create(
            professional=professional or self.professional,
            child=child or self.child,
            year=YEAR,
            month=month,
            module_name=module_name,
            session_count=count,
        )

    def add_rate(self, value_type, value, month=MONTH):
        return RateEntry.objects.create(value_type=value_type, year=YEAR, month=month, value=Decimal(value))

    def load_reference_month(self):
        """module: 10 sessions at 100 with 30%; insurance: 5 sessions at 200 with no commission set"""
        self.add_rate('module', '100')
        self.add_rate('insurance', '200')
        CommissionConfig.objects.create(
            professional=self.professional, value_type='module', commission_percentage=Decimal('30')
        )
        self.add_sessions('module', 10)
        self.add_sessions('insurance', 5)


class CalculatorTest(LiquidationTestMixin, TestCase):
    """Test calculate_liquidation"""

    def test_reference_month(self):
        """Test totals and per-module split for a mixed month"""
        self.load_reference_month()

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['total_sessions'], 15)
        self.assertEqual(result['total_amount'], Decimal('2000.00'))
        self.assertEqual(result['professional_amount'], Decimal('550.00'))
        self.assertEqual(result['clinic_amount'], Decimal('1450.00'))
        self.assertEqual(result['professional_percentage'], Decimal('30'))

        breakdown = {item['module_name']: item for item in result['module_breakdown']}
        self.assertEqual(breakdown['module']['professional_amount'], Decimal('300.00'))
        self.assertEqual(breakdown['insurance']['commission_percentage'], Decimal('25'))
        self.assertEqual(breakdown['insurance']['professional_amount'], Decimal('250.00'))

    def test_breakdown_sorted_by_module(self):
        """Test breakdown entries come back in module name order"""
        self.load_reference_month()

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        names = [item['module_name'] for item in result['module_breakdown']]
        self.assertEqual(names, sorted(names))

    def test_shares_add_up_to_total(self):
        """Test clinic and professional amounts always add up to the total"""
        self.add_rate('module', '333.33')
        CommissionConfig.objects.create(
            professional=self.professional, value_type='module', commission_percentage=Decimal('33.33')
        )
        self.add_sessions('module', 7)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['clinic_amount'] + result['professional_amount'], result['total_amount'])

    def test_no_sessions(self):
        """Test a month without sessions gives an all-zero summary"""
        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['total_sessions'], 0)
        self.assertEqual(result['total_amount'], Decimal('0'))
        self.assertEqual(result['professional_amount'], Decimal('0'))
        self.assertEqual(result['clinic_amount'], Decimal('0'))
        self.assertEqual(result['module_breakdown'], [])

    def test_zero_count_rows_ignored(self):
        """Test rows with a session count of zero do not appear in the breakdown"""
        self.add_rate('module', '100')
        self.add_sessions('module', 0)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['module_breakdown'], [])

    def test_missing_rate_bills_zero(self):
        """Test sessions of a module without a rate are counted but billed at 0"""
        self.add_sessions('nomenclature', 4)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['total_sessions'], 4)
        self.assertEqual(result['total_amount'], Decimal('0'))
        self.assertEqual(result['module_breakdown'][0]['rate'], Decimal('0'))

    def test_rate_of_other_month_not_used(self):
        """Test only the period's own rate applies"""
        self.add_rate('module', '100', month=MONTH + 1)
        self.add_sessions('module', 2)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['total_amount'], Decimal('0'))

    def test_zero_commission_is_respected(self):
        """Test a configured 0% commission is not replaced by the default"""
        self.add_rate('module', '100')
        CommissionConfig.objects.create(
            professional=self.professional, value_type='module', commission_percentage=Decimal('0')
        )
        self.add_sessions('module', 3)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['professional_amount'], Decimal('0'))
        self.assertEqual(result['clinic_amount'], Decimal('300.00'))

    def test_inactive_commission_uses_default(self):
        """Test an inactive commission falls back to 25%"""
        self.add_rate('module', '100')
        CommissionConfig.objects.create(
            professional=self.professional, value_type='module',
            commission_percentage=Decimal('60'), is_active=False,
        )
        self.add_sessions('module', 4)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['professional_amount'], Decimal('100.00'))

    def test_other_professionals_ignored(self):
        """Test sessions of another professional are not included"""
        other = User.objects.create_user(username='pedro', password='pedropass123')
        self.add_rate('module', '100')
        self.add_sessions('module', 5, professional=other)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['total_sessions'], 0)

    def test_percentage_falls_back_to_first_configured(self):
        """Test the headline percentage uses the first configured type when module has none"""
        for value_type, percentage in (('nomenclature', '35'), ('insurance', '40')):
            CommissionConfig.objects.create(
                professional=self.professional, value_type=value_type, commission_percentage=Decimal(percentage)
            )
            self.add_rate(value_type, '100')
            self.add_sessions(value_type, 2)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['professional_percentage'], Decimal('40'))

    def test_percentage_default_without_configs(self):
        """Test the headline percentage is 25 when nothing is configured"""
        self.add_rate('insurance', '100')
        self.add_sessions('insurance', 3)

        result = calculate_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(result['professional_percentage'], Decimal('25'))
        self.assertEqual(result['professional_amount'], Decimal('75.00'))

    def test_recalculation_is_stable(self):
        """Test calculating twice with the same data gives the same result"""
        self.load_reference_month()

        self.assertEqual(
            calculate_liquidation(self.professional, YEAR, MONTH),
            calculate_liquidation(self.professional, YEAR, MONTH),
        )


class LiquidationServiceTest(LiquidationTestMixin, TestCase):
    """Test storing and recalculating liquidations"""

    def test_create_liquidation(self):
        """Test the first calculation stores a pending liquidation"""
        self.load_reference_month()

        liquidation, created = create_or_update_liquidation(self.professional, YEAR, MONTH, user=self.admin)

        self.assertTrue(created)
        self.assertEqual(liquidation.status, Liquidation.STATUS_PENDING)
        self.assertEqual(liquidation.total_amount, Decimal('2000'))
        self.assertEqual(liquidation.clinic_amount, Decimal('1450'))
        self.assertEqual(len(liquidation.module_breakdown), 2)

    def test_recalculate_pending_updates_in_place(self):
        """Test recalculating a pending liquidation keeps a single record"""
        self.load_reference_month()
        first, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)

        self.add_sessions('module', 5, child=Child.objects.create(full_name='Sofia Ruiz'))
        second, created = create_or_update_liquidation(self.professional, YEAR, MONTH)

        self.assertFalse(created)
        self.assertEqual(first.pk, second.pk)
        self.assertEqual(second.total_sessions, 20)
        self.assertEqual(Liquidation.objects.count(), 1)

    def test_recalculate_approved_is_refused(self):
        """Test an approved liquidation cannot be recalculated"""
        self.load_reference_month()
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        liquidation.approve(self.admin)

        with self.assertRaises(LiquidationLocked):
            create_or_update_liquidation(self.professional, YEAR, MONTH)

        liquidation.refresh_from_db()
        self.assertEqual(liquidation.status, Liquidation.STATUS_APPROVED)

    def test_recalculate_cancelled_reopens(self):
        """Test recalculating a cancelled liquidation sets it back to pending"""
        self.load_reference_month()
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        liquidation.approve(self.admin)
        liquidation.cancel(reason='Wrong sessions')

        reopened, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)

        self.assertEqual(reopened.status, Liquidation.STATUS_PENDING)
        self.assertIsNone(reopened.approved_at)
        self.assertIsNone(reopened.approved_by)

    def test_batch_reports_each_professional(self):
        """Test the batch run reports updated and skipped professionals"""
        self.load_reference_month()
        other = User.objects.create_user(username='pedro', password='pedropass123')
        locked = Liquidation.objects.create(professional=other, year=YEAR, month=MONTH)
        locked.approve(self.admin)

        report = calculate_all_liquidations(YEAR, MONTH, user=self.admin)

        self.assertEqual([item['professional_id'] for item in report['updated']], [self.professional.pk])
        self.assertEqual([item['professional_id'] for item in report['skipped']], [other.pk])
        self.assertEqual(report['failed'], [])

    def test_register_payment_is_audited(self):
        """Test a reported payment leaves one audit entry"""
        payment = register_payment(self.professional, {
            'year': YEAR, 'month': MONTH, 'payment_date': date(2024, 4, 5),
            'payment_type': 'cash', 'amount': Decimal('500'), 'notes': '',
        })

        entries = AuditLog.objects.filter(model_name='paymenttoclinic', object_id=payment.pk)
        self.assertEqual(list(entries.values_list('action', flat=True)), ['create'])

    def test_batch_skips_inactive_professionals(self):
        """Test inactive professionals are not liquidated"""
        self.professional.is_active = False
        self.professional.save()

        report = calculate_all_liquidations(YEAR, MONTH)

        self.assertEqual(report['updated'], [])
        self.assertFalse(Liquidation.objects.exists())


class LiquidationStatusTest(LiquidationTestMixin, TestCase):
    """Test the liquidation status transitions"""

    def setUp(self):
        super().setUp()
        self.liquidation = Liquidation.objects.create(
            professional=self.professional, year=YEAR, month=MONTH,
            total_amount=Decimal('2000'), professional_amount=Decimal('550'), clinic_amount=Decimal('1450'),
        )

    def test_approve(self):
        """Test approving a pending liquidation"""
        self.liquidation.approve(self.admin)

        self.assertEqual(self.liquidation.status, Liquidation.STATUS_APPROVED)
        self.assertEqual(self.liquidation.approved_by, self.admin)
        self.assertIsNotNone(self.liquidation.approved_at)

    def test_mark_as_paid(self):
        """Test paying an approved liquidation"""
        self.liquidation.approve(self.admin)
        self.liquidation.mark_as_paid(self.admin, reference='TRX-001')

        self.liquidation.refresh_from_db()
        self.assertEqual(self.liquidation.status, Liquidation.STATUS_PAID)
        self.assertEqual(self.liquidation.payment_reference, 'TRX-001')
        self.assertIsNotNone(self.liquidation.paid_at)

    def test_pay_pending_is_invalid(self):
        """Test a pending liquidation cannot be paid"""
        with self.assertRaises(InvalidStateTransition):
            self.liquidation.mark_as_paid(self.admin)

    def test_cancel_pending(self):
        """Test cancelling a pending liquidation"""
        self.liquidation.cancel(reason='Duplicated')

        self.liquidation.refresh_from_db()
        self.assertEqual(self.liquidation.status, Liquidation.STATUS_CANCELLED)
        self.assertEqual(self.liquidation.observations, 'Duplicated')

    def test_cancel_approved(self):
        """Test cancelling an approved liquidation"""
        self.liquidation.approve(self.admin)
        self.liquidation.cancel()

        self.liquidation.refresh_from_db()
        self.assertEqual(self.liquidation.status, Liquidation.STATUS_CANCELLED)

    def test_cancel_paid_is_invalid(self):
        """Test a paid liquidation cannot be cancelled"""
        self.liquidation.approve(self.admin)
        self.liquidation.mark_as_paid(self.admin)

        with self.assertRaises(InvalidStateTransition):
            self.liquidation.cancel()

    def test_approve_twice_is_invalid(self):
        """Test approving an approved liquidation fails"""
        self.liquidation.approve(self.admin)

        with self.assertRaises(InvalidStateTransition):
            self.liquidation.approve(self.admin)

    def test_owed_counts_only_approved_payments(self):
        """Test pending and rejected payments do not reduce the owed balance"""
        for amount, status in (('1000', 'approved'), ('300', 'pending'), ('100', 'rejected')):
            PaymentToClinic.objects.create(
                professional=self.professional, year=YEAR, month=MONTH, payment_date=date(2024, 4, 2),
                payment_type='transfer', amount=Decimal(amount), verification_status=status,
            )

        self.assertEqual(self.liquidation.paid_to_clinic, Decimal('1000'))
        self.assertEqual(self.liquidation.owed_to_clinic, Decimal('450'))

    def test_owed_never_negative(self):
        """Test overpaying leaves nothing owed"""
        PaymentToClinic.objects.create(
            professional=self.professional, year=YEAR, month=MONTH, payment_date=date(2024, 4, 2),
            payment_type='cash', amount=Decimal('2000'), verification_status='approved',
        )

        self.assertEqual(self.liquidation.owed_to_clinic, Decimal('0'))

    def test_professional_balances(self):
        """Test the balance list for a period"""
        PaymentToClinic.objects.create(
            professional=self.professional, year=YEAR, month=MONTH, payment_date=date(2024, 4, 2),
            payment_type='cash', amount=Decimal('450'), verification_status='approved',
        )

        balances = professional_balances(YEAR, MONTH)

        self.assertEqual(len(balances), 1)
        self.assertEqual(balances[0]['paid_to_clinic'], Decimal('450'))
        self.assertEqual(balances[0]['owed_to_clinic'], Decimal('1000'))


class LiquidationViewsTest(LiquidationTestMixin, TestCase):
    """Test liquidation and payment endpoints"""

    def setUp(self):
        super().setUp()
        self.client = Client()
        self.load_reference_month()

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')

    def test_calculate_single(self):
        """Test an admin calculates one professional's liquidation"""
        self.client.force_login(self.admin)

        response = self.post_json(
            reverse('liquidations:calculate'),
            {'year': YEAR, 'month': MONTH, 'professional': self.professional.pk},
        )

        self.assertEqual(response.status_code, 201)
        data = response.json()
        self.assertTrue(data['success'])
        self.assertEqual(Decimal(data['liquidation']['total_amount']), Decimal('2000'))
        self.assertEqual(Decimal(data['liquidation']['owed_to_clinic']), Decimal('1450'))

    def test_calculate_all(self):
        """Test calculating without a professional runs the batch"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('liquidations:calculate'), {'year': YEAR, 'month': MONTH})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(len(response.json()['report']['updated']), 1)

    def test_calculate_invalid_month(self):
        """Test an out-of-range month is rejected"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('liquidations:calculate'), {'year': YEAR, 'month': 13})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['success'])

    def test_calculate_locked(self):
        """Test recalculating an approved liquidation returns an error"""
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        liquidation.approve(self.admin)
        self.client.force_login(self.admin)

        response = self.post_json(
            reverse('liquidations:calculate'),
            {'year': YEAR, 'month': MONTH, 'professional': self.professional.pk},
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn('cannot be recalculated', response.json()['error'])

    def test_professional_cannot_calculate(self):
        """Test professionals are denied the calculate action"""
        self.client.force_login(self.professional)

        response = self.post_json(reverse('liquidations:calculate'), {'year': YEAR, 'month': MONTH})

        self.assertEqual(response.status_code, 403)

    def test_approve_and_pay(self):
        """Test approve then pay through the endpoints"""
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        self.client.force_login(self.admin)

        response = self.post_json(reverse('liquidations:approve', args=[liquidation.pk]))
        self.assertEqual(response.json()['liquidation']['status'], 'approved')

        response = self.post_json(
            reverse('liquidations:mark_paid', args=[liquidation.pk]), {'payment_reference': 'TRX-9'}
        )
        self.assertEqual(response.json()['liquidation']['status'], 'paid')
        self.assertTrue(Notification.objects.filter(user=self.professional).exists())

    def test_invalid_transition_returns_error(self):
        """Test paying a pending liquidation returns 400"""
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        self.client.force_login(self.admin)

        response = self.post_json(reverse('liquidations:mark_paid', args=[liquidation.pk]))

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['success'])

    def test_unknown_liquidation(self):
        """Test actions on a missing liquidation return 404"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('liquidations:approve', args=[9999]))

        self.assertEqual(response.status_code, 404)
        self.assertFalse(response.json()['success'])

    def test_my_liquidations(self):
        """Test a professional sees only their own liquidations"""
        create_or_update_liquidation(self.professional, YEAR, MONTH)
        other = User.objects.create_user(username='pedro', password='pedropass123')
        create_or_update_liquidation(other, YEAR, MONTH)
        self.client.force_login(self.professional)

        response = self.client.get(reverse('liquidations:my_liquidations'))

        liquidations = response.json()['liquidations']
        self.assertEqual(len(liquidations), 1)
        self.assertEqual(liquidations[0]['professional_id'], self.professional.pk)

    def test_detail_of_other_professional_denied(self):
        """Test a professional cannot read someone else's liquidation"""
        other = User.objects.create_user(username='pedro', password='pedropass123')
        liquidation, _ = create_or_update_liquidation(other, YEAR, MONTH)
        self.client.force_login(self.professional)

        response = self.client.get(reverse('liquidations:liquidation_detail', args=[liquidation.pk]))

        self.assertEqual(response.status_code, 403)

    def test_statement_pdf(self):
        """Test the owner can download the statement PDF"""
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        self.client.force_login(self.professional)

        response = self.client.get(reverse('liquidations:statement_pdf', args=[liquidation.pk]))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response['Content-Type'], 'application/pdf')

    def test_stats(self):
        """Test liquidation stats per status"""
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        liquidation.approve(self.admin)
        self.client.force_login(self.admin)

        response = self.client.get(reverse('liquidations:liquidation_stats'), {'year': YEAR})

        stats = response.json()['stats']
        self.assertEqual(stats['total'], 1)
        self.assertEqual(stats['approved'], 1)
        self.assertEqual(Decimal(stats['pending_amount']), Decimal('2000'))
        self.assertEqual(Decimal(stats['total_amount']), Decimal('2000'))
        self.assertEqual(Decimal(stats['paid_amount']), Decimal('0'))

    def test_payment_create_notifies_admins(self):
        """Test reporting a payment creates it pending and notifies admins"""
        self.client.force_login(self.professional)

        response = self.post_json(reverse('liquidations:payment_create'), {
            'year': YEAR, 'month': MONTH, 'payment_date': '2024-04-05',
            'payment_type': 'transfer', 'amount': '1450', 'notes': 'March',
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['payment']['verification_status'], 'pending')
        self.assertTrue(Notification.objects.filter(user=self.admin, title='Nuevo pago recibido').exists())

    def test_payment_amount_must_be_positive(self):
        """Test a zero payment is rejected"""
        self.client.force_login(self.professional)

        response = self.post_json(reverse('liquidations:payment_create'), {
            'year': YEAR, 'month': MONTH, 'payment_date': '2024-04-05',
            'payment_type': 'cash', 'amount': '0',
        })

        self.assertEqual(response.status_code, 400)
        self.assertFalse(PaymentToClinic.objects.exists())

    def test_payment_review(self):
        """Test approving a payment notifies the professional and cannot be repeated"""
        payment = PaymentToClinic.objects.create(
            professional=self.professional, year=YEAR, month=MONTH, payment_date=date(2024, 4, 5),
            payment_type='cash', amount=Decimal('500'),
        )
        self.client.force_login(self.admin)

        response = self.post_json(reverse('liquidations:payment_review', args=[payment.pk]), {'status': 'approved'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['payment']['verification_status'], 'approved')
        self.assertTrue(Notification.objects.filter(user=self.professional, title='Pago aprobado').exists())

        response = self.post_json(reverse('liquidations:payment_review', args=[payment.pk]), {'status': 'rejected'})
        self.assertEqual(response.status_code, 400)

    def test_professional_cannot_review(self):
        """Test professionals are denied payment review"""
        payment = PaymentToClinic.objects.create(
            professional=self.professional, year=YEAR, month=MONTH, payment_date=date(2024, 4, 5),
            payment_type='cash', amount=Decimal('500'),
        )
        self.client.force_login(self.professional)

        response = self.post_json(reverse('liquidations:payment_review', args=[payment.pk]), {'status': 'approved'})

        self.assertEqual(response.status_code, 403)

    def test_cancel(self):
        """Test cancelling a pending liquidation through the endpoint"""
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        self.client.force_login(self.admin)

        response = self.post_json(reverse('liquidations:cancel', args=[liquidation.pk]), {'reason': 'Duplicated'})

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['liquidation']['status'], 'cancelled')
        liquidation.refresh_from_db()
        self.assertEqual(liquidation.observations, 'Duplicated')

    def test_cancel_paid_returns_error(self):
        """Test cancelling a paid liquidation returns 400"""
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        liquidation.approve(self.admin)
        liquidation.mark_as_paid(self.admin)
        self.client.force_login(self.admin)

        response = self.post_json(reverse('liquidations:cancel', args=[liquidation.pk]))

        self.assertEqual(response.status_code, 400)
        liquidation.refresh_from_db()
        self.assertEqual(liquidation.status, Liquidation.STATUS_PAID)

    def test_long_payment_reference_rejected(self):
        """Test payment references longer than the column are rejected"""
        liquidation, _ = create_or_update_liquidation(self.professional, YEAR, MONTH)
        liquidation.approve(self.admin)
        self.client.force_login(self.admin)

        response = self.post_json(
            reverse('liquidations:mark_paid', args=[liquidation.pk]), {'payment_reference': 'X' * 101}
        )

        self.assertEqual(response.status_code, 400)
        liquidation.refresh_from_db()
        self.assertEqual(liquidation.status, Liquidation.STATUS_APPROVED)

    def test_balances(self):
        """Test the balance list subtracts approved payments only"""
        create_or_update_liquidation(self.professional, YEAR, MONTH)
        for amount, status in (('450', 'approved'), ('300', 'pending')):
            PaymentToClinic.objects.create(
                professional=self.professional, year=YEAR, month=MONTH, payment_date=date(2024, 4, 2),
                payment_type='transfer', amount=Decimal(amount), verification_status=status,
            )
        self.client.force_login(self.admin)

        response = self.client.get(reverse('liquidations:balances'), {'year': YEAR, 'month': MONTH})

        balances = response.json()['balances']
        self.assertEqual(len(balances), 1)
        self.assertEqual(Decimal(balances[0]['paid_to_clinic']), Decimal('450'))
        self.assertEqual(Decimal(balances[0]['owed_to_clinic']), Decimal('1000'))

    def test_balances_bad_professional(self):
        """Test a non-numeric professional filter is rejected"""
        self.client.force_login(self.admin)

        response = self.client.get(
            reverse('liquidations:balances'), {'year': YEAR, 'month': MONTH, 'professional': 'abc'}
        )

        self.assertEqual(response.status_code, 400)

    def test_balances_denied_to_professionals(self):
        """Test professionals cannot read the clinic balance list"""
        self.client.force_login(self.professional)

        response = self.client.get(reverse('liquidations:balances'), {'year': YEAR, 'month': MONTH})

        self.assertEqual(response.status_code, 403)

    def test_payment_list_filters(self):
        """Test payment filters combine a verification status with the period"""
        for month, status in ((MONTH, 'rejected'), (MONTH + 1, 'rejected'), (MONTH, 'approved')):
            PaymentToClinic.objects.create(
                professional=self.professional, year=YEAR, month=month, payment_date=date(2024, 4, 2),
                payment_type='cash', amount=Decimal('100'), verification_status=status,
            )
        self.client.force_login(self.admin)

        response = self.client.get(
            reverse('liquidations:payment_list'), {'status': 'rejected', 'year': YEAR, 'month': MONTH}
        )

        payments = response.json()['payments']
        self.assertEqual(len(payments), 1)
        self.assertEqual(payments[0]['verification_status'], 'rejected')
