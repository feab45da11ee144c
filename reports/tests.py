# reports/tests.py
"""
Tests for clinic statistics
"""
from datetime import date
from decimal import Decimal

from django.db.models.signals import post_delete, post_save
from django.test import Client, TestCase
from django.urls import reverse

from billing.models import Expense, RateEntry, SessionRecord
from children.models import Child
from core.utils import current_period
from liquidations.models import Liquidation, PaymentToClinic
from users.models import User

from . import statistics


class StatisticsTest(TestCase):
    """Test the statistics aggregations"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        # Disconnect audit logging signals for tests
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.laura = User.objects.create_user(username='laura', password='laurapass123', first_name='Laura')
        self.pedro = User.objects.create_user(username='pedro', password='pedropass123', first_name='Pedro')
        self.tomas = Child.objects.create(full_name='Tomas Perez')
        self.sofia = Child.objects.create(full_name='Sofia Ruiz')
        RateEntry.objects.create(value_type='module', year=2024, month=3, value=Decimal('100'))
        RateEntry.objects.create(value_type='module', year=2024, month=4, value=Decimal('120'))

        self.add_sessions(self.laura, self.tomas, 3, 4)
        self.add_sessions(self.laura, self.sofia, 3, 2)
        self.add_sessions(self.pedro, self.tomas, 4, 3)
        # Unconfirmed rows are left out of statistics
        self.add_sessions(self.pedro, self.sofia, 4, 10, is_confirmed=False)

    def add_sessions(self, professional, child, month, count, is_confirmed=True):
        return SessionRecord.objects.create(
            professional=professional, child=child, year=2024, month=month,
            module_name='module', session_count=count, is_confirmed=is_confirmed,
        )

    def test_monthly_stats(self):
        """Test one row per month with confirmed sessions only"""
        rows = statistics.monthly_stats(2024)

        self.assertEqual(len(rows), 12)
        march, april = rows[2], rows[3]
        self.assertEqual(march['total_sessions'], 6)
        self.assertEqual(march['total_amount'], Decimal('600'))
        self.assertEqual(march['professional_count'], 1)
        self.assertEqual(march['children_count'], 2)
        self.assertEqual(april['total_sessions'], 3)
        self.assertEqual(april['total_amount'], Decimal('360'))
        self.assertEqual(rows[0]['total_sessions'], 0)

    def test_professional_stats(self):
        """Test per-professional totals sorted by amount"""
        rows = statistics.professional_stats(2024)

        self.assertEqual([row['professional_name'] for row in rows], ['Laura', 'Pedro'])
        self.assertEqual(rows[0]['total_amount'], Decimal('600'))
        self.assertEqual(rows[0]['children_count'], 2)

    def test_professional_stats_for_month(self):
        """Test filtering professional stats by month"""
        rows = statistics.professional_stats(2024, 4)

        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['professional_id'], self.pedro.pk)
        self.assertEqual(rows[0]['total_sessions'], 3)

    def test_financial_health(self):
        """Test approved payments against expenses per month"""
        PaymentToClinic.objects.create(
            professional=self.laura, year=2024, month=3, payment_date=date(2024, 4, 2),
            payment_type='cash', amount=Decimal('450'), verification_status='approved',
        )
        PaymentToClinic.objects.create(
            professional=self.laura, year=2024, month=3, payment_date=date(2024, 4, 3),
            payment_type='cash', amount=Decimal('999'),
        )
        Expense.objects.create(year=2024, month=3, category='Alquiler', amount=Decimal('300'))

        rows = statistics.financial_health(2024)

        self.assertEqual(rows[2], {'month': 3, 'income': Decimal('450'), 'expenses': Decimal('300')})
        self.assertEqual(rows[0]['income'], Decimal('0'))

    def test_payment_status_distribution(self):
        """Test payment counts per verification status"""
        PaymentToClinic.objects.create(
            professional=self.laura, year=2024, month=3, payment_date=date(2024, 4, 2),
            payment_type='cash', amount=Decimal('100'), verification_status='rejected',
        )

        distribution = {row['status']: row['count'] for row in statistics.payment_status_distribution()}

        self.assertEqual(distribution, {'pending': 0, 'approved': 0, 'rejected': 1})

    def test_dashboard_stats(self):
        """Test dashboard counters for the current month"""
        year, month = current_period()
        Liquidation.objects.create(professional=self.laura, year=year, month=month)
        self.pedro.is_active = False
        self.pedro.save()

        stats = statistics.dashboard_stats()

        self.assertEqual(stats['total_professionals'], 2)
        self.assertEqual(stats['active_professionals'], 1)
        self.assertEqual(stats['total_children'], 2)
        self.assertEqual(stats['liquidations_pending'], 1)
        self.assertEqual(stats['liquidations_paid'], 0)


class ReportsViewsTest(TestCase):
    """Test the statistics endpoints"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(username='admin', password='adminpass123', role=User.ADMIN)
        self.professional = User.objects.create_user(username='laura', password='laurapass123')

    def test_admin_dashboard(self):
        """Test admins get clinic-wide counters"""
        self.client.force_login(self.admin)

        response = self.client.get(reverse('reports:dashboard'))

        self.assertEqual(response.status_code, 200)
        self.assertIn('active_children', response.json()['stats'])

    def test_professional_dashboard(self):
        """Test professionals get their own month estimate"""
        self.client.force_login(self.professional)

        response = self.client.get(reverse('reports:dashboard'))

        stats = response.json()['stats']
        self.assertEqual(stats['professional_id'], self.professional.pk)
        self.assertEqual(stats['total_sessions'], 0)

    def test_monthly(self):
        """Test monthly stats default to the current year"""
        self.client.force_login(self.admin)

        response = self.client.get(reverse('reports:monthly'))

        data = response.json()
        self.assertEqual(data['year'], current_period()[0])
        self.assertEqual(len(data['months']), 12)

    def test_professionals_invalid_month(self):
        """Test an out-of-range month is rejected"""
        self.client.force_login(self.admin)

        response = self.client.get(reverse('reports:professionals'), {'year': 2024, 'month': 14})

        self.assertEqual(response.status_code, 400)

    def test_financial_health(self):
        """Test financial health includes the expense summary"""
        self.client.force_login(self.admin)

        response = self.client.get(reverse('reports:financial_health'), {'year': 2024})

        data = response.json()
        self.assertEqual(len(data['months']), 12)
        self.assertIn('by_category', data['expenses'])

    def test_professional_denied_reports(self):
        """Test professionals cannot read clinic statistics"""
        self.client.force_login(self.professional)

        response = self.client.get(reverse('reports:payment_status'))

        self.assertEqual(response.status_code, 403)
