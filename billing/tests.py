# billing/tests.py
"""
Tests for rates, monthly sessions, commissions and expenses
"""
import json
from decimal import Decimal

from django.db.models.signals import post_delete, post_save
from django.test import Client, TestCase
from django.urls import reverse

from children.models import Child
from users.models import User

from . import services
from .models import CommissionConfig, Expense, RateEntry, SessionRecord
from .templatetags.billing_filters import format_currency, month_name, percentage


class BillingServicesTest(TestCase):
    """Test billing service functions"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        # Disconnect audit logging signals for tests
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.professional = User.objects.create_user(username='laura', password='laurapass123')
        self.child = Child.objects.create(full_name='Tomas Perez')

    def test_upsert_rate(self):
        """Test saving a rate twice overwrites it"""
        _, created = services.upsert_rate('module', 2024, 3, Decimal('100'))
        rate, created_again = services.upsert_rate('module', 2024, 3, Decimal('120'))

        self.assertTrue(created)
        self.assertFalse(created_again)
        self.assertEqual(rate.value, Decimal('120'))
        self.assertEqual(RateEntry.rates_for(2024, 3), {'module': Decimal('120')})

    def test_save_rows_resets_confirmation(self):
        """Test saving a confirmed row sets it back to unconfirmed"""
        row = {'child': self.child, 'module_name': 'module', 'session_count': 4,
               'individual_sessions': 4, 'group_sessions': 0, 'observations': ''}
        services.save_session_rows(self.professional, 2024, 3, [row])
        services.confirm_sessions(self.professional, 2024, 3, self.professional)

        records = services.save_session_rows(self.professional, 2024, 3, [{**row, 'session_count': 6}])

        self.assertEqual(SessionRecord.objects.count(), 1)
        self.assertEqual(records[0].session_count, 6)
        self.assertFalse(records[0].is_confirmed)

    def test_effective_commission_default(self):
        """Test the default commission is 25% when none is configured"""
        self.assertEqual(services.get_effective_commission(self.professional, 'module'), Decimal('25'))

        services.upsert_commission(self.professional, 'module', Decimal('40'))
        self.assertEqual(services.get_effective_commission(self.professional, 'module'), Decimal('40'))

    def test_billed_amount_uses_each_period_rate(self):
        """Test billing uses the rate of each row's own month"""
        services.upsert_rate('module', 2024, 3, Decimal('100'))
        services.upsert_rate('module', 2024, 4, Decimal('150'))
        for month in (3, 4):
            SessionRecord.objects.create(
                professional=self.professional, child=self.child, year=2024, month=month,
                module_name='module', session_count=2,
            )

        total = services.billed_amount(SessionRecord.objects.filter(professional=self.professional))

        self.assertEqual(total, Decimal('500'))

    def test_expense_stats(self):
        """Test expense totals by category"""
        Expense.objects.create(year=2024, month=3, category='Alquiler', amount=Decimal('1000'))
        Expense.objects.create(year=2024, month=3, category='Insumos', amount=Decimal('250.50'))
        Expense.objects.create(year=2024, month=4, category='Insumos', amount=Decimal('100'))

        stats = services.expense_stats(2024, 3)

        self.assertEqual(stats['total'], Decimal('1250.50'))
        self.assertEqual(stats['by_category']['Insumos'], Decimal('250.50'))
        self.assertEqual(services.expense_stats(2024)['total'], Decimal('1350.50'))


class BillingFiltersTest(TestCase):
    """Test billing template filters"""

    def test_format_currency(self):
        """Test whole pesos with dot thousands separators"""
        self.assertEqual(format_currency(Decimal('1234567.40')), '$1.234.567')
        self.assertEqual(format_currency('1450.00'), '$1.450')
        self.assertEqual(format_currency(None), '$0')

    def test_month_name(self):
        """Test Spanish month names"""
        self.assertEqual(month_name(3), 'Marzo')
        self.assertEqual(month_name('13'), '')

    def test_percentage(self):
        """Test percentages drop trailing zeros"""
        self.assertEqual(percentage('25.00'), '25%')
        self.assertEqual(percentage(Decimal('33.50')), '33.5%')


class BillingViewsTest(TestCase):
    """Test billing endpoints"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(username='admin', password='adminpass123', role=User.ADMIN)
        self.professional = User.objects.create_user(username='laura', password='laurapass123')
        self.child = Child.objects.create(full_name='Tomas Perez', assigned_professional=self.professional)

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')

    def test_rate_save(self):
        """Test an admin sets a rate"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('billing:rate_save'), {
            'value_type': 'module', 'year': 2024, 'month': 3, 'value': '100.00',
        })

        self.assertEqual(response.status_code, 201)
        self.assertEqual(RateEntry.objects.get().value, Decimal('100'))

    def test_rate_negative_rejected(self):
        """Test negative rates are rejected"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('billing:rate_save'), {
            'value_type': 'module', 'year': 2024, 'month': 3, 'value': '-1',
        })

        self.assertEqual(response.status_code, 400)

    def test_rate_list_filters_by_type(self):
        """Test listing rates for one value type"""
        RateEntry.objects.create(value_type='module', year=2024, month=3, value=Decimal('100'))
        RateEntry.objects.create(value_type='insurance', year=2024, month=3, value=Decimal('200'))
        self.client.force_login(self.professional)

        response = self.client.get(reverse('billing:rate_list'), {'value_type': 'insurance'})

        rates = response.json()['rates']
        self.assertEqual(len(rates), 1)
        self.assertEqual(rates[0]['value_type'], 'insurance')

    def test_professional_cannot_set_rates(self):
        """Test rates are admin only"""
        self.client.force_login(self.professional)

        response = self.post_json(reverse('billing:rate_save'), {
            'value_type': 'module', 'year': 2024, 'month': 3, 'value': '100',
        })

        self.assertEqual(response.status_code, 403)

    def test_session_save_and_list(self):
        """Test a professional saves and lists their sessions"""
        self.client.force_login(self.professional)

        response = self.post_json(reverse('billing:session_save'), {
            'year': 2024, 'month': 3,
            'sessions': [{'child': self.child.pk, 'module_name': 'module',
                          'individual_sessions': 3, 'group_sessions': 1}],
        })
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['sessions'][0]['session_count'], 4)

        response = self.client.get(reverse('billing:session_list'), {'year': 2024, 'month': 3})
        self.assertEqual(response.json()['total_sessions'], 4)
        self.assertFalse(response.json()['is_confirmed'])

    def test_session_negative_count_rejected(self):
        """Test negative session counts are rejected with the row number"""
        self.client.force_login(self.professional)

        response = self.post_json(reverse('billing:session_save'), {
            'year': 2024, 'month': 3,
            'sessions': [{'child': self.child.pk, 'module_name': 'module', 'session_count': -2}],
        })

        self.assertEqual(response.status_code, 400)
        self.assertIn('Row 1', response.json()['error'])
        self.assertFalse(SessionRecord.objects.exists())

    def test_session_bad_professional_rejected(self):
        """Test a non-numeric professional id is rejected on list, save and confirm"""
        self.client.force_login(self.admin)

        response = self.client.get(reverse('billing:session_list'), {'year': 2024, 'month': 3, 'professional': 'abc'})
        self.assertEqual(response.status_code, 400)

        response = self.post_json(reverse('billing:session_save'), {
            'year': 2024, 'month': 3, 'professional': 'abc',
            'sessions': [{'child': self.child.pk, 'module_name': 'module', 'session_count': 2}],
        })
        self.assertEqual(response.status_code, 400)
        self.assertFalse(SessionRecord.objects.exists())

        response = self.post_json(reverse('billing:session_confirm'), {'year': 2024, 'month': 3, 'professional': 'abc'})
        self.assertEqual(response.status_code, 400)

    def test_admin_saves_for_professional(self):
        """Test an admin can save sessions on behalf of a professional"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('billing:session_save'), {
            'year': 2024, 'month': 3, 'professional': self.professional.pk,
            'sessions': [{'child': self.child.pk, 'module_name': 'module', 'session_count': 2}],
        })

        self.assertEqual(response.status_code, 200)
        self.assertEqual(SessionRecord.objects.get().professional, self.professional)

    def test_session_confirm(self):
        """Test confirming a month's sessions"""
        SessionRecord.objects.create(
            professional=self.professional, child=self.child, year=2024, month=3,
            module_name='module', session_count=4,
        )
        self.client.force_login(self.professional)

        response = self.post_json(reverse('billing:session_confirm'), {'year': 2024, 'month': 3})

        self.assertEqual(response.json()['confirmed'], 1)
        self.assertTrue(SessionRecord.objects.get().is_confirmed)

    def test_session_delete_of_other_professional(self):
        """Test a professional cannot delete someone else's row"""
        other = User.objects.create_user(username='pedro', password='pedropass123')
        record = SessionRecord.objects.create(
            professional=other, child=self.child, year=2024, month=3, module_name='module', session_count=1,
        )
        self.client.force_login(self.professional)

        response = self.post_json(reverse('billing:session_delete', args=[record.pk]))

        self.assertEqual(response.status_code, 403)
        self.assertTrue(SessionRecord.objects.filter(pk=record.pk).exists())

    def test_commission_bounds(self):
        """Test commissions above 100% are rejected"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('billing:commission_save'), {
            'professional': self.professional.pk, 'value_type': 'module', 'commission_percentage': '101',
        })

        self.assertEqual(response.status_code, 400)

    def test_commission_save_and_toggle(self):
        """Test saving a commission and toggling it off"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('billing:commission_save'), {
            'professional': self.professional.pk, 'value_type': 'module', 'commission_percentage': '30',
        })
        self.assertEqual(response.status_code, 201)
        config = CommissionConfig.objects.get()
        self.assertTrue(config.is_active)

        response = self.post_json(reverse('billing:commission_toggle', args=[config.pk]))
        self.assertFalse(response.json()['commission']['is_active'])

        response = self.client.get(reverse('billing:commission_effective'), {'professional': self.professional.pk})
        self.assertEqual(Decimal(response.json()['commission_percentage']), Decimal('25'))

    def test_expense_create_and_update(self):
        """Test creating an expense and updating its amount"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('billing:expense_create'), {
            'year': 2024, 'month': 3, 'category': ' Alquiler ', 'amount': '1000',
        })
        self.assertEqual(response.status_code, 201)
        expense = Expense.objects.get()
        self.assertEqual(expense.category, 'Alquiler')
        self.assertEqual(expense.created_by, self.admin)

        response = self.post_json(reverse('billing:expense_update', args=[expense.pk]), {'amount': '1200'})
        self.assertEqual(Decimal(response.json()['expense']['amount']), Decimal('1200'))

    def test_expense_zero_amount_rejected(self):
        """Test expenses must be positive"""
        self.client.force_login(self.admin)

        response = self.post_json(reverse('billing:expense_create'), {
            'year': 2024, 'month': 3, 'category': 'Alquiler', 'amount': '0',
        })

        self.assertEqual(response.status_code, 400)
