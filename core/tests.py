# core/tests.py
"""
Tests for shared utilities, notifications, audit log and system settings
"""
import json
from decimal import Decimal
from io import StringIO

from django.contrib.auth.models import Permission
from django.core.management import call_command
from django.db.migrations.recorder import MigrationRecorder
from django.db.models.signals import post_delete, post_save
from django.test import Client, RequestFactory, TestCase
from django.urls import reverse

from billing.models import Expense, RateEntry
from children.models import Child
from liquidations.models import Liquidation, PaymentToClinic
from users.models import User

from .models import AuditLog, Notification, SystemSetting
from .signals import is_audited_model
from .utils import format_currency, get_month_name, parse_int, parse_json_body, to_money


class UtilsTest(TestCase):
    """Test money and request helpers"""

    def test_to_money_rounds_half_up(self):
        """Test amounts are rounded to cents half up"""
        self.assertEqual(to_money(Decimal('10.005')), Decimal('10.01'))
        self.assertEqual(to_money(Decimal('10.004')), Decimal('10.00'))
        self.assertEqual(to_money(7), Decimal('7.00'))

    def test_format_currency_negative(self):
        """Test negative amounts keep their sign before the symbol"""
        self.assertEqual(format_currency(Decimal('-2500')), '-$2.500')

    def test_get_month_name(self):
        """Test month names and out-of-range values"""
        self.assertEqual(get_month_name(1), 'Enero')
        self.assertEqual(get_month_name(12), 'Diciembre')
        self.assertEqual(get_month_name(0), '')

    def test_parse_int(self):
        """Test integer parsing with a default"""
        self.assertEqual(parse_int('12'), 12)
        self.assertIsNone(parse_int('abc'))
        self.assertEqual(parse_int(None, 5), 5)

    def test_parse_json_body(self):
        """Test JSON bodies must be objects"""
        factory = RequestFactory()

        request = factory.post('/', data='{"year": 2024}', content_type='application/json')
        self.assertEqual(parse_json_body(request), {'year': 2024})

        request = factory.post('/', data='[1, 2]', content_type='application/json')
        with self.assertRaises(ValueError):
            parse_json_body(request)

        request = factory.post('/', data='not json', content_type='application/json')
        with self.assertRaises(ValueError):
            parse_json_body(request)


class AuditLogModelTest(TestCase):
    """Test AuditLog helpers"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        # Disconnect audit logging signals for tests
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def test_log_action(self):
        """Test recording an action on an instance"""
        user = User.objects.create_user(username='admin', password='adminpass123', role=User.ADMIN)
        child = Child.objects.create(full_name='Tomas Perez')

        entry = AuditLog.log_action(user=user, action='create', model_instance=child, description='Registered')

        self.assertEqual(entry.model_name, 'child')
        self.assertEqual(entry.object_id, child.pk)
        self.assertEqual(entry.object_repr, 'Tomas Perez')

    def test_get_field_changes(self):
        """Test only changed fields are reported"""
        child = Child.objects.create(full_name='Tomas Perez', school='Escuela 1')
        updated = Child.objects.get(pk=child.pk)
        updated.school = 'Escuela 2'

        changes = AuditLog.get_field_changes(child, updated)

        self.assertEqual(list(changes), ['school'])
        self.assertEqual(changes['school']['old'], 'Escuela 1')
        self.assertEqual(changes['school']['new'], 'Escuela 2')

    def test_framework_models_not_audited(self):
        """Test tables outside the clinic apps are never audited"""
        self.assertFalse(is_audited_model(MigrationRecorder.Migration))
        self.assertFalse(is_audited_model(Permission))

    def test_explicitly_logged_models_skipped(self):
        """Test models with explicit audit entries are not logged twice"""
        for model in (Liquidation, PaymentToClinic, RateEntry, SystemSetting):
            self.assertFalse(is_audited_model(model), model.__name__)
        self.assertTrue(is_audited_model(Child))
        self.assertTrue(is_audited_model(Expense))


class NotificationViewsTest(TestCase):
    """Test in-app notifications"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(username='admin', password='adminpass123', role=User.ADMIN)
        self.professional = User.objects.create_user(username='laura', password='laurapass123')

    def test_notify_admins(self):
        """Test admin broadcast reaches active admins only"""
        User.objects.create_user(username='old', password='oldpass123', role=User.ADMIN, is_active=False)

        Notification.notify_admins('Nuevo pago recibido', 'Laura registró un pago')

        self.assertEqual(Notification.objects.count(), 1)
        self.assertEqual(Notification.objects.get().user, self.admin)

    def test_list_and_mark_read(self):
        """Test listing own notifications and marking one read"""
        mine = Notification.notify(self.professional, 'Pago aprobado', 'Tu pago fue aprobado', type='success')
        Notification.notify(self.admin, 'Otro', 'No es tuyo')
        self.client.force_login(self.professional)

        response = self.client.get(reverse('core:notification_list'))
        data = response.json()
        self.assertEqual(data['unread_count'], 1)
        self.assertEqual([n['id'] for n in data['notifications']], [mine.pk])

        self.client.post(reverse('core:mark_notification_read', args=[mine.pk]))
        mine.refresh_from_db()
        self.assertTrue(mine.is_read)

    def test_mark_other_users_notification(self):
        """Test a user cannot mark someone else's notification"""
        other = Notification.notify(self.admin, 'Otro', 'No es tuyo')
        self.client.force_login(self.professional)

        response = self.client.post(reverse('core:mark_notification_read', args=[other.pk]))

        self.assertEqual(response.status_code, 404)

    def test_mark_all_read(self):
        """Test marking every notification read"""
        Notification.notify(self.professional, 'Uno', 'Uno')
        Notification.notify(self.professional, 'Dos', 'Dos')
        self.client.force_login(self.professional)

        response = self.client.post(reverse('core:mark_all_notifications_read'))

        self.assertEqual(response.json()['updated'], 2)


class MaintenanceViewsTest(TestCase):
    """Test system settings, audit log listing and health check"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(username='admin', password='adminpass123', role=User.ADMIN)
        self.client.force_login(self.admin)

    def test_health_check(self):
        """Test the health endpoint answers without login"""
        response = Client().get(reverse('core:health_check'))

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['status'], 'ok')

    def test_update_settings(self):
        """Test updating a known setting writes an audit entry"""
        response = self.client.post(
            reverse('core:settings'), data=json.dumps({'clinic_name': 'Centro Crecer'}),
            content_type='application/json',
        )

        self.assertEqual(response.json()['updated'], ['clinic_name'])
        self.assertEqual(SystemSetting.get_setting('clinic_name'), 'Centro Crecer')
        self.assertTrue(AuditLog.objects.filter(action='update', model_name='systemsetting').exists())

    def test_unknown_setting_rejected(self):
        """Test unknown keys are rejected"""
        response = self.client.post(
            reverse('core:settings'), data=json.dumps({'default_commission': '30'}),
            content_type='application/json',
        )

        self.assertEqual(response.status_code, 400)

    def test_audit_log_filters(self):
        """Test audit entries filtered by action"""
        child = Child.objects.create(full_name='Tomas Perez')
        AuditLog.log_action(user=self.admin, action='create', model_instance=child)
        AuditLog.log_action(user=self.admin, action='delete', model_instance=child)

        response = self.client.get(reverse('core:audit_logs'), {'action': 'delete'})

        self.assertEqual(response.json()['total'], 1)

    def test_audit_log_bad_date(self):
        """Test malformed dates are rejected"""
        response = self.client.get(reverse('core:audit_logs'), {'date_from': '03/2024'})

        self.assertEqual(response.status_code, 400)

    def test_professional_denied(self):
        """Test maintenance endpoints are admin only"""
        professional = User.objects.create_user(username='laura', password='laurapass123')
        self.client.force_login(professional)

        response = self.client.get(reverse('core:settings'))

        self.assertEqual(response.status_code, 403)

    def test_initialize_settings_command(self):
        """Test the command seeds defaults once"""
        out = StringIO()
        call_command('initialize_settings', '--clinic-name', 'Centro Crecer', stdout=out)

        self.assertEqual(SystemSetting.objects.count(), len(SystemSetting.DEFAULTS))
        self.assertEqual(SystemSetting.get_setting('clinic_name'), 'Centro Crecer')

        out = StringIO()
        call_command('initialize_settings', stdout=out)
        self.assertIn('already initialized', out.getvalue())
