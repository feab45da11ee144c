# users/tests.py
"""
Tests for clinic users, roles and professional management
"""
import json

from django.db.models.signals import post_delete, post_save
from django.test import Client, TestCase
from django.urls import reverse

from children.models import Child

from .models import User


class UserRoleTest(TestCase):
    """Test role based module access"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        # Disconnect audit logging signals for tests
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def test_admin_permissions(self):
        """Test admins reach management modules but not my_billing"""
        admin = User.objects.create_user(username='admin', password='adminpass123', role=User.ADMIN)

        self.assertTrue(admin.is_admin)
        self.assertTrue(admin.has_permission('liquidations'))
        self.assertTrue(admin.has_permission('maintenance'))
        self.assertFalse(admin.has_permission('my_billing'))

    def test_professional_permissions(self):
        """Test professionals only reach their own screens"""
        professional = User.objects.create_user(username='laura', password='laurapass123')

        self.assertEqual(professional.role, User.PROFESSIONAL)
        self.assertTrue(professional.has_permission('sessions'))
        self.assertTrue(professional.has_permission('my_billing'))
        self.assertFalse(professional.has_permission('liquidations'))

    def test_superuser_has_every_permission(self):
        """Test superusers pass every module check"""
        root = User.objects.create_superuser(username='root', password='rootpass123', email='root@example.com')

        self.assertTrue(root.is_admin)
        self.assertTrue(root.has_permission('my_billing'))

    def test_inactive_user_has_no_permission(self):
        """Test deactivated users lose module access"""
        professional = User.objects.create_user(username='laura', password='laurapass123', is_active=False)

        self.assertFalse(professional.has_permission('sessions'))

    def test_manager_querysets(self):
        """Test admins() and professionals() helpers"""
        User.objects.create_user(username='admin', password='adminpass123', role=User.ADMIN)
        User.objects.create_user(username='laura', password='laurapass123')
        User.objects.create_user(username='pedro', password='pedropass123', is_active=False)

        self.assertEqual(list(User.objects.admins().values_list('username', flat=True)), ['admin'])
        self.assertEqual(User.objects.professionals().count(), 1)
        self.assertEqual(User.objects.professionals(include_inactive=True).count(), 2)


class ProfessionalViewsTest(TestCase):
    """Test professional management endpoints"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(
            username='admin', password='adminpass123', role=User.ADMIN,
            first_name='Ana', email='admin@example.com',
        )
        self.professional = User.objects.create_user(
            username='laura', password='laurapass123', first_name='Laura',
            last_name='Gomez', email='laura@example.com',
        )
        self.client.force_login(self.admin)

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')

    def test_current_user(self):
        """Test the profile endpoint lists the user's modules"""
        response = self.client.get(reverse('users:current_user'))

        data = response.json()
        self.assertTrue(data['is_admin'])
        self.assertIn('liquidations', data['modules'])

    def test_create_professional(self):
        """Test creating a professional with a password"""
        response = self.post_json(reverse('users:professional_create'), {
            'username': 'marta',
            'first_name': 'Marta',
            'last_name': 'Diaz',
            'email': 'Marta@Example.com',
            'specialization': 'Fonoaudiología',
            'password1': 'martapass123',
            'password2': 'martapass123',
        })

        self.assertEqual(response.status_code, 201)
        marta = User.objects.get(username='marta')
        self.assertEqual(marta.role, User.PROFESSIONAL)
        self.assertEqual(marta.email, 'marta@example.com')
        self.assertTrue(marta.check_password('martapass123'))

    def test_create_duplicate_email(self):
        """Test emails are unique regardless of case"""
        response = self.post_json(reverse('users:professional_create'), {
            'username': 'otra',
            'first_name': 'Otra',
            'email': 'LAURA@example.com',
            'password1': 'otrapass123',
            'password2': 'otrapass123',
        })

        self.assertEqual(response.status_code, 400)
        self.assertIn('email', response.json()['error'])

    def test_create_password_mismatch(self):
        """Test mismatched passwords are rejected"""
        response = self.post_json(reverse('users:professional_create'), {
            'username': 'marta',
            'first_name': 'Marta',
            'email': 'marta@example.com',
            'password1': 'martapass123',
            'password2': 'different123',
        })

        self.assertEqual(response.status_code, 400)
        self.assertFalse(User.objects.filter(username='marta').exists())

    def test_update_keeps_unsent_fields(self):
        """Test a partial update only changes the sent fields"""
        response = self.post_json(
            reverse('users:professional_update', args=[self.professional.pk]), {'phone': '+56 9 1234 5678'}
        )

        self.assertEqual(response.status_code, 200)
        self.professional.refresh_from_db()
        self.assertEqual(self.professional.phone, '+56 9 1234 5678')
        self.assertEqual(self.professional.last_name, 'Gomez')

    def test_cannot_remove_own_admin_role(self):
        """Test an admin cannot demote themselves"""
        response = self.post_json(reverse('users:professional_update', args=[self.admin.pk]), {'role': 'professional'})

        self.assertEqual(response.status_code, 400)
        self.admin.refresh_from_db()
        self.assertEqual(self.admin.role, User.ADMIN)

    def test_deactivate_unassigns_children(self):
        """Test deactivating a professional releases their children"""
        child = Child.objects.create(full_name='Tomas Perez', assigned_professional=self.professional)

        response = self.post_json(reverse('users:professional_deactivate', args=[self.professional.pk]))

        self.assertEqual(response.json()['unassigned_children'], 1)
        child.refresh_from_db()
        self.professional.refresh_from_db()
        self.assertIsNone(child.assigned_professional)
        self.assertFalse(self.professional.is_active)

    def test_cannot_deactivate_self(self):
        """Test an admin cannot deactivate their own account"""
        response = self.post_json(reverse('users:professional_deactivate', args=[self.admin.pk]))

        self.assertEqual(response.status_code, 400)

    def test_reactivate(self):
        """Test reactivating an inactive professional"""
        self.professional.is_active = False
        self.professional.save()

        response = self.post_json(reverse('users:professional_reactivate', args=[self.professional.pk]))

        self.assertTrue(response.json()['professional']['is_active'])

    def test_list_excludes_inactive_by_default(self):
        """Test inactive professionals are listed only on request"""
        User.objects.create_user(username='pedro', password='pedropass123', is_active=False)

        response = self.client.get(reverse('users:professional_list'))
        self.assertEqual(len(response.json()['professionals']), 1)

        response = self.client.get(reverse('users:professional_list'), {'include_inactive': '1'})
        self.assertEqual(len(response.json()['professionals']), 2)

    def test_professional_denied(self):
        """Test professionals cannot manage other users"""
        self.client.force_login(self.professional)

        response = self.client.get(reverse('users:professional_list'))

        self.assertEqual(response.status_code, 403)
        self.assertFalse(response.json()['success'])

    def test_stats(self):
        """Test professional stats for the current month"""
        Child.objects.create(full_name='Tomas Perez', assigned_professional=self.professional)

        response = self.client.get(reverse('users:professional_stats', args=[self.professional.pk]))

        stats = response.json()['stats']
        self.assertEqual(stats['assigned_children'], 1)
        self.assertEqual(stats['total_sessions'], 0)
