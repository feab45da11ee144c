# children/tests.py
"""
Tests for children records, module assignments and health insurances
"""
import json

from django.core.exceptions import ValidationError
from django.db.models.signals import post_delete, post_save
from django.test import Client, TestCase
from django.urls import reverse

from users.models import User

from .forms import clean_name
from .models import Child, ChildProfessional, HealthInsurance


class ChildModelTest(TestCase):
    """Test Child model helpers"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        # Disconnect audit logging signals for tests
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.professional = User.objects.create_user(username='laura', password='laurapass123')
        self.child = Child.objects.create(full_name='Tomas Perez')

    def test_discharge_and_reactivate(self):
        """Test discharging keeps the reason and reactivating clears it"""
        self.child.discharge(reason='Alta terapéutica')

        self.assertFalse(self.child.is_active)
        self.assertIsNotNone(self.child.discharge_date)
        self.assertEqual(self.child.discharge_reason, 'Alta terapéutica')
        self.assertFalse(Child.active.filter(pk=self.child.pk).exists())

        self.child.reactivate()

        self.assertTrue(self.child.is_active)
        self.assertIsNone(self.child.discharge_date)
        self.assertEqual(self.child.discharge_reason, '')

    def test_set_modules_replaces_previous(self):
        """Test setting modules replaces the professional's previous set"""
        self.child.set_modules(self.professional, ['module', 'insurance'])
        modules = self.child.set_modules(self.professional, ['nomenclature'])

        self.assertEqual(modules, ['nomenclature'])
        self.assertEqual(ChildProfessional.objects.filter(child=self.child).count(), 1)

    def test_set_modules_keeps_other_professionals(self):
        """Test one professional's modules do not touch another's"""
        other = User.objects.create_user(username='pedro', password='pedropass123')
        self.child.set_modules(other, ['module'])

        self.child.set_modules(self.professional, [])

        self.assertEqual(self.child.modules_for(other), ['module'])
        self.assertEqual(self.child.modules_for(self.professional), [])

    def test_clean_name(self):
        """Test name normalization and validation"""
        self.assertEqual(clean_name('  María   José  '), 'María José')
        with self.assertRaises(ValidationError):
            clean_name('R2D2')


class ChildViewsTest(TestCase):
    """Test children endpoints"""

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
        self.client.force_login(self.admin)

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')

    def test_create_child(self):
        """Test registering a child"""
        response = self.post_json(reverse('children:child_create'), {
            'full_name': 'Sofía  Ruiz',
            'birth_date': '2017-06-01',
            'assigned_professional': self.professional.pk,
            'fee_value': '15000',
        })

        self.assertEqual(response.status_code, 201)
        child = Child.objects.get(full_name='Sofía Ruiz')
        self.assertEqual(child.assigned_professional, self.professional)

    def test_create_future_birth_date(self):
        """Test a birth date in the future is rejected"""
        response = self.post_json(reverse('children:child_create'), {
            'full_name': 'Sofia Ruiz',
            'birth_date': '2999-01-01',
        })

        self.assertEqual(response.status_code, 400)

    def test_update_child(self):
        """Test a partial update keeps the other fields"""
        response = self.post_json(reverse('children:child_update', args=[self.child.pk]), {'school': 'Escuela 12'})

        self.assertEqual(response.status_code, 200)
        self.child.refresh_from_db()
        self.assertEqual(self.child.school, 'Escuela 12')
        self.assertEqual(self.child.assigned_professional, self.professional)

    def test_deactivate_and_list(self):
        """Test discharged children are hidden unless requested"""
        self.post_json(reverse('children:child_deactivate', args=[self.child.pk]), {'reason': 'Alta'})

        response = self.client.get(reverse('children:child_list'))
        self.assertEqual(response.json()['children'], [])

        response = self.client.get(reverse('children:child_list'), {'include_inactive': '1'})
        self.assertEqual(len(response.json()['children']), 1)

    def test_deactivate_twice(self):
        """Test discharging an inactive child fails"""
        self.child.discharge()

        response = self.post_json(reverse('children:child_deactivate', args=[self.child.pk]))

        self.assertEqual(response.status_code, 400)

    def test_professional_sees_own_children(self):
        """Test professionals list only assigned or linked children"""
        other_child = Child.objects.create(full_name='Lucas Diaz')
        linked_child = Child.objects.create(full_name='Mia Lopez')
        linked_child.set_modules(self.professional, ['module'])
        self.client.force_login(self.professional)

        response = self.client.get(reverse('children:child_list'))

        names = {child['full_name'] for child in response.json()['children']}
        self.assertEqual(names, {'Tomas Perez', 'Mia Lopez'})
        self.assertNotIn(other_child.full_name, names)

    def test_list_bad_professional_filter(self):
        """Test a non-numeric professional filter is rejected"""
        response = self.client.get(reverse('children:child_list'), {'professional': 'abc'})

        self.assertEqual(response.status_code, 400)
        self.assertFalse(response.json()['success'])

    def test_list_by_professional(self):
        """Test admins filter children by assigned professional"""
        Child.objects.create(full_name='Lucas Diaz')

        response = self.client.get(reverse('children:child_list'), {'professional': self.professional.pk})

        self.assertEqual([child['full_name'] for child in response.json()['children']], ['Tomas Perez'])

    def test_professional_cannot_create(self):
        """Test professionals cannot register children"""
        self.client.force_login(self.professional)

        response = self.post_json(reverse('children:child_create'), {'full_name': 'Sofia Ruiz'})

        self.assertEqual(response.status_code, 403)

    def test_assign_modules(self):
        """Test replacing a professional's modules for a child"""
        url = reverse('children:child_modules', args=[self.child.pk])

        response = self.post_json(url, {'professional': self.professional.pk, 'modules': ['module', 'insurance']})
        self.assertEqual(response.json()['modules'], ['insurance', 'module'])

        response = self.client.get(url)
        self.assertEqual(response.json()['assignments'][0]['professional_id'], self.professional.pk)

    def test_assign_unknown_module(self):
        """Test unknown module names are rejected"""
        response = self.post_json(
            reverse('children:child_modules', args=[self.child.pk]),
            {'professional': self.professional.pk, 'modules': ['karate']},
        )

        self.assertEqual(response.status_code, 400)


class HealthInsuranceViewsTest(TestCase):
    """Test the health insurance catalog"""

    @classmethod
    def setUpClass(cls):
        super().setUpClass()
        post_save.disconnect(dispatch_uid='log_model_save')
        post_delete.disconnect(dispatch_uid='log_model_delete')

    def setUp(self):
        self.client = Client()
        self.admin = User.objects.create_user(username='admin', password='adminpass123', role=User.ADMIN)
        self.client.force_login(self.admin)
        self.insurance = HealthInsurance.objects.create(name='OSDE')

    def post_json(self, url, data=None):
        return self.client.post(url, data=json.dumps(data or {}), content_type='application/json')

    def test_create_duplicate_name(self):
        """Test names are unique regardless of case"""
        response = self.post_json(reverse('children:health_insurance_create'), {'name': 'osde'})

        self.assertEqual(response.status_code, 400)

    def test_rename(self):
        """Test renaming an insurance"""
        response = self.post_json(
            reverse('children:health_insurance_update', args=[self.insurance.pk]), {'name': 'OSDE 210'}
        )

        self.assertEqual(response.json()['health_insurance']['name'], 'OSDE 210')

    def test_toggle(self):
        """Test toggling the active flag"""
        response = self.post_json(reverse('children:health_insurance_toggle', args=[self.insurance.pk]))

        self.assertFalse(response.json()['health_insurance']['is_active'])

    def test_delete_keeps_children(self):
        """Test deleting an insurance clears it from children"""
        child = Child.objects.create(full_name='Tomas Perez', health_insurance=self.insurance)

        self.post_json(reverse('children:health_insurance_delete', args=[self.insurance.pk]))

        child.refresh_from_db()
        self.assertIsNone(child.health_insurance)
