# children/forms.py
import re
from datetime import date

from django import forms
from django.core.exceptions import ValidationError

from billing.models import VALUE_TYPE_CHOICES
from users.models import User

from .models import Child, HealthInsurance


def clean_name(name, field_name="name"):
    """
    Collapse whitespace in a person's name and check it contains only
    letters (accented included), spaces, hyphens, apostrophes and dots.
    """
    if not name:
        raise ValidationError(f'Please enter a {field_name}.')

    name = ' '.join(name.split())
    if len(name) < 2:
        raise ValidationError(f'{field_name.capitalize()} must be at least 2 characters long.')
    if not re.match(r"^[a-zA-ZÀ-ÿñÑ\s'\-.]+$", name):
        raise ValidationError(
            f'{field_name.capitalize()} can only contain letters, spaces, hyphens, and apostrophes.'
        )
    return name


class ChildForm(forms.ModelForm):

    class Meta:
        model = Child
        fields = [
            'full_name', 'birth_date',
            'mother_name', 'mother_phone', 'mother_email',
            'father_name', 'father_phone', 'father_email',
            'emergency_contact_name', 'emergency_contact_phone',
            'address', 'phone', 'email',
            'school', 'grade', 'diagnosis', 'referral_source', 'referral_doctor',
            'health_insurance', 'assigned_professional', 'fee_value',
        ]

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields['assigned_professional'].queryset = User.objects.professionals()
        self.fields['health_insurance'].queryset = HealthInsurance.objects.filter(is_active=True)
        self.fields['fee_value'].required = False

    def clean_full_name(self):
        return clean_name(self.cleaned_data.get('full_name'), "full name")

    def clean_birth_date(self):
        birth_date = self.cleaned_data.get('birth_date')
        if birth_date and birth_date > date.today():
            raise ValidationError('Birth date cannot be in the future.')
        return birth_date

    def clean_fee_value(self):
        fee_value = self.cleaned_data.get('fee_value')
        return fee_value if fee_value is not None else self.instance.fee_value


class HealthInsuranceForm(forms.ModelForm):

    class Meta:
        model = HealthInsurance
        fields = ['name']

    def clean_name(self):
        name = ' '.join((self.cleaned_data.get('name') or '').split())
        if not name:
            raise ValidationError('Please enter a name.')
        duplicates = HealthInsurance.objects.filter(name__iexact=name).exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise ValidationError('A health insurance with this name already exists.')
        return name


class ModuleAssignmentForm(forms.Form):
    professional = forms.ModelChoiceField(queryset=User.objects.professionals())
    modules = forms.MultipleChoiceField(choices=VALUE_TYPE_CHOICES, required=False)
