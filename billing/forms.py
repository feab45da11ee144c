# billing/forms.py
from decimal import Decimal

from django import forms

from children.models import Child
from users.models import User

from .models import VALUE_TYPE_CHOICES, Expense


class PeriodForm(forms.Form):
    year = forms.IntegerField(min_value=2000, max_value=2100)
    month = forms.IntegerField(min_value=1, max_value=12)


class ProfessionalPeriodForm(PeriodForm):
    """A period plus the professional an admin is acting for"""
    professional = forms.IntegerField(min_value=1, required=False)


class RateEntryForm(PeriodForm):
    value_type = forms.ChoiceField(choices=VALUE_TYPE_CHOICES)
    value = forms.DecimalField(max_digits=12, decimal_places=2, min_value=Decimal('0'))


class SessionRowForm(forms.Form):
    """One row of a professional's monthly session sheet"""
    child = forms.ModelChoiceField(queryset=Child.objects.all())
    module_name = forms.ChoiceField(choices=VALUE_TYPE_CHOICES)
    session_count = forms.IntegerField(min_value=0, required=False)
    individual_sessions = forms.IntegerField(min_value=0, required=False)
    group_sessions = forms.IntegerField(min_value=0, required=False)
    observations = forms.CharField(required=False)

    def clean(self):
        cleaned_data = super().clean()
        individual = cleaned_data.get('individual_sessions') or 0
        group = cleaned_data.get('group_sessions') or 0
        cleaned_data['individual_sessions'] = individual
        cleaned_data['group_sessions'] = group
        if cleaned_data.get('session_count') is None:
            cleaned_data['session_count'] = individual + group
        return cleaned_data


class CommissionConfigForm(forms.Form):
    professional = forms.ModelChoiceField(queryset=User.objects.professionals())
    value_type = forms.ChoiceField(choices=VALUE_TYPE_CHOICES)
    commission_percentage = forms.DecimalField(
        max_digits=5, decimal_places=2, min_value=Decimal('0'), max_value=Decimal('100')
    )
    is_active = forms.BooleanField(required=False, initial=True)

    def clean_is_active(self):
        # Missing key means active; an explicit false deactivates
        if 'is_active' not in self.data:
            return True
        return self.cleaned_data['is_active']


class ExpenseForm(forms.ModelForm):

    class Meta:
        model = Expense
        fields = ['year', 'month', 'category', 'description', 'amount']

    def clean_category(self):
        category = ' '.join((self.cleaned_data.get('category') or '').split())
        if not category:
            raise forms.ValidationError('Please enter a category.')
        return category

    def clean_amount(self):
        amount = self.cleaned_data.get('amount')
        if amount is not None and amount <= 0:
            raise forms.ValidationError('Amount must be greater than zero.')
        return amount
