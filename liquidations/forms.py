# liquidations/forms.py
from django import forms

from .models import Liquidation, PaymentToClinic


class PaymentToClinicForm(forms.ModelForm):

    class Meta:
        model = PaymentToClinic
        fields = ['year', 'month', 'payment_date', 'payment_type', 'amount', 'notes']

    def clean_amount(self):
        amount = self.cleaned_data.get('amount')
        if amount is not None and amount <= 0:
            raise forms.ValidationError('Amount must be greater than zero.')
        return amount


class PaymentReviewForm(forms.Form):
    status = forms.ChoiceField(choices=[
        (PaymentToClinic.STATUS_APPROVED, 'Approved'),
        (PaymentToClinic.STATUS_REJECTED, 'Rejected'),
    ])


class LiquidationFilterForm(forms.Form):
    year = forms.IntegerField(min_value=2000, max_value=2100, required=False)
    month = forms.IntegerField(min_value=1, max_value=12, required=False)
    professional = forms.IntegerField(min_value=1, required=False)
    status = forms.ChoiceField(choices=Liquidation.STATUS_CHOICES, required=False)


class TransitionForm(forms.Form):
    payment_reference = forms.CharField(max_length=100, required=False)
    reason = forms.CharField(required=False)


class PaymentFilterForm(forms.Form):
    year = forms.IntegerField(min_value=2000, max_value=2100, required=False)
    month = forms.IntegerField(min_value=1, max_value=12, required=False)
    professional = forms.IntegerField(min_value=1, required=False)
    status = forms.ChoiceField(choices=PaymentToClinic.VERIFICATION_CHOICES, required=False)
