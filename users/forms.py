# users/forms.py
from django import forms

from .models import User


class ProfessionalForm(forms.ModelForm):
    """Create or update a clinic user. Password is required only on create."""
    password1 = forms.CharField(label='Password', required=False, strip=False)
    password2 = forms.CharField(label='Confirm Password', required=False, strip=False)

    class Meta:
        model = User
        fields = [
            'username', 'first_name', 'last_name', 'email', 'phone',
            'specialization', 'license_number', 'role',
        ]

    def __init__(self, *args, **kwargs):
        self.is_update = kwargs.pop('is_update', False)
        super().__init__(*args, **kwargs)
        self.fields['email'].required = True
        self.fields['first_name'].required = True
        self.fields['role'].required = False
        if not self.is_update:
            self.fields['password1'].required = True
            self.fields['password2'].required = True

    def clean_email(self):
        email = self.cleaned_data['email'].strip().lower()
        duplicates = User.objects.filter(email__iexact=email).exclude(pk=self.instance.pk)
        if duplicates.exists():
            raise forms.ValidationError('A user with this email already exists.')
        return email

    def clean_role(self):
        return self.cleaned_data.get('role') or self.instance.role or User.PROFESSIONAL

    def clean(self):
        cleaned_data = super().clean()
        password1 = cleaned_data.get('password1')
        password2 = cleaned_data.get('password2')

        if password1 or password2:
            if password1 != password2:
                raise forms.ValidationError("Passwords don't match.")
            if len(password1) < 8:
                raise forms.ValidationError("Password must be at least 8 characters long.")
        return cleaned_data

    def save(self, commit=True):
        user = super().save(commit=False)
        password = self.cleaned_data.get('password1')
        if password:
            user.set_password(password)
        if commit:
            user.save()
        return user
