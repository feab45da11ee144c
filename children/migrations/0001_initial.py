from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='HealthInsurance',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=150, unique=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Health Insurance',
                'verbose_name_plural': 'Health Insurances',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Child',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('full_name', models.CharField(max_length=150)),
                ('birth_date', models.DateField(blank=True, null=True)),
                ('mother_name', models.CharField(blank=True, max_length=150)),
                ('mother_phone', models.CharField(blank=True, max_length=30)),
                ('mother_email', models.EmailField(blank=True, max_length=254)),
                ('father_name', models.CharField(blank=True, max_length=150)),
                ('father_phone', models.CharField(blank=True, max_length=30)),
                ('father_email', models.EmailField(blank=True, max_length=254)),
                ('emergency_contact_name', models.CharField(blank=True, max_length=150)),
                ('emergency_contact_phone', models.CharField(blank=True, max_length=30)),
                ('address', models.TextField(blank=True)),
                ('phone', models.CharField(blank=True, max_length=30)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('school', models.CharField(blank=True, max_length=150)),
                ('grade', models.CharField(blank=True, max_length=50)),
                ('diagnosis', models.TextField(blank=True)),
                ('referral_source', models.CharField(blank=True, max_length=150)),
                ('referral_doctor', models.CharField(blank=True, max_length=150)),
                ('fee_value', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=12, validators=[django.core.validators.MinValueValidator(0)])),
                ('is_active', models.BooleanField(default=True)),
                ('discharge_date', models.DateField(blank=True, null=True)),
                ('discharge_reason', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_professional', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_children', to=settings.AUTH_USER_MODEL)),
                ('health_insurance', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='children', to='children.healthinsurance')),
            ],
            options={
                'verbose_name_plural': 'Children',
                'ordering': ['full_name'],
            },
        ),
        migrations.CreateModel(
            name='ChildProfessional',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('module_name', models.CharField(choices=[('nomenclature', 'Nomenclature'), ('module', 'Module'), ('insurance', 'Insurance'), ('single_session', 'Single Session')], max_length=30)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('child', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='module_links', to='children.child')),
                ('professional', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='child_links', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['child__full_name', 'module_name'],
            },
        ),
        migrations.AddConstraint(
            model_name='childprofessional',
            constraint=models.UniqueConstraint(fields=('child', 'professional', 'module_name'), name='unique_child_professional_module'),
        ),
    ]
