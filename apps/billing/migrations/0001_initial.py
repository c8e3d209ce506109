# Generated manually for the billing app

import uuid
from decimal import Decimal
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('registry', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='BillingPeriod',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('period', models.CharField(max_length=7, unique=True)),
                ('status', models.CharField(choices=[('open', 'Открыт'), ('closed', 'Закрыт')], default='open', max_length=10)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('snapshot', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('closed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='closed_periods', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'billing_periods',
                'ordering': ['-period'],
            },
        ),
        migrations.CreateModel(
            name='Accrual',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('period', models.CharField(db_index=True, max_length=7)),
                ('category', models.CharField(choices=[('membership', 'Членский взнос'), ('electricity', 'Электроэнергия'), ('target', 'Целевой взнос')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.00'))])),
                ('tariff', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('note', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_accruals', to=settings.AUTH_USER_MODEL)),
                ('plot', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='accruals', to='registry.plot')),
            ],
            options={
                'db_table': 'billing_accruals',
                'ordering': ['period', 'created_at'],
            },
        ),
        migrations.CreateModel(
            name='StatementImport',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('file_name', models.CharField(max_length=255)),
                ('totals', models.JSONField(blank=True, default=dict)),
                ('errors', models.JSONField(blank=True, default=list)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('uploaded_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='statement_imports', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'billing_statement_imports',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Payment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('paid_at', models.DateField(db_index=True)),
                ('payer_name', models.CharField(blank=True, max_length=255)),
                ('purpose', models.TextField(blank=True)),
                ('external_ref', models.CharField(blank=True, max_length=100)),
                ('source', models.CharField(choices=[('manual', 'Вручную'), ('import', 'Выписка')], default='manual', max_length=10)),
                ('match_status', models.CharField(choices=[('matched', 'Сопоставлен'), ('ambiguous', 'Несколько вариантов'), ('unmatched', 'Не сопоставлен'), ('needs_review', 'Требует проверки')], default='unmatched', max_length=20)),
                ('match_method', models.CharField(blank=True, max_length=30)),
                ('match_confidence', models.DecimalField(blank=True, decimal_places=2, max_digits=3, null=True)),
                ('match_candidates', models.JSONField(blank=True, default=list)),
                ('fingerprint', models.CharField(blank=True, editable=False, max_length=64, null=True, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='recorded_payments', to=settings.AUTH_USER_MODEL)),
                ('plot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments', to='registry.plot')),
                ('statement_import', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='payments', to='billing.statementimport')),
            ],
            options={
                'db_table': 'billing_payments',
                'ordering': ['-paid_at', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='Allocation',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12, validators=[MinValueValidator(Decimal('0.01'))])),
                ('kind', models.CharField(choices=[('auto', 'Автоматически'), ('manual', 'Вручную')], default='auto', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('accrual', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='billing.accrual')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='allocations', to=settings.AUTH_USER_MODEL)),
                ('payment', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='allocations', to='billing.payment')),
            ],
            options={
                'db_table': 'billing_allocations',
                'ordering': ['created_at'],
            },
        ),
        migrations.CreateModel(
            name='PenaltyAccrual',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('period', models.CharField(db_index=True, max_length=7)),
                ('as_of', models.DateField()),
                ('days_overdue', models.PositiveIntegerField(default=0)),
                ('rate', models.DecimalField(decimal_places=4, max_digits=6)),
                ('base_amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=12)),
                ('status', models.CharField(choices=[('active', 'Действует'), ('frozen', 'Заморожена'), ('voided', 'Аннулирована')], default='active', max_length=10)),
                ('status_reason', models.TextField(blank=True)),
                ('status_changed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('accrual', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='penalty', to='billing.accrual')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='created_penalties', to=settings.AUTH_USER_MODEL)),
                ('plot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='penalties', to='registry.plot')),
                ('status_changed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='penalty_status_changes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'billing_penalty_accruals',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PaymentRequisites',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('version', models.PositiveIntegerField(unique=True)),
                ('recipient_name', models.CharField(max_length=255)),
                ('bank_name', models.CharField(max_length=255)),
                ('bik', models.CharField(max_length=9)),
                ('account', models.CharField(max_length=20)),
                ('corr_account', models.CharField(max_length=20)),
                ('inn', models.CharField(blank=True, max_length=12)),
                ('kpp', models.CharField(blank=True, max_length=9)),
                ('purpose_template', models.CharField(max_length=255)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='requisites_versions', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'billing_payment_requisites',
                'ordering': ['-version'],
            },
        ),
        migrations.AddIndex(
            model_name='accrual',
            index=models.Index(fields=['plot', 'period'], name='accruals_plot_period_idx'),
        ),
        migrations.AddIndex(
            model_name='accrual',
            index=models.Index(fields=['period', 'category'], name='accruals_period_cat_idx'),
        ),
        migrations.AlterUniqueTogether(
            name='accrual',
            unique_together={('plot', 'period', 'category')},
        ),
        migrations.AddIndex(
            model_name='payment',
            index=models.Index(fields=['plot', 'paid_at'], name='payments_plot_paid_idx'),
        ),
        migrations.AddIndex(
            model_name='payment',
            index=models.Index(fields=['match_status'], name='payments_match_idx'),
        ),
        migrations.AddIndex(
            model_name='allocation',
            index=models.Index(fields=['payment'], name='allocations_payment_idx'),
        ),
        migrations.AddIndex(
            model_name='allocation',
            index=models.Index(fields=['accrual'], name='allocations_accrual_idx'),
        ),
        migrations.AddIndex(
            model_name='penaltyaccrual',
            index=models.Index(fields=['plot', 'period'], name='penalties_plot_period_idx'),
        ),
        migrations.AddIndex(
            model_name='penaltyaccrual',
            index=models.Index(fields=['status'], name='penalties_status_idx'),
        ),
    ]
