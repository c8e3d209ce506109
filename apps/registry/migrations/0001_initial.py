# Generated manually for the plot and owner registry

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Plot',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('street', models.CharField(blank=True, db_index=True, max_length=50)),
                ('number', models.CharField(db_index=True, max_length=20)),
                ('city_address', models.CharField(blank=True, max_length=255)),
                ('cadastral_number', models.CharField(blank=True, max_length=50)),
                ('area_sqm', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True)),
                ('notes', models.TextField(blank=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'plots',
                'ordering': ['street', 'number'],
            },
        ),
        migrations.CreateModel(
            name='Person',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('full_name', models.CharField(blank=True, db_index=True, max_length=200)),
                ('phone', models.CharField(blank=True, max_length=32)),
                ('email', models.EmailField(blank=True, max_length=254)),
                ('status', models.CharField(choices=[('verified', 'Подтверждён'), ('pending', 'На проверке'), ('draft', 'Черновик')], default='draft', max_length=20)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('merged_into', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='merged_from', to='registry.person')),
                ('user', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='person', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'persons',
                'ordering': ['full_name'],
            },
        ),
        migrations.CreateModel(
            name='PlotOwnership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('is_primary', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('person', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ownerships', to='registry.person')),
                ('plot', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ownerships', to='registry.plot')),
            ],
            options={
                'db_table': 'plot_ownerships',
                'ordering': ['-is_primary', 'created_at'],
            },
        ),
        migrations.AddField(
            model_name='person',
            name='plots',
            field=models.ManyToManyField(related_name='owners', through='registry.PlotOwnership', to='registry.plot'),
        ),
        migrations.CreateModel(
            name='InviteCode',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('code_hash', models.CharField(editable=False, max_length=64, unique=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('used_at', models.DateTimeField(blank=True, null=True)),
                ('revoked_at', models.DateTimeField(blank=True, null=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='issued_invite_codes', to=settings.AUTH_USER_MODEL)),
                ('person', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='invite_codes', to='registry.person')),
                ('used_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='redeemed_invite_codes', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'invite_codes',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='PersonMergeHistory',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('source_person_id', models.UUIDField()),
                ('source_full_name', models.CharField(blank=True, max_length=200)),
                ('reason', models.TextField(blank=True)),
                ('moved_ownerships', models.PositiveIntegerField(default=0)),
                ('merged_at', models.DateTimeField(auto_now_add=True)),
                ('merged_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='person_merges', to=settings.AUTH_USER_MODEL)),
                ('target_person', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='merge_history', to='registry.person')),
            ],
            options={
                'db_table': 'person_merge_history',
                'ordering': ['-merged_at'],
            },
        ),
        migrations.AddIndex(
            model_name='plot',
            index=models.Index(fields=['street', 'number'], name='plots_street_number_idx'),
        ),
        migrations.AlterUniqueTogether(
            name='plot',
            unique_together={('street', 'number')},
        ),
        migrations.AddIndex(
            model_name='person',
            index=models.Index(fields=['status'], name='persons_status_idx'),
        ),
        migrations.AddIndex(
            model_name='person',
            index=models.Index(fields=['phone'], name='persons_phone_idx'),
        ),
        migrations.AlterUniqueTogether(
            name='plotownership',
            unique_together={('plot', 'person')},
        ),
        migrations.AddIndex(
            model_name='invitecode',
            index=models.Index(fields=['person', 'created_at'], name='invite_codes_person_idx'),
        ),
    ]
