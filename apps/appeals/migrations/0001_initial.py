# Generated manually for the appeals app

import uuid
from django.conf import settings
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
            name='Appeal',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('plot_number', models.CharField(blank=True, max_length=50)),
                ('author_name', models.CharField(blank=True, max_length=200)),
                ('author_phone', models.CharField(blank=True, max_length=32)),
                ('title', models.CharField(max_length=200)),
                ('body', models.TextField()),
                ('category', models.CharField(choices=[('electricity', 'Электроэнергия'), ('finance', 'Взносы и оплата'), ('documents', 'Документы'), ('access', 'Доступ'), ('membership', 'Членство'), ('insufficient_data', 'Недостаточно данных'), ('general', 'Общее')], db_index=True, default='general', max_length=30)),
                ('priority', models.CharField(choices=[('low', 'Низкий'), ('medium', 'Средний'), ('high', 'Высокий')], default='medium', max_length=10)),
                ('status', models.CharField(choices=[('new', 'Новое'), ('in_progress', 'В работе'), ('needs_info', 'Требуются данные'), ('closed', 'Закрыто')], db_index=True, default='new', max_length=20)),
                ('assigned_role', models.CharField(blank=True, choices=[('chairman', 'Председатель'), ('secretary', 'Секретарь'), ('accountant', 'Бухгалтер'), ('admin', 'Администратор')], max_length=20)),
                ('assigned_at', models.DateTimeField(blank=True, null=True)),
                ('due_at', models.DateTimeField(blank=True, db_index=True, null=True)),
                ('due_at_source', models.CharField(choices=[('auto', 'По SLA'), ('rule', 'По правилу'), ('manual', 'Вручную')], default='auto', max_length=10)),
                ('closed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('assigned_to', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='assigned_appeals', to=settings.AUTH_USER_MODEL)),
                ('author', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appeals', to=settings.AUTH_USER_MODEL)),
                ('plot', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appeals', to='registry.plot')),
            ],
            options={
                'db_table': 'appeals',
                'ordering': ['-updated_at'],
            },
        ),
        migrations.CreateModel(
            name='AppealComment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('author_role', models.CharField(blank=True, max_length=20)),
                ('body', models.TextField()),
                ('is_internal', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('appeal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='comments', to='appeals.appeal')),
                ('author', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='appeal_comments', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'appeal_comments',
                'ordering': ['-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AppealActivity',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('kind', models.CharField(choices=[('created', 'Создано'), ('rule_applied', 'Применено правило'), ('assigned', 'Назначено'), ('status_changed', 'Смена статуса'), ('due_at_set', 'Установлен срок'), ('comment_added', 'Комментарий'), ('category_changed', 'Смена категории'), ('reminder_sent', 'Напоминание')], max_length=30)),
                ('payload', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('appeal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='activity', to='appeals.appeal')),
            ],
            options={
                'db_table': 'appeal_activity',
                'ordering': ['created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='appeal',
            index=models.Index(fields=['status', 'due_at'], name='appeals_status_due_idx'),
        ),
        migrations.AddIndex(
            model_name='appeal',
            index=models.Index(fields=['assigned_role', 'status'], name='appeals_role_status_idx'),
        ),
        migrations.AddIndex(
            model_name='appeal',
            index=models.Index(fields=['-updated_at'], name='appeals_updated_idx'),
        ),
        migrations.AddIndex(
            model_name='appealactivity',
            index=models.Index(fields=['appeal', 'created_at'], name='appeal_activity_appeal_idx'),
        ),
    ]
