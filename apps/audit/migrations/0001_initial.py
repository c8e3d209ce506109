# Generated manually for the audit log

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
            name='AuditLog',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('actor_role', models.CharField(blank=True, max_length=20)),
                ('action', models.CharField(choices=[('penalty.apply', 'Начисление пени'), ('penalty.recalc', 'Пересчёт пени'), ('penalty.void', 'Аннулирование пени'), ('penalty.unvoid', 'Восстановление пени'), ('penalty.freeze', 'Заморозка пени'), ('penalty.unfreeze', 'Разморозка пени'), ('allocation.manual', 'Ручное разнесение'), ('allocation.unapply', 'Отмена разнесения'), ('import.payments', 'Импорт выписки'), ('appeals.remindOverdue', 'Напоминание о просроченных обращениях'), ('period.close', 'Закрытие периода'), ('period.reopen', 'Открытие периода'), ('period.closed_change', 'Изменение закрытого периода'), ('user.role_change', 'Смена роли'), ('registry.merge', 'Объединение карточек')], db_index=True, max_length=50)),
                ('target_type', models.CharField(blank=True, max_length=50)),
                ('target_id', models.CharField(blank=True, max_length=64)),
                ('target_ids', models.JSONField(blank=True, default=list)),
                ('details', models.JSONField(blank=True, default=dict)),
                ('request_id', models.CharField(blank=True, max_length=64)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'audit_log',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddIndex(
            model_name='auditlog',
            index=models.Index(fields=['action', 'created_at'], name='audit_action_created_idx'),
        ),
        migrations.AddIndex(
            model_name='auditlog',
            index=models.Index(fields=['target_type', 'target_id'], name='audit_target_idx'),
        ),
        migrations.AddIndex(
            model_name='auditlog',
            index=models.Index(fields=['created_at'], name='audit_created_idx'),
        ),
    ]
