"""
Automatic routing rules applied to appeals after triage.

Rules are checked in ``order``; the first enabled rule whose condition
matches is applied and the rest are ignored. A condition may name a
category, a priority and a list of keywords; every part that is given
must match.
"""

import logging
from datetime import timedelta
from typing import Optional

from django.utils import timezone

from apps.appeals.models import (
    Appeal,
    AppealActivity,
    ActivityKind,
    AppealCategory,
    AppealPriority,
    AppealStatus,
    AssigneeRole,
    DueAtSource,
)

from .sla import calculate_due_at
from .triage import normalize_text
from .workflow import can_transition

logger = logging.getLogger(__name__)

APPEAL_RULES = (
    {
        'id': 'high_priority_access',
        'name': 'Высокий приоритет: доступ',
        'order': 1,
        'enabled': True,
        'condition': {'category': AppealCategory.ACCESS, 'priority': AppealPriority.HIGH},
        'action': {'assign_role': AssigneeRole.SECRETARY, 'set_status': AppealStatus.IN_PROGRESS, 'due_hours': 6},
    },
    {
        'id': 'finance_accountant',
        'name': 'Финансы: бухгалтер',
        'order': 2,
        'enabled': True,
        'condition': {'category': AppealCategory.FINANCE},
        'action': {'assign_role': AssigneeRole.ACCOUNTANT},
    },
    {
        'id': 'electricity_accountant',
        'name': 'Электроэнергия: бухгалтер',
        'order': 3,
        'enabled': True,
        'condition': {'category': AppealCategory.ELECTRICITY},
        'action': {'assign_role': AssigneeRole.ACCOUNTANT},
    },
    {
        'id': 'membership_chairman',
        'name': 'Членство: председатель',
        'order': 4,
        'enabled': True,
        'condition': {'category': AppealCategory.MEMBERSHIP},
        'action': {'assign_role': AssigneeRole.CHAIRMAN},
    },
    {
        'id': 'insufficient_data_status',
        'name': 'Недостаточно данных: запросить',
        'order': 5,
        'enabled': True,
        'condition': {'category': AppealCategory.INSUFFICIENT_DATA},
        'action': {'set_status': AppealStatus.NEEDS_INFO},
    },
    {
        'id': 'urgent_keywords',
        'name': 'Срочные слова',
        'order': 6,
        'enabled': True,
        'condition': {'keywords': ('срочно', 'urgent', 'критично', 'авария', 'не работает')},
        'action': {'set_status': AppealStatus.IN_PROGRESS, 'due_hours': 12},
    },
    {
        'id': 'high_priority_fast',
        'name': 'Высокий приоритет: короткий срок',
        'order': 7,
        'enabled': True,
        'condition': {'priority': AppealPriority.HIGH},
        'action': {'due_hours': 24},
    },
)


def matches_condition(appeal: Appeal, condition: dict) -> bool:
    if 'category' in condition and appeal.category != condition['category']:
        return False
    if 'priority' in condition and appeal.priority != condition['priority']:
        return False
    keywords = condition.get('keywords')
    if keywords:
        text = normalize_text(appeal.title, appeal.body)
        if not any(keyword in text for keyword in keywords):
            return False
    return True


def rule_changes(appeal: Appeal, action: dict, now=None) -> dict:
    """
    Field changes a rule action makes to ``appeal``.

    A role is never assigned over a manually chosen assignee. When the rule
    changes role or status without its own deadline, the SLA deadline of the
    category is recomputed.
    """
    now = now or timezone.now()
    changes = {}

    if action.get('assign_role') and appeal.assigned_to_id is None:
        changes['assigned_role'] = action['assign_role']
    if action.get('set_status') and can_transition(appeal.status, action['set_status']):
        changes['status'] = action['set_status']

    if action.get('due_hours') is not None:
        changes['due_at'] = now + timedelta(hours=action['due_hours'])
        changes['due_at_source'] = DueAtSource.RULE
    elif changes:
        changes['due_at'] = calculate_due_at(appeal.category, now)
        changes['due_at_source'] = DueAtSource.AUTO

    return changes


def evaluate_rules(appeal: Appeal, rules=APPEAL_RULES, now=None) -> Optional[dict]:
    """
    Find the first matching rule.

    Returns:
        {'rule': rule, 'changes': dict} or None when no rule changes anything
    """
    enabled = sorted((rule for rule in rules if rule.get('enabled', True)), key=lambda rule: rule['order'])
    for rule in enabled:
        if not matches_condition(appeal, rule['condition']):
            continue
        changes = rule_changes(appeal, rule['action'], now)
        if changes:
            return {'rule': rule, 'changes': changes}
    return None


def _payload(changes: dict) -> dict:
    return {
        field: value.isoformat() if hasattr(value, 'isoformat') else str(value)
        for field, value in changes.items()
    }


def apply_rules(appeal: Appeal, rules=APPEAL_RULES, now=None) -> Optional[dict]:
    """
    Apply the first matching rule to a saved appeal and record activity.

    Saves the appeal and writes ``rule_applied`` plus one ``assigned``,
    ``status_changed`` or ``due_at_set`` entry per changed field.

    Returns:
        The applied rule, or None
    """
    result = evaluate_rules(appeal, rules, now)
    if result is None:
        return None

    rule, changes = result['rule'], result['changes']
    old_status = appeal.status
    for field, value in changes.items():
        setattr(appeal, field, value)
    appeal.save()

    base = {'rule_id': rule['id'], 'rule_name': rule['name'], 'via_rule': True}
    entries = [AppealActivity(appeal=appeal, kind=ActivityKind.RULE_APPLIED, payload={
        **base, 'changes': _payload(changes),
    })]
    if 'assigned_role' in changes:
        entries.append(AppealActivity(appeal=appeal, kind=ActivityKind.ASSIGNED, payload={
            **base, 'role': str(changes['assigned_role']),
        }))
    if 'status' in changes and changes['status'] != old_status:
        entries.append(AppealActivity(appeal=appeal, kind=ActivityKind.STATUS_CHANGED, payload={
            **base, 'old_status': str(old_status), 'new_status': str(changes['status']),
        }))
    if 'due_at' in changes:
        entries.append(AppealActivity(appeal=appeal, kind=ActivityKind.DUE_AT_SET, payload={
            **base, 'due_at': changes['due_at'].isoformat(), 'source': str(changes['due_at_source']),
        }))
    AppealActivity.objects.bulk_create(entries)

    logger.info("Rule %s applied to appeal %s", rule['id'], appeal.id)
    return rule
