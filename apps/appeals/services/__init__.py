"""Services for appeals business logic."""

from .exceptions import (
    AppealServiceError,
    AppealNotFoundError,
    InvalidTransitionError,
    AppealPermissionError,
    AppealValidationError,
)
from .triage import triage_appeal, has_enough_data, categorize
from .sla import sla_hours, calculate_due_at, is_overdue, is_due_soon
from .workflow import allowed_next_statuses, can_transition, validate_transition
from .rule_engine import APPEAL_RULES, evaluate_rules, apply_rules
from .appeal_management import (
    LIST_STATUSES,
    create_appeal,
    get_appeal,
    change_status,
    add_comment,
    list_comments,
    assign_appeal,
    unassign_appeal,
    change_category,
    reapply_rules,
    list_appeals,
    inbox_stats,
    remind_overdue,
)

__all__ = [
    # Exceptions
    'AppealServiceError',
    'AppealNotFoundError',
    'InvalidTransitionError',
    'AppealPermissionError',
    'AppealValidationError',
    # Triage, SLA, workflow, rules
    'triage_appeal',
    'has_enough_data',
    'categorize',
    'sla_hours',
    'calculate_due_at',
    'is_overdue',
    'is_due_soon',
    'allowed_next_statuses',
    'can_transition',
    'validate_transition',
    'APPEAL_RULES',
    'evaluate_rules',
    'apply_rules',
    # Appeals
    'LIST_STATUSES',
    'create_appeal',
    'get_appeal',
    'change_status',
    'add_comment',
    'list_comments',
    'assign_appeal',
    'unassign_appeal',
    'change_category',
    'reapply_rules',
    'list_appeals',
    'inbox_stats',
    'remind_overdue',
]
