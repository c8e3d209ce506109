"""Services for announcements and notification drafts."""

from .exceptions import (
    NotificationServiceError,
    AnnouncementNotFoundError,
    DraftNotFoundError,
    DraftStateError,
    UnknownTemplateError,
    NotificationPermissionError,
)
from .templates import (
    list_templates,
    get_template,
    render_text,
    render_template,
    default_placeholder_values,
)
from .announcements import (
    audience_for,
    create_announcement,
    update_announcement,
    delete_announcement,
    toggle_publish,
    list_announcements,
    list_visible,
)
from .drafts import (
    generate_debtor_drafts,
    get_draft,
    list_drafts,
    approve_draft,
    bulk_approve,
    cancel_draft,
    update_draft_body,
    drafts_summary,
    list_ready_to_send,
)
from .sender import (
    analyze_draft,
    preview_send,
    send_ready_drafts,
)

__all__ = [
    # Exceptions
    'NotificationServiceError',
    'AnnouncementNotFoundError',
    'DraftNotFoundError',
    'DraftStateError',
    'UnknownTemplateError',
    'NotificationPermissionError',
    # Templates
    'list_templates',
    'get_template',
    'render_text',
    'render_template',
    'default_placeholder_values',
    # Announcements
    'audience_for',
    'create_announcement',
    'update_announcement',
    'delete_announcement',
    'toggle_publish',
    'list_announcements',
    'list_visible',
    # Drafts
    'generate_debtor_drafts',
    'get_draft',
    'list_drafts',
    'approve_draft',
    'bulk_approve',
    'cancel_draft',
    'update_draft_body',
    'drafts_summary',
    'list_ready_to_send',
    # Sending
    'analyze_draft',
    'preview_send',
    'send_ready_drafts',
]
