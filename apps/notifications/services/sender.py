"""
Sending approved drafts.

Only email goes out from here; it is delivered through Django's mail
backend (``EMAIL_BACKEND``). Other channels are reported as skipped.
"""

import logging
from smtplib import SMTPException
from typing import Optional, Tuple

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.mail import send_mail
from django.core.validators import validate_email
from django.db import transaction
from django.utils import timezone

from apps.notifications.models import NotificationDraft, DraftStatus, Channel

from .drafts import list_ready_to_send

logger = logging.getLogger(__name__)

SAMPLE_SIZE = 5
SAMPLE_BODY_LENGTH = 200

SUPPORTED_CHANNELS = (Channel.EMAIL,)

SKIP_ALREADY_SENT = 'alreadySent'
SKIP_NOT_APPROVED = 'notApproved'
SKIP_INVALID_RECIPIENT = 'invalidRecipient'
SKIP_EMPTY_BODY = 'emptyBody'
SKIP_UNSUPPORTED_CHANNEL = 'unsupportedChannel'

# Reasons that describe the draft itself and are stored on it
_PERSISTENT_SKIPS = (SKIP_INVALID_RECIPIENT, SKIP_EMPTY_BODY, SKIP_UNSUPPORTED_CHANNEL)


def _valid_email(value: str) -> bool:
    try:
        validate_email(value)
    except ValidationError:
        return False
    return True


def analyze_draft(draft: NotificationDraft) -> Tuple[bool, Optional[str]]:
    """Return ``(can_send, skip_reason)``."""
    if draft.status == DraftStatus.SENT:
        return False, SKIP_ALREADY_SENT
    if draft.status != DraftStatus.APPROVED:
        return False, SKIP_NOT_APPROVED
    if draft.channel not in SUPPORTED_CHANNELS:
        return False, SKIP_UNSUPPORTED_CHANNEL
    if not draft.recipient or not _valid_email(draft.recipient):
        return False, SKIP_INVALID_RECIPIENT
    if not draft.body.strip():
        return False, SKIP_EMPTY_BODY
    return True, None


def _sample_row(draft: NotificationDraft, reason: Optional[str]) -> dict:
    body = draft.body
    if len(body) > SAMPLE_BODY_LENGTH:
        body = body[:SAMPLE_BODY_LENGTH] + '...'
    return {
        'id': str(draft.id),
        'plot_label': draft.plot_label,
        'resident_name': draft.resident_name,
        'recipient': draft.recipient,
        'body': body,
        'skip_reason': reason,
    }


def preview_send(*, limit: Optional[int] = None, channel: Optional[str] = None) -> dict:
    """What ``send_ready_drafts`` would do, without sending anything."""
    result = {
        'will_send': 0,
        'skipped': 0,
        'skip_reasons': {},
        'sample': [],
    }

    for draft in list_ready_to_send(channel=channel, limit=limit):
        can_send, reason = analyze_draft(draft)
        if can_send:
            result['will_send'] += 1
        else:
            result['skipped'] += 1
            result['skip_reasons'][reason] = result['skip_reasons'].get(reason, 0) + 1

        if len(result['sample']) < SAMPLE_SIZE:
            result['sample'].append(_sample_row(draft, reason))

    return result


def _claim(draft_id) -> Tuple[Optional[NotificationDraft], Optional[str]]:
    """Lock the draft and move it to ``sending`` when it can go out."""
    with transaction.atomic():
        draft = NotificationDraft.objects.select_for_update().get(id=draft_id)
        can_send, reason = analyze_draft(draft)
        if not can_send:
            if reason in _PERSISTENT_SKIPS:
                draft.status = DraftStatus.SKIPPED
                draft.skip_reason = reason
                draft.save(update_fields=['status', 'skip_reason', 'updated_at'])
            return None, reason

        draft.status = DraftStatus.SENDING
        draft.save(update_fields=['status', 'updated_at'])
        return draft, None


def _deliver(draft: NotificationDraft) -> None:
    send_mail(
        draft.subject or 'Уведомление СНТ',
        draft.body,
        settings.DEFAULT_FROM_EMAIL,
        [draft.recipient],
        fail_silently=False,
    )


def send_ready_drafts(*, limit: Optional[int] = None, channel: Optional[str] = None) -> dict:
    """
    Send approved drafts, oldest first.

    Each draft is claimed in its own transaction so a failure on one
    does not roll back the others.

    Returns:
        dict with ``sent``, ``failed``, ``skipped`` and per-draft ``results``
    """
    result = {'sent': 0, 'failed': 0, 'skipped': 0, 'results': []}

    for candidate in list_ready_to_send(channel=channel, limit=limit):
        draft, reason = _claim(candidate.id)
        if draft is None:
            result['skipped'] += 1
            result['results'].append({'id': str(candidate.id), 'status': 'skipped', 'error': reason})
            continue

        draft.attempts += 1
        try:
            _deliver(draft)
        except (SMTPException, OSError, ValueError) as e:
            draft.status = DraftStatus.FAILED
            draft.last_error = str(e)
            draft.save(update_fields=['status', 'attempts', 'last_error', 'updated_at'])
            logger.warning("Draft %s failed to send: %s", draft.id, e)
            result['failed'] += 1
            result['results'].append({'id': str(draft.id), 'status': 'failed', 'error': str(e)})
            continue

        draft.status = DraftStatus.SENT
        draft.sent_at = timezone.now()
        draft.last_error = ''
        draft.save(update_fields=['status', 'attempts', 'sent_at', 'last_error', 'updated_at'])
        result['sent'] += 1
        result['results'].append({'id': str(draft.id), 'status': 'sent', 'error': None})

    logger.info(
        "Notification run: %d sent, %d failed, %d skipped",
        result['sent'], result['failed'], result['skipped'],
    )
    return result
