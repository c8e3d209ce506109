"""Versioned bank requisites of the community."""

import logging

from django.db import transaction
from django.db.models import Max

from apps.accounts.models import User
from apps.billing.models import PaymentRequisites

from .exceptions import RequisitesNotConfiguredError

logger = logging.getLogger(__name__)

DEFAULT_REQUISITES = {
    'recipient_name': 'СК «Улыбка»',
    'bank_name': 'ПАО «Челиндбанк»',
    'bik': '047501711',
    'account': '40703810407950000058',
    'corr_account': '30101810400000000711',
    'inn': '7423007708',
    'kpp': '745901001',
    'purpose_template': 'Членский взнос за участок {plot}, {period}. {name}',
}

REQUISITES_FIELDS = tuple(DEFAULT_REQUISITES)


def get_active_requisites() -> PaymentRequisites:
    """
    Latest active requisites version.

    Raises:
        RequisitesNotConfiguredError: Nothing configured yet
    """
    requisites = PaymentRequisites.objects.filter(is_active=True).order_by('-version').first()
    if requisites is None:
        raise RequisitesNotConfiguredError("Реквизиты для оплаты не настроены")
    return requisites


@transaction.atomic
def update_requisites(*, user: User = None, **fields) -> PaymentRequisites:
    """
    Save requisites as a new version; older versions stay for history.

    Fields not passed are carried over from the current version, or from the
    defaults when none exists.
    """
    unknown = set(fields) - set(REQUISITES_FIELDS)
    if unknown:
        raise TypeError(f"Unknown requisites fields: {', '.join(sorted(unknown))}")

    try:
        current = get_active_requisites()
        values = {name: getattr(current, name) for name in REQUISITES_FIELDS}
    except RequisitesNotConfiguredError:
        values = dict(DEFAULT_REQUISITES)
    values.update({name: value for name, value in fields.items() if value is not None})

    last_version = PaymentRequisites.objects.aggregate(v=Max('version'))['v'] or 0
    PaymentRequisites.objects.filter(is_active=True).update(is_active=False)
    requisites = PaymentRequisites.objects.create(
        version=last_version + 1,
        created_by=user,
        **values,
    )

    logger.info("Payment requisites v%d saved by %s", requisites.version, getattr(user, 'email', 'system'))
    return requisites


def ensure_default_requisites() -> PaymentRequisites:
    """Create the first version from the defaults if nothing is configured."""
    try:
        return get_active_requisites()
    except RequisitesNotConfiguredError:
        return update_requisites()
