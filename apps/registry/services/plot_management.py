"""Plot and ownership management service."""

import logging
import re
from typing import Optional, Tuple
from uuid import UUID

from django.db import transaction, IntegrityError
from django.db.models import Q, QuerySet

from apps.registry.models import Plot, Person, PlotOwnership

from .exceptions import (
    DuplicatePlotError,
    PlotNotFoundError,
    PersonNotFoundError,
    OwnershipNotFoundError,
)

logger = logging.getLogger(__name__)

PLOT_FIELDS = ('street', 'number', 'city_address', 'cadastral_number', 'area_sqm', 'notes', 'is_active')

_STREET_NUMBER_RE = re.compile(r'^\s*([^\s/]+)\s*[\s/]\s*(\d+[\w-]*)\s*$')


def split_plot_query(q: str) -> Optional[Tuple[str, str]]:
    """
    Split "<line> <number>" or "<line>/<number>" into a (street, number) pair.

    Returns None when the query does not look like a plot address.
    """
    match = _STREET_NUMBER_RE.match(q or '')
    if not match:
        return None
    return match.group(1), match.group(2)


@transaction.atomic
def create_plot(*, street: str = '', number: str, **fields) -> Plot:
    """
    Create a plot.

    Args:
        street: Line (street) of the community, may be blank
        number: Plot number
        **fields: Any of city_address, cadastral_number, area_sqm, notes

    Returns:
        Created Plot

    Raises:
        DuplicatePlotError: If a plot with the same street and number exists
    """
    street = (street or '').strip()
    number = (number or '').strip()

    if Plot.objects.filter(street=street, number=number).exists():
        raise DuplicatePlotError(f"Участок {number} на линии {street or '—'} уже существует")

    extra = {key: value for key, value in fields.items() if key in PLOT_FIELDS}
    try:
        plot = Plot.objects.create(street=street, number=number, **extra)
    except IntegrityError:
        raise DuplicatePlotError(f"Участок {number} на линии {street or '—'} уже существует")

    logger.info("Plot created: %s", plot.label)
    return plot


@transaction.atomic
def update_plot(*, plot_id: UUID, **fields) -> Plot:
    """
    Update plot attributes, keeping (street, number) unique.

    Raises:
        PlotNotFoundError: If plot doesn't exist
        DuplicatePlotError: If the new address collides with another plot
    """
    try:
        plot = Plot.objects.select_for_update().get(id=plot_id)
    except Plot.DoesNotExist:
        raise PlotNotFoundError(f"Plot with ID {plot_id} not found")

    for key, value in fields.items():
        if key in PLOT_FIELDS:
            setattr(plot, key, value.strip() if isinstance(value, str) else value)

    clash = (
        Plot.objects
        .filter(street=plot.street, number=plot.number)
        .exclude(id=plot.id)
        .exists()
    )
    if clash:
        raise DuplicatePlotError(f"Участок {plot.number} на линии {plot.street or '—'} уже существует")

    plot.save()
    return plot


@transaction.atomic
def attach_owner(*, plot_id: UUID, person_id: UUID, is_primary: bool = False) -> PlotOwnership:
    """
    Link a person to a plot. Re-attaching updates the primary flag.

    When ``is_primary`` is set, other owners of the plot lose the flag.
    """
    try:
        plot = Plot.objects.select_for_update().get(id=plot_id)
    except Plot.DoesNotExist:
        raise PlotNotFoundError(f"Plot with ID {plot_id} not found")

    try:
        person = Person.objects.get(id=person_id, is_active=True)
    except Person.DoesNotExist:
        raise PersonNotFoundError(f"Person with ID {person_id} not found")

    if is_primary:
        PlotOwnership.objects.filter(plot=plot, is_primary=True).exclude(person=person).update(is_primary=False)

    ownership, created = PlotOwnership.objects.get_or_create(
        plot=plot,
        person=person,
        defaults={'is_primary': is_primary},
    )
    if not created and ownership.is_primary != is_primary:
        ownership.is_primary = is_primary
        ownership.save(update_fields=['is_primary'])

    return ownership


@transaction.atomic
def detach_owner(*, plot_id: UUID, person_id: UUID) -> None:
    deleted, _ = PlotOwnership.objects.filter(plot_id=plot_id, person_id=person_id).delete()
    if not deleted:
        raise OwnershipNotFoundError("Этот человек не привязан к участку")


def search_registry(*, q: str = '', status: Optional[str] = None) -> QuerySet:
    """
    Search registry persons by plot, owner name, phone or email.

    Args:
        q: Free text. "<line> <number>" additionally matches that exact plot.
        status: Optional PersonStatus filter

    Returns:
        QuerySet of active Person objects with plots prefetched
    """
    queryset = Person.objects.filter(is_active=True).prefetch_related('ownerships__plot')

    if status:
        queryset = queryset.filter(status=status)

    q = (q or '').strip()
    if q:
        condition = (
            Q(full_name__icontains=q)
            | Q(phone__icontains=q)
            | Q(email__icontains=q)
            | Q(plots__number__iexact=q)
        )
        address = split_plot_query(q)
        if address:
            street, number = address
            condition |= Q(plots__street__iexact=street, plots__number__iexact=number)
        queryset = queryset.filter(condition).distinct()

    return queryset
