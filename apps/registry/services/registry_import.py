"""Bulk registry import from a CSV export (plots with their owners)."""

import csv
import io
import logging

from django.db import transaction

from apps.registry.models import Plot, Person, PlotOwnership, PersonStatus

from .exceptions import RegistryImportError
from .person_deduplication import normalize_phone

logger = logging.getLogger(__name__)

HEADER_ALIASES = {
    'street': ('street', 'line', 'линия', 'улица'),
    'number': ('number', 'plot', 'участок', 'номер'),
    'full_name': ('full_name', 'name', 'owner', 'фио', 'владелец', 'собственник'),
    'phone': ('phone', 'телефон', 'тел'),
    'email': ('email', 'e-mail', 'почта'),
}


def decode_upload(content) -> str:
    """Bytes from an upload to text: UTF-8 (with or without BOM), else cp1251."""
    if isinstance(content, str):
        return content.lstrip('\ufeff')
    try:
        return content.decode('utf-8-sig')
    except UnicodeDecodeError:
        return content.decode('cp1251', errors='replace')


def sniff_delimiter(text: str) -> str:
    first_line = text.split('\n', 1)[0]
    return ';' if first_line.count(';') >= first_line.count(',') else ','


def _word_match_position(name, aliases):
    """Index of the last word of ``name`` that starts with one of ``aliases``."""
    position = None
    for index, word in enumerate(name.split()):
        if any(word.startswith(alias) for alias in aliases):
            position = index
    return position


def map_headers(header_row):
    """
    Map canonical field names to column indexes.

    Exact header names win. Remaining columns match by word prefix, and the
    qualifying word decides: "Номер телефона" is a phone column.
    """
    names = [(raw or '').strip().lower() for raw in header_row]
    mapping = {}
    for index, name in enumerate(names):
        for field, aliases in HEADER_ALIASES.items():
            if field not in mapping and name in aliases:
                mapping[field] = index
                break

    taken = set(mapping.values())
    for index, name in enumerate(names):
        if index in taken:
            continue
        best_field, best_position = None, None
        for field, aliases in HEADER_ALIASES.items():
            if field in mapping:
                continue
            position = _word_match_position(name, aliases)
            if position is not None and (best_position is None or position > best_position):
                best_field, best_position = field, position
        if best_field:
            mapping[best_field] = index
    return mapping


@transaction.atomic
def import_registry_csv(*, content) -> dict:
    """
    Create or update plots and owners from CSV.

    Rows are matched to existing plots by (street, number) and to existing
    persons by normalised phone, then by exact name.

    Args:
        content: File bytes or text

    Returns:
        {'rows', 'created_plots', 'created_persons', 'updated_persons', 'linked', 'errors'}

    Raises:
        RegistryImportError: If the file has no header or lacks the plot number column
    """
    text = decode_upload(content)
    rows = list(csv.reader(io.StringIO(text), delimiter=sniff_delimiter(text)))
    rows = [row for row in rows if any(cell.strip() for cell in row)]

    if len(rows) < 2:
        raise RegistryImportError("Файл должен содержать заголовок и строки")

    columns = map_headers(rows[0])
    if 'number' not in columns:
        raise RegistryImportError("Не найдена колонка с номером участка")

    summary = {
        'rows': len(rows) - 1,
        'created_plots': 0,
        'created_persons': 0,
        'updated_persons': 0,
        'linked': 0,
        'errors': [],
    }

    def cell(row, field):
        index = columns.get(field)
        if index is None or index >= len(row):
            return ''
        return row[index].strip()

    for line_no, row in enumerate(rows[1:], start=2):
        number = cell(row, 'number')
        if not number:
            summary['errors'].append({'row': line_no, 'error': 'Не указан номер участка'})
            continue

        plot, created = Plot.objects.get_or_create(street=cell(row, 'street'), number=number)
        if created:
            summary['created_plots'] += 1

        full_name = cell(row, 'full_name')
        phone = cell(row, 'phone')
        email = cell(row, 'email')
        if not (full_name or phone):
            continue

        person = _find_person(full_name=full_name, phone=phone)
        if person is None:
            person = Person.objects.create(
                full_name=full_name,
                phone=phone,
                email=email,
                status=PersonStatus.PENDING,
            )
            summary['created_persons'] += 1
        else:
            changed = []
            for field, value in (('full_name', full_name), ('phone', phone), ('email', email)):
                if value and not getattr(person, field):
                    setattr(person, field, value)
                    changed.append(field)
            if changed:
                person.save(update_fields=changed + ['updated_at'])
                summary['updated_persons'] += 1

        _, linked = PlotOwnership.objects.get_or_create(
            plot=plot,
            person=person,
            defaults={'is_primary': not plot.ownerships.exists()},
        )
        if linked:
            summary['linked'] += 1

    logger.info(
        "Registry import: %d rows, %d plots, %d persons created, %d errors",
        summary['rows'], summary['created_plots'], summary['created_persons'], len(summary['errors']),
    )
    return summary


def _find_person(*, full_name, phone):
    phone_norm = normalize_phone(phone)
    if phone_norm:
        for person in Person.objects.filter(is_active=True).exclude(phone=''):
            if normalize_phone(person.phone) == phone_norm:
                return person
    if full_name:
        return Person.objects.filter(is_active=True, full_name__iexact=full_name).first()
    return None
