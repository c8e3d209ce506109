"""
Bank statement import.

Statements arrive as CSV (``;`` or ``,``, UTF-8 or cp1251) or XLSX. Each
incoming row becomes a Payment, matched to a plot by plot number, owner
name or phone digits found in the purpose and payer fields.
"""

import csv
import hashlib
import io
import logging
import re
import zipfile
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import List, Optional, Tuple

from django.db import transaction
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from apps.accounts.models import User
from apps.audit.models import AuditAction
from apps.audit.services import log_audit_event
from apps.billing.models import Payment, PaymentSource, MatchStatus, StatementImport
from apps.registry.models import Plot, Person
from apps.registry.services import normalize_phone
from apps.registry.services.registry_import import decode_upload, sniff_delimiter

from .exceptions import StatementParseError

logger = logging.getLogger(__name__)

HEADER_KEYS = {
    'date': ('date', 'дата'),
    'amount': ('amount', 'сумма'),
    'payer': ('payer', 'платель', 'контрагент', 'отправитель', 'name'),
    'purpose': ('purpose', 'назнач', 'описание', 'comment', 'details'),
    'ref': ('ref', 'operation', 'transaction', 'id', 'номер'),
    'direction': ('direction', 'type', 'вид', 'операция'),
    'credit': ('credit', 'приход', 'зачис'),
    'debit': ('debit', 'расход', 'спис'),
}

INCOMING_MARKERS = ('in', 'credit', 'приход', 'зачис')
OUTGOING_MARKERS = ('out', 'debit', 'расход', 'спис')

MATCH_CONFIDENCE = {
    'plot_number': Decimal('0.90'),
    'owner_name': Decimal('0.70'),
    'phone_last4': Decimal('0.60'),
    'mixed': Decimal('0.60'),
}
AMBIGUOUS_CONFIDENCE = Decimal('0.40')

_PLOT_NUMBER_PATTERNS = (
    re.compile(r'(?<!\w)(?:участок|уч\.?|у)\s*[-#№]?\s*(\d{1,4})', re.IGNORECASE),
    re.compile(r'[№#]\s*(\d{1,4})'),
    re.compile(r'\bу-?(\d{1,4})\b', re.IGNORECASE),
)
_ISO_DATE_RE = re.compile(r'(\d{4})-(\d{2})-(\d{2})')
_RU_DATE_RE = re.compile(r'(\d{2})\.(\d{2})\.(\d{4})')


# =============================================================================
# Parsing
# =============================================================================

def read_rows(content: bytes, file_name: str = '') -> List[List[str]]:
    """Raw table cells of a CSV or XLSX statement, as text."""
    if (file_name or '').lower().endswith('.xlsx'):
        try:
            workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError) as e:
            raise StatementParseError(f"Не удалось прочитать XLSX: {e}")
        sheet = workbook.active
        rows = [[_cell_text(value) for value in row] for row in sheet.iter_rows(values_only=True)]
        workbook.close()
    else:
        text = decode_upload(content)
        rows = list(csv.reader(io.StringIO(text), delimiter=sniff_delimiter(text)))

    return [row for row in rows if any((cell or '').strip() for cell in row)]


def _cell_text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def parse_date(raw: str) -> Optional[date]:
    """``YYYY-MM-DD`` or ``DD.MM.YYYY`` anywhere in the cell."""
    raw = (raw or '').strip()
    try:
        match = _ISO_DATE_RE.search(raw)
        if match:
            return date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
        match = _RU_DATE_RE.search(raw)
        if match:
            return date(int(match.group(3)), int(match.group(2)), int(match.group(1)))
    except ValueError:
        return None
    return None


def parse_amount(raw: str) -> Optional[Decimal]:
    """'1 500,50' -> Decimal('1500.50'); None when the cell is not a number."""
    cleaned = re.sub(r'\s+', '', raw or '').replace(',', '.')
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def _find_column(headers, keys) -> Optional[int]:
    for index, header in enumerate(headers):
        if any(key in header for key in keys):
            return index
    return None


def _detect_direction(value: str) -> Optional[str]:
    value = (value or '').strip().lower()
    if not value:
        return None
    if any(marker in value for marker in OUTGOING_MARKERS):
        return 'out'
    if any(marker in value for marker in INCOMING_MARKERS):
        return 'in'
    return None


def parse_statement(content: bytes, file_name: str = '') -> Tuple[List[dict], List[dict]]:
    """
    Normalise statement rows.

    Returns:
        (rows, errors). Each row is a dict with row_index, date, amount
        (always positive), direction ('in'/'out'), payer_name, purpose, bank_ref.
        Each error is {'row', 'error'}.

    Raises:
        StatementParseError: No data rows, or no date/amount columns
    """
    table = read_rows(content, file_name)
    if len(table) < 2:
        raise StatementParseError("Файл должен содержать заголовок и строки")

    headers = [(cell or '').strip().lower() for cell in table[0]]
    columns = {}
    taken = set()
    # credit/debit first so "Сумма прихода" is not taken as the plain amount column
    for field in ('credit', 'debit', 'amount'):
        remaining_headers = [h if i not in taken else '' for i, h in enumerate(headers)]
        index = _find_column(remaining_headers, HEADER_KEYS[field])
        if index is not None:
            columns[field] = index
            taken.add(index)
    # Descriptive columns are looked up over all headers
    for field in ('date', 'payer', 'purpose', 'ref', 'direction'):
        index = _find_column(headers, HEADER_KEYS[field])
        if index is not None:
            columns[field] = index

    has_amount = any(field in columns for field in ('amount', 'credit', 'debit'))
    if 'date' not in columns or not has_amount:
        raise StatementParseError("Не найдены обязательные колонки: дата/сумма")

    def cell(row, field):
        index = columns.get(field)
        if index is None or index >= len(row):
            return ''
        return (row[index] or '').strip()

    def row_direction(row):
        direction = _detect_direction(cell(row, 'direction'))
        if direction:
            return direction
        # A "Приход/Расход" column holds the direction as text instead of a sum
        for field in ('credit', 'debit'):
            value = cell(row, field)
            if value and parse_amount(value) is None:
                direction = _detect_direction(value)
                if direction:
                    return direction
        return None

    rows, errors = [], []
    for row_index, row in enumerate(table[1:], start=2):
        paid_at = parse_date(cell(row, 'date'))
        if paid_at is None:
            errors.append({'row': row_index, 'error': 'Неверная дата'})
            continue

        amount = parse_amount(cell(row, 'amount'))
        if amount is None:
            credit = parse_amount(cell(row, 'credit')) or Decimal('0')
            debit = parse_amount(cell(row, 'debit')) or Decimal('0')
            if credit > 0:
                amount = credit
            elif debit > 0:
                amount = -debit
        if amount is not None:
            try:
                amount = amount.quantize(Decimal('0.01'))
            except InvalidOperation:
                amount = None
        if amount is None or amount == 0:
            errors.append({'row': row_index, 'error': 'Неверная сумма'})
            continue

        direction = row_direction(row) or ('in' if amount >= 0 else 'out')
        rows.append({
            'row_index': row_index,
            'date': paid_at,
            'amount': abs(amount),
            'direction': direction,
            'payer_name': cell(row, 'payer'),
            'purpose': cell(row, 'purpose'),
            'bank_ref': cell(row, 'ref'),
        })

    return rows, errors


# =============================================================================
# Matching
# =============================================================================

def extract_plot_numbers(text: str) -> List[str]:
    found = []
    for pattern in _PLOT_NUMBER_PATTERNS:
        for number in pattern.findall(text or ''):
            number = number.lstrip('0') or '0'
            if number not in found:
                found.append(number)
    return found


def match_payment_to_plot(*, purpose: str = '', payer_name: str = '') -> dict:
    """
    Guess the plot a payment belongs to.

    Candidates come from plot numbers in the text, owner names contained in
    the text (or containing the payer name), and the last four digits of
    the text matched against owner phones.

    Returns:
        {'status', 'plot_id', 'candidates', 'method', 'confidence'}
    """
    text = f"{purpose or ''} {payer_name or ''}".lower()
    candidates = {}

    def add(plot_id, reason):
        candidates.setdefault(plot_id, set()).add(reason)

    numbers = extract_plot_numbers(text)
    if numbers:
        for plot in Plot.objects.filter(is_active=True, number__in=numbers):
            add(plot.id, 'plot_number')

    persons = list(
        Person.objects
        .filter(is_active=True)
        .prefetch_related('ownerships')
    )

    payer = (payer_name or '').strip().lower()
    for person in persons:
        owner = person.full_name.strip().lower()
        if not owner:
            continue
        if owner in text or (payer and payer in owner):
            for ownership in person.ownerships.all():
                add(ownership.plot_id, 'owner_name')

    digits = re.sub(r'\D', '', text)
    if len(digits) >= 4:
        last4 = digits[-4:]
        for person in persons:
            phone = normalize_phone(person.phone)
            if phone and phone.endswith(last4):
                for ownership in person.ownerships.all():
                    add(ownership.plot_id, 'phone_last4')

    if len(candidates) == 1:
        plot_id, reasons = next(iter(candidates.items()))
        method = next(iter(reasons)) if len(reasons) == 1 else 'mixed'
        return {
            'status': MatchStatus.MATCHED,
            'plot_id': plot_id,
            'candidates': [str(plot_id)],
            'method': method,
            'confidence': MATCH_CONFIDENCE[method],
        }

    if len(candidates) > 1:
        return {
            'status': MatchStatus.AMBIGUOUS,
            'plot_id': None,
            'candidates': [str(plot_id) for plot_id in candidates],
            'method': 'ambiguous',
            'confidence': AMBIGUOUS_CONFIDENCE,
        }

    return {
        'status': MatchStatus.UNMATCHED,
        'plot_id': None,
        'candidates': [],
        'method': '',
        'confidence': None,
    }


def payment_fingerprint(row: dict) -> str:
    """Stable hash of a statement row; the same row imported twice collides."""
    key = '|'.join([
        row['date'].isoformat(),
        str(row['amount']),
        row['payer_name'].strip().lower(),
        row['purpose'].strip().lower(),
        row['bank_ref'].strip(),
    ])
    return hashlib.sha256(key.encode('utf-8')).hexdigest()


# =============================================================================
# Import
# =============================================================================

@transaction.atomic
def import_statement(
    *,
    content: bytes,
    file_name: str,
    user: User,
    request_id: str = ''
) -> StatementImport:
    """
    Import a bank statement as payments.

    Outgoing rows are skipped; rows already imported (same fingerprint) are
    counted as duplicates.

    Returns:
        StatementImport with totals: total, imported, matched, ambiguous,
        unmatched, duplicates, skipped_out, errors

    Raises:
        StatementParseError: If the file cannot be parsed at all
    """
    rows, errors = parse_statement(content, file_name)

    totals = {
        'total': len(rows) + len(errors),
        'imported': 0,
        'matched': 0,
        'ambiguous': 0,
        'unmatched': 0,
        'duplicates': 0,
        'skipped_out': 0,
        'errors': len(errors),
    }
    statement = StatementImport.objects.create(file_name=file_name, uploaded_by=user, errors=errors)

    seen = set()
    for row in rows:
        if row['direction'] == 'out':
            totals['skipped_out'] += 1
            continue

        fingerprint = payment_fingerprint(row)
        if fingerprint in seen or Payment.objects.filter(fingerprint=fingerprint).exists():
            totals['duplicates'] += 1
            continue
        seen.add(fingerprint)

        match = match_payment_to_plot(purpose=row['purpose'], payer_name=row['payer_name'])
        Payment.objects.create(
            plot_id=match['plot_id'],
            amount=row['amount'],
            paid_at=row['date'],
            payer_name=row['payer_name'][:255],
            purpose=row['purpose'],
            external_ref=row['bank_ref'][:100],
            source=PaymentSource.IMPORT,
            match_status=match['status'],
            match_method=match['method'],
            match_confidence=match['confidence'],
            match_candidates=match['candidates'],
            fingerprint=fingerprint,
            statement_import=statement,
            created_by=user,
        )
        totals['imported'] += 1
        totals[match['status'].value] += 1

    statement.totals = totals
    statement.save(update_fields=['totals'])

    log_audit_event(
        actor=user,
        action=AuditAction.IMPORT_PAYMENTS,
        target_type='statement_import',
        target_id=statement.id,
        details={'file_name': file_name, **totals},
        request_id=request_id,
    )
    logger.info(
        "Statement %s imported: %d of %d rows, %d matched",
        file_name, totals['imported'], totals['total'], totals['matched'],
    )
    return statement
