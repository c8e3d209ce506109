"""
CSV exports for spreadsheets.

Files are UTF-8 with a BOM and use ``;`` as the separator with a decimal
comma, which is what a Russian-locale Excel opens without an import
wizard.
"""

import csv
import io
from datetime import date
from typing import Iterable, Optional

from django.db.models import Prefetch

from apps.billing.models import AccrualCategory, AccrualStatus
from apps.billing.services import list_debtors, list_accruals, list_payments
from apps.registry.models import Plot, PlotOwnership

BOM = '\ufeff'
DELIMITER = ';'


def format_money(value) -> str:
    return f"{value:.2f}".replace('.', ',')


def write_csv(header: Iterable[str], rows: Iterable[Iterable]) -> str:
    buffer = io.StringIO()
    buffer.write(BOM)
    writer = csv.writer(buffer, delimiter=DELIMITER, lineterminator='\r\n')
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def export_debtors(*, period: Optional[str] = None) -> str:
    rows = (
        (row['plot_label'], row['owner_name'], format_money(row['accrued']),
         format_money(row['paid']), format_money(row['debt']))
        for row in list_debtors(period=period)
    )
    return write_csv(['Участок', 'Владелец', 'Начислено', 'Оплачено', 'Долг'], rows)


def export_accruals(*, period: Optional[str] = None, category: Optional[str] = None) -> str:
    rows = (
        (
            accrual.period,
            accrual.plot.label,
            AccrualCategory(accrual.category).label,
            format_money(accrual.amount),
            format_money(accrual.paid_amount),
            AccrualStatus(accrual.status).label,
        )
        for accrual in list_accruals(period=period, category=category).order_by('period', 'plot__street', 'plot__number')
    )
    return write_csv(['Период', 'Участок', 'Вид', 'Сумма', 'Оплачено', 'Статус'], rows)


def export_payments(*, date_from: Optional[date] = None, date_to: Optional[date] = None) -> str:
    rows = (
        (
            payment.paid_at.isoformat(),
            format_money(payment.amount),
            payment.payer_name,
            payment.purpose,
            payment.plot.label if payment.plot else '',
            payment.get_match_status_display(),
            format_money(payment.allocated_total),
        )
        for payment in list_payments(date_from=date_from, date_to=date_to).order_by('paid_at', 'created_at')
    )
    return write_csv(
        ['Дата', 'Сумма', 'Плательщик', 'Назначение', 'Участок', 'Сопоставление', 'Разнесено'],
        rows,
    )


def export_registry() -> str:
    """One row per owner; plots without owners get a single row with blank contacts."""
    plots = (
        Plot.objects
        .filter(is_active=True)
        .prefetch_related(Prefetch(
            'ownerships',
            queryset=PlotOwnership.objects.select_related('person').filter(person__is_active=True),
        ))
        .order_by('street', 'number')
    )

    rows = []
    for plot in plots:
        ownerships = list(plot.ownerships.all())
        if not ownerships:
            rows.append((plot.street, plot.number, '', '', '', ''))
            continue
        for ownership in ownerships:
            person = ownership.person
            rows.append((
                plot.street,
                plot.number,
                person.full_name,
                person.phone,
                person.email,
                'да' if ownership.is_primary else '',
            ))
    return write_csv(['Линия', 'Участок', 'ФИО', 'Телефон', 'Email', 'Основной'], rows)
