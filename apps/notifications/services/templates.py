"""
Message templates for notification drafts.

Placeholders use ``{name}`` syntax: {name} {plot} {period} {debt} {penalty}
{payLink} {receiptLink}. Unknown placeholders are left in the text as is.
"""

import re
from decimal import Decimal
from typing import List, Optional

from django.conf import settings

from .exceptions import UnknownTemplateError

PLACEHOLDER_RE = re.compile(r'\{(\w+)\}')

_SIGNATURE = "С уважением,\nПравление СНТ"

TEMPLATES = {
    'debt_notice': {
        'id': 'debt_notice',
        'name': 'Уведомление о задолженности',
        'description': 'Стандартное уведомление о наличии задолженности',
        'subject': 'Уведомление о задолженности',
        'body': (
            "Уважаемый(ая) {name},\n\n"
            "Сообщаем Вам о наличии задолженности по взносам в СНТ.\n\n"
            "Участок: {plot}\n"
            "Период: {period}\n"
            "Сумма задолженности: {debt} руб.\n\n"
            "Просим Вас погасить задолженность в ближайшее время.\n\n"
            "Реквизиты для оплаты: {payLink}\n\n" + _SIGNATURE
        ),
        'placeholders': ['name', 'plot', 'period', 'debt', 'payLink'],
    },
    'penalty_added': {
        'id': 'penalty_added',
        'name': 'Начисление пени',
        'description': 'Уведомление о начислении пени за просрочку',
        'subject': 'Начислена пеня за просрочку',
        'body': (
            "Уважаемый(ая) {name},\n\n"
            "Сообщаем Вам о начислении пени за просрочку оплаты взносов.\n\n"
            "Участок: {plot}\n"
            "Период: {period}\n"
            "Основной долг: {debt} руб.\n"
            "Начислено пени: {penalty} руб.\n\n"
            "Просим погасить задолженность во избежание дальнейшего начисления пени.\n\n"
            "Реквизиты для оплаты: {payLink}\n\n" + _SIGNATURE
        ),
        'placeholders': ['name', 'plot', 'period', 'debt', 'penalty', 'payLink'],
    },
    'receipt_ready': {
        'id': 'receipt_ready',
        'name': 'Квитанция готова',
        'description': 'Уведомление о готовности квитанции на оплату',
        'subject': 'Квитанция на оплату готова',
        'body': (
            "Уважаемый(ая) {name},\n\n"
            "Квитанция на оплату за {period} готова.\n\n"
            "Участок: {plot}\n"
            "Сумма к оплате: {debt} руб.\n\n"
            "Скачать квитанцию: {receiptLink}\n\n" + _SIGNATURE
        ),
        'placeholders': ['name', 'plot', 'period', 'debt', 'receiptLink'],
    },
    'appeal_updated': {
        'id': 'appeal_updated',
        'name': 'Обновление по обращению',
        'description': 'Уведомление об изменении статуса обращения',
        'subject': 'Статус вашего обращения изменён',
        'body': (
            "Уважаемый(ая) {name},\n\n"
            "По Вашему обращению есть обновление.\n\n"
            "Участок: {plot}\n\n"
            "Пожалуйста, проверьте статус в личном кабинете.\n\n" + _SIGNATURE
        ),
        'placeholders': ['name', 'plot'],
    },
}


def list_templates() -> List[dict]:
    return list(TEMPLATES.values())


def get_template(template_id: str) -> Optional[dict]:
    return TEMPLATES.get(template_id)


def format_amount(value) -> str:
    """``1234.5`` -> ``1234.50``; other values pass through ``str``."""
    if isinstance(value, (Decimal, int, float)):
        return f"{Decimal(value):.2f}"
    return str(value)


def render_text(text: str, values: dict) -> str:
    def substitute(match):
        key = match.group(1)
        if key not in values or values[key] is None:
            return match.group(0)
        return format_amount(values[key])

    return PLACEHOLDER_RE.sub(substitute, text)


def default_placeholder_values() -> dict:
    return {
        'payLink': settings.SNT_PAY_LINK,
        'receiptLink': settings.SNT_RECEIPT_LINK,
    }


def render_template(template_id: str, values: dict) -> dict:
    """
    Render subject and body of a template.

    Links default to the configured pay and receipt URLs; explicit values
    win.

    Raises:
        UnknownTemplateError: No template with this id
    """
    template = get_template(template_id)
    if template is None:
        raise UnknownTemplateError(f"Неизвестный шаблон: {template_id}")

    merged = {**default_placeholder_values(), **values}
    return {
        'subject': render_text(template['subject'], merged),
        'body': render_text(template['body'], merged),
    }
