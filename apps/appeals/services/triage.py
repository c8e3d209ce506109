"""
Keyword triage of new appeals.

Triage decides the category, the board role that owns the appeal and its
priority. Appeals without enough data to act on go to the secretary as
``insufficient_data`` regardless of their text.
"""

from apps.appeals.models import AppealCategory, AppealPriority, AssigneeRole

MIN_TITLE_LENGTH = 5
MIN_BODY_LENGTH = 10

# First match wins
CATEGORY_RULES = (
    {
        'category': AppealCategory.ELECTRICITY,
        'keywords': (
            'электричество', 'электроэнергия', 'счетчик', 'киловатт',
            'квт', 'kwh', 'тариф', 'начисление электро',
        ),
        'assigned_role': AssigneeRole.ACCOUNTANT,
        'priority': AppealPriority.MEDIUM,
    },
    {
        'category': AppealCategory.FINANCE,
        'keywords': (
            'взнос', 'оплата', 'платеж', 'начисление', 'долг', 'задолженность',
            'перерасчет', 'реквизиты', 'счет', 'квитанция', 'банк',
        ),
        'assigned_role': AssigneeRole.ACCOUNTANT,
        'priority': AppealPriority.MEDIUM,
    },
    {
        'category': AppealCategory.DOCUMENTS,
        'keywords': (
            'документ', 'копия', 'протокол', 'справка', 'выписка',
            'договор', 'соглашение', 'устав',
        ),
        'assigned_role': AssigneeRole.SECRETARY,
        'priority': AppealPriority.LOW,
    },
    {
        'category': AppealCategory.ACCESS,
        'keywords': (
            'доступ', 'код', 'пароль', 'вход', 'кабинет', 'логин',
            'регистрация', 'аккаунт',
        ),
        'assigned_role': AssigneeRole.SECRETARY,
        'priority': AppealPriority.HIGH,
    },
    {
        'category': AppealCategory.MEMBERSHIP,
        'keywords': ('членство', 'член снт', 'вступить', 'прием', 'исключение', 'выход'),
        'assigned_role': AssigneeRole.CHAIRMAN,
        'priority': AppealPriority.MEDIUM,
    },
    {
        'category': AppealCategory.INSUFFICIENT_DATA,
        'keywords': ('не знаю', 'не помню', 'не указано', 'нет данных', 'не указан', 'как узнать', 'где найти'),
        'assigned_role': AssigneeRole.SECRETARY,
        'priority': AppealPriority.LOW,
        'needs_info': True,
    },
)

DEFAULT_TRIAGE = {
    'category': AppealCategory.GENERAL,
    'assigned_role': AssigneeRole.SECRETARY,
    'priority': AppealPriority.MEDIUM,
    'needs_info': False,
}

INSUFFICIENT_TRIAGE = {
    'category': AppealCategory.INSUFFICIENT_DATA,
    'assigned_role': AssigneeRole.SECRETARY,
    'priority': AppealPriority.LOW,
    'needs_info': True,
}


def normalize_text(*parts) -> str:
    """Lowercase the parts, join them and fold "ё" into "е"."""
    return ' '.join(part or '' for part in parts).lower().replace('ё', 'е')


def has_enough_data(*, title='', body='', plot_number='', author_name='', author_phone='') -> bool:
    """True when the appeal can be worked on without asking the author again."""
    if not (author_phone or '').strip() and not (author_name or '').strip():
        return False
    if not (plot_number or '').strip():
        return False
    if len((title or '').strip()) < MIN_TITLE_LENGTH:
        return False
    return len((body or '').strip()) >= MIN_BODY_LENGTH


def categorize(*, title='', body='') -> dict:
    text = normalize_text(title, body)
    for rule in CATEGORY_RULES:
        if any(keyword in text for keyword in rule['keywords']):
            return {
                'category': rule['category'],
                'assigned_role': rule['assigned_role'],
                'priority': rule['priority'],
                'needs_info': rule.get('needs_info', False),
            }
    return dict(DEFAULT_TRIAGE)


def triage_appeal(*, title='', body='', plot_number='', author_name='', author_phone='') -> dict:
    """
    Decide category, assignee role and priority of an appeal.

    Returns:
        {'category', 'assigned_role', 'priority', 'needs_info'}
    """
    if not has_enough_data(
        title=title,
        body=body,
        plot_number=plot_number,
        author_name=author_name,
        author_phone=author_phone,
    ):
        return dict(INSUFFICIENT_TRIAGE)
    return categorize(title=title, body=body)
