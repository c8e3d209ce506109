"""Registry data-quality checks and duplicate detection using fuzzy matching."""

from collections import defaultdict
from typing import List, Tuple
import re

from fuzzywuzzy import fuzz

from apps.registry.models import Person


# Thresholds for fuzzy matching
EXACT_MATCH_THRESHOLD = 100
HIGH_SIMILARITY_THRESHOLD = 90
MEDIUM_SIMILARITY_THRESHOLD = 80

ISSUE_SEVERITY = {
    'empty_fullname': 'high',
    'empty_phone': 'high',
    'empty_plots': 'medium',
    'duplicate_phone': 'medium',
    'name_conflict': 'low',
}


def normalize_text(text: str) -> str:
    """
    Normalize a name for comparison.

    Args:
        text: Text to normalize

    Returns:
        Normalized lowercase text, ё folded into е
    """
    text = (text or '').lower().strip().replace('ё', 'е')
    text = re.sub(r'\s+', ' ', text)
    text = re.sub(r'[^\w\s-]', '', text)
    return text


def name_similarity(first: str, second: str) -> int:
    """Token-order-insensitive similarity of two names, 0-100."""
    # force_ascii would strip Cyrillic and score every pair 0
    return fuzz.token_sort_ratio(normalize_text(first), normalize_text(second), force_ascii=False)


def normalize_phone(phone: str) -> str:
    """Keep the last ten digits so +7, 8 and bare numbers compare equal."""
    digits = re.sub(r'\D', '', phone or '')
    return digits[-10:] if len(digits) >= 10 else digits


def find_potential_duplicates(
    *,
    full_name: str = '',
    phone: str = '',
    threshold: int = MEDIUM_SIMILARITY_THRESHOLD,
    exclude_id=None
) -> List[Tuple[Person, int, str]]:
    """
    Find registry persons that probably describe the same owner.

    Args:
        full_name: Name to check
        phone: Phone to check
        threshold: Minimum name similarity score (0-100)
        exclude_id: Person to leave out (the card being edited)

    Returns:
        List of (person, similarity_score, match_type) tuples
        match_type: 'phone', 'fuzzy_name'
    """
    candidates = {}
    persons = Person.objects.filter(is_active=True)
    if exclude_id:
        persons = persons.exclude(id=exclude_id)

    phone_norm = normalize_phone(phone)
    name_norm = normalize_text(full_name)

    for person in persons:
        if phone_norm and normalize_phone(person.phone) == phone_norm:
            candidates[person.id] = (person, EXACT_MATCH_THRESHOLD, 'phone')
            continue

        if not name_norm or not person.full_name:
            continue

        similarity = name_similarity(name_norm, person.full_name)
        if similarity >= threshold:
            candidates[person.id] = (person, similarity, 'fuzzy_name')

    results = sorted(candidates.values(), key=lambda x: x[1], reverse=True)
    return results[:10]


def detect_issues() -> dict:
    """
    Scan the registry for incomplete or conflicting person cards.

    Returns:
        {
            'issues': [{'type', 'person', 'severity', 'description', 'related_person_ids'}],
            'summary': {'total', 'by_type', 'by_severity'}
        }
    """
    persons = list(
        Person.objects
        .filter(is_active=True)
        .prefetch_related('ownerships')
        .order_by('created_at')
    )
    issues = []

    by_phone = defaultdict(list)
    for person in persons:
        normalized = normalize_phone(person.phone)
        if normalized:
            by_phone[normalized].append(person)

    for person in persons:
        if not person.full_name.strip():
            issues.append(_issue('empty_fullname', person, 'Отсутствует ФИО'))

        if not person.phone.strip():
            issues.append(_issue('empty_phone', person, 'Отсутствует телефон'))

        if not person.ownerships.all():
            issues.append(_issue('empty_plots', person, 'Нет привязанных участков'))

        same_phone = by_phone.get(normalize_phone(person.phone), [])
        # Reported once, on the first card of the group
        if len(same_phone) > 1 and same_phone[0].id == person.id:
            issues.append(_issue(
                'duplicate_phone',
                person,
                f'Дубликат телефона ({len(same_phone)} человек)',
                related=[p.id for p in same_phone[1:]],
            ))

    # Name conflicts: distinct cards with nearly identical names
    checked = set()
    named = [p for p in persons if p.full_name.strip()]
    for i, first in enumerate(named):
        for second in named[i + 1:]:
            pair_key = tuple(sorted([str(first.id), str(second.id)]))
            if pair_key in checked:
                continue
            checked.add(pair_key)

            similarity = name_similarity(first.full_name, second.full_name)
            if similarity >= HIGH_SIMILARITY_THRESHOLD:
                issues.append(_issue(
                    'name_conflict',
                    first,
                    f'Похожее ФИО: {second.full_name} ({similarity}%)',
                    related=[second.id],
                ))

    by_type = {issue_type: 0 for issue_type in ISSUE_SEVERITY}
    by_severity = {'low': 0, 'medium': 0, 'high': 0}
    for issue in issues:
        by_type[issue['type']] += 1
        by_severity[issue['severity']] += 1

    return {
        'issues': issues,
        'summary': {
            'total': len(issues),
            'by_type': by_type,
            'by_severity': by_severity,
        },
    }


def _issue(issue_type, person, description, related=None):
    return {
        'type': issue_type,
        'person': person,
        'severity': ISSUE_SEVERITY[issue_type],
        'description': description,
        'related_person_ids': related or [],
    }
