"""
Filter Engine
Conjunctive filtering of the contact collection: free-text search, single-value
filters and multi-value (advanced) filters. Empty values mean "no filter".
Input order is preserved.
"""

import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from outreach.models import Contact

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ('vendor_name', 'contact_name', 'company_name', 'email', 'phone')


@dataclass
class AdvancedFilters:
    """Set-membership filters; a contact passes a non-empty list if its value is in it."""
    statuses: List[str] = field(default_factory=list)
    categories: List[str] = field(default_factory=list)
    segments: List[str] = field(default_factory=list)
    tag_ids: List[str] = field(default_factory=list)


@dataclass
class ContactFilter:
    search_text: str = ''
    status: str = ''
    category: str = ''
    segment: str = ''
    project: str = ''
    advanced: AdvancedFilters = field(default_factory=AdvancedFilters)


def matches_search(contact: Contact, search_text: str) -> bool:
    """Case-insensitive substring match on any of the searchable fields."""
    needle = search_text.lower()
    return any(needle in (getattr(contact, name) or '').lower() for name in SEARCH_FIELDS)


def _predicates(criteria: ContactFilter) -> List[Callable[[Contact], bool]]:
    checks: List[Callable[[Contact], bool]] = []

    search = (criteria.search_text or '').strip()
    if search:
        checks.append(lambda c: matches_search(c, search))

    for attr in ('status', 'category', 'segment', 'project'):
        wanted = getattr(criteria, attr)
        if wanted:
            checks.append(lambda c, attr=attr, wanted=wanted: getattr(c, attr) == wanted)

    adv = criteria.advanced or AdvancedFilters()
    for attr, allowed in (('status', adv.statuses), ('category', adv.categories), ('segment', adv.segments)):
        if allowed:
            allowed_set = set(allowed)
            checks.append(lambda c, attr=attr, allowed_set=allowed_set: getattr(c, attr) in allowed_set)

    if adv.tag_ids:
        wanted_tags = set(adv.tag_ids)
        checks.append(lambda c: bool(wanted_tags.intersection(c.tags or [])))

    return checks


def filter_contacts(contacts: Iterable[Contact], criteria: Optional[ContactFilter] = None) -> List[Contact]:
    """Contacts passing every active filter, in their original order."""
    contacts = list(contacts)
    if criteria is None:
        return contacts

    checks = _predicates(criteria)
    if not checks:
        return contacts

    result = [c for c in contacts if all(check(c) for check in checks)]
    logger.debug(f"filter_contacts: {len(result)}/{len(contacts)} contacts pass {len(checks)} filter(s)")
    return result
