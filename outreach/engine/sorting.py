"""
Sort Engine
Explicit single-column ordering, or the default composite order when no
column is selected:

    1. organisation name (vendorName or companyName), trimmed, lower-cased;
       blank names always last
    2. createdAt ascending (older first)
    3. contactName lower-cased ascending

Sorting is stable: contacts with equal keys keep their input order. A
descending column sort is the exact reverse of the ascending one, so tied
contacts come out in reverse input order.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional

from outreach.models import Contact, parse_timestamp

logger = logging.getLogger(__name__)

ASCENDING = 'asc'
DESCENDING = 'desc'


def _text(attr: str) -> Callable[[Contact], str]:
    return lambda c: (getattr(c, attr) or '').strip().lower()


def _elapsed(attr: str) -> Callable[[Contact], float]:
    return lambda c: parse_timestamp(getattr(c, attr))


# Column name (as shown in the contacts table) -> sort key
SORT_COLUMNS: Dict[str, Callable[[Contact], Any]] = {
    'vendor': lambda c: c.display_name.lower(),
    'contact': _text('contact_name'),
    'title': _text('title'),
    'email': _text('email'),
    'phone': _text('phone'),
    'category': _text('category'),
    'segment': _text('segment'),
    'status': _text('status'),
    'project': _text('project'),
    'lastContact': _elapsed('last_contact'),
    'createdAt': _elapsed('created_at'),
    'followUpDate': _elapsed('follow_up_date'),
}


@dataclass
class SortState:
    """Current explicit sort. `column=None` means the default composite order."""
    column: Optional[str] = None
    direction: str = ASCENDING

    @property
    def active(self) -> bool:
        return self.column is not None

    def click(self, column: str) -> "SortState":
        """Same column flips the direction; a new column starts ascending."""
        if column == self.column:
            self.direction = DESCENDING if self.direction == ASCENDING else ASCENDING
        else:
            self.column = column
            self.direction = ASCENDING
        return self


def default_sort_key(contact: Contact):
    name = contact.display_name.lower()
    return (
        0 if name else 1,
        name,
        parse_timestamp(contact.created_at),
        (contact.contact_name or '').lower(),
    )


def sort_contacts(contacts: Iterable[Contact], state: Optional[SortState] = None) -> List[Contact]:
    """Ordered copy of `contacts`. Unknown columns fall back to the default order."""
    contacts = list(contacts)

    if state is None or not state.active:
        return sorted(contacts, key=default_sort_key)

    key = SORT_COLUMNS.get(state.column)
    if key is None:
        logger.warning(f"sort_contacts: unknown column '{state.column}', using default order")
        return sorted(contacts, key=default_sort_key)

    ordered = sorted(contacts, key=key)
    if state.direction == DESCENDING:
        ordered.reverse()
    return ordered
