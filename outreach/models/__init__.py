"""
Data Models
Dataclasses for all entities. These are pure Python objects, no persistence logic.

Attributes are snake_case; to_dict()/from_dict() speak the camelCase keys of the
shared JSON document (vendorName, createdAt, followUpDate, ...) so the browser
client and this package read the same data. Keys a model does not know are kept
in `extra` and written back untouched.
"""

import re
from dataclasses import dataclass, field, fields
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Optional

# Contact outreach statuses
STATUS_NOT_STARTED = 'Not Started'
STATUS_IN_PROGRESS = 'In Progress'
STATUS_RESPONDED = 'Responded'
STATUS_SIGNED_UP = 'Signed Up'
CONTACT_STATUSES = (STATUS_NOT_STARTED, STATUS_IN_PROGRESS, STATUS_RESPONDED, STATUS_SIGNED_UP)

# Tasks
TASK_OPEN = 'open'
TASK_COMPLETED = 'completed'
TASK_PRIORITIES = ('Low', 'Medium', 'High')
DEFAULT_TASK_PRIORITY = 'Medium'

# Projects
DEFAULT_PROJECT_STATUS = 'Active'

_MULTI_VALUE_SPLIT = re.compile(r'[;,]')


def _camel(name: str) -> str:
    head, *rest = name.split('_')
    return head + ''.join(part.title() for part in rest)


class _Record:
    """Shared camelCase (de)serialisation for the record dataclasses."""

    extra: Dict[str, Any]

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        for f in fields(self):
            if f.name == 'extra':
                continue
            value = getattr(self, f.name)
            data[_camel(f.name)] = list(value) if isinstance(value, list) else value
        return data

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]):
        by_key = {_camel(f.name): f for f in fields(cls) if f.name != 'extra'}
        known: Dict[str, Any] = {}
        extra: Dict[str, Any] = {}
        for key, value in payload.items():
            f = by_key.get(key)
            if f is None:
                extra[key] = value
                continue
            if value is None and isinstance(f.default, str):
                value = f.default
            if f.name == 'tags' and not isinstance(value, list):
                value = []
            known[f.name] = value
        record = cls(**known)
        record.extra = extra
        return record


@dataclass
class Contact(_Record):
    """Prospect: an organisation and/or person targeted by outreach."""
    id: str = ''
    vendor_name: str = ''
    company_name: str = ''
    contact_name: str = ''
    title: str = ''
    email: str = ''
    phone: str = ''
    website: str = ''
    category: str = ''
    segment: str = ''
    status: str = STATUS_NOT_STARTED
    project: str = ''
    notes: str = ''
    internal_notes: str = ''
    tags: List[str] = field(default_factory=list)
    lead_source: str = ''
    created_at: Optional[str] = None
    last_contact: Optional[str] = None
    follow_up_date: Optional[str] = None
    next_steps: str = ''
    deal_stage: str = ''
    deal_value: Any = None
    decision_maker: bool = False
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def display_name(self) -> str:
        """Organisation display name: vendorName, else companyName."""
        return (self.vendor_name or self.company_name or '').strip()

    @property
    def primary_email(self) -> str:
        return primary_value(self.email)

    @property
    def primary_phone(self) -> str:
        return primary_value(self.phone)


@dataclass
class Activity(_Record):
    """Logged outreach touch. Never mutated after creation."""
    id: str = ''
    contact_id: str = ''
    type: str = ''
    notes: str = ''
    date: Optional[str] = None
    follow_up_date: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Task(_Record):
    id: str = ''
    contact_id: Optional[str] = None
    title: str = ''
    notes: str = ''
    priority: str = DEFAULT_TASK_PRIORITY
    status: str = TASK_OPEN
    due_date: Optional[str] = None
    created_at: Optional[str] = None
    completed_at: Optional[str] = None
    project: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Project(_Record):
    id: str = ''
    name: str = ''
    status: str = ''
    owner: str = ''
    start_date: str = ''
    end_date: str = ''
    description: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Tag(_Record):
    id: str = ''
    name: str = ''
    color: str = ''
    extra: Dict[str, Any] = field(default_factory=dict)


@dataclass
class Script(_Record):
    """Reusable outreach template (email, phone call, ...)."""
    id: str = ''
    title: str = ''
    type: str = ''
    subject: str = ''
    content: str = ''
    created_at: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)


# =============================================================================
# FIELD HELPERS
# =============================================================================

def primary_value(text: Optional[str]) -> str:
    """First segment of a ';' or ','-separated multi-value field, trimmed."""
    if not text:
        return ''
    return _MULTI_VALUE_SPLIT.split(str(text), maxsplit=1)[0].strip()


def parse_timestamp(value: Any) -> float:
    """
    Epoch seconds for a stored timestamp. Missing or unparseable values are 0.0
    so they order as the oldest possible moment. Naive values are taken as UTC.
    """
    if not value:
        return 0.0

    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        dt = _parse_iso(value.strip())
        if dt is None:
            return 0.0
    else:
        return 0.0

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.timestamp()


def _parse_iso(text: str) -> Optional[datetime]:
    if text.endswith('Z'):
        text = text[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(text)
    except ValueError:
        pass
    for fmt in ('%Y', '%Y-%m'):
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return None
