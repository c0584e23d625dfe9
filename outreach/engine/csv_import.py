"""
CSV Import - Parser, Header Classifier, Contact Normalizer
Turns pasted or uploaded CSV text into not-yet-committed Contact candidates.

Pipeline:
    text -> split_csv_lines -> parse_csv_line (per line)
         -> classify_header (per column)
         -> RowAccumulator -> build_contact (per row)
         -> is_admissible -> DedupTracker.admit
         -> ImportPreview.candidates

Nothing here touches the store: the preview is handed back to the caller, who
commits it with crm.confirm_import() or drops it to cancel.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, List, Optional, Tuple

from outreach.config import config
from outreach.engine.common import new_id, now_iso
from outreach.engine.dedup import DedupTracker
from outreach.logging_config import log_call
from outreach.models import STATUS_NOT_STARTED, Contact, primary_value

logger = logging.getLogger(__name__)


class CSVImportError(ValueError):
    """The CSV text cannot be imported at all (no header or no data rows)."""


# =============================================================================
# CSV PARSER
# =============================================================================

_LINE_BREAK = re.compile(r'\r?\n')


def split_csv_lines(text: str) -> List[str]:
    """Split on \\r\\n or \\n and drop blank lines. Quoted newlines are not supported."""
    return [line for line in _LINE_BREAK.split(text or '') if line.strip()]


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into fields.

    A double quote toggles quoted mode and is not copied into the field; commas
    separate fields only outside quotes. A line without commas is one field.
    """
    values = []
    current = []
    in_quotes = False

    for char in line:
        if char == '"':
            in_quotes = not in_quotes
        elif char == ',' and not in_quotes:
            values.append(''.join(current))
            current = []
        else:
            current.append(char)
    values.append(''.join(current))

    return values


# =============================================================================
# HEADER CLASSIFIER
# =============================================================================

class HeaderRole(str, Enum):
    COMPANY_NAME = 'company_name'
    CONTACT_NAME = 'contact_name'
    EMAIL = 'email'
    PHONE = 'phone'
    WEBSITE = 'website'
    CATEGORY = 'category'
    SEGMENT = 'segment'
    STATUS = 'status'
    PROJECT = 'project'
    NOTE = 'note'


@dataclass(frozen=True)
class HeaderRule:
    """
    A header matches when its lower-cased, trimmed text contains any of
    `keywords`, OR contains every word of `all_of`, OR equals one of `exact`.
    """
    role: HeaderRole
    keywords: Tuple[str, ...] = ()
    all_of: Tuple[str, ...] = ()
    exact: Tuple[str, ...] = ()

    def matches(self, lower: str) -> bool:
        if any(keyword in lower for keyword in self.keywords):
            return True
        if self.all_of and all(word in lower for word in self.all_of):
            return True
        return lower in self.exact


# Evaluated top to bottom; first match wins. Unmatched headers become notes.
HEADER_RULES: Tuple[HeaderRule, ...] = (
    HeaderRule(HeaderRole.COMPANY_NAME, keywords=(
        'vendor', 'business', 'organization', 'organisation', 'org', 'company', 'account', 'brand',
    )),
    HeaderRule(HeaderRole.CONTACT_NAME, keywords=('full name',), all_of=('contact', 'name'), exact=('name',)),
    HeaderRule(HeaderRole.EMAIL, keywords=('email', 'e-mail')),
    HeaderRule(HeaderRole.PHONE, keywords=('phone', 'tel', 'telephone', 'mobile', 'cell')),
    HeaderRule(HeaderRole.WEBSITE, keywords=('website', 'domain', 'url', 'site', 'homepage')),
    HeaderRule(HeaderRole.CATEGORY, keywords=('category', 'industry', 'vertical')),
    HeaderRule(HeaderRole.SEGMENT, keywords=('segment', 'region', 'market', 'territory')),
    HeaderRule(HeaderRole.STATUS, keywords=('status', 'stage', 'pipeline')),
    HeaderRule(HeaderRole.PROJECT, keywords=('project', 'campaign', 'outreach_project')),
    HeaderRule(HeaderRole.NOTE, keywords=('notes', 'note', 'comment', 'comments', 'description')),
)


@dataclass(frozen=True)
class ClassifiedHeader:
    role: HeaderRole
    raw: str
    label: str
    lower: str


def classify_header(header: str) -> ClassifiedHeader:
    """Map a raw column header to exactly one role. Total: never fails, never drops."""
    raw = header if header is not None else ''
    label = raw.strip()
    lower = label.lower()
    for rule in HEADER_RULES:
        if rule.matches(lower):
            return ClassifiedHeader(rule.role, raw, label, lower)
    return ClassifiedHeader(HeaderRole.NOTE, raw, label, lower)


# =============================================================================
# CONTACT NORMALIZER
# =============================================================================

_FIRST_VALUE_WINS = {
    HeaderRole.COMPANY_NAME: 'vendor_name',
    HeaderRole.CONTACT_NAME: 'contact_name',
    HeaderRole.EMAIL: 'email',
    HeaderRole.WEBSITE: 'website',
}
_LAST_VALUE_WINS = {
    HeaderRole.CATEGORY: 'category',
    HeaderRole.SEGMENT: 'segment',
    HeaderRole.STATUS: 'status',
    HeaderRole.PROJECT: 'project',
}
PHONE_JOINER = ' / '

_HAS_SCHEME = re.compile(r'^[a-z][a-z0-9+.\-]*://', re.IGNORECASE)


@dataclass
class RowAccumulator:
    """Field values collected from one CSV row, column by column."""
    vendor_name: str = ''
    contact_name: str = ''
    email: str = ''
    website: str = ''
    phone: str = ''
    category: str = ''
    segment: str = ''
    status: str = ''
    project: str = ''
    note_lines: List[str] = field(default_factory=list)

    def add(self, header: ClassifiedHeader, value: Optional[str]) -> None:
        value = (value or '').strip()
        if not value:
            return

        role = header.role
        if role in _FIRST_VALUE_WINS:
            attr = _FIRST_VALUE_WINS[role]
            if not getattr(self, attr):
                setattr(self, attr, value)
        elif role in _LAST_VALUE_WINS:
            setattr(self, _LAST_VALUE_WINS[role], value)
        elif role is HeaderRole.PHONE:
            self._add_phone(value)
        else:
            self.note_lines.append(f"{header.label}: {value}")

    def _add_phone(self, value: str) -> None:
        if not self.phone:
            self.phone = value
        elif value not in self.phone.split(PHONE_JOINER):
            self.phone = f"{self.phone}{PHONE_JOINER}{value}"


def email_local_part(email: Optional[str]) -> str:
    """Text before '@' of the primary address."""
    return primary_value(email).split('@', 1)[0].strip()


def resolve_vendor_name(
    vendor_name: Optional[str] = '',
    company_name: Optional[str] = '',
    contact_name: Optional[str] = '',
    email: Optional[str] = '',
    phone: Optional[str] = '',
) -> str:
    """
    Organisation name fallback, in order:
    vendorName -> companyName -> contactName -> email local part -> phone -> ''.
    """
    candidates = (
        vendor_name,
        company_name,
        contact_name,
        email_local_part(email),
        primary_value(phone),
    )
    for candidate in candidates:
        cleaned = (candidate or '').strip()
        if cleaned:
            return cleaned
    return ''


def normalize_website(url: Optional[str]) -> str:
    """Prefix scheme-less URLs with https:// after stripping leading slashes."""
    cleaned = (url or '').strip()
    if not cleaned or _HAS_SCHEME.match(cleaned):
        return cleaned
    return 'https://' + cleaned.lstrip('/')


def append_notes(existing: Optional[str], lines: Iterable[str]) -> str:
    block = '\n'.join(lines)
    if not block:
        return existing or ''
    if not existing:
        return block
    return f"{existing}\n{block}"


def build_contact(row: RowAccumulator, lead_source: str = '', notes: str = '') -> Contact:
    """Canonical Contact from one accumulated row (not yet checked for admission)."""
    vendor_name = resolve_vendor_name(
        vendor_name=row.vendor_name,
        contact_name=row.contact_name,
        email=row.email,
        phone=row.phone,
    )
    return Contact(
        id=new_id(),
        vendor_name=vendor_name,
        company_name=vendor_name,
        contact_name=row.contact_name,
        email=row.email,
        phone=row.phone,
        website=normalize_website(row.website),
        category=row.category,
        segment=row.segment,
        status=row.status or STATUS_NOT_STARTED,
        project=row.project,
        notes=append_notes(notes, row.note_lines),
        tags=[],
        lead_source=lead_source,
        created_at=now_iso(),
        last_contact=None,
        follow_up_date=None,
    )


def is_admissible(contact: Contact) -> bool:
    """A contact needs at least one identifying field to enter the store."""
    return any(
        (value or '').strip()
        for value in (contact.vendor_name, contact.company_name, contact.contact_name,
                      contact.email, contact.phone)
    )


# =============================================================================
# IMPORT PIPELINE
# =============================================================================

@dataclass
class ImportPreview:
    """Candidates awaiting confirmation, plus what was skipped and why."""
    headers: List[ClassifiedHeader]
    candidates: List[Contact] = field(default_factory=list)
    total_rows: int = 0
    skipped_unusable: int = 0
    skipped_duplicates: int = 0

    @property
    def accepted_count(self) -> int:
        return len(self.candidates)

    @property
    def is_empty(self) -> bool:
        return not self.candidates


@log_call
def prepare_import(text: str, store, lead_source: Optional[str] = None) -> ImportPreview:
    """
    Parse CSV text into an ImportPreview against the contacts already in `store`.
    The store is only read. Raises CSVImportError when there is no header row
    plus at least one data row.
    """
    lines = split_csv_lines(text)
    if len(lines) < 2:
        raise CSVImportError("CSV must contain a header row and at least one data row")

    source = config.DEFAULT_LEAD_SOURCE if lead_source is None else lead_source
    raw_headers = parse_csv_line(lines[0])
    headers = [
        classify_header(header if header.strip() else f"Column {position}")
        for position, header in enumerate(raw_headers, start=1)
    ]
    logger.debug("prepare_import: header roles " + ", ".join(f"{h.label}={h.role.value}" for h in headers))

    preview = ImportPreview(headers=headers)
    tracker = DedupTracker(store.contacts)

    for line in lines[1:]:
        preview.total_rows += 1
        values = parse_csv_line(line)
        row = RowAccumulator()
        for index, header in enumerate(headers):
            row.add(header, values[index] if index < len(values) else '')

        candidate = build_contact(row, lead_source=source)
        if not is_admissible(candidate):
            preview.skipped_unusable += 1
            logger.debug(f"prepare_import: row {preview.total_rows} has no identifying field, skipped")
            continue
        if not tracker.admit(candidate):
            preview.skipped_duplicates += 1
            continue
        preview.candidates.append(candidate)

    logger.info(
        f"prepare_import: {preview.accepted_count} candidate(s) from {preview.total_rows} row(s); "
        f"{preview.skipped_unusable} unusable, {preview.skipped_duplicates} duplicate"
    )
    return preview
