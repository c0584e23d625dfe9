"""
Export - CSV and JSON output of contacts and activities.
"""

import csv
import io
import json
import logging
from typing import Any, Iterable, List

from outreach.models import Activity, Contact

logger = logging.getLogger(__name__)

CONTACT_EXPORT_COLUMNS = (
    'id', 'vendorName', 'companyName', 'contactName', 'title', 'email', 'phone', 'website',
    'category', 'segment', 'status', 'companySize', 'annualRevenue',
    'linkedin', 'twitter', 'facebook', 'instagram',
    'address', 'city', 'state', 'zipCode',
    'dealStage', 'dealValue', 'dealProbability', 'expectedCloseDate',
    'decisionMaker', 'authority', 'budget',
    'notes', 'internalNotes', 'nextSteps', 'followUpDate', 'leadSource',
    'createdAt', 'lastContact', 'tags',
)
ACTIVITY_EXPORT_COLUMNS = ('id', 'contactId', 'type', 'notes', 'date', 'followUpDate')

TAG_JOINER = '|'


def cell_value(value: Any) -> str:
    """Flatten one field for CSV: booleans as true/false, tag lists joined with '|'."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (list, tuple)):
        return TAG_JOINER.join(str(v) for v in value)
    return str(value)


def _rows_to_csv(columns, records: Iterable[dict]) -> str:
    """Header plus one line per record, without a trailing newline."""
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=list(columns), extrasaction='ignore', lineterminator='\n')
    writer.writeheader()
    for record in records:
        writer.writerow({column: cell_value(record.get(column)) for column in columns})
    return buffer.getvalue()[:-1]


def contacts_to_csv(contacts: Iterable[Contact]) -> str:
    contacts = list(contacts)
    logger.info(f"contacts_to_csv: exporting {len(contacts)} contact(s)")
    return _rows_to_csv(CONTACT_EXPORT_COLUMNS, (c.to_dict() for c in contacts))


def contacts_to_json(contacts: Iterable[Contact]) -> str:
    return json.dumps([c.to_dict() for c in contacts], indent=2, ensure_ascii=False)


def activities_to_csv(store, contacts: Iterable[Contact]) -> str:
    """Activities belonging to `contacts` only (e.g. the currently filtered set)."""
    wanted = {c.id for c in contacts}
    activities: List[Activity] = [a for a in store.activities if a.contact_id in wanted]
    logger.info(f"activities_to_csv: exporting {len(activities)} activity record(s)")
    return _rows_to_csv(ACTIVITY_EXPORT_COLUMNS, (a.to_dict() for a in activities))
