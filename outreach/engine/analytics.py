"""
Analytics - Dashboard Numbers
Read-only summaries over the RecordStore: pipeline by status, category mix,
and the follow-up queue.
"""

import logging
import time
from collections import Counter
from typing import Any, Dict, List, Optional

from outreach.config import config
from outreach.models import (
    CONTACT_STATUSES,
    STATUS_NOT_STARTED,
    STATUS_RESPONDED,
    STATUS_SIGNED_UP,
    Contact,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

OTHER_CATEGORY = 'Other'
_DAY_SECONDS = 24 * 60 * 60


def _percent(count: int, total: int) -> float:
    return round(count * 100.0 / total, 1) if total else 0.0


def status_breakdown(store) -> List[Dict[str, Any]]:
    """
    One row per known status (in pipeline order), then any other status
    values found in the data: [{'status', 'count', 'percent'}, ...]
    """
    counts = Counter(c.status or STATUS_NOT_STARTED for c in store.contacts)
    total = len(store.contacts)
    ordered = list(CONTACT_STATUSES) + sorted((s for s in counts if s not in CONTACT_STATUSES), key=str)
    return [
        {'status': status, 'count': counts.get(status, 0), 'percent': _percent(counts.get(status, 0), total)}
        for status in ordered
    ]


def category_distribution(store) -> List[Dict[str, Any]]:
    """Contacts per category, blank categories counted as 'Other', largest first."""
    counts = Counter((c.category or '').strip() or OTHER_CATEGORY for c in store.contacts)
    rows = sorted(counts.items(), key=lambda item: (-item[1], item[0].lower()))
    return [{'category': name, 'count': count} for name, count in rows]


def follow_up_queue(store, days: Optional[int] = None, now: Optional[float] = None) -> List[Contact]:
    """
    Contacts whose followUpDate falls before now + `days` (overdue included),
    soonest first.
    """
    days = config.FOLLOW_UP_WINDOW_DAYS if days is None else days
    now = time.time() if now is None else now
    horizon = now + days * _DAY_SECONDS

    due = [
        c for c in store.contacts
        if c.follow_up_date and 0.0 < parse_timestamp(c.follow_up_date) <= horizon
    ]
    due.sort(key=lambda c: parse_timestamp(c.follow_up_date))
    logger.debug(f"follow_up_queue: {len(due)} contact(s) due within {days} day(s)")
    return due


def summary_stats(store) -> Dict[str, Any]:
    contacts = store.contacts
    responded = sum(1 for c in contacts if c.status in (STATUS_RESPONDED, STATUS_SIGNED_UP))
    signed = sum(1 for c in contacts if c.status == STATUS_SIGNED_UP)
    return {
        'total_contacts': len(contacts),
        'responded': responded,
        'signed_up': signed,
        'response_rate': _percent(responded, len(contacts)),
        'conversion_rate': _percent(signed, len(contacts)),
        'activities': len(store.activities),
        'open_tasks': sum(1 for t in store.tasks if t.status != 'completed'),
        'projects': len(store.projects),
    }
