"""
CRM Engine - Contact, Activity and Task Operations
Pure Python module with no AI dependency. Every function takes the RecordStore
explicitly and mutates it in place; persisting is the caller's job
(StateRepository.save).
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from outreach.bus.events import (
    bus,
    EVENT_ACTIVITY_DELETED,
    EVENT_ACTIVITY_LOGGED,
    EVENT_CONTACT_CREATED,
    EVENT_CONTACT_DELETED,
    EVENT_CONTACT_UPDATED,
    EVENT_CONTACTS_IMPORTED,
    EVENT_TASK_CREATED,
    EVENT_TASK_DELETED,
    EVENT_TASK_UPDATED,
)
from outreach.engine.common import new_id, now_iso
from outreach.engine.csv_import import is_admissible, resolve_vendor_name
from outreach.engine.projects import ensure_project_exists
from outreach.models import (
    DEFAULT_TASK_PRIORITY,
    STATUS_IN_PROGRESS,
    STATUS_NOT_STARTED,
    TASK_COMPLETED,
    TASK_OPEN,
    TASK_PRIORITIES,
    Activity,
    Contact,
    Script,
    Tag,
    Task,
    _camel,
)

logger = logging.getLogger(__name__)

__all__ = [
    'new_id', 'now_iso',
    'save_contact', 'quick_add_contact', 'get_contact', 'update_contact_status', 'delete_contact',
    'bulk_update_status', 'bulk_add_tag', 'bulk_remove_tag', 'bulk_delete',
    'log_activity', 'delete_activity', 'activities_for_contact', 'recent_activities',
    'create_task', 'update_task', 'set_task_status', 'delete_task', 'open_tasks',
    'confirm_import', 'ensure_defaults',
]

# Form fields a contact save may set directly; anything else lands in `extra`
_CONTACT_FIELDS = {
    'vendor_name', 'company_name', 'contact_name', 'title', 'email', 'phone', 'website',
    'category', 'segment', 'status', 'project', 'notes', 'internal_notes', 'tags',
    'lead_source', 'follow_up_date', 'next_steps', 'deal_stage', 'deal_value', 'decision_maker',
}
_TASK_FIELDS = {'contact_id', 'title', 'notes', 'priority', 'due_date', 'project'}


def _clean(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# =============================================================================
# CONTACT OPERATIONS
# =============================================================================

def save_contact(store, data: Dict[str, Any], contact_id: Optional[str] = None) -> Optional[Contact]:
    """
    Create a contact, or replace the one with `contact_id`, from form data
    (snake_case keys). companyName defaults to vendorName and the vendor name
    falls back through contactName, email and phone. Editing keeps createdAt
    and lastContact. Returns None when no identifying field is present or the
    contact to edit does not exist.
    """
    previous = store.find_contact(contact_id) if contact_id else None
    if contact_id and previous is None:
        logger.warning(f"save_contact: contact {contact_id} not found")
        return None

    known = {k: _clean(v) for k, v in data.items() if k in _CONTACT_FIELDS}
    extra = {_camel(k): v for k, v in data.items() if k not in _CONTACT_FIELDS and k != 'id'}

    vendor_name = resolve_vendor_name(
        vendor_name=known.get('vendor_name'),
        company_name=known.get('company_name'),
        contact_name=known.get('contact_name'),
        email=known.get('email'),
        phone=known.get('phone'),
    )
    known['vendor_name'] = vendor_name
    known['company_name'] = known.get('company_name') or vendor_name
    known['status'] = known.get('status') or STATUS_NOT_STARTED
    known['tags'] = list(known.get('tags') or [])
    known['follow_up_date'] = known.get('follow_up_date') or None

    contact = Contact(id=previous.id if previous else new_id(), **known)
    if previous is not None:
        contact.created_at = previous.created_at
        contact.last_contact = previous.last_contact
        contact.extra = {**previous.extra, **extra}
    else:
        contact.created_at = now_iso()
        contact.extra = extra

    if not is_admissible(contact):
        logger.warning("save_contact: rejected, no vendor, company, contact name, email or phone")
        return None

    ensure_project_exists(store, contact.project)

    if previous is not None:
        index = store.contacts.index(previous)
        store.contacts[index] = contact
        logger.info(f"Updated contact {contact.id}: {contact.display_name}")
        bus.emit(EVENT_CONTACT_UPDATED, {'contact_id': contact.id, 'contact': contact})
    else:
        store.contacts.append(contact)
        logger.info(f"Created contact {contact.id}: {contact.display_name}")
        bus.emit(EVENT_CONTACT_CREATED, {'contact_id': contact.id, 'contact': contact})
    return contact


def quick_add_contact(store, **fields) -> Optional[Contact]:
    """Create a contact from keyword arguments, e.g. vendor_name='Acme', email='a@x.com'."""
    return save_contact(store, fields)


def get_contact(store, contact_id: str) -> Optional[Contact]:
    contact = store.find_contact(contact_id)
    if contact is None:
        logger.debug(f"get_contact: contact_id={contact_id} not found")
    return contact


def update_contact_status(store, contact_id: str, status: str) -> bool:
    """Set a contact's status. Returns True if the contact exists."""
    contact = store.find_contact(contact_id)
    if contact is None:
        logger.warning(f"update_contact_status: contact {contact_id} not found")
        return False
    contact.status = status
    logger.info(f"Contact {contact_id} status -> {status}")
    bus.emit(EVENT_CONTACT_UPDATED, {'contact_id': contact_id, 'contact': contact})
    return True


def delete_contact(store, contact_id: str) -> bool:
    """Remove a contact together with its activities. Tasks keep a dangling contactId."""
    contact = store.find_contact(contact_id)
    if contact is None:
        return False
    store.replace_contacts([c for c in store.contacts if c.id != contact_id])
    store.replace_activities([a for a in store.activities if a.contact_id != contact_id])
    logger.info(f"Deleted contact {contact_id}: {contact.display_name}")
    bus.emit(EVENT_CONTACT_DELETED, {'contact_id': contact_id})
    return True


# =============================================================================
# BULK OPERATIONS
# =============================================================================

def bulk_update_status(store, contact_ids: Iterable[str], status: str) -> int:
    """Returns the number of contacts updated. A blank status changes nothing."""
    if not status:
        return 0
    selected = set(contact_ids)
    count = 0
    for contact in store.contacts:
        if contact.id in selected:
            contact.status = status
            count += 1
            bus.emit(EVENT_CONTACT_UPDATED, {'contact_id': contact.id, 'contact': contact})
    logger.info(f"bulk_update_status: {count} contact(s) -> {status}")
    return count


def bulk_add_tag(store, contact_ids: Iterable[str], tag_id: str) -> int:
    if not tag_id:
        return 0
    selected = set(contact_ids)
    count = 0
    for contact in store.contacts:
        if contact.id in selected and tag_id not in contact.tags:
            contact.tags.append(tag_id)
            count += 1
            bus.emit(EVENT_CONTACT_UPDATED, {'contact_id': contact.id, 'contact': contact})
    logger.info(f"bulk_add_tag: tag {tag_id} added to {count} contact(s)")
    return count


def bulk_remove_tag(store, contact_ids: Iterable[str], tag_id: str) -> int:
    if not tag_id:
        return 0
    selected = set(contact_ids)
    count = 0
    for contact in store.contacts:
        if contact.id in selected and tag_id in contact.tags:
            contact.tags = [t for t in contact.tags if t != tag_id]
            count += 1
            bus.emit(EVENT_CONTACT_UPDATED, {'contact_id': contact.id, 'contact': contact})
    logger.info(f"bulk_remove_tag: tag {tag_id} removed from {count} contact(s)")
    return count


def bulk_delete(store, contact_ids: Iterable[str]) -> int:
    """Delete the selected contacts and their activities. Returns the number removed."""
    selected = set(contact_ids)
    removed = [c.id for c in store.contacts if c.id in selected]
    store.replace_contacts([c for c in store.contacts if c.id not in selected])
    store.replace_activities([a for a in store.activities if a.contact_id not in selected])
    logger.info(f"bulk_delete: removed {len(removed)} contact(s)")
    for contact_id in removed:
        bus.emit(EVENT_CONTACT_DELETED, {'contact_id': contact_id})
    return len(removed)


# =============================================================================
# ACTIVITY OPERATIONS
# =============================================================================

def log_activity(
    store,
    contact_id: str,
    activity_type: str,
    notes: str = '',
    follow_up_date: Optional[str] = None,
) -> Optional[Activity]:
    """
    Record an outreach touch dated now. The contact's lastContact becomes the
    activity date, a given follow-up date is copied to the contact, and a
    'Not Started' contact moves to 'In Progress'.
    """
    contact = store.find_contact(contact_id)
    if contact is None:
        logger.warning(f"log_activity: contact {contact_id} not found")
        return None

    activity = Activity(
        id=new_id(),
        contact_id=contact_id,
        type=activity_type,
        notes=notes or '',
        date=now_iso(),
        follow_up_date=follow_up_date or None,
    )
    store.activities.append(activity)

    contact.last_contact = activity.date
    if activity.follow_up_date:
        contact.follow_up_date = activity.follow_up_date
    if contact.status == STATUS_NOT_STARTED:
        contact.status = STATUS_IN_PROGRESS

    logger.info(f"Logged {activity_type} for contact {contact_id}")
    bus.emit(EVENT_ACTIVITY_LOGGED, {'activity': activity, 'contact_id': contact_id})
    return activity


def delete_activity(store, activity_id: str) -> bool:
    before = len(store.activities)
    store.replace_activities([a for a in store.activities if a.id != activity_id])
    if len(store.activities) == before:
        return False
    bus.emit(EVENT_ACTIVITY_DELETED, {'activity_id': activity_id})
    return True


def activities_for_contact(store, contact_id: str) -> List[Activity]:
    """Newest first."""
    activities = [a for a in store.activities if a.contact_id == contact_id]
    return sorted(activities, key=lambda a: a.date or '', reverse=True)


def recent_activities(store, limit: int = 10) -> List[Activity]:
    """Newest activities whose contact still exists. Orphans are skipped, not deleted."""
    known = store.contact_ids()
    live = [a for a in store.activities if a.contact_id in known]
    return sorted(live, key=lambda a: a.date or '', reverse=True)[:limit]


# =============================================================================
# TASK OPERATIONS
# =============================================================================

def _valid_priority(priority: Optional[str]) -> str:
    return priority if priority in TASK_PRIORITIES else DEFAULT_TASK_PRIORITY


def create_task(store, title: str, **fields) -> Optional[Task]:
    """
    Create an open task. Optional fields: contact_id, notes, priority,
    due_date, project. Blank titles are rejected.
    """
    title = (title or '').strip()
    if not title:
        logger.warning("create_task: title is required")
        return None

    values = {k: v for k, v in fields.items() if k in _TASK_FIELDS}
    task = Task(
        id=new_id(),
        title=title,
        contact_id=values.get('contact_id') or None,
        notes=values.get('notes') or '',
        priority=_valid_priority(values.get('priority')),
        status=TASK_OPEN,
        due_date=values.get('due_date') or None,
        created_at=now_iso(),
        project=(values.get('project') or '').strip(),
    )
    ensure_project_exists(store, task.project)
    store.tasks.append(task)
    logger.info(f"Created task {task.id}: {title}")
    bus.emit(EVENT_TASK_CREATED, {'task': task})
    return task


def update_task(store, task_id: str, **fields) -> Optional[Task]:
    """Update editable task fields; the status is changed through set_task_status."""
    task = store.find_task(task_id)
    if task is None:
        logger.warning(f"update_task: task {task_id} not found")
        return None

    invalid = set(fields) - _TASK_FIELDS
    if invalid:
        raise ValueError(f"Invalid task fields: {invalid}")

    for name, value in fields.items():
        if name == 'priority':
            value = _valid_priority(value)
        elif name == 'title':
            value = (value or '').strip() or task.title
        setattr(task, name, value)

    ensure_project_exists(store, task.project)
    bus.emit(EVENT_TASK_UPDATED, {'task': task})
    return task


def set_task_status(store, task_id: str, status: str) -> Optional[Task]:
    """completedAt is stamped on entering 'completed' and cleared on leaving it."""
    task = store.find_task(task_id)
    if task is None:
        logger.warning(f"set_task_status: task {task_id} not found")
        return None
    if status not in (TASK_OPEN, TASK_COMPLETED):
        raise ValueError(f"Invalid task status: {status}")

    if status == TASK_COMPLETED and task.status != TASK_COMPLETED:
        task.completed_at = now_iso()
    elif status != TASK_COMPLETED:
        task.completed_at = None
    task.status = status

    logger.info(f"Task {task_id} -> {status}")
    bus.emit(EVENT_TASK_UPDATED, {'task': task})
    return task


def delete_task(store, task_id: str) -> bool:
    before = len(store.tasks)
    store.replace_tasks([t for t in store.tasks if t.id != task_id])
    if len(store.tasks) == before:
        return False
    logger.info(f"Deleted task {task_id}")
    bus.emit(EVENT_TASK_DELETED, {'task_id': task_id})
    return True


def open_tasks(store) -> List[Task]:
    """Open tasks, earliest due date first; undated tasks last."""
    pending = [t for t in store.tasks if t.status != TASK_COMPLETED]
    return sorted(pending, key=lambda t: (t.due_date is None, t.due_date or ''))


# =============================================================================
# IMPORT COMMIT
# =============================================================================

def confirm_import(store, candidates: Iterable[Contact]) -> int:
    """Append previewed candidates to the store. Returns the number added."""
    added = list(candidates)
    store.contacts.extend(added)
    for contact in added:
        ensure_project_exists(store, contact.project)
    logger.info(f"confirm_import: added {len(added)} contact(s)")
    bus.emit(EVENT_CONTACTS_IMPORTED, {'count': len(added), 'contact_ids': [c.id for c in added]})
    return len(added)


# =============================================================================
# DEFAULT DATA
# =============================================================================

DEFAULT_TAGS = (
    ('Hot Lead', '#ef4444'),
    ('High Priority', '#f59e0b'),
    ('Decision Maker', '#8b5cf6'),
    ('Needs Follow-up', '#3b82f6'),
    ('Budget Approved', '#10b981'),
    ('Large Account', '#ec4899'),
    ('Referral', '#6366f1'),
)

# (title, type, subject, content); placeholders in braces are filled by hand
DEFAULT_SCRIPTS = (
    (
        'Initial Outreach - Print Advertising Platform',
        'Email',
        'Reach more customers for {Vendor Name} with print advertising',
        "Hi {Contact Name},\n\n"
        "I'm {Your Name} from AdSell.ai. I saw {Vendor Name} at the Albany Ski Expo and "
        "wanted to share a simpler way to run print ads this season.\n\n"
        "We let you book newspaper and magazine placements directly, without agency fees, "
        "and help you pick the publications your customers actually read.\n\n"
        "Open to a 10-minute call this week?\n\n"
        "Best,\n{Your Name}",
    ),
    (
        'Phone Call Script',
        'Phone Call',
        '',
        "Opening: introduce yourself and ask for a quick minute.\n"
        "Credibility: we help ski businesses place print ads without an agency.\n"
        "Discovery: how do you reach new customers today? Tried print before?\n"
        "Objections: budget, 'print doesn't work', 'we only do digital'.\n"
        "Close: offer a free account and agree on a follow-up date.",
    ),
    (
        'Follow-up Email - No Response',
        'Email',
        'Still interested in reaching more customers? {Vendor Name}',
        "Hi {Contact Name},\n\n"
        "Following up on my note about AdSell.ai in case it got buried.\n\n"
        "Reply \"Demo\" for a short video or \"Call\" to book 10 minutes.\n\n"
        "Thanks,\n{Your Name}",
    ),
    (
        'Value Proposition - Short Email',
        'Email',
        'Print advertising without the headache',
        "{Contact Name},\n\n"
        "Does {Vendor Name} run any print advertising? We make it a few minutes of work "
        "at a fraction of agency rates.\n\n"
        "Worth a quick conversation?\n\n{Your Name}",
    ),
    (
        'The Albany Ski Expo Connection',
        'Email',
        'Following up from Albany Ski Expo',
        "Hi {Contact Name},\n\n"
        "We connected at the Albany Ski Expo. Print ads placed right after an event keep "
        "{Vendor Name} in front of the same families while they plan their trips.\n\n"
        "Happy to show which publications your expo audience reads.\n\n"
        "Best,\n{Your Name}",
    ),
)


def ensure_defaults(store) -> Dict[str, int]:
    """Seed the default tags and scripts into empty collections. Returns counts added."""
    added = {'tags': 0, 'scripts': 0}
    if not store.tags:
        store.tags = [Tag(id=new_id(), name=name, color=color) for name, color in DEFAULT_TAGS]
        added['tags'] = len(store.tags)
    if not store.scripts:
        created_at = now_iso()
        store.scripts = [
            Script(id=new_id(), title=title, type=kind, subject=subject, content=content, created_at=created_at)
            for title, kind, subject, content in DEFAULT_SCRIPTS
        ]
        added['scripts'] = len(store.scripts)
    if any(added.values()):
        logger.info(f"ensure_defaults: seeded {added['tags']} tag(s), {added['scripts']} script(s)")
    return added
