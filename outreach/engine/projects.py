"""
Project Reconciler
Keeps the Project collection consistent with the free-text project names that
contacts and tasks carry. Names are unique case-insensitively.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from outreach.bus.events import bus, EVENT_PROJECT_CREATED, EVENT_PROJECT_UPDATED
from outreach.engine.common import new_id
from outreach.models import DEFAULT_PROJECT_STATUS, Project

logger = logging.getLogger(__name__)

_MERGED_FIELDS = ('status', 'owner', 'start_date', 'end_date', 'description')


def _name_key(name: Optional[str]) -> str:
    return (name or '').strip().lower()


def find_project_by_name(projects: Iterable[Project], name: str) -> Optional[Project]:
    """Case-insensitive, whitespace-insensitive lookup."""
    key = _name_key(name)
    if not key:
        return None
    return next((p for p in projects if _name_key(p.name) == key), None)


def normalize_projects(raw: Any) -> List[Project]:
    """
    Bring a loaded projects list up to the current shape:
    - legacy plain-string entries become full records (status Active)
    - entries without a usable name are dropped
    - duplicate names keep only their first occurrence
    """
    if not isinstance(raw, list):
        return []

    projects: List[Project] = []
    seen = set()
    for item in raw:
        if isinstance(item, str):
            project = Project(id=new_id(), name=item.strip(), status=DEFAULT_PROJECT_STATUS)
        elif isinstance(item, dict):
            project = Project.from_dict(item)
            project.name = (project.name or '').strip() if isinstance(project.name, str) else ''
            if not project.id:
                project.id = new_id()
        else:
            continue

        key = _name_key(project.name)
        if not key:
            logger.debug(f"normalize_projects: dropping nameless entry {item!r}")
            continue
        if key in seen:
            logger.debug(f"normalize_projects: dropping duplicate project '{project.name}'")
            continue
        seen.add(key)
        projects.append(project)
    return projects


def ensure_project_exists(store, name: Optional[str]) -> Optional[Project]:
    """
    Return the project called `name`, creating it if needed.
    Blank names are a no-op and return None.
    """
    cleaned = (name or '').strip()
    if not cleaned:
        return None

    existing = find_project_by_name(store.projects, cleaned)
    if existing is not None:
        return existing

    project = Project(id=new_id(), name=cleaned, status=DEFAULT_PROJECT_STATUS)
    store.projects.append(project)
    logger.info(f"Created project '{cleaned}' ({project.id})")
    bus.emit(EVENT_PROJECT_CREATED, {'project': project})
    return project


def upsert_project(store, data: Dict[str, Any]) -> Optional[Project]:
    """
    Create or update a project from `data` (snake_case keys: id, name, status,
    owner, start_date, end_date, description).

    The record is matched by id, falling back to a case-insensitive name match.
    Supplied non-empty values win over the previous ones; anything still
    missing becomes ''. Returns None when the name is blank or would collide
    with another project's name.
    """
    name = (data.get('name') or '').strip()
    if not name:
        logger.warning("upsert_project: name is required")
        return None

    project_id = data.get('id') or None
    existing = next((p for p in store.projects if project_id and p.id == project_id), None)
    if existing is None:
        existing = find_project_by_name(store.projects, name)

    clash = find_project_by_name(store.projects, name)
    if clash is not None and existing is not None and clash.id != existing.id:
        logger.warning(f"upsert_project: another project is already named '{clash.name}'")
        return None

    resolved_id = existing.id if existing is not None else (project_id or new_id())
    merged = Project(id=resolved_id, name=name)
    for field_name in _MERGED_FIELDS:
        previous = getattr(existing, field_name) if existing is not None else ''
        setattr(merged, field_name, data.get(field_name) or previous or '')
    if existing is not None:
        merged.extra = dict(existing.extra)

    for index, project in enumerate(store.projects):
        if project.id == resolved_id:
            store.projects[index] = merged
            logger.info(f"Updated project '{name}' ({resolved_id})")
            bus.emit(EVENT_PROJECT_UPDATED, {'project': merged})
            break
    else:
        store.projects.append(merged)
        logger.info(f"Created project '{name}' ({resolved_id})")
        bus.emit(EVENT_PROJECT_CREATED, {'project': merged})

    return merged


def reconcile_project_references(store) -> int:
    """
    Create a project for every name referenced by a contact or task that has no
    matching project yet. Returns the number of projects created.
    """
    before = len(store.projects)
    for record in list(store.contacts) + list(store.tasks):
        ensure_project_exists(store, record.project)
    created = len(store.projects) - before
    if created:
        logger.info(f"reconcile_project_references: created {created} project(s)")
    return created
