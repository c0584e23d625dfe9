"""
Record Store
The whole working data set of one session, held in memory and passed explicitly
to every engine function. How it is loaded and saved lives in repository.py.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from outreach.models import Activity, Contact, Project, Script, Tag, Task

logger = logging.getLogger(__name__)

# Collection name in the shared JSON document -> (attribute, record class)
_COLLECTIONS = {
    'contacts': ('contacts', Contact),
    'activities': ('activities', Activity),
    'scripts': ('scripts', Script),
    'tags': ('tags', Tag),
    'tasks': ('tasks', Task),
}


@dataclass
class RecordStore:
    contacts: List[Contact] = field(default_factory=list)
    activities: List[Activity] = field(default_factory=list)
    scripts: List[Script] = field(default_factory=list)
    tags: List[Tag] = field(default_factory=list)
    custom_fields: List[Dict[str, Any]] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    projects: List[Project] = field(default_factory=list)

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    def find_contact(self, contact_id: str) -> Optional[Contact]:
        return next((c for c in self.contacts if c.id == contact_id), None)

    def find_task(self, task_id: str) -> Optional[Task]:
        return next((t for t in self.tasks if t.id == task_id), None)

    def find_tag(self, tag_id: str) -> Optional[Tag]:
        return next((t for t in self.tags if t.id == tag_id), None)

    def contact_ids(self) -> set:
        return {c.id for c in self.contacts}

    # -------------------------------------------------------------------------
    # Whole-collection replacement
    # -------------------------------------------------------------------------

    def replace_contacts(self, contacts: List[Contact]) -> None:
        self.contacts = list(contacts)

    def replace_activities(self, activities: List[Activity]) -> None:
        self.activities = list(activities)

    def replace_tasks(self, tasks: List[Task]) -> None:
        self.tasks = list(tasks)

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            key: [record.to_dict() for record in getattr(self, attr)]
            for key, (attr, _cls) in _COLLECTIONS.items()
        }
        data['customFields'] = [dict(item) for item in self.custom_fields]
        data['projects'] = [project.to_dict() for project in self.projects]
        return data

    @classmethod
    def from_dict(cls, payload: Optional[Dict[str, Any]]) -> "RecordStore":
        """
        Build a store from the shared JSON document. Missing or malformed
        collections load as empty; the projects list is normalised (legacy
        string entries promoted, nameless and duplicate names dropped).
        """
        from outreach.engine.projects import normalize_projects

        payload = payload if isinstance(payload, dict) else {}
        store = cls()
        for key, (attr, record_cls) in _COLLECTIONS.items():
            items = payload.get(key)
            if not isinstance(items, list):
                if items is not None:
                    logger.warning(f"Ignoring malformed '{key}' collection ({type(items).__name__})")
                continue
            setattr(store, attr, [record_cls.from_dict(item) for item in items if isinstance(item, dict)])

        custom_fields = payload.get('customFields')
        if isinstance(custom_fields, list):
            store.custom_fields = [dict(item) for item in custom_fields if isinstance(item, dict)]

        store.projects = normalize_projects(payload.get('projects'))
        return store
