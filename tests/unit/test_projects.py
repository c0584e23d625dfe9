"""
Unit tests for the Project Reconciler (outreach/engine/projects.py).
Bus events are verified by patching outreach.engine.projects.bus.emit.
"""

from unittest.mock import patch

from outreach.bus.events import EVENT_PROJECT_CREATED, EVENT_PROJECT_UPDATED
from outreach.engine.projects import (
    ensure_project_exists,
    find_project_by_name,
    normalize_projects,
    reconcile_project_references,
    upsert_project,
)
from outreach.models import Contact, Project, Task
from outreach.store.record_store import RecordStore


# ---------------------------------------------------------------------------
# ensure_project_exists
# ---------------------------------------------------------------------------

def test_blank_name_is_noop():
    store = RecordStore()
    assert ensure_project_exists(store, '   ') is None
    assert ensure_project_exists(store, None) is None
    assert store.projects == []


def test_creates_active_project_with_trimmed_name():
    store = RecordStore()
    with patch('outreach.engine.projects.bus.emit') as mock_emit:
        project = ensure_project_exists(store, '  Winter 2026 ')
    assert project.name == 'Winter 2026'
    assert project.status == 'Active'
    assert project.owner == '' and project.description == ''
    assert store.projects == [project]
    mock_emit.assert_called_once_with(EVENT_PROJECT_CREATED, {'project': project})


def test_existing_project_matched_case_insensitively():
    existing = Project(id='p1', name='Winter 2026', status='Paused')
    store = RecordStore(projects=[existing])
    assert ensure_project_exists(store, 'WINTER 2026') is existing
    assert len(store.projects) == 1
    assert existing.status == 'Paused'


def test_ensure_is_idempotent():
    store = RecordStore()
    first = ensure_project_exists(store, 'Expo')
    second = ensure_project_exists(store, 'expo')
    assert first is second
    assert len(store.projects) == 1


def test_find_project_by_name_blank():
    assert find_project_by_name([Project(name='')], '') is None


# ---------------------------------------------------------------------------
# upsert_project
# ---------------------------------------------------------------------------

def test_upsert_requires_name():
    store = RecordStore()
    assert upsert_project(store, {'name': '  '}) is None
    assert store.projects == []


def test_upsert_creates_with_empty_defaults():
    store = RecordStore()
    project = upsert_project(store, {'name': 'Expo', 'owner': 'Dana'})
    assert project.id
    assert project.owner == 'Dana'
    assert project.status == ''
    assert store.projects == [project]


def test_upsert_by_id_merges_over_previous():
    store = RecordStore(projects=[Project(id='p1', name='Expo', status='Active', owner='Dana')])
    with patch('outreach.engine.projects.bus.emit') as mock_emit:
        project = upsert_project(store, {'id': 'p1', 'name': 'Expo Follow-up', 'owner': ''})
    assert project.name == 'Expo Follow-up'
    assert project.owner == 'Dana'
    assert project.status == 'Active'
    assert store.projects == [project]
    mock_emit.assert_called_once_with(EVENT_PROJECT_UPDATED, {'project': project})


def test_upsert_without_id_matches_by_name():
    store = RecordStore(projects=[Project(id='p1', name='Expo', status='Active')])
    project = upsert_project(store, {'name': 'EXPO', 'status': 'Done'})
    assert project.id == 'p1'
    assert project.status == 'Done'
    assert len(store.projects) == 1


def test_upsert_rename_onto_other_project_rejected():
    store = RecordStore(projects=[Project(id='p1', name='Expo'), Project(id='p2', name='Winter')])
    assert upsert_project(store, {'id': 'p2', 'name': 'expo'}) is None
    assert [p.name for p in store.projects] == ['Expo', 'Winter']


def test_upsert_with_new_id_appends():
    store = RecordStore()
    project = upsert_project(store, {'id': 'custom', 'name': 'Expo'})
    assert project.id == 'custom'


def test_upsert_keeps_unknown_keys():
    store = RecordStore(projects=[Project(id='p1', name='Expo', extra={'color': 'red'})])
    project = upsert_project(store, {'id': 'p1', 'name': 'Expo'})
    assert project.to_dict()['color'] == 'red'


# ---------------------------------------------------------------------------
# normalize_projects
# ---------------------------------------------------------------------------

def test_legacy_strings_promoted():
    projects = normalize_projects(['Expo', {'id': 'p2', 'name': 'Winter', 'status': 'Paused'}])
    assert [(p.name, p.status) for p in projects] == [('Expo', 'Active'), ('Winter', 'Paused')]
    assert projects[0].id


def test_nameless_and_duplicates_dropped():
    raw = [{'id': 'a', 'name': 'Expo'}, {'id': 'b'}, ' expo ', {'id': 'c', 'name': '  '}, 42, 'Other']
    projects = normalize_projects(raw)
    assert [p.id for p in projects][0] == 'a'
    assert [p.name for p in projects] == ['Expo', 'Other']


def test_dict_without_id_gets_one():
    assert normalize_projects([{'name': 'Expo'}])[0].id


def test_non_list_is_empty():
    assert normalize_projects(None) == []
    assert normalize_projects({'name': 'x'}) == []


def test_normalized_names_are_unique():
    projects = normalize_projects(['A', 'a', 'B', {'name': 'b'}, 'A '])
    keys = [p.name.lower() for p in projects]
    assert len(keys) == len(set(keys))


# ---------------------------------------------------------------------------
# reconcile_project_references
# ---------------------------------------------------------------------------

def test_reconcile_creates_missing_projects_once():
    store = RecordStore(
        contacts=[Contact(id='1', project='Expo'), Contact(id='2', project='expo'), Contact(id='3')],
        tasks=[Task(id='t1', project='Winter')],
        projects=[Project(id='p1', name='Winter')],
    )
    assert reconcile_project_references(store) == 1
    assert sorted(p.name for p in store.projects) == ['Expo', 'Winter']


def test_reconcile_every_reference_resolves():
    store = RecordStore(contacts=[Contact(project='A'), Contact(project=' B ')], tasks=[Task(project='C')])
    reconcile_project_references(store)
    for record in store.contacts + store.tasks:
        assert find_project_by_name(store.projects, record.project) is not None
