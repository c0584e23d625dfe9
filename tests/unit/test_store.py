"""
Unit tests for the record store and its repository
(outreach/store/record_store.py, outreach/store/repository.py).

HTTP is mocked with unittest.mock.patch on outreach.store.repository.requests.
The local cache always lives in tmp_path.
"""

import json
from unittest.mock import MagicMock, patch

import pytest
import requests

from outreach.bus.events import EVENT_STATE_SAVED, EVENT_SYNC_FAILED
from outreach.models import Contact
from outreach.store.record_store import RecordStore
from outreach.store.repository import LocalCache, RemoteSync, StateRepository, open_state, prepare_loaded_state


DOC = {
    'contacts': [{'id': 'c1', 'vendorName': 'Acme', 'project': 'Expo', 'linkedin': 'acme'}],
    'activities': [{'id': 'a1', 'contactId': 'c1', 'type': 'Email', 'date': '2024-01-01T00:00:00.000Z'}],
    'scripts': [],
    'tags': [{'id': 't1', 'name': 'Hot Lead', 'color': '#ef4444'}],
    'customFields': [{'name': 'Booth'}],
    'tasks': [{'id': 'k1', 'title': 'Call', 'project': 'Winter'}],
    'projects': ['Expo'],
}


def _response(payload=None, status_error=None):
    response = MagicMock()
    response.json.return_value = payload
    if status_error is not None:
        response.raise_for_status.side_effect = status_error
    return response


# ---------------------------------------------------------------------------
# RecordStore
# ---------------------------------------------------------------------------

class TestRecordStore:

    def test_from_dict_builds_records(self):
        store = RecordStore.from_dict(DOC)
        assert store.contacts[0].vendor_name == 'Acme'
        assert store.activities[0].contact_id == 'c1'
        assert store.tags[0].name == 'Hot Lead'
        assert store.custom_fields == [{'name': 'Booth'}]
        assert [p.name for p in store.projects] == ['Expo']

    def test_missing_and_malformed_collections_are_empty(self):
        store = RecordStore.from_dict({'contacts': 'oops', 'tasks': None})
        assert store.contacts == [] and store.tasks == [] and store.projects == []

    def test_non_dict_payload(self):
        assert RecordStore.from_dict(None).contacts == []

    def test_to_dict_keeps_every_collection_and_unknown_keys(self):
        data = RecordStore.from_dict(DOC).to_dict()
        assert set(data) == {'contacts', 'activities', 'scripts', 'tags', 'customFields', 'tasks', 'projects'}
        assert data['contacts'][0]['linkedin'] == 'acme'
        assert data['projects'][0]['status'] == 'Active'

    def test_lookups(self):
        store = RecordStore.from_dict(DOC)
        assert store.find_contact('c1').vendor_name == 'Acme'
        assert store.find_contact('nope') is None
        assert store.find_task('k1').title == 'Call'
        assert store.find_tag('t1').color == '#ef4444'
        assert store.contact_ids() == {'c1'}

    def test_replace_collections(self):
        store = RecordStore()
        contacts = [Contact(id='x')]
        store.replace_contacts(contacts)
        contacts.append(Contact(id='y'))
        assert [c.id for c in store.contacts] == ['x']


def test_prepare_loaded_state_reconciles_projects():
    store = prepare_loaded_state(DOC)
    assert sorted(p.name for p in store.projects) == ['Expo', 'Winter']


# ---------------------------------------------------------------------------
# LocalCache
# ---------------------------------------------------------------------------

class TestLocalCache:

    def test_missing_file_reads_none(self, tmp_path):
        assert LocalCache(tmp_path / 'state.json').read() is None

    def test_write_then_read(self, tmp_path):
        cache = LocalCache(tmp_path / 'sub' / 'state.json')
        cache.write({'contacts': []})
        assert cache.read() == {'contacts': []}
        assert list((tmp_path / 'sub').iterdir()) == [tmp_path / 'sub' / 'state.json']

    def test_corrupt_file_reads_none(self, tmp_path):
        path = tmp_path / 'state.json'
        path.write_text('{not json', encoding='utf-8')
        assert LocalCache(path).read() is None

    def test_non_object_reads_none(self, tmp_path):
        path = tmp_path / 'state.json'
        path.write_text('[1, 2]', encoding='utf-8')
        assert LocalCache(path).read() is None


# ---------------------------------------------------------------------------
# RemoteSync
# ---------------------------------------------------------------------------

class TestRemoteSync:

    def test_fetch_calls_contacts_endpoint(self):
        with patch('outreach.store.repository.requests.get', return_value=_response(DOC)) as mock_get:
            data = RemoteSync('https://proxy.example/', timeout=3).fetch()
        assert data == DOC
        mock_get.assert_called_once_with('https://proxy.example/contacts', timeout=3)

    def test_empty_remote_document_is_none(self):
        empty = {'contacts': [], 'activities': [], 'scripts': [], 'tags': [], 'customFields': []}
        with patch('outreach.store.repository.requests.get', return_value=_response(empty)):
            assert RemoteSync('https://proxy.example').fetch() is None

    def test_push_posts_import_endpoint(self):
        with patch('outreach.store.repository.requests.post', return_value=_response({'ok': True})) as mock_post:
            RemoteSync('https://proxy.example', timeout=2).push({'contacts': []})
        mock_post.assert_called_once_with(
            'https://proxy.example/contacts/import', json={'contacts': []}, timeout=2
        )

    def test_push_http_error_raises(self):
        error = requests.exceptions.HTTPError('500')
        with patch('outreach.store.repository.requests.post', return_value=_response(status_error=error)):
            with pytest.raises(requests.exceptions.HTTPError):
                RemoteSync('https://proxy.example').push({})


# ---------------------------------------------------------------------------
# StateRepository
# ---------------------------------------------------------------------------

class TestStateRepositoryLoad:

    def test_remote_preferred(self, tmp_path):
        cache = LocalCache(tmp_path / 'state.json')
        cache.write({'contacts': [{'id': 'local', 'vendorName': 'Local'}]})
        remote = MagicMock(spec=RemoteSync)
        remote.fetch.return_value = DOC
        store = StateRepository(cache, remote).load()
        assert [c.id for c in store.contacts] == ['c1']

    def test_remote_failure_falls_back_to_cache(self, tmp_path):
        cache = LocalCache(tmp_path / 'state.json')
        cache.write({'contacts': [{'id': 'local', 'vendorName': 'Local'}]})
        remote = MagicMock(spec=RemoteSync)
        remote.fetch.side_effect = requests.exceptions.ConnectionError('down')
        store = StateRepository(cache, remote).load()
        assert [c.id for c in store.contacts] == ['local']

    def test_empty_remote_falls_back_to_cache(self, tmp_path):
        cache = LocalCache(tmp_path / 'state.json')
        cache.write({'contacts': [{'id': 'local'}]})
        remote = MagicMock(spec=RemoteSync)
        remote.fetch.return_value = None
        assert StateRepository(cache, remote).load().contacts[0].id == 'local'

    def test_nothing_anywhere_is_empty_store(self, tmp_path):
        store = StateRepository(LocalCache(tmp_path / 'state.json')).load()
        assert store.contacts == [] and store.projects == []

    def test_load_reconciles_projects(self, tmp_path):
        cache = LocalCache(tmp_path / 'state.json')
        cache.write({'contacts': [{'id': 'c1', 'project': 'Expo'}]})
        store = StateRepository(cache).load()
        assert [p.name for p in store.projects] == ['Expo']


class TestStateRepositorySave:

    def test_save_without_remote_writes_cache_only(self, tmp_path):
        cache = LocalCache(tmp_path / 'state.json')
        repo = StateRepository(cache)
        with patch('outreach.store.repository.bus.emit') as mock_emit:
            assert repo.save(RecordStore(contacts=[Contact(id='c1', vendor_name='Acme')])) is None
        assert json.loads((tmp_path / 'state.json').read_text())['contacts'][0]['vendorName'] == 'Acme'
        mock_emit.assert_called_once_with(EVENT_STATE_SAVED, {'contacts': 1})

    def test_save_pushes_in_background(self, tmp_path):
        remote = MagicMock(spec=RemoteSync)
        repo = StateRepository(LocalCache(tmp_path / 'state.json'), remote)
        future = repo.save(RecordStore(contacts=[Contact(id='c1')]))
        assert future.result(timeout=5) is True
        assert repo.wait_for_sync(timeout=5)
        pushed = remote.push.call_args[0][0]
        assert pushed['contacts'][0]['id'] == 'c1'

    def test_remote_failure_is_reported_not_raised(self, tmp_path):
        remote = MagicMock(spec=RemoteSync)
        remote.push.side_effect = requests.exceptions.ConnectionError('down')
        repo = StateRepository(LocalCache(tmp_path / 'state.json'), remote)
        with patch('outreach.store.repository.bus.emit') as mock_emit:
            future = repo.save(RecordStore())
            assert future.result(timeout=5) is False
        mock_emit.assert_any_call(EVENT_SYNC_FAILED, {'error': 'down'})
        assert (tmp_path / 'state.json').exists()

    def test_wait_for_sync_with_nothing_pending(self, tmp_path):
        assert StateRepository(LocalCache(tmp_path / 'state.json')).wait_for_sync(timeout=0.1)


def test_open_state_saves_on_clean_exit(tmp_path):
    repo = StateRepository(LocalCache(tmp_path / 'state.json'))
    with open_state(repo) as store:
        store.contacts.append(Contact(id='c1', vendor_name='Acme'))
    assert repo.load().contacts[0].vendor_name == 'Acme'


def test_open_state_does_not_save_on_error(tmp_path):
    repo = StateRepository(LocalCache(tmp_path / 'state.json'))
    with pytest.raises(RuntimeError):
        with open_state(repo) as store:
            store.contacts.append(Contact(id='c1'))
            raise RuntimeError('boom')
    assert not (tmp_path / 'state.json').exists()


def test_open_state_read_only(tmp_path):
    repo = StateRepository(LocalCache(tmp_path / 'state.json'))
    with open_state(repo, save=False) as store:
        store.contacts.append(Contact(id='c1'))
    assert not (tmp_path / 'state.json').exists()


def test_from_config_without_sync_url(tmp_path):
    with patch('outreach.store.repository.config') as mock_config:
        mock_config.SYNC_URL = ''
        mock_config.cache_path = tmp_path / 'state.json'
        repo = StateRepository.from_config()
    assert repo.remote is None
    assert repo.cache.path == tmp_path / 'state.json'
