"""
State Repository - Load and Save the Whole Record Store
Local JSON cache plus an optional remote key-value document behind the edge
proxy. Load prefers remote, falls back to the cache, then to an empty store.
Save writes the cache synchronously and pushes to remote in the background.
"""

import json
import logging
import os
import tempfile
from concurrent.futures import Future, ThreadPoolExecutor, wait
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Optional

import requests

from outreach.bus.events import bus, EVENT_STATE_SAVED, EVENT_SYNC_FAILED
from outreach.config import config
from outreach.engine.projects import reconcile_project_references
from outreach.store.record_store import RecordStore

logger = logging.getLogger(__name__)

_RECORD_COLLECTIONS = ('contacts', 'activities', 'scripts', 'tags', 'customFields', 'tasks', 'projects')


# =============================================================================
# LOCAL CACHE
# =============================================================================

class LocalCache:
    """Whole-state JSON file. Missing or unreadable files read as None."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> Optional[Dict[str, Any]]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, encoding='utf-8') as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning(f"Local cache {self.path} unreadable, ignoring: {e}")
            return None
        return data if isinstance(data, dict) else None

    def write(self, state: Dict[str, Any]) -> None:
        """Write to a temp file in the same directory, then replace the cache file."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=str(self.path.parent), prefix='.outreach-', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(state, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise
        logger.debug(f"Local cache written: {self.path}")


# =============================================================================
# REMOTE SYNC
# =============================================================================

class RemoteSync:
    """GET {base}/contacts and POST {base}/contacts/import on the edge proxy."""

    def __init__(self, base_url: str, timeout: float = 15.0):
        self.base_url = (base_url or '').rstrip('/')
        self.timeout = timeout

    def fetch(self) -> Optional[Dict[str, Any]]:
        """
        The remote document, or None when it is empty. Transport, HTTP and
        JSON errors propagate to the caller.
        """
        response = requests.get(f"{self.base_url}/contacts", timeout=self.timeout)
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or not any(data.get(key) for key in _RECORD_COLLECTIONS):
            return None
        return data

    def push(self, state: Dict[str, Any]) -> None:
        response = requests.post(f"{self.base_url}/contacts/import", json=state, timeout=self.timeout)
        response.raise_for_status()


# =============================================================================
# REPOSITORY
# =============================================================================

def prepare_loaded_state(payload: Optional[Dict[str, Any]]) -> RecordStore:
    """Build a store from a loaded document and create any referenced-but-missing projects."""
    store = RecordStore.from_dict(payload)
    reconcile_project_references(store)
    return store


class StateRepository:

    def __init__(self, cache: LocalCache, remote: Optional[RemoteSync] = None):
        self.cache = cache
        self.remote = remote
        self._executor: Optional[ThreadPoolExecutor] = None
        self._pending: list = []

    @classmethod
    def from_config(cls) -> "StateRepository":
        remote = RemoteSync(config.SYNC_URL, config.HTTP_TIMEOUT) if config.SYNC_URL else None
        return cls(LocalCache(config.cache_path), remote)

    def load(self) -> RecordStore:
        """Remote document, else local cache, else an empty store. Never raises."""
        payload = None
        source = 'empty'

        if self.remote is not None:
            try:
                payload = self.remote.fetch()
                if payload is not None:
                    source = 'remote'
            except (requests.exceptions.RequestException, ValueError) as e:
                logger.warning(f"Remote load failed, falling back to local cache: {e}")

        if payload is None:
            payload = self.cache.read()
            if payload is not None:
                source = 'cache'

        store = prepare_loaded_state(payload)
        logger.info(f"Loaded state from {source}: {len(store.contacts)} contact(s)")
        return store

    def save(self, store: RecordStore) -> Optional[Future]:
        """
        Write the local cache, then push to remote in the background.
        Returns the push Future, or None when remote sync is disabled.
        Remote failures are logged and emitted as EVENT_SYNC_FAILED.
        """
        state = store.to_dict()
        self.cache.write(state)
        bus.emit(EVENT_STATE_SAVED, {'contacts': len(store.contacts)})

        if self.remote is None:
            return None

        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix='outreach-sync')
        future = self._executor.submit(self._push, state)
        self._pending.append(future)
        return future

    def _push(self, state: Dict[str, Any]) -> bool:
        try:
            self.remote.push(state)
        except Exception as e:
            logger.error(f"Remote sync failed: {e}")
            bus.emit(EVENT_SYNC_FAILED, {'error': str(e)})
            return False
        logger.debug("Remote sync complete")
        return True

    def wait_for_sync(self, timeout: Optional[float] = None) -> bool:
        """Block until pending pushes finish. Returns False if any is still running."""
        pending = [f for f in self._pending if not f.done()]
        if pending:
            _done, not_done = wait(pending, timeout=timeout)
            if not_done:
                logger.warning(f"{len(not_done)} remote sync(s) still pending after {timeout}s")
                return False
        self._pending = []
        return True


@contextmanager
def open_state(repository: Optional[StateRepository] = None, save: bool = True):
    """
    Load the store, yield it, and save it when the block exits cleanly.

    Usage:
        with open_state() as store:
            crm.log_activity(store, contact_id, 'Email')
    """
    repository = repository or StateRepository.from_config()
    store = repository.load()
    yield store
    if save:
        repository.save(store)
        repository.wait_for_sync(timeout=config.HTTP_TIMEOUT)
