"""
Unit tests for application configuration (outreach/config.py).

Config is a class with attributes set at class-body parse time, and a module-level
singleton created immediately after. Testing different env var states requires
a fresh import, with load_dotenv mocked to a no-op so the .env file on disk
doesn't override what we set in the test environment.
"""

import importlib
import logging
import sys
from pathlib import Path
from unittest.mock import patch

import pytest


# ---------------------------------------------------------------------------
# Helper: reload outreach.config with a controlled environment
# ---------------------------------------------------------------------------

def _reload_config(env_overrides: dict):
    """
    Re-import outreach.config with a specific set of environment variables.
    load_dotenv is patched to a no-op so the real .env file is ignored.
    Always restores the original module in sys.modules afterward.
    Returns the reloaded module.
    """
    original = sys.modules.get('outreach.config')
    try:
        with patch.dict('os.environ', env_overrides, clear=True), \
             patch('dotenv.load_dotenv'):
            sys.modules.pop('outreach.config', None)
            module = importlib.import_module('outreach.config')
            return module
    finally:
        # Restore the original module so other tests are unaffected.
        if original is not None:
            sys.modules['outreach.config'] = original
        elif 'outreach.config' in sys.modules:
            del sys.modules['outreach.config']


# ---------------------------------------------------------------------------
# Default values
# ---------------------------------------------------------------------------

def test_defaults():
    mod = _reload_config({})
    assert mod.Config.SYNC_URL == ''
    assert mod.Config.AI_PROXY_URL == ''
    assert mod.Config.HTTP_TIMEOUT == 15.0
    assert mod.Config.DEFAULT_LEAD_SOURCE == 'CSV Import'
    assert mod.Config.FOLLOW_UP_WINDOW_DAYS == 7
    assert mod.Config.CACHE_FILE == 'outreach_state.json'


def test_default_cache_path_under_project_data_dir():
    mod = _reload_config({})
    assert mod.config.cache_path.name == 'outreach_state.json'
    assert mod.config.cache_path.parent.name == 'data'


# ---------------------------------------------------------------------------
# Custom env var values are picked up
# ---------------------------------------------------------------------------

def test_custom_data_dir_and_cache_file(tmp_path):
    mod = _reload_config({'OUTREACH_DATA_DIR': str(tmp_path), 'OUTREACH_CACHE_FILE': 'state.json'})
    assert mod.config.cache_path == Path(tmp_path) / 'state.json'


def test_sync_url_trailing_slash_stripped():
    mod = _reload_config({'OUTREACH_SYNC_URL': 'https://proxy.example.workers.dev/'})
    assert mod.Config.SYNC_URL == 'https://proxy.example.workers.dev'


def test_custom_numbers():
    mod = _reload_config({'OUTREACH_HTTP_TIMEOUT': '2.5', 'OUTREACH_FOLLOW_UP_WINDOW_DAYS': '14'})
    assert mod.Config.HTTP_TIMEOUT == 2.5
    assert mod.Config.FOLLOW_UP_WINDOW_DAYS == 14


def test_custom_lead_source():
    mod = _reload_config({'OUTREACH_DEFAULT_LEAD_SOURCE': 'Albany Ski Expo'})
    assert mod.Config.DEFAULT_LEAD_SOURCE == 'Albany Ski Expo'


def test_invalid_number_raises():
    with pytest.raises(ValueError):
        _reload_config({'OUTREACH_FOLLOW_UP_WINDOW_DAYS': 'soon'})


# ---------------------------------------------------------------------------
# Plaintext HTTP warning
# ---------------------------------------------------------------------------

def test_non_local_http_sync_url_triggers_warning(caplog):
    with caplog.at_level(logging.WARNING, logger='outreach.config'):
        _reload_config({'OUTREACH_SYNC_URL': 'http://proxy.example.com'})
    assert any('HTTPS' in r.message for r in caplog.records)


def test_non_local_http_ai_url_triggers_warning(caplog):
    with caplog.at_level(logging.WARNING, logger='outreach.config'):
        _reload_config({'OUTREACH_AI_PROXY_URL': 'http://ai.example.com/ai'})
    assert any('OUTREACH_AI_PROXY_URL' in r.message for r in caplog.records)


@pytest.mark.parametrize('url', ['http://localhost:8787', 'http://127.0.0.1:8787', 'https://proxy.example.com'])
def test_local_or_https_no_warning(caplog, url):
    with caplog.at_level(logging.WARNING, logger='outreach.config'):
        _reload_config({'OUTREACH_SYNC_URL': url})
    assert not any('HTTPS' in r.message for r in caplog.records)
