"""
Outreach Tracker Configuration
Loads settings from environment variables with sensible defaults.
"""

import logging
import os
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

_logger = logging.getLogger(__name__)

_PROJECT_ROOT = Path(__file__).parent.parent

# Load .env file
env_path = _PROJECT_ROOT / '.env'
load_dotenv(env_path)

_LOCAL_HOSTS = {'localhost', '127.0.0.1', '::1'}


def _warn_if_plaintext(name: str, url: str) -> None:
    """Contact data leaves the machine on these URLs; flag non-local plain HTTP."""
    if not url:
        return
    parsed = urlparse(url)
    if parsed.scheme == 'http' and parsed.hostname not in _LOCAL_HOSTS:
        _logger.warning(
            f"{name} uses plain HTTP to a non-local host ({parsed.hostname}); "
            "contact data will be sent unencrypted. Use HTTPS."
        )


class Config:
    """Application configuration."""

    # Local cache
    DATA_DIR = Path(os.getenv('OUTREACH_DATA_DIR', str(_PROJECT_ROOT / 'data')))
    CACHE_FILE = os.getenv('OUTREACH_CACHE_FILE', 'outreach_state.json')

    # Shared key-value store behind the edge proxy; empty disables remote sync
    SYNC_URL = os.getenv('OUTREACH_SYNC_URL', '').rstrip('/')
    _warn_if_plaintext('OUTREACH_SYNC_URL', SYNC_URL)

    # AI proxy (OpenAI Responses passthrough)
    AI_PROXY_URL = os.getenv('OUTREACH_AI_PROXY_URL', '')
    _warn_if_plaintext('OUTREACH_AI_PROXY_URL', AI_PROXY_URL)

    HTTP_TIMEOUT = float(os.getenv('OUTREACH_HTTP_TIMEOUT', '15'))

    # Import defaults
    DEFAULT_LEAD_SOURCE = os.getenv('OUTREACH_DEFAULT_LEAD_SOURCE', 'CSV Import')

    # Follow-up queue horizon (days)
    FOLLOW_UP_WINDOW_DAYS = int(os.getenv('OUTREACH_FOLLOW_UP_WINDOW_DAYS', '7'))

    @property
    def cache_path(self) -> Path:
        return self.DATA_DIR / self.CACHE_FILE


# Singleton instance
config = Config()
