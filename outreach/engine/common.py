"""Identifier and timestamp helpers shared by the engine modules."""

import uuid
from datetime import datetime, timezone


def new_id() -> str:
    """Opaque, stable record identifier."""
    return uuid.uuid4().hex


def now_iso() -> str:
    """UTC timestamp in the shared document's format, e.g. 2026-10-18T09:30:00.000Z."""
    return datetime.now(timezone.utc).isoformat(timespec='milliseconds').replace('+00:00', 'Z')
