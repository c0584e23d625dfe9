"""
Event Bus - Decoupled Module Communication
Engine and store modules emit events; the CLI and tests listen.
"""

from typing import Any, Callable, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class EventBus:
    """
    Simple synchronous event bus.
    Handlers run in registration order; a failing handler is logged and skipped.
    """

    def __init__(self):
        self._handlers: Dict[str, List[Callable]] = {}

    def on(self, event_name: str, handler: Callable):
        """
        Register a handler for an event.

        Args:
            event_name: Name of the event to listen for
            handler: Callable that receives the event_data dict
        """
        self._handlers.setdefault(event_name, []).append(handler)
        logger.debug(f"Registered handler for event '{event_name}': {getattr(handler, '__name__', handler)}")

    def emit(self, event_name: str, event_data: Optional[Dict[str, Any]] = None):
        """
        Emit an event to all registered handlers.

        Args:
            event_name: Name of the event
            event_data: Optional dict of data to pass to handlers
        """
        if event_data is None:
            event_data = {}

        logger.debug(f"Emitting event '{event_name}' with keys: {sorted(event_data)}")

        for handler in list(self._handlers.get(event_name, [])):
            try:
                handler(event_data)
            except Exception as e:
                logger.error(
                    f"Error in handler {getattr(handler, '__name__', handler)} for event '{event_name}': {e}"
                )

    def clear(self):
        """Clear all handlers (useful for testing)."""
        self._handlers.clear()


# Singleton instance
bus = EventBus()


# =============================================================================
# STANDARD EVENTS
# =============================================================================

# Contacts
EVENT_CONTACT_CREATED = 'contact_created'
EVENT_CONTACT_UPDATED = 'contact_updated'
EVENT_CONTACT_DELETED = 'contact_deleted'
EVENT_CONTACTS_IMPORTED = 'contacts_imported'

# Activities and tasks
EVENT_ACTIVITY_LOGGED = 'activity_logged'
EVENT_ACTIVITY_DELETED = 'activity_deleted'
EVENT_TASK_CREATED = 'task_created'
EVENT_TASK_UPDATED = 'task_updated'
EVENT_TASK_DELETED = 'task_deleted'

# Projects
EVENT_PROJECT_CREATED = 'project_created'
EVENT_PROJECT_UPDATED = 'project_updated'

# Persistence
EVENT_STATE_SAVED = 'state_saved'
EVENT_SYNC_FAILED = 'sync_failed'
