"""Fire-and-forget change events emitted by mutating operations"""

import json
import logging
import time
from typing import Any, Dict, List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class EventType:
    REPOSITORY_CLONED = "repository_cloned"
    ISSUES_FETCHED = "issues_fetched"
    FILE_CREATED = "file_created"
    FILE_MODIFIED = "file_modified"
    FILE_DELETED = "file_deleted"
    DIRECTORY_CREATED = "directory_created"
    DIRECTORY_DELETED = "directory_deleted"


class EventSink(Protocol):
    def emit(self, event_type: str, payload: Dict[str, Any]) -> None: ...


class LoggingEventSink:
    """Writes each event as one JSON log line."""

    def __init__(self, logger_name: str = "mcp_server_gitfs.events"):
        self._logger = logging.getLogger(logger_name)

    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        event = {"type": event_type, "timestamp": int(time.time() * 1000), **payload}
        self._logger.info(json.dumps(event, default=str))


class RecordingEventSink:
    """Keeps events in memory, in emission order."""

    def __init__(self):
        self.events: List[Tuple[str, Dict[str, Any]]] = []

    def emit(self, event_type: str, payload: Dict[str, Any]) -> None:
        self.events.append((event_type, dict(payload)))

    def types(self) -> List[str]:
        return [event_type for event_type, _ in self.events]


def publish_event(sink: Optional[EventSink], event_type: str, payload: Dict[str, Any]) -> None:
    """Deliver an event; sink failures are logged and never reach the caller."""
    if sink is None:
        return
    try:
        sink.emit(event_type, payload)
    except Exception as e:
        logger.warning(f"⚠️ Failed to deliver '{event_type}' event: {e}")
