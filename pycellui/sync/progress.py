"""Structured events emitted by the sync engine.

The engine never prints. It reports what happens to each component
through a ``SyncReporter``, and presentation layers (rich progress,
JSON output, tests) subscribe with a callback.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SyncEvent(str, Enum):
    """Kinds of engine events."""

    RESOLVED = "resolved"
    """Dependency resolution finished"""

    FETCHING = "fetching"
    """A component is being fetched"""

    INSTALLED = "installed"
    """A component's files were written"""

    SKIPPED = "skipped"
    """A component was left untouched"""

    FAILED = "failed"
    """A component could not be processed"""

    WARNING = "warning"
    """Non-fatal condition worth surfacing"""


@dataclass
class SyncEventInfo:
    """Payload of a single engine event."""

    event: SyncEvent
    """Event kind"""

    component: Optional[str] = None
    """Component name, when the event concerns one component"""

    message: str = ""
    """Human-readable detail"""

    components: list[str] = field(default_factory=list)
    """Component names (for RESOLVED: the resolved order)"""

    files: list[str] = field(default_factory=list)
    """File names written (for INSTALLED)"""

    error: Optional[Exception] = None
    """Exception behind a FAILED event"""


class Confirmation(str, Enum):
    """User decision passed into the engine before it writes."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"


ConfirmCallback = Callable[[list[str]], Confirmation]


class SyncReporter:
    """Collects engine events and forwards them to a callback.

    Events are kept in ``events`` so callers can inspect them after a run.
    """

    def __init__(self, callback: Optional[Callable[[SyncEventInfo], None]] = None):
        """Initialize reporter.

        Args:
            callback: Called synchronously for every event
        """
        self.callback = callback
        self.events: list[SyncEventInfo] = []

    def emit(self, info: SyncEventInfo) -> None:
        """Record an event and forward it to the callback."""
        self.events.append(info)
        logger.debug(
            "event=%s component=%s %s", info.event.value, info.component, info.message
        )
        if self.callback is not None:
            self.callback(info)

    def resolved(self, names: list[str]) -> None:
        self.emit(SyncEventInfo(SyncEvent.RESOLVED, components=list(names)))

    def fetching(self, name: str) -> None:
        self.emit(SyncEventInfo(SyncEvent.FETCHING, component=name))

    def installed(self, name: str, files: list[str], message: str = "") -> None:
        self.emit(
            SyncEventInfo(
                SyncEvent.INSTALLED, component=name, files=list(files), message=message
            )
        )

    def skipped(self, name: str, message: str) -> None:
        self.emit(SyncEventInfo(SyncEvent.SKIPPED, component=name, message=message))

    def failed(self, name: str, error: Exception) -> None:
        self.emit(
            SyncEventInfo(
                SyncEvent.FAILED, component=name, message=str(error), error=error
            )
        )

    def warning(self, message: str, name: Optional[str] = None) -> None:
        self.emit(SyncEventInfo(SyncEvent.WARNING, component=name, message=message))

    def of_kind(self, event: SyncEvent) -> list[SyncEventInfo]:
        """Return recorded events of one kind."""
        return [info for info in self.events if info.event == event]
