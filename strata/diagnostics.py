"""
Loader diagnostics - observability and event tracking for load sessions.
"""

import time
from typing import Any, Dict, List, Optional, Protocol
from enum import Enum
import dataclasses
import logging

logger = logging.getLogger("strata.diagnostics")


class LoaderEventType(Enum):
    """Types of loader events."""
    LOADER_READY = "loader_ready"
    SESSION_START = "session_start"
    BINDING = "binding"
    RESOLUTION_START = "resolution_start"
    RESOLUTION_SUCCESS = "resolution_success"
    RESOLUTION_FAILURE = "resolution_failure"


@dataclasses.dataclass
class LoaderEvent:
    """A diagnostic event emitted by a loader or one of its sessions."""
    type: LoaderEventType
    timestamp: float = dataclasses.field(default_factory=time.time)
    component: Optional[str] = None
    duration: Optional[float] = None
    error: Optional[BaseException] = None
    metadata: Dict[str, Any] = dataclasses.field(default_factory=dict)


class DiagnosticListener(Protocol):
    """Interface for loader diagnostic listeners."""
    def on_event(self, event: LoaderEvent) -> None:
        """Called when a loader event occurs."""
        ...


class ConsoleDiagnosticListener:
    """Diagnostic listener that writes events through logging."""
    def __init__(self, log_level: int = logging.DEBUG):
        self.log_level = log_level

    def on_event(self, event: LoaderEvent) -> None:
        if event.type == LoaderEventType.LOADER_READY:
            logger.log(
                self.log_level,
                "Loader ready with %d components (order: %s)",
                event.metadata.get("components", 0),
                ", ".join(event.metadata.get("order", ())),
            )
        elif event.type == LoaderEventType.SESSION_START:
            logger.log(self.log_level, "Loading '%s'...", event.component)
        elif event.type == LoaderEventType.BINDING:
            logger.log(self.log_level, "Bound '%s' from options", event.component)
        elif event.type == LoaderEventType.RESOLUTION_START:
            logger.log(self.log_level, "Setting up '%s'...", event.component)
        elif event.type == LoaderEventType.RESOLUTION_SUCCESS:
            logger.log(
                self.log_level, "✓ Set up '%s' in %.4fs", event.component, event.duration
            )
        elif event.type == LoaderEventType.RESOLUTION_FAILURE:
            logger.error("✗ Failed to set up '%s': %s", event.component, event.error)


class LoaderDiagnostics:
    """Coordinator for loader diagnostic listeners."""
    def __init__(self):
        self._listeners: List[DiagnosticListener] = []

    def add_listener(self, listener: DiagnosticListener) -> None:
        """Add a diagnostic listener."""
        self._listeners.append(listener)

    @property
    def enabled(self) -> bool:
        return bool(self._listeners)

    def emit(self, event_type: LoaderEventType, **kwargs) -> None:
        """Emit a diagnostic event to all listeners."""
        if not self._listeners:
            return
        event = LoaderEvent(type=event_type, **kwargs)
        for listener in self._listeners:
            try:
                listener.on_event(event)
            except Exception as e:
                # A broken listener must not fail the load
                logger.error(f"Diagnostic listener error: {e}")
