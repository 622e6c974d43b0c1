"""
Testing utilities for component directories.
"""

from typing import Any, List, Optional, Sequence
import asyncio

from .component import ComponentContext, ComponentDef
from .diagnostics import LoaderEvent, LoaderEventType


class MockComponent:
    """
    Setup function stand-in for testing.

    Tracks calls for assertions.
    """

    def __init__(
        self,
        value: Any = None,
        *,
        error: Optional[BaseException] = None,
        delay: Optional[float] = None,
    ):
        """
        Args:
            value: Value returned by every call.
            error: Raised instead of returning when set.
            delay: Makes the setup asynchronous, sleeping this many seconds.
        """
        self.value = value
        self.error = error
        self.delay = delay
        self.calls: List[ComponentContext] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def __call__(self, ctx: ComponentContext) -> Any:
        if self.delay is not None:
            return self._call_async(ctx)
        return self._call(ctx)

    def _call(self, ctx: ComponentContext) -> Any:
        self.calls.append(ctx)
        if self.error is not None:
            raise self.error
        return self.value

    async def _call_async(self, ctx: ComponentContext) -> Any:
        await asyncio.sleep(self.delay)
        return self._call(ctx)

    def reset(self) -> None:
        """Reset tracking."""
        self.calls.clear()


def mock_component(
    value: Any = None,
    requires: Sequence[str] = (),
    *,
    name: str = "mock",
    error: Optional[BaseException] = None,
    delay: Optional[float] = None,
) -> ComponentDef:
    """
    Build a definition whose setup is a MockComponent.

    The mock is reachable as ``definition.setup``.
    """
    return ComponentDef(
        name=name,
        setup=MockComponent(value, error=error, delay=delay),
        requires=tuple(requires),
    )


class RecordingListener:
    """Diagnostic listener that keeps every event."""

    def __init__(self):
        self.events: List[LoaderEvent] = []

    def on_event(self, event: LoaderEvent) -> None:
        self.events.append(event)

    def of_type(self, event_type: LoaderEventType) -> List[LoaderEvent]:
        return [e for e in self.events if e.type == event_type]

    def components(self, event_type: LoaderEventType) -> List[Optional[str]]:
        return [e.component for e in self.of_type(event_type)]
