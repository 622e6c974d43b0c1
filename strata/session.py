"""
LoadSession - memoized, concurrency-safe component construction.

A session owns one memoization table keyed by component name. Each entry
moves through ``UNRESOLVED -> PENDING -> SETTLED | FAILED`` and is never
rebuilt once claimed:

- **Claim before recurse**: the task that builds a component is created and
  stored in the table synchronously, before anything awaits, so every path
  that reaches the same component shares one in-flight handle.
- **Fan-in sharing**: if A→C and B→C, C's setup runs once and both receive
  the identical value.
- **Parallel siblings**: independent requirements are gathered.
- **Overrides**: values passed in options are seeded as settled entries and
  pre-empt the component's own setup.

Sessions are bound to the event loop of their first ``load`` call.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Mapping, Optional
import asyncio
import inspect
import logging
import time

from .component import ComponentContext, ComponentDef
from .diagnostics import LoaderDiagnostics, LoaderEventType
from .errors import SetupFailure, UndefinedComponent

logger = logging.getLogger("strata.session")


class ComponentStatus(Enum):
    """Lifecycle of a component within one session."""
    UNRESOLVED = "unresolved"
    PENDING = "pending"
    SETTLED = "settled"
    FAILED = "failed"


class ComponentState:
    """Memoization table entry for one component."""

    __slots__ = ("name", "status", "value", "error", "future")

    def __init__(self, name: str, status: ComponentStatus = ComponentStatus.UNRESOLVED):
        self.name = name
        self.status = status
        self.value: Any = None
        self.error: Optional[BaseException] = None
        self.future: Optional[asyncio.Future] = None

    @classmethod
    def bound(cls, name: str, value: Any) -> "ComponentState":
        """Entry for a value supplied up front."""
        state = cls(name, ComponentStatus.SETTLED)
        state.value = value
        return state

    def handle(self) -> asyncio.Future:
        """Deferred value shared by every dependent of this component."""
        if self.future is None:
            # Only bound entries reach here; built entries get their task on claim
            self.future = asyncio.get_running_loop().create_future()
            self.future.set_result(self.value)
        return self.future

    def _on_done(self, future: asyncio.Future) -> None:
        if future.cancelled():
            self.status = ComponentStatus.FAILED
            self.error = asyncio.CancelledError()
            return
        # Retrieving the exception here keeps asyncio from reporting it as lost
        error = future.exception()
        if error is not None:
            self.status = ComponentStatus.FAILED
            self.error = error
            logger.debug("Component '%s' failed: %s", self.name, error)
        else:
            self.status = ComponentStatus.SETTLED
            self.value = future.result()
            logger.debug("Component '%s' settled", self.name)

    def __repr__(self) -> str:
        return f"<ComponentState {self.name} {self.status.value}>"


class LoadSession:
    """
    One memoization scope over a validated directory.

    Usage::

        session = LoadSession(directory, {"profile": "test"})
        server = await session.load("server")
        config = await session.load("config")  # already built for server
    """

    __slots__ = ("_directory", "_table", "_concurrent", "_diagnostics")

    def __init__(
        self,
        directory: Mapping[str, ComponentDef],
        options: Optional[Mapping[str, Any]] = None,
        *,
        concurrent: bool = True,
        diagnostics: Optional[LoaderDiagnostics] = None,
    ):
        """
        Args:
            directory:   Validated component definitions (not copied, never mutated).
            options:     Pre-supplied values; each one overrides its component.
            concurrent:  Gather sibling requirements instead of building them
                         one after another in declared order.
            diagnostics: Event sink shared with the owning loader.
        """
        self._directory = directory
        self._concurrent = concurrent
        self._diagnostics = diagnostics or LoaderDiagnostics()
        self._table: Dict[str, ComponentState] = {}

        for name, value in (options or {}).items():
            self._table[name] = ComponentState.bound(name, value)
            self._diagnostics.emit(LoaderEventType.BINDING, component=name)

    # ── Public API ───────────────────────────────────────────────────

    async def load(self, name: str) -> Any:
        """
        Resolve ``name`` and every component it transitively requires.

        Raises:
            UndefinedComponent: If the name is neither bound nor defined.
            SetupFailure: If the component or one of its dependencies failed.
        """
        if name not in self._table and name not in self._directory:
            raise UndefinedComponent(name)
        # Shielded: a cancelled caller must not abort the shared build
        return await asyncio.shield(self._claim(name))

    def state(self, name: str) -> ComponentStatus:
        """Current status of ``name`` in this session."""
        entry = self._table.get(name)
        return entry.status if entry is not None else ComponentStatus.UNRESOLVED

    def entry(self, name: str) -> Optional[ComponentState]:
        """Table entry for ``name``, or None if nothing claimed it yet."""
        return self._table.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._table

    # ── Internal ─────────────────────────────────────────────────────

    def _claim(self, name: str) -> asyncio.Future:
        """Return the shared handle for ``name``, scheduling its build once."""
        entry = self._table.get(name)
        if entry is not None:
            return entry.handle()

        definition = self._directory.get(name)
        if definition is None:
            raise UndefinedComponent(name)
        entry = ComponentState(name, ComponentStatus.PENDING)
        # No await between lookup and insert: the claim is atomic on the loop
        entry.future = asyncio.get_running_loop().create_task(
            self._build(definition), name=f"strata:{name}"
        )
        entry.future.add_done_callback(entry._on_done)
        self._table[name] = entry
        return entry.future

    async def _build(self, definition: ComponentDef) -> Any:
        """Gather requirements, then run the setup function."""
        requires = definition.requires
        if not requires:
            values = []
        elif self._concurrent:
            values = await asyncio.gather(
                *(asyncio.shield(self._claim(dep)) for dep in requires)
            )
        else:
            values = [await asyncio.shield(self._claim(dep)) for dep in requires]

        context = ComponentContext(dict(zip(requires, values)))
        name = definition.name

        self._diagnostics.emit(LoaderEventType.RESOLUTION_START, component=name)
        logger.debug("Setting up component '%s'", name)
        start = time.perf_counter()

        try:
            value = definition.setup(context)
            if inspect.isawaitable(value):
                value = await value
        except Exception as exc:
            failure = SetupFailure(name, exc)
            self._diagnostics.emit(
                LoaderEventType.RESOLUTION_FAILURE,
                component=name,
                duration=time.perf_counter() - start,
                error=failure,
            )
            raise failure from exc

        self._diagnostics.emit(
            LoaderEventType.RESOLUTION_SUCCESS,
            component=name,
            duration=time.perf_counter() - start,
        )
        return value
