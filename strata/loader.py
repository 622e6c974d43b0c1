"""
Loader - validates a component directory once and loads components on demand.

Example::

    load = make_loader({
        "config": {
            "requires": ["profile"],
            "setup": lambda ctx: read_config(ctx.profile),
        },
        "server": {
            "requires": ["config"],
            "setup": start_server,  # may be async
        },
    }, virtual=["profile"])

    server = await load("server", {"profile": "production"})

Loading ``"graphviz"`` returns the dependency graph in DOT format.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Any, Dict, Iterable, Optional, Tuple
import difflib
import logging

from .component import ComponentDef, validate_component
from .config import LoaderConfig
from .diagnostics import ConsoleDiagnosticListener, LoaderDiagnostics, LoaderEventType
from .errors import (
    InvalidComponent,
    MissingVirtualBinding,
    ReservedName,
    UndefinedComponent,
    VirtualNameCollision,
)
from .graph import DependencyGraph
from .session import LoadSession

__all__ = ["GRAPHVIZ", "Loader", "make_loader"]

logger = logging.getLogger("strata.loader")

# Built-in diagnostic target
GRAPHVIZ = "graphviz"


class Loader:
    """
    Validated component directory plus the ``load`` operation.

    Construction runs every structural check eagerly; a directory that fails
    any of them never yields a Loader. The validated directory and the
    computed order are read-only afterwards, and each ``load`` call works in
    its own ``LoadSession``.
    """

    __slots__ = ("_directory", "_virtual", "_graph", "_order", "_config", "_diagnostics")

    def __init__(
        self,
        directory: Mapping,
        virtual: Iterable[str] = (),
        *,
        config: Optional[LoaderConfig] = None,
        diagnostics: Optional[LoaderDiagnostics] = None,
    ):
        """
        Args:
            directory:   Mapping of component name to definition.
            virtual:     Names whose values must be passed to every load call.
            config:      Loader behaviour switches.
            diagnostics: Event sink; one is created when omitted.

        Raises:
            TypeError: If directory is not a mapping or virtual names are not strings.
            VirtualNameCollision, ReservedName, InvalidComponent,
            UndefinedComponent, CyclicDependency: If the directory is malformed.
        """
        if not isinstance(directory, Mapping):
            raise TypeError(
                f"Component directory must be a mapping, got {type(directory).__name__}"
            )
        if isinstance(virtual, (str, bytes)):
            raise TypeError("virtual must be an iterable of component names, not a string")
        virtual = tuple(dict.fromkeys(virtual))
        for name in virtual:
            if not isinstance(name, str):
                raise TypeError(f"Virtual component names must be strings, got {name!r}")

        self._config = config or LoaderConfig()
        self._diagnostics = diagnostics or LoaderDiagnostics()
        if self._config.trace:
            self._diagnostics.add_listener(ConsoleDiagnosticListener())

        if GRAPHVIZ in directory or GRAPHVIZ in virtual:
            raise ReservedName(GRAPHVIZ)
        collisions = set(directory) & set(virtual)
        if collisions:
            raise VirtualNameCollision(collisions)

        validated = self._validate(directory, virtual)
        self._virtual = virtual
        self._graph = self._build_graph(validated, virtual)
        self._order: Tuple[str, ...] = tuple(self._graph.get_resolution_order())

        validated[GRAPHVIZ] = ComponentDef(
            name=GRAPHVIZ, setup=lambda ctx: self.render_graph()
        )
        self._directory = MappingProxyType(validated)

        logger.debug("Loader ready: %s", ", ".join(self._order))
        self._diagnostics.emit(
            LoaderEventType.LOADER_READY,
            metadata={"components": len(validated) - 1, "order": self._order},
        )

    # ── Construction-time validation ─────────────────────────────────

    @staticmethod
    def _validate(directory: Mapping, virtual: Tuple[str, ...]) -> Dict[str, ComponentDef]:
        """Check every entry and every reference; return normalized definitions."""
        for name in directory:
            if not isinstance(name, str):
                raise InvalidComponent(repr(name), "name must be a string")

        validated = {
            name: validate_component(definition, name)
            for name, definition in directory.items()
        }

        known = set(validated) | set(virtual)
        for name, definition in validated.items():
            for dep in definition.requires:
                if dep not in known:
                    raise UndefinedComponent(
                        dep,
                        requested_by=name,
                        candidates=difflib.get_close_matches(dep, sorted(known), n=3),
                    )

        return validated

    @staticmethod
    def _build_graph(
        validated: Dict[str, ComponentDef], virtual: Tuple[str, ...]
    ) -> DependencyGraph:
        graph = DependencyGraph()
        for name, definition in validated.items():
            graph.add_component(name, definition.requires)
        for name in virtual:
            graph.add_component(name)
        return graph

    # ── Public API ───────────────────────────────────────────────────

    @property
    def directory(self) -> Mapping[str, ComponentDef]:
        """Validated definitions, including the built-in graphviz target."""
        return self._directory

    @property
    def virtual(self) -> Tuple[str, ...]:
        return self._virtual

    @property
    def order(self) -> Tuple[str, ...]:
        """Topological order, dependencies first."""
        return self._order

    @property
    def graph(self) -> DependencyGraph:
        return self._graph

    @property
    def config(self) -> LoaderConfig:
        return self._config

    @property
    def diagnostics(self) -> LoaderDiagnostics:
        return self._diagnostics

    def render_graph(self) -> str:
        """DOT description of the directory, as returned by the graphviz target."""
        return self._graph.render_dot(list(self._order))

    def session(self, options: Optional[Mapping[str, Any]] = None) -> LoadSession:
        """
        Open a session that can load several targets with one memoization table.

        Raises:
            TypeError: If options is not a mapping.
            MissingVirtualBinding: If a virtual component has no value in options.
        """
        return self._open(options)

    async def load(self, target: str, options: Optional[Mapping[str, Any]] = None) -> Any:
        """
        Load ``target`` in a fresh session.

        Args:
            target: Directory entry, virtual component or ``"graphviz"``.
            options: Values for virtual components and overrides for any
                other component.

        Returns:
            The component value.

        Raises:
            TypeError: If target is not a string or options not a mapping.
            UndefinedComponent: If target names nothing this loader knows.
            MissingVirtualBinding: If a virtual component has no value.
            SetupFailure: If a setup function along the way raised.
        """
        if not isinstance(target, str):
            raise TypeError(f"Target must be a component name, got {target!r}")
        if target not in self._directory and target not in self._virtual:
            raise UndefinedComponent(
                target,
                candidates=difflib.get_close_matches(
                    target, sorted([*self._directory, *self._virtual]), n=3
                ),
            )

        session = self._open(options, target)
        self._diagnostics.emit(LoaderEventType.SESSION_START, component=target)
        return await session.load(target)

    async def __call__(self, target: str, options: Optional[Mapping[str, Any]] = None) -> Any:
        return await self.load(target, options)

    def _open(
        self, options: Optional[Mapping[str, Any]], target: Optional[str] = None
    ) -> LoadSession:
        if options is None:
            options = {}
        if not isinstance(options, Mapping):
            raise TypeError(f"Load options must be a mapping, got {type(options).__name__}")

        missing = [name for name in self._virtual if name not in options]
        if missing:
            raise MissingVirtualBinding(missing, target=target)

        return LoadSession(
            self._directory,
            dict(options),
            concurrent=self._config.concurrent,
            diagnostics=self._diagnostics,
        )

    def __repr__(self) -> str:
        return (
            f"<Loader components={len(self._directory) - 1} "
            f"virtual={list(self._virtual)}>"
        )


def make_loader(
    directory: Mapping,
    virtual: Iterable[str] = (),
    *,
    config: Optional[LoaderConfig] = None,
    diagnostics: Optional[LoaderDiagnostics] = None,
) -> Loader:
    """
    Validate ``directory`` and return its load function.

    Returns:
        A ``Loader``; ``await loader(target, options)`` builds a component.

    Raises:
        LoaderError: If the directory is malformed (see ``Loader``).
    """
    return Loader(directory, virtual, config=config, diagnostics=diagnostics)
