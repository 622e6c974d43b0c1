"""
Strata - dependency-injection component loader.

Declare components as setup functions with named requirements, then load any
of them on demand. Requirements are resolved recursively, each component is
built at most once per load call, and structural problems (unknown names,
cycles, malformed definitions) are reported when the loader is created.

Key Features:
- Sync and async setup functions, resolved uniformly
- Concurrent construction of independent requirements
- Virtual components supplied per load call, overrides for any component
- Graphviz rendering of the dependency graph via the ``graphviz`` target
"""

__version__ = "1.0.0"

from .component import (
    ComponentDef,
    ComponentContext,
    ComponentDirectory,
    validate_component,
)

from .loader import (
    GRAPHVIZ,
    Loader,
    make_loader,
)

from .session import (
    LoadSession,
    ComponentState,
    ComponentStatus,
)

from .graph import (
    DependencyGraph,
)

from .config import (
    LoaderConfig,
    ConfigLoader,
    ConfigError,
)

from .diagnostics import (
    LoaderDiagnostics,
    LoaderEvent,
    LoaderEventType,
    ConsoleDiagnosticListener,
)

from .errors import (
    LoaderError,
    InvalidComponent,
    UndefinedComponent,
    CyclicDependency,
    VirtualNameCollision,
    ReservedName,
    MissingVirtualBinding,
    SetupFailure,
)

__all__ = [
    # Components
    "ComponentDef",
    "ComponentContext",
    "ComponentDirectory",
    "validate_component",

    # Loading
    "GRAPHVIZ",
    "Loader",
    "make_loader",
    "LoadSession",
    "ComponentState",
    "ComponentStatus",

    # Graph
    "DependencyGraph",

    # Config
    "LoaderConfig",
    "ConfigLoader",
    "ConfigError",

    # Diagnostics
    "LoaderDiagnostics",
    "LoaderEvent",
    "LoaderEventType",
    "ConsoleDiagnosticListener",

    # Errors
    "LoaderError",
    "InvalidComponent",
    "UndefinedComponent",
    "CyclicDependency",
    "VirtualNameCollision",
    "ReservedName",
    "MissingVirtualBinding",
    "SetupFailure",
]
