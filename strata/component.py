"""
Component definitions and their validation.

A directory maps component names to definitions. Definitions arrive either as
``ComponentDef`` instances or as plain mappings::

    {
        "config": {"requires": ["profile"], "setup": load_config},
        "server": {"requires": ["config"], "setup": start_server},
    }

Every entry is checked once when a loader is built and normalized into a
``ComponentDef``; nothing downstream inspects raw definitions again.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterator, Optional, Sequence, Tuple

from .errors import InvalidComponent

__all__ = [
    "ComponentDef",
    "ComponentContext",
    "ComponentDirectory",
    "validate_component",
]


@dataclass(frozen=True, slots=True)
class ComponentDef:
    """
    Validated component definition.

    Attributes:
        name: Directory key of the component.
        setup: Callable taking a ``ComponentContext`` and returning the
            component value or an awaitable resolving to it.
        requires: Names of the components whose values the setup needs, in
            the order they appear in the context.
    """
    name: str
    setup: Callable[["ComponentContext"], Any]
    requires: Tuple[str, ...] = ()


def validate_component(definition: Any, name: str) -> ComponentDef:
    """
    Check a raw directory entry and return its normalized definition.

    Args:
        definition: ``ComponentDef`` or mapping with ``setup`` and optional
            ``requires`` keys.
        name: Directory key of the entry (used in error messages).

    Returns:
        The validated ``ComponentDef``.

    Raises:
        InvalidComponent: If the entry is not a mapping, has no callable
            setup, or has a requires list that is not a sequence of strings.
    """
    if isinstance(definition, ComponentDef):
        setup = definition.setup
        requires = definition.requires
    elif isinstance(definition, Mapping):
        setup = definition.get("setup")
        requires = definition.get("requires")
    else:
        raise InvalidComponent(name, "must be a mapping or ComponentDef")

    if not callable(setup):
        raise InvalidComponent(name, "is missing setup function")

    if requires is None:
        requires = ()
    # A bare string is a sequence of strings too, but never what was meant
    if isinstance(requires, (str, bytes)) or not isinstance(requires, (list, tuple)):
        raise InvalidComponent(name, "if present, requires must be a list")
    if not all(isinstance(entry, str) for entry in requires):
        raise InvalidComponent(name, "all items in requires must be strings")

    return ComponentDef(name=name, setup=setup, requires=tuple(requires))


class ComponentContext(Mapping):
    """
    Read-only view of resolved dependencies handed to a setup function.

    Supports both ``ctx["config"]`` and ``ctx.config``.
    """

    __slots__ = ("_values",)

    def __init__(self, values: Dict[str, Any]):
        self._values = values

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            return object.__getattribute__(self, name)
        try:
            return self._values[name]
        except KeyError:
            raise AttributeError(
                f"Component context has no dependency '{name}'"
            ) from None

    def __repr__(self) -> str:
        return f"ComponentContext({self._values!r})"


def _infer_name(func_name: str) -> str:
    for prefix in ("setup_", "make_"):
        if func_name.startswith(prefix):
            return func_name[len(prefix):]
    return func_name


class ComponentDirectory(Mapping):
    """
    Directory builder with decorator registration.

    Example:
        components = ComponentDirectory()

        @components.component(requires=["profile"])
        def setup_config(ctx):
            return read_config(ctx.profile)

        load = make_loader(components, virtual=["profile"])
    """

    def __init__(self):
        self._components: Dict[str, ComponentDef] = {}

    def register(
        self,
        name: str,
        setup: Callable[[ComponentContext], Any],
        requires: Sequence[str] = (),
    ) -> ComponentDef:
        """
        Register a setup function under ``name``.

        Raises:
            InvalidComponent: If the name is taken or the definition is malformed.
        """
        if name in self._components:
            raise InvalidComponent(name, "is already registered")
        definition = validate_component(
            {"setup": setup, "requires": list(requires)}, name
        )
        self._components[name] = definition
        return definition

    def component(
        self,
        name: Optional[str] = None,
        requires: Sequence[str] = (),
    ) -> Callable[[Callable], Callable]:
        """Decorator form of ``register``; the function is returned unchanged."""
        def decorator(func: Callable) -> Callable:
            self.register(name or _infer_name(func.__name__), func, requires)
            return func

        return decorator

    def __getitem__(self, name: str) -> ComponentDef:
        return self._components[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._components)

    def __len__(self) -> int:
        return len(self._components)
