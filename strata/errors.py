"""
Loader error types with rich diagnostics.

Construction-time errors (raised while building a loader):
    InvalidComponent, UndefinedComponent, CyclicDependency,
    VirtualNameCollision, ReservedName

Runtime errors (raised by a single load call):
    MissingVirtualBinding, SetupFailure
"""

from typing import Iterable, List, Optional


class LoaderError(Exception):
    """Base exception for loader errors."""
    pass


class InvalidComponent(LoaderError):
    """Malformed component definition."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid component definition: {name} {reason}")


class UndefinedComponent(LoaderError):
    """A component name that is neither defined nor declared virtual."""

    def __init__(
        self,
        name: str,
        requested_by: Optional[str] = None,
        candidates: Optional[List[str]] = None,
    ):
        self.name = name
        self.requested_by = requested_by
        self.candidates = candidates or []

        if requested_by:
            msg = f"Cannot require undefined component: {name}"
            msg += f"\nRequired by: {requested_by}"
        else:
            msg = f"Cannot load undefined component: {name}"

        if self.candidates:
            msg += "\n\nDid you mean:"
            for candidate in self.candidates:
                msg += f"\n  - {candidate}"

        msg += "\n\nSuggested fixes:"
        msg += f"\n  - Add a component named '{name}' to the directory"
        msg += f"\n  - Declare '{name}' as a virtual component"
        msg += "\n  - Check for typos in the requires list"

        super().__init__(msg)


class CyclicDependency(LoaderError):
    """The dependency graph contains a cycle."""

    def __init__(self, cycle: List[str]):
        self.cycle = cycle

        msg = "Detected dependency cycle:"
        for token in cycle:
            msg += f"\n  {token} ->"
        if cycle:
            msg += f"\n  {cycle[0]} (circular)"

        msg += "\n\nSuggested fixes:"
        msg += "\n  - Extract the shared part into a separate component"
        msg += "\n  - Supply one side of the cycle as a virtual component"

        super().__init__(msg)


class VirtualNameCollision(LoaderError):
    """Virtual component names overlap directory entry names."""

    def __init__(self, names: Iterable[str]):
        self.names = sorted(names)
        super().__init__(
            f"Virtual components {self.names} are also defined in the directory; "
            f"a virtual component must not have a setup function"
        )


class ReservedName(LoaderError):
    """The built-in diagnostic component name was redefined."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"{name} is reserved for an internal component")


class MissingVirtualBinding(LoaderError):
    """Declared virtual components have no value in the load options."""

    def __init__(self, names: Iterable[str], target: Optional[str] = None):
        self.names = list(names)
        self.target = target

        msg = f"Missing values for virtual components: {', '.join(self.names)}"
        if target:
            msg += f"\nWhile loading: {target}"
        msg += "\n\nSuggested fix:"
        msg += "\n  Pass every virtual component in options, e.g. "
        msg += "load(target, {" + ", ".join(f"'{n}': ..." for n in self.names) + "})"

        super().__init__(msg)


class SetupFailure(LoaderError):
    """A component's setup function raised."""

    def __init__(self, component: str, cause: BaseException):
        self.component = component
        self.cause = cause
        super().__init__(
            f"Setup of component '{component}' failed: "
            f"{type(cause).__name__}: {cause}"
        )
