"""
Graph analysis and cycle detection for component directories.
"""

from typing import Dict, Iterable, List, Set, Optional
from collections import deque

from .errors import CyclicDependency


class DependencyGraph:
    """
    Build and analyze the component dependency graph.

    Nodes are directory entries and virtual components; an edge runs from a
    component to each name it requires. Uses Kahn's algorithm for ordering
    and Tarjan's algorithm to report cycles.
    """

    def __init__(self):
        self.adj_list: Dict[str, List[str]] = {}  # name -> [dependencies]
        self._index_counter = 0
        self._stack: List[str] = []
        self._lowlinks: Dict[str, int] = {}
        self._index: Dict[str, int] = {}
        self._on_stack: Set[str] = set()
        self._sccs: List[List[str]] = []  # Strongly connected components

    def add_component(self, name: str, dependencies: Iterable[str] = ()) -> None:
        """
        Add a node to the graph.

        Args:
            name: Component name
            dependencies: Names the component requires
        """
        self.adj_list[name] = list(dependencies)

    def __contains__(self, name: str) -> bool:
        return name in self.adj_list

    def __len__(self) -> int:
        return len(self.adj_list)

    def detect_cycles(self) -> List[List[str]]:
        """
        Detect cycles using Tarjan's algorithm.

        Returns:
            Strongly connected components that form cycles, self-loops included
        """
        self._index_counter = 0
        self._stack = []
        self._lowlinks = {}
        self._index = {}
        self._on_stack = set()
        self._sccs = []

        for name in self.adj_list:
            if name not in self._index:
                self._strongconnect(name)

        return [
            list(reversed(scc)) for scc in self._sccs
            if len(scc) > 1 or scc[0] in self.adj_list[scc[0]]
        ]

    def _strongconnect(self, name: str) -> None:
        """Tarjan's algorithm recursive helper."""
        self._index[name] = self._index_counter
        self._lowlinks[name] = self._index_counter
        self._index_counter += 1
        self._stack.append(name)
        self._on_stack.add(name)

        for dep in self.adj_list.get(name, []):
            if dep not in self.adj_list:
                # Undefined references are rejected before ordering
                continue

            if dep not in self._index:
                self._strongconnect(dep)
                self._lowlinks[name] = min(self._lowlinks[name], self._lowlinks[dep])
            elif dep in self._on_stack:
                self._lowlinks[name] = min(self._lowlinks[name], self._index[dep])

        if self._lowlinks[name] == self._index[name]:
            scc = []
            while True:
                w = self._stack.pop()
                self._on_stack.remove(w)
                scc.append(w)
                if w == name:
                    break
            self._sccs.append(scc)

    def get_resolution_order(self) -> List[str]:
        """
        Get topological sort of components, dependencies first.

        Independent nodes keep the order they were added in, so identical
        input always yields the identical order.

        Returns:
            List of component names

        Raises:
            CyclicDependency: If a cycle is detected
        """
        # Kahn's algorithm over "dependency -> dependent" edges
        pending = {name: 0 for name in self.adj_list}
        dependents: Dict[str, List[str]] = {name: [] for name in self.adj_list}

        for name, deps in self.adj_list.items():
            for dep in dict.fromkeys(deps):
                if dep in self.adj_list:
                    pending[name] += 1
                    dependents[dep].append(name)

        queue = deque(name for name, count in pending.items() if count == 0)
        result = []

        while queue:
            name = queue.popleft()
            result.append(name)

            for dependent in dependents[name]:
                pending[dependent] -= 1
                if pending[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(self.adj_list):
            cycles = self.detect_cycles()
            if cycles:
                raise CyclicDependency(cycles[0])
            unordered = [name for name in self.adj_list if name not in result]
            raise CyclicDependency(unordered)

        return result

    def render_dot(self, order: Optional[List[str]] = None) -> str:
        """
        Render the graph in Graphviz DOT format.

        Edges are drawn back-to-front: from a component to each dependency,
        with ``dir=back`` so arrows point at the dependent.

        Args:
            order: Node order (defaults to the resolution order)

        Returns:
            DOT string
        """
        if order is None:
            order = self.get_resolution_order()

        lines = [
            "// This graph shows all dependencies for this loader.",
            "// You might find http://www.webgraphviz.com/ useful!",
            "",
            "digraph G {",
        ]

        for name in order:
            lines.append(f'  "{name}"')
            for dep in self.adj_list.get(name, []):
                lines.append(f'  "{name}" -> "{dep}" [dir=back]')

        lines.append("}")
        return "\n".join(lines)

    def get_tree_view(self, root: Optional[str] = None) -> str:
        """
        Get tree view of dependencies.

        Args:
            root: Optional root name (if None, show every component nothing requires)

        Returns:
            Tree view as string
        """
        if root:
            return self._tree_view_recursive(root, "", set())

        required = set()
        for deps in self.adj_list.values():
            required.update(deps)

        roots = [name for name in self.adj_list if name not in required]

        return "\n".join(
            self._tree_view_recursive(name, "", set()) for name in roots
        )

    def _tree_view_recursive(self, name: str, prefix: str, visited: Set[str]) -> str:
        """Recursive helper for tree view."""
        if name in visited:
            return f"{prefix}├── {name} (circular)"

        if name not in self.adj_list:
            return f"{prefix}├── {name} (missing)"

        visited.add(name)

        lines = [f"{prefix}├── {name}"]

        deps = self.adj_list[name]
        for i, dep in enumerate(deps):
            is_last = i == len(deps) - 1
            new_prefix = prefix + ("    " if is_last else "│   ")
            lines.append(self._tree_view_recursive(dep, new_prefix, visited.copy()))

        return "\n".join(lines)
