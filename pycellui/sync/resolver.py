"""Dependency resolution over the registry graph."""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Optional

from ..models import RegistryItem

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnresolvedDependency:
    """A component name that is not present in the catalog."""

    name: str
    """Missing component name"""

    required_by: Optional[str] = None
    """Component whose registryDependencies name it (None if requested directly)"""

    def __str__(self) -> str:
        if self.required_by is None:
            return self.name
        return f"{self.name} (required by {self.required_by})"


@dataclass
class ResolutionResult:
    """Outcome of dependency resolution.

    Exactly one of ``resolved`` and ``cycle`` is meaningful: when a cycle
    was found ``resolved`` is empty.
    """

    resolved: list[str] = field(default_factory=list)
    """Component names, dependencies strictly before dependents"""

    cycle: Optional[list[str]] = None
    """Names demonstrating a circular dependency, first and last equal"""

    unresolved: list[UnresolvedDependency] = field(default_factory=list)
    """Names that could not be found in the catalog"""

    @property
    def has_cycle(self) -> bool:
        return self.cycle is not None


class _Mark(Enum):
    IN_PROGRESS = 1
    DONE = 2


def resolve_dependencies(
    requested: Iterable[str],
    catalog: list[RegistryItem],
) -> ResolutionResult:
    """Expand requested names into an installable, dependency-ordered list.

    Depth-first traversal with three-state marking. Each name is emitted
    after all of its registry dependencies, and exactly once, at its first
    discovery. Requested names are traversed in the order given.

    Reaching a name that is still in progress is a back-edge: resolution is
    aborted and the chain from that name's first occurrence through the
    repeated name is returned as ``cycle``.

    Names missing from the catalog are not traversed and not emitted; they
    are reported in ``unresolved`` so the caller can decide whether that is
    fatal.

    Args:
        requested: Component names to resolve, in caller order
        catalog: All registry items

    Returns:
        ResolutionResult

    Examples:
        >>> a = RegistryItem("a", registry_dependencies=["b"])
        >>> b = RegistryItem("b")
        >>> resolve_dependencies(["a"], [a, b]).resolved
        ['b', 'a']
    """
    items = {item.name: item for item in catalog}
    marks: dict[str, _Mark] = {}
    path: list[str] = []
    order: list[str] = []
    unresolved: list[UnresolvedDependency] = []
    reported: set[tuple[str, Optional[str]]] = set()

    def visit(name: str, required_by: Optional[str]) -> Optional[list[str]]:
        mark = marks.get(name)
        if mark is _Mark.DONE:
            return None
        if mark is _Mark.IN_PROGRESS:
            return path[path.index(name) :] + [name]

        item = items.get(name)
        if item is None:
            key = (name, required_by)
            if key not in reported:
                reported.add(key)
                unresolved.append(UnresolvedDependency(name, required_by))
                logger.debug("Unresolved dependency: %s", key)
            return None

        marks[name] = _Mark.IN_PROGRESS
        path.append(name)
        for dependency in item.registry_dependencies:
            cycle = visit(dependency, name)
            if cycle is not None:
                return cycle
        path.pop()
        marks[name] = _Mark.DONE
        order.append(name)
        return None

    for name in requested:
        cycle = visit(name, None)
        if cycle is not None:
            logger.debug("Circular dependency: %s", " -> ".join(cycle))
            return ResolutionResult(cycle=cycle, unresolved=unresolved)

    return ResolutionResult(resolved=order, unresolved=unresolved)
