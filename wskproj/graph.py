"""
Dependency graph of the managed packages in a namespace.

Nodes are managed packages; an edge P -> D exists when P's ``whisk-managed``
annotation lists ``/<namespace>/D`` as a dependency. The graph is built once
per reconciliation from a single package listing.
"""

import logging
from typing import Dict, Iterable, List, Optional

from .annotations import OwnershipTag, ownership_tag
from .models import Package

logger = logging.getLogger(__name__)


class DependencyGraph:
    """Ownership and dependency edges reconstructed from package annotations."""

    def __init__(self):
        self._owners: Dict[str, str] = {}
        self._edges: Dict[str, List[str]] = {}

    @classmethod
    def from_packages(cls, packages: Iterable[Package]) -> "DependencyGraph":
        """
        Build a graph from a package listing.

        Unmanaged packages are left out.

        Raises:
            MalformedAnnotationError: If a package's annotation cannot be parsed
        """
        graph = cls()
        for pkg in packages:
            tag = ownership_tag(pkg)
            if tag is not None:
                graph.add_package(pkg.name, tag)
        return graph

    def add_package(self, name: str, tag: OwnershipTag) -> None:
        self._owners[name] = tag.project_name
        self._edges[name] = tag.dependency_names()

    def __contains__(self, name: str) -> bool:
        return name in self._owners

    def __len__(self) -> int:
        return len(self._owners)

    def project_of(self, name: str) -> Optional[str]:
        return self._owners.get(name)

    def dependencies_of(self, name: str) -> List[str]:
        return list(self._edges.get(name, []))

    def referrers_of(self, dep_name: str) -> List[str]:
        """Packages that list ``dep_name`` as a dependency."""
        return [pkg for pkg, deps in self._edges.items() if dep_name in deps]

    def is_used_by_other_projects(self, project_name: str, dep_name: str) -> bool:
        """
        Check if a package outside ``project_name`` depends on ``dep_name``.

        Packages of the same project never count as independent referrers.
        """
        for pkg in self.referrers_of(dep_name):
            owner = self._owners[pkg]
            if owner != project_name:
                logger.debug(f"{dep_name} is still used by {pkg} (project {owner})")
                return True
        return False


def is_package_used_by_other_packages(collector, project_name: str, dep_name: str) -> bool:
    """
    Determine whether any package of another project depends on a package.

    Args:
        collector: Collector used to list the namespace's packages
        project_name: Project being reconciled
        dep_name: Bare name of the dependency package

    Returns:
        True if some other project still references the dependency
    """
    graph = DependencyGraph.from_packages(collector.list_packages())
    return graph.is_used_by_other_projects(project_name, dep_name)
