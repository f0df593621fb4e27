"""
Dependency resolution for managed projects.

For every package of a project, each dependency listed in its
``whisk-managed`` annotation is resolved to the package and project that
own it. Dependencies no other project references are scheduled for removal
together with their actions, sequences, triggers and rules. The walk is one
level deep: dependencies of dependencies are not followed.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Set

from .annotations import filter_package_name, ownership_tag
from .collect import Collector
from .errors import WskprojError
from .graph import DependencyGraph
from .models import PackageAssets, ProjectAssets

logger = logging.getLogger(__name__)


@dataclass
class DependencyResolution:
    """
    Outcome of resolving a project's dependencies.

    On failure ``error`` is set and ``projects`` holds whatever was resolved
    before the failure, for diagnostics only.
    """
    projects: List[ProjectAssets] = field(default_factory=list)
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def partial(self) -> bool:
        return self.error is not None and bool(self.projects)

    def unwrap(self) -> List[ProjectAssets]:
        if self.error is not None:
            raise self.error
        return self.projects


def resolve_dependencies(collector: Collector, project: ProjectAssets,
                         graph: DependencyGraph) -> DependencyResolution:
    """
    Determine which dependency projects can be removed with a project.

    Args:
        collector: Collector for fetching dependency entities
        project: Assets of the project being undeployed
        graph: Dependency graph of the namespace's managed packages

    Returns:
        DependencyResolution with one ProjectAssets per removable dependency,
        in discovery order
    """
    resolution = DependencyResolution()
    scheduled: Set[str] = set()
    collected_projects: Set[str] = set()

    try:
        for pkg_name, pkg_assets in project.packages.items():
            tag = ownership_tag(pkg_assets.package)
            if tag is None:
                continue

            for ref in tag.dependencies:
                dep_name = filter_package_name(ref)
                if not dep_name:
                    logger.debug(f"Skipping unparsable dependency reference {ref!r} of {pkg_name}")
                    continue
                if dep_name in scheduled:
                    continue
                if dep_name in project.packages:
                    # removed together with the project itself
                    continue
                if graph.is_used_by_other_projects(project.project_name, dep_name):
                    logger.info(f"Keeping dependency {dep_name}: still used by another project")
                    continue

                dep_project = _collect_dependency(collector, dep_name, collected_projects)
                if dep_project is None:
                    continue
                scheduled.add(dep_name)
                resolution.projects.append(dep_project)

    except WskprojError as e:
        logger.error(f"Dependency resolution for {project.project_name} failed: {e}")
        resolution.error = e

    return resolution


def _collect_dependency(collector: Collector, dep_name: str,
                        collected_projects: Set[str]) -> Optional[ProjectAssets]:
    package = collector.get_package(dep_name)
    tag = ownership_tag(package)
    if tag is None:
        logger.warning(f"Dependency {dep_name} is not a managed package; leaving it in place")
        return None

    dep_project = ProjectAssets(project_name=tag.project_name)
    actions, sequences = collector.actions_and_sequences(package.name, tag.project_name)
    dep_project.packages[package.name] = PackageAssets(package=package, actions=actions, sequences=sequences)

    # triggers and rules are project-wide, collect them once per dependency project
    if tag.project_name not in collected_projects:
        dep_project.triggers = collector.triggers(tag.project_name)
        dep_project.rules = collector.rules(tag.project_name)
        collected_projects.add(tag.project_name)

    logger.info(f"Scheduled dependency {dep_name} of project {tag.project_name} for removal")
    return dep_project
