"""
Ownership annotation utilities.

Entities deployed as part of a managed project carry a ``whisk-managed``
annotation naming the project and listing the packages it depends on.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .errors import MalformedAnnotationError
from .models import Resource

MANAGED = "whisk-managed"
PROJECT_NAME = "projectName"
PROJECT_HASH = "projectHash"
PROJECT_DEPS = "projectDeps"
PROJECT_FILE = "file"
DEP_KEY = "key"
FEED = "feed"


@dataclass(frozen=True)
class OwnershipTag:
    """Parsed value of a ``whisk-managed`` annotation."""
    project_name: str
    dependencies: Tuple[str, ...] = ()
    project_hash: str = ""
    file: str = ""

    def dependency_names(self) -> List[str]:
        """
        Resolve dependency references to bare package names.

        Unresolvable references are dropped.
        """
        names = []
        for ref in self.dependencies:
            name = filter_package_name(ref)
            if name:
                names.append(name)
        return names


def is_managed_entity(annotation: Any, project_name: str) -> bool:
    """
    Check if an entity belongs to a project based on its annotation.

    Args:
        annotation: Value of the entity's ``whisk-managed`` annotation
        project_name: Project to match (case-sensitive)

    Returns:
        True if the annotation exists and names the project, False otherwise
    """
    if not isinstance(annotation, Mapping):
        return False
    return annotation.get(PROJECT_NAME) == project_name


def filter_package_name(ref: str) -> str:
    """
    Derive a package name from a ``/<namespace>/<package>`` reference.

    Everything after the second slash is the package name, so
    ``/a/b/c`` yields ``b/c``.

    Args:
        ref: Dependency reference

    Returns:
        Package name, or an empty string if the reference cannot be parsed
    """
    if not isinstance(ref, str):
        return ""
    parts = ref.split("/", 2)
    if len(parts) == 3 and parts[2]:
        return parts[2]
    return ""


def parse_ownership_tag(value: Any, entity: str = "entity") -> Optional[OwnershipTag]:
    """
    Parse a ``whisk-managed`` annotation value.

    Args:
        value: Raw annotation value (None when the annotation is absent)
        entity: Entity name used in error messages

    Returns:
        OwnershipTag, or None if the entity is unmanaged

    Raises:
        MalformedAnnotationError: If required fields are missing or mistyped
    """
    if value is None:
        return None

    if not isinstance(value, Mapping):
        raise MalformedAnnotationError(entity, f"expected a mapping, got {type(value).__name__}")

    project_name = value.get(PROJECT_NAME)
    if not isinstance(project_name, str):
        raise MalformedAnnotationError(entity, f"'{PROJECT_NAME}' must be a string")

    raw_deps = value.get(PROJECT_DEPS)
    if raw_deps is None:
        raw_deps = []
    if not isinstance(raw_deps, list):
        raise MalformedAnnotationError(entity, f"'{PROJECT_DEPS}' must be a list")

    deps = []
    for dep in raw_deps:
        if not isinstance(dep, Mapping) or not isinstance(dep.get(DEP_KEY), str):
            raise MalformedAnnotationError(entity, f"every '{PROJECT_DEPS}' entry needs a string '{DEP_KEY}'")
        deps.append(dep[DEP_KEY])

    return OwnershipTag(
        project_name=project_name,
        dependencies=tuple(deps),
        project_hash=str(value.get(PROJECT_HASH) or ""),
        file=str(value.get(PROJECT_FILE) or ""),
    )


def ownership_tag(resource: Resource) -> Optional[OwnershipTag]:
    """Parse the ownership annotation of an entity."""
    return parse_ownership_tag(resource.annotation(MANAGED), entity=resource.name)


def managed_annotation(project_name: str, dependencies: Optional[List[str]] = None,
                       project_hash: str = "", file: str = "") -> dict:
    """
    Build a ``whisk-managed`` annotation entry.

    Args:
        project_name: Owning project
        dependencies: ``/ns/pkg`` references of packages the entity depends on
        project_hash: Hash of the deployed manifest
        file: Manifest path the entity was deployed from

    Returns:
        Annotation key/value entry ready to attach to an entity
    """
    return {
        "key": MANAGED,
        "value": {
            PROJECT_NAME: project_name,
            PROJECT_HASH: project_hash,
            PROJECT_FILE: file,
            PROJECT_DEPS: [{DEP_KEY: ref, "value": {}} for ref in dependencies or []],
        },
    }
