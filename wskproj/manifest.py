"""
Minimal manifest loader.

Reads the pieces of a deployment manifest that reconciliation needs: the
project name, its namespace, project inputs and the declared inputs of each
package. The manifest is otherwise not validated.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import ManifestFormatError
from .inputs import InputParameter, PackageInputs

PYTHON_TYPES = (
    (bool, "boolean"),
    (int, "integer"),
    (float, "float"),
    (dict, "json"),
    (list, "json"),
)


@dataclass
class Manifest:
    path: str
    project_name: str = ""
    namespace: str = ""
    inputs: Dict[str, InputParameter] = field(default_factory=dict)
    packages: Dict[str, PackageInputs] = field(default_factory=dict)


def infer_type(value: Any) -> str:
    for python_type, type_name in PYTHON_TYPES:
        if isinstance(value, python_type):
            return type_name
    return "string"


def parse_input(value: Any) -> InputParameter:
    """
    Parse one input declaration.

    The long form is a mapping with ``type``, ``value`` or ``default`` and
    ``required``; anything else is taken as the value itself.
    """
    if isinstance(value, dict) and ("type" in value or "value" in value or "default" in value):
        type_name = value.get("type") or infer_type(value.get("value", value.get("default")))
        resolved = value.get("value", value.get("default"))
        return InputParameter(
            type=type_name,
            value=resolved,
            required=bool(value.get("required", False)),
            description=value.get("description", ""),
        )
    return InputParameter(type=infer_type(value), value=value)


def _section(path: str, value: Any, name: str) -> Dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ManifestFormatError(path, f"'{name}' must be a mapping, got {type(value).__name__}")
    return value


def _parse_inputs(path: str, section: Any, name: str) -> Dict[str, InputParameter]:
    return {key: parse_input(value) for key, value in _section(path, section, name).items()}


def load_manifest(path: str) -> Manifest:
    """
    Load a manifest file.

    Args:
        path: Path to the YAML manifest

    Returns:
        Manifest with project and package inputs

    Raises:
        ManifestFormatError: If the file is missing, is not a YAML mapping or
            has a section of the wrong shape
    """
    manifest_file = Path(path)
    if not manifest_file.exists():
        raise ManifestFormatError(path, "manifest file not found")

    try:
        with open(manifest_file, "r") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ManifestFormatError(path, f"invalid YAML: {e}") from e

    if not isinstance(data, dict):
        raise ManifestFormatError(path, "manifest must be a mapping")

    project = _section(path, data.get("project"), "project")
    packages_section = _section(path, project.get("packages") or data.get("packages"), "packages")

    manifest = Manifest(
        path=str(path),
        project_name=project.get("name", ""),
        namespace=project.get("namespace", ""),
        inputs=_parse_inputs(path, project.get("inputs"), "project.inputs"),
    )
    for pkg_name, pkg in packages_section.items():
        pkg = _section(path, pkg, f"packages.{pkg_name}")
        inputs = _parse_inputs(path, pkg.get("inputs"), f"packages.{pkg_name}.inputs")
        manifest.packages[pkg_name] = PackageInputs(name=pkg_name, inputs=inputs)

    return manifest
