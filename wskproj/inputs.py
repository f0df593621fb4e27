"""
Merging of manifest-declared package inputs with CLI overrides.
"""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .errors import ManifestFormatError

logger = logging.getLogger(__name__)

ENV_REFERENCE = re.compile(r"\$\{(\w+)\}|\$(\w+)")

TYPE_DEFAULTS: Dict[str, Any] = {
    "string": "",
    "password": "",
    "version": "",
    "integer": 0,
    "float": 0.0,
    "boolean": False,
    "json": {},
}


@dataclass
class InputParameter:
    type: str = "string"
    value: Any = None
    required: bool = False
    description: str = ""


@dataclass
class PackageInputs:
    """Declared inputs of one manifest package."""
    name: str
    inputs: Dict[str, InputParameter] = field(default_factory=dict)


@dataclass
class InputMergeResult:
    packages: Dict[str, PackageInputs]
    parameters: Dict[str, List[Dict[str, Any]]]
    missing: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def interpolate_env(value: Any) -> Any:
    """
    Replace ``$NAME`` and ``${NAME}`` references in a string with
    environment values; unset variables become empty strings.
    Non-string values are returned unchanged.
    """
    if not isinstance(value, str):
        return value
    return ENV_REFERENCE.sub(lambda m: os.environ.get(m.group(1) or m.group(2), ""), value)


def is_type_default_value(type_name: str, value: Any) -> bool:
    """
    Check if a value still equals the zero value of its declared type.

    Unknown types never count as default.
    """
    if type_name not in TYPE_DEFAULTS:
        return False
    if value is None:
        return True
    default = TYPE_DEFAULTS[type_name]
    # bool is an int subclass, so compare types exactly
    if type(value) is not type(default):
        return False
    return value == default


def parse_cli_params(pairs: Sequence[Tuple[str, str]] = (), param_file: Optional[str] = None) -> Dict[str, Any]:
    """
    Build the CLI override set from ``--param`` pairs and a ``--param-file``.

    Values that parse as JSON are decoded, anything else stays a string.
    Pairs override entries from the file.

    Args:
        pairs: (key, value) tuples
        param_file: Path to a JSON object of key/value pairs

    Returns:
        Dictionary of overrides

    Raises:
        ValueError: If the file does not contain a JSON object or a key is empty
    """
    params: Dict[str, Any] = {}

    if param_file:
        with open(Path(param_file), "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Parameter file {param_file} must contain a JSON object")
        params.update(data)

    for key, raw in pairs:
        if not key.strip():
            raise ValueError("Parameter name must not be empty")
        try:
            params[key.strip()] = json.loads(raw)
        except (json.JSONDecodeError, TypeError):
            params[key.strip()] = raw

    return params


def update_package_inputs(packages: Dict[str, PackageInputs], cli_params: Optional[Dict[str, Any]] = None,
                          project_inputs: Optional[Dict[str, Any]] = None, report: bool = False,
                          manifest_path: str = "") -> InputMergeResult:
    """
    Apply CLI overrides to package inputs and check required values.

    Args:
        packages: Manifest packages with declared inputs
        cli_params: Overrides from --param / --param-file
        project_inputs: Project-level inputs, left out of package parameters
        report: Downgrade missing required inputs to a warning
        manifest_path: Manifest path for error messages

    Returns:
        InputMergeResult with merged inputs and per-package parameters

    Raises:
        ManifestFormatError: If required inputs have no value and report is False
    """
    cli_params = cli_params or {}
    project_inputs = project_inputs or {}

    merged: Dict[str, PackageInputs] = {}
    parameters: Dict[str, List[Dict[str, Any]]] = {}
    missing: List[str] = []

    for pkg_name, pkg in packages.items():
        inputs = {}
        for name, param in pkg.inputs.items():
            if name in cli_params:
                param = replace(param, value=interpolate_env(cli_params[name]))
            inputs[name] = param
        merged[pkg_name] = PackageInputs(name=pkg.name, inputs=inputs)

        key_values = []
        for name, param in inputs.items():
            if param.required and is_type_default_value(param.type, param.value):
                missing.append(name)
            if name not in project_inputs:
                key_values.append({"key": name, "value": param.value})
        parameters[pkg_name] = key_values

    result = InputMergeResult(packages=merged, parameters=parameters, missing=missing)

    if missing:
        message = f"Required inputs are missing values even after applying CLI parameters: {', '.join(missing)}"
        if not report:
            raise ManifestFormatError(manifest_path, message)
        logger.warning(message)
        result.warnings.append(message)

    return result
