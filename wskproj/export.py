"""
Export a managed project back into a manifest.

Writes a manifest for the project's packages with action code saved next
to it, plus one manifest per dependency project under ``dependencies/``.
"""

import base64
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .annotations import filter_package_name, ownership_tag
from .collect import Collector
from .events import EventLog, EventTypes
from .models import ActionRecord, PackageAssets, ProjectAssets

logger = logging.getLogger(__name__)

DEPENDENCIES_DIR = "dependencies"

RUNTIME_EXTENSIONS = {
    "nodejs": ".js",
    "python": ".py",
    "php": ".php",
    "swift": ".swift",
    "go": ".go",
    "ruby": ".rb",
    "java": ".jar",
    "dotnet": ".zip",
}


def code_extension(kind: str, binary: bool = False) -> str:
    if binary:
        return ".jar" if kind.startswith("java") else ".zip"
    runtime = kind.split(":", 1)[0]
    return RUNTIME_EXTENSIONS.get(runtime, ".txt")


def _strip_namespace(component: str) -> str:
    # sequence components are fully qualified: /ns/pkg/action
    name = filter_package_name(component)
    return name or component


def _rule_target(ref: Any) -> str:
    # rules reference entities as {"path": "ns[/pkg]", "name": ...} or a path string
    if isinstance(ref, dict):
        path = ref.get("path", "")
        package = path.split("/", 1)[1] if "/" in path else ""
        return f"{package}/{ref.get('name', '')}" if package else ref.get("name", "")
    return _strip_namespace(ref or "")


def _parameters(key_values: List[Dict[str, Any]]) -> Dict[str, Any]:
    return {kv["key"]: kv.get("value") for kv in key_values or [] if "key" in kv}


def _write_action_code(record: ActionRecord, base_dir: Path) -> Optional[str]:
    exec_ = record.action.exec
    code = exec_.get("code")
    if not code:
        return None

    binary = bool(exec_.get("binary"))
    relative = Path(record.package_name or "default") / (record.action.name + code_extension(exec_.get("kind", ""), binary))
    target = base_dir / relative
    target.parent.mkdir(parents=True, exist_ok=True)
    if binary:
        target.write_bytes(base64.b64decode(code))
    else:
        target.write_text(code)
    return relative.as_posix()


def _package_section(assets: PackageAssets, base_dir: Path) -> Dict[str, Any]:
    section: Dict[str, Any] = {}

    tag = ownership_tag(assets.package)
    if tag is not None and tag.dependencies:
        section["dependencies"] = {
            filter_package_name(ref) or ref: {"location": ref} for ref in tag.dependencies
        }

    actions = {}
    for name, record in assets.actions.items():
        entry: Dict[str, Any] = {"runtime": record.action.exec_kind}
        function = _write_action_code(record, base_dir)
        if function:
            entry["function"] = function
        if record.action.exec.get("main"):
            entry["main"] = record.action.exec["main"]
        inputs = _parameters(record.action.parameters)
        if inputs:
            entry["inputs"] = inputs
        actions[name] = entry
    if actions:
        section["actions"] = actions

    sequences = {}
    for name, record in assets.sequences.items():
        components = record.action.exec.get("components") or []
        sequences[name] = {"actions": ", ".join(_strip_namespace(c) for c in components)}
    if sequences:
        section["sequences"] = sequences

    inputs = _parameters(assets.package.parameters)
    if inputs:
        section["inputs"] = inputs
    return section


def build_manifest(project: ProjectAssets, base_dir: Path) -> Dict[str, Any]:
    """
    Build the manifest structure for a project, writing action code under
    ``base_dir``.
    """
    packages = {name: _package_section(assets, base_dir) for name, assets in project.packages.items()}

    # triggers and rules live under a package; place them with the first one
    if packages and (project.triggers or project.rules):
        first = packages[next(iter(packages))]
        if project.triggers:
            first["triggers"] = {
                name: ({"inputs": _parameters(t.parameters)} if t.parameters else {})
                for name, t in project.triggers.items()
            }
        if project.rules:
            first["rules"] = {
                name: {"trigger": _rule_target(r.trigger), "action": _rule_target(r.action)}
                for name, r in project.rules.items()
            }

    return {"project": {"name": project.project_name, "packages": packages}}


def _write_manifest(manifest: Dict[str, Any], path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        yaml.safe_dump(manifest, f, default_flow_style=False, sort_keys=False)


def export_project(collector: Collector, project_name: str, target_path: str,
                   event_log: Optional[EventLog] = None) -> Dict[str, Any]:
    """
    Export a project and its dependency projects to manifests.

    Args:
        collector: Collector for the namespace
        project_name: Project to export
        target_path: Path of the manifest file to write
        event_log: Optional event log to record the export in

    Returns:
        Export summary with the written manifest paths

    Raises:
        ClientError: If collecting entities fails
    """
    target = Path(target_path)
    base_dir = target.parent

    listing = collector.list_packages()
    project = collector.project_assets(project_name, listing=listing, fetch_code=True)
    _write_manifest(build_manifest(project, base_dir), target)
    written = [str(target)]

    dep_projects: List[str] = []
    for assets in project.packages.values():
        tag = ownership_tag(assets.package)
        for dep_name in (tag.dependency_names() if tag else []):
            if dep_name in project.packages:
                continue
            dep_pkg = next((p for p in listing if p.name == dep_name), None)
            dep_tag = ownership_tag(dep_pkg) if dep_pkg else None
            if dep_tag is None:
                logger.warning(f"Dependency {dep_name} is not a managed package in this namespace; not exported")
                continue
            if dep_tag.project_name not in dep_projects and dep_tag.project_name != project_name:
                dep_projects.append(dep_tag.project_name)

    dep_dir = base_dir / DEPENDENCIES_DIR
    for dep_project_name in dep_projects:
        dep_assets = collector.project_assets(dep_project_name, listing=listing, fetch_code=True)
        dep_path = dep_dir / f"{dep_project_name}.yaml"
        _write_manifest(build_manifest(dep_assets, dep_dir), dep_path)
        written.append(str(dep_path))

    summary = {"project": project_name, "manifests": written, "dependencies": dep_projects}
    if event_log is not None:
        event_log.emit(EventTypes.EXPORTED, summary)
    logger.info(f"Exported project {project_name} to {target}")
    return summary
