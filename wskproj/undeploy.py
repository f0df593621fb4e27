"""
Undeploy orchestration for managed projects.

Discovers a project's entities and its removable dependencies, then deletes
them consumers first: rules, triggers, sequences, actions and finally
packages. Dependencies go before the project itself. The first failed
deletion stops the run; nothing is rolled back, and re-running the undeploy
picks up whatever is left.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .annotations import FEED
from .client import WhiskClient
from .collect import Collector
from .config import RetryPolicy
from .errors import ClientError, WskprojError
from .events import EventLog, EventTypes
from .graph import DependencyGraph
from .models import KIND_ACTION, KIND_PACKAGE, KIND_RULE, KIND_SEQUENCE, KIND_TRIGGER, ProjectAssets, Trigger
from .resolve import resolve_dependencies

logger = logging.getLogger(__name__)


class UndeployStatus(Enum):
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class UndeployOptions:
    """Per-call settings that the CLI passes down explicitly."""
    project_name: str
    preview: bool = False


@dataclass
class UndeployResult:
    status: UndeployStatus
    project_name: str
    project: Optional[ProjectAssets] = None
    dependencies: List[ProjectAssets] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    already_deleted: List[str] = field(default_factory=list)
    previewed: bool = False
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.status == UndeployStatus.COMPLETED

    def to_dict(self) -> Dict[str, Any]:
        return {
            "project": self.project_name,
            "status": self.status.value,
            "previewed": self.previewed,
            "assets": self.project.summary() if self.project else None,
            "dependencies": [
                {"project": dep.project_name, **dep.summary()} for dep in self.dependencies
            ],
            "deleted": list(self.deleted),
            "already_deleted": list(self.already_deleted),
            "error": str(self.error) if self.error else None,
        }


def discover(collector: Collector, project_name: str):
    """
    Compute a project's assets and its removable dependency projects.

    The namespace's packages are listed once; the same listing feeds both
    the project's package set and the dependency graph.

    Returns:
        Tuple of (ProjectAssets, DependencyResolution)

    Raises:
        WskprojError: If collecting the project's own assets fails
    """
    listing = collector.list_packages()
    graph = DependencyGraph.from_packages(listing)
    project = collector.project_assets(project_name, listing=listing)
    resolution = resolve_dependencies(collector, project, graph)
    return project, resolution


def undeploy_project(client: WhiskClient, options: UndeployOptions,
                     policy: Optional[RetryPolicy] = None,
                     event_log: Optional[EventLog] = None,
                     collector: Optional[Collector] = None) -> UndeployResult:
    """
    Undeploy every entity of a project and its unshared dependencies.

    Args:
        client: OpenWhisk client
        options: Project name and preview flag
        policy: Retry policy for every remote call
        event_log: Optional event log to record progress in
        collector: Collector to use instead of one built from ``client``

    Returns:
        UndeployResult, COMPLETED or FAILED
    """
    project_name = options.project_name
    collector = collector or Collector(client, policy)
    result = UndeployResult(status=UndeployStatus.COMPLETED, project_name=project_name)

    def emit(event_type: str, data: Dict[str, Any]) -> None:
        if event_log is not None:
            event_log.emit(event_type, data)

    emit(EventTypes.UNDEPLOY_START, {"preview": options.preview})
    logger.info(f"Undeploying project {project_name}{' (preview)' if options.preview else ''}")

    try:
        project, resolution = discover(collector, project_name)
        result.project = project
        result.dependencies = list(resolution.projects)
        dependencies = resolution.unwrap()
    except WskprojError as e:
        return _fail(result, e, emit)

    emit(EventTypes.DISCOVERED, {
        "assets": project.summary(),
        "dependencies": [dep.project_name for dep in dependencies],
    })

    if options.preview:
        result.previewed = True
        emit(EventTypes.PREVIEW, result.to_dict())
        return result

    deleter = Deleter(collector, on_deleted=lambda kind, name: emit(EventTypes.DELETED, {"kind": kind, "name": name}))
    try:
        for dep in dependencies:
            logger.info(f"Removing dependency project {dep.project_name}")
            deleter.delete_assets(dep)
        deleter.delete_assets(project)
    except WskprojError as e:
        result.deleted = list(deleter.deleted)
        result.already_deleted = list(deleter.already_deleted)
        return _fail(result, e, emit)

    result.deleted = list(deleter.deleted)
    result.already_deleted = list(deleter.already_deleted)
    emit(EventTypes.UNDEPLOY_DONE, {"deleted": len(result.deleted), "already_deleted": len(result.already_deleted)})
    logger.info(f"Project {project_name} undeployed: {len(result.deleted)} entit(ies) deleted")
    return result


def _fail(result: UndeployResult, error: Exception, emit) -> UndeployResult:
    logger.error(f"Undeploy of {result.project_name} failed: {error}")
    result.status = UndeployStatus.FAILED
    result.error = error
    emit(EventTypes.ERROR, {"reason": str(error), "deleted": list(result.deleted)})
    return result


class Deleter:
    """Deletes the entities of a ProjectAssets in dependency order."""

    def __init__(self, collector: Collector, on_deleted=None):
        self.collector = collector
        self.client = collector.client
        self.deleted: List[str] = []
        self.already_deleted: List[str] = []
        self._on_deleted = on_deleted

    def delete_assets(self, assets: ProjectAssets) -> None:
        """
        Delete rules, triggers, sequences, actions, then packages.

        Raises:
            ClientError: On the first deletion that fails after retries
        """
        for name in assets.rules:
            self._deactivate_rule(name)
            self._delete(KIND_RULE, name, self.client.rules.delete)
        for name, trigger in assets.triggers.items():
            self._unregister_feed(trigger)
            self._delete(KIND_TRIGGER, name, self.client.triggers.delete)
        for record in assets.sequences.values():
            self._delete(KIND_SEQUENCE, record.qualified_name, self.client.actions.delete)
        for record in assets.actions.values():
            self._delete(KIND_ACTION, record.qualified_name, self.client.actions.delete)
        for name in assets.packages:
            self._delete(KIND_PACKAGE, name, self.client.packages.delete)

    def _deactivate_rule(self, name: str) -> None:
        try:
            self.collector.call(KIND_RULE, lambda: self.client.rules.set_state(name, "inactive"),
                                action="deactivate", name=name)
        except ClientError as e:
            if e.status_code != 404:
                raise

    def _unregister_feed(self, trigger: Trigger) -> None:
        """Ask the trigger's feed provider to stop firing it."""
        feed = trigger.annotation(FEED)
        if not feed:
            return
        namespace = trigger.namespace or self.client.namespace
        params = {
            "lifecycleEvent": "DELETE",
            "triggerName": f"/{namespace}/{trigger.name}",
            "authKey": self.client.auth_key,
        }
        try:
            self.collector.call(KIND_TRIGGER, lambda: self.client.actions.invoke(feed, params),
                                action="unregister feed of", name=trigger.name)
        except ClientError as e:
            if e.status_code != 404:
                raise
            logger.warning(f"Feed action {feed} of trigger {trigger.name} not found")
        else:
            logger.info(f"Unregistered feed {feed} of trigger {trigger.name}")

    def _delete(self, kind: str, name: str, delete) -> None:
        try:
            self.collector.call(kind, lambda: delete(name), action="delete", name=name)
        except ClientError as e:
            if e.status_code != 404:
                raise
            logger.info(f"{kind} {name} already deleted")
            self.already_deleted.append(f"{kind}:{name}")
            return

        logger.info(f"Deleted {kind} {name}")
        self.deleted.append(f"{kind}:{name}")
        if self._on_deleted is not None:
            self._on_deleted(kind, name)


def describe_assets(assets: ProjectAssets, title: str = "") -> List[str]:
    """Render a project's assets as report lines for previews."""
    lines = [title or f"Project: {assets.project_name}"]
    for pkg_name, pkg in assets.packages.items():
        lines.append(f"  package: {pkg_name}")
        for name in pkg.actions:
            lines.append(f"    action: {name}")
        for name in pkg.sequences:
            lines.append(f"    sequence: {name}")
    for name, trigger in assets.triggers.items():
        feed = trigger.annotation(FEED)
        lines.append(f"  trigger: {name} (feed {feed})" if feed else f"  trigger: {name}")
    for name, rule in assets.rules.items():
        target = f" ({rule.trigger_name} -> {rule.action_name})" if rule.trigger_name else ""
        lines.append(f"  rule: {name}{target}")
    if assets.is_empty():
        lines.append("  (no managed entities)")
    return lines
