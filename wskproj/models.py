"""
Data models for OpenWhisk entities and the per-project asset sets built
during reconciliation.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

KIND_PACKAGE = "package"
KIND_ACTION = "action"
KIND_SEQUENCE = "sequence"
KIND_TRIGGER = "trigger"
KIND_RULE = "rule"
KIND_API = "api"

PATH_SEPARATOR = "/"


@dataclass
class Resource:
    """A namespace-scoped OpenWhisk entity with its annotation bag."""
    name: str
    namespace: str = ""
    annotations: List[Dict[str, Any]] = field(default_factory=list)
    version: str = ""

    def annotation(self, key: str) -> Any:
        """Return the value of annotation ``key`` or None if absent."""
        for kv in self.annotations or []:
            if kv.get("key") == key:
                return kv.get("value")
        return None

    @property
    def fully_qualified_name(self) -> str:
        if not self.namespace:
            return self.name
        return f"/{self.namespace}/{self.name}"

    @classmethod
    def _common(cls, data: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "name": data.get("name", ""),
            "namespace": data.get("namespace", ""),
            "annotations": list(data.get("annotations") or []),
            "version": data.get("version", ""),
        }


@dataclass
class Package(Resource):
    parameters: List[Dict[str, Any]] = field(default_factory=list)
    binding: Dict[str, Any] = field(default_factory=dict)
    publish: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Package":
        return cls(
            parameters=list(data.get("parameters") or []),
            binding=dict(data.get("binding") or {}),
            publish=bool(data.get("publish", False)),
            **cls._common(data),
        )


@dataclass
class Action(Resource):
    exec: Dict[str, Any] = field(default_factory=dict)
    parameters: List[Dict[str, Any]] = field(default_factory=list)
    limits: Dict[str, Any] = field(default_factory=dict)

    @property
    def exec_kind(self) -> str:
        return self.exec.get("kind", "")

    @property
    def is_sequence(self) -> bool:
        return self.exec_kind == KIND_SEQUENCE

    @property
    def package_name(self) -> str:
        """Package part of a namespace like ``guest/mypackage``, or ''."""
        parts = self.namespace.split(PATH_SEPARATOR, 1)
        return parts[1] if len(parts) == 2 else ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Action":
        return cls(
            exec=dict(data.get("exec") or {}),
            parameters=list(data.get("parameters") or []),
            limits=dict(data.get("limits") or {}),
            **cls._common(data),
        )


@dataclass
class Trigger(Resource):
    parameters: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Trigger":
        return cls(parameters=list(data.get("parameters") or []), **cls._common(data))


@dataclass
class Rule(Resource):
    trigger: Any = None
    action: Any = None
    status: str = ""

    @staticmethod
    def _entity_name(ref: Any) -> str:
        # rules reference entities either as a path string or {"path", "name"}
        if isinstance(ref, dict):
            path = ref.get("path", "")
            name = ref.get("name", "")
            return f"{path}/{name}" if path else name
        return ref or ""

    @property
    def trigger_name(self) -> str:
        return self._entity_name(self.trigger)

    @property
    def action_name(self) -> str:
        return self._entity_name(self.action)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rule":
        return cls(
            trigger=data.get("trigger"),
            action=data.get("action"),
            status=data.get("status", ""),
            **cls._common(data),
        )


@dataclass
class ActionRecord:
    """An action (or sequence) together with the package that contains it."""
    action: Action
    package_name: str

    @property
    def qualified_name(self) -> str:
        if not self.package_name:
            return self.action.name
        return f"{self.package_name}{PATH_SEPARATOR}{self.action.name}"


@dataclass
class PackageAssets:
    """A managed package and the actions and sequences it contains."""
    package: Package
    actions: Dict[str, ActionRecord] = field(default_factory=dict)
    sequences: Dict[str, ActionRecord] = field(default_factory=dict)


@dataclass
class ProjectAssets:
    """
    Every managed entity discovered for one project.

    Built fresh for each reconciliation call and never persisted.
    """
    project_name: str
    packages: Dict[str, PackageAssets] = field(default_factory=dict)
    triggers: Dict[str, Trigger] = field(default_factory=dict)
    rules: Dict[str, Rule] = field(default_factory=dict)
    apis: Dict[str, Any] = field(default_factory=dict)

    @property
    def actions(self) -> Dict[str, ActionRecord]:
        """All non-sequence actions keyed by ``package/action``."""
        return {r.qualified_name: r for a in self.packages.values() for r in a.actions.values()}

    @property
    def sequences(self) -> Dict[str, ActionRecord]:
        """All sequences keyed by ``package/action``."""
        return {r.qualified_name: r for a in self.packages.values() for r in a.sequences.values()}

    def package(self, name: str) -> Optional[Package]:
        assets = self.packages.get(name)
        return assets.package if assets else None

    def is_empty(self) -> bool:
        return not (self.packages or self.triggers or self.rules or self.apis)

    def summary(self) -> Dict[str, List[str]]:
        """Names per entity kind, for reports and JSON output."""
        return {
            "packages": sorted(self.packages),
            "actions": sorted(self.actions),
            "sequences": sorted(self.sequences),
            "triggers": sorted(self.triggers),
            "rules": sorted(self.rules),
        }
