"""
Shared fixtures: an in-memory OpenWhisk namespace with failure injection.
"""

import pytest

from wskproj.annotations import managed_annotation
from wskproj.collect import Collector
from wskproj.config import RetryPolicy
from wskproj.errors import WhiskError
from wskproj.models import Action, Package, Rule, Trigger

NAMESPACE = "guest"


class FakeService:
    """One entity collection of the fake namespace."""

    def __init__(self, factory):
        self.factory = factory
        self.items = {}
        self.failures = {}
        self.calls = []

    def fail(self, op, name="*", times=-1, status_code=500):
        """Make ``op`` on ``name`` fail ``times`` times (-1 = always)."""
        self.failures[(op, name)] = [times, status_code]

    def _check(self, op, name=""):
        self.calls.append((op, name))
        for key in ((op, name), (op, "*")):
            if key in self.failures:
                remaining, status_code = self.failures[key]
                if remaining == 0:
                    continue
                if remaining > 0:
                    self.failures[key][0] = remaining - 1
                raise WhiskError(f"{op} {name} failed", status_code=status_code)

    def _get(self, name):
        self._check("get", name)
        if name not in self.items:
            raise WhiskError(f"{name} not found", status_code=404)
        return self.factory(self.items[name])

    def get(self, name, *args):
        return self._get(name)

    def list(self):
        self._check("list")
        return [self.factory(data) for data in self.items.values()]

    def delete(self, name):
        self._check("delete", name)
        if name not in self.items:
            raise WhiskError(f"{name} not found", status_code=404)
        del self.items[name]


class FakePackageService(FakeService):

    def __init__(self, factory, actions):
        super().__init__(factory)
        self.actions = actions

    def delete(self, name):
        if any(key.startswith(f"{name}/") for key in self.actions.items) and name in self.items:
            self._check("delete", name)
            raise WhiskError(f"Package {name} is not empty", status_code=409)
        super().delete(name)


class FakeActionService(FakeService):

    def __init__(self, factory):
        super().__init__(factory)
        self.invocations = []

    def invoke(self, name, params=None, blocking=True):
        self._check("invoke", name)
        self.invocations.append((name, dict(params or {})))
        return {}

    def list(self, package_name=""):
        self._check("list", package_name)
        prefix = f"{package_name}/" if package_name else ""
        return [
            Action.from_dict(data) for key, data in self.items.items()
            if key.startswith(prefix) and "/" not in key[len(prefix):]
        ]


class FakeRuleService(FakeService):

    def set_state(self, name, state):
        self._check("set_state", name)
        if name not in self.items:
            raise WhiskError(f"{name} not found", status_code=404)
        self.items[name]["status"] = state


class FakeWhisk:
    """Stands in for WhiskClient."""

    def __init__(self, namespace=NAMESPACE):
        self.namespace = namespace
        self.auth_key = "user:secret"
        self.actions = FakeActionService(Action.from_dict)
        self.packages = FakePackageService(Package.from_dict, self.actions)
        self.triggers = FakeService(Trigger.from_dict)
        self.rules = FakeRuleService(Rule.from_dict)

    def add_package(self, name, project=None, deps=(), annotations=None):
        if annotations is None:
            annotations = [managed_annotation(project, list(deps))] if project else []
        self.packages.items[name] = {"name": name, "namespace": self.namespace, "annotations": annotations}

    def add_action(self, package, name, project=None, kind="nodejs:default", components=None, code=None):
        exec_ = {"kind": kind}
        if components is not None:
            exec_ = {"kind": "sequence", "components": components}
        if code is not None:
            exec_["code"] = code
        self.actions.items[f"{package}/{name}"] = {
            "name": name,
            "namespace": f"{self.namespace}/{package}",
            "annotations": [managed_annotation(project)] if project else [],
            "exec": exec_,
        }

    def add_trigger(self, name, project=None, feed=None):
        annotations = [managed_annotation(project)] if project else []
        if feed:
            annotations.append({"key": "feed", "value": feed})
        self.triggers.items[name] = {"name": name, "namespace": self.namespace, "annotations": annotations}

    def add_rule(self, name, trigger, action, project=None):
        self.rules.items[name] = {
            "name": name,
            "namespace": self.namespace,
            "annotations": [managed_annotation(project)] if project else [],
            "trigger": {"path": self.namespace, "name": trigger},
            "action": {"path": f"{self.namespace}/{action.split('/')[0]}", "name": action.split("/")[-1]},
            "status": "active",
        }

    def deploy(self, project, package, deps=(), actions=(), sequences=(), triggers=(), rules=()):
        """Deploy a one-package managed project the way a manifest would."""
        self.add_package(package, project, [f"/{self.namespace}/{d}" for d in deps])
        for action in actions:
            self.add_action(package, action, project)
        for sequence in sequences:
            self.add_action(package, sequence, project,
                            components=[f"/{self.namespace}/{package}/{a}" for a in actions])
        for trigger in triggers:
            self.add_trigger(trigger, project)
        for rule, trigger, action in rules:
            self.add_rule(rule, trigger, f"{package}/{action}", project)


@pytest.fixture
def whisk():
    return FakeWhisk()


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def collector(whisk, sleeps):
    return Collector(whisk, RetryPolicy(attempts=3, interval=0.5), sleep=sleeps.append)


@pytest.fixture
def ext_and_lib(whisk):
    """EXT_PROJECT's package ext depends on lib1_package owned by LIB."""
    whisk.deploy("LIB", "lib1_package", actions=["lib1_greeting1"], sequences=["lib1_seq"],
                 triggers=["lib1_trigger"], rules=[("lib1_rule", "lib1_trigger", "lib1_greeting1")])
    whisk.deploy("EXT_PROJECT", "ext", deps=["lib1_package"], actions=["ext_hello"],
                 triggers=["ext_trigger"], rules=[("ext_rule", "ext_trigger", "ext_hello")])
    return whisk
