"""
Collectors that find the managed entities of a project.

The API has no server-side project filter, so every collector lists the
whole namespace (or package) and keeps the entities whose ``whisk-managed``
annotation names the project, then fetches each match in full.
"""

import logging
from typing import Callable, Dict, List, Optional, Tuple, TypeVar

from .annotations import MANAGED, is_managed_entity
from .client import WhiskClient
from .config import RetryPolicy
from .errors import ClientError, WhiskError
from .models import (
    KIND_ACTION, KIND_PACKAGE, KIND_RULE, KIND_TRIGGER, PATH_SEPARATOR,
    Action, ActionRecord, Package, PackageAssets, ProjectAssets, Rule, Trigger,
)
from .retry import retry

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Collector:
    """Lists, filters and fetches the entities belonging to a project."""

    def __init__(self, client: WhiskClient, policy: Optional[RetryPolicy] = None, sleep=None):
        self.client = client
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    def call(self, kind: str, operation: Callable[[], T], action: str = "get", name: str = "") -> T:
        """
        Run a remote call under the retry policy.

        Raises:
            ClientError: Once attempts are exhausted, with the last response attached
        """
        kwargs = {"retry_on": (WhiskError,)}
        if self._sleep is not None:
            kwargs["sleep"] = self._sleep
        try:
            return retry(self.policy.attempts, self.policy.interval, operation, **kwargs)
        except WhiskError as e:
            raise ClientError(kind, e, operation=action, name=name) from e

    # listings

    def list_packages(self) -> List[Package]:
        return self.call(KIND_PACKAGE, self.client.packages.list, action="list")

    def list_actions(self, package_name: str) -> List[Action]:
        return self.call(KIND_ACTION, lambda: self.client.actions.list(package_name),
                         action="list", name=package_name)

    def list_triggers(self) -> List[Trigger]:
        return self.call(KIND_TRIGGER, self.client.triggers.list, action="list")

    def list_rules(self) -> List[Rule]:
        return self.call(KIND_RULE, self.client.rules.list, action="list")

    # detail

    def get_package(self, name: str) -> Package:
        return self.call(KIND_PACKAGE, lambda: self.client.packages.get(name), name=name)

    def get_action(self, qualified_name: str, fetch_code: bool = False) -> Action:
        return self.call(KIND_ACTION, lambda: self.client.actions.get(qualified_name, fetch_code),
                         name=qualified_name)

    # per-project collection

    def packages(self, project_name: str, listing: Optional[List[Package]] = None) -> Dict[str, Package]:
        """
        Fetch every package managed by a project.

        Args:
            project_name: Project to match
            listing: Package listing to filter; listed fresh when omitted

        Returns:
            Mapping of package name to fully fetched package
        """
        if listing is None:
            listing = self.list_packages()

        packages = {}
        for pkg in listing:
            if is_managed_entity(pkg.annotation(MANAGED), project_name):
                packages[pkg.name] = self.get_package(pkg.name)
        logger.debug(f"Project {project_name}: {len(packages)} package(s)")
        return packages

    def actions_and_sequences(self, package_name: str, project_name: str,
                              fetch_code: bool = False) -> Tuple[Dict[str, ActionRecord], Dict[str, ActionRecord]]:
        """
        Fetch the managed actions of a package, split into actions and sequences.

        Returns:
            Tuple of (actions, sequences), each keyed by bare action name
        """
        actions: Dict[str, ActionRecord] = {}
        sequences: Dict[str, ActionRecord] = {}

        for action in self.list_actions(package_name):
            if not is_managed_entity(action.annotation(MANAGED), project_name):
                continue
            full = self.get_action(package_name + PATH_SEPARATOR + action.name, fetch_code=fetch_code)
            record = ActionRecord(action=full, package_name=package_name)
            if full.is_sequence:
                sequences[action.name] = record
            else:
                actions[action.name] = record

        return actions, sequences

    def triggers(self, project_name: str) -> Dict[str, Trigger]:
        triggers = {}
        for trigger in self.list_triggers():
            if is_managed_entity(trigger.annotation(MANAGED), project_name):
                triggers[trigger.name] = self.call(
                    KIND_TRIGGER, lambda n=trigger.name: self.client.triggers.get(n), name=trigger.name)
        return triggers

    def rules(self, project_name: str) -> Dict[str, Rule]:
        rules = {}
        for rule in self.list_rules():
            if is_managed_entity(rule.annotation(MANAGED), project_name):
                rules[rule.name] = self.call(
                    KIND_RULE, lambda n=rule.name: self.client.rules.get(n), name=rule.name)
        return rules

    def apis(self, project_name: str) -> Dict[str, object]:
        # API gateway bindings are not managed yet
        return {}

    def project_assets(self, project_name: str, listing: Optional[List[Package]] = None,
                       fetch_code: bool = False) -> ProjectAssets:
        """
        Collect packages, actions, sequences, triggers and rules of a project.

        Args:
            project_name: Project named in the ``whisk-managed`` annotation
            listing: Package listing to reuse instead of listing again
            fetch_code: Fetch action code as well (used by export)

        Returns:
            ProjectAssets for the project

        Raises:
            ClientError: If any List or Get call fails after retries
        """
        assets = ProjectAssets(project_name=project_name)

        for name, package in self.packages(project_name, listing).items():
            actions, sequences = self.actions_and_sequences(name, project_name, fetch_code=fetch_code)
            assets.packages[name] = PackageAssets(package=package, actions=actions, sequences=sequences)

        assets.triggers = self.triggers(project_name)
        assets.rules = self.rules(project_name)
        assets.apis = self.apis(project_name)

        logger.info(
            f"Project {project_name}: {len(assets.packages)} package(s), {len(assets.actions)} action(s), "
            f"{len(assets.sequences)} sequence(s), {len(assets.triggers)} trigger(s), {len(assets.rules)} rule(s)"
        )
        return assets
