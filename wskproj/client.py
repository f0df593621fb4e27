"""
Thin OpenWhisk REST API client.

Each entity collection (packages, actions, triggers, rules) is exposed as a
service with ``list``, ``get`` and ``delete``. Every failed call raises
WhiskError carrying the raw response; retrying is left to callers.
"""

import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests

from .config import WhiskConfig
from .errors import WhiskError
from .models import Action, Package, Rule, Trigger

logger = logging.getLogger(__name__)

PAGE_SIZE = 200


class WhiskClient:
    """Client for the ``/api/v1/namespaces/{namespace}`` endpoints."""

    def __init__(self, config: WhiskConfig, session: Optional[requests.Session] = None):
        self.config = config
        self.session = session or requests.Session()
        self.session.auth = config.credentials
        self.session.verify = not config.insecure
        self.session.headers.update({"Content-Type": "application/json"})

        self.packages = PackageService(self)
        self.actions = ActionService(self)
        self.triggers = TriggerService(self)
        self.rules = RuleService(self)

    @property
    def namespace(self) -> str:
        return self.config.namespace

    @property
    def auth_key(self) -> str:
        return self.config.auth

    def url(self, collection: str, path: str = "", namespace: Optional[str] = None) -> str:
        namespace = quote(namespace or self.config.namespace, safe="")
        url = f"{self.config.base_url}/namespaces/{namespace}/{collection}"
        if path:
            url += "/" + quote(path, safe="/")
        return url

    def request(self, method: str, url: str, params: Optional[Dict[str, Any]] = None,
                json_body: Optional[Dict[str, Any]] = None) -> Any:
        """
        Perform one API call.

        Args:
            method: HTTP method
            url: Absolute URL
            params: Query parameters
            json_body: JSON request body

        Returns:
            Decoded JSON body (empty dict for empty responses)

        Raises:
            WhiskError: On transport failure or non-2xx status
        """
        logger.debug(f"{method} {url} params={params}")
        try:
            response = self.session.request(method, url, params=params, json=json_body,
                                            timeout=self.config.timeout)
        except requests.RequestException as e:
            raise WhiskError(f"{method} {url} failed: {e}") from e

        if response.status_code >= 400:
            raise WhiskError(_error_message(response), status_code=response.status_code, response=response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise WhiskError(f"Invalid JSON from {url}: {e}", status_code=response.status_code,
                             response=response) from e

    def list_all(self, url: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Page through a collection using limit/skip."""
        items: List[Dict[str, Any]] = []
        skip = 0
        while True:
            query = dict(params or {})
            query.update({"limit": PAGE_SIZE, "skip": skip})
            page = self.request("GET", url, params=query) or []
            items.extend(page)
            if len(page) < PAGE_SIZE:
                return items
            skip += PAGE_SIZE


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = None
    if isinstance(body, dict) and body.get("error"):
        return f"{body['error']} (code {body.get('code', 'n/a')}, HTTP {response.status_code})"
    return f"HTTP {response.status_code}: {response.text[:200]}"


class _Service:
    collection = ""

    def __init__(self, client: WhiskClient):
        self.client = client

    def _list(self, path: str = "") -> List[Dict[str, Any]]:
        url = self.client.url(self.collection, path)
        # package-scoped action listings need the trailing slash
        if path:
            url += "/"
        return self.client.list_all(url)

    def _get(self, name: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return self.client.request("GET", self.client.url(self.collection, name), params=params)

    def delete(self, name: str) -> None:
        self.client.request("DELETE", self.client.url(self.collection, name))


class PackageService(_Service):
    collection = "packages"

    def list(self) -> List[Package]:
        return [Package.from_dict(p) for p in self._list()]

    def get(self, name: str) -> Package:
        return Package.from_dict(self._get(name))


class ActionService(_Service):
    collection = "actions"

    def list(self, package_name: str = "") -> List[Action]:
        """List actions of the namespace, or of one package when given."""
        return [Action.from_dict(a) for a in self._list(package_name)]

    def get(self, name: str, fetch_code: bool = False) -> Action:
        return Action.from_dict(self._get(name, params={"code": str(fetch_code).lower()}))

    def invoke(self, name: str, params: Optional[Dict[str, Any]] = None, blocking: bool = True) -> Dict[str, Any]:
        """
        Invoke an action. A fully qualified name (``/ns/pkg/action``) is
        invoked in its own namespace.
        """
        namespace = None
        if name.startswith("/"):
            namespace, _, name = name[1:].partition("/")
        url = self.client.url(self.collection, name, namespace=namespace)
        return self.client.request("POST", url, params={"blocking": str(blocking).lower()}, json_body=params or {})


class TriggerService(_Service):
    collection = "triggers"

    def list(self) -> List[Trigger]:
        return [Trigger.from_dict(t) for t in self._list()]

    def get(self, name: str) -> Trigger:
        return Trigger.from_dict(self._get(name))


class RuleService(_Service):
    collection = "rules"

    def list(self) -> List[Rule]:
        return [Rule.from_dict(r) for r in self._list()]

    def get(self, name: str) -> Rule:
        return Rule.from_dict(self._get(name))

    def set_state(self, name: str, state: str) -> None:
        """Set a rule to ``active`` or ``inactive``."""
        self.client.request("POST", self.client.url(self.collection, name), json_body={"status": state})
