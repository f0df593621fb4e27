"""
Configuration for wskproj.

Loads OpenWhisk connection settings from environment variables, falling
back to the properties file shared with the ``wsk`` CLI (``~/.wskprops``).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional

from .errors import ConfigError

DEFAULT_ATTEMPTS = 3
DEFAULT_INTERVAL = 1.0  # seconds
DEFAULT_NAMESPACE = "_"


def get_home() -> Path:
    """
    Get the wskproj home directory used for event logs.

    Returns:
        Path: wskproj home directory
    """
    home = os.environ.get("WSKPROJ_HOME", ".wskproj")
    return Path(home).resolve()


def read_wskprops(path: Optional[str] = None) -> Dict[str, str]:
    """
    Read a ``.wskprops`` file of KEY=VALUE lines.

    Args:
        path: File to read; defaults to $WSK_CONFIG_FILE or ~/.wskprops

    Returns:
        Dictionary of properties, empty if the file does not exist
    """
    path = path or os.environ.get("WSK_CONFIG_FILE") or str(Path.home() / ".wskprops")
    props_file = Path(path)
    if not props_file.exists():
        return {}

    props = {}
    with open(props_file, "r") as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#") or "=" not in line:
                continue
            key, value = line.split("=", 1)
            props[key.strip().upper()] = value.strip()
    return props


@dataclass
class RetryPolicy:
    """Attempt count and fixed backoff applied to every remote call."""

    attempts: int = DEFAULT_ATTEMPTS
    interval: float = DEFAULT_INTERVAL

    @classmethod
    def from_env(cls):
        """Load from environment variables."""
        return cls(
            attempts=int(os.getenv("WSKPROJ_RETRY_ATTEMPTS", str(DEFAULT_ATTEMPTS))),
            interval=float(os.getenv("WSKPROJ_RETRY_INTERVAL", str(DEFAULT_INTERVAL))),
        )


@dataclass
class WhiskConfig:
    """OpenWhisk API connection settings."""

    apihost: str
    auth: str = field(repr=False)  # never log credentials
    namespace: str = DEFAULT_NAMESPACE
    insecure: bool = False
    timeout: float = 60.0

    @property
    def base_url(self) -> str:
        host = self.apihost.rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        return f"{host}/api/v1"

    @property
    def credentials(self) -> tuple:
        if ":" not in self.auth:
            raise ConfigError("AUTH must be in the form <uuid>:<key>")
        user, key = self.auth.split(":", 1)
        return user, key

    @classmethod
    def from_env(cls, apihost: Optional[str] = None, auth: Optional[str] = None,
                 namespace: Optional[str] = None, insecure: Optional[bool] = None):
        """
        Load from explicit values, environment variables and ``.wskprops``.

        Explicit arguments win over environment variables, which win over
        the properties file.
        """
        props = read_wskprops()

        apihost = apihost or os.getenv("WHISK_APIHOST") or props.get("APIHOST")
        auth = auth or os.getenv("WHISK_AUTH") or props.get("AUTH")
        namespace = namespace or os.getenv("WHISK_NAMESPACE") or props.get("NAMESPACE") or DEFAULT_NAMESPACE
        if insecure is None:
            insecure = os.getenv("WHISK_INSECURE", "false").lower() == "true"

        if not apihost:
            raise ConfigError("OpenWhisk API host is not set. Use --apihost, WHISK_APIHOST or .wskprops")
        if not auth:
            raise ConfigError("OpenWhisk credentials are not set. Use --auth, WHISK_AUTH or .wskprops")

        return cls(
            apihost=apihost,
            auth=auth,
            namespace=namespace,
            insecure=insecure,
            timeout=float(os.getenv("WHISK_TIMEOUT", "60")),
        )
