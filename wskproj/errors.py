"""
Error types raised while talking to OpenWhisk and reconciling projects.
"""

from typing import Optional

import requests


class WskprojError(Exception):
    """Base class for all wskproj errors."""


class ConfigError(WskprojError):
    """Raised when the API host or credentials cannot be determined."""


class WhiskError(WskprojError):
    """A single OpenWhisk API call failed (transport error or non-2xx status)."""

    def __init__(self, message: str, status_code: Optional[int] = None,
                 response: Optional[requests.Response] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.response = response

    @property
    def not_found(self) -> bool:
        return self.status_code == 404


class ClientError(WskprojError):
    """
    Retries were exhausted for a List/Get/Delete call.

    Carries the kind of entity being processed and the raw transport
    response of the last attempt for diagnostics.
    """

    def __init__(self, kind: str, cause: WhiskError, operation: str = "get", name: str = ""):
        self.kind = kind
        self.cause = cause
        self.operation = operation
        self.name = name
        self.response = cause.response
        self.status_code = cause.status_code
        target = f"{kind} {name}" if name else kind
        super().__init__(f"Failed to {operation} {target}: {cause.message}")


class MalformedAnnotationError(WskprojError):
    """The whisk-managed annotation of an entity has an unexpected shape."""

    def __init__(self, entity: str, detail: str):
        self.entity = entity
        self.detail = detail
        super().__init__(f"Malformed whisk-managed annotation on {entity}: {detail}")


class ManifestFormatError(WskprojError):
    """The manifest is unusable, e.g. required inputs have no value."""

    def __init__(self, path: str, message: str):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)
