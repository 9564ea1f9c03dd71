"""Centralized customized exceptions for hotpatch.

All project-specific exceptions live in this module (enforced at import time
by `hotpatch.core._architecture_guard`). Internal code should prefer explicit
imports:

    from hotpatch.core.exception import ConfigurationError

Invalid version strings are not an error condition: they resolve to a false
predicate in `hotpatch.core.versioning` and never raise through the policy.
"""

from __future__ import annotations

__all__ = [
    "ConfigurationError",
    "ConnectorError",
    "TransportError",
    "FilesystemError",
    "DescriptorError",
]


class ConfigurationError(ValueError):
    """Raised when a required init option or a setting is missing/invalid.

    Always raised before any network or filesystem call.
    """


class ConnectorError(RuntimeError):
    """Base error for collaborator (connector) failures."""


class TransportError(ConnectorError):
    """Raised when fetching the remote descriptor or downloading a bundle fails."""

    def __init__(self, message: str, *, url: str, status_code: int | None = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FilesystemError(ConnectorError):
    """Raised when a create/exists/extract/delete operation fails."""

    def __init__(self, message: str, *, path: str):
        super().__init__(message)
        self.path = str(path)


class DescriptorError(ValueError):
    """Raised when the remote descriptor body is not a JSON object."""
