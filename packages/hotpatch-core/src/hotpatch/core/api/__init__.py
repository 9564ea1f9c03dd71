"""Public, stable API surface for hotpatch.

If you're integrating hotpatch into a host app or writing your own
collaborators (e.g. a BundleStore bridging to the native runtime), import from
**`hotpatch.core.api`**.

Everything outside this package is considered internal and may change without
notice, even in minor releases.
"""

from __future__ import annotations

# Collaborator contracts
from hotpatch.core.connectors.base import Archive, BundleStore, ConnectorInit, FileSystem, Transport
from hotpatch.core.connectors.manager import Collaborators, build_collaborators
# Exceptions
from hotpatch.core.exception import (
    ConfigurationError,
    ConnectorError,
    DescriptorError,
    FilesystemError,
    TransportError,
)
# Lifecycle
from hotpatch.core.lifecycle import BundleLifecycleManager, LifecycleResult
from hotpatch.core.registry.connectors import get_connector, list_connectors, register_connector
# Entry points
from hotpatch.core.runner import (
    get_current_app_version,
    init,
    is_activation_required,
    remove_stale_bundles,
    reset,
)
# Settings
from hotpatch.core.runtime.settings import Settings, load_settings
# Models
from hotpatch.core.spec import InitOptions, RemoteBundleDescriptor
from hotpatch.core.sweeper import StaleBundleSweeper, SweepResult
# Version comparisons
from hotpatch.core.versioning import compare, is_valid

__all__ = [
    # entry points
    "init",
    "get_current_app_version",
    "is_activation_required",
    "remove_stale_bundles",
    "reset",
    # lifecycle
    "BundleLifecycleManager",
    "LifecycleResult",
    "StaleBundleSweeper",
    "SweepResult",
    # models
    "InitOptions",
    "RemoteBundleDescriptor",
    # versions
    "compare",
    "is_valid",
    # settings
    "Settings",
    "load_settings",
    # collaborators
    "BundleStore",
    "FileSystem",
    "Transport",
    "Archive",
    "ConnectorInit",
    "Collaborators",
    "build_collaborators",
    # exceptions
    "ConfigurationError",
    "ConnectorError",
    "TransportError",
    "FilesystemError",
    "DescriptorError",
    # registry
    "register_connector",
    "get_connector",
    "list_connectors",
]
