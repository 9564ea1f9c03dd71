"""hotpatch core package.

Public entrypoints:
- hotpatch.core.api: stable API surface for host apps and custom collaborators
- hotpatch.core.init / reset / remove_stale_bundles: run the update flow

Internal modules may change without notice.
"""

from __future__ import annotations

# Strict architecture enforcement (default ON; set HOTPATCH_STRICT_ARCH=0 to disable).
from hotpatch.core._architecture_guard import assert_architecture as _assert_architecture

_assert_architecture()

# Ensure built-in collaborators are registered on import.
from hotpatch.core.builtins import connectors as _builtin_connectors  # noqa: F401

from hotpatch.core.runner import (
    get_current_app_version,
    init,
    is_activation_required,
    remove_stale_bundles,
    reset,
)

__all__ = [
    "get_current_app_version",
    "init",
    "is_activation_required",
    "remove_stale_bundles",
    "reset",
]
