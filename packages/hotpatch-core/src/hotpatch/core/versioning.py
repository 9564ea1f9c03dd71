"""Semantic-version comparisons.

Every version comparison in hotpatch goes through this module. Version strings
are not lexically ordered consistently with semver precedence
("1.0.9" < "1.0.10" semantically, not as strings).

Predicates (`gte`, `lt`, `gt`) never raise: an invalid operand makes them
return False.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import semver

log = logging.getLogger("hotpatch.core.versioning")


def _parse(v: Any) -> Optional[semver.Version]:
    if not isinstance(v, str):
        return None
    try:
        return semver.Version.parse(v.strip())
    except (ValueError, TypeError):
        return None


def is_valid(v: Any) -> bool:
    return _parse(v) is not None


def compare(a: str, b: str) -> int:
    """Return -1, 0 or 1 by semver precedence. Raises ValueError on invalid input."""
    va = _parse(a)
    vb = _parse(b)
    if va is None or vb is None:
        raise ValueError(f"Invalid semantic version: {a!r} vs {b!r}")
    return va.compare(vb)


def sort_key(v: str) -> semver.Version:
    """Key for sorted(); only valid versions are accepted."""
    parsed = _parse(v)
    if parsed is None:
        raise ValueError(f"Invalid semantic version: {v!r}")
    return parsed


def gte(a: Any, b: Any) -> bool:
    va, vb = _parse(a), _parse(b)
    if va is None or vb is None:
        return False
    return va >= vb


def lt(a: Any, b: Any) -> bool:
    va, vb = _parse(a), _parse(b)
    if va is None or vb is None:
        return False
    return va < vb


def gt(a: Any, b: Any) -> bool:
    va, vb = _parse(a), _parse(b)
    if va is None or vb is None:
        return False
    return va > vb


async def get_current_app_version(store, installed_app_version: str) -> str:
    """Version effectively running right now.

    Ex: installed 1.0.0, active bundle 1.0.1 => 1.0.1
    Ex: installed 1.0.0, no active bundle   => 1.0.0
    Ex: installed 1.0.1, active bundle 1.0.0 => 1.0.1
    Ties favor the installed version.
    """
    bundle_version = await store.get_active_bundle()
    if not bundle_version:
        return installed_app_version
    if gt(bundle_version, installed_app_version):
        return bundle_version
    if not is_valid(bundle_version):
        log.warning(f"active bundle version is not valid semver; ignoring active={bundle_version!r}")
    return installed_app_version
