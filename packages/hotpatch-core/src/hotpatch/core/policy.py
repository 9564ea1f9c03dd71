from __future__ import annotations

import logging
from typing import Any, Mapping, Union

from hotpatch.core import versioning
from hotpatch.core.spec import RemoteBundleDescriptor

log = logging.getLogger("hotpatch.core.policy")


def is_activation_required(
    current_app_version: str,
    remote: Union[RemoteBundleDescriptor, Mapping[str, Any]],
) -> bool:
    """Whether the remote bundle should be downloaded and set as active.

    True only if ALL of the following hold:
      - remote `is_update_required` is true
      - `apply_from_version` is valid semver and current >= apply_from_version
      - current < remote `version`

    `apply_from_version` guarantees the bundle carries no native code changes
    relative to the installed binary. A missing or invalid value never activates.
    """
    descriptor = remote if isinstance(remote, RemoteBundleDescriptor) else RemoteBundleDescriptor.model_validate(dict(remote))

    if not descriptor.is_update_required:
        log.debug(f"activation not required: update not flagged version={descriptor.version}")
        return False

    if not versioning.is_valid(descriptor.apply_from_version):
        log.debug(f"activation not required: invalid apply_from_version={descriptor.apply_from_version!r}")
        return False

    if not versioning.gte(current_app_version, descriptor.apply_from_version):
        log.debug(
            f"activation not required: current={current_app_version} below apply_from_version={descriptor.apply_from_version}"
        )
        return False

    if not versioning.lt(current_app_version, descriptor.version):
        log.debug(f"activation not required: current={current_app_version} not older than version={descriptor.version}")
        return False

    return True
