from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from hotpatch.core import versioning
from hotpatch.core.connectors.base import BundleStore, FileSystem
from hotpatch.core.layout import BundleLayout

log = logging.getLogger("hotpatch.core.sweeper")


@dataclass
class SweepResult:
    removed: List[str] = field(default_factory=list)
    # version -> error message for directory deletions that failed
    failed: Dict[str, str] = field(default_factory=dict)


def _sweep_order(versions: Iterable[str]) -> List[str]:
    """Valid versions ascending by semver, invalid ones after in input order."""
    valid: List[str] = []
    invalid: List[str] = []
    for v in versions:
        (valid if versioning.is_valid(v) else invalid).append(v)
    return sorted(valid, key=versioning.sort_key) + invalid


class StaleBundleSweeper:
    """Removes downloaded bundles that are no longer needed.

    Each entry is unregistered first, then its directory is deleted if present.
    A failure on one entry is logged and recorded; the others are still processed.
    """

    def __init__(self, *, store: BundleStore, fs: FileSystem, layout: BundleLayout):
        self.store = store
        self.fs = fs
        self.layout = layout

    async def _remove(self, version: str, result: SweepResult) -> None:
        try:
            await self.store.unregister_bundle(version)
            bundle_dir = str(self.layout.bundle_dir(version))
            if await self.fs.exists(bundle_dir):
                await self.fs.unlink(bundle_dir)
        except Exception as e:
            log.warning(f"failed removing bundle version={version}; continuing", exc_info=True)
            result.failed[version] = str(e)
            return
        result.removed.append(version)

    async def remove_stale_bundles(self, reference_version: str) -> SweepResult:
        """Remove every registered bundle strictly older than reference_version."""
        result = SweepResult()
        bundles = await self.store.get_bundles()
        for version in _sweep_order(bundles.keys()):
            if not versioning.lt(version, reference_version):
                continue
            await self._remove(version, result)
        if result.removed:
            log.info(f"removed stale bundles reference={reference_version} versions={result.removed}")
        return result

    async def reset(self) -> SweepResult:
        """Remove all bundles, fall back to the native bundle and reload the host runtime."""
        result = SweepResult()
        bundles = await self.store.get_bundles()
        for version in _sweep_order(bundles.keys()):
            await self._remove(version, result)
        await self.store.set_active_bundle(None)
        await self.store.reload_bundle()
        log.info(f"reset to native bundle removed={result.removed} failed={sorted(result.failed)}")
        return result
