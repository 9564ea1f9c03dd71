from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional
from urllib.parse import urljoin

from hotpatch.core import versioning
from hotpatch.core.connectors.manager import Collaborators, build_collaborators
from hotpatch.core.layout import BundleLayout, is_zip_url
from hotpatch.core.observability import dur_ms, log_event
from hotpatch.core.policy import is_activation_required
from hotpatch.core.runtime.settings import Settings, load_settings
from hotpatch.core.spec import InitOptions, RemoteBundleDescriptor
from hotpatch.core.sweeper import StaleBundleSweeper, SweepResult

log = logging.getLogger("hotpatch.core.lifecycle")


@dataclass
class LifecycleResult:
    """What one init() run did. Callers may ignore it; success means no exception."""

    descriptor: Optional[RemoteBundleDescriptor] = None
    current_app_version: Optional[str] = None
    activation_required: bool = False
    activated_version: Optional[str] = None
    # Active bundle cleared because the installed app caught up with it
    rolled_back: bool = False
    removed_versions: List[str] = field(default_factory=list)
    duration_ms: int = 0

    def as_dict(self) -> dict:
        return {
            "remote_version": self.descriptor.version if self.descriptor else None,
            "current_app_version": self.current_app_version,
            "activation_required": self.activation_required,
            "activated_version": self.activated_version,
            "rolled_back": self.rolled_back,
            "removed_versions": list(self.removed_versions),
            "duration_ms": self.duration_ms,
        }


class BundleLifecycleManager:
    """Startup update flow: fetch descriptor, decide, install, roll back, sweep.

    Collaborators are injected; the manager holds no global state. Callers must
    not run init() concurrently with itself or with reset() against the same
    store/filesystem.
    """

    def __init__(
        self,
        collaborators: Collaborators,
        *,
        settings: Settings | None = None,
        platform: str | None = None,
        document_root: str | Path | None = None,
    ):
        self.settings = settings or Settings()
        self.store = collaborators.store
        self.fs = collaborators.fs
        self.transport = collaborators.transport
        self.archive = collaborators.archive
        self.collaborators = collaborators
        self.layout = BundleLayout(
            document_root=Path(document_root or self.settings.document_root).expanduser(),
            platform=platform or self.settings.platform,
        )
        self.sweeper = StaleBundleSweeper(store=self.store, fs=self.fs, layout=self.layout)

    @classmethod
    def from_settings(
        cls,
        settings: Settings | None = None,
        *,
        on_reload: Callable[[], Any] | None = None,
        transport_options: dict | None = None,
    ) -> "BundleLifecycleManager":
        settings = settings or load_settings()
        collaborators = build_collaborators(settings, on_reload=on_reload, transport_options=transport_options)
        return cls(collaborators, settings=settings)

    async def aclose(self) -> None:
        await self.collaborators.aclose()

    def _event(self, event: str, **fields: Any) -> None:
        log_event(log, settings=self.settings, level=logging.INFO, event=event, platform=self.layout.platform, **fields)

    async def get_current_app_version(self, app_version: str) -> str:
        return await versioning.get_current_app_version(self.store, app_version)

    async def init(self, options: InitOptions | Mapping[str, Any] | None = None, **kw: Any) -> LifecycleResult:
        """Run the startup flow once.

        Raises ConfigurationError (no I/O attempted) when url/appVersion is
        missing. Any later failure is logged and re-raised unchanged.
        """
        opts = InitOptions.parse(options, **kw)
        t0 = time.perf_counter()
        result = LifecycleResult()
        self._event("hotpatch_init_start", url=opts.url, app_version=opts.app_version)
        try:
            payload = await self.transport.get_json(self.layout.latest_url(opts.url))
            descriptor = RemoteBundleDescriptor.from_payload(payload)
            if descriptor is None:
                # nothing published yet for this platform
                result.duration_ms = dur_ms(t0, time.perf_counter())
                self._event("hotpatch_no_bundle", url=opts.url)
                return result
            result.descriptor = descriptor

            current = await self.get_current_app_version(opts.app_version)
            result.current_app_version = current
            result.activation_required = is_activation_required(current, descriptor)
            self._event(
                "hotpatch_activation_decision",
                current_app_version=current,
                remote_version=descriptor.version,
                apply_from_version=descriptor.apply_from_version,
                is_update_required=descriptor.is_update_required,
                activation_required=result.activation_required,
            )
            if result.activation_required:
                result.activated_version = await self._install(opts, descriptor)

            # App store update already supersedes the patch: fall back to the shipped bundle.
            active = await self.store.get_active_bundle()
            if active and versioning.gte(opts.app_version, active):
                await self.store.set_active_bundle(None)
                result.rolled_back = True
                self._event("hotpatch_rollback_to_native", app_version=opts.app_version, active=active)

            sweep = await self.remove_stale_bundles(opts.app_version)
            result.removed_versions = list(sweep.removed)
        except Exception:
            log.exception(f"hotpatch init failed url={opts.url} app_version={opts.app_version}")
            raise

        result.duration_ms = dur_ms(t0, time.perf_counter())
        self._event("hotpatch_init_end", **result.as_dict())
        return result

    async def _install(self, opts: InitOptions, descriptor: RemoteBundleDescriptor) -> Optional[str]:
        version = str(descriptor.version)
        bundle_dir = str(self.layout.bundle_dir(version))
        await self.fs.mkdir(bundle_dir, exclude_from_backup=True)

        if descriptor.url:
            from_url = urljoin(opts.url + "/", descriptor.url)
        else:
            from_url = self.layout.download_url(opts.url, version)
        zipped = is_zip_url(from_url)
        to_file = str(self.layout.archive_file(version) if zipped else self.layout.bundle_file(version))
        await self.transport.download_file(from_url=from_url, to_file=to_file)

        if zipped:
            await self.archive.unzip(to_file, bundle_dir)
            await self.fs.unlink(to_file)

        bundle_file = str(self.layout.bundle_file(version))
        if not await self.fs.exists(bundle_file):
            log.warning(f"bundle file missing after download; not activating version={version} path={bundle_file}")
            return None

        await self.store.register_bundle(version, self.layout.relative_bundle_path(version))
        await self.store.set_active_bundle(version)
        self._event("hotpatch_bundle_activated", version=version, source=from_url)
        return version

    async def remove_stale_bundles(self, app_version: str) -> SweepResult:
        return await self.sweeper.remove_stale_bundles(app_version)

    async def reset(self) -> SweepResult:
        return await self.sweeper.reset()
