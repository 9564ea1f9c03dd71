from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable

from hotpatch.core.connectors.base import Archive, BundleStore, FileSystem, Transport
from hotpatch.core.registry.connectors import REGISTRY
from hotpatch.core.runtime.settings import Settings

log = logging.getLogger("hotpatch.core.connectors.manager")


@dataclass
class Collaborators:
    """The four collaborators a lifecycle manager is wired with.

    Build one with `build_collaborators(settings)` or construct it directly with
    host implementations (e.g. a store bridging to the native runtime).
    """

    store: BundleStore
    fs: FileSystem
    transport: Transport
    archive: Archive

    async def aclose(self) -> None:
        for conn in (self.transport, self.archive, self.fs, self.store):
            closer = getattr(conn, "aclose", None)
            if closer is None:
                continue
            try:
                await closer()
            except Exception:
                log.warning("connector close failed; continuing", exc_info=True)


def build_collaborators(
    settings: Settings,
    *,
    on_reload: Callable[[], Any] | None = None,
    transport_options: dict | None = None,
) -> Collaborators:
    """Create collaborators from the drivers named in settings.

    `on_reload` is handed to the store and called by `reload_bundle()`.
    `transport_options` are merged over the timeout/verify_ssl taken from settings.
    """
    store_config: dict = {}
    if settings.store_driver == "sqlite":
        store_config["path"] = settings.resolved_store_path()

    t_opts = {"timeout": settings.http_timeout, "verify_ssl": settings.verify_ssl}
    t_opts.update(transport_options or {})

    return Collaborators(
        store=REGISTRY.create(
            name="store", kind="store", driver=settings.store_driver, config=store_config, on_reload=on_reload
        ),
        fs=REGISTRY.create(name="fs", kind="fs", driver=settings.fs_driver),
        transport=REGISTRY.create(name="transport", kind="transport", driver=settings.transport_driver, options=t_opts),
        archive=REGISTRY.create(name="archive", kind="archive", driver=settings.archive_driver),
    )
