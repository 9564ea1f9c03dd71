"""Module-level entry points for host startup code.

Each coroutine accepts an explicit `manager=`. Without one, a manager is built
from `load_settings()` (env + optional settings file), used for the single call
and closed afterwards.

    import anyio
    from hotpatch.core import init

    anyio.run(lambda: init({"url": "https://updates.example.com", "appVersion": "1.4.0"}))
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Mapping, Optional

from hotpatch.core.lifecycle import BundleLifecycleManager, LifecycleResult
from hotpatch.core.observability import ensure_logging
from hotpatch.core.policy import is_activation_required
from hotpatch.core.runtime.settings import Settings, load_settings
from hotpatch.core.spec import InitOptions
from hotpatch.core.sweeper import SweepResult


@asynccontextmanager
async def _managed(
    manager: Optional[BundleLifecycleManager],
    settings: Optional[Settings],
    on_reload: Callable[[], Any] | None = None,
) -> AsyncIterator[BundleLifecycleManager]:
    if manager is not None:
        yield manager
        return
    settings = settings or load_settings()
    ensure_logging(settings)
    owned = BundleLifecycleManager.from_settings(settings, on_reload=on_reload)
    try:
        yield owned
    finally:
        await owned.aclose()


async def get_current_app_version(
    app_version: str,
    *,
    manager: Optional[BundleLifecycleManager] = None,
    settings: Optional[Settings] = None,
) -> str:
    async with _managed(manager, settings) as m:
        return await m.get_current_app_version(app_version)


async def init(
    options: InitOptions | Mapping[str, Any] | None = None,
    *,
    manager: Optional[BundleLifecycleManager] = None,
    settings: Optional[Settings] = None,
    **kw: Any,
) -> LifecycleResult:
    # Validate before building anything so a bad call touches no disk/network.
    opts = InitOptions.parse(options, **kw)
    async with _managed(manager, settings) as m:
        return await m.init(opts)


async def remove_stale_bundles(
    app_version: str,
    *,
    manager: Optional[BundleLifecycleManager] = None,
    settings: Optional[Settings] = None,
) -> SweepResult:
    async with _managed(manager, settings) as m:
        return await m.remove_stale_bundles(app_version)


async def reset(
    *,
    manager: Optional[BundleLifecycleManager] = None,
    settings: Optional[Settings] = None,
    on_reload: Callable[[], Any] | None = None,
) -> SweepResult:
    async with _managed(manager, settings, on_reload) as m:
        return await m.reset()


__all__ = [
    "get_current_app_version",
    "init",
    "is_activation_required",
    "remove_stale_bundles",
    "reset",
]
