from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable


@runtime_checkable
class BundleStore(Protocol):
    """
    Persists which bundle is active and which bundles are registered.

    The lifecycle run is the only writer; implementations need no locking of
    their own as long as init()/reset() are never run concurrently.
    """

    async def get_active_bundle(self) -> Optional[str]: ...

    async def set_active_bundle(self, version: Optional[str]) -> None: ...

    async def get_bundles(self) -> Dict[str, str]: ...

    async def register_bundle(self, version: str, path: str) -> None: ...

    async def unregister_bundle(self, version: str) -> None: ...

    async def reload_bundle(self) -> None: ...


@runtime_checkable
class FileSystem(Protocol):
    async def exists(self, path: str) -> bool: ...

    async def mkdir(self, path: str, *, exclude_from_backup: bool = False) -> None: ...

    async def unlink(self, path: str) -> None: ...


@runtime_checkable
class Transport(Protocol):
    async def get_json(self, url: str) -> Any: ...

    async def download_file(self, *, from_url: str, to_file: str) -> None: ...


@runtime_checkable
class Archive(Protocol):
    async def unzip(self, archive_path: str, dest_dir: str) -> None: ...


@dataclass
class ConnectorInit:
    name: str
    kind: str
    driver: str
    config: Dict[str, Any]
    options: Dict[str, Any]
    # Host hook invoked by store.reload_bundle()
    on_reload: Callable[[], Any] | None = None
