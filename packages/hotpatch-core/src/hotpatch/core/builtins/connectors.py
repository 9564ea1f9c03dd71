from __future__ import annotations

import inspect
import logging
import os
import shutil
import sqlite3
import threading
import time
import zipfile
from contextlib import closing
from pathlib import Path
from typing import Any, Dict, Optional

import anyio
import httpx

from hotpatch.core.connectors.base import ConnectorInit
from hotpatch.core.exception import FilesystemError, TransportError
from hotpatch.core.registry.connectors import register_connector

log = logging.getLogger("hotpatch.core.builtin.connectors")


def _opt(options: dict, *keys: str, default=None):
    cur = options
    for k in keys:
        if not isinstance(cur, dict) or k not in cur:
            return default
        cur = cur[k]
    return cur


class _Base:
    """Small concrete base for built-in connectors (keeps init consistent)."""

    def __init__(self, init: ConnectorInit):
        self.name = init.name
        self.kind = init.kind
        self.driver = init.driver
        self.config = init.config or {}
        self.options = init.options or {}

    async def aclose(self) -> None:
        return None


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------


@register_connector("transport", "httpx")
class HttpxTransport(_Base):
    """
    Transport backed by httpx.AsyncClient.

    Options:
      - timeout (seconds, default 30)
      - verify_ssl (default true)
      - transport: optional httpx transport (e.g. httpx.MockTransport)
    Config:
      - headers: extra request headers
      - bearer_token: sets Authorization when present

    Single attempt per call; retry/backoff is the caller's policy.
    """

    def __init__(self, init: ConnectorInit):
        super().__init__(init)
        self._client: httpx.AsyncClient | None = None

    def _timeout(self) -> float:
        return float(_opt(self.options, "timeout", default=30) or 30)

    def _verify_ssl(self) -> bool:
        return bool(_opt(self.options, "verify_ssl", default=True))

    def headers(self) -> dict:
        h = dict(self.config.get("headers") or {})
        token = self.config.get("bearer_token")
        if token:
            h.setdefault("Authorization", f"Bearer {token}")
        return h

    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            kw: Dict[str, Any] = {
                "headers": self.headers(),
                "timeout": self._timeout(),
                "verify": self._verify_ssl(),
                "follow_redirects": True,
            }
            transport = _opt(self.options, "transport")
            if transport is not None:
                kw["transport"] = transport
            self._client = httpx.AsyncClient(**kw)
        return self._client

    async def aclose(self) -> None:
        try:
            if self._client is not None:
                await self._client.aclose()
        finally:
            self._client = None

    async def get_json(self, url: str) -> Any:
        try:
            r = await self.client().get(url)
            r.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise TransportError(
                f"GET {url} failed with HTTP {e.response.status_code}", url=url, status_code=e.response.status_code
            ) from e
        except httpx.HTTPError as e:
            raise TransportError(f"GET {url} failed: {e}", url=url) from e

        if not r.content.strip():
            return {}
        try:
            return r.json()
        except ValueError as e:
            raise TransportError(f"GET {url} returned a non-JSON body", url=url, status_code=r.status_code) from e

    async def download_file(self, *, from_url: str, to_file: str) -> None:
        dest = Path(to_file)
        part = dest.with_name(dest.name + ".part")
        try:
            async with self.client().stream("GET", from_url) as r:
                r.raise_for_status()
                async with await anyio.open_file(part, "wb") as f:
                    async for chunk in r.aiter_bytes():
                        await f.write(chunk)
        except httpx.HTTPStatusError as e:
            await anyio.to_thread.run_sync(_rm_quiet, part)
            raise TransportError(
                f"Download {from_url} failed with HTTP {e.response.status_code}",
                url=from_url,
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            await anyio.to_thread.run_sync(_rm_quiet, part)
            raise TransportError(f"Download {from_url} failed: {e}", url=from_url) from e
        except OSError as e:
            await anyio.to_thread.run_sync(_rm_quiet, part)
            raise FilesystemError(f"Unable to write download target: {part}", path=str(part)) from e

        try:
            await anyio.to_thread.run_sync(os.replace, part, dest)
        except OSError as e:
            await anyio.to_thread.run_sync(_rm_quiet, part)
            raise FilesystemError(f"Unable to move download into place: {dest}", path=str(dest)) from e
        log.info(f"downloaded {from_url} -> {dest}")


def _rm_quiet(p: Path) -> None:
    try:
        p.unlink()
    except FileNotFoundError:
        pass
    except OSError:
        log.warning(f"failed removing partial download {p}; continuing", exc_info=True)


# ---------------------------------------------------------------------------
# Filesystem
# ---------------------------------------------------------------------------


@register_connector("fs", "local")
class LocalFileSystem(_Base):
    """Local filesystem. Blocking calls run in a worker thread."""

    async def exists(self, path: str) -> bool:
        try:
            return await anyio.to_thread.run_sync(Path(path).exists)
        except OSError as e:
            raise FilesystemError(f"exists failed: {path}", path=path) from e

    async def mkdir(self, path: str, *, exclude_from_backup: bool = False) -> None:
        # exclude_from_backup only has meaning on Apple platforms; accepted everywhere.
        def _mk() -> None:
            Path(path).mkdir(parents=True, exist_ok=True)

        try:
            await anyio.to_thread.run_sync(_mk)
        except OSError as e:
            raise FilesystemError(f"mkdir failed: {path}", path=path) from e

    async def unlink(self, path: str) -> None:
        def _rm() -> None:
            p = Path(path)
            if p.is_dir() and not p.is_symlink():
                shutil.rmtree(p)
            else:
                p.unlink()

        try:
            await anyio.to_thread.run_sync(_rm)
        except OSError as e:
            raise FilesystemError(f"unlink failed: {path}", path=path) from e


# ---------------------------------------------------------------------------
# Archive
# ---------------------------------------------------------------------------


def _safe_target(dest: Path, name: str) -> Path:
    target = (dest / name).resolve()
    if target != dest and dest not in target.parents:
        raise ValueError(f"zip member escapes destination: {name}")
    return target


@register_connector("archive", "zipfile")
class StdZipfileArchive(_Base):
    """Archive connector backed by Python stdlib `zipfile`."""

    async def unzip(self, archive_path: str, dest_dir: str) -> None:
        def _extract() -> list[str]:
            dest = Path(dest_dir).resolve()
            dest.mkdir(parents=True, exist_ok=True)
            extracted: list[str] = []
            with zipfile.ZipFile(str(archive_path), "r") as zf:
                for name in zf.namelist():
                    _safe_target(dest, name)
                    zf.extract(name, path=str(dest))
                    extracted.append(name)
            return extracted

        try:
            files = await anyio.to_thread.run_sync(_extract)
        except (OSError, zipfile.BadZipFile, ValueError) as e:
            raise FilesystemError(f"unzip failed: {archive_path}: {e}", path=str(archive_path)) from e
        log.info(f"extracted {len(files)} file(s) from {archive_path} into {dest_dir}")


# ---------------------------------------------------------------------------
# Bundle stores
# ---------------------------------------------------------------------------


class _ReloadMixin:
    _on_reload = None

    async def reload_bundle(self) -> None:
        hook = self._on_reload
        if hook is None:
            log.warning("reload_bundle requested but no reload hook is configured")
            return
        res = hook()
        if inspect.isawaitable(res):
            await res


@register_connector("store", "sqlite")
class SqliteBundleStore(_ReloadMixin, _Base):
    """
    sqlite-backed bundle registry.

    Config:
      - path: sqlite file (required)
    """

    def __init__(self, init: ConnectorInit):
        super().__init__(init)
        path = self.config.get("path")
        if not path:
            raise ValueError("store.sqlite requires config.path")
        self.db_path = str(path)
        self._on_reload = init.on_reload
        # Schema is created on first use, inside a worker thread
        self._ready = False
        self._init_lock = threading.Lock()

    def _open(self):
        return sqlite3.connect(self.db_path, timeout=30, isolation_level=None)

    def _connect(self):
        if not self._ready:
            with self._init_lock:
                if not self._ready:
                    self._init()
                    self._ready = True
        return self._open()

    def _init(self):
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        with closing(self._open()) as c:
            c.execute("PRAGMA journal_mode=WAL;")
            c.execute(
                """CREATE TABLE IF NOT EXISTS bundles(
                    version TEXT PRIMARY KEY,
                    path TEXT NOT NULL,
                    registered_at INTEGER NOT NULL
                );"""
            )
            c.execute(
                """CREATE TABLE IF NOT EXISTS active_bundle(
                    id INTEGER PRIMARY KEY CHECK (id = 1),
                    version TEXT
                );"""
            )

    def _get_active(self) -> Optional[str]:
        with closing(self._connect()) as c:
            row = c.execute("SELECT version FROM active_bundle WHERE id=1").fetchone()
            return row[0] if row and row[0] else None

    def _set_active(self, version: Optional[str]) -> None:
        with closing(self._connect()) as c:
            c.execute("INSERT OR REPLACE INTO active_bundle(id, version) VALUES (1, ?)", (version,))

    def _list(self) -> Dict[str, str]:
        with closing(self._connect()) as c:
            rows = c.execute("SELECT version, path FROM bundles ORDER BY registered_at, version").fetchall()
            return {str(v): str(p) for v, p in rows}

    def _register(self, version: str, path: str) -> None:
        now = int(time.time())
        with closing(self._connect()) as c:
            c.execute(
                "INSERT OR REPLACE INTO bundles(version, path, registered_at) VALUES (?,?,?)",
                (version, path, now),
            )

    def _unregister(self, version: str) -> None:
        with closing(self._connect()) as c:
            c.execute("DELETE FROM bundles WHERE version=?", (version,))

    async def get_active_bundle(self) -> Optional[str]:
        return await anyio.to_thread.run_sync(self._get_active)

    async def set_active_bundle(self, version: Optional[str]) -> None:
        await anyio.to_thread.run_sync(self._set_active, version)

    async def get_bundles(self) -> Dict[str, str]:
        return await anyio.to_thread.run_sync(self._list)

    async def register_bundle(self, version: str, path: str) -> None:
        await anyio.to_thread.run_sync(self._register, version, path)

    async def unregister_bundle(self, version: str) -> None:
        await anyio.to_thread.run_sync(self._unregister, version)

    def __repr__(self) -> str:
        return f"SqliteBundleStore(path={self.db_path!r})"


@register_connector("store", "memory")
class MemoryBundleStore(_ReloadMixin, _Base):
    """In-process store. Nothing survives a restart."""

    def __init__(self, init: ConnectorInit):
        super().__init__(init)
        self._on_reload = init.on_reload
        self._active: Optional[str] = self.config.get("active")
        self._bundles: Dict[str, str] = dict(self.config.get("bundles") or {})

    async def get_active_bundle(self) -> Optional[str]:
        return self._active

    async def set_active_bundle(self, version: Optional[str]) -> None:
        self._active = version

    async def get_bundles(self) -> Dict[str, str]:
        return dict(self._bundles)

    async def register_bundle(self, version: str, path: str) -> None:
        self._bundles[version] = path

    async def unregister_bundle(self, version: str) -> None:
        self._bundles.pop(version, None)
