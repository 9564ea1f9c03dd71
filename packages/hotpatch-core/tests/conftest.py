import tempfile
import shutil
from pathlib import Path

import sys

# Allow running tests without installing the package.
sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

import pytest
from hotpatch.core.connectors.manager import Collaborators
from hotpatch.core.lifecycle import BundleLifecycleManager
from hotpatch.core.runtime.settings import Settings


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def temp_dir():
    d = Path(tempfile.mkdtemp(prefix="hotpatch_test_"))
    try:
        yield d
    finally:
        shutil.rmtree(d, ignore_errors=True)


@pytest.fixture()
def settings(temp_dir):
    return Settings(
        document_root=str(temp_dir / "docs"),
        platform="android",
        store_driver="memory",
        log_level="INFO",
    )


class FakeStore:
    """Records every call; behaves like a real store otherwise."""

    def __init__(self, *, active=None, bundles=None):
        self.active = active
        self.bundles = dict(bundles or {})
        self.calls = []

    async def get_active_bundle(self):
        self.calls.append(("get_active_bundle",))
        return self.active

    async def set_active_bundle(self, version):
        self.calls.append(("set_active_bundle", version))
        self.active = version

    async def get_bundles(self):
        self.calls.append(("get_bundles",))
        return dict(self.bundles)

    async def register_bundle(self, version, path):
        self.calls.append(("register_bundle", version, path))
        self.bundles[version] = path

    async def unregister_bundle(self, version):
        self.calls.append(("unregister_bundle", version))
        self.bundles.pop(version, None)

    async def reload_bundle(self):
        self.calls.append(("reload_bundle",))

    def called(self, name, *args):
        return (name, *args) in self.calls

    def names(self):
        return [c[0] for c in self.calls]


class FakeFS:
    def __init__(self, *, exists=True, fail_unlink=()):
        self._exists = exists
        self.fail_unlink = set(fail_unlink)
        self.calls = []

    async def exists(self, path):
        self.calls.append(("exists", path))
        if callable(self._exists):
            return self._exists(path)
        return self._exists

    async def mkdir(self, path, *, exclude_from_backup=False):
        self.calls.append(("mkdir", path, exclude_from_backup))

    async def unlink(self, path):
        self.calls.append(("unlink", path))
        if path in self.fail_unlink:
            raise OSError(f"cannot remove {path}")


_EMPTY = object()


class FakeTransport:
    def __init__(self, payload=_EMPTY, *, error=None):
        # None is a JSON null body
        self.payload = {} if payload is _EMPTY else payload
        self.error = error
        self.calls = []

    async def get_json(self, url):
        self.calls.append(("get_json", url))
        if self.error is not None:
            raise self.error
        return self.payload

    async def download_file(self, *, from_url, to_file):
        self.calls.append(("download_file", from_url, to_file))


class FakeArchive:
    def __init__(self, *, error=None):
        self.error = error
        self.calls = []

    async def unzip(self, archive_path, dest_dir):
        self.calls.append(("unzip", archive_path, dest_dir))
        if self.error is not None:
            raise self.error


@pytest.fixture()
def fakes():
    def _make(*, payload=_EMPTY, active=None, bundles=None, exists=True, transport_error=None, archive_error=None, fail_unlink=()):
        return Collaborators(
            store=FakeStore(active=active, bundles=bundles),
            fs=FakeFS(exists=exists, fail_unlink=fail_unlink),
            transport=FakeTransport(payload, error=transport_error),
            archive=FakeArchive(error=archive_error),
        )

    return _make


@pytest.fixture()
def make_manager(settings):
    def _make(collaborators, **kw):
        kw.setdefault("document_root", "/docs")
        return BundleLifecycleManager(collaborators, settings=settings, **kw)

    return _make
