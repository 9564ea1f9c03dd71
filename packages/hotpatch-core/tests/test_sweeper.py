from __future__ import annotations

from pathlib import Path

import pytest

from hotpatch.core.layout import BundleLayout
from hotpatch.core.sweeper import StaleBundleSweeper, _sweep_order

from conftest import FakeFS, FakeStore


def _sweeper(store, fs):
    return StaleBundleSweeper(store=store, fs=fs, layout=BundleLayout(document_root=Path("/docs"), platform="ios"))


def _bundles(*versions):
    return {v: f"bundles/{v}/ios.bundle" for v in versions}


def test_sweep_order_is_semver_ascending_with_invalid_last():
    assert _sweep_order(["1.0.10", "garbage", "1.0.9", "0.1.0"]) == ["0.1.0", "1.0.9", "1.0.10", "garbage"]


@pytest.mark.anyio
async def test_removes_only_strictly_older_versions():
    store = FakeStore(bundles=_bundles("1.0.9", "1.0.10", "1.1.0"))
    fs = FakeFS()
    result = await _sweeper(store, fs).remove_stale_bundles("1.0.10")

    assert result.removed == ["1.0.9"]
    assert result.failed == {}
    assert store.called("unregister_bundle", "1.0.9")
    assert ("unlink", "/docs/bundles/1.0.9") in fs.calls
    assert set(store.bundles) == {"1.0.10", "1.1.0"}


@pytest.mark.anyio
async def test_unregisters_even_when_directory_is_gone():
    store = FakeStore(bundles=_bundles("0.9.0"))
    fs = FakeFS(exists=False)
    result = await _sweeper(store, fs).remove_stale_bundles("1.0.0")

    assert result.removed == ["0.9.0"]
    assert store.called("unregister_bundle", "0.9.0")
    assert not any(call[0] == "unlink" for call in fs.calls)


@pytest.mark.anyio
async def test_invalid_registered_version_is_never_stale():
    store = FakeStore(bundles=_bundles("not-a-version", "0.1.0"))
    result = await _sweeper(store, FakeFS()).remove_stale_bundles("1.0.0")
    assert result.removed == ["0.1.0"]
    assert "not-a-version" in store.bundles


@pytest.mark.anyio
async def test_invalid_reference_version_removes_nothing():
    store = FakeStore(bundles=_bundles("0.1.0"))
    result = await _sweeper(store, FakeFS()).remove_stale_bundles("INVALID")
    assert result.removed == []
    assert store.bundles == _bundles("0.1.0")


@pytest.mark.anyio
async def test_one_failed_deletion_does_not_stop_the_sweep(caplog):
    store = FakeStore(bundles=_bundles("0.1.0", "0.2.0", "0.3.0"))
    fs = FakeFS(fail_unlink={"/docs/bundles/0.2.0"})
    result = await _sweeper(store, fs).remove_stale_bundles("1.0.0")

    assert result.removed == ["0.1.0", "0.3.0"]
    assert list(result.failed) == ["0.2.0"]
    assert "cannot remove" in result.failed["0.2.0"]
    assert any("version=0.2.0" in r.getMessage() for r in caplog.records)


@pytest.mark.anyio
async def test_reset_removes_everything_and_reloads():
    store = FakeStore(active="2.0.0", bundles=_bundles("2.0.0", "1.0.0"))
    fs = FakeFS()
    result = await _sweeper(store, fs).reset()

    assert result.removed == ["1.0.0", "2.0.0"]
    assert store.bundles == {}
    assert store.active is None
    names = store.names()
    assert names[-2:] == ["set_active_bundle", "reload_bundle"]
    assert ("unlink", "/docs/bundles/2.0.0") in fs.calls


@pytest.mark.anyio
async def test_reset_with_no_bundles_still_clears_and_reloads():
    store = FakeStore()
    result = await _sweeper(store, FakeFS()).reset()
    assert result.removed == []
    assert store.calls == [("get_bundles",), ("set_active_bundle", None), ("reload_bundle",)]


@pytest.mark.anyio
async def test_reset_reloads_even_after_a_failed_deletion():
    store = FakeStore(bundles=_bundles("1.0.0"))
    fs = FakeFS(fail_unlink={"/docs/bundles/1.0.0"})
    result = await _sweeper(store, fs).reset()
    assert result.failed.keys() == {"1.0.0"}
    assert store.called("reload_bundle")
