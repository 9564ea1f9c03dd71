from __future__ import annotations

import posixpath
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlparse


@dataclass(frozen=True)
class BundleLayout:
    """On-disk layout and URL conventions for downloaded bundles.

    Relative to the app-private document root:
      bundles/<version>/<platform>.bundle
      bundles/<version>/<platform>.bundle.zip   (only while extracting)
    """

    document_root: Path
    platform: str

    def relative_bundle_path(self, version: str) -> str:
        # Registered with the store; always posix separators.
        return posixpath.join("bundles", version, f"{self.platform}.bundle")

    def bundle_dir(self, version: str) -> Path:
        return self.document_root / "bundles" / version

    def bundle_file(self, version: str) -> Path:
        return self.bundle_dir(version) / f"{self.platform}.bundle"

    def archive_file(self, version: str) -> Path:
        return self.bundle_dir(version) / f"{self.platform}.bundle.zip"

    def latest_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/api/v1/bundles/latest/{self.platform}"

    def download_url(self, base_url: str, version: str) -> str:
        return f"{base_url.rstrip('/')}/static/bundles/{version}/{self.platform}.bundle"


def is_zip_url(url: str) -> bool:
    return urlparse(url).path.lower().endswith(".zip")
