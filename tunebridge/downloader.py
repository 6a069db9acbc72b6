from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import Optional

import requests

from tunebridge.errors import TransportFailure, UpstreamRejected
from tunebridge.http_headers import media_headers
from tunebridge.models import QualityTier
from tunebridge.personas import DOWNLOAD_USER_AGENT
from tunebridge.resolver import StreamResolver
from tunebridge.state import UrlRegistry
from tunebridge.utils import default_download_base, extension_for, sanitize_filename_part

LOG = logging.getLogger(__name__)


def build_download_path(base: Path, subdir: str, artist: str, title: str, ext: str) -> Path:
    filename = f"{sanitize_filename_part(artist)} - {sanitize_filename_part(title)}.{ext}"
    return base / subdir / filename


class TrackDownloader:
    def __init__(
        self,
        resolver: StreamResolver,
        registry: UrlRegistry,
        session: requests.Session,
        subdir: str = "TuneBridge",
        timeout: float = 30.0,
    ):
        self.resolver = resolver
        self.registry = registry
        self.session = session
        self.subdir = subdir
        self.timeout = timeout

    def download_track(
        self,
        track_id: str,
        title: str,
        artist: str,
        download_path: Optional[str] = None,
        quality: str = "high",
    ) -> str:
        """Save a track to disk and return the written file path.

        Reuses the URL the player is already streaming when there is one;
        otherwise resolves at the requested quality without registering the
        result for playback.
        """
        url = self.registry.get(track_id)
        if not url:
            url = self.resolver.find_backing_url(track_id, QualityTier.parse(quality))

        base = Path(download_path) if download_path else default_download_base()
        try:
            resp = self.session.get(url, headers=media_headers(DOWNLOAD_USER_AGENT), stream=True, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportFailure(f"Download request failed: {e}") from e

        try:
            if not resp.ok:
                raise UpstreamRejected(f"Download request failed: HTTP {resp.status_code}")

            target = build_download_path(base, self.subdir, artist, title, extension_for(resp.headers.get("Content-Type")))
            target.parent.mkdir(parents=True, exist_ok=True)
            tmp_path = target.parent / f".tmp_{target.name}_{int(time.time() * 1000)}"
            try:
                with open(tmp_path, "wb") as f:
                    for chunk in resp.iter_content(chunk_size=512 * 1024):
                        if chunk:
                            f.write(chunk)
                os.replace(tmp_path, target)
            except requests.RequestException as e:
                raise TransportFailure(f"Failed to read response: {e}") from e
            finally:
                if tmp_path.exists():
                    tmp_path.unlink()
        finally:
            resp.close()

        LOG.info("Downloaded %s to %s", track_id, target)
        return str(target)
