from __future__ import annotations

import logging

import requests

from tunebridge.errors import NoRegistryEntry, TransportFailure, UpstreamRejected
from tunebridge.http_headers import media_headers
from tunebridge.models import CachedAudio
from tunebridge.personas import DOWNLOAD_USER_AGENT
from tunebridge.state import ByteCache, UrlRegistry

LOG = logging.getLogger(__name__)


class CacheMaterializer:
    """Pulls a resolved track fully into the byte cache so seeks never hit the network."""

    def __init__(self, registry: UrlRegistry, cache: ByteCache, session: requests.Session, timeout: float = 30.0):
        self.registry = registry
        self.cache = cache
        self.session = session
        self.timeout = timeout

    def materialize(self, track_id: str) -> bool:
        if self.cache.contains(track_id):
            return True

        # Never resolves on its own; the track must have been played first.
        url = self.registry.get(track_id)
        if not url:
            raise NoRegistryEntry(track_id)

        try:
            resp = self.session.get(url, headers=media_headers(DOWNLOAD_USER_AGENT), timeout=self.timeout)
            data = resp.content
        except requests.RequestException as e:
            raise TransportFailure(f"Failed to fetch audio: {e}") from e
        if not resp.ok:
            raise UpstreamRejected(f"Failed to fetch audio: HTTP {resp.status_code}")

        content_type = (resp.headers.get("Content-Type") or "audio/webm").split(";")[0].strip()
        self.cache.put(CachedAudio(track_id=track_id, data=data, content_type=content_type or "audio/webm"))
        LOG.info("Cached %s (%d bytes)", track_id, len(data))
        return True

    def is_cached(self, track_id: str) -> bool:
        return self.cache.contains(track_id)

    def clear(self) -> None:
        self.cache.clear()
