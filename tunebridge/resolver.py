"""
Turns an opaque track id into a playable local URL.

Providers are tried strictly in order, each exactly once. The first one that
yields an audio candidate wins; every failure (transport, HTTP status, bad
playability) just moves on to the next one. The backing media URL only ever
goes into the URL registry; callers get the local proxy address.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Optional, Sequence

from tunebridge.providers.base import StreamProvider
from tunebridge.errors import NotFound, StreamError
from tunebridge.formats import best_format, select_format
from tunebridge.models import QualityTier, validate_track_id
from tunebridge.state import UrlRegistry

LOG = logging.getLogger(__name__)


class StreamResolver:
    def __init__(
        self,
        providers: Sequence[StreamProvider],
        registry: UrlRegistry,
        local_url_for: Callable[[str], str],
    ):
        self.providers: List[StreamProvider] = list(providers)
        self.registry = registry
        self.local_url_for = local_url_for

    def find_backing_url(self, track_id: str, quality: Optional[QualityTier] = None) -> str:
        """Walk the fallback chain. Does not touch the registry."""
        validate_track_id(track_id)
        for provider in self.providers:
            name = provider.get_name()
            try:
                candidates = provider.attempt_resolve(track_id)
            except StreamError as e:
                LOG.info("Provider %s failed for %s: %s", name, track_id, e)
                continue
            except Exception as e:
                # A provider bug must not end the chain early.
                LOG.warning("Provider %s crashed for %s: %s", name, track_id, e, exc_info=True)
                continue

            if quality is not None:
                url = select_format(candidates or [], quality)
            else:
                url = best_format(candidates or [])
            if url:
                LOG.info("Resolved %s via %s", track_id, name)
                return url
            LOG.info("Provider %s had no audio for %s", name, track_id)

        raise NotFound(track_id)

    def resolve(self, track_id: str, quality: Optional[QualityTier] = None) -> str:
        """Resolve, register the backing URL (last write wins), return the local URL."""
        url = self.find_backing_url(track_id, quality)
        self.registry.put(track_id, url)
        return self.local_url_for(track_id)
