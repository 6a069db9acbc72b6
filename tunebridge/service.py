"""Wires the resolver, the shared state and the local audio proxy together.

This is the surface the UI talks to: it resolves a track to a local URL, and
caches, downloads or forgets audio bytes. All state is owned here and passed
to the components explicitly.
"""

from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

import requests

from tunebridge.audio_proxy import AudioProxyServer
from tunebridge.config import DEFAULT_CONFIG
from tunebridge.downloader import TrackDownloader
from tunebridge.factory import build_providers
from tunebridge.materializer import CacheMaterializer
from tunebridge.models import QualityTier
from tunebridge.resolver import StreamResolver
from tunebridge.state import ByteCache, UrlRegistry, VisitorContext
from tunebridge.utils import build_session

LOG = logging.getLogger(__name__)


class StreamService:
    def __init__(self, config: Optional[Dict[str, Any]] = None, session: Optional[requests.Session] = None):
        cfg = dict(DEFAULT_CONFIG)
        cfg.update(config or {})
        self.config = cfg

        self.session = session or build_session()
        self.registry = UrlRegistry()
        self.cache = ByteCache()
        self.visitor = VisitorContext()

        media_timeout = float(cfg["media_timeout_seconds"])
        self.proxy = AudioProxyServer(
            self.registry,
            self.cache,
            self.session,
            host=cfg["proxy_host"],
            port=int(cfg["proxy_port"]),
            fast_start_bytes=int(cfg["fast_start_bytes"]),
            prefetch_window_bytes=int(cfg["prefetch_window_bytes"]),
            media_timeout=media_timeout,
        )
        self.resolver = StreamResolver(
            build_providers(cfg, self.session, self.visitor),
            self.registry,
            self.proxy.local_url,
        )
        self.materializer = CacheMaterializer(self.registry, self.cache, self.session, timeout=media_timeout)
        self.downloader = TrackDownloader(
            self.resolver,
            self.registry,
            self.session,
            subdir=cfg["download_subdir"],
            timeout=media_timeout,
        )

    def start(self) -> None:
        delay_ms = int(self.config.get("proxy_startup_delay_ms") or 0)
        if delay_ms > 0:
            time.sleep(delay_ms / 1000.0)
        self.proxy.start()

    def stop(self) -> None:
        self.proxy.stop()
        self.session.close()

    def resolve_stream(self, track_id: str, quality: Optional[str] = None) -> str:
        tier = QualityTier.parse(quality) if quality else None
        return self.resolver.resolve(track_id, tier)

    def cache_audio(self, track_id: str) -> bool:
        return self.materializer.materialize(track_id)

    def get_cached_audio(self, track_id: str) -> bool:
        return self.materializer.is_cached(track_id)

    def clear_audio_cache(self) -> None:
        self.materializer.clear()

    def download_track(
        self,
        track_id: str,
        title: str,
        artist: str,
        download_path: Optional[str] = None,
        quality: Optional[str] = None,
    ) -> str:
        return self.downloader.download_track(
            track_id,
            title,
            artist,
            download_path=download_path or self.config.get("download_path") or None,
            quality=quality or self.config.get("download_quality") or "high",
        )
