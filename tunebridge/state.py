"""Process-wide state shared by the resolver and the local audio proxy.

All three holders are created once by the service and handed to every
component that needs them. Locks cover a single dictionary operation and are
never held across network I/O.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

from tunebridge.models import CachedAudio, ResolvedStream


class UrlRegistry:
    """Last-resolved backing URL per track id. Later resolutions overwrite."""

    def __init__(self) -> None:
        self._streams: Dict[str, ResolvedStream] = {}
        self._lock = threading.Lock()

    def put(self, track_id: str, backing_url: str) -> None:
        with self._lock:
            self._streams[track_id] = ResolvedStream(track_id=track_id, backing_url=backing_url)

    def get(self, track_id: str) -> Optional[str]:
        with self._lock:
            stream = self._streams.get(track_id)
        return stream.backing_url if stream is not None else None

    def clear(self) -> None:
        with self._lock:
            self._streams.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._streams)


class ByteCache:
    """Fully downloaded audio per track id.

    An entry is authoritative and never modified once stored; the only way to
    drop entries is clear(), which empties the whole cache.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, CachedAudio] = {}
        self._lock = threading.Lock()

    def put(self, audio: CachedAudio) -> CachedAudio:
        with self._lock:
            existing = self._entries.get(audio.track_id)
            if existing is not None:
                return existing
            self._entries[audio.track_id] = audio
            return audio

    def get(self, track_id: str) -> Optional[CachedAudio]:
        with self._lock:
            return self._entries.get(track_id)

    def contains(self, track_id: str) -> bool:
        with self._lock:
            return track_id in self._entries

    def clear(self) -> None:
        with self._lock:
            self._entries = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class VisitorContext:
    """Opaque visitor token issued by the catalog API and replayed on later calls."""

    def __init__(self, token: Optional[str] = None) -> None:
        self._token = token or None
        self._lock = threading.Lock()

    def get(self) -> Optional[str]:
        with self._lock:
            return self._token

    def set(self, token: Optional[str]) -> None:
        if not isinstance(token, str) or not token:
            return
        with self._lock:
            self._token = token
