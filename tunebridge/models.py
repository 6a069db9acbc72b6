from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional

_UNSAFE_ID_RE = re.compile(r"[\s/\x00-\x1f\x7f]")


class QualityTier(Enum):
    NORMAL = "normal"
    HIGH = "high"
    VERY_HIGH = "very_high"

    @classmethod
    def parse(cls, value: Optional[str]) -> "QualityTier":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.NORMAL


@dataclass(frozen=True)
class Persona:
    name: str
    version: str
    protocol_id: str
    user_agent: str


@dataclass(frozen=True)
class CandidateEncoding:
    mime_type: str
    bitrate: int
    url: str


@dataclass(frozen=True)
class ResolvedStream:
    track_id: str
    backing_url: str


@dataclass(frozen=True)
class CachedAudio:
    track_id: str
    data: bytes
    content_type: str = "audio/webm"

    @property
    def total_length(self) -> int:
        return len(self.data)


def validate_track_id(track_id: str) -> str:
    """Reject ids that cannot be carried as a single URL path segment."""
    if not isinstance(track_id, str) or not track_id:
        raise ValueError("Missing track id")
    if _UNSAFE_ID_RE.search(track_id):
        raise ValueError(f"Invalid track id: {track_id!r}")
    return track_id
