from __future__ import annotations

import logging
from typing import List, Optional
from urllib.parse import quote

import requests

from tunebridge.providers.base import StreamProvider
from tunebridge.errors import TransportFailure, UpstreamRejected
from tunebridge.formats import mentions_audio, parse_candidates
from tunebridge.http_headers import mirror_headers
from tunebridge.models import CandidateEncoding

LOG = logging.getLogger(__name__)


class PipedProvider(StreamProvider):
    """Fallback: a Piped API mirror that exposes audio streams by plain GET."""

    def __init__(self, base_url: str, session: requests.Session, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout = timeout

    def get_name(self) -> str:
        return self.base_url

    def attempt_resolve(self, track_id: str) -> Optional[List[CandidateEncoding]]:
        url = f"{self.base_url}/streams/{quote(track_id, safe='')}"
        try:
            resp = self.session.get(url, headers=mirror_headers(), timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportFailure(f"{self.base_url}: {e}") from e

        if not resp.ok:
            raise UpstreamRejected(f"{self.base_url}: HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamRejected(f"{self.base_url}: invalid JSON") from e

        streams = data.get("audioStreams") if isinstance(data, dict) else None
        if not isinstance(streams, list):
            return None
        candidates = parse_candidates(streams, mentions_audio)
        LOG.debug("%s offered %d audio candidates for %s", self.base_url, len(candidates), track_id)
        return candidates
