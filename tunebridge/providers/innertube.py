from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

import requests

from tunebridge.providers.base import StreamProvider
from tunebridge.errors import TransportFailure, UpstreamRejected
from tunebridge.formats import is_audio_mime, parse_candidates
from tunebridge.http_headers import innertube_headers
from tunebridge.models import CandidateEncoding, Persona
from tunebridge.personas import INNERTUBE_API_KEY, INNERTUBE_PLAYER_URL
from tunebridge.state import VisitorContext
from tunebridge.utils import signature_timestamp

LOG = logging.getLogger(__name__)


def build_player_request(persona: Persona, track_id: str, visitor_data: Optional[str], sig_timestamp: int) -> Dict[str, Any]:
    return {
        "context": {
            "client": {
                "clientName": persona.name,
                "clientVersion": persona.version,
                "hl": "en",
                "gl": "US",
                "visitorData": visitor_data,
                "androidSdkVersion": 30,
            }
        },
        "videoId": track_id,
        "playbackContext": {
            "contentPlaybackContext": {
                "signatureTimestamp": sig_timestamp,
            }
        },
        "racyCheckOk": True,
        "contentCheckOk": True,
    }


def extract_candidates(data: Dict[str, Any]) -> List[CandidateEncoding]:
    """Audio candidates from a player response, adaptive list preferred."""
    streaming = data.get("streamingData")
    if not isinstance(streaming, dict):
        return []
    for key in ("adaptiveFormats", "formats"):
        formats = streaming.get(key)
        if not isinstance(formats, list):
            continue
        candidates = parse_candidates(formats, is_audio_mime)
        if candidates:
            return candidates
    return []


class InnertubeProvider(StreamProvider):
    """Asks the YouTube Music player endpoint while posing as one client persona."""

    def __init__(
        self,
        persona: Persona,
        session: requests.Session,
        visitor: VisitorContext,
        api_key: str = INNERTUBE_API_KEY,
        timeout: float = 30.0,
    ):
        self.persona = persona
        self.session = session
        self.visitor = visitor
        self.api_key = api_key
        self.timeout = timeout

    def get_name(self) -> str:
        return self.persona.name

    def _capture_visitor(self, data: Dict[str, Any]) -> None:
        # Best effort: a missing or odd responseContext never fails the request.
        try:
            token = (data.get("responseContext") or {}).get("visitorData")
        except AttributeError:
            return
        if token:
            self.visitor.set(token)

    def attempt_resolve(self, track_id: str) -> Optional[List[CandidateEncoding]]:
        # Recomputed on every call; a cached value goes stale at midnight UTC.
        body = build_player_request(self.persona, track_id, self.visitor.get(), signature_timestamp())
        try:
            resp = self.session.post(
                INNERTUBE_PLAYER_URL,
                params={"key": self.api_key},
                headers=innertube_headers(self.persona),
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportFailure(f"{self.persona.name}: {e}") from e

        if not resp.ok:
            raise UpstreamRejected(f"{self.persona.name}: HTTP {resp.status_code}")
        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamRejected(f"{self.persona.name}: invalid JSON") from e
        if not isinstance(data, dict):
            raise UpstreamRejected(f"{self.persona.name}: unexpected payload")

        self._capture_visitor(data)

        playability = data.get("playabilityStatus")
        status = playability.get("status") if isinstance(playability, dict) else None
        if status != "OK":
            raise UpstreamRejected(f"{self.persona.name}: playability {status or 'missing'}")

        candidates = extract_candidates(data)
        LOG.debug("%s offered %d audio candidates for %s", self.persona.name, len(candidates), track_id)
        return candidates
