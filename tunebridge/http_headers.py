"""Shared helpers for building outbound HTTP header dictionaries."""

from typing import Dict, Optional

from tunebridge.models import Persona
from tunebridge.personas import INNERTUBE_ORIGIN, MEDIA_USER_AGENT

BROWSER_USER_AGENT = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
MIRROR_USER_AGENT = "Mozilla/5.0"


CORS_HEADERS: Dict[str, str] = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Range, Content-Type",
    "Access-Control-Expose-Headers": "Content-Length, Content-Range, Accept-Ranges",
}


def innertube_headers(persona: Optional[Persona] = None) -> Dict[str, str]:
    """Browser-like headers the catalog API insists on, plus client identity."""
    headers = {
        "Content-Type": "application/json",
        "Origin": INNERTUBE_ORIGIN,
        "Referer": INNERTUBE_ORIGIN + "/",
        "User-Agent": BROWSER_USER_AGENT,
    }
    if persona is not None:
        headers["User-Agent"] = persona.user_agent
        headers["X-Goog-Api-Format-Version"] = "1"
        headers["X-YouTube-Client-Name"] = persona.protocol_id
        headers["X-YouTube-Client-Version"] = persona.version
    return headers


def mirror_headers() -> Dict[str, str]:
    return {"User-Agent": MIRROR_USER_AGENT, "Accept": "application/json"}


def media_headers(user_agent: str = MEDIA_USER_AGENT, byte_range: Optional[str] = None) -> Dict[str, str]:
    headers = {
        "User-Agent": user_agent,
        "Accept": "*/*",
        # Ranged fetches must be byte-exact, so no transparent compression.
        "Accept-Encoding": "identity",
    }
    if byte_range:
        headers["Range"] = byte_range
    return headers
