from typing import Any, Dict, List

import requests

from tunebridge.providers.base import StreamProvider
from tunebridge.providers.innertube import InnertubeProvider
from tunebridge.providers.piped import PipedProvider
from tunebridge.personas import INNERTUBE_API_KEY, MIRROR_INSTANCES, PERSONAS
from tunebridge.state import VisitorContext


def build_providers(config: Dict[str, Any], session: requests.Session, visitor: VisitorContext) -> List[StreamProvider]:
    """Personas in table order, then the configured mirrors in order."""
    api_key = config.get("innertube_api_key") or INNERTUBE_API_KEY
    persona_timeout = float(config.get("innertube_timeout_seconds", 30))
    mirror_timeout = float(config.get("mirror_timeout_seconds", 10))
    mirrors = config.get("mirror_instances") or list(MIRROR_INSTANCES)

    providers: List[StreamProvider] = [
        InnertubeProvider(persona, session, visitor, api_key=api_key, timeout=persona_timeout)
        for persona in PERSONAS
    ]
    for base_url in mirrors:
        if isinstance(base_url, str) and base_url.strip():
            providers.append(PipedProvider(base_url.strip(), session, timeout=mirror_timeout))
    return providers
