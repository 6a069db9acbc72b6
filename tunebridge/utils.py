import os
import time
from pathlib import Path
from typing import Optional

import requests
from requests.adapters import HTTPAdapter

_EXTENSIONS = {
    "audio/webm": "webm",
    "audio/mp4": "m4a",
    "audio/m4a": "m4a",
    "audio/mpeg": "mp3",
    "audio/ogg": "ogg",
}


def build_session(pool_size: int = 8) -> requests.Session:
    """requests.Session with a pooled keep-alive adapter, shared by all components."""
    session = requests.Session()
    adapter = HTTPAdapter(pool_connections=pool_size, pool_maxsize=pool_size)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return session


def signature_timestamp(now: Optional[float] = None) -> int:
    """Days since the Unix epoch. The player endpoint rejects stale values."""
    if now is None:
        now = time.time()
    return int(now) // 86400


def sanitize_filename_part(value: str) -> str:
    return "".join(c if (c.isalnum() or c in " -_") else "_" for c in str(value or ""))


def extension_for(content_type: Optional[str], default: str = "webm") -> str:
    if not content_type:
        return default
    mime = content_type.split(";")[0].strip().lower()
    return _EXTENSIONS.get(mime, default)


def default_download_base() -> Path:
    """The user's Music folder, else Downloads, else the working directory."""
    home = Path.home()
    for name in ("Music", "Downloads"):
        candidate = home / name
        if candidate.is_dir():
            return candidate
    return Path(os.getcwd())
