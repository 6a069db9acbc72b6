"""
Local HTTP proxy that gives the player a stable address for every track.

Why this exists:
- Backing media URLs are short-lived and tied to the client identity that
  obtained them, so the player cannot be handed them directly.
- The player's media element seeks with Range requests; each one must be
  answered with the exact bytes whether or not the track is cached.

Design notes:
- GET /audio/<track id> serves from the in-memory byte cache when the track
  has been materialized, otherwise range-fetches a bounded window from the
  registered backing URL.
- Upstream fetches never pull the whole remaining file: 256 KiB when the
  player sends no Range (fast start), at most 512 KiB otherwise.
- Provides a /health endpoint so callers can reliably wait for startup.
- Every response carries permissive CORS headers; the UI runs in a webview
  with its own origin.
"""

from __future__ import annotations

import logging
import re
import threading
import time
import traceback
from http.server import BaseHTTPRequestHandler, HTTPServer
from socketserver import ThreadingMixIn
from typing import Dict, Optional, Tuple
from urllib.parse import quote, unquote, urlparse

import requests

from tunebridge.errors import MalformedRangeRequest
from tunebridge.http_headers import CORS_HEADERS, media_headers
from tunebridge.models import CachedAudio
from tunebridge.state import ByteCache, UrlRegistry

LOG = logging.getLogger(__name__)

DEFAULT_PORT = 9876
DEFAULT_CONTENT_TYPE = "audio/webm"
FAST_START_BYTES = 256 * 1024
PREFETCH_WINDOW_BYTES = 512 * 1024

_RANGE_RE = re.compile(r"^bytes=(\d+)-(\d*)$")
_AUDIO_PREFIX = "/audio/"


def _parse_range_header(range_value: Optional[str]) -> Optional[Tuple[int, Optional[int]]]:
    """Supports bytes=start-end and bytes=start-.

    Returns None when there is no header; raises MalformedRangeRequest for
    anything else (suffix ranges, multiple ranges, end before start).
    """
    if not range_value:
        return None
    m = _RANGE_RE.match(range_value.strip())
    if not m:
        raise MalformedRangeRequest(range_value)
    start = int(m.group(1))
    end_s = m.group(2)
    if not end_s:
        return (start, None)
    end = int(end_s)
    if end < start:
        raise MalformedRangeRequest(range_value)
    return (start, end)


def _upstream_range(
    requested: Optional[Tuple[int, Optional[int]]],
    fast_start_bytes: int = FAST_START_BYTES,
    window_bytes: int = PREFETCH_WINDOW_BYTES,
) -> str:
    if requested is None:
        return f"bytes=0-{fast_start_bytes - 1}"
    start, end = requested
    if end is None or (end - start + 1) > window_bytes:
        end = start + window_bytes - 1
    return f"bytes={start}-{end}"


class _ThreadingHTTPServer(ThreadingMixIn, HTTPServer):
    daemon_threads = True
    allow_reuse_address = True
    request_queue_size = 256


class AudioProxyServer:
    def __init__(
        self,
        registry: UrlRegistry,
        cache: ByteCache,
        session: Optional[requests.Session] = None,
        host: str = "127.0.0.1",
        port: int = DEFAULT_PORT,
        fast_start_bytes: int = FAST_START_BYTES,
        prefetch_window_bytes: int = PREFETCH_WINDOW_BYTES,
        media_timeout: float = 30.0,
    ):
        self.registry = registry
        self.cache = cache
        self.session = session or requests.Session()
        self.fast_start_bytes = max(1, int(fast_start_bytes))
        self.prefetch_window_bytes = max(1, int(prefetch_window_bytes))
        self.media_timeout = float(media_timeout)

        self._host = host
        self._configured_port = int(port)
        self._port: Optional[int] = None
        self._server: Optional[_ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.RLock()
        self._ready = threading.Event()

    # -- request handling -------------------------------------------------

    def _fetch_upstream(self, backing_url: str, byte_range: str) -> requests.Response:
        return self.session.get(
            backing_url,
            headers=media_headers(byte_range=byte_range),
            timeout=self.media_timeout,
            allow_redirects=True,
        )

    def _make_handler(self):
        proxy = self

        class Handler(BaseHTTPRequestHandler):
            protocol_version = "HTTP/1.1"

            def log_message(self, fmt: str, *args) -> None:
                LOG.debug("AudioProxy: " + fmt, *args)

            def _send(self, status: int, body: bytes = b"", headers: Optional[Dict[str, str]] = None) -> None:
                self.send_response(status)
                for k, v in CORS_HEADERS.items():
                    self.send_header(k, v)
                hdrs = dict(headers or {})
                hdrs.setdefault("Content-Length", str(len(body)))
                for k, v in hdrs.items():
                    self.send_header(k, v)
                self.end_headers()
                if not body:
                    return
                try:
                    self.wfile.write(body)
                except OSError as e:
                    # Player went away mid-response (seek, track change).
                    LOG.debug("AudioProxy client disconnected: %s", e)

            def _send_text(self, status: int, text: str) -> None:
                self._send(status, text.encode("utf-8"), {"Content-Type": "text/plain; charset=utf-8"})

            def do_OPTIONS(self) -> None:
                self._send(204)

            def do_GET(self) -> None:
                path = urlparse(self.path).path
                if path == "/health":
                    proxy._ready.set()
                    self._send_text(200, "ok")
                    return
                if not path.startswith(_AUDIO_PREFIX):
                    self._send_text(404, "Not Found")
                    return
                track_id = unquote(path[len(_AUDIO_PREFIX):])
                if not track_id or "/" in track_id:
                    self._send_text(404, "Not Found")
                    return

                try:
                    requested = _parse_range_header(self.headers.get("Range"))
                except MalformedRangeRequest as e:
                    # Permissive: answer as if no Range had been sent.
                    LOG.debug("AudioProxy ignoring malformed Range %r", str(e))
                    requested = None

                cached = proxy.cache.get(track_id)
                if cached is not None:
                    self._serve_cached(cached, requested)
                    return

                backing_url = proxy.registry.get(track_id)
                if not backing_url:
                    self._send_text(404, f"No stream URL for track: {track_id}")
                    return

                self._serve_upstream(track_id, backing_url, requested)

            def _serve_cached(self, cached: CachedAudio, requested: Optional[Tuple[int, Optional[int]]]) -> None:
                total = cached.total_length
                base = {"Content-Type": cached.content_type, "Accept-Ranges": "bytes"}
                if requested is None:
                    self._send(200, cached.data, base)
                    return

                start, end = requested
                if start >= total:
                    base["Content-Range"] = f"bytes */{total}"
                    self._send(416, b"", base)
                    return
                end = total - 1 if end is None else min(end, total - 1)
                base["Content-Range"] = f"bytes {start}-{end}/{total}"
                self._send(206, cached.data[start:end + 1], base)

            def _serve_upstream(
                self,
                track_id: str,
                backing_url: str,
                requested: Optional[Tuple[int, Optional[int]]],
            ) -> None:
                fetch_range = _upstream_range(requested, proxy.fast_start_bytes, proxy.prefetch_window_bytes)
                try:
                    r = proxy._fetch_upstream(backing_url, fetch_range)
                except requests.RequestException as e:
                    LOG.warning("AudioProxy upstream fetch failed for %s: %s", track_id, e)
                    self._send(500)
                    return

                try:
                    try:
                        body = r.content
                    except requests.RequestException as e:
                        LOG.warning("AudioProxy upstream read failed for %s: %s", track_id, e)
                        self._send(500)
                        return

                    if r.status_code not in (200, 206):
                        LOG.warning("AudioProxy upstream status %s for %s", r.status_code, track_id)

                    # requests has already undone any Content-Encoding, so the
                    # length must describe the decoded body and the encoding
                    # header is not forwarded.
                    if r.headers.get("Content-Encoding"):
                        LOG.debug(
                            "AudioProxy decoded %s upstream body for %s",
                            r.headers.get("Content-Encoding"),
                            track_id,
                        )
                    headers = {
                        "Content-Type": r.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE,
                        "Accept-Ranges": "bytes",
                        "Content-Length": str(len(body)),
                    }
                    content_range = r.headers.get("Content-Range")
                    if content_range:
                        headers["Content-Range"] = content_range

                    # We always ask upstream for a bounded slice, so the player
                    # always gets partial content back.
                    status = 206
                    self._send(status, body, headers)
                finally:
                    r.close()

        return Handler

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Start the local HTTP server.

        Never restarts an alive server: the player may hold a connection to
        http://127.0.0.1:<port>/audio/<id> for the whole track.
        """
        with self._lock:
            if self._server is not None and self._thread is not None and self._thread.is_alive():
                return
            if self._server is not None:
                self.stop()

            self._ready.clear()
            self._server = _ThreadingHTTPServer((self._host, self._configured_port), self._make_handler())
            self._port = self._server.server_address[1]
            server = self._server

            def run() -> None:
                try:
                    server.serve_forever(poll_interval=0.25)
                except Exception as e:
                    LOG.warning("AudioProxy server error: %s\n%s", e, traceback.format_exc())
                finally:
                    self._ready.clear()

            self._thread = threading.Thread(target=run, name="AudioProxy", daemon=True)
            self._thread.start()
            LOG.info("AudioProxy listening on %s", self.base_url)

        self._wait_ready(timeout=2.0)

    def stop(self) -> None:
        with self._lock:
            if self._server is None:
                return
            try:
                self._server.shutdown()
            finally:
                self._server.server_close()
                self._server = None
                self._thread = None
                self._port = None
                self._ready.clear()

    def _wait_ready(self, timeout: float = 2.0) -> bool:
        import http.client
        deadline = time.time() + max(0.1, float(timeout))
        while time.time() < deadline:
            with self._lock:
                port = self._port
            if port is None:
                time.sleep(0.05)
                continue
            conn = http.client.HTTPConnection(self._host, port, timeout=0.5)
            try:
                conn.request("GET", "/health")
                resp = conn.getresponse()
                resp.read()
                if resp.status == 200:
                    self._ready.set()
                    return True
            except OSError:
                pass
            finally:
                conn.close()
            time.sleep(0.05)
        return False

    def is_ready(self) -> bool:
        return self._wait_ready(timeout=0.25)

    @property
    def port(self) -> int:
        with self._lock:
            return self._port if self._port is not None else self._configured_port

    @property
    def base_url(self) -> str:
        return f"http://{self._host}:{self.port}"

    def local_url(self, track_id: str) -> str:
        """Address the player should load. Valid before the listener is up."""
        return f"{self.base_url}{_AUDIO_PREFIX}{quote(track_id, safe='')}"
