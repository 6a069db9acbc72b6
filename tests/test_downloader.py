from pathlib import Path
from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

from tunebridge.downloader import TrackDownloader, build_download_path
from tunebridge.errors import UpstreamRejected
from tunebridge.models import QualityTier
from tunebridge.state import UrlRegistry
from tunebridge.utils import extension_for, sanitize_filename_part


class _StreamResp:
    def __init__(self, chunks, status_code=200, content_type="audio/webm"):
        self._chunks = chunks
        self.status_code = status_code
        self.headers = CaseInsensitiveDict({"Content-Type": content_type})
        self.closed = False

    @property
    def ok(self):
        return self.status_code < 400

    def iter_content(self, chunk_size=1):
        return iter(self._chunks)

    def close(self):
        self.closed = True


def test_sanitize_replaces_everything_but_alnum_space_dash_underscore():
    assert sanitize_filename_part("AC/DC: Back*In?Black") == "AC_DC_ Back_In_Black"
    assert sanitize_filename_part("Beyoncé - Halo_2") == "Beyoncé - Halo_2"


def test_extension_for_content_types():
    assert extension_for("audio/mp4; codecs=mp4a") == "m4a"
    assert extension_for("audio/webm") == "webm"
    assert extension_for(None) == "webm"
    assert extension_for("application/octet-stream") == "webm"


def test_build_download_path_layout(tmp_path):
    p = build_download_path(tmp_path, "TuneBridge", "A/B", "Song?", "webm")
    assert p == tmp_path / "TuneBridge" / "A_B - Song_.webm"


def test_download_uses_registered_url_and_writes_file(tmp_path):
    registry = UrlRegistry()
    registry.put("vid", "https://cdn.example/vid")
    resolver = MagicMock()
    resp = _StreamResp([b"abc", b"", b"def"], content_type="audio/mp4")
    session = MagicMock()
    session.get.return_value = resp

    path = TrackDownloader(resolver, registry, session).download_track(
        "vid", "Title", "Artist", download_path=str(tmp_path), quality="very_high"
    )

    assert Path(path) == tmp_path / "TuneBridge" / "Artist - Title.m4a"
    assert Path(path).read_bytes() == b"abcdef"
    resolver.find_backing_url.assert_not_called()
    assert session.get.call_args.args[0] == "https://cdn.example/vid"
    assert resp.closed
    assert [p.name for p in (tmp_path / "TuneBridge").iterdir()] == ["Artist - Title.m4a"]


def test_download_resolves_at_requested_quality_when_unregistered(tmp_path):
    registry = UrlRegistry()
    resolver = MagicMock()
    resolver.find_backing_url.return_value = "https://cdn.example/q"
    session = MagicMock()
    session.get.return_value = _StreamResp([b"x"])

    TrackDownloader(resolver, registry, session, subdir="Out").download_track(
        "vid", "T", "A", download_path=str(tmp_path), quality="high"
    )

    resolver.find_backing_url.assert_called_once_with("vid", QualityTier.HIGH)
    assert registry.get("vid") is None
    assert (tmp_path / "Out" / "A - T.webm").read_bytes() == b"x"


def test_download_http_error_writes_nothing(tmp_path):
    registry = UrlRegistry()
    registry.put("vid", "https://cdn.example/vid")
    session = MagicMock()
    session.get.return_value = _StreamResp([b"nope"], status_code=403)

    with pytest.raises(UpstreamRejected):
        TrackDownloader(MagicMock(), registry, session).download_track("vid", "T", "A", download_path=str(tmp_path))

    assert not (tmp_path / "TuneBridge").exists()
