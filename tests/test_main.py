from tunebridge import cli
from tunebridge.errors import NotFound


class _FakeService:
    instances = []

    def __init__(self, config=None, session=None):
        self.config = config
        self.stopped = False
        self.calls = []
        _FakeService.instances.append(self)

    def resolve_stream(self, track_id, quality=None):
        self.calls.append(("resolve", track_id, quality))
        if track_id == "gone":
            raise NotFound(track_id)
        return f"http://127.0.0.1:9876/audio/{track_id}"

    def download_track(self, track_id, title, artist, download_path=None, quality=None):
        self.calls.append(("download", track_id, title, artist, download_path, quality))
        return "/tmp/x.webm"

    def stop(self):
        self.stopped = True


def _run(monkeypatch, tmp_path, argv):
    _FakeService.instances = []
    monkeypatch.setattr(cli, "StreamService", _FakeService)
    return cli.main(["--config", str(tmp_path / "config.json")] + argv)


def test_resolve_prints_local_url(monkeypatch, tmp_path, capsys):
    rc = _run(monkeypatch, tmp_path, ["resolve", "abc", "--quality", "high"])
    assert rc == 0
    assert capsys.readouterr().out.strip() == "http://127.0.0.1:9876/audio/abc"
    svc = _FakeService.instances[0]
    assert svc.calls == [("resolve", "abc", "high")]
    assert svc.stopped


def test_stream_error_exits_with_status_one(monkeypatch, tmp_path):
    rc = _run(monkeypatch, tmp_path, ["resolve", "gone"])
    assert rc == 1
    assert _FakeService.instances[0].stopped


def test_download_passes_options_through(monkeypatch, tmp_path, capsys):
    rc = _run(monkeypatch, tmp_path, ["download", "abc", "--title", "T", "--artist", "A", "--dest", "/music"])
    assert rc == 0
    assert capsys.readouterr().out.strip() == "/tmp/x.webm"
    assert _FakeService.instances[0].calls == [("download", "abc", "T", "A", "/music", None)]
