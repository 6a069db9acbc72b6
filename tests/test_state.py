import threading

import pytest

from tunebridge.models import CachedAudio, validate_track_id
from tunebridge.state import ByteCache, UrlRegistry, VisitorContext


def test_registry_last_write_wins():
    reg = UrlRegistry()
    assert reg.get("abc") is None
    reg.put("abc", "https://first")
    reg.put("abc", "https://second")
    assert reg.get("abc") == "https://second"
    assert len(reg) == 1


def test_registry_clear():
    reg = UrlRegistry()
    reg.put("a", "u1")
    reg.put("b", "u2")
    reg.clear()
    assert len(reg) == 0
    assert reg.get("a") is None


def test_cache_entries_are_never_overwritten():
    cache = ByteCache()
    first = cache.put(CachedAudio("t1", b"original"))
    second = cache.put(CachedAudio("t1", b"replacement"))
    assert second is first
    assert cache.get("t1").data == b"original"


def test_cache_clear_removes_everything():
    cache = ByteCache()
    ids = [f"id{i}" for i in range(10)]
    for i in ids:
        cache.put(CachedAudio(i, i.encode()))
    cache.clear()
    assert len(cache) == 0
    assert not any(cache.contains(i) for i in ids)


def test_cached_audio_total_length():
    assert CachedAudio("x", b"12345").total_length == 5


def test_visitor_context_ignores_empty_tokens():
    visitor = VisitorContext()
    assert visitor.get() is None
    visitor.set("tok1")
    visitor.set("")
    visitor.set(None)
    assert visitor.get() == "tok1"
    visitor.set("tok2")
    assert visitor.get() == "tok2"


def test_registry_concurrent_writers_leave_one_value():
    reg = UrlRegistry()
    urls = [f"https://cdn/{i}" for i in range(32)]
    threads = [threading.Thread(target=reg.put, args=("same", u)) for u in urls]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert reg.get("same") in urls


@pytest.mark.parametrize("bad", ["", "a/b", "has space", "line\nbreak", None])
def test_validate_track_id_rejects_unsafe_ids(bad):
    with pytest.raises(ValueError):
        validate_track_id(bad)


def test_validate_track_id_accepts_opaque_ids():
    assert validate_track_id("dQw4w9WgXcQ") == "dQw4w9WgXcQ"
    assert validate_track_id("a-b_c.%") == "a-b_c.%"
