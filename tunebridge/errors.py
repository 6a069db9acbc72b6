class StreamError(RuntimeError):
    pass


class TransportFailure(StreamError):
    """Network, DNS or timeout failure talking to an upstream host."""


class UpstreamRejected(StreamError):
    """Upstream answered, but not with something playable."""


class NotFound(StreamError):
    """Every persona and mirror was exhausted without a usable stream."""

    def __init__(self, track_id: str):
        super().__init__(f"No stream available for track: {track_id}")
        self.track_id = track_id


class NoRegistryEntry(StreamError):
    """Bytes were requested for a track that has never been resolved."""

    def __init__(self, track_id: str):
        super().__init__("no stream url")
        self.track_id = track_id


class MalformedRangeRequest(StreamError):
    pass
