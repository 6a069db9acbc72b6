import abc
from typing import List, Optional

from tunebridge.models import CandidateEncoding


class StreamProvider(abc.ABC):
    """One step of the resolution fallback chain (a persona or a mirror host)."""

    @abc.abstractmethod
    def get_name(self) -> str:
        pass

    @abc.abstractmethod
    def attempt_resolve(self, track_id: str) -> Optional[List[CandidateEncoding]]:
        """
        Query the upstream once for track_id.
        Returns audio candidates sorted by bitrate (best first), or None/empty
        when the upstream answered without anything usable.
        Raises TransportFailure or UpstreamRejected; callers move on to the
        next provider either way.
        """
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.get_name()}>"
