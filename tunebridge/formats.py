from __future__ import annotations

from typing import Any, Callable, Iterable, List, Optional

from tunebridge.models import CandidateEncoding, QualityTier


def is_audio_mime(mime_type: str) -> bool:
    return mime_type.startswith("audio/")


def mentions_audio(mime_type: str) -> bool:
    return "audio" in mime_type


def _bitrate(raw: Any) -> int:
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


def parse_candidates(
    formats: Iterable[Any],
    mime_predicate: Callable[[str], bool] = is_audio_mime,
) -> List[CandidateEncoding]:
    """Turn raw format dicts into audio candidates, best bitrate first.

    Entries without a direct ``url`` (cipher-protected streams) are skipped.
    """
    out: List[CandidateEncoding] = []
    for f in formats or []:
        if not isinstance(f, dict):
            continue
        mime = f.get("mimeType")
        url = f.get("url")
        if not isinstance(mime, str) or not mime_predicate(mime):
            continue
        if not isinstance(url, str) or not url:
            continue
        out.append(CandidateEncoding(mime_type=mime, bitrate=_bitrate(f.get("bitrate")), url=url))
    # sorted() is stable, so equal bitrates keep their upstream order.
    return sorted(out, key=lambda c: c.bitrate, reverse=True)


def select_index(length: int, tier: Optional[QualityTier]) -> int:
    if tier is QualityTier.VERY_HIGH:
        idx = 0
    elif tier is QualityTier.HIGH:
        idx = length // 3
    else:
        idx = length // 2
    return min(idx, length - 1)


def select_format(candidates: List[CandidateEncoding], tier: Optional[QualityTier]) -> Optional[str]:
    """Pick a URL from bitrate-sorted candidates by quality tier."""
    if not candidates:
        return None
    return candidates[select_index(len(candidates), tier)].url


def best_format(candidates: List[CandidateEncoding]) -> Optional[str]:
    if not candidates:
        return None
    return candidates[0].url
