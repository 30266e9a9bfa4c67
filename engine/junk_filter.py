"""Drop advertisements and app promotions that providers mix into chart and playlist feeds."""

from __future__ import annotations

import re
import unicodedata

_WS_RE = re.compile(r"\s+")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9 ]+")

AD_TRACK_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(advert(?:isement|ising)?|ad\s*break|commercial)\b"),
    re.compile(r"\b(pub|publicite|annonce|sponsor\w*)\b"),
    re.compile(r"\bdeezer\s*(ads?|pub|advert)\b"),
    re.compile(r"\b(this\s+app|download\s+app|free\s+music\s+alternative|best\s+free\s+music)\b"),
    re.compile(r"\bspotify\b.*\b(app|alternative|free)\b"),
    re.compile(r"\bheartify\b"),
    re.compile(r"\bdeezer\s*session\b"),
    re.compile(r"\b(app\s+store|play\s+store|music\s+app)\b"),
)


def normalize_ad_text(value) -> str:
    text = unicodedata.normalize("NFKD", str(value or ""))
    text = "".join(ch for ch in text if not unicodedata.combining(ch)).lower()
    text = _NON_ALNUM_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def is_likely_ad_track(title, artist) -> bool:
    text = normalize_ad_text(f"{title or ''} {artist or ''}")
    if not text:
        return False
    return any(pattern.search(text) for pattern in AD_TRACK_PATTERNS)


def filter_junk_tracks(tracks):
    """Return ``tracks`` without likely ads, preserving order."""
    return [track for track in tracks if not is_likely_ad_track(track.title, track.artist)]
