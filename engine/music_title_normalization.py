from __future__ import annotations

import re
import unicodedata

_PAREN_RE = re.compile(r"\([^)]*\)")
_SQUARE_RE = re.compile(r"\[[^\]]*\]")
_TRAILING_FEAT_RE = re.compile(r"\b(feat|featuring|ft)\.?[^-]*$", re.IGNORECASE)
_WS_RE = re.compile(r"\s+")
_NON_WORD_RE = re.compile(r"[^\w]+")
_ARTIST_SPLIT_RE = re.compile(
    r"\s*(?:,|;|&|\s+x\s+|\s+(?:feat|ft)\.?\s+|\s+featuring\s+)\s*",
    re.IGNORECASE,
)

STOP_WORDS = frozenset(
    {
        "official",
        "video",
        "music",
        "audio",
        "mv",
        "pv",
        "clip",
        "lyric",
        "lyrics",
        "feat",
        "ft",
        "featuring",
        "hd",
        "4k",
        "topic",
        "vevo",
        "the",
        "a",
    }
)

# Performance variants. A candidate carrying one the source title lacks is a different recording.
OFF_VERSION_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = (
    ("live", re.compile(r"\blive\b|ライブ")),
    ("cover", re.compile(r"\bcover(?:ed)?\b|歌ってみた")),
    ("karaoke", re.compile(r"\bkaraoke\b|カラオケ")),
    ("instrumental", re.compile(r"\binstrumental\b|\boff\s*vocal\b")),
    ("nightcore", re.compile(r"\bnightcore\b")),
    ("slowed", re.compile(r"\bslowed\b")),
    ("sped up", re.compile(r"\bsped\s*up\b|\bspeed\s*up\b")),
    ("reverb", re.compile(r"\breverb\b")),
    ("8d", re.compile(r"\b8d\b")),
    ("acoustic", re.compile(r"\bacoustic\b")),
    ("remix", re.compile(r"\bremix\b")),
    ("short ver", re.compile(r"\bshort\s*(?:ver|version)\b")),
    ("tv size", re.compile(r"\btv\s*(?:size|ver|version)\b")),
    ("first take", re.compile(r"\bfirst\s*take\b")),
)


def fold_text(value) -> str:
    """NFKC, strip diacritics, lowercase. Keeps non-Latin scripts intact."""
    text = unicodedata.normalize("NFKC", str(value or ""))
    kept = []
    base = ""
    for ch in unicodedata.normalize("NFKD", text):
        # Only Latin marks are dropped; kana voicing marks stay attached.
        if unicodedata.combining(ch) and base and ord(base) <= 0x024F:
            continue
        if not unicodedata.combining(ch):
            base = ch
        kept.append(ch)
    return unicodedata.normalize("NFKC", "".join(kept)).lower().strip()


def normalize_phrase(value) -> str:
    text = _NON_WORD_RE.sub(" ", fold_text(value).replace("_", " "))
    return _WS_RE.sub(" ", text).strip()


def compact_text(value) -> str:
    return normalize_phrase(value).replace(" ", "")


def track_signature(title, artist) -> str:
    return f"{fold_text(title)}::{fold_text(artist)}"


def is_non_latin(token: str) -> bool:
    return any(ord(ch) > 0x024F and ch.isalnum() for ch in token)


def tokenize_title(value, *, drop_stop_words: bool = True) -> list[str]:
    normalized = normalize_phrase(value)
    if not normalized:
        return []
    tokens = normalized.split()
    if not drop_stop_words:
        return tokens
    filtered = [token for token in tokens if token not in STOP_WORDS]
    return filtered or tokens


def sanitize_track_search_value(value) -> str:
    text = _PAREN_RE.sub(" ", str(value or ""))
    text = _SQUARE_RE.sub(" ", text)
    text = _TRAILING_FEAT_RE.sub(" ", text)
    return _WS_RE.sub(" ", text).strip()


def split_artist_names(artist) -> list[str]:
    raw = str(artist or "").strip()
    if not raw:
        return []
    parts = [part.strip() for part in _ARTIST_SPLIT_RE.split(raw) if part and part.strip()]
    names = [raw]
    for part in parts:
        if part not in names:
            names.append(part)
    return names


def off_version_tags(value) -> set[str]:
    text = fold_text(value)
    return {name for name, pattern in OFF_VERSION_PATTERNS if pattern.search(text)}
