import re

from engine.models import ScoredCandidate
from engine.music_title_normalization import (
    compact_text,
    fold_text,
    is_non_latin,
    normalize_phrase,
    off_version_tags,
    split_artist_names,
    tokenize_title,
)
from engine.search_queries import SearchIntent

MIN_ACCEPTABLE_SCORE = 1

_TITLE_OVERLAP_POINTS = 60
_TITLE_MISMATCH_PENALTY = 120
_ARTIST_CHANNEL_POINTS = 45
_ARTIST_CHANNEL_QUALIFIER_POINTS = 15
_CLIP_POINTS = 20
_AUDIO_POINTS = 12
_ARTIST_IN_TITLE_POINTS = 8
_OFF_VERSION_PENALTY = 200
_DEPRIORITIZED_PENALTY = 40

_CLIP_RE = re.compile(
    r"\b("
    r"official\s+(?:music\s+)?video|music\s+video|official\s+mv|m/?v|"
    r"official\s+clip|clip\s+officiel|video\s+oficial|videoclip|music\s+clip|pv"
    r")\b"
)
_AUDIO_RE = re.compile(r"\b(official\s+audio|audio\s+officiel|audio\s+oficial|audio|visualizer)\b")
_TOPIC_CHANNEL_RE = re.compile(r"\s*-\s*topic\s*$")
_DEPRIORITIZED_RE = re.compile(
    r"\b("
    r"lyrics?|lyric\s+video|letra|paroles|reaction|reacts?|#?shorts|trailer|teaser|"
    r"interview|behind\s+the\s+scenes|making\s+of|full\s+album|tutorial|fan\s*made"
    r")\b"
)
_CHANNEL_NOISE_RE = re.compile(r"\b(vevo|official|channel|music)\b|\s*-\s*topic\s*$")
_CHANNEL_SUFFIXES = ("vevo", "official", "topic", "channel")
_MIN_SUBSTRING_NAME_LEN = 5


def is_clip_title(title):
    return bool(_CLIP_RE.search(fold_text(title)))


def is_audio_upload(title, channel_title):
    if _TOPIC_CHANNEL_RE.search(fold_text(channel_title)):
        return True
    return bool(_AUDIO_RE.search(fold_text(title)))


def is_deprioritized_title(title):
    return bool(_DEPRIORITIZED_RE.search(fold_text(title)))


def title_token_overlap(source_title, candidate_title):
    """Return ``(overlap, source_token_count)`` between a source and candidate title."""
    source_tokens = list(dict.fromkeys(tokenize_title(source_title)))
    if not source_tokens:
        return 0, 0
    candidate_tokens = set(tokenize_title(candidate_title, drop_stop_words=False))
    candidate_compact = compact_text(candidate_title)
    overlap = 0
    for token in source_tokens:
        if token in candidate_tokens:
            overlap += 1
        elif is_non_latin(token) and len(token) >= 2 and token in candidate_compact:
            # CJK titles are often glued to qualifiers, e.g. 紅蓮華MV.
            overlap += 1
    return overlap, len(source_tokens)


def _clean_channel(channel_title):
    channel = fold_text(channel_title)
    channel = _CHANNEL_NOISE_RE.sub(" ", channel)
    return normalize_phrase(channel)


def _strip_channel_suffixes(compact):
    # Glued forms such as "adovevo" or "kinggnuofficial".
    stripped = True
    while stripped:
        stripped = False
        for suffix in _CHANNEL_SUFFIXES:
            if compact.endswith(suffix) and len(compact) > len(suffix):
                compact = compact[: -len(suffix)]
                stripped = True
    return compact


def artist_channel_match(artist, channel_title):
    """True when the channel plausibly belongs to one of the track's artists.

    Names shorter than five characters must match the channel exactly, as
    whole words, or after dropping glued vevo/official/topic suffixes; longer
    names may also appear inside a glued channel name.
    """
    channel = _clean_channel(channel_title)
    raw_channel_compact = compact_text(channel_title)
    if not channel and not raw_channel_compact:
        return False
    channel_compact = _strip_channel_suffixes(channel.replace(" ", ""))
    bare_raw_compact = _strip_channel_suffixes(raw_channel_compact)
    channel_tokens = set(channel.split())
    padded_channel = f" {channel} "
    for name in split_artist_names(artist):
        normalized = normalize_phrase(name)
        compact = normalized.replace(" ", "")
        if len(compact) < 2:
            continue
        if channel and f" {normalized} " in padded_channel:
            return True
        if compact in (channel_compact, bare_raw_compact):
            return True
        if len(compact) >= _MIN_SUBSTRING_NAME_LEN or is_non_latin(compact):
            if compact in raw_channel_compact or compact in channel_compact:
                return True
        if len(channel_compact) >= _MIN_SUBSTRING_NAME_LEN and channel_compact in compact:
            return True
        tokens = set(normalized.split())
        if tokens and channel_tokens and tokens <= channel_tokens:
            return True
    return False


def _artist_in_title(artist, candidate_title):
    title_compact = compact_text(candidate_title)
    for name in split_artist_names(artist):
        compact = compact_text(name)
        if len(compact) >= 3 and compact in title_compact:
            return True
    return False


def score_candidate(candidate, track):
    """Score one video candidate against a catalog track. Pure, no I/O."""
    overlap, token_count = title_token_overlap(track.title, candidate.title)
    is_clip = is_clip_title(candidate.title)
    is_audio = is_audio_upload(candidate.title, candidate.channel_title)
    channel_match = artist_channel_match(track.artist, candidate.channel_title)
    mismatched = off_version_tags(candidate.title) - off_version_tags(track.title)
    deprioritized = is_deprioritized_title(candidate.title)

    score = 0
    if token_count:
        if overlap == 0:
            score -= _TITLE_MISMATCH_PENALTY
        else:
            score += round(_TITLE_OVERLAP_POINTS * overlap / token_count)
    if channel_match:
        score += _ARTIST_CHANNEL_POINTS
        if is_clip or is_audio:
            score += _ARTIST_CHANNEL_QUALIFIER_POINTS
    if is_clip:
        score += _CLIP_POINTS
    elif is_audio:
        score += _AUDIO_POINTS
    if _artist_in_title(track.artist, candidate.title):
        score += _ARTIST_IN_TITLE_POINTS
    if mismatched:
        score -= _OFF_VERSION_PENALTY
    if deprioritized:
        score -= _DEPRIORITIZED_PENALTY

    return ScoredCandidate(
        candidate=candidate,
        score=int(score),
        is_clip=is_clip,
        is_audio=is_audio,
        artist_channel_match=channel_match,
        title_token_overlap=overlap,
        title_token_count=token_count,
        off_version_mismatch=bool(mismatched),
        deprioritized=deprioritized,
    )


def meets_intent(scored, intent):
    if intent is SearchIntent.OFFICIAL_CLIP:
        return scored.is_clip
    if intent is SearchIntent.OFFICIAL_AUDIO:
        return scored.is_audio and not scored.is_clip
    return scored.title_token_overlap > 0


def rank_key(scored, position):
    # Deterministic: score, then the shorter (less noisy) title, then input order.
    return (-scored.score, len(scored.candidate.title or ""), position)


def select_best_candidate(candidates, track, intent):
    """Best candidate for ``intent``, or ``None``.

    The off-version penalty outweighs every bonus combined, so an off-version
    upload never reaches ``MIN_ACCEPTABLE_SCORE`` and is always excluded.
    Artist-channel matches are preferred over everything else.
    """
    scored = [score_candidate(candidate, track) for candidate in candidates or []]
    eligible = [
        (position, item)
        for position, item in enumerate(scored)
        if meets_intent(item, intent) and item.score >= MIN_ACCEPTABLE_SCORE
    ]
    if not eligible:
        return None
    artist_matched = [(position, item) for position, item in eligible if item.artist_channel_match]
    if artist_matched:
        eligible = artist_matched
    position, best = min(eligible, key=lambda pair: rank_key(pair[1], pair[0]))
    return best


def better_candidate(current, challenger):
    """Pick between the best of two queries in the same group."""
    if current is None:
        return challenger
    if challenger is None:
        return current
    if challenger.artist_channel_match != current.artist_channel_match:
        return challenger if challenger.artist_channel_match else current
    if challenger.score > current.score:
        return challenger
    return current
