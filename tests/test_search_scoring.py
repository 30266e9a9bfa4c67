from __future__ import annotations

from engine.search_queries import SearchIntent
from engine.search_scoring import (
    MIN_ACCEPTABLE_SCORE,
    artist_channel_match,
    better_candidate,
    is_audio_upload,
    is_clip_title,
    score_candidate,
    select_best_candidate,
    title_token_overlap,
)
from fakes import catalog_track, video


def test_clip_and_audio_markers() -> None:
    assert is_clip_title("Artist - Song (Official Music Video)")
    assert is_clip_title("紅蓮華 MV")
    assert not is_clip_title("Artist - Song (Official Audio)")
    assert is_audio_upload("Artist - Song (Official Audio)", "Artist")
    assert is_audio_upload("Song", "Artist - Topic")
    assert not is_audio_upload("Song", "Artist")


def test_title_overlap_handles_glued_cjk_titles() -> None:
    assert title_token_overlap("紅蓮華", "LiSA 紅蓮華MV") == (1, 1)
    assert title_token_overlap("Song Title", "Song Title (Official Video)") == (2, 2)
    assert title_token_overlap("Song Title", "Something Else") == (0, 2)


def test_artist_channel_match_variants() -> None:
    assert artist_channel_match("King Gnu", "King Gnu")
    assert artist_channel_match("Ed Sheeran", "EdSheeranVEVO")
    assert artist_channel_match("Calvin Harris & Dua Lipa", "Dua Lipa")
    assert artist_channel_match("LiSA", "LiSA Official YouTube")
    assert not artist_channel_match("Band Name", "Random Uploads")
    assert not artist_channel_match("Band Name", "")


def test_off_version_clip_loses_to_studio_audio() -> None:
    track = catalog_track("Song", "Artist")
    live = video("live1", "Song (Live) Official Video", "Artist")
    audio = video("aud1", "Song (Official Audio)", "Artist")

    assert score_candidate(live, track).off_version_mismatch
    assert score_candidate(live, track).score < MIN_ACCEPTABLE_SCORE

    best = select_best_candidate([live, audio], track, SearchIntent.FALLBACK)
    assert best is not None
    assert best.candidate.id == "aud1"


def test_off_version_is_fine_when_source_has_it_too() -> None:
    track = catalog_track("Song (Live)", "Artist")
    live = video("live1", "Song (Live) Official Video", "Artist")
    scored = score_candidate(live, track)
    assert not scored.off_version_mismatch
    assert select_best_candidate([live], track, SearchIntent.OFFICIAL_CLIP).candidate.id == "live1"


def test_artist_channel_match_rejects_fragments_of_short_names() -> None:
    assert not artist_channel_match("Ado", "Shadow Remix Uploads")
    assert not artist_channel_match("Emilia", "Mili")
    assert not artist_channel_match("Ado", "Adobe Tutorials")
    assert artist_channel_match("Ado", "Ado")
    assert artist_channel_match("Ado", "AdoVEVO")
    assert artist_channel_match("Ado", "Ado - Topic")
    assert artist_channel_match("YOASOBI", "YOASOBIofficial")


def test_unrelated_channel_does_not_outrank_official_upload() -> None:
    track = catalog_track("Usseewa", "Ado")
    candidates = [
        video("fan", "Usseewa official video", "Shadow Remix Uploads"),
        video("real", "Ado - Usseewa (Official Video)", "Label Uploads"),
    ]

    best = select_best_candidate(candidates, track, SearchIntent.OFFICIAL_CLIP)

    assert best.candidate.id == "real"
    assert not best.artist_channel_match


def test_artist_channel_candidate_wins_equal_title_overlap() -> None:
    track = catalog_track("Song Title", "Band Name")
    stranger = video("a", "Song Title Official Video", "Random Uploads")
    official = video("b", "Song Title Official Video", "Band Name")

    best = select_best_candidate([stranger, official], track, SearchIntent.OFFICIAL_CLIP)
    assert best.candidate.id == "b"
    assert best.artist_channel_match


def test_tie_prefers_shorter_title_then_input_order() -> None:
    track = catalog_track("Song Title", "Other")
    longer = video("x", "Song Title (Official Video) HD", "Chan")
    shorter = video("y", "Song Title Official Video", "Chan")
    assert score_candidate(longer, track).score == score_candidate(shorter, track).score

    assert select_best_candidate([longer, shorter], track, SearchIntent.OFFICIAL_CLIP).candidate.id == "y"

    first = video("first", "Song Title Official Video", "Chan")
    second = video("second", "Song Title Official Video", "Chan")
    assert select_best_candidate([first, second], track, SearchIntent.OFFICIAL_CLIP).candidate.id == "first"


def test_intent_requirements() -> None:
    track = catalog_track("Song", "Artist")
    clip = video("c", "Artist - Song (Official Video)", "Artist")
    audio = video("a", "Artist - Song (Official Audio)", "Artist")

    assert select_best_candidate([audio], track, SearchIntent.OFFICIAL_CLIP) is None
    assert select_best_candidate([clip], track, SearchIntent.OFFICIAL_AUDIO) is None
    assert select_best_candidate([clip, audio], track, SearchIntent.OFFICIAL_AUDIO).candidate.id == "a"


def test_unrelated_title_is_rejected() -> None:
    track = catalog_track("Song Title", "Artist")
    unrelated = video("u", "Completely Different (Official Video)", "Artist")
    assert select_best_candidate([unrelated], track, SearchIntent.FALLBACK) is None
    assert select_best_candidate([], track, SearchIntent.FALLBACK) is None


def test_lyric_upload_is_deprioritized() -> None:
    track = catalog_track("Song Title", "Artist")
    lyric = video("l", "Artist - Song Title (Lyrics)", "Lyrics Hub")
    plain = video("p", "Artist - Song Title", "Some Uploader")
    best = select_best_candidate([lyric, plain], track, SearchIntent.FALLBACK)
    assert best.candidate.id == "p"


def test_better_candidate_prefers_artist_channel_then_score() -> None:
    track = catalog_track("Song Title", "Band Name")
    stranger = score_candidate(video("a", "Band Name - Song Title Official Video", "Random Uploads"), track)
    official = score_candidate(video("b", "Song Title", "Band Name"), track)

    assert better_candidate(None, stranger) is stranger
    assert better_candidate(stranger, None) is stranger
    assert better_candidate(stranger, official) is official
    assert better_candidate(official, stranger) is official
