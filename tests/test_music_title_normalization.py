from __future__ import annotations

from engine.music_title_normalization import (
    fold_text,
    off_version_tags,
    sanitize_track_search_value,
    split_artist_names,
    tokenize_title,
    track_signature,
)


def test_fold_text_strips_latin_accents_only() -> None:
    assert fold_text("  Beyoncé ") == "beyonce"
    assert fold_text("ガーネット") == "ガーネット"
    assert fold_text("ＡＢＣ") == "abc"


def test_track_signature_is_case_and_accent_insensitive() -> None:
    assert track_signature("Déjà Vu", "Olivia RODRIGO") == track_signature("deja vu", "olivia rodrigo")


def test_tokenize_drops_stop_words_unless_nothing_remains() -> None:
    assert tokenize_title("Song Title (Official Music Video)") == ["song", "title"]
    assert tokenize_title("Official Video") == ["official", "video"]
    assert tokenize_title("Official Video", drop_stop_words=False) == ["official", "video"]


def test_sanitize_track_search_value() -> None:
    assert sanitize_track_search_value("Song (Remastered 2011) [Live]") == "Song"
    assert sanitize_track_search_value("Stay feat. Justin Bieber") == "Stay"
    assert sanitize_track_search_value("Plain Title") == "Plain Title"


def test_split_artist_names_keeps_full_name_first() -> None:
    assert split_artist_names("Calvin Harris & Dua Lipa") == ["Calvin Harris & Dua Lipa", "Calvin Harris", "Dua Lipa"]
    assert split_artist_names("X Japan") == ["X Japan"]
    assert split_artist_names("") == []


def test_off_version_tags() -> None:
    assert off_version_tags("Song (Live at Wembley)") == {"live"}
    assert off_version_tags("Song - Slowed + Reverb") == {"slowed", "reverb"}
    assert off_version_tags("紅蓮華 (TV Size)") == {"tv size"}
    assert off_version_tags("Song (Official Video)") == set()
