import logging

import pytest

from pathfinder.errors import WordlistError
from pathfinder.wordlists import expand_extensions, iter_candidates, load_wordlist


def test_load_skips_blanks_and_comments(tmp_path):
    wl = tmp_path / "words.txt"
    wl.write_text("# header\nadmin\n\n  login  \n#x\nadmin\n/api/v1\n", encoding="utf-8")

    assert load_wordlist(wl) == ["admin", "login", "/api/v1"]


def test_load_respects_cap(tmp_path, caplog):
    wl = tmp_path / "words.txt"
    wl.write_text("\n".join(f"p{i}" for i in range(10)), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="pathfinder.wordlists"):
        assert load_wordlist(wl, cap=3) == ["p0", "p1", "p2"]

    assert "capped at 3 entries, 7 more dropped" in caplog.text


def test_uncapped_load_keeps_every_line(tmp_path, caplog):
    wl = tmp_path / "words.txt"
    wl.write_text("\n".join(f"p{i}" for i in range(60000)), encoding="utf-8")

    with caplog.at_level(logging.WARNING, logger="pathfinder.wordlists"):
        paths = load_wordlist(wl)

    assert len(paths) == 60000
    assert "capped" not in caplog.text


def test_missing_wordlist(tmp_path):
    with pytest.raises(WordlistError):
        load_wordlist(tmp_path / "nope.txt")


def test_iter_candidates_accepts_bytes():
    assert iter_candidates([b"admin\n", "login"]) == ["admin", "login"]


def test_expand_extensions():
    assert expand_extensions(["admin", "backup/"], ["php", ".bak"]) == [
        "admin", "admin.php", "admin.bak",
        "backup/", "backup.php", "backup.bak",
    ]


def test_expand_without_extensions():
    assert expand_extensions(["a", "b"], []) == ["a", "b"]
