from __future__ import annotations

from slugregistry.domain.reserved import DEFAULT_RESERVED_SLUGS, ReservedWords


def test_defaults_loaded():
    words = ReservedWords()
    assert len(words) == len(set(DEFAULT_RESERVED_SLUGS))
    assert words.is_reserved("admin")
    assert words.is_reserved("ADMIN")
    assert words.is_reserved("  Password Reset ")
    assert not words.is_reserved("ann-smith")


def test_custom_words_are_normalized_and_deduplicated():
    words = ReservedWords(["Admin", " admin ", "Help Desk", "!!!"])
    assert len(words) == 2
    assert list(words) == ["admin", "help-desk"]
    assert "help-desk" in words
    assert 42 not in words


def test_empty_input_is_never_reserved():
    assert not ReservedWords().is_reserved("")
    assert not ReservedWords().is_reserved("@@")


def test_from_csv():
    words = ReservedWords.from_csv("a, b,,C")
    assert list(words) == ["a", "b", "c"]
    assert len(ReservedWords.from_csv(None)) == len(ReservedWords())
    assert len(ReservedWords.from_csv("")) == 0
