from __future__ import annotations

import pytest

from slugregistry.domain.slug import MAX_SLUG_LENGTH, SlugAvailability, normalize_slug, with_suffix


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Ann Smith", "ann-smith"),
        ("  Ann   Smith  ", "ann-smith"),
        ("Jane.Doe@Example.com", "jane-doe-example-com"),
        ("first_last", "first-last"),
        ("--Hi!!--", "hi"),
        ("a - b", "a-b"),
        ("C++ Guru", "c-guru"),
        ("MiXeD-Case-42", "mixed-case-42"),
    ],
)
def test_normalize_slug(raw, expected):
    assert normalize_slug(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "!!!", "@@", "---", None, 42])
def test_normalize_slug_empty_results(raw):
    assert normalize_slug(raw) == ""


def test_normalize_slug_is_idempotent():
    for raw in ["Ann Smith", "Jane.Doe@Example.com", "x" * 200, "a" * 79 + " b"]:
        once = normalize_slug(raw)
        assert normalize_slug(once) == once


def test_normalize_slug_truncates_without_trailing_dash():
    assert normalize_slug("a" * 100) == "a" * MAX_SLUG_LENGTH
    assert normalize_slug("a" * 79 + " b") == "a" * 79


def test_with_suffix_sequence():
    assert with_suffix("ann", 1) == "ann"
    assert with_suffix("ann", 2) == "ann-2"
    assert with_suffix("ann", 20) == "ann-20"


def test_with_suffix_respects_length_cap():
    base = "x" * MAX_SLUG_LENGTH
    candidate = with_suffix(base, 2)
    assert len(candidate) == MAX_SLUG_LENGTH
    assert candidate.endswith("-2")
    assert normalize_slug(candidate) == candidate


def test_availability_payload_shape():
    assert SlugAvailability(slug="ann", available=True).to_dict() == {"available": True, "mine": False}
    assert SlugAvailability(slug="admin", available=False, reserved=True).to_dict() == {
        "available": False,
        "reserved": True,
    }
    assert SlugAvailability(slug="old", available=False, alias_to="new").to_dict() == {
        "available": False,
        "aliasTo": "new",
    }
    assert SlugAvailability(slug="ann", available=False, mine=True).to_dict() == {"available": False, "mine": True}
