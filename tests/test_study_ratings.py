"""Tests for study/ratings.py -- rating scale parsing and labels."""

import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import pytest
from study.errors import InvalidRating
from study.ratings import RATING_TO_QUALITY, Rating, is_pass, parse_rating, rating_label


def test_categorical_mapping_is_fixed():
    assert RATING_TO_QUALITY == {
        Rating.AGAIN: 0,
        Rating.HARD: 3,
        Rating.GOOD: 4,
        Rating.EASY: 5,
    }


@pytest.mark.parametrize("value,expected", [
    ("again", 0),
    ("hard", 3),
    ("good", 4),
    ("easy", 5),
    ("  Easy ", 5),
    (Rating.GOOD, 4),
    (0, 0),
    (5, 5),
    ("3", 3),
])
def test_parse_rating_accepts_both_encodings(value, expected):
    assert parse_rating(value) == expected


@pytest.mark.parametrize("value", [6, -1, "6", "-1", "meh", "", None, True, 4.5, [4]])
def test_parse_rating_rejects_without_clamping(value):
    with pytest.raises(InvalidRating):
        parse_rating(value)


def test_invalid_rating_is_value_error():
    with pytest.raises(ValueError):
        parse_rating("perfect")


def test_pass_threshold():
    assert not is_pass(2)
    assert is_pass(3)


@pytest.mark.parametrize("quality,label", [(0, "again"), (2, "again"), (3, "hard"), (4, "good"), (5, "easy")])
def test_rating_label(quality, label):
    assert rating_label(quality) == label
