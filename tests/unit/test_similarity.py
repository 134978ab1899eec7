"""Tests for title similarity."""
import itertools

import pytest

from taskscan.extraction.similarity import is_similar


def test_identical_titles_are_similar():
    assert is_similar("send the invoice", "send the invoice")


def test_empty_titles_are_similar():
    assert is_similar("", "")


def test_substring_is_similar():
    assert is_similar("review the quarterly report", "review the quarterly reports")


def test_large_length_difference_rejected():
    assert not is_similar("call bob", "call bob about the quarterly planning offsite")


def test_shared_words_at_threshold():
    # 4 shared long words out of 5
    assert is_similar("update the quarterly sales report", "update our quarterly sales report")


def test_shared_words_below_threshold():
    # 3 shared long words out of 4
    assert not is_similar("review quarterly report draft", "review quarterly report final")
    assert is_similar("review quarterly report draft", "review quarterly report final", threshold=0.7)


def test_short_words_do_not_count():
    # only "the"/"to"/"a" style words overlap
    assert not is_similar("go to the gym at six", "go to the bar at ten")


SAMPLES = [
    "",
    "send the invoice",
    "send the invoice to acme",
    "update the quarterly sales report",
    "update our quarterly sales report",
    "review quarterly report draft",
    "review quarterly report final",
    "report report report",
    "report quarterly",
]


@pytest.mark.parametrize("a,b", list(itertools.combinations(SAMPLES, 2)))
@pytest.mark.parametrize("threshold", [0.5, 0.8, 1.0])
def test_symmetry(a, b, threshold):
    assert is_similar(a, b, threshold) == is_similar(b, a, threshold)
