# tests/test_vocabulary.py
import dataclasses

import pytest

from companylens.search.vocabulary import (build_vocabulary, merge_with_defaults,
                                           normalize_key, normalize_text)


def test_normalize_text_and_key():
    assert normalize_text("  Winter\t 2024 ") == "winter 2024"
    assert normalize_key("(Winter 2024),") == "winter 2024"


@pytest.mark.parametrize("alias, expected", [
    ("w24", "Winter 2024"),
    ("W2024", "Winter 2024"),
    ("winter 2024", "Winter 2024"),
    ("s09", "Summer 2009"),
    ("f24", "Fall 2024"),
    ("sp25", "Spring 2025"),
    ("x25", "Spring 2025"),
])
def test_batch_aliases(vocabulary, alias, expected):
    assert vocabulary.canonical_batch(alias) == expected


def test_unknown_values_resolve_to_none(vocabulary):
    assert vocabulary.canonical_batch("w99") is None
    assert vocabulary.canonical_stage("unicorn") is None
    assert vocabulary.canonical_status("thriving") is None
    assert vocabulary.canonical_regions("atlantis") == ()


def test_status_phrases_and_keywords(vocabulary):
    assert vocabulary.canonical_status("went public") == "Public"
    assert vocabulary.canonical_status("IPO") == "Public"
    assert vocabulary.canonical_status("shut down") == "Inactive"
    assert vocabulary.canonical_status("Acquired") == "Acquired"


def test_status_phrases_are_longest_first(vocabulary):
    lengths = [len(key.split(" ")) for key, _ in vocabulary.status_phrases]
    assert lengths == sorted(lengths, reverse=True)
    assert all(length > 1 for length in lengths)


def test_index_is_immutable(vocabulary):
    with pytest.raises(TypeError):
        vocabulary.batches["w99"] = "Winter 2099"
    with pytest.raises(dataclasses.FrozenInstanceError):
        vocabulary.stopwords = frozenset()


def test_unknown_field_is_rejected():
    with pytest.raises(ValueError):
        build_vocabulary({"colors": ["red"]})


def test_aliases_need_a_known_target():
    index = build_vocabulary({"statuses": ["Active"], "regions": ["Canada"]})
    assert index.canonical_status("went public") is None
    assert index.canonical_status("active") == "Active"
    # Only the stored region survives the alias expansion
    assert index.canonical_regions("north america") == ("Canada", )


def test_canonical_values_are_whitespace_normalized():
    index = build_vocabulary({"stages": ["  Early  ", "Growth"]})
    assert index.canonical_stage("EARLY") == "Early"
    assert index.canonical_stage("seed") == "Early"


def test_merge_with_defaults_fills_missing_fields():
    merged = merge_with_defaults({"batches": ["Winter 2030"], "stages": []})
    assert merged["batches"] == ["Winter 2030"]
    assert merged["stages"] == ["Early", "Growth", "Late"]
    assert "Public" in merged["statuses"]


def test_summary_counts(vocabulary):
    summary = vocabulary.summary()
    assert summary["stages"] == 3
    assert summary["statuses"] == 4
    assert summary["batches"] == len(vocabulary.batches)
