# companylens/search/tiers.py
"""
Tier Classifier metadata: display label, display order and score boost
for each of the five confidence tiers. Static data, no database needed.
"""
from enum import Enum
from types import MappingProxyType
from typing import Mapping, NamedTuple, Tuple


class Tier(str, Enum):
    EXACT_MATCH = "exact_match"
    HIGH_CONFIDENCE = "high_confidence"
    STRONG_MATCH = "strong_match"
    RELEVANT = "relevant"
    KEYWORD_MATCH = "keyword_match"


class TierMeta(NamedTuple):
    label: str
    order: int
    boost_factor: float
    description: str


_TIER_METADATA: Mapping[Tier, TierMeta] = MappingProxyType({
    Tier.EXACT_MATCH:
    TierMeta("Exact Match", 1, 2.5,
             "Company name matches the query (near-identical or prefix)."),
    Tier.HIGH_CONFIDENCE:
    TierMeta("Highly Relevant", 2, 1.5,
             "Very close semantic match to the query."),
    Tier.STRONG_MATCH:
    TierMeta("Strong Match", 3, 1.0, "Clear semantic match to the query."),
    Tier.RELEVANT:
    TierMeta("Relevant", 4, 0.8, "Related to the query."),
    Tier.KEYWORD_MATCH:
    TierMeta("Keyword Match", 5, 0.5,
             "Matched mainly on name or keywords."),
})

# Best tier first
TIERS_IN_ORDER: Tuple[Tier, ...] = tuple(
    sorted(_TIER_METADATA, key=lambda t: _TIER_METADATA[t].order))


def tier_meta(tier) -> TierMeta:
    """
    Looks up the metadata for a tier.

    Args:
        tier: A Tier member or its string value (e.g. 'exact_match').

    Raises:
        ValueError: If ``tier`` is not one of the five tiers.
    """
    return _TIER_METADATA[Tier(tier)]
