# companylens/search/scoring.py
"""
Single parameterized scoring module for hybrid company search.

Holds the weight and threshold constants, the pure-Python scoring and tier
rules, and the equivalent SQL expressions the ranker runs in PostgreSQL.
The two renditions share the same constants so they cannot drift apart.
"""
import logging
import math
from typing import List, NamedTuple, Optional, Sequence, Tuple

from sqlalchemy import Float, case, cast, false, func, literal, or_
from sqlalchemy.sql.elements import ColumnElement

from companylens.database.models import Company
from companylens.search.predicates import escape_like
from companylens.search.tiers import TIERS_IN_ORDER, Tier, tier_meta

logger = logging.getLogger(__name__)


class ScoringWeights(NamedTuple):
    semantic: float
    name: float
    text: float


class ScoringThresholds(NamedTuple):
    """Inclusion gate: a row needs either sub-score at or above its floor."""
    min_semantic: float
    min_name: float


# --- Named constants ---
DEFAULT_WEIGHTS = ScoringWeights(semantic=0.8, name=0.15, text=0.05)
# Alternate profile that leans on fuzzy name matching (company lookups)
NAME_EMPHASIS_WEIGHTS = ScoringWeights(semantic=0.8, name=0.2, text=0.05)

DEFAULT_THRESHOLDS = ScoringThresholds(min_semantic=0.25, min_name=0.7)

EXACT_NAME_SCORE = 0.9
PREFIX_MIN_LENGTH = 3
HIGH_CONFIDENCE_SEMANTIC = 0.7
STRONG_MATCH_SEMANTIC = 0.5
RELEVANT_SEMANTIC = 0.3

TEXT_SEARCH_CONFIG = 'english'


def weights_from_settings(search_settings) -> ScoringWeights:
    weights = ScoringWeights(semantic=search_settings.semantic_weight,
                             name=search_settings.name_weight,
                             text=search_settings.text_weight)
    if not math.isclose(sum(weights), 1.0, abs_tol=1e-6):
        logger.warning(
            f"Scoring weights {tuple(weights)} sum to {sum(weights):.3f}, not 1.0."
        )
    return weights


def thresholds_from_settings(search_settings) -> ScoringThresholds:
    return ScoringThresholds(min_semantic=search_settings.min_semantic_score,
                             min_name=search_settings.min_name_score)


# --- Pure-Python rules ---


def name_prefix_match(name: Optional[str], raw_query: Optional[str]) -> bool:
    """True when the query is a case-insensitive prefix of the company name."""
    query = (raw_query or "").strip().lower()
    if len(query) < PREFIX_MIN_LENGTH or not name:
        return False
    return name.lower().startswith(query)


def classify_tier(semantic_score: float, name_score: float,
                  is_name_prefix: bool) -> Tier:
    """Total and deterministic; the first matching rule wins."""
    if name_score >= EXACT_NAME_SCORE or is_name_prefix:
        return Tier.EXACT_MATCH
    if semantic_score >= HIGH_CONFIDENCE_SEMANTIC:
        return Tier.HIGH_CONFIDENCE
    if semantic_score >= STRONG_MATCH_SEMANTIC:
        return Tier.STRONG_MATCH
    if semantic_score >= RELEVANT_SEMANTIC:
        return Tier.RELEVANT
    return Tier.KEYWORD_MATCH


def base_score(semantic_score: float,
               name_score: float,
               text_score: float,
               weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    return (semantic_score * weights.semantic + name_score * weights.name +
            text_score * weights.text)


def final_score(semantic_score: float,
                name_score: float,
                text_score: float,
                tier: Tier,
                weights: ScoringWeights = DEFAULT_WEIGHTS) -> float:
    return base_score(semantic_score, name_score, text_score,
                      weights) * tier_meta(tier).boost_factor


def passes_inclusion_gate(
        semantic_score: float,
        name_score: float,
        thresholds: ScoringThresholds = DEFAULT_THRESHOLDS) -> bool:
    return (semantic_score >= thresholds.min_semantic
            or name_score >= thresholds.min_name)


# --- SQL expressions ---


def semantic_score_expr(query_embedding: Sequence[float]) -> ColumnElement:
    return (literal(1.0, Float) -
            Company.embedding.cosine_distance(list(query_embedding)))


def name_score_expr(raw_query: str) -> ColumnElement:
    return func.similarity(Company.name, raw_query, type_=Float)


def text_score_expr(cleaned_query: str) -> ColumnElement:
    """Full-text rank, or a constant 0 when nothing is left to match."""
    if not (cleaned_query or "").strip():
        return literal(0.0, Float)
    return cast(
        func.ts_rank_cd(Company.search_vector,
                        func.plainto_tsquery(TEXT_SEARCH_CONFIG,
                                             cleaned_query)), Float)


def name_prefix_expr(raw_query: str) -> ColumnElement:
    query = (raw_query or "").strip().lower()
    if len(query) < PREFIX_MIN_LENGTH:
        return false()
    return func.lower(Company.name).like(escape_like(query) + '%',
                                         escape='\\')


def _tier_conditions(
        semantic: ColumnElement, name: ColumnElement,
        is_name_prefix: ColumnElement) -> List[Tuple[ColumnElement, Tier]]:
    # Same order and thresholds as classify_tier
    return [
        (or_(name >= EXACT_NAME_SCORE, is_name_prefix), Tier.EXACT_MATCH),
        (semantic >= HIGH_CONFIDENCE_SEMANTIC, Tier.HIGH_CONFIDENCE),
        (semantic >= STRONG_MATCH_SEMANTIC, Tier.STRONG_MATCH),
        (semantic >= RELEVANT_SEMANTIC, Tier.RELEVANT),
    ]


def tier_expr(semantic: ColumnElement, name: ColumnElement,
              is_name_prefix: ColumnElement) -> ColumnElement:
    conditions = _tier_conditions(semantic, name, is_name_prefix)
    return case(*[(cond, tier.value) for cond, tier in conditions],
                else_=Tier.KEYWORD_MATCH.value)


def tier_boost_expr(semantic: ColumnElement, name: ColumnElement,
                    is_name_prefix: ColumnElement) -> ColumnElement:
    conditions = _tier_conditions(semantic, name, is_name_prefix)
    return case(*[(cond, tier_meta(tier).boost_factor)
                  for cond, tier in conditions],
                else_=tier_meta(TIERS_IN_ORDER[-1]).boost_factor)


def final_score_expr(semantic: ColumnElement,
                     name: ColumnElement,
                     text: ColumnElement,
                     is_name_prefix: ColumnElement,
                     weights: ScoringWeights = DEFAULT_WEIGHTS
                     ) -> ColumnElement:
    base = (semantic * weights.semantic + name * weights.name +
            text * weights.text)
    return base * tier_boost_expr(semantic, name, is_name_prefix)


def inclusion_gate_expr(
        semantic: ColumnElement,
        name: ColumnElement,
        thresholds: ScoringThresholds = DEFAULT_THRESHOLDS) -> ColumnElement:
    return or_(semantic >= thresholds.min_semantic,
               name >= thresholds.min_name)
