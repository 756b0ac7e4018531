# companylens/search/vocabulary.py
"""
Vocabulary Store: canonical categorical values and their aliases.

Built once at process start (from the distinct values in the companies
table, or from the built-in defaults) and then shared read-only by every
request. All maps are exposed as ``MappingProxyType`` views over data that
nothing else references, so the index cannot be mutated after ``build``.
"""
import logging
import re
from dataclasses import dataclass
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from companylens.search import aliases

logger = logging.getLogger(__name__)

VOCABULARY_FIELDS = ("batches", "stages", "statuses", "regions")

# Stripped from both ends of every token before matching
EDGE_PUNCTUATION = ",.;:!?()[]{}\"'"

_WHITESPACE_RE = re.compile(r"\s+")
_BATCH_VALUE_RE = re.compile(r"^(winter|spring|summer|fall)\s+(\d{4})$",
                             re.IGNORECASE)


def normalize_text(text: str) -> str:
    """Lowercase, collapse whitespace, trim."""
    return _WHITESPACE_RE.sub(" ", (text or "").lower()).strip()


def normalize_token(token: str) -> str:
    return token.lower().strip(EDGE_PUNCTUATION)


def normalize_key(text: str) -> str:
    """Normalization applied to vocabulary keys; mirrors query tokenization."""
    tokens = (normalize_token(t) for t in normalize_text(text).split(" "))
    return " ".join(t for t in tokens if t)


def _by_span_length(keys: Iterable[str]) -> List[str]:
    # Longest phrases first, ties broken alphabetically for determinism
    return sorted(set(keys), key=lambda k: (-len(k.split(" ")), k))


@dataclass(frozen=True)
class VocabularyIndex:
    """Immutable lookup tables consumed by the filter extractor."""
    batches: Mapping[str, str]
    stages: Mapping[str, str]
    statuses: Mapping[str, str]
    regions: Mapping[str, str]
    batch_aliases: Mapping[str, str]
    stage_aliases: Mapping[str, str]
    status_phrases: Tuple[Tuple[str, str], ...]
    status_keywords: Mapping[str, str]
    region_aliases: Mapping[str, Tuple[str, ...]]
    location_aliases: Tuple[Tuple[str, str], ...]
    hiring_phrases: Tuple[str, ...]
    not_hiring_phrases: Tuple[str, ...]
    nonprofit_phrases: Tuple[str, ...]
    stopwords: FrozenSet[str]

    def canonical_batch(self, value: str) -> Optional[str]:
        key = normalize_key(value)
        return self.batches.get(key) or self.batch_aliases.get(key)

    def canonical_stage(self, value: str) -> Optional[str]:
        key = normalize_key(value)
        return self.stages.get(key) or self.stage_aliases.get(key)

    def canonical_status(self, value: str) -> Optional[str]:
        key = normalize_key(value)
        if key in self.status_keywords:
            return self.status_keywords[key]
        return dict(self.status_phrases).get(key)

    def canonical_regions(self, value: str) -> Tuple[str, ...]:
        key = normalize_key(value)
        if key in self.regions:
            return (self.regions[key], )
        return self.region_aliases.get(key, ())

    def summary(self) -> Dict[str, int]:
        return {
            "batches": len(self.batches),
            "stages": len(self.stages),
            "statuses": len(self.statuses),
            "regions": len(self.regions),
            "batch_aliases": len(self.batch_aliases),
            "stage_aliases": len(self.stage_aliases),
            "status_aliases":
            len(self.status_phrases) + len(self.status_keywords),
            "region_aliases": len(self.region_aliases),
            "location_aliases": len(self.location_aliases),
        }


def _canonical_map(values: Iterable[str]) -> Dict[str, str]:
    result: Dict[str, str] = {}
    for value in values:
        if value is None:
            continue
        canonical = _WHITESPACE_RE.sub(" ", str(value)).strip()
        key = normalize_key(canonical)
        if key and key not in result:
            result[key] = canonical
    return result


def _batch_short_aliases(batches: Mapping[str, str]) -> Dict[str, str]:
    """Derives 'w24' / 'w2024' style aliases from canonical batch names."""
    result: Dict[str, str] = {}
    for canonical in batches.values():
        match = _BATCH_VALUE_RE.match(canonical)
        if not match:
            continue
        season, year = match.group(1).lower(), match.group(2)
        for prefix in aliases.BATCH_SEASON_PREFIXES[season]:
            result.setdefault(f"{prefix}{year[2:]}", canonical)
            result.setdefault(f"{prefix}{year}", canonical)
    return result


def _known_targets(alias_map: Mapping[str, str],
                   canonical: Mapping[str, str]) -> Dict[str, str]:
    """Keeps only aliases whose target exists among the canonical values."""
    known = set(canonical.values())
    return {
        normalize_key(alias): target
        for alias, target in alias_map.items() if target in known
    }


def build_vocabulary(
        value_lists: Mapping[str, Sequence[str]]) -> VocabularyIndex:
    """
    Builds the immutable vocabulary index.

    Args:
        value_lists: Canonical values per field. Recognized keys are
                     'batches', 'stages', 'statuses' and 'regions';
                     a missing key means no known values for that field.

    Returns:
        A VocabularyIndex safe for unsynchronized concurrent reads.

    Raises:
        ValueError: If ``value_lists`` contains an unrecognized field.
    """
    unknown = set(value_lists) - set(VOCABULARY_FIELDS)
    if unknown:
        raise ValueError(
            f"Unrecognized vocabulary field(s): {', '.join(sorted(unknown))}")

    batches = _canonical_map(value_lists.get("batches", ()))
    stages = _canonical_map(value_lists.get("stages", ()))
    statuses = _canonical_map(value_lists.get("statuses", ()))
    regions = _canonical_map(value_lists.get("regions", ()))

    status_aliases = _known_targets(aliases.STATUS_ALIASES, statuses)
    status_aliases.update(statuses)
    status_phrases = tuple((key, status_aliases[key])
                           for key in _by_span_length(status_aliases)
                           if " " in key)
    status_keywords = {
        key: target
        for key, target in status_aliases.items() if " " not in key
    }

    known_regions = set(regions.values())
    region_aliases: Dict[str, Tuple[str, ...]] = {}
    for alias, targets in aliases.REGION_ALIASES.items():
        kept = tuple(t for t in targets if t in known_regions)
        if kept:
            region_aliases[normalize_key(alias)] = kept

    location_map = {
        normalize_key(alias): city
        for alias, city in aliases.LOCATION_ALIASES.items()
    }

    index = VocabularyIndex(
        batches=MappingProxyType(batches),
        stages=MappingProxyType(stages),
        statuses=MappingProxyType(statuses),
        regions=MappingProxyType(regions),
        batch_aliases=MappingProxyType(_batch_short_aliases(batches)),
        stage_aliases=MappingProxyType(
            _known_targets(aliases.STAGE_ALIASES, stages)),
        status_phrases=status_phrases,
        status_keywords=MappingProxyType(status_keywords),
        region_aliases=MappingProxyType(region_aliases),
        location_aliases=tuple(
            (key, location_map[key]) for key in _by_span_length(location_map)),
        hiring_phrases=tuple(_by_span_length(
            normalize_key(p) for p in aliases.HIRING_PHRASES)),
        not_hiring_phrases=tuple(_by_span_length(
            normalize_key(p) for p in aliases.NOT_HIRING_PHRASES)),
        nonprofit_phrases=tuple(_by_span_length(
            normalize_key(p) for p in aliases.NONPROFIT_PHRASES)),
        stopwords=frozenset(aliases.STOPWORDS),
    )
    logger.info(f"Vocabulary built: {index.summary()}")
    return index


def build_default_vocabulary() -> VocabularyIndex:
    """Vocabulary from the built-in default values; needs no database."""
    return build_vocabulary(aliases.DEFAULT_VOCABULARY_VALUES)


def merge_with_defaults(
        value_lists: Mapping[str, Sequence[str]]) -> Dict[str, List[str]]:
    """Fills fields that have no stored values with the built-in defaults."""
    merged: Dict[str, List[str]] = {}
    for field in VOCABULARY_FIELDS:
        values = [v for v in value_lists.get(field, ()) if v]
        if not values:
            logger.warning(
                f"No stored values for vocabulary field '{field}'; using defaults."
            )
            values = list(aliases.DEFAULT_VOCABULARY_VALUES[field])
        merged[field] = values
    return merged
