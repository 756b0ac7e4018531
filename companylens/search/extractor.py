# companylens/search/extractor.py
"""
FilterExtractor: infer structured filters from a free-text query.

Matchers run in a fixed priority order over the query tokens. Each match
consumes the indices of the tokens it used, so later matchers never reuse
them. Whatever is left (minus stopwords and one-character tokens) becomes
the cleaned query that feeds full-text ranking and the embedding.
"""
import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence, Set, Tuple

from companylens.search.aliases import WEAK_STATUS
from companylens.search.filters import ParsedFilters
from companylens.search.vocabulary import EDGE_PUNCTUATION, VocabularyIndex, normalize_token

logger = logging.getLogger(__name__)

MAX_NGRAM = 8

_UNIT = r"(?:employees?|people|persons?|staff|members?|engineers)"
_YEAR = r"(?:20\d{2}|199\d)"
_COUNT = r"(\d{1,7})"

_BATCH_SHORT_RE = re.compile(r"^(?:w|s|f|sp|x)(?:\d{2}|\d{4})$")

# Ranked team-size forms; only the first form that matches is applied
TEAM_SIZE_PATTERNS: List[Tuple[re.Pattern, Callable[[re.Match], Dict[str, int]]]] = [
    # "10 to 50 employees" / "10-50 people"
    (re.compile(rf"\b{_COUNT}\s*(?:to|-|–)\s*{_COUNT}\s*({_UNIT})?(?!\w)"),
     lambda m: _size_range(int(m.group(1)), int(m.group(2)))),
    # "under 10" / "fewer than 10 people" / "<10"
    (re.compile(rf"(?:\b(?:under|below|fewer\s+than|less\s+than)\s+|<\s*){_COUNT}(?:\s*{_UNIT})?\b"),
     lambda m: {"team_size_max": int(m.group(1))}),
    # "over 50" / "more than 50 employees" / "50+" / ">50"
    (re.compile(rf"(?:\b(?:over|above|more\s+than|greater\s+than)\s+|>\s*){_COUNT}(?:\s*{_UNIT})?\b"),
     lambda m: {"team_size_min": int(m.group(1))}),
    (re.compile(rf"\b{_COUNT}\+(?:\s*{_UNIT})?(?!\w)"),
     lambda m: {"team_size_min": int(m.group(1))}),
    # "solo founder" / "1 person team"; ahead of the exact count form
    (re.compile(r"\bsolo\s+founders?\b|\b1\s+person\s+team\b"),
     lambda m: {"team_size_max": 2}),
    # "50 employees"
    (re.compile(rf"\b{_COUNT}\s+{_UNIT}\b"),
     lambda m: {"team_size_min": int(m.group(1)), "team_size_max": int(m.group(1))}),
    # Qualitative phrases
    (re.compile(r"\bsmall\s+(?:teams?|startups?|compan(?:y|ies)|firms?)\b"),
     lambda m: {"team_size_max": 20}),
    (re.compile(r"\bmid[- ]?size[d]?\b|\bmedium[- ](?:size[d]?|compan(?:y|ies)|startups?)\b"),
     lambda m: {"team_size_min": 50, "team_size_max": 500}),
    (re.compile(r"\b(?:large|big)\s+(?:compan(?:y|ies)|startups?|firms?)\b"),
     lambda m: {"team_size_min": 200}),
    (re.compile(r"\benterprise[- ]size[d]?\b"),
     lambda m: {"team_size_min": 500}),
]

# Ranked founded-year forms; only the first form that matches is applied
FOUNDED_YEAR_PATTERNS: List[Tuple[re.Pattern, Callable[[re.Match], Dict[str, int]]]] = [
    (re.compile(rf"\b(?:founded|started|created|launched|established)\s+(?:in\s+)?({_YEAR})\b"),
     lambda m: {"founded_year_min": int(m.group(1)), "founded_year_max": int(m.group(1))}),
    (re.compile(rf"\b(?:before|pre)(?:-|\s+)?({_YEAR})\b"),
     lambda m: {"founded_year_max": int(m.group(1)) - 1}),
    (re.compile(rf"\b(?:after|since|post)(?:-|\s+)?({_YEAR})\b"),
     lambda m: {"founded_year_min": int(m.group(1)) + 1}),
    (re.compile(rf"\b({_YEAR})\b"),
     lambda m: {"founded_year_min": int(m.group(1)), "founded_year_max": int(m.group(1))}),
]

_YEAR_LIKE_RE = re.compile(rf"^{_YEAR}$")


def _size_range(low: int, high: int) -> Dict[str, int]:
    if low > high:
        low, high = high, low
    return {"team_size_min": low, "team_size_max": high}


@dataclass
class _Segment:
    """A run of adjacent unconsumed tokens joined by single spaces."""
    text: str
    indices: List[int]
    offsets: List[Tuple[int, int]]

    def covered(self, start: int, end: int) -> List[int]:
        return [
            idx for idx, (s, e) in zip(self.indices, self.offsets)
            if s < end and e > start
        ]


@dataclass
class _ExtractionState:
    tokens: List[str]
    consumed: Set[int] = field(default_factory=set)
    values: Dict[str, object] = field(default_factory=dict)

    def is_free(self, start: int, end: int) -> bool:
        return not any(i in self.consumed for i in range(start, end))

    def consume(self, indices) -> None:
        self.consumed.update(indices)

    def set_scalar(self, name: str, value: object) -> bool:
        # First successful matcher wins; later matches of the field are discarded
        if name in self.values:
            return False
        self.values[name] = value
        return True

    def segments(self) -> Iterator[_Segment]:
        run: List[int] = []
        for i in range(len(self.tokens) + 1):
            if i < len(self.tokens) and i not in self.consumed:
                run.append(i)
                continue
            if run:
                offsets, cursor = [], 0
                for idx in run:
                    offsets.append((cursor, cursor + len(self.tokens[idx])))
                    cursor += len(self.tokens[idx]) + 1
                yield _Segment(" ".join(self.tokens[idx] for idx in run),
                               list(run), offsets)
                run = []

    def find_sequence(self, phrase: str,
                      condition: Optional[Callable[[int], bool]] = None
                      ) -> Optional[Tuple[int, int]]:
        """First free occurrence of a (space separated) phrase in the tokens."""
        words = phrase.split(" ")
        size = len(words)
        for start in range(0, len(self.tokens) - size + 1):
            if self.tokens[start:start + size] != words:
                continue
            if not self.is_free(start, start + size):
                continue
            if condition is not None and not condition(start):
                continue
            return start, start + size
        return None

    def ngrams(self) -> Iterator[Tuple[str, int, int]]:
        """Free n-grams, longest first, left to right within a length."""
        max_n = min(MAX_NGRAM, len(self.tokens))
        for size in range(max_n, 0, -1):
            for start in range(0, len(self.tokens) - size + 1):
                if self.is_free(start, start + size):
                    yield " ".join(self.tokens[start:start + size]), start, start + size


class FilterExtractor:
    """
    Turns a raw query into ``(ParsedFilters, cleaned_query)``.

    Pure and deterministic: it holds only a reference to the immutable
    vocabulary and never raises on any string input.
    """

    def __init__(self, vocabulary: VocabularyIndex):
        self.vocabulary = vocabulary

    def extract(self, raw_query: str) -> Tuple[ParsedFilters, str]:
        try:
            return self._extract(raw_query)
        except Exception as e:
            # Unrecognized input is passed through as residual text, never rejected
            logger.error(f"Filter extraction failed for query {raw_query!r}: {e}",
                         exc_info=True)
            return ParsedFilters(), " ".join(str(raw_query or "").split())

    def _extract(self, raw_query: str) -> Tuple[ParsedFilters, str]:
        # Matching runs on lowercased tokens; the cleaned query keeps the caller's casing
        original_tokens: List[str] = []
        tokens: List[str] = []
        for raw_token in (raw_query or "").split():
            token = normalize_token(raw_token)
            if not token:
                continue
            tokens.append(token)
            original_tokens.append(raw_token.strip(EDGE_PUNCTUATION))

        state = _ExtractionState(tokens=tokens)
        if tokens:
            self._match_batch(state)
            self._match_stage(state)
            self._match_status(state)
            self._match_team_size(state)
            self._match_hiring(state)
            self._match_nonprofit(state)
            self._match_location(state)
            self._match_regions(state)
            self._match_founded_year(state)

        stopwords = self.vocabulary.stopwords
        cleaned_query = " ".join(
            original_tokens[i] for i, token in enumerate(tokens)
            if i not in state.consumed and token not in stopwords
            and len(token) > 1)
        filters = ParsedFilters(**state.values)
        logger.debug(
            f"Extracted filters {filters.model_dump(exclude_none=True)} "
            f"cleaned_query={cleaned_query!r} from {raw_query!r}")
        return filters, cleaned_query

    # --- Vocabulary matching helpers ---

    def _first_vocabulary_match(
            self, state: _ExtractionState,
            *maps: Mapping[str, str]) -> Optional[Tuple[str, int, int]]:
        for gram, start, end in state.ngrams():
            for lookup in maps:
                if gram in lookup:
                    return lookup[gram], start, end
        return None

    def _first_pattern_match(
            self, state: _ExtractionState,
            patterns: Sequence[Tuple[re.Pattern, Callable[[re.Match], Optional[Dict[str, int]]]]],
            accept: Optional[Callable[[re.Match], bool]] = None
    ) -> Optional[Tuple[Dict[str, int], List[int]]]:
        """Applies ranked patterns; the first form with a free match wins."""
        segments = list(state.segments())
        for pattern, build in patterns:
            for segment in segments:
                for match in pattern.finditer(segment.text):
                    if accept is not None and not accept(match):
                        continue
                    values = build(match)
                    if values:
                        return values, segment.covered(match.start(), match.end())
        return None

    # --- Matchers, in priority order ---

    def _match_batch(self, state: _ExtractionState) -> None:
        vocab = self.vocabulary
        for i, token in enumerate(state.tokens):
            if i in state.consumed or not _BATCH_SHORT_RE.match(token):
                continue
            canonical = vocab.batch_aliases.get(token)
            if canonical and state.set_scalar("batch", canonical):
                state.consume([i])
                return
        # Full form ("winter 2024") only when no short form matched
        found = self._first_vocabulary_match(state, vocab.batches)
        if found and state.set_scalar("batch", found[0]):
            state.consume(range(found[1], found[2]))

    def _match_stage(self, state: _ExtractionState) -> None:
        found = self._first_vocabulary_match(state, self.vocabulary.stages,
                                             self.vocabulary.stage_aliases)
        if found and state.set_scalar("stage", found[0]):
            state.consume(range(found[1], found[2]))

    def _match_status(self, state: _ExtractionState) -> None:
        vocab = self.vocabulary
        for phrase, status in vocab.status_phrases:
            span = state.find_sequence(phrase)
            if span and state.set_scalar("status", status):
                state.consume(range(*span))
                return

        weak_span: Optional[Tuple[int, int]] = None
        for i, token in enumerate(state.tokens):
            if i in state.consumed or token not in vocab.status_keywords:
                continue
            status = vocab.status_keywords[token]
            if status == WEAK_STATUS:
                if weak_span is None:
                    weak_span = (i, i + 1)
                continue
            if state.set_scalar("status", status):
                state.consume([i])
            return
        # "active" only counts when it is the sole status evidence
        if weak_span and state.set_scalar("status", WEAK_STATUS):
            state.consume(range(*weak_span))

    def _match_team_size(self, state: _ExtractionState) -> None:

        def not_a_year_range(match: re.Match) -> bool:
            # "2019 to 2021" is a span of years, not a headcount
            if match.re is not TEAM_SIZE_PATTERNS[0][0] or match.group(3):
                return True
            return not (_YEAR_LIKE_RE.match(match.group(1))
                        and _YEAR_LIKE_RE.match(match.group(2)))

        found = self._first_pattern_match(state, TEAM_SIZE_PATTERNS,
                                          accept=not_a_year_range)
        if not found:
            return
        values, indices = found
        for name, value in values.items():
            state.set_scalar(name, value)
        state.consume(indices)

    def _match_hiring(self, state: _ExtractionState) -> None:
        vocab = self.vocabulary
        for phrase in vocab.not_hiring_phrases:
            span = state.find_sequence(phrase)
            if span and state.set_scalar("is_hiring", False):
                state.consume(range(*span))
                return
        for phrase in vocab.hiring_phrases:
            span = state.find_sequence(phrase)
            if span and state.set_scalar("is_hiring", True):
                state.consume(range(*span))
                return

    def _match_nonprofit(self, state: _ExtractionState) -> None:
        for phrase in self.vocabulary.nonprofit_phrases:
            span = state.find_sequence(phrase)
            if span and state.set_scalar("is_nonprofit", True):
                state.consume(range(*span))
                return

    def _match_location(self, state: _ExtractionState) -> None:
        tokens = state.tokens

        def anchored(start: int) -> bool:
            # Bare city names are often adjectives ("paris fashion")
            return start == 0 or tokens[start - 1] == "in"

        for alias, city in self.vocabulary.location_aliases:
            span = state.find_sequence(alias, condition=anchored)
            if not span:
                continue
            if state.set_scalar("location", city):
                start, end = span
                state.consume(range(start, end))
                if start > 0 and tokens[start - 1] == "in":
                    state.consume([start - 1])
                    if start > 1 and tokens[start - 2] == "based":
                        state.consume([start - 2])
            return

    def _match_regions(self, state: _ExtractionState) -> None:
        vocab = self.vocabulary
        regions: List[str] = []
        for gram, start, end in list(state.ngrams()):
            if not state.is_free(start, end):
                continue
            if gram in vocab.regions:
                matched: Tuple[str, ...] = (vocab.regions[gram], )
            elif gram in vocab.region_aliases:
                matched = vocab.region_aliases[gram]
            else:
                continue
            regions.extend(r for r in matched if r not in regions)
            state.consume(range(start, end))
        if regions:
            state.values["regions"] = regions

    def _match_founded_year(self, state: _ExtractionState) -> None:
        found = self._first_pattern_match(state, FOUNDED_YEAR_PATTERNS)
        if not found:
            return
        values, indices = found
        for name, value in values.items():
            state.set_scalar(name, value)
        state.consume(indices)
