# companylens/search/filters.py
import logging
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from companylens.core.exceptions import SearchValidationError
from companylens.search.vocabulary import VocabularyIndex

logger = logging.getLogger(__name__)

# Range pairs are merged as a unit so a merge can never invert a range
RANGE_FIELDS = (
    ("team_size_min", "team_size_max"),
    ("founded_year_min", "founded_year_max"),
)
ARRAY_FIELDS = ("tags", "industries", "regions")


class ParsedFilters(BaseModel):
    """
    Structured constraints for a search. Every field is independently
    optional; ``None`` means unconstrained.
    """
    model_config = ConfigDict(extra='forbid', frozen=True)

    batch: Optional[str] = Field(None, description="Canonical batch, e.g. 'Winter 2024'.")
    stage: Optional[str] = Field(None, description="Canonical stage, e.g. 'Early'.")
    status: Optional[str] = Field(None, description="Canonical status, e.g. 'Public'.")
    location: Optional[str] = Field(
        None, description="Case-insensitive substring of the location text.")
    is_hiring: Optional[bool] = None
    is_nonprofit: Optional[bool] = None

    team_size_min: Optional[int] = Field(None, ge=0)
    team_size_max: Optional[int] = Field(None, ge=0)
    founded_year_min: Optional[int] = Field(None, ge=1800, le=2200)
    founded_year_max: Optional[int] = Field(None, ge=1800, le=2200)

    # Any-of semantics against the record's array column
    tags: Optional[List[str]] = None
    industries: Optional[List[str]] = None
    regions: Optional[List[str]] = None

    @field_validator('batch', 'stage', 'status', 'location', mode='before')
    @classmethod
    def blank_to_none(cls, v: Any) -> Any:
        if isinstance(v, str):
            v = " ".join(v.split())
            return v or None
        return v

    @field_validator('tags', 'industries', 'regions', mode='before')
    @classmethod
    def parse_array(cls, v: Any) -> Any:
        if v is None:
            return None
        if isinstance(v, str):
            v = v.split(',')
        if isinstance(v, (list, tuple, set, frozenset)):
            seen: List[str] = []
            for item in v:
                item = str(item).strip()
                if item and item not in seen:
                    seen.append(item)
            return seen or None
        return v

    @model_validator(mode='after')
    def check_ranges(self) -> 'ParsedFilters':
        for low_field, high_field in RANGE_FIELDS:
            low, high = getattr(self, low_field), getattr(self, high_field)
            if low is not None and high is not None and low > high:
                raise ValueError(
                    f"{low_field} ({low}) cannot exceed {high_field} ({high})")
        return self

    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)


def parse_explicit_filters(params: Optional[Mapping[str, Any]]) -> ParsedFilters:
    """
    Builds ParsedFilters from caller-supplied, query-string-shaped input
    (e.g. ``{"batch": "W23", "tags": "fintech,ai", "is_hiring": "true"}``).

    Unrecognized fields are rejected rather than passed through.

    Raises:
        SearchValidationError: On unknown fields or invalid values.
    """
    if not params:
        return ParsedFilters()
    cleaned = {k: v for k, v in params.items() if v is not None and v != ""}
    unknown = sorted(set(cleaned) - set(ParsedFilters.model_fields))
    if unknown:
        raise SearchValidationError("Unrecognized filter field(s)",
                                    errors=unknown)
    try:
        return ParsedFilters(**cleaned)
    except ValidationError as e:
        problems = [
            f"{'.'.join(str(p) for p in err['loc']) or 'filters'}: {err['msg']}"
            for err in e.errors()
        ]
        logger.debug(f"Rejected explicit filters {dict(cleaned)}: {problems}")
        raise SearchValidationError("Invalid filter value(s)",
                                    errors=problems) from e


def resolve_explicit_filters(filters: ParsedFilters,
                             vocabulary: VocabularyIndex) -> ParsedFilters:
    """
    Maps explicit categorical values onto their canonical stored form
    ('W23' -> 'Winter 2023'). Values the vocabulary does not know are rejected.
    """
    updates: Dict[str, Any] = {}
    problems: List[str] = []
    resolvers = {
        "batch": vocabulary.canonical_batch,
        "stage": vocabulary.canonical_stage,
        "status": vocabulary.canonical_status,
    }
    for field, resolve in resolvers.items():
        value = getattr(filters, field)
        if value is None:
            continue
        canonical = resolve(value)
        if canonical is None:
            problems.append(f"{field}: unknown value '{value}'")
        else:
            updates[field] = canonical

    if filters.regions:
        regions: List[str] = []
        for value in filters.regions:
            resolved = vocabulary.canonical_regions(value)
            if not resolved:
                problems.append(f"regions: unknown value '{value}'")
            regions.extend(r for r in resolved if r not in regions)
        updates["regions"] = regions

    if problems:
        raise SearchValidationError("Invalid filter value(s)", errors=problems)
    return filters.model_copy(update=updates)


def merge_filters(inferred: ParsedFilters,
                  explicit: ParsedFilters) -> ParsedFilters:
    """
    Combines filters inferred from the query text with explicit ones.

    Explicit values win field by field. A range pair is taken from the
    explicit filters as a whole when the caller sets either of its bounds.
    """
    merged = inferred.model_dump(exclude_none=True)
    overrides = explicit.model_dump(exclude_none=True)
    for low_field, high_field in RANGE_FIELDS:
        if low_field in overrides or high_field in overrides:
            merged.pop(low_field, None)
            merged.pop(high_field, None)
    merged.update(overrides)
    return ParsedFilters(**merged)
