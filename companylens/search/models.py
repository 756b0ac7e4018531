# companylens/search/models.py

from datetime import date
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from companylens.search.filters import ParsedFilters
from companylens.search.tiers import Tier


class SearchRequest(BaseModel):
    """
    Validated search input. Bounds come from SearchSettings and are checked
    by the service before any extraction or I/O happens.
    """
    model_config = ConfigDict(extra='forbid')

    query: str = Field(..., description="Free-text query, trimmed.")
    filters: Dict[str, Any] = Field(
        default_factory=dict,
        description="Explicit filter overrides in query-string shape.")
    limit: int = Field(50, ge=1)
    offset: int = Field(0, ge=0)

    @field_validator('query', mode='before')
    @classmethod
    def strip_query(cls, v: Any) -> Any:
        return v.strip() if isinstance(v, str) else v


class SearchResult(BaseModel):
    """One ranked company with its sub-scores and tier."""
    id: str
    name: str
    slug: Optional[str] = None
    website: Optional[str] = None
    logo_url: Optional[str] = None
    one_liner: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    industries: List[str] = Field(default_factory=list)
    regions: List[str] = Field(default_factory=list)
    batch: Optional[str] = None
    stage: Optional[str] = None
    status: Optional[str] = None
    team_size: Optional[int] = None
    founded_at: Optional[date] = None
    is_hiring: Optional[bool] = None
    is_nonprofit: Optional[bool] = None
    all_locations: Optional[str] = None

    semantic_score: float = Field(
        ..., description="1 - cosine distance to the query embedding.")
    name_score: float = Field(
        ..., description="Trigram similarity of the name and the raw query.")
    text_score: float = Field(
        ..., description="Full-text rank of the cleaned query; may exceed 1.")
    final_score: float
    tier: Tier
    tier_label: str
    tier_order: int


class SearchResponse(BaseModel):
    results: List[SearchResult] = Field(default_factory=list)
    total_count: int = Field(0, ge=0)
    limit: int
    offset: int
    filters: ParsedFilters = Field(
        default_factory=ParsedFilters,
        description="Effective filters: inferred, then explicit overrides.")
    cleaned_query: str = ""
    query_time_ms: float = 0.0
