# companylens/search/predicates.py
import logging
from typing import List, NamedTuple

from sqlalchemy import extract
from sqlalchemy.sql.elements import ColumnElement

from companylens.database.models import Company
from companylens.search.filters import ParsedFilters

logger = logging.getLogger(__name__)


class FilterPredicates(NamedTuple):
    """Bound filter conditions plus the mandatory has-embedding gate."""
    conditions: List[ColumnElement]
    gate: ColumnElement

    def all(self) -> List[ColumnElement]:
        return [*self.conditions, self.gate]


def escape_like(value: str) -> str:
    """Escapes LIKE wildcards so user text only matches literally."""
    return (value.replace('\\', '\\\\').replace('%', '\\%').replace('_', '\\_'))


def build_filter_predicates(filters: ParsedFilters) -> FilterPredicates:
    """
    Converts ParsedFilters into parameterized SQLAlchemy conditions.

    Absent fields add nothing. Array filters match when the record shares at
    least one value with the filter (``&&``). Ranges are inclusive and either
    bound may be missing. The has-embedding gate is always returned, so an
    empty filter set is still a valid, gated query.
    """
    conditions: List[ColumnElement] = []

    # --- Exact categorical matches ---
    if filters.batch is not None:
        conditions.append(Company.batch == filters.batch)
    if filters.stage is not None:
        conditions.append(Company.stage == filters.stage)
    if filters.status is not None:
        conditions.append(Company.status == filters.status)
    if filters.is_hiring is not None:
        conditions.append(Company.is_hiring == filters.is_hiring)
    if filters.is_nonprofit is not None:
        conditions.append(Company.is_nonprofit == filters.is_nonprofit)

    # --- Location: case-insensitive substring ---
    if filters.location is not None:
        conditions.append(
            Company.all_locations.ilike(f"%{escape_like(filters.location)}%",
                                        escape='\\'))

    # --- Inclusive ranges ---
    if filters.team_size_min is not None:
        conditions.append(Company.team_size >= filters.team_size_min)
    if filters.team_size_max is not None:
        conditions.append(Company.team_size <= filters.team_size_max)
    founded_year = extract('year', Company.founded_at)
    if filters.founded_year_min is not None:
        conditions.append(founded_year >= filters.founded_year_min)
    if filters.founded_year_max is not None:
        conditions.append(founded_year <= filters.founded_year_max)

    # --- Any-of array matches ---
    if filters.tags:
        conditions.append(Company.tags.overlap(list(filters.tags)))
    if filters.industries:
        conditions.append(Company.industries.overlap(list(filters.industries)))
    if filters.regions:
        conditions.append(Company.regions.overlap(list(filters.regions)))

    gate = Company.embedding.isnot(None)
    logger.debug(
        f"Built {len(conditions)} filter predicate(s) for "
        f"{filters.model_dump(exclude_none=True)}")
    return FilterPredicates(conditions=conditions, gate=gate)
