# companylens/search/ranker.py
"""
HybridRanker: the scored, filtered, paginated company query and its
matching count query.

Both statements are built on one scored subquery, so the filter predicates,
the has-embedding gate and the inclusion gate are always identical between
the page and the total.
"""
import logging
from typing import List, Optional, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql import Subquery

from companylens.core.exceptions import SearchStorageError
from companylens.database.models import Company
from companylens.database.repositories.base import AbstractRepository, SessionFactory
from companylens.search import scoring
from companylens.search.filters import ParsedFilters
from companylens.search.models import SearchResult
from companylens.search.predicates import build_filter_predicates
from companylens.search.tiers import tier_meta

logger = logging.getLogger(__name__)

DEFAULT_EF_SEARCH = 200

# Large search columns are used for scoring only, never returned
_RESULT_COLUMNS = [
    column for column in Company.__table__.c
    if column.name not in ("embedding", "search_vector")
]


class HybridRanker(AbstractRepository):
    """
    Runs hybrid (semantic + trigram name + full-text) ranking in PostgreSQL.

    Weights, thresholds and the HNSW search-quality knob are fixed when the
    ranker is built, i.e. per deployment.
    """

    def __init__(self,
                 session_factory: SessionFactory,
                 weights: scoring.ScoringWeights = scoring.DEFAULT_WEIGHTS,
                 thresholds: scoring.ScoringThresholds = scoring.DEFAULT_THRESHOLDS,
                 ef_search: int = DEFAULT_EF_SEARCH):
        super().__init__(session_factory)
        self.weights = weights
        self.thresholds = thresholds
        self.ef_search = ef_search

    # --- Statement builders ---

    def _scored_subquery(self, cleaned_query: str, raw_query: str,
                         filters: ParsedFilters,
                         query_embedding: Sequence[float]) -> Subquery:
        predicates = build_filter_predicates(filters)
        stmt = (select(
            *_RESULT_COLUMNS,
            scoring.semantic_score_expr(query_embedding).label("semantic_score"),
            scoring.name_score_expr(raw_query).label("name_score"),
            scoring.text_score_expr(cleaned_query).label("text_score"),
            scoring.name_prefix_expr(raw_query).label("is_name_prefix"),
        ).where(*predicates.all()))
        return stmt.subquery("scored")

    def _inclusion_gate(self, scored: Subquery):
        return scoring.inclusion_gate_expr(scored.c.semantic_score,
                                           scored.c.name_score, self.thresholds)

    def build_search_statement(self, cleaned_query: str, raw_query: str,
                               filters: ParsedFilters,
                               query_embedding: Sequence[float], limit: int,
                               offset: int) -> Select:
        scored = self._scored_subquery(cleaned_query, raw_query, filters,
                                       query_embedding)
        semantic, name = scored.c.semantic_score, scored.c.name_score
        tier = scoring.tier_expr(semantic, name,
                                 scored.c.is_name_prefix).label("tier")
        final = scoring.final_score_expr(semantic, name, scored.c.text_score,
                                         scored.c.is_name_prefix,
                                         self.weights).label("final_score")
        # id breaks final_score ties so pages are reproducible
        return (select(scored, tier, final).where(
            self._inclusion_gate(scored)).order_by(
                final.desc(), scored.c.id.asc()).limit(limit).offset(offset))

    def build_count_statement(self, cleaned_query: str, raw_query: str,
                              filters: ParsedFilters,
                              query_embedding: Sequence[float]) -> Select:
        scored = self._scored_subquery(cleaned_query, raw_query, filters,
                                       query_embedding)
        return select(func.count()).select_from(scored).where(
            self._inclusion_gate(scored))

    # --- Execution ---

    def search(self, cleaned_query: str, raw_query: str,
               filters: ParsedFilters, query_embedding: Sequence[float],
               limit: int, offset: int) -> List[SearchResult]:
        """
        Returns one page of ranked results, best first.

        Raises:
            SearchStorageError: If the query fails at the storage engine.
        """
        stmt = self.build_search_statement(cleaned_query, raw_query, filters,
                                           query_embedding, limit, offset)
        logger.debug(f"Ranked query: limit={limit} offset={offset} "
                     f"cleaned_query={cleaned_query!r}")
        try:
            with self._session() as session:
                # Transaction-local, so it only affects the ranked query
                session.execute(
                    select(
                        func.set_config("hnsw.ef_search", str(self.ef_search),
                                        True)))
                rows = session.execute(stmt).all()
        except SQLAlchemyError as e:
            logger.error(f"Ranked search query failed: {e}", exc_info=True)
            raise SearchStorageError()
        return [self._to_result(row._mapping) for row in rows]

    def count(self, cleaned_query: str, raw_query: str, filters: ParsedFilters,
              query_embedding: Sequence[float]) -> int:
        """
        Total number of rows that pass the filters and the inclusion gate.

        Raises:
            SearchStorageError: If the query fails at the storage engine.
        """
        stmt = self.build_count_statement(cleaned_query, raw_query, filters,
                                          query_embedding)
        try:
            with self._session() as session:
                total: Optional[int] = session.execute(stmt).scalar()
        except SQLAlchemyError as e:
            logger.error(f"Search count query failed: {e}", exc_info=True)
            raise SearchStorageError()
        return int(total or 0)

    @staticmethod
    def _to_result(row) -> SearchResult:
        meta = tier_meta(row["tier"])
        return SearchResult(
            id=row["id"],
            name=row["name"],
            slug=row["slug"],
            website=row["website"],
            logo_url=row["logo_url"],
            one_liner=row["one_liner"],
            tags=list(row["tags"] or []),
            industries=list(row["industries"] or []),
            regions=list(row["regions"] or []),
            batch=row["batch"],
            stage=row["stage"],
            status=row["status"],
            team_size=row["team_size"],
            founded_at=row["founded_at"],
            is_hiring=row["is_hiring"],
            is_nonprofit=row["is_nonprofit"],
            all_locations=row["all_locations"],
            semantic_score=float(row["semantic_score"] or 0.0),
            name_score=float(row["name_score"] or 0.0),
            text_score=float(row["text_score"] or 0.0),
            final_score=float(row["final_score"] or 0.0),
            tier=row["tier"],
            tier_label=meta.label,
            tier_order=meta.order,
        )
