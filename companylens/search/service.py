# companylens/search/service.py
"""
SearchService: the public search operation.

validate -> extract -> merge explicit filters -> embed -> (ranked page ||
total count) -> response. The ranked and count queries are independent
reads and run concurrently on a shared worker pool.
"""
import concurrent.futures
import logging
import threading
import time
from typing import Any, Mapping, Optional

from pydantic import ValidationError

from companylens.config.settings import AppSettings, SearchSettings
from companylens.core.cancellation import raise_if_cancelled, wait_for_result
from companylens.core.exceptions import ConfigurationError, SearchValidationError
from companylens.database.models import EMBEDDING_DIMENSIONS
from companylens.database.repositories.company import CompanyRepository
from companylens.database.session import initialize_database
from companylens.search import scoring
from companylens.search.embeddings import EmbeddingClient, OpenAIEmbeddingClient
from companylens.search.extractor import FilterExtractor
from companylens.search.filters import (merge_filters, parse_explicit_filters,
                                        resolve_explicit_filters)
from companylens.search.models import SearchRequest, SearchResponse
from companylens.search.ranker import HybridRanker
from companylens.search.vocabulary import (VocabularyIndex, build_vocabulary,
                                           merge_with_defaults)

logger = logging.getLogger(__name__)


class SearchService:
    """
    Orchestrates one search request. Holds only immutable or thread-safe
    collaborators, so one instance serves any number of concurrent requests.
    """

    def __init__(self,
                 vocabulary: VocabularyIndex,
                 embedding_client: EmbeddingClient,
                 ranker: HybridRanker,
                 search_settings: Optional[SearchSettings] = None,
                 engine=None):
        self.settings = search_settings or SearchSettings()
        self.vocabulary = vocabulary
        self.extractor = FilterExtractor(vocabulary)
        self.embedding_client = embedding_client
        self.ranker = ranker
        self.engine = engine
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=self.settings.query_workers,
            thread_name_prefix="search-query")
        logger.info(f"{self.__class__.__name__} initialized.")

    # --- Validation ---

    def validate_request(self,
                         raw_query: Any,
                         explicit_filters: Optional[Mapping[str, Any]] = None,
                         limit: Optional[int] = None,
                         offset: Optional[int] = 0) -> SearchRequest:
        """
        Checks the query text and paging bounds.

        Raises:
            SearchValidationError: If the query is empty, too long, or the
                                   paging values are out of range.
        """
        try:
            request = SearchRequest(
                query=raw_query,
                filters=dict(explicit_filters or {}),
                limit=self.settings.default_limit if limit is None else limit,
                offset=0 if offset is None else offset)
        except ValidationError as e:
            problems = [
                f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}"
                for err in e.errors()
            ]
            raise SearchValidationError("Invalid search request",
                                        errors=problems) from e

        problems = []
        if not request.query:
            problems.append("query: must not be empty")
        elif len(request.query) > self.settings.max_query_length:
            problems.append(
                f"query: must be at most {self.settings.max_query_length} characters"
            )
        if request.limit > self.settings.max_limit:
            problems.append(
                f"limit: must be at most {self.settings.max_limit}")
        if request.offset > self.settings.max_offset:
            problems.append(
                f"offset: must be at most {self.settings.max_offset}")
        if problems:
            raise SearchValidationError("Invalid search request",
                                        errors=problems)
        return request

    # --- Public operation ---

    def search(self,
               raw_query: Any,
               explicit_filters: Optional[Mapping[str, Any]] = None,
               limit: Optional[int] = None,
               offset: Optional[int] = 0,
               cancel_event: Optional[threading.Event] = None
               ) -> SearchResponse:
        """
        Runs a full hybrid search.

        Args:
            raw_query: Free-text query as typed by the user.
            explicit_filters: Structured overrides in query-string shape
                              (e.g. ``{"batch": "W23", "tags": "ai,fintech"}``).
                              They win over filters inferred from the text.
            limit: Page size (default from settings).
            offset: Rows to skip.
            cancel_event: Set by the caller to abort; checked at every I/O step.

        Returns:
            SearchResponse with the ranked page and the total match count.

        Raises:
            SearchValidationError: Bad input; raised before any I/O.
            EmbeddingUnavailableError: The query could not be embedded.
            SearchStorageError: The ranked or count query failed.
            SearchCancelledError: ``cancel_event`` was set.
        """
        start = time.perf_counter()
        request = self.validate_request(raw_query, explicit_filters, limit,
                                        offset)
        explicit = resolve_explicit_filters(
            parse_explicit_filters(request.filters), self.vocabulary)

        inferred, cleaned_query = self.extractor.extract(request.query)
        filters = merge_filters(inferred, explicit)
        logger.info(
            f"Search {request.query!r}: filters={filters.model_dump(exclude_none=True)} "
            f"cleaned_query={cleaned_query!r}")

        raise_if_cancelled(cancel_event, "embedding")
        # Everything may have been consumed as filters; embed the raw text then
        query_embedding = self.embedding_client.generate(
            cleaned_query or request.query, cancel_event=cancel_event)

        raise_if_cancelled(cancel_event, "ranking")
        results_future = self._executor.submit(self.ranker.search,
                                               cleaned_query, request.query,
                                               filters, query_embedding,
                                               request.limit, request.offset)
        count_future = self._executor.submit(self.ranker.count, cleaned_query,
                                             request.query, filters,
                                             query_embedding)
        try:
            results = wait_for_result(
                results_future,
                cancel_event=cancel_event,
                poll_interval=self.settings.cancel_poll_interval,
                stage="ranked query")
            total_count = wait_for_result(
                count_future,
                cancel_event=cancel_event,
                poll_interval=self.settings.cancel_poll_interval,
                stage="count query")
        finally:
            # No-ops for futures that already finished
            results_future.cancel()
            count_future.cancel()

        elapsed_ms = (time.perf_counter() - start) * 1000
        logger.info(f"Search {request.query!r} returned {len(results)} of "
                    f"{total_count} result(s) in {elapsed_ms:.1f} ms.")
        return SearchResponse(results=results,
                              total_count=total_count,
                              limit=request.limit,
                              offset=request.offset,
                              filters=filters,
                              cleaned_query=cleaned_query,
                              query_time_ms=round(elapsed_ms, 2))

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.embedding_client.close()
        if self.engine is not None:
            self.engine.dispose()
        logger.info(f"{self.__class__.__name__} closed.")


def load_vocabulary(session_factory) -> VocabularyIndex:
    """Builds the vocabulary from stored distinct values plus defaults."""
    repository = CompanyRepository(session_factory)
    stored = repository.get_vocabulary_values()
    return build_vocabulary(merge_with_defaults(stored))


def create_search_service(settings: AppSettings,
                          create_schema: bool = False) -> SearchService:
    """
    Wires the production service: database, vocabulary, embedding client
    and ranker, all configured from ``settings``.
    """
    if settings.embedding.dimensions != EMBEDDING_DIMENSIONS:
        logger.critical(
            f"Embedding dimensions {settings.embedding.dimensions} do not match "
            f"the stored vector column size {EMBEDDING_DIMENSIONS}.")
        raise ConfigurationError(
            f"EMBEDDING_DIMENSIONS must be {EMBEDDING_DIMENSIONS} to match the "
            f"companies.embedding column, got {settings.embedding.dimensions}")
    engine, session_factory = initialize_database(settings.database,
                                                  create_schema=create_schema)
    try:
        vocabulary = load_vocabulary(session_factory)
        embedding_client = OpenAIEmbeddingClient(settings.embedding)
    except Exception:
        engine.dispose()
        raise
    ranker = HybridRanker(
        session_factory,
        weights=scoring.weights_from_settings(settings.search),
        thresholds=scoring.thresholds_from_settings(settings.search),
        ef_search=settings.search.hnsw_ef_search)
    return SearchService(vocabulary,
                         embedding_client,
                         ranker,
                         search_settings=settings.search,
                         engine=engine)
