# tests/conftest.py
"""Shared fixtures. Nothing here touches a database or the network."""
import threading
from typing import Dict, List, Optional

import pytest
from sqlalchemy.dialects import postgresql

from companylens.config.settings import SearchSettings
from companylens.core.exceptions import EmbeddingUnavailableError
from companylens.search import scoring
from companylens.search.embeddings import EmbeddingClient
from companylens.search.extractor import FilterExtractor
from companylens.search.filters import ParsedFilters
from companylens.search.models import SearchResult
from companylens.search.tiers import tier_meta
from companylens.search.vocabulary import build_default_vocabulary


def compile_pg(clause):
    """Compiles a SQLAlchemy clause for PostgreSQL without binding literals."""
    return clause.compile(dialect=postgresql.dialect())


@pytest.fixture(scope="session")
def vocabulary():
    return build_default_vocabulary()


@pytest.fixture
def extractor(vocabulary):
    return FilterExtractor(vocabulary)


@pytest.fixture
def search_settings():
    return SearchSettings(query_workers=2, cancel_poll_interval=0.01)


class FakeEmbeddingClient(EmbeddingClient):
    """Returns a constant vector and records every text it was asked to embed."""

    dimensions = 3

    def __init__(self, error: Optional[Exception] = None):
        self.error = error
        self.calls: List[str] = []

    def generate(self, text, cancel_event=None):
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return [0.1, 0.2, 0.3]


class FakeRanker:
    """
    In-memory stand-in for HybridRanker. Sub-scores come from the fixture
    rows; gate, tier and final score use the real scoring module, so the
    ordering and count rules match the SQL rendition.
    """

    def __init__(self, companies: List[Dict], block: Optional[threading.Event] = None):
        self.companies = companies
        self.block = block
        self.search_calls = []
        self.count_calls = []

    def _matches(self, company: Dict, filters: ParsedFilters) -> bool:
        for field in ("batch", "stage", "status", "is_hiring", "is_nonprofit"):
            value = getattr(filters, field)
            if value is not None and company.get(field) != value:
                return False
        if filters.tags and not set(filters.tags) & set(company.get("tags", [])):
            return False
        return True

    def _scored(self, raw_query: str, filters: ParsedFilters) -> List[SearchResult]:
        results = []
        for company in self.companies:
            if not self._matches(company, filters):
                continue
            semantic = company["semantic_score"]
            name = 1.0 if company["name"].lower() == raw_query.lower() else company.get("name_score", 0.1)
            text = company.get("text_score", 0.0)
            if not scoring.passes_inclusion_gate(semantic, name):
                continue
            tier = scoring.classify_tier(semantic, name,
                                         scoring.name_prefix_match(company["name"], raw_query))
            meta = tier_meta(tier)
            results.append(
                SearchResult(id=company["id"],
                             name=company["name"],
                             batch=company.get("batch"),
                             is_hiring=company.get("is_hiring"),
                             tags=company.get("tags", []),
                             semantic_score=semantic,
                             name_score=name,
                             text_score=text,
                             final_score=scoring.final_score(semantic, name, text, tier),
                             tier=tier,
                             tier_label=meta.label,
                             tier_order=meta.order))
        results.sort(key=lambda r: (-r.final_score, r.id))
        return results

    def search(self, cleaned_query, raw_query, filters, query_embedding, limit, offset):
        self.search_calls.append((cleaned_query, raw_query, filters, limit, offset))
        if self.block is not None:
            self.block.wait(5)
        return self._scored(raw_query, filters)[offset:offset + limit]

    def count(self, cleaned_query, raw_query, filters, query_embedding):
        self.count_calls.append((cleaned_query, raw_query, filters))
        return len(self._scored(raw_query, filters))


def make_companies(n: int = 35) -> List[Dict]:
    companies = [{
        "id": "stripe",
        "name": "Stripe",
        "batch": "Summer 2009",
        "is_hiring": True,
        "tags": ["fintech", "payments"],
        "semantic_score": 0.62,
    }]
    for i in range(n):
        companies.append({
            "id": f"co-{i:03d}",
            "name": f"Company {i}",
            "batch": "Winter 2024" if i % 2 else "Winter 2023",
            "is_hiring": i % 3 == 0,
            "tags": ["fintech"] if i % 4 == 0 else ["devtools"],
            # Repeats on purpose so ties need the id tie-break
            "semantic_score": round(0.2 + (i % 7) * 0.1, 2),
        })
    return companies


@pytest.fixture
def companies():
    return make_companies()


@pytest.fixture
def embedding_client():
    return FakeEmbeddingClient()


@pytest.fixture
def failing_embedding_client():
    return FakeEmbeddingClient(
        error=EmbeddingUnavailableError("Embedding request timed out"))
