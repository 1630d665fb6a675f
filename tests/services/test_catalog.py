from __future__ import annotations

import pandas as pd
import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from RXMATCH.server.database.database import CatalogRepository
from RXMATCH.server.database.schema import Base
from RXMATCH.server.utils.configurations import server_settings
from RXMATCH.server.utils.services.matching.catalog import (
    CatalogSearchResult,
    DataFrameCatalogSearch,
    RetryPolicy,
    remove_duplicates,
)
from RXMATCH.server.utils.services.matching.errors import CatalogSearchError
from RXMATCH.server.utils.services.matching.models import CatalogCandidate


###############################################################################
class FlakySearch:
    def __init__(self, failures: int, error: BaseException) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    def __call__(self, query: str) -> CatalogSearchResult:
        self.calls += 1
        if self.calls <= self.failures:
            return CatalogSearchResult.failure(self.error)
        return CatalogSearchResult.success([CatalogCandidate(id="x1", name=query)])


# -----------------------------------------------------------------------------
@pytest.fixture
def repository(product_records) -> CatalogRepository:
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    repo = CatalogRepository(server_settings.database, engine=engine, row_limit=15)
    repo.load_products(pd.DataFrame(product_records))
    return repo


# -----------------------------------------------------------------------------
def test_search_result_flags_errors():
    assert CatalogSearchResult.success([]).ok
    failed = CatalogSearchResult.failure(ConnectionError("offline"))
    assert not failed.ok
    assert failed.data is None


# -----------------------------------------------------------------------------
def test_remove_duplicates_keeps_first_occurrence():
    first = CatalogCandidate(id="1", name="Crocin")
    duplicate = CatalogCandidate(id="1", name="Crocin Duplicate")
    other = CatalogCandidate(id="2", name="Dolo")
    assert remove_duplicates([first, duplicate, other]) == [first, other]


# -----------------------------------------------------------------------------
def test_retry_policy_backs_off_on_recoverable_errors():
    delays: list[float] = []
    policy = RetryPolicy(max_attempts=3, backoff_seconds=0.5, backoff_multiplier=2.0, sleep=delays.append)
    search = FlakySearch(failures=2, error=ConnectionError("connection reset"))
    result = policy.execute(search, "crocin")
    assert result.ok
    assert search.calls == 3
    assert delays == [0.5, 1.0]


# -----------------------------------------------------------------------------
def test_retry_policy_stops_on_non_recoverable_errors():
    delays: list[float] = []
    policy = RetryPolicy(max_attempts=3, sleep=delays.append)
    search = FlakySearch(failures=5, error=ValueError("malformed filter"))
    result = policy.execute(search, "crocin")
    assert not result.ok
    assert search.calls == 1
    assert delays == []


# -----------------------------------------------------------------------------
def test_retry_policy_converts_raised_exceptions():
    delays: list[float] = []
    policy = RetryPolicy(max_attempts=2, backoff_seconds=0.1, sleep=delays.append)

    def broken(query: str) -> CatalogSearchResult:
        raise RuntimeError("connection reset by peer at 10.0.0.5")

    result = policy.execute(broken, "crocin")
    assert isinstance(result.error, CatalogSearchError)
    assert result.error.query == "crocin"
    assert result.error.retryable
    assert str(result.error) == "Catalog query failed: RuntimeError"
    assert delays == [0.1]


# -----------------------------------------------------------------------------
def test_retry_policy_does_not_retry_raised_non_recoverable_errors():
    delays: list[float] = []
    policy = RetryPolicy(max_attempts=3, sleep=delays.append)
    calls: list[str] = []

    def broken(query: str) -> CatalogSearchResult:
        calls.append(query)
        raise ValueError("malformed filter")

    result = policy.execute(broken, "crocin")
    assert not result.ok
    assert not result.error.retryable
    assert calls == ["crocin"]
    assert delays == []


# -----------------------------------------------------------------------------
def test_dataframe_search_filters_active_products(catalog):
    result = catalog.search("paracetamol")
    assert result.ok
    assert [candidate.id for candidate in result.data] == ["p2", "p1"]


# -----------------------------------------------------------------------------
def test_dataframe_search_is_case_insensitive_and_bounded(product_records):
    limited = DataFrameCatalogSearch.from_records(product_records, row_limit=1)
    result = limited("PARA")
    assert [candidate.name for candidate in result.data] == ["Crocin Advance"]
    assert limited("p").data == ()


# -----------------------------------------------------------------------------
def test_dataframe_search_on_empty_catalog():
    result = DataFrameCatalogSearch(pd.DataFrame())("crocin")
    assert result.ok
    assert result.data == ()


# -----------------------------------------------------------------------------
def test_repository_loads_and_counts_products(repository, product_records):
    assert repository.count_rows() == len(product_records)
    stored = repository.load_from_database()
    assert set(stored["id"]) == {record["id"] for record in product_records}


# -----------------------------------------------------------------------------
def test_repository_search_matches_name_or_generic(repository):
    result = repository.search_products("paracetamol")
    assert result.ok
    assert [candidate.id for candidate in result.data] == ["p2", "p1"]
    best = result.data[1]
    assert best.has_images
    assert best.mrp == 30.0
    assert repository("acetylsalicylic").data[0].id == "a1"


# -----------------------------------------------------------------------------
def test_repository_search_escapes_wildcards(repository):
    assert repository.search_products("50%").data == ()
    assert repository.search_products("x").data == ()


# -----------------------------------------------------------------------------
def test_repository_reports_database_errors(repository):
    Base.metadata.drop_all(repository.engine)
    result = repository.search_products("paracetamol")
    assert not result.ok
    assert isinstance(result.error, CatalogSearchError)
    assert result.error.retryable
