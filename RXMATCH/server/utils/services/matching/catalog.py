from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from RXMATCH.server.utils.configurations import RetrySettings, server_settings
from RXMATCH.server.utils.logger import logger as default_logger
from RXMATCH.server.utils.services.matching.errors import (
    CatalogSearchError,
    is_recoverable_error,
)
from RXMATCH.server.utils.services.matching.models import CatalogCandidate
from RXMATCH.server.utils.types import coerce_bool

MIN_QUERY_LENGTH = 2


###############################################################################
@dataclass(frozen=True, slots=True)
class CatalogSearchResult:
    data: tuple[CatalogCandidate, ...] | None
    error: BaseException | None = None

    # -------------------------------------------------------------------------
    @classmethod
    def success(cls, candidates: Iterable[CatalogCandidate]) -> CatalogSearchResult:
        return cls(data=tuple(candidates), error=None)

    # -------------------------------------------------------------------------
    @classmethod
    def failure(cls, error: BaseException) -> CatalogSearchResult:
        return cls(data=None, error=error)

    # -------------------------------------------------------------------------
    @property
    def ok(self) -> bool:
        return self.error is None


CatalogSearch = Callable[[str], CatalogSearchResult]


# -----------------------------------------------------------------------------
def remove_duplicates(
    candidates: Iterable[CatalogCandidate],
) -> list[CatalogCandidate]:
    seen: set[str] = set()
    unique: list[CatalogCandidate] = []
    for candidate in candidates:
        if candidate.id in seen:
            continue
        seen.add(candidate.id)
        unique.append(candidate)
    return unique


###############################################################################
@dataclass(slots=True)
class RetryPolicy:
    max_attempts: int = 3
    backoff_seconds: float = 0.5
    backoff_multiplier: float = 2.0
    sleep: Callable[[float], None] = field(default=time.sleep, repr=False)

    # -------------------------------------------------------------------------
    @classmethod
    def from_settings(
        cls,
        settings: RetrySettings | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> RetryPolicy:
        resolved = settings or server_settings.retry
        return cls(
            max_attempts=resolved.max_attempts,
            backoff_seconds=resolved.backoff_seconds,
            backoff_multiplier=resolved.backoff_multiplier,
            sleep=sleep,
        )

    # -------------------------------------------------------------------------
    def delay_for(self, attempt: int) -> float:
        return self.backoff_seconds * (self.backoff_multiplier ** max(attempt - 1, 0))

    # -------------------------------------------------------------------------
    def execute(
        self,
        search: CatalogSearch,
        query: str,
        logger: logging.Logger | None = None,
    ) -> CatalogSearchResult:
        log = logger or default_logger
        attempts = max(self.max_attempts, 1)
        result = CatalogSearchResult.success(())
        for attempt in range(1, attempts + 1):
            try:
                result = search(query)
            except Exception as exc:  # adapters should not raise, but may
                log.warning("Catalog adapter raised for '%s': %s", query, exc)
                result = CatalogSearchResult.failure(
                    CatalogSearchError(
                        f"Catalog query failed: {exc.__class__.__name__}",
                        query=query,
                        retryable=is_recoverable_error(exc),
                    )
                )
            if result.ok:
                return result
            if attempt >= attempts or not is_recoverable_error(result.error):
                break
            delay = self.delay_for(attempt)
            log.warning(
                "Catalog search for '%s' failed (attempt %d/%d): %s; retrying in %.2fs",
                query,
                attempt,
                attempts,
                result.error,
                delay,
            )
            self.sleep(delay)
        return result


###############################################################################
class DataFrameCatalogSearch:
    """In-memory catalog adapter over a products DataFrame.

    Rows are matched with the same rules as the SQL adapter: active products
    only, case-insensitive substring match on the display or generic name,
    ordered by name and capped at the configured row limit.
    """

    def __init__(self, products: pd.DataFrame, row_limit: int | None = None) -> None:
        self.products = products.reset_index(drop=True)
        self.row_limit = row_limit or server_settings.matching.search_row_limit

    # -------------------------------------------------------------------------
    @classmethod
    def from_records(
        cls, records: Iterable[Mapping[str, Any]], row_limit: int | None = None
    ) -> DataFrameCatalogSearch:
        return cls(pd.DataFrame(list(records)), row_limit=row_limit)

    # -------------------------------------------------------------------------
    def lowered_column(self, column: str) -> pd.Series:
        if column not in self.products.columns:
            return pd.Series([""] * len(self.products), index=self.products.index)
        return self.products[column].fillna("").astype(str).str.lower()

    # -------------------------------------------------------------------------
    def active_mask(self) -> pd.Series:
        if "is_active" not in self.products.columns:
            return pd.Series([True] * len(self.products), index=self.products.index)
        return self.products["is_active"].map(lambda value: coerce_bool(value, True))

    # -------------------------------------------------------------------------
    def search(self, query: str) -> CatalogSearchResult:
        lowered = (query or "").strip().lower()
        if len(lowered) < MIN_QUERY_LENGTH or self.products.empty:
            return CatalogSearchResult.success(())
        names = self.lowered_column("name")
        generics = self.lowered_column("generic_name")
        matches = names.str.contains(lowered, regex=False) | generics.str.contains(
            lowered, regex=False
        )
        selected = self.products[matches & self.active_mask()]
        if selected.empty:
            return CatalogSearchResult.success(())
        selected = selected.assign(_sort_key=names[selected.index])
        selected = selected.sort_values("_sort_key", kind="stable").head(self.row_limit)
        records = selected.drop(columns=["_sort_key"]).to_dict(orient="records")
        return CatalogSearchResult.success(
            CatalogCandidate.from_record(record) for record in records
        )

    # -------------------------------------------------------------------------
    def __call__(self, query: str) -> CatalogSearchResult:
        return self.search(query)


__all__ = [
    "CatalogSearch",
    "CatalogSearchResult",
    "DataFrameCatalogSearch",
    "RetryPolicy",
    "remove_duplicates",
]
