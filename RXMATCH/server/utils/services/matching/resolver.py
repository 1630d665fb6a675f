from __future__ import annotations

import logging
import time
from typing import Any

from RXMATCH.server.utils.configurations import MatchingSettings, server_settings
from RXMATCH.server.utils.logger import logger as default_logger
from RXMATCH.server.utils.services.matching.catalog import (
    CatalogSearch,
    RetryPolicy,
    remove_duplicates,
)
from RXMATCH.server.utils.services.matching.errors import (
    CatalogSearchError,
    InvalidNameError,
    MatchingError,
    NotFoundError,
    error_for_reason,
)
from RXMATCH.server.utils.services.matching.models import (
    CatalogCandidate,
    MatchResult,
    ScoredCandidate,
    UnmatchedEntry,
)
from RXMATCH.server.utils.services.matching.scoring import (
    MatchConfidenceCalculator,
    SimilarityScorer,
    determine_match_type,
)
from RXMATCH.server.utils.services.text.normalization import (
    is_valid_medicine_name,
    normalize,
)
from RXMATCH.server.utils.services.text.variations import generate_variations

ALTERNATIVE_PREFIX_LENGTH = 4


# -----------------------------------------------------------------------------
def describe_search_error(error: BaseException) -> str:
    # only MatchingError messages are safe to show to users
    if isinstance(error, MatchingError):
        return str(error)
    return f"Catalog query failed: {error.__class__.__name__}"


###############################################################################
class MatchResolver:
    """Resolve a single OCR mention against the product catalog.

    Every variation of the mention is searched through the retry policy, the
    merged candidates are deduplicated by identifier and then scored against
    the normalized mention, so the variation that surfaced a product never
    affects its rank. The resolver never raises for per-name failures; it
    returns an `UnmatchedEntry` tagged with the reason instead.
    """

    def __init__(
        self,
        search: CatalogSearch,
        scorer: SimilarityScorer | None = None,
        *,
        retry_policy: RetryPolicy | None = None,
        settings: MatchingSettings | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self.search = search
        self.scorer = scorer or SimilarityScorer()
        self.retry_policy = retry_policy or RetryPolicy.from_settings()
        self.settings = settings or server_settings.matching
        self.confidence = MatchConfidenceCalculator(self.settings)
        self.logger = logger or default_logger

    # -------------------------------------------------------------------------
    def collect_candidates(
        self, variations: list[str]
    ) -> tuple[list[tuple[CatalogCandidate, str]], list[BaseException]]:
        found: list[tuple[CatalogCandidate, str]] = []
        errors: list[BaseException] = []
        for variation in variations:
            started = time.perf_counter()
            result = self.retry_policy.execute(self.search, variation, self.logger)
            elapsed = time.perf_counter() - started
            if elapsed > self.settings.slow_search_seconds:
                self.logger.warning(
                    "Slow catalog search for '%s' took %.2f seconds", variation, elapsed
                )
            if not result.ok:
                self.logger.warning(
                    "Catalog search failed for variation '%s': %s", variation, result.error
                )
                errors.append(result.error)
                continue
            found.extend((candidate, variation) for candidate in result.data or ())
        return found, errors

    # -------------------------------------------------------------------------
    def rank_candidates(
        self, query: str, found: list[tuple[CatalogCandidate, str]]
    ) -> list[ScoredCandidate]:
        origin = {}
        for candidate, variation in found:
            origin.setdefault(candidate.id, variation)
        unique = remove_duplicates(candidate for candidate, _ in found)
        scored = [
            ScoredCandidate(
                candidate=candidate,
                score=self.scorer.score(query, candidate),
                variation=origin[candidate.id],
            )
            for candidate in unique
        ]
        # sorted() is stable, ties keep catalog order
        return sorted(scored, key=lambda entry: entry.score, reverse=True)

    # -------------------------------------------------------------------------
    def calculate_match_confidence(
        self, query: str, best: ScoredCandidate | None
    ) -> int:
        if best is None:
            return 0
        return self.confidence.calculate(query, best.candidate, best.score)

    # -------------------------------------------------------------------------
    def resolve(self, mention: Any) -> MatchResult | UnmatchedEntry:
        original = mention.strip() if isinstance(mention, str) else ""
        normalized = normalize(original)
        if not is_valid_medicine_name(original) or normalized.is_empty:
            self.logger.debug("Skipping invalid medicine name: '%s'", original)
            return UnmatchedEntry(
                original_name=original,
                normalized_name=normalized.text,
                reason=InvalidNameError.reason,
                error="Invalid medicine name format",
            )

        started = time.perf_counter()
        variations = generate_variations(original)
        found, errors = self.collect_candidates(variations)
        ranked = self.rank_candidates(normalized.text, found)
        elapsed = time.perf_counter() - started
        self.logger.info(
            "Resolved '%s' with %d variations and %d candidates in %.3f seconds",
            original,
            len(variations),
            len(ranked),
            elapsed,
        )

        if not ranked:
            if errors:
                return UnmatchedEntry(
                    original_name=original,
                    normalized_name=normalized.text,
                    reason=CatalogSearchError.reason,
                    error=describe_search_error(errors[-1]),
                )
            return UnmatchedEntry(
                original_name=original,
                normalized_name=normalized.text,
                reason=NotFoundError.reason,
                error="No matching products found",
            )

        best = ranked[0]
        alternatives = tuple(ranked[1 : 1 + self.settings.max_alternatives])
        return MatchResult(
            original_name=original,
            normalized_name=normalized.text,
            cleaned_name=normalized.name,
            dosage=normalized.dosage,
            best_match=best,
            alternatives=alternatives,
            confidence=self.calculate_match_confidence(normalized.text, best),
            match_type=determine_match_type(normalized.text, best.candidate),
        )

    # -------------------------------------------------------------------------
    def resolve_strict(self, mention: Any) -> MatchResult:
        outcome = self.resolve(mention)
        if isinstance(outcome, UnmatchedEntry):
            message = outcome.error or f"Could not match '{outcome.original_name}'"
            raise error_for_reason(outcome.reason, message)
        return outcome

    # -------------------------------------------------------------------------
    def search_once(self, query: str) -> list[CatalogCandidate]:
        result = self.retry_policy.execute(self.search, query, self.logger)
        if not result.ok:
            self.logger.warning(
                "Alternative search failed for '%s': %s", query, result.error
            )
            return []
        return remove_duplicates(result.data or ())

    # -------------------------------------------------------------------------
    def score_all(
        self, query: str, candidates: list[CatalogCandidate], variation: str
    ) -> list[ScoredCandidate]:
        scored = [
            ScoredCandidate(
                candidate=candidate,
                score=self.scorer.score(query, candidate),
                variation=variation,
            )
            for candidate in candidates
        ]
        scored.sort(key=lambda entry: entry.score, reverse=True)
        return scored[: self.settings.max_alternatives]

    # -------------------------------------------------------------------------
    def find_alternatives(self, medicine_name: Any) -> list[ScoredCandidate]:
        """Suggest substitute products for a mention.

        A matched mention yields other products sharing the generic name of
        its best match. An unmatched mention falls back to a prefix search on
        its cleaned name, which recovers most single-letter OCR misspellings.
        """
        outcome = self.resolve(medicine_name)
        if isinstance(outcome, MatchResult):
            primary = outcome.best_match.candidate
            generic = primary.generic_name
            if not generic:
                return []
            lowered_generic = generic.lower()
            siblings = [
                candidate
                for candidate in self.search_once(generic)
                if candidate.id != primary.id
                and (candidate.generic_name or "").lower() == lowered_generic
            ]
            return self.score_all(generic, siblings, generic)

        if outcome.reason == InvalidNameError.reason:
            return []
        cleaned = normalize(outcome.original_name).name
        prefix = cleaned[:ALTERNATIVE_PREFIX_LENGTH]
        if len(prefix) < ALTERNATIVE_PREFIX_LENGTH:
            return []
        candidates = self.search_once(prefix)
        return self.score_all(outcome.normalized_name, candidates, prefix)


__all__ = ["MatchResolver"]
