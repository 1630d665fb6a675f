from __future__ import annotations

import math

from RXMATCH.server.utils.configurations import (
    MatchingSettings,
    ScoringSettings,
    server_settings,
)
from RXMATCH.server.utils.services.matching.models import CatalogCandidate
from RXMATCH.server.utils.services.text.normalization import calculate_similarity

MIN_SCORE = 0
MAX_SCORE = 100


# -----------------------------------------------------------------------------
def clamp_score(value: float) -> int:
    # half-up, so 12.5 becomes 13
    return int(math.floor(min(max(value, MIN_SCORE), MAX_SCORE) + 0.5))


# -----------------------------------------------------------------------------
def candidate_fields(candidate: CatalogCandidate) -> tuple[str, str]:
    name = (candidate.name or "").lower().strip()
    generic = (candidate.generic_name or "").lower().strip()
    return name, generic


# -----------------------------------------------------------------------------
def text_tier(query: str, candidate: CatalogCandidate) -> str | None:
    """Return the strongest textual relation between query and candidate.

    Both the display name and the generic name are checked, in the order
    exact, prefix, partial; None means no field contains the query.
    """
    lowered = (query or "").lower().strip()
    if not lowered:
        return None
    fields = [value for value in candidate_fields(candidate) if value]
    if any(value == lowered for value in fields):
        return "exact"
    if any(value.startswith(lowered) for value in fields):
        return "prefix"
    if any(lowered in value for value in fields):
        return "partial"
    return None


# -----------------------------------------------------------------------------
def determine_match_type(query: str, candidate: CatalogCandidate | None) -> str:
    if candidate is None:
        return "none"
    tier = text_tier(query, candidate)
    if tier is not None:
        return tier
    name, generic = candidate_fields(candidate)
    if generic and generic != name:
        return "generic"
    return "fuzzy"


###############################################################################
class SimilarityScorer:
    def __init__(self, settings: ScoringSettings | None = None) -> None:
        self.settings = settings or server_settings.scoring
        self.tier_scores = {
            "exact": self.settings.exact_score,
            "prefix": self.settings.prefix_score,
            "partial": self.settings.contains_score,
        }

    # -------------------------------------------------------------------------
    def word_credit(self, query: str, candidate: CatalogCandidate) -> float:
        query_tokens = query.lower().split()
        if not query_tokens:
            return 0.0
        name, generic = candidate_fields(candidate)
        field_tokens = set(name.split()) | set(generic.split())
        earned = 0.0
        for token in query_tokens:
            if len(token) < self.settings.min_token_length:
                continue
            if token in field_tokens:
                earned += 1.0
            elif token in name or token in generic:
                earned += self.settings.partial_token_credit
        ceiling = self.settings.word_credit_ceiling
        return min((earned / len(query_tokens)) * ceiling, ceiling)

    # -------------------------------------------------------------------------
    def base_score(self, query: str, candidate: CatalogCandidate) -> float:
        tier = text_tier(query, candidate)
        if tier is not None:
            return self.tier_scores[tier]
        return self.word_credit(query, candidate)

    # -------------------------------------------------------------------------
    def boosts(self, candidate: CatalogCandidate) -> float:
        boost = 0.0
        if candidate.in_stock:
            boost += self.settings.in_stock_boost
        if candidate.has_images:
            boost += self.settings.image_boost
        return boost

    # -------------------------------------------------------------------------
    def score(self, query: str, candidate: CatalogCandidate) -> int:
        if not query or not query.strip():
            return MIN_SCORE
        ranked = self.base_score(query, candidate) + self.boosts(candidate)
        # edit distance only acts as a floor for near-miss spellings
        floor = calculate_similarity(query, candidate.name) * self.settings.edit_distance_weight
        return clamp_score(max(ranked, floor))


###############################################################################
class MatchConfidenceCalculator:
    def __init__(self, settings: MatchingSettings | None = None) -> None:
        self.settings = settings or server_settings.matching

    # -------------------------------------------------------------------------
    def calculate(self, query: str, candidate: CatalogCandidate | None, score: float) -> int:
        if candidate is None:
            return MIN_SCORE
        confidence = float(score)
        lowered_query = (query or "").lower().strip()
        lowered_name = (candidate.name or "").lower().strip()
        if lowered_query and lowered_name == lowered_query:
            confidence = max(confidence, self.settings.exact_confidence_floor)
        elif lowered_query and lowered_query in lowered_name:
            confidence = max(confidence, self.settings.prefix_confidence_floor)

        if len((query or "").strip()) < self.settings.short_query_length:
            confidence *= self.settings.short_query_penalty

        if candidate.name:
            confidence += self.settings.complete_record_boost

        return clamp_score(confidence)


__all__ = [
    "MatchConfidenceCalculator",
    "SimilarityScorer",
    "clamp_score",
    "determine_match_type",
    "text_tier",
]
