from __future__ import annotations

import logging
import secrets
import string
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any

from RXMATCH.server.utils.configurations import (
    BatchSettings,
    MatchingSettings,
    server_settings,
)
from RXMATCH.server.utils.logger import logger as default_logger
from RXMATCH.server.utils.services.matching.errors import (
    CatalogSearchError,
    EmptyInputError,
    NoValidNamesError,
    SystemicCatalogError,
    describe_reason,
)
from RXMATCH.server.utils.services.matching.models import (
    AvailabilitySummary,
    CostEstimate,
    MatchResult,
    MatchStatistics,
    PrescriptionMatchSummary,
    UnmatchedEntry,
    ValidationReport,
)
from RXMATCH.server.utils.services.matching.resolver import MatchResolver
from RXMATCH.server.utils.services.matching.scoring import clamp_score
from RXMATCH.server.utils.services.text.normalization import (
    is_valid_medicine_name,
    normalize,
)

BASE36_ALPHABET = string.digits + string.ascii_lowercase
PRESCRIPTION_ID_SUFFIX_LENGTH = 5


# -----------------------------------------------------------------------------
def to_base36(value: int) -> str:
    if value <= 0:
        return "0"
    digits: list[str] = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


# -----------------------------------------------------------------------------
def generate_prescription_id() -> str:
    timestamp = to_base36(int(time.time() * 1000))
    suffix = "".join(
        secrets.choice(BASE36_ALPHABET) for _ in range(PRESCRIPTION_ID_SUFFIX_LENGTH)
    )
    return f"rx_{timestamp}_{suffix}"


# -----------------------------------------------------------------------------
def percentage(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return clamp_score(part / total * 100)


###############################################################################
class PrescriptionMatcher:
    """Match every medicine mention of a prescription against the catalog.

    Mentions are resolved one at a time, in input order, with a short pause
    between catalog round trips. Per-name failures end up in the unmatched
    list; only batch-level conditions (empty input, nothing valid to search,
    catalog outage) are raised.
    """

    def __init__(
        self,
        resolver: MatchResolver,
        *,
        settings: BatchSettings | None = None,
        matching_settings: MatchingSettings | None = None,
        delay: float | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self.resolver = resolver
        self.settings = settings or server_settings.batch
        self.matching_settings = matching_settings or server_settings.matching
        self.delay = self.settings.inter_request_delay if delay is None else delay
        self.sleep = sleep
        self.logger = logger or default_logger

    # -------------------------------------------------------------------------
    def filter_mentions(
        self, mentions: Iterable[Any]
    ) -> tuple[list[str], list[str]]:
        valid: list[str] = []
        rejected: list[str] = []
        for mention in mentions:
            text = mention.strip() if isinstance(mention, str) else ""
            if is_valid_medicine_name(text) and not normalize(text).is_empty:
                valid.append(text)
            else:
                rejected.append(text if text else str(mention))
        return valid, rejected

    # -------------------------------------------------------------------------
    def resolve_isolated(self, mention: str) -> MatchResult | UnmatchedEntry:
        try:
            return self.resolver.resolve(mention)
        except Exception as exc:
            self.logger.exception("Unexpected failure while matching '%s'", mention)
            return UnmatchedEntry(
                original_name=mention,
                normalized_name=normalize(mention).text,
                reason=CatalogSearchError.reason,
                error=f"Matching failed: {exc.__class__.__name__}",
            )

    # -------------------------------------------------------------------------
    def resolve_all(
        self, mentions: Sequence[str]
    ) -> tuple[list[MatchResult], list[UnmatchedEntry]]:
        matched: list[MatchResult] = []
        unmatched: list[UnmatchedEntry] = []
        for index, mention in enumerate(mentions):
            if index and self.delay > 0:
                self.sleep(self.delay)
            outcome = self.resolve_isolated(mention)
            if isinstance(outcome, MatchResult):
                matched.append(outcome)
            else:
                unmatched.append(outcome)
        return matched, unmatched

    # -------------------------------------------------------------------------
    def process_prescription(
        self,
        mentions: Sequence[Any] | None,
        ocr_confidence: float | None = None,
        *,
        raw_text: str | None = None,
        patient_info: Mapping[str, Any] | None = None,
    ) -> PrescriptionMatchSummary:
        if not mentions:
            raise EmptyInputError("No medicine names found in OCR data")

        started = time.perf_counter()
        valid, rejected = self.filter_mentions(mentions)
        if not valid:
            raise NoValidNamesError(
                "No valid medicine names could be extracted from the prescription",
                errors=tuple(rejected),
            )
        if rejected:
            self.logger.info("Discarded %d invalid medicine mentions", len(rejected))

        matched, unmatched = self.resolve_all(valid)
        if not matched and all(
            entry.reason == CatalogSearchError.reason for entry in unmatched
        ):
            errors = tuple(entry.error or "" for entry in unmatched)
            self.logger.error(
                "Catalog search failed for all %d medicine names", len(unmatched)
            )
            raise SystemicCatalogError(
                "Product catalog is unavailable", errors=errors
            )

        statistics = self.calculate_summary(matched, unmatched)
        ocr_value = (
            self.settings.default_ocr_confidence
            if ocr_confidence is None
            else float(ocr_confidence)
        )
        elapsed = time.perf_counter() - started
        self.logger.info(
            "Matched %d/%d medicines (%d%%) in %.3f seconds",
            statistics.matched_count,
            statistics.total_medicines,
            statistics.match_rate,
            elapsed,
        )
        return PrescriptionMatchSummary(
            prescription_id=generate_prescription_id(),
            timestamp=datetime.now(timezone.utc).isoformat(),
            matched_medicines=tuple(matched),
            unmatched_medicines=tuple(unmatched),
            summary=statistics,
            confidence=self.calculate_overall_confidence(
                ocr_value, len(matched) / statistics.total_medicines * 100, matched
            ),
            ocr_confidence=ocr_value,
            rejected_mentions=tuple(rejected),
            raw_text=raw_text,
            patient_info=MappingProxyType(dict(patient_info or {})),
            processing_time=round(elapsed * 1000, 2),
        )

    # -------------------------------------------------------------------------
    def process_ocr_results(
        self, payload: Mapping[str, Any] | None
    ) -> PrescriptionMatchSummary:
        data = payload or {}
        names = data.get("medicine_names")
        if names is None:
            names = data.get("medicineNames")
        patient_info = data.get("patient_info") or data.get("patientInfo")
        return self.process_prescription(
            names,
            data.get("confidence"),
            raw_text=data.get("raw_text") or data.get("rawText"),
            patient_info=patient_info if isinstance(patient_info, Mapping) else None,
        )

    # -------------------------------------------------------------------------
    def calculate_summary(
        self, matched: Sequence[MatchResult], unmatched: Sequence[UnmatchedEntry]
    ) -> MatchStatistics:
        total = len(matched) + len(unmatched)
        in_stock = [entry for entry in matched if entry.best_match.candidate.in_stock]
        total_cost = sum(entry.best_match.candidate.price for entry in in_stock)
        savings = 0.0
        for entry in in_stock:
            candidate = entry.best_match.candidate
            if candidate.mrp is not None and candidate.mrp > candidate.price:
                savings += candidate.mrp - candidate.price
        average_confidence = (
            clamp_score(sum(entry.confidence for entry in matched) / len(matched))
            if matched
            else 0
        )
        return MatchStatistics(
            total_medicines=total,
            matched_count=len(matched),
            unmatched_count=len(unmatched),
            match_rate=percentage(len(matched), total),
            availability=AvailabilitySummary(
                in_stock=len(in_stock),
                out_of_stock=len(matched) - len(in_stock),
                availability_rate=percentage(len(in_stock), len(matched)),
            ),
            estimated_cost=CostEstimate(
                total=round(total_cost, 2),
                currency=self.settings.currency,
                potential_savings=round(savings, 2),
            ),
            average_confidence=average_confidence,
        )

    # -------------------------------------------------------------------------
    def calculate_overall_confidence(
        self,
        ocr_confidence: float,
        match_rate: float,
        matched: Sequence[MatchResult],
    ) -> int:
        match_quality = (
            sum(entry.confidence for entry in matched) / len(matched) if matched else 0.0
        )
        blended = (
            ocr_confidence * self.settings.ocr_weight
            + match_rate * self.settings.match_rate_weight
            + match_quality * self.settings.match_quality_weight
        )
        return clamp_score(blended)

    # -------------------------------------------------------------------------
    def validate_results(self, summary: PrescriptionMatchSummary) -> ValidationReport:
        issues: list[str] = []
        warnings: list[str] = []
        matched = summary.matched_medicines
        unmatched = summary.unmatched_medicines

        threshold = self.matching_settings.low_confidence_threshold
        low_confidence = [entry for entry in matched if entry.confidence < threshold]
        if low_confidence:
            warnings.append(
                f"{len(low_confidence)} medicines have low confidence matches"
            )

        total = len(matched) + len(unmatched)
        unmatched_rate = len(unmatched) / total * 100 if total else 0.0
        if unmatched_rate > self.settings.unmatched_issue_rate:
            issues.append(
                f"More than {self.settings.unmatched_issue_rate:g}% of medicines could not be matched"
            )
        elif unmatched_rate > self.settings.unmatched_warning_rate:
            warnings.append(
                f"More than {self.settings.unmatched_warning_rate:g}% of medicines could not be matched"
            )

        prescription_required = [
            entry for entry in matched if entry.best_match.candidate.requires_prescription
        ]
        if prescription_required:
            warnings.append(
                f"{len(prescription_required)} medicines require prescription verification"
            )

        suggestions: list[str] = []
        for reason in dict.fromkeys(entry.reason for entry in unmatched):
            for suggestion in describe_reason(reason).suggestions:
                if suggestion not in suggestions:
                    suggestions.append(suggestion)

        return ValidationReport(
            is_valid=not issues,
            issues=tuple(issues),
            warnings=tuple(warnings),
            requires_review=bool(issues or warnings),
            suggestions=tuple(suggestions),
        )

    # -------------------------------------------------------------------------
    def find_alternatives_for_unmatched(
        self, entries: Iterable[UnmatchedEntry]
    ) -> list[UnmatchedEntry]:
        updated: list[UnmatchedEntry] = []
        for entry in entries:
            try:
                alternatives = tuple(self.resolver.find_alternatives(entry.original_name))
            except Exception:
                self.logger.warning(
                    "Failed to find alternatives for '%s'", entry.original_name, exc_info=True
                )
                alternatives = ()
            updated.append(
                UnmatchedEntry(
                    original_name=entry.original_name,
                    normalized_name=entry.normalized_name,
                    reason=entry.reason,
                    error=entry.error,
                    suggested_alternatives=alternatives,
                    alternatives_found=bool(alternatives),
                )
            )
        return updated


__all__ = [
    "PrescriptionMatcher",
    "generate_prescription_id",
    "to_base36",
]
