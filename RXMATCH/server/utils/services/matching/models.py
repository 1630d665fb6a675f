from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from RXMATCH.server.utils.services.text.normalization import coerce_text
from RXMATCH.server.utils.types import coerce_bool, coerce_float, coerce_int


# -----------------------------------------------------------------------------
def parse_image_urls(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return ()
        if stripped.startswith("["):
            try:
                parsed = json.loads(stripped)
            except ValueError:
                parsed = None
            if isinstance(parsed, list):
                return parse_image_urls(parsed)
        # Postgres text[] literal, e.g. {a.png,b.png}
        if stripped.startswith("{") and stripped.endswith("}"):
            stripped = stripped[1:-1]
        return tuple(
            segment.strip().strip('"')
            for segment in stripped.split(",")
            if segment.strip().strip('"')
        )
    if isinstance(value, (list, tuple, set)):
        urls: list[str] = []
        for entry in value:
            text = coerce_text(entry)
            if text:
                urls.append(text)
        return tuple(urls)
    text = coerce_text(value)
    return (text,) if text else ()


###############################################################################
@dataclass(frozen=True, slots=True)
class CatalogCandidate:
    id: str
    name: str
    generic_name: str | None = None
    manufacturer: str | None = None
    price: float = 0.0
    mrp: float | None = None
    in_stock: bool = False
    stock_quantity: int = 0
    requires_prescription: bool = False
    image_urls: tuple[str, ...] = ()
    description: str | None = None
    strength: str | None = None
    dosage_form: str | None = None
    pack_size: str | None = None

    # -------------------------------------------------------------------------
    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> CatalogCandidate:
        images = record.get("image_urls")
        if images is None:
            images = record.get("image_url")
        mrp_value = coerce_text(record.get("mrp"))
        return cls(
            id=coerce_text(record.get("id")) or "",
            name=coerce_text(record.get("name")) or "",
            generic_name=coerce_text(record.get("generic_name")),
            manufacturer=coerce_text(record.get("manufacturer")),
            price=coerce_float(record.get("price"), 0.0, minimum=0.0),
            mrp=coerce_float(mrp_value, 0.0) if mrp_value is not None else None,
            in_stock=coerce_bool(record.get("in_stock"), False),
            stock_quantity=coerce_int(record.get("stock_quantity"), 0, minimum=0),
            requires_prescription=coerce_bool(record.get("requires_prescription"), False),
            image_urls=parse_image_urls(images),
            description=coerce_text(record.get("description")),
            strength=coerce_text(record.get("strength")),
            dosage_form=coerce_text(record.get("dosage_form")),
            pack_size=coerce_text(record.get("pack_size")),
        )

    # -------------------------------------------------------------------------
    @property
    def has_images(self) -> bool:
        return bool(self.image_urls)

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "generic_name": self.generic_name,
            "manufacturer": self.manufacturer,
            "price": self.price,
            "mrp": self.mrp,
            "in_stock": self.in_stock,
            "stock_quantity": self.stock_quantity,
            "requires_prescription": self.requires_prescription,
            "image_urls": list(self.image_urls),
            "strength": self.strength,
            "dosage_form": self.dosage_form,
            "pack_size": self.pack_size,
        }


###############################################################################
@dataclass(frozen=True, slots=True)
class ScoredCandidate:
    candidate: CatalogCandidate
    score: int
    variation: str

    # -------------------------------------------------------------------------
    @property
    def id(self) -> str:
        return self.candidate.id

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        payload = self.candidate.to_dict()
        payload["relevance_score"] = self.score
        payload["variation"] = self.variation
        return payload


###############################################################################
@dataclass(frozen=True, slots=True)
class MatchResult:
    original_name: str
    normalized_name: str
    cleaned_name: str
    dosage: str | None
    best_match: ScoredCandidate
    alternatives: tuple[ScoredCandidate, ...]
    confidence: int
    match_type: str

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "original_name": self.original_name,
            "normalized_name": self.normalized_name,
            "cleaned_name": self.cleaned_name,
            "dosage": self.dosage,
            "best_match": self.best_match.to_dict(),
            "alternatives": [entry.to_dict() for entry in self.alternatives],
            "confidence": self.confidence,
            "match_type": self.match_type,
        }


###############################################################################
@dataclass(frozen=True, slots=True)
class UnmatchedEntry:
    original_name: str
    normalized_name: str
    reason: str
    error: str | None = None
    suggested_alternatives: tuple[ScoredCandidate, ...] = ()
    alternatives_found: bool = False

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "original_name": self.original_name,
            "normalized_name": self.normalized_name,
            "reason": self.reason,
            "error": self.error,
            "suggested_alternatives": [
                entry.to_dict() for entry in self.suggested_alternatives
            ],
            "alternatives_found": self.alternatives_found,
        }


###############################################################################
@dataclass(frozen=True, slots=True)
class AvailabilitySummary:
    in_stock: int
    out_of_stock: int
    availability_rate: int


###############################################################################
@dataclass(frozen=True, slots=True)
class CostEstimate:
    total: float
    currency: str
    potential_savings: float


###############################################################################
@dataclass(frozen=True, slots=True)
class MatchStatistics:
    total_medicines: int
    matched_count: int
    unmatched_count: int
    match_rate: int
    availability: AvailabilitySummary
    estimated_cost: CostEstimate
    average_confidence: int

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "total_medicines": self.total_medicines,
            "matched_count": self.matched_count,
            "unmatched_count": self.unmatched_count,
            "match_rate": self.match_rate,
            "availability": {
                "in_stock": self.availability.in_stock,
                "out_of_stock": self.availability.out_of_stock,
                "availability_rate": self.availability.availability_rate,
            },
            "estimated_cost": {
                "total": self.estimated_cost.total,
                "currency": self.estimated_cost.currency,
                "potential_savings": self.estimated_cost.potential_savings,
            },
            "average_confidence": self.average_confidence,
        }


###############################################################################
@dataclass(frozen=True, slots=True)
class PrescriptionMatchSummary:
    prescription_id: str
    timestamp: str
    matched_medicines: tuple[MatchResult, ...]
    unmatched_medicines: tuple[UnmatchedEntry, ...]
    summary: MatchStatistics
    confidence: int
    ocr_confidence: float
    rejected_mentions: tuple[str, ...] = ()
    raw_text: str | None = None
    patient_info: Mapping[str, Any] = field(
        default_factory=lambda: MappingProxyType({})
    )
    processing_time: float = 0.0

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "prescription_id": self.prescription_id,
            "timestamp": self.timestamp,
            "matched_medicines": [entry.to_dict() for entry in self.matched_medicines],
            "unmatched_medicines": [
                entry.to_dict() for entry in self.unmatched_medicines
            ],
            "rejected_mentions": list(self.rejected_mentions),
            "summary": self.summary.to_dict(),
            "confidence": self.confidence,
            "ocr_confidence": self.ocr_confidence,
            "raw_text": self.raw_text,
            "patient_info": dict(self.patient_info),
            "processing_time": self.processing_time,
        }


###############################################################################
@dataclass(frozen=True, slots=True)
class ValidationReport:
    is_valid: bool
    issues: tuple[str, ...]
    warnings: tuple[str, ...]
    requires_review: bool
    suggestions: tuple[str, ...] = ()

    # -------------------------------------------------------------------------
    def to_dict(self) -> dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "issues": list(self.issues),
            "warnings": list(self.warnings),
            "requires_review": self.requires_review,
            "suggestions": list(self.suggestions),
        }


__all__ = [
    "AvailabilitySummary",
    "CatalogCandidate",
    "CostEstimate",
    "MatchResult",
    "MatchStatistics",
    "PrescriptionMatchSummary",
    "ScoredCandidate",
    "UnmatchedEntry",
    "ValidationReport",
    "parse_image_urls",
]
