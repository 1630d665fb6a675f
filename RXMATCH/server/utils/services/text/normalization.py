from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

import pandas as pd
from rapidfuzz.distance import Levenshtein

from RXMATCH.server.utils.constants import (
    ABBREVIATIONS,
    DOSAGE_PATTERNS,
    NON_MEDICINE_WORDS,
    OCR_DATE_RE,
    OCR_DIMENSION_RE,
    OCR_DISALLOWED_CHARS_RE,
    OCR_PAGE_REFERENCE_RE,
)

ABBREVIATION_RE = re.compile(
    r"\b("
    + "|".join(
        re.escape(key) for key in sorted(ABBREVIATIONS, key=len, reverse=True)
    )
    + r")\b",
    re.IGNORECASE,
)
NUMERIC_ONLY_RE = re.compile(r"\d+")
ALPHA_RE = re.compile(r"[A-Za-z]")
SHORT_TOKEN_LENGTH = 3
MIN_NAME_LENGTH = 3


###############################################################################
@dataclass(frozen=True, slots=True)
class DosageInfo:
    name: str
    dosage: str
    unit: str = ""


###############################################################################
@dataclass(frozen=True, slots=True)
class NormalizedName:
    """Canonical form of one OCR mention.

    `text` keeps the dosage when the mention carried one; `name` is the same
    text with the dosage substring removed.
    """

    text: str
    name: str
    dosage: str | None = None
    unit: str | None = None

    # -------------------------------------------------------------------------
    @property
    def is_empty(self) -> bool:
        return not self.text


# -----------------------------------------------------------------------------
def coerce_text(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text or None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    text = str(value).strip()
    return text or None


# -----------------------------------------------------------------------------
def normalize_whitespace(value: str) -> str:
    if not value:
        return ""
    return re.sub(r"\s+", " ", value).strip()


# -----------------------------------------------------------------------------
def clean_ocr_artifacts(text: str) -> str:
    if not text:
        return ""
    cleaned = OCR_PAGE_REFERENCE_RE.sub(" ", text)
    cleaned = OCR_DATE_RE.sub(" ", cleaned)
    cleaned = OCR_DISALLOWED_CHARS_RE.sub(" ", cleaned)
    cleaned = OCR_DIMENSION_RE.sub(" ", cleaned)
    return normalize_whitespace(cleaned)


# -----------------------------------------------------------------------------
def expand_abbreviations(text: str) -> str:
    if not text:
        return ""

    def replace(match: re.Match[str]) -> str:
        token = match.group(0)
        # short all-caps tokens are unit symbols or acronyms
        if len(token) <= SHORT_TOKEN_LENGTH and token.isupper():
            return token
        return ABBREVIATIONS[token.lower()]

    return ABBREVIATION_RE.sub(replace, text)


# -----------------------------------------------------------------------------
def title_case_token(token: str) -> str:
    if len(token) <= SHORT_TOKEN_LENGTH and token.isupper():
        return token
    return token[:1].upper() + token[1:].lower()


# -----------------------------------------------------------------------------
def normalize_medicine_name(raw_name: Any) -> str:
    if not raw_name or not isinstance(raw_name, str):
        return ""
    cleaned = clean_ocr_artifacts(raw_name.strip())
    expanded = normalize_whitespace(expand_abbreviations(cleaned))
    if not expanded:
        return ""
    return " ".join(title_case_token(token) for token in expanded.split(" "))


# -----------------------------------------------------------------------------
def extract_dosage_info(medicine_name: Any) -> DosageInfo:
    if not medicine_name or not isinstance(medicine_name, str):
        return DosageInfo(name="", dosage="")
    for pattern in DOSAGE_PATTERNS:
        match = pattern.search(medicine_name)
        if match is None:
            continue
        clean_name = normalize_whitespace(pattern.sub(" ", medicine_name))
        return DosageInfo(
            name=clean_name or medicine_name,
            dosage=match.group(0).strip(),
            unit=match.group(2).lower(),
        )
    return DosageInfo(name=medicine_name, dosage="")


# -----------------------------------------------------------------------------
def remove_dosage_from_name(medicine_name: Any) -> str:
    if not medicine_name or not isinstance(medicine_name, str):
        return ""
    return extract_dosage_info(medicine_name).name or medicine_name


# -----------------------------------------------------------------------------
def normalize(raw_name: Any) -> NormalizedName:
    text = normalize_medicine_name(raw_name)
    if not text:
        return NormalizedName(text="", name="")
    info = extract_dosage_info(text)
    return NormalizedName(
        text=text,
        name=info.name,
        dosage=info.dosage or None,
        unit=info.unit or None,
    )


# -----------------------------------------------------------------------------
def is_valid_medicine_name(medicine_name: Any) -> bool:
    if not medicine_name or not isinstance(medicine_name, str):
        return False
    cleaned = medicine_name.strip()
    if len(cleaned) < MIN_NAME_LENGTH:
        return False
    if NUMERIC_ONLY_RE.fullmatch(cleaned):
        return False
    lowered = cleaned.lower()
    if any(word in lowered for word in NON_MEDICINE_WORDS):
        return False
    return ALPHA_RE.search(cleaned) is not None


# -----------------------------------------------------------------------------
def levenshtein_distance(first: str, second: str) -> int:
    return Levenshtein.distance(first or "", second or "")


# -----------------------------------------------------------------------------
def calculate_similarity(first: Any, second: Any) -> float:
    left = str(first or "").lower().strip()
    right = str(second or "").lower().strip()
    if not left or not right:
        return 0.0
    if left == right:
        return 1.0
    max_length = max(len(left), len(right))
    if max_length == 0:
        return 0.0
    distance = levenshtein_distance(left, right)
    return (max_length - distance) / max_length


__all__ = [
    "DosageInfo",
    "NormalizedName",
    "calculate_similarity",
    "clean_ocr_artifacts",
    "coerce_text",
    "expand_abbreviations",
    "extract_dosage_info",
    "is_valid_medicine_name",
    "levenshtein_distance",
    "normalize",
    "normalize_medicine_name",
    "normalize_whitespace",
    "remove_dosage_from_name",
    "title_case_token",
]
