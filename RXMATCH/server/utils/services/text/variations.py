from __future__ import annotations

from typing import Any

from RXMATCH.server.utils.constants import (
    VARIATION_FORM_SUFFIX_RE,
    VARIATION_ROLE_PREFIX_RE,
)
from RXMATCH.server.utils.services.text.normalization import (
    normalize_medicine_name,
    remove_dosage_from_name,
)

MIN_VARIATION_LENGTH = 2


# -----------------------------------------------------------------------------
def strip_role_affixes(value: str) -> str:
    without_prefix = VARIATION_ROLE_PREFIX_RE.sub("", value)
    return VARIATION_FORM_SUFFIX_RE.sub("", without_prefix)


# -----------------------------------------------------------------------------
def generate_variations(medicine_name: Any) -> list[str]:
    """Derive alternate catalog queries for one mention.

    OCR output often fuses brand, form and strength into a single token
    stream, so each rule below peels one of them off. The result keeps
    insertion order, drops duplicates and never exceeds one entry per rule
    (at most seven strings), which bounds the catalog fan-out per name.
    """
    if not medicine_name or not isinstance(medicine_name, str):
        return []
    original = medicine_name.strip()
    if not original:
        return []

    # the trimmed input is always the first query, whatever its length
    variations: dict[str, None] = {original: None}

    def add(value: str) -> None:
        candidate = value.strip()
        if len(candidate) >= MIN_VARIATION_LENGTH:
            variations.setdefault(candidate, None)

    add(normalize_medicine_name(original))

    without_dosage = remove_dosage_from_name(original)
    if without_dosage != original:
        add(without_dosage)
        add(normalize_medicine_name(without_dosage))

    if " " in original:
        words = original.split()
        if len(words) >= 2:
            add(words[0])
            add(words[-1])

    without_affixes = strip_role_affixes(original)
    if without_affixes != original:
        add(without_affixes)

    return list(variations)


__all__ = ["generate_variations", "strip_role_affixes"]
