from __future__ import annotations

import unittest

import pandas as pd

from RXMATCH.server.utils.services.text.normalization import (
    calculate_similarity,
    clean_ocr_artifacts,
    coerce_text,
    expand_abbreviations,
    extract_dosage_info,
    is_valid_medicine_name,
    levenshtein_distance,
    normalize,
    normalize_medicine_name,
    normalize_whitespace,
    remove_dosage_from_name,
)


class NormalizationTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def test_coerce_text_strips_and_handles_empty_values(self) -> None:
        self.assertEqual(coerce_text("  Dolo 650  "), "Dolo 650")
        self.assertIsNone(coerce_text("   "))
        self.assertIsNone(coerce_text(pd.NA))
        self.assertEqual(coerce_text(12.5), "12.5")

    # ------------------------------------------------------------------
    def test_normalize_whitespace(self) -> None:
        self.assertEqual(normalize_whitespace("  Foo \n Bar \t Baz  "), "Foo Bar Baz")
        self.assertEqual(normalize_whitespace(""), "")

    # ------------------------------------------------------------------
    def test_clean_ocr_artifacts_removes_pages_and_dates(self) -> None:
        self.assertEqual(
            clean_ocr_artifacts("Paracetamol page 3 12/05/2023"), "Paracetamol"
        )
        self.assertEqual(clean_ocr_artifacts("Strip 10x5 Crocin"), "Strip Crocin")
        self.assertEqual(clean_ocr_artifacts("Dolo* (650)"), "Dolo (650)")
        self.assertEqual(clean_ocr_artifacts(""), "")

    # ------------------------------------------------------------------
    def test_expand_abbreviations_keeps_short_uppercase_tokens(self) -> None:
        self.assertEqual(expand_abbreviations("paracetamol tab"), "paracetamol tablet")
        self.assertEqual(expand_abbreviations("amoxicillin caps"), "amoxicillin capsules")
        self.assertEqual(expand_abbreviations("Crocin TAB"), "Crocin TAB")
        self.assertEqual(expand_abbreviations("insulin iu"), "insulin IU")

    # ------------------------------------------------------------------
    def test_normalize_medicine_name_strips_punctuation(self) -> None:
        self.assertEqual(
            normalize_medicine_name("para@cetamol#500mg"), "Para Cetamol 500mg"
        )
        info = extract_dosage_info(normalize_medicine_name("para@cetamol#500mg"))
        self.assertEqual(info.name, "Para Cetamol")
        self.assertEqual(info.dosage, "500mg")
        self.assertEqual(info.unit, "mg")

    # ------------------------------------------------------------------
    def test_normalize_medicine_name_title_cases_tokens(self) -> None:
        self.assertEqual(
            normalize_medicine_name("  amoxicillin   250 MG cap "),
            "Amoxicillin 250 MG Capsule",
        )

    # ------------------------------------------------------------------
    def test_normalize_medicine_name_is_total(self) -> None:
        self.assertEqual(normalize_medicine_name(None), "")
        self.assertEqual(normalize_medicine_name(42), "")
        self.assertEqual(normalize_medicine_name("@@@"), "")

    # ------------------------------------------------------------------
    def test_extract_dosage_info_uses_first_matching_pattern(self) -> None:
        info = extract_dosage_info("Crocin 650 mg")
        self.assertEqual((info.name, info.dosage, info.unit), ("Crocin", "650 mg", "mg"))

        info = extract_dosage_info("Vitamin D3 1000 units")
        self.assertEqual(info.name, "Vitamin D3")
        self.assertEqual(info.dosage, "1000 units")

        info = extract_dosage_info("Azithral 2 tablets")
        self.assertEqual(info.name, "Azithral")
        self.assertEqual(info.unit, "tablet")

    # ------------------------------------------------------------------
    def test_extract_dosage_info_without_dosage(self) -> None:
        info = extract_dosage_info("Dolo")
        self.assertEqual(info.name, "Dolo")
        self.assertEqual(info.dosage, "")
        self.assertEqual(extract_dosage_info(None).name, "")

    # ------------------------------------------------------------------
    def test_remove_dosage_from_name(self) -> None:
        self.assertEqual(remove_dosage_from_name("Paracetamol 500mg"), "Paracetamol")
        self.assertEqual(remove_dosage_from_name("500mg"), "500mg")
        self.assertEqual(remove_dosage_from_name(""), "")

    # ------------------------------------------------------------------
    def test_normalize_returns_structured_name(self) -> None:
        normalized = normalize("Paracetamol 500mg")
        self.assertEqual(normalized.text, "Paracetamol 500mg")
        self.assertEqual(normalized.name, "Paracetamol")
        self.assertEqual(normalized.dosage, "500mg")
        self.assertEqual(normalized.unit, "mg")
        self.assertTrue(normalize("   ").is_empty)
        self.assertIsNone(normalize("Dolo").dosage)

    # ------------------------------------------------------------------
    def test_is_valid_medicine_name(self) -> None:
        self.assertFalse(is_valid_medicine_name("AB"))
        self.assertFalse(is_valid_medicine_name("123"))
        self.assertFalse(is_valid_medicine_name("patient name"))
        self.assertFalse(is_valid_medicine_name("Doctor Signature"))
        self.assertFalse(is_valid_medicine_name("---"))
        self.assertFalse(is_valid_medicine_name(None))
        self.assertTrue(is_valid_medicine_name("Vitamin B12"))
        self.assertTrue(is_valid_medicine_name("Paracetamol 500mg"))

    # ------------------------------------------------------------------
    def test_levenshtein_distance_identity_and_symmetry(self) -> None:
        samples = ["", "a", "paracetamol", "paracetmol", "Crocin Advance"]
        for first in samples:
            self.assertEqual(levenshtein_distance(first, first), 0)
            for second in samples:
                self.assertEqual(
                    levenshtein_distance(first, second),
                    levenshtein_distance(second, first),
                )
        self.assertEqual(levenshtein_distance("kitten", "sitting"), 3)
        self.assertEqual(levenshtein_distance("", "abc"), 3)

    # ------------------------------------------------------------------
    def test_calculate_similarity(self) -> None:
        self.assertEqual(calculate_similarity("Paracetamol", "paracetamol"), 1.0)
        self.assertEqual(calculate_similarity("", "abc"), 0.0)
        self.assertEqual(calculate_similarity("   ", "  "), 0.0)
        self.assertAlmostEqual(calculate_similarity("abcd", "abce"), 0.75)


if __name__ == "__main__":
    unittest.main()
