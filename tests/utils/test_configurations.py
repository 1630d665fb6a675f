from __future__ import annotations

import json
import os
import tempfile
import unittest

import pandas as pd

from RXMATCH.server.utils.configurations import (
    build_server_settings,
    get_server_settings,
    server_settings,
)
from RXMATCH.server.utils.types import (
    coerce_bool,
    coerce_float,
    coerce_int,
    coerce_positive_int,
    coerce_str,
)


class CoercionTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def test_coerce_bool_handles_strings_and_numpy(self) -> None:
        self.assertTrue(coerce_bool("Yes", False))
        self.assertFalse(coerce_bool("off", True))
        self.assertTrue(coerce_bool("maybe", True))
        self.assertTrue(coerce_bool(pd.Series([True]).iloc[0], False))
        self.assertFalse(coerce_bool(float("nan"), False))

    # ------------------------------------------------------------------
    def test_numeric_coercion_applies_bounds(self) -> None:
        self.assertEqual(coerce_int("7", 1, maximum=5), 5)
        self.assertEqual(coerce_int(None, 3), 3)
        self.assertEqual(coerce_positive_int(-4, 15), 15)
        self.assertEqual(coerce_float("0.25", 1.0), 0.25)
        self.assertEqual(coerce_float(True, 1.0), 1.0)
        self.assertEqual(coerce_float(float("nan"), 2.0), 2.0)
        self.assertEqual(coerce_str("  ", "INR"), "INR")


class ServerSettingsTests(unittest.TestCase):
    # ------------------------------------------------------------------
    def test_defaults_for_missing_sections(self) -> None:
        settings = build_server_settings({})
        self.assertEqual(settings.scoring.exact_score, 100.0)
        self.assertEqual(settings.scoring.in_stock_boost, 5.0)
        self.assertEqual(settings.matching.max_alternatives, 3)
        self.assertEqual(settings.batch.ocr_weight, 0.3)
        self.assertEqual(settings.retry.max_attempts, 3)
        self.assertTrue(settings.database.embedded_database)

    # ------------------------------------------------------------------
    def test_bundled_configuration_is_loaded(self) -> None:
        self.assertEqual(server_settings.matching.search_row_limit, 15)
        self.assertEqual(server_settings.batch.currency, "INR")

    # ------------------------------------------------------------------
    def test_configuration_file_override(self) -> None:
        with tempfile.TemporaryDirectory() as folder:
            path = os.path.join(folder, "settings.json")
            with open(path, "w", encoding="utf-8") as handle:
                json.dump({"matching": {"max_alternatives": 5}, "batch": {"currency": "EUR"}}, handle)
            settings = get_server_settings(path)
        self.assertEqual(settings.matching.max_alternatives, 5)
        self.assertEqual(settings.batch.currency, "EUR")

    # ------------------------------------------------------------------
    def test_missing_configuration_raises(self) -> None:
        with self.assertRaises(RuntimeError):
            get_server_settings("/nonexistent/rxmatch/settings.json")


if __name__ == "__main__":
    unittest.main()
