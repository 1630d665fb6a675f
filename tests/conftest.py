from __future__ import annotations

import os
import sys
from typing import Any

import pytest

REPO_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if REPO_ROOT not in sys.path:
    sys.path.insert(0, REPO_ROOT)

from RXMATCH.server.utils.services.matching.catalog import (
    DataFrameCatalogSearch,
    RetryPolicy,
)


# -----------------------------------------------------------------------------
def build_product_records() -> list[dict[str, Any]]:
    return [
        {
            "id": "p1",
            "name": "Paracetamol 500mg",
            "generic_name": "Paracetamol",
            "manufacturer": "GSK",
            "price": 25.5,
            "mrp": 30.0,
            "in_stock": True,
            "stock_quantity": 40,
            "requires_prescription": False,
            "is_active": True,
            "image_urls": ["paracetamol.png"],
        },
        {
            "id": "p2",
            "name": "Crocin Advance",
            "generic_name": "Paracetamol",
            "manufacturer": "GSK",
            "price": 32.0,
            "mrp": 35.0,
            "in_stock": True,
            "stock_quantity": 12,
            "requires_prescription": False,
            "is_active": True,
            "image_urls": [],
        },
        {
            "id": "p3",
            "name": "Paracetamol Retard",
            "generic_name": "Paracetamol",
            "manufacturer": "Legacy Labs",
            "price": 10.0,
            "mrp": 10.0,
            "in_stock": True,
            "stock_quantity": 0,
            "requires_prescription": False,
            "is_active": False,
            "image_urls": [],
        },
        {
            "id": "a1",
            "name": "Aspirin 100mg",
            "generic_name": "Acetylsalicylic Acid",
            "manufacturer": "Bayer",
            "price": 12.0,
            "mrp": 12.0,
            "in_stock": True,
            "stock_quantity": 100,
            "requires_prescription": False,
            "is_active": True,
            "image_urls": [],
        },
        {
            "id": "m1",
            "name": "Amlodipine 5mg",
            "generic_name": "Amlodipine",
            "manufacturer": "Pfizer",
            "price": 50.0,
            "mrp": 55.0,
            "in_stock": True,
            "stock_quantity": 8,
            "requires_prescription": True,
            "is_active": True,
            "image_urls": [],
        },
        {
            "id": "m2",
            "name": "Metformin 500mg",
            "generic_name": "Metformin",
            "manufacturer": "Sun Pharma",
            "price": 120.0,
            "mrp": 150.0,
            "in_stock": False,
            "stock_quantity": 0,
            "requires_prescription": False,
            "is_active": True,
            "image_urls": [],
        },
    ]


# -----------------------------------------------------------------------------
@pytest.fixture
def product_records() -> list[dict[str, Any]]:
    return build_product_records()


# -----------------------------------------------------------------------------
@pytest.fixture
def catalog(product_records) -> DataFrameCatalogSearch:
    return DataFrameCatalogSearch.from_records(product_records)


# -----------------------------------------------------------------------------
@pytest.fixture
def no_retry() -> RetryPolicy:
    return RetryPolicy(max_attempts=1, sleep=lambda _: None)
