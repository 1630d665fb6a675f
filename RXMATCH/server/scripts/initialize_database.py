from __future__ import annotations

import os
import time

import pandas as pd

from RXMATCH.server.database.database import CatalogRepository
from RXMATCH.server.utils.configurations import server_settings
from RXMATCH.server.utils.constants import PRODUCTS_SOURCE_FILE, PRODUCTS_TABLE
from RXMATCH.server.utils.logger import logger


# -----------------------------------------------------------------------------
def initialize_database(source_path: str = PRODUCTS_SOURCE_FILE) -> int:
    repository = CatalogRepository(server_settings.database)
    if not os.path.exists(source_path):
        logger.warning("Products source file not found at %s; created empty tables", source_path)
        return repository.count_rows(PRODUCTS_TABLE)
    products = pd.read_csv(source_path)
    logger.info("Seeding %s from %s (%d rows)", PRODUCTS_TABLE, source_path, len(products))
    return repository.load_products(products)


###############################################################################
if __name__ == "__main__":
    start = time.perf_counter()
    logger.info("Starting catalog database initialization")
    loaded = initialize_database()
    elapsed = time.perf_counter() - start
    logger.info(
        "Catalog database initialization completed in %.2f seconds (%d products)",
        elapsed,
        loaded,
    )
