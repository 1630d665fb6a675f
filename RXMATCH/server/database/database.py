from __future__ import annotations

import json
import os
from typing import Any

import pandas as pd
import sqlalchemy
from sqlalchemy import func, inspect, or_, select
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from RXMATCH.server.database.schema import Base, Product
from RXMATCH.server.utils.configurations import DatabaseSettings, server_settings
from RXMATCH.server.utils.constants import (
    DATA_PATH,
    DATABASE_FILENAME,
    PRODUCTS_COLUMNS,
    PRODUCTS_TABLE,
)
from RXMATCH.server.utils.logger import logger
from RXMATCH.server.utils.services.matching.catalog import (
    MIN_QUERY_LENGTH,
    CatalogSearchResult,
)
from RXMATCH.server.utils.services.matching.errors import CatalogSearchError
from RXMATCH.server.utils.services.matching.models import (
    CatalogCandidate,
    parse_image_urls,
)
from RXMATCH.server.utils.types import coerce_bool, coerce_float, coerce_int

MISSING_TABLE_MESSAGE = "Table %s does not exist in the catalog database"
BOOLEAN_COLUMNS = ("in_stock", "requires_prescription", "is_active")
BOOLEAN_DEFAULTS = {"in_stock": True, "requires_prescription": False, "is_active": True}


# -----------------------------------------------------------------------------
def build_engine(settings: DatabaseSettings) -> Engine:
    if settings.embedded_database:
        db_path = os.path.join(DATA_PATH, DATABASE_FILENAME)
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
        return sqlalchemy.create_engine(f"sqlite:///{db_path}", echo=False, future=True)

    url = URL.create(
        drivername=settings.engine or "postgresql+psycopg",
        username=settings.username,
        password=settings.password,
        host=settings.host,
        port=settings.port,
        database=settings.database_name,
    )
    return sqlalchemy.create_engine(
        url,
        echo=False,
        future=True,
        pool_pre_ping=True,
        connect_args={"connect_timeout": settings.connect_timeout},
    )


# -----------------------------------------------------------------------------
def prepare_product_records(df: pd.DataFrame) -> list[dict[str, Any]]:
    frame = df.reindex(columns=PRODUCTS_COLUMNS)
    frame = frame.astype(object).where(pd.notna(frame), None)
    records: list[dict[str, Any]] = []
    for row in frame.to_dict(orient="records"):
        if row.get("id") is None or row.get("name") is None:
            continue
        row["id"] = str(row["id"]).strip()
        row["name"] = str(row["name"]).strip()
        for column in BOOLEAN_COLUMNS:
            row[column] = coerce_bool(row.get(column), BOOLEAN_DEFAULTS[column])
        row["price"] = coerce_float(row.get("price"), 0.0, minimum=0.0)
        row["mrp"] = (
            coerce_float(row["mrp"], 0.0, minimum=0.0) if row.get("mrp") is not None else None
        )
        row["discount_percentage"] = coerce_float(row.get("discount_percentage"), 0.0)
        row["stock_quantity"] = coerce_int(row.get("stock_quantity"), 0, minimum=0)
        row["image_urls"] = json.dumps(list(parse_image_urls(row.get("image_urls"))))
        records.append(row)
    return records


# [CATALOG DATABASE]
###############################################################################
class CatalogRepository:
    def __init__(
        self,
        settings: DatabaseSettings | None = None,
        engine: Engine | None = None,
        row_limit: int | None = None,
    ) -> None:
        self.settings = settings or server_settings.database
        backend_name = "sqlite" if self.settings.embedded_database else self.settings.engine
        if engine is None:
            logger.info("Initializing %s catalog database backend", backend_name)
        self.engine: Engine = engine or build_engine(self.settings)
        self.session_factory = sessionmaker(bind=self.engine, future=True)
        self.insert_batch_size = self.settings.insert_batch_size
        self.row_limit = row_limit or server_settings.matching.search_row_limit
        Base.metadata.create_all(self.engine)

    # -------------------------------------------------------------------------
    def load_products(self, df: pd.DataFrame) -> int:
        records = prepare_product_records(df)
        table = Product.__table__
        with self.engine.begin() as conn:
            conn.execute(table.delete())
            for i in range(0, len(records), self.insert_batch_size):
                batch = records[i : i + self.insert_batch_size]
                if batch:
                    conn.execute(table.insert(), batch)
        logger.info("Loaded %d products into %s", len(records), PRODUCTS_TABLE)
        return len(records)

    # -------------------------------------------------------------------------
    def load_from_database(self, table_name: str = PRODUCTS_TABLE) -> pd.DataFrame:
        with self.engine.connect() as conn:
            inspector = inspect(conn)
            if not inspector.has_table(table_name):
                logger.warning(MISSING_TABLE_MESSAGE, table_name)
                return pd.DataFrame()
            data = pd.read_sql_table(table_name, conn)
        return data

    # -------------------------------------------------------------------------
    def count_rows(self, table_name: str = PRODUCTS_TABLE) -> int:
        with self.engine.connect() as conn:
            result = conn.execute(
                sqlalchemy.text(f'SELECT COUNT(*) FROM "{table_name}"')
            )
            value = result.scalar() or 0
        return int(value)

    # -------------------------------------------------------------------------
    def search_products(self, query: str) -> CatalogSearchResult:
        lowered = (query or "").strip().lower()
        if len(lowered) < MIN_QUERY_LENGTH:
            return CatalogSearchResult.success(())
        statement = (
            select(Product)
            .where(Product.is_active.is_(True))
            .where(
                or_(
                    func.lower(Product.name).contains(lowered, autoescape=True),
                    func.lower(func.coalesce(Product.generic_name, "")).contains(
                        lowered, autoescape=True
                    ),
                )
            )
            .order_by(Product.name)
            .limit(self.row_limit)
        )
        try:
            with self.session_factory() as session:
                records = [row.to_record() for row in session.execute(statement).scalars()]
        except SQLAlchemyError as exc:
            logger.warning("Catalog query failed for '%s': %s", query, exc)
            return CatalogSearchResult.failure(
                CatalogSearchError(
                    f"Catalog query failed: {exc.__class__.__name__}",
                    query=query,
                    retryable=isinstance(exc, OperationalError),
                )
            )
        return CatalogSearchResult.success(
            CatalogCandidate.from_record(record) for record in records
        )

    # -------------------------------------------------------------------------
    def __call__(self, query: str) -> CatalogSearchResult:
        return self.search_products(query)


catalog_repository: CatalogRepository | None = None


# -----------------------------------------------------------------------------
def get_catalog_repository() -> CatalogRepository:
    global catalog_repository
    if catalog_repository is None:
        catalog_repository = CatalogRepository(server_settings.database)
    return catalog_repository
