from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from RXMATCH.server.utils.configurations.base import (
    ensure_mapping,
    load_configuration_data,
)
from RXMATCH.server.utils.constants import (
    CONFIGURATION_PATH_VARIABLE,
    SERVER_CONFIGURATION_FILE,
)
from RXMATCH.server.utils.types import (
    coerce_bool,
    coerce_float,
    coerce_int,
    coerce_positive_int,
    coerce_str,
    coerce_str_or_none,
)
from RXMATCH.server.utils.variables import env_variables


# [SERVER SETTINGS]
###############################################################################
@dataclass(frozen=True)
class FastAPISettings:
    title: str
    description: str
    version: str

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class DatabaseSettings:
    embedded_database: bool
    engine: str | None
    host: str | None
    port: int | None
    database_name: str | None
    username: str | None
    password: str | None
    connect_timeout: int
    insert_batch_size: int

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ScoringSettings:
    exact_score: float
    prefix_score: float
    contains_score: float
    word_credit_ceiling: float
    partial_token_credit: float
    min_token_length: int
    in_stock_boost: float
    image_boost: float
    edit_distance_weight: float

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class MatchingSettings:
    search_row_limit: int
    max_alternatives: int
    exact_confidence_floor: float
    prefix_confidence_floor: float
    short_query_length: int
    short_query_penalty: float
    complete_record_boost: float
    low_confidence_threshold: float
    slow_search_seconds: float

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class BatchSettings:
    ocr_weight: float
    match_rate_weight: float
    match_quality_weight: float
    default_ocr_confidence: float
    inter_request_delay: float
    request_timeout: float
    unmatched_issue_rate: float
    unmatched_warning_rate: float
    currency: str

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class RetrySettings:
    max_attempts: int
    backoff_seconds: float
    backoff_multiplier: float

# -----------------------------------------------------------------------------
@dataclass(frozen=True)
class ServerSettings:
    fastapi: FastAPISettings
    database: DatabaseSettings
    scoring: ScoringSettings
    matching: MatchingSettings
    batch: BatchSettings
    retry: RetrySettings


# [BUILDER FUNCTIONS]
###############################################################################
def build_fastapi_settings(data: dict[str, Any]) -> FastAPISettings:
    payload = ensure_mapping(data)
    return FastAPISettings(
        title=coerce_str(payload.get("title"), "RXMATCH Prescription Matching Backend"),
        version=coerce_str(payload.get("version"), "0.1.0"),
        description=coerce_str(payload.get("description"), "FastAPI backend"),
    )

# -----------------------------------------------------------------------------
def build_database_settings(payload: dict[str, Any]) -> DatabaseSettings:
    embedded = coerce_bool(payload.get("embedded_database"), True)
    if embedded:
        # External fields are ignored entirely when embedded DB is active
        return DatabaseSettings(
            embedded_database=True,
            engine=None,
            host=None,
            port=None,
            database_name=None,
            username=None,
            password=None,
            connect_timeout=10,
            insert_batch_size=coerce_int(payload.get("insert_batch_size"), 1000, minimum=1),
        )

    engine_value = coerce_str_or_none(payload.get("engine")) or "postgresql+psycopg"
    return DatabaseSettings(
        embedded_database=False,
        engine=engine_value.lower(),
        host=coerce_str_or_none(payload.get("host")),
        port=coerce_int(payload.get("port"), 5432, minimum=1, maximum=65535),
        database_name=coerce_str_or_none(payload.get("database_name")),
        username=coerce_str_or_none(payload.get("username")),
        password=coerce_str_or_none(payload.get("password")),
        connect_timeout=coerce_int(payload.get("connect_timeout"), 10, minimum=1),
        insert_batch_size=coerce_int(payload.get("insert_batch_size"), 1000, minimum=1),
    )

# -----------------------------------------------------------------------------
def build_scoring_settings(data: dict[str, Any]) -> ScoringSettings:
    return ScoringSettings(
        exact_score=coerce_float(data.get("exact_score"), 100.0, minimum=0.0),
        prefix_score=coerce_float(data.get("prefix_score"), 90.0, minimum=0.0),
        contains_score=coerce_float(data.get("contains_score"), 80.0, minimum=0.0),
        word_credit_ceiling=coerce_float(data.get("word_credit_ceiling"), 75.0, minimum=0.0),
        partial_token_credit=coerce_float(
            data.get("partial_token_credit"), 0.5, minimum=0.0, maximum=1.0
        ),
        min_token_length=coerce_positive_int(data.get("min_token_length"), 3),
        in_stock_boost=coerce_float(data.get("in_stock_boost"), 5.0),
        image_boost=coerce_float(data.get("image_boost"), 2.0),
        edit_distance_weight=coerce_float(
            data.get("edit_distance_weight"), 70.0, minimum=0.0, maximum=100.0
        ),
    )

# -----------------------------------------------------------------------------
def build_matching_settings(data: dict[str, Any]) -> MatchingSettings:
    return MatchingSettings(
        search_row_limit=coerce_positive_int(data.get("search_row_limit"), 15),
        max_alternatives=coerce_int(data.get("max_alternatives"), 3, minimum=0),
        exact_confidence_floor=coerce_float(data.get("exact_confidence_floor"), 95.0),
        prefix_confidence_floor=coerce_float(data.get("prefix_confidence_floor"), 85.0),
        short_query_length=coerce_positive_int(data.get("short_query_length"), 4),
        short_query_penalty=coerce_float(
            data.get("short_query_penalty"), 0.8, minimum=0.0, maximum=1.0
        ),
        complete_record_boost=coerce_float(data.get("complete_record_boost"), 5.0),
        low_confidence_threshold=coerce_float(data.get("low_confidence_threshold"), 60.0),
        slow_search_seconds=coerce_float(data.get("slow_search_seconds"), 1.0, minimum=0.0),
    )

# -----------------------------------------------------------------------------
def build_batch_settings(data: dict[str, Any]) -> BatchSettings:
    return BatchSettings(
        ocr_weight=coerce_float(data.get("ocr_weight"), 0.3, minimum=0.0),
        match_rate_weight=coerce_float(data.get("match_rate_weight"), 0.4, minimum=0.0),
        match_quality_weight=coerce_float(data.get("match_quality_weight"), 0.3, minimum=0.0),
        default_ocr_confidence=coerce_float(
            data.get("default_ocr_confidence"), 50.0, minimum=0.0, maximum=100.0
        ),
        inter_request_delay=coerce_float(data.get("inter_request_delay"), 0.1, minimum=0.0),
        request_timeout=coerce_float(data.get("request_timeout"), 30.0, minimum=0.1),
        unmatched_issue_rate=coerce_float(data.get("unmatched_issue_rate"), 50.0),
        unmatched_warning_rate=coerce_float(data.get("unmatched_warning_rate"), 25.0),
        currency=coerce_str(data.get("currency"), "INR"),
    )

# -----------------------------------------------------------------------------
def build_retry_settings(data: dict[str, Any]) -> RetrySettings:
    return RetrySettings(
        max_attempts=coerce_positive_int(data.get("max_attempts"), 3),
        backoff_seconds=coerce_float(data.get("backoff_seconds"), 0.5, minimum=0.0),
        backoff_multiplier=coerce_float(data.get("backoff_multiplier"), 2.0, minimum=1.0),
    )

# -----------------------------------------------------------------------------
def build_server_settings(data: dict[str, Any] | Any) -> ServerSettings:
    payload = ensure_mapping(data)
    return ServerSettings(
        fastapi=build_fastapi_settings(ensure_mapping(payload.get("fastapi"))),
        database=build_database_settings(ensure_mapping(payload.get("database"))),
        scoring=build_scoring_settings(ensure_mapping(payload.get("scoring"))),
        matching=build_matching_settings(ensure_mapping(payload.get("matching"))),
        batch=build_batch_settings(ensure_mapping(payload.get("batch"))),
        retry=build_retry_settings(ensure_mapping(payload.get("retry"))),
    )


# [SERVER CONFIGURATION LOADER]
###############################################################################
def get_server_settings(config_path: str | None = None) -> ServerSettings:
    path = (
        config_path
        or env_variables.get(CONFIGURATION_PATH_VARIABLE)
        or SERVER_CONFIGURATION_FILE
    )
    payload = load_configuration_data(path)
    return build_server_settings(payload)


server_settings = get_server_settings()
