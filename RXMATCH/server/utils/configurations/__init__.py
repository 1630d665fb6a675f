from __future__ import annotations

from RXMATCH.server.utils.configurations.base import (
    ensure_mapping,
    load_configuration_data,
)

from RXMATCH.server.utils.configurations.server import (
    BatchSettings,
    DatabaseSettings,
    FastAPISettings,
    MatchingSettings,
    RetrySettings,
    ScoringSettings,
    ServerSettings,
    build_server_settings,
    server_settings,
    get_server_settings,
)

__all__ = [
    "ensure_mapping",
    "load_configuration_data",
    "BatchSettings",
    "DatabaseSettings",
    "FastAPISettings",
    "MatchingSettings",
    "RetrySettings",
    "ScoringSettings",
    "ServerSettings",
    "build_server_settings",
    "server_settings",
    "get_server_settings",
]
