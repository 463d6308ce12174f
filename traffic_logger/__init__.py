"""Public API for the traffic logging library."""

from __future__ import annotations

from .config import LoggingSettings, configure_settings, get_settings, load_settings
from .exceptions import LinkError, ServerError, TrafficLoggerError
from .graphql import (
    GraphQLError,
    GraphQLLoggingAdapter,
    GraphQLRequest,
    GraphQLResponse,
    LoggerLink,
    RequestsGraphQLTransport,
    install_graphql_logging,
)
from .http import HttpLoggerOptions, LoggingHTTPAdapter, install_http_logging
from .logger import (
    TrafficLogger,
    configure_manager,
    get_global_redact,
    get_logger,
    reset_loggers,
    set_global_redact,
)
from .metrics import get_metrics
from .redaction import (
    Redactor,
    add_sensitive_keys,
    build_redactor,
    is_sensitive_key,
    redact_data,
    remove_sensitive_keys,
    reset_redactor,
    set_redactor,
)
from .schema import Section

__all__ = [
    "configure",
    "get_logger",
    "TrafficLogger",
    "LoggingSettings",
    "load_settings",
    "get_settings",
    "get_metrics",
    "set_global_redact",
    "get_global_redact",
    "reset_loggers",
    "Redactor",
    "Section",
    "add_sensitive_keys",
    "remove_sensitive_keys",
    "is_sensitive_key",
    "redact_data",
    "reset_redactor",
    "HttpLoggerOptions",
    "LoggingHTTPAdapter",
    "install_http_logging",
    "GraphQLRequest",
    "GraphQLResponse",
    "GraphQLError",
    "LoggerLink",
    "RequestsGraphQLTransport",
    "GraphQLLoggingAdapter",
    "install_graphql_logging",
    "TrafficLoggerError",
    "LinkError",
    "ServerError",
]


def configure(settings: LoggingSettings | None = None, **overrides) -> LoggingSettings:
    """Configure settings, rebuild the default redactor and wire the logger manager."""

    resolved = configure_settings(settings, **overrides)
    redactor = build_redactor(resolved.redaction)
    set_redactor(redactor)
    configure_manager(resolved, redactor=redactor)

    return resolved
