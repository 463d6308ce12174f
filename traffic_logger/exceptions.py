"""Exceptions raised by the GraphQL transport layer."""

from __future__ import annotations

from typing import Any, Optional


class TrafficLoggerError(Exception):
    """Base exception for traffic_logger."""


class LinkError(TrafficLoggerError):
    """A GraphQL request could not be completed by the link chain."""

    def __init__(self, message: str, *, original_exception: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.original_exception = original_exception


class ServerError(LinkError):
    """The GraphQL server answered with a non-success HTTP status."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        parsed_response: Any = None,
        original_exception: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message, original_exception=original_exception)
        self.status_code = status_code
        self.parsed_response = parsed_response
