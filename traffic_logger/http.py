"""Request/response logging for ``requests`` sessions."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, List
from urllib.parse import parse_qsl

import requests
from requests.adapters import HTTPAdapter

from .logger import TrafficLogger, get_logger
from .schema import Section

REQUEST_TAG = "HTTP | Request"
RESPONSE_TAG = "HTTP | Response"
ERROR_TAG = "HTTP | Error"
LOG_ERROR_TAG = "HTTP | LogError"

_TEXT_CONTENT_MARKERS = ("text/", "json", "xml", "javascript", "x-www-form-urlencoded", "graphql")


@dataclass(frozen=True)
class HttpLoggerOptions:
    """What the HTTP adapter logs."""

    log_auth_header: bool = False
    log_request_header: bool = True
    log_request_body: bool = False
    log_response_header: bool = False
    log_response_body: bool = True
    log_error: bool = True
    redact: bool = True # Overrides the global redact flag for HTTP traffic


class LoggingHTTPAdapter(HTTPAdapter):
    """Transport adapter that logs every request, response and failure.

    Logging problems are reported under the ``HTTP | LogError`` tag and never
    affect the request itself; transport exceptions are logged and re-raised.
    """

    def __init__(
        self,
        options: HttpLoggerOptions | None = None,
        *,
        logger: TrafficLogger | None = None,
        **kwargs: Any,
    ) -> None:
        self.options = options or HttpLoggerOptions()
        self._logger = logger or get_logger()
        super().__init__(**kwargs)

    def send(self, request: requests.PreparedRequest, **kwargs: Any) -> requests.Response:  # type: ignore[override]
        self._log_request(request)

        try:
            response = super().send(request, **kwargs)
        except requests.RequestException as exc:
            if self.options.log_error:
                self._log_exception(request, exc)
            raise

        if response.status_code >= 400:
            if self.options.log_error:
                self._log_bad_response(response, streamed=bool(kwargs.get("stream")))
        else:
            self._log_response(response, streamed=bool(kwargs.get("stream")))

        return response

    # --------------------- request ---------------------
    def _log_request(self, request: requests.PreparedRequest) -> None:
        try:
            messages: List[Any] = [f"{request.method} {request.url}"]

            if self.options.log_request_header:
                self._add_request_headers(request, messages)

            if self.options.log_request_body and _can_log_request_body(request):
                self._add_request_body(request, messages)

            if len(messages) > 1:
                self._logger.boxed(messages, tag=REQUEST_TAG, redact=self.options.redact)
        except Exception as exc:
            self._logger.error("Failed to log request", error=exc, tag=LOG_ERROR_TAG)

    def _add_request_headers(self, request: requests.PreparedRequest, messages: List[Any]) -> None:
        headers = dict(request.headers)

        if not self.options.log_auth_header:
            headers = {
                key: value for key, value in headers.items() if key.lower() != "authorization"
            }

        if headers:
            messages.append(Section("Headers", headers))

    def _add_request_body(self, request: requests.PreparedRequest, messages: List[Any]) -> None:
        body = request.body
        content_type = (request.headers.get("Content-Type") or "").lower()

        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError:
                messages.append(Section("Data", body))
                return

        if not isinstance(body, str):
            messages.append(f"Data::: [{type(body).__name__}]")
            return

        if not body:
            return

        if "multipart/form-data" in content_type:
            messages.append("FormData::: [multipart/form-data]")
            return

        if "x-www-form-urlencoded" in content_type:
            fields = dict(parse_qsl(body, keep_blank_values=True))
            if fields:
                messages.append(Section("FormData", fields))
            return

        parsed = _try_parse_json(body)
        messages.append(Section("Data", parsed))

    # --------------------- response ---------------------
    def _log_response(self, response: requests.Response, *, streamed: bool) -> None:
        try:
            messages: List[Any] = []

            if self.options.log_response_header:
                messages.append(
                    f"{response.request.method} {response.status_code} {response.url}"
                )
                headers = dict(response.headers)
                if headers:
                    messages.append(Section("Headers", headers))

            if self.options.log_response_body:
                messages.append(_response_body(response, streamed=streamed))

            if messages:
                self._logger.boxed(messages, tag=RESPONSE_TAG, redact=self.options.redact)
        except Exception as exc:
            self._logger.error("Failed to log response", error=exc, tag=LOG_ERROR_TAG)

    def _log_bad_response(self, response: requests.Response, *, streamed: bool) -> None:
        try:
            method = response.request.method if response.request is not None else "?"
            messages: List[Any] = [f"{method} [{response.status_code}] {response.url}"]

            body = _response_body(response, streamed=streamed)
            if isinstance(body, Section):
                messages.append(body)

            self._logger.boxed(
                messages,
                tag=ERROR_TAG,
                error=response.reason or f"HTTP {response.status_code}",
                redact=self.options.redact,
            )
        except Exception as exc:
            self._logger.error("Failed to log error", error=exc, tag=LOG_ERROR_TAG)

    # --------------------- failures ---------------------
    def _log_exception(self, request: requests.PreparedRequest, exc: requests.RequestException) -> None:
        try:
            line = f"{request.method} {request.url}\n{_describe_exception(exc)}"
            self._logger.error(
                line,
                error=exc,
                stack_trace=exc.__traceback__,
                tag=ERROR_TAG,
                redact=self.options.redact,
            )
        except Exception as log_exc:
            self._logger.error("Failed to log error", error=log_exc, tag=LOG_ERROR_TAG)


def install_http_logging(
    session: requests.Session,
    options: HttpLoggerOptions | None = None,
    *,
    logger: TrafficLogger | None = None,
) -> LoggingHTTPAdapter:
    """Mount a logging adapter on ``session`` for http and https URLs."""

    adapter = LoggingHTTPAdapter(options, logger=logger)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return adapter


def _can_log_request_body(request: requests.PreparedRequest) -> bool:
    return request.method != "GET" and request.body is not None


def _try_parse_json(value: str) -> Any:
    try:
        return json.loads(value)
    except ValueError:
        return value


def _is_textual(content_type: str) -> bool:
    return not content_type or any(marker in content_type for marker in _TEXT_CONTENT_MARKERS)


def _response_body(response: requests.Response, *, streamed: bool) -> Any:
    if streamed:
        return "Response::: [Streamed]"

    content = response.content

    if not content:
        return "Response::: [Empty]"

    content_type = (response.headers.get("Content-Type") or "").lower()
    if not _is_textual(content_type):
        return Section("Response", content)

    return Section("Response", _try_parse_json(response.text))


def _describe_exception(exc: requests.RequestException) -> str:
    # Subclasses first: ConnectTimeout and SSLError are both ConnectionErrors.
    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return "Connection timeout"
    if isinstance(exc, requests.exceptions.ReadTimeout):
        return "Receive timeout"
    if isinstance(exc, requests.exceptions.Timeout):
        return "Timeout"
    if isinstance(exc, requests.exceptions.SSLError):
        return "Bad certificate"
    if isinstance(exc, requests.exceptions.ConnectionError):
        return f"Connection error: {exc}"
    return f"Unknown error: {exc}"


__all__ = [
    "HttpLoggerOptions",
    "LoggingHTTPAdapter",
    "install_http_logging",
]
