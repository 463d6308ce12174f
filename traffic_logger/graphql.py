"""GraphQL logging link and a ``requests`` based transport.

A link is any callable taking a :class:`GraphQLRequest` and returning an
iterable of :class:`GraphQLResponse`. :class:`LoggerLink` wraps the next link
in the chain and logs what passes through it; :class:`RequestsGraphQLTransport`
terminates the chain by posting the operation over HTTP.

:class:`GraphQLLoggingAdapter` logs GraphQL traffic at the ``requests``
session level instead, driven by the same options as the HTTP adapter.
"""

from __future__ import annotations

import datetime as _dt
import json
import re
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter

from .exceptions import LinkError, ServerError
from .formatting import FAILED_TO_ENCODE
from .http import HttpLoggerOptions, _describe_exception
from .logger import TrafficLogger, get_logger
from .schema import Section

REQUEST_TAG = "GraphQL | Request"
RESPONSE_TAG = "GraphQL | Response"
ERROR_TAG = "GraphQL | Error"
GRAPHQL_ERROR_TAG = "GraphQL | GraphQL Error"
LINK_ERROR_TAG = "GraphQL | Link Error"
LOG_ERROR_TAG = "GraphQL | LogError"

_OPERATION_NAME = re.compile(r"^\s*(query|mutation|subscription)\s+(\w+)")


@dataclass(frozen=True)
class GraphQLRequest:
    query: str
    variables: Mapping[str, Any] = field(default_factory=dict)
    operation_name: Optional[str] = None
    headers: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class GraphQLError:
    message: str
    locations: Optional[Sequence[Mapping[str, int]]] = None
    path: Optional[Sequence[Any]] = None
    extensions: Optional[Mapping[str, Any]] = None

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "GraphQLError":
        return cls(
            message=str(payload.get("message", "")),
            locations=payload.get("locations"),
            path=payload.get("path"),
            extensions=payload.get("extensions"),
        )

    def __str__(self) -> str:
        return self.message


@dataclass(frozen=True)
class GraphQLResponse:
    data: Optional[Mapping[str, Any]] = None
    errors: Sequence[GraphQLError] = ()

    @classmethod
    def from_dict(cls, payload: Any) -> "GraphQLResponse":
        if not isinstance(payload, Mapping):
            raise ValueError("GraphQL response body must be a JSON object")

        return cls(
            data=payload.get("data"),
            errors=tuple(GraphQLError.from_dict(item) for item in payload.get("errors") or ()),
        )


NextLink = Callable[[GraphQLRequest], Iterable[GraphQLResponse]]


class LoggerLink:
    """Logs GraphQL operations flowing to ``forward``.

    With ``debug`` on, headers, variables, data and error details are logged
    as well. Every exception raised downstream is logged and re-raised.
    """

    def __init__(
        self,
        forward: NextLink,
        *,
        debug: bool = False,
        redact: bool = True,
        logger: TrafficLogger | None = None,
    ) -> None:
        self._forward = forward
        self.debug = debug
        self.redact = redact # Overrides the global redact flag for GraphQL traffic
        self._logger = logger or get_logger()

    def __call__(self, request: GraphQLRequest) -> Iterator[GraphQLResponse]:
        return self.request(request)

    def request(self, request: GraphQLRequest) -> Iterator[GraphQLResponse]:
        operation_name = request.operation_name or "Unknown"
        started_at = _dt.datetime.now().astimezone()
        start = time.perf_counter()

        self._log_request(request, operation_name, started_at)

        try:
            for response in self._forward(request):
                duration_ms = _elapsed_ms(start)

                if response.errors:
                    self._log_graphql_error(response, operation_name, duration_ms)
                    yield response
                    continue

                self._log_response(response, operation_name, duration_ms)
                yield response
        except LinkError as exc:
            self._log_link_exception(exc, operation_name, _elapsed_ms(start))
            raise
        except ValueError as exc:
            self._log_exception("FormatError", exc, operation_name, _elapsed_ms(start))
            raise
        except TypeError as exc:
            self._log_exception("JsonError", exc, operation_name, _elapsed_ms(start))
            raise
        except Exception as exc:
            self._log_exception("Exception", exc, operation_name, _elapsed_ms(start))
            raise

    # --------------------- internal helpers ---------------------
    def _log_request(
        self, request: GraphQLRequest, operation_name: str, started_at: _dt.datetime
    ) -> None:
        try:
            messages: List[Any] = [
                f"GraphQL Request: {operation_name} @ {started_at.isoformat()}"
            ]

            if self.debug:
                if request.headers:
                    messages.append(Section("Headers", dict(request.headers)))
                if request.variables:
                    messages.append(Section("Variables", dict(request.variables)))

            self._logger.boxed(messages, tag=REQUEST_TAG, redact=self.redact)
        except Exception as exc:
            self._logger.error(
                f"Failed to log request: {operation_name}", error=exc, tag=LOG_ERROR_TAG
            )

    def _log_response(
        self, response: GraphQLResponse, operation_name: str, duration_ms: int
    ) -> None:
        try:
            messages: List[Any] = [f"GraphQL Response: {operation_name} in {duration_ms}ms"]

            if self.debug and response.data is not None:
                messages.append(Section("Data", response.data))

            self._logger.boxed(messages, tag=RESPONSE_TAG, redact=self.redact)
        except Exception as exc:
            self._logger.error(
                f"Failed to log response: {operation_name}", error=exc, tag=LOG_ERROR_TAG
            )

    def _log_graphql_error(
        self, response: GraphQLResponse, operation_name: str, duration_ms: int
    ) -> None:
        try:
            errors = list(response.errors)
            messages: List[Any] = [
                f"GraphQL Response: {operation_name} in {duration_ms}ms",
                "Errors: " + ", ".join(error.message for error in errors),
            ]

            if self.debug:
                messages.append(Section("Error Details", [_error_details(error) for error in errors]))
                if response.data is not None:
                    messages.append(Section("Partial Data", response.data))

            self._logger.boxed(
                messages, tag=GRAPHQL_ERROR_TAG, error=errors[0], redact=self.redact
            )
        except Exception as exc:
            self._logger.error(
                f"Failed to log GraphQL error: {operation_name}", error=exc, tag=LOG_ERROR_TAG
            )

    def _log_link_exception(self, exc: LinkError, operation_name: str, duration_ms: int) -> None:
        try:
            messages: List[Any] = [
                f"GraphQL Link Error: {operation_name} in {duration_ms}ms",
                f"Type: {type(exc).__name__}",
            ]

            if isinstance(exc, ServerError):
                messages.append(f"Server Error: {exc.original_exception or exc}")
                if self.debug and exc.parsed_response is not None:
                    parsed = exc.parsed_response
                    data = parsed.get("data") if isinstance(parsed, Mapping) else parsed
                    messages.append(Section("Parsed Response", data))

            self._logger.boxed(messages, tag=LINK_ERROR_TAG, error=exc, redact=self.redact)
        except Exception as log_exc:
            self._logger.error(
                f"Failed to log link exception: {operation_name}",
                error=log_exc,
                tag=LOG_ERROR_TAG,
            )

    def _log_exception(
        self, kind: str, exc: BaseException, operation_name: str, duration_ms: int
    ) -> None:
        try:
            self._logger.error(
                f"GraphQL {kind}: {operation_name} in {duration_ms}ms\nError: {exc}",
                error=exc,
                stack_trace=exc.__traceback__,
                tag=f"GraphQL | {kind}",
                redact=self.redact,
            )
        except Exception as log_exc:
            self._logger.error(
                f"Failed to log exception: {operation_name}", error=log_exc, tag=LOG_ERROR_TAG
            )


class RequestsGraphQLTransport:
    """Terminating link that posts operations with a ``requests`` session."""

    def __init__(
        self,
        url: str,
        *,
        session: requests.Session | None = None,
        timeout: float = 30.0,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        self._url = url
        self._session = session or requests.Session()
        self._timeout = timeout
        self._headers = dict(headers or {})

    def __call__(self, request: GraphQLRequest) -> Iterator[GraphQLResponse]:
        payload: Dict[str, Any] = {"query": request.query, "variables": dict(request.variables)}
        if request.operation_name:
            payload["operationName"] = request.operation_name

        headers = {**self._headers, **dict(request.headers)}

        try:
            response = self._session.post(
                self._url, json=payload, headers=headers, timeout=self._timeout
            )
        except requests.RequestException as exc:
            raise LinkError(f"GraphQL transport failed: {exc}", original_exception=exc) from exc

        if not response.ok:
            raise ServerError(
                f"GraphQL server responded with HTTP {response.status_code}",
                status_code=response.status_code,
                parsed_response=_parse_body(response),
            )

        yield GraphQLResponse.from_dict(json.loads(response.text))


class GraphQLLoggingAdapter(HTTPAdapter):
    """Transport adapter that logs GraphQL operations posted over HTTP.

    Only JSON object bodies are treated as GraphQL operations; anything else is
    sent without logging. ``errors`` carried by a successful response become the
    error of the response entry. Transport exceptions are logged and re-raised.
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
        operation = _operation_body(request)

        if operation is None:
            return super().send(request, **kwargs)

        start = time.perf_counter()
        self._log_request(request, operation)

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
            self._log_response(request, response, _elapsed_ms(start), streamed=bool(kwargs.get("stream")))

        return response

    def _log_request(self, request: requests.PreparedRequest, operation: Mapping[str, Any]) -> None:
        try:
            started_at = _dt.datetime.now().astimezone()
            operation_name = operation_name_from_body(operation)
            title = f"GraphQL Request Started - {request.url}"
            if operation_name:
                title += f" With OperationName: {operation_name}"
            messages: List[Any] = [f"{title} @ {started_at.isoformat()}"]

            if self.options.log_request_header:
                headers = dict(request.headers)
                if not self.options.log_auth_header:
                    headers = {
                        key: value for key, value in headers.items() if key.lower() != "authorization"
                    }
                if headers:
                    messages.append(Section("Headers", headers))

            if self.options.log_request_body:
                query = operation.get("query")
                if isinstance(query, str) and query:
                    messages.append(query)
                variables = operation.get("variables")
                if isinstance(variables, Mapping) and variables:
                    messages.append(Section("Variables", dict(variables)))

            self._logger.boxed(messages, tag=REQUEST_TAG, redact=self.options.redact)
        except Exception as exc:
            self._logger.error("Failed to log request", error=exc, tag=LOG_ERROR_TAG)

    def _log_response(
        self,
        request: requests.PreparedRequest,
        response: requests.Response,
        duration_ms: int,
        *,
        streamed: bool,
    ) -> None:
        try:
            messages: List[Any] = []
            error = None

            if self.options.log_response_header:
                headers = dict(response.headers)
                if headers:
                    messages.append(Section("Headers", headers))

            if self.options.log_response_body and streamed:
                messages.append("Data::: [Streamed]")
            elif self.options.log_response_body:
                body = _parse_body(response)
                if isinstance(body, Mapping):
                    errors = _error_payloads(body)
                    if errors:
                        error = errors
                    if body.get("data") is not None:
                        messages.append(Section("Data", body["data"]))
                else:
                    messages.append(f"Data::: {FAILED_TO_ENCODE}")

            messages.append(f"GraphQL Request Ended: {request.url} in {duration_ms}ms")

            self._logger.boxed(messages, tag=RESPONSE_TAG, error=error, redact=self.options.redact)
        except Exception as exc:
            self._logger.error("Failed to log response", error=exc, tag=LOG_ERROR_TAG)

    def _log_bad_response(self, response: requests.Response, *, streamed: bool) -> None:
        try:
            status = response.status_code
            body = None if streamed else _parse_body(response)
            errors = _error_payloads(body) if isinstance(body, Mapping) else []

            if errors:
                details = "\n".join(str(item.get("message", "")) for item in errors)
                message = f"GraphQL Error [{status}]:\n{details}"
                error: Any = errors
            else:
                message = f"HTTP Error [{status}]: {response.reason or 'Unknown'}"
                error = None

            self._logger.error(message, error=error, tag=ERROR_TAG, redact=self.options.redact)
        except Exception as exc:
            self._logger.error("Failed to log error", error=exc, tag=LOG_ERROR_TAG)

    def _log_exception(self, request: requests.PreparedRequest, exc: requests.RequestException) -> None:
        try:
            self._logger.error(
                f"{request.url}\n{_describe_exception(exc)}",
                error=exc,
                stack_trace=exc.__traceback__,
                tag=ERROR_TAG,
                redact=self.options.redact,
            )
        except Exception as log_exc:
            self._logger.error("Failed to log error", error=log_exc, tag=LOG_ERROR_TAG)


def install_graphql_logging(
    session: requests.Session,
    options: HttpLoggerOptions | None = None,
    *,
    logger: TrafficLogger | None = None,
) -> GraphQLLoggingAdapter:
    """Mount a GraphQL logging adapter on ``session`` for http and https URLs."""

    adapter = GraphQLLoggingAdapter(options, logger=logger)
    session.mount("http://", adapter)
    session.mount("https://", adapter)
    return adapter


def operation_name_from_body(body: Mapping[str, Any]) -> Optional[str]:
    """Return ``operationName`` or the name declared by the query document."""

    name = body.get("operationName")
    if isinstance(name, str) and name:
        return name

    query = body.get("query")
    if isinstance(query, str):
        match = _OPERATION_NAME.search(query)
        if match:
            return match.group(2)

    return None


def _parse_body(response: requests.Response) -> Any:
    try:
        return json.loads(response.text)
    except ValueError:
        return None


def _error_details(error: GraphQLError) -> Dict[str, Any]:
    details = asdict(error)
    details["locations"] = (
        [{"line": loc.get("line"), "column": loc.get("column")} for loc in error.locations]
        if error.locations is not None
        else None
    )
    return details


def _elapsed_ms(start: float) -> int:
    return int((time.perf_counter() - start) * 1000)


def _operation_body(request: requests.PreparedRequest) -> Optional[Mapping[str, Any]]:
    body = request.body

    if isinstance(body, bytes):
        try:
            body = body.decode("utf-8")
        except UnicodeDecodeError:
            return None

    if not isinstance(body, str) or not body:
        return None

    try:
        parsed = json.loads(body)
    except ValueError:
        return None

    return parsed if isinstance(parsed, Mapping) else None


def _error_payloads(body: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    return [item for item in body.get("errors") or () if isinstance(item, Mapping)]
