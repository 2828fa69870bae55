"""Fluent request builder with deferred configuration errors.

Configuration calls never raise. The first error is stored on the builder,
every later configuration call becomes a no-op, and the error is raised when
the request is executed or read. Raw and form bodies are held separately
while configuring, so their conflict is only checked once the request is built
and call order does not matter. The transport request is materialized once,
on the first header mutation or execution, and later body changes are not
observed.
"""

import json
import time
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, TypeVar, overload

import httpx
import structlog
from pydantic import TypeAdapter, ValidationError

from requester.constants import BODY_METHODS, HTTP_STATUS_OK
from requester.errors import (
    ConfigurationError,
    DecodingError,
    EncodingError,
    RequesterError,
    TransportError,
    UnexpectedStatusError,
    UrlParseError,
)
from requester.form import FormFile, encode_form
from requester.metrics import RequesterMetrics
from requester.redact import redact_headers, redact_url_credentials
from requester.state_machine import BuilderState, BuilderStateMachine
from requester.values import (
    FormValues,
    stringify,
    to_form_values,
    to_query_fragment,
    to_raw_bytes,
)


logger = structlog.get_logger()

T = TypeVar("T")

RAW_FORM_CONFLICT = "raw and form are mutually exclusive"


@dataclass(frozen=True)
class EmptyBody:
    """No request body."""


@dataclass(frozen=True)
class RawBody:
    """Opaque bytes sent as the request body."""

    data: bytes


@dataclass(frozen=True)
class FormBody:
    """Form fields and attachments, encoded when the request is built."""

    fields: FormValues = field(default_factory=dict)
    files: tuple[FormFile, ...] = ()


BodySource = EmptyBody | RawBody | FormBody


def _with_query(url: httpx.URL, raw_query: str) -> httpx.URL:
    target = str(url.copy_with(query=None, fragment=None))
    if raw_query:
        target = f"{target}?{raw_query}"
    return httpx.URL(target)


class RequestBuilder:
    """Chained configuration of a single HTTP request.

    Builders are created through ``Requester`` or the module-level
    constructors (``get``, ``post_json``...). A builder is single-use and
    not safe for concurrent mutation; the underlying ``httpx.Client`` may be
    shared.
    """

    def __init__(
        self,
        method: str,
        url: str | httpx.URL,
        client: httpx.Client,
    ) -> None:
        """Initialize the builder.

        A URL that cannot be parsed leaves the builder in the FAILED state
        carrying a ``UrlParseError``.

        Args:
            method: Request method.
            url: Absolute URL, or a path relative to the client's base URL.
            client: Transport used to send the request.
        """
        self._client = client
        self._method = method.upper()
        self._raw = b""
        self._form = FormBody()
        self._body: BodySource = EmptyBody()
        self._content_type: str | None = None
        self._request: httpx.Request | None = None
        self._error: RequesterError | None = None
        self._metrics = RequesterMetrics.get_instance()

        self._machine = BuilderStateMachine(
            self._method, redact_url_credentials(str(url))
        )
        self._log = logger.bind(
            component="requester",
            method=self._method,
            url=redact_url_credentials(str(url)),
        )

        try:
            self._url: httpx.URL | None = httpx.URL(url)
        except (httpx.InvalidURL, TypeError) as e:
            self._url = None
            self._raw_query = ""
            self._fail(UrlParseError(str(url), str(e)))
            return

        self._raw_query = self._url.query.decode("ascii")

    def __repr__(self) -> str:
        url = redact_url_credentials(str(self._url)) if self._url else None
        return f"<RequestBuilder {self._method} {url} state={self.state.name}>"

    # Accessors

    @property
    def error(self) -> RequesterError | None:
        """The deferred error, if any configuration step failed."""
        return self._error

    @property
    def ok(self) -> bool:
        """Whether no error has been recorded."""
        return self._error is None

    @property
    def state(self) -> BuilderState:
        """Current lifecycle state."""
        return self._machine.state

    @property
    def method(self) -> str:
        """Request method."""
        return self._method

    @property
    def url(self) -> httpx.URL | None:
        """Target URL including the current query, or None if unparseable."""
        return self._url

    @property
    def client(self) -> httpx.Client:
        """Transport the request is sent on."""
        return self._client

    @property
    def request(self) -> httpx.Request | None:
        """The materialized transport request, if built."""
        return self._request

    @property
    def content_type(self) -> str | None:
        """Explicit content-type override."""
        return self._content_type

    @property
    def raw_body(self) -> bytes:
        """Configured raw body (empty when none)."""
        return self._raw

    @property
    def form_fields(self) -> FormValues:
        """Copy of the configured form fields."""
        return {key: list(values) for key, values in self._form.fields.items()}

    @property
    def form_files(self) -> list[FormFile]:
        """Copy of the configured file attachments."""
        return list(self._form.files)

    # Configuration

    def add_query(self, *values: Any) -> "RequestBuilder":
        """Append values to the query string.

        Args:
            values: Raw query strings or structured values.

        Returns:
            This builder.
        """
        if not self._configurable():
            return self
        try:
            fragment = to_query_fragment(*values)
            self._apply_query("&".join(p for p in (self._raw_query, fragment) if p))
        except RequesterError as e:
            return self._fail(e)
        return self

    def set_query(self, *values: Any) -> "RequestBuilder":
        """Replace the query string.

        Args:
            values: Raw query strings or structured values.

        Returns:
            This builder.
        """
        if not self._configurable():
            return self
        try:
            self._apply_query(to_query_fragment(*values))
        except RequesterError as e:
            return self._fail(e)
        return self

    add_raw_query = add_query
    set_raw_query = set_query

    def set_raw_body(self, value: Any) -> "RequestBuilder":
        """Set the raw request body.

        Strings are UTF-8 encoded, bytes are sent unchanged and any other
        value is serialized as JSON. An empty body clears a previous one.

        Args:
            value: Body value.

        Returns:
            This builder.
        """
        if not self._configurable():
            return self
        try:
            data = to_raw_bytes(value)
        except EncodingError as e:
            return self._fail(e)

        self._raw = data
        return self

    def set_content_type(self, content_type: str) -> "RequestBuilder":
        """Override the Content-Type of the request body.

        The override wins over the type chosen by the form encoder.
        """
        if not self._configurable():
            return self
        self._content_type = content_type
        return self

    def set_form_fields(self, value: Any) -> "RequestBuilder":
        """Replace all form fields.

        Args:
            value: Query string, mapping, pydantic model or ``Encodable``.

        Returns:
            This builder.
        """
        if not self._configurable():
            return self
        try:
            fields = to_form_values(value)
        except EncodingError as e:
            return self._fail(e)
        return self._set_form(fields, self._form.files)

    def add_form_field(self, key: str, value: Any) -> "RequestBuilder":
        """Append a value to a form field."""
        if not self._configurable():
            return self
        fields = self.form_fields
        fields.setdefault(key, []).append(stringify(value))
        return self._set_form(fields, self._form.files)

    def set_form_field(self, key: str, value: Any) -> "RequestBuilder":
        """Replace a form field's values with a single value."""
        if not self._configurable():
            return self
        fields = self.form_fields
        fields[key] = [stringify(value)]
        return self._set_form(fields, self._form.files)

    def add_form_file(self, *files: FormFile) -> "RequestBuilder":
        """Append file attachments; the body becomes multipart/form-data."""
        if not self._configurable():
            return self
        for file in files:
            if not isinstance(file, FormFile):
                msg = f"Expected FormFile, got {type(file).__name__}"
                return self._fail(EncodingError(msg))
        return self._set_form(self._form.fields, (*self._form.files, *files))

    def set_header(self, key: str, value: str) -> "RequestBuilder":
        """Set a header on the request, replacing existing values.

        Materializes the request if it has not been built yet.
        """
        self._materialize()
        if self._request is None or self._error is not None:
            return self
        try:
            self._request.headers[key] = value
        except ValueError as e:
            return self._fail(ConfigurationError(f"Invalid header {key!r}: {e}"))
        return self

    def add_header(self, key: str, value: str) -> "RequestBuilder":
        """Add a header value to the request, keeping existing values.

        Materializes the request if it has not been built yet.
        """
        self._materialize()
        if self._request is None or self._error is not None:
            return self
        try:
            self._request.headers = httpx.Headers(
                [*self._request.headers.multi_items(), (key, value)]
            )
        except ValueError as e:
            return self._fail(ConfigurationError(f"Invalid header {key!r}: {e}"))
        return self

    # Execution

    def execute(self) -> httpx.Response:
        """Send the request and return the response unchanged.

        Returns:
            Response with its body loaded.

        Raises:
            RequesterError: The deferred configuration error, if any.
            ConfigurationError: If the builder was already executed.
            TransportError: If the transport failed.
        """
        request = self._prepare_send()
        return self._send(request, stream=False)

    def read_bytes(self) -> bytes:
        """Send the request and return the body of a 200 response.

        The response is closed on every exit path.

        Returns:
            Response body.

        Raises:
            UnexpectedStatusError: If the status is not 200.
            TransportError: If the transport failed while sending or reading.
        """
        request = self._prepare_send()
        response = self._send(request, stream=True)
        try:
            if response.status_code != HTTP_STATUS_OK:
                self._metrics.record_status_rejection()
                raise UnexpectedStatusError(
                    response.status_code, response.reason_phrase
                )
            try:
                data = response.read()
            except httpx.HTTPError as e:
                msg = f"Failed to read response body: {e}"
                raise TransportError(msg) from e
        finally:
            response.close()

        self._metrics.record_bytes(len(data))
        return data

    def read_text(self) -> str:
        """Send the request and return the body of a 200 response as text."""
        data = self.read_bytes()
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            msg = f"Response body is not valid UTF-8: {e}"
            raise DecodingError(msg) from e

    @overload
    def read_json(self, target: None = None) -> Any: ...

    @overload
    def read_json(self, target: type[T]) -> T: ...

    def read_json(self, target: type[T] | None = None) -> T | Any:
        """Send the request and decode the JSON body of a 200 response.

        Args:
            target: Type to validate the payload into (pydantic model,
                dataclass, ``list[int]``...). Plain JSON values are returned
                when omitted.

        Returns:
            Decoded payload.

        Raises:
            DecodingError: If the payload is malformed or does not match target.
        """
        data = self.read_bytes()
        if target is None:
            try:
                return json.loads(data)
            except ValueError as e:
                msg = f"Response body is not valid JSON: {e}"
                raise DecodingError(msg) from e
        try:
            return TypeAdapter(target).validate_json(data)
        except ValidationError as e:
            msg = f"Response body does not match {target!r}: {e}"
            raise DecodingError(msg) from e

    # Internals

    def _fail(self, error: RequesterError) -> "RequestBuilder":
        if self._error is None:
            self._error = error
            self._machine.transition(BuilderState.FAILED)
        return self

    def _configurable(self) -> bool:
        if self._error is not None or self._machine.is_materialized():
            return False
        self._machine.transition(BuilderState.CONFIGURING)
        return True

    def _set_form(
        self, fields: FormValues, files: tuple[FormFile, ...]
    ) -> "RequestBuilder":
        self._form = FormBody(fields=fields, files=files)
        return self

    def _has_body(self) -> bool:
        return bool(self._raw or self._form.fields or self._form.files)

    def _resolve_body(self) -> BodySource:
        """Collapse the configured raw and form state into one body source.

        Raises:
            ConfigurationError: If both a raw body and form state are set.
        """
        has_form = bool(self._form.fields or self._form.files)
        if self._raw and has_form:
            raise ConfigurationError(RAW_FORM_CONFLICT)
        if self._raw:
            return RawBody(self._raw)
        if has_form:
            return self._form
        return EmptyBody()

    def _parsed_url(self) -> httpx.URL:
        if self._url is None:
            msg = "builder has no parsed URL"
            raise ConfigurationError(msg)
        return self._url

    def _apply_query(self, raw_query: str) -> None:
        try:
            self._url = _with_query(self._parsed_url(), raw_query)
        except httpx.InvalidURL as e:
            msg = f"Invalid query string {raw_query!r}: {e}"
            raise EncodingError(msg) from e
        self._raw_query = raw_query

    def _materialize(self) -> None:
        if self._error is not None or self._request is not None:
            return
        try:
            self._request = self._build_request()
        except RequesterError as e:
            self._fail(e)
            return
        self._machine.transition(BuilderState.MATERIALIZED)
        self._log.debug(
            "request_materialized",
            body=type(self._body).__name__,
            content_type=self._request.headers.get("content-type"),
        )

    def _build_request(self) -> httpx.Request:
        if self._has_body() and self._method not in BODY_METHODS:
            msg = f"body requires a body-bearing method, got {self._method}"
            raise ConfigurationError(msg)
        body = self._body = self._resolve_body()

        content_type = self._content_type
        content: bytes | Iterator[bytes] | None = None
        if isinstance(body, RawBody):
            content = body.data
        elif isinstance(body, FormBody):
            encoded = encode_form(body.fields, body.files)
            content = encoded.content
            content_type = content_type or encoded.content_type

        headers = {"Content-Type": content_type} if content_type else None
        try:
            return self._client.build_request(
                self._method, self._parsed_url(), content=content, headers=headers
            )
        except ValueError as e:
            msg = f"Cannot build request: {e}"
            raise ConfigurationError(msg) from e

    def _prepare_send(self) -> httpx.Request:
        if self._machine.state == BuilderState.EXECUTED:
            msg = "request already executed; create a new builder"
            raise ConfigurationError(msg)
        self._materialize()
        if self._error is not None:
            raise self._error
        if self._request is None:
            msg = "request was not materialized"
            raise ConfigurationError(msg)
        self._machine.transition(BuilderState.EXECUTED)
        return self._request

    def _send(self, request: httpx.Request, stream: bool) -> httpx.Response:
        log = self._log.bind(headers=redact_headers(request.headers.multi_items()))
        log.debug("request_dispatched")

        start_time_ns = time.perf_counter_ns()
        try:
            response = self._client.send(request, stream=stream)
        except httpx.HTTPError as e:
            self._metrics.record_transport_failure()
            msg = f"{request.method} {redact_url_credentials(str(request.url))}: {e}"
            raise TransportError(msg) from e

        duration_ms = (time.perf_counter_ns() - start_time_ns) / 1_000_000
        self._metrics.record_response(response.status_code, duration_ms)
        log.debug(
            "response_received",
            status_code=response.status_code,
            duration_ms=round(duration_ms, 2),
        )
        return response
