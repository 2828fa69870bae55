"""Client facade and construction entry points for request builders."""

import threading
from types import TracebackType
from typing import Any

import httpx

from requester.builder import RequestBuilder
from requester.config import RequesterConfig
from requester.constants import CONTENT_TYPE_JSON


class Requester:
    """Creates request builders that share one HTTP client.

    The client is created from ``RequesterConfig`` unless one is injected;
    an injected client is never closed by the requester.
    """

    def __init__(
        self,
        config: RequesterConfig | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        """Initialize the requester.

        Args:
            config: Client configuration (defaults apply when omitted).
            client: Pre-built HTTP client to send requests on.
        """
        self._config = config or RequesterConfig()
        self._owns_client = client is None
        self._client = client if client is not None else self._config.create_client()

    def __enter__(self) -> "Requester":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        self.close()

    @property
    def config(self) -> RequesterConfig:
        """Client configuration."""
        return self._config

    @property
    def client(self) -> httpx.Client:
        """Shared HTTP client."""
        return self._client

    def close(self) -> None:
        """Close the HTTP client if this requester created it."""
        if self._owns_client:
            self._client.close()

    def new(self, method: str, url: str | httpx.URL) -> RequestBuilder:
        """Create a builder for an arbitrary method."""
        return RequestBuilder(method, url, self._client)

    def get(self, url: str | httpx.URL, *query: Any) -> RequestBuilder:
        """Create a GET builder, appending any query values.

        Args:
            url: Target URL.
            query: Raw query strings or structured values.

        Returns:
            New builder.
        """
        builder = self.new("GET", url)
        if query:
            builder.add_query(*query)
        return builder

    def post(self, url: str | httpx.URL) -> RequestBuilder:
        """Create a POST builder with no body."""
        return self.new("POST", url)

    def post_data(
        self, url: str | httpx.URL, content_type: str, value: Any
    ) -> RequestBuilder:
        """Create a POST builder with a raw body and explicit content type.

        Args:
            url: Target URL.
            content_type: Content-Type of the body.
            value: String, bytes or JSON-serializable value.

        Returns:
            New builder.
        """
        return self.post(url).set_raw_body(value).set_content_type(content_type)

    def post_json(self, url: str | httpx.URL, value: Any) -> RequestBuilder:
        """Create a POST builder with a JSON body."""
        return self.post_data(url, CONTENT_TYPE_JSON, value)

    def post_form(self, url: str | httpx.URL, value: Any) -> RequestBuilder:
        """Create a POST builder with form fields.

        Args:
            url: Target URL.
            value: Query string, mapping, pydantic model or ``Encodable``.

        Returns:
            New builder.
        """
        return self.post(url).set_form_fields(value)


_default_requester: Requester | None = None
_default_lock = threading.Lock()


def get_default_requester() -> Requester:
    """Get the process-wide requester used by the module-level constructors."""
    global _default_requester  # noqa: PLW0603
    with _default_lock:
        if _default_requester is None:
            _default_requester = Requester()
        return _default_requester


def new_request(method: str, url: str | httpx.URL) -> RequestBuilder:
    """Create a builder on the default requester."""
    return get_default_requester().new(method, url)


def get(url: str | httpx.URL, *query: Any) -> RequestBuilder:
    """Create a GET builder on the default requester."""
    return get_default_requester().get(url, *query)


def post(url: str | httpx.URL) -> RequestBuilder:
    """Create a POST builder on the default requester."""
    return get_default_requester().post(url)


def post_data(url: str | httpx.URL, content_type: str, value: Any) -> RequestBuilder:
    """Create a raw-body POST builder on the default requester."""
    return get_default_requester().post_data(url, content_type, value)


def post_json(url: str | httpx.URL, value: Any) -> RequestBuilder:
    """Create a JSON POST builder on the default requester."""
    return get_default_requester().post_json(url, value)


def post_form(url: str | httpx.URL, value: Any) -> RequestBuilder:
    """Create a form POST builder on the default requester."""
    return get_default_requester().post_form(url, value)
