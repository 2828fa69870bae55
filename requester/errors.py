"""Exceptions for the request builder.

Configuration-time errors (URL parsing, encoding, conflicting body setup)
are captured by the builder and raised only when the request is executed or
read. Transport, status and decoding errors are raised directly by the
execution calls.
"""


class RequesterError(Exception):
    """Base exception for all request builder errors."""


class UrlParseError(RequesterError):
    """Raised when the endpoint URL cannot be parsed."""

    def __init__(self, url: str, reason: str) -> None:
        """Initialize the error.

        Args:
            url: The URL that failed to parse.
            reason: Parser message.
        """
        self.url = url
        self.reason = reason
        super().__init__(f"Invalid URL {url!r}: {reason}")


class EncodingError(RequesterError):
    """Raised when a value cannot be converted to a query, form or body."""


class ConfigurationError(RequesterError):
    """Raised for conflicting or misapplied body/method combinations."""


class TransportError(RequesterError):
    """Raised when the HTTP transport fails to complete a request.

    The original transport exception is available as ``__cause__``.
    """


class UnexpectedStatusError(RequesterError):
    """Raised when a response status is not 200 OK."""

    def __init__(self, status_code: int, reason_phrase: str) -> None:
        """Initialize the error.

        Args:
            status_code: HTTP status code of the response.
            reason_phrase: Reason phrase of the response.
        """
        self.status_code = status_code
        self.reason_phrase = reason_phrase
        super().__init__(self.status)

    @property
    def status(self) -> str:
        """Status line text, e.g. ``404 Not Found``."""
        return f"{self.status_code} {self.reason_phrase}".strip()


class DecodingError(RequesterError):
    """Raised when a response body cannot be decoded into the requested shape."""
