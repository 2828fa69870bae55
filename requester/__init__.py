"""Fluent HTTP request builder with deferred errors.

Build a request through chained calls and execute it::

    data = requester.get("https://example.com/items", {"page": 2}).read_json()

Configuration errors never interrupt the chain; they are stored on the
builder and raised by ``execute`` or the ``read_*`` methods.
"""

from requester.builder import BodySource, EmptyBody, FormBody, RawBody, RequestBuilder
from requester.client import (
    Requester,
    get,
    get_default_requester,
    new_request,
    post,
    post_data,
    post_form,
    post_json,
)
from requester.config import RequesterConfig
from requester.constants import (
    BODY_METHODS,
    CONTENT_TYPE_FORM_URLENCODED,
    CONTENT_TYPE_JSON,
    CONTENT_TYPE_MULTIPART,
    DEFAULT_TIMEOUT_SECONDS,
    HTTP_STATUS_OK,
)
from requester.errors import (
    ConfigurationError,
    DecodingError,
    EncodingError,
    RequesterError,
    TransportError,
    UnexpectedStatusError,
    UrlParseError,
)
from requester.form import EncodedForm, FormFile, encode_form
from requester.metrics import RequesterMetrics
from requester.state_machine import BuilderState, BuilderStateError
from requester.values import Encodable, to_form_values, to_query_fragment, to_raw_bytes


__all__ = [
    # Builder
    "RequestBuilder",
    "BodySource",
    "EmptyBody",
    "RawBody",
    "FormBody",
    "BuilderState",
    "BuilderStateError",
    # Client
    "Requester",
    "RequesterConfig",
    "get_default_requester",
    "new_request",
    "get",
    "post",
    "post_data",
    "post_json",
    "post_form",
    # Encoding
    "Encodable",
    "EncodedForm",
    "FormFile",
    "encode_form",
    "to_form_values",
    "to_query_fragment",
    "to_raw_bytes",
    # Errors
    "RequesterError",
    "UrlParseError",
    "EncodingError",
    "ConfigurationError",
    "TransportError",
    "UnexpectedStatusError",
    "DecodingError",
    # Constants
    "BODY_METHODS",
    "CONTENT_TYPE_FORM_URLENCODED",
    "CONTENT_TYPE_JSON",
    "CONTENT_TYPE_MULTIPART",
    "DEFAULT_TIMEOUT_SECONDS",
    "HTTP_STATUS_OK",
    # Metrics
    "RequesterMetrics",
]
