"""Conversion of caller values into query fragments and raw request bodies.

Supported shapes form a closed set:

- ``str``: used verbatim as a query fragment (or parsed as one for forms)
- ``Mapping[str, scalar | Sequence[scalar]]``
- pydantic ``BaseModel`` instances, dumped by alias with ``None`` omitted
- objects implementing the ``Encodable`` protocol

Scalars are ``str``, ``int``, ``float`` and ``bool``. Anything else, including
nested mappings or models, raises ``EncodingError``.
"""

import json
from collections.abc import Mapping, Sequence
from typing import Any, Protocol, runtime_checkable
from urllib.parse import parse_qsl, urlencode

from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from requester.errors import EncodingError


FormValues = dict[str, list[str]]


@runtime_checkable
class Encodable(Protocol):
    """Record types that expose their fields for query and form encoding."""

    def to_form_values(self) -> Mapping[str, Any]:
        """Return a flat mapping of field name to scalar or scalar sequence."""
        ...


def stringify(value: Any) -> str:
    """Default textual conversion for form field values."""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _scalar_to_str(key: str, value: Any) -> str:
    if isinstance(value, (str, int, float)):
        return stringify(value)
    msg = f"Unsupported value for field {key!r}: {type(value).__name__}"
    raise EncodingError(msg)


def _as_mapping(value: Any) -> Mapping[str, Any]:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json", by_alias=True, exclude_none=True)
    if isinstance(value, Mapping):
        return value
    if isinstance(value, Encodable):
        return value.to_form_values()
    msg = f"Unsupported value type: {type(value).__name__}"
    raise EncodingError(msg)


def to_form_values(value: Any) -> FormValues:
    """Convert a value into an ordered multi-valued mapping.

    Args:
        value: Query string, mapping, pydantic model or ``Encodable``.

    Returns:
        Mapping of field name to its list of string values.

    Raises:
        EncodingError: If the value's shape is not supported.
    """
    result: FormValues = {}

    if isinstance(value, str):
        for key, item in parse_qsl(value, keep_blank_values=True):
            result.setdefault(key, []).append(item)
        return result

    for key, item in _as_mapping(value).items():
        if not isinstance(key, str):
            msg = f"Field names must be strings, got {type(key).__name__}"
            raise EncodingError(msg)
        if isinstance(item, (str, bytes)) or not isinstance(item, Sequence):
            result[key] = [_scalar_to_str(key, item)]
        else:
            result[key] = [_scalar_to_str(key, element) for element in item]

    return result


def to_query_fragment(*values: Any) -> str:
    """Convert values into a single raw query string.

    Strings are used verbatim; structured values are percent-encoded as
    ``key=value`` pairs, with sequences producing repeated pairs. Fragments
    are joined with ``&``.

    Args:
        values: Query strings or structured values.

    Returns:
        Joined query fragment (empty fragments are skipped).

    Raises:
        EncodingError: If any value's shape is not supported.
    """
    fragments: list[str] = []
    for value in values:
        if isinstance(value, str):
            fragment = value
        else:
            fragment = urlencode(to_form_values(value), doseq=True)
        if fragment:
            fragments.append(fragment)
    return "&".join(fragments)


def to_raw_bytes(value: Any) -> bytes:
    """Convert a value into raw body bytes.

    Args:
        value: ``str`` (UTF-8 encoded), bytes-like (passed through),
            pydantic model or any JSON-serializable value.

    Returns:
        Body bytes.

    Raises:
        EncodingError: If the value cannot be serialized.
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)

    try:
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, BaseModel):
            return value.model_dump_json(by_alias=True).encode("utf-8")
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False).encode(
            "utf-8"
        )
    except (TypeError, ValueError, PydanticSerializationError) as e:
        msg = f"Value cannot be serialized: {e}"
        raise EncodingError(msg) from e
