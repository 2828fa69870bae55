"""Form body encoding: URL-encoded and multipart/form-data.

Bodies without file attachments are URL-encoded. Attachments switch the body
to multipart/form-data with a random boundary. The boundary is not checked
against the content; 128 random bits make a collision negligible.
"""

import secrets
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO
from urllib.parse import urlencode

from requester.constants import (
    CONTENT_TYPE_FORM_URLENCODED,
    CONTENT_TYPE_MULTIPART,
    CONTENT_TYPE_OCTET_STREAM,
    DEFAULT_CHUNK_SIZE,
    MULTIPART_BOUNDARY_BYTES,
)
from requester.errors import EncodingError


CRLF = b"\r\n"


@dataclass(frozen=True)
class FormFile:
    """A file attachment for a multipart body.

    Attributes:
        field_name: Form field the file is sent under.
        file_name: File name reported to the server.
        content: Bytes, a readable binary stream, or a path opened at send time.
        content_type: Media type of the part.
    """

    field_name: str
    file_name: str
    content: bytes | BinaryIO | Path
    content_type: str = CONTENT_TYPE_OCTET_STREAM

    @classmethod
    def from_path(
        cls,
        field_name: str,
        path: str | Path,
        content_type: str = CONTENT_TYPE_OCTET_STREAM,
    ) -> "FormFile":
        """Create an attachment backed by a file on disk.

        The file is opened lazily while the body is being sent.

        Args:
            field_name: Form field name.
            path: Path of the file.
            content_type: Media type of the part.

        Returns:
            FormFile using the path's base name as file name.
        """
        path = Path(path)
        return cls(
            field_name=field_name,
            file_name=path.name,
            content=path,
            content_type=content_type,
        )

    @property
    def is_buffered(self) -> bool:
        """Whether the content is already held in memory."""
        return isinstance(self.content, (bytes, bytearray))


@dataclass(frozen=True)
class EncodedForm:
    """An encoded form body and the content type announcing it."""

    content_type: str
    content: bytes | Iterator[bytes]


def encode_form(
    fields: Mapping[str, Sequence[str]],
    files: Sequence[FormFile],
    boundary: str | None = None,
) -> EncodedForm:
    """Encode form fields and attachments into a request body.

    Args:
        fields: Ordered multi-valued field mapping.
        files: File attachments; selects multipart encoding when non-empty.
        boundary: Multipart boundary; generated when omitted.

    Returns:
        EncodedForm with its content type. Multipart bodies with stream or
        path backed attachments are returned as a chunk iterator.

    Raises:
        EncodingError: If an attachment's content cannot be read.
    """
    if not files:
        body = urlencode(
            {key: list(values) for key, values in fields.items()}, doseq=True
        )
        return EncodedForm(
            content_type=CONTENT_TYPE_FORM_URLENCODED,
            content=body.encode("ascii"),
        )

    for file in files:
        _check_readable(file)

    boundary = boundary or secrets.token_hex(MULTIPART_BOUNDARY_BYTES)
    content_type = f"{CONTENT_TYPE_MULTIPART}; boundary={boundary}"
    parts = _iter_multipart(fields, files, boundary.encode("ascii"))

    if all(file.is_buffered for file in files):
        return EncodedForm(content_type=content_type, content=b"".join(parts))
    return EncodedForm(content_type=content_type, content=parts)


def _quote_param(value: str) -> str:
    return value.replace('"', "%22").replace("\r", "%0D").replace("\n", "%0A")


def _field_header(name: str) -> bytes:
    return f'Content-Disposition: form-data; name="{_quote_param(name)}"'.encode()


def _file_headers(file: FormFile) -> bytes:
    disposition = (
        f'Content-Disposition: form-data; name="{_quote_param(file.field_name)}"; '
        f'filename="{_quote_param(file.file_name)}"'
    )
    return f"{disposition}\r\nContent-Type: {file.content_type}".encode()


def _iter_multipart(
    fields: Mapping[str, Sequence[str]],
    files: Sequence[FormFile],
    boundary: bytes,
) -> Iterator[bytes]:
    delimiter = b"--" + boundary + CRLF

    for name, values in fields.items():
        for value in values:
            yield delimiter + _field_header(name) + CRLF + CRLF
            yield value.encode("utf-8") + CRLF

    for file in files:
        yield delimiter + _file_headers(file) + CRLF + CRLF
        yield from _iter_file_content(file)
        yield CRLF

    yield b"--" + boundary + b"--" + CRLF


def _check_readable(file: FormFile) -> None:
    content = file.content
    if isinstance(content, (bytes, bytearray)):
        return

    if isinstance(content, Path):
        if not content.is_file():
            msg = f"Attachment {file.file_name!r} not found: {content}"
            raise EncodingError(msg)
        return

    closed = getattr(content, "closed", False)
    if closed or not callable(getattr(content, "read", None)):
        msg = f"Attachment {file.file_name!r} is not a readable stream"
        raise EncodingError(msg)

    readable = getattr(content, "readable", None)
    if readable is not None and not readable():
        msg = f"Attachment {file.file_name!r} is not a readable stream"
        raise EncodingError(msg)


def _iter_file_content(file: FormFile) -> Iterator[bytes]:
    content = file.content
    if isinstance(content, (bytes, bytearray)):
        yield bytes(content)
        return

    if isinstance(content, Path):
        try:
            handle = content.open("rb")
        except OSError as e:
            msg = f"Cannot open attachment {file.file_name!r}: {e}"
            raise EncodingError(msg) from e
        with handle:
            yield from _read_chunks(handle, file.file_name)
        return

    yield from _read_chunks(content, file.file_name)


def _read_chunks(stream: BinaryIO, file_name: str) -> Iterator[bytes]:
    while True:
        try:
            chunk = stream.read(DEFAULT_CHUNK_SIZE)
        except (OSError, ValueError) as e:
            msg = f"Cannot read attachment {file_name!r}: {e}"
            raise EncodingError(msg) from e
        if not chunk:
            return
        if not isinstance(chunk, (bytes, bytearray)):
            msg = f"Attachment {file_name!r} must be opened in binary mode"
            raise EncodingError(msg)
        yield bytes(chunk)
