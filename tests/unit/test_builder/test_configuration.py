"""Unit tests for chained configuration and deferred errors."""

from typing import Any

import pytest

from requester.builder import EmptyBody, FormBody, RawBody
from requester.client import Requester
from requester.errors import ConfigurationError, EncodingError, UrlParseError
from requester.form import FormFile
from requester.state_machine import BuilderState
from tests.helpers.transport import RecordingHandler


class TestUrlParsing:
    """Tests for URL parsing at construction."""

    @pytest.mark.unit
    def test_valid_url(self, requester: Requester) -> None:
        """Test that a valid URL leaves the builder unconfigured."""
        builder = requester.new("get", "https://example.com/items?page=1")

        assert builder.ok
        assert builder.method == "GET"
        assert builder.state == BuilderState.UNCONFIGURED
        assert str(builder.url) == "https://example.com/items?page=1"

    @pytest.mark.unit
    def test_invalid_url_sets_error(self, requester: Requester) -> None:
        """Test that an unparseable URL pre-sets a UrlParseError."""
        builder = requester.new("GET", "https://example.com/\npath")

        assert isinstance(builder.error, UrlParseError)
        assert builder.url is None
        assert builder.state == BuilderState.FAILED

    @pytest.mark.unit
    def test_missing_url_guard_raises(self, requester: Requester) -> None:
        """Test that internals needing a URL raise instead of asserting."""
        builder = requester.new("GET", "https://example.com/\npath")

        with pytest.raises(ConfigurationError, match="no parsed URL"):
            builder._parsed_url()

    @pytest.mark.unit
    def test_invalid_url_chain_is_noop(
        self, requester: Requester, handler: RecordingHandler
    ) -> None:
        """Test that every call after a parse failure is a no-op."""
        builder = requester.new("POST", "https://example.com/\npath")

        result = (
            builder.add_query("a=1")
            .set_raw_body("x")
            .add_form_field("k", "v")
            .set_header("X-Test", "1")
        )

        assert result is builder
        assert isinstance(builder.error, UrlParseError)
        assert builder.raw_body == b""
        assert builder.request is None
        with pytest.raises(UrlParseError):
            builder.execute()
        assert handler.requests == []


class TestAccessorsOnly:
    """Tests that accessors never reach the transport."""

    @pytest.mark.unit
    def test_accessors_do_not_send(
        self, requester: Requester, handler: RecordingHandler
    ) -> None:
        """Test that reading builder state never invokes the transport."""
        builder = requester.new("POST", "https://example.com/")

        _ = (
            builder.error,
            builder.ok,
            builder.state,
            builder.method,
            builder.url,
            builder.request,
            builder.raw_body,
            builder.form_fields,
            builder.form_files,
            builder.content_type,
            builder.client,
            repr(builder),
        )

        assert handler.requests == []
        assert builder.request is None


class TestQuery:
    """Tests for query configuration."""

    @pytest.mark.unit
    def test_get_then_add_raw_query(self, requester: Requester) -> None:
        """Test that appended query fragments are joined with &."""
        builder = requester.get("http://x/test", "a=1").add_raw_query("b=2")

        assert builder.url is not None
        assert builder.url.query == b"a=1&b=2"

    @pytest.mark.unit
    def test_add_query_to_existing_query(self, requester: Requester) -> None:
        """Test appending to a query already present in the URL."""
        builder = requester.get("http://x/test?a=1").add_query({"b": [2, 3]})

        assert str(builder.url) == "http://x/test?a=1&b=2&b=3"

    @pytest.mark.unit
    def test_set_query_replaces(self, requester: Requester) -> None:
        """Test that set_query replaces the whole query."""
        builder = requester.get("http://x/test?a=1").set_query("c=3")

        assert str(builder.url) == "http://x/test?c=3"

    @pytest.mark.unit
    def test_set_query_empty_clears(self, requester: Requester) -> None:
        """Test that an empty query removes the query component."""
        builder = requester.get("http://x/test?a=1").set_raw_query()

        assert str(builder.url) == "http://x/test"

    @pytest.mark.unit
    def test_encoding_error_deferred(self, requester: Requester) -> None:
        """Test that an encoder failure is captured, not raised."""
        builder = requester.get("http://x/test").add_query({"a": {"b": 1}})

        assert isinstance(builder.error, EncodingError)
        with pytest.raises(EncodingError):
            builder.read_bytes()

    @pytest.mark.unit
    def test_invalid_raw_query_deferred(self, requester: Requester) -> None:
        """Test that control characters in a raw query are an EncodingError."""
        builder = requester.get("http://x/test").add_query("a=\n")

        assert isinstance(builder.error, EncodingError)


class TestBodyConfiguration:
    """Tests for raw and form body configuration."""

    @pytest.mark.unit
    def test_raw_body(self, requester: Requester) -> None:
        """Test that set_raw_body stores encoded bytes."""
        builder = requester.post("http://x/").set_raw_body({"x": 1})

        assert builder.raw_body == b'{"x":1}'
        assert builder.form_fields == {}

    @pytest.mark.unit
    def test_empty_raw_body_clears(self, requester: Requester) -> None:
        """Test that an empty raw body clears a previous one."""
        builder = requester.post("http://x/").set_raw_body("x").set_raw_body("")

        assert builder.raw_body == b""
        assert builder.ok

    @pytest.mark.unit
    def test_add_form_field_appends(self, requester: Requester) -> None:
        """Test that add_form_field appends to the value list."""
        builder = (
            requester.post("http://x/")
            .add_form_field("a", 1)
            .add_form_field("a", 2)
            .add_form_field("flag", True)
        )

        assert builder.form_fields == {"a": ["1", "2"], "flag": ["true"]}

    @pytest.mark.unit
    def test_set_form_field_overwrites(self, requester: Requester) -> None:
        """Test that set_form_field replaces existing values."""
        builder = (
            requester.post("http://x/")
            .add_form_field("a", 1)
            .add_form_field("a", 2)
            .set_form_field("a", 3)
        )

        assert builder.form_fields == {"a": ["3"]}

    @pytest.mark.unit
    def test_set_form_fields_replaces(self, requester: Requester) -> None:
        """Test that set_form_fields bulk-replaces fields."""
        builder = (
            requester.post("http://x/")
            .add_form_field("old", 1)
            .set_form_fields({"a": "1", "b": ["2", "3"]})
        )

        assert builder.form_fields == {"a": ["1"], "b": ["2", "3"]}

    @pytest.mark.unit
    def test_set_form_fields_keeps_files(self, requester: Requester) -> None:
        """Test that replacing fields keeps attachments."""
        file = FormFile("f", "a.bin", b"x")
        builder = (
            requester.post("http://x/").add_form_file(file).set_form_fields("a=1")
        )

        assert builder.form_files == [file]
        assert builder.form_fields == {"a": ["1"]}

    @pytest.mark.unit
    def test_accessors_return_copies(self, requester: Requester) -> None:
        """Test that mutating accessor results does not change the builder."""
        builder = requester.post("http://x/").add_form_field("a", 1)

        builder.form_fields["a"].append("2")
        builder.form_files.append(FormFile("f", "a.bin", b"x"))

        assert builder.form_fields == {"a": ["1"]}
        assert builder.form_files == []

    @pytest.mark.unit
    def test_non_form_file_rejected(self, requester: Requester) -> None:
        """Test that add_form_file only accepts FormFile instances."""
        raw: Any = b"raw"
        builder = requester.post("http://x/").add_form_file(raw)

        assert isinstance(builder.error, EncodingError)

    @pytest.mark.unit
    def test_body_source_is_tagged(self, requester: Requester) -> None:
        """Test that the body is held as a single tagged source."""
        empty = requester.post("http://x/")
        raw = requester.post("http://x/").set_raw_body("x")
        form = requester.post("http://x/").add_form_field("a", 1)

        assert isinstance(empty._resolve_body(), EmptyBody)
        assert raw._resolve_body() == RawBody(b"x")
        assert isinstance(form._resolve_body(), FormBody)


class TestRawFormExclusivity:
    """Tests for mutual exclusion of raw and form bodies."""

    @pytest.mark.unit
    @pytest.mark.parametrize("raw_first", [True, False])
    def test_raw_and_form_field_conflict(
        self, requester: Requester, handler: RecordingHandler, raw_first: bool
    ) -> None:
        """Test that raw + form yields ConfigurationError in either order."""
        builder = requester.post("http://x/")
        if raw_first:
            builder.set_raw_body("x").add_form_field("a", 1)
        else:
            builder.add_form_field("a", 1).set_raw_body("x")

        with pytest.raises(ConfigurationError, match="mutually exclusive"):
            builder.execute()
        assert handler.requests == []

    @pytest.mark.unit
    def test_raw_and_file_conflict(self, requester: Requester) -> None:
        """Test that raw + attachment yields ConfigurationError."""
        builder = (
            requester.post("http://x/")
            .set_raw_body(b"x")
            .add_form_file(FormFile("f", "a.bin", b"y"))
        )

        assert builder.ok
        with pytest.raises(ConfigurationError, match="mutually exclusive"):
            builder.execute()

    @pytest.mark.unit
    def test_empty_form_does_not_conflict(self, requester: Requester) -> None:
        """Test that an empty field mapping does not count as form state."""
        builder = requester.post("http://x/").set_raw_body("x").set_form_fields({})

        assert builder.ok
        assert builder.raw_body == b"x"

    @pytest.mark.unit
    def test_conflict_resolved_before_execution(
        self, requester: Requester, handler: RecordingHandler
    ) -> None:
        """Test that clearing the form before execution leaves the raw body."""
        builder = (
            requester.post("http://x/")
            .add_form_field("a", 1)
            .set_raw_body("x")
            .set_form_fields({})
        )

        assert builder.ok
        builder.execute()

        assert handler.requests[0].content == b"x"

    @pytest.mark.unit
    def test_raw_cleared_before_execution(
        self, requester: Requester, handler: RecordingHandler
    ) -> None:
        """Test that clearing the raw body lets the form through."""
        builder = (
            requester.post("http://x/").set_raw_body("x").add_form_field("a", 1)
        )

        builder.set_raw_body("").execute()

        assert handler.requests[0].content == b"a=1"


class TestAbsorbingError:
    """Tests that the first error is kept."""

    @pytest.mark.unit
    def test_first_error_wins(self, requester: Requester) -> None:
        """Test that later failures do not replace the first error."""
        builder = (
            requester.post("http://x/")
            .add_query(42)
            .set_raw_body("x")
            .add_form_field("a", 1)
        )

        assert isinstance(builder.error, EncodingError)
        assert builder.raw_body == b""
        assert builder.form_fields == {}

    @pytest.mark.unit
    def test_error_repeated_on_every_read(self, requester: Requester) -> None:
        """Test that execution calls keep raising the same error."""
        builder = requester.get("http://x/").set_raw_body("x")

        with pytest.raises(ConfigurationError) as first:
            builder.execute()
        with pytest.raises(ConfigurationError) as second:
            builder.read_text()

        assert first.value is second.value
