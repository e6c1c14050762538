"""
Unit tests for the Request value and the wire parser.
"""

import io

import pytest

from minihttp.http.headers import Headers
from minihttp.http.methods import HTTPMethod
from minihttp.http.request import HTTPParseError, Request, RequestParser, parse_request


class TestRequest:
    """Tests for the immutable Request value."""

    def test_defaults(self):
        request = Request(method="GET", target="/")

        assert request.method is HTTPMethod.GET
        assert request.version == "HTTP/1.1"
        assert len(request.headers) == 0
        assert request.body == b""
        assert dict(request.path_variables) == {}

    def test_none_body_is_empty(self):
        assert Request(method="POST", target="/", body=None).body == b""

    def test_unknown_method_rejected(self):
        with pytest.raises(ValueError):
            Request(method="BREW", target="/")

    def test_header_lookup_case_insensitive(self):
        request = Request(method="GET", target="/", headers={"X-Test": "demo"})

        assert request.header("x-test") == "demo"
        assert request.header("X-TEST") == "demo"
        assert request.header("X-Test") == "demo"
        assert request.header("X-Missing") is None

    def test_headers_are_copied(self):
        source = {"X-Test": "demo"}
        request = Request(method="GET", target="/", headers=source)

        source["X-Test"] = "changed"
        source["X-New"] = "added"

        assert request.header("X-Test") == "demo"
        assert request.header("X-New") is None

    def test_body_is_copied(self):
        source = bytearray(b"abc")
        request = Request(method="POST", target="/", body=source)

        source[0] = ord("z")

        assert request.body == b"abc"

    def test_path_variables_are_read_only(self):
        request = Request(method="GET", target="/", path_variables={"id": "1"})

        with pytest.raises(TypeError):
            request.path_variables["id"] = "2"

    def test_frozen(self):
        request = Request(method="GET", target="/")

        with pytest.raises(AttributeError):
            request.target = "/other"

    def test_with_path_variables(self):
        request = Request(method="GET", target="/users/7")

        updated = request.with_path_variables({"id": "7"})

        assert updated is not request
        assert updated.path_variable("id") == "7"
        assert request.path_variable("id") is None
        assert updated.target == request.target

    def test_with_empty_path_variables_returns_self(self):
        request = Request(method="GET", target="/")

        assert request.with_path_variables({}) is request

    def test_path_and_query(self):
        request = Request(method="GET", target="/search?q=hello%20world&q=again&empty=")

        assert request.path == "/search"
        assert request.query == "q=hello%20world&q=again&empty="
        assert request.query_param("q") == "hello world"
        assert request.query_param("empty") == ""
        assert request.query_param("missing") is None

    def test_text(self):
        request = Request(method="POST", target="/", body="héllo".encode("utf-8"))

        assert request.text == "héllo"


class TestHeaders:
    """Tests for the Headers mapping."""

    def test_last_write_wins(self):
        headers = Headers([("X-Dup", "one"), ("x-dup", "two")])

        assert headers["X-DUP"] == "two"
        assert len(headers) == 1

    def test_keeps_original_casing_and_order(self):
        headers = Headers([("Content-Type", "text/plain"), ("X-A", "1")])

        assert list(headers) == ["Content-Type", "X-A"]

    def test_immutable(self):
        headers = Headers({"A": "1"})

        with pytest.raises(TypeError):
            headers["A"] = "2"
        with pytest.raises(AttributeError):
            headers.extra = 1

    def test_with_defaults_keeps_existing(self):
        headers = Headers({"content-length": "3"})

        merged = headers.with_defaults({"Content-Length": "99", "Content-Type": "x"})

        assert merged["Content-Length"] == "3"
        assert merged["Content-Type"] == "x"

    def test_without(self):
        headers = Headers({"Connection": "keep-alive", "X-A": "1"})

        assert "connection" not in headers.without("CONNECTION")


class TestRequestParser:
    """Tests for reading requests off a byte stream."""

    def test_parse_get(self, sample_get_request):
        request = parse_request(sample_get_request)

        assert request.method is HTTPMethod.GET
        assert request.target == "/api/users?page=1&limit=10"
        assert request.path == "/api/users"
        assert request.version == "HTTP/1.1"
        assert request.header("user-agent") == "pytest"
        assert request.header("x-test") == "demo"
        assert request.body == b""

    def test_parse_post_body(self, sample_post_request):
        request = parse_request(sample_post_request)

        assert request.method is HTTPMethod.POST
        assert request.body == b"name=webby"

    def test_bare_newlines_accepted(self):
        request = parse_request(b"GET /x HTTP/1.1\nHost: a\n\n")

        assert request.target == "/x"
        assert request.header("Host") == "a"

    def test_lowercase_method_accepted(self):
        assert parse_request(b"get / HTTP/1.1\r\n\r\n").method is HTTPMethod.GET

    def test_empty_input_rejected(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"")

    def test_blank_request_line_rejected(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"\r\n\r\n")

    def test_short_request_line_rejected(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET /\r\n\r\n")

    def test_unknown_method_rejected(self):
        with pytest.raises(HTTPParseError, match="Unknown method"):
            parse_request(b"BREW /pot HTTP/1.1\r\n\r\n")

    def test_malformed_header_lines_skipped(self):
        request = parse_request(
            b"GET / HTTP/1.1\r\n"
            b": no-name\r\n"
            b"no-colon-here\r\n"
            b"X-Good:  spaced  \r\n"
            b"\r\n"
        )

        assert list(request.headers) == ["X-Good"]
        assert request.header("x-good") == "spaced"

    def test_header_value_may_contain_colons(self):
        request = parse_request(b"GET / HTTP/1.1\r\nHost: localhost:8080\r\n\r\n")

        assert request.header("Host") == "localhost:8080"

    def test_headers_end_at_eof(self):
        request = parse_request(b"GET / HTTP/1.1\r\nX-A: 1\r\n")

        assert request.header("X-A") == "1"

    def test_invalid_content_length_means_no_body(self):
        request = parse_request(
            b"POST / HTTP/1.1\r\nContent-Length: abc\r\n\r\nignored"
        )

        assert request.body == b""

    def test_content_length_limits_body(self):
        request = parse_request(
            b"POST / HTTP/1.1\r\ncontent-length: 3\r\n\r\nabcdef"
        )

        assert request.body == b"abc"

    def test_truncated_body_delivered_short(self):
        request = parse_request(
            b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc"
        )

        assert request.body == b"abc"

    def test_parse_from_stream_with_client_address(self):
        stream = io.BytesIO(b"GET / HTTP/1.1\r\n\r\n")

        request = RequestParser().parse(stream, ("10.0.0.1", 5000))

        assert request.client_address == ("10.0.0.1", 5000)

    def test_overlong_line_rejected(self):
        parser = RequestParser(max_line_length=16)

        with pytest.raises(HTTPParseError, match="too long"):
            parser.parse(io.BytesIO(b"GET /" + b"a" * 64 + b" HTTP/1.1\r\n\r\n"))


    def test_utf8_target_and_header_values(self):
        request = parse_request(
            "GET /café/josé HTTP/1.1\r\nX-Name: café\r\n\r\n".encode("utf-8")
        )

        assert request.target == "/café/josé"
        assert request.header("X-Name") == "café"

    def test_invalid_utf8_replaced(self):
        request = parse_request(b"GET /a\xff HTTP/1.1\r\n\r\n")

        assert request.target == "/a\ufffd"

    def test_content_length_with_plus_sign(self):
        request = parse_request(b"POST / HTTP/1.1\r\nContent-Length: +3\r\n\r\nabcdef")

        assert request.body == b"abc"

    @pytest.mark.parametrize("value", ["-3", "3.0", "٣", "++3", ""])
    def test_non_ascii_or_signed_content_length_ignored(self, value):
        data = f"POST / HTTP/1.1\r\nContent-Length: {value}\r\n\r\nabc".encode("utf-8")

        assert parse_request(data).body == b""
