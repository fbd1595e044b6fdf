"""
Unit tests for HTTP request parsing and form decoding.
"""

import pytest

from httpsteps.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    FormError,
    parse_form_data,
    parse_request,
)


def form_request(method: str, body: str, content_type: str = "application/x-www-form-urlencoded",
                 query: str = "") -> HTTPRequest:
    return HTTPRequest(
        method=method,
        path="/todo-item",
        headers={"content-type": content_type},
        query_string=query,
        body=body.encode("utf-8"),
    )


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_get_request(self, sample_get_request):
        request = parse_request(sample_get_request)

        assert request.method == "GET"
        assert request.path == "/todo-item/3"
        assert request.version == "HTTP/1.1"
        assert request.query_string == "verbose=1"
        assert request.get_query("verbose") == "1"
        assert request.host == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.body == b""

    def test_parse_form_post(self, sample_form_request):
        request = parse_request(sample_form_request)

        assert request.method == "POST"
        assert request.content_type == "application/x-www-form-urlencoded"
        assert request.content_length == len(b"content=buy+milk&done=false")
        assert request.form_value("content") == "buy milk"
        assert request.form_value("done") == "false"

    def test_headers_are_lowercased(self):
        request = parse_request(b"GET / HTTP/1.1\r\nX-Custom-Header: Value\r\n\r\n")

        assert request.headers["x-custom-header"] == "Value"
        assert request.get_header("X-CUSTOM-HEADER") == "Value"

    def test_repeated_headers_are_joined(self):
        request = parse_request(b"GET / HTTP/1.1\r\nAccept: a\r\nAccept: b\r\n\r\n")
        assert request.headers["accept"] == "a, b"

    def test_keep_alive_defaults(self):
        http11 = parse_request(b"GET / HTTP/1.1\r\n\r\n")
        http10 = parse_request(b"GET / HTTP/1.0\r\n\r\n")
        closing = parse_request(b"GET / HTTP/1.1\r\nConnection: close\r\n\r\n")

        assert http11.is_keep_alive
        assert not http10.is_keep_alive
        assert not closing.is_keep_alive

    def test_percent_encoded_path(self):
        request = parse_request(b"GET /todo-item/%31 HTTP/1.1\r\n\r\n")
        assert request.path == "/todo-item/1"

    def test_body_stops_at_content_length(self):
        request = parse_request(b"PUT /x HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef")
        assert request.body == b"abc"

    def test_client_address_is_kept(self):
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n", ("10.0.0.1", 5000))
        assert request.client_address == ("10.0.0.1", 5000)

    def test_missing_terminator(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/1.1\r\nHost: x\r\n")
        assert exc_info.value.status_code == 400

    def test_invalid_request_line(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GARBAGE\r\n\r\n")
        assert exc_info.value.status_code == 400

    def test_unknown_method(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"BREW /pot HTTP/1.1\r\n\r\n")
        assert exc_info.value.status_code == 405

    def test_unsupported_version(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/2.0\r\n\r\n")
        assert exc_info.value.status_code == 505

    def test_path_traversal_rejected(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET /a/../b HTTP/1.1\r\n\r\n")

    @pytest.mark.parametrize("value", [b"abc", b"-1"])
    def test_invalid_content_length(self, value):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\n")
        assert exc_info.value.status_code == 400

    def test_incomplete_body(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc")

    def test_request_too_large(self):
        parser = RequestParser(max_request_size=32)
        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"GET /" + b"a" * 64 + b" HTTP/1.1\r\n\r\n")
        assert exc_info.value.status_code == 413


class TestFormData:
    """Tests for urlencoded form decoding."""

    def test_basic_pairs(self):
        assert parse_form_data("content=buy+milk&done=true") == {
            "content": ["buy milk"],
            "done": ["true"],
        }

    def test_percent_escapes_and_utf8(self):
        assert parse_form_data("content=caf%C3%A9%26co") == {"content": ["café&co"]}

    def test_repeated_and_empty_values(self):
        assert parse_form_data("a=1&a=2&b=&c&&") == {"a": ["1", "2"], "b": [""], "c": [""]}

    def test_empty_input(self):
        assert parse_form_data("") == {}

    def test_invalid_utf8_is_replaced(self):
        assert parse_form_data("content=%FFok") == {"content": ["\ufffdok"]}

    @pytest.mark.parametrize("data", ["content=%zz", "content=%4", "done=1;x=2"])
    def test_malformed_data(self, data):
        with pytest.raises(FormError):
            parse_form_data(data)


class TestParseForm:
    """Tests for HTTPRequest.parse_form and form_value."""

    def test_body_values_come_before_query_values(self):
        request = form_request("POST", "content=body", query="content=query")

        assert request.parse_form()["content"] == ["body", "query"]
        assert request.form_value("content") == "body"

    def test_missing_field_is_empty(self):
        assert form_request("POST", "content=x").form_value("done") == ""

    def test_body_ignored_without_form_content_type(self):
        request = form_request("POST", "content=x", content_type="text/plain")
        assert request.form_value("content") == ""

    def test_body_ignored_for_get(self):
        request = form_request("GET", "content=x")
        assert request.form_value("content") == ""

    def test_content_type_parameters_are_ignored(self):
        request = form_request(
            "PATCH", "done=true",
            content_type="application/x-www-form-urlencoded; charset=utf-8",
        )
        assert request.form_value("done") == "true"

    def test_query_is_read_for_every_method(self):
        request = form_request("DELETE", "", query="done=1")
        assert request.form_value("done") == "1"

    def test_malformed_body_raises(self):
        with pytest.raises(FormError):
            form_request("PUT", "content=%").parse_form()

    def test_malformed_query_raises(self):
        with pytest.raises(FormError):
            form_request("PUT", "content=x", query="a=1;b=2").form_value("content")

    def test_non_utf8_body_is_replaced(self):
        request = HTTPRequest(
            method="POST",
            path="/todo-item",
            headers={"content-type": "application/x-www-form-urlencoded"},
            body=b"content=\xff",
        )
        assert request.form_value("content") == "\ufffd"
