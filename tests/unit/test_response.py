"""
Unit tests for HTTP response building.
"""

from datetime import datetime, timezone

import pytest

from httpsteps.http.response import (
    HTTPResponse,
    ResponseBuilder,
    HTTPStatus,
    ok,
    created,
    text,
    not_found_page,
    method_not_allowed,
    internal_error,
    service_unavailable,
    format_http_date,
)


def split_response(data: bytes):
    """Split serialized bytes into (status line, headers dict, body)."""
    head, _, body = data.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        assert HTTPResponse(status=HTTPStatus.CREATED).status_line == "HTTP/1.1 201 Created"

    def test_to_bytes_adds_standard_headers(self):
        response = HTTPResponse(status=HTTPStatus.OK, body=b"pong!")

        status_line, headers, body = split_response(response.to_bytes("test/1.0"))

        assert status_line == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "5"
        assert headers["Server"] == "test/1.0"
        assert headers["Date"].endswith(" GMT")
        assert body == b"pong!"

    def test_to_bytes_keeps_explicit_headers(self):
        response = HTTPResponse(headers={"Server": "custom"}, body=b"x")
        _, headers, _ = split_response(response.to_bytes("ignored"))
        assert headers["Server"] == "custom"

    def test_head_response_omits_body(self):
        response = ok("hello, world!")

        status_line, headers, body = split_response(response.to_bytes(include_body=False))

        assert status_line == "HTTP/1.1 200 OK"
        assert headers["Content-Length"] == "13"
        assert body == b""

    def test_text_property(self):
        assert HTTPResponse(body="héllo".encode("utf-8")).text == "héllo"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_json_is_compact(self):
        response = ResponseBuilder().json({"Content": "buy milk", "Done": False}).build()

        assert response.body == b'{"Content":"buy milk","Done":false}'
        assert response.headers["Content-Type"] == "application/json"

    def test_json_keeps_unicode(self):
        response = ResponseBuilder().json({"Content": "café"}).build()
        assert response.body == '{"Content":"café"}'.encode("utf-8")

    def test_text(self):
        response = ResponseBuilder().status(HTTPStatus.BAD_REQUEST).text("nope").build()

        assert response.status == HTTPStatus.BAD_REQUEST
        assert response.body == b"nope"
        assert response.headers["Content-Type"] == "text/plain; charset=utf-8"

    def test_status_accepts_int(self):
        response = ResponseBuilder().status(404).build()
        assert response.status is HTTPStatus.NOT_FOUND

    def test_headers_and_close(self):
        response = (ResponseBuilder()
            .headers({"Location": "/todo-item/0"})
            .close_connection()
            .build())

        assert response.headers == {"Location": "/todo-item/0", "Connection": "close"}

    def test_builds_independent_responses(self):
        builder = ResponseBuilder().header("X-One", "1")
        first = builder.build()
        builder.header("X-Two", "2")

        assert "X-Two" not in first.headers


class TestHelpers:
    """Tests for convenience functions."""

    def test_ok_default_is_empty(self):
        response = ok()
        assert response.status == HTTPStatus.OK
        assert response.body == b""
        assert "Content-Type" not in response.headers

    def test_ok_text(self):
        response = ok("pong!")
        assert response.body == b"pong!"
        assert response.headers["Content-Type"].startswith("text/plain")

    @pytest.mark.parametrize("payload, expected", [
        ([], b"[]"),
        ([{"Content": "a", "Done": True}], b'[{"Content":"a","Done":true}]'),
    ])
    def test_ok_json(self, payload, expected):
        assert ok(payload).body == expected

    def test_created(self):
        response = created("http://localhost:8080/todo-item/0")

        assert response.status == HTTPStatus.CREATED
        assert response.headers["Location"] == "http://localhost:8080/todo-item/0"
        assert response.body == b""

    def test_text_helper_has_no_trailing_newline(self):
        response = text(HTTPStatus.NOT_FOUND, "`id` not found")
        assert response.body == b"`id` not found"

    def test_not_found_page(self):
        response = not_found_page()
        assert response.status == HTTPStatus.NOT_FOUND
        assert response.body == b"404 page not found\n"

    def test_method_not_allowed(self):
        response = method_not_allowed(["GET", "HEAD"])

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, HEAD"
        assert response.body == b"Method Not Allowed\n"

    def test_internal_error(self):
        assert internal_error().status == HTTPStatus.INTERNAL_SERVER_ERROR

    def test_service_unavailable_closes(self):
        response = service_unavailable()
        assert response.status == HTTPStatus.SERVICE_UNAVAILABLE
        assert response.headers["Connection"] == "close"


def test_format_http_date():
    dt = datetime(2026, 10, 17, 9, 5, 3, tzinfo=timezone.utc)
    assert format_http_date(dt) == "Sat, 17 Oct 2026 09:05:03 GMT"
