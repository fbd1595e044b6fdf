"""
Unit tests for the middleware pipeline and access log.
"""

import json
import logging

import pytest

from httpsteps.http.request import HTTPRequest
from httpsteps.http.response import HTTPResponse, ok
from httpsteps.middleware import Middleware, MiddlewarePipeline, AccessLogMiddleware, RequestLog


class Tag(Middleware):
    """Records the order it runs in."""

    def __init__(self, label, calls):
        self.label = label
        self.calls = calls

    def __call__(self, request, next):
        self.calls.append(f"{self.label}:before")
        response = next(request)
        self.calls.append(f"{self.label}:after")
        return response


class ShortCircuit(Middleware):
    def __call__(self, request, next):
        return ok("blocked")


def handler(request: HTTPRequest) -> HTTPResponse:
    return ok("pong!")


class TestMiddlewarePipeline:

    def test_order(self):
        calls = []
        pipeline = MiddlewarePipeline().use(Tag("outer", calls), Tag("inner", calls))

        response = pipeline.wrap(handler)(HTTPRequest(method="GET", path="/"))

        assert response.body == b"pong!"
        assert calls == ["outer:before", "inner:before", "inner:after", "outer:after"]
        assert len(pipeline) == 2

    def test_empty_pipeline_is_handler(self):
        assert MiddlewarePipeline().wrap(handler) is handler

    def test_short_circuit(self):
        pipeline = MiddlewarePipeline().add(ShortCircuit())
        response = pipeline.wrap(handler)(HTTPRequest(method="GET", path="/"))
        assert response.body == b"blocked"

    def test_name(self):
        assert ShortCircuit().name == "ShortCircuit"


class TestAccessLogMiddleware:

    def request(self) -> HTTPRequest:
        return HTTPRequest(
            method="GET",
            path="/todo-item",
            query_string="a=1",
            headers={"user-agent": "pytest"},
            client_address=("127.0.0.1", 5555),
        )

    def test_text_line(self, caplog):
        middleware = AccessLogMiddleware()

        with caplog.at_level(logging.INFO, logger="httpsteps.access"):
            response = middleware(self.request(), handler)

        assert len(response.headers["X-Request-ID"]) == 8
        line = caplog.records[-1].getMessage()
        assert line.startswith("127.0.0.1 - - [")
        assert '"GET /todo-item?a=1" 200 5 ' in line

    def test_json_line(self, caplog):
        middleware = AccessLogMiddleware(log_format="json", include_request_id=False)

        with caplog.at_level(logging.INFO, logger="httpsteps.access"):
            response = middleware(self.request(), handler)

        assert "X-Request-ID" not in response.headers
        entry = json.loads(caplog.records[-1].getMessage())
        assert entry["method"] == "GET"
        assert entry["path"] == "/todo-item"
        assert entry["status_code"] == 200
        assert entry["user_agent"] == "pytest"

    def test_skip_paths(self, caplog):
        middleware = AccessLogMiddleware(skip_paths=["/todo-item"])

        with caplog.at_level(logging.INFO, logger="httpsteps.access"):
            middleware(self.request(), handler)

        assert not caplog.records

    def test_errors_are_logged_and_reraised(self, caplog):
        def broken(request):
            raise RuntimeError("boom")

        with caplog.at_level(logging.INFO, logger="httpsteps.access"):
            with pytest.raises(RuntimeError):
                AccessLogMiddleware()(self.request(), broken)

        assert "RuntimeError: boom" in caplog.records[-1].getMessage()

    def test_unknown_format(self):
        with pytest.raises(ValueError):
            AccessLogMiddleware(log_format="xml")


def test_request_log_to_text_without_query():
    entry = RequestLog(
        request_id="abcd1234",
        method="DELETE",
        path="/todo-item/0",
        query="",
        client_ip="10.0.0.1",
        user_agent="-",
        status_code=200,
        content_length=0,
        duration_ms=1.234,
        timestamp="17/Oct/2026:12:00:00 +0000",
    )

    assert entry.to_text() == (
        '10.0.0.1 - - [17/Oct/2026:12:00:00 +0000] "DELETE /todo-item/0" 200 0 1.23ms'
    )
    assert entry.to_dict()["duration_ms"] == 1.23
