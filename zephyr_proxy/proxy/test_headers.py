import base64

import httpx
from starlette.datastructures import MutableHeaders

from zephyr_proxy.proxy.headers import (
    apply_cors_headers,
    basic_auth_header,
    copy_response_headers,
    cors_headers,
    prepare_request_headers,
    request_has_body,
)


def _raw(*pairs):
    return [(k.encode("latin-1"), v.encode("latin-1")) for k, v in pairs]


class TestBasicAuthHeader:
    def test_encodes_username_and_password(self):
        value = basic_auth_header("admin", "0000abc!")

        assert value.startswith("Basic ")
        assert base64.b64decode(value[len("Basic "):]).decode() == "admin:0000abc!"

    def test_colon_in_password_is_kept(self):
        value = basic_auth_header("user", "pa:ss")

        assert base64.b64decode(value.split(" ", 1)[1]) == b"user:pa:ss"


class TestPrepareRequestHeaders:
    def test_configured_authorization_comes_first(self):
        headers = prepare_request_headers(_raw(("accept", "application/json")), "Basic abc")

        assert headers[0] == ("Authorization", "Basic abc")
        assert ("accept", "application/json") in headers

    def test_inbound_authorization_is_replaced(self):
        headers = prepare_request_headers(
            _raw(("authorization", "Bearer caller-token")), "Basic abc"
        )

        values = [v for k, v in headers if k.lower() == "authorization"]
        assert values == ["Basic abc"]

    def test_repeated_headers_stay_separate_and_ordered(self):
        headers = prepare_request_headers(
            _raw(("cookie", "a=1"), ("x-trace", "t"), ("cookie", "b=2")), "Basic abc"
        )

        cookies = [v for k, v in headers if k == "cookie"]
        assert cookies == ["a=1", "b=2"]

    def test_host_and_hop_by_hop_headers_removed(self):
        headers = prepare_request_headers(
            _raw(
                ("host", "proxy.example.com"),
                ("connection", "keep-alive"),
                ("transfer-encoding", "chunked"),
                ("upgrade", "websocket"),
                ("user-agent", "test-agent"),
            ),
            "Basic abc",
        )
        names = {k for k, _ in headers}

        assert "host" not in names
        assert "connection" not in names
        assert "transfer-encoding" not in names
        assert "upgrade" not in names
        assert "user-agent" in names

    def test_headers_named_in_connection_are_removed(self):
        headers = prepare_request_headers(
            _raw(("connection", "close, X-Hop"), ("x-hop", "1"), ("x-keep", "2")),
            "Basic abc",
        )
        names = {k for k, _ in headers}

        assert "x-hop" not in names
        assert "x-keep" in names

    def test_content_length_passes_through(self):
        headers = prepare_request_headers(_raw(("content-length", "12")), "Basic abc")

        assert ("content-length", "12") in headers


class TestRequestHasBody:
    def test_positive_content_length(self):
        assert request_has_body(_raw(("content-length", "5")))

    def test_zero_content_length(self):
        assert not request_has_body(_raw(("content-length", "0")))

    def test_chunked_transfer_encoding(self):
        assert request_has_body(_raw(("transfer-encoding", "chunked")))

    def test_no_body_headers(self):
        assert not request_has_body(_raw(("accept", "*/*")))

    def test_invalid_content_length(self):
        assert not request_has_body(_raw(("content-length", "abc")))


class TestCopyResponseHeaders:
    def test_all_values_copied(self):
        upstream = httpx.Headers(
            [
                ("X-Foo", "bar"),
                ("Set-Cookie", "a=1; Path=/"),
                ("Set-Cookie", "b=2; Path=/"),
            ]
        )
        target = MutableHeaders()

        copy_response_headers(upstream, target)

        assert target["x-foo"] == "bar"
        assert target.getlist("set-cookie") == ["a=1; Path=/", "b=2; Path=/"]

    def test_length_and_hop_by_hop_headers_skipped(self):
        upstream = httpx.Headers(
            [
                ("Content-Length", "10"),
                ("Transfer-Encoding", "chunked"),
                ("Connection", "keep-alive"),
                ("Content-Type", "application/json"),
            ]
        )
        target = MutableHeaders()

        copy_response_headers(upstream, target)

        assert "content-length" not in target
        assert "transfer-encoding" not in target
        assert "connection" not in target
        assert target["content-type"] == "application/json"

    def test_content_encoding_kept(self):
        target = MutableHeaders()

        copy_response_headers(httpx.Headers({"Content-Encoding": "gzip"}), target)

        assert target["content-encoding"] == "gzip"


class TestCorsHeaders:
    def test_exact_values(self):
        assert cors_headers("http://localhost:8484") == {
            "Access-Control-Allow-Origin": "http://localhost:8484",
            "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
            "Access-Control-Allow-Headers": "Authorization, Content-Type, Cookie",
            "Access-Control-Allow-Credentials": "true",
        }

    def test_apply_overrides_upstream_values(self):
        target = MutableHeaders()
        target.append("Access-Control-Allow-Origin", "*")
        target.append("Access-Control-Allow-Origin", "http://evil.example")

        apply_cors_headers(target, "http://localhost:8484")

        assert target.getlist("access-control-allow-origin") == ["http://localhost:8484"]
        assert target["access-control-allow-credentials"] == "true"
