"""Request building, URL helpers and format-driven requests."""

from __future__ import annotations

import io

import httpx
import pytest

from httpr import (
    CallContext,
    RequestBuildError,
    RequestBuilder,
    accept_header_for,
    build_request,
    content_type_for,
    is_valid_url,
    new_request,
)
from httpr.urls import compose_method, encode_query

pytestmark = pytest.mark.unit


class TestValidUrl:
    @pytest.mark.parametrize(
        "url",
        [
            "https://example.com",
            "https://example.com?page=2",
            "http://api.example.org/v1/items",
            "ftp://files.example.net/a.csv",
            "http://127.0.0.1:8080/health",
        ],
    )
    def test_accepts(self, url):
        assert is_valid_url(url)

    @pytest.mark.parametrize(
        "url",
        [
            "",
            "example.com",
            "/relative/path",
            "http://localhost/x",
            "https://https://example.com",
            "https://http:example.com",
        ],
    )
    def test_rejects(self, url):
        assert not is_valid_url(url)


class TestHelpers:
    def test_compose_method(self):
        assert compose_method("") == "GET"
        assert compose_method("patch") == "PATCH"

    def test_encode_query_sorts_keys(self):
        assert encode_query({"b": ["2"], "a": ["1", "x y"]}) == "a=1&a=x+y&b=2"


class TestRequestBuilder:
    def test_missing_url(self):
        with pytest.raises(RequestBuildError, match="request url is not set"):
            RequestBuilder().build()

    def test_invalid_url_is_recorded(self):
        with pytest.raises(RequestBuildError, match="invalid URL 'not-a-url'"):
            RequestBuilder().get("not-a-url").build()

    def test_first_error_wins(self):
        builder = RequestBuilder().set_url("nope").set_query_string("a=1;b=2")
        with pytest.raises(RequestBuildError, match="invalid URL 'nope'"):
            builder.build()

    def test_later_valid_url_does_not_clear_error(self):
        builder = RequestBuilder().set_url("nope").set_url("https://example.com")
        with pytest.raises(RequestBuildError):
            builder.build()

    def test_default_method_is_get(self):
        spec = RequestBuilder().set_url("https://example.com").build()
        assert spec.method == "GET"

    def test_method_is_upper_cased(self):
        spec = RequestBuilder().set_method("delete").set_url("https://example.com").build()
        assert spec.method == "DELETE"

    @pytest.mark.parametrize(
        "verb, method",
        [
            ("get", "GET"),
            ("post", "POST"),
            ("put", "PUT"),
            ("patch", "PATCH"),
            ("delete", "DELETE"),
            ("options", "OPTIONS"),
            ("head", "HEAD"),
            ("connect", "CONNECT"),
            ("trace", "TRACE"),
        ],
    )
    def test_verb_helpers(self, verb, method):
        spec = getattr(RequestBuilder(), verb)("https://example.com/r").build()
        assert spec.method == method
        assert spec.url == "https://example.com/r"

    def test_query_params_sorted_and_appended(self):
        spec = (
            RequestBuilder()
            .get("https://example.com/x?z=1")
            .set_query_param("b", "2")
            .set_query_param("a", "1")
            .build()
        )
        assert spec.url == "https://example.com/x?z=1&a=1&b=2"

    def test_query_param_replaces_values(self):
        spec = (
            RequestBuilder()
            .get("https://example.com/x")
            .set_query_string("a=1&a=2")
            .set_query_param("a", "3")
            .build()
        )
        assert spec.url == "https://example.com/x?a=3"

    def test_query_string_keeps_repeats(self):
        spec = RequestBuilder().get("https://example.com/x").set_query_string("a=1&a=2").build()
        assert spec.url == "https://example.com/x?a=1&a=2"

    def test_blank_query_key_ignored(self):
        spec = (
            RequestBuilder()
            .get("https://example.com/x")
            .set_query_params({" ": "1", "k": "v"})
            .build()
        )
        assert spec.url == "https://example.com/x?k=v"

    @pytest.mark.parametrize("query", ["a=1;b=2", "a=%zz"])
    def test_malformed_query_string(self, query):
        builder = RequestBuilder().get("https://example.com").set_query_string(query)
        with pytest.raises(RequestBuildError, match="malformed query"):
            builder.build()

    def test_headers_repeat(self):
        spec = (
            RequestBuilder()
            .get("https://example.com")
            .set_header("X-Tag", "a")
            .set_headers({"X-Tag": "b", "Accept": "application/json"})
            .build()
        )
        assert spec.header_values("x-tag") == ["a", "b"]
        assert spec.header("ACCEPT") == "application/json"
        assert spec.header("missing") == ""

    def test_headers_snapshot_is_independent_of_source(self):
        source = {"X-Tag": "a"}
        spec = RequestBuilder().get("https://example.com").set_headers(source).build()
        source["X-Tag"] = "changed"
        assert spec.header("X-Tag") == "a"

    def test_basic_auth_and_cookies(self):
        spec = (
            RequestBuilder()
            .get("https://example.com")
            .set_basic_auth("user", "pass")
            .set_cookies({"a": "1"})
            .set_cookies([("a", "1"), ("b", "2")])
            .build()
        )
        assert spec.header("Authorization") == "Basic dXNlcjpwYXNz"
        assert spec.header("Cookie") == "a=1; b=2"

    def test_context_defaults_to_fresh_context(self):
        spec = RequestBuilder().get("https://example.com").build()
        assert isinstance(spec.context, CallContext)
        assert not spec.context.done()

    def test_context_is_kept(self):
        ctx = CallContext()
        spec = RequestBuilder().get("https://example.com").set_context(ctx).build()
        assert spec.context is ctx

    def test_host(self):
        assert new_request().get("https://api.example.com:8443/x").build().host == "api.example.com"

    def test_string_body_encoded(self):
        spec = RequestBuilder().post("https://example.com", "héllo").build()
        assert spec.body == "héllo".encode("utf-8")

    def test_unsupported_body_type(self):
        with pytest.raises(RequestBuildError, match="unsupported body type"):
            RequestBuilder().post("https://example.com", 42).build()

    def test_seekable_body_rewound_for_each_attempt(self):
        spec = RequestBuilder().post("https://example.com", io.BytesIO(b"payload")).build()
        with httpx.Client() as http_client:
            first = spec.to_httpx(http_client)
            assert first.read() == b"payload"
            second = spec.to_httpx(http_client)
            assert second.read() == b"payload"

    def test_to_httpx_copies_method_url_and_headers(self):
        spec = RequestBuilder().put("https://example.com/x", b"{}").set_header("X-A", "1").build()
        with httpx.Client() as http_client:
            wire = spec.to_httpx(http_client)
        assert wire.method == "PUT"
        assert str(wire.url) == "https://example.com/x"
        assert wire.headers["x-a"] == "1"
        assert wire.read() == b"{}"


class TestFormats:
    def test_content_types(self):
        assert content_type_for("json") == "application/json"
        assert content_type_for("xml") == "application/xml"
        assert content_type_for("csv") == "text/csv"
        assert content_type_for("yaml") == ""

    @pytest.mark.parametrize(
        "compression, format_type, expected",
        [
            ("gzip", "json", "application/gzip"),
            ("tar", "", "application/gzip"),
            ("deflate", "csv", "application/zlib"),
            ("br", "json", "*/*"),
            ("", "xml", "application/xml"),
            ("", "", "*/*"),
        ],
    )
    def test_accept_header(self, compression, format_type, expected):
        assert accept_header_for(compression, format_type) == expected

    def test_build_request_sets_headers(self):
        spec = build_request("https://example.com/data", "post", "gzip", "json", body=b"{}")
        assert spec.method == "POST"
        assert spec.header("Content-Encoding") == "gzip"
        assert spec.header("Content-Type") == "application/json"
        assert spec.header("Accept") == "application/gzip"
        assert spec.body == b"{}"

    def test_build_request_without_compression(self):
        spec = build_request("https://example.com/data", format_type="csv")
        assert spec.header("Content-Encoding") == ""
        assert spec.header("Accept") == "text/csv"

    def test_build_request_invalid_url(self):
        with pytest.raises(RequestBuildError):
            build_request("nope")
