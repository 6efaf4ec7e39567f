"""Single-attempt materialisation against an httpx client."""

from __future__ import annotations

import zlib

import httpx
import pytest

from httpr import (
    CallContext,
    DeadlineExceeded,
    MaterializationError,
    RequestBuilder,
    RequestCancelled,
    TransportError,
    build_settings,
    with_auto_decompression,
)
from httpr.materializer import materialize
from tests.fixtures.http_mocking import ChunkStream, MockResponseBuilder

pytestmark = pytest.mark.component

URL = "https://api.example.com/data"


def _attempt(respond, *options, context=None):
    request = RequestBuilder().get(URL).build()
    context = context if context is not None else CallContext()
    with httpx.Client(transport=httpx.MockTransport(respond)) as http_client:
        return materialize(http_client, request, build_settings(*options), context)


def test_plain_body():
    outcome = _attempt(lambda request: httpx.Response(200, content=b"plain"))
    assert outcome.error is None
    assert not outcome.failed
    assert outcome.response.content == b"plain"
    assert outcome.response.request_url == URL


def test_deflate_body():
    outcome = _attempt(
        lambda request: httpx.Response(
            200, headers={"Content-Encoding": "deflate"}, content=zlib.compress(b"packed")
        )
    )
    assert outcome.response.content == b"packed"


def test_decompression_disabled():
    packed = zlib.compress(b"packed")
    outcome = _attempt(
        lambda request: httpx.Response(200, headers={"Content-Encoding": "deflate"}, content=packed),
        with_auto_decompression(False),
    )
    assert outcome.response.content == packed


def test_unknown_encoding_passes_through():
    outcome = _attempt(
        lambda request: httpx.Response(200, headers={"Content-Encoding": "identity"}, content=b"raw")
    )
    assert outcome.response.content == b"raw"


def test_transport_failure():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    outcome = _attempt(refuse)

    assert isinstance(outcome.error, TransportError)
    assert str(outcome.error).startswith(f"GET {URL}: ")
    assert outcome.response.status_code == 0


def test_finished_context_short_circuits():
    calls = []
    ctx = CallContext()
    ctx.cancel()

    outcome = _attempt(lambda request: calls.append(request) or httpx.Response(200), context=ctx)

    assert isinstance(outcome.error, RequestCancelled)
    assert calls == []


def test_timeout_reported_as_deadline():
    ctx = CallContext().with_timeout(0.05)

    def slow(request):
        ctx.wait(1)
        raise httpx.ReadTimeout("timed out", request=request)

    outcome = _attempt(slow, context=ctx)

    assert isinstance(outcome.error, DeadlineExceeded)
    assert isinstance(outcome.error.__cause__, httpx.ReadTimeout)


def test_release_failure_after_clean_read():
    stream = ChunkStream([b"complete"], fail_on_close=True)
    outcome = _attempt(lambda request: httpx.Response(200, stream=stream))

    assert isinstance(outcome.error, MaterializationError)
    assert outcome.response.status_code == 200
    assert outcome.response.content == b""
    assert stream.closed


def test_corrupt_deflate_keeps_status_and_headers():
    outcome = _attempt(
        lambda request: MockResponseBuilder(206)
        .with_header("Content-Encoding", "deflate")
        .with_header("X-Part", "1")
        .with_chunks([zlib.compress(b"x" * 100)[:-6]])
        .build()
    )

    assert isinstance(outcome.error, MaterializationError)
    assert outcome.response.status_code == 206
    assert outcome.response.header("X-Part") == "1"
    assert outcome.response.content == b""
