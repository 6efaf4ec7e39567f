"""Option mutators and environment-driven configuration."""

from __future__ import annotations

from http.cookiejar import CookieJar

import httpx
import pytest
from pydantic import ValidationError

from httpr import (
    ClientConfig,
    RateLimiter,
    Response,
    TransportError,
    UnlimitedLimiter,
    always_retry,
    build_settings,
    load_config,
    new_default_settings,
    with_auto_decompression,
    with_check_redirect,
    with_cookie_jar,
    with_post_request_hook,
    with_pre_request_hook,
    with_rate_limiter,
    with_retry_condition,
    with_retry_count,
    with_retry_delay,
    with_retry_delay_delta,
    with_timeout,
    with_transport,
)
from httpr.hooks import noop_post_request_hook, noop_pre_request_hook

pytestmark = pytest.mark.unit


class TestClientSettings:
    def test_defaults(self):
        settings = new_default_settings()
        assert isinstance(settings.rate_limiter, UnlimitedLimiter)
        assert settings.retry_count == 0
        assert settings.retry_delay == 3.0
        assert settings.retry_delay_delta == 0.0
        assert settings.retry_condition is always_retry
        assert settings.timeout == 60.0
        assert settings.transport is None
        assert isinstance(settings.cookie_jar, CookieJar)
        assert settings.decompress is True
        assert settings.redirect_check is None
        assert settings.pre_request_hook is noop_pre_request_hook
        assert settings.post_request_hook is noop_post_request_hook
        assert not settings.explicit_transport
        assert not settings.explicit_cookie_jar

    def test_fresh_records_do_not_share_state(self):
        assert new_default_settings().cookie_jar is not new_default_settings().cookie_jar

    def test_options_apply_in_order(self):
        settings = build_settings(with_retry_count(2), with_retry_count(5), with_retry_delay(0.5))
        assert settings.retry_count == 5
        assert settings.retry_delay == 0.5

    def test_all_options(self):
        limiter = RateLimiter.from_string("3/second")
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        jar = CookieJar()

        def check(next_request, via):
            return None

        def pre(request):
            return None

        def post(request, response, error):
            return None

        def condition(response, error):
            return False

        settings = build_settings(
            with_rate_limiter(limiter),
            with_retry_delay_delta(1.5),
            with_retry_condition(condition),
            with_timeout(None),
            with_transport(transport),
            with_cookie_jar(jar),
            with_check_redirect(check),
            with_pre_request_hook(pre),
            with_post_request_hook(post),
            with_auto_decompression(False),
        )

        assert settings.rate_limiter is limiter
        assert settings.retry_delay_delta == 1.5
        assert settings.retry_condition is condition
        assert settings.timeout is None
        assert settings.transport is transport and settings.explicit_transport
        assert settings.cookie_jar is jar and settings.explicit_cookie_jar
        assert settings.redirect_check is check
        assert settings.pre_request_hook is pre
        assert settings.post_request_hook is post
        assert settings.decompress is False

    def test_none_values_keep_defaults(self):
        settings = build_settings(
            with_rate_limiter(None),
            with_retry_condition(None),
            with_transport(None),
            with_cookie_jar(None),
            with_pre_request_hook(None),
            with_post_request_hook(None),
        )
        assert isinstance(settings.rate_limiter, UnlimitedLimiter)
        assert settings.retry_condition is always_retry
        assert settings.transport is None and not settings.explicit_transport
        assert not settings.explicit_cookie_jar
        assert settings.pre_request_hook is noop_pre_request_hook

    def test_negative_delay_rejected(self):
        with pytest.raises(ValueError):
            with_retry_delay(-1)


class TestClientConfig:
    def test_defaults(self):
        config = ClientConfig()
        assert config.retry_count == 0
        assert config.retry_delay == 3.0
        assert config.timeout == 60.0
        assert config.rate_limit is None
        assert config.retry_statuses == []
        assert config.verify_tls is True
        assert config.log_level == "WARNING"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("HTTPR_RETRY_COUNT", "4")
        monkeypatch.setenv("HTTPR_RETRY_DELAY", "0.5")
        monkeypatch.setenv("HTTPR_RATE_LIMIT", "10/second")
        monkeypatch.setenv("HTTPR_RETRY_STATUSES", "500, 503")
        monkeypatch.setenv("HTTPR_LOG_LEVEL", "debug")

        config = ClientConfig()

        assert config.retry_count == 4
        assert config.retry_delay == 0.5
        assert config.rate_limit == "10/second"
        assert config.retry_statuses == [500, 503]
        assert config.log_level == "DEBUG"

    def test_json_status_list(self, monkeypatch):
        monkeypatch.setenv("HTTPR_RETRY_STATUSES", "[429, 502]")
        assert ClientConfig().retry_statuses == [429, 502]

    def test_overrides_beat_environment(self, monkeypatch):
        monkeypatch.setenv("HTTPR_RETRY_COUNT", "4")
        assert load_config(retry_count=7, timeout=None).retry_count == 7

    @pytest.mark.parametrize(
        "field, value",
        [
            ("retry_count", -1),
            ("retry_delay", -0.1),
            ("rate_limit", "fast"),
            ("retry_statuses", [42]),
            ("log_level", "LOUD"),
        ],
    )
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            ClientConfig(**{field: value})

    def test_blank_rate_limit_means_unlimited(self):
        assert ClientConfig(rate_limit="  ").rate_limit is None

    def test_to_options(self):
        config = ClientConfig(
            retry_count=3,
            retry_delay=0.2,
            retry_delay_delta=0.1,
            timeout=5,
            decompress=False,
            rate_limit="2/second",
            retry_statuses=[503],
            verify_tls=False,
        )

        settings = build_settings(*config.to_options())

        assert settings.retry_count == 3
        assert settings.retry_delay == 0.2
        assert settings.retry_delay_delta == 0.1
        assert settings.timeout == 5
        assert settings.decompress is False
        assert isinstance(settings.rate_limiter, RateLimiter)
        assert settings.retry_condition(Response(status_code=503), None)
        assert settings.retry_condition(Response(), TransportError("x"))
        assert not settings.retry_condition(Response(status_code=200), None)
        assert isinstance(settings.transport, httpx.HTTPTransport)

    def test_to_options_minimal(self):
        settings = build_settings(*ClientConfig().to_options())
        assert isinstance(settings.rate_limiter, UnlimitedLimiter)
        assert settings.retry_condition is always_retry
        assert settings.transport is None
