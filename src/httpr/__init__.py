"""httpr: an HTTP client execution layer over HTTPX.

Adds to a plain HTTPX transport:
- Retries with additive backoff, driven by Tenacity
- Rate limiting shared across concurrent calls, backed by pyrate-limiter
- Pre-request (veto-capable) and post-request (observer) hooks
- Automatic gzip/deflate/tar body decompression and full buffering
- Cancellation and deadlines that cut rate-limit and backoff waits short

Modules:
- client: the execution engine and the process-wide default client
- request / response: immutable request descriptors and buffered responses
- settings / config: option mutators and environment-driven configuration
- limiter / retry / hooks: pluggable strategies
- materializer / decoding / redirect: one network attempt

Example:
    >>> from httpr import Client, RequestBuilder, retry_on_status, with_retry_condition
    >>> from httpr import with_retry_count
    >>> client = Client(with_retry_count(3), with_retry_condition(retry_on_status(503)))
    >>> spec = RequestBuilder().get("https://api.example.com/items").build()
    >>> response = client.do(spec)  # doctest: +SKIP
    >>> response.json()  # doctest: +SKIP
"""

from httpr.client import (
    Client,
    close_default_client,
    do,
    get,
    get_default_client,
    new_client,
    reset_default_client,
)
from httpr.config import ClientConfig, load_config
from httpr.context import CallContext, background
from httpr.decoding import (
    COMPRESSION_DEFLATE,
    COMPRESSION_GZIP,
    COMPRESSION_NONE,
    COMPRESSION_TAR,
    open_decoder,
)
from httpr.errors import (
    AttemptsExhaustedError,
    ContextError,
    DeadlineExceeded,
    HttprError,
    MaterializationError,
    RateLimitExceeded,
    RequestBuildError,
    RequestCancelled,
    ResponseError,
    TooManyRedirects,
    TransportError,
    UnsupportedCompression,
)
from httpr.formats import (
    AUTH_BASIC,
    AUTH_BEARER,
    AUTH_NONE,
    AUTH_OAUTH2,
    FORMAT_CSV,
    FORMAT_JSON,
    FORMAT_XML,
    accept_header_for,
    build_request,
    content_type_for,
)
from httpr.hooks import random_delay
from httpr.limiter import Limiter, RateLimiter, RateSpec, UnlimitedLimiter, parse_rate_string
from httpr.redirect import UseLastResponse, default_redirect_check
from httpr.request import RequestBuilder, RequestSpec, new_request
from httpr.response import Response, is_2xx, is_4xx, is_5xx
from httpr.retry import (
    AttemptOutcome,
    always_retry,
    never_retry,
    retry_on_failure,
    retry_on_status,
)
from httpr.settings import (
    ClientSettings,
    Option,
    build_settings,
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
from httpr.transport import (
    BasicAuthTransport,
    BearerAuthTransport,
    build_basic_auth_transport,
    build_bearer_auth_transport,
    default_transport,
)
from httpr.urls import is_valid_url

__version__ = "0.1.0"

__all__ = [
    # Engine
    "Client",
    "new_client",
    "get_default_client",
    "close_default_client",
    "reset_default_client",
    "do",
    "get",
    # Requests & responses
    "RequestBuilder",
    "RequestSpec",
    "new_request",
    "Response",
    "is_2xx",
    "is_4xx",
    "is_5xx",
    "is_valid_url",
    "build_request",
    "content_type_for",
    "accept_header_for",
    "FORMAT_CSV",
    "FORMAT_JSON",
    "FORMAT_XML",
    "AUTH_BASIC",
    "AUTH_BEARER",
    "AUTH_OAUTH2",
    "AUTH_NONE",
    "COMPRESSION_NONE",
    "COMPRESSION_GZIP",
    "COMPRESSION_DEFLATE",
    "COMPRESSION_TAR",
    "open_decoder",
    # Context
    "CallContext",
    "background",
    # Settings
    "ClientSettings",
    "ClientConfig",
    "load_config",
    "Option",
    "build_settings",
    "new_default_settings",
    "with_rate_limiter",
    "with_retry_count",
    "with_retry_delay",
    "with_retry_delay_delta",
    "with_retry_condition",
    "with_timeout",
    "with_transport",
    "with_cookie_jar",
    "with_check_redirect",
    "with_pre_request_hook",
    "with_post_request_hook",
    "with_auto_decompression",
    # Strategies
    "Limiter",
    "UnlimitedLimiter",
    "RateLimiter",
    "RateSpec",
    "parse_rate_string",
    "AttemptOutcome",
    "always_retry",
    "never_retry",
    "retry_on_status",
    "retry_on_failure",
    "random_delay",
    "UseLastResponse",
    "default_redirect_check",
    # Transports
    "default_transport",
    "BasicAuthTransport",
    "BearerAuthTransport",
    "build_basic_auth_transport",
    "build_bearer_auth_transport",
    # Errors
    "HttprError",
    "RequestBuildError",
    "ContextError",
    "RequestCancelled",
    "DeadlineExceeded",
    "TransportError",
    "TooManyRedirects",
    "MaterializationError",
    "AttemptsExhaustedError",
    "ResponseError",
    "RateLimitExceeded",
    "UnsupportedCompression",
]
