"""Environment-driven client configuration.

:class:`ClientConfig` reads ``HTTPR_*`` environment variables through
pydantic-settings and converts them into the option list the client
consumes. It backs the process-wide default client and the command line.

Example:
    >>> config = ClientConfig(retry_count=3, rate_limit="5/second")
    >>> client = Client(*config.to_options())  # doctest: +SKIP
"""

from __future__ import annotations

import json
import re
from typing import Annotated, Any, List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from .limiter import RateLimiter
from .policy import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RETRY_COUNT,
    DEFAULT_RETRY_DELAY,
    DEFAULT_RETRY_DELAY_DELTA,
)
from .retry import retry_on_failure
from .settings import (
    Option,
    with_auto_decompression,
    with_rate_limiter,
    with_retry_condition,
    with_retry_count,
    with_retry_delay,
    with_retry_delay_delta,
    with_timeout,
    with_transport,
)
from .transport import default_transport

__all__ = ["ClientConfig", "load_config"]

_RATE_LIMIT_PATTERN = re.compile(r"^\s*\d+\s*/\s*(second|minute|hour|day)\s*$", re.IGNORECASE)
_VALID_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class ClientConfig(BaseSettings):
    """Client defaults read from ``HTTPR_*`` environment variables."""

    retry_count: int = Field(
        default=DEFAULT_RETRY_COUNT, ge=0, le=100, description="Attempt ceiling per call"
    )
    retry_delay: float = Field(
        default=DEFAULT_RETRY_DELAY, ge=0.0, description="Seconds before the second attempt"
    )
    retry_delay_delta: float = Field(
        default=DEFAULT_RETRY_DELAY_DELTA,
        ge=0.0,
        description="Seconds added to the delay after each further attempt",
    )
    timeout: Optional[float] = Field(
        default=DEFAULT_REQUEST_TIMEOUT,
        ge=0.0,
        description="Wall-clock budget per call in seconds (0 disables)",
    )
    decompress: bool = Field(default=True, description="Decode gzip/deflate/tar bodies")
    rate_limit: Optional[str] = Field(
        default=None, description="Rate limit such as '5/second' (unset = unlimited)"
    )
    retry_statuses: Annotated[List[int], NoDecode] = Field(
        default_factory=list,
        description="Retry only on errors and these statuses (empty = always retry)",
    )
    verify_tls: bool = Field(default=True, description="Verify server certificates")
    log_level: str = Field(default="WARNING", description="Log level used by the CLI")

    model_config = SettingsConfigDict(
        env_prefix="HTTPR_",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    @field_validator("rate_limit")
    @classmethod
    def validate_rate_limit(cls, value: Optional[str]) -> Optional[str]:
        """Ensure the rate limit follows ``N/second|minute|hour|day``."""
        if value is None or not value.strip():
            return None
        if not _RATE_LIMIT_PATTERN.match(value):
            raise ValueError(
                "rate_limit must look like '<number>/<second|minute|hour|day>'"
            )
        return value.strip()

    @field_validator("retry_statuses", mode="before")
    @classmethod
    def parse_retry_statuses(cls, value: Any) -> Any:
        """Accept a JSON list or a comma-separated string of status codes."""
        if isinstance(value, str):
            text = value.strip()
            if not text:
                return []
            if text.startswith("["):
                return json.loads(text)
            return [item.strip() for item in text.split(",") if item.strip()]
        return value

    @field_validator("retry_statuses")
    @classmethod
    def validate_retry_statuses(cls, value: List[int]) -> List[int]:
        for code in value:
            if not 100 <= code <= 599:
                raise ValueError(f"invalid HTTP status code: {code}")
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        upper = value.upper()
        if upper not in _VALID_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_VALID_LEVELS)}")
        return upper

    def to_options(self) -> List[Option]:
        """Translate this configuration into client options."""
        options: List[Option] = [
            with_retry_count(self.retry_count),
            with_retry_delay(self.retry_delay),
            with_retry_delay_delta(self.retry_delay_delta),
            with_timeout(self.timeout),
            with_auto_decompression(self.decompress),
        ]
        if self.rate_limit:
            options.append(with_rate_limiter(RateLimiter.from_string(self.rate_limit)))
        if self.retry_statuses:
            options.append(with_retry_condition(retry_on_failure(self.retry_statuses)))
        if not self.verify_tls:
            options.append(with_transport(default_transport(verify=False)))
        return options


def load_config(**overrides: Any) -> ClientConfig:
    """Build a :class:`ClientConfig`, letting keyword overrides win over the environment."""
    return ClientConfig(**{key: value for key, value in overrides.items() if value is not None})
