"""Command line interface: send one request, or show the effective configuration.

Example:
    $ httpr request GET https://api.example.com/items -H "Accept: application/json"
    $ httpr request POST https://api.example.com/items -d '{"name": "x"}' --retries 3
    $ HTTPR_RETRY_COUNT=5 httpr config
"""

from __future__ import annotations

import json
from typing import List, Optional, Tuple

import typer
from pydantic import ValidationError

from .client import Client
from .config import ClientConfig, load_config
from .errors import HttprError
from .logging_config import setup_logging
from .request import RequestBuilder

app = typer.Typer(
    name="httpr",
    help="HTTP client with retries, rate limiting and automatic decompression",
    no_args_is_help=True,
)


def _parse_header(raw: str) -> Tuple[str, str]:
    name, sep, value = raw.partition(":")
    if not sep or not name.strip():
        raise typer.BadParameter(f"header must look like 'Name: value', got {raw!r}")
    return name.strip(), value.strip()


@app.command()
def request(
    method: str = typer.Argument(..., help="HTTP method, e.g. GET or POST"),
    url: str = typer.Argument(..., help="Absolute URL"),
    header: Optional[List[str]] = typer.Option(
        None, "--header", "-H", help="Request header 'Name: value' (repeatable)"
    ),
    data: Optional[str] = typer.Option(None, "--data", "-d", help="Request body"),
    retries: Optional[int] = typer.Option(None, "--retries", help="Attempt ceiling"),
    retry_delay: Optional[float] = typer.Option(
        None, "--retry-delay", help="Seconds before the second attempt"
    ),
    retry_delta: Optional[float] = typer.Option(
        None, "--retry-delta", help="Seconds added to the delay after each attempt"
    ),
    retry_status: Optional[List[int]] = typer.Option(
        None, "--retry-status", help="Retry only on errors and these statuses (repeatable)"
    ),
    timeout: Optional[float] = typer.Option(None, "--timeout", help="Call timeout in seconds"),
    rate_limit: Optional[str] = typer.Option(None, "--rate-limit", help="e.g. '5/second'"),
    no_decompress: bool = typer.Option(
        False, "--no-decompress", help="Print the body exactly as received"
    ),
    include: bool = typer.Option(
        False, "--include", "-i", help="Print the status line and headers before the body"
    ),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit logs as JSON lines"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="Logging level"),
) -> None:
    """Send one request and print the response body."""
    headers = [_parse_header(item) for item in header or []]

    try:
        config = load_config(
            retry_count=retries,
            retry_delay=retry_delay,
            retry_delay_delta=retry_delta,
            retry_statuses=retry_status or None,
            timeout=timeout,
            rate_limit=rate_limit,
            decompress=False if no_decompress else None,
            log_level=log_level,
        )
    except ValidationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2)

    setup_logging(config.log_level, json_format=json_logs)

    try:
        builder = RequestBuilder().set_method(method).set_url(url)
        for name, value in headers:
            builder.set_header(name, value)
        if data is not None:
            builder.set_body(data)
        spec = builder.build()

        with Client(*config.to_options()) as client:
            response = client.do(spec)
    except HttprError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    if include:
        typer.echo(f"HTTP {response.status_code}")
        for name, value in response.headers.multi_items():
            typer.echo(f"{name}: {value}")
        typer.echo("")
    typer.echo(response.content, nl=False)


@app.command()
def config() -> None:
    """Print the effective HTTPR_* configuration as JSON."""
    try:
        effective = ClientConfig()
    except ValidationError as exc:
        typer.echo(f"Invalid configuration: {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(json.dumps(effective.model_dump(), indent=2))


def main() -> None:
    app()
