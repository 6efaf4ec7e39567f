# === NAVMAP v1 ===
# {
#   "module": "tests.conftest",
#   "purpose": "Shared pytest fixtures for suite",
#   "sections": [
#     {
#       "id": "configure-determinism",
#       "name": "_configure_determinism",
#       "anchor": "function-configure-determinism",
#       "kind": "function"
#     },
#     {
#       "id": "pytest-configure",
#       "name": "pytest_configure",
#       "anchor": "function-pytest-configure",
#       "kind": "function"
#     },
#     {
#       "id": "isolate-environment",
#       "name": "isolate_environment",
#       "anchor": "function-isolate-environment",
#       "kind": "function"
#     },
#     {
#       "id": "silent-server",
#       "name": "silent_server",
#       "anchor": "function-silent-server",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""
Pytest Configuration

Shared behaviour for the suite: deterministic environment, Hypothesis
profile, test strata markers, per-test isolation of ``HTTPR_*`` variables,
the ``httpr`` logger and the default client, plus a loopback server that
accepts connections and never answers.
"""

from __future__ import annotations

import logging
import os
import random
import socket
import threading
from typing import Generator

import pytest
from hypothesis import HealthCheck, settings

from httpr import reset_default_client
from tests.fixtures.http_mocking import http_mock, mock_client  # noqa: F401


def _configure_determinism() -> None:
    """
    Initialize global determinism controls for reproducible test runs.

    Controls:
    - random.seed: Python's random module seed
    - Environment: clear proxy variables so loopback traffic stays local
    - Hypothesis: no per-example deadline (tests sleep on real clocks)
    """
    os.environ["TZ"] = "UTC"

    for var in ["HTTP_PROXY", "HTTPS_PROXY", "ALL_PROXY", "http_proxy", "https_proxy", "all_proxy"]:
        os.environ.pop(var, None)

    random.seed(42)

    settings.register_profile(
        "test",
        max_examples=25,
        deadline=None,
        suppress_health_check=[HealthCheck.too_slow, HealthCheck.function_scoped_fixture],
    )
    settings.load_profile("test")


_configure_determinism()


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "unit: mark test as pure unit test (no I/O). "
        "Use for isolated function/method testing without fixtures beyond mocks.",
    )
    config.addinivalue_line(
        "markers",
        "component: mark test as component-level (drives the client over a mock "
        "transport or a loopback socket).",
    )


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    """Clear ``HTTPR_*`` variables and undo logger/default-client state after each test."""
    for key in list(os.environ):
        if key.upper().startswith("HTTPR_"):
            monkeypatch.delenv(key, raising=False)

    yield

    logger = logging.getLogger("httpr")
    for handler in list(logger.handlers):
        if getattr(handler, "_httpr_managed", False):
            logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    reset_default_client()


@pytest.fixture
def silent_server() -> Generator[str, None, None]:
    """
    Loopback HTTP endpoint that accepts connections but never responds.

    Yields:
        Base URL of the server, e.g. ``http://127.0.0.1:50123``.
    """
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
    listener.bind(("127.0.0.1", 0))
    listener.listen(16)
    listener.settimeout(0.1)
    stop = threading.Event()
    accepted: list[socket.socket] = []

    def _serve() -> None:
        while not stop.is_set():
            try:
                conn, _ = listener.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            accepted.append(conn)

    thread = threading.Thread(target=_serve, name="silent-server", daemon=True)
    thread.start()

    host, port = listener.getsockname()
    yield f"http://{host}:{port}"

    stop.set()
    thread.join(timeout=2)
    for conn in accepted:
        conn.close()
    listener.close()
