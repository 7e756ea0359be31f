"""Shared test fixtures and configuration for all tests.

Provides settings isolated from the environment and a scripted httpx
transport so the client can be exercised without network access.
"""

from typing import Any, Callable

import httpx
import pytest

from placekit.client import PlaceKit
from placekit.config import Settings
from tests.fixtures.transport import HOSTS, ScriptedTransport


@pytest.fixture
def test_settings() -> Settings:
    """Settings with safe defaults, ignoring PLACEKIT_* variables and .env."""
    return Settings(
        _env_file=None,
        API_KEY=None,
        APP_ID=None,
        HOSTS=list(HOSTS),
        LEGACY_HOST_BOUND=False,
        DEFAULT_MAX_RESULTS=5,
        DEFAULT_TIMEOUT_MS=None,
        CONFIGURE_LOGGING=False,
        LOG_LEVEL="DEBUG",
        METRICS_ENABLED=False,  # Enabled explicitly in metrics tests
    )


@pytest.fixture
def make_client(test_settings: Settings) -> Callable[..., PlaceKit]:
    """Factory fixture building a client on top of a ScriptedTransport.

    Usage:
        def test_something(make_client):
            transport = ScriptedTransport(httpx.Response(500), httpx.Response(200, json={}))
            pk = make_client(transport)
    """
    def _create(transport: ScriptedTransport, **kwargs: Any) -> PlaceKit:
        kwargs.setdefault("settings", test_settings)
        kwargs.setdefault("ambient_locale", None)
        api_key = kwargs.pop("api_key", "your-api-key")
        options = kwargs.pop("options", None)
        return PlaceKit(
            api_key,
            options,
            http_client=httpx.AsyncClient(transport=httpx.MockTransport(transport)),
            **kwargs,
        )

    return _create
