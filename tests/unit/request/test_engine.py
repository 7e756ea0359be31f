"""
Unit tests for RequestEngine.

Tests host cascade failover, timeout cancellation, outcome classification
and request construction against a scripted httpx transport.
"""

import asyncio
import json
from unittest.mock import patch

import httpx
import pytest
from prometheus_client import REGISTRY

from placekit.exceptions import (
    ClientError,
    InvalidArgument,
    RequestTimeout,
    ResponseDecodeError,
    ServerError,
    TransportError,
)
from placekit.request.engine import RequestEngine
from placekit.request.outcome import Outcome
from tests.fixtures.transport import HOSTS, ScriptedTransport


def create_engine(transport: ScriptedTransport, hosts=None, **kwargs) -> RequestEngine:
    """Helper to create an engine on top of a scripted transport."""
    kwargs.setdefault("metrics_enabled", False)
    return RequestEngine(
        "your-api-key",
        hosts if hosts is not None else HOSTS,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(transport)),
        **kwargs,
    )


async def never_answers(request: httpx.Request) -> httpx.Response:
    await asyncio.sleep(10)
    return httpx.Response(200, json={"results": []})


# ============================================================================
# Success path
# ============================================================================


@pytest.mark.asyncio
async def test_single_host_success_issues_one_attempt():
    """Test a 200 response is returned after exactly one attempt."""
    transport = ScriptedTransport(httpx.Response(200, json={"results": []}))
    engine = create_engine(transport, hosts=["https://api.placekit.co"])

    body = await engine.execute("POST", "search", {"query": ""})

    assert body == {"results": []}
    assert transport.urls == ["https://api.placekit.co/search"]


@pytest.mark.asyncio
async def test_sends_json_body_and_headers():
    """Test POST body serialization and mandatory headers."""
    transport = ScriptedTransport()
    engine = create_engine(transport)

    await engine.execute("POST", "search", {"query": "paris", "maxResults": 5})

    request = transport.requests[0]
    assert request.method == "POST"
    assert request.headers["content-type"] == "application/json; charset=UTF-8"
    assert request.headers["x-placekit-api-key"] == "your-api-key"
    assert "x-forwarded-for" not in request.headers
    assert json.loads(request.content) == {"query": "paris", "maxResults": 5}


@pytest.mark.asyncio
async def test_transport_fields_not_serialized():
    """Test timeout and forwardIP never reach the body, None values are dropped."""
    transport = ScriptedTransport()
    engine = create_engine(transport)

    await engine.execute(
        "POST",
        "search",
        {"query": "paris", "timeout": 5000, "forwardIP": "1.2.3.4", "language": None},
    )

    assert json.loads(transport.requests[0].content) == {"query": "paris"}


@pytest.mark.asyncio
async def test_leading_slashes_stripped_from_resource():
    """Test resource paths are joined to the host without double slashes."""
    transport = ScriptedTransport()
    engine = create_engine(transport, hosts=["https://api.placekit.co/"])

    await engine.execute("POST", "  //reverse", {})

    assert transport.urls == ["https://api.placekit.co/reverse"]


@pytest.mark.asyncio
async def test_get_sends_query_parameters_without_body():
    """Test GET parameters travel in the query string."""
    transport = ScriptedTransport(httpx.Response(200, json={"id": "abc"}))
    engine = create_engine(transport)

    body = await engine.execute("GET", "patch/abc", {"language": "fr", "status": None})

    request = transport.requests[0]
    assert body == {"id": "abc"}
    assert request.url.params["language"] == "fr"
    assert "status" not in request.url.params
    assert request.content == b""


@pytest.mark.asyncio
async def test_empty_success_body_returns_none():
    """Test a 204 (e.g. DELETE) resolves to None."""
    transport = ScriptedTransport(httpx.Response(204))
    engine = create_engine(transport)

    assert await engine.execute("DELETE", "patch/abc") is None


@pytest.mark.asyncio
async def test_app_id_header_sent_when_configured():
    """Test the application id header is only sent when configured."""
    transport = ScriptedTransport()
    engine = create_engine(transport, app_id="my-app")

    await engine.execute("POST", "search", {})

    assert transport.requests[0].headers["x-placekit-app-id"] == "my-app"


# ============================================================================
# IP forwarding header
# ============================================================================


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "params, expected",
    [
        ({"countryByIP": True, "forwardIP": "0.0.0.0"}, "0.0.0.0"),
        ({"countryByIP": False, "forwardIP": "0.0.0.0"}, None),
        ({"forwardIP": "0.0.0.0"}, None),
        ({"countryByIP": True}, None),
        ({"countryByIP": True, "forwardIP": ""}, None),
    ],
)
async def test_forwarded_for_requires_country_by_ip(params, expected):
    """Test x-forwarded-for is sent iff countryByIP is truthy and forwardIP given."""
    transport = ScriptedTransport()
    engine = create_engine(transport)

    await engine.execute("POST", "search", {"query": "", **params})

    assert transport.requests[0].headers.get("x-forwarded-for") == expected


# ============================================================================
# Failover
# ============================================================================


@pytest.mark.asyncio
async def test_timeout_fails_over_to_next_host():
    """Test a transport timeout on host 0 retries on host 1."""
    transport = ScriptedTransport(
        httpx.ReadTimeout("timed out"),
        httpx.Response(200, json={"results": []}),
    )
    engine = create_engine(transport)

    body = await engine.execute("POST", "search", {"query": ""})

    assert body == {"results": []}
    assert transport.hosts == HOSTS[:2]
    assert transport.urls[1] == f"{HOSTS[1]}/search"


@pytest.mark.asyncio
async def test_local_timeout_cancels_attempt_and_fails_over():
    """Test the timeout option cancels a hanging attempt and retries."""
    transport = ScriptedTransport(never_answers, httpx.Response(200, json={"results": []}))
    engine = create_engine(transport)

    body = await engine.execute("POST", "search", {"query": "", "timeout": 20})

    assert body == {"results": []}
    assert transport.hosts == HOSTS[:2]


@pytest.mark.asyncio
async def test_server_error_fails_over_to_next_host():
    """Test a 500 on host 0 retries on host 1."""
    transport = ScriptedTransport(
        httpx.Response(500),
        httpx.Response(200, json={"results": []}),
    )
    engine = create_engine(transport)

    body = await engine.execute("POST", "search", {"query": ""})

    assert body == {"results": []}
    assert transport.hosts == HOSTS[:2]


@pytest.mark.asyncio
async def test_client_error_is_not_retried():
    """Test a 403 fails after one attempt with the error body fields."""
    transport = ScriptedTransport(
        httpx.Response(403, json={"message": "An error occured.", "errors": []}),
        httpx.Response(200, json={"results": []}),
    )
    engine = create_engine(transport)

    with pytest.raises(ClientError) as exc_info:
        await engine.execute("POST", "search", {"query": ""})

    error = exc_info.value
    assert len(transport.requests) == 1
    assert error.status == 403
    assert error.status_text == "Forbidden"
    assert error.message == "An error occured."
    assert error.errors == []
    assert error.to_dict() == {
        "status": 403,
        "statusText": "Forbidden",
        "message": "An error occured.",
        "errors": [],
    }


@pytest.mark.asyncio
async def test_transport_error_is_not_retried():
    """Test a connection error propagates without failover."""
    transport = ScriptedTransport(httpx.ConnectError("connection refused"))
    engine = create_engine(transport)

    with pytest.raises(TransportError):
        await engine.execute("POST", "search", {})

    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_all_hosts_reached_by_default():
    """Test an always-failing cascade of N hosts makes N attempts."""
    transport = ScriptedTransport(httpx.ReadTimeout("timed out"))
    engine = create_engine(transport)

    with pytest.raises(RequestTimeout):
        await engine.execute("POST", "search", {})

    assert transport.hosts == HOSTS


@pytest.mark.asyncio
async def test_legacy_bound_skips_last_host():
    """Test the legacy bound makes at most N-1 attempts, ending with a timeout."""
    transport = ScriptedTransport(httpx.ReadTimeout("timed out"))
    engine = create_engine(transport, legacy_host_bound=True)

    with pytest.raises(RequestTimeout):
        await engine.execute("POST", "search", {})

    assert transport.hosts == HOSTS[:-1]


@pytest.mark.asyncio
@pytest.mark.parametrize("legacy_host_bound", [False, True])
async def test_single_host_makes_one_attempt(legacy_host_bound):
    """Test a single host is tried once under both bounds."""
    transport = ScriptedTransport(httpx.Response(503))
    engine = create_engine(transport, hosts=HOSTS[:1], legacy_host_bound=legacy_host_bound)

    with pytest.raises(ServerError) as exc_info:
        await engine.execute("POST", "search", {})

    assert exc_info.value.status == 503
    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_exhaustion_raises_last_error():
    """Test the error of the last attempt is surfaced unchanged."""
    transport = ScriptedTransport(
        httpx.ReadTimeout("timed out"),
        httpx.ReadTimeout("timed out"),
        httpx.Response(502, json={"message": "Bad gateway"}),
    )
    engine = create_engine(transport)

    with pytest.raises(ServerError) as exc_info:
        await engine.execute("POST", "search", {})

    assert exc_info.value.status == 502
    assert exc_info.value.fields == {"message": "Bad gateway"}
    assert exc_info.value.outcome is Outcome.SERVER_ERROR


@pytest.mark.asyncio
async def test_failover_follows_attempt_outcome():
    """Test the retry decision reads the outcome carried by the error."""
    engine = create_engine(ScriptedTransport())
    qualifying = TransportError("reset", outcome=Outcome.TIMEOUT)
    terminal = ServerError(503, "Service Unavailable", outcome=Outcome.CLIENT_ERROR)

    with patch.object(engine, "_send", side_effect=[qualifying, {"results": []}]) as send:
        assert await engine.execute("POST", "search", {}) == {"results": []}
    assert [call.args[0].host_cursor for call in send.call_args_list] == [0, 1]

    with patch.object(engine, "_send", side_effect=[terminal]) as send:
        with pytest.raises(ServerError):
            await engine.execute("POST", "search", {})
    assert send.call_count == 1


@pytest.mark.asyncio
async def test_client_error_after_failover_stops_cascade():
    """Test a 4xx on a fallback host ends the operation."""
    transport = ScriptedTransport(httpx.Response(500), httpx.Response(401), httpx.Response(200))
    engine = create_engine(transport)

    with pytest.raises(ClientError):
        await engine.execute("POST", "search", {})

    assert transport.hosts == HOSTS[:2]


@pytest.mark.asyncio
async def test_concurrent_operations_each_start_on_first_host():
    """Test one operation's failover never moves another's starting host."""
    first_in_flight = asyncio.Event()

    async def handler(request):
        query = json.loads(request.content)["query"]
        if query == "a" and request.url.host == "api-1.placekit.test":
            first_in_flight.set()
            await asyncio.sleep(0.05)
            return httpx.Response(500)
        return httpx.Response(200, json={"query": query})

    transport = ScriptedTransport(handler)
    engine = create_engine(transport)

    first = asyncio.create_task(engine.execute("POST", "search", {"query": "a"}))
    await first_in_flight.wait()
    second = await engine.execute("POST", "search", {"query": "b"})
    await first

    assert second == {"query": "b"}

    by_query = {}
    for request in transport.requests:
        by_query.setdefault(json.loads(request.content)["query"], []).append(request.url.host)

    assert by_query["a"] == ["api-1.placekit.test", "api-2.placekit.test"]
    assert by_query["b"] == ["api-1.placekit.test"]


@pytest.mark.asyncio
async def test_sequential_operations_restart_on_first_host():
    """Test a failover in one operation does not carry into the next."""
    transport = ScriptedTransport(
        httpx.Response(500),
        httpx.Response(200, json={}),
        httpx.Response(200, json={}),
    )
    engine = create_engine(transport)

    await engine.execute("POST", "search", {})
    await engine.execute("POST", "search", {})

    assert transport.hosts == [HOSTS[0], HOSTS[1], HOSTS[0]]


# ============================================================================
# Error bodies and invalid input
# ============================================================================


@pytest.mark.asyncio
async def test_error_without_json_body_has_no_fields():
    """Test a non-JSON error body still yields a structured error."""
    transport = ScriptedTransport(httpx.Response(404, text="Not here"))
    engine = create_engine(transport)

    with pytest.raises(ClientError) as exc_info:
        await engine.execute("GET", "keys/missing")

    assert exc_info.value.fields == {}
    assert exc_info.value.to_dict() == {"status": 404, "statusText": "Not Found"}


@pytest.mark.asyncio
async def test_invalid_success_json_raises_decode_error():
    """Test a 200 with a non-JSON body is terminal."""
    transport = ScriptedTransport(httpx.Response(200, text="<html>"))
    engine = create_engine(transport)

    with pytest.raises(ResponseDecodeError):
        await engine.execute("POST", "search", {})

    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_undecodable_success_body_raises_decode_error():
    """Test a 200 whose body is not valid UTF-8 is a decode error."""
    transport = ScriptedTransport(httpx.Response(200, content=b"\xe9\xff"))
    engine = create_engine(transport)

    with pytest.raises(ResponseDecodeError):
        await engine.execute("POST", "search", {})

    assert len(transport.requests) == 1


@pytest.mark.asyncio
async def test_undecodable_server_error_body_still_fails_over():
    """Test a 502 page in a non-UTF-8 charset fails over like any 5xx."""
    transport = ScriptedTransport(
        httpx.Response(502, content=b"<html>Bad Gateway \xe9</html>"),
        httpx.Response(200, json={"results": []}),
    )
    engine = create_engine(transport)

    body = await engine.execute("POST", "search", {"query": ""})

    assert body == {"results": []}
    assert transport.hosts == HOSTS[:2]


@pytest.mark.asyncio
async def test_non_string_param_keys_rejected_before_sending():
    transport = ScriptedTransport()
    engine = create_engine(transport)

    with pytest.raises(InvalidArgument, match="keys must be strings"):
        await engine.execute("POST", "search", {1: "x"})

    assert transport.requests == []


@pytest.mark.asyncio
async def test_invalid_timeout_rejected_before_sending():
    """Test a non-numeric timeout raises InvalidArgument without a request."""
    transport = ScriptedTransport()
    engine = create_engine(transport)

    with pytest.raises(InvalidArgument):
        await engine.execute("POST", "search", {"timeout": "fast"})

    assert transport.requests == []


def test_empty_host_list_rejected():
    """Test the host cascade must not be empty."""
    with pytest.raises(InvalidArgument):
        RequestEngine("your-api-key", [])


@pytest.mark.asyncio
async def test_out_of_range_cursor_rejected():
    """Test execute refuses a cursor past the cascade."""
    engine = create_engine(ScriptedTransport())

    with pytest.raises(InvalidArgument):
        await engine.execute("POST", "search", {}, host_cursor=len(HOSTS))


# ============================================================================
# Metrics
# ============================================================================


def sample(name: str, labels: dict) -> float:
    return REGISTRY.get_sample_value(name, labels) or 0.0


@pytest.mark.asyncio
async def test_metrics_record_attempts_and_failovers():
    """Test attempt and failover counters when metrics are enabled."""
    labels = {"method": "PUT"}
    before_server_error = sample("placekit_attempts_total", {**labels, "outcome": "server_error"})
    before_success = sample("placekit_attempts_total", {**labels, "outcome": "success"})
    before_failovers = sample("placekit_failovers_total", labels)

    transport = ScriptedTransport(httpx.Response(500), httpx.Response(200, json={}))
    engine = create_engine(transport, metrics_enabled=True)
    await engine.execute("PUT", "patch", {})

    assert sample("placekit_attempts_total", {**labels, "outcome": "server_error"}) == before_server_error + 1
    assert sample("placekit_attempts_total", {**labels, "outcome": "success"}) == before_success + 1
    assert sample("placekit_failovers_total", labels) == before_failovers + 1
