"""
Request engine with host cascade failover.

Executes one logical operation (verb + resource + parameters) against an
ordered list of hosts. Each attempt is bounded by an optional local
timeout; qualifying failures move the operation to the next host.

Failover policy:
    1. Timeout (local cancellation or httpx timeout): try next host
    2. 5xx response: try next host
    3. 4xx response, network error, undecodable body: raise immediately
    4. Hosts exhausted: re-raise the last error unchanged

Usage:
    engine = RequestEngine(api_key, hosts=["https://api.placekit.co"])
    body = await engine.execute("POST", "search", {"query": "paris"})
"""

import asyncio
import time
from typing import Any, Mapping, Optional, Sequence

import httpx
import structlog

from placekit.exceptions import (
    ClientError,
    InvalidArgument,
    RequestError,
    RequestTimeout,
    ResponseDecodeError,
    ServerError,
    TransportError,
)
from placekit.models import Attempt
from placekit.monitoring.metrics import record_attempt, record_failover
from placekit.options import ensure_mapping
from placekit.request.outcome import Outcome, classify_exception, classify_status


logger = structlog.get_logger(__name__)

CONTENT_TYPE = "application/json; charset=UTF-8"
API_KEY_HEADER = "x-placekit-api-key"
APP_ID_HEADER = "x-placekit-app-id"
FORWARDED_FOR_HEADER = "x-forwarded-for"

# Verbs whose parameters travel in the query string instead of a JSON body
QUERY_METHODS = frozenset({"GET", "DELETE", "HEAD"})


class RequestEngine:
    """
    Sends operations to the host cascade.

    The engine holds no per-operation state: the host cursor is an argument
    of ``execute`` threaded through the retry chain, so concurrent
    operations on one engine never influence each other's starting host.

    Attributes:
        api_key: Credential sent with every request
        app_id: Optional application id sent alongside the key
        hosts: Base URLs in retry priority order
        legacy_host_bound: Never fail over to the last host
        metrics_enabled: Record prometheus metrics for each attempt
    """

    def __init__(
        self,
        api_key: Optional[str],
        hosts: Sequence[str],
        app_id: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        connection_limits: Optional[httpx.Limits] = None,
        legacy_host_bound: bool = False,
        metrics_enabled: bool = True,
    ):
        """
        Initialize request engine.

        Args:
            api_key: PlaceKit API key
            hosts: Non-empty list of base URLs, index 0 tried first
            app_id: Optional application id
            http_client: Pre-built client (tests, custom transports); the
                engine does not close a client it did not create
            connection_limits: httpx pool limits for the owned client
            legacy_host_bound: Keep the historical bound where an operation
                makes at most ``len(hosts) - 1`` attempts
            metrics_enabled: Record prometheus metrics
        """
        hosts = tuple(host.strip() for host in hosts)
        if not hosts or not all(hosts):
            raise InvalidArgument(
                "PlaceKit: `hosts` is invalid, expected a non-empty list of URLs.",
                details={"hosts": list(hosts)},
            )

        self.api_key = api_key
        self.app_id = app_id
        self.hosts: tuple[str, ...] = hosts
        self.legacy_host_bound = legacy_host_bound
        self.metrics_enabled = metrics_enabled

        if connection_limits is None:
            connection_limits = httpx.Limits(
                max_keepalive_connections=5,
                max_connections=10,
                keepalive_expiry=30.0
            )
        self._connection_limits = connection_limits
        self._client: Optional[httpx.AsyncClient] = http_client
        self._owns_client = http_client is None

        logger.debug(
            "Request engine initialized",
            hosts=list(self.hosts),
            legacy_host_bound=legacy_host_bound,
        )

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the async HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                # The local cancellation timer is the only deadline
                timeout=httpx.Timeout(None),
                limits=self._connection_limits,
            )
            self._owns_client = True
            logger.debug("Created new httpx AsyncClient")
        return self._client

    @property
    def host_limit(self) -> int:
        """Number of hosts an operation may reach."""
        if self.legacy_host_bound:
            return max(len(self.hosts) - 1, 1)
        return len(self.hosts)

    def build_headers(self, forward_ip: Optional[str], country_by_ip: Any) -> dict[str, str]:
        """
        Build request headers.

        ``x-forwarded-for`` is only sent when IP based country detection is
        requested and an IP is supplied.
        """
        headers = {
            "Content-Type": CONTENT_TYPE,
            API_KEY_HEADER: self.api_key or "",
        }
        if self.app_id:
            headers[APP_ID_HEADER] = self.app_id
        if country_by_ip and forward_ip:
            headers[FORWARDED_FOR_HEADER] = str(forward_ip)
        return headers

    def resolve_url(self, resource: str, host_cursor: int) -> str:
        """Join ``hosts[host_cursor]`` and ``resource``."""
        host = self.hosts[host_cursor].rstrip("/")
        path = resource.strip().lstrip("/")
        return f"{host}/{path}" if path else f"{host}/"

    def build_attempt(
        self,
        method: str,
        resource: str,
        params: Optional[Mapping[str, Any]],
        host_cursor: int,
    ) -> Attempt:
        """Split transport fields from ``params`` and describe the HTTP call."""
        payload = dict(ensure_mapping(params, "request", "params"))
        timeout_ms = payload.pop("timeout", None)
        forward_ip = payload.pop("forwardIP", None)
        if timeout_ms is not None and (
            isinstance(timeout_ms, bool) or not isinstance(timeout_ms, (int, float))
        ):
            raise InvalidArgument(
                "PlaceKit: `timeout` option is invalid, expected a number of milliseconds.",
                details={"timeout": repr(timeout_ms)},
            )
        payload = {key: value for key, value in payload.items() if value is not None}

        method = method.upper()
        is_query = method in QUERY_METHODS

        return Attempt(
            method=method,
            url=self.resolve_url(resource, host_cursor),
            host_cursor=host_cursor,
            headers=self.build_headers(forward_ip, payload.get("countryByIP")),
            body=None if is_query else payload,
            query=(payload or None) if is_query else None,
            timeout_ms=timeout_ms,
        )

    async def execute(
        self,
        method: str = "POST",
        resource: str = "",
        params: Optional[Mapping[str, Any]] = None,
        host_cursor: int = 0,
    ) -> Any:
        """
        Execute one operation starting at ``hosts[host_cursor]``.

        Args:
            method: HTTP verb
            resource: Resource path relative to the host (leading slashes
                are ignored)
            params: Request parameters; ``timeout`` (ms) and ``forwardIP``
                are consumed here and never serialized
            host_cursor: Host to start from, 0 for a new operation

        Returns:
            Parsed JSON body of the first successful attempt (None for an
            empty body)

        Raises:
            RequestTimeout: Last host timed out
            ServerError: Last host answered 5xx
            ClientError: Non-2xx below 500, on any host
            TransportError: Network error, on any host
            ResponseDecodeError: 2xx with a non-JSON body
        """
        if not 0 <= host_cursor < len(self.hosts):
            raise InvalidArgument(
                f"PlaceKit: host cursor {host_cursor} is out of range.",
                details={"host_cursor": host_cursor, "hosts_count": len(self.hosts)},
            )
        attempt = self.build_attempt(method, resource, params, host_cursor)

        try:
            return await self._send(attempt)
        except RequestError as e:
            if e.outcome is None or not e.outcome.qualifies_for_failover:
                raise

            if host_cursor + 1 < self.host_limit:
                logger.warning(
                    "Attempt failed, failing over to next host",
                    method=attempt.method,
                    url=attempt.url,
                    outcome=e.outcome.value,
                    next_host=self.hosts[host_cursor + 1],
                )
                if self.metrics_enabled:
                    record_failover(attempt.method)
                return await self.execute(method, resource, params, host_cursor + 1)

            logger.error(
                "Host cascade exhausted",
                method=attempt.method,
                url=attempt.url,
                outcome=e.outcome.value,
                attempts=host_cursor + 1,
            )
            raise

    async def _send(self, attempt: Attempt) -> Any:
        """Issue one attempt and turn its outcome into a body or an exception."""
        client = await self._get_client()
        start_time = time.monotonic()

        logger.debug(
            "Sending attempt",
            method=attempt.method,
            url=attempt.url,
            host_cursor=attempt.host_cursor,
            timeout_ms=attempt.timeout_ms,
        )

        try:
            response = await asyncio.wait_for(
                client.request(
                    attempt.method,
                    attempt.url,
                    headers=attempt.headers,
                    json=attempt.body,
                    params=attempt.query,
                ),
                timeout=attempt.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.RequestError) as e:
            outcome = classify_exception(e)
            self._record(attempt, outcome, start_time)

            if outcome is Outcome.TIMEOUT:
                logger.warning(
                    "Attempt timed out",
                    method=attempt.method,
                    url=attempt.url,
                    timeout_ms=attempt.timeout_ms,
                )
                raise RequestTimeout(
                    f"Request to {attempt.url} timed out",
                    details={"url": attempt.url, "timeout_ms": attempt.timeout_ms},
                    outcome=outcome,
                ) from e

            logger.error(
                "Attempt transport error",
                method=attempt.method,
                url=attempt.url,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise TransportError(
                f"Network error: {e}",
                details={"url": attempt.url, "error_type": type(e).__name__},
                outcome=outcome,
            ) from e

        outcome = classify_status(response.status_code)
        self._record(attempt, outcome, start_time)

        if outcome is Outcome.SUCCESS:
            try:
                return self._parse_body(response)
            except ValueError as e:
                # JSONDecodeError or UnicodeDecodeError
                logger.error(
                    "Failed to parse response JSON",
                    url=attempt.url,
                    status_code=response.status_code,
                    error=str(e),
                )
                raise ResponseDecodeError(
                    "Invalid JSON response from PlaceKit",
                    details={"url": attempt.url, "parse_error": str(e)},
                ) from e

        fields = self._parse_error_fields(response)
        error_class = ServerError if outcome is Outcome.SERVER_ERROR else ClientError

        logger.warning(
            "Attempt rejected",
            method=attempt.method,
            url=attempt.url,
            status_code=response.status_code,
            outcome=outcome.value,
        )
        raise error_class(response.status_code, response.reason_phrase, fields, outcome=outcome)

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        if not response.content.strip():
            return None
        return response.json()

    @staticmethod
    def _parse_error_fields(response: httpx.Response) -> dict:
        try:
            body = RequestEngine._parse_body(response)
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    def _record(self, attempt: Attempt, outcome: Outcome, start_time: float) -> None:
        latency = time.monotonic() - start_time
        logger.info(
            "Attempt completed",
            method=attempt.method,
            url=attempt.url,
            outcome=outcome.value,
            latency_ms=int(latency * 1000),
        )
        if self.metrics_enabled:
            record_attempt(attempt.method, outcome.value, latency)

    async def close(self):
        """Close the HTTP client if the engine created it."""
        if self._owns_client and self._client and not self._client.is_closed:
            await self._client.aclose()
            logger.debug("Closed PlaceKit HTTP client")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(hosts={list(self.hosts)})"
