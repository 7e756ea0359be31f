"""
PlaceKit client.

Ties together the configuration store, the request engine and the
registered extensions. Operations validate their arguments when called and
return an awaitable that runs the request:

    async with PlaceKit("your-api-key", {"countries": ["fr"]}) as pk:
        res = await pk.search("42 avenue champs elysees")
"""

import asyncio
from typing import Any, Mapping, Optional, Sequence

import httpx
import structlog

from placekit.ambient import AmbientLocale, DeviceLocation, environment_locale
from placekit.config import Settings, settings as default_settings
from placekit.exceptions import GeolocationError, GeolocationUnavailable, InvalidArgument
from placekit.extensions import ExtensionRegistry, default_extensions
from placekit.logging_config import configure_logging
from placekit.models import GeolocationFailure, GeolocationPosition
from placekit.options import ConfigurationStore, ensure_mapping
from placekit.request.engine import RequestEngine


logger = structlog.get_logger(__name__)

_UNSET: Any = object()

# Error code of GeolocationError when the device answers with an unusable position
INVALID_POSITION = "invalid_position"


class PlaceKit:
    """
    Async client for the PlaceKit API.

    Extensions from the registry (``search``, ``reverse``, ``patch``,
    ``keys`` by default) are exposed as attributes.

    Attributes:
        options: Read-only snapshot of the default request options
        has_geolocation: Whether device coordinates are currently applied
        store: Configuration store backing ``options``
        engine: Request engine shared by all operations
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        options: Optional[Mapping[str, Any]] = None,
        *,
        app_id: Optional[str] = None,
        hosts: Optional[Sequence[str]] = None,
        settings: Optional[Settings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        extensions: Optional[ExtensionRegistry] = None,
        ambient_locale: Optional[AmbientLocale] = _UNSET,
        device_location: Optional[DeviceLocation] = None,
        legacy_host_bound: Optional[bool] = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: PlaceKit API key (defaults to ``PLACEKIT_API_KEY``)
            options: Default request options, see :meth:`configure`
            app_id: Optional application id (defaults to ``PLACEKIT_APP_ID``)
            hosts: Host cascade, index 0 tried first (defaults to
                ``PLACEKIT_HOSTS``)
            settings: Settings instance (defaults to the global one)
            http_client: Pre-built httpx client
            extensions: Extensions to attach (defaults to all built-ins)
            ambient_locale: Locale lookup used to seed ``language``; defaults
                to the process environment, None disables detection
            device_location: Capability used by :meth:`request_geolocation`
            legacy_host_bound: Never fail over to the last host
                (defaults to ``PLACEKIT_LEGACY_HOST_BOUND``)

        Raises:
            InvalidArgument: ``api_key`` or ``options`` has the wrong type,
                or an extension name collides with a client attribute
        """
        settings = settings or default_settings
        if settings.CONFIGURE_LOGGING:
            configure_logging(settings)

        if api_key is None:
            api_key = settings.API_KEY
        if api_key is not None and not isinstance(api_key, str):
            raise InvalidArgument(
                "PlaceKit: `api_key` argument is invalid, expected a string.",
                details={"received_type": type(api_key).__name__},
            )
        if not api_key:
            logger.warning("PlaceKit: missing or empty `api_key` argument.")

        if ambient_locale is _UNSET:
            ambient_locale = environment_locale

        options = ensure_mapping(options, "configure", "options")
        defaults: dict[str, Any] = {"maxResults": settings.DEFAULT_MAX_RESULTS}
        if settings.DEFAULT_TIMEOUT_MS is not None:
            defaults["timeout"] = settings.DEFAULT_TIMEOUT_MS
        defaults.update(options)

        self.store = ConfigurationStore(defaults, ambient_locale=ambient_locale)
        self.engine = RequestEngine(
            api_key,
            hosts if hosts is not None else settings.HOSTS,
            app_id=app_id if app_id is not None else settings.APP_ID,
            http_client=http_client,
            connection_limits=httpx.Limits(
                max_keepalive_connections=settings.MAX_KEEPALIVE_CONNECTIONS,
                max_connections=settings.MAX_CONNECTIONS,
                keepalive_expiry=settings.KEEPALIVE_EXPIRY,
            ),
            legacy_host_bound=(
                settings.LEGACY_HOST_BOUND if legacy_host_bound is None else legacy_host_bound
            ),
            metrics_enabled=settings.METRICS_ENABLED,
        )
        self._device_location = device_location
        self._has_geolocation = False

        registry = extensions if extensions is not None else default_extensions()
        for name in registry:
            if hasattr(type(self), name) or name in self.__dict__:
                raise InvalidArgument(
                    f"PlaceKit extend: `client.{name}` already exists.",
                    details={"extension": name},
                )
        self._extensions: dict[str, Any] = registry.build(self.engine.execute, self)

        logger.info(
            "PlaceKit client initialized",
            hosts=list(self.engine.hosts),
            extensions=list(self._extensions),
        )

    def __getattr__(self, name: str) -> Any:
        # Only reached when normal lookup fails
        extensions = self.__dict__.get("_extensions", {})
        if name in extensions:
            return extensions[name]
        raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")

    @property
    def options(self) -> Mapping[str, Any]:
        return self.store.options

    @options.setter
    def options(self, value: Any) -> None:
        raise InvalidArgument("PlaceKit: `options` is read-only, use `configure()` instead.")

    @property
    def has_geolocation(self) -> bool:
        return self._has_geolocation

    @has_geolocation.setter
    def has_geolocation(self, value: Any) -> None:
        raise InvalidArgument(
            "PlaceKit: `has_geolocation` is read-only, use `request_geolocation()` instead."
        )

    def configure(self, opts: Optional[Mapping[str, Any]] = None) -> None:
        """
        Merge ``opts`` into the default request options.

        Recognized keys include ``timeout`` (ms), ``maxResults``,
        ``language``, ``types``, ``countries``, ``coordinates``,
        ``countryByIP`` and ``forwardIP``. Unknown keys are forwarded to the
        API as is.

        Raises:
            InvalidArgument: ``opts`` is not a mapping
        """
        self.store.configure(opts)

    async def request_geolocation(
        self, opts: Optional[Mapping[str, Any]] = None
    ) -> GeolocationPosition:
        """
        Ask the device for its position and use it as ``coordinates``.

        Args:
            opts: Passed through to the ``DeviceLocation`` capability

        Returns:
            Reported device position

        Raises:
            GeolocationUnavailable: No capability was provided
            GeolocationError: The capability reported an error or an
                unusable position (code ``INVALID_POSITION``)
        """
        opts = ensure_mapping(opts, "request_geolocation")
        if self._device_location is None:
            raise GeolocationUnavailable(
                "PlaceKit.request_geolocation: no device location capability available."
            )

        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def settle(succeeded: bool, report: Mapping[str, Any]) -> None:
            if not future.done():
                future.set_result((succeeded, report))

        # Callbacks may fire from another thread
        self._device_location(
            lambda report: loop.call_soon_threadsafe(settle, True, report),
            lambda error: loop.call_soon_threadsafe(settle, False, error),
            dict(opts),
        )
        succeeded, report = await future

        if not succeeded:
            if isinstance(report, Mapping):
                failure = GeolocationFailure(**report)
            else:
                failure = GeolocationFailure(message=str(report or ""))
            self.clear_geolocation()
            logger.warning(
                "Device geolocation failed", code=failure.code, message=failure.message
            )
            raise GeolocationError(failure.code, failure.message)

        try:
            position = GeolocationPosition.from_report(report)
        except ValueError as e:
            # Also covers pydantic's ValidationError for out-of-range values
            self.clear_geolocation()
            logger.warning("Device reported an invalid position", error=str(e))
            raise GeolocationError(INVALID_POSITION, str(e)) from e

        self._has_geolocation = True
        self.store.configure({"coordinates": position.coordinates})
        logger.info("Device geolocation applied", coordinates=position.coordinates)
        return position

    def clear_geolocation(self) -> None:
        """Forget device coordinates."""
        self._has_geolocation = False
        self.store.discard("coordinates")

    async def close(self):
        await self.engine.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    def __dir__(self):
        return sorted(set(super().__dir__()) | set(self.__dict__.get("_extensions", {})))

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"hosts={list(self.engine.hosts)}, "
            f"extensions={list(self._extensions)})"
        )
