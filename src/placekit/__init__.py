"""
PlaceKit client for Python.

Async wrapper over the PlaceKit place search and geocoding API:
- Search and reverse geocoding with client-wide default options
- Patch records and API key management
- Host cascade failover on timeouts and server errors
- Device geolocation through an injected capability

Architecture: httpx transport + request/retry engine + extension registry
"""

from placekit.client import PlaceKit
from placekit.exceptions import (
    ClientError,
    GeolocationError,
    GeolocationUnavailable,
    HTTPError,
    InvalidArgument,
    PlaceKitError,
    RequestError,
    RequestTimeout,
    ResponseDecodeError,
    ServerError,
    TransportError,
)
from placekit.extensions import ExtensionRegistry, default_extensions, lite_extensions

__version__ = "0.1.0"

__all__ = [
    "PlaceKit",
    "ExtensionRegistry",
    "default_extensions",
    "lite_extensions",
    "PlaceKitError",
    "InvalidArgument",
    "GeolocationError",
    "GeolocationUnavailable",
    "RequestError",
    "RequestTimeout",
    "TransportError",
    "ResponseDecodeError",
    "HTTPError",
    "ServerError",
    "ClientError",
]
