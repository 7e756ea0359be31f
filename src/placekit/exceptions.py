"""
Custom exceptions for the PlaceKit client.

Input problems surface as ``InvalidArgument`` at call time. Failures of an
outbound attempt are ``RequestError`` subclasses; the request engine decides
from their type whether the next host in the cascade is tried.
"""

from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from placekit.request.outcome import Outcome


class PlaceKitError(Exception):
    """
    Base exception for all PlaceKit client errors.

    Catch this to handle any error raised by the client with a single
    except clause.
    """
    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidArgument(PlaceKitError, ValueError):
    """
    Raised when an operation or configuration call receives input of the
    wrong shape or type.

    Always raised synchronously, before any request is sent. Never retried.
    """
    pass


class GeolocationUnavailable(PlaceKitError):
    """Raised when no device location capability was given to the client."""
    pass


class GeolocationError(PlaceKitError):
    """
    Raised when the device location capability reports an error.

    Attributes:
        code: Error code reported by the capability
    """
    def __init__(self, code: Any, message: str):
        super().__init__(
            f"Geolocation request failed: ({code}) {message}",
            details={"code": code, "message": message},
        )
        self.code = code


class RequestError(PlaceKitError):
    """
    Base exception for the failure of one outbound attempt.

    The request engine re-raises the last attempt's error unchanged once
    failover stops, so callers see the same shape whether one host or
    several were tried.

    Attributes:
        outcome: Classification of the failed attempt, set by the request
            engine; decides whether the next host is tried
    """
    def __init__(
        self,
        message: str,
        details: dict | None = None,
        outcome: Optional["Outcome"] = None,
    ):
        super().__init__(message, details=details)
        self.outcome = outcome


class RequestTimeout(RequestError):
    """
    Raised when the local timeout fired before a response arrived.

    Triggers failover to the next host.
    """
    pass


class TransportError(RequestError):
    """
    Raised on network failures other than timeouts (DNS, refused
    connection, TLS errors, ...).

    Not retried.
    """
    pass


class ResponseDecodeError(RequestError):
    """Raised when a successful response carries a body that is not JSON."""
    pass


class HTTPError(RequestError):
    """
    Raised when the API answers with a non-2xx status.

    Carries the status line and every field of the JSON error body
    (typically ``message`` and ``errors``).

    Attributes:
        status: HTTP status code
        status_text: HTTP reason phrase
        fields: Fields of the parsed error body (empty if none)
    """
    def __init__(
        self,
        status: int,
        status_text: str,
        fields: dict | None = None,
        outcome: Optional["Outcome"] = None,
    ):
        self.status = status
        self.status_text = status_text
        self.fields = dict(fields or {})
        message = self.fields.get("message") or f"HTTP {status} {status_text}".strip()
        super().__init__(str(message), details=self.to_dict(), outcome=outcome)

    @property
    def errors(self) -> list:
        return self.fields.get("errors", [])

    def to_dict(self) -> dict[str, Any]:
        """Structured view: ``{status, statusText, **fields}``."""
        return {
            "status": self.status,
            "statusText": self.status_text,
            **self.fields,
        }


class ServerError(HTTPError):
    """
    Raised on 5xx responses.

    Triggers failover to the next host.
    """
    pass


class ClientError(HTTPError):
    """
    Raised on non-2xx responses below 500 (4xx in practice).

    Not retried: another host cannot fix a bad request.
    """
    pass
