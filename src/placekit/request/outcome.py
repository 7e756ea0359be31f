"""
Attempt outcome classification.

Every attempt is classified exactly once, where the transport call
resolves, into the closed ``Outcome`` enum. The retry decision then only
looks at the outcome instead of inspecting exception types or attributes.
"""

import asyncio
from enum import Enum

import httpx


class Outcome(str, Enum):
    """
    Result of one attempt.

    TIMEOUT and SERVER_ERROR are qualifying failures: the engine moves on to
    the next host. CLIENT_ERROR and TRANSPORT_ERROR end the operation.
    """

    SUCCESS = "success"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    CLIENT_ERROR = "client_error"
    TRANSPORT_ERROR = "transport_error"

    @property
    def qualifies_for_failover(self) -> bool:
        return self in (Outcome.TIMEOUT, Outcome.SERVER_ERROR)


def classify_status(status_code: int) -> Outcome:
    """Map an HTTP status code to an outcome."""
    if 200 <= status_code < 300:
        return Outcome.SUCCESS
    if status_code >= 500:
        return Outcome.SERVER_ERROR
    return Outcome.CLIENT_ERROR


def classify_exception(error: BaseException) -> Outcome:
    """Map a transport-level exception to an outcome."""
    if isinstance(error, (asyncio.TimeoutError, httpx.TimeoutException)):
        return Outcome.TIMEOUT
    return Outcome.TRANSPORT_ERROR
