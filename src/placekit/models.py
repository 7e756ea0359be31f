"""
Data models for the PlaceKit client.

``Attempt`` describes one outbound HTTP call of the request engine.
The geolocation models normalize what a ``DeviceLocation`` capability
reports back to the client.
"""

from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, Field, ConfigDict


class Attempt(BaseModel):
    """
    One physical HTTP request within an operation.

    Built by the request engine before each call and used for sending
    and logging. Several attempts may compose one operation when the host
    cascade fails over.
    """
    model_config = ConfigDict(frozen=True)

    method: str = Field(..., description="HTTP verb")
    url: str = Field(..., description="Resolved URL: host + resource path")
    host_cursor: int = Field(..., ge=0, description="Index of the host in the cascade")
    headers: Dict[str, str] = Field(default_factory=dict, description="Request headers")
    body: Optional[Dict[str, Any]] = Field(
        default=None,
        description="JSON body (POST/PUT/PATCH)"
    )
    query: Optional[Dict[str, Any]] = Field(
        default=None,
        description="Query parameters (GET/DELETE)"
    )
    timeout_ms: Optional[float] = Field(
        default=None,
        description="Local cancellation delay in milliseconds, None for no limit"
    )

    @property
    def timeout_seconds(self) -> Optional[float]:
        if self.timeout_ms is None:
            return None
        return max(self.timeout_ms, 0) / 1000.0


class GeolocationPosition(BaseModel):
    """Device position reported by a ``DeviceLocation`` capability."""
    model_config = ConfigDict(frozen=True)

    latitude: float = Field(..., ge=-90.0, le=90.0)
    longitude: float = Field(..., ge=-180.0, le=180.0)
    accuracy: Optional[float] = Field(default=None, ge=0.0, description="Radius in meters")
    raw: Dict[str, Any] = Field(default_factory=dict, description="Position as reported")

    @classmethod
    def from_report(cls, report: Mapping[str, Any]) -> "GeolocationPosition":
        """
        Accept both ``{latitude, longitude}`` and ``{coords: {...}}`` shapes.

        Raises:
            ValueError: The report holds no usable position
        """
        if not isinstance(report, Mapping):
            raise ValueError(f"position report must be a mapping, got {type(report).__name__}")
        coords = report.get("coords", report)
        if not isinstance(coords, Mapping) or "latitude" not in coords or "longitude" not in coords:
            raise ValueError("position report has no latitude/longitude")
        return cls(
            latitude=coords["latitude"],
            longitude=coords["longitude"],
            accuracy=coords.get("accuracy"),
            raw=dict(report),
        )

    @property
    def coordinates(self) -> str:
        """The ``"lat,lng"`` form expected by the API."""
        return f"{self.latitude},{self.longitude}"


class GeolocationFailure(BaseModel):
    """Error reported by a ``DeviceLocation`` capability."""
    model_config = ConfigDict(frozen=True)

    code: Any = Field(default=None, description="Capability-specific error code")
    message: str = Field(default="", description="Human-readable error")
