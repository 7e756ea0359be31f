"""Unit tests for data models."""

import pytest
from pydantic import ValidationError

from placekit.models import Attempt, GeolocationFailure, GeolocationPosition


def test_attempt_is_frozen():
    attempt = Attempt(method="POST", url="https://api.placekit.co/search", host_cursor=0)

    with pytest.raises(ValidationError):
        attempt.method = "GET"


@pytest.mark.parametrize(
    "timeout_ms, expected",
    [(None, None), (2000, 2.0), (0, 0.0), (-100, 0.0)],
)
def test_attempt_timeout_seconds(timeout_ms, expected):
    attempt = Attempt(method="POST", url="https://x", host_cursor=0, timeout_ms=timeout_ms)
    assert attempt.timeout_seconds == expected


def test_position_from_flat_report():
    position = GeolocationPosition.from_report({"latitude": 48.86, "longitude": 2.29, "accuracy": 12})

    assert position.coordinates == "48.86,2.29"
    assert position.accuracy == 12


def test_position_from_browser_shaped_report():
    report = {"coords": {"latitude": -33.87, "longitude": 151.21}, "timestamp": 1}

    position = GeolocationPosition.from_report(report)

    assert position.coordinates == "-33.87,151.21"
    assert position.raw == report


def test_position_rejects_out_of_range_latitude():
    with pytest.raises(ValidationError):
        GeolocationPosition(latitude=91, longitude=0)


def test_failure_defaults():
    failure = GeolocationFailure()
    assert failure.code is None
    assert failure.message == ""


@pytest.mark.parametrize(
    "report",
    [{"coords": {"accuracy": 10}}, {"longitude": 2.29}, {"coords": "48.86,2.29"}, ["48.86", "2.29"]],
)
def test_position_rejects_report_without_coordinates(report):
    with pytest.raises(ValueError, match="position report"):
        GeolocationPosition.from_report(report)
