"""
Tests for error classification.
"""

import pytest

from flood_exposure.errors import (
    FRIENDLY_MESSAGES,
    AnalysisCancelled,
    ErrorKind,
    FloodExposureError,
    GeometryError,
    MalformedResponse,
    NetworkError,
    RateLimited,
    ServiceTimeout,
    classify_error,
    friendly_message,
)


class TestClassifyError:
    @pytest.mark.parametrize("error,kind", [
        (AnalysisCancelled("Analysis cancelled by user"), ErrorKind.CANCELLED),
        (ServiceTimeout("upstream 504", status=504), ErrorKind.AREA_TOO_LARGE),
        (NetworkError("Request timeout"), ErrorKind.AREA_TOO_LARGE),
        (RuntimeError("Selected area is too large"), ErrorKind.AREA_TOO_LARGE),
        (RateLimited("Rate limited", status=429), ErrorKind.SERVICE_UNAVAILABLE),
        (NetworkError("connection refused"), ErrorKind.SERVICE_UNAVAILABLE),
        (MalformedResponse("Response has no 'elements' array"), ErrorKind.SERVICE_UNAVAILABLE),
        (GeometryError("degenerate"), ErrorKind.GENERIC),
        (KeyError("lat"), ErrorKind.GENERIC),
    ])
    def test_kinds(self, error, kind):
        assert classify_error(error) is kind

    def test_friendly_message(self):
        assert friendly_message(ServiceTimeout("x")) == (
            "Area too large or server timeout. Please try a smaller polygon."
        )
        assert friendly_message(ValueError("boom")) == FRIENDLY_MESSAGES[ErrorKind.GENERIC]

    def test_every_kind_has_a_message(self):
        assert set(FRIENDLY_MESSAGES) == set(ErrorKind)


class TestHierarchy:
    def test_network_errors_keep_context(self):
        error = RateLimited("slow down", status=429, endpoint="https://a.example")
        assert isinstance(error, NetworkError)
        assert isinstance(error, FloodExposureError)
        assert error.status == 429
        assert error.endpoint == "https://a.example"

    def test_all_derive_from_base(self):
        for cls in (MalformedResponse, GeometryError, AnalysisCancelled, ServiceTimeout):
            assert issubclass(cls, FloodExposureError)
