# -*- coding: utf-8 -*-

"""
Error types raised by the flood exposure analysis and helpers that turn
them into a single user-facing classification.
"""

from enum import Enum


class FloodExposureError(Exception):
    """Base class for all analysis errors."""


class NetworkError(FloodExposureError):
    """Transport or connection failure, or an unexpected HTTP status."""

    def __init__(self, message, status=None, endpoint=None):
        super().__init__(message)
        self.status = status
        self.endpoint = endpoint


class ServiceTimeout(NetworkError):
    """The upstream service timed out or answered 503/504."""


class RateLimited(NetworkError):
    """The upstream service answered 429."""


class MalformedResponse(FloodExposureError):
    """A response could not be decoded or lacks the expected arrays."""


class GeometryError(FloodExposureError):
    """Degenerate or self-intersecting geometry, or a failed intersection test."""


class AnalysisCancelled(FloodExposureError):
    """The caller declined to run a large tagging pass."""


class ErrorKind(Enum):
    AREA_TOO_LARGE = "area_too_large"
    SERVICE_UNAVAILABLE = "service_unavailable"
    CANCELLED = "cancelled"
    GENERIC = "generic"


FRIENDLY_MESSAGES = {
    ErrorKind.AREA_TOO_LARGE: "Area too large or server timeout. Please try a smaller polygon.",
    ErrorKind.SERVICE_UNAVAILABLE: "Unable to fetch building data. Please try again in a moment.",
    ErrorKind.CANCELLED: "Analysis cancelled by user.",
    ErrorKind.GENERIC: "Error during analysis. Please try again.",
}


def classify_error(error):
    """
    Map any exception raised by an analysis run onto an ErrorKind.

    Parameters:
    -----------
    error : Exception
        The exception that aborted the analysis

    Returns:
    --------
    ErrorKind
    """
    if isinstance(error, AnalysisCancelled):
        return ErrorKind.CANCELLED
    if isinstance(error, ServiceTimeout):
        return ErrorKind.AREA_TOO_LARGE

    message = str(error).lower()
    if "timeout" in message or "too large" in message:
        return ErrorKind.AREA_TOO_LARGE
    if isinstance(error, (NetworkError, MalformedResponse)):
        return ErrorKind.SERVICE_UNAVAILABLE
    return ErrorKind.GENERIC


def friendly_message(error):
    return FRIENDLY_MESSAGES[classify_error(error)]
