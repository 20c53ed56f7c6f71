"""
Flood exposure analysis package.

This package assesses the flood exposure of buildings, roads, land cover and
census population inside a drawn area, using hazard maps served as rasters
and OpenStreetMap features.
"""

from .errors import (AnalysisCancelled, FloodExposureError, GeometryError, MalformedResponse,
                     NetworkError, RateLimited, ServiceTimeout)
from .models import AnalysisArea, BoundingBox, HazardTier
from .pipeline import AnalysisResult, FloodExposureAnalyzer, run_analysis

__version__ = "0.1.0"

__all__ = [
    "AnalysisArea",
    "AnalysisCancelled",
    "AnalysisResult",
    "BoundingBox",
    "FloodExposureAnalyzer",
    "FloodExposureError",
    "GeometryError",
    "HazardTier",
    "MalformedResponse",
    "NetworkError",
    "RateLimited",
    "ServiceTimeout",
    "run_analysis",
]
