"""
Pytest fixtures for flood_exposure tests.

Nothing here touches the network: transports, raster sources and feature
sources are the in-memory fakes from fakes.py.
"""

import pytest

from flood_exposure.models import AnalysisArea, BoundingBox, HazardTier

from fakes import make_sample


@pytest.fixture
def bbox():
    return BoundingBox(west=13.0, south=52.0, east=13.1, north=52.1)


@pytest.fixture
def area_latlngs():
    return [(52.0, 13.0), (52.0, 13.1), (52.1, 13.1), (52.1, 13.0)]


@pytest.fixture
def area(area_latlngs):
    return AnalysisArea.from_latlngs(area_latlngs)


@pytest.fixture
def west_half_flooded():
    """
    Samples for every tier over the default box.

    Extreme floods the west half (columns 0-399), high the west quarter
    (columns 0-199), medium nothing.
    """
    return {
        HazardTier.EXTREME: make_sample(HazardTier.EXTREME, flooded_columns=slice(0, 400)),
        HazardTier.HIGH: make_sample(HazardTier.HIGH, flooded_columns=slice(0, 200)),
        HazardTier.MEDIUM: make_sample(HazardTier.MEDIUM),
    }
