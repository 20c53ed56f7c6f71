# -*- coding: utf-8 -*-

"""
Attach flood risk records to features.

Every feature kind exposes ``sample_points(interval_m)``; the tagger asks a
feature for its points and classifies each against a RasterSample. Buildings
and land parcels yield their centroid, roads yield a resampled polyline.

The tag_* functions are synchronous and never suspend, so a pass always runs
against the rasters it was given. The analyze_* coroutines load the rasters
first and then run one pass.
"""

import logging

from .models import FloodRisk, HazardTier, RoadRisk
from .progress import ProgressCadence
from .raster import NOISE_THRESHOLD, is_flooded, load_tiers

logger = logging.getLogger(__name__)

BUILDING_STAGE = "buildings"
LAND_COVER_STAGE = "land_cover"
ROAD_STAGE = "roads"


def classify_points(points, sample, threshold=NOISE_THRESHOLD):
    return [is_flooded(lat, lon, sample, threshold) for lat, lon in points]


def count_flooded(feature, sample, interval_m=None, threshold=NOISE_THRESHOLD):
    """
    Classify every sample point of a feature.

    Returns:
    --------
    tuple
        (number of sample points, number of flooded sample points)
    """
    points = feature.sample_points(interval_m) if interval_m else feature.sample_points()
    flags = classify_points(points, sample, threshold)
    return len(flags), sum(flags)


def tag_buildings(buildings, samples, progress=None, every=50, threshold=NOISE_THRESHOLD):
    """
    Classify buildings against all three hazard tiers.

    Parameters:
    -----------
    buildings : list of Building
        Buildings to tag
    samples : dict
        HazardTier -> RasterSample, one per tier
    progress : ProgressStream, optional
        Receives an event for the first, every ``every``-th and the last building
    every : int
        Progress cadence
    threshold : int
        Pixel noise threshold

    Returns:
    --------
    list of Building
        Copies of the input with a FloodRisk attached
    """
    missing = [t.value for t in HazardTier if t not in samples]
    if missing:
        raise ValueError(f"Building analysis needs rasters for every tier, missing: {missing}")

    cadence = ProgressCadence(progress, BUILDING_STAGE, len(buildings), every,
                              "Analyzing buildings...")
    tagged = []
    for index, building in enumerate(buildings):
        flags = {}
        for tier in HazardTier:
            _, flooded = count_flooded(building, samples[tier], threshold=threshold)
            flags[tier] = flooded > 0
        tagged.append(building.with_risk(FloodRisk.from_flags(flags)))
        cadence.step(index)

    return tagged


def tag_land_parcels(parcels, sample, threshold=NOISE_THRESHOLD):
    """Classify land parcels against the single active tier of ``sample``."""
    tagged = []
    for parcel in parcels:
        _, flooded = count_flooded(parcel, sample, threshold=threshold)
        tagged.append(parcel.with_risk(FloodRisk.from_flags({sample.tier: flooded > 0})))
    return tagged


def tag_roads(roads, sample, interval_m=50.0, progress=None, every=100,
              threshold=NOISE_THRESHOLD):
    """
    Classify resampled road geometries against the active tier of ``sample``.

    Road length is measured along the original vertices, not the samples.
    """
    cadence = ProgressCadence(progress, ROAD_STAGE, len(roads), every,
                              "Analyzing roads: {current}/{total}")
    tagged = []
    for index, road in enumerate(roads):
        total, flooded = count_flooded(road, sample, interval_m=interval_m, threshold=threshold)
        risk = RoadRisk(
            tier=sample.tier,
            total_sample_points=total,
            affected_points=flooded,
            total_length=road.length_km(),
        )
        tagged.append(road.with_risk(risk))
        cadence.step(index)

    logger.info("Completed flood risk analysis for %d roads", len(tagged))
    return tagged


async def analyze_buildings(buildings, source, bbox, progress=None, every=50,
                            threshold=NOISE_THRESHOLD):
    """Load all three tiers concurrently, then tag the buildings."""
    cadence = ProgressCadence(progress, BUILDING_STAGE, len(buildings), every, "")
    cadence.announce("Loading flood risk maps...")

    samples = await load_tiers(source, HazardTier.by_severity(), bbox)

    cadence.announce("Analyzing buildings...")
    return tag_buildings(buildings, samples, progress=progress, every=every, threshold=threshold)


async def analyze_land_parcels(parcels, source, bbox, tier, threshold=NOISE_THRESHOLD):
    if not parcels:
        return []
    sample = await source.load_tier(HazardTier(tier), bbox)
    return tag_land_parcels(parcels, sample, threshold=threshold)


async def analyze_roads(roads, source, bbox, tier, interval_m=50.0, progress=None, every=100,
                        threshold=NOISE_THRESHOLD):
    logger.info("Analyzing flood risk for %d road segments...", len(roads))
    if not roads:
        return []
    sample = await source.load_tier(HazardTier(tier), bbox)
    return tag_roads(roads, sample, interval_m=interval_m, progress=progress, every=every,
                     threshold=threshold)
