# -*- coding: utf-8 -*-

"""
Census population exposure.

Communes (administrative units with a census count) are loaded once per
process into a CommuneCache. compute_exposure() sums the population of every
commune the analysis area touches; apportion_by_risk() spreads that total
over the hazard tiers in proportion to the share of affected buildings.

Any intersection counts a commune's whole population. This is a coarse
approximation, not an area-weighted clip.
"""

import logging
import math

import geopandas as gpd
import pandas as pd
from shapely.errors import GEOSException

from .config import DEFAULT_POPULATION_FIELD
from .errors import GeometryError
from .models import Commune, CommuneShare, HazardTier, PopulationEstimate

logger = logging.getLogger(__name__)

WEB_MERCATOR = "EPSG:3857"


def round_half_up(value):
    return int(math.floor(value + 0.5))


def parse_population(value):
    """Census counts arrive as ints, floats or strings; anything else is 0."""
    if value is None:
        return 0
    try:
        if pd.isna(value):
            return 0
    except (TypeError, ValueError):
        return 0
    try:
        return int(float(str(value).strip()))
    except ValueError:
        return 0


def communes_from_frame(frame, population_field=DEFAULT_POPULATION_FIELD, name_fields=("GEN", "name")):
    """
    Convert a GeoDataFrame of commune polygons into Commune values.

    The frame is reprojected to Web-Mercator when it declares another CRS.
    Rows without geometry are skipped.
    """
    if frame.crs is not None and frame.crs != WEB_MERCATOR:
        frame = frame.to_crs(WEB_MERCATOR)

    communes = []
    for _, row in frame.iterrows():
        geometry = row.geometry
        if geometry is None or geometry.is_empty:
            continue

        name = "Unknown"
        for name_field in name_fields:
            value = row.get(name_field)
            if isinstance(value, str) and value:
                name = value
                break

        communes.append(Commune(
            name=name,
            population=parse_population(row.get(population_field)),
            geometry=geometry,
        ))
    return communes


class CommuneCache:
    """
    Load-once holder for the commune dataset.

    The first get() reads the file; later calls return the same immutable
    tuple. invalidate() drops it so the next get() reloads (used by tests
    and when the dataset file is swapped).
    """

    def __init__(self, path=None, population_field=DEFAULT_POPULATION_FIELD,
                 name_fields=("GEN", "name"), loader=None):
        self.path = path
        self.population_field = population_field
        self.name_fields = tuple(name_fields)
        self._loader = loader
        self._communes = None
        self.load_count = 0

    @property
    def is_loaded(self):
        return self._communes is not None

    def _load(self):
        if self._loader is not None:
            return list(self._loader())
        if not self.path:
            raise FileNotFoundError("No commune dataset configured")

        frame = gpd.read_file(self.path)
        return communes_from_frame(frame, self.population_field, self.name_fields)

    def get(self):
        if self._communes is None:
            self._communes = tuple(self._load())
            self.load_count += 1
            logger.info("Loaded %d communes with census data", len(self._communes))
        return self._communes

    def invalidate(self):
        self._communes = None


def _intersects(commune, polygon):
    try:
        return commune.geometry.intersects(polygon)
    except (GEOSException, ValueError) as e:
        raise GeometryError(f"Intersection check failed for {commune.name}: {e}") from e


def compute_exposure(area, communes):
    """
    Sum the census population of all communes touching the analysis area.

    Parameters:
    -----------
    area : AnalysisArea
        The analysis polygon in WGS84
    communes : iterable of Commune
        Commune polygons in Web-Mercator, e.g. CommuneCache.get()

    Returns:
    --------
    PopulationEstimate
        Total population and contributing communes; ``affected`` is left
        empty for apportion_by_risk()
    """
    polygon = area.to_web_mercator()
    total = 0
    shares = []

    for commune in communes:
        try:
            if not _intersects(commune, polygon):
                continue
        except GeometryError as e:
            logger.warning("Skipping commune: %s", e)
            continue

        if commune.population > 0:
            total += commune.population
            shares.append(CommuneShare(
                name=commune.name,
                population=commune.population,
                overlap_percentage=1.0,
                estimated_in_area=commune.population,
            ))

    return PopulationEstimate(total=total, communes=shares)


def building_risk_counts(buildings):
    """Building totals per tier, the apportionment key."""
    counts = {"total": len(buildings), "any": 0}
    for tier in HazardTier:
        counts[tier.value] = sum(1 for b in buildings if b.risk.is_flooded(tier))
    counts["any"] = sum(1 for b in buildings if b.risk.affected)
    return counts


def apportion_by_risk(total_population, counts):
    """
    Affected population per tier, proportional to affected building shares.

    ``counts["total"]`` must be non-zero; callers skip this step for an
    empty building set.

    Returns:
    --------
    dict
        tier value (and "any") -> rounded population
    """
    total_buildings = counts["total"]
    result = {}
    for key in [t.value for t in HazardTier] + ["any"]:
        result[key] = round_half_up(total_population * (counts[key] / total_buildings))
    return result


def population_density(population, area_km2):
    """Inhabitants per square kilometer; 0 for a non-positive area."""
    if area_km2 <= 0:
        return 0
    return round_half_up(population / area_km2)
