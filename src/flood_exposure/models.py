# -*- coding: utf-8 -*-

"""
Value types shared by the analysis steps.

Every value here is built fresh for one analysis run. Features are frozen;
tagging returns copies with a risk record attached instead of mutating.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import ClassVar, Dict, List, Optional, Tuple

from shapely.geometry import Polygon, box

from .errors import GeometryError
from .geometry import geodesic_area_km2, polyline_length_km, project, sample_points_along

NO_RISK = "none"


class HazardTier(Enum):
    """Flood hazard scenarios, declared from most to least severe."""

    EXTREME = "extreme"
    HIGH = "high"
    MEDIUM = "medium"

    @classmethod
    def by_severity(cls):
        return [cls.EXTREME, cls.HIGH, cls.MEDIUM]

    @property
    def severity(self):
        return 3 - HazardTier.by_severity().index(self)

    @property
    def label(self):
        return {"extreme": "HQ-extrem", "high": "HQ-hoch", "medium": "HQ-mittel"}[self.value]


@dataclass(frozen=True)
class BoundingBox:
    west: float
    south: float
    east: float
    north: float

    @classmethod
    def from_points(cls, points):
        """Box around (lat, lon) points."""
        lats = [p[0] for p in points]
        lons = [p[1] for p in points]
        return cls(west=min(lons), south=min(lats), east=max(lons), north=max(lats))

    @property
    def width(self):
        return self.east - self.west

    @property
    def height(self):
        return self.north - self.south

    def to_web_mercator(self):
        """(minx, miny, maxx, maxy) in EPSG:3857 meters."""
        minx, miny = project(self.south, self.west)
        maxx, maxy = project(self.north, self.east)
        return minx, miny, maxx, maxy

    def to_polygon(self):
        return box(self.west, self.south, self.east, self.north)


@dataclass(frozen=True)
class AnalysisArea:
    """
    The user-selected region as an ordered ring of (lat, lon) vertices.

    The stored ring is closed: the first vertex is repeated at the end.
    Use from_latlngs() to build a validated instance.
    """

    ring: Tuple[Tuple[float, float], ...]

    @classmethod
    def from_latlngs(cls, points):
        """
        Validate and close a ring of (lat, lon) pairs.

        Raises:
        -------
        GeometryError
            If the ring has fewer than 3 distinct vertices or crosses itself
        """
        vertices = [(float(lat), float(lon)) for lat, lon in points]
        if len(vertices) > 1 and vertices[0] == vertices[-1]:
            vertices = vertices[:-1]

        if len(set(vertices)) < 3:
            raise GeometryError(
                f"Analysis area needs at least 3 distinct vertices, got {len(set(vertices))}"
            )

        polygon = Polygon([(lon, lat) for lat, lon in vertices])
        if not polygon.is_valid or polygon.area == 0:
            raise GeometryError("Analysis area is degenerate or self-intersecting")

        return cls(ring=tuple(vertices + [vertices[0]]))

    @property
    def vertices(self):
        """Ring without the closing vertex."""
        return list(self.ring[:-1])

    def to_polygon(self):
        """shapely Polygon in (lon, lat) axis order."""
        return Polygon([(lon, lat) for lat, lon in self.ring])

    def to_web_mercator(self):
        """shapely Polygon in EPSG:3857 meters."""
        return Polygon([project(lat, lon) for lat, lon in self.ring])

    def bounding_box(self):
        return BoundingBox.from_points(self.vertices)

    def area_km2(self):
        return geodesic_area_km2(self.vertices)


@dataclass(frozen=True)
class FloodRisk:
    """Per-tier flags for a point-sampled (building or parcel) feature."""

    extreme: bool = False
    high: bool = False
    medium: bool = False

    @classmethod
    def from_flags(cls, flags):
        return cls(**{tier.value: bool(flags.get(tier, False)) for tier in HazardTier})

    def is_flooded(self, tier):
        return getattr(self, HazardTier(tier).value)

    @property
    def highest(self):
        for tier in HazardTier.by_severity():
            if self.is_flooded(tier):
                return tier.value
        return NO_RISK

    @property
    def affected(self):
        return self.highest != NO_RISK

    def to_dict(self):
        return {"extreme": self.extreme, "high": self.high,
                "medium": self.medium, "highest": self.highest}


@dataclass(frozen=True)
class RoadRisk:
    """Sampled flood exposure of a road against one hazard tier."""

    tier: HazardTier
    total_sample_points: int
    affected_points: int
    total_length: float

    @property
    def affected_fraction(self):
        return self.affected_points / self.total_sample_points

    @property
    def affected_percentage(self):
        return self.affected_fraction * 100

    @property
    def affected_length(self):
        return self.total_length * self.affected_fraction

    @property
    def is_partially_flooded(self):
        return self.affected_points > 0

    @property
    def is_majority_flooded(self):
        return self.affected_fraction > 0.5

    def to_dict(self):
        return {
            "tier": self.tier.value,
            "totalSamplePoints": self.total_sample_points,
            "affectedPoints": self.affected_points,
            "affectedPercentage": self.affected_percentage,
            "totalLength": self.total_length,
            "affectedLength": self.affected_length,
            "isPartiallyFlooded": self.is_partially_flooded,
            "isMajorityFlooded": self.is_majority_flooded,
        }


@dataclass(frozen=True)
class Building:
    kind: ClassVar[str] = "building"

    id: int
    type: str
    centroid: Tuple[float, float]
    category: str = "Other"
    name: Optional[str] = None
    amenity: Optional[str] = None
    nodes: Tuple[Tuple[float, float], ...] = ()
    tags: Dict[str, str] = field(default_factory=dict, compare=False)
    risk: Optional[FloodRisk] = None

    def sample_points(self, interval_m=None):
        return [self.centroid]

    def with_risk(self, risk):
        return replace(self, risk=risk)


@dataclass(frozen=True)
class LandParcel:
    kind: ClassVar[str] = "land_parcel"

    id: str
    type: str
    centroid: Optional[Tuple[float, float]]
    category: str = "other"
    type_code: str = ""
    description: str = "Unknown biotope type"
    legend_code: Optional[str] = None
    geometry: object = field(default=None, compare=False, repr=False)
    risk: Optional[FloodRisk] = None

    def sample_points(self, interval_m=None):
        return [self.centroid] if self.centroid is not None else []

    def with_risk(self, risk):
        return replace(self, risk=risk)


@dataclass(frozen=True)
class RoadSegment:
    kind: ClassVar[str] = "road"

    id: int
    type: str
    nodes: Tuple[Tuple[float, float], ...]
    name: Optional[str] = None
    ref: Optional[str] = None
    bridge: Optional[str] = None
    tunnel: Optional[str] = None
    surface: Optional[str] = None
    tags: Dict[str, str] = field(default_factory=dict, compare=False)
    risk: Optional[RoadRisk] = None

    @property
    def category(self):
        return self.type

    def sample_points(self, interval_m=50.0):
        return sample_points_along(list(self.nodes), interval_m)

    def length_km(self):
        return polyline_length_km(list(self.nodes))

    def with_risk(self, risk):
        return replace(self, risk=risk)


@dataclass(frozen=True)
class Commune:
    name: str
    population: int
    geometry: object = field(compare=False, repr=False)


@dataclass
class CommuneShare:
    name: str
    population: int
    overlap_percentage: float = 1.0
    estimated_in_area: int = 0


@dataclass
class PopulationEstimate:
    total: int
    communes: List[CommuneShare] = field(default_factory=list)
    affected: Dict[str, int] = field(default_factory=dict)

    @property
    def commune_count(self):
        return len(self.communes)

    def to_dict(self):
        return {
            "total": self.total,
            "affected": dict(self.affected),
            "communeCount": self.commune_count,
            "communes": [
                {"name": c.name, "population": c.population,
                 "overlapPercentage": c.overlap_percentage,
                 "estimatedInArea": c.estimated_in_area}
                for c in self.communes
            ],
        }
