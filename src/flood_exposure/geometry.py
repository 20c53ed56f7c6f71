# -*- coding: utf-8 -*-

"""
Coordinate and distance helpers.

All geographic coordinates are WGS84 degrees and are passed as (lat, lon)
pairs, the order in which they come from the drawing tool and from
OpenStreetMap nodes. Projected coordinates are Web-Mercator (EPSG:3857)
meters as (x, y).
"""

import math

import numpy as np
import shapely

# Half the equatorial circumference used by EPSG:3857
ORIGIN_SHIFT = 20037508.34

# Mean Earth radius for haversine distances
EARTH_RADIUS_M = 6371000.0

# WGS84 equatorial radius for the spherical polygon area
WGS84_RADIUS_M = 6378137.0


def project(lat, lon):
    """
    Convert WGS84 degrees to Web-Mercator meters.

    Parameters:
    -----------
    lat : float
        Latitude in degrees, strictly between -90 and 90
    lon : float
        Longitude in degrees

    Returns:
    --------
    tuple
        (x, y) in meters
    """
    x = lon * ORIGIN_SHIFT / 180
    y = math.log(math.tan((90 + lat) * math.pi / 360)) / (math.pi / 180)
    return x, y * ORIGIN_SHIFT / 180


def unproject(x, y):
    """Inverse of project(); returns (lat, lon)."""
    lon = x * 180 / ORIGIN_SHIFT
    lat = y * 180 / ORIGIN_SHIFT
    lat = 360 / math.pi * math.atan(math.exp(lat * math.pi / 180)) - 90
    return lat, lon


def haversine_distance(lat1, lon1, lat2, lon2):
    """Great-circle distance in meters between two points."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (math.sin(d_phi / 2) ** 2
         + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def sample_points_along(points, interval_m=50.0):
    """
    Resample a polyline at a fixed spacing.

    Each original segment contributes its start vertex followed by points at
    every whole multiple of ``interval_m`` along it (linear interpolation in
    degrees); the final vertex of the polyline is always appended. A segment
    of 120 m at 50 m spacing therefore yields 0, 50 and 100 m, and the next
    vertex closes it at 120 m.

    Parameters:
    -----------
    points : list of tuple
        Ordered (lat, lon) vertices, at least two
    interval_m : float
        Spacing between samples in meters

    Returns:
    --------
    list of tuple
        Sampled (lat, lon) points
    """
    samples = []

    for (lat1, lon1), (lat2, lon2) in zip(points[:-1], points[1:]):
        samples.append((lat1, lon1))

        segment_m = haversine_distance(lat1, lon1, lat2, lon2)
        if segment_m > interval_m:
            for step in range(1, int(segment_m // interval_m) + 1):
                fraction = step * interval_m / segment_m
                samples.append((lat1 + (lat2 - lat1) * fraction,
                                lon1 + (lon2 - lon1) * fraction))

    samples.append(tuple(points[-1]))
    return samples


def polyline_length_km(points):
    """Sum of haversine distances between consecutive vertices, in km."""
    total = 0.0
    for (lat1, lon1), (lat2, lon2) in zip(points[:-1], points[1:]):
        total += haversine_distance(lat1, lon1, lat2, lon2)
    return total / 1000


def geodesic_area_km2(ring):
    """
    Approximate area of a (lat, lon) ring on the sphere, in square kilometers.

    The ring may be open or closed; a closing vertex adds no area.
    """
    n = len(ring)
    if n < 3:
        return 0.0

    area = 0.0
    for i in range(n):
        lat1, lon1 = ring[i]
        lat2, lon2 = ring[(i + 1) % n]
        area += (math.radians(lon2 - lon1)
                 * (2 + math.sin(math.radians(lat1)) + math.sin(math.radians(lat2))))

    area = area * WGS84_RADIUS_M * WGS84_RADIUS_M / 2
    return abs(area) / 1e6


def vertex_centroid(geometry):
    """
    Mean of the vertices of a shapely Polygon or MultiPolygon.

    The closing vertex of every ring is skipped so that it is not counted
    twice. Returns (x, y) in the geometry's own axis order, or None for
    an empty geometry.
    """
    if geometry is None or geometry.is_empty:
        return None

    if geometry.geom_type == "Polygon":
        polygons = [geometry]
    elif geometry.geom_type == "MultiPolygon":
        polygons = list(geometry.geoms)
    else:
        # Points and lines: plain mean of their coordinates
        coords = shapely.get_coordinates(geometry)
        x, y = coords[:, 0].mean(), coords[:, 1].mean()
        return float(x), float(y)

    rings = []
    for polygon in polygons:
        for ring in [polygon.exterior, *polygon.interiors]:
            coords = np.asarray(ring.coords)
            rings.append(coords[:-1, :2])

    coords = np.concatenate(rings)
    return float(coords[:, 0].mean()), float(coords[:, 1].mean())
