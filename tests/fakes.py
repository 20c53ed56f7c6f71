"""
In-memory fakes for the remote data sources and builders for raw OSM payloads.
"""

import json

import numpy as np

from flood_exposure.errors import NetworkError
from flood_exposure.http import HttpResponse
from flood_exposure.models import BoundingBox, HazardTier
from flood_exposure.raster import RasterSample

WIDTH = HEIGHT = 800


def make_sample(tier=HazardTier.EXTREME, bbox=None, flooded_columns=None, pixels=None):
    """
    RasterSample for tests.

    ``flooded_columns`` is a slice of pixel columns painted with an opaque
    blue; everything else is fully transparent.
    """
    bbox = bbox or BoundingBox(west=13.0, south=52.0, east=13.1, north=52.1)
    if pixels is None:
        pixels = np.zeros((HEIGHT, WIDTH, 4), dtype=np.uint8)
        if flooded_columns is not None:
            pixels[:, flooded_columns] = (120, 180, 255, 200)
    return RasterSample(tier=HazardTier(tier), bbox=bbox, pixels=pixels)


class FakeTransport:
    """
    Scripted transport. Each queued item is an HttpResponse or an exception
    to raise; every call is recorded.
    """

    def __init__(self, script=None, default=None):
        self.script = list(script or [])
        self.default = default
        self.calls = []

    async def request(self, method, url, params=None, data=None):
        self.calls.append({"method": method, "url": url, "params": params, "data": data})
        if self.script:
            item = self.script.pop(0)
        elif self.default is not None:
            item = self.default
        else:
            raise NetworkError(f"No scripted response for {url}")
        if isinstance(item, Exception):
            raise item
        return item


class FakeRasterSource:
    """Returns prebuilt samples; records requested tiers."""

    def __init__(self, samples, fail_tiers=()):
        self.samples = samples
        self.fail_tiers = set(fail_tiers)
        self.requests = []

    async def load_tier(self, tier, bbox):
        tier = HazardTier(tier)
        self.requests.append(tier)
        if tier in self.fail_tiers:
            raise NetworkError(f"Failed to load WMS image for tier {tier.value}")
        return self.samples[tier]


class FakeFeatureSource:
    def __init__(self, buildings=None, roads=None, buildings_error=None, roads_error=None):
        self.buildings = buildings if buildings is not None else {"elements": []}
        self.roads = roads if roads is not None else {"elements": []}
        self.buildings_error = buildings_error
        self.roads_error = roads_error

    async def fetch_buildings(self, area):
        if self.buildings_error:
            raise self.buildings_error
        return self.buildings

    async def fetch_roads(self, area):
        if self.roads_error:
            raise self.roads_error
        return self.roads


class FakeLandCoverSource:
    def __init__(self, geojson=None, error=None):
        self.geojson = geojson if geojson is not None else {"type": "FeatureCollection", "features": []}
        self.error = error

    async def fetch(self, area):
        if self.error:
            raise self.error
        return self.geojson


def node(node_id, lat, lon):
    return {"type": "node", "id": node_id, "lat": lat, "lon": lon}


def way(way_id, node_ids, **tags):
    return {"type": "way", "id": way_id, "nodes": list(node_ids), "tags": tags}


def building_elements(centroids, building_type="house", start_id=1):
    """Square building footprints (4 nodes) around the given (lat, lon) centroids."""
    elements = []
    d = 0.00005
    next_node = 1000 * start_id
    for i, (lat, lon) in enumerate(centroids):
        ids = []
        for dlat, dlon in ((-d, -d), (-d, d), (d, d), (d, -d)):
            elements.append(node(next_node, lat + dlat, lon + dlon))
            ids.append(next_node)
            next_node += 1
        elements.append(way(start_id + i, ids + [ids[0]], building=building_type))
    return {"elements": elements}


def json_response(data, status=200):
    return HttpResponse(status=status, body=json.dumps(data).encode("utf-8"))



def road_elements(roads, first_node=900000):
    """
    Overpass payload for roads given as (way_id, [(lat, lon), ...], tags).
    """
    elements = []
    next_node = first_node
    for way_id, points, tags in roads:
        ids = []
        for lat, lon in points:
            elements.append(node(next_node, lat, lon))
            ids.append(next_node)
            next_node += 1
        elements.append(way(way_id, ids, **tags))
    return {"elements": elements}


def parcel_feature(feature_id, ring, **properties):
    """GeoJSON polygon feature from a ring of (x, y) coordinates."""
    return {
        "type": "Feature",
        "id": feature_id,
        "geometry": {"type": "Polygon", "coordinates": [[list(p) for p in ring]]},
        "properties": properties,
    }
