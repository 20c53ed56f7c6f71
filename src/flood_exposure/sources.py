# -*- coding: utf-8 -*-

"""
Remote vector data sources: OpenStreetMap via Overpass, and the biotope
(land-parcel) WFS.
"""

import logging

from .errors import MalformedResponse, NetworkError, ServiceTimeout
from .http import fetch_with_fallback

logger = logging.getLogger(__name__)

OVERPASS_QUERY = """[out:json][timeout:{timeout}];
(
  way["{key}"](poly:"{poly}");
  relation["{key}"](poly:"{poly}");
);
out body;
>;
out skel qt;"""


def overpass_query(area, key, timeout=90):
    """Overpass QL selecting all ways/relations carrying ``key`` inside the area."""
    poly = " ".join(f"{lat} {lon}" for lat, lon in area.vertices)
    return OVERPASS_QUERY.format(timeout=timeout, key=key, poly=poly)


class OverpassSource:
    """
    Fetches OSM element collections for an AnalysisArea.

    Requests go through fetch_with_fallback(), so the endpoint list, the
    number of attempts and the backoff come from the RetryPolicy.
    """

    def __init__(self, transport, policy, timeout=90, sleep=None):
        self.transport = transport
        self.policy = policy
        self.timeout = timeout
        self._sleep = sleep

    async def fetch(self, area, key):
        query = overpass_query(area, key, self.timeout)
        kwargs = {"sleep": self._sleep} if self._sleep is not None else {}
        response = await fetch_with_fallback(
            self.transport, self.policy, method="POST", data={"data": query}, **kwargs
        )
        data = response.json()
        if not isinstance(data, dict) or not isinstance(data.get("elements"), list):
            raise MalformedResponse(f"Overpass response for '{key}' has no 'elements' array")
        logger.info("Fetched %d elements for '%s'", len(data["elements"]), key)
        return data

    async def fetch_buildings(self, area):
        return await self.fetch(area, "building")

    async def fetch_roads(self, area):
        return await self.fetch(area, "highway")


class BiotopeWFSSource:
    """Fetches land-parcel features for the bounding box of an AnalysisArea."""

    def __init__(self, transport, url, type_name="app:btlncir_fl"):
        self.transport = transport
        self.url = url
        self.type_name = type_name

    def request_params(self, bbox):
        minx, miny, maxx, maxy = bbox.to_web_mercator()
        return {
            "service": "WFS",
            "version": "2.0.0",
            "request": "GetFeature",
            "typeName": self.type_name,
            "bbox": f"{minx},{miny},{maxx},{maxy},urn:ogc:def:crs:EPSG::3857",
            "outputFormat": "application/geo+json",
        }

    async def fetch(self, area):
        """
        Returns:
        --------
        dict
            GeoJSON FeatureCollection as decoded from the service
        """
        params = self.request_params(area.bounding_box())
        logger.info("Fetching biotope data from %s", self.url)
        response = await self.transport.request("GET", self.url, params=params)

        if not response.ok:
            error_cls = ServiceTimeout if response.status in (503, 504) else NetworkError
            raise error_cls(f"WFS request failed: {response.status}",
                            status=response.status, endpoint=self.url)
        return response.json()
