# -*- coding: utf-8 -*-

"""
Turn raw source payloads into typed features.

OpenStreetMap answers come as a flat list of elements: nodes with lat/lon
and ways listing node ids. Buildings and roads are resolved against the node
table; unresolvable node ids are dropped, and a feature left without enough
vertices is dropped with it. Land parcels come from a GeoJSON feature
collection.
"""

import logging

from shapely.geometry import shape
from shapely.errors import GEOSException

from .errors import MalformedResponse
from .geometry import unproject, vertex_centroid
from .models import Building, LandParcel, RoadSegment

logger = logging.getLogger(__name__)

BUILDING_CATEGORIES = {
    "Residential": ["house", "residential", "apartments", "detached", "semidetached_house",
                    "terrace", "bungalow", "dormitory"],
    "Commercial": ["commercial", "retail", "office", "supermarket", "shop"],
    "Industrial": ["industrial", "warehouse", "manufacture", "factory"],
    "Public": ["public", "government", "civic", "townhall"],
    "Infrastructure": ["hospital", "school", "university", "college", "kindergarten",
                       "church", "cathedral", "mosque", "temple", "synagogue"],
}

_BUILDING_LOOKUP = {t: category for category, types in BUILDING_CATEGORIES.items() for t in types}

# Brandenburg biotope mapping (BTK classification), keyed by the first two
# digits of the biotope code
BIOTOPE_CATEGORIES = {
    "urban": {
        "label": "Bebaute Gebiete / Built-up Areas",
        "codes": ["10", "11", "12"],
        "color": "#e31a1c",
        "description": "Settlements, industry, infrastructure",
    },
    "agriculture": {
        "label": "Landwirtschaftsflächen / Agricultural Areas",
        "codes": ["09"],
        "color": "#ffff33",
        "description": "Cropland, orchards, vineyards",
    },
    "grassland": {
        "label": "Grünland / Grassland",
        "codes": ["05"],
        "color": "#a6d96a",
        "description": "Meadows, pastures, grasslands",
    },
    "forest": {
        "label": "Wälder / Forests",
        "codes": ["08"],
        "color": "#1b7837",
        "description": "Forests and woodlands",
    },
    "shrubs": {
        "label": "Gebüsche / Shrubland",
        "codes": ["07"],
        "color": "#66c2a4",
        "description": "Shrubs, hedges, scrubland",
    },
    "wetland": {
        "label": "Feuchtgebiete / Wetlands",
        "codes": ["04"],
        "color": "#4575b4",
        "description": "Marshes, swamps, bogs",
    },
    "water": {
        "label": "Gewässer / Water Bodies",
        "codes": ["02"],
        "color": "#0571b0",
        "description": "Rivers, lakes, ponds",
    },
    "barren": {
        "label": "Offenland / Open Land",
        "codes": ["03"],
        "color": "#d9d9d9",
        "description": "Sand, gravel, rocks, bare soil",
    },
    "ruderal": {
        "label": "Ruderalfluren / Ruderal Vegetation",
        "codes": ["06"],
        "color": "#fee08b",
        "description": "Ruderal areas, pioneer vegetation",
    },
}

UNKNOWN_CATEGORY = {"label": "Unknown", "color": "#999999", "description": "Unknown category"}


def categorize_building_type(building_type):
    """Map an OSM building tag value onto a broad category (exact match)."""
    return _BUILDING_LOOKUP.get(building_type, "Other")


def categorize_biotope(biotope_type):
    """Map a biotope code onto a land-cover category by its 2-character prefix."""
    if not biotope_type:
        return "other"

    code = str(biotope_type)[:2]
    for key, category in BIOTOPE_CATEGORIES.items():
        if code in category["codes"]:
            return key
    return "other"


def category_info(key):
    return BIOTOPE_CATEGORIES.get(key, UNKNOWN_CATEGORY)


def _elements(data):
    elements = data.get("elements") if isinstance(data, dict) else None
    if not isinstance(elements, list):
        raise MalformedResponse("Response has no 'elements' array")
    return elements


def _node_table(elements):
    return {
        e["id"]: (e["lat"], e["lon"])
        for e in elements
        if e.get("type") == "node" and "lat" in e and "lon" in e
    }


def _resolve(way, nodes):
    return [nodes[n] for n in way.get("nodes") or [] if n in nodes]


def process_buildings(data):
    """
    Extract buildings from an Overpass element collection.

    Parameters:
    -----------
    data : dict
        Overpass JSON response with an ``elements`` list

    Returns:
    --------
    list of Building
        Buildings with their unweighted vertex-mean centroid and category
    """
    elements = _elements(data)
    nodes = _node_table(elements)
    buildings = []

    for element in elements:
        tags = element.get("tags") or {}
        if element.get("type") != "way" or not tags.get("building"):
            continue

        coords = _resolve(element, nodes)
        if not coords:
            continue

        centroid = (
            sum(c[0] for c in coords) / len(coords),
            sum(c[1] for c in coords) / len(coords),
        )
        building_type = tags["building"]
        buildings.append(Building(
            id=element["id"],
            type=building_type,
            category=categorize_building_type(building_type),
            centroid=centroid,
            name=tags.get("name"),
            amenity=tags.get("amenity"),
            nodes=tuple(coords),
            tags=dict(tags),
        ))

    logger.info("Processed %d buildings from %d elements", len(buildings), len(elements))
    return buildings


def process_roads(data):
    """Extract road segments (ways with a highway tag and at least 2 nodes)."""
    elements = _elements(data)
    nodes = _node_table(elements)
    roads = []

    for element in elements:
        tags = element.get("tags") or {}
        if element.get("type") != "way" or not tags.get("highway"):
            continue

        coords = _resolve(element, nodes)
        # Need at least 2 points for a road segment
        if len(coords) < 2:
            continue

        roads.append(RoadSegment(
            id=element["id"],
            type=tags["highway"],
            nodes=tuple(coords),
            name=tags.get("name"),
            ref=tags.get("ref"),
            bridge=tags.get("bridge"),
            tunnel=tags.get("tunnel"),
            surface=tags.get("surface"),
            tags=dict(tags),
        ))

    logger.info("Processed %d road segments from %d elements", len(roads), len(elements))
    return roads


def process_land_parcels(geojson):
    """
    Build LandParcels from a biotope GeoJSON feature collection.

    Centroids are the mean of the polygon vertices. Coordinates that are
    clearly projected (outside the degree range) are taken as Web-Mercator
    and converted back to degrees.
    """
    features = geojson.get("features") if isinstance(geojson, dict) else None
    if not isinstance(features, list):
        logger.warning("No features found in land-cover response")
        return []

    parcels = []
    for feature in features:
        properties = feature.get("properties") or {}
        geometry = feature.get("geometry")
        if not geometry:
            continue

        try:
            geom = shape(geometry)
        except (GEOSException, ValueError, TypeError, KeyError) as e:
            logger.warning("Skipping land parcel %s with unreadable geometry: %s",
                           feature.get("id"), e)
            continue
        if geom.is_empty:
            continue

        x, y = vertex_centroid(geom)
        if abs(x) > 180 or abs(y) > 90:
            centroid = unproject(x, y)
        else:
            centroid = (y, x)

        biotope_type = properties.get("biotoptyp") or ""
        parcels.append(LandParcel(
            id=feature.get("id"),
            type=biotope_type or "unknown",
            type_code=properties.get("biotoptyp8") or "",
            description=properties.get("biotoptyp8_t") or "Unknown biotope type",
            category=categorize_biotope(biotope_type),
            legend_code=properties.get("leg_code"),
            centroid=centroid,
            geometry=geom,
        ))

    logger.info("Loaded %d biotope features", len(parcels))
    return parcels
