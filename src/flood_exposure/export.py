# -*- coding: utf-8 -*-

"""
Write analysis results to disk: building table (CSV), GeoJSON layers, a JSON
summary and an optional static map.
"""

import json
import logging
import os

import geopandas as gpd
import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402
from shapely.geometry import LineString, Point  # noqa: E402

logger = logging.getLogger(__name__)

CSV_COLUMNS = ["Building ID", "Type", "Category", "Latitude", "Longitude",
               "HQ-extrem", "HQ-hoch", "HQ-mittel", "Highest Risk"]

# Colours per highest tier, shared by the static map legend
RISK_COLORS = {
    "none": "#D3D3D3",
    "medium": "#FFC8C8",
    "high": "#FF8080",
    "extreme": "#800080",
}


def _yes_no(flag):
    return "Yes" if flag else "No"


def buildings_frame(buildings):
    """One row per tagged building, formatted as in the exported CSV."""
    rows = []
    for b in buildings:
        lat, lon = b.centroid
        rows.append([
            b.id,
            b.type,
            b.category,
            f"{lat:.6f}",
            f"{lon:.6f}",
            _yes_no(b.risk.extreme),
            _yes_no(b.risk.high),
            _yes_no(b.risk.medium),
            b.risk.highest,
        ])
    return pd.DataFrame(rows, columns=CSV_COLUMNS)


def export_buildings_csv(buildings, path):
    buildings_frame(buildings).to_csv(path, index=False)
    logger.info("Building table exported to %s", path)
    return path


def read_buildings_csv(path):
    """
    Parse a table written by export_buildings_csv().

    Flags come back as booleans and coordinates as floats.
    """
    frame = pd.read_csv(path, dtype={"Type": str, "Category": str, "Highest Risk": str},
                        keep_default_na=False)
    for column in ("HQ-extrem", "HQ-hoch", "HQ-mittel"):
        frame[column] = frame[column] == "Yes"
    return frame


def buildings_geodataframe(buildings):
    records = []
    for b in buildings:
        lat, lon = b.centroid
        records.append({
            "id": b.id,
            "type": b.type,
            "category": b.category,
            "name": b.name,
            "extreme": b.risk.extreme,
            "high": b.risk.high,
            "medium": b.risk.medium,
            "highest": b.risk.highest,
            "geometry": Point(lon, lat),
        })
    columns = ["id", "type", "category", "name", "extreme", "high", "medium", "highest", "geometry"]
    return gpd.GeoDataFrame(records, columns=columns, geometry="geometry", crs="EPSG:4326")


def roads_geodataframe(roads):
    records = []
    for r in roads:
        records.append({
            "id": r.id,
            "type": r.type,
            "name": r.name or "Unnamed Road",
            "bridge": bool(r.bridge),
            "tunnel": bool(r.tunnel),
            "length_km": r.risk.total_length,
            "affected_pct": r.risk.affected_percentage,
            "affected_km": r.risk.affected_length,
            "majority_flooded": r.risk.is_majority_flooded,
            "geometry": LineString([(lon, lat) for lat, lon in r.nodes]),
        })
    columns = ["id", "type", "name", "bridge", "tunnel", "length_km", "affected_pct",
               "affected_km", "majority_flooded", "geometry"]
    return gpd.GeoDataFrame(records, columns=columns, geometry="geometry", crs="EPSG:4326")


def export_geojson(result, export_dir):
    """Write tagged buildings and roads as GeoJSON layers; returns written paths."""
    os.makedirs(export_dir, exist_ok=True)
    paths = []

    if result.buildings:
        path = os.path.join(export_dir, "buildings_flood_risk.geojson")
        buildings_geodataframe(result.buildings).to_file(path, driver="GeoJSON")
        paths.append(path)

    if result.roads:
        path = os.path.join(export_dir, "roads_flood_risk.geojson")
        roads_geodataframe(result.roads).to_file(path, driver="GeoJSON")
        paths.append(path)

    for path in paths:
        logger.info("Exported %s", path)
    return paths


def export_summary_json(result, path):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(result.summary(), f, ensure_ascii=False, indent=2)
    return path


def create_static_map(result, output_file):
    """
    Static PNG of the analysis area, buildings coloured by highest tier and
    roads by whether most of their length is flooded.
    """
    fig, ax = plt.subplots(figsize=(12, 10))

    area = gpd.GeoDataFrame(geometry=[result.area.to_polygon()], crs="EPSG:4326")
    area.boundary.plot(ax=ax, color="black", linewidth=2)

    if result.roads:
        roads = roads_geodataframe(result.roads)
        roads.plot(ax=ax, color=RISK_COLORS["none"], linewidth=1.0, zorder=1)
        flooded = roads[roads.affected_pct > 0]
        if not flooded.empty:
            flooded.plot(ax=ax, color="#1f78b4", linewidth=1.5, zorder=2)

    if result.buildings:
        buildings = buildings_geodataframe(result.buildings)
        for level, color in RISK_COLORS.items():
            subset = buildings[buildings.highest == level]
            if not subset.empty:
                subset.plot(ax=ax, color=color, markersize=12, edgecolor="black",
                            linewidth=0.3, zorder=3, label=level)
        ax.legend(title="Highest Risk", loc="lower right", frameon=False)

    ax.set_xlabel("Longitude")
    ax.set_ylabel("Latitude")
    ax.set_title(f"Flood Exposure ({result.active_tier.label})")
    ax.grid(True, linestyle="--", alpha=0.7)

    plt.tight_layout()
    plt.savefig(output_file, dpi=300, bbox_inches="tight")
    plt.close(fig)
    logger.info("Static map saved to %s", output_file)
    return output_file
