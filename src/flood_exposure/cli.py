#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Command line entry point.

Example:

    flood-exposure analyze --polygon 52.40,13.05 52.41,13.05 52.41,13.07 \\
        --tier extreme --communes data/gemeinden_3857.geojson --output-dir output
"""

import argparse
import asyncio
import logging
import os
import sys

import geopandas as gpd
from tqdm import tqdm

from .config import load_settings
from .errors import friendly_message
from .export import (create_static_map, export_buildings_csv, export_geojson,
                     export_summary_json)
from .models import AnalysisArea, HazardTier
from .pipeline import run_analysis
from .progress import ProgressStream

logger = logging.getLogger(__name__)

BAR_STAGES = {"buildings": "Analyzing buildings", "roads": "Analyzing roads"}


def parse_latlng(text):
    try:
        lat, lon = (float(v) for v in text.split(","))
    except ValueError:
        raise argparse.ArgumentTypeError(f"Expected 'lat,lon', got '{text}'")
    return lat, lon


def read_polygon_file(path):
    """First polygon of a vector file, as (lat, lon) vertices in WGS84."""
    frame = gpd.read_file(path)
    if frame.crs is not None:
        frame = frame.to_crs(epsg=4326)

    for geometry in frame.geometry:
        if geometry is None or geometry.is_empty:
            continue
        if geometry.geom_type == "MultiPolygon":
            geometry = max(geometry.geoms, key=lambda g: g.area)
        if geometry.geom_type == "Polygon":
            return [(y, x) for x, y in geometry.exterior.coords]

    raise ValueError(f"No polygon found in {path}")


def ask_to_continue(count):
    answer = input(f"Found {count} buildings. Analysis may take several minutes. Continue? [y/N] ")
    return answer.strip().lower() in ("y", "yes")


async def show_progress(stream):
    """Render progress events with tqdm until the stream closes."""
    bars = {}
    async for event in stream:
        if event.stage in BAR_STAGES and event.current > 0:
            bar = bars.get(event.stage)
            if bar is None:
                bar = bars[event.stage] = tqdm(total=event.total, desc=BAR_STAGES[event.stage])
            bar.update(event.current - bar.n)
        else:
            tqdm.write(event.message)

    for bar in bars.values():
        bar.close()


async def analyze_with_progress(area, settings, tier, confirm, hazard_dir):
    stream = ProgressStream()
    renderer = asyncio.ensure_future(show_progress(stream))
    try:
        return await run_analysis(area, settings=settings, active_tier=tier, confirm=confirm,
                                  hazard_dir=hazard_dir, progress=stream)
    finally:
        stream.close()
        await renderer


def print_summary(result):
    stats = result.statistics
    print("\nFlood exposure summary")
    print(f"  Area:            {result.area_km2:.2f} km²")
    print(f"  Buildings:       {stats.total}")
    for tier in HazardTier.by_severity():
        print(f"    {tier.label:<12}   {stats.affected[tier.value]}")
    print(f"    any tier       {stats.affected['any']}")

    if result.population is not None:
        print(f"  Population:      {result.population.total} "
              f"({result.population.commune_count} communes, "
              f"{result.population_density} per km²)")
        if result.population.affected:
            print(f"    at risk        {result.population.affected['any']}")

    if result.land_cover is not None:
        print(f"  Land parcels:    {result.land_cover.total_features} "
              f"({result.land_cover.affected_by_flooding} affected, {result.active_tier.label})")

    if result.transportation is not None:
        t = result.transportation
        print(f"  Roads:           {t.total} ({t.total_length:.2f} km, "
              f"{t.affected_count} affected, {t.affected_length:.2f} km flooded)")
        for item in t.critical_infrastructure:
            print(f"    critical: {item['infrastructure']} {item['name']} "
                  f"({item['affectedPercentage']}% flooded)")

    for name, reason in result.unavailable.items():
        print(f"  {name} unavailable: {reason}")


def build_parser():
    parser = argparse.ArgumentParser(
        description="Assess flood exposure of buildings, roads, land cover and population"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    analyze = subparsers.add_parser("analyze", help="Analyze a drawn area")
    area = analyze.add_mutually_exclusive_group(required=True)
    area.add_argument("--polygon", type=parse_latlng, nargs="+", metavar="LAT,LON",
                      help="Polygon vertices as lat,lon pairs")
    area.add_argument("--polygon-file", type=str, help="Vector file holding the polygon")
    analyze.add_argument("--tier", type=str, choices=[t.value for t in HazardTier],
                         help="Active hazard tier for land cover and roads")
    analyze.add_argument("--communes", type=str, help="Commune census dataset (GeoJSON)")
    analyze.add_argument("--config", type=str, help="JSON settings file")
    analyze.add_argument("--hazard-dir", type=str,
                         help="Directory with extreme.tif/high.tif/medium.tif instead of the WMS")
    analyze.add_argument("--output-dir", type=str, default="output",
                         help="Directory to save output files")
    analyze.add_argument("--yes", action="store_true",
                         help="Do not ask before analyzing large building sets")
    analyze.add_argument("--static-map", action="store_true", help="Also render a PNG map")
    analyze.add_argument("--verbose", action="store_true", help="Log fetch details")
    return parser


def run(args):
    settings = load_settings(args.config, communes_path=args.communes, active_tier=args.tier)

    points = args.polygon if args.polygon else read_polygon_file(args.polygon_file)
    area = AnalysisArea.from_latlngs(points)
    confirm = None if args.yes else ask_to_continue

    print(f"Analyzing {len(area.vertices)}-vertex area, active tier {settings.active_tier}")
    result = asyncio.run(analyze_with_progress(area, settings, settings.active_tier, confirm,
                                               args.hazard_dir))

    os.makedirs(args.output_dir, exist_ok=True)
    csv_path = export_buildings_csv(result.buildings,
                                    os.path.join(args.output_dir, "flood_risk_buildings.csv"))
    summary_path = export_summary_json(result, os.path.join(args.output_dir, "summary.json"))
    geojson_paths = export_geojson(result, os.path.join(args.output_dir, "data"))

    print_summary(result)
    print(f"\nBuilding table saved to {csv_path}")
    print(f"Summary saved to {summary_path}")
    for path in geojson_paths:
        print(f"Layer saved to {path}")

    if args.static_map:
        map_path = create_static_map(result, os.path.join(args.output_dir, "flood_exposure_map.png"))
        print(f"Static map saved to {map_path}")

    return result


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command != "analyze":
        parser.print_help()
        return 2

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        run(args)
    except Exception as e:
        logger.debug("Analysis failed", exc_info=True)
        print(f"Error: {friendly_message(e)}", file=sys.stderr)
        print(f"Details: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
