# -*- coding: utf-8 -*-

"""
End-to-end flood exposure analysis for one drawn area.

Buildings are mandatory: any failure fetching or tagging them aborts the
run. Population, land cover and transportation are enrichments; a failure
in one of them is logged, recorded in ``AnalysisResult.unavailable`` and
the rest of the analysis carries on.
"""

import inspect
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from .config import Settings
from .errors import AnalysisCancelled
from .http import AiohttpTransport
from .models import AnalysisArea, HazardTier, PopulationEstimate
from .normalize import process_buildings, process_land_parcels, process_roads
from .population import (CommuneCache, apportion_by_risk, building_risk_counts,
                         compute_exposure, population_density)
from .progress import publish
from .raster import GeoTiffRasterSource, WMSRasterSource
from .sources import BiotopeWFSSource, OverpassSource
from .statistics import (LandCoverSummary, StatisticsSummary, TransportationSummary,
                         summarize_buildings, summarize_land_cover, summarize_roads)
from .tagging import analyze_buildings, analyze_land_parcels, analyze_roads

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    area: AnalysisArea
    active_tier: HazardTier
    buildings: list
    statistics: StatisticsSummary
    area_km2: float
    population: Optional[PopulationEstimate] = None
    population_density: Optional[int] = None
    land_parcels: list = field(default_factory=list)
    land_cover: Optional[LandCoverSummary] = None
    roads: list = field(default_factory=list)
    transportation: Optional[TransportationSummary] = None
    unavailable: Dict[str, str] = field(default_factory=dict)

    @property
    def polygon(self):
        return self.area.vertices

    def summary(self):
        """JSON-ready overview of the run (no per-feature records)."""
        return {
            "polygon": [list(p) for p in self.polygon],
            "activeTier": self.active_tier.value,
            "areaKm2": self.area_km2,
            "statistics": self.statistics.to_dict(),
            "population": self.population.to_dict() if self.population else None,
            "populationDensity": self.population_density,
            "landCover": self.land_cover.to_dict() if self.land_cover else None,
            "transportation": self.transportation.to_dict() if self.transportation else None,
            "unavailable": dict(self.unavailable),
        }


class FloodExposureAnalyzer:
    """
    Runs the analysis against a set of data sources.

    Parameters:
    -----------
    features : OverpassSource
        Building and road source (fetch_buildings / fetch_roads)
    rasters : WMSRasterSource or GeoTiffRasterSource
        Hazard raster source
    communes : CommuneCache, optional
        Census communes; without it population is reported unavailable
    land_cover : BiotopeWFSSource, optional
        Land-parcel source; without it land cover is reported unavailable
    settings : Settings, optional
        Thresholds, cadences and the default active tier
    progress : ProgressStream, optional
        Receives progress events
    """

    def __init__(self, features, rasters, communes=None, land_cover=None, settings=None,
                 progress=None):
        self.features = features
        self.rasters = rasters
        self.communes = communes
        self.land_cover = land_cover
        self.settings = settings or Settings()
        self.progress = progress
        self._transport = None

    @classmethod
    def from_settings(cls, settings, hazard_dir=None, progress=None, transport=None):
        """Wire up the default remote sources; the transport is closed by close()."""
        owned = transport is None
        transport = transport or AiohttpTransport(timeout_s=settings.request_timeout_s)

        if hazard_dir:
            rasters = GeoTiffRasterSource(hazard_dir, settings.image_width, settings.image_height)
        else:
            rasters = WMSRasterSource(transport, settings.wms_url, settings.flood_layers,
                                      settings.image_width, settings.image_height)

        communes = None
        if settings.communes_path:
            communes = CommuneCache(settings.communes_path, settings.population_field,
                                    settings.commune_name_fields)

        analyzer = cls(
            features=OverpassSource(transport, settings.retry_policy(), settings.overpass_timeout_s),
            rasters=rasters,
            communes=communes,
            land_cover=BiotopeWFSSource(transport, settings.wfs_url, settings.wfs_type_name),
            settings=settings,
            progress=progress,
        )
        if owned:
            analyzer._transport = transport
        return analyzer

    async def close(self):
        if self._transport is not None:
            await self._transport.close()
            self._transport = None

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    async def analyze(self, area, active_tier=None, confirm=None):
        """
        Run the full analysis.

        Parameters:
        -----------
        area : AnalysisArea or list of (lat, lon)
            The drawn polygon
        active_tier : HazardTier or str, optional
            Tier used for land cover and roads; defaults to the settings
        confirm : callable, optional
            Called with the building count when it exceeds the confirmation
            threshold; a falsy (or awaitable falsy) answer cancels the run

        Returns:
        --------
        AnalysisResult

        Raises:
        -------
        AnalysisCancelled
            The caller declined a large analysis
        FloodExposureError
            Building retrieval or tagging failed
        """
        if not isinstance(area, AnalysisArea):
            area = AnalysisArea.from_latlngs(area)
        tier = HazardTier(active_tier or self.settings.active_tier)
        bbox = area.bounding_box()
        s = self.settings

        if self.progress is not None:
            self.progress.begin_run()
        publish(self.progress, "fetch", 0, 0, "Fetching buildings from OpenStreetMap...")
        buildings = process_buildings(await self.features.fetch_buildings(area))
        publish(self.progress, "fetch", 0, len(buildings),
                f"Found {len(buildings)} buildings. Starting flood risk analysis...")

        if confirm is not None and len(buildings) > s.confirm_threshold:
            answer = confirm(len(buildings))
            if inspect.isawaitable(answer):
                answer = await answer
            if not answer:
                raise AnalysisCancelled("Analysis cancelled by user")

        buildings = await analyze_buildings(buildings, self.rasters, bbox, progress=self.progress,
                                            every=s.building_progress_every,
                                            threshold=s.noise_threshold)

        area_km2 = area.area_km2()
        result = AnalysisResult(
            area=area,
            active_tier=tier,
            buildings=buildings,
            statistics=summarize_buildings(buildings),
            area_km2=area_km2,
        )

        publish(self.progress, "population", 0, 0, "Calculating population from census data...")
        result.population = await self._optional(result, "population", self._population, area,
                                                 buildings)
        if result.population is not None:
            result.population_density = population_density(result.population.total, area_km2)

        publish(self.progress, "land_cover", 0, 0, "Analyzing land cover data...")
        parcels = await self._optional(result, "land_cover", self._land_cover, area, bbox, tier)
        if parcels is not None:
            result.land_parcels = parcels
            result.land_cover = summarize_land_cover(parcels)

        publish(self.progress, "fetch_roads", 0, 0, "Analyzing transportation network...")
        roads = await self._optional(result, "transportation", self._roads, area, bbox, tier)
        if roads is not None:
            result.roads = roads
            result.transportation = summarize_roads(roads)

        return result

    async def _optional(self, result, name, step, *args):
        try:
            return await step(*args)
        except Exception as e:
            logger.warning("Could not load %s data: %s", name, e, exc_info=True)
            result.unavailable[name] = str(e) or type(e).__name__
            return None

    async def _population(self, area, buildings):
        if self.communes is None:
            raise LookupError("No commune dataset configured")

        estimate = compute_exposure(area, self.communes.get())
        # Apportionment divides by the building count
        if buildings:
            estimate.affected = apportion_by_risk(estimate.total, building_risk_counts(buildings))
        return estimate

    async def _land_cover(self, area, bbox, tier):
        if self.land_cover is None:
            raise LookupError("No land-cover source configured")

        parcels = process_land_parcels(await self.land_cover.fetch(area))
        return await analyze_land_parcels(parcels, self.rasters, bbox, tier,
                                          threshold=self.settings.noise_threshold)

    async def _roads(self, area, bbox, tier):
        s = self.settings
        roads = process_roads(await self.features.fetch_roads(area))
        return await analyze_roads(roads, self.rasters, bbox, tier,
                                   interval_m=s.road_sample_interval_m, progress=self.progress,
                                   every=s.road_progress_every, threshold=s.noise_threshold)


async def run_analysis(area, settings=None, active_tier=None, confirm=None, hazard_dir=None,
                       progress=None):
    """One-shot helper: build an analyzer from settings, run it and close it."""
    settings = settings or Settings()
    async with FloodExposureAnalyzer.from_settings(settings, hazard_dir=hazard_dir,
                                                   progress=progress) as analyzer:
        try:
            return await analyzer.analyze(area, active_tier=active_tier, confirm=confirm)
        finally:
            if progress is not None:
                progress.close()
