# -*- coding: utf-8 -*-

"""
Analysis settings.

Defaults point at the Brandenburg flood-risk WMS, the public Overpass
mirrors and the Brandenburg biotope WFS. A JSON file can override any
field by name, e.g.::

    {
        "overpass_endpoints": ["https://overpass.example/api/interpreter"],
        "road_sample_interval_m": 25,
        "flood_layers": {"extreme": "my_layer_extreme"}
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Dict, List, Optional

from .http import RetryPolicy
from .models import HazardTier

logger = logging.getLogger(__name__)

DEFAULT_OVERPASS_ENDPOINTS = [
    "https://overpass-api.de/api/interpreter",
    "https://overpass.kumi.systems/api/interpreter",
    "https://overpass.openstreetmap.ru/api/interpreter",
]

DEFAULT_FLOOD_LAYERS = {
    "extreme": "Hochwasserrisikogebiete_BB_HQ-extrem",
    "high": "Hochwasserrisikogebiete_BB_HQ-hoch",
    "medium": "Hochwasserrisikogebiete_BB_HQ-mittel",
}

DEFAULT_POPULATION_FIELD = "1000A-0000_de - 1000A-0000_de.csv_Anzahl"


@dataclass
class Settings:
    # Vector feature source
    overpass_endpoints: List[str] = field(default_factory=lambda: list(DEFAULT_OVERPASS_ENDPOINTS))
    overpass_timeout_s: int = 90
    max_attempts_per_endpoint: int = 2
    retry_backoff_s: float = 2.0
    rate_limit_cooldown_s: float = 5.0
    request_timeout_s: float = 120.0

    # Hazard raster source
    wms_url: str = "https://maps.brandenburg.de/services/wms/hwrg"
    flood_layers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_FLOOD_LAYERS))
    image_width: int = 800
    image_height: int = 800
    noise_threshold: int = 10

    # Land-parcel source
    wfs_url: str = "https://inspire.brandenburg.de/services/btlncir_wfs"
    wfs_type_name: str = "app:btlncir_fl"

    # Commune census source
    communes_path: Optional[str] = None
    population_field: str = DEFAULT_POPULATION_FIELD
    commune_name_fields: List[str] = field(default_factory=lambda: ["GEN", "name"])

    # Analysis
    active_tier: str = HazardTier.EXTREME.value
    road_sample_interval_m: float = 50.0
    confirm_threshold: int = 1000
    building_progress_every: int = 50
    road_progress_every: int = 100

    def retry_policy(self):
        return RetryPolicy(
            endpoints=tuple(self.overpass_endpoints),
            max_attempts=self.max_attempts_per_endpoint,
            backoff_s=self.retry_backoff_s,
            rate_limit_cooldown_s=self.rate_limit_cooldown_s,
        )


def load_settings(path=None, **overrides):
    """
    Build Settings from defaults, an optional JSON file and keyword overrides.

    Parameters:
    -----------
    path : str, optional
        JSON file whose keys are Settings field names
    **overrides
        Field values that win over the file; None values are ignored

    Returns:
    --------
    Settings
    """
    settings = Settings()
    known = {f.name for f in fields(Settings)}

    if path:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not read settings file %s: %s; using defaults", path, e)
            data = {}

        unknown = sorted(set(data) - known)
        if unknown:
            logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))

        values = {k: v for k, v in data.items() if k in known}
        if "flood_layers" in values:
            values["flood_layers"] = {**DEFAULT_FLOOD_LAYERS, **values["flood_layers"]}
        settings = replace(settings, **values)

    overrides = {k: v for k, v in overrides.items() if v is not None}
    settings = replace(settings, **overrides)

    # Fail early on a bad tier name
    HazardTier(settings.active_tier)
    if settings.road_sample_interval_m <= 0:
        raise ValueError(
            f"road_sample_interval_m must be positive, got {settings.road_sample_interval_m}"
        )
    for name in ("building_progress_every", "road_progress_every"):
        if getattr(settings, name) < 1:
            raise ValueError(f"{name} must be at least 1, got {getattr(settings, name)}")
    return settings
