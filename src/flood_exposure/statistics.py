# -*- coding: utf-8 -*-

"""
Roll risk-tagged features up into summary statistics.

All functions here are pure reductions over already tagged features.
"""

from dataclasses import dataclass, field
from typing import Dict, List

from .models import HazardTier
from .normalize import BIOTOPE_CATEGORIES, category_info


@dataclass
class Breakdown:
    total: int = 0
    affected: int = 0


@dataclass
class StatisticsSummary:
    total: int
    affected: Dict[str, int]
    by_category: Dict[str, Breakdown] = field(default_factory=dict)
    by_type: Dict[str, Breakdown] = field(default_factory=dict)

    def to_dict(self):
        return {
            "total": self.total,
            "affected": dict(self.affected),
            "byCategory": {k: vars(v).copy() for k, v in self.by_category.items()},
            "byType": {k: vars(v).copy() for k, v in self.by_type.items()},
        }


def _building_type(feature):
    return feature.type or "unknown"


def _category(feature):
    return feature.category or "Other"


def summarize_risk(features, type_of=_building_type, category_of=_category):
    """
    Count point-sampled features per tier, per category and per type.

    Parameters:
    -----------
    features : list
        Features carrying a FloodRisk
    type_of : callable
        Key for the by-type breakdown
    category_of : callable
        Key for the by-category breakdown

    Returns:
    --------
    StatisticsSummary
    """
    affected = {tier.value: 0 for tier in HazardTier}
    affected["any"] = 0
    by_category = {}
    by_type = {}

    for feature in features:
        risk = feature.risk
        for tier in HazardTier:
            if risk.is_flooded(tier):
                affected[tier.value] += 1
        if risk.affected:
            affected["any"] += 1

        for key, table in ((category_of(feature), by_category), (type_of(feature), by_type)):
            entry = table.setdefault(key, Breakdown())
            entry.total += 1
            if risk.affected:
                entry.affected += 1

    return StatisticsSummary(total=len(features), affected=affected,
                             by_category=by_category, by_type=by_type)


def summarize_buildings(buildings):
    return summarize_risk(buildings)


@dataclass
class LandCoverSummary:
    total_features: int
    affected_by_flooding: int
    by_category: Dict[str, dict] = field(default_factory=dict)
    by_type: Dict[str, dict] = field(default_factory=dict)
    message: str = ""

    def to_dict(self):
        data = {
            "totalFeatures": self.total_features,
            "affectedByFlooding": self.affected_by_flooding,
            "byCategory": self.by_category,
            "byType": self.by_type,
        }
        if self.message:
            data["message"] = self.message
        return data


def summarize_land_cover(parcels):
    """Land-cover statistics, keyed by category and by biotope description."""
    if not parcels:
        return LandCoverSummary(0, 0, message="No biotope data available for this area")

    summary = summarize_risk(parcels, type_of=lambda p: p.description)

    by_category = {}
    for key, entry in summary.by_category.items():
        info = category_info(key)
        by_category[key] = {
            "count": entry.total,
            "affected": entry.affected,
            "label": info["label"] if key in BIOTOPE_CATEGORIES else key,
            "color": info["color"],
        }

    by_type = {}
    for parcel in parcels:
        by_type.setdefault(parcel.description, {
            "count": summary.by_type[parcel.description].total,
            "affected": summary.by_type[parcel.description].affected,
            "code": parcel.type,
            "category": parcel.category,
        })

    return LandCoverSummary(
        total_features=summary.total,
        affected_by_flooding=summary.affected["any"],
        by_category=by_category,
        by_type=by_type,
    )


@dataclass
class RoadTypeBreakdown:
    count: int = 0
    total_length: float = 0.0
    affected_count: int = 0
    affected_length: float = 0.0


@dataclass
class TransportationSummary:
    total: int = 0
    total_length: float = 0.0
    affected_count: int = 0
    affected_length: float = 0.0
    by_type: Dict[str, RoadTypeBreakdown] = field(default_factory=dict)
    critical_infrastructure: List[dict] = field(default_factory=list)

    def to_dict(self):
        return {
            "total": self.total,
            "totalLength": self.total_length,
            "affectedCount": self.affected_count,
            "affectedLength": self.affected_length,
            "byType": {k: vars(v).copy() for k, v in self.by_type.items()},
            "criticalInfrastructure": list(self.critical_infrastructure),
        }


def summarize_roads(roads):
    """
    Length-weighted road statistics.

    Bridges and tunnels whose samples are mostly flooded are listed as
    critical infrastructure.
    """
    stats = TransportationSummary(total=len(roads))

    for road in roads:
        risk = road.risk
        entry = stats.by_type.setdefault(road.type or "unknown", RoadTypeBreakdown())

        stats.total_length += risk.total_length
        entry.count += 1
        entry.total_length += risk.total_length

        if risk.is_partially_flooded:
            stats.affected_count += 1
            stats.affected_length += risk.affected_length
            entry.affected_count += 1
            entry.affected_length += risk.affected_length

        if (road.bridge or road.tunnel) and risk.is_majority_flooded:
            stats.critical_infrastructure.append({
                "id": road.id,
                "type": road.type,
                "name": road.name or "Unnamed",
                "ref": road.ref,
                "infrastructure": "Bridge" if road.bridge else "Tunnel",
                "affectedPercentage": round(risk.affected_percentage, 1),
                "affectedLength": round(risk.affected_length, 1),
                "length": round(risk.total_length, 2),
            })

    return stats
