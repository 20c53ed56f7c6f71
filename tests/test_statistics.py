"""
Tests for rolling tagged features up into summaries.
"""

import pytest

from flood_exposure.models import Building, FloodRisk, HazardTier, LandParcel, RoadRisk, RoadSegment
from flood_exposure.statistics import summarize_buildings, summarize_land_cover, summarize_roads


def tagged_building(building_id, building_type, category, **flags):
    return Building(id=building_id, type=building_type, category=category,
                    centroid=(52.05, 13.05), risk=FloodRisk(**flags))


def tagged_road(road_id, road_type, points, affected, length, **tags):
    return RoadSegment(
        id=road_id, type=road_type, nodes=((52.0, 13.0), (52.0, 13.01)),
        risk=RoadRisk(HazardTier.EXTREME, points, affected, length), **tags,
    )


@pytest.fixture
def buildings():
    return [
        tagged_building(1, "house", "Residential", extreme=True, high=True, medium=True),
        tagged_building(2, "house", "Residential", extreme=True),
        tagged_building(3, "retail", "Commercial"),
        tagged_building(4, "school", "Infrastructure", high=True),
        tagged_building(5, "yes", "Other"),
    ]


class TestSummarizeBuildings:
    """Per-tier, per-category and per-type building counts."""

    def test_tier_counts(self, buildings):
        stats = summarize_buildings(buildings)

        assert stats.total == 5
        assert stats.affected == {"extreme": 2, "high": 2, "medium": 1, "any": 3}

    def test_breakdowns_sum_to_total(self, buildings):
        stats = summarize_buildings(buildings)

        assert sum(b.total for b in stats.by_category.values()) == stats.total
        assert sum(b.total for b in stats.by_type.values()) == stats.total
        assert sum(b.affected for b in stats.by_category.values()) == stats.affected["any"]
        assert sum(b.affected for b in stats.by_type.values()) == stats.affected["any"]

    def test_breakdown_values(self, buildings):
        stats = summarize_buildings(buildings)

        assert (stats.by_category["Residential"].total, stats.by_category["Residential"].affected) == (2, 2)
        assert (stats.by_type["retail"].total, stats.by_type["retail"].affected) == (1, 0)

    def test_any_never_exceeds_total(self, buildings):
        stats = summarize_buildings(buildings)
        assert stats.affected["any"] <= stats.total
        for tier in HazardTier:
            assert stats.affected[tier.value] <= stats.affected["any"]

    def test_empty(self):
        stats = summarize_buildings([])
        assert stats.total == 0
        assert stats.affected == {"extreme": 0, "high": 0, "medium": 0, "any": 0}
        assert stats.by_category == {}

    def test_to_dict(self, buildings):
        data = summarize_buildings(buildings).to_dict()
        assert data["byCategory"]["Residential"] == {"total": 2, "affected": 2}
        assert data["affected"]["any"] == 3


class TestSummarizeLandCover:
    """Land-cover counts by category and by biotope description."""

    def test_summary(self):
        parcels = [
            LandParcel(id="a", type="02110", centroid=(52.0, 13.0), category="water",
                       description="Flüsse", risk=FloodRisk(extreme=True)),
            LandParcel(id="b", type="02110", centroid=(52.0, 13.0), category="water",
                       description="Flüsse", risk=FloodRisk()),
            LandParcel(id="c", type="99", centroid=(52.0, 13.0), category="other",
                       risk=FloodRisk(extreme=True)),
        ]
        summary = summarize_land_cover(parcels)

        assert summary.total_features == 3
        assert summary.affected_by_flooding == 2
        assert summary.by_category["water"] == {
            "count": 2, "affected": 1, "label": "Gewässer / Water Bodies", "color": "#0571b0",
        }
        assert summary.by_category["other"]["label"] == "other"
        assert summary.by_category["other"]["color"] == "#999999"
        assert summary.by_type["Flüsse"] == {
            "count": 2, "affected": 1, "code": "02110", "category": "water",
        }
        assert summary.by_type["Unknown biotope type"]["count"] == 1

    def test_empty(self):
        summary = summarize_land_cover([])
        assert summary.total_features == 0
        assert summary.to_dict()["message"] == "No biotope data available for this area"


class TestSummarizeRoads:
    """Length-weighted road statistics and critical infrastructure."""

    def test_totals(self):
        roads = [
            tagged_road(1, "primary", 4, 2, 2.0),
            tagged_road(2, "primary", 4, 0, 1.0),
            tagged_road(3, "residential", 10, 10, 0.5),
        ]
        stats = summarize_roads(roads)

        assert stats.total == 3
        assert stats.total_length == pytest.approx(3.5)
        assert stats.affected_count == 2
        assert stats.affected_length == pytest.approx(1.5)
        assert stats.by_type["primary"].count == 2
        assert stats.by_type["primary"].affected_count == 1
        assert stats.by_type["primary"].affected_length == pytest.approx(1.0)
        assert stats.critical_infrastructure == []

    def test_breakdowns_sum_to_total(self):
        roads = [tagged_road(i, t, 5, i % 3, 0.3 * i)
                 for i, t in enumerate(["primary", "service", "track", "service"], start=1)]
        stats = summarize_roads(roads)

        assert sum(b.count for b in stats.by_type.values()) == stats.total
        assert sum(b.total_length for b in stats.by_type.values()) == pytest.approx(stats.total_length)
        assert stats.affected_length <= stats.total_length

    def test_flooded_bridge_is_critical(self):
        bridge = tagged_road(7, "primary", 4, 3, 1.234, name="Havelbrücke", ref="B1",
                             bridge="yes")
        stats = summarize_roads([bridge])

        assert stats.critical_infrastructure == [{
            "id": 7,
            "type": "primary",
            "name": "Havelbrücke",
            "ref": "B1",
            "infrastructure": "Bridge",
            "affectedPercentage": 75.0,
            "affectedLength": 0.9,
            "length": 1.23,
        }]

    def test_half_flooded_tunnel_is_not_critical(self):
        tunnel = tagged_road(8, "secondary", 4, 2, 1.0, tunnel="yes")
        assert summarize_roads([tunnel]).critical_infrastructure == []

    def test_unnamed_tunnel(self):
        tunnel = tagged_road(9, "secondary", 10, 9, 1.0, tunnel="culvert")
        item = summarize_roads([tunnel]).critical_infrastructure[0]
        assert item["name"] == "Unnamed"
        assert item["infrastructure"] == "Tunnel"

    def test_flooded_plain_road_is_not_critical(self):
        assert summarize_roads([tagged_road(1, "primary", 4, 4, 1.0)]).critical_infrastructure == []
