"""
Tests for coordinate projection, distances and polyline resampling.
"""

import pytest
from shapely.geometry import MultiPolygon, Point, Polygon

from flood_exposure.geometry import (
    EARTH_RADIUS_M,
    ORIGIN_SHIFT,
    geodesic_area_km2,
    haversine_distance,
    polyline_length_km,
    project,
    sample_points_along,
    unproject,
    vertex_centroid,
)

# Latitude span of 120 m along a meridian
LAT_120M = 120 / (EARTH_RADIUS_M * 3.141592653589793 / 180)


class TestProjection:
    """Web-Mercator forward and inverse projection."""

    def test_origin(self):
        x, y = project(0.0, 0.0)
        assert x == pytest.approx(0.0)
        assert y == pytest.approx(0.0, abs=1e-6)

    def test_antimeridian_maps_to_origin_shift(self):
        x, _ = project(0.0, 180.0)
        assert x == pytest.approx(ORIGIN_SHIFT)

    def test_mercator_limit_latitude(self):
        _, y = project(85.0511287798, 0.0)
        assert y == pytest.approx(ORIGIN_SHIFT, abs=1.0)

    def test_longitude_is_linear(self):
        x, _ = project(52.4, 13.05)
        assert x == pytest.approx(13.05 * ORIGIN_SHIFT / 180)

    def test_northern_latitudes_are_stretched(self):
        _, y1 = project(10.0, 0.0)
        _, y2 = project(60.0, 0.0)
        assert y2 / y1 > 6.0

    @pytest.mark.parametrize("lat,lon", [(52.05, 13.05), (-33.9, 18.4), (0.0, -120.0)])
    def test_unproject_inverts_project(self, lat, lon):
        back = unproject(*project(lat, lon))
        assert back[0] == pytest.approx(lat, abs=1e-9)
        assert back[1] == pytest.approx(lon, abs=1e-9)


class TestDistances:
    """Haversine distances and polyline lengths."""

    def test_one_degree_of_latitude(self):
        assert haversine_distance(0, 0, 1, 0) == pytest.approx(111194.9, abs=0.1)

    def test_zero_distance(self):
        assert haversine_distance(52.0, 13.0, 52.0, 13.0) == 0.0

    def test_symmetry(self):
        d1 = haversine_distance(52.0, 13.0, 52.1, 13.2)
        d2 = haversine_distance(52.1, 13.2, 52.0, 13.0)
        assert d1 == pytest.approx(d2)

    def test_polyline_length_sums_segments(self):
        points = [(0.0, 0.0), (1.0, 0.0), (2.0, 0.0)]
        assert polyline_length_km(points) == pytest.approx(2 * 111.1949, rel=1e-5)

    def test_single_point_has_no_length(self):
        assert polyline_length_km([(52.0, 13.0)]) == 0.0


class TestSamplePointsAlong:
    """Polyline resampling at a fixed spacing."""

    def test_120m_segment_at_50m(self):
        start = (52.0, 13.0)
        end = (52.0 + LAT_120M, 13.0)
        samples = sample_points_along([start, end], 50.0)

        assert len(samples) == 4
        assert samples[0] == start
        assert samples[-1] == end

        offsets = [haversine_distance(start[0], start[1], lat, lon) for lat, lon in samples]
        assert offsets == pytest.approx([0.0, 50.0, 100.0, 120.0], abs=0.01)

    def test_short_segment_keeps_endpoints_only(self):
        samples = sample_points_along([(52.0, 13.0), (52.0001, 13.0)], 50.0)
        assert len(samples) == 2

    def test_each_segment_restarts_at_its_vertex(self):
        a = (52.0, 13.0)
        b = (52.0 + LAT_120M, 13.0)
        c = (52.0 + 2 * LAT_120M, 13.0)
        samples = sample_points_along([a, b, c], 50.0)

        # a, 50, 100, b, 170, 220, c
        assert len(samples) == 7
        assert samples[3] == b
        assert samples[-1] == c

    def test_samples_lie_between_endpoints(self):
        start, end = (52.0, 13.0), (52.01, 13.02)
        for lat, lon in sample_points_along([start, end], 50.0):
            assert start[0] <= lat <= end[0]
            assert start[1] <= lon <= end[1]


class TestGeodesicArea:
    """Spherical polygon area."""

    def test_tenth_degree_box_at_52_north(self):
        ring = [(52.0, 13.0), (52.0, 13.1), (52.1, 13.1), (52.1, 13.0)]
        assert geodesic_area_km2(ring) == pytest.approx(76.2, rel=1e-2)

    def test_closed_ring_gives_same_area(self):
        ring = [(52.0, 13.0), (52.0, 13.1), (52.1, 13.1), (52.1, 13.0)]
        assert geodesic_area_km2(ring + [ring[0]]) == pytest.approx(geodesic_area_km2(ring))

    def test_orientation_does_not_matter(self):
        ring = [(52.0, 13.0), (52.0, 13.1), (52.1, 13.1), (52.1, 13.0)]
        assert geodesic_area_km2(ring[::-1]) == pytest.approx(geodesic_area_km2(ring))

    def test_fewer_than_three_vertices(self):
        assert geodesic_area_km2([(52.0, 13.0), (52.1, 13.1)]) == 0.0


class TestVertexCentroid:
    """Unweighted mean of polygon vertices."""

    def test_square_ignores_closing_vertex(self):
        square = Polygon([(0, 0), (4, 0), (4, 4), (0, 4)])
        assert vertex_centroid(square) == pytest.approx((2.0, 2.0))

    def test_vertex_mean_differs_from_area_centroid(self):
        # Extra vertex on the bottom edge pulls the vertex mean down
        poly = Polygon([(0, 0), (2, 0), (4, 0), (4, 4), (0, 4)])
        x, y = vertex_centroid(poly)
        assert x == pytest.approx(2.0)
        assert y == pytest.approx(1.6)

    def test_multipolygon(self):
        multi = MultiPolygon([
            Polygon([(0, 0), (2, 0), (2, 2), (0, 2)]),
            Polygon([(10, 0), (12, 0), (12, 2), (10, 2)]),
        ])
        assert vertex_centroid(multi) == pytest.approx((6.0, 1.0))

    def test_point(self):
        assert vertex_centroid(Point(3, 4)) == pytest.approx((3.0, 4.0))

    def test_empty(self):
        assert vertex_centroid(Polygon()) is None
