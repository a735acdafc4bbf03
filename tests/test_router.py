"""Tests for route string serialization and parsing."""

import pytest
from py_acmap.core.coordinates import Coordinates
from py_acmap.core.router import Route, make_route, parse_route


class TestMakeRoute:
    """Test route serialization."""

    def test_outdoor_route(self):
        """Test the compact NS,EW,zoom form."""
        coords = Coordinates.from_geo(12.5, -45.25)

        assert make_route(coords, 0.08) == "12.500N,45.250W,0.080"

    def test_indoor_route(self):
        """Test that indoor locations use the full coordinate text."""
        coords = Coordinates(0x01D90108, 1.0, 2.0, 3.0)
        route = make_route(coords, 1.5)

        assert route.startswith("#")
        assert route.endswith("@1.5")
        assert "0x01D90108" in route

    def test_indoor_route_is_display_only(self):
        route = make_route(Coordinates(0x01D90108, 1.0, 2.0, 3.0), 1.5)

        assert parse_route(route) is None


class TestParseRoute:
    """Test route parsing."""

    def test_parse_valid(self):
        route = parse_route("12.500N,45.250W,0.080")

        assert isinstance(route, Route)
        assert route.coords.ns == pytest.approx(12.5)
        assert route.coords.ew == pytest.approx(-45.25)
        assert route.zoom == pytest.approx(0.08)

    def test_parse_with_hash_prefix(self):
        route = parse_route("#1.5S,2.5E,4")

        assert route is not None
        assert route.coords.ns == pytest.approx(-1.5)
        assert route.coords.ew == pytest.approx(2.5)
        assert route.zoom == pytest.approx(4.0)

    def test_round_trip(self):
        """Test that parse_route(make_route(c, z)) recovers NS/EW and zoom."""
        coords = Coordinates.from_geo(33.3, -12.5)
        route = parse_route(make_route(coords, 0.25))

        assert route is not None
        assert route.coords.ns == pytest.approx(33.3, abs=1e-3)
        assert route.coords.ew == pytest.approx(-12.5, abs=1e-3)
        assert route.zoom == pytest.approx(0.25)

    @pytest.mark.parametrize("text", [
        "",
        "12N,45E",
        "12N,45E,1,2",
        "12N,45E,abc",
        "12X,45E,1",
        "45E,12N,1",
        "12N,45E,0",
        "12N,45E,-1",
        "12N,45E,nan",
        "12N,45E,inf",
    ])
    def test_malformed_routes(self, text):
        """Test that malformed routes yield no route."""
        assert parse_route(text) is None
