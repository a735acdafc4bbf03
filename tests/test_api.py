"""Tests for the FastAPI application."""

import pytest
from fastapi.testclient import TestClient
from py_acmap.api import main as main_module
from py_acmap.api import preview as preview_module
from py_acmap.api.dependencies import get_terrain_grid, get_textures
from py_acmap.api.main import app
from py_acmap.core.terrain_grid import TerrainGrid

PNG_MAGIC = b"\x89PNG\r\n\x1a\n"


@pytest.fixture
def grid():
    return TerrainGrid.filled(terrain_type=4, landblocks=4)


@pytest.fixture
def client(grid):
    app.dependency_overrides[get_terrain_grid] = lambda: grid
    app.dependency_overrides[get_textures] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def empty_client():
    app.dependency_overrides[get_terrain_grid] = lambda: None
    app.dependency_overrides[get_textures] = lambda: None
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestStatus:
    """Test status endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["terrain_loaded"] is True
        assert data["landblocks"] == 4

    def test_health_without_terrain(self, empty_client):
        data = empty_client.get("/health").json()

        assert data["terrain_loaded"] is False
        assert data["landblocks"] == 0


class TestCoordinateEndpoints:
    """Test coordinate conversion endpoints."""

    def test_from_geo(self, client):
        response = client.get("/coordinates/from-geo", params={"ns": 0.0, "ew": 0.0})

        assert response.status_code == 200
        data = response.json()
        assert data["landcell"] == "0x7F7F001C"
        assert data["lbx"] == 0x7F
        assert data["x"] == pytest.approx(84.0)
        assert data["outdoor"] is True

    def test_from_geo_out_of_range(self, client):
        response = client.get("/coordinates/from-geo", params={"ns": 500.0, "ew": 0.0})

        assert response.status_code == 422

    def test_to_geo(self, client):
        response = client.get("/coordinates/to-geo", params={"landcell": "0x7F7F001C", "x": 84.0, "y": 84.0})

        assert response.status_code == 200
        assert response.json()["ns"] == pytest.approx(0.0)
        assert response.json()["ew"] == pytest.approx(0.0)

    def test_to_geo_bad_landcell(self, client):
        response = client.get("/coordinates/to-geo", params={"landcell": "zzz"})

        assert response.status_code == 400

    def test_parse(self, client):
        response = client.get("/coordinates/parse", params={"text": "we met at 12.3N, 45.6E"})

        assert response.status_code == 200
        assert response.json()["ns"] == pytest.approx(12.3)
        assert response.json()["ew"] == pytest.approx(45.6)

    def test_parse_no_match(self, client):
        response = client.get("/coordinates/parse", params={"text": "nowhere"})

        assert response.status_code == 400


class TestRouteEndpoints:
    """Test route parsing."""

    def test_parse_route(self, client):
        response = client.get("/routes/parse", params={"route": "12.500N,45.250W,0.080"})

        assert response.status_code == 200
        data = response.json()
        assert data["zoom"] == pytest.approx(0.08)
        assert data["coordinates"]["ns"] == pytest.approx(12.5)
        assert data["coordinates"]["ew"] == pytest.approx(-45.25)

    def test_parse_bad_route(self, client):
        response = client.get("/routes/parse", params={"route": "12N,45E"})

        assert response.status_code == 400


class TestBlendPlanEndpoints:
    """Test blend plan endpoints."""

    def test_plan_by_pcode(self, client):
        response = client.get("/blend-plans/0")

        assert response.status_code == 200
        data = response.json()
        assert data["pcode_hex"] == "0x00000000"
        assert data["base_texture"] == 0
        assert data["road_shape"] == "none"
        assert data["terrain_overlays"] == []
        assert len(data["corners"]) == 4

    def test_pcode_out_of_range(self, client):
        response = client.get("/blend-plans/4294967296")

        assert response.status_code == 422

    def test_plan_from_corners(self, client):
        corners = [{"terrain_type": 3, "road_code": 1} for _ in range(4)]
        response = client.post("/blend-plans", json={"corners": corners})

        assert response.status_code == 200
        data = response.json()
        assert data["road_shape"] == "solid"
        assert data["base_texture"] == 31

    def test_plan_from_corners_overlays(self, client):
        corners = [
            {"terrain_type": 1}, {"terrain_type": 1}, {"terrain_type": 2}, {"terrain_type": 2},
        ]
        data = client.post("/blend-plans", json={"corners": corners}).json()

        assert data["base_texture"] == 1
        assert data["terrain_overlays"] == [
            {"texture_index": 2, "alpha_index": 4, "rotation": 3, "code": 12}
        ]

    @pytest.mark.parametrize("corners", [
        [{"terrain_type": 1}] * 3,
        [{"terrain_type": 40}] * 4,
        [{"road_code": 5}] * 4,
    ])
    def test_invalid_corners(self, client, corners):
        response = client.post("/blend-plans", json={"corners": corners})

        assert response.status_code == 422


class TestCellEndpoint:
    """Test per-landcell plan lookup."""

    def test_cell_plan(self, client):
        response = client.get("/terrain/cells/3/5")

        assert response.status_code == 200
        assert response.json()["base_texture"] == 4

    def test_cell_out_of_range(self, client):
        response = client.get("/terrain/cells/32/0")

        assert response.status_code == 400

    def test_cell_without_terrain(self, empty_client):
        response = empty_client.get("/terrain/cells/0/0")

        assert response.status_code == 503


class TestPreviewEndpoint:
    """Test PNG previews."""

    def test_preview_png(self, client):
        response = client.get("/preview", params={"width": 32, "height": 16})

        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(PNG_MAGIC)
        assert "x-route" in response.headers

    def test_preview_with_route(self, client):
        response = client.get(
            "/preview", params={"width": 16, "height": 16, "route": "0.000N,0.000E,0.500", "landblock_lines": True}
        )

        assert response.status_code == 200
        assert response.headers["x-route"].endswith(",0.500")

    def test_preview_bad_route(self, client):
        response = client.get("/preview", params={"width": 16, "height": 16, "route": "garbage"})

        assert response.status_code == 400

    def test_preview_too_large(self, client):
        response = client.get("/preview", params={"width": 100000, "height": 16})

        assert response.status_code == 400

    def test_preview_without_terrain(self, empty_client):
        response = empty_client.get("/preview")

        assert response.status_code == 503


class WarningRecorder:
    def __init__(self):
        self.warnings = []

    def warning(self, event, **kwargs):
        self.warnings.append((event, kwargs))

    def info(self, event, **kwargs):
        pass


@pytest.fixture
def recorder(monkeypatch):
    recorder = WarningRecorder()
    monkeypatch.setattr(main_module, "logger", recorder)
    monkeypatch.setattr(preview_module, "logger", recorder)
    return recorder


class TestFailureLogging:
    """Test that rejected requests are logged before the error response."""

    @pytest.mark.parametrize("path,params,status", [
        ("/coordinates/to-geo", {"landcell": "zzz"}, 400),
        ("/coordinates/to-geo", {"landcell": "0x100000000"}, 400),
        ("/routes/parse", {"route": "12N,45E"}, 400),
        ("/terrain/cells/32/0", {}, 400),
        ("/preview", {"width": 100000, "height": 16}, 400),
        ("/preview", {"width": 16, "height": 16, "route": "garbage"}, 400),
    ])
    def test_rejections_logged(self, client, recorder, path, params, status):
        response = client.get(path, params=params)

        assert response.status_code == status
        assert len(recorder.warnings) == 1

    def test_missing_terrain_logged(self, empty_client, recorder):
        response = empty_client.get("/preview")

        assert response.status_code == 503
        assert recorder.warnings == [("Terrain data not loaded", {})]
