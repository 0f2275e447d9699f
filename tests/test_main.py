"""
Tests for src/mathrender_api/main.py

Coverage
--------
- GET /  and  GET /health
- /render  GET, POST, OPTIONS  (HTTP contract, raw PNG bytes, CORS)
- Error bodies for 400, 404 and 405
- get_gateway dependency override
"""

import pytest
from fastapi.testclient import TestClient

from mathrender_api.main import SERVICE_NAME, VERSION, app, get_gateway

from conftest import PNG_SIGNATURE, TEST_INPUTS, FakeEngine, make_gateway

client = TestClient(app)


@pytest.fixture(autouse=True)
def fake_gateway():
    engine = FakeEngine()
    app.dependency_overrides[get_gateway] = lambda: make_gateway(engine)
    yield engine
    app.dependency_overrides.clear()


class TestInfoEndpoints:
    def test_root(self):
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["version"] == VERSION
        assert data["endpoints"]["render"] == "/render"

    def test_health(self):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": SERVICE_NAME}


class TestRenderGet:
    def test_latex_to_mathml(self):
        response = client.get(
            "/render", params={"input": "latex", "source": "x^2", "output": "mathml"}
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/mathml+xml")
        assert response.headers["access-control-allow-origin"] == "*"
        assert "</math>" in response.text

    def test_inline_flag(self, fake_gateway):
        client.get(
            "/render",
            params={"input": "latex", "inline": "1", "source": "x", "output": "svg"},
        )
        assert fake_gateway.calls[0]["format"].value == "inline-TeX"

    def test_negotiated_output(self):
        response = client.get(
            "/render",
            params={"input": "latex", "source": "x"},
            headers={"Accept": "application/mathml+xml;q=0.5,image/svg+xml;q=0.9"},
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("image/svg+xml")

    def test_png_returned_as_raw_bytes(self):
        response = client.get(
            "/render",
            params={"input": "latex", "source": "x", "output": "png", "width": "40"},
        )
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(PNG_SIGNATURE)

    def test_invalid_output(self):
        response = client.get(
            "/render", params={"input": "latex", "source": "x", "output": "INVALID"}
        )
        assert response.status_code == 400
        assert response.headers["content-type"].startswith("application/json")
        assert response.json() == {"message": "Invalid output: INVALID"}

    def test_missing_source(self):
        response = client.get("/render", params={"input": "latex", "output": "svg"})
        assert response.status_code == 400
        assert response.json() == {"message": "Missing or empty source"}

    def test_not_acceptable(self):
        response = client.get(
            "/render",
            params={"input": "latex", "source": "x"},
            headers={"Accept": "text/html"},
        )
        assert response.status_code == 406


class TestRenderPost:
    @pytest.mark.parametrize("alias", sorted(TEST_INPUTS))
    def test_svg_for_every_input(self, alias):
        response = client.post("/render", json={**TEST_INPUTS[alias], "output": "svg"})
        assert response.status_code == 200
        assert "</svg>" in response.text

    def test_config_forwarded(self, fake_gateway):
        client.post(
            "/render",
            json={"input": "latex", "source": "x", "output": "svg", "config": {"marker": "p"}},
        )
        assert fake_gateway.calls[0]["config"] == {"marker": "p"}

    def test_assistive_svg_json(self):
        response = client.post(
            "/render", json={"input": "latex", "source": "x", "output": "assistive-svg"}
        )
        assert response.status_code == 200
        assert set(response.json()) == {"svg", "assistiveML"}

    def test_malformed_json(self):
        response = client.post(
            "/render", content="{oops", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 400
        assert "message" in response.json()

    def test_invalid_mathml(self):
        response = client.post(
            "/render", json={"input": "mathml", "source": "<mrow/>", "output": "svg"}
        )
        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid MathML: ")

    def test_engine_failure_is_generic(self):
        app.dependency_overrides[get_gateway] = lambda: make_gateway(
            FakeEngine(exc=RuntimeError("internal detail"))
        )
        response = client.post(
            "/render", json={"input": "latex", "source": "x", "output": "svg"}
        )
        assert response.status_code == 500
        assert response.json() == {"message": "Internal Server Error"}


class TestRouting:
    def test_options_preflight(self):
        response = client.options("/render")
        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "*"
        assert "GET" in response.headers["access-control-allow-methods"]

    def test_method_not_allowed(self):
        response = client.put("/render", json={})
        assert response.status_code == 405
        assert "allow" in response.headers
        assert response.json() == {"message": "Method Not Allowed"}
        assert response.headers["access-control-allow-origin"] == "*"

    def test_unknown_path(self):
        response = client.get("/nowhere")
        assert response.status_code == 404
        assert response.json() == {"message": "Not Found"}
