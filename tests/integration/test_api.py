"""Integration tests for promptcanvas.api.main - FastAPI REST API endpoints.

All tests use the FastAPI TestClient with a fake image provider and a local
blob store, so no network access occurs.  Tests cover every endpoint:

- ``POST /api/generate`` - Generation and error translation.
- ``GET /api/assets`` - Paginated, popularity-ranked catalog.
- ``POST /api/favourites/toggle`` - Favourite toggling.
- ``GET /api/favourites`` - A viewer's favourites.
- ``POST /api/viewers`` - Viewer registration.
- ``GET /download/{blob_key}`` - Raw image bytes.
"""

from __future__ import annotations

import base64

from conftest import JPEG_BYTES, PNG_BYTES, FakeProvider, make_envelope

VIEWER = "viewer@example.com"


def _generate(test_client, prompt: str = "a yellow umbrella", **extra) -> dict:
    resp = test_client.post("/api/generate", json={"prompt": prompt, **extra})
    assert resp.status_code == 200, resp.text
    return resp.json()


# ---------------------------------------------------------------------------
# Generation endpoint tests.
# ---------------------------------------------------------------------------


class TestGenerate:
    """Test POST /api/generate - image generation."""

    def test_generate_success(self, test_client, api_services):
        """A valid prompt should store the image and return its key."""
        data = _generate(test_client, creator_email="creator@example.com")

        assert data["success"] is True
        assert data["blob_key"].endswith("_generated_image.png")
        assert data["image_url"] == f"/download/{data['blob_key']}"
        asset = api_services.asset_db.get_asset(data["blob_key"])
        assert asset.creator_email == "creator@example.com"

    def test_generate_with_reference_image(self, test_client, fake_provider):
        """The reference image should reach the provider with its default type."""
        _generate(test_client, reference_image=base64.b64encode(JPEG_BYTES).decode())

        reference = fake_provider.requests[0].reference_image
        assert reference.data == JPEG_BYTES
        assert reference.mime_type == "image/jpeg"

    def test_empty_prompt(self, test_client, fake_provider):
        """Blank prompts are rejected with 400 before any provider call."""
        resp = test_client.post("/api/generate", json={"prompt": "   "})

        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert fake_provider.requests == []

    def test_empty_reference_image(self, test_client):
        resp = test_client.post("/api/generate", json={"prompt": "p", "reference_image": ""})
        assert resp.status_code == 400

    def test_invalid_base64(self, test_client):
        resp = test_client.post("/api/generate", json={"prompt": "p", "reference_image": "%%%"})
        assert resp.status_code == 422

    def test_quota_exceeded(self, test_client, api_services):
        """Quota errors map to 429 with a Retry-After header."""
        api_services.orchestrator.provider = FakeProvider(
            error="429 RESOURCE_EXHAUSTED. Please retry in 12.5s."
        )

        resp = test_client.post("/api/generate", json={"prompt": "p"})

        assert resp.status_code == 429
        assert resp.headers["retry-after"] == "13"
        data = resp.json()
        assert data["is_quota_exceeded"] is True
        assert data["retry_after_millis"] == 12500

    def test_provider_failure(self, test_client, api_services):
        api_services.orchestrator.provider = FakeProvider(error="500 INTERNAL. boom")

        resp = test_client.post("/api/generate", json={"prompt": "p"})

        assert resp.status_code == 502
        assert "boom" in resp.json()["message"]

    def test_no_image_in_response(self, test_client, api_services):
        api_services.orchestrator.provider = FakeProvider(make_envelope())

        resp = test_client.post("/api/generate", json={"prompt": "p"})

        assert resp.status_code == 502
        assert "no image data" in resp.json()["message"]
        assert api_services.asset_db.count_assets() == 0


# ---------------------------------------------------------------------------
# Catalog endpoint tests.
# ---------------------------------------------------------------------------


class TestAssets:
    """Test GET /api/assets - catalog listing."""

    def test_empty_catalog(self, test_client):
        resp = test_client.get("/api/assets")

        assert resp.status_code == 200
        data = resp.json()
        assert data["images"] == []
        assert data["total_pages"] == 0
        assert data["has_next"] is False

    def test_pagination(self, test_client):
        for i in range(10):
            _generate(test_client, prompt=f"prompt {i}")

        data = test_client.get("/api/assets", params={"page": 1, "size": 4}).json()

        assert data["page"] == 1
        assert data["current_page"] == 2
        assert data["total_count"] == 10
        assert data["total_pages"] == 3
        assert len(data["images"]) == 4
        assert [link["display_number"] for link in data["page_numbers"]] == [1, 2, 3]

    def test_invalid_page_size(self, test_client):
        assert test_client.get("/api/assets", params={"size": 0}).status_code == 400

    def test_viewer_flags(self, test_client):
        key = _generate(test_client)["blob_key"]
        test_client.post("/api/viewers", json={"email": VIEWER})
        test_client.post("/api/favourites/toggle", json={"blob_key": key, "viewer_email": VIEWER})

        mine = test_client.get("/api/assets", params={"viewer_email": VIEWER}).json()
        anonymous = test_client.get("/api/assets").json()

        assert mine["images"][0]["is_favourited"] is True
        assert mine["images"][0]["favourite_count"] == 1
        assert anonymous["images"][0]["is_favourited"] is False


# ---------------------------------------------------------------------------
# Favourite endpoint tests.
# ---------------------------------------------------------------------------


class TestFavourites:
    """Test POST /api/favourites/toggle and GET /api/favourites."""

    def test_toggle_round_trip(self, test_client):
        key = _generate(test_client)["blob_key"]
        test_client.post("/api/viewers", json={"email": VIEWER})
        payload = {"blob_key": key, "viewer_email": VIEWER}

        first = test_client.post("/api/favourites/toggle", json=payload).json()
        second = test_client.post("/api/favourites/toggle", json=payload).json()

        assert (first["is_favourite"], first["favourite_count"]) == (True, 1)
        assert (second["is_favourite"], second["favourite_count"]) == (False, 0)

    def test_toggle_unknown_asset(self, test_client):
        test_client.post("/api/viewers", json={"email": VIEWER})
        resp = test_client.post(
            "/api/favourites/toggle", json={"blob_key": "missing.png", "viewer_email": VIEWER}
        )
        assert resp.status_code == 404

    def test_toggle_unknown_viewer(self, test_client):
        key = _generate(test_client)["blob_key"]
        resp = test_client.post(
            "/api/favourites/toggle", json={"blob_key": key, "viewer_email": "nobody@example.com"}
        )
        assert resp.status_code == 404

    def test_list_favourites(self, test_client):
        keys = [_generate(test_client, prompt=f"p{i}")["blob_key"] for i in range(3)]
        test_client.post("/api/viewers", json={"email": VIEWER})
        test_client.post("/api/favourites/toggle", json={"blob_key": keys[1], "viewer_email": VIEWER})

        data = test_client.get("/api/favourites", params={"viewer_email": VIEWER}).json()

        assert [item["blob_key"] for item in data] == [keys[1]]
        assert data[0]["is_favourited"] is True


# ---------------------------------------------------------------------------
# Viewer and download endpoint tests.
# ---------------------------------------------------------------------------


class TestViewers:
    def test_register_is_idempotent(self, test_client, api_services):
        for _ in range(2):
            resp = test_client.post("/api/viewers", json={"email": VIEWER})
            assert resp.status_code == 200
        assert api_services.asset_db.get_viewer_id(VIEWER) is not None

    def test_blank_email(self, test_client):
        assert test_client.post("/api/viewers", json={"email": "   "}).status_code == 400


class TestDownload:
    def test_download_bytes(self, test_client):
        key = _generate(test_client)["blob_key"]

        resp = test_client.get(f"/download/{key}")

        assert resp.status_code == 200
        assert resp.content == PNG_BYTES
        assert resp.headers["content-type"] == "image/png"

    def test_download_missing(self, test_client):
        assert test_client.get("/download/missing.png").status_code == 404
