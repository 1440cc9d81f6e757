"""Tests for the gallery and admin HTTP endpoints."""

import pytest
from fastapi.testclient import TestClient
from sqlmodel import create_engine

from conftest import FakeImgbed
from admin.auth import create_session_token
from gallery.api import app
from gallery.cache import GalleryCache
from gallery.config import AdminConfig, AppConfig, GallerySettings, ImgbedConfig, ServerConfig
from gallery.database import init_db
from gallery.web import get_gallery_cache, get_http_client

DOMAIN = "gallery.example.com"
ADMIN_SECRET = "test-admin-secret"


@pytest.fixture
def test_config(monkeypatch):
    """Create a test configuration with the API gallery mode on."""
    config = AppConfig(
        server=ServerConfig(),
        imgbed=ImgbedConfig(
            base_url="https://img.example.com",
            api_token="secret-token",
            list_dir="photos",
            page_size=3,
        ),
        gallery=GallerySettings(data_mode="imgbed-api"),
        admin=AdminConfig(session_secret=ADMIN_SECRET),
    )
    monkeypatch.setattr("gallery.config._cached_config", config, raising=True)
    return config


@pytest.fixture
def test_db(tmp_path, monkeypatch):
    """Create a test database."""
    db_file = tmp_path / "test.db"
    engine = create_engine(f"sqlite:///{db_file}", connect_args={"check_same_thread": False})
    monkeypatch.setattr("gallery.database.engine", engine, raising=True)

    init_db()
    return engine


@pytest.fixture
def imgbed():
    return FakeImgbed(
        [
            "photos/0_preview/cats/a.jpg",
            "photos/cats/a.jpg",
            "photos/cats/b.png",
            "photos/dogs/c.gif",
        ]
    )


@pytest.fixture
def client(test_config, test_db, imgbed):
    """Test client wired to the fake ImgBed and a fresh cache."""
    cache = GalleryCache(ttl_seconds=60)

    async def http_client():
        async with imgbed.client() as http:
            yield http

    app.dependency_overrides[get_http_client] = http_client
    app.dependency_overrides[get_gallery_cache] = lambda: cache
    yield TestClient(app)
    app.dependency_overrides.clear()


def _admin_headers(username="alice"):
    return {"Authorization": f"Bearer {create_session_token(username, ADMIN_SECRET)}"}


def _put_config(client, config):
    response = client.put(
        "/api/admin/config",
        json={"domain": DOMAIN, "config": config},
        headers=_admin_headers(),
    )
    assert response.status_code == 200
    return response.json()


def test_gallery_data_served_then_cached(client, imgbed):
    first = client.get("/api/gallery-data", params={"domain": DOMAIN})
    assert first.status_code == 200
    assert first.headers["cache-control"] == "public, max-age=30"
    body = first.json()
    assert body["success"] is True
    assert body["mode"] == "imgbed-api"
    assert body["cached"] is False
    assert body["data"]["total_images"] == 3
    assert list(body["data"]["gallery"]) == ["cats", "dogs"]
    fetched = len(imgbed.requests)

    second = client.get("/api/gallery-data", params={"domain": DOMAIN}).json()
    assert second["cached"] is True
    assert second["data"] == body["data"]
    assert len(imgbed.requests) == fetched


def test_upstream_request_carries_auth_and_paging(client, imgbed):
    client.get("/api/gallery-data", params={"domain": DOMAIN})
    request = imgbed.requests[0]
    assert request.headers["authorization"] == "Bearer secret-token"
    assert request.url.path == "/api/manage/list"
    assert request.url.params["count"] == "3"
    assert request.url.params["recursive"] == "true"
    assert imgbed.starts == [0, 3]


def test_token_change_misses_cache(client, imgbed):
    assert client.get("/api/gallery-data", params={"domain": DOMAIN}).json()["cached"] is False

    _put_config(client, {"imgbed": {"apiToken": "rotated-token"}})

    body = client.get("/api/gallery-data", params={"domain": DOMAIN}).json()
    assert body["cached"] is False
    assert imgbed.requests[-1].headers["authorization"] == "Bearer rotated-token"


def test_domain_override_layers_over_defaults(client, imgbed):
    _put_config(client, {"imgbed": {"pageSize": 10}})

    body = client.get("/api/gallery-data", params={"domain": DOMAIN}).json()
    image = body["data"]["gallery"]["cats"]["images"][0]
    assert image["original"] == "https://img.example.com/file/cats/a.jpg"
    assert image["preview"] == "https://img.example.com/file/0_preview/cats/a.jpg"
    assert body["data"]["source"]["list_dir"] == "photos"
    assert len(imgbed.requests) == 1
    assert imgbed.requests[0].url.params["count"] == "10"
    assert imgbed.requests[0].url.params["dir"] == "photos"


def test_gallery_mode_disabled(client, imgbed):
    _put_config(client, {"galleryDataMode": "static"})

    response = client.get("/api/gallery-data", params={"domain": DOMAIN})
    assert response.status_code == 400
    assert response.json()["error"] == "gallery-mode-disabled"
    assert imgbed.requests == []


def test_missing_token(client, test_config, imgbed):
    test_config.imgbed.api_token = ""

    response = client.get("/api/gallery-data", params={"domain": DOMAIN})
    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "error": "missing-imgbed-token",
        "message": "ImgBed API token is not configured (imgbed.apiToken).",
    }
    assert imgbed.requests == []


def test_missing_base_url(client, test_config):
    test_config.imgbed.base_url = ""

    response = client.get("/api/gallery-data", params={"domain": DOMAIN})
    assert response.status_code == 400
    assert response.json()["error"] == "missing-imgbed-base-url"


def test_upstream_failure_is_502(client, imgbed):
    imgbed.fail_at_start = 0

    response = client.get("/api/gallery-data", params={"domain": DOMAIN})
    assert response.status_code == 502
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "imgbed-fetch-failed"
    assert "500" in body["message"]


def test_failed_run_is_not_cached(client, imgbed):
    imgbed.fail_at_start = 0
    assert client.get("/api/gallery-data", params={"domain": DOMAIN}).status_code == 502

    imgbed.fail_at_start = None
    body = client.get("/api/gallery-data", params={"domain": DOMAIN}).json()
    assert body["success"] is True
    assert body["cached"] is False


def test_public_config_hides_token(client):
    _put_config(client, {"imgbed": {"apiToken": "stored-token", "baseUrl": "https://other.example.com"}})

    response = client.get("/api/public-config", params={"domain": DOMAIN})
    assert response.status_code == 200
    imgbed_config = response.json()["data"]["config"]["imgbed"]
    assert imgbed_config["baseUrl"] == "https://other.example.com"
    assert "apiToken" not in imgbed_config
    assert "stored-token" not in response.text


def test_admin_requires_session(client):
    assert client.get("/api/admin/config", params={"domain": DOMAIN}).status_code == 401

    expired = create_session_token("alice", ADMIN_SECRET, max_age=-10)
    response = client.get(
        "/api/admin/config",
        params={"domain": DOMAIN},
        headers={"Authorization": f"Bearer {expired}"},
    )
    assert response.status_code == 401

    forged = create_session_token("alice", "wrong-secret")
    response = client.get(
        "/api/admin/config",
        params={"domain": DOMAIN},
        headers={"Authorization": f"Bearer {forged}"},
    )
    assert response.status_code == 401


def test_admin_session_cookie_accepted(client):
    token = create_session_token("bob", ADMIN_SECRET)
    response = client.get(
        "/api/admin/config",
        params={"domain": DOMAIN},
        headers={"Cookie": f"admin_session={token}"},
    )
    assert response.status_code == 200


def test_admin_disabled_without_secret(client, test_config):
    test_config.admin.session_secret = ""
    response = client.get("/api/admin/config", params={"domain": DOMAIN}, headers=_admin_headers())
    assert response.status_code == 403


def test_admin_config_roundtrip(client):
    before = client.get("/api/admin/config", params={"domain": DOMAIN}, headers=_admin_headers()).json()
    assert before["data"]["existed"] is False
    assert before["data"]["storageBackend"] == "sqlite"
    assert before["data"]["config"]["galleryDataMode"] == "imgbed-api"

    saved = _put_config(
        client,
        {"imgbed": {"apiToken": "  tok  ", "listDir": "/a/b/", "pageSize": 9999, "randomOrientation": "Sideways"}},
    )
    assert saved["data"]["updatedBy"] == "alice"
    stored = saved["data"]["config"]["imgbed"]
    assert stored["apiToken"] == "tok"
    assert stored["listDir"] == "a/b"
    assert stored["pageSize"] == 500
    assert stored["randomOrientation"] == ""

    after = client.get("/api/admin/config", params={"domain": DOMAIN}, headers=_admin_headers()).json()
    assert after["data"]["existed"] is True
    assert after["data"]["config"]["imgbed"]["apiToken"] == "tok"


def test_admin_directories(client, imgbed):
    response = client.post(
        "/api/admin/directories",
        json={"domain": DOMAIN, "imgbed": {"listDir": "photos"}},
        headers=_admin_headers(),
    )
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["domain"] == DOMAIN
    assert data["sourceListDir"] == "photos"
    assert data["fileCount"] == 4
    assert data["directoryCount"] == 4
    assert [c["path"] for c in data["tree"]["children"]] == ["0_preview", "cats", "dogs"]
    assert imgbed.requests[0].url.params["dir"] == "photos"


def test_admin_directories_without_token(client, test_config, imgbed):
    test_config.imgbed.api_token = ""
    response = client.post("/api/admin/directories", json={"domain": DOMAIN}, headers=_admin_headers())
    assert response.status_code == 200
    assert "authorization" not in imgbed.requests[0].headers


def test_admin_directories_errors(client, test_config, imgbed):
    imgbed.fail_at_start = 0
    response = client.post("/api/admin/directories", json={"domain": DOMAIN}, headers=_admin_headers())
    assert response.status_code == 502
    assert response.json()["error"] == "imgbed-directory-fetch-failed"

    test_config.imgbed.base_url = ""
    response = client.post("/api/admin/directories", json={"domain": DOMAIN}, headers=_admin_headers())
    assert response.status_code == 400
    assert response.json()["error"] == "missing-imgbed-base-url"


def test_public_config_fills_defaults_from_config_ini(client):
    response = client.get("/api/public-config", params={"domain": DOMAIN})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["storageBackend"] == "sqlite"
    config = data["config"]
    assert config["displayMode"] == "fullscreen"
    assert config["shuffleEnabled"] is True
    assert config["galleryDataMode"] == "imgbed-api"
    assert config["imgbed"] == {
        "baseUrl": "https://img.example.com",
        "listEndpoint": "/api/manage/list",
        "randomEndpoint": "/random",
        "randomOrientation": "",
        "fileRoutePrefix": "/file",
        "listDir": "photos",
        "previewDir": "0_preview",
        "defaultCategory": "uncategorized",
        "recursive": True,
        "pageSize": 3,
    }


def test_admin_config_shows_effective_values(client):
    body = client.get("/api/admin/config", params={"domain": DOMAIN}, headers=_admin_headers()).json()
    imgbed_config = body["data"]["config"]["imgbed"]
    assert imgbed_config["baseUrl"] == "https://img.example.com"
    assert imgbed_config["apiToken"] == "secret-token"
    assert imgbed_config["previewDir"] == "0_preview"
    assert imgbed_config["recursive"] is True


def test_display_settings_survive_save(client):
    _put_config(client, {"displayMode": "Waterfall", "shuffleEnabled": False, "imgbed": {"listDir": "albums"}})

    config = client.get("/api/public-config", params={"domain": DOMAIN}).json()["data"]["config"]
    assert config["displayMode"] == "waterfall"
    assert config["shuffleEnabled"] is False
    assert config["imgbed"]["listDir"] == "albums"
    assert config["imgbed"]["baseUrl"] == "https://img.example.com"
