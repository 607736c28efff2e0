import os

import pytest
from fastapi.testclient import TestClient

from api.server import create_app
from config import Settings

OPERATOR_KEY = "test-operator-key"

# Test Data

def pattern_bytes(size: int) -> bytes:
    """Deterministic, non-repeating-at-power-of-two content."""
    block = bytes(range(251))
    return (block * (size // len(block) + 1))[:size]

@pytest.fixture
def make_bytes():
    return pattern_bytes

# App & Environment

@pytest.fixture
def app_settings(tmp_path, monkeypatch):
    """
    Settings pointing every path into a temp dir.
    Auto-isolated from any .env or VIDEO_CATALOG_* variables on the host.
    """
    for key in list(os.environ):
        if key.startswith("VIDEO_CATALOG_"):
            monkeypatch.delenv(key)
    return Settings(
        _env_file=None,
        data_dir=tmp_path / "data",
        log_dir=tmp_path / "logs",
        log_level="ERROR",
        operator_api_key=OPERATOR_KEY,
    )

@pytest.fixture
def client(app_settings):
    app = create_app(app_settings)
    with TestClient(app) as c:
        yield c

@pytest.fixture
def operator_headers():
    return {"X-API-Key": OPERATOR_KEY}

@pytest.fixture
def add_video(client):
    """Place a file in storage and catalogue it, bypassing the upload route."""
    def _add(content: bytes, filename: str = "clip.mp4", title: str = "Clip", record_size: bool = True):
        state = client.app.state
        (state.media_store.video_dir / filename).write_bytes(content)
        return state.catalog.add(title, filename, None, len(content) if record_size else 0)
    return _add
