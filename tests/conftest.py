import os
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

os.environ["DATABASE_URL"] = "sqlite:///./test.db"
os.environ["AUTO_CREATE_TABLES"] = "true"
os.environ["USE_STUB_ADAPTERS"] = "true"
os.environ["OPENAI_API_KEY"] = ""
os.environ["GOOGLE_APPLICATION_CREDENTIALS"] = ""

from video_studio.db.base import Base
from video_studio.db.session import engine
from video_studio.main import create_app
from video_studio.providers.registry import get_registry
import video_studio.models  # noqa: F401


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)
    engine.dispose()
    path = Path("test.db")
    if path.exists():
        path.unlink()


@pytest.fixture()
def client():
    app = create_app()
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def create_job(client):
    def _create(provider: str = "sora", prompt: str = "a cat", **extra) -> dict:
        response = client.post("/api/jobs", json={"provider": provider, "prompt": prompt, **extra})
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _create


@pytest.fixture()
def refresh(client):
    def _refresh(job_id: str, times: int = 1) -> dict:
        data = {}
        for _ in range(times):
            response = client.post(f"/api/jobs/{job_id}/refresh")
            assert response.status_code == 200, response.text
            data = response.json()["data"]
        return data

    return _refresh


@pytest.fixture()
def use_adapter(monkeypatch):
    def _use(adapter):
        monkeypatch.setitem(get_registry()._adapters, adapter.provider_id, adapter)
        return adapter

    return _use
