"""Shared fixtures: a fake Gemini client, catalog data and ready-made apps."""
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient

from madi_store.config import AppSettings
from madi_store.main import create_app
from madi_store.schema import Product
from madi_store.storage import LocalStorage, StatePersistence


class FakeModels:
    def __init__(self):
        self.calls = []
        self.response = SimpleNamespace(text="ok")
        self.error = None

    async def generate_content(self, model, contents, config=None):
        self.calls.append(SimpleNamespace(model=model, contents=contents, config=config))
        if self.error is not None:
            raise self.error
        return self.response


class FakeGeminiClient:
    def __init__(self):
        self.models = FakeModels()
        self.aio = SimpleNamespace(models=self.models)


def audio_response(data):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


CATALOG_ENVELOPE = {
    "data": [
        {"id": 7, "attributes": {
            "name": "Phone X", "category": "СМАРТФОНЫ", "variant": "256GB",
            "currency": "KZT", "priceKZT": 150000, "image": "/img/phone-x.png",
        }},
        {"id": 8, "attributes": {
            "name": "Sky Drone", "category": "ДРОНЫ", "variant": "Fly More",
            "currency": "USD", "priceUSD": 1299, "isPreorder": True,
        }},
        {"id": 9, "attributes": {
            "name": "Smart Glasses", "category": "УМНЫЕ ОЧКИ",
            "currency": "USD", "description": "Glasses with a camera.",
        }},
    ]
}


@pytest.fixture
def app_settings(tmp_path):
    return AppSettings(
        gemini_api_key="test",
        storage_path=tmp_path / "storage.json",
        client_dist_path=tmp_path / "dist",
        _env_file=None,
    )


@pytest.fixture
def gemini():
    return FakeGeminiClient()


@pytest.fixture
def app(app_settings, gemini):
    return create_app(app_settings, gemini_client=gemini)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def products():
    return [
        Product.model_validate({"id": item["id"], **item["attributes"]})
        for item in CATALOG_ENVELOPE["data"]
    ]


@pytest.fixture
def persistence(tmp_path):
    return StatePersistence(LocalStorage(tmp_path / "local_storage.json"))
