from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from onwater.config import Settings
from onwater.land import load_land_index
from onwater.main import create_app

DATA_DIR = Path(__file__).parent / "data"


@pytest.fixture(scope="session")
def land_path() -> Path:
    return DATA_DIR / "land.geojson"


@pytest.fixture(scope="session")
def land_index(land_path):
    return load_land_index(land_path)


@pytest.fixture
def settings(land_path) -> Settings:
    return Settings(land_dataset_path=str(land_path), health_check_endpoint="/healthz")


@pytest.fixture
def span_exporter():
    return InMemorySpanExporter()


@pytest.fixture
def tracer_provider(span_exporter):
    provider = TracerProvider()
    provider.add_span_processor(SimpleSpanProcessor(span_exporter))
    yield provider
    provider.shutdown()


@pytest.fixture
def app(settings, tracer_provider):
    return create_app(settings, tracer_provider=tracer_provider)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
