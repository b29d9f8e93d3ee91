"""Shared test fixtures and configuration."""

from collections.abc import Callable
import os

import httpx
import pytest

from index_feeder.config import Settings, get_settings
from index_feeder.index.transport import HttpTransport
from index_feeder.model.bag import DataBag
from index_feeder.model.field import FEATURE_IS_PRIMARY_KEY, DataField, FieldType


# Complete test environment that overrides every config value
TEST_ENV = {
    "INDEX_BASE_URL": "http://index.test/solr",
    "FULL_TEXT_FIELD_TYPE": "text_en",
    "HTTP_TIMEOUT": "5",
    "DEFAULT_SHARDS": "1",
    "DEFAULT_REPLICATION_FACTOR": "1",
    "STORAGE_PATH": ".",
    "LOG_LEVEL": "info",
    "JSON_LOGS": "true",
    # Proxy settings - ensure they're cleared for tests
    "http_proxy": "",
    "https_proxy": "",
    "all_proxy": "",
    "no_proxy": "",
}

for key, value in TEST_ENV.items():
    os.environ[key] = value


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Reset environment variables and the cached settings before each test."""
    for key, value in TEST_ENV.items():
        monkeypatch.setenv(key, value)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def recorded_requests() -> list[httpx.Request]:
    return []


@pytest.fixture
def make_transport(settings, recorded_requests) -> Callable[..., HttpTransport]:
    """Build an ``HttpTransport`` whose client answers from a handler function."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> HttpTransport:
        def _recording_handler(request: httpx.Request) -> httpx.Response:
            request.read()
            recorded_requests.append(request)
            return handler(request)

        client = httpx.Client(transport=httpx.MockTransport(_recording_handler))
        return HttpTransport(settings, client=client)

    return _make


@pytest.fixture
def product_bag() -> DataBag:
    """Bag with a primary key, a full-text named field and a multi-valued field."""
    return DataBag(
        [
            DataField("id", FieldType.TEXT, features={FEATURE_IS_PRIMARY_KEY: True}),
            DataField("product_name", FieldType.TEXT),
            DataField("price", FieldType.DOUBLE),
            DataField("tags", FieldType.TEXT, multi_value=True),
        ],
        name="products",
    )
