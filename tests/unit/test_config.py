"""Unit tests for settings."""

from pydantic import ValidationError
import pytest

from index_feeder.config import Settings, get_settings


def test_settings_read_environment():
    settings = Settings()

    assert settings.index_base_url == "http://index.test/solr"
    assert settings.http_timeout == 5
    assert settings.json_logs is True


def test_defaults_without_environment(monkeypatch):
    for key in ("INDEX_BASE_URL", "HTTP_TIMEOUT", "FULL_TEXT_FIELD_TYPE"):
        monkeypatch.delenv(key, raising=False)

    settings = Settings(_env_file=None)

    assert settings.index_base_url == "http://localhost:8983/solr"
    assert settings.http_timeout == 30
    assert settings.full_text_field_type == "text_en"


def test_trailing_slash_is_stripped():
    settings = Settings(index_base_url="http://index.test/solr/")

    assert settings.collection_url("products", "/update") == "http://index.test/solr/products/update"
    assert settings.collection_url("products") == "http://index.test/solr/products"
    assert settings.admin_collections_url() == "http://index.test/solr/admin/collections"


@pytest.mark.parametrize("field", ["http_timeout", "default_shards", "default_replication_factor"])
def test_counts_must_be_positive(field):
    with pytest.raises(ValidationError):
        Settings(**{field: 0})


def test_get_settings_is_cached():
    assert get_settings() is get_settings()
