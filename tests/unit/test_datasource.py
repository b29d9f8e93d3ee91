"""Unit tests for data sources."""

import httpx
import orjson
import pytest

from index_feeder.config import Settings
from index_feeder.datasource import DataSource, IndexDataSource, OperationResult
from index_feeder.exceptions import DataSourceError
from index_feeder.model.bag import DataBag
from index_feeder.model.document import Document
from index_feeder.model.field import FEATURE_IS_PRIMARY_KEY, DataField, FieldType
from index_feeder.observability.context import get_trace_context, trace_context


OK_REPLY = b'{"responseHeader": {"status": 0, "QTime": 1}}'


class MemoryDataSource(DataSource):
    """Data source that keeps rendered operations in a list."""

    def __init__(self, name: str, storage_path=".") -> None:
        super().__init__(name, storage_path=storage_path)
        self.operations: list[tuple[str, int]] = []

    def add(self, documents):
        self.operations.append(("add", len(documents) if isinstance(documents, list) else 1))

    def update(self, documents):
        self.operations.append(("update", 1))

    def delete(self, documents):
        self.operations.append(("delete", 1))


@pytest.fixture
def ok_transport(make_transport):
    return make_transport(lambda request: httpx.Response(200, content=OK_REPLY))


@pytest.fixture
def widget(product_bag) -> Document:
    bag = product_bag.copy()
    bag.set_value("id", "42")
    bag.set_value("product_name", "Widget")
    bag.set_value("tags", ["red", "blue"])
    return Document("widget", bag)


class TestDataSourceBase:
    def test_file_naming(self, tmp_path):
        source = MemoryDataSource("catalog")

        assert source.schema_file_name() == "ds_schema_catalog.xml"
        assert source.snapshot_file_name() == "ds_snapshot_catalog.xml"
        assert source.schema_path(tmp_path) == tmp_path / "ds_schema_catalog.xml"
        assert source.snapshot_path(tmp_path) == tmp_path / "ds_snapshot_catalog.xml"

    def test_title_is_derived(self):
        assert MemoryDataSource("product_catalog").title == "Product Catalog"

    def test_name_is_required(self):
        with pytest.raises(DataSourceError, match="name must be specified"):
            MemoryDataSource("")

    def test_set_schema_drops_values(self, product_bag):
        product_bag.set_value("id", "1")
        source = MemoryDataSource("catalog")

        source.set_schema(product_bag)

        assert source.is_defined is True
        assert source.schema.names == product_bag.names
        assert source.schema["id"].is_assigned() is False
        assert product_bag["id"].is_assigned() is True

    def test_schema_file_round_trip(self, product_bag, tmp_path):
        source = MemoryDataSource("catalog")
        source.set_schema(product_bag)

        path = source.save_schema(tmp_path)
        restored = MemoryDataSource("catalog")
        bag = restored.load_schema(tmp_path)

        assert path.name == "ds_schema_catalog.xml"
        assert "id" in bag
        assert bag.primary_key_field.name == "id"
        assert bag["tags"].multi_value is True
        assert restored.is_defined is True

    def test_load_schema_missing(self, tmp_path):
        with pytest.raises(DataSourceError, match="Does not exist"):
            MemoryDataSource("catalog").load_schema(tmp_path)

    def test_snapshot_round_trip(self, product_bag, tmp_path):
        source = MemoryDataSource("catalog")
        source.set_schema(product_bag)
        source.schema.set_value("id", "42")
        source.schema.set_value("product_name", "Widget")
        source.schema.set_value("tags", ["red", "blue"])

        path = source.save_snapshot(tmp_path)
        source.schema.clear_values()
        bag = source.load_snapshot(tmp_path)

        assert path.read_text(encoding="utf-8").splitlines()[1] == "<add>"
        assert bag.get_value("id") == "42"
        assert bag.get_value("product_name") == "Widget"
        assert bag["tags"].values == ["red", "blue"]
        assert bag["price"].is_assigned() is False

    def test_files_default_to_storage_path(self, product_bag, tmp_path):
        source = MemoryDataSource("catalog", storage_path=tmp_path)
        source.set_schema(product_bag)
        source.schema.set_value("id", "42")

        schema_path = source.save_schema()
        snapshot_path = source.save_snapshot()
        restored = MemoryDataSource("catalog", storage_path=tmp_path)
        restored.load_schema()

        assert schema_path == tmp_path / "ds_schema_catalog.xml"
        assert snapshot_path == tmp_path / "ds_snapshot_catalog.xml"
        assert restored.load_snapshot().get_value("id") == "42"

    def test_explicit_directory_overrides_storage_path(self, product_bag, tmp_path):
        source = MemoryDataSource("catalog", storage_path=tmp_path / "unused")
        source.set_schema(product_bag)

        assert source.save_schema(tmp_path) == tmp_path / "ds_schema_catalog.xml"
        assert not (tmp_path / "unused").exists()

    def test_snapshot_requires_schema(self, tmp_path):
        source = MemoryDataSource("catalog")
        source.snapshot_path(tmp_path).write_text("<add><doc/></add>")

        with pytest.raises(DataSourceError, match="schema must be defined"):
            source.load_snapshot(tmp_path)

    def test_snapshot_missing(self, product_bag, tmp_path):
        source = MemoryDataSource("catalog")
        source.set_schema(product_bag)

        with pytest.raises(DataSourceError, match="Does not exist"):
            source.load_snapshot(tmp_path)

    def test_properties_are_transient(self, product_bag, tmp_path):
        source = MemoryDataSource("catalog")
        source.set_schema(product_bag)
        source.add_property("cursor", object())

        source.save_schema(tmp_path)

        assert "cursor" not in source.schema_path(tmp_path).read_text(encoding="utf-8")
        assert source.get_property("missing", 1) == 1
        source.clear_properties()
        assert source.properties == {}

    def test_default_commit_and_rollback_are_unsupported(self):
        source = MemoryDataSource("catalog")

        for result in (source.commit(), source.rollback()):
            assert isinstance(result, OperationResult)
            assert result.supported is False
            assert result.success is False
            assert "MemoryDataSource" in result.message

    def test_abstract_contract(self):
        with pytest.raises(TypeError):
            DataSource("catalog")  # type: ignore[abstract]


class TestIndexDataSource:
    def test_add_posts_to_update_handler(self, settings, ok_transport, recorded_requests, widget):
        source = IndexDataSource("catalog", "products", settings, ok_transport)

        source.add(widget)

        request = recorded_requests[0]
        body = request.content.decode("utf-8")
        assert str(request.url) == "http://index.test/solr/products/update"
        assert body.splitlines()[1] == "<add>"
        assert '<field name="product_name">Widget</field>' in body
        assert body.count('<field name="tags">') == 2

    def test_update_uses_partial_update_form(self, settings, ok_transport, recorded_requests, widget):
        source = IndexDataSource("catalog", "products", settings, ok_transport)

        source.update([widget])

        body = recorded_requests[0].content.decode("utf-8")
        assert '<field name="id">42</field>' in body
        assert '<field name="product_name" update="set">Widget</field>' in body

    def test_delete_sends_primary_key_only(self, settings, ok_transport, recorded_requests, widget):
        source = IndexDataSource("catalog", "products", settings, ok_transport)

        source.delete(widget)

        body = recorded_requests[0].content.decode("utf-8")
        assert body.splitlines()[1] == "<delete>"
        assert body.count("<field") == 1

    def test_empty_list_sends_nothing(self, settings, ok_transport, recorded_requests):
        IndexDataSource("catalog", "products", settings, ok_transport).add([])

        assert recorded_requests == []

    def test_children(self, settings, ok_transport, recorded_requests, widget):
        from index_feeder.model.document import Relationship

        child = DataBag([DataField("sku", FieldType.TEXT)])
        child.set_value("sku", "42-r")
        widget.add_relationship(Relationship("variant", child))
        source = IndexDataSource("catalog", "products", settings, ok_transport, include_children=True)

        source.add(widget)

        assert '<field name="sku">42-r</field>' in recorded_requests[0].content.decode("utf-8")

    def test_commit(self, settings, ok_transport, recorded_requests):
        result = IndexDataSource("catalog", "products", settings, ok_transport).commit()

        assert result.supported is True
        assert result.success is True
        assert recorded_requests[0].content == b"<commit/>"

    def test_rollback_is_unsupported(self, settings, ok_transport):
        assert IndexDataSource("catalog", "products", settings, ok_transport).rollback().supported is False

    def test_error_envelope(self, settings, make_transport, widget):
        envelope = orjson.dumps({"exception": {"msg": "ERROR: [doc=42] unknown field 'x'", "rspCode": 400}})
        transport = make_transport(
            lambda request: httpx.Response(400, content=envelope, headers={"Content-Type": "application/json"})
        )
        source = IndexDataSource("catalog", "products", settings, transport)

        with pytest.raises(DataSourceError, match="unknown field") as exc_info:
            source.add(widget)
        assert exc_info.value.code == 400

    def test_non_json_error_reply(self, settings, make_transport, widget):
        transport = make_transport(lambda request: httpx.Response(502, content=b"<html>Bad gateway</html>"))
        source = IndexDataSource("catalog", "products", settings, transport)

        with pytest.raises(DataSourceError) as exc_info:
            source.add(widget)
        assert exc_info.value.code == 502

    def test_download_schema(self, settings, make_transport, tmp_path):
        transport = make_transport(lambda request: httpx.Response(200, content=b"<schema/>"))
        source = IndexDataSource("catalog", "products", settings, transport)

        path = source.download_schema("http://index.test/solr/products/admin/file?file=managed-schema", tmp_path)

        assert path == tmp_path / "ds_schema_catalog.xml"
        assert path.read_bytes() == b"<schema/>"

    def test_download_schema_into_configured_storage(self, make_transport, tmp_path):
        settings = Settings(storage_path=str(tmp_path))
        transport = make_transport(lambda request: httpx.Response(200, content=b"<schema/>"))
        source = IndexDataSource("catalog", "products", settings, transport)

        path = source.download_schema("http://index.test/solr/products/admin/file?file=managed-schema")

        assert source.storage_path == tmp_path
        assert path == tmp_path / "ds_schema_catalog.xml"
        assert path.read_bytes() == b"<schema/>"

    def test_post_logs_in_collection_context(self, settings, make_transport, widget):
        trace_context.set(None)
        seen: list[dict] = []

        def _handler(request):
            seen.append(dict(get_trace_context()))
            return httpx.Response(200, content=OK_REPLY)

        source = IndexDataSource("catalog", "products", settings, make_transport(_handler))

        source.add(widget)

        assert seen[0]["collection"] == "products"
        assert "collection" not in get_trace_context()

    def test_collection_is_required(self, settings, ok_transport):
        with pytest.raises(DataSourceError, match="Collection name must be specified"):
            IndexDataSource("catalog", "", settings, ok_transport)

    def test_shutdown_keeps_supplied_transport_open(self, settings, ok_transport):
        source = IndexDataSource("catalog", "products", settings, ok_transport)

        source.shutdown()

        assert ok_transport.client.is_closed is False

    def test_shutdown_closes_owned_transport(self, settings):
        source = IndexDataSource("catalog", "products", settings)

        source.shutdown()

        assert source.transport.client.is_closed is True

    def test_build_message(self, settings, ok_transport, widget):
        source = IndexDataSource("catalog", "products", settings, ok_transport)

        message = source.build_message("add", widget)

        assert message.startswith('<?xml version="1.0" encoding="UTF-8"?>\n<add>\n')
        assert message.endswith("</add>\n")

    def test_uses_key_field(self, settings, ok_transport, recorded_requests):
        bag = DataBag([DataField("sku", features={FEATURE_IS_PRIMARY_KEY: True}), DataField("name")])
        bag.set_value("sku", "A1")
        bag.set_value("name", "thing")

        IndexDataSource("catalog", "products", settings, ok_transport).delete(Document("thing", bag))

        assert '<field name="sku">A1</field>' in recorded_requests[0].content.decode("utf-8")
