"""
Schema descriptor codec.

Writes a bag of fields as index schema XML and reads such XML back:

    <fields>
     <field name="text" type="text_en" indexed="true" stored="true" multiValued="true"/>
     <field name="id" type="string" indexed="true" stored="true" required="true"/>
     <field name="_version_" type="long" indexed="true" stored="true"/>
    </fields>
    <uniqueKey>id</uniqueKey>
    <copyField source="product_name" dest="text"/>

Reading accepts ``field`` elements either inside a ``fields`` container or
directly under the root, plus a ``uniqueKey`` element naming the primary key.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path
from typing import IO, TextIO

import httpx
from lxml import etree  # type: ignore[import-untyped]

from index_feeder.exceptions import DataSourceError
from index_feeder.index import xml_utils
from index_feeder.index.transport import HttpTransport
from index_feeder.index.types import (
    FULL_TEXT_FIELD_NAME,
    FULL_TEXT_TYPE_DEFAULT,
    index_type_for,
    is_full_text_name,
    to_field_type,
)
from index_feeder.model.bag import DataBag
from index_feeder.model.document import Document, Schema
from index_feeder.model.field import (
    FEATURE_IS_DEFAULT,
    FEATURE_IS_INDEXED,
    FEATURE_IS_OMIT_NORMS,
    FEATURE_IS_REQUIRED,
    FEATURE_IS_STORED,
    DataField,
    string_to_boolean,
)


logger = logging.getLogger(__name__)

SCHEMA_NAME_DEFAULT = "Index Schema"
VERSION_FIELD_NAME = "_version_"
RESERVED_FIELD_NAMES = frozenset({FULL_TEXT_FIELD_NAME, VERSION_FIELD_NAME})

ATTRIBUTE_GUIDE = (
    ("name", "mandatory, the name for the field"),
    ("type", "mandatory, the name of a field type from the <types> section"),
    ("indexed", "true if this field should be indexed (searchable or sortable)"),
    ("stored", "true if this field should be retrievable"),
    ("multiValued", "true if this field may contain multiple values per document"),
    ("omitNorms", "(expert) true to omit length normalization and index-time boosts"),
    ("termVectors", "[false] true to store the term vector for the field"),
    ("termPositions", "store position information with the term vector"),
    ("termOffsets", "store offset information with the term vector"),
    ("required", "the field must be present in every document"),
    ("default", "value used when a document omits the field"),
)


class SchemaXML:
    """Reads and writes schema descriptor XML for a bag of fields.

    Instances hold no state between calls beyond the configured full-text
    field type, so one instance can serve any number of save/load calls.
    """

    def __init__(self, full_text_type: str = FULL_TEXT_TYPE_DEFAULT) -> None:
        self.full_text_type = full_text_type

    # Writing

    def _field_attributes(self, data_field: DataField) -> list[tuple[str, str]]:
        attributes = [
            ("name", data_field.name),
            ("type", index_type_for(data_field, self.full_text_type)),
        ]
        if data_field.is_feature_assigned(FEATURE_IS_INDEXED):
            attributes.append(("indexed", data_field.get_feature(FEATURE_IS_INDEXED)))
        else:
            attributes.append(("indexed", "true"))
        if data_field.is_feature_assigned(FEATURE_IS_STORED):
            attributes.append(("stored", data_field.get_feature(FEATURE_IS_STORED)))
        else:
            attributes.append(("stored", "true"))
        if data_field.is_feature_true(FEATURE_IS_REQUIRED):
            attributes.append(("required", "true"))
        if data_field.multi_value:
            attributes.append(("multiValued", "true"))
        if data_field.is_feature_true(FEATURE_IS_OMIT_NORMS):
            attributes.append(("omitNorms", data_field.get_feature(FEATURE_IS_OMIT_NORMS)))
        if data_field.is_feature_true(FEATURE_IS_DEFAULT) and data_field.default_value:
            attributes.append(("default", data_field.default_value))
        return attributes

    @staticmethod
    def _write_attribute_guide(sink: TextIO, indent: int) -> None:
        sink.write(f"{xml_utils.indent(indent)}<!-- Valid attributes for fields:\n")
        for attr_name, description in ATTRIBUTE_GUIDE:
            sink.write(f"{xml_utils.indent(indent + 1)}{attr_name}: {description}\n")
        sink.write(f"{xml_utils.indent(indent)}-->\n")

    def save(
        self,
        sink: TextIO,
        source: DataBag | Document,
        tag_name: str = "fields",
        indent: int = 1,
        *,
        attribute_guide: bool = False,
    ) -> None:
        """Write the field declarations, the unique key and the copyField rules.

        With ``attribute_guide`` a comment listing the valid field attributes
        opens the field container. Readers ignore it.
        """
        bag = source.bag if isinstance(source, Document) else source
        inner = indent + 1

        sink.write(f"{xml_utils.indent(indent)}<{tag_name}>\n")
        if attribute_guide:
            self._write_attribute_guide(sink, inner)
        sink.write(
            xml_utils.indent(inner)
            + xml_utils.render_element(
                "field",
                [
                    ("name", FULL_TEXT_FIELD_NAME),
                    ("type", self.full_text_type),
                    ("indexed", "true"),
                    ("stored", "true"),
                    ("multiValued", "true"),
                ],
            )
            + "\n"
        )
        for data_field in bag:
            if data_field.name in RESERVED_FIELD_NAMES:
                continue
            sink.write(
                xml_utils.indent(inner) + xml_utils.render_element("field", self._field_attributes(data_field)) + "\n"
            )
        sink.write(
            xml_utils.indent(inner)
            + xml_utils.render_element(
                "field",
                [("name", VERSION_FIELD_NAME), ("type", "long"), ("indexed", "true"), ("stored", "true")],
            )
            + "\n"
        )
        sink.write(f"{xml_utils.indent(indent)}</{tag_name}>\n")

        primary_key = bag.primary_key_field
        if primary_key is not None:
            sink.write(xml_utils.indent(indent) + xml_utils.render_element("uniqueKey", text=primary_key.name) + "\n")

        for data_field in bag:
            if is_full_text_name(data_field.name):
                sink.write(
                    xml_utils.indent(indent)
                    + xml_utils.render_element(
                        "copyField", [("source", data_field.name), ("dest", FULL_TEXT_FIELD_NAME)]
                    )
                    + "\n"
                )

        logger.debug("Saved schema with %d fields", len(bag))

    def to_string(
        self,
        source: DataBag | Document,
        tag_name: str = "fields",
        indent: int = 1,
        *,
        attribute_guide: bool = False,
    ) -> str:
        buffer = io.StringIO()
        self.save(buffer, source, tag_name, indent, attribute_guide=attribute_guide)
        return buffer.getvalue()

    def save_file(self, path: str | Path, source: DataBag | Document, *, attribute_guide: bool = False) -> None:
        """Write a standalone schema file whose root element carries the schema name."""
        name = source.name if isinstance(source, Document) else (source.name or SCHEMA_NAME_DEFAULT)
        open_tag = xml_utils.render_element("schema", [("name", name)])[:-2] + ">"
        try:
            with Path(path).open("w", encoding="utf-8") as sink:
                sink.write(xml_utils.XML_PROLOG + "\n")
                sink.write(open_tag + "\n")
                self.save(sink, source, indent=1, attribute_guide=attribute_guide)
                sink.write("</schema>\n")
        except OSError as exc:
            raise DataSourceError(f"{path}: {exc}") from exc
        logger.info("Schema '%s' written to %s", name, path)

    # Reading

    def _assign_feature(self, data_field: DataField, name: str, value: str) -> None:
        lowered = name.lower()
        if lowered == "indexed":
            if string_to_boolean(value):
                data_field.enable_feature(FEATURE_IS_INDEXED)
        elif lowered == "stored":
            if string_to_boolean(value):
                data_field.enable_feature(FEATURE_IS_STORED)
        elif lowered == "multivalued":
            if string_to_boolean(value):
                data_field.multi_value = True
        else:
            data_field.add_feature(name, value)
            if lowered == "required" and string_to_boolean(value):
                data_field.enable_feature(FEATURE_IS_REQUIRED)
            elif lowered == "omitnorms" and string_to_boolean(value):
                data_field.enable_feature(FEATURE_IS_OMIT_NORMS)
            elif lowered == "default":
                data_field.enable_feature(FEATURE_IS_DEFAULT)
                data_field.default_value = value

    def load_field(self, element: etree._Element) -> DataField | None:
        """Build a field from a ``field`` element; returns None when it has no name."""
        field_name = element.get("name")
        if not field_name:
            return None

        data_field = DataField(field_name, to_field_type(element.get("type")))
        for attr_name, attr_value in element.attrib.items():
            if not attr_value or attr_name.lower() in ("name", "type"):
                continue
            self._assign_feature(data_field, attr_name, attr_value)
        return data_field

    def _add_field(self, bag: DataBag, element: etree._Element) -> None:
        data_field = self.load_field(element)
        if data_field is None:
            logger.debug("Skipping field element without a name")
            return
        if data_field.name in bag:
            logger.warning("Skipping duplicate field declaration '%s'", data_field.name)
            return
        primary_key = bag.primary_key_field
        if data_field.is_primary_key and primary_key is not None:
            logger.warning(
                "Skipping field '%s': primary key is already '%s'", data_field.name, primary_key.name
            )
            return
        bag.add(data_field)

    def _assign_unique_key(self, bag: DataBag, key_name: str) -> None:
        if key_name not in bag:
            logger.warning("uniqueKey '%s' does not name a declared field", key_name)
            return
        primary_key = bag.primary_key_field
        if primary_key is not None and primary_key.name != key_name:
            logger.warning(
                "Ignoring uniqueKey '%s': field '%s' is already the primary key", key_name, primary_key.name
            )
            return
        bag.set_primary_key(key_name)

    def load(self, element: etree._Element) -> Schema:
        """Walk a parsed schema tree and return the schema it describes."""
        schema = Schema(name=element.get("name") or SCHEMA_NAME_DEFAULT)
        bag = schema.bag

        for child in xml_utils.child_elements(element):
            if xml_utils.tag_matches(child, "fields"):
                for node in xml_utils.child_elements(child):
                    if xml_utils.tag_matches(node, "field"):
                        self._add_field(bag, node)
            elif xml_utils.tag_matches(child, "field"):
                self._add_field(bag, child)
            elif xml_utils.tag_matches(child, "uniqueKey"):
                self._assign_unique_key(bag, xml_utils.element_text(child))

        logger.debug("Loaded schema '%s' with %d fields", schema.name, len(bag))
        return schema

    def load_stream(self, source: bytes | IO[bytes]) -> Schema:
        return self.load(xml_utils.parse_xml(source))

    def load_file(self, path: str | Path) -> Schema:
        path = Path(path)
        if not path.exists():
            raise DataSourceError(f"{path}: Does not exist.")
        return self.load(xml_utils.parse_xml(path))

    # Download

    def download_and_save(self, url: str, path: str | Path, transport: HttpTransport | None = None) -> None:
        """Fetch a schema file from the index server and store the body verbatim."""
        if not url or not path:
            raise DataSourceError("Schema URL and path/file name must be specified.")

        owned = transport is None
        active = transport or HttpTransport()
        try:
            active.download(url, path)
        except (httpx.HTTPError, OSError) as exc:
            msg = f"{url} ({path}): {exc}"
            logger.error(msg, exc_info=True)
            raise DataSourceError(msg) from exc
        finally:
            if owned:
                active.close()
        logger.info("Schema downloaded from %s to %s", url, path)
