"""
Update-message codec.

``DocumentXMLWriter`` streams an update message to a text sink:

    <?xml version="1.0" encoding="UTF-8"?>
    <add>
     <doc>
      <field name="id">42</field>
      <field name="tags" update="set">red</field>
      <field name="tags" update="set">blue</field>
     </doc>
    <commit/>
    </add>

A writer session moves through three states:

- UNOPENED: nothing written yet; only ``write_header()`` is accepted
- HEADER_WRITTEN: any number of documents and commit/optimize directives
- CLOSED: trailer written and sink released; every further call is a no-op

``read_update_message`` parses an ``add`` message back into bags.
"""

from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
import logging
from pathlib import Path
from types import TracebackType
from typing import IO, TextIO

from index_feeder.exceptions import DataSourceError
from index_feeder.index import xml_utils
from index_feeder.model.bag import DataBag
from index_feeder.model.document import Document
from index_feeder.model.field import FEATURE_IS_CONTENT, DataField
from index_feeder.model.table import DataTable


logger = logging.getLogger(__name__)

OPERATION_ADD = "add"
OPERATION_UPDATE = "update"
OPERATION_DELETE = "delete"
OPERATIONS = frozenset({OPERATION_ADD, OPERATION_UPDATE, OPERATION_DELETE})

INVALID_DATA_COMMENT = "Invalid Data"

ContentItem = DataBag | Document | DataTable


class WriterState(str, Enum):
    UNOPENED = "unopened"
    HEADER_WRITTEN = "header_written"
    CLOSED = "closed"


class DocumentXMLWriter:
    """Writes add/update/delete messages for the index server.

    The writer owns ``sink`` for its whole session and releases it exactly
    once, either through ``write_trailer_and_close()`` or ``close()``. Used as
    a context manager, a clean exit writes the trailer and an exception only
    releases the sink.

    Args:
        operation: Message keyword, one of ``add``, ``update`` or ``delete``
        sink: Text stream receiving the message
        include_children: Nest relationship bags as child documents
    """

    def __init__(self, operation: str, sink: TextIO, include_children: bool = False) -> None:
        if operation not in OPERATIONS:
            raise DataSourceError(f"Unknown update operation '{operation}'")
        self.operation = operation
        self.include_children = include_children
        self._sink: TextIO | None = sink
        self._state = WriterState.UNOPENED

    @property
    def state(self) -> WriterState:
        return self._state

    @property
    def is_closed(self) -> bool:
        return self._state == WriterState.CLOSED

    def _writable(self, action: str) -> bool:
        if self._state == WriterState.CLOSED:
            logger.debug("Ignoring %s on a closed %s writer", action, self.operation)
            return False
        if self._state == WriterState.UNOPENED:
            raise DataSourceError(f"Cannot {action} before the message header is written")
        return True

    def _write(self, text: str) -> None:
        assert self._sink is not None
        self._sink.write(text)

    def _line(self, indent: int, text: str) -> None:
        self._write(f"{xml_utils.indent(indent)}{text}\n")

    # Session

    def write_header(self) -> None:
        if self._state == WriterState.CLOSED:
            logger.debug("Ignoring header on a closed %s writer", self.operation)
            return
        if self._state == WriterState.HEADER_WRITTEN:
            raise DataSourceError("Message header was already written")
        self._write(f"{xml_utils.XML_PROLOG}\n<{self.operation}>\n")
        self._state = WriterState.HEADER_WRITTEN

    def write_commit(self) -> None:
        if self._writable("write commit"):
            self._line(0, "<commit/>")

    def write_optimize(self) -> None:
        if self._writable("write optimize"):
            self._line(0, "<optimize/>")

    def write_trailer(self) -> None:
        """Close the message element and flush the sink."""
        if not self._writable("write trailer"):
            return
        self._line(0, f"</{self.operation}>")
        assert self._sink is not None
        self._sink.flush()

    def write_trailer_and_close(self) -> None:
        """Finish the message and release the sink.

        A writer that never wrote its header has nothing to finish and is
        closed without output.
        """
        if self._state == WriterState.CLOSED:
            return
        if self._state == WriterState.UNOPENED:
            logger.debug("Closing %s writer that never wrote a header", self.operation)
            self.close()
            return
        try:
            self.write_trailer()
        finally:
            self.close()

    def close(self) -> None:
        """Release the sink without writing a trailer."""
        if self._sink is None:
            self._state = WriterState.CLOSED
            return
        sink, self._sink = self._sink, None
        self._state = WriterState.CLOSED
        sink.close()

    def __enter__(self) -> DocumentXMLWriter:
        if self._state == WriterState.UNOPENED:
            self.write_header()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if exc_type is None:
            self.write_trailer_and_close()
        else:
            self.close()

    # Fields

    def _field_strings(self, data_field: DataField) -> list[str]:
        if data_field.multi_value:
            candidates = data_field.values
        else:
            candidates = [data_field.value]
        return [text for text in (xml_utils.format_value(data_field.type, value) for value in candidates) if text]

    def _write_field(self, data_field: DataField, is_update: bool, indent: int) -> None:
        if not data_field.is_assigned() or data_field.is_hidden:
            return

        attributes = [("name", data_field.name)]
        if is_update:
            attributes.append(("update", "set"))
        is_content = data_field.is_feature_true(FEATURE_IS_CONTENT)

        for text in self._field_strings(data_field):
            body = xml_utils.content_text(text) if is_content else xml_utils.strip_invalid_chars(text)
            if not body:
                continue
            self._line(indent, xml_utils.render_element("field", attributes, body))

    def _write_fields(self, bag: DataBag, is_update: bool, indent: int) -> None:
        if self.operation == OPERATION_DELETE:
            primary_key = bag.primary_key_field
            if primary_key is not None:
                self._write_field(primary_key, False, indent)
            return

        for data_field in bag:
            self._write_field(data_field, is_update and not data_field.is_primary_key, indent)

    def _write_validity(self, bag: DataBag, indent: int) -> None:
        if not bag.is_valid():
            logger.info("Emitting document with invalid data: %s", "; ".join(bag.validation_messages()))
            self._line(indent, xml_utils.render_comment(INVALID_DATA_COMMENT))

    # Content

    def _write_bag(self, bag: DataBag, is_update: bool, indent: int) -> None:
        self._line(indent, "<doc>")
        self._write_validity(bag, indent + 1)
        self._write_fields(bag, is_update, indent + 1)
        self._line(indent, "</doc>")

    def _write_document(self, document: Document, is_update: bool, indent: int) -> None:
        if len(document.bag) == 0:
            logger.debug("Skipping document '%s' with an empty bag", document.name)
            return

        self._line(indent, "<doc>")
        self._write_validity(document.bag, indent + 1)
        self._write_fields(document.bag, is_update, indent + 1)
        if self.include_children:
            for relationship in document.relationships:
                child_bag = relationship.bag
                if len(child_bag) == 0:
                    continue
                self._line(indent + 1, "<doc>")
                self._write_validity(child_bag, indent + 2)
                self._write_fields(child_bag, False, indent + 2)
                self._line(indent + 1, "</doc>")
        self._line(indent, "</doc>")

    def write_content(
        self,
        content: ContentItem | Iterable[ContentItem],
        is_update: bool = False,
        indent: int = 1,
    ) -> None:
        """Write one ``doc`` element per bag, document or table row.

        Args:
            content: A bag, a document, a table, or an iterable of those
            is_update: Mark non-key fields with ``update="set"``
            indent: Indent of the ``doc`` elements
        """
        if not self._writable("write content"):
            return

        if isinstance(content, DataBag):
            self._write_bag(content, is_update, indent)
        elif isinstance(content, Document):
            self._write_document(content, is_update, indent)
        elif isinstance(content, DataTable):
            for bag in content.iter_bags():
                self._write_bag(bag, is_update, indent)
        elif isinstance(content, Iterable) and not isinstance(content, (str, bytes)):
            for item in content:
                self.write_content(item, is_update, indent)
        else:
            raise TypeError(f"Unsupported content type: {type(content).__name__}")


def read_update_message(source: bytes | IO[bytes] | Path | str, schema_bag: DataBag) -> list[DataBag]:
    """Read an update message into bags shaped like ``schema_bag``.

    Fields not declared in ``schema_bag`` are ignored. Nested child documents
    are not read back.
    """
    root = xml_utils.parse_xml(source)
    bags: list[DataBag] = []
    for doc in xml_utils.child_elements(root):
        if not xml_utils.tag_matches(doc, "doc"):
            continue
        bag = schema_bag.copy(with_values=False)
        for node in xml_utils.child_elements(doc):
            if not xml_utils.tag_matches(node, "field"):
                continue
            data_field = bag.get(node.get("name", ""))
            if data_field is None:
                logger.debug("Ignoring undeclared field '%s'", node.get("name"))
                continue
            data_field.add_value(node.text or "")
        bags.append(bag)
    return bags
