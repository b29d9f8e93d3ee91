"""Data source that feeds documents to an index server collection."""

from __future__ import annotations

import io
import logging
from pathlib import Path

import httpx

from index_feeder.config import Settings, get_settings
from index_feeder.datasource.base import DataSource, OperationResult
from index_feeder.exceptions import DataSourceError
from index_feeder.index.collection import parse_reply
from index_feeder.index.document_xml import (
    OPERATION_ADD,
    OPERATION_DELETE,
    OPERATION_UPDATE,
    DocumentXMLWriter,
)
from index_feeder.index.transport import HttpTransport
from index_feeder.model.document import Document
from index_feeder.observability.context import collection_context


logger = logging.getLogger(__name__)

UPDATE_HANDLER = "update"
COMMIT_MESSAGE = "<commit/>"


class IndexDataSource(DataSource):
    """Sends add, update and delete messages to one collection.

    Each call builds the whole message in memory and posts it in a single
    request to ``<index_base_url>/<collection>/update``. Nothing is committed
    until ``commit()`` is called.

    Args:
        name: Data source name, also used for schema and snapshot file names
        collection: Target collection on the index server
        settings: Server location, timeouts and storage path (process settings when omitted)
        transport: HTTP transport; one is created and owned when omitted
        include_children: Emit document relationships as nested child documents
    """

    def __init__(
        self,
        name: str,
        collection: str,
        settings: Settings | None = None,
        transport: HttpTransport | None = None,
        *,
        title: str = "",
        include_children: bool = False,
    ) -> None:
        self.settings = settings or get_settings()
        super().__init__(name, title, self.settings.full_text_field_type, self.settings.storage_path)
        if not collection:
            raise DataSourceError("Collection name must be specified.")
        self.collection = collection
        self.include_children = include_children
        self._owns_transport = transport is None
        self.transport = transport or HttpTransport(self.settings)

    @property
    def update_url(self) -> str:
        return self.settings.collection_url(self.collection, UPDATE_HANDLER)

    def build_message(self, operation: str, documents: Document | list[Document]) -> str:
        """Return the complete update message for ``documents``."""
        buffer = io.StringIO()
        writer = DocumentXMLWriter(operation, buffer, self.include_children)
        try:
            writer.write_header()
            writer.write_content(documents, is_update=operation == OPERATION_UPDATE)
            writer.write_trailer()
            return buffer.getvalue()
        finally:
            writer.close()

    def _post(self, body: str) -> None:
        with collection_context(self.collection):
            try:
                reply = self.transport.post_xml(self.update_url, body)
            except httpx.HTTPStatusError as exc:
                # JSON error replies carry the server's exception envelope.
                if "json" in exc.response.headers.get("content-type", ""):
                    parse_reply(exc.response.content)
                raise DataSourceError(f"{self.update_url}: {exc}", exc.response.status_code) from exc
            except httpx.HTTPError as exc:
                raise DataSourceError(f"{self.update_url}: {exc}") from exc
            parse_reply(reply)

    def _send(self, operation: str, documents: Document | list[Document]) -> None:
        count = 1 if isinstance(documents, Document) else len(documents)
        if count == 0:
            logger.debug("Nothing to %s for collection %s", operation, self.collection)
            return
        self._post(self.build_message(operation, documents))
        logger.info("Sent %s of %d document(s) to collection %s", operation, count, self.collection)

    def add(self, documents: Document | list[Document]) -> None:
        self._send(OPERATION_ADD, documents)

    def update(self, documents: Document | list[Document]) -> None:
        self._send(OPERATION_UPDATE, documents)

    def delete(self, documents: Document | list[Document]) -> None:
        self._send(OPERATION_DELETE, documents)

    def commit(self) -> OperationResult:
        self._post(COMMIT_MESSAGE)
        logger.info("Committed collection %s", self.collection)
        return OperationResult("commit")

    def download_schema(self, url: str, directory: str | Path | None = None) -> Path:
        """Save the server-side schema file under this data source's schema path."""
        path = self.schema_path(directory)
        self._schema_xml.download_and_save(url, path, self.transport)
        return path

    def shutdown(self) -> None:
        if self._owns_transport:
            self.transport.close()
        super().shutdown()
