"""Shared contract for document data sources."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
from pathlib import Path
from typing import Any

from index_feeder.exceptions import DataSourceError
from index_feeder.index.document_xml import OPERATION_ADD, DocumentXMLWriter, read_update_message
from index_feeder.index.schema_xml import SchemaXML
from index_feeder.index.types import FULL_TEXT_TYPE_DEFAULT
from index_feeder.model.bag import DataBag
from index_feeder.model.document import Document
from index_feeder.model.field import name_to_title


logger = logging.getLogger(__name__)

SCHEMA_FILE_PREFIX = "ds_schema_"
SNAPSHOT_FILE_PREFIX = "ds_snapshot_"


@dataclass(frozen=True)
class OperationResult:
    """Outcome of an operation a backend may or may not support."""

    operation: str
    supported: bool = True
    success: bool = True
    message: str = ""

    @classmethod
    def unsupported(cls, operation: str, backend: str) -> OperationResult:
        return cls(
            operation=operation,
            supported=False,
            success=False,
            message=f"{backend}: {operation} is not supported.",
        )


class DataSource(ABC):
    """Base class for data sources feeding documents to a backend.

    Holds the schema bag that shapes every document, transient caller
    properties, and the naming rules for the schema and snapshot files kept
    on disk. Those files live in ``storage_path`` unless a call names another
    directory. Backends implement ``add``, ``update`` and ``delete``.
    """

    def __init__(
        self,
        name: str,
        title: str = "",
        full_text_type: str = FULL_TEXT_TYPE_DEFAULT,
        storage_path: str | Path = ".",
    ) -> None:
        if not name:
            raise DataSourceError("Data source name must be specified.")
        self.name = name
        self.title = title or name_to_title(name)
        self.storage_path = Path(storage_path)
        self.properties: dict[str, Any] = {}
        self.is_defined = False
        self._schema_xml = SchemaXML(full_text_type)
        self._schema = DataBag(name=name)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, fields={len(self._schema)})"

    @property
    def type_name(self) -> str:
        return type(self).__name__

    # Schema

    @property
    def schema(self) -> DataBag:
        return self._schema

    def set_schema(self, bag: DataBag) -> None:
        """Adopt a copy of ``bag`` (values cleared) as the schema."""
        self._schema = bag.copy(with_values=False)
        if not self._schema.name:
            self._schema.name = self.name
        self.is_defined = True

    # File naming

    def schema_file_name(self) -> str:
        return f"{SCHEMA_FILE_PREFIX}{self.name}.xml"

    def _directory(self, directory: str | Path | None) -> Path:
        return self.storage_path if directory is None else Path(directory)

    def schema_path(self, directory: str | Path | None = None) -> Path:
        return self._directory(directory) / self.schema_file_name()

    def snapshot_file_name(self) -> str:
        return f"{SNAPSHOT_FILE_PREFIX}{self.name}.xml"

    def snapshot_path(self, directory: str | Path | None = None) -> Path:
        return self._directory(directory) / self.snapshot_file_name()

    # Persistence

    def save_schema(self, directory: str | Path | None = None) -> Path:
        path = self.schema_path(directory)
        self._schema_xml.save_file(path, Document(self.name, self._schema, self.title))
        return path

    def load_schema(self, directory: str | Path | None = None) -> DataBag:
        schema = self._schema_xml.load_file(self.schema_path(directory))
        schema.bag.name = self.name
        self._schema = schema.bag
        self.is_defined = True
        return self._schema

    def save_snapshot(self, directory: str | Path | None = None) -> Path:
        """Write the schema bag and its current values as an ``add`` message."""
        path = self.snapshot_path(directory)
        try:
            with path.open("w", encoding="utf-8") as sink:
                with DocumentXMLWriter(OPERATION_ADD, sink) as writer:
                    writer.write_content(self._schema)
        except OSError as exc:
            raise DataSourceError(f"{path}: {exc}") from exc
        logger.info("Snapshot of '%s' written to %s", self.name, path)
        return path

    def load_snapshot(self, directory: str | Path | None = None) -> DataBag:
        """Restore schema values from a snapshot written by ``save_snapshot``."""
        path = self.snapshot_path(directory)
        if not path.exists():
            raise DataSourceError(f"{path}: Does not exist.")
        if len(self._schema) == 0:
            raise DataSourceError(f"{self.name}: A schema must be defined before loading a snapshot.")

        bags = read_update_message(path, self._schema)
        if not bags:
            raise DataSourceError(f"{path}: Snapshot holds no document.")
        self._schema = bags[0]
        self._schema.name = self.name
        return self._schema

    # Properties

    def add_property(self, name: str, value: Any) -> None:
        self.properties[name] = value

    def get_property(self, name: str, default: Any = None) -> Any:
        return self.properties.get(name, default)

    def clear_properties(self) -> None:
        self.properties.clear()

    # Operations

    @abstractmethod
    def add(self, documents: Document | list[Document]) -> None:
        """Add one document or a list of documents."""

    @abstractmethod
    def update(self, documents: Document | list[Document]) -> None:
        """Update fields of existing documents."""

    @abstractmethod
    def delete(self, documents: Document | list[Document]) -> None:
        """Delete documents by primary key."""

    def commit(self) -> OperationResult:
        return OperationResult.unsupported("commit", self.type_name)

    def rollback(self) -> OperationResult:
        return OperationResult.unsupported("rollback", self.type_name)

    def shutdown(self) -> None:
        logger.debug("Data source '%s' shut down", self.name)
