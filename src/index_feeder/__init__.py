"""
Field model and XML codecs for feeding documents to a search index server.

- model: fields, bags, tables, documents and schemas
- index: type mapping, schema and update-message codecs, transport, collections
- datasource: data sources posting update messages to a collection
- observability: structured logging and tracing
"""

from index_feeder.exceptions import DataSourceError
from index_feeder.index.document_xml import DocumentXMLWriter, read_update_message
from index_feeder.index.schema_xml import SchemaXML
from index_feeder.model.bag import DataBag
from index_feeder.model.document import Document, Relationship, Schema
from index_feeder.model.field import DataField, FieldType
from index_feeder.model.table import DataTable


__all__ = [
    "DataBag",
    "DataField",
    "DataSourceError",
    "DataTable",
    "Document",
    "DocumentXMLWriter",
    "FieldType",
    "Relationship",
    "Schema",
    "SchemaXML",
    "read_update_message",
]
