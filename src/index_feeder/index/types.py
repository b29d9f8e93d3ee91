"""
Mapping between domain field types and index field type names.

The mapping is lossy on purpose: Date, Time and DateTime all become the
single index type ``date``, and reading ``date`` (or ``time``) back always
yields DateTime.
"""

from __future__ import annotations

from index_feeder.model.field import FEATURE_INDEX_TYPE, DataField, FieldType


FULL_TEXT_TYPE_DEFAULT = "text_en"
FULL_TEXT_FIELD_NAME = "text"
FULL_TEXT_SUFFIXES = ("_name", "_title", "_description", "_content")

_INDEX_TYPES: dict[FieldType, str] = {
    FieldType.INTEGER: "int",
    FieldType.LONG: "long",
    FieldType.FLOAT: "float",
    FieldType.DOUBLE: "double",
    FieldType.BOOLEAN: "boolean",
    FieldType.DATE: "date",
    FieldType.TIME: "date",
    FieldType.DATETIME: "date",
}

_FIELD_TYPES: dict[str, FieldType] = {
    "int": FieldType.INTEGER,
    "long": FieldType.LONG,
    "float": FieldType.FLOAT,
    "double": FieldType.DOUBLE,
    "boolean": FieldType.BOOLEAN,
    "date": FieldType.DATETIME,
    "time": FieldType.DATETIME,
}


def is_full_text_name(field_name: str) -> bool:
    """Return True when the naming convention marks the field as full text."""
    return field_name.endswith(FULL_TEXT_SUFFIXES)


def to_index_type(field_type: FieldType, field_name: str, full_text_type: str = FULL_TEXT_TYPE_DEFAULT) -> str:
    """Return the index type name for a domain type.

    Text fields named ``*_name``, ``*_title``, ``*_description`` or
    ``*_content`` map to ``full_text_type``; other text fields map to
    ``string``.
    """
    if field_type == FieldType.TEXT:
        return full_text_type if is_full_text_name(field_name) else "string"
    return _INDEX_TYPES.get(field_type, "string")


def index_type_for(data_field: DataField, full_text_type: str = FULL_TEXT_TYPE_DEFAULT) -> str:
    """Return the index type of a field, honouring an explicit ``indexType`` feature."""
    if data_field.is_feature_assigned(FEATURE_INDEX_TYPE):
        return data_field.get_feature(FEATURE_INDEX_TYPE)
    return to_index_type(data_field.type, data_field.name, full_text_type)


def to_field_type(index_type: str | None) -> FieldType:
    """Return the domain type for an index type name, falling back to Text."""
    if not index_type:
        return FieldType.TEXT
    return _FIELD_TYPES.get(index_type.lower(), FieldType.TEXT)
