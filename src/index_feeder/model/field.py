"""
Field model: typed, possibly multi-valued data elements with feature flags.

A ``DataField`` carries:
- name: unique within its bag
- type: one of the ``FieldType`` members
- values: ordered list (0..1 for scalar fields, 0..N for multi-valued ones)
- assigned state: whether a value was ever set since the last reset
- features: opaque string pairs, a handful of which are reserved and
  interpreted by the schema and document codecs (see the ``FEATURE_*``
  constants)
"""

from __future__ import annotations

from collections.abc import Iterable
import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


FEATURE_IS_PRIMARY_KEY = "isPrimaryKey"
FEATURE_IS_HIDDEN = "isHidden"
FEATURE_IS_CONTENT = "isContent"
FEATURE_IS_INDEXED = "isIndexed"
FEATURE_IS_STORED = "isStored"
FEATURE_IS_REQUIRED = "isRequired"
FEATURE_IS_OMIT_NORMS = "isOmitNorms"
FEATURE_IS_DEFAULT = "isDefault"
FEATURE_INDEX_TYPE = "indexType"

VALIDATION_MESSAGE_IS_REQUIRED = "Value is required"

_TRUE_STRINGS = frozenset({"yes", "true"})


class FieldType(str, Enum):
    """Domain types a field may hold."""

    TEXT = "Text"
    INTEGER = "Integer"
    LONG = "Long"
    FLOAT = "Float"
    DOUBLE = "Double"
    BOOLEAN = "Boolean"
    DATE = "Date"
    TIME = "Time"
    DATETIME = "DateTime"

    @property
    def is_date_or_time(self) -> bool:
        return self in (FieldType.DATE, FieldType.TIME, FieldType.DATETIME)


def string_to_boolean(value: str | None) -> bool:
    """Return True for "yes", "true" (any case) or "1"."""
    if not value:
        return False
    return value.lower() in _TRUE_STRINGS or value == "1"


def name_to_title(name: str) -> str:
    """Derive a display title from a field name.

    Underscores become spaces, the first character of every word is upper
    cased and camelCase boundaries are split: ``customer_name`` becomes
    ``Customer Name`` and ``lastModified`` becomes ``Last Modified``.
    """
    if not name:
        return name

    chars: list[str] = []
    last_space = True
    last_lower = False
    for ch in name:
        if ch == "_":
            ch = " "
            chars.append(ch)
        elif last_space:
            chars.append(ch.upper())
        elif ch.isupper() and last_lower:
            chars.append(" ")
            chars.append(ch)
        else:
            chars.append(ch)
        last_space = ch == " "
        last_lower = ch.islower()
    return "".join(chars)


def _feature_string(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


@dataclass
class DataField:
    """A named, typed data element with feature flags.

    Example:
        field = DataField("tags", FieldType.TEXT, multi_value=True)
        field.set_values(["red", "blue"])
        field.enable_feature(FEATURE_IS_STORED)
    """

    name: str
    type: FieldType = FieldType.TEXT
    title: str = ""
    multi_value: bool = False
    default_value: str = ""
    features: dict[str, str] = field(default_factory=dict)
    _values: list[Any] = field(default_factory=list, init=False, repr=False)
    _assigned: bool = field(default=False, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Field name must be specified")
        if not isinstance(self.type, FieldType):
            self.type = FieldType(self.type)
        if not self.title:
            self.title = name_to_title(self.name)
        self.features = {key: _feature_string(value) for key, value in self.features.items()}

    # Values

    @property
    def values(self) -> list[Any]:
        """Return a copy of the value list."""
        return list(self._values)

    @property
    def value(self) -> Any:
        """Return the first value, or an empty string when there is none."""
        if self._values:
            return self._values[0]
        return ""

    def is_assigned(self) -> bool:
        return self._assigned

    def set_value(self, value: Any) -> None:
        """Replace the current value(s) with a single value."""
        self._values = [value]
        self._assigned = True

    def add_value(self, value: Any) -> None:
        """Append a value; scalar fields keep at most one so the value is replaced."""
        if self.multi_value:
            self._values.append(value)
            self._assigned = True
        else:
            self.set_value(value)

    def set_values(self, values: Iterable[Any]) -> None:
        """Replace the value list. Scalar fields accept at most one value."""
        new_values = list(values)
        if not self.multi_value and len(new_values) > 1:
            raise ValueError(f"Field '{self.name}' is not multi-valued")
        self._values = new_values
        self._assigned = True

    def clear_values(self) -> None:
        """Drop all values and return to the unassigned state."""
        self._values = []
        self._assigned = False

    def value_count(self) -> int:
        return len(self._values)

    def is_value_empty(self) -> bool:
        value = self.value
        return value is None or value == ""

    # Features

    def add_feature(self, name: str, value: Any) -> None:
        if name == FEATURE_IS_PRIMARY_KEY and self.is_primary_key and not string_to_boolean(_feature_string(value)):
            raise ValueError(f"Primary key feature of field '{self.name}' cannot be cleared")
        self.features[name] = _feature_string(value)

    def enable_feature(self, name: str) -> None:
        self.add_feature(name, "true")

    def disable_feature(self, name: str) -> None:
        self.add_feature(name, "false")

    def remove_feature(self, name: str) -> None:
        if name == FEATURE_IS_PRIMARY_KEY and self.is_primary_key:
            raise ValueError(f"Primary key feature of field '{self.name}' cannot be removed")
        self.features.pop(name, None)

    def get_feature(self, name: str, default: str = "") -> str:
        return self.features.get(name, default)

    def is_feature_assigned(self, name: str) -> bool:
        return bool(self.features.get(name))

    def is_feature_true(self, name: str) -> bool:
        return string_to_boolean(self.features.get(name))

    def is_feature_false(self, name: str) -> bool:
        return not self.is_feature_true(name)

    @property
    def is_primary_key(self) -> bool:
        return self.is_feature_true(FEATURE_IS_PRIMARY_KEY)

    @property
    def is_hidden(self) -> bool:
        return self.is_feature_true(FEATURE_IS_HIDDEN)

    # Validation

    def validation_message(self) -> str:
        """Return why the field is invalid, or an empty string when it is valid."""
        if self.is_hidden:
            return ""
        if self.is_feature_true(FEATURE_IS_REQUIRED) and self.is_value_empty():
            return VALIDATION_MESSAGE_IS_REQUIRED
        return ""

    def is_valid(self) -> bool:
        return not self.validation_message()

    def copy(self, *, with_values: bool = True) -> DataField:
        """Return an independent copy, optionally without its values."""
        clone = copy.deepcopy(self)
        if not with_values:
            clone.clear_values()
        return clone

    def __str__(self) -> str:
        if self.multi_value:
            return f"{self.name}={self._values!r}"
        return f"{self.name}={self.value!r}"

