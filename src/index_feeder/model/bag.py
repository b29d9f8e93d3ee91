"""Ordered, name-unique collections of fields."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any

from index_feeder.model.field import FEATURE_IS_PRIMARY_KEY, DataField


class DataBag:
    """An ordered set of ``DataField`` instances keyed by name.

    Insertion order is significant: it drives the order in which fields are
    serialized. At most one field may carry the primary-key feature.
    """

    def __init__(self, fields: Iterable[DataField] = (), name: str = "") -> None:
        self.name = name
        self._fields: dict[str, DataField] = {}
        for data_field in fields:
            self.add(data_field)

    def add(self, data_field: DataField) -> DataField:
        """Append a field to the bag and return it."""
        if data_field.name in self._fields:
            raise ValueError(f"Field '{data_field.name}' already exists in the bag")
        if data_field.is_primary_key:
            current = self.primary_key_field
            if current is not None:
                raise ValueError(
                    f"Bag already has primary key field '{current.name}', cannot add '{data_field.name}'"
                )
        self._fields[data_field.name] = data_field
        return data_field

    def remove(self, name: str) -> None:
        self._fields.pop(name, None)

    def get(self, name: str) -> DataField | None:
        return self._fields.get(name)

    def __getitem__(self, name: str) -> DataField:
        return self._fields[name]

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def __iter__(self) -> Iterator[DataField]:
        return iter(self._fields.values())

    def __len__(self) -> int:
        return len(self._fields)

    @property
    def fields(self) -> list[DataField]:
        return list(self._fields.values())

    @property
    def names(self) -> list[str]:
        return list(self._fields)

    @property
    def primary_key_field(self) -> DataField | None:
        for data_field in self._fields.values():
            if data_field.is_primary_key:
                return data_field
        return None

    def set_primary_key(self, name: str) -> DataField:
        """Mark the named field as the primary key of the bag."""
        data_field = self._fields.get(name)
        if data_field is None:
            raise KeyError(name)
        current = self.primary_key_field
        if current is not None and current is not data_field:
            raise ValueError(f"Bag already has primary key field '{current.name}'")
        data_field.enable_feature(FEATURE_IS_PRIMARY_KEY)
        return data_field

    def set_value(self, name: str, value: Any) -> None:
        """Assign a value to a field; lists are accepted for multi-valued fields."""
        data_field = self._fields[name]
        if isinstance(value, (list, tuple)):
            data_field.set_values(value)
        else:
            data_field.set_value(value)

    def get_value(self, name: str, default: Any = "") -> Any:
        data_field = self._fields.get(name)
        if data_field is None or not data_field.is_assigned():
            return default
        return data_field.value

    def clear_values(self) -> None:
        for data_field in self._fields.values():
            data_field.clear_values()

    def is_valid(self) -> bool:
        return all(data_field.is_valid() for data_field in self._fields.values())

    def validation_messages(self) -> list[str]:
        """Return one "name: message" entry per invalid field."""
        messages = []
        for data_field in self._fields.values():
            message = data_field.validation_message()
            if message:
                messages.append(f"{data_field.name}: {message}")
        return messages

    def copy(self, *, with_values: bool = True) -> DataBag:
        """Return a deep copy of the bag, optionally dropping all values."""
        return DataBag((data_field.copy(with_values=with_values) for data_field in self), name=self.name)

    def __repr__(self) -> str:
        return f"DataBag(name={self.name!r}, fields={self.names!r})"
