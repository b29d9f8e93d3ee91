"""Tabular data: a column bag shared by an ordered list of value rows."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, Sequence
from typing import Any

from index_feeder.model.bag import DataBag


class DataTable:
    """Rows of values laid out against a single column definition bag.

    A row cell holding ``None`` leaves the matching field unassigned when the
    row is turned into a bag. Multi-valued columns take a list per cell.
    """

    def __init__(self, columns: DataBag, name: str = "") -> None:
        self.name = name or columns.name
        self.columns = columns.copy(with_values=False)
        self._rows: list[list[Any]] = []

    @property
    def column_count(self) -> int:
        return len(self.columns)

    def row_count(self) -> int:
        return len(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def add_row(self, row: Sequence[Any] | Mapping[str, Any]) -> None:
        """Append a row given either positionally or as a name -> value mapping."""
        if isinstance(row, Mapping):
            unknown = set(row) - set(self.columns.names)
            if unknown:
                raise KeyError(f"Unknown columns: {', '.join(sorted(unknown))}")
            cells = [row.get(name) for name in self.columns.names]
        else:
            cells = list(row)
            if len(cells) != self.column_count:
                raise ValueError(f"Row has {len(cells)} cells, table has {self.column_count} columns")
        self._rows.append(cells)

    def add_bag(self, bag: DataBag) -> None:
        """Append the assigned values of a bag as a new row."""
        cells: list[Any] = []
        for column in self.columns:
            data_field = bag.get(column.name)
            if data_field is None or not data_field.is_assigned():
                cells.append(None)
            elif column.multi_value:
                cells.append(data_field.values)
            else:
                cells.append(data_field.value)
        self._rows.append(cells)

    def row_as_bag(self, row: int) -> DataBag:
        """Return an independent bag holding the values of the given row."""
        bag = self.columns.copy(with_values=False)
        for data_field, cell in zip(bag, self._rows[row]):
            if cell is None:
                continue
            if isinstance(cell, (list, tuple)):
                data_field.set_values(cell)
            else:
                data_field.set_value(cell)
        return bag

    def iter_bags(self) -> Iterator[DataBag]:
        for row in range(len(self._rows)):
            yield self.row_as_bag(row)
