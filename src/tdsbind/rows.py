"""
.. module:: rows
   :platform: Unix, Windows, MacOSX
   :synopsis: Rows of result sets
"""
from __future__ import annotations

import collections.abc
import typing
from typing import Any, Iterator


class ColumnIndex:
    """
    Column names of a result set and their positions, shared by all rows
    of the result set.
    """

    __slots__ = ("names", "index")

    def __init__(self, names: typing.Sequence[str]):
        self.names = tuple(names)
        self.index: dict[str, int] = {}
        for pos, name in enumerate(self.names):
            if name:
                self.index.setdefault(name, pos)


class Row:
    """
    A single row of a result set.

    Columns can be accessed by position, ``row[0]``, by name, ``row['name']``,
    or as attributes, ``row.name``.
    """

    __slots__ = ("_columns", "_values")

    def __init__(self, columns: ColumnIndex, values: list[Any]):
        self._columns = columns
        self._values = values

    def __len__(self) -> int:
        return len(self._values)

    def __getitem__(self, key: int | str) -> Any:
        if isinstance(key, str):
            try:
                return self._values[self._columns.index[key]]
            except KeyError:
                raise KeyError(key)
        if isinstance(key, slice):
            raise TypeError("slicing is not supported")
        try:
            return self._values[key]
        except IndexError:
            raise IndexError("index is out of range")

    def __getattr__(self, name: str) -> Any:
        # slots are not set yet while copy and pickle rebuild a row
        if name in Row.__slots__:
            raise AttributeError(name)
        try:
            return self._values[self._columns.index[name]]
        except KeyError:
            raise AttributeError(
                "'{}' object has no attribute '{}'".format(type(self).__name__, name)
            )

    def __contains__(self, value: Any) -> bool:
        return value in self._values

    def __iter__(self) -> Iterator[Any]:
        return iter(self._values)

    def __repr__(self):
        return "Row({})".format(", ".join(repr(v) for v in self._values))

    def keys(self) -> tuple[str, ...]:
        return self._columns.names

    def dict(self) -> dict[str, Any]:
        """
        Row as a dictionary of column names to values
        """
        return dict(zip(self._columns.names, self._values))


class RowList(collections.abc.Sequence):
    """
    Sequence of :class:`Row` objects returned by :meth:`Cursor.fetchmany`
    and :meth:`Cursor.fetchall`.

    Rows are created on first access and cached, so indexing the same
    position again returns the very same object.
    """

    def __init__(self, columns: ColumnIndex, values: list[list[Any]]):
        self._columns = columns
        self._values = values
        self._rows: list[Row | None] = [None] * len(values)

    def __len__(self) -> int:
        return len(self._rows)

    @typing.overload
    def __getitem__(self, index: int) -> Row:
        ...

    @typing.overload
    def __getitem__(self, index: slice) -> list[Row]:
        ...

    def __getitem__(self, index):
        if isinstance(index, slice):
            return [self._row(i) for i in range(*index.indices(len(self._rows)))]
        if index < 0:
            index += len(self._rows)
        if not 0 <= index < len(self._rows):
            raise IndexError("index is out of range")
        return self._row(index)

    def _row(self, index: int) -> Row:
        row = self._rows[index]
        if row is None:
            row = Row(self._columns, self._values[index])
            self._rows[index] = row
        return row

    def __repr__(self):
        return "RowList({!r})".format(list(self))

