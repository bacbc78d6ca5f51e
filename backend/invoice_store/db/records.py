"""
Mapping between records and generic rows.

A record is a frozen dataclass whose fields mirror a table's columns in order.
Rows come back from SQLAlchemy as ``Row`` objects; ``_mapping`` gives the
column-keyed view used here.
"""

import dataclasses
from collections.abc import Mapping
from typing import Any, Dict

from sqlalchemy import Table

from ..shared.errors import InvalidInputError, SchemaMismatchError
from ..shared.money import in_bigint_range


def row_mapping(row) -> Mapping:
    """Return a column-name keyed view of a SQLAlchemy Row or plain mapping."""
    if isinstance(row, Mapping):
        return row
    mapping = getattr(row, "_mapping", None)
    if mapping is None:
        raise TypeError(f"Cannot map {type(row).__name__} to columns")
    return mapping


class Record:
    """Mixin for persisted rows."""

    __table__: Table

    @classmethod
    def from_row(cls, row):
        mapping = row_mapping(row)
        values = {}
        for f in dataclasses.fields(cls):
            try:
                value = mapping[f.name]
            except KeyError:
                raise SchemaMismatchError(f"{cls.__name__}: row has no column {f.name!r}")
            # psycopg2 hands bytea back as memoryview
            if isinstance(value, memoryview):
                value = value.tobytes()
            values[f.name] = value
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return dataclasses.asdict(self)


class Insertable:
    """Mixin for not-yet-persisted rows (primary key omitted)."""

    __table__: Table

    def to_row(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in dataclasses.fields(self)}


def check_record_matches_table(record_cls, table: Table, insertable_cls=None):
    """
    Verify that record fields equal the table's columns, in order.

    The insertable must equal the same columns minus the primary key.

    Raises:
        SchemaMismatchError: On any difference in names or order.
    """
    columns = [c.name for c in table.columns]
    fields = [f.name for f in dataclasses.fields(record_cls)]
    if fields != columns:
        raise SchemaMismatchError(
            f"{record_cls.__name__} fields {fields} do not match {table.name} columns {columns}"
        )
    if insertable_cls is not None:
        pk = {c.name for c in table.primary_key.columns}
        expected = [c for c in columns if c not in pk]
        insert_fields = [f.name for f in dataclasses.fields(insertable_cls)]
        if insert_fields != expected:
            raise SchemaMismatchError(
                f"{insertable_cls.__name__} fields {insert_fields} do not match {table.name} columns {expected}"
            )


def require_int(name, value):
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidInputError(f"{name} must be an integer, got {value!r}")
    if not in_bigint_range(value):
        raise InvalidInputError(f"{name} is outside the 64-bit integer range: {value}")


def require_bool(name, value):
    if not isinstance(value, bool):
        raise InvalidInputError(f"{name} must be a bool, got {value!r}")


def require_str(name, value):
    if not isinstance(value, str):
        raise InvalidInputError(f"{name} must be a string, got {type(value).__name__}")


def require_bytes(name, value, optional=False):
    if value is None and optional:
        return
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise InvalidInputError(f"{name} must be bytes, got {type(value).__name__}")
