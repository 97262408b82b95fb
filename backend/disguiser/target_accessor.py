from __future__ import annotations

import logging
import re
from datetime import date, datetime, time
from typing import Any

from sqlalchemy.exc import NoSuchTableError, OperationalError, ProgrammingError

from db.target_store import TargetStore
from disguiser.errors import InvalidInputError, NoMatchError, UnsupportedColumnTypeError
from schemas.entities import ColumnInfo, Field, SemanticType, Target, Transformation

logger = logging.getLogger(__name__)

# Base type names (first word, lower-cased, without length/precision) per semantic type.
_TEXT_TYPES = {
    "char", "character", "varchar", "nchar", "nvarchar", "text", "tinytext",
    "mediumtext", "longtext", "clob", "string", "enum", "uuid", "citext",
}
_INTEGER_TYPES = {
    "int", "integer", "tinyint", "smallint", "mediumint", "bigint",
    "int2", "int4", "int8", "serial", "smallserial", "bigserial",
}
_TIMESTAMP_TYPES = {"timestamp", "timestamptz", "datetime", "datetime2", "date", "time"}

_BASE_TYPE_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def semantic_type_of(type_name: str) -> SemanticType:
    """Map a store-reported column type name onto the closed semantic enum.

    ``VARCHAR(100)`` -> TEXT, ``BIGINT`` -> INTEGER,
    ``TIMESTAMP WITHOUT TIME ZONE`` -> TIMESTAMP, ``NUMERIC(10, 2)`` -> UNSUPPORTED.
    """
    type_name = type_name or ""
    # array columns hold lists, whatever their element type
    if "[" in type_name or "array" in type_name.lower():
        return SemanticType.UNSUPPORTED
    match = _BASE_TYPE_RE.search(type_name)
    if match is None:
        return SemanticType.UNSUPPORTED
    base = match.group(0).lower()
    if base in _INTEGER_TYPES:
        return SemanticType.INTEGER
    if base in _TEXT_TYPES:
        return SemanticType.TEXT
    if base in _TIMESTAMP_TYPES:
        return SemanticType.TIMESTAMP
    return SemanticType.UNSUPPORTED


def format_value(value: Any, semantic_type: SemanticType) -> str | None:
    """String form of a stored value; ``None`` stays ``None`` (SQL NULL)."""
    if value is None:
        return None
    if semantic_type is SemanticType.INTEGER:
        return str(int(value))
    if semantic_type is SemanticType.TIMESTAMP:
        if isinstance(value, datetime):
            return value.isoformat(sep=" ")
        if isinstance(value, (date, time)):
            return value.isoformat()
        # drivers without native datetimes (SQLite) hand back the stored text
        return str(value)
    return str(value)


class TargetAccessor:
    """Schema introspection and typed row snapshots of the target store."""

    def __init__(self, store: TargetStore) -> None:
        self._store = store

    async def describe_schema(self, table: str) -> list[ColumnInfo]:
        """Columns of *table* in table order with their semantic types."""
        try:
            raw = await self._store.describe_schema(table)
        except NoSuchTableError as exc:
            raise InvalidInputError(f"Table {table!r} does not exist.") from exc
        if not raw:
            raise InvalidInputError(f"Table {table!r} does not exist.")
        return [
            ColumnInfo(
                name=name,
                semantic_type=semantic_type_of(type_name),
                is_primary_key=is_pk,
                type_name=type_name,
            )
            for name, type_name, is_pk in raw
        ]

    async def column_names(self, table: str) -> list[str]:
        return [c.name for c in await self.describe_schema(table)]

    async def select_rows(self, table: str, predicate: str) -> list[Target]:
        """Snapshot every row of *table* matching *predicate*.

        Raises :class:`NoMatchError` both when nothing matches and when the
        store rejects the predicate.
        """
        columns = await self.describe_schema(table)
        pk_index = _primary_key_index(table, columns)

        try:
            rows = await self._store.select_rows(table, predicate)
        except (ProgrammingError, OperationalError) as exc:
            raise NoMatchError(table, predicate) from exc
        if not rows:
            raise NoMatchError(table, predicate)

        return [
            Target(fields=_build_fields(table, columns, row), primary_key_index=pk_index)
            for row in rows
        ]

    async def snapshot(
        self, transformations: list[Transformation]
    ) -> list[list[Target]]:
        """Capture the rows each transformation is about to touch.

        One inner list per transformation, in input order, since a single
        transformation may select several rows.
        """
        snapshots: list[list[Target]] = []
        for transformation in transformations:
            if not transformation.table or not transformation.predicate:
                raise InvalidInputError(
                    "Every transformation needs a \"table_name\" and a \"predicate\"."
                )
            snapshots.append(
                await self.select_rows(transformation.table, transformation.predicate)
            )
        logger.info(
            "Snapshotted %d rows across %d transformations",
            sum(len(s) for s in snapshots),
            len(transformations),
        )
        return snapshots


def _primary_key_index(table: str, columns: list[ColumnInfo]) -> int:
    for i, column in enumerate(columns):
        if column.is_primary_key:
            return i
    raise InvalidInputError(f"Table {table!r} has no primary key.")


def _build_fields(
    table: str, columns: list[ColumnInfo], row: dict[str, Any]
) -> tuple[Field, ...]:
    fields = []
    for column in columns:
        if column.semantic_type is SemanticType.UNSUPPORTED:
            raise UnsupportedColumnTypeError(table, column.name, column.type_name)
        fields.append(
            Field(
                name=column.name,
                semantic_type=column.semantic_type,
                display_value=format_value(row.get(column.name), column.semantic_type),
            )
        )
    return tuple(fields)
