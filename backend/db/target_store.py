"""Raw access to the store being disguised.

Predicates and assignments are the caller's opaque expressions in the store's
own SQL dialect. They are spliced into statements verbatim: table names,
predicates and assignments come from trusted policy configuration, never from
end users, and no escaping or validation happens here.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

logger = logging.getLogger(__name__)


class TargetStore:
    """Thin async wrapper around the web application's database.

    Every write runs in its own transaction and is committed before the
    method returns, so a sequence of writes is never atomic as a whole.
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def describe_schema(self, table: str) -> list[tuple[str, str, bool]]:
        """Return ``(column_name, type_name, is_primary_key)`` in table order.

        Raises ``sqlalchemy.exc.NoSuchTableError`` for an unknown table.
        """

        def _describe(sync_conn) -> list[tuple[str, str, bool]]:
            inspector = inspect(sync_conn)
            columns = inspector.get_columns(table)
            pk = set(inspector.get_pk_constraint(table).get("constrained_columns") or [])
            return [(c["name"], str(c["type"]), c["name"] in pk) for c in columns]

        async with self._engine.connect() as conn:
            return await conn.run_sync(_describe)

    async def select_rows(self, table: str, predicate: str) -> list[dict[str, Any]]:
        sql = f"SELECT * FROM {table} WHERE {predicate}"
        logger.debug("select: %s", sql)
        async with self._engine.connect() as conn:
            result = await conn.exec_driver_sql(sql)
            return [dict(row) for row in result.mappings().all()]

    async def insert_row(
        self,
        table: str,
        columns: Sequence[str] | None,
        values: str,
        returning: str | None = None,
    ) -> Any:
        """Insert one row from a comma-joined literal list.

        Returns the generated key: the *returning* column where the dialect
        supports ``RETURNING``, otherwise the driver's last row id.
        """
        sql = f"INSERT INTO {table}"
        if columns:
            sql += " (" + ", ".join(columns) + ")"
        sql += f" VALUES ({values})"
        use_returning = returning is not None and self._engine.dialect.insert_returning
        if use_returning:
            sql += f" RETURNING {returning}"
        logger.debug("insert: %s", sql)
        async with self._engine.begin() as conn:
            result = await conn.exec_driver_sql(sql)
            if use_returning:
                return result.scalar_one()
            return result.lastrowid

    async def update_rows(self, table: str, assignment: str, predicate: str) -> int:
        sql = f"UPDATE {table} SET {assignment} WHERE {predicate}"
        logger.debug("update: %s", sql)
        async with self._engine.begin() as conn:
            result = await conn.exec_driver_sql(sql)
            return result.rowcount

    async def delete_rows(self, table: str, predicate: str) -> int:
        sql = f"DELETE FROM {table} WHERE {predicate}"
        logger.debug("delete: %s", sql)
        async with self._engine.begin() as conn:
            result = await conn.exec_driver_sql(sql)
            return result.rowcount
