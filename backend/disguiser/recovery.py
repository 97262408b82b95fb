from __future__ import annotations

import logging

from disguiser.errors import InvalidInputError
from disguiser.target_accessor import TargetAccessor
from db.target_store import TargetStore
from schemas.entities import DisguiseRecord, FunctionRecord, TransformKind, split_values

logger = logging.getLogger(__name__)


class RecoveryEngine:
    """Replays a disguise's undo log against the target store.

    Functions are stored dependents-first, so they are replayed in reverse:
    an owner row is back in place before any row that references it.

    Replay is not idempotent. If it fails halfway, the rows already restored
    stay restored and a second attempt will collide on their primary keys.
    """

    def __init__(self, store: TargetStore) -> None:
        self._store = store
        self._accessor = TargetAccessor(store)

    async def recover(self, disguise: DisguiseRecord) -> int:
        """Undo every Function of *disguise*; returns how many were replayed."""
        for function in reversed(disguise.functions):
            kind = TransformKind.parse(function.function_type)
            if kind is TransformKind.REMOVAL:
                await self._reinsert(function)
            elif kind in (TransformKind.MODIFICATION, TransformKind.DECORRELATION):
                await self._restore_values(function)
            else:
                raise InvalidInputError(
                    f"Unknown function type {function.function_type!r} in disguise "
                    f"{disguise.disguise_id}."
                )

        logger.info(
            "Recovered disguise %s (%s) for vault %s: %d functions replayed",
            disguise.disguise_id, disguise.policy_name, disguise.vault_id,
            len(disguise.functions),
        )
        return len(disguise.functions)

    async def _reinsert(self, function: FunctionRecord) -> None:
        columns = await self._accessor.column_names(function.table)
        values = split_values(function.original_values)
        _check_shape(function, columns, values)
        await self._store.insert_row(function.table, columns, function.original_values)

    async def _restore_values(self, function: FunctionRecord) -> None:
        columns = await self._accessor.column_names(function.table)
        values = split_values(function.original_values)
        _check_shape(function, columns, values)
        assignment = ", ".join(f"{c}={v}" for c, v in zip(columns, values))
        affected = await self._store.update_rows(function.table, assignment, function.predicate)
        if affected < 1:
            logger.warning(
                "Restoring %s where %s touched no rows", function.table, function.predicate
            )


def _check_shape(function: FunctionRecord, columns: list[str], values: list[str]) -> None:
    if len(columns) != len(values):
        raise InvalidInputError(
            f"Table {function.table!r} now has {len(columns)} columns but "
            f"{len(values)} values were captured; its schema changed since the disguise."
        )
