from __future__ import annotations

import logging

from db.target_store import TargetStore
from disguiser.errors import InvalidInputError
from schemas.entities import TransformKind, Transformation

logger = logging.getLogger(__name__)


class TransformationExecutor:
    """Applies concrete transformations to the target store.

    Transformations run one after another, each committed on its own. The
    first failure aborts the rest of the batch and leaves the earlier ones
    applied; nothing is rolled back.
    """

    def __init__(self, store: TargetStore) -> None:
        self._store = store

    async def execute(
        self,
        transformations: list[Transformation],
        placeholder_assignment: str,
    ) -> list[str]:
        """Run *transformations* in order and return one change string each.

        Removal records ``""``, Modification its ``changes`` verbatim and
        Decorrelation the *placeholder_assignment* it applied.
        """
        all_changes: list[str] = []
        for i, transformation in enumerate(transformations):
            kind = transformation.transform_kind
            table = transformation.table
            predicate = transformation.predicate
            if not table or not predicate:
                raise InvalidInputError(
                    "Every transformation needs a \"table_name\" and a \"predicate\"."
                )

            if kind is TransformKind.REMOVAL:
                affected = await self._store.delete_rows(table, predicate)
                change = ""
            elif kind is TransformKind.MODIFICATION:
                if not transformation.changes:
                    raise InvalidInputError("A modification needs \"changes\".")
                change = transformation.changes
                affected = await self._store.update_rows(table, change, predicate)
            elif kind is TransformKind.DECORRELATION:
                if not placeholder_assignment:
                    raise InvalidInputError("A decorrelation needs a placeholder to point to.")
                change = placeholder_assignment
                affected = await self._store.update_rows(table, change, predicate)
            else:
                raise InvalidInputError(
                    f"The transform type {transformation.kind!r} is not correct, "
                    "the execution has been terminated."
                )

            if affected < 1:
                logger.warning(
                    "Transformation %d (%s on %s) matched nothing; %d earlier "
                    "transformations stay applied",
                    i, kind.value, table, i,
                )
                raise InvalidInputError("The predicate is not correct: it matched nothing.")

            logger.debug("%s on %s affected %d rows", kind.value, table, affected)
            all_changes.append(change)

        return all_changes
