from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone

from db import repositories
from db.models import Disguise, DisguiseFunction
from disguiser.context import DisguiseContext
from disguiser.errors import NotFoundError
from disguiser.planner import age_cutoff
from schemas.entities import (
    DisguiseRecord,
    FunctionRecord,
    PlaceholderLocator,
    RetentionCriterion,
    Target,
    TransformKind,
    Transformation,
    VaultIdentity,
)

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class VaultLedger:
    """Persists, reads and deletes disguise undo logs in the vault store.

    Each public operation commits the vault session before returning. The
    target store is only written by :meth:`retention_sweep`, which
    hard-deletes decorrelated rows before forgetting how to restore them.
    """

    def __init__(
        self,
        ctx: DisguiseContext,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._ctx = ctx
        self._clock = clock

    # ------------------------------------------------------------------
    # Vault identities
    # ------------------------------------------------------------------

    async def get_vault(self, vault_id: str) -> VaultIdentity:
        vault = await repositories.get_vault(self._ctx.vault, vault_id)
        if vault is None:
            raise NotFoundError("Vault id is not found.")
        return _to_identity(vault)

    async def get_vault_by_email(self, email: str) -> VaultIdentity:
        vault = await repositories.get_vault_by_email(self._ctx.vault, email)
        if vault is None:
            raise NotFoundError("Vault email is not found.")
        return _to_identity(vault)

    # ------------------------------------------------------------------
    # Disguises
    # ------------------------------------------------------------------

    async def append(
        self,
        policy_name: str,
        vault_id: str,
        applied_at: datetime,
        transformations: list[Transformation],
        originals: list[list[Target]],
        changes: list[str],
    ) -> DisguiseRecord:
        """Record an applied disguise: one Function per affected row.

        Each Function is keyed by its row's own primary-key predicate rather
        than the transformation's selection predicate, so replay touches
        exactly the rows that were captured.
        """
        if not len(transformations) == len(originals) == len(changes):
            raise ValueError(
                f"{len(transformations)} transformations, {len(originals)} snapshots "
                f"and {len(changes)} change records do not line up"
            )

        db = self._ctx.vault
        disguise = await repositories.create_disguise(
            db, disguise_type=policy_name, vault_id=vault_id, applied_at=applied_at
        )
        record = DisguiseRecord(
            policy_name=policy_name,
            vault_id=vault_id,
            applied_at=applied_at,
            disguise_id=disguise.disguise_id,
        )
        for transformation, targets, change in zip(transformations, originals, changes):
            function_type = _function_type(transformation)
            for target in targets:
                function = await repositories.create_function(
                    db,
                    disguise_id=disguise.disguise_id,
                    function_type=function_type,
                    table_name=transformation.table,
                    predicate=target.primary_key_predicate(),
                    original=target.field_values(),
                    updated=change,
                )
                record.functions.append(_to_function_record(function))
        await db.commit()

        logger.info(
            "Recorded disguise %s (%s) for vault %s with %d functions",
            disguise.disguise_id, policy_name, vault_id, len(record.functions),
        )
        return record

    async def import_disguise(self, record: DisguiseRecord) -> int:
        """Persist an existing disguise object with its Functions verbatim."""
        db = self._ctx.vault
        disguise = await repositories.create_disguise(
            db,
            disguise_type=record.policy_name,
            vault_id=record.vault_id,
            applied_at=record.applied_at,
        )
        for function in record.functions:
            await repositories.create_function(
                db,
                disguise_id=disguise.disguise_id,
                function_type=function.function_type,
                table_name=function.table,
                predicate=function.predicate,
                original=function.original_values,
                updated=function.updated_values,
            )
        await db.commit()
        return disguise.disguise_id

    async def lookup(self, policy_name: str, vault_id: str) -> DisguiseRecord:
        """Load the latest disguise of *policy_name* for *vault_id*.

        Functions come back in insertion order (dependents before owners).
        """
        db = self._ctx.vault
        disguise = await repositories.get_latest_disguise(db, policy_name, vault_id)
        if disguise is None:
            raise NotFoundError(
                f"No disguise {policy_name!r} has been applied to vault {vault_id!r}."
            )
        functions = await repositories.get_functions(db, disguise.disguise_id)
        return _to_record(disguise, functions)

    async def delete(self, disguise_id: int) -> None:
        await repositories.delete_disguise(self._ctx.vault, disguise_id)
        await self._ctx.vault.commit()
        logger.info("Deleted disguise %s from the vault", disguise_id)

    async def retention_sweep(self, criterion: RetentionCriterion) -> int:
        """Forget disguises for good; returns how many were removed.

        For each selected disguise the decorrelated target rows are deleted
        first, then its ledger records. Afterwards the disguise can no longer
        be recovered.
        """
        db = self._ctx.vault
        if criterion.is_age_based:
            cutoff = age_cutoff(criterion.max_age_years, self._clock())
            disguises = await repositories.get_disguises_applied_before(db, cutoff)
        else:
            disguises = await repositories.get_disguises_by_name(
                db, criterion.vault_id, criterion.policy_name
            )
            if not disguises:
                raise NotFoundError(
                    f"No disguise {criterion.policy_name!r} has been applied "
                    f"to vault {criterion.vault_id!r}."
                )

        for disguise in disguises:
            decorrelated = await repositories.get_functions(
                db, disguise.disguise_id, TransformKind.DECORRELATION.value
            )
            for function in decorrelated:
                deleted = await self._ctx.target.delete_rows(
                    function.table_name, function.predicate
                )
                logger.debug(
                    "Destroyed %d decorrelated rows in %s", deleted, function.table_name
                )
            await repositories.delete_disguise(db, disguise.disguise_id)
            await db.commit()
            logger.info(
                "Swept disguise %s (%s) of vault %s, destroying %d decorrelated rows",
                disguise.disguise_id, disguise.disguise_type, disguise.vault_id,
                len(decorrelated),
            )
        return len(disguises)


def _function_type(transformation: Transformation) -> str:
    kind = transformation.transform_kind
    return kind.value if kind is not None else transformation.kind.lower()


def _to_identity(vault) -> VaultIdentity:
    return VaultIdentity(
        vault_id=vault.vault_id,
        email=vault.email,
        placeholder=PlaceholderLocator.from_json(vault.placeholder_info),
    )


def _to_function_record(function: DisguiseFunction) -> FunctionRecord:
    return FunctionRecord(
        function_type=function.function_type,
        table=function.table_name,
        predicate=function.predicate,
        original_values=function.original,
        updated_values=function.updated,
        disguise_id=function.disguise_id,
        function_id=function.function_id,
    )


def _to_record(disguise: Disguise, functions: list[DisguiseFunction]) -> DisguiseRecord:
    return DisguiseRecord(
        policy_name=disguise.disguise_type,
        vault_id=disguise.vault_id,
        applied_at=disguise.applied_at,
        functions=[_to_function_record(f) for f in functions],
        disguise_id=disguise.disguise_id,
    )
