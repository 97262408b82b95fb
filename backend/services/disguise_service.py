from __future__ import annotations

import logging

from disguiser.context import DisguiseContext
from disguiser.errors import InvalidInputError
from disguiser.executor import TransformationExecutor
from disguiser.ledger import VaultLedger, utcnow
from disguiser.planner import TransformationPlanner, split_templates
from disguiser.recovery import RecoveryEngine
from disguiser.target_accessor import TargetAccessor
from schemas.api import Requirement
from schemas.entities import DisguiseRecord, RetentionCriterion, Transformation

logger = logging.getLogger(__name__)

USERSCRUB = "userscrub"
ANONYMIZE = "anonymize"
EXPIRATION = "expiration"
CLEARVAULT = "clearvault"


def _check_name(requirement: Requirement, expected: str) -> None:
    if requirement.disguise_name.lower() != expected:
        raise InvalidInputError("The disguise name is not correct.")


def _require_vault_id(requirement: Requirement) -> str:
    if not requirement.vault_id:
        raise InvalidInputError("\"vault_id\" is required.")
    return requirement.vault_id


def _require_transformations(requirement: Requirement) -> list[Transformation]:
    transformations = requirement.to_transformations()
    if not transformations:
        raise InvalidInputError("At least one transformation is required.")
    return transformations


async def _apply(
    ctx: DisguiseContext,
    policy_name: str,
    vault_id: str,
    transformations: list[Transformation],
) -> DisguiseRecord:
    """Snapshot, execute and record concrete transformations for one vault.

    The target writes and the ledger append are separate commits: a crash in
    between leaves the target disguised with no undo log.
    """
    ledger = VaultLedger(ctx)
    vault = await ledger.get_vault(vault_id)

    originals = await TargetAccessor(ctx.target).snapshot(transformations)
    changes = await TransformationExecutor(ctx.target).execute(
        transformations, vault.placeholder.assignment
    )
    return await ledger.append(
        policy_name=policy_name,
        vault_id=vault_id,
        applied_at=utcnow(),
        transformations=transformations,
        originals=originals,
        changes=changes,
    )


async def scrub_user(ctx: DisguiseContext, requirement: Requirement) -> DisguiseRecord:
    """Delete a user's information while retaining anonymised contributions."""
    _check_name(requirement, USERSCRUB)
    return await _apply(
        ctx, USERSCRUB, _require_vault_id(requirement), _require_transformations(requirement)
    )


async def anonymize(ctx: DisguiseContext, requirement: Requirement) -> DisguiseRecord:
    """Decorrelate or rewrite a user's contributions."""
    _check_name(requirement, ANONYMIZE)
    return await _apply(
        ctx, ANONYMIZE, _require_vault_id(requirement), _require_transformations(requirement)
    )


async def expiration(ctx: DisguiseContext, requirement: Requirement) -> DisguiseRecord:
    """Disguise every owner row inactive for ``delete_age`` years, dependents first."""
    _check_name(requirement, EXPIRATION)
    vault_id = _require_vault_id(requirement)
    if requirement.delete_age is None:
        raise InvalidInputError("\"delete_age\" is required.")

    owner, dependents = split_templates(_require_transformations(requirement))
    planner = TransformationPlanner(TargetAccessor(ctx.target))
    transformations = await planner.expand(owner, dependents, requirement.delete_age)
    return await _apply(ctx, EXPIRATION, vault_id, transformations)


async def clear_vault(ctx: DisguiseContext, requirement: Requirement) -> int:
    """Permanently forget disguises, by age or by vault and name."""
    _check_name(requirement, CLEARVAULT)
    by_age = requirement.delete_age is not None
    by_name = requirement.delete_name is not None or requirement.vault_id is not None
    if by_age == by_name:
        raise InvalidInputError(
            "Give either \"delete_age\" or \"delete_name\" with \"vault_id\", not both."
        )
    if by_age:
        criterion = RetentionCriterion.by_age(requirement.delete_age)
    else:
        if not requirement.delete_name or not requirement.vault_id:
            raise InvalidInputError("\"delete_name\" and \"vault_id\" go together.")
        criterion = RetentionCriterion.by_name(
            requirement.vault_id, requirement.delete_name.lower()
        )
    removed = await VaultLedger(ctx).retention_sweep(criterion)
    logger.info("Clear vault removed %d disguises", removed)
    return removed


async def recover_disguise(ctx: DisguiseContext, requirement: Requirement) -> DisguiseRecord:
    """Undo the latest disguise of a name, then drop it from the vault.

    A failed replay leaves the disguise in the vault so the caller can retry.
    """
    ledger = VaultLedger(ctx)
    disguise = await ledger.lookup(requirement.disguise_name.lower(), _require_vault_id(requirement))
    await RecoveryEngine(ctx.target).recover(disguise)
    await ledger.delete(disguise.disguise_id)
    return disguise
