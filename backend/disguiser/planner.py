from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timedelta

from disguiser.errors import InvalidInputError
from disguiser.target_accessor import TargetAccessor
from schemas.entities import Transformation

logger = logging.getLogger(__name__)

TIMESTAMP_LITERAL_FORMAT = "%Y-%m-%d %H:%M:%S"


def age_cutoff(age_years: int, now: datetime) -> datetime:
    """``now`` minus ``age_years`` years of 365 days."""
    return now - timedelta(days=365 * age_years)


def split_templates(
    templates: list[Transformation],
) -> tuple[Transformation, list[Transformation]]:
    """Separate an age-based request into its owner and dependent templates.

    The owner is the single template carrying a predicate (a bare column
    name); every other template must name the foreign key it joins on.
    """
    owners = [t for t in templates if t.predicate]
    dependents = [t for t in templates if not t.predicate]
    if len(owners) != 1:
        raise InvalidInputError(
            f"Expected exactly one owner transformation with a column, got {len(owners)}."
        )
    for dependent in dependents:
        if not dependent.foreign_key:
            raise InvalidInputError(
                f"Dependent transformation on {dependent.table!r} needs a \"foreign_key\"."
            )
    return owners[0], dependents


class TransformationPlanner:
    """Rewrites a coarse age-based policy into concrete per-row transformations.

    Given an owner template whose predicate is a timestamp column and
    dependent templates naming foreign keys, every owner row older than the
    cutoff yields one transformation per dependent (selected through the
    foreign key) and one for itself (selected by primary key).

    All dependent transformations come before all owner transformations, so
    a dependent row is never acted on after its owner is gone.
    """

    def __init__(
        self,
        accessor: TargetAccessor,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._accessor = accessor
        # store-local time, the same clock the target's timestamps use
        self._clock = clock

    async def expand(
        self,
        owner: Transformation,
        dependents: list[Transformation],
        age_years: int,
    ) -> list[Transformation]:
        if not owner.predicate:
            raise InvalidInputError("The owner transformation needs a column to age on.")
        if age_years < 0:
            raise InvalidInputError("\"delete_age\" must not be negative.")

        cutoff = age_cutoff(age_years, self._clock())
        owner_predicate = f"{owner.predicate} < '{cutoff.strftime(TIMESTAMP_LITERAL_FORMAT)}'"

        # raises NoMatchError when no owner row is old enough
        owner_rows = await self._accessor.select_rows(owner.table, owner_predicate)

        dependent_transformations: list[Transformation] = []
        owner_transformations: list[Transformation] = []
        for row in owner_rows:
            for dependent in dependents:
                fk = row.foreign_key(dependent.foreign_key)
                if fk is None:
                    raise InvalidInputError(
                        f"{owner.table!r} has no column {dependent.foreign_key!r} "
                        f"to follow into {dependent.table!r}."
                    )
                if fk.display_value is None:
                    raise InvalidInputError(
                        f"{owner.table!r} row {row.primary_key_predicate()} has a NULL "
                        f"{dependent.foreign_key!r}; it cannot select rows in {dependent.table!r}."
                    )
                dependent_transformations.append(
                    Transformation(
                        kind=dependent.kind,
                        table=dependent.table,
                        predicate=fk.predicate,
                        foreign_key=dependent.foreign_key,
                        changes=None,
                    )
                )
            owner_transformations.append(owner.with_predicate(row.primary_key_predicate()))

        logger.info(
            "Planned %d owner rows from %s older than %s: %d dependent and %d owner transformations",
            len(owner_rows),
            owner.table,
            cutoff.strftime(TIMESTAMP_LITERAL_FORMAT),
            len(dependent_transformations),
            len(owner_transformations),
        )
        return dependent_transformations + owner_transformations
