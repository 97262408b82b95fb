"""Tests for disguiser.executor - applying transformations to the target store."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from conftest import fetch_all
from disguiser.errors import InvalidInputError
from disguiser.executor import TransformationExecutor
from schemas.entities import Transformation

PLACEHOLDER = "contact_id=0"


@pytest.fixture
def store() -> AsyncMock:
    mock = AsyncMock()
    mock.delete_rows.return_value = 1
    mock.update_rows.return_value = 2
    return mock


# -----------------------------------------------------------------------
# Change records
# -----------------------------------------------------------------------


class TestChangeRecords:
    @pytest.mark.asyncio
    async def test_one_change_per_transformation(self, store: AsyncMock):
        changes = await TransformationExecutor(store).execute(
            [
                Transformation(kind="decorrelation", table="review", predicate="contact_id=19"),
                Transformation(
                    kind="modification",
                    table="contact_info",
                    predicate="contact_id=19",
                    changes="name='anon'",
                ),
                Transformation(kind="removal", table="contact_info", predicate="contact_id=19"),
            ],
            PLACEHOLDER,
        )
        assert changes == [PLACEHOLDER, "name='anon'", ""]

    @pytest.mark.asyncio
    async def test_decorrelation_repoints_to_placeholder(self, store: AsyncMock):
        await TransformationExecutor(store).execute(
            [Transformation(kind="Decorrelation", table="review", predicate="contact_id=19")],
            PLACEHOLDER,
        )
        store.update_rows.assert_awaited_once_with("review", PLACEHOLDER, "contact_id=19")

    @pytest.mark.asyncio
    async def test_empty_batch(self, store: AsyncMock):
        assert await TransformationExecutor(store).execute([], PLACEHOLDER) == []


# -----------------------------------------------------------------------
# Rejections
# -----------------------------------------------------------------------


class TestRejections:
    @pytest.mark.asyncio
    async def test_unknown_kind(self, store: AsyncMock):
        with pytest.raises(InvalidInputError, match="not correct"):
            await TransformationExecutor(store).execute(
                [Transformation(kind="shuffle", table="review", predicate="contact_id=19")],
                PLACEHOLDER,
            )
        store.update_rows.assert_not_awaited()
        store.delete_rows.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_modification_without_changes(self, store: AsyncMock):
        with pytest.raises(InvalidInputError):
            await TransformationExecutor(store).execute(
                [Transformation(kind="modification", table="review", predicate="review_id=1")],
                PLACEHOLDER,
            )

    @pytest.mark.asyncio
    async def test_write_that_matched_nothing(self, store: AsyncMock):
        store.delete_rows.return_value = 0
        with pytest.raises(InvalidInputError, match="matched nothing"):
            await TransformationExecutor(store).execute(
                [Transformation(kind="removal", table="review", predicate="review_id=404")],
                PLACEHOLDER,
            )


# -----------------------------------------------------------------------
# Against a real store
# -----------------------------------------------------------------------


class TestAgainstStore:
    @pytest.mark.asyncio
    async def test_failed_first_write_leaves_later_tables_untouched(self, target_store):
        reviews_before = await fetch_all(target_store, "SELECT * FROM review ORDER BY review_id")

        with pytest.raises(InvalidInputError):
            await TransformationExecutor(target_store).execute(
                [
                    Transformation(kind="removal", table="contact_info", predicate="contact_id=404"),
                    Transformation(
                        kind="modification",
                        table="review",
                        predicate="contact_id=19",
                        changes="content='redacted'",
                    ),
                ],
                PLACEHOLDER,
            )

        assert await fetch_all(
            target_store, "SELECT * FROM review ORDER BY review_id"
        ) == reviews_before

    @pytest.mark.asyncio
    async def test_first_failure_aborts_and_keeps_earlier_writes(self, target_store):
        reviews_before = await fetch_all(target_store, "SELECT * FROM review ORDER BY review_id")

        with pytest.raises(InvalidInputError):
            await TransformationExecutor(target_store).execute(
                [
                    Transformation(
                        kind="modification",
                        table="contact_info",
                        predicate="contact_id=19",
                        changes="name='anon'",
                    ),
                    Transformation(kind="removal", table="contact_info", predicate="contact_id=404"),
                    Transformation(kind="removal", table="review", predicate="contact_id=20"),
                ],
                PLACEHOLDER,
            )

        # the first write stays committed; the third never ran
        assert await fetch_all(
            target_store, "SELECT name FROM contact_info WHERE contact_id=19"
        ) == [("anon",)]
        assert await fetch_all(
            target_store, "SELECT * FROM review ORDER BY review_id"
        ) == reviews_before

    @pytest.mark.asyncio
    async def test_decorrelation_then_removal(self, target_store):
        changes = await TransformationExecutor(target_store).execute(
            [
                Transformation(kind="decorrelation", table="review", predicate="contact_id=19"),
                Transformation(kind="removal", table="contact_info", predicate="contact_id=19"),
            ],
            PLACEHOLDER,
        )
        assert changes == [PLACEHOLDER, ""]
        assert await fetch_all(
            target_store, "SELECT review_id FROM review WHERE contact_id=0 ORDER BY review_id"
        ) == [(1,), (2,)]
        assert await fetch_all(
            target_store, "SELECT * FROM contact_info WHERE contact_id=19"
        ) == []
